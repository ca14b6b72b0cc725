"""
Adaptateur Stripe: centralise la configuration et les appels utilisés par le flux « commande à 0 ».
Opérations: create_customer, retrieve_payment_method, create_setup_intent,
attach_payment_method, set_default_payment_method (+ retrieve_setup_intent pour le mode strict).
Les erreurs du SDK (stripe.StripeError) remontent telles quelles; les services les traduisent.
"""
from datetime import datetime
from typing import Any, Dict, Optional

import stripe

from cardcheck import config
from cardcheck.zero_order.errors import NotConfigured

SETUP_INTENT_SOURCE = "zero_order_validation"

# module cardcheck.payments.stripe_client
def is_configured() -> bool:
    return bool(config.STRIPE_SECRET_KEY)

def require_stripe():
    """
    Prépare et retourne le module stripe prêt à l'emploi.
    - Lève NotConfigured si STRIPE_SECRET_KEY est absent (fonctionnalité désactivée).
    """
    if not config.STRIPE_SECRET_KEY:
        raise NotConfigured("Stripe not configured")
    stripe.api_key = config.STRIPE_SECRET_KEY
    return stripe

def _now() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")

def create_customer(*, email: str, name: str, metadata: Dict[str, Any]) -> Dict[str, Any]:
    """Crée un client Stripe. Retour: dict incluant "id" (cus_...)."""
    require_stripe()
    customer = stripe.Customer.create(email=email, name=name, metadata=metadata)
    return dict(customer)

def retrieve_payment_method(payment_method_id: str) -> Dict[str, Any]:
    """Retour: dict incluant "id", "customer" (ou None) et "card" (brand, last4, exp_month, exp_year)."""
    require_stripe()
    payment_method = stripe.PaymentMethod.retrieve(payment_method_id)
    return dict(payment_method)

def create_setup_intent(customer_id: str) -> Dict[str, Any]:
    """
    Crée un SetupIntent « valider sans débiter »:
    - restreint aux cartes, usage off_session (facturation future hors session)
    - metadata: source + date de création
    Retour: dict incluant "id" et "client_secret".
    """
    require_stripe()
    setup_intent = stripe.SetupIntent.create(
        customer=customer_id,
        payment_method_types=["card"],
        usage="off_session",
        metadata={
            "source": SETUP_INTENT_SOURCE,
            "created_at": _now(),
        },
    )
    return dict(setup_intent)

def retrieve_setup_intent(setup_intent_id: str) -> Dict[str, Any]:
    require_stripe()
    return dict(stripe.SetupIntent.retrieve(setup_intent_id))

def attach_payment_method(payment_method_id: str, customer_id: str) -> Dict[str, Any]:
    require_stripe()
    return dict(stripe.PaymentMethod.attach(payment_method_id, customer=customer_id))

def set_default_payment_method(customer_id: str, payment_method_id: str) -> Dict[str, Any]:
    """Définit le moyen de paiement par défaut des factures du client."""
    require_stripe()
    customer = stripe.Customer.modify(
        customer_id,
        invoice_settings={"default_payment_method": payment_method_id},
    )
    return dict(customer)

def provider_message(exc: Exception) -> str:
    """Message lisible d'une erreur Stripe (user_message si fourni par l'API)."""
    user_message: Optional[str] = getattr(exc, "user_message", None)
    return user_message or str(exc) or exc.__class__.__name__
