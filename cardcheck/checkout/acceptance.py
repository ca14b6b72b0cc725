"""
Acceptation de commande: seule étape qui écrit des données pour le flux « commande à 0 ».
Étapes:
- Lire le ValidationClaim soumis (pm_..., cus_..., éventuellement seti_...)
- Résoudre le client local propriétaire de la commande
- (mode strict) corréler le SetupIntent avant d'honorer le drapeau
- Utiliser le cus_ soumis ou résoudre/créer celui du client
- Rattacher le pm_ s'il ne l'est pas, le définir par défaut pour la facturation
- Persister le couple paymethods/creditcards
Aucune erreur Stripe/persistance ne fait échouer la commande: la fonctionnalité s'efface.
"""
from dataclasses import dataclass
from typing import Any, Mapping
import logging

import stripe

from cardcheck import config
from cardcheck.activity.repository import log_activity
from cardcheck.customers import repository as customers_repository
from cardcheck.customers.service import resolve_remote_customer
from cardcheck.payments import stripe_client
from cardcheck.paymethods.service import save_payment_method
from cardcheck.zero_order.errors import ValidationBypassAttempt, ZeroOrderError
from .gatekeeper import ValidationClaim

logger = logging.getLogger(__name__)

# module cardcheck.checkout.acceptance
@dataclass(frozen=True)
class AcceptanceResult:
    status: str
    saved: bool = False
    customer_id: str = ""
    reason: str = ""

    def to_dict(self) -> dict:
        return {"status": self.status, "saved": self.saved, "stripe_customer_id": self.customer_id, "reason": self.reason}


def verify_claim(claim: ValidationClaim) -> None:
    """
    Mode strict (ZERO_ORDER_VERIFY_SETUP_INTENT): le drapeau n'est honoré que si le SetupIntent
    soumis existe, a réussi et porte le même pm_. Lève ValidationBypassAttempt sinon.
    """
    if not claim.setup_intent_id:
        raise ValidationBypassAttempt("validation flag without setup intent reference")
    try:
        setup_intent = stripe_client.retrieve_setup_intent(claim.setup_intent_id)
    except stripe.StripeError as e:
        raise ValidationBypassAttempt(f"setup intent not retrievable - {stripe_client.provider_message(e)}")
    payment_method = setup_intent.get("payment_method")
    if isinstance(payment_method, dict):
        payment_method = payment_method.get("id")
    if setup_intent.get("status") != "succeeded" or payment_method != claim.payment_method_id:
        raise ValidationBypassAttempt(
            f"setup intent {claim.setup_intent_id} not confirmed for {claim.payment_method_id}"
        )

def attach_as_default(payment_method_id: str, customer_id: str, order_id: int) -> None:
    """Rattache le pm_ au client Stripe si besoin puis le définit par défaut; erreurs journalisées."""
    if not stripe_client.is_configured():
        return
    try:
        payment_method = stripe_client.retrieve_payment_method(payment_method_id)
        if not payment_method.get("customer"):
            stripe_client.attach_payment_method(payment_method_id, customer_id)
        stripe_client.set_default_payment_method(customer_id, payment_method_id)
    except stripe.StripeError as e:
        logger.warning("checkout.acceptance.attach_as_default order_id=%s: %s", order_id, e)
        log_activity(f"Failed to attach payment method - {stripe_client.provider_message(e)}")

def accept_order(order_id: int, form: Mapping[str, Any], ip_address: str = "") -> AcceptanceResult:
    claim = ValidationClaim.from_form(form)
    if not claim.payment_method_id:
        return AcceptanceResult(status="skipped", reason="no validated payment method")
    if not order_id:
        return AcceptanceResult(status="skipped", reason="no order")

    order = customers_repository.get_order_by_id(order_id)
    if not order:
        return AcceptanceResult(status="skipped", reason="order not found")
    client_id = int(order.get("userid") or 0)

    if config.ZERO_ORDER_VERIFY_SETUP_INTENT:
        # sans clé secrète le SetupIntent ne peut pas être corrélé: on s'efface
        if not stripe_client.is_configured():
            log_activity(f"Stripe not configured, order #{order_id} accepted without stored card", user_id=client_id, ip_address=ip_address)
            return AcceptanceResult(status="skipped", reason="stripe not configured")
        try:
            verify_claim(claim)
        except ValidationBypassAttempt as e:
            logger.warning("checkout.acceptance validation bypass attempt order_id=%s: %s", order_id, e)
            log_activity(f"Validation bypass attempt on order #{order_id} - {e.message}", user_id=client_id, ip_address=ip_address)
            return AcceptanceResult(status="rejected", reason=e.message)
        except ZeroOrderError as e:
            logger.warning("checkout.acceptance verify failed order_id=%s: %s", order_id, e)
            log_activity(f"Could not verify SetupIntent for order #{order_id} - {e.message}", user_id=client_id, ip_address=ip_address)
            return AcceptanceResult(status="skipped", reason=e.message)

    customer_id = claim.customer_id
    if not customer_id:
        try:
            customer_id = resolve_remote_customer(client_id, ip_address)
        except ZeroOrderError as e:
            logger.warning("checkout.acceptance resolve failed order_id=%s: %s", order_id, e)
            customer_id = ""
    if not customer_id:
        log_activity(f"Could not get/create Stripe customer for order #{order_id}", user_id=client_id, ip_address=ip_address)
        return AcceptanceResult(status="skipped", reason="no stripe customer")

    attach_as_default(claim.payment_method_id, customer_id, order_id)
    saved = save_payment_method(client_id, claim.payment_method_id, customer_id)

    if saved:
        log_activity(f"Payment method saved for order #{order_id} (Client #{client_id})", user_id=client_id, ip_address=ip_address)
    else:
        log_activity(f"Order #{order_id} accepted without stored card (Client #{client_id})", user_id=client_id, ip_address=ip_address)
    return AcceptanceResult(status="ok", saved=saved, customer_id=customer_id)
