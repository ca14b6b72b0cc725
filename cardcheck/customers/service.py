"""
Résolveur de client Stripe.
Rôle: associer une identité locale à au plus un client Stripe.
- Réutilise le client Stripe d'un moyen de paiement déjà stocké (pm_... déchiffré)
- Sinon crée un nouveau client (email, nom, metadata client_id)
Erreurs: NotConfigured, NotFound, ResolverFailed (voir cardcheck.zero_order.errors)
"""
from typing import Any, Dict, Optional
import logging

import stripe

from cardcheck import config
from cardcheck.activity.repository import log_activity
from cardcheck.payments import crypto
from cardcheck.payments import stripe_client
from cardcheck.paymethods import repository as paymethods_repository
from cardcheck.zero_order.errors import CardDataError, NotConfigured, NotFound, ResolverFailed
from . import repository

logger = logging.getLogger(__name__)

PAYMENT_METHOD_PREFIX = "pm_"

# module cardcheck.customers.service
def display_name(identity: Dict[str, Any]) -> str:
    return f"{identity.get('firstname') or ''} {identity.get('lastname') or ''}".strip()

def find_reusable_customer(client_id: int, ip_address: str = "") -> Optional[str]:
    """
    Cherche un client Stripe déjà lié via un moyen de paiement stocké.
    Toute erreur (Stripe, déchiffrement) est journalisée et vaut « rien de réutilisable ».
    """
    card_data = paymethods_repository.find_active_card_data(client_id, config.STRIPE_GATEWAY_NAME)
    if not card_data:
        return None
    try:
        payment_method_id = crypto.decrypt_card_data(card_data)
        if not payment_method_id.startswith(PAYMENT_METHOD_PREFIX):
            return None
        payment_method = stripe_client.retrieve_payment_method(payment_method_id)
        customer = payment_method.get("customer")
        # customer peut être développé (objet) selon l'appel
        if isinstance(customer, dict):
            customer = customer.get("id")
        return customer or None
    except (stripe.StripeError, CardDataError, NotConfigured) as e:
        logger.warning("customers.service.find_reusable_customer client_id=%s: %s", client_id, e)
        log_activity(f"Could not retrieve existing customer - {e}", user_id=client_id, ip_address=ip_address)
        return None

def resolve_remote_customer(client_id: int, ip_address: str = "") -> str:
    """
    Retourne l'identifiant cus_... du client local.
    1) NotConfigured si STRIPE_SECRET_KEY absent
    2) NotFound si le client local n'existe pas
    3) client Stripe réutilisé si un pm_ stocké y est déjà rattaché
    4) sinon création (ResolverFailed si Stripe échoue)
    """
    if not stripe_client.is_configured():
        raise NotConfigured("Stripe not configured")

    identity = repository.get_client_by_id(client_id)
    if not identity:
        raise NotFound(f"Client #{client_id} introuvable")

    existing = find_reusable_customer(client_id, ip_address)
    if existing:
        logger.info("customers.service.resolve_remote_customer reuse client_id=%s customer=%s", client_id, existing)
        return existing

    try:
        customer = stripe_client.create_customer(
            email=identity.get("email") or "",
            name=display_name(identity),
            metadata={"client_id": str(client_id)},
        )
    except stripe.StripeError as e:
        message = stripe_client.provider_message(e)
        log_activity(f"Failed to create customer - {message}", user_id=client_id, ip_address=ip_address)
        raise ResolverFailed(message)

    logger.info("customers.service.resolve_remote_customer created client_id=%s customer=%s", client_id, customer.get("id"))
    return customer["id"]
