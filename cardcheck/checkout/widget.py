"""
Rendu du widget de validation de carte injecté dans la page de checkout.
Ordre des décisions:
- panier vide ou total payant -> rien
- Stripe non configuré (clé publique ou secrète absente) -> rien (journalisé)
- client connecté -> client Stripe résolu + SetupIntent émis au rendu
- invité (ou échec ci-dessus) -> widget sans secret, le SetupIntent sera demandé en AJAX
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional
import logging

from cardcheck import config
from cardcheck.activity.repository import log_activity
from cardcheck.customers.service import resolve_remote_customer
from cardcheck.payments import stripe_client
from cardcheck.pricing.cart import Cart
from cardcheck.pricing.service import is_zero_total
from cardcheck.setup_intents.service import issue_setup_intent
from cardcheck.utils.templates import templates
from cardcheck.zero_order.errors import ZeroOrderError
from . import gatekeeper

logger = logging.getLogger(__name__)

WIDGET_TEMPLATE = "zero_order_widget.html"
VERIFYING_LABEL = "Verifying card..."
COMPLETE_LABEL = "Complete Order"
GENERIC_INTENT_ERROR = "Failed to initialize card validation. Please try again."

# Vocabulaire partagé par le script du template et form_controller
WIDGET_STATES = {
    "IDLE": "idle",
    "AWAITING_INTENT": "awaiting_intent",
    "AWAITING_CONFIRMATION": "awaiting_confirmation",
    "VALIDATED": "validated",
}
IDENTITY_FIELDS = ("email", "firstname", "lastname")
# Champs du formulaire hôte -> adresse de facturation Stripe
ADDRESS_FIELDS = {
    "address1": "line1",
    "address2": "line2",
    "city": "city",
    "state": "state",
    "postcode": "postal_code",
    "country": "country",
}

# module cardcheck.checkout.widget
@dataclass(frozen=True)
class WidgetContext:
    public_key: str
    client_secret: str = ""
    customer_id: str = ""

    def to_template(self) -> Dict[str, Any]:
        return {
            "public_key": self.public_key,
            "client_secret": self.client_secret,
            "customer_id": self.customer_id,
            "stripe_js_url": config.STRIPE_JS_URL,
            "wait_max_attempts": config.STRIPE_WAIT_MAX_ATTEMPTS,
            "wait_interval_ms": config.STRIPE_WAIT_INTERVAL_MS,
            "states": WIDGET_STATES,
            "identity_fields": list(IDENTITY_FIELDS),
            "address_fields": ADDRESS_FIELDS,
            "fields": {
                "flag": gatekeeper.FLAG_FIELD,
                "payment_method": gatekeeper.PAYMENT_METHOD_FIELD,
                "customer": gatekeeper.CUSTOMER_FIELD,
                "setup_intent": gatekeeper.SETUP_INTENT_FIELD,
                "remote_token": gatekeeper.REMOTE_STORAGE_TOKEN_FIELD,
            },
            "labels": {
                "verifying": VERIFYING_LABEL,
                "complete": COMPLETE_LABEL,
                "generic_error": GENERIC_INTENT_ERROR,
            },
        }


def build_widget_context(client_id: int, ip_address: str = "") -> Optional[WidgetContext]:
    """
    Prépare le contexte du widget, ou None si la fonctionnalité est désactivée.
    Un échec Stripe côté client connecté dégrade vers le parcours invité (secret vide).
    """
    if not config.STRIPE_PUBLIC_KEY:
        log_activity("Stripe publishable key not configured", user_id=client_id, ip_address=ip_address)
        return None
    if not stripe_client.is_configured():
        log_activity("Stripe secret key not configured", user_id=client_id, ip_address=ip_address)
        return None

    if not client_id:
        return WidgetContext(public_key=config.STRIPE_PUBLIC_KEY)

    customer_id = ""
    client_secret = ""
    try:
        customer_id = resolve_remote_customer(client_id, ip_address)
        client_secret = issue_setup_intent(customer_id, ip_address=ip_address).secret
    except ZeroOrderError as e:
        logger.warning("checkout.widget.build_widget_context client_id=%s: %s", client_id, e)
        log_activity(f"Error creating SetupIntent - {e.message}", user_id=client_id, ip_address=ip_address)
    return WidgetContext(public_key=config.STRIPE_PUBLIC_KEY, client_secret=client_secret, customer_id=customer_id)

def render_checkout_output(cart: Cart, rendered_total: Any = None, client_id: int = 0, ip_address: str = "") -> str:
    """Fragment HTML à insérer dans le checkout; chaîne vide si la commande n'est pas à 0."""
    if cart.is_empty():
        return ""
    if not is_zero_total(cart, rendered_total):
        return ""

    log_activity("Detected zero-total order, injecting card validation form", user_id=client_id, ip_address=ip_address)
    context = build_widget_context(client_id, ip_address)
    if context is None:
        return ""
    return templates.get_template(WIDGET_TEMPLATE).render(**context.to_template())
