"""
Émetteur de SetupIntent (validation de carte sans débit).
- issue_setup_intent: intent lié à un client Stripe connu (parcours authentifié)
- issue_guest_setup_intent: client Stripe temporaire + intent (parcours invité, requête AJAX)
Aucun retry: une erreur Stripe remonte immédiatement en IssueFailed.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict
import logging

import stripe

from cardcheck import config
from cardcheck.activity.repository import log_activity
from cardcheck.payments import stripe_client
from cardcheck.zero_order.errors import IssueFailed, NotConfigured

logger = logging.getLogger(__name__)

GUEST_EMAIL = "pending@temp.local"
GUEST_NAME = "Pending Customer"

# module cardcheck.setup_intents.service
@dataclass(frozen=True)
class SetupIntentGrant:
    secret: str
    intent_id: str
    public_key: str
    customer_id: str = ""

    def to_ajax(self) -> Dict[str, Any]:
        """Contrat JSON attendu par le widget (action=create_setup_intent)."""
        return {
            "success": True,
            "client_secret": self.secret,
            "stripe_customer_id": self.customer_id,
        }


def issue_setup_intent(customer_id: str, ip_address: str = "") -> SetupIntentGrant:
    if not stripe_client.is_configured():
        raise NotConfigured("Stripe not configured")
    try:
        setup_intent = stripe_client.create_setup_intent(customer_id)
    except stripe.StripeError as e:
        message = stripe_client.provider_message(e)
        log_activity(f"Failed to create SetupIntent - {message}", ip_address=ip_address)
        raise IssueFailed(message)
    logger.info("setup_intents.service.issue_setup_intent customer=%s intent=%s", customer_id, setup_intent.get("id"))
    return SetupIntentGrant(
        secret=setup_intent["client_secret"],
        intent_id=setup_intent["id"],
        public_key=config.STRIPE_PUBLIC_KEY,
        customer_id=customer_id,
    )

def issue_guest_setup_intent(email: str = "", firstname: str = "", lastname: str = "", ip_address: str = "") -> SetupIntentGrant:
    """
    Parcours invité: le vrai client local n'existe pas encore.
    - Crée un client Stripe temporaire (metadata temp=true) avec l'email/nom saisis
    - Puis un SetupIntent pour ce client; chaque appel produit un couple distinct
    """
    if not stripe_client.is_configured():
        raise NotConfigured("Stripe not configured")

    name = f"{firstname or ''} {lastname or ''}".strip()
    try:
        customer = stripe_client.create_customer(
            email=(email or "").strip() or GUEST_EMAIL,
            name=name or GUEST_NAME,
            metadata={
                "temp": "true",
                "created_at": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            },
        )
    except stripe.StripeError as e:
        message = stripe_client.provider_message(e)
        log_activity(f"AJAX SetupIntent creation failed - {message}", ip_address=ip_address)
        raise IssueFailed(message)

    grant = issue_setup_intent(customer["id"], ip_address=ip_address)
    logger.info("setup_intents.service.issue_guest_setup_intent customer=%s intent=%s", grant.customer_id, grant.intent_id)
    return grant
