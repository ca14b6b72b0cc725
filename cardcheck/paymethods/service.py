"""
Persistance du moyen de paiement validé (étape d'acceptation de commande).
Rôles:
- Lire la carte côté Stripe (marque, 4 derniers chiffres, expiration)
- Chiffrer l'identifiant pm_... pour le stockage
- Écrire le couple creditcards/paymethods comme une seule unité (voir repository)
Retourne un booléen: un échec est journalisé, jamais propagé à la commande.
"""
from datetime import datetime
from typing import Any, Dict
import logging

import stripe

from cardcheck import config
from cardcheck.activity.repository import log_activity
from cardcheck.payments import crypto
from cardcheck.payments import stripe_client
from cardcheck.zero_order.errors import NotConfigured, PersistenceFailed
from . import repository

logger = logging.getLogger(__name__)

# module cardcheck.paymethods.service
def card_summary(card: Dict[str, Any]) -> Dict[str, str]:
    """
    Normalise la carte Stripe pour le stockage.
    - card_type: marque avec majuscule initiale ("visa" -> "Visa")
    - expiry_date: premier jour du mois d'expiration
    """
    brand = str(card.get("brand") or "")
    card_type = brand[:1].upper() + brand[1:]
    exp_month = int(card.get("exp_month") or 0)
    exp_year = int(card.get("exp_year") or 0)
    return {
        "card_type": card_type,
        "last_four": str(card.get("last4") or ""),
        "expiry_date": f"{exp_year}-{exp_month:02d}-01 00:00:00",
    }

def save_payment_method(client_id: int, payment_method_id: str, customer_id: str) -> bool:
    """
    Enregistre le moyen de paiement validé pour le client local.
    - Sans clé Stripe: False silencieux
    - pm_ sans détails de carte: journalisé + False
    - Échec d'écriture: aucune ligne partielle (rollback), journalisé + False
    """
    if not stripe_client.is_configured():
        return False

    try:
        payment_method = stripe_client.retrieve_payment_method(payment_method_id)
    except stripe.StripeError as e:
        log_activity(f"Failed to save payment method - {stripe_client.provider_message(e)}", user_id=client_id)
        return False

    card = payment_method.get("card")
    if not card:
        log_activity(f"Invalid payment method - {payment_method_id}", user_id=client_id)
        return False

    summary = card_summary(card)
    now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    try:
        encrypted = crypto.encrypt_card_data(payment_method_id)
        ids = repository.insert_pay_method_pair(
            client_id=client_id,
            card_type=summary["card_type"],
            last_four=summary["last_four"],
            expiry_date=summary["expiry_date"],
            card_data=encrypted,
            gateway_name=config.STRIPE_GATEWAY_NAME,
            now=now,
        )
    except (NotConfigured, PersistenceFailed) as e:
        log_activity(f"Failed to save payment method - {e.message}", user_id=client_id)
        return False

    logger.info(
        "paymethods.service.save_payment_method client_id=%s customer=%s pay_method_id=%s",
        client_id, customer_id, ids["pay_method_id"],
    )
    log_activity(
        f"Saved payment method for client #{client_id} - {summary['card_type']} ending in {summary['last_four']}",
        user_id=client_id,
    )
    return True
