"""
Points d'interception du checkout pour les commandes validées hors bande (SetupIntent).

- strip_native_payment_fields: avant le traitement panier/paiement, retire la sélection de
  passerelle et les champs carte bruts pour que la plateforme ne tente pas de débit/stockage.
- validate_checkout: avant les règles de validation carte natives, court-circuite avec
  « aucune erreur » quand le drapeau est présent.

Le drapeau est une donnée client (falsifiable): ces deux points ne vérifient pas qu'un
SetupIntent a réellement été confirmé. Seule l'acceptation de commande écrit des données.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping

from cardcheck.activity.repository import log_activity

FLAG_FIELD = "stripe_zero_order_validated"
PAYMENT_METHOD_FIELD = "stripe_payment_method_id"
CUSTOMER_FIELD = "stripe_customer_id"
SETUP_INTENT_FIELD = "stripe_setup_intent_id"
REMOTE_STORAGE_TOKEN_FIELD = "remoteStorageToken"

NATIVE_PAYMENT_FIELDS = ("paymentmethod", "ccinfo", "ccnumber", "ccexpirydate", "cccvv", "cctype")

# module cardcheck.checkout.gatekeeper
def _present(value: Any) -> bool:
    """Valeur de formulaire « non vide »: None, "", espaces et "0" sont considérés absents."""
    if value is None:
        return False
    text = str(value).strip()
    return text not in ("", "0")


@dataclass(frozen=True)
class ValidationClaim:
    """
    Message porté par le formulaire: « la carte a déjà été vérifiée hors bande ».
    Rien ici n'est prouvé; setup_intent_id permet une corrélation côté serveur (mode strict).
    """
    flag: bool
    payment_method_id: str = ""
    customer_id: str = ""
    setup_intent_id: str = ""

    @property
    def is_asserted(self) -> bool:
        return self.flag and bool(self.payment_method_id)

    @classmethod
    def from_form(cls, form: Mapping[str, Any]) -> "ValidationClaim":
        def text(name: str) -> str:
            value = form.get(name)
            return str(value).strip() if _present(value) else ""
        return cls(
            flag=_present(form.get(FLAG_FIELD)),
            payment_method_id=text(PAYMENT_METHOD_FIELD),
            customer_id=text(CUSTOMER_FIELD),
            setup_intent_id=text(SETUP_INTENT_FIELD),
        )


def strip_native_payment_fields(form: Mapping[str, Any], user_id: int = 0, ip_address: str = "") -> Dict[str, Any]:
    """Retourne une copie du formulaire sans champs de paiement natifs si le drapeau est présent."""
    fields = dict(form)
    claim = ValidationClaim.from_form(fields)
    if not claim.is_asserted:
        return fields
    for name in NATIVE_PAYMENT_FIELDS:
        fields.pop(name, None)
    log_activity(
        f"Intercepted cart processing, bypassing payment gateway. PM: {claim.payment_method_id}",
        user_id=user_id,
        ip_address=ip_address,
    )
    return fields

def native_card_errors(form: Mapping[str, Any]) -> List[str]:
    """Règles natives de la plateforme: une passerelle choisie et une carte complète."""
    errors: List[str] = []
    if not _present(form.get("paymentmethod")):
        errors.append("Please choose a payment method")
    if not _present(form.get("ccnumber")):
        errors.append("You did not enter your credit card number")
    if not _present(form.get("ccexpirydate")):
        errors.append("You did not enter your credit card expiration date")
    if not _present(form.get("cccvv")):
        errors.append("You did not enter your credit card CVV number")
    return errors

def validate_checkout(form: Mapping[str, Any]) -> List[str]:
    """Liste d'erreurs de validation; vide si le drapeau et un pm_ sont présents."""
    if ValidationClaim.from_form(form).is_asserted:
        return []
    return native_card_errors(form)
