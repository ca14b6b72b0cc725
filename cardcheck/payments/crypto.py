"""
Frontière de chiffrement réversible pour creditcards.card_data.
- encrypt_card_data: chiffre l'identifiant pm_... avant écriture (jamais stocké en clair)
- decrypt_card_data: utilisé uniquement par le résolveur client pour réutiliser un pm_ existant
"""
from cryptography.fernet import Fernet, InvalidToken

from cardcheck import config
from cardcheck.zero_order.errors import NotConfigured, CardDataError

# module cardcheck.payments.crypto
def _fernet() -> Fernet:
    key = config.CARD_DATA_ENCRYPTION_KEY
    if not key:
        raise NotConfigured("CARD_DATA_ENCRYPTION_KEY manquant")
    try:
        return Fernet(key.encode("utf-8"))
    except ValueError as e:
        raise NotConfigured(f"CARD_DATA_ENCRYPTION_KEY invalide: {e}")

def is_encryption_configured() -> bool:
    try:
        _fernet()
        return True
    except NotConfigured:
        return False

def encrypt_card_data(value: str) -> str:
    return _fernet().encrypt(value.encode("utf-8")).decode("ascii")

def decrypt_card_data(token: str) -> str:
    """Lève CardDataError si le jeton a été altéré ou chiffré avec une autre clé."""
    try:
        return _fernet().decrypt(token.encode("ascii")).decode("utf-8")
    except (InvalidToken, UnicodeError) as e:
        raise CardDataError(f"card_data illisible: {e.__class__.__name__}")
