import pytest
from cryptography.fernet import Fernet

from cardcheck import config
from cardcheck.payments import crypto
from cardcheck.zero_order.errors import CardDataError, NotConfigured


def test_card_data_is_never_stored_in_clear():
    token = crypto.encrypt_card_data("pm_123")
    assert "pm_123" not in token
    assert crypto.decrypt_card_data(token) == "pm_123"


def test_decrypt_with_another_key_raises_card_data_error(monkeypatch):
    token = crypto.encrypt_card_data("pm_123")
    monkeypatch.setattr(config, "CARD_DATA_ENCRYPTION_KEY", Fernet.generate_key().decode("ascii"))
    with pytest.raises(CardDataError):
        crypto.decrypt_card_data(token)


def test_missing_or_invalid_key_is_not_configured(monkeypatch):
    monkeypatch.setattr(config, "CARD_DATA_ENCRYPTION_KEY", "")
    assert crypto.is_encryption_configured() is False
    with pytest.raises(NotConfigured):
        crypto.encrypt_card_data("pm_1")

    monkeypatch.setattr(config, "CARD_DATA_ENCRYPTION_KEY", "not-a-fernet-key")
    assert crypto.is_encryption_configured() is False
