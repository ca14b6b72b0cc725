import pytest

from cardcheck.checkout.gatekeeper import (
    ValidationClaim,
    native_card_errors,
    strip_native_payment_fields,
    validate_checkout,
)

VALIDATED = {
    "stripe_zero_order_validated": "1",
    "stripe_payment_method_id": "pm_1",
    "stripe_customer_id": "cus_1",
    "paymentmethod": "stripe",
    "ccinfo": "new",
    "ccnumber": "",
    "email": "c1@example.com",
}


def test_claim_parses_form_fields():
    claim = ValidationClaim.from_form({**VALIDATED, "stripe_setup_intent_id": " seti_1 "})
    assert claim.is_asserted
    assert claim.payment_method_id == "pm_1"
    assert claim.customer_id == "cus_1"
    assert claim.setup_intent_id == "seti_1"


@pytest.mark.parametrize("flag", ["", "0", None])
def test_empty_flag_is_not_a_claim(flag):
    assert not ValidationClaim.from_form({**VALIDATED, "stripe_zero_order_validated": flag}).is_asserted


def test_flag_without_payment_method_is_not_a_claim():
    assert not ValidationClaim.from_form({"stripe_zero_order_validated": "1"}).is_asserted


def test_strip_removes_native_payment_fields_only_when_validated(fake_db):
    stripped = strip_native_payment_fields(VALIDATED, user_id=1, ip_address="10.0.0.1")

    assert "paymentmethod" not in stripped
    assert "ccinfo" not in stripped
    assert "ccnumber" not in stripped
    assert stripped["email"] == "c1@example.com"
    assert "paymentmethod" in VALIDATED
    [row] = fake_db.rows("activity_log")
    assert row["description"] == "Stripe Zero Order: Intercepted cart processing, bypassing payment gateway. PM: pm_1"
    assert row["ipaddr"] == "10.0.0.1"


def test_strip_is_a_noop_without_flag(fake_db):
    form = {"paymentmethod": "stripe", "ccinfo": "new"}
    assert strip_native_payment_fields(form) == form
    assert fake_db.rows("activity_log") == []


def test_validation_short_circuits_when_validated():
    assert validate_checkout({"stripe_zero_order_validated": "1", "stripe_payment_method_id": "pm_1"}) == []


def test_validation_falls_through_to_native_rules():
    errors = validate_checkout({"paymentmethod": "stripe"})
    assert errors == native_card_errors({"paymentmethod": "stripe"})
    assert "You did not enter your credit card number" in errors
    assert "Please choose a payment method" not in errors


PARTIAL_CLAIMS = [
    pytest.param({"stripe_zero_order_validated": "1"}, id="flag-only"),
    pytest.param({"stripe_zero_order_validated": "1", "stripe_payment_method_id": ""}, id="flag-empty-pm"),
    pytest.param({"stripe_payment_method_id": "pm_1"}, id="pm-only"),
    pytest.param({"stripe_zero_order_validated": "0", "stripe_payment_method_id": "pm_1"}, id="flag-zero"),
]


@pytest.mark.parametrize("claim", PARTIAL_CLAIMS)
def test_partial_claim_keeps_native_validation(claim):
    form = {"paymentmethod": "stripe", "ccinfo": "new", **claim}
    assert "You did not enter your credit card number" in validate_checkout(form)


@pytest.mark.parametrize("claim", PARTIAL_CLAIMS)
def test_partial_claim_keeps_native_fields(fake_db, claim):
    form = {"paymentmethod": "stripe", "ccinfo": "new", "ccnumber": "4242", **claim}
    fields = strip_native_payment_fields(form)
    assert fields["paymentmethod"] == "stripe"
    assert fields["ccinfo"] == "new"
    assert fields["ccnumber"] == "4242"
    assert fake_db.activity() == []
