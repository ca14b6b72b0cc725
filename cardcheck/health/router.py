from fastapi import APIRouter, Request

from cardcheck import config
from cardcheck.payments import crypto, stripe_client
from cardcheck.utils.rate_limit import rate_limit_health_info

router = APIRouter(prefix="/health", tags=["Health"])

@router.get("")
def health_root():
    return {"ok": True}

@router.get("/zero-order")
def health_zero_order(request: Request):
    return {
        "stripe_configured": stripe_client.is_configured() and bool(config.STRIPE_PUBLIC_KEY),
        "encryption_configured": crypto.is_encryption_configured(),
        "strict_setup_intent_check": config.ZERO_ORDER_VERIFY_SETUP_INTENT,
        "rate_limit": rate_limit_health_info(request),
    }
