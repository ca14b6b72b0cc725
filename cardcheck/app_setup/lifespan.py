"""
Lifespan FastAPI du service de validation des commandes à 0.
Au démarrage:
- journalise l'état de la fonctionnalité (Stripe, chiffrement, mode strict), sans les clés
- branche FastAPILimiter sur Redis pour borner l'émission de SetupIntent invitée
  (chaque appel AJAX crée un client Stripe temporaire)
À l'arrêt: ferme la connexion Redis du limiteur.

Variables d'environnement:
  - DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS=1: limiteur désactivé (tests)
  - USE_FAKE_REDIS_FOR_TESTS=1: fakeredis au lieu de RATE_LIMIT_REDIS_URL
  - LOCAL_RATE_LIMIT_FALLBACK=1: limiteur en mémoire si Redis est indisponible
"""
import os
import logging
import redis.asyncio as aioredis
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi_limiter import FastAPILimiter

from cardcheck import config
from cardcheck.payments import stripe_client

try:
    from fakeredis.aioredis import FakeRedis  # tests only
except Exception:
    FakeRedis = None

logger = logging.getLogger(__name__)


def _redis_connection():
    if os.getenv("USE_FAKE_REDIS_FOR_TESTS") == "1":
        if not FakeRedis:
            raise RuntimeError("USE_FAKE_REDIS_FOR_TESTS=1 mais fakeredis n'est pas installé.")
        return FakeRedis(decode_responses=True)
    return aioredis.from_url(config.RATE_LIMIT_REDIS_URL, encoding="utf-8", decode_responses=True)

def log_zero_order_status() -> None:
    if not config.STRIPE_PUBLIC_KEY or not stripe_client.is_configured():
        logger.warning("Zero-order card validation inactive: Stripe keys missing, widget will not render")
    if not config.CARD_DATA_ENCRYPTION_KEY:
        logger.warning("CARD_DATA_ENCRYPTION_KEY missing: validated cards will not be stored")
    logger.info(
        "Zero-order card validation: strict SetupIntent check %s",
        "on" if config.ZERO_ORDER_VERIFY_SETUP_INTENT else "off",
    )

async def _init_guest_intent_limiter(app: FastAPI) -> bool:
    """True si Redis porte le limiteur; sinon fallback mémoire ou désactivation."""
    try:
        await FastAPILimiter.init(_redis_connection())
    except Exception as e:
        if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
            app.state.rate_limit_enabled = True
            logger.warning("Guest SetupIntent rate limit falling back to local memory: %s", e)
        else:
            app.state.rate_limit_enabled = False
            logger.warning("Guest SetupIntent issuance NOT rate limited (limiter init failed): %s", e)
        return False

    app.state.rate_limit_enabled = True
    logger.info(
        "Guest SetupIntent issuance limited to %s requests per %ss",
        config.GUEST_INTENT_RATE_LIMIT_TIMES,
        config.GUEST_INTENT_RATE_LIMIT_SECONDS,
    )
    return True

@asynccontextmanager
async def lifespan(app: FastAPI):
    log_zero_order_status()

    if os.getenv("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS") == "1":
        app.state.rate_limit_enabled = False
        logger.info("Rate limiting disabled by DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS")
        yield
        return

    redis_backed = await _init_guest_intent_limiter(app)
    try:
        yield
    finally:
        if redis_backed:
            try:
                await FastAPILimiter.close()
            except Exception:
                logger.warning("FastAPILimiter close failed (ignored)", exc_info=True)
