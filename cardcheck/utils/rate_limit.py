from typing import Optional, Dict, Any
from fastapi import Request, HTTPException, Response
import os
import time
import hashlib

from cardcheck.utils.security import SESSION_CLIENT_KEY, client_ip

"""
Limitation de débit optionnelle (dépendance FastAPI).
- Redis via fastapi-limiter quand le lifespan l'a initialisé
- Fallback mémoire si LOCAL_RATE_LIMIT_FALLBACK=1 (dev/tests)
- Désactivé proprement si app.state.rate_limit_enabled est False
Utilisé pour l'émission de SetupIntent invité (création de clients Stripe non authentifiée).
"""

def _key_from_request(req: Request) -> str:
    # Priorité: client de session (hashé) puis IP
    session = req.scope.get("session") or {}
    uid = session.get(SESSION_CLIENT_KEY)
    path = req.url.path
    if uid:
        h = hashlib.sha256(str(uid).encode("utf-8")).hexdigest()[:16]
        return f"client:{h}:{path}"
    return f"ip:{client_ip(req) or 'local'}:{path}"

def optional_rate_limit(times: int, seconds: int):
    async def _dep(request: Request):
        if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
            now = time.time()
            key = _key_from_request(request)
            store = getattr(request.app.state, "_rl_store", {})
            hits = [t for t in store.get(key, []) if now - t < seconds]
            if len(hits) >= times:
                raise HTTPException(status_code=429, detail="Too Many Requests")
            hits.append(now)
            store[key] = hits
            request.app.state._rl_store = store
            return

        if getattr(request.app.state, "rate_limit_enabled", None) is False:
            return

        try:
            from fastapi_limiter.depends import RateLimiter

            async def _identifier(req: Request) -> str:
                return _key_from_request(req)
            return await RateLimiter(times=times, seconds=seconds, identifier=_identifier)(request, Response())
        except HTTPException:
            raise
        except Exception:
            # Redis indisponible: pas de 429 en prod (LOCAL_RATE_LIMIT_FALLBACK=1 en dev)
            return
    return _dep

def rate_limit_health_info(request: Request) -> Dict[str, Any]:
    enabled: Optional[bool] = getattr(request.app.state, "rate_limit_enabled", None)

    try:
        from fastapi_limiter import FastAPILimiter
        limiter_ready = getattr(FastAPILimiter, "redis", None) is not None
    except Exception:
        limiter_ready = False

    return {
        "enabled": (bool(enabled) if enabled is not None else None),
        "ready": limiter_ready,
        "backend": "redis" if limiter_ready else ("memory" if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1" else None),
    }
