from typing import Any, Dict, Optional
from fastapi import Request

# Clés de session posées par la plateforme hôte (panier, devise, client connecté)
SESSION_CLIENT_KEY = "uid"
SESSION_CART_KEY = "cart"
SESSION_CURRENCY_KEY = "currency"

def session_client_id(request: Request) -> int:
    """Identifiant du client connecté (0 pour un invité ou une valeur illisible)."""
    session = request.scope.get("session") or {}
    try:
        return int(session.get(SESSION_CLIENT_KEY) or 0)
    except (TypeError, ValueError):
        return 0

def session_cart(request: Request) -> Optional[Dict[str, Any]]:
    session = request.scope.get("session") or {}
    cart = session.get(SESSION_CART_KEY)
    return cart if isinstance(cart, dict) else None

def session_currency_id(request: Request, default: int) -> int:
    session = request.scope.get("session") or {}
    currency = session.get(SESSION_CURRENCY_KEY)
    if isinstance(currency, dict):
        currency = currency.get("id")
    try:
        return int(currency or default)
    except (TypeError, ValueError):
        return default

def client_ip(request: Request) -> str:
    return request.client.host if request.client else ""
