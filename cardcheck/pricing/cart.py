"""
Panier en objets valeur (pas de DB, pas de Stripe).
La session hôte porte le panier sous forme brute; from_session le convertit en Cart explicite.
"""
from dataclasses import dataclass, field
import re
from typing import Any, Dict, List, Optional, Tuple

BILLING_CYCLES = ("monthly", "quarterly", "semiannually", "annually", "biennially", "triennially", "free")

# module cardcheck.pricing.cart
@dataclass(frozen=True)
class CartItem:
    product_id: int
    billing_cycle: str = "monthly"


@dataclass(frozen=True)
class Cart:
    items: Tuple[CartItem, ...] = field(default_factory=tuple)
    currency_id: int = 1

    def is_empty(self) -> bool:
        return not self.items

    @classmethod
    def from_session(cls, session_cart: Optional[Dict[str, Any]], currency_id: int) -> "Cart":
        """
        Convertit {"products": [{"pid": 3, "billingcycle": "annually"}, ...]} en Cart.
        - Ignore les lignes sans pid valide.
        - billingcycle absent -> "monthly" (comportement de la plateforme).
        """
        products: List[Dict[str, Any]] = list((session_cart or {}).get("products") or [])
        items: List[CartItem] = []
        for product in products:
            try:
                pid = int(product.get("pid") or 0)
            except (TypeError, ValueError):
                continue
            if pid <= 0:
                continue
            cycle = str(product.get("billingcycle") or "monthly").strip().lower()
            items.append(CartItem(product_id=pid, billing_cycle=cycle))
        return cls(items=tuple(items), currency_id=int(currency_id))


@dataclass(frozen=True)
class ProductPricing:
    """Une ligne de la table de prix pour (produit, devise)."""
    monthly: float = 0.0
    quarterly: float = 0.0
    semiannually: float = 0.0
    annually: float = 0.0
    biennially: float = 0.0
    triennially: float = 0.0
    setup_fee: float = 0.0

    def price_for(self, billing_cycle: str) -> float:
        """Prix du cycle; "free" vaut 0; un cycle inconnu retombe sur le prix mensuel."""
        cycle = (billing_cycle or "").lower()
        if cycle == "free":
            return 0.0
        if cycle in BILLING_CYCLES:
            return float(getattr(self, cycle))
        return self.monthly


def _to_float(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0

def pricing_from_row(row: Dict[str, Any]) -> ProductPricing:
    return ProductPricing(
        monthly=_to_float(row.get("monthly")),
        quarterly=_to_float(row.get("quarterly")),
        semiannually=_to_float(row.get("semiannually")),
        annually=_to_float(row.get("annually")),
        biennially=_to_float(row.get("biennially")),
        triennially=_to_float(row.get("triennially")),
        setup_fee=_to_float(row.get("msetupfee")),
    )

def parse_formatted_total(value: Any) -> Optional[float]:
    """
    Lit un total déjà formaté par le rendu hôte ("$0.00 USD", "0,00", 12.5, objet avec to_numeric()).
    Retourne None si la valeur est inexploitable.
    """
    if value is None:
        return None
    to_numeric = getattr(value, "to_numeric", None)
    if callable(to_numeric):
        return _to_float(to_numeric())
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        # "Free" ou "$" seuls valent 0, comme un cast numérique de la plateforme
        cleaned = re.sub(r"[^0-9.\-]", "", value)
        prefix = re.match(r"-?\d*(?:\.\d*)?", cleaned)
        try:
            return float(prefix.group(0)) if prefix and prefix.group(0) not in ("", "-", ".", "-.") else 0.0
        except ValueError:
            return 0.0
    return None
