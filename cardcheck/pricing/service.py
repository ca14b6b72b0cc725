"""
Évaluateur de prix: décide si le total payable d'un panier est <= 0.
- Somme des prix par cycle de facturation (table de prix de la devise)
- Ajout des frais d'installation positifs, ligne par ligne
- Un total pré-calculé par le rendu hôte, s'il est fourni, est prioritaire
"""
from typing import Any, Callable, Dict, Iterable, Optional
import logging

from . import repository
from .cart import Cart, ProductPricing, parse_formatted_total

logger = logging.getLogger(__name__)

PricingLookup = Callable[[Iterable[int], int], Dict[int, ProductPricing]]

# module cardcheck.pricing.service
def compute_cart_total(cart: Cart, pricing_lookup: Optional[PricingLookup] = None) -> float:
    lookup = pricing_lookup or repository.get_pricing_map
    pricing = lookup([item.product_id for item in cart.items], cart.currency_id)

    total = 0.0
    for item in cart.items:
        row = pricing.get(item.product_id)
        if row is None:
            continue
        total += row.price_for(item.billing_cycle)

    # Frais d'installation: ajoutés pour chaque ligne, quel que soit le cycle
    for item in cart.items:
        row = pricing.get(item.product_id)
        if row is not None and row.setup_fee > 0:
            total += row.setup_fee
    return total

def is_zero_total(
    cart: Cart,
    rendered_total: Any = None,
    pricing_lookup: Optional[PricingLookup] = None,
) -> bool:
    """
    True si la commande ne coûte rien.
    - Panier vide -> False (rien à valider)
    - rendered_total présent -> seul ce signal décide (le recalcul n'est qu'un repli)
    - Erreur de lecture des prix -> False (la fonctionnalité s'efface, le checkout normal continue)
    """
    if cart.is_empty():
        return False

    if rendered_total is not None:
        numeric = parse_formatted_total(rendered_total)
        return numeric is not None and numeric <= 0

    try:
        return compute_cart_total(cart, pricing_lookup) <= 0
    except Exception:
        logger.exception("pricing.service.is_zero_total: lecture des prix impossible, panier considéré payant")
        return False
