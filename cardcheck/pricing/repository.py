"""
Accès aux données de tarification (table 'pricing').
- Une ligne par (type='product', relid=<product_id>, currency=<currency_id>)
- Colonnes: monthly, quarterly, semiannually, annually, biennially, triennially, msetupfee
"""
from typing import Dict, Iterable, Optional
import logging

import cardcheck.infra.supabase_client as supabase_client
from .cart import ProductPricing, pricing_from_row

logger = logging.getLogger(__name__)

# module cardcheck.pricing.repository
def fetch_product_pricing(product_id: int, currency_id: int) -> Optional[ProductPricing]:
    """
    Retourne None si aucune ligne de prix (le produit ne compte alors pas dans le total).
    Une erreur d'accès est journalisée puis propagée: un prix illisible ne doit pas valoir 0.
    """
    try:
        res = (
            supabase_client.get_supabase()
            .table("pricing")
            .select("*")
            .eq("type", "product")
            .eq("relid", int(product_id))
            .eq("currency", int(currency_id))
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return pricing_from_row(rows[0]) if rows else None
    except Exception:
        logger.exception("pricing.repository.fetch_product_pricing failed product_id=%s currency=%s", product_id, currency_id)
        raise

def get_pricing_map(product_ids: Iterable[int], currency_id: int) -> Dict[int, ProductPricing]:
    """Retourne {product_id: ProductPricing} pour les produits qui ont une ligne de prix."""
    pricing: Dict[int, ProductPricing] = {}
    for pid in dict.fromkeys(int(p) for p in product_ids):
        row = fetch_product_pricing(pid, currency_id)
        if row is not None:
            pricing[pid] = row
    return pricing
