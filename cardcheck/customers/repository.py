"""
Accès en lecture au référentiel d'identités de la plateforme hôte.
- 'clients': id, email, firstname, lastname
- 'orders': id, userid
"""
from typing import Any, Dict, Optional
import logging

import cardcheck.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

# module cardcheck.customers.repository
def get_client_by_id(client_id: int) -> Optional[Dict[str, Any]]:
    try:
        res = (
            supabase_client.get_supabase()
            .table("clients")
            .select("id, email, firstname, lastname")
            .eq("id", int(client_id))
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("customers.repository.get_client_by_id failed client_id=%s", client_id)
        return None

def get_order_by_id(order_id: int) -> Optional[Dict[str, Any]]:
    try:
        res = (
            supabase_client.get_supabase()
            .table("orders")
            .select("id, userid")
            .eq("id", int(order_id))
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("customers.repository.get_order_by_id failed order_id=%s", order_id)
        return None
