"""
Accès aux données des moyens de paiement stockés.
- Table 'paymethods': userid, description, contact_id, contact_type, payment_id (-> creditcards.id),
  payment_type, gateway_name, order_preference, created_at, updated_at, deleted_at
- Table 'creditcards': pay_method_id (-> paymethods.id), card_type, last_four, expiry_date,
  card_data (pm_... chiffré), created_at, updated_at, deleted_at
- deleted_at est un marqueur logique: ce module ne supprime jamais une ligne existante.
"""
from typing import Any, Dict, List, Optional, Tuple
import logging

import cardcheck.infra.supabase_client as supabase_client
from cardcheck.zero_order.errors import PersistenceFailed

logger = logging.getLogger(__name__)

PAYMENT_TYPE = "RemoteCreditCard"
CONTACT_TYPE = "Client"

# module cardcheck.paymethods.repository
def find_active_card_data(client_id: int, gateway_name: str) -> Optional[str]:
    """
    Retourne le card_data (chiffré) du premier moyen de paiement actif du client pour ce gateway.
    - Filtre deleted_at IS NULL sur les deux tables.
    - Retourne None si rien n'est trouvé ou en cas d'erreur.
    """
    try:
        client = supabase_client.get_supabase()
        res = (
            client
            .table("paymethods")
            .select("id, payment_id")
            .eq("userid", int(client_id))
            .eq("gateway_name", gateway_name)
            .is_("deleted_at", "null")
            .order("order_preference")
            .limit(1)
            .execute()
        )
        methods = res.data or []
        if not methods:
            return None
        card_res = (
            client
            .table("creditcards")
            .select("id, card_data")
            .eq("id", methods[0].get("payment_id"))
            .is_("deleted_at", "null")
            .limit(1)
            .execute()
        )
        cards = card_res.data or []
        if not cards:
            return None
        return cards[0].get("card_data") or None
    except Exception:
        logger.exception("paymethods.repository.find_active_card_data failed client_id=%s", client_id)
        return None

def _inserted_id(res: Any, table: str) -> int:
    rows = res.data or []
    if not rows or rows[0].get("id") is None:
        raise RuntimeError(f"insert sur {table} sans identifiant retourné")
    return int(rows[0]["id"])

def _rollback(client: Any, created: List[Tuple[str, int]]) -> None:
    """Annule l'unité d'écriture: supprime, dans l'ordre inverse, les lignes créées par celle-ci."""
    for table, row_id in reversed(created):
        try:
            client.table(table).delete().eq("id", row_id).execute()
        except Exception:
            logger.exception("paymethods.repository rollback failed table=%s id=%s (ligne orpheline)", table, row_id)

def insert_pay_method_pair(
    *,
    client_id: int,
    card_type: str,
    last_four: str,
    expiry_date: str,
    card_data: str,
    gateway_name: str,
    now: str,
) -> Dict[str, int]:
    """
    Écrit le couple (creditcards, paymethods) comme une seule unité:
      1) creditcards avec pay_method_id=0
      2) paymethods référençant creditcards.id
      3) report de paymethods.id dans creditcards.pay_method_id
    PostgREST n'offre pas de transaction côté client: toute erreur supprime les lignes déjà créées
    puis lève PersistenceFailed.
    Retour: {"pay_method_id": ..., "credit_card_id": ...}
    """
    try:
        client = supabase_client.get_service_supabase()
    except RuntimeError as e:
        raise PersistenceFailed(f"Failed to save payment method - {e}")
    created: List[Tuple[str, int]] = []
    try:
        card_res = (
            client
            .table("creditcards")
            .insert({
                "pay_method_id": 0,
                "card_type": card_type,
                "last_four": last_four,
                "expiry_date": expiry_date,
                "card_data": card_data,
                "created_at": now,
                "updated_at": now,
            })
            .execute()
        )
        credit_card_id = _inserted_id(card_res, "creditcards")
        created.append(("creditcards", credit_card_id))

        method_res = (
            client
            .table("paymethods")
            .insert({
                "userid": int(client_id),
                "description": f"{card_type} ending in {last_four}",
                "contact_id": int(client_id),
                "contact_type": CONTACT_TYPE,
                "payment_id": credit_card_id,
                "payment_type": PAYMENT_TYPE,
                "gateway_name": gateway_name,
                "order_preference": 0,
                "created_at": now,
                "updated_at": now,
            })
            .execute()
        )
        pay_method_id = _inserted_id(method_res, "paymethods")
        created.append(("paymethods", pay_method_id))

        update_res = (
            client
            .table("creditcards")
            .update({"pay_method_id": pay_method_id})
            .eq("id", credit_card_id)
            .execute()
        )
        if not (update_res.data or []):
            raise RuntimeError(f"report de pay_method_id impossible sur creditcards id={credit_card_id}")
    except Exception as e:
        logger.exception("paymethods.repository.insert_pay_method_pair failed client_id=%s", client_id)
        _rollback(client, created)
        raise PersistenceFailed(f"Failed to save payment method - {e}")

    return {"pay_method_id": pay_method_id, "credit_card_id": credit_card_id}
