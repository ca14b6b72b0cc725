"""
Journal d'activité (table 'activity_log'): écriture seule, « fire-and-forget ».
- Chaque ligne: date, description, userid (0 si inconnu), ipaddr
- Un échec d'écriture est journalisé via logging puis ignoré (ne bloque jamais le checkout)
"""
from datetime import datetime
import logging

import cardcheck.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

LOG_PREFIX = "Stripe Zero Order: "

# module cardcheck.activity.repository
def log_activity(message: str, user_id: int = 0, ip_address: str = "") -> None:
    description = message if message.startswith(LOG_PREFIX) else LOG_PREFIX + message
    logger.info("activity user_id=%s %s", user_id, description)
    try:
        (
            supabase_client.get_service_supabase()
            .table("activity_log")
            .insert({
                "date": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
                "description": description,
                "user": "",
                "userid": int(user_id or 0),
                "ipaddr": ip_address or "",
            })
            .execute()
        )
    except Exception:
        logger.warning("activity.repository.log_activity failed (ignored)", exc_info=True)
