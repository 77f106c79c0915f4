from fastapi import APIRouter, Depends

from ..db import get_conn, set_shop_context
from ..deps import require_shop_access
from ..logs import json_log
from ..notifications import mark_all_read
from ..security import Caller

router = APIRouter(prefix="/shops/{shop_id}/notifications", tags=["notifications"])


@router.get("")
def list_notifications(unread_only: bool = False, limit: int = 100, caller: Caller = Depends(require_shop_access)):
    limit = max(1, min(int(limit or 100), 500))
    with get_conn() as conn:
        set_shop_context(conn, caller.shop_id)
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT id, shop_id, message, is_read, created_at
                FROM notifications
                WHERE shop_id = %s
                  AND (%s = false OR is_read = false)
                ORDER BY created_at DESC
                LIMIT %s
                """,
                (caller.shop_id, bool(unread_only), limit),
            )
            return {"notifications": cur.fetchall()}


@router.put("/mark-read")
def mark_notifications_read(caller: Caller = Depends(require_shop_access)):
    with get_conn() as conn:
        set_shop_context(conn, caller.shop_id)
        with conn.transaction():
            with conn.cursor() as cur:
                updated = mark_all_read(cur, caller.shop_id)
    json_log("info", "notifications.marked_read", shop_id=caller.shop_id, updated=updated)
    return {"message": "Notifications marked as read.", "updated": updated}
