from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from typing import Any

from ..db import get_conn, set_shop_context
from ..deps import require_shop_access
from ..security import Caller
from ..validation import CustomerName
from .. import orders as order_service

router = APIRouter(prefix="/shops/{shop_id}/orders", tags=["orders"])

MAX_LIST_LIMIT = 500


class OrderIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    customer_name: CustomerName = Field(default=None, alias="customerName")
    # Item shape is checked by the order service so malformed items are a 400 like
    # every other order error, not a 422.
    items: Any = None


@router.post("", status_code=201)
def create_order(data: OrderIn, caller: Caller = Depends(require_shop_access)):
    # The shop always comes from the token, never from the path/body.
    out = order_service.create_order(
        shop_id=caller.shop_id,
        biller_name=caller.name,
        customer_name=data.customer_name,
        items=data.items,
    )
    return {
        "message": "Order created successfully",
        "order": out["order"],
        "invoice": out["invoice"],
        "notifications": out["notifications"],
    }


@router.get("")
def list_orders(limit: int = 100, caller: Caller = Depends(require_shop_access)):
    limit = max(1, min(int(limit or 100), MAX_LIST_LIMIT))
    with get_conn() as conn:
        set_shop_context(conn, caller.shop_id)
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT id, shop_id, customer_name, biller_name, total, total_profit, created_at
                FROM orders
                WHERE shop_id = %s
                ORDER BY created_at DESC
                LIMIT %s
                """,
                (caller.shop_id, limit),
            )
            orders = [dict(r) for r in cur.fetchall()]
            if not orders:
                return {"orders": []}
            cur.execute(
                """
                SELECT order_id, product_id, name, quantity, price, cost
                FROM order_items
                WHERE order_id = ANY(%s::uuid[])
                ORDER BY order_id, line_no
                """,
                ([str(o["id"]) for o in orders],),
            )
            by_order: dict = {}
            for r in cur.fetchall():
                by_order.setdefault(str(r["order_id"]), []).append(
                    {
                        "product_id": r["product_id"],
                        "name": r["name"],
                        "quantity": r["quantity"],
                        "price": r["price"],
                        "cost": r["cost"],
                    }
                )
            for o in orders:
                o["items"] = by_order.get(str(o["id"]), [])
            return {"orders": orders}
