from typing import Iterable

from .errors import InsufficientStockError


def lock_products(cur, shop_id: str, product_ids: Iterable[str]) -> dict:
    """
    Load and row-lock the shop's products for an order.

    Ids are locked in sorted order so two orders touching the same products cannot
    deadlock. Products of other shops are simply not returned.
    """
    ids = sorted({str(p) for p in product_ids})
    if not ids:
        return {}
    cur.execute(
        """
        SELECT id, shop_id, name, price, cost, stock, low_stock_threshold
        FROM products
        WHERE shop_id = %s AND id = ANY(%s::uuid[])
        ORDER BY id
        FOR UPDATE
        """,
        (shop_id, ids),
    )
    return {str(r["id"]): r for r in cur.fetchall()}


def assert_available(product: dict, available: int, requested: int) -> None:
    if int(requested) > int(available):
        raise InsufficientStockError(product["name"], available, requested)


def decrement_stock(cur, shop_id: str, product: dict, quantity: int) -> int:
    # Guarded decrement: never lets stock go below zero even if a caller skipped the check.
    cur.execute(
        """
        UPDATE products
        SET stock = stock - %s, updated_at = now()
        WHERE shop_id = %s AND id = %s AND stock >= %s
        RETURNING stock
        """,
        (int(quantity), shop_id, str(product["id"]), int(quantity)),
    )
    row = cur.fetchone()
    if not row:
        raise InsufficientStockError(product["name"], int(product.get("stock") or 0), quantity)
    return int(row["stock"])
