from typing import Optional


def low_stock_crossed(stock_before: int, threshold: int, quantity: int) -> bool:
    # Edge-triggered: fire once when a sale takes stock from above the threshold to at/below it.
    # Sales while already at/below the threshold stay silent.
    stock_after = int(stock_before) - int(quantity)
    return int(stock_before) > int(threshold) and stock_after <= int(threshold)


def low_stock_message(product_name: str, remaining: int) -> str:
    return f"{product_name} is low on stock! Only {int(remaining)} left."


def maybe_emit(cur, shop_id: str, product: dict, quantity: int, *, stock_before: Optional[int] = None) -> Optional[dict]:
    """
    Insert a low-stock notification for `product` if deducting `quantity` crosses
    its threshold. Returns the notification row, or None.

    `stock_before` defaults to the product row's stock; pass it when earlier lines of
    the same order already consumed some of it.
    """
    if stock_before is None:
        stock_before = int(product.get("stock") or 0)
    threshold = int(product.get("low_stock_threshold") or 0)
    if not low_stock_crossed(stock_before, threshold, quantity):
        return None
    cur.execute(
        """
        INSERT INTO notifications (id, shop_id, message, is_read)
        VALUES (gen_random_uuid(), %s, %s, false)
        RETURNING id, shop_id, message, is_read, created_at
        """,
        (shop_id, low_stock_message(product["name"], int(stock_before) - int(quantity))),
    )
    return cur.fetchone()


def mark_all_read(cur, shop_id: str) -> int:
    cur.execute(
        """
        UPDATE notifications
        SET is_read = true
        WHERE shop_id = %s AND is_read = false
        """,
        (shop_id,),
    )
    return cur.rowcount or 0
