"""
Order creation: stock check, order + stock writes, invoice render/upload and the
invoice record, committed as one database transaction.

The object store has no rollback, so the upload is the last external step before
the invoice insert and the commit. If anything after the upload fails, the
uploaded object is deleted again (best-effort).
"""
from decimal import Decimal
from typing import List, Optional
import os
import tempfile
import uuid

from .config import settings
from .db import get_conn, set_shop_context, set_transaction_timeouts
from .errors import NotFoundError, PosError, UploadError, RenderError, ValidationError
from .inventory_ledger import assert_available, decrement_stock, lock_products
from .invoice_pdf import invoice_object_key, write_invoice_pdf
from .logs import json_log
from .notifications import maybe_emit
from .storage import s3
from .validation import normalize_customer_name, parse_quantity, parse_uuid

INVOICE_CONTENT_TYPE = "application/pdf"


def parse_order_items(items) -> List[dict]:
    if not items or not isinstance(items, (list, tuple)):
        raise ValidationError("Order must contain items.")
    out = []
    for idx, it in enumerate(items):
        if not isinstance(it, dict):
            raise ValidationError(f"items[{idx}] must be an object")
        pid = it.get("product_id", it.get("productId"))
        out.append(
            {
                "product_id": parse_uuid(pid, f"items[{idx}].product_id"),
                "quantity": parse_quantity(it.get("quantity"), f"items[{idx}].quantity"),
            }
        )
    return out


def price_order_lines(products: dict, items: List[dict]):
    """
    Validate requested quantities against locked stock and snapshot prices/costs.

    Returns (lines, total_revenue, total_cost). Repeated products are checked against
    what earlier lines of the same order already took.
    """
    remaining = {pid: int(p["stock"]) for pid, p in products.items()}
    lines = []
    revenue = Decimal("0")
    cost = Decimal("0")
    for it in items:
        pid = it["product_id"]
        qty = it["quantity"]
        product = products.get(pid)
        if not product:
            raise NotFoundError(f"Product with ID {pid} not found or doesn't belong to this shop.")
        assert_available(product, remaining[pid], qty)
        remaining[pid] -= qty
        price = Decimal(str(product["price"]))
        unit_cost = Decimal(str(product["cost"]))
        revenue += price * qty
        cost += unit_cost * qty
        lines.append(
            {
                "product_id": pid,
                "name": product["name"],
                "quantity": qty,
                "price": price,
                "cost": unit_cost,
            }
        )
    return lines, revenue, cost


def _insert_order(cur, *, shop_id: str, customer_name: str, biller_name: str, lines: List[dict], total: Decimal, total_profit: Decimal) -> dict:
    order_id = str(uuid.uuid4())
    cur.execute(
        """
        INSERT INTO orders (id, shop_id, customer_name, biller_name, total, total_profit)
        VALUES (%s::uuid, %s, %s, %s, %s, %s)
        RETURNING id, shop_id, customer_name, biller_name, total, total_profit, created_at
        """,
        (order_id, shop_id, customer_name, biller_name, total, total_profit),
    )
    order = dict(cur.fetchone())
    for line_no, l in enumerate(lines, start=1):
        cur.execute(
            """
            INSERT INTO order_items (id, order_id, line_no, product_id, name, quantity, price, cost)
            VALUES (gen_random_uuid(), %s, %s, %s, %s, %s, %s, %s)
            """,
            (order_id, line_no, l["product_id"], l["name"], l["quantity"], l["price"], l["cost"]),
        )
    order["items"] = [dict(l) for l in lines]
    return order


def _apply_stock(cur, shop_id: str, products: dict, lines: List[dict]) -> List[dict]:
    notifications = []
    for l in lines:
        product = products[l["product_id"]]
        stock_before = int(product["stock"])
        note = maybe_emit(cur, shop_id, product, l["quantity"], stock_before=stock_before)
        if note:
            notifications.append(note)
        # Track the running level so a later line of the same product sees this decrement.
        product["stock"] = decrement_stock(cur, shop_id, product, l["quantity"])
    return notifications


def _load_shop(cur, shop_id: str) -> dict:
    cur.execute(
        """
        SELECT id, shop_name, address
        FROM shops
        WHERE id = %s
        """,
        (shop_id,),
    )
    shop = cur.fetchone()
    if not shop:
        raise NotFoundError("Shop details not found.")
    return shop


def _render_to_tmp(order: dict, shop: dict, state: dict) -> bytes:
    try:
        fd, path = tempfile.mkstemp(
            prefix=f"invoice-{order['id']}-",
            suffix=".pdf",
            dir=settings.invoice_tmp_dir,
        )
        os.close(fd)
    except OSError as ex:
        raise RenderError(f"failed to create invoice file: {ex.strerror or ex}") from ex
    state["tmp_path"] = path
    write_invoice_pdf(order, shop, path, currency_prefix=settings.invoice_currency_prefix)
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as ex:
        raise RenderError(f"failed to read invoice file: {ex.strerror or ex}") from ex


def _upload_invoice(shop_id: str, order_id: str, data: bytes, state: dict) -> tuple:
    if not data:
        raise UploadError("Generated invoice document is empty.")
    key = invoice_object_key(shop_id, order_id)
    # Recorded before the call: the store may keep the object and still fail to answer.
    state["object_key"] = key
    try:
        url = s3.put_bytes(key=key, data=data, content_type=INVOICE_CONTENT_TYPE)
    except Exception as ex:
        json_log("error", "orders.upload.error", shop_id=shop_id, order_id=order_id, key=key, error=str(ex))
        raise UploadError("Invoice upload failed.") from ex
    if not url:
        raise UploadError("Invoice upload failed, no address returned.")
    return key, url


def _insert_invoice(cur, *, shop_id: str, order: dict, pdf_url: str, object_key: str) -> dict:
    cur.execute(
        """
        INSERT INTO invoices (id, shop_id, order_id, customer_name, biller_name, total, pdf_url, object_key)
        VALUES (gen_random_uuid(), %s, %s, %s, %s, %s, %s, %s)
        RETURNING id, shop_id, order_id, customer_name, biller_name, total, pdf_url, created_at
        """,
        (shop_id, order["id"], order["customer_name"], order["biller_name"], order["total"], pdf_url, object_key),
    )
    return cur.fetchone()


def _discard_tmp(path: Optional[str], order_id: Optional[str]):
    if not path:
        return
    try:
        if os.path.exists(path):
            os.remove(path)
    except OSError as ex:
        json_log("warning", "orders.cleanup.failed", order_id=order_id, path=path, error=str(ex))


def _discard_uploaded(key: Optional[str], order_id: Optional[str]):
    if not key:
        return
    try:
        s3.delete_object(key=key)
        json_log("info", "orders.upload.compensated", order_id=order_id, key=key)
    except Exception as ex:
        json_log("error", "orders.upload.compensation_failed", order_id=order_id, key=key, error=str(ex))


def create_order(*, shop_id: str, biller_name: str, customer_name: Optional[str], items) -> dict:
    """
    Create an order with its invoice for `shop_id`.

    `shop_id` must come from the authenticated caller. Items are
    `{"product_id", "quantity"}` dicts. Returns
    `{"order", "invoice", "notifications"}` once everything is committed; raises a
    PosError subclass (nothing written) otherwise.
    """
    parsed = parse_order_items(items)
    customer = normalize_customer_name(customer_name)
    biller = (biller_name or "").strip() or "Unknown"
    state = {"tmp_path": None, "object_key": None, "order_id": None}

    try:
        with get_conn() as conn:
            set_shop_context(conn, shop_id)
            with conn.transaction():
                with conn.cursor() as cur:
                    set_transaction_timeouts(
                        cur,
                        lock_timeout_ms=settings.db_lock_timeout_ms,
                        statement_timeout_ms=settings.db_statement_timeout_ms,
                    )
                    products = lock_products(cur, shop_id, [i["product_id"] for i in parsed])
                    lines, revenue, cost = price_order_lines(products, parsed)

                    order = _insert_order(
                        cur,
                        shop_id=shop_id,
                        customer_name=customer,
                        biller_name=biller,
                        lines=lines,
                        total=revenue,
                        total_profit=revenue - cost,
                    )
                    state["order_id"] = str(order["id"])
                    notifications = _apply_stock(cur, shop_id, products, lines)

                    shop = _load_shop(cur, shop_id)
                    data = _render_to_tmp(order, shop, state)
                    key, url = _upload_invoice(shop_id, str(order["id"]), data, state)
                    invoice = _insert_invoice(cur, shop_id=shop_id, order=order, pdf_url=url, object_key=key)
    except Exception as ex:
        _discard_uploaded(state["object_key"], state["order_id"])
        json_log(
            "warning" if isinstance(ex, PosError) else "error",
            "orders.create.failed",
            shop_id=shop_id,
            order_id=state["order_id"],
            error_type=type(ex).__name__,
            error=str(getattr(ex, "detail", ex)),
        )
        raise
    finally:
        _discard_tmp(state["tmp_path"], state["order_id"])

    json_log(
        "info",
        "orders.created",
        shop_id=shop_id,
        order_id=state["order_id"],
        invoice_id=str(invoice["id"]),
        items=len(lines),
        total=order["total"],
        notifications=len(notifications),
    )
    return {"order": order, "invoice": invoice, "notifications": notifications}
