from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse

from ..db import get_conn, set_shop_context
from ..deps import require_shop_access
from ..errors import NotFoundError
from ..security import Caller
from ..validation import parse_uuid

router = APIRouter(prefix="/shops/{shop_id}/invoices", tags=["invoices"])

MAX_LIST_LIMIT = 500


def _fetch_invoice(shop_id: str, invoice_id: str) -> dict:
    invoice_id = parse_uuid(invoice_id, "invoice_id")
    with get_conn() as conn:
        set_shop_context(conn, shop_id)
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT id, shop_id, order_id, customer_name, biller_name, total, pdf_url, created_at
                FROM invoices
                WHERE shop_id = %s AND id = %s
                """,
                (shop_id, invoice_id),
            )
            row = cur.fetchone()
    if not row:
        raise NotFoundError("Invoice not found.")
    return row


@router.get("")
def list_invoices(limit: int = 100, caller: Caller = Depends(require_shop_access)):
    limit = max(1, min(int(limit or 100), MAX_LIST_LIMIT))
    with get_conn() as conn:
        set_shop_context(conn, caller.shop_id)
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT id, shop_id, order_id, customer_name, biller_name, total, pdf_url, created_at
                FROM invoices
                WHERE shop_id = %s
                ORDER BY created_at DESC
                LIMIT %s
                """,
                (caller.shop_id, limit),
            )
            return {"invoices": cur.fetchall()}


@router.get("/{invoice_id}")
def get_invoice(invoice_id: str, caller: Caller = Depends(require_shop_access)):
    return {"invoice": _fetch_invoice(caller.shop_id, invoice_id)}


@router.get("/{invoice_id}/pdf")
def get_invoice_pdf(invoice_id: str, caller: Caller = Depends(require_shop_access)):
    # Documents live in object storage; send the client there instead of proxying bytes.
    inv = _fetch_invoice(caller.shop_id, invoice_id)
    if not inv.get("pdf_url"):
        raise NotFoundError("Invoice document not found.")
    return RedirectResponse(url=inv["pdf_url"], status_code=307)
