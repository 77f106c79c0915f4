from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from io import BytesIO
from typing import Optional

from reportlab.lib.pagesizes import LETTER
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from .errors import RenderError

MONEY_Q = Decimal("0.01")
PAGE_WIDTH, PAGE_HEIGHT = LETTER
MARGIN = 50
ROW_HEIGHT = 20
# Column layout: left edge of "Item", then right edges of the numeric columns.
COL_ITEM_X = 50
COL_ITEM_MAX_WIDTH = 190
COL_QTY_RIGHT = 350
COL_PRICE_RIGHT = 450
COL_TOTAL_RIGHT = 550
FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"


def q_money(v) -> Decimal:
    return Decimal(str(v if v is not None else 0)).quantize(MONEY_Q, rounding=ROUND_HALF_UP)


def format_currency(amount, prefix: str = "Rs.") -> str:
    return f"{prefix} {q_money(amount)}"


def format_invoice_date(value) -> str:
    if isinstance(value, datetime):
        return value.strftime("%d/%m/%Y, %H:%M:%S")
    return str(value or "")


def _fit(text: str, width: float, font: str, size: float) -> str:
    text = str(text or "")
    if stringWidth(text, font, size) <= width:
        return text
    while text and stringWidth(text + "...", font, size) > width:
        text = text[:-1]
    return text + "..."


def _draw_table_header(c: canvas.Canvas, y: float) -> float:
    c.setFont(FONT_BOLD, 10)
    c.drawString(COL_ITEM_X, y, "Item")
    c.drawRightString(COL_QTY_RIGHT, y, "Quantity")
    c.drawRightString(COL_PRICE_RIGHT, y, "Unit Price")
    c.drawRightString(COL_TOTAL_RIGHT, y, "Total")
    c.line(MARGIN, y - 6, PAGE_WIDTH - MARGIN - 12, y - 6)
    return y - ROW_HEIGHT - 4


def _draw(c: canvas.Canvas, order: dict, shop: dict, prefix: str) -> None:
    y = PAGE_HEIGHT - MARGIN - 20

    c.setFont(FONT_BOLD, 20)
    c.drawCentredString(PAGE_WIDTH / 2, y, str(shop.get("shop_name") or ""))
    y -= 16
    c.setFont(FONT, 10)
    c.drawCentredString(PAGE_WIDTH / 2, y, str(shop.get("address") or ""))
    y -= 40

    c.setFont(FONT_BOLD, 16)
    c.drawString(MARGIN, y, "INVOICE")
    y -= 22

    c.setFont(FONT, 11)
    c.drawString(MARGIN, y, f"Invoice #: {order['id']}")
    c.drawRightString(COL_TOTAL_RIGHT, y, f"Date: {format_invoice_date(order.get('created_at'))}")
    y -= 15
    c.drawString(MARGIN, y, f"Customer: {order.get('customer_name') or ''}")
    c.drawRightString(COL_TOTAL_RIGHT, y, f"Billed by: {order.get('biller_name') or ''}")
    y -= 40

    y = _draw_table_header(c, y)
    c.setFont(FONT, 10)
    for item in order.get("items") or []:
        # Leave room for the closing rule and the grand total on the last page.
        if y < MARGIN + ROW_HEIGHT:
            c.showPage()
            y = _draw_table_header(c, PAGE_HEIGHT - MARGIN)
            c.setFont(FONT, 10)
        qty = int(item["quantity"])
        price = Decimal(str(item["price"]))
        c.drawString(COL_ITEM_X, y, _fit(item.get("name"), COL_ITEM_MAX_WIDTH, FONT, 10))
        c.drawRightString(COL_QTY_RIGHT, y, str(qty))
        c.drawRightString(COL_PRICE_RIGHT, y, format_currency(price, prefix))
        c.drawRightString(COL_TOTAL_RIGHT, y, format_currency(price * qty, prefix))
        y -= ROW_HEIGHT

    if y < MARGIN + 30:
        c.showPage()
        y = PAGE_HEIGHT - MARGIN
    c.line(MARGIN, y + 12, PAGE_WIDTH - MARGIN - 12, y + 12)
    c.setFont(FONT_BOLD, 14)
    c.drawRightString(COL_TOTAL_RIGHT, y - 10, f"Grand Total: {format_currency(order.get('total'), prefix)}")


def render_invoice_pdf(order: dict, shop: dict, *, currency_prefix: str = "Rs.") -> bytes:
    """
    Render the invoice for a committed order as PDF bytes.

    `order` is the dict returned by the order service (id, customer_name,
    biller_name, created_at, total, items[name/quantity/price]); `shop` needs
    shop_name and address. Neither is modified.
    """
    buf = BytesIO()
    try:
        c = canvas.Canvas(buf, pagesize=LETTER)
        c.setTitle(f"Invoice {order['id']}")
        c.setAuthor(str(shop.get("shop_name") or ""))
        _draw(c, order, shop, currency_prefix)
        c.showPage()
        c.save()
    except RenderError:
        raise
    except Exception as ex:
        raise RenderError(f"failed to render invoice: {ex}") from ex
    return buf.getvalue()


def write_invoice_pdf(order: dict, shop: dict, path: str, *, currency_prefix: str = "Rs.") -> int:
    data = render_invoice_pdf(order, shop, currency_prefix=currency_prefix)
    try:
        with open(path, "wb") as f:
            f.write(data)
    except OSError as ex:
        raise RenderError(f"failed to write invoice file: {ex.strerror or ex}") from ex
    return len(data)


def invoice_filename(order_id: str) -> str:
    return f"invoice-{order_id}.pdf"


def invoice_object_key(shop_id: str, order_id: str, prefix: Optional[str] = "invoices") -> str:
    # One key per order: a retried upload overwrites instead of creating a second document.
    return f"{prefix}/{shop_id}/{invoice_filename(order_id)}"
