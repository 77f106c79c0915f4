import copy
import re
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from backend.app.errors import RenderError
from backend.app.invoice_pdf import (
    _fit,
    format_currency,
    format_invoice_date,
    invoice_object_key,
    render_invoice_pdf,
    write_invoice_pdf,
)

SHOP = {"id": "s-1", "shop_name": "Corner Store", "address": "12 Market Road"}


def _order(n_items=2):
    return {
        "id": "5a1d2c9e-0000-4000-8000-000000000001",
        "customer_name": "Ravi",
        "biller_name": "Asha",
        "created_at": datetime(2026, 3, 4, 17, 5, 9, tzinfo=timezone.utc),
        "total": Decimal("12.00") * n_items,
        "items": [
            {"product_id": f"p-{i}", "name": f"Item {i}", "quantity": 2, "price": Decimal("6.00"), "cost": Decimal("4.00")}
            for i in range(n_items)
        ],
    }


def _page_count(data: bytes) -> int:
    return len(re.findall(rb"/Type /Page\b", data))


def test_format_currency_uses_prefix_and_two_decimals():
    assert format_currency(Decimal("12.5")) == "Rs. 12.50"
    assert format_currency(Decimal("0.005")) == "Rs. 0.01"
    assert format_currency(None) == "Rs. 0.00"
    assert format_currency(7, prefix="$") == "$ 7.00"


def test_format_invoice_date():
    assert format_invoice_date(datetime(2026, 3, 4, 17, 5, 9)) == "04/03/2026, 17:05:09"
    assert format_invoice_date(None) == ""


def test_render_returns_pdf_bytes_and_leaves_inputs_untouched():
    order = _order()
    shop = dict(SHOP)
    order_before = copy.deepcopy(order)
    shop_before = copy.deepcopy(shop)

    data = render_invoice_pdf(order, shop)

    assert data.startswith(b"%PDF")
    assert _page_count(data) == 1
    assert order == order_before
    assert shop == shop_before


def test_long_orders_paginate():
    data = render_invoice_pdf(_order(n_items=80), SHOP)
    assert _page_count(data) >= 3


def test_render_wraps_unexpected_failures():
    order = _order()
    order["items"][0]["quantity"] = "two"
    with pytest.raises(RenderError) as exc_info:
        render_invoice_pdf(order, SHOP)
    assert exc_info.value.status_code == 400


def test_write_invoice_pdf_to_unwritable_target(tmp_path):
    target = tmp_path / "missing-dir" / "invoice.pdf"
    with pytest.raises(RenderError) as exc_info:
        write_invoice_pdf(_order(), SHOP, str(target))
    assert "failed to write invoice file" in exc_info.value.detail


def test_write_invoice_pdf_writes_file(tmp_path):
    target = tmp_path / "invoice.pdf"
    size = write_invoice_pdf(_order(), SHOP, str(target))
    assert size == target.stat().st_size > 0


def test_fit_truncates_long_names():
    assert _fit("Tea", 190, "Helvetica", 10) == "Tea"
    out = _fit("Extra long product name " * 10, 190, "Helvetica", 10)
    assert out.endswith("...")
    assert len(out) < 240


def test_invoice_object_key_is_per_order():
    assert invoice_object_key("shop-1", "order-9") == "invoices/shop-1/invoice-order-9.pdf"
