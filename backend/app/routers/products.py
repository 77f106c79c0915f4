from decimal import Decimal
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from typing import Optional

from ..db import get_conn, set_shop_context
from ..deps import require_owner, require_shop_access
from ..errors import NotFoundError, ValidationError
from ..security import Caller
from ..validation import parse_uuid

router = APIRouter(prefix="/shops/{shop_id}/products", tags=["products"])

_PRODUCT_COLUMNS = "id, shop_id, name, price, cost, stock, low_stock_threshold, created_at, updated_at"


class ProductIn(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    price: Decimal = Field(ge=0)
    cost: Decimal = Field(ge=0)
    stock: int = Field(default=0, ge=0)
    low_stock_threshold: int = Field(default=0, ge=0)


class ProductUpdateIn(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    price: Optional[Decimal] = Field(default=None, ge=0)
    cost: Optional[Decimal] = Field(default=None, ge=0)
    stock: Optional[int] = Field(default=None, ge=0)
    low_stock_threshold: Optional[int] = Field(default=None, ge=0)


@router.get("")
def list_products(caller: Caller = Depends(require_shop_access)):
    with get_conn() as conn:
        set_shop_context(conn, caller.shop_id)
        with conn.cursor() as cur:
            cur.execute(
                f"""
                SELECT {_PRODUCT_COLUMNS}
                FROM products
                WHERE shop_id = %s
                ORDER BY name
                """,
                (caller.shop_id,),
            )
            return {"products": cur.fetchall()}


@router.post("", status_code=201)
def create_product(data: ProductIn, caller: Caller = Depends(require_owner)):
    name = data.name.strip()
    if not name:
        raise ValidationError("name is required")
    with get_conn() as conn:
        set_shop_context(conn, caller.shop_id)
        with conn.cursor() as cur:
            cur.execute(
                f"""
                INSERT INTO products (id, shop_id, name, price, cost, stock, low_stock_threshold)
                VALUES (gen_random_uuid(), %s, %s, %s, %s, %s, %s)
                RETURNING {_PRODUCT_COLUMNS}
                """,
                (caller.shop_id, name, data.price, data.cost, data.stock, data.low_stock_threshold),
            )
            return {"product": cur.fetchone()}


@router.patch("/{product_id}")
def update_product(product_id: str, data: ProductUpdateIn, caller: Caller = Depends(require_owner)):
    product_id = parse_uuid(product_id, "product_id")
    patch = data.model_dump(exclude_none=True)
    if "name" in patch:
        patch["name"] = patch["name"].strip()
        if not patch["name"]:
            raise ValidationError("name is required")
    if not patch:
        raise ValidationError("no fields to update")
    # Column names come from the model fields above, never from the client.
    sets = ", ".join([f"{k} = %s" for k in patch.keys()])
    params = list(patch.values()) + [caller.shop_id, product_id]
    with get_conn() as conn:
        set_shop_context(conn, caller.shop_id)
        with conn.cursor() as cur:
            cur.execute(
                f"""
                UPDATE products
                SET {sets}, updated_at = now()
                WHERE shop_id = %s AND id = %s
                RETURNING {_PRODUCT_COLUMNS}
                """,
                params,
            )
            row = cur.fetchone()
            if not row:
                raise NotFoundError(f"Product with ID {product_id} not found.")
            return {"product": row}
