from __future__ import annotations

import uuid
from typing import Annotated, Optional

from pydantic import BeforeValidator, StringConstraints

from .errors import ValidationError

DEFAULT_CUSTOMER_NAME = "Walk-in Customer"


def _blank_to_none(v):
    if v is None:
        return None
    s = str(v).strip()
    return s or None


def normalize_customer_name(raw: Optional[str]) -> str:
    return _blank_to_none(raw) or DEFAULT_CUSTOMER_NAME


def parse_uuid(value, field_name: str) -> str:
    raw = str(value or "").strip()
    if not raw:
        raise ValidationError(f"{field_name} is required")
    try:
        return str(uuid.UUID(raw))
    except (ValueError, AttributeError, TypeError):
        raise ValidationError(f"{field_name} must be a valid UUID")


def parse_quantity(value, field_name: str) -> int:
    # bool is an int subclass; `true` is not a quantity.
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field_name} must be a whole number")
    if value <= 0:
        raise ValidationError(f"{field_name} must be greater than 0")
    return int(value)


# Blank names collapse to None so the order falls back to the walk-in placeholder.
CustomerName = Annotated[
    Optional[Annotated[str, StringConstraints(max_length=200)]],
    BeforeValidator(_blank_to_none),
]
