from __future__ import annotations

import re
import uuid
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable

from .errors import ValidationError
from .time_utils import parse_iso_date


# NUMERIC(12, 2) upper bound; keeps totals inside the column and rejects nonsense amounts
MAX_AMOUNT = Decimal("9999999999.99")
CENT = Decimal("0.01")

# INTEGER column width for line and stock quantities
MAX_QUANTITY = 2**31 - 1

# Longest accepted payment method tag (column width)
MAX_METHOD_LENGTH = 32


def quantize_money(value: Decimal) -> Decimal:
    """Round to whole cents (half-up)."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def parse_uuid(value: Any, field: str) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    if isinstance(value, str):
        try:
            return uuid.UUID(value.strip())
        except ValueError:
            raise ValidationError(f"{field} must be a UUID")
    raise ValidationError(f"{field} must be a UUID")


def parse_date(value: Any, field: str = "date") -> date:
    """Accepts a date or a YYYY-MM-DD string. Datetimes are rejected."""
    if isinstance(value, datetime):
        raise ValidationError(f"{field} must be a calendar date, not a datetime")
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            parsed = parse_iso_date(value)
        except ValueError:
            raise ValidationError(f"{field} must be a YYYY-MM-DD date")
        if parsed is None:
            raise ValidationError(f"{field} is required")
        return parsed
    raise ValidationError(f"{field} must be a YYYY-MM-DD date")


def parse_quantity(value: Any, field: str = "quantity") -> int:
    """Strict positive integer: rejects bools, floats, decimals and scientific notation."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        qty = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not re.fullmatch(r"-?\d+", stripped):
            raise ValidationError(f"{field} must be a plain integer")
        qty = int(stripped)
    else:
        raise ValidationError(f"{field} must be an integer")

    if qty <= 0:
        raise ValidationError(f"{field} must be positive", details={"field": field, "value": qty})
    if qty > MAX_QUANTITY:
        raise ValidationError(f"{field} exceeds maximum of {MAX_QUANTITY}", details={"field": field, "value": qty})
    return qty


def parse_amount(value: Any, field: str = "amount", *, allow_zero: bool = False) -> Decimal:
    """
    Money input -> Decimal quantized to cents.

    Floats go through str() so 0.1 becomes Decimal("0.1"), not its binary expansion.
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    elif isinstance(value, str):
        try:
            amount = Decimal(value.strip())
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")

    if not amount.is_finite():
        raise ValidationError(f"{field} must be finite")

    amount = quantize_money(amount)
    if amount < 0 or (amount == 0 and not allow_zero):
        raise ValidationError(f"{field} must be positive", details={"field": field, "value": str(amount)})
    if amount > MAX_AMOUNT:
        raise ValidationError(f"{field} exceeds maximum of {MAX_AMOUNT}")
    return amount


def parse_rate(value: Any, field: str = "commission") -> Decimal:
    """Non-negative decimal rate (commission); None means 0."""
    if value is None:
        return Decimal("0")
    return parse_amount(value, field, allow_zero=True)


def require_text(value: Any, field: str, *, max_length: int = 255) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required")
    text = str(value).strip()
    if len(text) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return text


def optional_text(value: Any, field: str, *, max_length: int = 255) -> str | None:
    if value is None or not str(value).strip():
        return None
    return require_text(value, field, max_length=max_length)


def normalize_method(value: Any) -> str:
    """Payment method tag: short lowercase token such as 'cash', 'card', 'online'."""
    tag = require_text(value, "method", max_length=MAX_METHOD_LENGTH).lower()
    if not tag.replace("_", "").replace("-", "").isalnum():
        raise ValidationError("method must be a short alphanumeric tag")
    return tag


def normalize_line_items(line_items: Iterable[Any]) -> list[tuple[uuid.UUID, int]]:
    """
    Validate a batch of (product_id, quantity) pairs.

    Accepts tuples/lists of two elements or mappings with product_id/quantity
    keys. Order is preserved; duplicate products are kept as separate lines.
    """
    if line_items is None or isinstance(line_items, (str, bytes)):
        raise ValidationError("line_items must be a list")

    normalized: list[tuple[uuid.UUID, int]] = []
    for index, item in enumerate(line_items):
        if isinstance(item, dict):
            product_id = item.get("product_id")
            quantity = item.get("quantity")
        elif isinstance(item, (tuple, list)) and len(item) == 2:
            product_id, quantity = item
        else:
            raise ValidationError(
                f"line_items[{index}] must be a (product_id, quantity) pair",
                details={"index": index},
            )
        normalized.append((
            parse_uuid(product_id, f"line_items[{index}].product_id"),
            parse_quantity(quantity, f"line_items[{index}].quantity"),
        ))

    if not normalized:
        raise ValidationError("line_items must contain at least one item")
    return normalized
