from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Optional

from .errors import ProductValidationError


_CENTS = Decimal("0.01")


def _norm_s(s: Any) -> Optional[str]:
    return str(s).strip() if isinstance(s, str) and s.strip() else None


def _decimal_str(value: Any, field_name: str, *, allow_negative: bool = False) -> str:
    """Return a two-decimal string ("1500.00") for numbers or numeric strings."""
    if isinstance(value, bool) or value is None:
        raise ProductValidationError(f"{field_name} must be a number")
    text = str(value).strip().replace(",", ".")
    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise ProductValidationError(f"{field_name} must be a number, got {value!r}")
    if not amount.is_finite():
        raise ProductValidationError(f"{field_name} must be finite")
    if amount < 0 and not allow_negative:
        raise ProductValidationError(f"{field_name} must not be negative")
    return str(amount.quantize(_CENTS, rounding=ROUND_HALF_UP))


def _timestamp_or_none(value: Any, field_name: str) -> Optional[str]:
    """Normalize ISO dates/datetimes to SQLite's "YYYY-MM-DD HH:MM:SS"."""
    raw = _norm_s(value)
    if raw is None:
        return None
    try:
        dt = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        raise ProductValidationError(f"{field_name} must be an ISO date or datetime")
    return dt.replace(tzinfo=None).isoformat(sep=" ", timespec="seconds")


def _bool_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y", "t"}
    return False


def parse_product_payload(payload: Any, *, partial: bool = False) -> Dict[str, Any]:
    """Validate a product create/update payload into DB-ready column values.

    - barcode and name are required unless ``partial`` (updates).
    - price and stock_quantity become two-decimal strings.
    - Unknown keys are ignored.
    """
    if not isinstance(payload, dict):
        raise ProductValidationError("Payload must be a JSON object")

    out: Dict[str, Any] = {}

    for key in ("barcode", "name"):
        if key in payload or not partial:
            value = _norm_s(payload.get(key))
            if not value:
                raise ProductValidationError(f"{key} required")
            out[key] = value

    if "price" in payload or not partial:
        out["price"] = _decimal_str(payload.get("price", 0), "price")
    if "stock_quantity" in payload or not partial:
        out["stock_quantity"] = _decimal_str(
            payload.get("stock_quantity", 0), "stock_quantity", allow_negative=True
        )

    for key in ("category", "article_id", "image_url"):
        if key in payload:
            out[key] = _norm_s(payload.get(key))
        elif not partial:
            out[key] = None

    if "is_active" in payload:
        out["is_active"] = 1 if _bool_flag(payload["is_active"]) else 0
    elif not partial:
        out["is_active"] = 1

    if not partial:
        product_id = payload.get("product_id")
        if product_id is not None:
            try:
                out["product_id"] = int(product_id)
            except (TypeError, ValueError):
                raise ProductValidationError(f"invalid product_id: {product_id!r}")
        for key in ("created_at", "updated_at"):
            ts = _timestamp_or_none(payload.get(key), key)
            if ts is not None:
                out[key] = ts

    if partial and not out:
        raise ProductValidationError("No updatable fields supplied")
    return out


def parse_purchase_price_payload(payload: Any) -> Dict[str, Any]:
    """Validate a purchase price record: price, quantity, optional ordered_at."""
    if not isinstance(payload, dict):
        raise ProductValidationError("Payload must be a JSON object")
    if payload.get("price") is None:
        raise ProductValidationError("price required")
    out: Dict[str, Any] = {
        "price": _decimal_str(payload.get("price"), "price"),
        "quantity": _decimal_str(payload.get("quantity", 1), "quantity"),
    }
    ordered_at = _timestamp_or_none(payload.get("ordered_at"), "ordered_at")
    if ordered_at is not None:
        out["ordered_at"] = ordered_at
    return out


__all__ = ["parse_product_payload", "parse_purchase_price_payload", "ProductValidationError"]
