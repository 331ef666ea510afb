"""
Typed order commands parsed from request bodies.

Routes turn raw JSON into these frozen dataclasses before calling services,
so services never see unvalidated input. Every field problem in a body is
collected and raised together as one ValidationError.

Item field errors are reported as "items[<index>].<field>".
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from .models import PURCHASE_STATUSES
from .money import ZERO
from .validation import FieldErrors, coerce_datetime, coerce_int, coerce_money


MAX_TEXT = 2000


@dataclass(frozen=True)
class SaleItemCommand:
    product_id: int
    quantity: int
    # None means "use the product's current price"
    unit_price: Decimal | None = None


@dataclass(frozen=True)
class SaleCommand:
    items: tuple[SaleItemCommand, ...]
    customer_id: int | None = None
    tax: Decimal = ZERO
    discount: Decimal = ZERO
    payment_method: str = "cash"
    notes: str | None = None


@dataclass(frozen=True)
class PurchaseItemCommand:
    product_id: int
    quantity: int
    unit_cost: Decimal


@dataclass(frozen=True)
class PurchaseCommand:
    supplier_id: int
    items: tuple[PurchaseItemCommand, ...]
    tax: Decimal = ZERO
    freight: Decimal = ZERO
    discount: Decimal = ZERO
    expected_date: datetime | None = None
    notes: str | None = None


@dataclass(frozen=True)
class PurchaseStatusCommand:
    status: str
    received_date: datetime | None = None


@dataclass(frozen=True)
class ReturnItemCommand:
    product_id: int
    quantity: int


@dataclass(frozen=True)
class ReturnCommand:
    sale_id: int
    items: tuple[ReturnItemCommand, ...]
    refund_method: str = "cash"
    reason: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class ForecastQuery:
    forecast_days: int = 30
    lookback_days: int | None = None
    method: str = "moving_average"
    category: str = "all"


def _require_object(payload: Any) -> dict:
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        errors = FieldErrors()
        errors.add("body", "Request body must be a JSON object")
        errors.raise_if_any("Invalid JSON payload")
    return payload


def _int(errors: FieldErrors, field: str, value: Any, *, minimum: int | None = None) -> int | None:
    try:
        number = coerce_int(field, value)
    except ValueError as e:
        errors.add(field, str(e))
        return None
    if minimum is not None and number < minimum:
        errors.add(field, f"{field} must be >= {minimum}")
        return None
    return number


def _positive_id(errors: FieldErrors, field: str, value: Any) -> int | None:
    if value is None:
        errors.add(field, f"{field} is required")
        return None
    return _int(errors, field, value, minimum=1)


def _money(errors: FieldErrors, field: str, value: Any, default: Decimal | None = ZERO) -> Decimal | None:
    if value is None:
        return default
    try:
        return coerce_money(field, value)
    except ValueError as e:
        errors.add(field, str(e))
        return default


def _text(errors: FieldErrors, field: str, value: Any, max_length: int = MAX_TEXT) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        errors.add(field, f"{field} must be a string")
        return None
    value = value.strip()
    if len(value) > max_length:
        errors.add(field, f"{field} exceeds max length {max_length}")
        return None
    return value or None


def _datetime(errors: FieldErrors, field: str, value: Any) -> datetime | None:
    if value is None:
        return None
    try:
        return coerce_datetime(field, value)
    except ValueError as e:
        errors.add(field, str(e))
        return None


def _items(errors: FieldErrors, payload: dict) -> list[tuple[str, dict]]:
    raw_items = payload.get("items")
    if not isinstance(raw_items, list) or not raw_items:
        errors.add("items", "items must be a non-empty list")
        return []
    out = []
    for index, raw in enumerate(raw_items):
        prefix = f"items[{index}]"
        if not isinstance(raw, dict):
            errors.add(prefix, f"{prefix} must be an object")
            continue
        out.append((prefix, raw))
    return out


def parse_sale(payload: Any) -> SaleCommand:
    payload = _require_object(payload)
    errors = FieldErrors()

    items = []
    for prefix, raw in _items(errors, payload):
        product_id = _positive_id(errors, f"{prefix}.product_id", raw.get("product_id"))
        quantity = _positive_id(errors, f"{prefix}.quantity", raw.get("quantity"))
        unit_price = _money(errors, f"{prefix}.unit_price", raw.get("unit_price"), default=None)
        items.append(SaleItemCommand(product_id, quantity, unit_price))

    customer_id = None
    if payload.get("customer_id") is not None:
        customer_id = _int(errors, "customer_id", payload["customer_id"], minimum=1)

    tax = _money(errors, "tax", payload.get("tax"))
    discount = _money(errors, "discount", payload.get("discount"))
    payment_method = _text(errors, "payment_method", payload.get("payment_method"), 32) or "cash"
    notes = _text(errors, "notes", payload.get("notes"))

    errors.raise_if_any()
    return SaleCommand(
        items=tuple(items),
        customer_id=customer_id,
        tax=tax,
        discount=discount,
        payment_method=payment_method,
        notes=notes,
    )


def parse_purchase(payload: Any) -> PurchaseCommand:
    payload = _require_object(payload)
    errors = FieldErrors()

    supplier_id = _positive_id(errors, "supplier_id", payload.get("supplier_id"))

    items = []
    for prefix, raw in _items(errors, payload):
        product_id = _positive_id(errors, f"{prefix}.product_id", raw.get("product_id"))
        quantity = _positive_id(errors, f"{prefix}.quantity", raw.get("quantity"))
        if raw.get("unit_cost") is None:
            errors.add(f"{prefix}.unit_cost", f"{prefix}.unit_cost is required")
            unit_cost = None
        else:
            unit_cost = _money(errors, f"{prefix}.unit_cost", raw.get("unit_cost"))
        items.append(PurchaseItemCommand(product_id, quantity, unit_cost))

    tax = _money(errors, "tax", payload.get("tax"))
    freight = _money(errors, "freight", payload.get("freight"))
    discount = _money(errors, "discount", payload.get("discount"))
    expected_date = _datetime(errors, "expected_date", payload.get("expected_date"))
    notes = _text(errors, "notes", payload.get("notes"))

    errors.raise_if_any()
    return PurchaseCommand(
        supplier_id=supplier_id,
        items=tuple(items),
        tax=tax,
        freight=freight,
        discount=discount,
        expected_date=expected_date,
        notes=notes,
    )


PURCHASE_UPDATABLE_FIELDS = {"notes", "expected_date", "tax", "freight", "discount"}


def parse_purchase_update(payload: Any) -> dict:
    """Header edits for a pending purchase. Returns only the provided fields."""
    payload = _require_object(payload)
    errors = FieldErrors()
    fields: dict = {}

    for key, value in payload.items():
        if key not in PURCHASE_UPDATABLE_FIELDS:
            errors.add(key, f"Field not allowed: {key}")
        elif key == "notes":
            fields[key] = _text(errors, key, value)
        elif key == "expected_date":
            fields[key] = _datetime(errors, key, value)
        else:
            fields[key] = _money(errors, key, value)

    errors.raise_if_any()
    return fields


def parse_purchase_status(payload: Any) -> PurchaseStatusCommand:
    payload = _require_object(payload)
    errors = FieldErrors()

    status = payload.get("status")
    if status not in PURCHASE_STATUSES:
        errors.add("status", f"status must be one of: {', '.join(PURCHASE_STATUSES)}")
    received_date = _datetime(errors, "received_date", payload.get("received_date"))

    errors.raise_if_any()
    return PurchaseStatusCommand(status=status, received_date=received_date)


def parse_return(payload: Any) -> ReturnCommand:
    payload = _require_object(payload)
    errors = FieldErrors()

    sale_id = _positive_id(errors, "sale_id", payload.get("sale_id"))

    items = []
    for prefix, raw in _items(errors, payload):
        product_id = _positive_id(errors, f"{prefix}.product_id", raw.get("product_id"))
        quantity = _positive_id(errors, f"{prefix}.quantity", raw.get("quantity"))
        items.append(ReturnItemCommand(product_id, quantity))

    refund_method = _text(errors, "refund_method", payload.get("refund_method"), 32) or "cash"
    reason = _text(errors, "reason", payload.get("reason"))
    notes = _text(errors, "notes", payload.get("notes"))

    errors.raise_if_any()
    return ReturnCommand(
        sale_id=sale_id,
        items=tuple(items),
        refund_method=refund_method,
        reason=reason,
        notes=notes,
    )


def parse_forecast_query(args) -> ForecastQuery:
    """Parse query-string parameters (all strings) for the forecast endpoint."""
    errors = FieldErrors()

    forecast_days = 30
    if args.get("forecast_days") not in (None, ""):
        forecast_days = _int(errors, "forecast_days", args.get("forecast_days"), minimum=1)

    lookback_days = None
    if args.get("lookback_days") not in (None, ""):
        lookback_days = _int(errors, "lookback_days", args.get("lookback_days"), minimum=1)

    method = args.get("method") or "moving_average"
    category = args.get("category") or "all"

    errors.raise_if_any()
    return ForecastQuery(
        forecast_days=forecast_days,
        lookback_days=lookback_days,
        method=method,
        category=category,
    )
