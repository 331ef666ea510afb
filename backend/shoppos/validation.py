# Overview: Request-body validation shared by the model-backed routes and the order commands.

"""
Two layers:
- coerce_* helpers turn one JSON value into a Python value or raise ValueError
- validate_payload() walks a whole body against a model's columns and a
  ModelValidationPolicy, collecting every field error into one ValidationError
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import Boolean, Integer, Numeric, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .money import is_whole_cents, quantize, to_decimal
from .time_utils import parse_iso_datetime


# Largest value a Numeric(10, 2) column holds
MAX_MONEY = Decimal("99999999.99")

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True)
class ModelValidationPolicy:
    """Which columns a client may write, and which a create must carry."""
    writable_fields: set[str]
    required_on_create: set[str] | None = None


class FieldErrors:
    """Collects field-level problems so a request reports all of them at once."""

    def __init__(self):
        self.errors: list[dict] = []

    def add(self, field: str, message: str) -> None:
        self.errors.append({"field": field, "message": message})

    def __bool__(self) -> bool:
        return bool(self.errors)

    def raise_if_any(self, message: str = "Validation failed") -> None:
        if self.errors:
            raise ValidationError(message, errors=self.errors)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(field: str, value: Any) -> int:
    """Strict integer coercion: rejects bools, floats and scientific notation."""
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValueError(f"{field} must be an integer")
        if 'e' in stripped.lower():
            raise ValueError(f"{field} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValueError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValueError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValueError(f"{field} must be an integer, not a decimal")
    raise ValueError(f"{field} must be an integer")


def coerce_money(field: str, value: Any) -> Decimal:
    try:
        amount = to_decimal(value)
    except ValueError:
        raise ValueError(f"{field} must be a number")
    if amount < 0:
        raise ValueError(f"{field} must be >= 0")
    if amount > MAX_MONEY:
        raise ValueError(f"{field} cannot exceed {MAX_MONEY}")
    if not is_whole_cents(amount):
        raise ValueError(f"{field} cannot have more than 2 decimal places")
    return quantize(amount)


def coerce_datetime(field: str, value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            dt = parse_iso_datetime(value)
        except ValueError:
            raise ValueError(f"{field} must be an ISO-8601 datetime")
        if dt is None:
            raise ValueError(f"{field} must be an ISO-8601 datetime")
        return dt
    raise ValueError(f"{field} must be a datetime")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(col.key, value)

    if isinstance(coltype, Numeric):
        if coltype.scale == 2:
            return coerce_money(col.key, value)
        try:
            amount = Decimal(str(value)) if not isinstance(value, bool) else None
        except ArithmeticError:
            amount = None
        if amount is None or not amount.is_finite():
            raise ValueError(f"{col.key} must be a number")
        if amount < 0:
            raise ValueError(f"{col.key} must be >= 0")
        return amount

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValueError(f"{col.key} must be a boolean")

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        return coerce_datetime(col.key, value)

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def _string_problem(col, value: str) -> str | None:
    if value == "" and not col.nullable:
        return f"{col.key} cannot be blank"
    limit = getattr(col.type, "length", None)
    if limit and len(value) > limit:
        return f"{col.key} exceeds max length {limit}"
    return None


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Check a JSON object against the model's columns and the write policy and
    return the coerced patch.

    Create (partial=False) also requires policy.required_on_create; update
    (partial=True) checks only the keys sent. Unknown keys, wrong types,
    nulls in NOT NULL columns, blank or over-long strings are all collected
    and raised together as one ValidationError.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    errors = FieldErrors()
    if not partial:
        for name in sorted((policy.required_on_create or set()) - set(payload)):
            errors.add(name, f"{name} is required")

    columns = _columns_by_key(model)
    patch: dict = {}

    for key, raw in payload.items():
        col = columns.get(key) if key in policy.writable_fields else None
        if col is None:
            errors.add(key, f"Field not allowed: {key}")
            continue

        if raw is None:
            if col.nullable:
                patch[key] = None
            else:
                errors.add(key, f"{key} cannot be null")
            continue

        try:
            value = _coerce_value(col, raw)
        except ValueError as e:
            errors.add(key, str(e))
            continue

        if isinstance(value, str):
            problem = _string_problem(col, value)
            if problem:
                errors.add(key, problem)
                continue

        patch[key] = value

    errors.raise_if_any()
    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    errors = FieldErrors()
    for field in ("stock_quantity", "alert_threshold"):
        if patch.get(field) is not None and patch[field] < 0:
            errors.add(field, f"{field} must be >= 0")
    if "category_id" in patch and patch["category_id"] is not None and patch["category_id"] <= 0:
        errors.add("category_id", "category_id must be a positive integer")
    errors.raise_if_any()


def enforce_rules_contact(patch: dict) -> None:
    """Shared rules for suppliers, customers and users."""
    errors = FieldErrors()
    email = patch.get("email")
    if email and not EMAIL_RE.match(email):
        errors.add("email", "email must be a valid email address")
    if patch.get("loyalty_points") is not None and patch["loyalty_points"] < 0:
        errors.add("loyalty_points", "loyalty_points must be >= 0")
    errors.raise_if_any()
