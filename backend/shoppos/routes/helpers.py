# Overview: Query-string parsing shared by the list endpoints.

from __future__ import annotations

from datetime import datetime

from flask import request

from ..errors import ValidationError
from ..time_utils import parse_iso_datetime


def arg_int(name: str, default: int | None = None) -> int | None:
    raw = request.args.get(name)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError.for_field(name, f"{name} must be an integer")


def arg_datetime(name: str) -> datetime | None:
    raw = request.args.get(name)
    if raw in (None, ""):
        return None
    try:
        value = parse_iso_datetime(raw)
    except ValueError:
        value = None
    if value is None:
        raise ValidationError.for_field(name, f"{name} must be an ISO-8601 datetime")
    return value


def arg_bool(name: str) -> bool | None:
    raw = request.args.get(name)
    if raw in (None, ""):
        return None
    lowered = raw.strip().lower()
    if lowered in ("1", "true", "yes"):
        return True
    if lowered in ("0", "false", "no"):
        return False
    raise ValidationError.for_field(name, f"{name} must be true or false")


def json_body():
    """The request's JSON body, or None if it is missing or malformed."""
    return request.get_json(silent=True)
