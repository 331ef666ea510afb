"""
Settings Service - persisted currency and business settings

Each section is one AppSetting row holding a JSON object. Reads merge the
stored values over the section defaults, so new keys appear with their
default without a migration. Updates are partial: only the keys sent are
changed, every key is type-checked against the section catalog.
"""

from __future__ import annotations

import re

from flask import current_app

from ..extensions import db
from ..errors import NotFoundError, ValidationError
from ..models import AppSetting

SECTION_CURRENCY = "currency"
SECTION_BUSINESS = "business"

CURRENCY_CODE_RE = re.compile(r"^[A-Z]{3}$")

MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

# section -> key -> (expected type, default)
SETTINGS_CATALOG: dict[str, dict[str, tuple[type, object]]] = {
    SECTION_CURRENCY: {
        "base_currency": (str, "USD"),
        "currency_symbol": (str, "$"),
        "currency_position": (str, "before"),
        "decimal_places": (int, 2),
        "thousand_separator": (str, ","),
        "decimal_separator": (str, "."),
        "enable_multi_currency": (bool, False),
        "exchange_rate_provider": (str, ""),
        "auto_update_rates": (bool, False),
    },
    SECTION_BUSINESS: {
        "business_name": (str, "Awesome Shop"),
        "currency": (str, "USD"),
        "currency_symbol_placement": (str, "before"),
        "default_profit_percent": (str, "25.00"),
        "timezone": (str, "America/Phoenix"),
        "start_date": (str, "01/01/2018"),
        "financial_year_start_month": (str, "January"),
        "stock_accounting_method": (str, "FIFO (First In First Out)"),
        "transaction_edit_days": (str, "30"),
        "date_format": (str, "mm/dd/yyyy"),
        "time_format": (str, "24 Hour"),
        "currency_precision": (str, "2"),
        "quantity_precision": (str, "2"),
    },
}

# Keys a PUT must always carry
REQUIRED_ON_UPDATE = {
    SECTION_CURRENCY: {"base_currency", "currency_symbol", "currency_position"},
    SECTION_BUSINESS: set(),
}


def _catalog(section: str) -> dict[str, tuple[type, object]]:
    catalog = SETTINGS_CATALOG.get(section)
    if catalog is None:
        raise NotFoundError(f"Unknown settings section: {section}")
    return catalog


def defaults(section: str) -> dict:
    return {key: default for key, (_, default) in _catalog(section).items()}


def get_settings(section: str) -> dict:
    """Stored values merged over defaults."""
    merged = defaults(section)
    row = db.session.query(AppSetting).filter_by(key=section).first()
    if row is not None:
        stored = row.load()
        merged.update({k: v for k, v in stored.items() if k in merged})
    return merged


def _validate_value(section: str, key: str, value, errors: list[dict]) -> None:
    expected, _ = SETTINGS_CATALOG[section][key]
    if expected is int:
        ok = isinstance(value, int) and not isinstance(value, bool)
    else:
        ok = isinstance(value, expected)
    if not ok:
        errors.append({"field": key, "message": f"{key} must be a {expected.__name__}"})
        return

    if key in ("currency_position", "currency_symbol_placement") and value not in ("before", "after"):
        errors.append({"field": key, "message": f"{key} must be 'before' or 'after'"})
    elif key in ("base_currency", "currency") and not CURRENCY_CODE_RE.match(value):
        errors.append({"field": key, "message": f"{key} must be a 3-letter currency code"})
    elif key == "decimal_places" and not 0 <= value <= 4:
        errors.append({"field": key, "message": "decimal_places must be between 0 and 4"})
    elif key == "financial_year_start_month" and value not in MONTHS:
        errors.append({"field": key, "message": "financial_year_start_month must be a month name"})
    elif expected is str and key not in ("currency_symbol", "exchange_rate_provider") and not value.strip():
        errors.append({"field": key, "message": f"{key} cannot be blank"})


def update_settings(section: str, values, user_id: int | None = None) -> dict:
    """
    Partially update a section and return the merged result.

    Raises:
        NotFoundError: unknown section
        ValidationError: unknown key, wrong type, or missing required key
    """
    catalog = _catalog(section)
    if not isinstance(values, dict):
        raise ValidationError("Invalid JSON payload")

    errors: list[dict] = []
    for key in sorted(REQUIRED_ON_UPDATE[section] - set(values)):
        errors.append({"field": key, "message": f"{key} is required"})
    for key, value in values.items():
        if key not in catalog:
            errors.append({"field": key, "message": f"Unknown setting: {key}"})
            continue
        _validate_value(section, key, value, errors)
    if errors:
        raise ValidationError("Invalid settings", errors=errors)

    row = db.session.query(AppSetting).filter_by(key=section).first()
    if row is None:
        row = AppSetting(key=section)
        db.session.add(row)

    stored = row.load()
    stored.update(values)
    row.store(stored)
    row.updated_by_user_id = user_id
    db.session.commit()

    current_app.logger.info("Settings section %s updated by user=%s", section, user_id)
    return get_settings(section)
