"""
Role-based authorization.

Routes declare the roles they accept through the require_role decorator,
which delegates to authorize().

Roles:
- admin: full access, including users and settings
- manager: catalog, purchases, returns, forecasting
- cashier: sales and customer lookup
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .models import ROLES, ROLE_ADMIN, ROLE_MANAGER, ROLE_CASHIER


# Role groups used by route declarations
STAFF_ROLES = (ROLE_ADMIN, ROLE_MANAGER)

ROLE_DESCRIPTIONS = {
    ROLE_ADMIN: "Full system access",
    ROLE_MANAGER: "Catalog, purchasing, returns and forecasting",
    ROLE_CASHIER: "POS sales and customer lookup",
}


@dataclass(frozen=True)
class AuthorizationResult:
    allowed: bool
    reason: str | None = None


def authorize(identity, required_roles: Iterable[str]) -> AuthorizationResult:
    """
    Decide whether `identity` (a User or None) may act with one of
    `required_roles`. An empty role set means any authenticated user.
    """
    if identity is None:
        return AuthorizationResult(False, "Authentication required")

    if not getattr(identity, "active", False):
        return AuthorizationResult(False, "Account is inactive")

    role = getattr(identity, "role", None)
    if role not in ROLES:
        return AuthorizationResult(False, f"Unknown role: {role}")

    required = tuple(required_roles)
    if required and role not in required:
        return AuthorizationResult(False, f"Requires role: {', '.join(required)}")

    return AuthorizationResult(True)


def list_roles() -> list[dict]:
    return [{"name": name, "description": ROLE_DESCRIPTIONS[name]} for name in ROLES]
