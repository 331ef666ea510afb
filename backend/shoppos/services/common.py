# Overview: Lookup, pagination and commit helpers shared by the CRUD services.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import NotFoundError, ValidationError


DEFAULT_LIMIT = 50
MAX_LIMIT = 500


def get_or_404(model, obj_id: int, label: str | None = None):
    obj = db.session.get(model, obj_id)
    if obj is None:
        raise NotFoundError(f"{label or model.__name__} not found")
    return obj


def clamp_page(limit: int | None, offset: int | None) -> tuple[int, int]:
    """Default 50, max 500; negative offsets become 0."""
    limit = DEFAULT_LIMIT if limit is None else max(1, min(limit, MAX_LIMIT))
    offset = max(offset or 0, 0)
    return limit, offset


def paginate(query, limit: int | None, offset: int | None) -> dict:
    limit, offset = clamp_page(limit, offset)
    total = query.order_by(None).count()
    rows = query.limit(limit).offset(offset).all()
    return {
        "items": [row.to_dict() for row in rows],
        "count": len(rows),
        "total": total,
        "limit": limit,
        "offset": offset,
    }


def apply_patch(obj, patch: dict, mutable_fields: set[str]) -> None:
    for k, v in patch.items():
        if k not in mutable_fields:
            continue
        setattr(obj, k, v)


def commit_or_duplicate(message: str) -> None:
    """
    Commit the session, turning a unique-constraint violation into a
    ValidationError carrying `message`.
    """
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ValidationError(message)
