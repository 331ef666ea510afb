# Overview: Flask API routes for persisted settings sections (currency, business).

from flask import Blueprint, g

from ..models import ROLE_ADMIN
from ..services import settings_service
from ..decorators import require_auth, require_role
from .helpers import json_body

settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("/<section>")
@require_auth
def get_settings(section: str):
    return settings_service.get_settings(section)


@settings_bp.put("/<section>")
@require_auth
@require_role(ROLE_ADMIN)
def update_settings(section: str):
    return settings_service.update_settings(section, json_body(), user_id=g.current_user.id)
