# backend/shoppos/routes/auth.py
"""
Authentication API routes

- POST /api/auth/login   username (or email) + password -> {token, user}
- POST /api/auth/logout  revokes the bearer token in use
- GET  /api/auth/user    the authenticated user
- POST /api/auth/register is disabled; admins create accounts
"""

from flask import Blueprint, request, g

from ..errors import ValidationError
from ..services import auth_service
from ..services import session_service
from ..decorators import require_auth
from .helpers import json_body


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register_route():
    """
    Self-registration is disabled.

    Users can only be created by administrators via:
    - POST /api/users
    - CLI: flask users create
    """
    return {
        "message": "Self-registration is disabled. Contact an administrator to create an account."
    }, 403


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included as "Authorization: Bearer <token>" on protected
    routes.
    """
    data = json_body() or {}
    username = data.get("username") or data.get("email")
    password = data.get("password")

    errors = []
    if not isinstance(username, str) or not username.strip():
        errors.append({"field": "username", "message": "username is required"})
    if not isinstance(password, str) or not password:
        errors.append({"field": "password", "message": "password is required"})
    if errors:
        raise ValidationError("Username and password are required", errors=errors)

    user = auth_service.authenticate(username.strip(), password)

    session, token = session_service.create_session(
        user_id=user.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )

    return {
        "token": token,
        "expires_at": session.to_dict()["expires_at"],
        "user": user.to_dict(),
    }, 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(g.session_token, reason="User logout")
    return {"message": "Logged out"}, 200


@auth_bp.get("/user")
@require_auth
def current_user_route():
    return g.current_user.to_dict(), 200
