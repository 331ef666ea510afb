# Overview: Bearer-token sessions for operators: issue, validate, revoke.

"""
Session Service

A login issues an opaque random token. The client keeps the plaintext; the
session_tokens table keeps only its SHA-256, the operator, and the timing
needed for two expiry rules:

- absolute: expires_at, set at login (SESSION_ABSOLUTE_TIMEOUT_HOURS)
- idle: last_used_at plus SESSION_IDLE_TIMEOUT_HOURS, refreshed on every
  validated request

Idle sessions and sessions of deactivated operators are revoked the first
time they are presented.
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from ..time_utils import utcnow

TOKEN_BYTES = 32


@dataclass
class SessionContext:
    """What require_auth stores on flask.g for the current request."""
    user: User
    session: SessionToken


def _hours(key: str, default: int) -> timedelta:
    return timedelta(hours=current_app.config.get(key, default))


def generate_token() -> str:
    """64 hex characters from the OS CSPRNG."""
    return secrets.token_hex(TOKEN_BYTES)


def hash_token(token: str) -> str:
    # Tokens carry 256 bits of entropy, so an unsalted SHA-256 is enough
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _find_live(token: str) -> SessionToken | None:
    return (
        db.session.query(SessionToken)
        .filter_by(token_hash=hash_token(token), is_revoked=False)
        .first()
    )


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """Persist a new session; returns (record, plaintext token for the client)."""
    token = generate_token()
    issued_at = utcnow()

    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(token),
        created_at=issued_at,
        last_used_at=issued_at,
        expires_at=issued_at + _hours("SESSION_ABSOLUTE_TIMEOUT_HOURS", 24),
        user_agent=(user_agent or "")[:255] or None,
        ip_address=ip_address,
        is_revoked=False,
    )
    db.session.add(session)
    db.session.commit()
    return session, token


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason
    db.session.commit()


def validate_session(token: str) -> SessionContext | None:
    """
    Resolve a bearer token to its operator, or None when the token is
    unknown, revoked, past expires_at, idle too long, or belongs to an
    inactive user. A successful check slides the idle window forward.
    """
    if not token:
        return None

    session = _find_live(token)
    if session is None:
        return None

    now = utcnow()
    if now >= session.expires_at:
        return None

    if now - session.last_used_at > _hours("SESSION_IDLE_TIMEOUT_HOURS", 2):
        _revoke(session, "Idle timeout")
        return None

    user = session.user
    if user is None or not user.active:
        _revoke(session, "User account deactivated")
        return None

    session.last_used_at = now
    db.session.commit()
    return SessionContext(user=user, session=session)


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """Returns False when the token was not a live session."""
    session = _find_live(token)
    if session is None:
        return False
    _revoke(session, reason)
    return True


def revoke_all_user_sessions(user_id: int, reason: str = "Revoke all sessions") -> int:
    """Revoke every live session of one user in a single UPDATE; returns the count."""
    count = (
        db.session.query(SessionToken)
        .filter_by(user_id=user_id, is_revoked=False)
        .update(
            {
                SessionToken.is_revoked: True,
                SessionToken.revoked_at: utcnow(),
                SessionToken.revoked_reason: reason,
            },
            synchronize_session=False,
        )
    )
    db.session.commit()
    return count
