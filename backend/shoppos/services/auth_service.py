# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every sale and purchase must be attributable to an operator. Uses bcrypt
for password hashing; the cost factor comes from BCRYPT_ROUNDS.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost from config, 12 by default)
- Minimum 6 characters required
- Inactive users are rejected at login even with valid credentials
- Session tokens managed separately (see session_service.py)
"""

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import AuthenticationError, ValidationError
from ..models import User, ROLES, ROLE_CASHIER
from ..time_utils import utcnow


MIN_PASSWORD_LENGTH = 6


def validate_password_strength(password) -> None:
    """Raises ValidationError if the password is missing or too short."""
    if not isinstance(password, str) or not password:
        raise ValidationError.for_field("password", "password is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError.for_field(
            "password",
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
        )


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns True if password matches hash, False otherwise (including a
    malformed stored hash).
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(
    name: str,
    email: str,
    password: str,
    role: str = ROLE_CASHIER,
    username: str | None = None,
    active: bool = True,
) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        ValidationError: bad role, weak password, or duplicate username/email
    """
    if role not in ROLES:
        raise ValidationError.for_field("role", f"role must be one of: {', '.join(ROLES)}")

    existing_filters = [User.email == email]
    if username:
        existing_filters.append(User.username == username)
    existing = db.session.query(User).filter(db.or_(*existing_filters)).first()
    if existing:
        field = "email" if existing.email == email else "username"
        raise ValidationError.for_field(field, f"A user with this {field} already exists")

    # Hash password with bcrypt (validates strength automatically)
    password_hash = hash_password(password)

    user = User(
        username=username,
        name=name,
        email=email,
        password_hash=password_hash,
        role=role,
        active=active,
    )

    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ValidationError("A user with this username or email already exists")
    return user


def authenticate(username: str, password: str) -> User:
    """
    Authenticate user with username (or email) and password.

    Returns the User on success and updates last_login_at.
    Raises AuthenticationError for unknown users, wrong passwords, and
    inactive accounts. Unknown users and wrong passwords share one message.
    """
    user = db.session.query(User).filter(
        db.or_(User.username == username, User.email == username)
    ).first()

    if not user or not verify_password(password, user.password_hash):
        current_app.logger.warning("Failed login for %r", username)
        raise AuthenticationError("Invalid credentials")

    if not user.active:
        current_app.logger.warning("Login rejected for inactive user id=%s", user.id)
        raise AuthenticationError("Account is inactive")

    user.last_login_at = utcnow()
    db.session.commit()
    return user
