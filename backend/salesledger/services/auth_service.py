# Overview: Credentials for the identity context; password hashing, user creation and the void supervisor code.

"""
Authentication helpers.

Passwords are hashed with bcrypt. The supervisor code that authorizes a
void is a configured shared secret (SUPERVISOR_CODE), compared in constant
time; it is deliberately separate from the acting user's own session.
"""

import hmac
import re

import bcrypt
from flask import current_app

from ..errors import ValidationError
from ..extensions import db
from ..models import ROLES, User
from salesledger.time_utils import utcnow


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


def validate_password_strength(password: str) -> None:
    """
    Minimum 8 characters with upper, lower, digit and special character.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str, rounds: int = 12) -> str:
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(username: str, email: str, password: str, role: str = "staff", rounds: int = 12) -> User:
    """
    Create a user with a bcrypt password hash.

    Raises ValidationError for an unknown role or a duplicate username/email,
    PasswordValidationError for a weak password.
    """
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")

    existing = db.session.query(User).filter(
        (User.username == username) | (User.email == email)
    ).first()
    if existing:
        raise ValidationError("Username or email already exists")

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password, rounds=rounds),
        role=role,
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(identifier: str, password: str) -> User | None:
    """Return the active user matching username/email and password, else None."""
    user = db.session.query(User).filter(
        (User.username == identifier) | (User.email == identifier)
    ).first()
    if not user or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def verify_supervisor_code(code: str | None) -> bool:
    """
    True when code matches the configured SUPERVISOR_CODE.

    An unset SUPERVISOR_CODE refuses every code, so voids stay disabled until
    an operator configures one.
    """
    expected = current_app.config.get("SUPERVISOR_CODE")
    if not expected or not code:
        return False
    return hmac.compare_digest(code.strip().encode("utf-8"), expected.encode("utf-8"))
