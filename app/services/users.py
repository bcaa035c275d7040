from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import ValidationError
from app.core.security import hash_password, verify_password
from app.models.user import User

_LOG = logging.getLogger("app.auth")

MIN_PASSWORD_LENGTH = 8
DEFAULT_ROLE = "admin"


def normalize_email(raw: str | None) -> str:
    return str(raw or "").strip().lower()


def get_active_user_by_email(db: Session, email: str) -> User | None:
    normalized = normalize_email(email)
    if not normalized:
        return None
    return (
        db.query(User)
        .filter(func.lower(User.email) == normalized, User.is_active.is_(True))
        .first()
    )


def get_user(db: Session, user_id: UUID | str | None) -> User | None:
    try:
        uid = user_id if isinstance(user_id, UUID) else UUID(str(user_id or ""))
    except ValueError:
        return None
    return db.query(User).filter(User.id == uid, User.is_active.is_(True)).first()


def authenticate(db: Session, email: str, password: str) -> User | None:
    user = get_active_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        _LOG.info("login rejected email=%s", normalize_email(email))
        return None
    return user


def register_user(db: Session, *, email: str | None, password: str | None, name: str | None) -> User:
    normalized = normalize_email(email)
    if not normalized or not password:
        raise ValidationError("Email and password are required")
    if "@" not in normalized:
        raise ValidationError("Email is not valid")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    display_name = str(name or "").strip() or normalized.split("@", 1)[0]

    if db.query(User.id).filter(func.lower(User.email) == normalized).first() is not None:
        raise ValidationError("User already exists")

    user = User(
        email=normalized,
        name=display_name[:200],
        password_hash=hash_password(password),
        role=DEFAULT_ROLE,
        is_active=True,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        # Lost a race with a concurrent registration of the same email.
        db.rollback()
        raise ValidationError("User already exists") from exc
    db.refresh(user)
    _LOG.info("user registered id=%s", user.id)
    return user
