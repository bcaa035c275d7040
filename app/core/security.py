from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings

JWT_ALGORITHM = "HS256"

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        # Unrecognized hash format stored for the account.
        return False


def create_jwt(payload: dict, secret: str, expires_delta: timedelta) -> str:
    now = datetime.now(timezone.utc)
    data = payload.copy()
    data.update({"iat": int(now.timestamp()), "exp": int((now + expires_delta).timestamp())})
    return jwt.encode(data, secret, algorithm=JWT_ALGORITHM)


def decode_jwt(token: str, secret: str) -> dict:
    return jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])


def session_ttl() -> timedelta:
    return timedelta(days=settings.JWT_TTL_DAYS)


def issue_session_token(*, user_id: str, email: str, name: str) -> str:
    return create_jwt(
        {"userId": str(user_id), "email": email, "name": name},
        settings.JWT_SECRET,
        session_ttl(),
    )


def read_session_token(token: str | None) -> dict | None:
    """Return the identity claims of a valid session token, else None."""
    if not token:
        return None
    try:
        claims = decode_jwt(token, settings.JWT_SECRET)
    except JWTError:
        return None
    if not str(claims.get("userId") or "").strip():
        return None
    return claims
