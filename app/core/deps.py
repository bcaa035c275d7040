from uuid import UUID

from fastapi import Cookie, Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import settings
from app.core.errors import Unauthorized
from app.core.security import read_session_token

bearer = HTTPBearer(auto_error=False)


def get_optional_session(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
    cookie_token: str | None = Cookie(default=None, alias=settings.AUTH_COOKIE_NAME),
) -> dict | None:
    # The Authorization header wins over the cookie when both are present.
    token = creds.credentials if creds else cookie_token
    return read_session_token(token)


def get_current_user(session: dict | None = Depends(get_optional_session)) -> dict:
    if session is None:
        raise Unauthorized("Unauthorized")
    return session


def get_current_user_id(session: dict = Depends(get_current_user)) -> UUID:
    try:
        return UUID(str(session.get("userId")))
    except ValueError as exc:
        raise Unauthorized("Unauthorized") from exc
