from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import get_current_user
from app.core.errors import NotFound, Unauthorized, ValidationError
from app.core.security import issue_session_token, session_ttl
from app.db.session import get_db
from app.models.user import User
from app.schemas.auth import AuthOut, LoginIn, MeOut, RegisterIn, UserOut
from app.schemas.common import MessageOut
from app.services.users import authenticate, get_user, register_user

router = APIRouter()


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
        max_age=int(session_ttl().total_seconds()),
        path="/",
    )


def _session_for(user: User, response: Response, message: str) -> AuthOut:
    token = issue_session_token(user_id=str(user.id), email=user.email, name=user.name)
    _set_session_cookie(response, token)
    return AuthOut(message=message, user=UserOut.model_validate(user), token=token)


@router.post("/login", response_model=AuthOut)
def login(payload: LoginIn, response: Response, db: Session = Depends(get_db)):
    if not payload.email or not payload.password:
        raise ValidationError("Email and password are required")
    user = authenticate(db, payload.email, payload.password)
    if user is None:
        raise Unauthorized("Invalid email or password")
    return _session_for(user, response, "Login successful")


@router.post("/register", response_model=AuthOut, status_code=201)
def register(payload: RegisterIn, response: Response, db: Session = Depends(get_db)):
    if not settings.REGISTRATION_ENABLED:
        raise NotFound("Not found")
    user = register_user(db, email=payload.email, password=payload.password, name=payload.name)
    return _session_for(user, response, "Registration successful")


@router.post("/logout", response_model=MessageOut)
def logout(response: Response):
    response.delete_cookie(
        key=settings.AUTH_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )
    return MessageOut(message="Logged out")


@router.get("/me", response_model=MeOut)
def me(session: dict = Depends(get_current_user), db: Session = Depends(get_db)):
    user = get_user(db, session.get("userId"))
    if user is None:
        raise NotFound("User not found")
    return MeOut(user=UserOut.model_validate(user))
