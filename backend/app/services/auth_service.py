"""Auth Service 도메인 서비스 레이어입니다. 가입/로그인/토큰 갱신 흐름을 캡슐화합니다."""

import logging
import uuid
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from sqlalchemy.orm import Session

from app.config import settings
from app.exceptions import AuthError, NotFoundError, ValidationError
from app.models.user import RefreshToken, User
from app.schemas.user import LoginRequest, SignupRequest, TokenResponse
from app.utils.security import hash_password, verify_password

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def create_access_token(user_id: int) -> str:
    expire = _utc_now() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {"sub": str(user_id), "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)


def create_refresh_token() -> str:
    expire = _utc_now() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    payload = {"jti": uuid.uuid4().hex, "exp": expire}
    return jwt.encode(payload, settings.REFRESH_SECRET_KEY, algorithm=ALGORITHM)


def _store_refresh_token(db: Session, user_id: int) -> str:
    token = create_refresh_token()
    expires_at = (_utc_now() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)).replace(tzinfo=None)
    db.add(RefreshToken(token=token, user_id=user_id, expires_at=expires_at))
    return token


def _token_response(user_id: int, refresh_token: str) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(user_id),
        refresh_token=refresh_token,
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


def signup(db: Session, data: SignupRequest) -> User:
    email = data.email.strip().lower()
    if db.query(User).filter(User.email == email).first():
        raise ValidationError("user already registered")
    user = User(
        email=email,
        password_hash=hash_password(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def login(db: Session, data: LoginRequest) -> TokenResponse:
    email = data.email.strip().lower()
    user = db.query(User).filter(User.email == email, User.deleted_at.is_(None)).first()
    if not user:
        raise NotFoundError("user not found")
    if not verify_password(data.password, user.password_hash):
        raise ValidationError("password incorrect")
    refresh_token = _store_refresh_token(db, user.user_id)
    db.commit()
    return _token_response(user.user_id, refresh_token)


def refresh(db: Session, current_user: User, old_token: str) -> TokenResponse:
    """저장된 refresh token 을 폐기하고 새 토큰 쌍을 발급한다."""
    try:
        jwt.decode(old_token, settings.REFRESH_SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise AuthError("Token refresh failed")

    try:
        stored = (
            db.query(RefreshToken)
            .filter(
                RefreshToken.token == old_token,
                RefreshToken.user_id == current_user.user_id,
                RefreshToken.expires_at > _utc_now().replace(tzinfo=None),
            )
            .first()
        )
        if not stored:
            raise AuthError("Invalid token")
        db.delete(stored)
        new_token = _store_refresh_token(db, current_user.user_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return _token_response(current_user.user_id, new_token)


def logout(db: Session, current_user: User, token: str) -> None:
    deleted = (
        db.query(RefreshToken)
        .filter(RefreshToken.token == token, RefreshToken.user_id == current_user.user_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    if not deleted:
        logger.info("[auth] logout with unknown refresh token for user %s", current_user.user_id)
