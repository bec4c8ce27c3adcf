import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError, InvalidCredentials, NotFoundError, ValidationError
from app.schemas.auth import AuthData, SignupRequest, UserInfo
from app.services.token_service import TokenService, describe_device
from app.services.user_service import create_user, get_user_by_email, get_user_by_id, verify_password

logger = logging.getLogger(__name__)


def signup(db: Session, tokens: TokenService, signup_in: SignupRequest, user_agent: Optional[str]) -> AuthData:
    if not signup_in.password or not signup_in.name.strip():
        raise ValidationError("Email, password, and name are required")

    # 이메일 중복 체크
    if get_user_by_email(db, signup_in.email):
        raise ConflictError("User with this email already exists")

    try:
        user = create_user(
            db,
            email=signup_in.email,
            password=signup_in.password,
            name=signup_in.name.strip(),
            role=signup_in.role,
            commit=False,
        )
    except IntegrityError:
        # 동시 가입으로 unique 제약 위반
        db.rollback()
        raise ConflictError("User with this email already exists")

    # 사용자 + 첫 refresh token 을 한 번에 커밋 (토큰 저장 실패 시 계정도 롤백)
    pair = tokens.issue_token_pair(user, describe_device(user_agent))
    logger.info(f"User registered - user_id={user.id}")
    return AuthData(
        user=UserInfo.model_validate(user),
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
    )


def signin(db: Session, tokens: TokenService, email: str, password: str, user_agent: Optional[str]) -> AuthData:
    user = get_user_by_email(db, email)
    if not user or not verify_password(password, user.password):
        logger.info(f"Sign-in failed - email={email}")
        raise InvalidCredentials()

    pair = tokens.issue_token_pair(user, describe_device(user_agent))
    logger.info(f"Sign-in succeeded - user_id={user.id}")
    return AuthData(
        user=UserInfo.model_validate(user),
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
    )


def get_profile(db: Session, user_id: int):
    user = get_user_by_id(db, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user
