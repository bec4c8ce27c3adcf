import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import jwt
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    AccessTokenExpired,
    InternalError,
    InvalidAccessToken,
    RefreshTokenExpired,
    RefreshTokenNotFound,
    RefreshTokenRevoked,
)
from app.models.refresh_token import DeviceType, RefreshToken
from app.models.user import User
from app.schemas.auth import TokenPair

logger = logging.getLogger(__name__)

REQUIRED_CLAIMS = ("userId", "email", "role", "deviceId")


@dataclass(frozen=True)
class DeviceInfo:
    device_id: str
    device_name: str
    device_type: DeviceType


@dataclass(frozen=True)
class AccessClaims:
    user_id: int
    email: str
    role: str
    device_id: str


def _utcnow() -> datetime:
    # DB 컬럼은 naive UTC 로 저장
    return datetime.now(timezone.utc).replace(tzinfo=None)


def derive_device_fingerprint(user_agent: Optional[str]) -> str:
    """
    User-Agent 의 SHA-256 해시 앞 32자.
    세션 그룹핑/표시용이며 보안 경계로 쓰면 안 됨 (헤더는 위조 가능).
    """
    return hashlib.sha256((user_agent or "").encode("utf-8")).hexdigest()[:32]


def describe_device(user_agent: Optional[str]) -> DeviceInfo:
    ua = user_agent or ""
    device_name = "Unknown Device"
    device_type = DeviceType.desktop

    if "Mobile" in ua or "Android" in ua or "iPhone" in ua:
        device_type = DeviceType.mobile
        if "iPhone" in ua:
            device_name = "iPhone"
        elif "iPad" in ua:
            device_name = "iPad"
        elif "Android" in ua:
            device_name = "Android Device"
        else:
            device_name = "Mobile Device"
    elif "Mac" in ua or "Windows" in ua or "Linux" in ua:
        if "Mac" in ua:
            device_name = "Macintosh"
        elif "Windows" in ua:
            device_name = "Windows PC"
        else:
            device_name = "Linux PC"
    elif "Tablet" in ua:
        device_type = DeviceType.tablet
        device_name = "Tablet"

    return DeviceInfo(
        device_id=derive_device_fingerprint(ua),
        device_name=device_name,
        device_type=device_type,
    )


def generate_refresh_token() -> str:
    return secrets.token_hex(64)


class TokenService:
    """Access/refresh 토큰 발급, 회전(rotation), 폐기."""

    def __init__(self, db: Session):
        self.db = db

    # ---------- access token ----------

    def create_access_token(self, user: User, device_id: str) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "userId": user.id,
            "email": user.email,
            "role": user.role.value if hasattr(user.role, "value") else user.role,
            "deviceId": device_id,
            "iat": now,
            "exp": now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        }
        return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

    def authenticate(self, access_token: str) -> AccessClaims:
        """서명/만료만 검증한다. DB 조회 없음."""
        try:
            payload = jwt.decode(
                access_token,
                settings.JWT_SECRET_KEY,
                algorithms=[settings.JWT_ALGORITHM],
            )
        except jwt.ExpiredSignatureError:
            raise AccessTokenExpired()
        except jwt.InvalidTokenError:
            raise InvalidAccessToken()

        if any(payload.get(claim) is None for claim in REQUIRED_CLAIMS):
            raise InvalidAccessToken("Invalid token payload")
        try:
            user_id = int(payload["userId"])
        except (TypeError, ValueError):
            raise InvalidAccessToken("Invalid token payload")

        return AccessClaims(
            user_id=user_id,
            email=payload["email"],
            role=payload["role"],
            device_id=payload["deviceId"],
        )

    # ---------- refresh token ----------

    def _new_refresh_row(self, user_id: int, device: DeviceInfo) -> RefreshToken:
        return RefreshToken(
            token=generate_refresh_token(),
            user_id=user_id,
            device_id=device.device_id,
            device_name=device.device_name,
            device_type=device.device_type,
            expires_at=_utcnow() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        )

    def issue_token_pair(self, user: User, device: DeviceInfo) -> TokenPair:
        db_token = self._new_refresh_row(user.id, device)
        try:
            self.db.add(db_token)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"issue_token_pair failed - user_id={user.id}, device_id={device.device_id}")
            raise InternalError()

        return TokenPair(
            access_token=self.create_access_token(user, device.device_id),
            refresh_token=db_token.token,
        )

    def refresh(self, provided_token: str) -> TokenPair:
        db_token = self.db.query(RefreshToken).filter(RefreshToken.token == provided_token).first()
        if not db_token:
            raise RefreshTokenNotFound()
        if db_token.revoked:
            logger.warning(f"Revoked refresh token reused - user_id={db_token.user_id}, device_id={db_token.device_id}")
            raise RefreshTokenRevoked()

        if _utcnow() > db_token.expires_at:
            # 만료된 토큰은 조회 시점에 삭제
            try:
                self.db.delete(db_token)
                self.db.commit()
            except SQLAlchemyError:
                self.db.rollback()
                logger.exception(f"Failed to delete expired refresh token - id={db_token.id}")
                raise InternalError()
            raise RefreshTokenExpired()

        user = db_token.user
        device = DeviceInfo(
            device_id=db_token.device_id,
            device_name=db_token.device_name,
            device_type=db_token.device_type,
        )
        new_token = self._new_refresh_row(user.id, device)

        # 기존 토큰 폐기 + 새 토큰 저장을 하나의 트랜잭션으로 처리
        try:
            revoked = self.db.execute(
                update(RefreshToken)
                .where(RefreshToken.id == db_token.id, RefreshToken.revoked.is_(False))
                .values(revoked=True, replaced_by_token=new_token.token)
                .execution_options(synchronize_session=False)
            )
            if revoked.rowcount != 1:
                # 동시에 다른 요청이 같은 토큰을 먼저 사용함
                self.db.rollback()
                raise RefreshTokenRevoked()
            self.db.add(new_token)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"Refresh token rotation failed - user_id={user.id}, token_id={db_token.id}")
            raise InternalError()

        return TokenPair(
            access_token=self.create_access_token(user, device.device_id),
            refresh_token=new_token.token,
        )

    def _revoke_where(self, operation: str, *criteria) -> int:
        try:
            result = self.db.execute(
                update(RefreshToken)
                .where(RefreshToken.revoked.is_(False), *criteria)
                .values(revoked=True)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"{operation} failed")
            raise InternalError()
        return result.rowcount

    def revoke_for_device(self, user_id: int, device_id: str) -> int:
        count = self._revoke_where(
            "revoke_for_device",
            RefreshToken.user_id == user_id,
            RefreshToken.device_id == device_id,
        )
        logger.info(f"Revoked {count} refresh token(s) - user_id={user_id}, device_id={device_id}")
        return count

    def revoke_all(self, user_id: int) -> int:
        count = self._revoke_where("revoke_all", RefreshToken.user_id == user_id)
        logger.info(f"Revoked {count} refresh token(s) on all devices - user_id={user_id}")
        return count

    def list_sessions(self, user_id: int) -> List[RefreshToken]:
        return (
            self.db.query(RefreshToken)
            .filter(
                RefreshToken.user_id == user_id,
                RefreshToken.revoked.is_(False),
                RefreshToken.expires_at > _utcnow(),
            )
            .order_by(RefreshToken.created_at.desc(), RefreshToken.id.desc())
            .all()
        )
