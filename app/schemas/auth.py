from datetime import datetime
from typing import Optional, List
from pydantic import EmailStr

from app.models.user import UserRole
from app.models.refresh_token import DeviceType
from app.schemas.common import CamelModel


class SignupRequest(CamelModel):
    email: EmailStr
    password: str
    name: str
    role: Optional[UserRole] = None


class SigninRequest(CamelModel):
    email: EmailStr
    password: str


class RefreshRequest(CamelModel):
    refresh_token: Optional[str] = None


class UserInfo(CamelModel):
    id: int
    email: str
    name: str
    role: UserRole


class UserProfile(UserInfo):
    created_at: Optional[datetime] = None


class TokenPair(CamelModel):
    access_token: str
    refresh_token: str


class AuthData(TokenPair):
    user: UserInfo


class AuthResponse(CamelModel):
    success: bool = True
    message: Optional[str] = None
    data: AuthData


class TokenResponse(CamelModel):
    success: bool = True
    message: Optional[str] = None
    data: TokenPair


class UserProfileResponse(CamelModel):
    success: bool = True
    data: UserProfile


class DeviceSession(CamelModel):
    device_id: str
    device_name: str
    device_type: DeviceType
    created_at: Optional[datetime] = None
    expires_at: datetime


class DeviceSessionListResponse(CamelModel):
    success: bool = True
    data: List[DeviceSession]
