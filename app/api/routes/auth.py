import logging

from fastapi import APIRouter, Depends, Body, Request, status
from sqlalchemy.orm import Session

from app.core.exceptions import ValidationError
from app.dependencies.auth import get_current_claims
from app.dependencies.db import get_db
from app.dependencies.services import get_token_service
from app.schemas.auth import (
    AuthResponse,
    DeviceSession,
    DeviceSessionListResponse,
    RefreshRequest,
    SigninRequest,
    SignupRequest,
    TokenResponse,
    UserProfile,
    UserProfileResponse,
)
from app.schemas.common import MessageResponse
from app.services import auth_service
from app.services.token_service import AccessClaims, TokenService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/signup",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="회원가입",
    description="사용자를 생성하고 access/refresh token 을 발급합니다. 이미 가입된 이메일이면 409.",
)
def signup(
        request: Request,
        signup_in: SignupRequest = Body(...),
        db: Session = Depends(get_db),
        tokens: TokenService = Depends(get_token_service),
):
    data = auth_service.signup(db, tokens, signup_in, request.headers.get("user-agent"))
    return AuthResponse(message="User registered successfully", data=data)


@router.post("/signin", response_model=AuthResponse, summary="로그인")
def signin(
        request: Request,
        signin_in: SigninRequest = Body(...),
        db: Session = Depends(get_db),
        tokens: TokenService = Depends(get_token_service),
):
    data = auth_service.signin(
        db, tokens, signin_in.email, signin_in.password, request.headers.get("user-agent")
    )
    return AuthResponse(message="Login successful", data=data)


@router.post(
    "/refresh",
    response_model=TokenResponse,
    summary="토큰 재발급",
    description="refresh token 을 1회 사용하고(rotation) 새 access/refresh token 을 발급합니다.",
)
def refresh_token(
        refresh_in: RefreshRequest = Body(...),
        tokens: TokenService = Depends(get_token_service),
):
    if not refresh_in.refresh_token:
        raise ValidationError("Refresh token is required")
    pair = tokens.refresh(refresh_in.refresh_token)
    return TokenResponse(message="Token refreshed successfully", data=pair)


@router.post("/logout", response_model=MessageResponse, summary="현재 기기 로그아웃")
def logout(
        claims: AccessClaims = Depends(get_current_claims),
        tokens: TokenService = Depends(get_token_service),
):
    tokens.revoke_for_device(claims.user_id, claims.device_id)
    return MessageResponse(message="Logout successful")


@router.post("/logout-all", response_model=MessageResponse, summary="모든 기기 로그아웃")
def logout_all(
        claims: AccessClaims = Depends(get_current_claims),
        tokens: TokenService = Depends(get_token_service),
):
    tokens.revoke_all(claims.user_id)
    return MessageResponse(message="Logged out from all devices successfully")


@router.get("/me", response_model=UserProfileResponse, summary="내 정보 조회")
def get_me(
        claims: AccessClaims = Depends(get_current_claims),
        db: Session = Depends(get_db),
):
    user = auth_service.get_profile(db, claims.user_id)
    return UserProfileResponse(data=UserProfile.model_validate(user))


@router.get("/sessions", response_model=DeviceSessionListResponse, summary="로그인된 기기 목록")
def list_sessions(
        claims: AccessClaims = Depends(get_current_claims),
        tokens: TokenService = Depends(get_token_service),
):
    sessions = tokens.list_sessions(claims.user_id)
    return DeviceSessionListResponse(data=[DeviceSession.model_validate(s) for s in sessions])
