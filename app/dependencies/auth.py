from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.core.exceptions import AuthError
from app.dependencies.services import get_token_service
from app.services.token_service import AccessClaims, TokenService

# auto_error=False: 헤더 누락도 403 이 아닌 401 envelope 으로 응답
bearer_scheme = HTTPBearer(auto_error=False)


def get_current_claims(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
        tokens: TokenService = Depends(get_token_service),
) -> AccessClaims:
    if credentials is None or not credentials.credentials:
        raise AuthError("Access token is required")
    return tokens.authenticate(credentials.credentials)
