# auth.py
import logging
from typing import Optional

import requests
from fastapi import Header, HTTPException
from pydantic import BaseModel

import config
from errors import AuthError

logger = logging.getLogger(__name__)

class AuthUser(BaseModel):
    id: str
    email: Optional[str] = None
    token: str

def bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthError("인증이 필요합니다.")
    token = authorization[len("Bearer "):].strip()
    if not token:
        raise AuthError("인증이 필요합니다.")
    return token

def get_user(token: str) -> AuthUser:
    """Resolve a bearer token against the managed auth service. No caching."""
    if not config.AUTH_SERVICE_URL:
        logger.error("AUTH_SERVICE_URL is not configured; rejecting token")
        raise AuthError("유효하지 않은 토큰입니다.", details="auth service not configured")
    try:
        resp = requests.get(
            f"{config.AUTH_SERVICE_URL}/auth/v1/user",
            headers={"Authorization": f"Bearer {token}", "apikey": config.AUTH_API_KEY},
            timeout=config.AUTH_TIMEOUT_SECONDS,
        )
    except requests.RequestException as e:
        logger.warning("Auth service unreachable: %s", e)
        raise AuthError("유효하지 않은 토큰입니다.", details=str(e))
    if resp.status_code != 200:
        raise AuthError("유효하지 않은 토큰입니다.", details=f"auth service returned {resp.status_code}")
    try:
        body = resp.json()
    except ValueError as e:
        raise AuthError("유효하지 않은 토큰입니다.", details=f"auth service returned a non-JSON body: {e}")
    if not isinstance(body, dict) or not body.get("id"):
        raise AuthError("유효하지 않은 토큰입니다.", details="auth service returned no user id")
    return AuthUser(id=str(body["id"]), email=body.get("email"), token=token)

def user_from_header(authorization: Optional[str]) -> AuthUser:
    return get_user(bearer_token(authorization))

# -----------------------------------------------------------------------------
# FastAPI dependencies
# -----------------------------------------------------------------------------
def require_user(authorization: Optional[str] = Header(None)) -> AuthUser:
    try:
        return user_from_header(authorization)
    except AuthError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

def optional_user(authorization: Optional[str] = Header(None)) -> Optional[AuthUser]:
    """The caller's identity when a valid token is present, otherwise None."""
    if not authorization:
        return None
    try:
        return user_from_header(authorization)
    except AuthError as e:
        logger.info("Ignoring invalid bearer token: %s", e.details or e.message)
        return None
