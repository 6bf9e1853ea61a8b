
from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt
from swiftlocal.core.config import settings
from swiftlocal.core.errors import NotAuthenticated

security = HTTPBearer(auto_error=False)

def decode_token(token: str) -> dict:
    return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])

def get_optional_identity(creds: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> Optional[dict]:
    """Token claims, or None for anonymous callers. A bad token is never anonymous."""
    if not creds:
        return None
    try:
        payload = decode_token(creds.credentials)
    except jwt.PyJWTError:
        raise NotAuthenticated("Invalid token")
    if payload.get("type") != "access":
        raise NotAuthenticated("Invalid access token")
    if not payload.get("sub"):
        raise NotAuthenticated("Invalid token subject")
    return payload  # contains sub (user id)
