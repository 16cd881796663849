"""
Authentication dependencies for FastAPI.

This module provides dependencies for protecting routes with JWT authentication.
"""

from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from backend.app.core.jwt import decode_access_token
from backend.app.core.exceptions import AuthenticationError

# HTTP Bearer security scheme; a missing header is reported through AuthenticationError
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict:
    """
    FastAPI dependency for JWT authentication.
    
    Validates the JWT signature and expiry and makes sure the payload names
    a user. The returned payload's `sub` is the acting username that the
    workflow records as `changed_by` / `created_by`.
    
    Raises:
        AuthenticationError: 401 if the token is missing, invalid or has no subject
    """
    if credentials is None:
        raise AuthenticationError("Not authenticated")
    
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise AuthenticationError("Could not validate credentials")
    
    if not payload.get("sub"):
        raise AuthenticationError("Invalid token payload")
    
    return payload


def get_actor(current_user: dict) -> str:
    """Username recorded on history rows and audit columns."""
    return current_user["sub"]
