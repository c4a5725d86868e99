# newsdrip/auth/dependencies.py
from fastapi import HTTPException, Cookie, Header, status
from jose import jwt, JWTError
from typing import Optional
from newsdrip.auth.models import AdminUser
from newsdrip.config import settings
import logging

logger = logging.getLogger(__name__)

def decode_access_token(token: str) -> AdminUser:
    """Verify a token issued by the identity provider and read the user from it"""
    claims = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    subject = claims.get("sub")
    if not subject:
        raise JWTError("Token has no subject")
    return AdminUser(id=subject, email=claims.get("email"), name=claims.get("name"))

async def get_current_admin(
    access_token: Optional[str] = Cookie(None),
    authorization: Optional[str] = Header(None)
) -> AdminUser:
    """Get current admin from bearer header or access token cookie - REQUIRED authentication"""
    token = access_token
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )

    try:
        return decode_access_token(token)
    except JWTError as e:
        logger.warning(f"Rejected admin token: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials"
        )
