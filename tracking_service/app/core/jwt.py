"""
JWT token verification.

Tokens are issued by the identity layer; this service only verifies them
and reads the principal they carry.
"""

from typing import Optional, Dict, Any
from jose import JWTError, jwt
from tracking_service.app.core.config import settings


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and validate a JWT access token.

    Args:
        token: JWT token string to decode

    Returns:
        Decoded token payload if valid (includes: sub, role, exp), None otherwise
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
        return payload
    except JWTError:
        return None
