"""
JWT Authentication utilities for the task tracker.

Provides token generation, validation, and bearer-header parsing for
stateless authentication. Token validity is purely cryptographic and
time based: there is no server-side session or revocation list.
"""
import jwt
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID
from django.conf import settings
from django.http import HttpRequest


JWT_ALGORITHM = 'HS256'
BEARER_PREFIX = 'bearer '


def _secret() -> str:
    return getattr(settings, 'JWT_SECRET', settings.SECRET_KEY)


def create_access_token(user_id: UUID, role: str) -> str:
    """
    Create an access token for a user.
    
    Contains user_id and role; expires after JWT_EXPIRE_HOURS.
    """
    now = datetime.now(timezone.utc)
    expire = now + timedelta(hours=getattr(settings, 'JWT_EXPIRE_HOURS', 24))
    payload = {
        'sub': str(user_id),
        'role': role,
        'exp': expire,
        'iat': now,
        'type': 'access'
    }
    return jwt.encode(payload, _secret(), algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """
    Decode and validate a JWT token.
    
    Returns:
        Decoded payload if valid, None if invalid/expired.
    """
    try:
        payload = jwt.decode(token, _secret(), algorithms=[JWT_ALGORITHM])
        return payload
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def get_user_id_from_token(token: str) -> Optional[UUID]:
    """
    Extract user_id from a valid access token.
    
    Returns:
        UUID of user if token valid, None otherwise.
    """
    payload = decode_token(token)
    if payload and payload.get('type') == 'access' and 'sub' in payload:
        try:
            return UUID(payload['sub'])
        except ValueError:
            return None
    return None


def get_bearer_token(request: HttpRequest) -> Optional[str]:
    """Return the token from an ``Authorization: Bearer <token>`` header."""
    header = request.headers.get('Authorization', '')
    if not header.lower().startswith(BEARER_PREFIX):
        return None
    token = header[len(BEARER_PREFIX):].strip()
    return token or None
