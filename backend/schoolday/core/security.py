from __future__ import annotations

from jose import jwt

from schoolday.core.config import get_settings


def decode_token(token: str) -> dict:
    """Decode a bearer token issued by the portal's auth service.

    Raises ``jose.JWTError`` when the signature, algorithm or expiry is invalid.
    """
    settings = get_settings()
    return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
