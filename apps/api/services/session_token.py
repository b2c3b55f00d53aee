"""Verification of bearer session tokens issued by the sign-in service."""

from typing import Any, Dict

from jose import JWTError, jwt

from config import settings


SESSION_TOKEN_TYPE = "sfh_session"


def decode_session_token(token: str) -> Dict[str, Any]:
    """Verify signature, expiry, token type and subject; raise ValueError otherwise."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as exc:
        raise ValueError("Invalid or expired session token.") from exc

    if str(payload.get("type", "")).strip() != SESSION_TOKEN_TYPE:
        raise ValueError("Invalid session token type.")
    if not str(payload.get("sub", "")).strip():
        raise ValueError("Session token missing subject.")
    return payload
