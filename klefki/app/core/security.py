"""
JWT authentication for the exchange endpoints.

This module implements a lightweight JSON Web Token (JWT) mechanism
using HMAC‑SHA256 signatures and base64url encoding.  Tokens embed
arbitrary claims, an expiration timestamp (``exp``) and an audience
(``aud``).  The service only accepts tokens minted for its own
audience, which lets one signing key be shared by several services
without a token for one of them unlocking another.

Callers present the token either in the ``Authorization`` header as
``Bearer <token>`` or in a cookie named after the audience, which is
how browser clients authenticate.
"""

import base64
import hashlib
import hmac
import json
import time
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import settings


def _b64_url_encode(data: bytes) -> str:
    """Base64‑url encode bytes without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("utf-8")


def _b64_url_decode(data: str) -> bytes:
    """Decode base64‑url encoded string, adding padding if necessary."""
    padding = '=' * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _sign(message: bytes, secret: str) -> bytes:
    """Compute HMAC‑SHA256 signature of a message using the given secret."""
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()


def create_access_token(
    data: Dict[str, Any],
    expires_delta: Optional[int] = None,
    audience: Optional[str] = None,
) -> str:
    """Create a signed JWT token with the given payload.

    The payload is extended with an ``exp`` field (UNIX timestamp) and,
    unless the caller already set one, an ``aud`` field.  The token is a
    string of the form ``header.payload.signature``, where each part is
    base64url encoded.

    Parameters
    ----------
    data : dict
        Claims to embed in the token (e.g. {"sub": "alice"}).
    expires_delta : Optional[int]
        Lifetime of the token in seconds.  Defaults to
        ``settings.access_token_expire_minutes * 60``.  Negative values
        produce an already expired token.
    audience : Optional[str]
        Audience claim.  Defaults to ``settings.jwt_audience``.

    Returns
    -------
    str
        A signed JWT token.
    """
    to_encode = data.copy()
    exp_seconds = expires_delta if expires_delta is not None else settings.access_token_expire_minutes * 60
    to_encode["exp"] = int(time.time()) + exp_seconds
    to_encode.setdefault("aud", audience or settings.jwt_audience)
    header = {"alg": "HS256", "typ": "JWT"}
    header_b64 = _b64_url_encode(json.dumps(header, separators=(',', ':')).encode("utf-8"))
    payload_b64 = _b64_url_encode(json.dumps(to_encode, separators=(',', ':')).encode("utf-8"))
    signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
    signature = _sign(signing_input, settings.secret_key)
    signature_b64 = _b64_url_encode(signature)
    return f"{header_b64}.{payload_b64}.{signature_b64}"


def _audience_matches(claim: Any, audience: str) -> bool:
    if isinstance(claim, str):
        return claim == audience
    if isinstance(claim, list):
        return audience in claim
    return False


def decode_access_token(token: str, audience: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """Verify and decode a JWT token.

    Verifies the HMAC signature, the ``exp`` field and the ``aud``
    field.  Returns the payload dictionary on success and ``None`` for
    any malformed, forged, expired or foreign-audience token.
    """
    audience = audience or settings.jwt_audience
    try:
        parts = token.split('.')
        if len(parts) != 3:
            return None
        header_b64, payload_b64, signature_b64 = parts
        header = json.loads(_b64_url_decode(header_b64).decode("utf-8"))
        if header.get("alg") != settings.algorithm:
            return None
        signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
        expected_sig = _sign(signing_input, settings.secret_key)
        actual_sig = _b64_url_decode(signature_b64)
        # Constant‑time comparison to prevent timing attacks
        if not hmac.compare_digest(expected_sig, actual_sig):
            return None
        data = json.loads(_b64_url_decode(payload_b64).decode("utf-8"))
        if not isinstance(data, dict):
            return None
        if data.get("exp") is None or int(data["exp"]) < int(time.time()):
            return None
        if not _audience_matches(data.get("aud"), audience):
            return None
        return data
    except (ValueError, TypeError, AttributeError):
        return None


security = HTTPBearer(auto_error=False)


def get_current_party(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Dict[str, Any]:
    """Dependency that authenticates the caller of an exchange operation.

    The bearer token takes precedence; the audience cookie is used when
    no Authorization header is sent.  Raises HTTP 401 when no token is
    present or the token does not verify.  When authentication is
    disabled via ``AUTH_ENABLED=false`` an anonymous payload is
    returned.
    """
    if not settings.auth_enabled:
        return {"sub": "anonymous"}
    token = credentials.credentials if credentials is not None else request.cookies.get(settings.jwt_audience)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    payload = decode_access_token(token)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return payload
