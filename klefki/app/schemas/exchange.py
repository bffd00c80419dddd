"""
Pydantic schemas for exchange payloads.

Key material is opaque to the service: it is accepted as base64 text,
checked only for being well formed, and handed back byte for byte.
Field names on the wire are camelCase (``keyA``, ``keyB``,
``exchangeId``); Python code uses the snake_case attribute names.
"""

import base64
import binascii

from pydantic import BaseModel, Field, validator

from ..core.config import settings


def validate_key_material(v: str) -> str:
    """Strip and check a base64 key blob.

    Both the standard and the URL‑safe alphabets are accepted, with or
    without padding.  The value is returned stripped but otherwise as
    submitted.
    """
    v = v.strip()
    if not v:
        raise ValueError("Key must not be empty")
    if len(v) > settings.max_key_length:
        raise ValueError(f"Key must be {settings.max_key_length} characters or fewer")
    urlsafe = "-" in v or "_" in v
    if urlsafe and ("+" in v or "/" in v):
        raise ValueError("Key must use a single base64 alphabet")
    altchars = b"-_" if urlsafe else None
    padded = v + "=" * (-len(v) % 4)
    try:
        base64.b64decode(padded, altchars=altchars, validate=True)
    except (binascii.Error, ValueError):
        raise ValueError("Key must be base64 encoded")
    return v


class ExchangeInitiate(BaseModel):
    """Request body for starting an exchange with the first party's key."""

    key_a: str = Field(..., alias="keyA", description="First party's public key, base64")

    model_config = {"populate_by_name": True}

    @validator("key_a")
    def check_key_a(cls, v: str) -> str:
        return validate_key_material(v)


class ExchangeJoin(BaseModel):
    """Request body for the second party joining an exchange."""

    key_b: str = Field(..., alias="keyB", description="Second party's public key, base64")

    model_config = {"populate_by_name": True}

    @validator("key_b")
    def check_key_b(cls, v: str) -> str:
        return validate_key_material(v)


class ExchangeCreated(BaseModel):
    exchange_id: str = Field(..., alias="exchangeId")

    model_config = {"populate_by_name": True}


class KeyAResponse(BaseModel):
    key_a: str = Field(..., alias="keyA")

    model_config = {"populate_by_name": True}


class KeyBResponse(BaseModel):
    key_b: str = Field(..., alias="keyB")

    model_config = {"populate_by_name": True}
