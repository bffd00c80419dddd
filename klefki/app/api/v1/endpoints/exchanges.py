"""
Exchange endpoints for API v1.

Three routes implement the exchange protocol:

* ``POST /exchanges`` – Alice starts an exchange with ``keyA`` and
  receives the ``exchangeId``.
* ``PATCH /exchanges/{exchangeId}`` – Bob submits ``keyB`` and
  receives ``keyA``.
* ``DELETE /exchanges/{exchangeId}`` – Alice collects ``keyB``; the
  exchange is deleted in the same step.

All routes require an authenticated caller.  Route functions are
plain ``def`` so FastAPI runs them in its worker thread pool; the
blocking SQLite calls then never stall the event loop and requests are
served in parallel.  Domain errors raised by the service are rendered
by the handlers registered in ``main``.
"""

from typing import Any, Dict
from uuid import UUID

from fastapi import APIRouter, Depends, status

from klefki.app.core.security import get_current_party
from klefki.app.schemas.exchange import (
    ExchangeCreated,
    ExchangeInitiate,
    ExchangeJoin,
    KeyAResponse,
    KeyBResponse,
)
from klefki.app.services.exchange_service import ExchangeService, get_exchange_service

router = APIRouter()


@router.post("", response_model=ExchangeCreated, status_code=status.HTTP_201_CREATED)
def initiate_exchange(
    body: ExchangeInitiate,
    current_party: Dict[str, Any] = Depends(get_current_party),
    service: ExchangeService = Depends(get_exchange_service),
) -> ExchangeCreated:
    """Start an exchange with the first party's public key."""
    exchange_id = service.initiate(body.key_a)
    return ExchangeCreated(exchange_id=exchange_id)


@router.patch("/{exchange_id}", response_model=KeyAResponse)
def join_exchange(
    body: ExchangeJoin,
    exchange_id: UUID,
    current_party: Dict[str, Any] = Depends(get_current_party),
    service: ExchangeService = Depends(get_exchange_service),
) -> KeyAResponse:
    """Submit the second party's key and return the first party's key.

    Returns HTTP 404 for unknown or closed exchanges and HTTP 409 when
    the exchange already has a second key.
    """
    key_a = service.join(str(exchange_id), body.key_b)
    return KeyAResponse(key_a=key_a)


@router.delete("/{exchange_id}", response_model=KeyBResponse)
def finish_exchange(
    exchange_id: UUID,
    current_party: Dict[str, Any] = Depends(get_current_party),
    service: ExchangeService = Depends(get_exchange_service),
) -> KeyBResponse:
    """Return the second party's key and delete the exchange.

    Returns HTTP 425 while the second key is missing and HTTP 404 for
    unknown or closed exchanges.
    """
    key_b = service.finish(str(exchange_id))
    return KeyBResponse(key_b=key_b)
