"""Klefki key exchange client.

This module defines a small client wrapper around the exchange API so
that the two parties of an exchange do not have to deal with routes,
field names and error bodies themselves:

* :meth:`KlefkiClient.initiate` – Alice starts an exchange with her
  public key and receives the exchange id.
* :meth:`KlefkiClient.join` – Bob submits his public key for an
  exchange id and receives Alice's key.
* :meth:`KlefkiClient.finish` – Alice collects Bob's key, which also
  deletes the exchange on the server.

Every method returns a tuple ``(data, error)``.  On success ``error``
is ``None``; on failure ``data`` is ``None`` and ``error`` is a
dictionary with the keys ``status_code``, ``code`` and ``message``.
``code`` is the server's stable error code (``not_found``,
``already_set``, ``not_ready``, ...) or ``None`` for transport
failures.

The client uses the ``requests`` library.  Authentication is done
with an access token sent in the ``Authorization`` header.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

import requests
from requests.utils import quote

logger = logging.getLogger(__name__)

Error = Dict[str, Any]


class KlefkiClient:
    """Client for the exchange endpoints of a Klefki server."""

    def __init__(
        self,
        base_url: str,
        *,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        api_prefix: str = "/api/v1",
        timeout: float = 15,
    ) -> None:
        """Initialise the API client.

        Args:
            base_url: Base URL of the server, e.g. ``https://klefki.example.com``.
            api_key: Optional access token.  If set, an ``Authorization``
                header with the value ``Bearer <api_key>`` is included in
                all requests.
            session: Optional requests session.  If not supplied a
                session will be created automatically.
            api_prefix: Path prefix of the versioned API.
            timeout: Per-request timeout in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.session = session or requests.Session()
        self.api_prefix = api_prefix.rstrip("/")
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Low level HTTP helpers
    # ------------------------------------------------------------------
    def _request(
        self, method: str, path: str, *, json_body: Any | None = None
    ) -> Tuple[Optional[Any], Optional[Error]]:
        """Perform an HTTP request to the API.

        Args:
            method: HTTP method (``POST``, ``PATCH`` or ``DELETE``).
            path: Path relative to the API prefix (e.g. ``/exchanges``).
            json_body: JSON body to send with the request.
        Returns:
            A tuple ``(data, error)`` as described in the module docstring.
        """
        url = f"{self.base_url}{self.api_prefix}{path}"
        headers: Dict[str, str] = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        try:
            logger.debug("Sending %s request to %s", method, url)
            response = self.session.request(
                method=method,
                url=url,
                json=json_body,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("API request failed: %s", exc)
            return None, {"status_code": None, "code": None, "message": str(exc)}

        if response.status_code >= 400:
            code = None
            message = ""
            try:
                err_json = response.json()
                err = err_json.get("error") if isinstance(err_json, dict) else None
                if isinstance(err, dict):
                    code = err.get("code")
                    message = err.get("message") or ""
                elif isinstance(err_json, dict):
                    message = err_json.get("detail") or str(err_json)
            except ValueError:
                message = response.text
            if not message:
                message = f"HTTP {response.status_code}"
            logger.error("API request failed (%s): %s", response.status_code, message)
            return None, {"status_code": response.status_code, "code": code, "message": message}

        if response.content:
            return response.json(), None
        return None, None

    # ------------------------------------------------------------------
    # Exchange operations
    # ------------------------------------------------------------------
    def initiate(self, key_a: str) -> Tuple[Optional[str], Optional[Error]]:
        """Start an exchange with the first party's base64 public key.

        Returns:
            A tuple ``(exchange_id, error)``.
        """
        data, error = self._request("POST", "/exchanges", json_body={"keyA": key_a})
        if error:
            return None, error
        return (data or {}).get("exchangeId"), None

    def join(self, exchange_id: str, key_b: str) -> Tuple[Optional[str], Optional[Error]]:
        """Submit the second party's key; returns ``(key_a, error)``."""
        data, error = self._request(
            "PATCH", f"/exchanges/{quote(exchange_id, safe='')}", json_body={"keyB": key_b}
        )
        if error:
            return None, error
        return (data or {}).get("keyA"), None

    def finish(self, exchange_id: str) -> Tuple[Optional[str], Optional[Error]]:
        """Collect the second party's key and close the exchange.

        A ``not_ready`` error means the second party has not joined yet;
        the call may be repeated later.

        Returns:
            A tuple ``(key_b, error)``.
        """
        data, error = self._request("DELETE", f"/exchanges/{quote(exchange_id, safe='')}")
        if error:
            return None, error
        return (data or {}).get("keyB"), None
