from __future__ import annotations

import logging
from typing import Any

import requests

from .exceptions import HsmSessionExpiredError

_logger = logging.getLogger("hsm_rest_client.transport")

_SESSION_REJECTED_STATUSES = {401, 403}


def build_base_url(server_address: str) -> str:
    """``host[:port]`` becomes ``https://host[:port]``; explicit schemes are kept."""
    address = server_address.strip().rstrip("/")
    if not address:
        raise ValueError("Server address must not be empty.")
    if address.startswith(("https://", "http://")):
        return address
    return f"https://{address}"


class HsmTransport:
    """
    JSON-over-HTTPS POST channel to the HSM service.

    Holds one ``requests.Session`` for connection pooling. TLS certificates are
    verified unless ``verify_tls`` is False, in which case the insecure mode is
    logged once at construction. A caller-supplied ``http_session`` stays owned
    by the caller and is not closed by ``close()``.
    """

    def __init__(
        self,
        server_address: str,
        *,
        verify_tls: bool = True,
        ca_bundle: str | None = None,
        timeout: float | None = None,
        http_session: requests.Session | None = None,
    ) -> None:
        self.base_url = build_base_url(server_address)
        self.timeout = timeout
        self._owns_session = http_session is None
        self.session = http_session if http_session is not None else requests.Session()
        if not verify_tls:
            _logger.warning(
                "TLS certificate verification is DISABLED for %s; "
                "the server identity is not checked.",
                self.base_url,
            )
            self.session.verify = False
        elif ca_bundle:
            self.session.verify = ca_bundle
        self.session.headers.update(
            {"Content-Type": "application/json", "Accept": "application/json"}
        )

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    def post(
        self, path: str, body: dict[str, Any], *, session_bound: bool = True
    ) -> Any:
        """
        POST ``body`` as JSON to ``path`` and return the decoded JSON response.

        Session-bearing calls answered with 401/403 raise
        ``HsmSessionExpiredError``. Any other status is decoded as-is, since the
        server reports failures through the ``success`` flag. Transport and JSON
        errors propagate unchanged.
        """
        url = self.base_url + path
        _logger.debug("POST %s", path)
        resp = self.session.post(url, json=body, timeout=self.timeout)
        if session_bound and resp.status_code in _SESSION_REJECTED_STATUSES:
            _logger.warning("Session rejected by server path=%s status=%d", path, resp.status_code)
            raise HsmSessionExpiredError(
                f"Session rejected by server (HTTP {resp.status_code}); re-authenticate."
            )
        return resp.json()
