from __future__ import annotations

import base64
import copy
import json
from typing import Any, Callable
from urllib.parse import urlparse

import pytest

from hsm_rest_client import HsmRestClient, UserTier

Handler = Callable[[str, dict[str, Any]], tuple[int, Any]]

SESSION_ID = "sess-0001"


def _b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


def _unb64(value: str) -> bytes:
    return base64.b64decode(value.encode("ascii"))


class StubResponse:
    def __init__(self, status_code: int, payload: Any) -> None:
        self.status_code = status_code
        self.text = payload if isinstance(payload, str) else json.dumps(payload)

    def json(self) -> Any:
        return json.loads(self.text)


class StubHttpSession:
    """Stands in for ``requests.Session``; records every POST."""

    def __init__(self, handler: Handler) -> None:
        self.handler = handler
        self.headers: dict[str, str] = {}
        self.verify: Any = True
        self.closed = False
        self.calls: list[tuple[str, dict[str, Any], Any]] = []

    def post(self, url: str, json: Any = None, timeout: Any = None) -> StubResponse:
        body = copy.deepcopy(json)
        path = urlparse(url).path
        self.calls.append((path, body, timeout))
        status, payload = self.handler(path, body)
        return StubResponse(status, payload)

    def close(self) -> None:
        self.closed = True

    @property
    def paths(self) -> list[str]:
        return [path for path, _body, _timeout in self.calls]

    def last_body(self) -> dict[str, Any]:
        return self.calls[-1][1]


def echo_server(tier: UserTier = UserTier.USER_OBJECT) -> Handler:
    """A fake HSM whose "cipher" reverses bytes, so decrypt(encrypt(p)) == p."""

    def handler(path: str, body: dict[str, Any]) -> tuple[int, Any]:
        if path == "/api/hsm/auth":
            return 200, {
                "success": True,
                "data": {"session_id": SESSION_ID, "user_type": int(tier)},
            }
        if body.get("session_id") != SESSION_ID:
            return 401, {"success": False}
        if path in ("/api/hsm/encrypt", "/api/hsm/decrypt"):
            return 200, {"success": True, "data": _b64(_unb64(body["data"])[::-1])}
        if path == "/api/hsm/sign":
            return 200, {"success": True, "data": _b64(b"SIG:" + _unb64(body["data"]))}
        if path == "/api/hsm/verify":
            expected = b"SIG:" + _unb64(body["data"])
            return 200, {"success": _unb64(body["signature"]) == expected}
        if path == "/api/hsm/rng":
            length = 32
            if "length" in body:
                length = int.from_bytes(_unb64(body["length"]), "big")
            return 200, {"success": True, "data": _b64(b"\x07" * length)}
        return 200, {"success": True, "data": None}

    return handler


@pytest.fixture
def make_client() -> Callable[..., tuple[HsmRestClient, StubHttpSession]]:
    def _make(
        tier: UserTier = UserTier.USER_OBJECT, handler: Handler | None = None
    ) -> tuple[HsmRestClient, StubHttpSession]:
        http = StubHttpSession(handler or echo_server(tier))
        client = HsmRestClient(
            "hsm.test:8443", "api-key", "123456", http_session=http  # type: ignore[arg-type]
        )
        return client, http

    return _make
