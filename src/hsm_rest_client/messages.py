"""
Request builders and response decoders for the HSM REST API.

Every request is a flat JSON object. Binary fields travel as standard base64
strings. Every response is a JSON object carrying a ``success`` boolean and an
operation-specific ``data`` field.
"""

from __future__ import annotations

import base64
import binascii
import struct
from typing import Any, Mapping

from .exceptions import HsmAuthenticationError, HsmOperationError
from .session import HsmSession, UserTier

API_PREFIX = "/api/hsm"

AUTH_PATH = f"{API_PREFIX}/auth"
PING_PATH = f"{API_PREFIX}/ping"
ENCRYPT_PATH = f"{API_PREFIX}/encrypt"
DECRYPT_PATH = f"{API_PREFIX}/decrypt"
SIGN_PATH = f"{API_PREFIX}/sign"
VERIFY_PATH = f"{API_PREFIX}/verify"
RANDOM_PATH = f"{API_PREFIX}/rng"
BACKUP_PATH = f"{API_PREFIX}/backup"
RESTORE_PATH = f"{API_PREFIX}/restore"
DELETE_PATH = f"{API_PREFIX}/delete"
GENKEY_SYMMETRIC_PATH = f"{API_PREFIX}/genkey/symmetric"
GENKEY_ASYMMETRIC_PATH = f"{API_PREFIX}/genkey/asymmetric"
SET_IV_PATH = f"{API_PREFIX}/setiv"

MAX_RANDOM_LENGTH = 0xFFFF
IV_LENGTH = 16


# ----- Low-level helpers -----
def encode_b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


def decode_b64(value: str | bytes) -> bytes:
    """Strict standard-alphabet decode; raises ``binascii.Error`` on bad input."""
    if isinstance(value, str):
        try:
            value = value.encode("ascii")
        except UnicodeEncodeError as exc:
            raise binascii.Error("Non-ASCII character in base64 input.") from exc
    return base64.b64decode(value, validate=True)


def encode_length(length: int) -> bytes:
    """Encode a random-generation length as a 2-byte big-endian field."""
    if not 0 <= length <= MAX_RANDOM_LENGTH:
        raise ValueError(
            f"Random length must be between 0 and {MAX_RANDOM_LENGTH}, got: {length}"
        )
    return struct.pack(">H", length)


def _session_request(session_id: str, **fields: Any) -> dict[str, Any]:
    request: dict[str, Any] = {"session_id": session_id}
    request.update(fields)
    return request


# ----- Request builders -----
def build_auth_request(api_key: str, pin: str) -> dict[str, Any]:
    return {"api_key": api_key, "pin": pin}


def build_ping_request(session_id: str) -> dict[str, Any]:
    return _session_request(session_id)


def build_encrypt_request(session_id: str, plaintext: bytes, key_label: str) -> dict[str, Any]:
    return _session_request(session_id, data=encode_b64(plaintext), key_label=key_label)


def build_decrypt_request(session_id: str, ciphertext: bytes, key_label: str) -> dict[str, Any]:
    return _session_request(session_id, data=encode_b64(ciphertext), key_label=key_label)


def build_sign_request(session_id: str, data: bytes, key_label: str) -> dict[str, Any]:
    return _session_request(session_id, data=encode_b64(data), key_label=key_label)


def build_verify_request(
    session_id: str, data: bytes, signature: bytes, key_label: str
) -> dict[str, Any]:
    return _session_request(
        session_id,
        data=encode_b64(data),
        signature=encode_b64(signature),
        key_label=key_label,
    )


def build_random_request(session_id: str, length: int = 0) -> dict[str, Any]:
    """A zero length leaves the field out so the server applies its default (32)."""
    encoded = encode_length(length)
    if length == 0:
        return _session_request(session_id)
    return _session_request(session_id, length=encode_b64(encoded))


def build_backup_request(
    session_id: str, file_name: str, key_label: str, tier: UserTier
) -> dict[str, Any]:
    return _session_request(
        session_id,
        file_name=encode_b64(file_name.encode("utf-8")),
        key_label=key_label,
        user_type=int(tier),
    )


def build_restore_request(session_id: str, file_name: str) -> dict[str, Any]:
    return _session_request(session_id, file_name=encode_b64(file_name.encode("utf-8")))


def build_delete_request(session_id: str, key_label: str) -> dict[str, Any]:
    return _session_request(session_id, key_label=key_label)


def build_genkey_symmetric_request(session_id: str, key_label: str) -> dict[str, Any]:
    return _session_request(session_id, key_label=key_label)


def build_genkey_asymmetric_request(
    session_id: str, public_key_label: str, private_key_label: str
) -> dict[str, Any]:
    return _session_request(
        session_id,
        public_key_label=public_key_label,
        private_key_label=private_key_label,
    )


def build_set_iv_request(session_id: str, iv: str) -> dict[str, Any]:
    if len(iv) != IV_LENGTH:
        raise ValueError(f"IV must be {IV_LENGTH} characters, got: {len(iv)}")
    return _session_request(session_id, iv=encode_b64(iv.encode("utf-8")))


# ----- Response decoders -----
def _as_object(payload: Any) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise HsmOperationError("Response payload must be a JSON object.")
    return payload


def response_succeeded(payload: Any) -> bool:
    return _as_object(payload).get("success") is True


def response_bytes(payload: Any) -> bytes:
    """
    Decode the base64 ``data`` field of a successful response.

    A ``null`` field is an empty payload; a missing one is a malformed response.
    """
    response = _as_object(payload)
    if "data" not in response:
        raise HsmOperationError("Response is missing its data field.")
    data = response["data"]
    if data is None:
        return b""
    if not isinstance(data, str):
        raise HsmOperationError("Response data must be a base64 string.")
    return decode_b64(data)


def parse_auth_response(payload: Any) -> HsmSession:
    if not response_succeeded(payload):
        raise HsmAuthenticationError("Authentication request was refused by the server.")

    data = _as_object(payload).get("data")
    if not isinstance(data, Mapping):
        raise HsmOperationError("Authentication response is missing its data object.")

    session_id = data.get("session_id")
    if not isinstance(session_id, str) or not session_id:
        raise HsmOperationError("Authentication response is missing session_id.")

    raw_tier = data.get("user_type")
    if isinstance(raw_tier, bool) or not isinstance(raw_tier, int):
        raise HsmOperationError(f"Authentication response has invalid user_type: {raw_tier!r}")
    try:
        tier = UserTier(raw_tier)
    except ValueError as exc:
        raise HsmOperationError(f"Unknown user_type in authentication response: {raw_tier}") from exc

    return HsmSession(session_id=session_id, tier=tier)
