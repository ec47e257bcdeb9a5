from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import requests

from . import messages
from .config import HsmConfig
from .exceptions import HsmOperationError, HsmVerificationError
from .session import HsmSession, UserTier
from .transport import HsmTransport

DEFAULT_SIGNATURE_FILE = "signature.file"

_logger = logging.getLogger("hsm_rest_client.client")


class HsmRestClient:
    """
    Client for a remote managed HSM reachable over HTTPS.

    Construction authenticates immediately; a client object only exists with a
    valid session. The session is never renewed: when the server rejects it,
    build a new client.

    Keyed operations accept an empty key label only for ``USER_OBJECT``
    sessions, whose key is implied by the session itself.

    A caller-supplied ``http_session`` is used as-is and left open by
    ``close()``; its lifetime belongs to the caller.
    """

    def __init__(
        self,
        server_address: str,
        api_key: str,
        pin: str,
        *,
        verify_tls: bool = True,
        ca_bundle: str | None = None,
        timeout: float | None = None,
        http_session: requests.Session | None = None,
    ) -> None:
        self._transport = HsmTransport(
            server_address,
            verify_tls=verify_tls,
            ca_bundle=ca_bundle,
            timeout=timeout,
            http_session=http_session,
        )
        try:
            self._session = self._authenticate(api_key, pin)
        except Exception:
            self._transport.close()
            raise

    @classmethod
    def from_config(
        cls, config: HsmConfig, *, http_session: requests.Session | None = None
    ) -> "HsmRestClient":
        return cls(
            config.server_address,
            config.api_key(),
            config.pin(),
            verify_tls=config.verify_tls,
            ca_bundle=config.ca_bundle,
            timeout=config.timeout,
            http_session=http_session,
        )

    def __enter__(self) -> "HsmRestClient":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    @property
    def session(self) -> HsmSession:
        return self._session

    @property
    def session_id(self) -> str:
        return self._session.session_id

    @property
    def tier(self) -> UserTier:
        return self._session.tier

    def close(self) -> None:
        self._transport.close()
        _logger.debug("HTTP transport closed.")

    def _authenticate(self, api_key: str, pin: str) -> HsmSession:
        _logger.info("Authenticating against %s", self._transport.base_url)
        payload = self._transport.post(
            messages.AUTH_PATH,
            messages.build_auth_request(api_key, pin),
            session_bound=False,
        )
        try:
            session = messages.parse_auth_response(payload)
        except HsmOperationError:
            _logger.warning("Authentication failed against %s", self._transport.base_url)
            raise
        _logger.info("Authenticated tier=%s", session.tier.name)
        return session

    def _call(self, operation: str, path: str, body: dict[str, Any]) -> Any:
        payload = self._transport.post(path, body)
        if not messages.response_succeeded(payload):
            _logger.warning("HSM reported failure operation=%s", operation)
            raise HsmOperationError(f"{operation} request failed.")
        return payload

    def _require_key_label(self, key_label: str) -> None:
        if self._session.tier.requires_key_label and not key_label:
            raise ValueError(
                f"A key label is required for {self._session.tier.name} sessions."
            )

    def ping(self) -> None:
        self._call("ping", messages.PING_PATH, messages.build_ping_request(self.session_id))
        _logger.debug("Ping succeeded.")

    def encrypt(self, plaintext: bytes | str, key_label: str = "") -> str:
        """Encrypt ``plaintext`` server-side; returns the ciphertext as base64."""
        self._require_key_label(key_label)
        if isinstance(plaintext, str):
            plaintext = plaintext.encode("utf-8")
        payload = self._call(
            "encrypt",
            messages.ENCRYPT_PATH,
            messages.build_encrypt_request(self.session_id, plaintext, key_label),
        )
        ciphertext = messages.response_bytes(payload)
        _logger.info(
            "Encrypted payload key_label=%s plaintext_size=%d ciphertext_size=%d",
            key_label or "<session>",
            len(plaintext),
            len(ciphertext),
        )
        return messages.encode_b64(ciphertext)

    def decrypt(self, ciphertext_b64: str, key_label: str = "") -> str:
        """
        Decrypt base64 ciphertext server-side; returns the plaintext as text.

        Bytes that are not valid UTF-8 are kept as surrogate escapes, so
        ``result.encode("utf-8", "surrogateescape")`` gives back the exact bytes.
        """
        self._require_key_label(key_label)
        ciphertext = messages.decode_b64(ciphertext_b64)
        payload = self._call(
            "decrypt",
            messages.DECRYPT_PATH,
            messages.build_decrypt_request(self.session_id, ciphertext, key_label),
        )
        plaintext = messages.response_bytes(payload)
        _logger.info(
            "Decrypted payload key_label=%s ciphertext_size=%d",
            key_label or "<session>",
            len(ciphertext),
        )
        return plaintext.decode("utf-8", errors="surrogateescape")

    def sign(
        self,
        data_path: str | Path,
        key_label: str = "",
        *,
        signature_path: str | Path = DEFAULT_SIGNATURE_FILE,
    ) -> Path:
        """
        Sign the contents of ``data_path`` and write the raw signature.

        The signature lands in ``signature_path``, by default ``signature.file``
        in the current directory. Returns the path written.
        """
        self._require_key_label(key_label)
        if not str(data_path):
            raise ValueError("Data file path is not specified.")
        data = Path(data_path).read_bytes()

        payload = self._call(
            "sign",
            messages.SIGN_PATH,
            messages.build_sign_request(self.session_id, data, key_label),
        )
        signature = messages.response_bytes(payload)

        output = Path(signature_path)
        output.write_bytes(signature)
        _logger.info(
            "Signed file key_label=%s data_size=%d signature_size=%d output=%s",
            key_label or "<session>",
            len(data),
            len(signature),
            output,
        )
        return output

    def verify(
        self, data_path: str | Path, signature_path: str | Path, key_label: str = ""
    ) -> None:
        """Raises ``HsmVerificationError`` when the server rejects the signature."""
        self._require_key_label(key_label)
        if not str(data_path) or not str(signature_path):
            raise ValueError("Both data and signature file paths are required.")
        data = Path(data_path).read_bytes()
        signature = Path(signature_path).read_bytes()

        payload = self._transport.post(
            messages.VERIFY_PATH,
            messages.build_verify_request(self.session_id, data, signature, key_label),
        )
        if not messages.response_succeeded(payload):
            _logger.warning(
                "Signature verification failed key_label=%s", key_label or "<session>"
            )
            raise HsmVerificationError("verify request failed.")
        _logger.info("Verified signature key_label=%s", key_label or "<session>")

    def random(self, length: int = 0) -> str:
        """Server-generated random bytes as base64; ``0`` means server default (32)."""
        body = messages.build_random_request(self.session_id, length)
        payload = self._call("random", messages.RANDOM_PATH, body)
        random_bytes = messages.response_bytes(payload)
        _logger.info("Generated random bytes requested=%d received=%d", length, len(random_bytes))
        return messages.encode_b64(random_bytes)

    def backup(self, file_name: str, key_label: str = "") -> None:
        """Back up a key into ``file_name`` on the server side."""
        self._require_key_label(key_label)
        if not file_name:
            raise ValueError("Backup file name is not specified.")
        self._call(
            "backup",
            messages.BACKUP_PATH,
            messages.build_backup_request(self.session_id, file_name, key_label, self.tier),
        )
        _logger.info("Backed up key_label=%s file_name=%s", key_label or "<session>", file_name)

    def restore(self, file_name: str) -> None:
        if not file_name:
            raise ValueError("Backup file name is not specified.")
        self._call(
            "restore",
            messages.RESTORE_PATH,
            messages.build_restore_request(self.session_id, file_name),
        )
        _logger.info("Restored backup file_name=%s", file_name)

    def delete(self, key_label: str = "") -> None:
        self._require_key_label(key_label)
        self._call(
            "delete",
            messages.DELETE_PATH,
            messages.build_delete_request(self.session_id, key_label),
        )
        _logger.info("Deleted key_label=%s", key_label or "<session>")

    def genkey(self, label1: str, label2: str = "") -> None:
        """
        Generate a server-side key.

        With only ``label1`` a symmetric key is created. With both labels an
        asymmetric pair is created, ``label1`` naming the public key and
        ``label2`` the private key. Baseline-tier sessions are refused by the
        server, not here.
        """
        if not label1:
            raise ValueError("A key label is required for key generation.")
        if label2:
            self._call(
                "genkey",
                messages.GENKEY_ASYMMETRIC_PATH,
                messages.build_genkey_asymmetric_request(self.session_id, label1, label2),
            )
            _logger.info(
                "Generated asymmetric key pair public_label=%s private_label=%s",
                label1,
                label2,
            )
            return
        self._call(
            "genkey",
            messages.GENKEY_SYMMETRIC_PATH,
            messages.build_genkey_symmetric_request(self.session_id, label1),
        )
        _logger.info("Generated symmetric key label=%s", label1)

    def set_iv(self, iv: str) -> None:
        """Override the server IV for the rest of this session (16 characters)."""
        body = messages.build_set_iv_request(self.session_id, iv)
        self._call("setiv", messages.SET_IV_PATH, body)
        _logger.info("IV override applied for current session.")
