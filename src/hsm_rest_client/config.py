from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .exceptions import HsmConfigurationError

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_bool(value: str, name: str) -> bool:
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise HsmConfigurationError(f"{name} must be a boolean, got: {value}")


@dataclass(frozen=True)
class HsmConfig:
    """Runtime configuration for the remote HSM service."""

    server_address: str
    api_key_env: str = "HSM_API_KEY"
    pin_env: str = "HSM_PIN"
    verify_tls: bool = True
    ca_bundle: str | None = None
    timeout: float | None = None

    @classmethod
    def from_env(cls) -> "HsmConfig":
        server_address = os.environ.get("HSM_SERVER_ADDRESS", "").strip()
        api_key_env = os.environ.get("HSM_API_KEY_ENV", "HSM_API_KEY")
        pin_env = os.environ.get("HSM_PIN_ENV", "HSM_PIN")
        verify_raw = os.environ.get("HSM_VERIFY_TLS")
        ca_bundle = os.environ.get("HSM_CA_BUNDLE") or None
        timeout_raw = os.environ.get("HSM_TIMEOUT")

        if not server_address:
            raise HsmConfigurationError("HSM_SERVER_ADDRESS is required.")

        verify_tls = True
        if verify_raw:
            verify_tls = _parse_bool(verify_raw, "HSM_VERIFY_TLS")

        if ca_bundle and not Path(ca_bundle).exists():
            raise HsmConfigurationError(f"CA bundle path does not exist: {ca_bundle}")

        timeout: float | None = None
        if timeout_raw:
            try:
                timeout = float(timeout_raw)
            except ValueError as exc:
                raise HsmConfigurationError(
                    f"HSM_TIMEOUT must be a number, got: {timeout_raw}"
                ) from exc
            if timeout <= 0:
                raise HsmConfigurationError(f"HSM_TIMEOUT must be > 0, got: {timeout_raw}")

        return cls(
            server_address=server_address,
            api_key_env=api_key_env,
            pin_env=pin_env,
            verify_tls=verify_tls,
            ca_bundle=ca_bundle,
            timeout=timeout,
        )

    def api_key(self) -> str:
        api_key = os.environ.get(self.api_key_env)
        if not api_key:
            raise HsmConfigurationError(f"{self.api_key_env} is required.")
        return api_key

    def pin(self) -> str:
        pin = os.environ.get(self.pin_env)
        if not pin:
            raise HsmConfigurationError(f"{self.pin_env} is required.")
        return pin
