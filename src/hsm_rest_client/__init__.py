"""REST client for a remote managed HSM service."""

from .client import DEFAULT_SIGNATURE_FILE, HsmRestClient
from .config import HsmConfig
from .exceptions import (
    HsmAuthenticationError,
    HsmClientError,
    HsmConfigurationError,
    HsmOperationError,
    HsmSessionExpiredError,
    HsmVerificationError,
)
from .logging_utils import configure_logging
from .session import BASELINE_TIER, HsmSession, UserTier

__all__ = [
    "BASELINE_TIER",
    "DEFAULT_SIGNATURE_FILE",
    "HsmAuthenticationError",
    "HsmClientError",
    "HsmConfig",
    "HsmConfigurationError",
    "HsmOperationError",
    "HsmRestClient",
    "HsmSession",
    "HsmSessionExpiredError",
    "HsmVerificationError",
    "UserTier",
    "configure_logging",
]
