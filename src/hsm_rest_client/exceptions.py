class HsmClientError(RuntimeError):
    """Base client error."""


class HsmConfigurationError(HsmClientError):
    """Configuration is invalid or incomplete."""


class HsmOperationError(HsmClientError):
    """An HSM operation failed."""


class HsmAuthenticationError(HsmOperationError):
    """The server refused the API key / PIN pair."""


class HsmVerificationError(HsmOperationError):
    """The server reported the signature as invalid."""


class HsmSessionExpiredError(HsmOperationError):
    """The server no longer accepts the session; build a new client."""
