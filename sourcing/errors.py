# sourcing/errors.py

"""Exception taxonomy for the sourcing pipeline."""


class SourcingError(Exception):
    """Base class for every error raised by the sourcing pipeline."""


class ConfigurationError(SourcingError):
    """Required configuration is missing at construction time."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(
            "Missing required configuration: " + ", ".join(missing)
        )


# ── Credential lifecycle ─────────────────────────────────


class CredentialError(SourcingError):
    """Fatal to authenticated calls until the app is re-authorised."""


class AuthExchangeError(CredentialError):
    """The token endpoint rejected a code or refresh-token exchange."""


class NoCredentialError(CredentialError):
    """No credential has ever been stored."""


class RefreshUnavailableError(CredentialError):
    """The stored credential is expired and has no refresh token."""


# ── Transport / platform ─────────────────────────────────


class TransportError(SourcingError):
    """Network or HTTP-layer failure."""

    def __init__(
        self, message: str, status_code: int | None = None,
    ) -> None:
        self.status_code = status_code
        super().__init__(message)


class PlatformApplicationError(SourcingError):
    """The platform answered with an ``error_response`` envelope."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        sub_code: str | None = None,
    ) -> None:
        self.code = code
        self.sub_code = sub_code
        super().__init__(message)


# ── Extraction ───────────────────────────────────────────


class ExtractionFailure(SourcingError):
    """A retrieval strategy produced no usable product record."""

    def __init__(self, strategy: str, reason: str) -> None:
        self.strategy = strategy
        self.reason = reason
        super().__init__(f"[{strategy}] {reason}")


class UnsupportedSourceError(SourcingError, ValueError):
    """URL is malformed or not on one of the supported platforms."""
