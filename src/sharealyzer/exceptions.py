"""Custom exception hierarchy for sharealyzer."""

from __future__ import annotations

from pathlib import Path


class SharealyzerError(Exception):
    """Base exception for all sharealyzer errors."""


class ConfigError(SharealyzerError):
    """Invalid or missing configuration."""


class TransportError(SharealyzerError):
    """HTTP-level failure (network, 5xx, invalid JSON).

    These are considered transient: the live source retries them with a
    fixed backoff.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class ProviderApiError(TransportError):
    """The provider answered with an error body.

    The provider's error handling is inconsistent, so the parsed fields are
    best effort only.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
        error: str = "",
        path: str = "",
    ) -> None:
        self.error = error
        self.path = path
        super().__init__(message, status_code=status_code, endpoint=endpoint)


class AuthenticationRequiredError(ProviderApiError):
    """The provider rejected a data request with a 4xx status.

    The live source reacts by re-authenticating before retrying the same
    request.
    """


class AuthenticationError(SharealyzerError):
    """Login or re-authentication failed."""


class SourceError(SharealyzerError):
    """A snapshot source can not produce any more snapshots."""


class SourceExhaustedError(SourceError):
    """All retries for a fleet request were used up."""

    def __init__(self, message: str, *, attempts: int, last_error: BaseException | None = None) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(message)


class RecordDecodeError(SharealyzerError):
    """An archived snapshot record could not be decoded."""

    def __init__(self, message: str, *, path: Path | str) -> None:
        self.path = Path(path)
        super().__init__(message)


class InvariantViolationError(SharealyzerError):
    """Internal bookkeeping is inconsistent.

    Raised by the trip tracker when its state contradicts itself (for example
    a second open trip for the same vehicle). This always indicates a bug and
    is never corrected silently.
    """
