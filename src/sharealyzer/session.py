"""Session state management for authenticated API calls."""

from __future__ import annotations

import time

from pydantic import BaseModel, ConfigDict, Field

from sharealyzer._constants import DEFAULT_TOKEN_REFRESH_INTERVAL


class Session(BaseModel):
    """Token pair after a successful login or refresh.

    Parameters
    ----------
    access_token : str
        Sent as ``Authorization`` header with every data request.
    refresh_token : str
        Exchanged for a new token pair.
    refreshed_at : float
        Monotonic timestamp (``time.monotonic()``) of the last login or
        refresh. Defaults to *now*.
    refresh_interval : float
        Seconds after which the token pair should be refreshed.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
    )

    access_token: str = Field(min_length=1)
    refresh_token: str = Field(min_length=1)
    refreshed_at: float = Field(default_factory=time.monotonic)
    refresh_interval: float = DEFAULT_TOKEN_REFRESH_INTERVAL

    @property
    def refresh_due(self) -> bool:
        """Whether the token pair is older than the refresh interval."""
        return (time.monotonic() - self.refreshed_at) >= self.refresh_interval

    @property
    def age(self) -> float:
        """Seconds since the last login or refresh."""
        return time.monotonic() - self.refreshed_at
