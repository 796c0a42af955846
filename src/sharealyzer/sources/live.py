"""Live polling source."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import datetime

from sharealyzer.config import PollingConfig
from sharealyzer.exceptions import (
    AuthenticationError,
    AuthenticationRequiredError,
    SourceExhaustedError,
    TransportError,
)
from sharealyzer.models.snapshot import Snapshot
from sharealyzer.sources.base import FleetClient, wait_or_stop

_logger = logging.getLogger(__name__)


class LiveSource:
    """Polls the provider for the current fleet state.

    The first request is sent immediately. The next one starts
    ``polling.interval`` seconds after the previous fetch (including its
    retries) has completed, so only one fetch is ever in flight.

    Failure handling per fetch:

    * :class:`AuthenticationRequiredError` (4xx): re-authenticate through
      *code_provider*, at most ``polling.max_auth_attempts`` logins, then
      send the same request again.
    * :class:`TransportError` (network, 5xx, unreadable body): wait
      ``polling.retry_backoff`` seconds and try again, giving up after
      ``polling.max_retries`` failed attempts.

    Giving up raises out of :meth:`snapshots`; a tick is never skipped
    silently.
    """

    def __init__(
        self,
        client: FleetClient,
        code_provider: Callable[[], Awaitable[str]],
        polling: PollingConfig | None = None,
        *,
        name: str = "live",
    ) -> None:
        self._client = client
        self._code_provider = code_provider
        self._polling = polling or PollingConfig()
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @property
    def polling(self) -> PollingConfig:
        return self._polling

    async def snapshots(self, stop: asyncio.Event) -> AsyncIterator[Snapshot]:
        last_taken_at: datetime | None = None
        while not stop.is_set():
            snapshot = await self.fetch()
            if last_taken_at is not None and snapshot.taken_at < last_taken_at:
                # Wall clock went backwards, keep the stream ordered.
                _logger.warning(
                    "Clock moved backwards (%s < %s), clamping snapshot time",
                    snapshot.taken_at.isoformat(),
                    last_taken_at.isoformat(),
                )
                snapshot = snapshot.model_copy(update={"taken_at": last_taken_at})
            last_taken_at = snapshot.taken_at
            yield snapshot
            if await wait_or_stop(stop, self._polling.interval):
                break
        _logger.debug("Live source %s stopped", self._name)

    async def fetch(self) -> Snapshot:
        """Fetch one snapshot, retrying and re-authenticating as needed.

        Raises
        ------
        SourceExhaustedError
            Transient failures exceeded ``max_retries``.
        AuthenticationError
            No login succeeded within ``max_auth_attempts``.
        """
        failures = 0
        logins = 0
        while True:
            try:
                return await self._client.fetch_current_fleet()
            except AuthenticationRequiredError as exc:
                _logger.warning("Provider requires authentication: %s", exc)
                logins = await self._reauthenticate(logins, exc)
            except TransportError as exc:
                failures += 1
                if failures >= self._polling.max_retries:
                    raise SourceExhaustedError(
                        f"Fleet request failed {failures} times, giving up: {exc}",
                        attempts=failures,
                        last_error=exc,
                    ) from exc
                _logger.warning(
                    "Fleet request failed (%d/%d), retrying in %.1f s: %s",
                    failures,
                    self._polling.max_retries,
                    self._polling.retry_backoff,
                    exc,
                )
                await asyncio.sleep(self._polling.retry_backoff)

    async def _reauthenticate(self, logins: int, cause: BaseException) -> int:
        """Log in again, returning the updated login counter for this fetch."""
        last_error: BaseException = cause
        while logins < self._polling.max_auth_attempts:
            logins += 1
            try:
                await self._client.reauthenticate(self._code_provider)
            except AuthenticationError as exc:
                _logger.warning(
                    "Re-authentication attempt %d/%d failed: %s",
                    logins,
                    self._polling.max_auth_attempts,
                    exc,
                )
                last_error = exc
                continue
            _logger.info("Re-authenticated with provider")
            return logins
        raise AuthenticationError(
            f"Failed to authenticate after {logins} attempts"
        ) from last_error
