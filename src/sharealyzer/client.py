"""High-level async client for the circ fleet API."""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any

import aiohttp
from pydantic import ValidationError

from sharealyzer._api import auth as _auth_api
from sharealyzer._api import devices as _devices_api
from sharealyzer._constants import DEFAULT_PROVIDER
from sharealyzer._transport import JsonTransport, Transport
from sharealyzer.config import CircConfig
from sharealyzer.exceptions import (
    AuthenticationError,
    AuthenticationRequiredError,
    SharealyzerError,
    TransportError,
)
from sharealyzer.models.circ import CircScooter
from sharealyzer.models.snapshot import Snapshot
from sharealyzer.models.vehicle import Vehicle
from sharealyzer.session import Session
from sharealyzer.token_store import FileTokenStore, MemoryTokenStore, TokenStore

_logger = logging.getLogger(__name__)

#: Async callback returning the one-time code sent by SMS.
CodeProvider = Callable[[], Awaitable[str]]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class CircClient:
    """Async client for the circ scooter API.

    Usage::

        async with CircClient(config) as client:
            await client.login(ask_for_code)
            snapshot = await client.fetch_current_fleet()
    """

    def __init__(
        self,
        config: CircConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        token_store: TokenStore | None = None,
        clock: Callable[[], datetime] = _utcnow,
        provider: str = DEFAULT_PROVIDER,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._external_transport = transport is not None
        self._transport = transport
        if token_store is None:
            token_store = FileTokenStore(config.token_path) if config.token_path else MemoryTokenStore()
        self._token_store = token_store
        self._clock = clock
        self._provider = provider
        self._session: Session | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> CircClient:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = JsonTransport(self._config, self._http_session)
        self._restore_session()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        if not self._external_transport:
            self._transport = None

    @property
    def config(self) -> CircConfig:
        return self._config

    @property
    def provider(self) -> str:
        return self._provider

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def _restore_session(self) -> None:
        tokens = self._token_store.load()
        if tokens is None:
            return
        access_token, refresh_token = tokens
        # Stored tokens are of unknown age, refresh them before first use.
        self._session = Session(
            access_token=access_token,
            refresh_token=refresh_token,
            refreshed_at=time.monotonic() - self._config.token_refresh_interval,
            refresh_interval=self._config.token_refresh_interval,
        )
        _logger.debug("Restored tokens from store")

    def _set_session(self, session: Session) -> None:
        self._session = session
        self._token_store.store(session.access_token, session.refresh_token)

    async def login(self, code_provider: CodeProvider) -> None:
        """Authenticate by phone number and SMS one-time code.

        Raises
        ------
        AuthenticationError
            The verification could not be started or the code was rejected.
        """
        transport = self._require_transport()
        await _auth_api.start_phone_verification(transport, self._config)
        code = await code_provider()
        self._set_session(await _auth_api.verify_phone_code(transport, self._config, code))

    async def reauthenticate(self, code_provider: CodeProvider) -> None:
        """Drop the current tokens and log in again.

        Every failure, including network errors during the handshake, is
        reported as :class:`AuthenticationError`.
        """
        self.invalidate_session()
        try:
            await self.login(code_provider)
        except AuthenticationError:
            raise
        except TransportError as exc:
            raise AuthenticationError(f"Re-authentication failed: {exc}") from exc

    def invalidate_session(self) -> None:
        """Force session invalidation (the next request needs a login)."""
        self._session = None

    async def _ensure_fresh_tokens(self) -> Session:
        if self._session is None:
            raise AuthenticationRequiredError("Not logged in", endpoint="")
        if self._session.refresh_due:
            transport = self._require_transport()
            self._set_session(await _auth_api.refresh_tokens(transport, self._config, self._session))
        return self._session

    # ------------------------------------------------------------------
    # Fleet
    # ------------------------------------------------------------------

    def _accept(self, scooter: CircScooter) -> bool:
        return self._config.zone is None or scooter.zone_identifier == self._config.zone

    async def fetch_current_fleet(self) -> Snapshot:
        """Request the current fleet state as one :class:`Snapshot`.

        The snapshot is stamped when the response has arrived.

        Raises
        ------
        AuthenticationRequiredError
            No valid session, or the provider rejected the tokens.
        TransportError
            Network failure, server error or an unreadable response.
        """
        session = await self._ensure_fresh_tokens()
        scooters = await _devices_api.fetch_devices(self._require_transport(), self._config.bounding_box, session)
        taken_at = self._clock()
        vehicles: list[Vehicle] = []
        outside = 0
        for scooter in scooters:
            if not self._accept(scooter):
                outside += 1
                continue
            try:
                vehicles.append(scooter.to_vehicle(self._provider))
            except ValidationError as exc:
                _logger.warning("Skipping device %s: %s", scooter.identifier, exc.errors()[0]["msg"])
        _logger.debug(
            "Fetched %d vehicles (%d outside zone) at %s",
            len(vehicles),
            outside,
            taken_at.isoformat(),
        )
        return Snapshot.from_vehicles(taken_at, vehicles, provider=self._provider)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise SharealyzerError("Client not initialized. Use 'async with CircClient(...) as client:'")
        return self._transport
