"""Configuration for sharealyzer."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from sharealyzer._constants import BASE_URL, DEFAULT_PROVIDER, DEFAULT_TOKEN_REFRESH_INTERVAL
from sharealyzer.exceptions import ConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_float(env: Mapping[str, str], key: str) -> float | None:
    value = env.get(key)
    if value is None:
        return None
    try:
        return float(value)
    except ValueError as exc:
        raise ConfigError(f"{key} must be a number, got {value!r}") from exc


def _env_int(env: Mapping[str, str], key: str) -> int | None:
    value = env.get(key)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigError(f"{key} must be an integer, got {value!r}") from exc


def _env_datetime(env: Mapping[str, str], key: str) -> datetime | None:
    value = env.get(key)
    if value is None:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError as exc:
        raise ConfigError(f"{key} must be an ISO 8601 timestamp, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class BoundingBox:
    """Rectangle of geo coordinates to request vehicles for.

    It is unknown how large this rectangle can get before the provider
    starts truncating results.
    """

    lat_top_left: float = 51.582780
    lon_top_left: float = 7.325945
    lat_bottom_right: float = 51.475727
    lon_bottom_right: float = 7.558172

    def __post_init__(self) -> None:
        if self.lat_top_left < self.lat_bottom_right:
            raise ConfigError("lat_top_left must be north of lat_bottom_right")
        if self.lon_top_left > self.lon_bottom_right:
            raise ConfigError("lon_top_left must be west of lon_bottom_right")


@dataclasses.dataclass(frozen=True)
class CircConfig:
    """Provider client configuration.

    Parameters
    ----------
    phone_prefix : str
        Country prefix of the phone number in ``+`` format (e.g. ``"+49"``).
    phone_number : str
        Phone number without the leading zero, used for SMS authentication.
    bounding_box : BoundingBox
        Area to request vehicles for.
    base_url : str
        API base URL.
    zone : str or None
        Only accept vehicles from this zone identifier.
    token_refresh_interval : float
        Seconds between two access token refreshes.
    token_path : Path or None
        Where to persist tokens. ``None`` keeps tokens in memory only.
    request_timeout : float
        Total timeout of a single HTTP request in seconds.
    """

    phone_prefix: str = "+49"
    phone_number: str = ""
    bounding_box: BoundingBox = dataclasses.field(default_factory=BoundingBox)
    base_url: str = BASE_URL
    zone: str | None = None
    token_refresh_interval: float = DEFAULT_TOKEN_REFRESH_INTERVAL
    token_path: Path | None = Path(".tokens")
    request_timeout: float = 30.0

    @classmethod
    def from_env(cls, **overrides: Any) -> CircConfig:
        """Create configuration from ``SHAREALYZER_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        box_kwargs: dict[str, float] = {}
        _ENV_BOX_MAP = {
            "SHAREALYZER_LAT_TOP_LEFT": "lat_top_left",
            "SHAREALYZER_LON_TOP_LEFT": "lon_top_left",
            "SHAREALYZER_LAT_BOTTOM_RIGHT": "lat_bottom_right",
            "SHAREALYZER_LON_BOTTOM_RIGHT": "lon_bottom_right",
        }
        for env_key, field_name in _ENV_BOX_MAP.items():
            val = _env_float(env, env_key)
            if val is not None:
                box_kwargs[field_name] = val

        config_kwargs: dict[str, Any] = {}
        if box_kwargs:
            config_kwargs["bounding_box"] = BoundingBox(**box_kwargs)

        _ENV_CONFIG_MAP = {
            "SHAREALYZER_PHONE_PREFIX": "phone_prefix",
            "SHAREALYZER_PHONE_NUMBER": "phone_number",
            "SHAREALYZER_BASE_URL": "base_url",
            "SHAREALYZER_ZONE": "zone",
        }
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        token_path = env.get("SHAREALYZER_TOKEN_PATH")
        if token_path is not None:
            config_kwargs["token_path"] = Path(token_path) if token_path else None

        refresh = _env_float(env, "SHAREALYZER_TOKEN_REFRESH_INTERVAL")
        if refresh is not None:
            config_kwargs["token_refresh_interval"] = refresh

        timeout = _env_float(env, "SHAREALYZER_REQUEST_TIMEOUT")
        if timeout is not None:
            config_kwargs["request_timeout"] = timeout

        config_kwargs.update(overrides)
        return cls(**config_kwargs)


@dataclasses.dataclass(frozen=True)
class PollingConfig:
    """Live source cadence and retry bounds.

    The interval is measured from the completion of one fetch to the start
    of the next, not on a fixed wall clock.
    """

    interval: float = 60.0
    max_retries: int = 5
    retry_backoff: float = 5.0
    max_auth_attempts: int = 5

    def __post_init__(self) -> None:
        if self.interval < 0:
            raise ConfigError("interval must not be negative")
        if self.max_retries < 1:
            raise ConfigError("max_retries must be at least 1")
        if self.max_auth_attempts < 1:
            raise ConfigError("max_auth_attempts must be at least 1")

    @classmethod
    def from_env(cls, **overrides: Any) -> PollingConfig:
        env = os.environ
        config_kwargs: dict[str, Any] = {}
        interval = _env_float(env, "SHAREALYZER_POLL_INTERVAL")
        if interval is not None:
            config_kwargs["interval"] = interval
        backoff = _env_float(env, "SHAREALYZER_RETRY_BACKOFF")
        if backoff is not None:
            config_kwargs["retry_backoff"] = backoff
        retries = _env_int(env, "SHAREALYZER_MAX_RETRIES")
        if retries is not None:
            config_kwargs["max_retries"] = retries
        auth_attempts = _env_int(env, "SHAREALYZER_MAX_AUTH_ATTEMPTS")
        if auth_attempts is not None:
            config_kwargs["max_auth_attempts"] = auth_attempts
        config_kwargs.update(overrides)
        return cls(**config_kwargs)


@dataclasses.dataclass(frozen=True)
class ReplayConfig:
    """Archive replay settings.

    Parameters
    ----------
    base_dir : Path
        Directory holding one sub folder per capture day.
    provider : str
        Provider name used as folder and file name prefix.
    start : datetime or None
        Skip records captured before this instant (inclusive bound).
    end : datetime or None
        Stop at the first record captured at or after this instant.
    tail : bool
        Keep watching the archive for new records once the backlog is done.
    poll_interval : float
        Seconds between two directory scans while tailing.
    settle_seconds : float
        Records modified more recently than this are left for the next scan,
        they may still be being written.
    """

    base_dir: Path = Path("out")
    provider: str = DEFAULT_PROVIDER
    start: datetime | None = None
    end: datetime | None = None
    tail: bool = False
    poll_interval: float = 2.0
    settle_seconds: float = 1.0

    def __post_init__(self) -> None:
        # Archive timestamps are always tz-aware; naive bounds are read as UTC.
        for name in ("start", "end"):
            value = getattr(self, name)
            if value is not None and value.tzinfo is None:
                object.__setattr__(self, name, value.replace(tzinfo=UTC))
        if self.start is not None and self.end is not None and self.end <= self.start:
            raise ConfigError("end must be after start")
        if self.tail and self.end is not None:
            raise ConfigError("tail can not be combined with an end bound")

    @classmethod
    def from_env(cls, **overrides: Any) -> ReplayConfig:
        env = os.environ
        config_kwargs: dict[str, Any] = {}
        base_dir = env.get("SHAREALYZER_ARCHIVE_DIR")
        if base_dir is not None:
            config_kwargs["base_dir"] = Path(base_dir)
        provider = env.get("SHAREALYZER_PROVIDER")
        if provider is not None:
            config_kwargs["provider"] = provider
        start = _env_datetime(env, "SHAREALYZER_REPLAY_START")
        if start is not None:
            config_kwargs["start"] = start
        end = _env_datetime(env, "SHAREALYZER_REPLAY_END")
        if end is not None:
            config_kwargs["end"] = end
        if "tail" not in overrides:
            config_kwargs["tail"] = _env_bool(env.get("SHAREALYZER_REPLAY_TAIL"), False)
        poll = _env_float(env, "SHAREALYZER_TAIL_POLL_INTERVAL")
        if poll is not None:
            config_kwargs["poll_interval"] = poll
        config_kwargs.update(overrides)
        return cls(**config_kwargs)


@dataclasses.dataclass(frozen=True)
class ClassifierThresholds:
    """Empirical tolerances used to classify finalized trips.

    Vehicles usually lose less than about one percent of charge while being
    relocated by staff, so a trip that moved more than
    ``relocation_min_distance_km`` while using less than
    ``relocation_max_energy_drop`` charge points is a relocation.
    """

    relocation_max_energy_drop: float = 1.1
    relocation_min_distance_km: float = 1.0
    long_trip_minutes: float = 60.0

    @classmethod
    def from_env(cls, **overrides: Any) -> ClassifierThresholds:
        env = os.environ
        config_kwargs: dict[str, Any] = {}
        _ENV_THRESHOLD_MAP = {
            "SHAREALYZER_RELOCATION_MAX_ENERGY_DROP": "relocation_max_energy_drop",
            "SHAREALYZER_RELOCATION_MIN_DISTANCE_KM": "relocation_min_distance_km",
            "SHAREALYZER_LONG_TRIP_MINUTES": "long_trip_minutes",
        }
        for env_key, field_name in _ENV_THRESHOLD_MAP.items():
            val = _env_float(env, env_key)
            if val is not None:
                config_kwargs[field_name] = val
        config_kwargs.update(overrides)
        return cls(**config_kwargs)
