from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import pytest

from sharealyzer.config import BoundingBox, CircConfig, ClassifierThresholds, PollingConfig, ReplayConfig
from sharealyzer.exceptions import ConfigError


def test_bounding_box_must_be_ordered() -> None:
    with pytest.raises(ConfigError):
        BoundingBox(lat_top_left=51.4, lat_bottom_right=51.6)
    with pytest.raises(ConfigError):
        BoundingBox(lon_top_left=7.6, lon_bottom_right=7.3)


def test_circ_config_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SHAREALYZER_PHONE_NUMBER", "1701234567")
    monkeypatch.setenv("SHAREALYZER_ZONE", "BO")
    monkeypatch.setenv("SHAREALYZER_LAT_TOP_LEFT", "52.0")
    monkeypatch.setenv("SHAREALYZER_TOKEN_PATH", "")
    monkeypatch.setenv("SHAREALYZER_REQUEST_TIMEOUT", "5")

    config = CircConfig.from_env(phone_prefix="+43")

    assert config.phone_number == "1701234567"
    assert config.phone_prefix == "+43"
    assert config.zone == "BO"
    assert config.bounding_box.lat_top_left == 52.0
    assert config.bounding_box.lon_top_left == BoundingBox().lon_top_left
    assert config.token_path is None
    assert config.request_timeout == 5.0


def test_invalid_number_in_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SHAREALYZER_POLL_INTERVAL", "every minute")

    with pytest.raises(ConfigError):
        PollingConfig.from_env()


def test_polling_config_validation() -> None:
    with pytest.raises(ConfigError):
        PollingConfig(max_retries=0)
    with pytest.raises(ConfigError):
        PollingConfig(interval=-1)


def test_replay_config_bounds() -> None:
    config = ReplayConfig(start=datetime(2019, 10, 6, 0, 1), end=datetime(2019, 10, 7, 0, 1))

    assert config.start == datetime(2019, 10, 6, 0, 1, tzinfo=UTC)
    with pytest.raises(ConfigError):
        ReplayConfig(start=datetime(2019, 10, 7, tzinfo=UTC), end=datetime(2019, 10, 6, tzinfo=UTC))
    with pytest.raises(ConfigError):
        ReplayConfig(tail=True, end=datetime(2019, 10, 7, tzinfo=UTC))


def test_replay_config_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("SHAREALYZER_ARCHIVE_DIR", str(tmp_path))
    monkeypatch.setenv("SHAREALYZER_REPLAY_START", "2019-10-06T00:01:00+02:00")
    monkeypatch.setenv("SHAREALYZER_REPLAY_TAIL", "yes")

    config = ReplayConfig.from_env()

    assert config.base_dir == tmp_path
    assert config.start is not None and config.start.utcoffset() is not None
    assert config.tail is True


def test_thresholds_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SHAREALYZER_RELOCATION_MIN_DISTANCE_KM", "2.5")

    thresholds = ClassifierThresholds.from_env()

    assert thresholds.relocation_min_distance_km == 2.5
    assert thresholds.relocation_max_energy_drop == 1.1
