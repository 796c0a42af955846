"""On-disk snapshot archive.

Layout::

    <base>/<provider>_<YYYY-MM-DD>/<provider>_<RFC 3339 time>.json.gz

Every file holds the raw provider records of one snapshot as a gzipped JSON
array. The capture time lives only in the file name, with its fractional
seconds when it has any.
"""

from __future__ import annotations

import gzip
import json
import logging
import zlib
from collections.abc import Callable
from datetime import date, datetime
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from sharealyzer._constants import ARCHIVE_SUFFIX, DEFAULT_PROVIDER, FOLDER_DATE_FORMAT
from sharealyzer.exceptions import RecordDecodeError
from sharealyzer.models.circ import CircScooter
from sharealyzer.models.snapshot import Snapshot
from sharealyzer.models.vehicle import Vehicle

_logger = logging.getLogger(__name__)

#: Turns one archived file into a snapshot, raising :class:`RecordDecodeError`.
SnapshotDecoder = Callable[[Path, str], Snapshot]


def day_folder_name(provider: str, day: date) -> str:
    return f"{provider}_{day.strftime(FOLDER_DATE_FORMAT)}"


def record_file_name(provider: str, taken_at: datetime) -> str:
    return f"{provider}_{taken_at.isoformat()}{ARCHIVE_SUFFIX}"


def record_path(base_dir: Path, provider: str, taken_at: datetime) -> Path:
    """Where the snapshot captured at *taken_at* is archived."""
    return base_dir / day_folder_name(provider, taken_at.date()) / record_file_name(provider, taken_at)


def parse_folder_date(folder_name: str, provider: str) -> date | None:
    """Day encoded in an archive folder name, ``None`` for foreign folders."""
    prefix = f"{provider}_"
    if not folder_name.startswith(prefix):
        return None
    try:
        return datetime.strptime(folder_name[len(prefix) :], FOLDER_DATE_FORMAT).date()
    except ValueError:
        return None


def parse_record_timestamp(file_name: str, provider: str = DEFAULT_PROVIDER) -> datetime:
    """Capture time encoded in an archive file name.

    >>> parse_record_timestamp("circ_2019-10-08T05:11:27+01:00.json.gz").isoformat()
    '2019-10-08T05:11:27+01:00'

    Raises
    ------
    ValueError
        The name does not follow the archive naming scheme.
    """
    prefix = f"{provider}_"
    if not file_name.startswith(prefix) or not file_name.endswith(ARCHIVE_SUFFIX):
        raise ValueError(f"{file_name!r} is not a {provider} archive record")
    taken_at = datetime.fromisoformat(file_name[len(prefix) : -len(ARCHIVE_SUFFIX)])
    if taken_at.tzinfo is None:
        raise ValueError(f"{file_name!r} carries no UTC offset")
    return taken_at


def list_day_folders(base_dir: Path, provider: str, *, since: date | None = None) -> list[tuple[date, Path]]:
    """Archive folders of *provider*, oldest day first."""
    if not base_dir.is_dir():
        return []
    folders: list[tuple[date, Path]] = []
    for entry in base_dir.iterdir():
        if not entry.is_dir():
            continue
        day = parse_folder_date(entry.name, provider)
        if day is None or (since is not None and day < since):
            continue
        folders.append((day, entry))
    folders.sort()
    return folders


def list_records(folder: Path, provider: str) -> list[tuple[datetime, Path]]:
    """Records inside one day folder ordered by capture time, then name.

    Files whose name can not be parsed are logged and ignored.
    """
    records: list[tuple[datetime, Path]] = []
    for entry in folder.iterdir():
        if not entry.is_file() or not entry.name.endswith(ARCHIVE_SUFFIX):
            continue
        try:
            records.append((parse_record_timestamp(entry.name, provider), entry))
        except ValueError:
            _logger.warning("Ignoring archive file with unexpected name: %s", entry)
    records.sort(key=lambda item: (item[0], item[1].name))
    return records


def _decode_vehicles(records: list[Any], path: Path, provider: str) -> list[Vehicle]:
    vehicles: list[Vehicle] = []
    for index, record in enumerate(records):
        try:
            vehicles.append(CircScooter.model_validate(record).to_vehicle(provider))
        except ValidationError as exc:
            _logger.warning("Skipping invalid vehicle #%d in %s: %s", index, path, exc.errors()[0]["msg"])
    return vehicles


def read_snapshot(path: Path, provider: str = DEFAULT_PROVIDER) -> Snapshot:
    """Decode one archived record.

    Raises
    ------
    RecordDecodeError
        The file name, compression or JSON content is broken.
    """
    try:
        taken_at = parse_record_timestamp(path.name, provider)
    except ValueError as exc:
        raise RecordDecodeError(str(exc), path=path) from exc

    try:
        with gzip.open(path, "rt", encoding="utf-8") as fh:
            records = json.load(fh)
    except (OSError, EOFError, zlib.error, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise RecordDecodeError(f"Could not decode {path}: {exc}", path=path) from exc

    if not isinstance(records, list):
        raise RecordDecodeError(f"{path} does not contain a JSON array", path=path)

    return Snapshot.from_vehicles(taken_at, _decode_vehicles(records, path, provider), provider=provider)


class ArchiveWriter:
    """Writes snapshots into the archive layout.

    Files are written under a temporary name and renamed when complete, so
    a tailing reader never sees a partially written record.
    """

    def __init__(self, base_dir: Path, provider: str = DEFAULT_PROVIDER, *, compresslevel: int = 9) -> None:
        self._base_dir = base_dir
        self._provider = provider
        self._compresslevel = compresslevel

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def write(self, snapshot: Snapshot) -> Path:
        path = record_path(self._base_dir, self._provider, snapshot.taken_at)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(f".{path.name}.tmp")
        with gzip.open(tmp_path, "wt", encoding="utf-8", compresslevel=self._compresslevel) as fh:
            json.dump(snapshot.raw_records(), fh, separators=(",", ":"))
        tmp_path.replace(path)
        _logger.debug("Archived %d vehicles to %s", len(snapshot), path)
        return path
