"""sharealyzer - Reconstruct shared vehicle trips from fleet snapshots."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("sharealyzer")
except PackageNotFoundError:
    __version__ = "0+local"
from sharealyzer.archive import ArchiveWriter, read_snapshot
from sharealyzer.client import CircClient, CodeProvider
from sharealyzer.config import BoundingBox, CircConfig, ClassifierThresholds, PollingConfig, ReplayConfig
from sharealyzer.exceptions import (
    AuthenticationError,
    AuthenticationRequiredError,
    ConfigError,
    InvariantViolationError,
    ProviderApiError,
    RecordDecodeError,
    SharealyzerError,
    SourceError,
    SourceExhaustedError,
    TransportError,
)
from sharealyzer.models import (
    GeoLocation,
    OpenTrip,
    Snapshot,
    Trip,
    TripAnomaly,
    TripCategory,
    Vehicle,
    VehicleState,
)
from sharealyzer.pipeline import OverflowPolicy, Pipeline, PipelineFailure, PipelineResult, run_pipelines
from sharealyzer.sinks import ArchiveSink, CollectingSink, JsonLinesTripSink, Sink
from sharealyzer.sources import LiveSource, ReplaySource, SnapshotSource, StaticSource
from sharealyzer.stats import FleetCensus, TripStatistics, TripSummary
from sharealyzer.trips.diff import SnapshotDiff, diff
from sharealyzer.trips.policy import TripClassifier, classify_trip
from sharealyzer.trips.tracker import TripTracker

__all__ = [
    "__version__",
    "ArchiveSink",
    "ArchiveWriter",
    "AuthenticationError",
    "AuthenticationRequiredError",
    "BoundingBox",
    "CircClient",
    "CircConfig",
    "ClassifierThresholds",
    "CodeProvider",
    "CollectingSink",
    "ConfigError",
    "FleetCensus",
    "GeoLocation",
    "InvariantViolationError",
    "JsonLinesTripSink",
    "LiveSource",
    "OpenTrip",
    "OverflowPolicy",
    "Pipeline",
    "PipelineFailure",
    "PipelineResult",
    "PollingConfig",
    "ProviderApiError",
    "RecordDecodeError",
    "ReplayConfig",
    "ReplaySource",
    "SharealyzerError",
    "Sink",
    "Snapshot",
    "SnapshotDiff",
    "SnapshotSource",
    "SourceError",
    "SourceExhaustedError",
    "StaticSource",
    "TransportError",
    "Trip",
    "TripAnomaly",
    "TripCategory",
    "TripClassifier",
    "TripStatistics",
    "TripSummary",
    "TripTracker",
    "Vehicle",
    "VehicleState",
    "classify_trip",
    "diff",
    "read_snapshot",
    "run_pipelines",
]
