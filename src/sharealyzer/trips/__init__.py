"""Trip inference layer.

This package turns a sequence of fleet snapshots into finalized, classified
trips. Diffing is pure set algebra; all lifecycle state lives in
:class:`~sharealyzer.trips.tracker.TripTracker`.
"""
