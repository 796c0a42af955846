"""Endpoint helpers for the circ API. Internal, may change at any time."""
