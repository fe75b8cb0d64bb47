"""
errors.py - Exception types for the reconciliation pipeline

Unmatched names are reported, never raised. Everything here is fatal for
the current run and propagates to the caller.
"""


class ReconcileError(Exception):
    """Base class for pipeline failures."""


class DataSourceError(ReconcileError):
    """A source file or URL could not be read."""

    def __init__(self, source, reason: str):
        self.source = str(source)
        self.reason = reason
        super().__init__(f"Could not load '{self.source}': {reason}")


class JoinKeyError(ReconcileError, KeyError):
    """A join key column is missing or a key pattern is unusable."""

    def __str__(self) -> str:
        # KeyError repr()s its message; keep it readable
        return str(self.args[0]) if self.args else ""


class GeoRecordError(ReconcileError, ValueError):
    """A vertex table breaks the ring layout rules."""
