"""Exception types for the performance dashboard.

Bad business data never raises: unparseable numbers become 0, rows with
bad dates are dropped and counted, and empty selections come back as
``None`` or an empty list.  The exceptions here cover structurally
invalid input and I/O failures around the engine.
"""


class DashboardError(Exception):
    """Base class for all dashboard errors."""


class ContractViolationError(DashboardError, TypeError):
    """Input is not the shape the engine requires (e.g. not a collection of records)."""


class DataIntegrityError(DashboardError, ValueError):
    """Records violate an invariant checked in strict mode."""


class UpstreamFetchError(DashboardError):
    """The source sheet could not be downloaded."""


class SnapshotLoadError(DashboardError):
    """A JSON snapshot is missing, unreadable or corrupt."""


class ConfigError(DashboardError, ValueError):
    """The configuration file is missing or invalid."""
