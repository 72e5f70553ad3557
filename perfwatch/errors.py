"""Perfwatch error types."""


class PerfwatchError(Exception):
    """Base class for all perfwatch errors."""

    pass


class ReportNotFoundError(PerfwatchError, FileNotFoundError):
    """Raised when a revision has no stored report in the requested format."""

    pass


class ReportIOError(PerfwatchError):
    """Raised when a stored report cannot be read or written."""

    pass


class ReportParseError(PerfwatchError):
    """Raised when a stored payload is not a valid audit report."""

    pass


class AuditError(PerfwatchError):
    """Raised when the audit tool fails to produce a report."""

    pass


class RevisionResolutionError(PerfwatchError):
    """Raised when a revision or reference cannot be resolved."""

    pass


class MetricParseError(PerfwatchError):
    """Raised when a metric does not have a comparable shape."""

    pass


class PublishError(PerfwatchError):
    """Raised when report files cannot be published to source control."""

    pass
