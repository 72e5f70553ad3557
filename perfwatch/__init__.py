"""Perfwatch.

Lighthouse benchmarking per source-control revision: audit a build, store
the report under its revision and compare it against a baseline report.

Example:
    ```python
    import asyncio

    from perfwatch import BenchmarkOrchestrator, load_settings

    settings = load_settings(target_url="http://localhost:3000", benchmark_ref="origin/master")
    result = asyncio.run(BenchmarkOrchestrator(settings).run())
    for outcome in result.regressions:
        print(outcome.metric_id, outcome.delta, outcome.message)
    ```
"""

__version__ = "0.1.0"

from perfwatch.comparator import DEFAULT_EXTRACTORS, MetricComparator, MetricExtractor
from perfwatch.config import BenchmarkSettings, load_settings
from perfwatch.digest import DigestBuilder, DigestPair
from perfwatch.errors import (
    AuditError,
    MetricParseError,
    PerfwatchError,
    PublishError,
    ReportIOError,
    ReportNotFoundError,
    ReportParseError,
    RevisionResolutionError,
)
from perfwatch.orchestrator import BenchmarkOrchestrator
from perfwatch.store import ReportStore
from perfwatch.types import (
    ComparisonOutcome,
    Digest,
    DigestCategory,
    Direction,
    MetricResult,
    Report,
    RunResult,
    RunState,
    StoredReportLocation,
)

__all__ = [
    "__version__",
    # Engine
    "BenchmarkOrchestrator",
    "MetricComparator",
    "MetricExtractor",
    "DEFAULT_EXTRACTORS",
    "DigestBuilder",
    "DigestPair",
    "ReportStore",
    # Config
    "BenchmarkSettings",
    "load_settings",
    # Types
    "ComparisonOutcome",
    "Digest",
    "DigestCategory",
    "Direction",
    "MetricResult",
    "Report",
    "RunResult",
    "RunState",
    "StoredReportLocation",
    # Errors
    "AuditError",
    "MetricParseError",
    "PerfwatchError",
    "PublishError",
    "ReportIOError",
    "ReportNotFoundError",
    "ReportParseError",
    "RevisionResolutionError",
]
