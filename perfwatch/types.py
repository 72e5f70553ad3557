"""Perfwatch Types.

Core types for audit reports, metric comparisons, digests and run results.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from perfwatch.errors import ReportParseError

REPORT_FORMATS: tuple[str, ...] = ("json", "html")


def _number(value: Any) -> float | None:
    """Return value if it is a real number, None otherwise."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


# =============================================================================
# Report Types
# =============================================================================


class MetricResult(BaseModel):
    """One measured audit dimension."""

    model_config = ConfigDict(frozen=True)

    score: float | None = Field(None, ge=0.0, le=1.0)
    raw_value: float | None = None
    details: list[dict[str, Any]] | None = None

    @property
    def comparable(self) -> bool:
        """Whether the metric carries a score or a raw value."""
        return self.score is not None or self.raw_value is not None

    def readings(self) -> dict[str, float]:
        """Named numeric sub-readings of the first details item."""
        if not self.details:
            return {}
        first = self.details[0]
        if not isinstance(first, dict):
            return {}
        return {
            name: value
            for name, value in first.items()
            if _number(value) is not None
        }

    @classmethod
    def from_audit(cls, audit: dict[str, Any]) -> MetricResult:
        """Create from a Lighthouse audit entry.

        Older Lighthouse versions expose ``rawValue``; newer ones use
        ``numericValue``. Non-numeric values are treated as absent.
        """
        raw = audit.get("rawValue")
        if _number(raw) is None:
            raw = audit.get("numericValue")

        score = _number(audit.get("score"))
        if score is not None and not 0.0 <= score <= 1.0:
            score = None

        items = None
        details = audit.get("details")
        if isinstance(details, dict) and isinstance(details.get("items"), list):
            items = [item for item in details["items"] if isinstance(item, dict)]

        return cls(score=score, raw_value=_number(raw), details=items)

    def to_audit(self) -> dict[str, Any]:
        """Convert to a Lighthouse audit entry."""
        audit: dict[str, Any] = {}
        if self.score is not None:
            audit["score"] = self.score
        if self.raw_value is not None:
            audit["rawValue"] = self.raw_value
        if self.details is not None:
            audit["details"] = {"items": self.details}
        return audit


class Report(BaseModel):
    """Structured output of one audit run, keyed by revision."""

    model_config = ConfigDict(frozen=True)

    revision: str
    metrics: dict[str, MetricResult] = Field(default_factory=dict)

    @classmethod
    def from_lhr(cls, revision: str, data: Any) -> Report:
        """Parse a Lighthouse result (LHR) document.

        Raises:
            ReportParseError: If data has no ``audits`` mapping
        """
        if not isinstance(data, dict) or not isinstance(data.get("audits"), dict):
            raise ReportParseError(
                f"Report for {revision!r} has no 'audits' mapping"
            )

        metrics = {
            audit_id: MetricResult.from_audit(audit)
            for audit_id, audit in data["audits"].items()
            if isinstance(audit, dict)
        }
        return cls(revision=revision, metrics=metrics)

    def to_lhr(self) -> dict[str, Any]:
        """Convert to the minimal Lighthouse result shape."""
        return {
            "audits": {
                metric_id: metric.to_audit()
                for metric_id, metric in self.metrics.items()
            }
        }

    def to_json(self) -> str:
        """Serialize as pretty-printed Lighthouse JSON."""
        return json.dumps(self.to_lhr(), indent=2)


# =============================================================================
# Comparison Types
# =============================================================================


class Direction(str, Enum):
    """Classification of a metric across two reports."""

    REGRESSION = "regression"
    IMPROVEMENT = "improvement"
    UNCHANGED = "unchanged"


class ComparisonOutcome(BaseModel):
    """Result of comparing one metric across two reports."""

    model_config = ConfigDict(frozen=True)

    metric_id: str
    direction: Direction
    delta: int | None = None
    message: str = ""
    # Per sub-reading deltas, for metrics compared by their details
    readings: dict[str, float] | None = None

    def payload(self) -> dict[str, Any]:
        """Digest entry for this outcome."""
        if self.readings is not None:
            return {"regression": dict(self.readings), "message": self.message}

        return {
            self.direction.value: f"{self.delta}ms" if self.delta is not None else None,
            "delta": self.delta,
            "message": self.message,
        }


class DigestCategory(str, Enum):
    """Digest categories persisted next to a report."""

    REGRESSIONS = "regressions"
    IMPROVEMENTS = "improvements"

    @property
    def file_name(self) -> str:
        return f"{self.value}-digest"


class Digest(BaseModel):
    """All outcomes of one category for one revision."""

    category: DigestCategory
    revision: str
    entries: dict[str, dict[str, Any]] = Field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.entries

    @property
    def file_name(self) -> str:
        return self.category.file_name

    def to_json(self) -> str:
        """Canonical pretty-printed form written to storage."""
        return json.dumps(self.entries, indent=2)


# =============================================================================
# Storage and Run Types
# =============================================================================


@dataclass(frozen=True)
class StoredReportLocation:
    """Where a stored payload lives."""

    revision: str
    format: str
    file_name: str
    path: Path


class RunState(str, Enum):
    """States of a benchmark run."""

    RESOLVING_REVISION = "resolving_revision"
    FETCHING_CURRENT_REPORT = "fetching_current_report"
    LOADING_BASELINE = "loading_baseline"
    SKIPPING_COMPARISON = "skipping_comparison"
    COMPARING = "comparing"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


@dataclass
class RunResult:
    """Terminal result of a benchmark run."""

    state: RunState
    revision: str | None = None
    report_location: StoredReportLocation | None = None
    report_locations: list[StoredReportLocation] = field(default_factory=list)
    digest_locations: list[StoredReportLocation] = field(default_factory=list)
    baseline_locations: list[StoredReportLocation] = field(default_factory=list)
    outcomes: list[ComparisonOutcome] = field(default_factory=list)
    baseline_revision: str | None = None
    skipped: bool = False
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.state == RunState.DONE

    @property
    def exit_code(self) -> int:
        return 0 if self.succeeded else 1

    @property
    def regressions(self) -> list[ComparisonOutcome]:
        return [o for o in self.outcomes if o.direction == Direction.REGRESSION]

    @property
    def improvements(self) -> list[ComparisonOutcome]:
        return [o for o in self.outcomes if o.direction == Direction.IMPROVEMENT]

    @property
    def files(self) -> list[Path]:
        """Files written under the current revision, for publishing."""
        return [loc.path for loc in [*self.digest_locations, *self.report_locations]]

    @property
    def baseline_files(self) -> list[Path]:
        """Files written under the trunk label when updating the baseline."""
        return [loc.path for loc in self.baseline_locations]
