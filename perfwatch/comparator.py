"""Metric comparator for regression detection."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal

from perfwatch.errors import MetricParseError
from perfwatch.types import ComparisonOutcome, Direction, MetricResult, Report

logger = logging.getLogger(__name__)

# Raw values are reported in tens of milliseconds to absorb sub-millisecond noise
DELTA_DIVISOR = 10


@dataclass(frozen=True)
class MetricExtractor:
    """A metric registered for comparison.

    ``score`` metrics are classified by their normalized score. ``readings``
    metrics are scanned reading by reading and only worsenings are flagged.
    """

    metric_id: str
    kind: Literal["score", "readings"] = "score"
    regression_message: str = ""
    improvement_message: str = ""


DEFAULT_EXTRACTORS: tuple[MetricExtractor, ...] = (
    MetricExtractor(
        metric_id="interactive",
        regression_message="TTI is longer than benchmark",
        improvement_message="TTI has improved from last version",
    ),
    MetricExtractor(
        metric_id="mainthread-work-breakdown",
        regression_message="This hash is hogging more on the main thread than benchmark",
        improvement_message="This hash has freed CPU workload compared to last release",
    ),
    MetricExtractor(
        metric_id="metrics",
        kind="readings",
        regression_message="This hash has the follow regressions on raw metrics",
    ),
)


def coarse_delta(current: float, baseline: float) -> int:
    """Signed raw value difference in reporting units."""
    return math.floor((current - baseline) / DELTA_DIVISOR)


class MetricComparator:
    """Compares two reports over an allow-list of registered metrics."""

    def __init__(self, extractors: Iterable[MetricExtractor] = DEFAULT_EXTRACTORS):
        self._extractors: dict[str, MetricExtractor] = {}
        for extractor in extractors:
            self.register(extractor)

    @property
    def metric_ids(self) -> list[str]:
        return list(self._extractors)

    def register(self, extractor: MetricExtractor) -> None:
        """Add or replace a metric in the comparison set."""
        self._extractors[extractor.metric_id] = extractor

    def compare(
        self,
        current: Report,
        baseline: Report,
        metric_ids: Iterable[str] | None = None,
    ) -> list[ComparisonOutcome]:
        """Compare current against baseline, metric by metric.

        Metrics missing from either report are skipped. Malformed metrics are
        logged and skipped without aborting the comparison.
        """
        selected = self.metric_ids if metric_ids is None else list(metric_ids)
        outcomes: list[ComparisonOutcome] = []

        for metric_id in selected:
            extractor = self._extractors.get(metric_id)
            if extractor is None:
                logger.debug("Metric %s is not registered for comparison", metric_id)
                continue

            current_metric = current.metrics.get(metric_id)
            baseline_metric = baseline.metrics.get(metric_id)
            if current_metric is None or baseline_metric is None:
                continue

            try:
                if extractor.kind == "readings":
                    outcome = self._compare_readings(
                        extractor, current_metric, baseline_metric
                    )
                else:
                    outcome = self._compare_score(
                        extractor, current_metric, baseline_metric
                    )
            except (MetricParseError, TypeError, ValueError) as e:
                logger.warning("Could not parse and compare %s: %s", metric_id, e)
                continue

            if outcome is None:
                continue

            if outcome.direction == Direction.REGRESSION:
                logger.warning("%s: %s", metric_id, outcome.message)
            else:
                logger.info("%s: %s", metric_id, outcome.message)
            outcomes.append(outcome)

        return outcomes

    def _compare_score(
        self,
        extractor: MetricExtractor,
        current: MetricResult,
        baseline: MetricResult,
    ) -> ComparisonOutcome | None:
        if not current.comparable or not baseline.comparable:
            return None
        if current.score is None or baseline.score is None:
            raise MetricParseError("metric has no score on both sides")

        if current.score < baseline.score:
            direction = Direction.REGRESSION
            message = extractor.regression_message
        elif current.score > baseline.score:
            direction = Direction.IMPROVEMENT
            message = extractor.improvement_message
        else:
            return None

        delta = None
        if current.raw_value is not None and baseline.raw_value is not None:
            delta = coarse_delta(current.raw_value, baseline.raw_value)

        return ComparisonOutcome(
            metric_id=extractor.metric_id,
            direction=direction,
            delta=delta,
            message=message,
        )

    def _compare_readings(
        self,
        extractor: MetricExtractor,
        current: MetricResult,
        baseline: MetricResult,
    ) -> ComparisonOutcome | None:
        if not current.details or not baseline.details:
            raise MetricParseError("metric has no detail items")

        current_readings = current.readings()
        baseline_readings = baseline.readings()

        # Only worsenings are flagged
        regressions = {
            name: current_readings[name] - baseline_readings[name]
            for name in current_readings
            if name in baseline_readings
            and current_readings[name] > baseline_readings[name]
        }
        if not regressions:
            return None

        return ComparisonOutcome(
            metric_id=extractor.metric_id,
            direction=Direction.REGRESSION,
            message=extractor.regression_message,
            readings=regressions,
        )
