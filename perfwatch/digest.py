"""Digest generation from comparison outcomes."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from perfwatch.store import ReportStore
from perfwatch.types import (
    ComparisonOutcome,
    Digest,
    DigestCategory,
    Direction,
    StoredReportLocation,
)

logger = logging.getLogger(__name__)

_CATEGORY_BY_DIRECTION = {
    Direction.REGRESSION: DigestCategory.REGRESSIONS,
    Direction.IMPROVEMENT: DigestCategory.IMPROVEMENTS,
}


@dataclass
class DigestPair:
    """Regression and improvement digests for one revision."""

    regressions: Digest
    improvements: Digest

    def __iter__(self):
        yield self.regressions
        yield self.improvements


class DigestBuilder:
    """Builds and persists digests next to a revision's report."""

    def __init__(self, store: ReportStore):
        self.store = store

    def build(self, outcomes: Iterable[ComparisonOutcome], revision: str) -> DigestPair:
        """Partition outcomes by direction into two digests."""
        digests = {
            category: Digest(category=category, revision=revision)
            for category in DigestCategory
        }

        for outcome in outcomes:
            category = _CATEGORY_BY_DIRECTION.get(outcome.direction)
            if category is None:
                continue
            digests[category].entries[outcome.metric_id] = outcome.payload()

        return DigestPair(
            regressions=digests[DigestCategory.REGRESSIONS],
            improvements=digests[DigestCategory.IMPROVEMENTS],
        )

    def persist(
        self, digests: Iterable[Digest], revision: str
    ) -> list[StoredReportLocation]:
        """Write every non-empty digest as JSON under the revision."""
        locations = []
        for digest in digests:
            # if there's nothing on the digest, do not create a digest file
            if digest.is_empty:
                continue

            location = self.store.write(
                revision, digest.to_json(), format="json", file_name=digest.file_name
            )
            logger.info(
                "Wrote %s digest with %d entries to %s",
                digest.category.value,
                len(digest.entries),
                location.path,
            )
            locations.append(location)

        return locations
