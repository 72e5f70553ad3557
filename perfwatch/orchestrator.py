"""Benchmark run orchestration.

A run resolves the current revision, audits the target URL, compares the
result against the stored baseline report and persists the report and its
digests under the current revision. Every step is awaited in sequence since
each one depends on the revision resolved before it.
"""

from __future__ import annotations

import logging

from perfwatch.collaborators import AuditOptions, AuditResult, AuditRunner, SourceControl
from perfwatch.collaborators.git import GitSourceControl
from perfwatch.collaborators.lighthouse import LighthouseAuditor
from perfwatch.comparator import MetricComparator
from perfwatch.config import BenchmarkSettings
from perfwatch.digest import DigestBuilder, DigestPair
from perfwatch.errors import (
    PerfwatchError,
    ReportNotFoundError,
    ReportParseError,
    RevisionResolutionError,
)
from perfwatch.store import ReportStore, sanitize_revision
from perfwatch.types import RunResult, RunState, StoredReportLocation

logger = logging.getLogger(__name__)


class BenchmarkOrchestrator:
    """Drives one benchmark run from revision resolution to persistence."""

    def __init__(
        self,
        settings: BenchmarkSettings,
        store: ReportStore | None = None,
        auditor: AuditRunner | None = None,
        source_control: SourceControl | None = None,
        comparator: MetricComparator | None = None,
        digest_builder: DigestBuilder | None = None,
    ):
        """Initialize the orchestrator.

        Args:
            settings: Run configuration
            store: Report store. Defaults to one rooted at settings.reports_dir
            auditor: Audit runner. Defaults to the lighthouse CLI
            source_control: Source control. Defaults to git
            comparator: Metric comparator. Defaults to the built-in metrics
            digest_builder: Digest builder. Defaults to one writing to store
        """
        self.settings = settings
        self.store = store or ReportStore(settings.reports_dir)
        self.auditor = auditor or LighthouseAuditor(
            binary=settings.lighthouse_binary,
            timeout=settings.audit_timeout_seconds,
        )
        self.source_control = source_control or GitSourceControl(
            trunk_branch=settings.trunk_branch,
            trunk_ref=settings.trunk_ref,
            remote=settings.remote,
        )
        self.comparator = comparator or MetricComparator()
        self.digest_builder = digest_builder or DigestBuilder(self.store)
        self.state = RunState.RESOLVING_REVISION

    def audit_options(self) -> AuditOptions:
        return AuditOptions(
            output_formats=tuple(self.settings.output_formats),
            chrome_flags=self.settings.effective_chrome_flags,
            extra_headers=dict(self.settings.extra_headers),
            extra_args=list(self.settings.lighthouse_args),
            log_level=self.settings.log_level,
        )

    async def run(self) -> RunResult:
        """Execute the run. Failures are returned, not raised."""
        result = RunResult(state=RunState.RESOLVING_REVISION)
        self._transition(RunState.RESOLVING_REVISION)

        try:
            return await self._run(result)
        except PerfwatchError as e:
            logger.error("Benchmark run failed while %s: %s", self.state.value, e)
            self._transition(RunState.FAILED)
            result.state = RunState.FAILED
            result.error = str(e)
            return result

    async def _run(self, result: RunResult) -> RunResult:
        settings = self.settings

        revision = sanitize_revision(await self.source_control.current_revision())
        if not revision:
            raise RevisionResolutionError("Source control returned an empty revision")
        result.revision = revision

        if self._skips_trunk_merge(revision):
            logger.info("Skipping lighthouse report on %s merge", settings.trunk_branch)
            result.skipped = True
            return self._finish(result)

        self._transition(RunState.FETCHING_CURRENT_REPORT)
        url = settings.resolve_target_url(revision)
        audit = await self.auditor.run(url, self.audit_options())

        if settings.benchmark_ref is None:
            self._transition(RunState.SKIPPING_COMPARISON)
            self._persist(result, audit, digests=None)
            return self._finish(result)

        if (
            not settings.is_local_run
            and settings.benchmarks_trunk
            and revision == settings.trunk_branch
        ):
            logger.warning(
                "running on %s, benchmarking is skipped", settings.trunk_branch
            )
            self._transition(RunState.SKIPPING_COMPARISON)
            self._persist(result, audit, digests=None)
            return self._finish(result)

        baseline_hash = sanitize_revision(
            await self.source_control.resolve_revision(settings.benchmark_ref)
        )
        baseline_revision = (
            settings.trunk_branch if settings.benchmarks_trunk else baseline_hash
        )
        result.baseline_revision = baseline_revision

        digests = None
        if baseline_revision == revision:
            logger.warning(
                "Baseline %s is the current revision, nothing to compare", revision
            )
            self._transition(RunState.SKIPPING_COMPARISON)
        else:
            self._transition(RunState.LOADING_BASELINE)
            try:
                baseline = self.store.read(baseline_revision, "json")
            except (ReportNotFoundError, ReportParseError) as e:
                logger.warning("Could not parse and compare against %s: %s", baseline_revision, e)
                self._transition(RunState.SKIPPING_COMPARISON)
            else:
                self._transition(RunState.COMPARING)
                current = audit.report(revision)
                result.outcomes = self.comparator.compare(current, baseline)
                digests = self.digest_builder.build(result.outcomes, revision)

        self._persist(result, audit, digests)
        return self._finish(result)

    def _skips_trunk_merge(self, revision: str) -> bool:
        return (
            revision == self.settings.trunk_branch
            and not self.settings.update_baseline
            and not self.settings.is_local_run
        )

    def _persist(
        self, result: RunResult, audit: AuditResult, digests: DigestPair | None
    ) -> None:
        """Recreate the revision folder, then write digests before the report."""
        self._transition(RunState.PERSISTING)
        revision = result.revision
        self.store.reset_folder(revision)
        payload = audit.payload()

        if digests is not None:
            result.digest_locations = self.digest_builder.persist(digests, revision)

        result.report_locations = self.store.write_all(revision, payload)
        result.report_location = self._primary(result.report_locations)

        trunk = self.settings.trunk_branch
        if self.settings.update_baseline and revision != trunk:
            logger.info("Updating %s baseline report", trunk)
            self.store.reset_folder(trunk)
            result.baseline_locations = self.store.write_all(trunk, payload)

    def _primary(self, locations: list[StoredReportLocation]) -> StoredReportLocation | None:
        for location in locations:
            if location.format == self.settings.primary_format:
                return location
        return locations[0] if locations else None

    def _finish(self, result: RunResult) -> RunResult:
        self._transition(RunState.DONE)
        result.state = RunState.DONE
        if result.report_location is not None:
            logger.info("Report saved to %s", result.report_location.path)
        return result

    def _transition(self, state: RunState) -> None:
        logger.debug("Run state %s -> %s", self.state.value, state.value)
        self.state = state
