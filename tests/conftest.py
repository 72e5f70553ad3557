"""Test configuration and fixtures.

Source control and the audit tool are replaced by in-memory fakes so the
benchmark flow can be exercised without git, Chrome or lighthouse.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import pytest

from perfwatch.collaborators import AuditOptions, AuditResult
from perfwatch.config import BenchmarkSettings
from perfwatch.errors import RevisionResolutionError
from perfwatch.store import ReportStore


def make_lhr(
    interactive: tuple[float | None, float | None] | None = (0.8, 2000),
    mainthread: tuple[float | None, float | None] | None = (0.9, 1500),
    readings: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a minimal Lighthouse result document."""
    audits: dict[str, Any] = {}
    for audit_id, values in (
        ("interactive", interactive),
        ("mainthread-work-breakdown", mainthread),
    ):
        if values is None:
            continue
        score, raw = values
        audit: dict[str, Any] = {"score": score}
        if raw is not None:
            audit["rawValue"] = raw
        audits[audit_id] = audit

    if readings is not None:
        audits["metrics"] = {"score": None, "details": {"items": [readings]}}

    return {"lighthouseVersion": "3.0.0", "audits": audits}


class FakeSourceControl:
    """In-memory source control."""

    def __init__(self, current: str = "abc123", refs: dict[str, str] | None = None):
        self.current = current
        self.refs = {"origin/master": "def456"} if refs is None else refs
        self.resolved: list[str] = []
        self.published: list[tuple[list[Path], str]] = []

    async def current_revision(self) -> str:
        return self.current

    async def resolve_revision(self, ref: str) -> str:
        self.resolved.append(ref)
        if ref not in self.refs:
            raise RevisionResolutionError(f"Could not resolve {ref!r}")
        return self.refs[ref]

    async def publish(self, files: Sequence[Path], target_ref: str) -> None:
        self.published.append((list(files), target_ref))


class FakeAuditor:
    """Audit runner returning a canned Lighthouse result."""

    def __init__(self, lhr: dict[str, Any] | None = None, error: Exception | None = None):
        self.lhr = lhr if lhr is not None else make_lhr()
        self.error = error
        self.calls: list[tuple[str, AuditOptions]] = []

    async def run(self, url: str, options: AuditOptions) -> AuditResult:
        self.calls.append((url, options))
        if self.error is not None:
            raise self.error

        reports = {"json": json.dumps(self.lhr, indent=2)}
        if "html" in options.output_formats:
            reports["html"] = "<html><body>lighthouse report</body></html>"
        return AuditResult(lhr=self.lhr, reports=reports)


@pytest.fixture
def reports_dir(tmp_path: Path) -> Path:
    return tmp_path / "reports"


@pytest.fixture
def store(reports_dir: Path) -> ReportStore:
    return ReportStore(reports_dir)


@pytest.fixture
def settings(reports_dir: Path) -> BenchmarkSettings:
    return BenchmarkSettings(
        reports_dir=reports_dir,
        target_url="http://localhost:3000",
        output_formats=["json", "html"],
    )


@pytest.fixture
def source_control() -> FakeSourceControl:
    return FakeSourceControl()


@pytest.fixture
def auditor() -> FakeAuditor:
    return FakeAuditor()


@pytest.fixture
def lhr_factory():
    return make_lhr


@pytest.fixture
def fake_source_control_cls():
    return FakeSourceControl


@pytest.fixture
def fake_auditor_cls():
    return FakeAuditor
