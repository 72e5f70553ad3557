"""External collaborators: the audit tool and source control.

Both are consumed through protocols so the orchestrator can run against
fakes in tests.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from perfwatch.types import Report


@dataclass
class AuditOptions:
    """Options for one audit run."""

    output_formats: tuple[str, ...] = ("json", "html")
    chrome_flags: list[str] = field(default_factory=list)
    extra_headers: dict[str, str] = field(default_factory=dict)
    extra_args: list[str] = field(default_factory=list)
    log_level: str = "info"


@dataclass
class AuditResult:
    """Output of one audit run.

    ``lhr`` is the parsed JSON result and ``reports`` holds the rendered
    report text for every requested format.
    """

    lhr: dict[str, Any]
    reports: dict[str, str] = field(default_factory=dict)

    def report(self, revision: str) -> Report:
        return Report.from_lhr(revision, self.lhr)

    def payload(self) -> dict[str, str]:
        """One representation per format, ready for the report store."""
        payload = dict(self.reports)
        if "json" not in payload:
            payload["json"] = json.dumps(self.lhr, indent=2)
        return payload


@runtime_checkable
class AuditRunner(Protocol):
    """Runs an audit against a URL."""

    async def run(self, url: str, options: AuditOptions) -> AuditResult:
        """Audit the URL. Raises AuditError on failure."""
        ...


@runtime_checkable
class SourceControl(Protocol):
    """Source control operations used by a benchmark run."""

    async def current_revision(self) -> str:
        """Identifier of the working state."""
        ...

    async def resolve_revision(self, ref: str) -> str:
        """Resolve a reference. Raises RevisionResolutionError."""
        ...

    async def publish(self, files: Sequence[Path], target_ref: str) -> None:
        """Commit and push files to a reference. Raises PublishError."""
        ...


__all__ = [
    "AuditOptions",
    "AuditResult",
    "AuditRunner",
    "SourceControl",
]
