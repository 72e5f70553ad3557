"""Lighthouse CLI audit runner.

Example:
    ```python
    from perfwatch.collaborators import AuditOptions
    from perfwatch.collaborators.lighthouse import LighthouseAuditor

    auditor = LighthouseAuditor()
    result = await auditor.run(
        "http://localhost:3000",
        AuditOptions(output_formats=("json", "html"), chrome_flags=["--headless"]),
    )
    report = result.report("my-branch")
    ```
"""

from __future__ import annotations

import asyncio
import json
import logging
import tempfile
from pathlib import Path

from perfwatch.collaborators import AuditOptions, AuditResult
from perfwatch.collaborators.process import execute
from perfwatch.errors import AuditError

logger = logging.getLogger(__name__)

OUTPUT_BASENAME = "audit"


class LighthouseAuditor:
    """Runs the ``lighthouse`` CLI, which manages its own Chrome instance.

    Args:
        binary: Lighthouse executable.
        timeout: Seconds to wait for one audit before giving up.
    """

    def __init__(self, binary: str = "lighthouse", timeout: float | None = 300.0):
        self.binary = binary
        self.timeout = timeout

    def build_command(self, url: str, options: AuditOptions, output_dir: Path) -> list[str]:
        """Assemble the lighthouse command line."""
        formats = self._formats(options)

        # Lighthouse appends ".report.<ext>" itself only when several outputs are requested
        if len(formats) == 1:
            output_path = output_dir / f"{OUTPUT_BASENAME}.report.{formats[0]}"
        else:
            output_path = output_dir / OUTPUT_BASENAME

        command = [self.binary, url]
        command += [f"--output={fmt}" for fmt in formats]
        command.append(f"--output-path={output_path}")
        if options.chrome_flags:
            command.append(f"--chrome-flags={' '.join(options.chrome_flags)}")
        if options.extra_headers:
            command.append(f"--extra-headers={json.dumps(options.extra_headers)}")
        if options.log_level == "debug":
            command.append("--verbose")
        elif options.log_level in ("warning", "error"):
            command.append("--quiet")
        command += options.extra_args
        return command

    async def run(self, url: str, options: AuditOptions) -> AuditResult:
        """Audit a URL and collect the report in every requested format.

        Raises:
            AuditError: If lighthouse cannot run or produces no usable report
        """
        if not url:
            raise AuditError("No target URL to audit")

        with tempfile.TemporaryDirectory(prefix="perfwatch-") as tmp:
            output_dir = Path(tmp)
            command = self.build_command(url, options, output_dir)

            try:
                result = await execute(
                    *command,
                    timeout=self.timeout,
                    message=f"Starting lighthouse report for {url}",
                )
            except asyncio.TimeoutError as e:
                raise AuditError(f"Lighthouse timed out after {self.timeout}s") from e
            except OSError as e:
                raise AuditError(f"Could not start {self.binary}: {e}") from e

            if not result.ok:
                detail = result.stderr.strip() or result.stdout.strip()
                raise AuditError(
                    f"Lighthouse exited with status {result.returncode}: {detail}"
                )

            reports = {}
            for fmt in self._formats(options):
                path = output_dir / f"{OUTPUT_BASENAME}.report.{fmt}"
                try:
                    reports[fmt] = path.read_text(encoding="utf-8")
                except OSError as e:
                    raise AuditError(f"Lighthouse did not write a {fmt} report") from e

        try:
            lhr = json.loads(reports["json"])
        except json.JSONDecodeError as e:
            raise AuditError(f"Lighthouse produced invalid JSON: {e}") from e

        if not isinstance(lhr, dict):
            raise AuditError("Lighthouse produced an unexpected JSON document")

        requested = {
            fmt: text for fmt, text in reports.items() if fmt in options.output_formats
        }
        return AuditResult(lhr=lhr, reports=requested)

    @staticmethod
    def _formats(options: AuditOptions) -> list[str]:
        # JSON is always collected, the comparison reads it
        formats = list(dict.fromkeys(options.output_formats))
        if "json" not in formats:
            formats.insert(0, "json")
        return formats
