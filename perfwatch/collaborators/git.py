"""Git-backed source control."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path

from perfwatch.collaborators.process import CommandResult, execute
from perfwatch.errors import PublishError, RevisionResolutionError
from perfwatch.store import sanitize_revision

logger = logging.getLogger(__name__)


class GitSourceControl:
    """Resolves revisions and publishes report files with the git CLI.

    Args:
        trunk_branch: Label used for the trunk revision.
        trunk_ref: Reference the working state is measured against.
        remote: Remote that report files are pushed to.
        cwd: Repository directory (defaults to the working directory).
    """

    def __init__(
        self,
        trunk_branch: str = "master",
        trunk_ref: str = "origin/master",
        remote: str = "origin",
        cwd: Path | str | None = None,
    ):
        self.trunk_branch = trunk_branch
        self.trunk_ref = trunk_ref
        self.remote = remote
        self.cwd = cwd

    async def current_revision(self) -> str:
        """First commit ahead of trunk, or the trunk label when none are."""
        result = await self._git("rev-list", f"{self.trunk_ref}..HEAD")
        if not result.ok:
            raise RevisionResolutionError(
                f"Could not list revisions ahead of {self.trunk_ref}: {result.stderr.strip()}"
            )

        lines = [line.strip() for line in result.stdout.splitlines() if line.strip()]
        return lines[0] if lines else self.trunk_branch

    async def resolve_revision(self, ref: str) -> str:
        result = await self._git("rev-parse", "--verify", ref)
        revision = sanitize_revision(result.stdout)
        if not result.ok or not revision:
            raise RevisionResolutionError(
                f"Could not resolve {ref!r}: {result.stderr.strip()}"
            )
        return revision

    async def publish(self, files: Sequence[Path], target_ref: str) -> None:
        """Commit the files and push them to ``target_ref`` on the remote."""
        if not files:
            logger.info("Nothing to publish for %s", target_ref)
            return

        steps = [
            ("add", "--", *[str(f) for f in files]),
            ("commit", "-m", f"Report files for {target_ref}"),
            ("push", self.remote, f"HEAD:{target_ref}"),
        ]
        for args in steps:
            result = await self._git(*args, error=PublishError)
            if not result.ok:
                raise PublishError(
                    f"git {args[0]} failed: {result.stderr.strip() or result.stdout.strip()}"
                )

        logger.info("Published %d report files to %s/%s", len(files), self.remote, target_ref)

    async def _git(
        self, *args: str, error: type[Exception] = RevisionResolutionError
    ) -> CommandResult:
        try:
            return await execute("git", *args, cwd=self.cwd)
        except (OSError, asyncio.TimeoutError) as e:
            raise error(f"Could not run git: {e}") from e
