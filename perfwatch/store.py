"""On-disk report storage keyed by revision."""

from __future__ import annotations

import json
import logging
import shutil
from collections.abc import Mapping
from pathlib import Path

from perfwatch.errors import ReportIOError, ReportNotFoundError, ReportParseError
from perfwatch.types import REPORT_FORMATS, Report, StoredReportLocation

logger = logging.getLogger(__name__)

DEFAULT_FOLDER_PREFIX = "automated-lighthouse-"
DEFAULT_FILE_NAME = "report"

Payload = str | bytes | Report | Mapping[str, str | bytes]


def sanitize_revision(revision: str) -> str:
    """Strip line terminators left over from process output."""
    return revision.replace("\r", "").replace("\n", "").strip()


class ReportStore:
    """Reads and writes reports under one folder per revision.

    Layout::

        <root>/<prefix><revision>/report.json
        <root>/<prefix><revision>/report.html
        <root>/<prefix><revision>/regressions-digest.json
        <root>/<prefix><revision>/improvements-digest.json
    """

    def __init__(self, root: Path | str, folder_prefix: str = DEFAULT_FOLDER_PREFIX):
        self.root = Path(root)
        self.folder_prefix = folder_prefix

    def resolve_folder(self, revision: str) -> Path:
        """Map a revision to its storage folder."""
        clean = sanitize_revision(revision)
        if not clean:
            raise ValueError(f"Invalid revision: {revision!r}")
        return self.root / f"{self.folder_prefix}{clean}"

    def resolve_path(
        self, folder: Path, format: str, file_name: str = DEFAULT_FILE_NAME
    ) -> Path:
        """Join a folder, file name and format into a file path."""
        if format not in REPORT_FORMATS:
            raise ValueError(f"Unknown report format: {format!r}")
        return folder / f"{file_name}.{format}"

    def location(
        self, revision: str, format: str, file_name: str = DEFAULT_FILE_NAME
    ) -> StoredReportLocation:
        """Build the location for a (revision, format, file name) triple."""
        path = self.resolve_path(self.resolve_folder(revision), format, file_name)
        return StoredReportLocation(
            revision=sanitize_revision(revision),
            format=format,
            file_name=file_name,
            path=path,
        )

    def write(
        self,
        revision: str,
        payload: Payload,
        format: str = "json",
        file_name: str = DEFAULT_FILE_NAME,
    ) -> StoredReportLocation:
        """Write a payload for a revision, replacing any previous file.

        A mapping payload holds one representation per format. Each one is
        written to its own file sharing ``file_name`` and the location for
        ``format`` is returned.

        Raises:
            ReportIOError: If the folder or file cannot be written
        """
        if isinstance(payload, Mapping):
            if format not in payload:
                raise ValueError(f"Payload has no {format!r} representation")
            locations = self.write_all(revision, payload, file_name)
            return next(loc for loc in locations if loc.format == format)

        location = self.location(revision, format, file_name)
        if isinstance(payload, Report):
            payload = payload.to_json()

        self._write_file(location.path, payload)
        return location

    def write_all(
        self,
        revision: str,
        payloads: Mapping[str, str | bytes],
        file_name: str = DEFAULT_FILE_NAME,
    ) -> list[StoredReportLocation]:
        """Write every representation of a multi-format payload."""
        locations = []
        for format, content in payloads.items():
            location = self.location(revision, format, file_name)
            self._write_file(location.path, content)
            locations.append(location)
        return locations

    def read_text(
        self, revision: str, format: str = "json", file_name: str = DEFAULT_FILE_NAME
    ) -> str:
        """Read the raw payload stored for a revision.

        Raises:
            ReportNotFoundError: If nothing is stored at that location
            ReportIOError: If the file exists but cannot be read
        """
        path = self.location(revision, format, file_name).path
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise ReportNotFoundError(
                f"No {format} report stored for revision {sanitize_revision(revision)!r} at {path}"
            ) from e
        except OSError as e:
            logger.error("Failed to read %s: %s", path, e)
            raise ReportIOError(f"Failed to read {path}: {e}") from e

    def read(
        self, revision: str, format: str = "json", file_name: str = DEFAULT_FILE_NAME
    ) -> Report:
        """Load and parse the report stored for a revision.

        Raises:
            ReportNotFoundError: If the revision has no stored report
            ReportIOError: If the file cannot be read
            ReportParseError: If the payload is not a valid report
        """
        if format != "json":
            raise ValueError("Only json reports can be parsed")

        text = self.read_text(revision, format, file_name)
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ReportParseError(
                f"Stored report for {sanitize_revision(revision)!r} is not valid JSON: {e}"
            ) from e

        return Report.from_lhr(sanitize_revision(revision), data)

    def exists(
        self, revision: str, format: str = "json", file_name: str = DEFAULT_FILE_NAME
    ) -> bool:
        return self.location(revision, format, file_name).path.is_file()

    def reset_folder(self, revision: str) -> Path:
        """Clear and recreate the folder for a revision."""
        folder = self.resolve_folder(revision)
        try:
            if folder.exists():
                shutil.rmtree(folder)
            folder.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error("Failed to reset %s: %s", folder, e)
            raise ReportIOError(f"Failed to reset {folder}: {e}") from e
        return folder

    def list_revisions(self) -> list[str]:
        """Revisions that have a storage folder, sorted by name."""
        if not self.root.is_dir():
            return []
        return sorted(
            path.name[len(self.folder_prefix):]
            for path in self.root.iterdir()
            if path.is_dir() and path.name.startswith(self.folder_prefix)
        )

    def _write_file(self, path: Path, content: str | bytes) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(content, encoding="utf-8")
        except OSError as e:
            logger.error("Failed to write %s: %s", path, e)
            raise ReportIOError(f"Failed to write {path}: {e}") from e

        logger.debug("Wrote %s", path)
