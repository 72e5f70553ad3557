"""Benchmark configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_config_dir() -> Path:
    """Get the user config directory path."""
    return Path.home() / ".perfwatch"


def get_config_file() -> Path | None:
    """Find the config file, preferring the working directory."""
    for candidate in (Path("perfwatch.yaml"), get_config_dir() / "config.yaml"):
        if candidate.is_file():
            return candidate
    return None


class BenchmarkSettings(BaseSettings):
    """Settings for one benchmark run."""

    model_config = SettingsConfigDict(
        env_prefix="PERFWATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Comparison
    benchmark_ref: str | None = None
    is_local_run: bool = False
    update_baseline: bool = False

    # Source control
    trunk_branch: str = "master"
    trunk_ref: str = "origin/master"
    remote: str = "origin"

    # Audit
    target_url: str = ""
    headless: bool = True
    output_formats: list[Literal["json", "html"]] = Field(
        default_factory=lambda: ["json", "html"]
    )
    chrome_flags: list[str] = Field(
        default_factory=lambda: ["--show-paint-rects", "--ignore-certificate-errors"]
    )
    extra_headers: dict[str, str] = Field(default_factory=dict)
    lighthouse_args: list[str] = Field(
        default_factory=lambda: ["--only-categories=performance"]
    )
    lighthouse_binary: str = "lighthouse"
    audit_timeout_seconds: float = 300.0
    log_level: Literal["debug", "info", "warning", "error"] = "info"

    # Storage
    reports_dir: Path = Path("reports")

    # Published pages, used when no target URL is given
    pages_url: str = "https://bitbucket.url"
    team_project_name: str = "team_proj_name"
    app_repo_name: str = "metrics_proj_url"

    @field_validator("output_formats")
    @classmethod
    def _dedupe_formats(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("at least one output format is required")
        return list(dict.fromkeys(value))

    @field_validator("benchmark_ref")
    @classmethod
    def _blank_ref_is_none(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            return None
        return value

    @property
    def primary_format(self) -> str:
        """Format of the report handed back to the caller."""
        preferred = "json" if self.headless else "html"
        return preferred if preferred in self.output_formats else self.output_formats[0]

    @property
    def effective_chrome_flags(self) -> list[str]:
        flags = list(self.chrome_flags)
        if self.headless and "--headless" not in flags:
            flags.append("--headless")
        return flags

    @property
    def benchmarks_trunk(self) -> bool:
        return self.benchmark_ref == self.trunk_ref

    def default_target_url(self, revision: str) -> str:
        """URL of the build published for a revision."""
        return (
            f"{self.pages_url}/pages/{self.team_project_name}/{self.app_repo_name}/"
            f"{revision.strip()}/browse/lightouse-base-app/build/index.html"
        )

    def resolve_target_url(self, revision: str) -> str:
        return self.target_url or self.default_target_url(revision)


def read_config_file(path: Path | None) -> dict[str, Any]:
    """Load settings from a YAML file."""
    if path is None or not path.exists():
        return {}

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Invalid config file: {path}")
    return data


def load_settings(config_file: Path | None = None, **overrides: Any) -> BenchmarkSettings:
    """Build settings from overrides, environment, config file and defaults.

    Explicit overrides win over environment variables, which win over the
    config file.
    """
    file_config = read_config_file(config_file or get_config_file())

    # Fields the environment already provides take precedence over the file
    env_fields = BenchmarkSettings().model_fields_set
    values = {k: v for k, v in file_config.items() if k not in env_fields}
    values.update({k: v for k, v in overrides.items() if v is not None})

    return BenchmarkSettings(**values)
