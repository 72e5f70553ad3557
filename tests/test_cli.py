"""Tests for the perfwatch CLI."""

import json
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from perfwatch.cli import app
from perfwatch.errors import AuditError
from perfwatch.orchestrator import BenchmarkOrchestrator

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated(monkeypatch, tmp_path):
    """Keep the CLI away from real config files and environment."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("PERFWATCH_BENCHMARK_REF", raising=False)


@pytest.fixture
def fakes(fake_source_control_cls, fake_auditor_cls, lhr_factory):
    """Patch the orchestrator factory with in-memory collaborators."""
    source_control = fake_source_control_cls()
    auditor = fake_auditor_cls(lhr_factory(interactive=(0.8, 2000)))

    def build(settings):
        return BenchmarkOrchestrator(
            settings, auditor=auditor, source_control=source_control
        )

    with patch("perfwatch.cli.run.build_orchestrator", build):
        yield source_control, auditor


def _store_baseline(reports_dir, lhr):
    folder = reports_dir / "automated-lighthouse-master"
    folder.mkdir(parents=True)
    (folder / "report.json").write_text(json.dumps(lhr))


@pytest.mark.integration
class TestRunCommand:
    """Tests for `perfwatch run`."""

    def test_local_run_stores_report(self, fakes, reports_dir):
        source_control, auditor = fakes

        result = runner.invoke(
            app, ["run", "--url", "http://localhost:3000", "--local", "-d", str(reports_dir)]
        )

        assert result.exit_code == 0, result.output
        assert (reports_dir / "automated-lighthouse-abc123" / "report.json").exists()
        assert auditor.calls[0][0] == "http://localhost:3000"
        assert source_control.published == []

    def test_benchmark_reports_regression(self, fakes, reports_dir, lhr_factory):
        _store_baseline(reports_dir, lhr_factory(interactive=(0.9, 2500)))

        result = runner.invoke(
            app,
            ["run", "--url", "http://x", "--benchmark", "--local", "-d", str(reports_dir)],
        )

        assert result.exit_code == 0, result.output
        assert "interactive" in result.output
        assert "-50ms" in result.output
        assert (reports_dir / "automated-lighthouse-abc123" / "regressions-digest.json").exists()

    def test_publishes_non_local_run(self, fakes, reports_dir):
        source_control, _ = fakes

        result = runner.invoke(app, ["run", "--url", "http://x", "-d", str(reports_dir)])

        assert result.exit_code == 0, result.output
        [(files, target)] = source_control.published
        assert target == "abc123"
        assert {f.name for f in files} == {"report.json", "report.html"}

    def test_update_baseline_publishes_trunk(self, fakes, reports_dir):
        source_control, _ = fakes

        result = runner.invoke(
            app, ["run", "--url", "http://x", "--update-baseline", "-d", str(reports_dir)]
        )

        assert result.exit_code == 0, result.output
        assert [target for _, target in source_control.published] == ["abc123", "master"]

    def test_no_publish(self, fakes, reports_dir):
        source_control, _ = fakes

        result = runner.invoke(
            app, ["run", "--url", "http://x", "--no-publish", "-d", str(reports_dir)]
        )

        assert result.exit_code == 0
        assert source_control.published == []

    def test_trunk_merge_is_skipped(self, fakes, reports_dir):
        source_control, auditor = fakes
        source_control.current = "master"

        result = runner.invoke(app, ["run", "--url", "http://x", "-d", str(reports_dir)])

        assert result.exit_code == 0
        assert "Skipped" in result.output
        assert auditor.calls == []
        assert source_control.published == []

    def test_failed_audit_exits_non_zero(self, fakes, reports_dir):
        _, auditor = fakes
        auditor.error = AuditError("chrome crashed")

        result = runner.invoke(app, ["run", "--url", "http://x", "-d", str(reports_dir)])

        assert result.exit_code == 1
        assert "chrome crashed" in result.output

    def test_json_output(self, fakes, reports_dir):
        result = runner.invoke(
            app, ["run", "--url", "http://x", "--local", "-o", "json", "-d", str(reports_dir)]
        )

        assert result.exit_code == 0
        assert '"state": "done"' in result.output

    def test_headful_opens_html_report(self, fakes, reports_dir):
        with patch("perfwatch.cli.run.typer.launch") as launch:
            result = runner.invoke(
                app, ["run", "--url", "http://x", "--local", "--headful", "-d", str(reports_dir)]
            )

        assert result.exit_code == 0, result.output
        [call] = launch.call_args_list
        assert call.args[0].endswith("report.html")


@pytest.mark.integration
class TestCompareCommand:
    """Tests for `perfwatch compare`."""

    @pytest.fixture
    def stored(self, reports_dir, lhr_factory):
        for revision, lhr in (
            ("master", lhr_factory(interactive=(0.9, 2500), mainthread=(0.5, 3000))),
            ("abc123", lhr_factory(interactive=(0.8, 2000), mainthread=(0.9, 1500))),
        ):
            folder = reports_dir / f"automated-lighthouse-{revision}"
            folder.mkdir(parents=True)
            (folder / "report.json").write_text(json.dumps(lhr))
        return reports_dir

    def test_table_output(self, stored):
        result = runner.invoke(app, ["compare", "abc123", "master", "-d", str(stored)])

        assert result.exit_code == 0, result.output
        assert "REGRESSION DETECTED" in result.output
        assert "Regressions (1)" in result.output
        assert "Improvements (1)" in result.output

    def test_fail_on_regression(self, stored):
        result = runner.invoke(app, ["compare", "abc123", "master", "-f", "-d", str(stored)])
        assert result.exit_code == 1

    def test_markdown_output(self, stored):
        result = runner.invoke(
            app, ["compare", "abc123", "master", "-o", "markdown", "-d", str(stored)]
        )

        assert result.exit_code == 0
        assert "## Performance Comparison" in result.output
        assert "| interactive | -50ms | TTI is longer than benchmark |" in result.output

    def test_write_digests(self, stored):
        result = runner.invoke(
            app, ["compare", "abc123", "master", "--write-digests", "-d", str(stored)]
        )

        assert result.exit_code == 0
        folder = stored / "automated-lighthouse-abc123"
        assert (folder / "regressions-digest.json").exists()
        assert (folder / "improvements-digest.json").exists()

    def test_missing_report(self, stored):
        result = runner.invoke(app, ["compare", "abc123", "nothing", "-d", str(stored)])
        assert result.exit_code == 1

    def test_invalid_config(self, stored, tmp_path):
        config = tmp_path / "broken.yaml"
        config.write_text("- just\n- a list\n")

        result = runner.invoke(
            app, ["compare", "abc123", "master", "-c", str(config), "-d", str(stored)]
        )

        assert result.exit_code == 1
        assert "Invalid configuration" in result.output


class TestOtherCommands:
    """Tests for auxiliary commands."""

    def test_revisions(self, reports_dir):
        (reports_dir / "automated-lighthouse-master").mkdir(parents=True)
        (reports_dir / "automated-lighthouse-master" / "report.json").write_text("{}")

        result = runner.invoke(app, ["revisions", "-d", str(reports_dir)])

        assert result.exit_code == 0
        assert "master" in result.output

    def test_revisions_empty(self, reports_dir):
        result = runner.invoke(app, ["revisions", "-d", str(reports_dir)])
        assert "No reports stored" in result.output

    def test_revisions_invalid_config(self, reports_dir, tmp_path):
        config = tmp_path / "perfwatch.yaml"
        config.write_text("output_formats: [csv]\n")

        result = runner.invoke(app, ["revisions", "-c", str(config), "-d", str(reports_dir)])

        assert result.exit_code == 1
        assert "Invalid configuration" in result.output

    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert "perfwatch version" in result.output
