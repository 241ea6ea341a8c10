"""Tests for the command line interface."""

from pathlib import Path

import pytest
from click.testing import CliRunner

from pw_autodebug import cli
from pw_autodebug.models import AIResponse, AnalysisResult, TestError, TriageSummary

PAGE = "https://shop.test/login"


@pytest.fixture
def runner(tmp_path, monkeypatch) -> CliRunner:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(cli, "setup_logging", lambda *args, **kwargs: None)
    return CliRunner()


@pytest.fixture
def report_file(tmp_path, session, login_elements) -> Path:
    session.record_page_visit(PAGE, login_elements, "test_login")
    session.record_selector_usage("test_login", "#login", "click")
    path = tmp_path / "coverage.json"
    path.write_text(session.finalize().to_json(), encoding="utf-8")
    return path


def fake_triage(summary: TriageSummary, calls: list):
    async def run(config, provider=None, project_path=Path("."), update_html=True):
        calls.append({"config": config, "project_path": project_path, "update_html": update_html})
        return summary

    return run


class TestAnalyze:
    def test_no_failures(self, runner, monkeypatch):
        calls = []
        monkeypatch.setattr(cli, "run_triage", fake_triage(TriageSummary(total=0, processed=0, failed=0), calls))

        result = runner.invoke(cli.main, ["analyze", "--no-html", "-r", "out/results"])

        assert result.exit_code == 0, result.output
        assert "No failed tests found." in result.output
        assert calls[0]["update_html"] is False
        assert calls[0]["config"].results.results_dir == Path("out/results")

    def test_failed_analysis_sets_exit_code(self, runner, monkeypatch):
        error = TestError(file_path=Path("e.md"), content="Error: boom", test_name="should sign in")
        summary = TriageSummary(
            total=2,
            processed=1,
            failed=1,
            results=[
                AnalysisResult(error=error, response=AIResponse(content="fix", provider="chat", model="m")),
                AnalysisResult(error=error, failure="HTTP 500"),
            ],
        )
        monkeypatch.setattr(cli, "run_triage", fake_triage(summary, []))

        result = runner.invoke(cli.main, ["analyze"])

        assert result.exit_code == 1
        assert "AI Failure Analysis" in result.output
        assert "should sign in" in result.output
        assert "HTTP 500" in result.output

    def test_config_option(self, runner, monkeypatch, tmp_path):
        calls = []
        monkeypatch.setattr(cli, "run_triage", fake_triage(TriageSummary(total=0, processed=0, failed=0), calls))
        config_file = tmp_path / "custom.yaml"
        config_file.write_text("results:\n  results_dir: e2e-results\n")

        result = runner.invoke(cli.main, ["-c", str(config_file), "analyze"])

        assert result.exit_code == 0, result.output
        assert calls[0]["config"].results.results_dir == Path("e2e-results")


class TestCoverageCommands:
    def test_show(self, runner, report_file):
        result = runner.invoke(cli.main, ["coverage", "show", str(report_file)])

        assert result.exit_code == 0, result.output
        assert "Session session-test" in result.output
        assert "50% coverage" in result.output
        assert "Top uncovered elements" in result.output
        assert "Docs" in result.output

    def test_render_to_stdout(self, runner, report_file):
        result = runner.invoke(cli.main, ["coverage", "render", str(report_file), "-f", "md"])

        assert result.exit_code == 0, result.output
        assert result.output.startswith("# Unified Test Coverage Report")

    def test_render_to_file(self, runner, report_file, tmp_path):
        output = tmp_path / "coverage.html"
        result = runner.invoke(cli.main, ["coverage", "render", str(report_file), "-o", str(output)])

        assert result.exit_code == 0, result.output
        assert output.read_text(encoding="utf-8").startswith("<!DOCTYPE html>")

    def test_invalid_report(self, runner, tmp_path):
        bogus = tmp_path / "bogus.json"
        bogus.write_text('{"summary": 3}')

        result = runner.invoke(cli.main, ["coverage", "show", str(bogus)])

        assert result.exit_code == 1
        assert "is not a coverage report" in result.output

    @pytest.mark.parametrize("command", ["show", "render", "snapshot"])
    def test_binary_file_is_rejected(self, runner, tmp_path, command):
        binary = tmp_path / "coverage.json"
        binary.write_bytes(b"\xff\xfe\x00binary")

        result = runner.invoke(cli.main, ["coverage", command, str(binary)])

        assert result.exit_code == 1
        assert "is not UTF-8 text" in result.output
        assert not isinstance(result.exception, UnicodeDecodeError)

    def test_snapshot(self, runner, tmp_path, login_snapshot):
        path = tmp_path / "snapshot.yaml"
        path.write_text(login_snapshot)

        result = runner.invoke(cli.main, ["coverage", "snapshot", str(path)])

        assert result.exit_code == 0, result.output
        assert '- navigation "Main"' in result.output
        assert "10 elements, 5 interactable, 2 critical" in result.output

    def test_empty_snapshot(self, runner, tmp_path):
        path = tmp_path / "snapshot.yaml"
        path.write_text("- paragraph: nothing here\n")

        result = runner.invoke(cli.main, ["coverage", "snapshot", str(path)])

        assert result.exit_code == 0
        assert "No recognised elements." in result.output
