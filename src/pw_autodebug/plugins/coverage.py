"""Pytest plugin that tracks UI element coverage across a test session.

Enable with ``pytest -p pw_autodebug.plugins.coverage``. Tests opt in by
using the ``tracked_page`` fixture in place of pytest-playwright's ``page``.
"""

import pytest
from loguru import logger

from ..config import Config, load_config
from ..coverage.aggregator import CoverageSession, SessionState
from ..coverage.renderers import save_reports
from ..coverage.tracking import TrackedPage

SESSION_KEY = pytest.StashKey[CoverageSession]()
CONFIG_KEY = pytest.StashKey[Config]()


def pytest_configure(config):
    config.stash[CONFIG_KEY] = load_config()
    config.stash[SESSION_KEY] = CoverageSession()


@pytest.fixture(scope="session")
def coverage_session(pytestconfig) -> CoverageSession:
    """The CoverageSession shared by every test of this run."""
    return pytestconfig.stash[SESSION_KEY]


@pytest.fixture
def tracked_page(request, coverage_session):
    """pytest-playwright ``page`` wrapped so navigation and selectors are recorded."""
    page = request.getfixturevalue("page")
    settings = request.config.stash[CONFIG_KEY]
    return TrackedPage(page, coverage_session, request.node.nodeid, discovery=settings.coverage.discovery)


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    """Record the outcome of tests that used ``tracked_page``."""
    outcome = yield
    report = outcome.get_result()

    if "tracked_page" not in getattr(item, "fixturenames", ()):
        return
    if report.when == "call" or (report.when == "setup" and not report.passed):
        session = item.config.stash[SESSION_KEY]
        if session.state is not SessionState.FINALIZED:
            session.record_test_result(item.nodeid, report.outcome, report.duration)


def pytest_sessionfinish(session, exitstatus):
    """Finalize coverage and write the reports."""
    config = session.config
    if SESSION_KEY not in config.stash:
        return

    coverage = config.stash[SESSION_KEY]
    settings = config.stash[CONFIG_KEY]
    if coverage.state is not SessionState.ACTIVE or not settings.coverage.enabled:
        return

    report = coverage.finalize()
    paths = save_reports(report, settings.coverage.output_dir, settings.coverage.formats)
    logger.info(f"UI coverage {report.summary.coverage_percentage}% written to {settings.coverage.output_dir}")

    reporter = config.pluginmanager.get_plugin("terminalreporter")
    if reporter is not None:
        reporter.write_line(
            f"UI coverage: {report.summary.coverage_percentage}% "
            f"({report.summary.covered_elements}/{report.summary.total_elements} elements), "
            f"report: {paths.get('html') or paths.get('json') or settings.coverage.output_dir}"
        )
