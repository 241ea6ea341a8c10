"""UI element coverage tracking for Playwright test runs."""

from .aggregator import CoverageError, CoverageSession, SessionFinalizedError, SessionState
from .discovery import discover_html_elements
from .elements import ElementRecord, ElementType, PageCoverage, SelectorUsage, TestCoverage
from .matcher import matches_selector, matching_selectors
from .renderers import render_html, render_json, render_markdown, save_reports
from .report import CoverageReport
from .snapshot import format_tree, parse_snapshot
from .tracking import TrackedPage

__all__ = [
    "CoverageError",
    "CoverageReport",
    "CoverageSession",
    "ElementRecord",
    "ElementType",
    "PageCoverage",
    "SelectorUsage",
    "SessionFinalizedError",
    "SessionState",
    "TestCoverage",
    "TrackedPage",
    "discover_html_elements",
    "format_tree",
    "matches_selector",
    "matching_selectors",
    "parse_snapshot",
    "render_html",
    "render_json",
    "render_markdown",
    "save_reports",
]
