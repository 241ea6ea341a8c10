"""Render a CoverageReport as JSON, Markdown or a standalone HTML page."""

import html
from datetime import datetime
from pathlib import Path
from typing import Iterable

from loguru import logger

from .report import CoverageReport

REPORT_PREFIX = "unified-coverage"
DEFAULT_FORMATS = ("json", "html", "md")


def esc(value) -> str:
    return html.escape(str(value))


def _coverage_color(value: int) -> str:
    if value > 60:
        return "#4caf50"
    if value > 30:
        return "#ff9800"
    return "#f44336"


def _priority_class(priority: int) -> str:
    if priority > 8:
        return "danger"
    if priority > 5:
        return "warning"
    return "info"


def render_json(report: CoverageReport) -> str:
    return report.to_json()


def render_markdown(report: CoverageReport) -> str:
    summary = report.summary
    lines = [
        "# Unified Test Coverage Report",
        "",
        f"Session: `{report.metadata.session_id}`  ",
        f"Generated: {report.metadata.generated_at.isoformat(timespec='seconds')}",
        "",
        "## Summary",
        "",
        f"- **Coverage:** {summary.coverage_percentage}% "
        f"({summary.covered_elements}/{summary.total_elements} elements)",
        f"- **Tests:** {summary.total_tests}",
        f"- **Pages:** {summary.total_pages}",
        f"- **Selectors:** {summary.total_selectors}",
        f"- **Critical elements:** {report.critical.covered}/{report.critical.total} covered "
        f"({report.critical.percentage}%)",
        "",
    ]

    if report.pages:
        lines += ["## Pages", "", "| Page | Elements | Covered | Coverage | Visits |", "|---|---|---|---|---|"]
        for page in report.pages:
            lines.append(
                f"| {page.page_id} | {page.total_elements} | {page.covered_elements} "
                f"| {page.coverage_percentage}% | {page.total_visits} |"
            )
        lines.append("")

    if report.tests:
        lines += ["## Tests", "", "| Test | Status | Pages | Selectors | Unique |", "|---|---|---|---|---|"]
        for test in report.tests:
            lines.append(
                f"| {test.test_name} | {test.status} | {test.pages_visited} "
                f"| {test.selectors_used} | {test.unique_selectors} |"
            )
        lines.append("")

    if report.by_type:
        lines += ["## Coverage by element type", ""]
        for name, stats in sorted(report.by_type.items()):
            lines.append(f"- **{name}:** {stats.covered}/{stats.total} ({stats.percentage}%)")
        lines.append("")

    if report.uncovered_elements:
        lines += ["## Top uncovered elements", ""]
        for index, element in enumerate(report.uncovered_elements[:10], start=1):
            lines.append(f"{index}. **{element.label}** ({element.type}) - priority {element.priority}")
            lines.append(f"   - Page: {element.page_id}")
            if element.suggested_selectors:
                selectors = "`, `".join(element.suggested_selectors[:3])
                lines.append(f"   - Selectors: `{selectors}`")
        lines.append("")

    if report.recommendations:
        lines += ["## Recommendations", ""]
        lines += [f"- [{rec.priority}] {rec.message}" for rec in report.recommendations]
        lines.append("")

    return "\n".join(lines)


_STYLE = """
body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif; margin: 0; padding: 20px; background: #f5f5f5; }
.container { max-width: 1400px; margin: 0 auto; background: #fff; border-radius: 12px; padding: 30px; }
.cards { display: grid; grid-template-columns: repeat(auto-fit, minmax(200px, 1fr)); gap: 16px; margin-bottom: 24px; }
.card { padding: 20px; border-radius: 10px; color: #fff; text-align: center; background: #667eea; }
.card .value { font-size: 2em; font-weight: bold; }
table { width: 100%; border-collapse: collapse; margin-bottom: 24px; }
th, td { padding: 8px 10px; border-bottom: 1px solid #eee; text-align: left; }
th { background: #fafafa; }
code { background: #f0f0f0; padding: 1px 4px; border-radius: 4px; }
.badge { padding: 2px 8px; border-radius: 10px; color: #fff; }
.badge.danger { background: #f44336; } .badge.warning { background: #ff9800; } .badge.info { background: #2196f3; }
.recommendation { padding: 12px; margin: 8px 0; border-left: 4px solid; border-radius: 6px; }
.recommendation.high { border-color: #f44336; background: #ffebee; }
.recommendation.medium { border-color: #ff9800; background: #fff3e0; }
.recommendation.low { border-color: #4caf50; background: #e8f5e8; }
"""


def _table(headers: list[str], rows: Iterable[list[str]]) -> str:
    head = "".join(f"<th>{esc(h)}</th>" for h in headers)
    body = "".join("<tr>" + "".join(f"<td>{cell}</td>" for cell in row) + "</tr>" for row in rows)
    return f"<table><thead><tr>{head}</tr></thead><tbody>{body}</tbody></table>"


def render_html(report: CoverageReport) -> str:
    """Self-contained HTML page; every piece of report text is escaped."""
    summary = report.summary
    cards = [
        ("Coverage", f"{summary.coverage_percentage}%", _coverage_color(summary.coverage_percentage)),
        ("Tests", summary.total_tests, "#667eea"),
        ("Pages", summary.total_pages, "#00a8cc"),
        ("Elements", f"{summary.covered_elements}/{summary.total_elements}", "#fc466b"),
        ("Critical", f"{report.critical.percentage}%", _coverage_color(report.critical.percentage)),
    ]
    cards_html = "".join(
        f'<div class="card" style="background:{color}"><div class="value">{esc(value)}</div>'
        f"<div>{esc(title)}</div></div>"
        for title, value, color in cards
    )

    pages_html = _table(
        ["Page", "Elements", "Covered", "Coverage", "Visits", "Visited by"],
        (
            [
                esc(page.page_id),
                str(page.total_elements),
                str(page.covered_elements),
                f"{page.coverage_percentage}%",
                str(page.total_visits),
                esc(", ".join(page.visited_by)),
            ]
            for page in report.pages
        ),
    )

    tests_html = _table(
        ["Test", "Status", "Pages", "Selectors", "Unique", "Interactions"],
        (
            [
                esc(test.test_name),
                esc(test.status),
                str(test.pages_visited),
                str(test.selectors_used),
                str(test.unique_selectors),
                str(test.interactions),
            ]
            for test in report.tests
        ),
    )

    uncovered_html = _table(
        ["Element", "Type", "Page", "Priority", "Suggested selectors"],
        (
            [
                esc(element.label),
                esc(element.type),
                esc(element.page_id),
                f'<span class="badge {_priority_class(element.priority)}">{element.priority}</span>',
                "<code>" + esc(", ".join(element.suggested_selectors[:2])) + "</code>",
            ]
            for element in report.uncovered_elements
        ),
    )

    selectors_html = _table(
        ["Selector", "Method", "Usage", "Tests"],
        (
            [
                "<code>" + esc(item.selector) + "</code>",
                esc(item.method),
                str(item.total_usage),
                esc(", ".join(item.used_by)),
            ]
            for item in report.selectors
        ),
    )

    recommendations_html = "".join(
        f'<div class="recommendation {esc(rec.priority)}">{esc(rec.message)}</div>'
        for rec in report.recommendations
    )

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Unified Test Coverage Report</title>
<style>{_STYLE}</style>
</head>
<body>
<div class="container">
<h1>Unified Test Coverage Report</h1>
<p>Session <code>{esc(report.metadata.session_id)}</code>, generated {esc(report.metadata.generated_at.isoformat(timespec='seconds'))}</p>
<div class="cards">{cards_html}</div>
<h2>Recommendations</h2>
{recommendations_html}
<h2>Pages</h2>
{pages_html}
<h2>Tests</h2>
{tests_html}
<h2>Uncovered elements</h2>
{uncovered_html}
<h2>Selectors</h2>
{selectors_html}
</div>
</body>
</html>
"""


def render_index(html_name: str) -> str:
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta http-equiv="refresh" content="0; url={esc(html_name)}">
<title>Test Coverage Reports</title>
</head>
<body>
<p>Latest report: <a href="{esc(html_name)}">{esc(html_name)}</a></p>
</body>
</html>
"""


RENDERERS = {
    "json": render_json,
    "html": render_html,
    "md": render_markdown,
}


def save_reports(
    report: CoverageReport,
    output_dir: Path | str,
    formats: Iterable[str] = DEFAULT_FORMATS,
) -> dict[str, Path]:
    """
    Write the report in each requested format.

    Files are named ``unified-coverage-<timestamp>.<ext>``; when an HTML
    report is written, ``index.html`` is refreshed to point at it.

    Returns:
        Mapping of format (plus ``index``) to written path.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    timestamp = int(datetime.now().timestamp() * 1000)

    written: dict[str, Path] = {}
    for fmt in formats:
        renderer = RENDERERS.get(fmt)
        if renderer is None:
            raise ValueError(f"Unknown report format: {fmt!r} (expected one of {', '.join(RENDERERS)})")
        path = output_dir / f"{REPORT_PREFIX}-{timestamp}.{fmt}"
        path.write_text(renderer(report), encoding="utf-8")
        written[fmt] = path

    if "html" in written:
        index = output_dir / "index.html"
        index.write_text(render_index(written["html"].name), encoding="utf-8")
        written["index"] = index

    for name, path in written.items():
        logger.info(f"Coverage report ({name}): {path}")

    return written
