"""Inject AI analyses into Playwright HTML reports."""

from pathlib import Path

from bs4 import BeautifulSoup, Tag
from loguru import logger

OVERLAY_ID = "ai-analysis-overlay"
TRIGGER_ID = "ai-analysis-trigger"
COUNT_ID = "ai-analysis-count"
ITEM_CLASS = "ai-analysis-item"
BLOCK_CLASS = "ai-analysis-block"
MAX_ERROR_PREVIEW = 1500

_OVERLAY_STYLE = (
    "position: fixed; inset: 0; background: rgba(0, 0, 0, 0.8); z-index: 10000; "
    "display: none; align-items: center; justify-content: center;"
)
_PANEL_STYLE = (
    "background: white; border-radius: 12px; max-width: 1000px; max-height: 85vh; "
    "overflow-y: auto; margin: 20px; padding: 24px;"
)
_TRIGGER_STYLE = (
    "position: fixed; bottom: 20px; right: 20px; z-index: 9999; padding: 10px 16px; "
    "border: none; border-radius: 20px; background: #0969da; color: white; cursor: pointer;"
)
_TOGGLE_SCRIPT = """
(function () {
  var overlay = document.getElementById('ai-analysis-overlay');
  document.getElementById('ai-analysis-trigger').addEventListener('click', function () {
    overlay.style.display = 'flex';
  });
  overlay.addEventListener('click', function (event) {
    if (event.target === overlay) { overlay.style.display = 'none'; }
  });
})();
"""


def is_playwright_report(html: str) -> bool:
    return "playwrightReportBase64" in html and ("id='root'" in html or 'id="root"' in html)


def _new(soup: BeautifulSoup, name: str, text: str | None = None, **attrs) -> Tag:
    tag = soup.new_tag(name, attrs=attrs)
    if text is not None:
        tag.string = text
    return tag


def build_analysis_item(soup: BeautifulSoup, test_name: str, error_content: str, ai_response: str) -> Tag:
    """One analysis entry: test title, error excerpt and the AI answer."""
    item = _new(soup, "div", **{"class": ITEM_CLASS, "style": "border-top: 1px solid #d0d7de; padding: 12px 0;"})
    item.append(_new(soup, "h3", test_name))

    error = error_content.strip()
    if len(error) > MAX_ERROR_PREVIEW:
        error = error[:MAX_ERROR_PREVIEW] + "\n..."
    details = _new(soup, "details")
    details.append(_new(soup, "summary", "Error"))
    details.append(_new(soup, "pre", error, style="white-space: pre-wrap; background: #f6f8fa; padding: 8px;"))
    item.append(details)

    item.append(_new(soup, "div", ai_response, **{"class": "ai-response", "style": "white-space: pre-wrap;"}))
    return item


def _count_label(count: int) -> str:
    return f"AI Analysis ({count})"


def _add_to_playwright_report(soup: BeautifulSoup, item: Tag) -> bool:
    overlay = soup.find(id=OVERLAY_ID)
    if overlay is None:
        body = soup.body
        if body is None:
            return False

        overlay = _new(soup, "div", id=OVERLAY_ID, style=_OVERLAY_STYLE)
        panel = _new(soup, "div", **{"class": "ai-analysis-list", "style": _PANEL_STYLE})
        panel.append(_new(soup, "h2", "AI Analysis"))
        overlay.append(panel)

        trigger = _new(soup, "button", id=TRIGGER_ID, type="button", style=_TRIGGER_STYLE)
        trigger.append(_new(soup, "span", _count_label(0), id=COUNT_ID))

        body.append(overlay)
        body.append(trigger)
        body.append(_new(soup, "script", _TOGGLE_SCRIPT))

    panel = overlay.find(class_="ai-analysis-list") or overlay
    panel.append(item)

    count = len(soup.find_all(class_=ITEM_CLASS))
    counter = soup.find(id=COUNT_ID)
    if counter is not None:
        counter.string = _count_label(count)
    return True


def _add_to_plain_page(soup: BeautifulSoup, item: Tag) -> bool:
    body = soup.body
    if body is None:
        return False

    block = body.find(class_=BLOCK_CLASS, recursive=False)
    if block is None:
        block = _new(soup, "div", **{"class": BLOCK_CLASS, "style": "border: 2px solid #0969da; padding: 16px; margin: 16px;"})
        block.append(_new(soup, "h2", "AI Analysis"))
        body.insert(0, block)
    block.append(item)
    return True


def update_html_report(html_path: Path, error_content: str, ai_response: str, test_name: str) -> bool:
    """
    Add an AI analysis to ``html_path`` in place.

    Playwright's own report gets a floating "AI Analysis (n)" button with an
    overlay listing every analysis; any other page gets the analysis block
    right after ``<body>``. Repeated calls append and keep the count current.

    Returns:
        True if the file was updated.
    """
    if not html_path.exists():
        logger.warning(f"HTML report not found: {html_path}")
        return False

    html = html_path.read_text(encoding="utf-8")
    soup = BeautifulSoup(html, "lxml")
    item = build_analysis_item(soup, test_name, error_content, ai_response)

    if is_playwright_report(html):
        updated = _add_to_playwright_report(soup, item)
    else:
        updated = _add_to_plain_page(soup, item)

    if not updated:
        logger.warning(f"No <body> to insert the AI analysis into: {html_path}")
        return False

    html_path.write_text(str(soup), encoding="utf-8")
    logger.info(f"Added AI analysis for {test_name!r} to {html_path}")
    return True
