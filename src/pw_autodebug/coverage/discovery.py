"""Discover interactive elements in raw page HTML."""

from typing import Iterator

from bs4 import BeautifulSoup, Tag

from .elements import ElementRecord

INTERACTIVE_SELECTORS = [
    "button",
    "a",
    "input",
    "select",
    "textarea",
    '[role="button"]',
    '[role="link"]',
    '[role="textbox"]',
    "[onclick]",
    "[onsubmit]",
    "[tabindex]",
]


def discover_html_elements(html: str) -> list[ElementRecord]:
    """
    Collect the interactive elements of an HTML document.

    Each element is reported once, in document order, and only if it carries
    something a selector could target: text, an id, an aria-label or an href.
    """
    soup = BeautifulSoup(html, "lxml")
    records = []
    for tag in _iter_interactive(soup):
        record = tag_to_element(tag)
        if record.text or record.id or record.aria_label or record.url:
            records.append(record)
    return records


def _iter_interactive(soup: BeautifulSoup) -> Iterator[Tag]:
    seen: set[int] = set()
    matched = {id(tag) for tag in soup.select(", ".join(INTERACTIVE_SELECTORS))}
    for tag in soup.find_all(True):
        if id(tag) in matched and id(tag) not in seen:
            seen.add(id(tag))
            yield tag


def tag_to_element(tag: Tag) -> ElementRecord:
    """Convert a BeautifulSoup Tag into an ElementRecord."""
    classes = tag.get("class") or []
    return ElementRecord.from_dom(
        {
            "tagName": tag.name,
            "text": tag.get_text(" ", strip=True) or tag.get("value") or "",
            "id": tag.get("id"),
            "className": " ".join(classes) if isinstance(classes, list) else str(classes),
            "role": tag.get("role"),
            "ariaLabel": tag.get("aria-label"),
            "placeholder": tag.get("placeholder"),
            "href": tag.get("href"),
            "visible": is_visible(tag),
            "attributes": {k: str(v) for k, v in tag.attrs.items() if k not in ("id", "class")},
        }
    )


def is_visible(tag: Tag) -> bool:
    """Static visibility check; layout-dependent hiding is not detectable here."""
    if tag.has_attr("hidden"):
        return False
    if (tag.get("type") or "").lower() == "hidden":
        return False
    if (tag.get("aria-hidden") or "").lower() == "true":
        return False
    style = (tag.get("style") or "").replace(" ", "").lower()
    return "display:none" not in style
