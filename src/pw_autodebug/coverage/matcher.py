"""Decide whether a recorded selector covers a discovered element."""

import re
from typing import Iterable

from .elements import ElementRecord

_TEXT_DECORATION = re.compile(r'text=|locator\(|\)|"')
_CLASS_TOKEN = re.compile(r"\.([a-zA-Z0-9_-]+)")


def matches_selector(selector: str, element: ElementRecord) -> bool:
    """
    Check if a selector covers an element.

    Rules are checked from the most specific attribute to the generic tag;
    the first rule that applies to the (selector, element) pair decides the
    outcome. Unrecognised selectors simply do not match.
    """
    if "text=" in selector and element.text:
        needle = _TEXT_DECORATION.sub("", selector)
        return needle in element.text

    if "aria-label" in selector and element.aria_label:
        return element.aria_label in selector

    if selector.startswith("#") and element.id:
        return element.id == selector[1:]

    if "." in selector and element.class_name:
        match = _CLASS_TOKEN.search(selector)
        return bool(match) and match.group(1) in element.class_name

    if element.tag_name and element.tag_name.lower() == selector.lower():
        return True

    if "role=" in selector and element.role:
        return element.role in selector

    return False


def matching_selectors(element: ElementRecord, selectors: Iterable[str]) -> list[str]:
    """Return every selector that covers ``element``, in iteration order."""
    return [selector for selector in selectors if matches_selector(selector, element)]
