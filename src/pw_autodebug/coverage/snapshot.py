"""Parser for Playwright accessibility (aria) snapshots."""

import re
from typing import Iterable, Iterator

from .elements import ElementRecord, ElementType, clean_text

# Priority order matters: the first matching pattern decides the type.
_TYPE_PATTERNS: list[tuple[ElementType, re.Pattern]] = [
    (element_type, re.compile(rf'^(?:-\s*)?(?P<role>{roles})(?=[\s:"]|$)[:\s]*(?P<rest>.*)$'))
    for element_type, roles in [
        (ElementType.BUTTON, "button"),
        (ElementType.LINK, "link"),
        (ElementType.INPUT, "input|textbox"),
        (ElementType.NAVIGATION, "navigation"),
        (ElementType.FORM, "form"),
        (ElementType.HEADING, "heading"),
        (ElementType.REGION, "region"),
        (ElementType.IMAGE, "img"),
        (ElementType.TEXT, "text"),
        (ElementType.GENERIC, "/url"),
    ]
]

_QUOTED = re.compile(r'^"([^"]*)"?(.*)$')
_TRAILING_ATTRS = re.compile(r'(\s*\[[^\]]*\])+\s*:?\s*$')
_ATTR = re.compile(r'\[([^\]=]+)(?:=([^\]]*))?\]')

_TYPE_TAGS = {
    ElementType.BUTTON: "button",
    ElementType.LINK: "a",
    ElementType.INPUT: "input",
    ElementType.NAVIGATION: "nav",
    ElementType.FORM: "form",
    ElementType.REGION: "section",
    ElementType.IMAGE: "img",
}


def parse_snapshot(snapshot: str) -> list[ElementRecord]:
    """
    Parse an indented aria snapshot into element records.

    Each recognised line becomes one ElementRecord; nesting is taken from the
    indentation (two spaces per level). An element whose direct ancestor
    level is not open (a skipped level, or an ancestor line that was not
    recognised) becomes a root.

    Returns:
        Records in source order, linked through parent/children.
    """
    elements: list[ElementRecord] = []
    stack: dict[int, ElementRecord] = {}

    for line_number, line in enumerate(snapshot.splitlines(), start=1):
        trimmed = line.strip()
        if not trimmed or trimmed.startswith("#"):
            continue

        indent = len(line) - len(line.lstrip())
        level = indent // 2

        element = parse_line(trimmed, line_number)
        if element is None:
            # Closes this level too, so the line's children become roots
            for closed in [lvl for lvl in stack if lvl >= level]:
                del stack[closed]
            continue

        element.level = level

        parent = stack.get(level - 1) if level > 0 else None
        if parent is not None:
            element.attach(parent)
            if element.url and element.type is ElementType.GENERIC:
                if parent.type is ElementType.LINK and not parent.url:
                    parent.url = element.url

        stack[level] = element
        for deeper in [lvl for lvl in stack if lvl > level]:
            del stack[deeper]

        elements.append(element)

    return elements


def parse_line(line: str, line_number: int = 0) -> ElementRecord | None:
    """Parse a single trimmed snapshot line, or return None if unrecognised."""
    for element_type, pattern in _TYPE_PATTERNS:
        if match := pattern.match(line):
            label, attributes = _split_label(match.group("rest"))
            return _build_element(element_type, match.group("role"), label, attributes, line_number)
    return None


def _split_label(rest: str) -> tuple[str, dict[str, str]]:
    """Separate the human-readable label from trailing [attr] blocks."""
    rest = rest.strip()
    if match := _QUOTED.match(rest):
        label, tail = match.group(1), match.group(2)
    elif match := _TRAILING_ATTRS.search(rest):
        label, tail = rest[: match.start()], match.group(0)
    else:
        label, tail = rest, ""

    attributes = {key.strip(): (value or "").strip() for key, value in _ATTR.findall(tail)}
    return label.strip().rstrip(":").strip(), attributes


def _build_element(
    element_type: ElementType,
    role: str,
    label: str,
    attributes: dict[str, str],
    line_number: int,
) -> ElementRecord:
    text = clean_text(label)
    element = ElementRecord(
        type=element_type,
        text=text,
        tag_name=_TYPE_TAGS.get(element_type, ""),
        line_number=line_number,
        attributes=attributes,
    )

    if element_type is ElementType.GENERIC:
        element.url = label.strip()
    elif element_type is not ElementType.TEXT:
        element.role = role

    if element_type is ElementType.HEADING and attributes.get("level", "").isdigit():
        element.tag_name = f"h{attributes['level']}"

    return element


def iter_roots(elements: Iterable[ElementRecord]) -> Iterator[ElementRecord]:
    """Yield the top-level elements of a parsed snapshot."""
    for element in elements:
        if element.parent is None:
            yield element


def format_tree(elements: Iterable[ElementRecord]) -> str:
    """Render parsed elements as an indented outline."""
    lines: list[str] = []

    def walk(node: ElementRecord, depth: int) -> None:
        marker = " *" if node.critical else ""
        text = f' "{node.text}"' if node.text else ""
        lines.append(f"{'  ' * depth}- {node.type.value}{text}{marker}")
        for child in node.children:
            walk(child, depth + 1)

    for root in iter_roots(elements):
        walk(root, 0)

    return "\n".join(lines)
