"""Data model for discovered UI elements and recorded interactions."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

MAX_TEXT_LENGTH = 100

CRITICAL_KEYWORDS = ("submit", "login", "buy", "checkout", "save", "send")


class ElementType(Enum):
    """Closed set of element categories used across coverage reports."""

    BUTTON = "button"
    LINK = "link"
    INPUT = "input"
    NAVIGATION = "navigation"
    FORM = "form"
    HEADING = "heading"
    REGION = "region"
    IMAGE = "image"
    TEXT = "text"
    GENERIC = "generic"

    @classmethod
    def from_tag(cls, tag: str, role: str = "") -> "ElementType":
        """Map a DOM tag name (and optional ARIA role) to an element type."""
        tag = (tag or "").lower()
        if tag in _TAG_TYPES:
            return _TAG_TYPES[tag]
        if len(tag) == 2 and tag[0] == "h" and tag[1] in "123456":
            return cls.HEADING
        return _ROLE_TYPES.get((role or "").lower(), cls.GENERIC)


_TAG_TYPES = {
    "a": ElementType.LINK,
    "button": ElementType.BUTTON,
    "input": ElementType.INPUT,
    "textarea": ElementType.INPUT,
    "select": ElementType.INPUT,
    "nav": ElementType.NAVIGATION,
    "form": ElementType.FORM,
    "section": ElementType.REGION,
    "main": ElementType.REGION,
    "aside": ElementType.REGION,
    "img": ElementType.IMAGE,
    "p": ElementType.TEXT,
    "span": ElementType.TEXT,
    "label": ElementType.TEXT,
}

_ROLE_TYPES = {
    "button": ElementType.BUTTON,
    "link": ElementType.LINK,
    "textbox": ElementType.INPUT,
    "searchbox": ElementType.INPUT,
    "combobox": ElementType.INPUT,
    "navigation": ElementType.NAVIGATION,
    "form": ElementType.FORM,
    "heading": ElementType.HEADING,
    "region": ElementType.REGION,
    "img": ElementType.IMAGE,
}

INTERACTABLE_TYPES = frozenset({ElementType.BUTTON, ElementType.LINK, ElementType.INPUT})


def clean_text(text: str | None) -> str:
    """Trim and cap element text."""
    return (text or "").strip()[:MAX_TEXT_LENGTH]


@dataclass
class ElementRecord:
    """A UI element found on a page, from a snapshot or from the DOM."""

    type: ElementType
    text: str = ""
    tag_name: str = ""
    id: str = ""
    class_name: str = ""
    role: str = ""
    aria_label: str = ""
    placeholder: str = ""
    url: str = ""
    visible: bool = False
    line_number: int = 0
    level: int = 0
    attributes: dict[str, str] = field(default_factory=dict)
    parent: "ElementRecord | None" = field(default=None, repr=False, compare=False)
    children: list["ElementRecord"] = field(default_factory=list, repr=False, compare=False)

    @property
    def label(self) -> str:
        return self.text or self.type.value

    @property
    def path(self) -> str:
        """Breadcrumb from the root element down to this one."""
        if self.parent is not None:
            return f"{self.parent.path} > {self.label}"
        return self.label

    @property
    def selector(self) -> str:
        """Best-effort selector synthesized from type and text."""
        if self.text:
            return f'{self.type.value}:has-text("{self.text}")'
        return self.type.value

    @property
    def interactable(self) -> bool:
        return self.type in INTERACTABLE_TYPES

    @property
    def critical(self) -> bool:
        lowered = self.text.lower()
        return any(keyword in lowered for keyword in CRITICAL_KEYWORDS)

    @property
    def key(self) -> tuple:
        """Identity used to deduplicate elements within a page."""
        return (
            self.type,
            self.tag_name,
            self.text,
            self.id,
            self.class_name,
            self.url,
            self.line_number,
        )

    def attach(self, parent: "ElementRecord") -> None:
        """Link this element under ``parent``."""
        self.parent = parent
        parent.children.append(self)

    def to_dict(self) -> dict:
        """JSON-safe projection without the tree pointers."""
        return {
            "type": self.type.value,
            "text": self.text,
            "tag_name": self.tag_name,
            "id": self.id,
            "class_name": self.class_name,
            "role": self.role,
            "aria_label": self.aria_label,
            "placeholder": self.placeholder,
            "url": self.url,
            "visible": self.visible,
            "line_number": self.line_number,
            "level": self.level,
            "path": self.path,
            "selector": self.selector,
            "interactable": self.interactable,
            "critical": self.critical,
        }

    @classmethod
    def from_dom(cls, data: dict) -> "ElementRecord":
        """Build a record from a DOM description (camelCase or snake_case keys)."""
        tag = (data.get("tagName") or data.get("tag_name") or "").lower()
        role = data.get("role") or ""
        return cls(
            type=ElementType.from_tag(tag, role),
            text=clean_text(data.get("text")),
            tag_name=tag,
            id=data.get("id") or "",
            class_name=data.get("className") or data.get("class_name") or "",
            role=role,
            aria_label=data.get("ariaLabel") or data.get("aria_label") or "",
            placeholder=data.get("placeholder") or "",
            url=data.get("href") or data.get("url") or "",
            visible=bool(data.get("visible", False)),
            attributes=dict(data.get("attributes") or {}),
        )


@dataclass(frozen=True)
class SelectorUsage:
    """One tracked interaction made by a test."""

    test_name: str
    selector: str
    method: str
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class PageCoverage:
    """Elements discovered on one page and the tests that visited it."""

    page_id: str
    elements: list[ElementRecord] = field(default_factory=list)
    visited_by: list[str] = field(default_factory=list)
    total_visits: int = 0
    first_visited: datetime = field(default_factory=datetime.now)
    last_analyzed: datetime = field(default_factory=datetime.now)


@dataclass
class TestCoverage:
    """Per-test record of visited pages and used selectors."""

    __test__ = False  # not a pytest test class

    test_name: str
    pages: list[str] = field(default_factory=list)
    selectors: list[str] = field(default_factory=list)
    interactions: list[SelectorUsage] = field(default_factory=list)
    status: str = "unknown"
    duration: float = 0.0
    runs: int = 0

    @property
    def unique_selectors(self) -> list[str]:
        return list(dict.fromkeys(self.selectors))
