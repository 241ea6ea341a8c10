"""Core data models for failure triage."""

import hashlib
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path


class ErrorType(Enum):
    """Types of test failures."""

    TIMEOUT = "timeout"
    ELEMENT_NOT_FOUND = "element_not_found"
    ASSERTION = "assertion"
    NETWORK = "network"
    PERMISSION = "permission"
    JAVASCRIPT = "javascript"
    UNKNOWN = "unknown"

    @classmethod
    def detect(cls, content: str) -> "ErrorType":
        lowered = content.lower()
        for error_type, keywords in _ERROR_TYPE_KEYWORDS:
            if any(keyword in lowered for keyword in keywords):
                return error_type
        return cls.UNKNOWN


_ERROR_TYPE_KEYWORDS = [
    (ErrorType.TIMEOUT, ("timeout", "waiting")),
    (ErrorType.ELEMENT_NOT_FOUND, ("element not found", "locator")),
    (ErrorType.ASSERTION, ("assertion", "expect")),
    (ErrorType.NETWORK, ("network", "connection")),
    (ErrorType.PERMISSION, ("permission", "access")),
    (ErrorType.JAVASCRIPT, ("javascript error", "uncaught")),
]


class Severity(Enum):
    """How urgent a failure is."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def detect(cls, content: str) -> "Severity":
        lowered = content.lower()
        for severity, keywords in _SEVERITY_KEYWORDS:
            if any(keyword in lowered for keyword in keywords):
                return severity
        return cls.LOW


_SEVERITY_KEYWORDS = [
    (Severity.CRITICAL, ("crash", "fatal", "critical", "security")),
    (Severity.HIGH, ("timeout", "assertion", "element not found")),
    (Severity.MEDIUM, ("network", "permission")),
]

_SELECTOR_CALL = re.compile(r"getBy\w+\(['\"`]([^'\"`]+)['\"`]")
_TEST_CALL = re.compile(r"test\(['\"`]([^'\"`]+)['\"`]")
_URL = re.compile(r"https?://[^\s'\"]+")
_SUMMARY_MARKERS = ("Error:", "Failed:", "AssertionError")


@dataclass
class TestError:
    """A failed test as found in the Playwright results directory."""

    __test__ = False  # not a pytest test class

    file_path: Path
    content: str
    test_name: str
    error_type: ErrorType = ErrorType.UNKNOWN
    severity: Severity = Severity.LOW
    keywords: list[str] = field(default_factory=list)
    browser: str | None = None
    html_report_path: Path | None = None
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def id(self) -> str:
        digest = hashlib.sha1(f"{self.file_path}\n{self.content}".encode()).hexdigest()
        return f"error_{digest[:12]}"

    @property
    def summary(self) -> str:
        lines = self.content.splitlines()
        line = next((line for line in lines if any(m in line for m in _SUMMARY_MARKERS)), None)
        if line is None:
            line = lines[0] if lines else ""
        return line.strip()[:100]

    @property
    def has_dom_context(self) -> bool:
        lowered = self.content.lower()
        return any(keyword in lowered for keyword in ("selector", "element", "locator", "getby", "queryselector"))

    @staticmethod
    def extract_keywords(content: str) -> list[str]:
        """Selectors, test-name words and URL tails mentioned in the error."""
        keywords: dict[str, None] = {}
        for selector in _SELECTOR_CALL.findall(content):
            keywords[selector.lower()] = None
        for name in _TEST_CALL.findall(content):
            for word in name.split():
                if len(word) > 2:
                    keywords[word.lower()] = None
        for url in _URL.findall(content):
            tail = url.rstrip("/").rsplit("/", 1)[-1]
            if len(tail) > 2:
                keywords[tail.lower()] = None
        return list(keywords)


@dataclass
class CodeBlock:
    language: str
    code: str

    @property
    def is_playwright(self) -> bool:
        return any(keyword in self.code for keyword in _PLAYWRIGHT_KEYWORDS)


_PLAYWRIGHT_KEYWORDS = (
    "page.", "getBy", "get_by_", "locator", "click(", "fill(", "expect(", "toHave", "toBe", "waitFor", "wait_for",
)
_CODE_FENCE = re.compile(r"```([\w+-]*)\n(.*?)```", re.DOTALL)
_LIST_ITEM = re.compile(r"^(?:[-*+]|\d+[.)])\s+(.*)$")


@dataclass
class AIResponse:
    """An AI backend's answer for one TestError."""

    content: str
    provider: str
    model: str
    processing_time: float = 0.0
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def code_blocks(self) -> list[CodeBlock]:
        return [
            CodeBlock(language=language or "text", code=code.rstrip("\n"))
            for language, code in _CODE_FENCE.findall(self.content)
        ]

    @property
    def recommendations(self) -> list[str]:
        """Bullet and numbered list items outside code fences."""
        text = _CODE_FENCE.sub("", self.content)
        items = []
        for line in text.splitlines():
            if match := _LIST_ITEM.match(line.strip()):
                items.append(match.group(1).strip())
        return items

    @property
    def has_executable_code(self) -> bool:
        return any(block.is_playwright for block in self.code_blocks)


@dataclass
class AnalysisResult:
    """Outcome of triaging one TestError."""

    error: TestError
    response: AIResponse | None = None
    failure: str | None = None
    response_file: Path | None = None
    allure_attachment: Path | None = None
    html_updated: bool = False

    @property
    def success(self) -> bool:
        return self.response is not None and self.failure is None


@dataclass
class TriageSummary:
    """Summary of one triage run."""

    total: int
    processed: int
    failed: int
    results: list[AnalysisResult] = field(default_factory=list)
    processing_time: float = 0.0
