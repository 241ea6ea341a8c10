"""
Coverage session: collects page visits and selector usages from tests and
computes coverage statistics over them.
"""

import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable

from loguru import logger

from .elements import ElementRecord, ElementType, PageCoverage, SelectorUsage, TestCoverage
from .matcher import matches_selector, matching_selectors
from .report import (
    CoverageReport,
    CoverageStats,
    CoverageSummary,
    CriticalCoverage,
    PageAnalysis,
    PageElement,
    Recommendation,
    ReportMetadata,
    SelectorAnalysis,
    SelectorCount,
    TestAnalysis,
    UncoveredElement,
)
from .snapshot import parse_snapshot

LOW_COVERAGE_THRESHOLD = 30
MEDIUM_COVERAGE_THRESHOLD = 60
HIGH_PRIORITY_THRESHOLD = 8
MIN_SELECTORS_PER_TEST = 3
MAX_SUGGESTED_SELECTORS = 4
MAX_SUGGESTED_TEXT_LENGTH = 50
MOST_USED_SELECTORS = 5

_PRIORITY_TYPES = frozenset({ElementType.BUTTON, ElementType.LINK, ElementType.INPUT})


class CoverageError(Exception):
    """Base error for coverage tracking."""


class SessionFinalizedError(CoverageError):
    """Raised when a finalized session is asked to record more data."""


class SessionState(Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    FINALIZED = "finalized"


@dataclass
class SelectorIndexEntry:
    """Aggregated usage of one (selector, method) pair across tests."""

    selector: str
    method: str
    used_by: list[str] = field(default_factory=list)
    total_usage: int = 0
    first_used: datetime = field(default_factory=datetime.now)
    last_used: datetime = field(default_factory=datetime.now)


def percentage(covered: int, total: int) -> int:
    """Rounded coverage percentage, 0 for an empty group."""
    if total <= 0:
        return 0
    return round(covered / total * 100)


def suggest_selectors(element: ElementRecord) -> list[str]:
    """Candidate selectors for an uncovered element, most specific first."""
    suggestions: list[str] = []

    if element.id:
        suggestions.append(f"#{element.id}")
    if element.text and len(element.text) < MAX_SUGGESTED_TEXT_LENGTH:
        suggestions.append(f"text={element.text}")
    if element.aria_label:
        suggestions.append(f'[aria-label="{element.aria_label}"]')
    if element.class_name:
        classes = [name for name in element.class_name.split() if len(name) > 2]
        if classes:
            suggestions.append(f".{classes[0]}")
    if element.role:
        suggestions.append(f'[role="{element.role}"]')
    if element.tag_name:
        suggestions.append(element.tag_name)

    return suggestions[:MAX_SUGGESTED_SELECTORS]


def element_priority(element: ElementRecord) -> int:
    """Score how much an uncovered element matters; higher is more urgent."""
    priority = 1
    if element.type in _PRIORITY_TYPES:
        priority += 5
    if element.text:
        priority += 3
    if element.visible:
        priority += 2
    if element.id:
        priority += 2
    if element.aria_label:
        priority += 2
    if element.role:
        priority += 1
    return priority


def _dedupe(elements: Iterable[ElementRecord]) -> list[ElementRecord]:
    unique: dict[tuple, ElementRecord] = {}
    for element in elements:
        unique.setdefault(element.key, element)
    return list(unique.values())


class CoverageSession:
    """
    One test run's worth of coverage data.

    The session starts UNINITIALIZED; ``start()`` (or the first recording
    call) makes it ACTIVE and ``finalize()`` freezes it. Recording into a
    finalized session raises SessionFinalizedError.

    Example:
        session = CoverageSession()
        session.record_snapshot("https://app/login", snapshot, "test_login")
        session.record_selector_usage("test_login", "#submit", "click")
        report = session.finalize()
    """

    def __init__(self, session_id: str | None = None):
        self.session_id = session_id or ""
        self.state = SessionState.UNINITIALIZED
        self.tests: dict[str, TestCoverage] = {}
        self.pages: dict[str, PageCoverage] = {}
        self.selectors: dict[tuple[str, str], SelectorIndexEntry] = {}
        self.started_at: float | None = None
        self.finished_at: float | None = None

    # Lifecycle

    def start(self, session_id: str | None = None) -> "CoverageSession":
        """Reset all maps and begin accepting data."""
        if self.state is SessionState.FINALIZED:
            raise SessionFinalizedError(f"Session {self.session_id} is finalized and cannot be restarted")

        self.started_at = time.time()
        self.session_id = session_id or self.session_id or f"session-{int(self.started_at * 1000)}"
        self.tests = {}
        self.pages = {}
        self.selectors = {}
        self.finished_at = None
        self.state = SessionState.ACTIVE

        logger.debug(f"Coverage session {self.session_id} started")
        return self

    def finalize(self) -> CoverageReport:
        """Freeze the session and return its report."""
        self._ensure_active()
        self.finished_at = time.time()
        self.state = SessionState.FINALIZED
        report = self.build_report()
        logger.info(
            f"Coverage session {self.session_id} finalized: "
            f"{report.summary.covered_elements}/{report.summary.total_elements} elements covered "
            f"({report.summary.coverage_percentage}%)"
        )
        return report

    @property
    def duration(self) -> float:
        if self.started_at is None:
            return 0.0
        end = self.finished_at if self.finished_at is not None else time.time()
        return end - self.started_at

    def _ensure_active(self) -> None:
        if self.state is SessionState.FINALIZED:
            raise SessionFinalizedError(f"Session {self.session_id} is finalized; no further data can be recorded")
        if self.state is SessionState.UNINITIALIZED:
            self.start()

    def _test(self, test_name: str) -> TestCoverage:
        if test_name not in self.tests:
            self.tests[test_name] = TestCoverage(test_name=test_name)
        return self.tests[test_name]

    # Recording

    def record_page_visit(
        self,
        page_id: str,
        elements: Iterable[ElementRecord],
        test_name: str,
    ) -> PageCoverage:
        """
        Record that ``test_name`` visited ``page_id`` and saw ``elements``.

        The stored element list is replaced only when the new (deduplicated)
        list is strictly larger; visits always count.
        """
        self._ensure_active()
        incoming = _dedupe(elements)

        page = self.pages.get(page_id)
        if page is None:
            page = PageCoverage(page_id=page_id, elements=incoming)
            self.pages[page_id] = page
        elif len(incoming) > len(page.elements):
            logger.debug(f"Page {page_id}: element list grew {len(page.elements)} -> {len(incoming)}")
            page.elements = incoming

        if test_name not in page.visited_by:
            page.visited_by.append(test_name)
        page.total_visits += 1
        page.last_analyzed = datetime.now()

        test = self._test(test_name)
        if page_id not in test.pages:
            test.pages.append(page_id)

        return page

    def record_snapshot(self, page_id: str, snapshot: str, test_name: str) -> PageCoverage:
        """Parse an aria snapshot and record it as a page visit."""
        self._ensure_active()
        return self.record_page_visit(page_id, parse_snapshot(snapshot), test_name)

    def record_selector_usage(self, test_name: str, selector: str, method: str) -> SelectorUsage:
        self._ensure_active()
        usage = SelectorUsage(test_name=test_name, selector=selector, method=method)

        test = self._test(test_name)
        test.selectors.append(selector)
        test.interactions.append(usage)

        entry = self.selectors.get((selector, method))
        if entry is None:
            entry = SelectorIndexEntry(selector=selector, method=method)
            self.selectors[(selector, method)] = entry
        if test_name not in entry.used_by:
            entry.used_by.append(test_name)
        entry.total_usage += 1
        entry.last_used = usage.timestamp

        return usage

    def record_test_result(self, test_name: str, status: str, duration: float = 0.0) -> TestCoverage:
        self._ensure_active()
        test = self._test(test_name)
        test.status = status
        test.duration = duration
        test.runs += 1
        return test

    def merge(self, other: "CoverageSession") -> "CoverageSession":
        """Fold a worker's session into this one."""
        self._ensure_active()

        for page_id, theirs in other.pages.items():
            page = self.pages.get(page_id)
            if page is None:
                page = PageCoverage(
                    page_id=page_id,
                    elements=list(theirs.elements),
                    first_visited=theirs.first_visited,
                    last_analyzed=theirs.last_analyzed,
                )
                self.pages[page_id] = page
            elif len(theirs.elements) > len(page.elements):
                page.elements = list(theirs.elements)
            for test_name in theirs.visited_by:
                if test_name not in page.visited_by:
                    page.visited_by.append(test_name)
            page.total_visits += theirs.total_visits

        for test_name, theirs in other.tests.items():
            test = self._test(test_name)
            for page_id in theirs.pages:
                if page_id not in test.pages:
                    test.pages.append(page_id)
            test.selectors.extend(theirs.selectors)
            test.interactions.extend(theirs.interactions)
            test.runs += theirs.runs
            if theirs.status != "unknown":
                test.status = theirs.status
                test.duration = theirs.duration

        for key, theirs in other.selectors.items():
            entry = self.selectors.get(key)
            if entry is None:
                entry = SelectorIndexEntry(
                    selector=theirs.selector,
                    method=theirs.method,
                    first_used=theirs.first_used,
                )
                self.selectors[key] = entry
            for test_name in theirs.used_by:
                if test_name not in entry.used_by:
                    entry.used_by.append(test_name)
            entry.total_usage += theirs.total_usage
            entry.last_used = max(entry.last_used, theirs.last_used)

        logger.debug(f"Merged session {other.session_id} into {self.session_id}")
        return self

    # Queries

    @staticmethod
    def is_element_covered(element: ElementRecord, used_selectors: Iterable[str]) -> bool:
        return any(matches_selector(selector, element) for selector in used_selectors)

    @staticmethod
    def covered_by(element: ElementRecord, used_selectors: Iterable[str]) -> list[str]:
        return matching_selectors(element, used_selectors)

    def selectors_for_page(self, page_id: str) -> list[str]:
        """Distinct selectors used by any test that visited ``page_id``."""
        selectors: dict[str, None] = {}
        for test in self.tests.values():
            if page_id in test.pages:
                selectors.update(dict.fromkeys(test.selectors))
        return list(selectors)

    def selectors_for_test(self, test_name: str) -> list[str]:
        test = self.tests.get(test_name)
        return test.unique_selectors if test else []

    def _iter_page_elements(self) -> Iterable[tuple[PageCoverage, ElementRecord, bool]]:
        for page in self.pages.values():
            used = self.selectors_for_page(page.page_id)
            for element in page.elements:
                yield page, element, self.is_element_covered(element, used)

    # Computations

    def compute_summary(self) -> CoverageSummary:
        total = covered = 0
        for _, _, is_covered in self._iter_page_elements():
            total += 1
            covered += is_covered

        return CoverageSummary(
            total_tests=len(self.tests),
            total_pages=len(self.pages),
            total_elements=total,
            covered_elements=covered,
            uncovered_elements=total - covered,
            coverage_percentage=percentage(covered, total),
            total_selectors=len(self.selectors),
            session_duration=self.duration,
        )

    def compute_uncovered(self, limit: int | None = None) -> list[UncoveredElement]:
        """Uncovered elements ranked by priority; ties keep discovery order."""
        uncovered = [
            UncoveredElement(
                **element.to_dict(),
                page_id=page.page_id,
                suggested_selectors=suggest_selectors(element),
                priority=element_priority(element),
                page_visits=page.total_visits,
            )
            for page, element, is_covered in self._iter_page_elements()
            if not is_covered
        ]
        uncovered.sort(key=lambda item: item.priority, reverse=True)
        return uncovered if limit is None else uncovered[:limit]

    @staticmethod
    def _stats(groups: dict[str, list[bool]]) -> dict[str, CoverageStats]:
        stats = {}
        for name, flags in groups.items():
            covered = sum(flags)
            stats[name] = CoverageStats(
                total=len(flags),
                covered=covered,
                uncovered=len(flags) - covered,
                percentage=percentage(covered, len(flags)),
            )
        return stats

    def compute_by_type(self) -> dict[str, CoverageStats]:
        groups: dict[str, list[bool]] = {}
        for _, element, is_covered in self._iter_page_elements():
            groups.setdefault(element.type.value, []).append(is_covered)
        return self._stats(groups)

    def compute_by_page(self) -> dict[str, CoverageStats]:
        groups: dict[str, list[bool]] = {page_id: [] for page_id in self.pages}
        for page, _, is_covered in self._iter_page_elements():
            groups[page.page_id].append(is_covered)
        return self._stats(groups)

    def compute_page_analysis(self) -> list[PageAnalysis]:
        """Per-page coverage, most visited pages first."""
        analysis = []
        for page in self.pages.values():
            used = self.selectors_for_page(page.page_id)
            elements = [
                PageElement(**element.to_dict(), covered=bool(hits), covered_by=hits)
                for element in page.elements
                for hits in [self.covered_by(element, used)]
            ]
            covered = sum(1 for element in elements if element.covered)
            analysis.append(
                PageAnalysis(
                    page_id=page.page_id,
                    total_elements=len(elements),
                    covered_elements=covered,
                    uncovered_elements=len(elements) - covered,
                    coverage_percentage=percentage(covered, len(elements)),
                    visited_by=list(page.visited_by),
                    total_visits=page.total_visits,
                    elements=elements,
                )
            )
        analysis.sort(key=lambda item: item.total_visits, reverse=True)
        return analysis

    def compute_test_analysis(self) -> list[TestAnalysis]:
        """Per-test activity, heaviest selector users first."""
        analysis = []
        for test in self.tests.values():
            counts = Counter(test.selectors)
            analysis.append(
                TestAnalysis(
                    test_name=test.test_name,
                    status=test.status,
                    pages_visited=len(test.pages),
                    selectors_used=len(test.selectors),
                    unique_selectors=len(counts),
                    interactions=len(test.interactions),
                    duration=test.duration,
                    runs=max(test.runs, 1),
                    pages=list(test.pages),
                    most_used_selectors=[
                        SelectorCount(selector=selector, count=count)
                        for selector, count in counts.most_common(MOST_USED_SELECTORS)
                    ],
                )
            )
        analysis.sort(key=lambda item: item.selectors_used, reverse=True)
        return analysis

    def compute_selector_analysis(self) -> list[SelectorAnalysis]:
        analysis = [
            SelectorAnalysis(
                selector=entry.selector,
                method=entry.method,
                used_by=list(entry.used_by),
                total_usage=entry.total_usage,
                tests_count=len(entry.used_by),
            )
            for entry in self.selectors.values()
        ]
        analysis.sort(key=lambda item: item.total_usage, reverse=True)
        return analysis

    def compute_critical_coverage(self) -> CriticalCoverage:
        """Coverage of business-critical elements; 100% when there are none."""
        elements = []
        for page, element, _ in self._iter_page_elements():
            if element.critical:
                hits = self.covered_by(element, self.selectors_for_page(page.page_id))
                elements.append(PageElement(**element.to_dict(), covered=bool(hits), covered_by=hits))

        covered = sum(1 for element in elements if element.covered)
        return CriticalCoverage(
            total=len(elements),
            covered=covered,
            uncovered=len(elements) - covered,
            percentage=percentage(covered, len(elements)) if elements else 100,
            elements=elements,
        )

    def generate_recommendations(self, summary: CoverageSummary | None = None) -> list[Recommendation]:
        summary = summary or self.compute_summary()
        value = summary.coverage_percentage
        recommendations = []

        if value < LOW_COVERAGE_THRESHOLD:
            recommendations.append(
                Recommendation(
                    type="coverage",
                    priority="high",
                    message=f"Very low coverage ({value}%): add tests for the untouched pages",
                )
            )
        elif value < MEDIUM_COVERAGE_THRESHOLD:
            recommendations.append(
                Recommendation(
                    type="coverage",
                    priority="medium",
                    message=f"Medium coverage ({value}%): worth improving",
                )
            )
        else:
            recommendations.append(
                Recommendation(type="coverage", priority="low", message=f"Good coverage ({value}%)")
            )

        critical = [item for item in self.compute_uncovered() if item.priority > HIGH_PRIORITY_THRESHOLD]
        if critical:
            recommendations.append(
                Recommendation(
                    type="elements",
                    priority="high",
                    message=f"{len(critical)} critical elements uncovered",
                )
            )

        sparse = [test for test in self.tests.values() if len(test.unique_selectors) < MIN_SELECTORS_PER_TEST]
        if sparse:
            recommendations.append(
                Recommendation(
                    type="tests",
                    priority="medium",
                    message=f"{len(sparse)} tests show low selector usage (fewer than {MIN_SELECTORS_PER_TEST} selectors)",
                )
            )

        return recommendations

    def build_report(self) -> CoverageReport:
        if self.state is SessionState.UNINITIALIZED:
            raise CoverageError("Session has not been started")

        summary = self.compute_summary()
        return CoverageReport(
            metadata=ReportMetadata(session_id=self.session_id, state=self.state.value),
            summary=summary,
            pages=self.compute_page_analysis(),
            tests=self.compute_test_analysis(),
            selectors=self.compute_selector_analysis(),
            uncovered_elements=self.compute_uncovered(),
            by_type=self.compute_by_type(),
            by_page=self.compute_by_page(),
            critical=self.compute_critical_coverage(),
            recommendations=self.generate_recommendations(summary),
        )
