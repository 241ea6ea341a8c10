"""Coverage report value objects consumed by the renderers."""

from datetime import datetime

from pydantic import BaseModel, Field


class ReportMetadata(BaseModel):
    """Where and when a report was produced."""

    session_id: str
    state: str
    generated_at: datetime = Field(default_factory=datetime.now)


class CoverageSummary(BaseModel):
    """Headline numbers for a coverage session."""

    total_tests: int = 0
    total_pages: int = 0
    total_elements: int = 0
    covered_elements: int = 0
    uncovered_elements: int = 0
    coverage_percentage: int = 0
    total_selectors: int = 0
    session_duration: float = 0.0


class CoverageStats(BaseModel):
    """Covered/uncovered counts for one group of elements."""

    total: int = 0
    covered: int = 0
    uncovered: int = 0
    percentage: int = 0


class ElementView(BaseModel):
    """Flat, serialisable view of an ElementRecord."""

    type: str
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
    path: str = ""
    selector: str = ""
    interactable: bool = False
    critical: bool = False

    @property
    def label(self) -> str:
        return self.text or self.tag_name or self.type


class PageElement(ElementView):
    """Element annotated with the selectors that cover it."""

    covered: bool = False
    covered_by: list[str] = Field(default_factory=list)


class UncoveredElement(ElementView):
    """Element no recorded selector matched, ranked for follow-up."""

    page_id: str
    suggested_selectors: list[str] = Field(default_factory=list)
    priority: int = 1
    page_visits: int = 0


class PageAnalysis(BaseModel):
    page_id: str
    total_elements: int
    covered_elements: int
    uncovered_elements: int
    coverage_percentage: int
    visited_by: list[str] = Field(default_factory=list)
    total_visits: int = 0
    elements: list[PageElement] = Field(default_factory=list)


class SelectorCount(BaseModel):
    selector: str
    count: int


class TestAnalysis(BaseModel):
    __test__ = False  # not a pytest test class

    test_name: str
    status: str = "unknown"
    pages_visited: int = 0
    selectors_used: int = 0
    unique_selectors: int = 0
    interactions: int = 0
    duration: float = 0.0
    runs: int = 0
    pages: list[str] = Field(default_factory=list)
    most_used_selectors: list[SelectorCount] = Field(default_factory=list)


class SelectorAnalysis(BaseModel):
    selector: str
    method: str
    used_by: list[str] = Field(default_factory=list)
    total_usage: int = 0
    tests_count: int = 0


class CriticalCoverage(CoverageStats):
    """Coverage of elements whose text marks them business-critical."""

    elements: list[PageElement] = Field(default_factory=list)


class Recommendation(BaseModel):
    type: str
    priority: str
    message: str


class CoverageReport(BaseModel):
    """Everything a renderer needs; a read-only projection of a session."""

    metadata: ReportMetadata
    summary: CoverageSummary
    pages: list[PageAnalysis] = Field(default_factory=list)
    tests: list[TestAnalysis] = Field(default_factory=list)
    selectors: list[SelectorAnalysis] = Field(default_factory=list)
    uncovered_elements: list[UncoveredElement] = Field(default_factory=list)
    by_type: dict[str, CoverageStats] = Field(default_factory=dict)
    by_page: dict[str, CoverageStats] = Field(default_factory=dict)
    critical: CriticalCoverage = Field(default_factory=CriticalCoverage)
    recommendations: list[Recommendation] = Field(default_factory=list)

    def to_json(self, indent: int | None = 2) -> str:
        return self.model_dump_json(indent=indent)

    @classmethod
    def from_json(cls, data: str | bytes) -> "CoverageReport":
        return cls.model_validate_json(data)
