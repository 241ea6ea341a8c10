"""Tests for the coverage session."""

import pytest

from pw_autodebug.coverage.aggregator import (
    CoverageError,
    CoverageSession,
    SessionFinalizedError,
    SessionState,
    element_priority,
    suggest_selectors,
)
from pw_autodebug.coverage.elements import ElementRecord, ElementType

PAGE = "https://shop.test/login"


def make_elements(count: int) -> list[ElementRecord]:
    return [
        ElementRecord(type=ElementType.BUTTON, text=f"Button {i}", tag_name="button", line_number=i)
        for i in range(count)
    ]


class TestLifecycle:
    def test_new_session_is_uninitialized(self):
        assert CoverageSession().state is SessionState.UNINITIALIZED

    def test_start_generates_session_id(self):
        session = CoverageSession().start()
        assert session.state is SessionState.ACTIVE
        assert session.session_id.startswith("session-")

    def test_recording_starts_session_implicitly(self, login_elements):
        session = CoverageSession()
        session.record_page_visit(PAGE, login_elements, "test_login")
        assert session.state is SessionState.ACTIVE
        assert PAGE in session.pages

    def test_finalize_freezes_session(self, session, login_elements):
        session.record_page_visit(PAGE, login_elements, "test_login")
        report = session.finalize()

        assert session.state is SessionState.FINALIZED
        assert report.metadata.state == "finalized"
        with pytest.raises(SessionFinalizedError):
            session.record_selector_usage("test_login", "#login", "click")
        with pytest.raises(SessionFinalizedError):
            session.record_page_visit(PAGE, login_elements, "test_login")
        with pytest.raises(SessionFinalizedError):
            session.start()

    def test_finalized_error_is_a_coverage_error(self):
        assert issubclass(SessionFinalizedError, CoverageError)

    def test_report_still_available_after_finalize(self, session):
        session.finalize()
        assert session.build_report().metadata.session_id == "session-test"

    def test_build_report_requires_start(self):
        with pytest.raises(CoverageError):
            CoverageSession().build_report()


class TestRecording:
    def test_replace_if_larger(self, session):
        small, large = make_elements(5), make_elements(8)

        session.record_page_visit(PAGE, small, "test_a")
        session.record_page_visit(PAGE, large, "test_b")

        page = session.pages[PAGE]
        assert len(page.elements) == 8
        assert page.visited_by == ["test_a", "test_b"]
        assert page.total_visits == 2

    def test_smaller_visit_keeps_stored_elements(self, session):
        session.record_page_visit(PAGE, make_elements(8), "test_a")
        session.record_page_visit(PAGE, make_elements(3), "test_a")

        page = session.pages[PAGE]
        assert len(page.elements) == 8
        assert page.visited_by == ["test_a"]
        assert page.total_visits == 2

    def test_duplicate_elements_are_collapsed(self, session):
        duplicate = make_elements(1) * 3
        session.record_page_visit(PAGE, duplicate, "test_a")
        assert len(session.pages[PAGE].elements) == 1

    def test_visit_is_added_to_test(self, session, login_elements):
        session.record_page_visit(PAGE, login_elements, "test_login")
        session.record_page_visit(PAGE, login_elements, "test_login")
        assert session.tests["test_login"].pages == [PAGE]

    def test_record_snapshot(self, session, login_snapshot):
        session.record_snapshot(PAGE, login_snapshot, "test_login")
        assert len(session.pages[PAGE].elements) == 10

    def test_selector_usage_index(self, session):
        session.record_selector_usage("test_a", "#login", "click")
        session.record_selector_usage("test_b", "#login", "click")
        session.record_selector_usage("test_a", "#login", "fill")

        entry = session.selectors[("#login", "click")]
        assert entry.total_usage == 2
        assert entry.used_by == ["test_a", "test_b"]
        assert len(session.selectors) == 2
        assert session.tests["test_a"].selectors == ["#login", "#login"]
        assert len(session.tests["test_a"].interactions) == 2

    def test_record_test_result(self, session):
        test = session.record_test_result("test_a", "passed", 1.5)
        assert (test.status, test.duration, test.runs) == ("passed", 1.5, 1)


class TestCoverage:
    def test_selectors_only_count_on_visited_pages(self, session, login_elements):
        session.record_page_visit(PAGE, login_elements, "test_login")
        session.record_selector_usage("test_other", "#login", "click")

        assert session.compute_summary().covered_elements == 0
        assert session.selectors_for_page(PAGE) == []

    def test_summary(self, session, login_elements):
        session.record_page_visit(PAGE, login_elements, "test_login")
        session.record_selector_usage("test_login", "#login", "click")

        summary = session.compute_summary()
        assert summary.total_elements == 2
        assert summary.covered_elements == 1
        assert summary.uncovered_elements == 1
        assert summary.coverage_percentage == 50
        assert summary.total_tests == 1
        assert summary.total_pages == 1
        assert summary.total_selectors == 1

    def test_empty_session(self, session):
        summary = session.compute_summary()
        assert summary.coverage_percentage == 0
        assert session.compute_uncovered() == []

    def test_is_element_covered_and_covered_by(self, login_elements):
        button = login_elements[0]
        assert CoverageSession.is_element_covered(button, ["#nope", "#login"])
        assert CoverageSession.covered_by(button, ["#login", "text=Login", "#nope"]) == ["#login", "text=Login"]
        assert not CoverageSession.is_element_covered(button, [])

    def test_coverage_is_monotonic(self, session, login_snapshot):
        session.record_snapshot(PAGE, login_snapshot, "test_login")
        covered = []
        for selector in ["text=Login", "role=textbox", "#missing", "a"]:
            session.record_selector_usage("test_login", selector, "locator")
            covered.append(session.compute_summary().covered_elements)

        assert covered == sorted(covered)
        assert covered[-1] > covered[0]

    def test_percentage_bounds(self, session):
        session.record_page_visit(PAGE, make_elements(3), "test_a")
        session.record_selector_usage("test_a", "button", "locator")
        assert session.compute_summary().coverage_percentage == 100


class TestUncovered:
    def test_priority_of_critical_button(self):
        submit = ElementRecord(type=ElementType.BUTTON, text="Submit order", tag_name="button")
        assert submit.critical
        assert element_priority(submit) == 9

    def test_priority_weights(self):
        full = ElementRecord(
            type=ElementType.INPUT,
            text="Email",
            tag_name="input",
            id="email",
            aria_label="Email",
            role="textbox",
            visible=True,
        )
        assert element_priority(full) == 1 + 5 + 3 + 2 + 2 + 2 + 1
        assert element_priority(ElementRecord(type=ElementType.TEXT)) == 1

    def test_suggested_selectors_order_and_cap(self):
        target = ElementRecord(
            type=ElementType.BUTTON,
            text="Save",
            tag_name="button",
            id="save",
            aria_label="Save draft",
            class_name="x btn-primary",
            role="button",
        )
        assert suggest_selectors(target) == ["#save", "text=Save", '[aria-label="Save draft"]', ".btn-primary"]

    def test_suggested_selectors_skip_long_text(self):
        target = ElementRecord(type=ElementType.LINK, text="x" * 60, tag_name="a")
        assert suggest_selectors(target) == ["a"]

    def test_sorted_by_priority_with_stable_ties(self, session):
        elements = [
            ElementRecord(type=ElementType.TEXT, text="first", tag_name="p"),
            ElementRecord(type=ElementType.BUTTON, text="Buy", tag_name="button"),
            ElementRecord(type=ElementType.TEXT, text="second", tag_name="p"),
            ElementRecord(type=ElementType.LINK, text="Docs", tag_name="a"),
        ]
        session.record_page_visit(PAGE, elements, "test_a")

        uncovered = session.compute_uncovered()
        assert [item.text for item in uncovered] == ["Buy", "Docs", "first", "second"]
        assert all(a.priority >= b.priority for a, b in zip(uncovered, uncovered[1:]))
        assert uncovered[0].page_id == PAGE
        assert uncovered[0].page_visits == 1

    def test_limit(self, session):
        session.record_page_visit(PAGE, make_elements(5), "test_a")
        assert len(session.compute_uncovered(limit=2)) == 2


class TestAnalysis:
    def test_by_type_and_by_page(self, session, login_elements):
        session.record_page_visit(PAGE, login_elements, "test_login")
        session.record_page_visit("https://shop.test/empty", [], "test_login")
        session.record_selector_usage("test_login", "#login", "click")

        by_type = session.compute_by_type()
        assert by_type["button"].percentage == 100
        assert (by_type["link"].total, by_type["link"].covered, by_type["link"].percentage) == (1, 0, 0)

        by_page = session.compute_by_page()
        assert by_page[PAGE].covered == 1
        assert by_page["https://shop.test/empty"].total == 0
        assert by_page["https://shop.test/empty"].percentage == 0

    def test_page_analysis_sorted_by_visits(self, session, login_elements):
        session.record_page_visit("https://shop.test/a", login_elements, "test_a")
        session.record_page_visit(PAGE, login_elements, "test_a")
        session.record_page_visit(PAGE, login_elements, "test_b")
        session.record_selector_usage("test_b", "text=Docs", "getByText")

        pages = session.compute_page_analysis()
        assert [page.page_id for page in pages] == [PAGE, "https://shop.test/a"]
        docs = next(e for e in pages[0].elements if e.text == "Docs")
        assert docs.covered and docs.covered_by == ["text=Docs"]

    def test_test_analysis(self, session):
        for selector in ["#a", "#a", "#b"]:
            session.record_selector_usage("test_busy", selector, "click")
        session.record_selector_usage("test_idle", "#a", "click")

        tests = session.compute_test_analysis()
        assert tests[0].test_name == "test_busy"
        assert (tests[0].selectors_used, tests[0].unique_selectors) == (3, 2)
        assert tests[0].most_used_selectors[0].selector == "#a"
        assert tests[0].most_used_selectors[0].count == 2

    def test_selector_analysis_sorted_by_usage(self, session):
        session.record_selector_usage("test_a", "#rare", "click")
        for _ in range(3):
            session.record_selector_usage("test_a", "#common", "click")

        selectors = session.compute_selector_analysis()
        assert [item.selector for item in selectors] == ["#common", "#rare"]
        assert selectors[0].tests_count == 1

    def test_critical_coverage(self, session, login_elements):
        assert session.compute_critical_coverage().percentage == 100

        session.record_page_visit(PAGE, login_elements, "test_login")
        critical = session.compute_critical_coverage()
        assert (critical.total, critical.covered, critical.percentage) == (1, 0, 0)

        session.record_selector_usage("test_login", "#login", "click")
        assert session.compute_critical_coverage().percentage == 100


class TestRecommendations:
    def test_medium_coverage_with_uncovered_and_sparse_tests(self, session, login_elements):
        session.record_page_visit(PAGE, login_elements, "test_login")
        session.record_selector_usage("test_login", "#login", "click")
        session.record_selector_usage("test_login", "#login", "click")

        recommendations = session.generate_recommendations()
        assert [(r.type, r.priority) for r in recommendations] == [
            ("coverage", "medium"),
            ("elements", "high"),
            ("tests", "medium"),
        ]
        assert "50%" in recommendations[0].message

    def test_low_coverage_is_high_priority(self, session):
        session.record_page_visit(PAGE, make_elements(4), "test_a")
        recommendations = session.generate_recommendations()
        assert recommendations[0].priority == "high"

    def test_good_coverage(self, session):
        session.record_page_visit(PAGE, make_elements(2), "test_a")
        for selector in ["button", "#x", "#y"]:
            session.record_selector_usage("test_a", selector, "locator")

        recommendations = session.generate_recommendations()
        assert [(r.type, r.priority) for r in recommendations] == [("coverage", "low")]


class TestMerge:
    def test_merge_worker_sessions(self):
        main = CoverageSession().start("main")
        worker_a = CoverageSession().start("a")
        worker_b = CoverageSession().start("b")

        worker_a.record_page_visit(PAGE, make_elements(2), "test_a")
        worker_a.record_selector_usage("test_a", "#x", "click")
        worker_b.record_page_visit(PAGE, make_elements(3), "test_b")
        worker_b.record_page_visit(PAGE, make_elements(3), "test_b")
        worker_b.record_selector_usage("test_b", "#x", "click")

        main.merge(worker_a).merge(worker_b)

        page = main.pages[PAGE]
        assert len(page.elements) == 3
        assert page.total_visits == 3
        assert page.visited_by == ["test_a", "test_b"]
        assert main.selectors[("#x", "click")].total_usage == 2
        assert main.selectors[("#x", "click")].used_by == ["test_a", "test_b"]
        assert set(main.tests) == {"test_a", "test_b"}
