"""Tests for the aria snapshot parser."""

from pw_autodebug.coverage.elements import ElementType
from pw_autodebug.coverage.snapshot import format_tree, iter_roots, parse_line, parse_snapshot


class TestParseSnapshot:
    def test_two_root_elements(self):
        elements = parse_snapshot('- button "Get started"\n- link "Docs"')

        assert len(elements) == 2
        button, link = elements
        assert (button.type, button.text, button.interactable, button.critical) == (
            ElementType.BUTTON, "Get started", True, False,
        )
        assert (link.type, link.text, link.interactable, link.critical) == (
            ElementType.LINK, "Docs", True, False,
        )
        assert button.parent is None and link.parent is None

    def test_hierarchy_from_indentation(self, login_snapshot):
        elements = parse_snapshot(login_snapshot)
        by_text = {element.text: element for element in elements if element.text}

        nav = by_text["Main"]
        assert nav.type is ElementType.NAVIGATION
        assert nav.level == 1
        assert [child.text for child in nav.children] == ["Home", "Docs"]
        assert by_text["Docs"].parent is nav
        assert by_text["Email"].parent is by_text["Login"].parent

    def test_parent_level_is_one_less(self, login_snapshot):
        for element in parse_snapshot(login_snapshot):
            if element.parent is not None:
                assert element.parent.level == element.level - 1

    def test_unrecognised_lines_are_dropped(self, login_snapshot):
        texts = [element.text for element in parse_snapshot(login_snapshot)]
        assert "Forgot your password?" not in texts

    def test_banner_and_main_are_dropped_but_children_become_roots(self, login_snapshot):
        roots = list(iter_roots(parse_snapshot(login_snapshot)))
        assert [root.type for root in roots] == [ElementType.NAVIGATION, ElementType.HEADING, ElementType.FORM]

    def test_unrecognised_line_does_not_lend_children_to_its_sibling(self):
        button, link = parse_snapshot('- button "A"\n- banner:\n  - link "B"')

        assert link.parent is None
        assert link.path == "B"
        assert button.children == []

    def test_nested_unrecognised_line_closes_only_its_level(self):
        nav, home, blog = parse_snapshot('- navigation "Main":\n  - link "Home"\n  - list:\n    - link "Blog"')

        assert home.parent is nav
        assert blog.parent is None
        assert home.children == []
        assert nav.children == [home]

    def test_level_skip_makes_a_root(self):
        elements = parse_snapshot('- form "Search"\n    - button "Go"')

        button = elements[1]
        assert button.level == 2
        assert button.parent is None
        assert elements[0].children == []

    def test_url_line_fills_parent_link(self, login_snapshot):
        docs = next(e for e in parse_snapshot(login_snapshot) if e.text == "Docs")
        assert docs.url == "/docs"
        assert docs.children[0].type is ElementType.GENERIC

    def test_line_numbers_are_one_based(self):
        elements = parse_snapshot('\n- button "A"\n\n- link "B"')
        assert [element.line_number for element in elements] == [2, 4]

    def test_parsing_is_deterministic(self, login_snapshot):
        first = parse_snapshot(login_snapshot)
        second = parse_snapshot(login_snapshot)

        assert [e.to_dict() for e in first] == [e.to_dict() for e in second]

    def test_empty_snapshot(self):
        assert parse_snapshot("") == []


class TestParseLine:
    def test_heading_level_sets_tag(self):
        heading = parse_line('- heading "Welcome" [level=2]')
        assert heading.type is ElementType.HEADING
        assert heading.text == "Welcome"
        assert heading.tag_name == "h2"
        assert heading.attributes == {"level": "2"}

    def test_textbox_is_input(self):
        textbox = parse_line('- textbox "Email"')
        assert textbox.type is ElementType.INPUT
        assert textbox.role == "textbox"
        assert textbox.tag_name == "input"

    def test_button_pattern_wins_over_text(self):
        assert parse_line('- button "text"').type is ElementType.BUTTON

    def test_role_prefix_must_be_a_whole_word(self):
        assert parse_line("- buttonish thing") is None

    def test_text_line(self):
        text = parse_line("- text: Total 42")
        assert text.type is ElementType.TEXT
        assert text.text == "Total 42"
        assert text.role == ""

    def test_long_text_is_capped(self):
        line = parse_line('- button "' + "x" * 150 + '"')
        assert len(line.text) == 100

    def test_critical_keyword(self):
        assert parse_line('- button "Submit order"').critical
        assert not parse_line('- button "Cancel"').critical


def test_format_tree_marks_critical(login_snapshot):
    tree = format_tree(parse_snapshot(login_snapshot))

    assert '- navigation "Main"' in tree
    assert '    - link "Docs"' not in tree  # nav is a root, links are one level down
    assert '  - link "Docs"' in tree
    assert 'button "Login" *' in tree
