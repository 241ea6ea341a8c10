"""Tests for HTML element discovery."""

from bs4 import BeautifulSoup

from pw_autodebug.coverage.discovery import discover_html_elements, is_visible
from pw_autodebug.coverage.elements import ElementRecord, ElementType

HTML = """
<html><body>
  <nav><a href="/docs">Docs</a></nav>
  <form>
    <input id="email" placeholder="Email">
    <input type="hidden" value="tok">
    <button class="btn primary" aria-label="Send form">Send</button>
  </form>
  <div role="button" tabindex="0">Menu</div>
  <a></a>
  <span onclick="toggle()" style="display: none">Details</span>
  <p>Just text</p>
</body></html>
"""


class TestDiscoverHtmlElements:
    def test_document_order_without_duplicates(self):
        elements = discover_html_elements(HTML)
        assert [(e.tag_name, e.text) for e in elements] == [
            ("a", "Docs"),
            ("input", ""),
            ("input", "tok"),
            ("button", "Send"),
            ("div", "Menu"),
            ("span", "Details"),
        ]

    def test_attributes_are_mapped(self):
        link, email, _, button, menu, span = discover_html_elements(HTML)

        assert (link.type, link.url) == (ElementType.LINK, "/docs")
        assert (email.type, email.id, email.placeholder) == (ElementType.INPUT, "email", "Email")
        assert button.class_name == "btn primary"
        assert button.aria_label == "Send form"
        assert (menu.type, menu.role) == (ElementType.BUTTON, "button")
        assert span.type is ElementType.TEXT

    def test_visibility(self):
        elements = discover_html_elements(HTML)
        visible = {e.text or e.id: e.visible for e in elements}

        assert visible["Docs"] is True
        assert visible["tok"] is False
        assert visible["Details"] is False

    def test_empty_document(self):
        assert discover_html_elements("") == []


def test_is_visible_checks():
    soup = BeautifulSoup(
        '<button hidden>a</button><button aria-hidden="true">b</button><button style="color: red">c</button>',
        "lxml",
    )
    assert [is_visible(tag) for tag in soup.find_all("button")] == [False, False, True]


class TestFromDom:
    def test_camel_case_description(self):
        element = ElementRecord.from_dom(
            {
                "tagName": "A",
                "text": "  Pricing plans ",
                "className": "nav-link",
                "ariaLabel": "Pricing",
                "href": "/pricing",
                "visible": True,
            }
        )

        assert (element.type, element.tag_name) == (ElementType.LINK, "a")
        assert element.text == "Pricing plans"
        assert (element.class_name, element.aria_label, element.url) == ("nav-link", "Pricing", "/pricing")
        assert element.visible

    def test_snake_case_description_and_defaults(self):
        element = ElementRecord.from_dom({"tag_name": "div", "role": "button", "attributes": {"tabindex": "0"}})

        assert (element.type, element.role) == (ElementType.BUTTON, "button")
        assert element.attributes == {"tabindex": "0"}
        assert (element.id, element.url, element.visible) == ("", "", False)

    def test_discovered_tags_keep_extra_attributes(self):
        menu = discover_html_elements(HTML)[4]
        assert menu.attributes == {"role": "button", "tabindex": "0"}
