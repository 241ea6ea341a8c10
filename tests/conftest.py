"""Shared fixtures."""

import pytest

from pw_autodebug.coverage.aggregator import CoverageSession
from pw_autodebug.coverage.elements import ElementRecord, ElementType

LOGIN_SNAPSHOT = """\
- banner:
  - navigation "Main":
    - link "Home":
      - /url: /
    - link "Docs":
      - /url: /docs
- main:
  - heading "Sign in" [level=1]
  - form "Login":
    - textbox "Email"
    - textbox "Password"
    - button "Login"
  - paragraph: Forgot your password?
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's environment out of config-dependent tests."""
    import os

    for name in list(os.environ):
        if name.startswith("PW_AUTODEBUG_") or name in ("API_KEY", "GOOGLE_API_KEY", "GEMINI_API_KEY"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def login_snapshot() -> str:
    return LOGIN_SNAPSHOT


@pytest.fixture
def session() -> CoverageSession:
    return CoverageSession().start("session-test")


@pytest.fixture
def login_elements() -> list[ElementRecord]:
    return [
        ElementRecord(type=ElementType.BUTTON, text="Login", tag_name="button", id="login"),
        ElementRecord(type=ElementType.LINK, text="Docs", tag_name="a", url="/docs"),
    ]
