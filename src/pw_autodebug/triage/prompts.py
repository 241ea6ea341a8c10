"""Prompts for AI failure analysis."""

from ..models import TestError

TRUNCATION_MARKER = "\n...(content truncated)"

FAILURE_ANALYSIS_PROMPT = """A Playwright end-to-end test failed.

Test: {test_name}
Error type: {error_type}
Severity: {severity}
Browser: {browser}

Error report:
{content}

Please explain:
1. The most likely root cause
2. Whether this looks like a test problem (selector, timing, data) or an application bug
3. A concrete fix, with the corrected Playwright code in a fenced code block
"""

DOM_SNAPSHOT_SECTION = """

## Page snapshot at the time of failure
```yaml
{snapshot}
```
"""


def truncate(content: str, max_length: int) -> str:
    """Cap ``content`` at ``max_length`` characters plus a truncation marker."""
    if max_length <= 0 or len(content) <= max_length:
        return content
    return content[:max_length] + TRUNCATION_MARKER


def build_prompt(error: TestError, max_length: int) -> str:
    return FAILURE_ANALYSIS_PROMPT.format(
        test_name=error.test_name,
        error_type=error.error_type.value,
        severity=error.severity.value,
        browser=error.browser or "unknown",
        content=truncate(error.content, max_length),
    )


def build_user_message(prompt: str, dom_snapshot: str | None = None) -> str:
    if dom_snapshot:
        return prompt + DOM_SNAPSHOT_SECTION.format(snapshot=dom_snapshot)
    return prompt


def build_messages(
    prompt: str,
    system_messages: list[dict[str, str]] | None = None,
    dom_snapshot: str | None = None,
) -> list[dict[str, str]]:
    """Chat message list: configured messages first, then the user prompt."""
    messages = [dict(message) for message in system_messages or []]
    messages.append({"role": "user", "content": build_user_message(prompt, dom_snapshot)})
    return messages
