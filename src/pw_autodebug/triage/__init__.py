"""AI-assisted triage of failed Playwright tests."""

from .errors import ErrorFileRepository
from .html_report import update_html_report
from .providers import AIProvider, AIProviderError, ChatCompletionsProvider, GeminiProvider, create_provider
from .workflow import build_triage_graph, run_triage

__all__ = [
    "AIProvider",
    "AIProviderError",
    "ChatCompletionsProvider",
    "ErrorFileRepository",
    "GeminiProvider",
    "build_triage_graph",
    "create_provider",
    "run_triage",
    "update_html_report",
]
