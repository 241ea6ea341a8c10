"""LangGraph workflow for AI failure triage."""

import asyncio
import operator
import time
from pathlib import Path
from typing import Annotated, TypedDict

from langgraph.graph import END, StateGraph
from loguru import logger

from ..config import Config
from ..models import AIResponse, AnalysisResult, TestError, TriageSummary
from ..tracing import TracingClient, get_tracing
from .errors import ErrorFileRepository, extract_page_snapshot
from .html_report import update_html_report
from .outputs import attach_to_allure, save_response_markdown
from .prompts import build_prompt
from .providers import AIProvider, AIProviderError, create_provider


class TriageState(TypedDict):
    """State for the triage workflow."""

    # Input
    errors: list[TestError]

    # Processing state
    index: int
    response: AIResponse | None
    failure: str | None

    # Output
    results: Annotated[list[AnalysisResult], operator.add]

    # Control
    complete: bool


def collect_errors(state: TriageState) -> dict:
    """Initialize processing of errors."""
    if state["errors"]:
        return {"index": 0, "complete": False}
    return {"complete": True}


def next_error(state: TriageState) -> dict:
    """Move to the next error in the queue."""
    next_idx = state["index"] + 1
    if next_idx >= len(state["errors"]):
        return {"index": next_idx, "complete": True, "response": None, "failure": None}
    return {"index": next_idx, "response": None, "failure": None}


def is_complete(state: TriageState) -> str:
    """Check if all errors have been processed."""
    if state.get("complete"):
        return END
    return "analyze"


def build_triage_graph(
    config: Config,
    provider: AIProvider,
    base_dir: Path = Path("."),
    update_html: bool = True,
    tracing: TracingClient | None = None,
):
    """Build the LangGraph workflow: collect -> analyze -> publish -> next."""

    async def analyze_error(state: TriageState) -> dict:
        error = state["errors"][state["index"]]
        if state["index"] > 0 and config.ai.request_delay > 0:
            await asyncio.sleep(config.ai.request_delay)

        prompt = build_prompt(error, config.ai.max_prompt_length)
        snapshot = None
        if len(error.content) > config.ai.max_prompt_length:
            # The snapshot may have been cut off with the rest of the content
            snapshot = extract_page_snapshot(error.content)

        logger.info(f"Analysing {error.test_name!r} ({state['index'] + 1}/{len(state['errors'])})")
        started = time.perf_counter()
        try:
            if tracing is None:
                content = await provider.generate_response(prompt, snapshot)
            else:
                with tracing.analysis(error, provider.name, provider.model) as trace:
                    content = await provider.generate_response(prompt, snapshot)
                    tracing.generation(trace, provider.model, prompt, content, snapshot)
        except AIProviderError as e:
            logger.error(f"AI analysis failed for {error.test_name!r}: {e}")
            return {"response": None, "failure": str(e)}

        response = AIResponse(
            content=content,
            provider=provider.name,
            model=provider.model,
            processing_time=time.perf_counter() - started,
        )
        return {"response": response, "failure": None}

    def publish_result(state: TriageState) -> dict:
        index = state["index"]
        error = state["errors"][index]
        result = AnalysisResult(error=error, response=state.get("response"), failure=state.get("failure"))

        if result.response is not None:
            if config.responses.save_ai_responses:
                result.response_file = save_response_markdown(
                    error, result.response, index + 1, config.responses, config.ai, base_dir
                )
            if config.allure.enabled:
                result.allure_attachment = attach_to_allure(
                    error, result.response, index + 1, config.allure, base_dir
                )
            if update_html and error.html_report_path is not None:
                result.html_updated = update_html_report(
                    error.html_report_path, error.content, result.response.content, error.test_name
                )

        return {"results": [result]}

    graph = StateGraph(TriageState)

    graph.add_node("collect", collect_errors)
    graph.add_node("analyze", analyze_error)
    graph.add_node("publish", publish_result)
    graph.add_node("next", next_error)

    graph.set_entry_point("collect")
    graph.add_conditional_edges("collect", is_complete)
    graph.add_edge("analyze", "publish")
    graph.add_edge("publish", "next")
    graph.add_conditional_edges("next", is_complete)

    return graph.compile()


async def run_triage(
    config: Config,
    provider: AIProvider | None = None,
    project_path: Path = Path("."),
    update_html: bool = True,
    tracing: TracingClient | None = None,
) -> TriageSummary:
    """Find failed tests, analyse each one and publish the answers."""
    started = time.perf_counter()
    project_path = Path(project_path)
    errors = ErrorFileRepository(config.results, project_path).find_errors()

    if not errors:
        logger.info("No test errors found")
        return TriageSummary(total=0, processed=0, failed=0, processing_time=time.perf_counter() - started)

    owns_provider = provider is None
    provider = provider or create_provider(config.ai)
    try:
        workflow = build_triage_graph(config, provider, project_path, update_html, tracing or get_tracing())
        state = await workflow.ainvoke(
            {"errors": errors, "index": 0, "response": None, "failure": None, "results": [], "complete": False},
            {"recursion_limit": 3 * len(errors) + 10},
        )
    finally:
        if owns_provider:
            await provider.aclose()

    results: list[AnalysisResult] = state["results"]
    processed = sum(1 for result in results if result.success)
    summary = TriageSummary(
        total=len(errors),
        processed=processed,
        failed=len(results) - processed,
        results=results,
        processing_time=time.perf_counter() - started,
    )
    logger.info(f"Triage finished: {summary.processed}/{summary.total} analysed, {summary.failed} failed")
    return summary
