"""Persist AI analyses as Markdown files and Allure attachments."""

import json
import re
from datetime import datetime
from pathlib import Path

from loguru import logger

from ..config import AIConfig, AllureConfig, ResponsesConfig
from ..models import AIResponse, TestError
from .errors import folder_test_name

ALLURE_ATTACHMENT_NAME = "AI Analysis"
NAME_SIMILARITY_THRESHOLD = 0.8
FOOTER = "\n---\n*Generated by playwright-ai-autodebug*\n"


def _timestamp() -> int:
    return int(datetime.now().timestamp() * 1000)


def string_similarity(s1: str, s2: str) -> float:
    """Jaccard similarity on character 3-grams (0.0 - 1.0)."""
    s1, s2 = s1.lower(), s2.lower()

    if s1 == s2:
        return 1.0

    def ngrams(s: str, n: int = 3) -> set:
        return {s[i:i+n] for i in range(len(s) - n + 1)}

    ng1, ng2 = ngrams(s1), ngrams(s2)
    if not ng1 or not ng2:
        return 0.0

    return len(ng1 & ng2) / len(ng1 | ng2)


def _normalize(value: str | None) -> str:
    return re.sub(r"[^\w]", "", (value or "").lower())


def render_response_markdown(
    error: TestError,
    response: AIResponse,
    ai_config: AIConfig,
    include_metadata: bool = True,
) -> str:
    lines = [
        "# AI Analysis Report",
        "",
        f"**Generated:** {response.timestamp.isoformat(timespec='seconds')}",
        f"**Test:** {error.test_name}",
        f"**Error type:** {error.error_type.value} ({error.severity.value})",
        "",
        "## Error",
        "```",
        error.content.strip(),
        "```",
        "",
        "## AI Solution",
        response.content,
        "",
    ]
    if include_metadata:
        lines += [
            "## Metadata",
            f"- **Provider:** {response.provider}",
            f"- **API Server:** {ai_config.ai_server}",
            f"- **Model:** {response.model}",
            f"- **Max Tokens:** {ai_config.max_tokens}",
            f"- **Temperature:** {ai_config.temperature}",
            f"- **Processing time:** {response.processing_time:.2f}s",
            f"- **Error file:** {error.file_path}",
            "",
        ]
    return "\n".join(lines) + FOOTER


def save_response_markdown(
    error: TestError,
    response: AIResponse,
    index: int,
    config: ResponsesConfig,
    ai_config: AIConfig,
    base_dir: Path = Path("."),
) -> Path:
    """Write one AI answer using the configured filename template."""
    output_dir = base_dir / config.ai_responses_dir
    output_dir.mkdir(parents=True, exist_ok=True)

    filename = config.ai_response_filename_template.format(timestamp=_timestamp(), index=index)
    path = output_dir / filename
    path.write_text(
        render_response_markdown(error, response, ai_config, config.include_metadata),
        encoding="utf-8",
    )
    logger.info(f"Saved AI response: {path}")
    return path


def render_allure_attachment(error: TestError, response: AIResponse) -> str:
    return "\n".join(
        [
            "# AI Test Analysis",
            "",
            f"- **Timestamp:** {response.timestamp.isoformat(timespec='seconds')}",
            f"- **Error file:** {error.file_path}",
            f"- **Model:** {response.model}",
            "",
            "## Detected error",
            "```",
            error.content.strip(),
            "```",
            "",
            "## AI recommended solution",
            response.content,
        ]
    ) + FOOTER


def is_matching_result(result: dict, error_path: Path) -> bool:
    """Whether an Allure ``*-result.json`` describes the failed test behind ``error_path``."""
    if result.get("status") not in ("failed", "broken"):
        return False

    error_dir = error_path.parent.name
    path_text = str(error_path)
    for key in ("uuid", "testCaseId"):
        value = result.get(key)
        if value and value in path_text:
            return True

    name = _normalize(result.get("name"))
    if not name:
        return False
    from_path = _normalize(folder_test_name(error_dir))
    # Result folders are prefixed with the spec file and describe titles
    if name == from_path or (len(name) > 3 and from_path.endswith(name)):
        return True
    return string_similarity(name, from_path) > NAME_SIMILARITY_THRESHOLD


def attach_to_allure(
    error: TestError,
    response: AIResponse,
    index: int,
    config: AllureConfig,
    base_dir: Path = Path("."),
) -> Path:
    """
    Write the analysis as an Allure attachment and link it into the
    matching failed test result, if any.
    """
    allure_dir = base_dir / config.results_dir
    allure_dir.mkdir(parents=True, exist_ok=True)

    attachment_name = f"ai-analysis-{_timestamp()}-{index}-attachment.md"
    attachment = allure_dir / attachment_name
    attachment.write_text(render_allure_attachment(error, response), encoding="utf-8")

    for result_file in sorted(allure_dir.glob("*-result.json")):
        try:
            result = json.loads(result_file.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            logger.warning(f"Skipping unreadable Allure result {result_file.name}: {e}")
            continue

        if not is_matching_result(result, error.file_path):
            continue

        attachments = result.setdefault("attachments", [])
        if not any(item.get("source") == attachment_name for item in attachments):
            attachments.append({"name": ALLURE_ATTACHMENT_NAME, "source": attachment_name, "type": "text/markdown"})
            result_file.write_text(json.dumps(result, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.info(f"Linked AI analysis to Allure test {result.get('name')!r}")
        break
    else:
        logger.warning(f"No failed Allure result matches {error.file_path}; attachment left unlinked")

    return attachment
