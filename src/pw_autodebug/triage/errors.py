"""Find failed tests in a Playwright results directory."""

import re
from pathlib import Path

from loguru import logger

from ..config import ResultsConfig
from ..models import ErrorType, Severity, TestError

BROWSERS = ("chromium", "firefox", "webkit", "chrome", "msedge", "safari")

_NAME_LINE = re.compile(r"^\s*-\s*Name:\s*(.+)$", re.MULTILINE)
_TEST_CALL = re.compile(r"test\(['\"`]([^'\"`]+)['\"`]")
_HIERARCHY = re.compile(r"›\s*([^›\n]+?)\s*$", re.MULTILINE)
_RETRY_SUFFIX = re.compile(r"-retry\d+$")
_PAGE_SNAPSHOT = re.compile(r"#\s*Page snapshot\s*```(?:yaml)?\n(.*?)```", re.DOTALL)


class ErrorFileRepository:
    """Collect TestErrors from the error files Playwright leaves behind."""

    def __init__(self, config: ResultsConfig, project_path: Path = Path(".")):
        self.config = config
        self.project_path = Path(project_path)

    @property
    def results_dir(self) -> Path:
        return self.project_path / self.config.results_dir

    def find_errors(self) -> list[TestError]:
        """Search every configured pattern; each file is loaded once."""
        if not self.results_dir.exists():
            logger.warning(f"Results directory not found: {self.results_dir}")
            return []

        errors = []
        seen: set[Path] = set()
        for pattern in self.config.error_file_patterns:
            matches = sorted(self.results_dir.rglob(pattern.removeprefix("**/")))
            logger.debug(f"Pattern {pattern!r}: {len(matches)} files")
            for path in matches:
                resolved = path.resolve()
                if resolved in seen or not path.is_file() or "node_modules" in path.parts:
                    continue
                seen.add(resolved)
                if error := self.load_error_file(path):
                    errors.append(error)

        logger.info(f"Found {len(errors)} error files in {self.results_dir}")
        return errors

    def load_error_file(self, path: Path) -> TestError | None:
        """Build a TestError from one file; empty files yield None."""
        content = path.read_text(encoding="utf-8", errors="replace")
        if not content.strip():
            logger.warning(f"Empty error file: {path}")
            return None

        return TestError(
            file_path=path,
            content=content,
            test_name=extract_test_name(content, path),
            error_type=ErrorType.detect(content),
            severity=Severity.detect(content),
            keywords=TestError.extract_keywords(content),
            browser=extract_browser(path),
            html_report_path=self.find_html_report(),
        )

    def find_html_report(self) -> Path | None:
        index = self.project_path / self.config.report_dir / "index.html"
        return index if index.exists() else None


def extract_test_name(content: str, path: Path) -> str:
    """Test title from the file content, else from the result folder name."""
    if match := _NAME_LINE.search(content):
        name = match.group(1).strip()
        return name.split(" >> ")[-1].strip()
    if match := _TEST_CALL.search(content):
        return match.group(1)
    if match := _HIERARCHY.search(content):
        return match.group(1).strip()
    return folder_test_name(path.parent.name)


def folder_test_name(folder: str) -> str:
    """
    Readable test name from a result folder such as
    ``login-Login-Page-should-have-email-input-field-chromium``.
    """
    folder = _RETRY_SUFFIX.sub("", folder)
    parts = folder.split("-")
    if parts and parts[-1].lower() in BROWSERS:
        parts = parts[:-1]
    if len(parts) > 1:
        parts = parts[1:]
    return " ".join(part for part in parts if part) or folder


def extract_browser(path: Path) -> str | None:
    for part in reversed(path.parts):
        lowered = part.lower()
        for browser in BROWSERS:
            if browser in lowered:
                return browser
    return None


def extract_page_snapshot(content: str) -> str | None:
    """The aria snapshot embedded in an ``error-context.md`` file."""
    if match := _PAGE_SNAPSHOT.search(content):
        return match.group(1).strip()
    return None
