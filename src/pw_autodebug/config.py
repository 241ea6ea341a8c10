"""Configuration management for playwright-ai-autodebug."""

import os
from pathlib import Path
from typing import Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file at import time
load_dotenv()

CONFIG_FILE_NAMES = ["ai_conf.yaml", "ai_conf.yml", ".ai_conf.yaml"]
CONFIG_ROOT_KEYS = ("pw_autodebug", "ai_conf")

DEFAULT_MESSAGES = [
    {
        "role": "system",
        "content": (
            "You are an expert in Playwright end-to-end testing. Analyse the failed test, "
            "name the most likely root cause and propose a concrete fix with code."
        ),
    },
]


class AIConfig(BaseModel):
    """AI backend configuration."""

    provider: Literal["chat", "gemini"] = "chat"
    api_key: str | None = Field(default_factory=lambda: os.getenv("API_KEY"))
    ai_server: str = "https://api.mistral.ai/v1/chat/completions"
    model: str = "mistral-small-latest"
    max_tokens: int = 2000
    temperature: float = 0.1
    stream: bool = False
    timeout: float = 60.0
    max_retries: int = 3
    max_prompt_length: int = 2000
    request_delay: float = 1.0
    messages: list[dict[str, str]] = Field(default_factory=lambda: [dict(m) for m in DEFAULT_MESSAGES])


class ResultsConfig(BaseModel):
    """Where Playwright leaves its artifacts."""

    results_dir: Path = Path("test-results")
    report_dir: Path = Path("playwright-report")
    error_file_patterns: list[str] = Field(
        default_factory=lambda: [
            "copy-prompt.txt",
            "error-context.md",
            "error.txt",
            "test-error.md",
            "*-error.txt",
            "*-error.md",
        ]
    )


class ResponsesConfig(BaseModel):
    """Persisting AI answers to disk."""

    save_ai_responses: bool = False
    ai_responses_dir: Path = Path("ai-responses")
    ai_response_filename_template: str = "ai-response-{timestamp}-{index}.md"
    include_metadata: bool = True


class AllureConfig(BaseModel):
    enabled: bool = False
    results_dir: Path = Path("allure-results")


class CoverageConfig(BaseModel):
    """UI coverage tracking configuration."""

    enabled: bool = True
    output_dir: Path = Path("test-coverage-reports")
    formats: list[Literal["json", "html", "md"]] = Field(default_factory=lambda: ["json", "html", "md"])
    discovery: Literal["aria", "html"] = "aria"


class LangfuseConfig(BaseModel):
    """Langfuse observability configuration."""

    enabled: bool = False
    public_key: str | None = None
    secret_key: str | None = None
    host: str | None = None


class Config(BaseSettings):
    """Main configuration for playwright-ai-autodebug."""

    model_config = SettingsConfigDict(
        env_prefix="PW_AUTODEBUG_",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    log_file: Path | None = None

    # Sub-configurations
    ai: AIConfig = Field(default_factory=AIConfig)
    results: ResultsConfig = Field(default_factory=ResultsConfig)
    responses: ResponsesConfig = Field(default_factory=ResponsesConfig)
    allure: AllureConfig = Field(default_factory=AllureConfig)
    coverage: CoverageConfig = Field(default_factory=CoverageConfig)
    langfuse: LangfuseConfig = Field(default_factory=LangfuseConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # Environment first so it overrides values loaded from YAML
        return env_settings, init_settings, dotenv_settings, file_secret_settings


def find_config_file(base_dir: Path | None = None) -> Path | None:
    base_dir = base_dir or Path.cwd()
    for name in CONFIG_FILE_NAMES:
        candidate = base_dir / name
        if candidate.exists():
            return candidate
    return None


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from YAML file and environment variables."""
    config_data: dict = {}

    if config_path is None:
        config_path = find_config_file()

    if config_path and config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
        if raw:
            config_data = next((raw[key] for key in CONFIG_ROOT_KEYS if key in raw), raw)

    # Environment variables override YAML
    return Config(**config_data)
