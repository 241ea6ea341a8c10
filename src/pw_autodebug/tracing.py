"""Langfuse traces for AI failure triage."""

from contextlib import contextmanager
from typing import Any, Iterator

from langfuse import Langfuse
from loguru import logger

from .config import Config
from .models import TestError


class TracingClient:
    """
    Records one Langfuse trace per analysed test failure.

    The trace carries the test name, error type and AI backend as metadata;
    the model call is logged as a generation under it and the outcome of the
    analysis is written back when the trace closes.
    """

    def __init__(self, config: Config):
        settings = config.langfuse
        self.enabled = settings.enabled
        self._client: Langfuse | None = None

        if self.enabled:
            self._client = Langfuse(
                public_key=settings.public_key,
                secret_key=settings.secret_key,
                host=settings.host,
            )
            logger.debug(f"Langfuse tracing enabled ({settings.host})")

    @contextmanager
    def analysis(self, error: TestError, provider: str, model: str) -> Iterator[Any]:
        """Open the trace for one failure; yields None when tracing is off."""
        if self._client is None:
            yield None
            return

        metadata = {
            "test_name": error.test_name,
            "error_type": error.error_type.value,
            "severity": error.severity.value,
            "provider": provider,
            "model": model,
        }
        trace = self._client.trace(
            name="triage.analysis",
            input={"error_file": str(error.file_path)},
            metadata=metadata,
            tags=[error.error_type.value, provider],
        )

        outcome: dict[str, Any] = {"status": "failed"}
        try:
            yield trace
            outcome = {"status": "completed"}
        except Exception as e:
            outcome = {"status": "failed", "failure": f"{type(e).__name__}: {e}"}
            raise
        finally:
            trace.update(output=outcome, metadata={**metadata, **outcome})

    @staticmethod
    def generation(trace: Any, model: str, prompt: str, answer: str, dom_snapshot: str | None = None) -> None:
        """Attach the model call to an open analysis trace."""
        if trace is None:
            return

        trace.generation(
            name="generate_response",
            model=model,
            input={"prompt": prompt[:500], "dom_snapshot": bool(dom_snapshot)},
            output=answer[:1000],
        )

    def flush(self) -> None:
        if self._client:
            self._client.flush()


_tracing: TracingClient | None = None


def init_tracing(config: Config) -> TracingClient:
    """Create the process-wide tracing client (done once by the CLI)."""
    global _tracing
    _tracing = TracingClient(config)
    return _tracing


def get_tracing() -> TracingClient | None:
    return _tracing
