"""Oracle Gateway: transparent LLM proxy for observability, retry, and metrics.

Wraps any LlamaIndex LLM as a CustomLLM subclass so every judgment the
pipeline requests flows through one place.

Features:
- Call logging (prompt/response length, latency, model)
- Token tracking (extracted from provider responses when present)
- Retry with exponential backoff for sync and async completion
- Per-call purpose tagging (one purpose per prompt template)
- Thread-safe in-memory metrics
"""

import logging
import threading
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Generator

import backoff
from llama_index.core.base.llms.types import CompletionResponse, LLMMetadata
from llama_index.core.llms import CustomLLM

logger = logging.getLogger(__name__)

_MAX_TRIES = 3
_MAX_TIME = 60


def _get_retryable_exceptions():
    """Lazy-load retryable exception classes.

    Provider SDKs are optional; only the installed ones contribute.
    """
    exceptions = [ConnectionError]
    try:
        from openai import APIConnectionError, RateLimitError as OpenAIRateLimit
        exceptions.extend([OpenAIRateLimit, APIConnectionError])
    except ImportError:
        pass
    try:
        from anthropic import RateLimitError as AnthropicRateLimit
        exceptions.append(AnthropicRateLimit)
    except ImportError:
        pass
    try:
        import httpx
        exceptions.append(httpx.TransportError)
    except ImportError:
        pass
    return tuple(exceptions)


# ── Metrics ────────────────────────────────────────────────────────────

@dataclass
class OracleMetrics:
    """Thread-safe in-memory oracle usage metrics."""

    total_calls: int = 0
    total_tokens_in: int = 0
    total_tokens_out: int = 0
    total_latency_ms: float = 0.0
    errors: int = 0
    retries: int = 0
    calls_by_purpose: dict = field(default_factory=lambda: defaultdict(int))

    def to_dict(self) -> dict:
        return {
            "total_calls": self.total_calls,
            "total_tokens_in": self.total_tokens_in,
            "total_tokens_out": self.total_tokens_out,
            "total_latency_ms": round(self.total_latency_ms, 1),
            "avg_latency_ms": round(self.total_latency_ms / max(self.total_calls, 1), 1),
            "errors": self.errors,
            "retries": self.retries,
            "calls_by_purpose": dict(self.calls_by_purpose),
        }


# ── Gateway ────────────────────────────────────────────────────────────

class OracleGateway(CustomLLM):
    """LLM proxy with logging, retry, and metrics.

    Usage:
        from carveout.core.oracle.gateway import OracleGateway
        llm = OracleGateway(raw_llm)
        await llm.acomplete(prompt, gateway_purpose="refactor-class")
    """

    _llm: Any = None
    _metrics: OracleMetrics = None
    _lock: threading.Lock = None
    _retryable_exceptions: tuple = None

    def __init__(self, llm: Any, **kwargs):
        super().__init__(**kwargs)
        # Private attrs bypass Pydantic field validation
        object.__setattr__(self, "_llm", llm)
        object.__setattr__(self, "_metrics", OracleMetrics())
        object.__setattr__(self, "_lock", threading.Lock())
        object.__setattr__(self, "_retryable_exceptions", _get_retryable_exceptions())
        logger.info(
            f"OracleGateway wrapping {type(llm).__name__}"
            f" (model={getattr(llm, 'model', 'unknown')})"
        )

    @property
    def metadata(self) -> LLMMetadata:
        return self._llm.metadata

    @property
    def model(self) -> str:
        return getattr(self._llm, "model", "unknown")

    # ── Core methods ──────────────────────────────────────────────────

    def complete(
        self, prompt: str, formatted: bool = False, **kwargs: Any
    ) -> CompletionResponse:
        """Synchronous completion with retry and metrics."""
        purpose = kwargs.pop("gateway_purpose", "general")
        t0 = time.time()

        @backoff.on_exception(
            backoff.expo,
            self._retryable_exceptions,
            max_tries=_MAX_TRIES,
            max_time=_MAX_TIME,
            on_backoff=self._on_retry,
        )
        def _do_call():
            return self._llm.complete(prompt, formatted=formatted, **kwargs)

        try:
            response = _do_call()
        except Exception:
            self._record_error(purpose)
            raise

        self._record_success(prompt, response, (time.time() - t0) * 1000, purpose)
        return response

    async def acomplete(
        self, prompt: str, formatted: bool = False, **kwargs: Any
    ) -> CompletionResponse:
        """Async completion with retry and metrics (used by every judgment)."""
        purpose = kwargs.pop("gateway_purpose", "general")
        t0 = time.time()

        @backoff.on_exception(
            backoff.expo,
            self._retryable_exceptions,
            max_tries=_MAX_TRIES,
            max_time=_MAX_TIME,
            on_backoff=self._on_retry,
        )
        async def _do_call():
            return await self._llm.acomplete(prompt, formatted=formatted, **kwargs)

        try:
            response = await _do_call()
        except Exception:
            self._record_error(purpose)
            raise

        self._record_success(prompt, response, (time.time() - t0) * 1000, purpose)
        return response

    def stream_complete(
        self, prompt: str, formatted: bool = False, **kwargs: Any
    ) -> Generator[CompletionResponse, None, None]:
        """Streaming pass-through; metrics recorded once the stream ends."""
        purpose = kwargs.pop("gateway_purpose", "general")
        t0 = time.time()
        collected_text = []

        try:
            for token in self._llm.stream_complete(prompt, formatted=formatted, **kwargs):
                if token.delta:
                    collected_text.append(token.delta)
                yield token
        except Exception:
            self._record_error(purpose)
            raise

        synthetic = CompletionResponse(text="".join(collected_text))
        self._record_success(prompt, synthetic, (time.time() - t0) * 1000, purpose)

    # ── Metrics recording ─────────────────────────────────────────────

    def _on_retry(self, details: dict):
        with self._lock:
            self._metrics.retries += 1
        logger.warning(
            f"OracleGateway retry {details['tries']}/{_MAX_TRIES} "
            f"after {details['wait']:.1f}s: {type(details.get('exception')).__name__}"
        )

    def _record_success(
        self,
        prompt: str,
        response: CompletionResponse,
        latency_ms: float,
        purpose: str,
    ):
        tokens_in = len(prompt.split()) * 1.3  # rough estimate
        tokens_out = len(response.text.split()) * 1.3 if response.text else 0

        raw = getattr(response, "raw", None) or {}
        usage = raw.get("usage") if isinstance(raw, dict) else getattr(raw, "usage", None)
        if usage:
            tokens_in = getattr(usage, "prompt_tokens", None) or tokens_in
            tokens_out = getattr(usage, "completion_tokens", None) or tokens_out

        with self._lock:
            m = self._metrics
            m.total_calls += 1
            m.total_tokens_in += int(tokens_in)
            m.total_tokens_out += int(tokens_out)
            m.total_latency_ms += latency_ms
            m.calls_by_purpose[purpose] += 1

        logger.debug(
            f"Oracle call: purpose={purpose} tokens_in={int(tokens_in)} "
            f"tokens_out={int(tokens_out)} latency={latency_ms:.0f}ms "
            f"model={self.model}"
        )

    def _record_error(self, purpose: str):
        with self._lock:
            self._metrics.errors += 1
            self._metrics.calls_by_purpose[f"{purpose}_error"] += 1
        logger.error(f"Oracle call failed: purpose={purpose} model={self.model}")

    # ── Public metrics API ────────────────────────────────────────────

    def get_metrics(self) -> dict:
        """Return a thread-safe snapshot of current metrics."""
        with self._lock:
            result = self._metrics.to_dict()
            result["model"] = self.model
            return result

    def reset_metrics(self):
        with self._lock:
            object.__setattr__(self, "_metrics", OracleMetrics())

    @classmethod
    def class_name(cls) -> str:
        return "OracleGateway"
