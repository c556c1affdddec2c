"""Semantic Oracle client.

The only component that talks to the LLM. Renders a prompt template,
awaits the completion under a timeout, and turns the response into a
tagged Judgment. Concurrent batches are bounded by a semaphore and never
fail fast: every request yields exactly one Judgment.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence, Type

from pydantic import BaseModel, ValidationError

from ..config import get_oracle_config
from ..errors import OracleFailure, OracleUnavailable
from .gateway import OracleGateway
from .judgment import Judgment, SchemaError, Success, TransportError, extract_json
from .prompts import render
from .providers import get_configured_llm

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JudgmentRequest:
    """One judgment to request in a batch."""

    template_id: str
    variables: Mapping[str, str]
    schema: Type[BaseModel]


class SemanticOracle:
    """Async adapter between prompt templates and an LLM.

    Args:
        llm: Any object with ``async acomplete(prompt) -> response.text``;
            None means no oracle is configured.
        timeout_seconds: Per-call timeout
        max_concurrent: Upper bound on in-flight calls in ``judge_many``
    """

    def __init__(self, llm: Any = None, timeout_seconds: float = 120.0, max_concurrent: int = 4):
        self._llm = llm
        self._timeout = timeout_seconds
        self._max_concurrent = max(1, int(max_concurrent))

    @classmethod
    def from_config(cls, llm: Any = None) -> "SemanticOracle":
        """Build from the ``oracle`` config section.

        When ``llm`` is not given, the configured provider is constructed
        (None for ``provider: none``).
        """
        cfg = get_oracle_config()
        if llm is None:
            llm = get_configured_llm()
        return cls(
            llm=llm,
            timeout_seconds=float(cfg.get("timeout_seconds", 120)),
            max_concurrent=int(cfg.get("max_concurrent", 4)),
        )

    @property
    def available(self) -> bool:
        return self._llm is not None

    async def judge(self, template_id: str, variables: Mapping[str, str]) -> str:
        """Render ``template_id`` and return the raw response text.

        Raises:
            OracleUnavailable: No LLM configured
            OracleFailure: Transport error or timeout
            ValueError: Unknown template or missing variables
        """
        if self._llm is None:
            raise OracleUnavailable("No oracle configured", template_id=template_id)

        prompt = render(template_id, variables)
        kwargs = {}
        if isinstance(self._llm, OracleGateway):
            kwargs["gateway_purpose"] = template_id

        try:
            response = await asyncio.wait_for(self._llm.acomplete(prompt, **kwargs), timeout=self._timeout)
        except asyncio.TimeoutError as e:
            raise OracleFailure(f"Timed out after {self._timeout:g}s", template_id=template_id, cause=e) from e
        except Exception as e:
            raise OracleFailure(f"{type(e).__name__}: {e}", template_id=template_id, cause=e) from e

        return getattr(response, "text", None) or ""

    async def judge_as(
        self,
        template_id: str,
        variables: Mapping[str, str],
        schema: Type[BaseModel],
    ) -> Judgment:
        """Judge and validate against ``schema``; never raises for oracle faults."""
        try:
            text = await self.judge(template_id, variables)
        except OracleFailure as e:
            logger.warning(f"Oracle transport failure: {e}")
            return TransportError(cause=e.cause or e, reason=str(e), template_id=template_id)

        try:
            value = schema.model_validate(extract_json(text))
        except (ValidationError, ValueError) as e:
            logger.warning(f"Oracle response for '{template_id}' failed {schema.__name__}: {e}")
            return SchemaError(raw_text=text, reason=str(e), template_id=template_id)

        return Success(value=value, raw_text=text, template_id=template_id)

    async def judge_many(self, requests: Sequence[JudgmentRequest]) -> List[Judgment]:
        """Run all requests concurrently; results are in request order."""
        semaphore = asyncio.Semaphore(self._max_concurrent)

        async def _bounded(request: JudgmentRequest) -> Judgment:
            async with semaphore:
                return await self.judge_as(request.template_id, request.variables, request.schema)

        results = await asyncio.gather(*(_bounded(r) for r in requests))
        failed = sum(1 for r in results if not r.ok)
        logger.info(f"Oracle batch: {len(results)} judgment(s), {failed} failed")
        return list(results)

    def get_metrics(self) -> Optional[dict]:
        """Gateway metrics, when the LLM is wrapped in an OracleGateway."""
        if isinstance(self._llm, OracleGateway):
            return self._llm.get_metrics()
        return None
