"""Tagged results of one oracle judgment.

Every judgment is exactly one of:
- Success: the response parsed and validated against its schema
- SchemaError: the oracle answered, but the content did not validate
- TransportError: the oracle could not be reached, timed out, or errored

Callers branch on ``ok`` or call ``unwrap()`` to get the value or the
matching exception.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Generic, Optional, TypeVar, Union

from ..errors import MalformedJudgment, OracleFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T
    raw_text: str
    template_id: Optional[str] = None

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class SchemaError:
    raw_text: str
    reason: str
    template_id: Optional[str] = None

    @property
    def ok(self) -> bool:
        return False

    def unwrap(self):
        raise MalformedJudgment(self.reason, template_id=self.template_id, raw_text=self.raw_text)


@dataclass(frozen=True)
class TransportError:
    cause: Optional[BaseException]
    reason: str
    template_id: Optional[str] = None

    @property
    def ok(self) -> bool:
        return False

    def unwrap(self):
        raise OracleFailure(self.reason, template_id=self.template_id, cause=self.cause)


Judgment = Union[Success, SchemaError, TransportError]


def extract_json(raw: str) -> Dict[str, Any]:
    """Parse the JSON object in an LLM response, stripping markdown fences.

    Raises:
        ValueError: If no JSON object can be recovered
    """
    cleaned = raw
    if "```json" in cleaned:
        cleaned = cleaned.split("```json", 1)[1]
    elif cleaned.lstrip().startswith("```"):
        cleaned = cleaned.split("```", 1)[1]
    if "```" in cleaned:
        cleaned = cleaned.split("```", 1)[0]
    cleaned = cleaned.strip()

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.debug(f"JSON parse failed: {e}. Attempting repair.")
        # Try the outermost { }
        start = cleaned.find("{")
        end = cleaned.rfind("}")
        if start < 0 or end <= start:
            raise ValueError(f"No JSON object in response: {e}") from e
        try:
            parsed = json.loads(cleaned[start:end + 1])
        except json.JSONDecodeError as e2:
            raise ValueError(f"Unparseable JSON in response: {e2}") from e2

    if not isinstance(parsed, dict):
        raise ValueError(f"Expected a JSON object, got {type(parsed).__name__}")
    return parsed
