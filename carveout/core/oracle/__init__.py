# Carveout Semantic Oracle - prompt templates, response schemas,
# tagged judgments, and the LLM gateway

from .client import JudgmentRequest, SemanticOracle
from .gateway import OracleGateway
from .judgment import Judgment, SchemaError, Success, TransportError, extract_json
from .prompts import PROMPT_TEMPLATES, PromptTemplate, render
from .providers import create_llm, get_configured_llm
from .schemas import (
    BoundedContextListSchema,
    DependencyUpdateSchema,
    MicroserviceResponseSchema,
    RefactorPlanSchema,
)

__all__ = [
    "SemanticOracle",
    "JudgmentRequest",
    "OracleGateway",
    "Judgment",
    "Success",
    "SchemaError",
    "TransportError",
    "extract_json",
    "PromptTemplate",
    "PROMPT_TEMPLATES",
    "render",
    "create_llm",
    "get_configured_llm",
    "BoundedContextListSchema",
    "MicroserviceResponseSchema",
    "RefactorPlanSchema",
    "DependencyUpdateSchema",
]
