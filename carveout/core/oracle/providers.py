"""LLM provider construction.

Builds a LlamaIndex LLM for the configured provider and wraps it in the
OracleGateway. ``provider: none`` (the default) means the pipeline runs
on its structural fallbacks.
"""

import logging
import os
from typing import Any, Dict, Optional

from ..config import get_oracle_config
from .gateway import OracleGateway

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("ollama", "openai", "anthropic", "gemini")


def create_llm(provider: str, model: str, cfg: Optional[Dict[str, Any]] = None) -> OracleGateway:
    """Create a gateway-wrapped LLM for ``provider``/``model``.

    Raises:
        ValueError: If the provider is unknown
    """
    cfg = cfg or {}
    temperature = cfg.get("temperature", 0.1)

    if provider == "ollama":
        from llama_index.llms.ollama import Ollama
        raw_llm = Ollama(
            model=model,
            temperature=temperature,
            request_timeout=float(cfg.get("timeout_seconds", 300)),
            base_url=os.getenv("OLLAMA_HOST", "http://localhost:11434"),
        )
    elif provider == "openai":
        from llama_index.llms.openai import OpenAI
        raw_llm = OpenAI(model=model, temperature=temperature, api_key=os.getenv("OPENAI_API_KEY"))
    elif provider == "anthropic":
        from llama_index.llms.anthropic import Anthropic
        raw_llm = Anthropic(model=model, temperature=temperature, api_key=os.getenv("ANTHROPIC_API_KEY"))
    elif provider == "gemini":
        from llama_index.llms.gemini import Gemini
        raw_llm = Gemini(model=model, temperature=temperature, api_key=os.getenv("GOOGLE_API_KEY"))
    else:
        raise ValueError(f"Unknown LLM provider: {provider}. Supported: {SUPPORTED_PROVIDERS}")

    logger.info(f"Oracle LLM: {provider}/{model}")
    return OracleGateway(raw_llm)


def get_configured_llm() -> Optional[OracleGateway]:
    """Build the LLM described by configuration, or None when disabled."""
    cfg = get_oracle_config()
    provider = (cfg.get("provider") or "none").lower()
    if provider == "none":
        return None
    model = cfg.get("model")
    if not model:
        raise ValueError(f"oracle.model must be set for provider '{provider}'")
    return create_llm(provider, model, cfg)
