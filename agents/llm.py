"""Text generation with ordered model fallback.

Every AI call in the pipeline goes through ``ModelFallbackChain``:

    chain = ModelFallbackChain(["llama3.1:8b", "mistral"])
    text = await chain.generate(prompt, system=SYSTEM, json_mode=True)

A model is skipped in favour of the next one only when its failure is
retryable (overload, missing model, timeout, connection error). Any other
error propagates at once. When the list is exhausted,
``AllModelsUnavailable`` is raised.
"""

import asyncio
import json
import re
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

import httpx
import structlog
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_ollama import ChatOllama

from app.config import ANALYSIS_TIMEOUT, OLLAMA_BASE_URL, OLLAMA_FALLBACK_MODELS, OLLAMA_MODEL
from app.errors import AllModelsUnavailable

logger = structlog.get_logger(__name__)

# 404: model not pulled on this server; 429/5xx: overloaded or failing.
RETRYABLE_STATUS_CODES = frozenset({404, 429, 500, 502, 503, 504})

_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*|\s*```\s*$", re.IGNORECASE)
_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)


class TextGenerator(Protocol):
    async def __call__(
        self, model: str, prompt: str, *, system: str = "", json_mode: bool = False
    ) -> str: ...


class OllamaTextGenerator:
    """Generate text with a local Ollama server through ChatOllama."""

    def __init__(self, base_url: str = OLLAMA_BASE_URL, temperature: float = 0.2) -> None:
        self.base_url = base_url
        self.temperature = temperature

    async def __call__(
        self, model: str, prompt: str, *, system: str = "", json_mode: bool = False
    ) -> str:
        kwargs: Dict[str, Any] = {
            "model": model,
            "base_url": self.base_url,
            "temperature": self.temperature,
        }
        if json_mode:
            kwargs["format"] = "json"
        llm = ChatOllama(**kwargs)

        messages = []
        if system:
            messages.append(SystemMessage(content=system))
        messages.append(HumanMessage(content=prompt))

        response = await llm.ainvoke(messages)
        return str(response.content)


def _status_code(exc: BaseException) -> Optional[int]:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code
    for attr in ("status_code", "status", "code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def is_retryable(exc: BaseException) -> bool:
    """True when trying the next model could succeed where this one failed."""
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError, httpx.TimeoutException)):
        return True
    if isinstance(exc, (ConnectionError, httpx.TransportError)):
        return True
    status = _status_code(exc)
    return status is not None and status in RETRYABLE_STATUS_CODES


class ModelFallbackChain:
    """Try each model in order until one produces a response.

    Args:
        models: Model names in preference order.
        generator: Async callable doing one generation against one model.
        retryable: Classifier deciding whether to move on to the next model.
        timeout: Per-model timeout in seconds; ``None`` disables it.
    """

    def __init__(
        self,
        models: Optional[Sequence[str]] = None,
        generator: Optional[TextGenerator] = None,
        retryable: Callable[[BaseException], bool] = is_retryable,
        timeout: Optional[float] = ANALYSIS_TIMEOUT,
    ) -> None:
        ordered = list(models) if models is not None else [OLLAMA_MODEL, *OLLAMA_FALLBACK_MODELS]
        self.models: List[str] = list(dict.fromkeys(m for m in ordered if m))
        if not self.models:
            raise ValueError("ModelFallbackChain needs at least one model")
        self.generator = generator or OllamaTextGenerator()
        self.retryable = retryable
        self.timeout = timeout

    async def generate(self, prompt: str, *, system: str = "", json_mode: bool = False) -> str:
        last_error: Optional[BaseException] = None

        for model in self.models:
            log = logger.bind(model=model)
            try:
                call = self.generator(model, prompt, system=system, json_mode=json_mode)
                if self.timeout is not None:
                    text = await asyncio.wait_for(call, timeout=self.timeout)
                else:
                    text = await call
                log.debug("llm.generate.success", chars=len(text))
                return text
            except Exception as e:
                if not self.retryable(e):
                    log.error("llm.generate.failed", error=str(e), error_type=type(e).__name__)
                    raise
                last_error = e
                log.warning(
                    "llm.generate.model_unavailable",
                    error=str(e) or type(e).__name__,
                    error_type=type(e).__name__,
                )

        logger.error("llm.generate.all_models_unavailable", models=self.models)
        raise AllModelsUnavailable(self.models, last_error)


def parse_json_object(text: str) -> Optional[Dict[str, Any]]:
    """
    Pull a JSON object out of a model response.

    Tries:
      1. Direct json.loads after stripping Markdown code fences.
      2. Regex extraction of the outermost ``{...}`` span.

    Returns:
        The parsed dict, or ``None`` when neither strategy yields an object.
    """
    if not text:
        return None

    cleaned = _FENCE_RE.sub("", text.strip())

    # Strategy 1: direct JSON parse
    try:
        parsed = json.loads(cleaned)
        if isinstance(parsed, dict):
            return parsed
    except (json.JSONDecodeError, ValueError):
        pass

    # Strategy 2: regex extraction
    match = _OBJECT_RE.search(cleaned)
    if match:
        try:
            parsed = json.loads(match.group())
            if isinstance(parsed, dict):
                return parsed
        except (json.JSONDecodeError, ValueError):
            pass

    return None
