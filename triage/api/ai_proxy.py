"""
AI Backend Proxy
================
Server side of the backend transport: the browser sends the task envelope,
the proxy calls the provider with a server-held key and answers with the
task result JSON.

Routes:
    POST /api/ai/classify   {provider, model, bug}
    POST /api/ai/customize  {provider, model, bug, cannedResponse}
    POST /api/ai/suggest    {provider, model, bug, cannedResponses}
    POST /api/ai/generate   {provider, model, bug, options}
    POST /api/ai/refine     {provider, model, bug, currentResponse, userInstruction, context}

Status Codes:
    200 — task result (same shape the browser transport returns)
    400 — unknown provider, or no server key configured for it
    502 — provider HTTP error, no content, unparseable answer, network error
"""
import logging
from typing import Any, Dict, List, Optional

import httpx
from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from triage.core.config import CUSTOM_LLM_BASE_URL, SERVER_API_KEYS
from triage.llm.client import LLMClient
from triage.llm.errors import AIError
from triage.llm.prompts import (
    build_classification_prompt,
    build_customize_prompt,
    build_generate_prompt,
    build_refine_prompt,
    build_suggest_prompt,
    selected_canned_from_context,
)
from triage.llm.providers import ADAPTERS
from triage.llm.tasks import complete_with_provider
from triage.llm.validation import (
    coerce_classification_result,
    coerce_customize_result,
    coerce_generate_result,
    coerce_refine_result,
    coerce_suggest_result,
    validate_classification_result,
    validate_customize_result,
    validate_generate_result,
    validate_refine_result,
    validate_suggest_result,
)
from triage.models.ai_config import AIProviderConfig
from triage.models.ai_results import CannedResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["AI"])

# Environment variable holding each provider's server-side key
_KEY_ENV_NAMES = {
    "gemini": "GEMINI_API_KEY",
    "claude": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
    "grok": "XAI_API_KEY",
    "custom": "CUSTOM_LLM_API_KEY",
}


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------
class _Envelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", protected_namespaces=())

    provider: str
    model: Optional[str] = None
    bug: Dict[str, Any] = Field(default_factory=dict)


class ClassifyRequest(_Envelope):
    pass


class CustomizeRequest(_Envelope):
    canned_response: Optional[Dict[str, Any]] = Field(default=None, alias="cannedResponse")


class SuggestRequest(_Envelope):
    canned_responses: List[Dict[str, Any]] = Field(default_factory=list, alias="cannedResponses")


class GenerateRequest(_Envelope):
    options: Dict[str, Any] = Field(default_factory=dict)


class RefineRequest(_Envelope):
    current_response: str = Field(default="", alias="currentResponse")
    user_instruction: str = Field(default="", alias="userInstruction")
    context: Optional[Dict[str, Any]] = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _new_client() -> LLMClient:
    return LLMClient()


def available_providers() -> List[str]:
    """Providers for which the server holds a key, in registry order."""
    available = []
    for name in ADAPTERS:
        if not SERVER_API_KEYS.get(name):
            continue
        if name == "custom" and not CUSTOM_LLM_BASE_URL:
            continue
        available.append(name)
    return available


def _server_config(request: _Envelope) -> AIProviderConfig:
    if request.provider not in ADAPTERS:
        raise HTTPException(status_code=400, detail=f"Unknown provider: {request.provider}")

    api_key = SERVER_API_KEYS.get(request.provider)
    if not api_key:
        env_name = _KEY_ENV_NAMES.get(request.provider, "API key")
        raise HTTPException(status_code=400, detail=f"{env_name} not configured")

    return AIProviderConfig(
        provider=request.provider,
        transport="browser",
        api_key=api_key,
        base_url=CUSTOM_LLM_BASE_URL if request.provider == "custom" else None,
        model=request.model,
    )


async def _complete(task: str, request: _Envelope, prompt: str, validate, coerce) -> Any:
    config = _server_config(request)
    logger.info("%s request for provider: %s", task.capitalize(), request.provider)

    client = _new_client()
    try:
        result = await complete_with_provider(task, prompt, config, validate, coerce, client)
    except (AIError, httpx.HTTPError) as e:
        logger.warning("%s via %s failed: %s", task, request.provider, e)
        return JSONResponse(
            status_code=502,
            content={"error": f"AI {task} failed", "details": str(e)},
        )
    finally:
        await client.close()

    return result.model_dump(mode="json")


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
@router.post("/classify")
async def classify(request: ClassifyRequest):
    return await _complete(
        "classify", request,
        build_classification_prompt(request.bug),
        validate_classification_result,
        coerce_classification_result,
    )


@router.post("/customize")
async def customize(request: CustomizeRequest):
    canned = CannedResponse.coerce(request.canned_response)
    return await _complete(
        "customize", request,
        build_customize_prompt(request.bug, canned),
        validate_customize_result,
        lambda data: coerce_customize_result(data, canned),
    )


@router.post("/suggest")
async def suggest(request: SuggestRequest):
    return await _complete(
        "suggest", request,
        build_suggest_prompt(request.bug, request.canned_responses),
        validate_suggest_result,
        coerce_suggest_result,
    )


@router.post("/generate")
async def generate(request: GenerateRequest):
    options = request.options
    canned = options.get("cannedResponses") or options.get("canned_responses") or []
    return await _complete(
        "generate", request,
        build_generate_prompt(request.bug, options.get("mode") or "response", canned),
        validate_generate_result,
        coerce_generate_result,
    )


@router.post("/refine")
async def refine(request: RefineRequest):
    return await _complete(
        "refine", request,
        build_refine_prompt(
            request.bug,
            request.current_response,
            request.user_instruction,
            selected_canned_from_context(request.context),
        ),
        validate_refine_result,
        lambda data: coerce_refine_result(data, request.current_response),
    )
