"""
AI Tasks
========
The five AI task entry points, all driven by one state machine.

State Machine (per call):
    1. CONFIGURATION GATE — not configured → documented empty result, no call
    2. CAPABILITY GATE    — browser transport + backend-only provider → ProviderCapabilityError
    3. DISPATCH
         backend → POST envelope to the proxy, coerce the JSON body directly
         browser → build prompt → provider API → extract_json
    4. EXTRACTION         — Unrecoverable → ResponseParseError
    5. VALIDATION         — errors logged as WARNING, never fatal
    6. COERCION           — always a well-shaped result model

Tasks:
    classify_bug               → ClassificationResult
    customize_canned_response  → CustomizeResult   (empty: the template itself)
    suggest_canned_response    → SuggestResult
    generate_response          → GenerateResult
    refine_response            → RefineResult      (empty: the unchanged response)

Each task issues at most one outbound request. Transport errors propagate.
"""
import logging
from collections.abc import Mapping
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel

from triage.core.constants import Provider, Transport
from triage.llm.client import LLMClient
from triage.llm.errors import ProviderCapabilityError, ResponseParseError
from triage.llm.extraction import Unrecoverable, extract_json
from triage.llm.providers import ADAPTERS
from triage.llm.prompts import (
    build_classification_prompt,
    build_customize_prompt,
    build_generate_prompt,
    build_refine_prompt,
    build_suggest_prompt,
    selected_canned_from_context,
)
from triage.llm.validation import (
    ValidationReport,
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
from triage.models.ai_results import (
    CannedResponse,
    ClassificationResult,
    CustomizeResult,
    GenerateResult,
    RefineResult,
    SuggestResult,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Capability queries
# ---------------------------------------------------------------------------
def supports_browser_mode(provider: Optional[str]) -> bool:
    """True when the provider's adapter may be called without the backend proxy."""
    adapter = ADAPTERS.get(provider or "")
    return adapter is not None and adapter.supports_browser


def is_provider_configured(provider_config: Any) -> bool:
    """
    Decide whether a task may make a call with this configuration.

    Rules:
        - provider must be set and not "none"
        - backend transport: always sufficient (the proxy holds the key)
        - browser transport: api_key required; "custom" also needs base_url
    """
    config = AIProviderConfig.coerce(provider_config)
    if config is None or not config.provider or config.provider == Provider.NONE.value:
        return False

    if config.effective_transport == Transport.BACKEND.value:
        return True

    if not config.api_key:
        return False

    if config.provider == Provider.CUSTOM.value and not config.base_url:
        return False

    return True


# ---------------------------------------------------------------------------
# Shared state machine
# ---------------------------------------------------------------------------
def _wire(value: Any) -> Any:
    """Convert models (and containers of them) to JSON-ready values."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, Mapping):
        return {key: _wire(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_wire(item) for item in value]
    return value


async def complete_with_provider(
    task: str,
    prompt: str,
    config: AIProviderConfig,
    validate: Callable[[Any], ValidationReport],
    coerce: Callable[[Any], Any],
    client: LLMClient,
) -> Any:
    """
    Call the provider API directly and turn its answer into a result model.

    Shared by browser transport and the backend proxy (which calls providers
    with server-held keys and is not subject to the browser allow-list).
    """
    text = await client.call_provider(prompt, config)

    extracted = extract_json(text)
    if isinstance(extracted, Unrecoverable):
        raise ResponseParseError(extracted.reason)

    report = validate(extracted.value)
    if not report.valid:
        logger.warning("[%s] Result validation errors: %s", task, report.errors)

    return coerce(extracted.value)


async def _run_task(
    task: str,
    provider_config: Any,
    empty: Callable[[], Any],
    build_prompt: Callable[[], str],
    backend_payload: Callable[[], Dict[str, Any]],
    validate: Callable[[Any], ValidationReport],
    coerce: Callable[[Any], Any],
    client: Optional[LLMClient],
) -> Any:
    if not is_provider_configured(provider_config):
        logger.info("[%s] Provider not configured, returning default result", task)
        return empty()

    config = AIProviderConfig.coerce(provider_config)
    transport = config.effective_transport

    if transport == Transport.BROWSER.value and not supports_browser_mode(config.provider):
        raise ProviderCapabilityError(config.provider)

    owns_client = client is None
    client = client or LLMClient()
    try:
        if transport == Transport.BACKEND.value:
            data = await client.call_backend(task, _wire(backend_payload()), config)
            return coerce(data)

        return await complete_with_provider(
            task, build_prompt(), config, validate, coerce, client
        )
    finally:
        if owns_client:
            await client.close()


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------
async def classify_bug(
    bug: Any,
    provider_config: Any,
    client: Optional[LLMClient] = None,
) -> ClassificationResult:
    """
    Ask the configured provider for the evidence booleans and a summary.

    Parameters
    ----------
    bug : Any
        Bug record in either alias shape.
    provider_config : AIProviderConfig or Mapping or None
        Per-call provider configuration.
    client : LLMClient, optional
        Shared client; a temporary one is created and closed otherwise.

    Returns
    -------
    ClassificationResult
        All-false with an empty summary when no provider is configured.
    """
    return await _run_task(
        "classify",
        provider_config,
        empty=ClassificationResult,
        build_prompt=lambda: build_classification_prompt(bug),
        backend_payload=lambda: {"bug": bug},
        validate=validate_classification_result,
        coerce=coerce_classification_result,
        client=client,
    )


async def customize_canned_response(
    bug: Any,
    canned_response: Any,
    provider_config: Any,
    client: Optional[LLMClient] = None,
) -> CustomizeResult:
    """Tailor one canned response to the bug; unconfigured returns the template."""
    canned = CannedResponse.coerce(canned_response)

    def empty() -> CustomizeResult:
        return coerce_customize_result({}, canned)

    return await _run_task(
        "customize",
        provider_config,
        empty=empty,
        build_prompt=lambda: build_customize_prompt(bug, canned),
        backend_payload=lambda: {"bug": bug, "cannedResponse": canned},
        validate=validate_customize_result,
        coerce=lambda data: coerce_customize_result(data, canned),
        client=client,
    )


async def suggest_canned_response(
    bug: Any,
    canned_responses: Any,
    provider_config: Any,
    client: Optional[LLMClient] = None,
) -> SuggestResult:
    canned_list = list(canned_responses or [])
    return await _run_task(
        "suggest",
        provider_config,
        empty=SuggestResult,
        build_prompt=lambda: build_suggest_prompt(bug, canned_list),
        backend_payload=lambda: {"bug": bug, "cannedResponses": canned_list},
        validate=validate_suggest_result,
        coerce=coerce_suggest_result,
        client=client,
    )


async def generate_response(
    bug: Any,
    options: Optional[Mapping],
    provider_config: Any,
    client: Optional[LLMClient] = None,
) -> GenerateResult:
    """
    Draft a triage comment ("response") or next-step actions ("next-steps").

    ``options`` may carry ``mode`` and ``cannedResponses`` (reference
    templates, also accepted as ``canned_responses``).
    """
    options = dict(options or {})
    mode = options.get("mode") or "response"
    canned = options.get("cannedResponses") or options.get("canned_responses") or []

    return await _run_task(
        "generate",
        provider_config,
        empty=GenerateResult,
        build_prompt=lambda: build_generate_prompt(bug, mode, canned),
        backend_payload=lambda: {"bug": bug, "options": options},
        validate=validate_generate_result,
        coerce=coerce_generate_result,
        client=client,
    )


async def refine_response(
    bug: Any,
    current_response: str,
    user_instruction: str,
    context: Optional[Mapping],
    provider_config: Any,
    client: Optional[LLMClient] = None,
) -> RefineResult:
    """Apply a free-text instruction to a draft; unconfigured returns it unchanged."""
    context = dict(context or {})
    current_response = current_response or ""

    return await _run_task(
        "refine",
        provider_config,
        empty=lambda: RefineResult(refined_response=current_response),
        build_prompt=lambda: build_refine_prompt(
            bug, current_response, user_instruction, selected_canned_from_context(context)
        ),
        backend_payload=lambda: {
            "bug": bug,
            "currentResponse": current_response,
            "userInstruction": user_instruction,
            "context": context,
        },
        validate=validate_refine_result,
        coerce=lambda data: coerce_refine_result(data, current_response),
        client=client,
    )
