"""
LLM Client
==========
Unified asynchronous HTTP client for AI calls.

Transports:
    - browser  → call_provider(): the provider's native REST API, built by
                 the adapter registry; returns the raw answer text
    - backend  → call_backend(): POST {provider, model, ...payload} to
                 <proxy>/api/ai/<task>; returns the JSON body as-is

Failure Surface:
    - Non-2xx from a provider → ProviderHTTPError("<Provider> API", status, body)
    - Non-2xx from the proxy  → ProviderHTTPError("Backend proxy", status, body)
    - 2xx without answer text → NoContentError
    - Network failures propagate as httpx exceptions

One outbound call per invocation: no retries, no fallback provider.
Timeouts are whatever the underlying httpx client enforces.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from triage.core.config import AI_REQUEST_TIMEOUT, BACKEND_PROXY_URL
from triage.core.constants import AI_TASKS
from triage.llm.errors import AIError, NoContentError, ProviderHTTPError
from triage.llm.providers import get_adapter
from triage.models.ai_config import AIProviderConfig

logger = logging.getLogger(__name__)


class LLMClient:
    """
    Async HTTP client for provider and backend-proxy calls.

    Usage:
        client = LLMClient()
        text = await client.call_provider("Analyze this bug...", config)
        await client.close()

    Tests inject an ``httpx.AsyncClient`` built on ``httpx.MockTransport``.
    """

    def __init__(
        self,
        http: Optional[httpx.AsyncClient] = None,
        proxy_url: str = BACKEND_PROXY_URL,
    ) -> None:
        self._http = http
        self.proxy_url = proxy_url.rstrip("/")

    async def _get_http(self) -> httpx.AsyncClient:
        """Lazy-initialise the HTTP client."""
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(timeout=httpx.Timeout(AI_REQUEST_TIMEOUT))
        return self._http

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http and not self._http.is_closed:
            await self._http.aclose()
            self._http = None

    async def call_provider(self, prompt: str, config: AIProviderConfig) -> str:
        """
        Send a prompt straight to the configured provider.

        Parameters
        ----------
        prompt : str
            Fully-built task prompt.
        config : AIProviderConfig
            Provider, key, optional model and base URL.

        Returns
        -------
        str
            The provider's raw answer text (still needs JSON extraction).
        """
        adapter = get_adapter(config.provider)
        request = adapter.build_request(prompt, config)

        http = await self._get_http()
        logger.debug("Calling %s at %s", adapter.label, request.url)
        resp = await http.post(request.url, json=request.json, headers=request.headers)

        if not resp.is_success:
            raise ProviderHTTPError(f"{adapter.label} API", resp.status_code, resp.text)

        try:
            data = resp.json()
        except ValueError:
            raise NoContentError(adapter.label)

        text = adapter.extract_text(data)
        if not text:
            raise NoContentError(adapter.label)
        return text

    async def call_backend(
        self,
        task: str,
        payload: Dict[str, Any],
        config: AIProviderConfig,
    ) -> Any:
        """
        Forward one task to the backend proxy, which holds the credentials.

        Parameters
        ----------
        task : str
            One of classify, customize, suggest, generate, refine.
        payload : dict
            Task-specific fields merged into the request envelope.
        config : AIProviderConfig
            Provider and optional model; the API key is never sent.

        Returns
        -------
        Any
            The decoded JSON body (the task result).
        """
        if task not in AI_TASKS:
            raise AIError(f"Unknown AI task: {task}")

        url = f"{self.proxy_url}/api/ai/{task}"
        body = {
            "provider": config.provider,
            "model": config.effective_model or None,
            **payload,
        }

        http = await self._get_http()
        logger.debug("Forwarding %s task to backend proxy %s", task, url)
        resp = await http.post(url, json=body)

        if not resp.is_success:
            raise ProviderHTTPError("Backend proxy", resp.status_code, resp.text)

        try:
            return resp.json()
        except ValueError:
            raise AIError("Backend proxy returned a non-JSON body")
