"""
Provider Adapters
=================
One adapter per provider API shape, selected by provider name.

Adapters:
    gemini  — Google Generative Language REST API       (browser-capable)
    claude  — Anthropic Messages API                    (browser-capable)
    openai  — OpenAI chat completions                   (backend only)
    grok    — xAI, OpenAI-compatible                    (backend only)
    custom  — any OpenAI-compatible endpoint (base_url)  (backend only)

Every adapter implements the same three members:
    build_request(prompt, config) → ProviderRequest(url, headers, json)
    extract_text(data)            → answer text or None
    supports_browser              → whether the API may be called directly

Adding a provider means adding an adapter to the registry; the task layer
never branches on provider names.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from triage.core.constants import DEFAULT_MODELS
from triage.llm.errors import AIError
from triage.models.ai_config import AIProviderConfig

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Request envelope
# ---------------------------------------------------------------------------
@dataclass
class ProviderRequest:
    """A fully-built outbound HTTP request for one provider call."""
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    json: Dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Adapters
# ---------------------------------------------------------------------------
class ProviderAdapter:
    """Common interface; subclasses fill in the provider-specific shapes."""

    name: str = ""
    label: str = ""
    supports_browser: bool = False

    def build_request(self, prompt: str, config: AIProviderConfig) -> ProviderRequest:
        raise NotImplementedError

    def extract_text(self, data: Any) -> Optional[str]:
        raise NotImplementedError

    def model_for(self, config: AIProviderConfig) -> str:
        return config.model or DEFAULT_MODELS.get(self.name, "")


class GeminiAdapter(ProviderAdapter):
    name = "gemini"
    label = "Gemini"
    supports_browser = True
    base_url = "https://generativelanguage.googleapis.com/v1beta"

    def build_request(self, prompt: str, config: AIProviderConfig) -> ProviderRequest:
        return ProviderRequest(
            url=f"{self.base_url}/models/{self.model_for(config)}:generateContent",
            headers={
                "Content-Type": "application/json",
                "x-goog-api-key": config.api_key or "",
            },
            json={
                "contents": [
                    {"parts": [{"text": prompt}]}
                ],
                "generationConfig": {
                    "responseMimeType": "application/json",
                },
            },
        )

    def extract_text(self, data: Any) -> Optional[str]:
        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (IndexError, KeyError, TypeError):
            return None
        return text or None


class ClaudeAdapter(ProviderAdapter):
    name = "claude"
    label = "Claude"
    supports_browser = True
    url = "https://api.anthropic.com/v1/messages"
    api_version = "2023-06-01"
    max_tokens = 1024

    def build_request(self, prompt: str, config: AIProviderConfig) -> ProviderRequest:
        return ProviderRequest(
            url=self.url,
            headers={
                "Content-Type": "application/json",
                "x-api-key": config.api_key or "",
                "anthropic-version": self.api_version,
                "anthropic-dangerous-direct-browser-access": "true",
            },
            json={
                "model": self.model_for(config),
                "max_tokens": self.max_tokens,
                "messages": [
                    {"role": "user", "content": prompt},
                ],
            },
        )

    def extract_text(self, data: Any) -> Optional[str]:
        try:
            text = data["content"][0]["text"]
        except (IndexError, KeyError, TypeError):
            return None
        return text or None


class OpenAICompatibleAdapter(ProviderAdapter):
    """Chat-completions API shared by OpenAI, xAI and self-hosted endpoints."""

    supports_browser = False

    def __init__(self, name: str, label: str, base_url: Optional[str] = None) -> None:
        self.name = name
        self.label = label
        self.base_url = base_url

    def build_request(self, prompt: str, config: AIProviderConfig) -> ProviderRequest:
        base_url = (config.base_url or self.base_url or "").rstrip("/")
        if not base_url:
            raise AIError(f'Provider "{self.name}" requires a base URL')

        return ProviderRequest(
            url=f"{base_url}/chat/completions",
            headers={
                "Authorization": f"Bearer {config.api_key or ''}",
                "Content-Type": "application/json",
            },
            json={
                "model": self.model_for(config),
                "messages": [
                    {"role": "user", "content": prompt},
                ],
                "response_format": {"type": "json_object"},
            },
        )

    def extract_text(self, data: Any) -> Optional[str]:
        try:
            text = data["choices"][0]["message"]["content"]
        except (IndexError, KeyError, TypeError):
            return None
        return text or None


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------
ADAPTERS: Dict[str, ProviderAdapter] = {
    "gemini": GeminiAdapter(),
    "claude": ClaudeAdapter(),
    "openai": OpenAICompatibleAdapter("openai", "OpenAI", "https://api.openai.com/v1"),
    "grok": OpenAICompatibleAdapter("grok", "Grok", "https://api.x.ai/v1"),
    "custom": OpenAICompatibleAdapter("custom", "Custom"),
}


def get_adapter(provider: Optional[str]) -> ProviderAdapter:
    """Return the adapter for ``provider``; unknown names raise AIError."""
    adapter = ADAPTERS.get(provider or "")
    if adapter is None:
        raise AIError(f"Unknown provider: {provider}")
    return adapter
