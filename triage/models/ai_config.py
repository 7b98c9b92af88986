"""
AI Provider Config Model
========================
Per-call AI configuration supplied by the caller (the core is stateless).

Fields:
    provider   — gemini | claude | openai | grok | custom | none
    transport  — browser (direct provider call) | backend (local proxy)
    api_key    — provider key, required for browser transport only
    base_url   — endpoint of the custom OpenAI-compatible provider
    model      — optional model override (falls back to DEFAULT_MODELS)

Both the UI's camelCase keys (apiKey, baseUrl) and snake_case are accepted.
"""
import logging
from collections.abc import Mapping
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from triage.core.constants import DEFAULT_MODELS, Transport

logger = logging.getLogger(__name__)


class AIProviderConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", protected_namespaces=())

    provider: Optional[str] = None
    transport: Optional[str] = Transport.BROWSER.value
    api_key: Optional[str] = Field(default=None, alias="apiKey")
    base_url: Optional[str] = Field(default=None, alias="baseUrl")
    model: Optional[str] = None

    @classmethod
    def coerce(cls, config: Any) -> Optional["AIProviderConfig"]:
        """Accept a config model, a plain mapping, or None."""
        if config is None or isinstance(config, cls):
            return config
        if isinstance(config, Mapping):
            try:
                return cls.model_validate(dict(config))
            except ValidationError as e:
                logger.debug("Ignoring malformed AI provider config: %s", e)
        return None

    @property
    def effective_transport(self) -> str:
        """Anything other than "backend" is treated as browser transport."""
        if self.transport == Transport.BACKEND.value:
            return Transport.BACKEND.value
        return Transport.BROWSER.value

    @property
    def effective_model(self) -> str:
        return self.model or DEFAULT_MODELS.get(self.provider or "", "")
