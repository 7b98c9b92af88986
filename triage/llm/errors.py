"""
AI Errors
=========
Exception taxonomy for the AI task layer.

    AIError                   — base class; catch this to handle any AI failure
    ProviderCapabilityError   — browser transport requested for a backend-only provider
    ProviderHTTPError         — non-2xx answer from a provider API or the backend proxy
    NoContentError            — 2xx answer with no extractable text
    ResponseParseError        — the model answered, but not with usable JSON

Configuration absence is NOT an error: tasks return their empty default.
Schema-validation problems are NOT errors either: they are logged and the
result is coerced.
"""


class AIError(Exception):
    """Base class for every AI task failure."""


class ProviderCapabilityError(AIError):
    def __init__(self, provider: str) -> None:
        self.provider = provider
        super().__init__(
            f'Provider "{provider}" does not support browser mode. '
            "Use backend mode instead."
        )


class ProviderHTTPError(AIError):
    """Transport failure carrying the upstream status code and body text."""

    def __init__(self, source: str, status_code: int, body: str = "") -> None:
        self.source = source
        self.status_code = status_code
        self.body = body
        super().__init__(f"{source} error: {status_code} - {body}")


class NoContentError(AIError):
    def __init__(self, provider_label: str) -> None:
        self.provider_label = provider_label
        super().__init__(f"No content in {provider_label} response")


class ResponseParseError(AIError):
    def __init__(self, reason: str = "") -> None:
        self.reason = reason
        message = "Failed to parse AI response as JSON"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
