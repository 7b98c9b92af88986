"""
Configuration
=============
Loads environment variables from .env file using python-dotenv.

Environment Variables:
    BACKEND_PROXY_URL    — Origin of the AI backend proxy (default: http://localhost:3000)
    BUGZILLA_HOST        — Bugzilla instance used for bug links in exports
    AI_REQUEST_TIMEOUT   — Seconds before an outbound AI request is abandoned (default: 60)
    GEMINI_API_KEY       — Server-held Google Gemini key (backend proxy only)
    ANTHROPIC_API_KEY    — Server-held Anthropic key (backend proxy only)
    OPENAI_API_KEY       — Server-held OpenAI key (backend proxy only)
    XAI_API_KEY          — Server-held xAI (Grok) key (backend proxy only)
    CUSTOM_LLM_API_KEY   — Key for a self-hosted OpenAI-compatible endpoint
    CUSTOM_LLM_BASE_URL  — Base URL of that endpoint (e.g. http://localhost:8080/v1)
    PORT                 — Port the backend proxy listens on (default: 3000)
    CORS_ORIGINS         — Comma-separated list of allowed browser origins
    LOG_LEVEL            — Root log level name (default: INFO)
    LOG_DIR              — Directory for the dated log file (default: logs; empty disables)

Credentials:
    Runtime AI configuration (provider, transport, key, model) is always
    passed in by the caller. The keys above are only read by the backend
    proxy, which holds credentials on behalf of browser-transport clients.
"""
import os
from dotenv import load_dotenv

load_dotenv()

BACKEND_PROXY_URL = os.getenv("BACKEND_PROXY_URL", "http://localhost:3000").rstrip("/")
BUGZILLA_HOST = os.getenv("BUGZILLA_HOST", "https://bugzilla.mozilla.org").rstrip("/")
AI_REQUEST_TIMEOUT = float(os.getenv("AI_REQUEST_TIMEOUT", 60))

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
XAI_API_KEY = os.getenv("XAI_API_KEY")
CUSTOM_LLM_API_KEY = os.getenv("CUSTOM_LLM_API_KEY")
CUSTOM_LLM_BASE_URL = os.getenv("CUSTOM_LLM_BASE_URL")

PORT = int(os.getenv("PORT", 3000))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_DIR = os.getenv("LOG_DIR", "logs") or None
CORS_ORIGINS: list[str] = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
    ).split(",")
    if origin.strip()
]

# Provider name → server-held API key, consulted by the backend proxy
SERVER_API_KEYS: dict[str, str | None] = {
    "gemini": GEMINI_API_KEY,
    "claude": ANTHROPIC_API_KEY,
    "openai": OPENAI_API_KEY,
    "grok": XAI_API_KEY,
    "custom": CUSTOM_LLM_API_KEY,
}
