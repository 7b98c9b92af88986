"""
API Tests — AI Backend Proxy
============================
Endpoints exercised through FastAPI's TestClient; server keys and the
outbound provider client are patched.
"""
import json
from unittest.mock import patch

import httpx
import pytest
from fastapi.testclient import TestClient

from main import app
from triage.llm.client import LLMClient

client = TestClient(app)

KEYS = {"gemini": "server-gemini", "claude": None, "openai": "server-openai", "grok": None, "custom": None}
BUG = {"id": 7, "summary": "Video stutters", "comments": [{"text": "STR: play video"}]}


def _gemini_reply(payload):
    text = payload if isinstance(payload, str) else json.dumps(payload)
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def _client_factory(handler, seen=None):
    def factory():
        def recording(request):
            if seen is not None:
                seen.append(request)
            return handler(request)
        return LLMClient(http=httpx.AsyncClient(transport=httpx.MockTransport(recording)))
    return factory


# ===========================================================================
# 1. Health
# ===========================================================================
class TestHealth:

    def test_reports_available_providers(self):
        with patch("triage.api.ai_proxy.SERVER_API_KEYS", KEYS):
            response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["availableProviders"] == ["gemini", "openai"]
        assert data["recommendedProvider"] == "gemini"

    def test_no_keys(self):
        with patch("triage.api.ai_proxy.SERVER_API_KEYS", {}):
            data = client.get("/health").json()
        assert data["availableProviders"] == []
        assert data["recommendedProvider"] is None

    def test_custom_needs_base_url(self):
        keys = {"custom": "k"}
        with patch("triage.api.ai_proxy.SERVER_API_KEYS", keys), \
                patch("triage.api.ai_proxy.CUSTOM_LLM_BASE_URL", None):
            assert client.get("/health").json()["availableProviders"] == []
        with patch("triage.api.ai_proxy.SERVER_API_KEYS", keys), \
                patch("triage.api.ai_proxy.CUSTOM_LLM_BASE_URL", "http://llm.local/v1"):
            assert client.get("/health").json()["availableProviders"] == ["custom"]


# ===========================================================================
# 2. Request validation
# ===========================================================================
class TestConfigurationErrors:

    def test_missing_server_key(self):
        with patch("triage.api.ai_proxy.SERVER_API_KEYS", KEYS):
            response = client.post("/api/ai/classify", json={"provider": "claude", "bug": BUG})
        assert response.status_code == 400
        assert response.json()["detail"] == "ANTHROPIC_API_KEY not configured"

    def test_unknown_provider(self):
        response = client.post("/api/ai/classify", json={"provider": "bard", "bug": BUG})
        assert response.status_code == 400
        assert "Unknown provider" in response.json()["detail"]

    def test_missing_provider_field(self):
        response = client.post("/api/ai/classify", json={"bug": BUG})
        assert response.status_code == 422


# ===========================================================================
# 3. Task endpoints
# ===========================================================================
class TestTaskEndpoints:

    def test_classify_uses_server_key(self):
        seen = []
        reply = _gemini_reply({
            "ai_detected_str": True,
            "ai_detected_test_attached": False,
            "crashstack_present": False,
            "fuzzing_testcase": False,
            "summary": "Playback stutter with steps.",
        })
        factory = _client_factory(lambda request: httpx.Response(200, json=reply), seen)
        with patch("triage.api.ai_proxy.SERVER_API_KEYS", KEYS), \
                patch("triage.api.ai_proxy._new_client", side_effect=factory):
            response = client.post("/api/ai/classify", json={"provider": "gemini", "bug": BUG})

        assert response.status_code == 200
        data = response.json()
        assert data["ai_detected_str"] is True
        assert data["summary"] == "Playback stutter with steps."
        assert seen[0].headers["x-goog-api-key"] == "server-gemini"

    def test_openai_is_allowed_through_the_proxy(self):
        reply = {"choices": [{"message": {"content": '{"selected_responses": [{"id": "need-str"}]}'}}]}
        factory = _client_factory(lambda request: httpx.Response(200, json=reply))
        with patch("triage.api.ai_proxy.SERVER_API_KEYS", KEYS), \
                patch("triage.api.ai_proxy._new_client", side_effect=factory):
            response = client.post("/api/ai/suggest", json={
                "provider": "openai",
                "bug": BUG,
                "cannedResponses": [{"id": "need-str", "title": "Need STR", "bodyTemplate": "..."}],
            })

        assert response.status_code == 200
        assert response.json()["selected_responses"][0]["id"] == "need-str"

    def test_customize_falls_back_to_template(self):
        factory = _client_factory(lambda request: httpx.Response(200, json=_gemini_reply({"notes": {}})))
        with patch("triage.api.ai_proxy.SERVER_API_KEYS", KEYS), \
                patch("triage.api.ai_proxy._new_client", side_effect=factory):
            response = client.post("/api/ai/customize", json={
                "provider": "gemini",
                "bug": BUG,
                "cannedResponse": {"id": "dupe", "bodyTemplate": "Duplicate of another bug."},
            })

        assert response.status_code == 200
        assert response.json()["final_response"] == "Duplicate of another bug."
        assert response.json()["used_canned_id"] == "dupe"

    def test_refine_keeps_current_response_on_empty_answer(self):
        factory = _client_factory(lambda request: httpx.Response(200, json=_gemini_reply({"changes_made": []})))
        with patch("triage.api.ai_proxy.SERVER_API_KEYS", KEYS), \
                patch("triage.api.ai_proxy._new_client", side_effect=factory):
            response = client.post("/api/ai/refine", json={
                "provider": "gemini",
                "bug": BUG,
                "currentResponse": "Thanks for filing.",
                "userInstruction": "Be warmer",
            })

        assert response.status_code == 200
        assert response.json()["refined_response"] == "Thanks for filing."

    @pytest.mark.parametrize("handler,details", [
        (lambda request: httpx.Response(500, text="boom"), "Gemini API error: 500 - boom"),
        (lambda request: httpx.Response(200, json={"candidates": []}), "No content in Gemini response"),
        (lambda request: httpx.Response(200, json=_gemini_reply("no json here")), "Failed to parse AI response as JSON"),
    ])
    def test_provider_failures_map_to_502(self, handler, details):
        with patch("triage.api.ai_proxy.SERVER_API_KEYS", KEYS), \
                patch("triage.api.ai_proxy._new_client", side_effect=_client_factory(handler)):
            response = client.post("/api/ai/generate", json={
                "provider": "gemini",
                "bug": BUG,
                "options": {"mode": "next-steps"},
            })

        assert response.status_code == 502
        data = response.json()
        assert data["error"] == "AI generate failed"
        assert data["details"].startswith(details)
