"""
AI Result Models
================
Provider-agnostic result shapes for the five AI tasks.

Every model defaults to the documented "provider not configured" value, so
``Model()`` is the empty result. Results are constructed fresh per call and
never persisted directly: only the two ``ai_detected_*`` booleans of a
classification are folded into a bug's tag set, and its ``summary`` becomes
the bug's ``ai_summary``.
"""
from collections.abc import Mapping
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SuggestedAction(BaseModel):
    action: str
    reason: str = ""


class SelectedResponse(BaseModel):
    id: str
    reason: str = ""
    customized_text: str = ""


class ClassificationResult(BaseModel):
    ai_detected_str: bool = False
    ai_detected_test_attached: bool = False
    crashstack_present: bool = False
    fuzzing_testcase: bool = False
    summary: str = ""
    notes: Dict[str, Any] = {}
    ai_evidence: Optional[str] = None

    # Optional triage extras returned by richer backends
    suggested_severity: Optional[str] = None
    suggested_priority: Optional[str] = None
    suggested_actions: List[SuggestedAction] = []
    triage_reasoning: Optional[str] = None
    suggested_canned_id: Optional[str] = None
    draft_response: Optional[str] = None


class CustomizeResult(BaseModel):
    final_response: str = ""
    used_canned_id: str = ""
    notes: Dict[str, Any] = {}


class SuggestResult(BaseModel):
    selected_responses: List[SelectedResponse] = []
    fallback_custom_text: str = ""


class GenerateResult(BaseModel):
    response_text: str = ""
    suggested_actions: List[SuggestedAction] = []
    used_canned_ids: List[str] = []
    reasoning: str = ""


class RefineResult(BaseModel):
    refined_response: str = ""
    changes_made: List[str] = []


class CannedResponse(BaseModel):
    """A reusable reply template from the canned-response library."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str = ""
    body_template: str = Field(default="", alias="bodyTemplate")
    description: Optional[str] = None
    categories: List[str] = []

    @classmethod
    def coerce(cls, canned: Any) -> Optional["CannedResponse"]:
        """Accept a CannedResponse, a mapping in either key spelling, or None."""
        if canned is None or isinstance(canned, cls):
            return canned
        if isinstance(canned, Mapping) and canned.get("id") is not None:
            data = dict(canned)
            data["id"] = str(data["id"])
            return cls.model_validate(data)
        return None
