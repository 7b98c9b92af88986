"""
AI Result Validation
====================
Per-task schema validators and coercers for decoded model output.

Validators report, coercers repair:
    validate_*(data) → ValidationReport(valid, errors)   field-by-field type checks
    coerce_*(data)   → result model                       always well-shaped

Coercion Rules:
    - booleans  via truthiness
    - strings   via str(); None and other falsy values become ""
    - arrays    default to []; array-of-object elements missing their
                required sub-field (id / action) are dropped
    - customize falls back to the template body and id
    - refine    falls back to the unchanged current response

Validation failures never abort a task: the caller logs the report and
returns the coerced result.
"""
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, List, Optional

from triage.models.ai_results import (
    CannedResponse,
    ClassificationResult,
    CustomizeResult,
    GenerateResult,
    RefineResult,
    SelectedResponse,
    SuggestedAction,
    SuggestResult,
)

logger = logging.getLogger(__name__)

_NOT_AN_OBJECT = "Result must be an object"

_CLASSIFICATION_BOOLEANS = (
    "ai_detected_str",
    "ai_detected_test_attached",
    "crashstack_present",
    "fuzzing_testcase",
)

# Optional string extras some backends add to a classification
_CLASSIFICATION_EXTRAS = (
    "suggested_severity",
    "suggested_priority",
    "triage_reasoning",
    "suggested_canned_id",
    "draft_response",
)


@dataclass
class ValidationReport:
    valid: bool = True
    errors: List[str] = field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: List[str]) -> "ValidationReport":
        return cls(valid=not errors, errors=list(errors))


# ---------------------------------------------------------------------------
# Field checks
# ---------------------------------------------------------------------------
def _check_bool(data: Mapping, name: str, errors: List[str]) -> None:
    if not isinstance(data.get(name), bool):
        errors.append(f"{name} must be a boolean")


def _check_str(data: Mapping, name: str, errors: List[str]) -> None:
    if not isinstance(data.get(name), str):
        errors.append(f"{name} must be a string")


def _check_list(data: Mapping, name: str, errors: List[str]) -> bool:
    if not isinstance(data.get(name), list):
        errors.append(f"{name} must be an array")
        return False
    return True


def _check_elements(data: Mapping, name: str, key: str, errors: List[str]) -> None:
    for i, item in enumerate(data[name]):
        if not isinstance(item, Mapping) or not isinstance(item.get(key), str):
            errors.append(f"{name}[{i}] must have an {key} string")


# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------
def validate_classification_result(data: Any) -> ValidationReport:
    if not isinstance(data, Mapping):
        return ValidationReport(False, [_NOT_AN_OBJECT])

    errors: List[str] = []
    for name in _CLASSIFICATION_BOOLEANS:
        _check_bool(data, name, errors)
    _check_str(data, "summary", errors)
    return ValidationReport.from_errors(errors)


def validate_customize_result(data: Any) -> ValidationReport:
    if not isinstance(data, Mapping):
        return ValidationReport(False, [_NOT_AN_OBJECT])

    errors: List[str] = []
    _check_str(data, "final_response", errors)
    _check_str(data, "used_canned_id", errors)
    return ValidationReport.from_errors(errors)


def validate_suggest_result(data: Any) -> ValidationReport:
    if not isinstance(data, Mapping):
        return ValidationReport(False, [_NOT_AN_OBJECT])

    errors: List[str] = []
    if _check_list(data, "selected_responses", errors):
        _check_elements(data, "selected_responses", "id", errors)
    return ValidationReport.from_errors(errors)


def validate_generate_result(data: Any) -> ValidationReport:
    """``used_canned_ids`` is optional, but must be an array when present."""
    if not isinstance(data, Mapping):
        return ValidationReport(False, [_NOT_AN_OBJECT])

    errors: List[str] = []
    _check_str(data, "response_text", errors)
    if _check_list(data, "suggested_actions", errors):
        _check_elements(data, "suggested_actions", "action", errors)
    if "used_canned_ids" in data:
        _check_list(data, "used_canned_ids", errors)
    _check_str(data, "reasoning", errors)
    return ValidationReport.from_errors(errors)


def validate_refine_result(data: Any) -> ValidationReport:
    if not isinstance(data, Mapping):
        return ValidationReport(False, [_NOT_AN_OBJECT])

    errors: List[str] = []
    _check_str(data, "refined_response", errors)
    _check_list(data, "changes_made", errors)
    return ValidationReport.from_errors(errors)


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------
def _as_mapping(data: Any) -> Mapping:
    return data if isinstance(data, Mapping) else {}


def _as_str(value: Any, default: str = "") -> str:
    if not value:
        return default
    return value if isinstance(value, str) else str(value)


def _as_optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return _as_str(value)


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _as_notes(value: Any) -> dict:
    return dict(value) if isinstance(value, Mapping) else {}


def _coerce_actions(value: Any) -> List[SuggestedAction]:
    actions: List[SuggestedAction] = []
    for item in _as_list(value):
        if not isinstance(item, Mapping) or not isinstance(item.get("action"), str):
            logger.debug("Dropping suggested action without an action string: %r", item)
            continue
        actions.append(SuggestedAction(action=item["action"], reason=_as_str(item.get("reason"))))
    return actions


# ---------------------------------------------------------------------------
# Coercers
# ---------------------------------------------------------------------------
def coerce_classification_result(data: Any) -> ClassificationResult:
    raw = _as_mapping(data)
    extras = {name: _as_optional_str(raw.get(name)) for name in _CLASSIFICATION_EXTRAS}
    return ClassificationResult(
        **{name: bool(raw.get(name)) for name in _CLASSIFICATION_BOOLEANS},
        summary=_as_str(raw.get("summary")),
        notes=_as_notes(raw.get("notes")),
        ai_evidence=_as_optional_str(raw.get("ai_evidence")),
        suggested_actions=_coerce_actions(raw.get("suggested_actions")),
        **extras,
    )


def coerce_customize_result(data: Any, canned: Optional[CannedResponse] = None) -> CustomizeResult:
    raw = _as_mapping(data)
    template = canned.body_template if canned else ""
    canned_id = canned.id if canned else ""
    return CustomizeResult(
        final_response=_as_str(raw.get("final_response"), template),
        used_canned_id=_as_str(raw.get("used_canned_id"), canned_id),
        notes=_as_notes(raw.get("notes")),
    )


def coerce_suggest_result(data: Any) -> SuggestResult:
    raw = _as_mapping(data)
    selected: List[SelectedResponse] = []
    for item in _as_list(raw.get("selected_responses")):
        if not isinstance(item, Mapping) or not isinstance(item.get("id"), str):
            logger.debug("Dropping selected response without an id string: %r", item)
            continue
        selected.append(SelectedResponse(
            id=item["id"],
            reason=_as_str(item.get("reason")),
            customized_text=_as_str(item.get("customized_text")),
        ))
    return SuggestResult(
        selected_responses=selected,
        fallback_custom_text=_as_str(raw.get("fallback_custom_text")),
    )


def coerce_generate_result(data: Any) -> GenerateResult:
    raw = _as_mapping(data)
    return GenerateResult(
        response_text=_as_str(raw.get("response_text")),
        suggested_actions=_coerce_actions(raw.get("suggested_actions")),
        used_canned_ids=[_as_str(i) for i in _as_list(raw.get("used_canned_ids")) if i is not None],
        reasoning=_as_str(raw.get("reasoning")),
    )


def coerce_refine_result(data: Any, current_response: str = "") -> RefineResult:
    raw = _as_mapping(data)
    return RefineResult(
        refined_response=_as_str(raw.get("refined_response"), current_response or ""),
        changes_made=[_as_str(c) for c in _as_list(raw.get("changes_made")) if c is not None],
    )
