"""
AI Prompts
==========
Centralised store for triage prompts and their output schemas.

Prompt Design Rules:
    - Every prompt names the bug id, its summary and a truncated description
    - Free text is capped (comments, descriptions, templates) to bound size
    - classify includes ALL comments; generate only the most recent five
    - Every prompt ends with a "Return ONLY a JSON object" block rendered
      from TASK_SCHEMAS, so each required field is named explicitly

Builders are pure: same input, same prompt text.
"""
import json
import logging
from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, Optional

from triage.core.constants import (
    CLASSIFY_COMMENT_CHARS,
    CLASSIFY_DESCRIPTION_CHARS,
    CUSTOMIZE_DESCRIPTION_CHARS,
    CUSTOMIZE_TEMPLATE_CHARS,
    GENERATE_COMMENT_CHARS,
    GENERATE_DESCRIPTION_CHARS,
    GENERATE_RECENT_COMMENTS,
    GENERATE_TEMPLATE_CHARS,
    REFINE_DESCRIPTION_CHARS,
    REFINE_RESPONSE_CHARS,
    REFINE_TEMPLATE_CHARS,
    SUGGEST_DESCRIPTION_CHARS,
    SUGGEST_TEMPLATE_CHARS,
)
from triage.models.ai_results import CannedResponse
from triage.models.bug import Bug, normalize_bug

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# System context
# ---------------------------------------------------------------------------
SYSTEM_CONTEXT = (
    "You are a Mozilla Firefox bug triager assistant. Your role is to help "
    "triage Bugzilla bugs efficiently and professionally.\n"
    "\n"
    "Guidelines:\n"
    "- Be conservative in your assessments - only mark things as true if you have clear evidence\n"
    "- Keep responses professional, helpful, and welcoming to bug reporters\n"
    "- Focus on actionable information that helps developers and triagers"
)


# ---------------------------------------------------------------------------
# Output schemas
# ---------------------------------------------------------------------------
_ACTION_ITEM = {
    "type": "object",
    "properties": {
        "action": {"type": "string", "description": "e.g., set-has-str, need-info, close-duplicate"},
        "reason": {"type": "string", "description": "why this action is recommended"},
    },
    "required": ["action"],
}

TASK_SCHEMAS: Dict[str, dict] = {
    "classify": {
        "type": "object",
        "properties": {
            "ai_detected_str": {"type": "boolean"},
            "ai_detected_test_attached": {"type": "boolean"},
            "crashstack_present": {"type": "boolean"},
            "fuzzing_testcase": {"type": "boolean"},
            "summary": {"type": "string", "description": "1-3 sentences"},
            "notes": {"type": "object"},
        },
        "required": [
            "ai_detected_str", "ai_detected_test_attached",
            "crashstack_present", "fuzzing_testcase", "summary",
        ],
    },
    "customize": {
        "type": "object",
        "properties": {
            "final_response": {"type": "string", "description": "the customized response text"},
            "used_canned_id": {"type": "string", "description": "the canned response ID"},
            "notes": {"type": "object"},
        },
        "required": ["final_response", "used_canned_id"],
    },
    "suggest": {
        "type": "object",
        "properties": {
            "selected_responses": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "id": {"type": "string"},
                        "reason": {"type": "string"},
                        "customized_text": {"type": "string"},
                    },
                    "required": ["id"],
                },
            },
            "fallback_custom_text": {"type": "string", "description": "if no canned response fits"},
        },
        "required": ["selected_responses"],
    },
    "generate": {
        "type": "object",
        "properties": {
            "response_text": {"type": "string", "description": "the triage comment to post"},
            "suggested_actions": {"type": "array", "items": _ACTION_ITEM},
            "used_canned_ids": {
                "type": "array",
                "items": {"type": "string", "description": "IDs of canned responses referenced, if any"},
            },
            "reasoning": {"type": "string", "description": "brief explanation of your triage approach"},
        },
        "required": ["response_text", "suggested_actions", "reasoning"],
    },
    "refine": {
        "type": "object",
        "properties": {
            "refined_response": {"type": "string", "description": "the updated response text"},
            "changes_made": {
                "type": "array",
                "items": {"type": "string", "description": "brief description of each change made"},
            },
        },
        "required": ["refined_response", "changes_made"],
    },
}


def get_schema(task: str) -> Optional[dict]:
    """Return the JSON schema for ``task``, or None for an unknown task."""
    return TASK_SCHEMAS.get(task)


def _describe(prop: dict, required: bool = True) -> str:
    kind = prop.get("type", "string")
    if kind == "boolean":
        return "boolean"
    if kind == "object" and "properties" in prop:
        item_required = set(prop.get("required", []))
        fields = ", ".join(
            f"{json.dumps(name)}: {_describe(sub, name in item_required)}"
            for name, sub in prop["properties"].items()
        )
        return "{ " + fields + " }"
    if kind == "object":
        return "{}"

    notes = [n for n in (prop.get("description"), None if required else "optional") if n]
    return json.dumps(f"string ({', '.join(notes)})" if notes else "string")


def _output_block(task: str) -> List[str]:
    schema = TASK_SCHEMAS[task]
    required = set(schema.get("required", []))
    properties = list(schema["properties"].items())

    lines = ["Return ONLY a JSON object with this exact structure:", "```json", "{"]
    for index, (name, prop) in enumerate(properties):
        comma = "," if index < len(properties) - 1 else ""
        if prop.get("type") == "array":
            item = _describe(prop.get("items", {}))
            if prop.get("items", {}).get("type") == "object":
                lines.append(f"  {json.dumps(name)}: [")
                lines.append(f"    {item}")
                lines.append(f"  ]{comma}")
            else:
                lines.append(f"  {json.dumps(name)}: [{item}]{comma}")
        else:
            lines.append(f"  {json.dumps(name)}: {_describe(prop, name in required)}{comma}")
    lines.extend(["}", "```"])
    return lines


# ---------------------------------------------------------------------------
# Shared sections
# ---------------------------------------------------------------------------
def _bug_id(bug: Bug) -> str:
    return str(bug.id) if bug.id not in (None, "") else "unknown"


def _bug_information(bug: Bug) -> List[str]:
    return [
        "## Bug Information",
        f"**Summary:** {bug.summary or 'No summary'}",
        f"**Status:** {bug.status or 'Unknown'}",
        f"**Product:** {bug.product or 'Unknown'}",
        f"**Component:** {bug.component or 'Unknown'}",
        "",
    ]


def _bug_context(bug: Bug, description_chars: int) -> List[str]:
    lines = ["## Bug Context", f"**Summary:** {bug.summary or 'No summary'}"]
    if bug.description:
        lines.append(f"**Description:** {bug.description[:description_chars]}")
    lines.append("")
    return lines


def _attachments(bug: Bug) -> List[str]:
    if not bug.attachments:
        return []
    lines = ["## Attachments"]
    for att in bug.attachments:
        lines.append(f"- **{att.file_name or 'unnamed'}**: {att.description or 'No description'}")
    lines.append("")
    return lines


def _canned_list(canned_responses: Optional[Iterable[Any]]) -> List[CannedResponse]:
    coerced = (CannedResponse.coerce(c) for c in (canned_responses or []))
    return [c for c in coerced if c is not None]


def _render(lines: List[str]) -> str:
    return "\n".join([SYSTEM_CONTEXT, ""] + lines)


def _as_bug(bug: Any) -> Bug:
    return normalize_bug(bug) or Bug()


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------
def build_classification_prompt(bug: Any) -> str:
    """
    Build the prompt that asks for the four evidence booleans and a summary.

    Parameters
    ----------
    bug : Any
        Bug record in either alias shape.

    Returns
    -------
    str
        Prompt with every comment (each capped) and the attachment list.
    """
    record = _as_bug(bug)
    lines = [f"You are analyzing Mozilla Bugzilla bug #{_bug_id(record)}.", ""]
    lines.extend(_bug_information(record))

    if record.description:
        lines.extend(["## Description", record.description[:CLASSIFY_DESCRIPTION_CHARS], ""])

    if record.comments:
        lines.append("## Comments")
        for i, comment in enumerate(record.comments, start=1):
            lines.append(f"### Comment {i}")
            lines.append(comment.text[:CLASSIFY_COMMENT_CHARS])
            lines.append("")

    lines.extend(_attachments(record))

    lines.extend([
        "## Task",
        "Analyze this bug and determine:",
        "1. Does it contain clear Steps to Reproduce (STR)?",
        "2. Does it reference or include a test case?",
        "3. Is there a crash stack or sanitizer output?",
        "4. Is it a fuzzing-derived testcase?",
        "5. Provide a brief 1-3 sentence summary.",
        "",
        "**Important**: Be conservative in your detection. Only mark ai_detected_str",
        "as true if there are clear, explicit steps. Only mark ai_detected_test_attached",
        "as true if a testcase file or link is clearly referenced.",
        "",
    ])
    lines.extend(_output_block("classify"))
    return _render(lines)


def build_customize_prompt(bug: Any, canned_response: Any) -> str:
    record = _as_bug(bug)
    canned = CannedResponse.coerce(canned_response) or CannedResponse(id="unknown")

    lines = [f"You are helping triage Mozilla Bugzilla bug #{_bug_id(record)}.", ""]
    lines.extend(_bug_context(record, CUSTOMIZE_DESCRIPTION_CHARS))
    lines.extend([
        "## Selected Canned Response Template",
        f"**ID:** {canned.id or 'unknown'}",
        f"**Title:** {canned.title or 'Untitled'}",
        "**Template:**",
        canned.body_template[:CUSTOMIZE_TEMPLATE_CHARS],
        "",
        "## Task",
        "Customize this canned response for the specific bug.",
        "- Keep the response polite and professional",
        "- Replace any placeholders with bug-specific information",
        "- Keep it concise and actionable",
        "",
    ])
    lines.extend(_output_block("customize"))
    return _render(lines)


def build_suggest_prompt(bug: Any, canned_responses: Optional[Iterable[Any]]) -> str:
    record = _as_bug(bug)

    lines = [f"You are helping triage Mozilla Bugzilla bug #{_bug_id(record)}.", ""]
    lines.extend(_bug_context(record, SUGGEST_DESCRIPTION_CHARS))

    lines.append("## Available Canned Responses")
    for i, canned in enumerate(_canned_list(canned_responses), start=1):
        lines.append(f"### {i}. {canned.id or 'unknown'}")
        lines.append(f"**Title:** {canned.title or 'Untitled'}")
        if canned.body_template:
            lines.append(f"**Template:** {canned.body_template[:SUGGEST_TEMPLATE_CHARS]}...")
        lines.append("")

    lines.extend([
        "## Task",
        "Select the most appropriate canned response(s) for this bug.",
        "You may select 0-3 responses, ranked by relevance.",
        "Optionally provide a customized version of each selected response.",
        "",
    ])
    lines.extend(_output_block("suggest"))
    return _render(lines)


def build_generate_prompt(
    bug: Any,
    mode: str = "response",
    canned_responses: Optional[Iterable[Any]] = None,
) -> str:
    """
    Build the prompt that drafts a triage comment or recommends next steps.

    Parameters
    ----------
    bug : Any
        Bug record; a prior ``ai_summary`` is included when present.
    mode : str
        "response" drafts a comment, "next-steps" recommends triage actions.
    canned_responses : iterable, optional
        Templates offered as reference (previews capped).

    Returns
    -------
    str
        Prompt containing only the most recent comments, numbered by their
        position in the full thread.
    """
    record = _as_bug(bug)
    canned_list = _canned_list(canned_responses)

    lines = [f"You are a Mozilla bug triage expert analyzing bug #{_bug_id(record)}.", ""]
    lines.extend(_bug_information(record))

    if record.description:
        lines.extend(["## Description", record.description[:GENERATE_DESCRIPTION_CHARS], ""])

    if record.ai_summary:
        lines.extend(["## AI Summary (from prior analysis)", record.ai_summary, ""])

    if record.comments:
        lines.append("## Recent Comments")
        recent = record.comments[-GENERATE_RECENT_COMMENTS:]
        offset = len(record.comments) - len(recent)
        for i, comment in enumerate(recent, start=1):
            lines.append(f"### Comment {offset + i}")
            lines.append(comment.text[:GENERATE_COMMENT_CHARS])
            lines.append("")

    lines.extend(_attachments(record))

    if canned_list:
        lines.append("## Available Canned Responses (for reference)")
        for canned in canned_list:
            lines.append(f"- **{canned.id}**: {canned.title or canned.id}")
            if canned.body_template:
                lines.append(f"  Template: {canned.body_template[:GENERATE_TEMPLATE_CHARS]}...")
        lines.append("")

    lines.append("## Task")
    if mode == "next-steps":
        lines.extend([
            "Analyze this bug and recommend the next triage actions.",
            "Consider:",
            "- Does the bug need more information? (STR, profile, testcase)",
            "- Should any flags be set? (Has STR, Need Info)",
            "- Is this a duplicate or known issue?",
            "- What priority/severity seems appropriate?",
        ])
    else:
        lines.extend([
            "Draft a polite, professional triage comment for this bug.",
            "The response should:",
            "- Thank the reporter if appropriate",
            "- Be concise and actionable",
            "- Request specific missing information if needed",
            "- Use a helpful, welcoming tone",
        ])
    lines.append("")

    if canned_list:
        lines.append("If any of the canned responses above are applicable, you may incorporate their structure.")
        lines.append("")

    lines.extend(_output_block("generate"))
    return _render(lines)


def build_refine_prompt(
    bug: Any,
    current_response: str,
    user_instruction: str,
    selected_canned_response: Any = None,
) -> str:
    record = _as_bug(bug)
    canned = CannedResponse.coerce(selected_canned_response)

    lines = [f"You are refining a triage response for Mozilla bug #{_bug_id(record)}.", ""]
    lines.extend(_bug_context(record, REFINE_DESCRIPTION_CHARS))
    lines.extend([
        "## Current Response",
        "```",
        (current_response or "")[:REFINE_RESPONSE_CHARS],
        "```",
        "",
        "## User Instruction",
        user_instruction or "",
        "",
    ])

    if canned is not None:
        lines.append("## Reference Canned Response")
        lines.append(f"**ID:** {canned.id}")
        lines.append(f"**Title:** {canned.title or 'Untitled'}")
        if canned.body_template:
            lines.extend(["**Template:**", canned.body_template[:REFINE_TEMPLATE_CHARS]])
        lines.append("")

    lines.extend([
        "## Task",
        "Apply the user instruction to refine the current response.",
        "Keep the response professional and appropriate for a Mozilla bug comment.",
        "",
    ])
    lines.extend(_output_block("refine"))
    return _render(lines)


def selected_canned_from_context(context: Any) -> Any:
    """Read the optional reference template out of a refine context mapping."""
    if not isinstance(context, Mapping):
        return None
    return context.get("selectedCannedResponse") or context.get("selected_canned_response")
