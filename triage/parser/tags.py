"""
Tag Engine
==========
Aggregates heuristic evidence into a tag set, reconciles AI classifications
into it, and derives the Has STR suggestion.

Trust Partition:
    - AI_ONLY_TAGS  (ai-detected-str, ai-detected-test-attached) — set by AI only
    - NON_AI_TAGS   (test-attached) — NEVER set by AI, whatever the payload says
    - has-str and crashstack are heuristic only; the AI path has no twin for them

Suggestion Formula:
    has_str_suggested = (test-attached OR fuzzy-test-attached OR
                         ai-detected-str OR ai-detected-test-attached)
                        AND NOT has-str

All functions here are pure: inputs are never mutated and nothing raises.
"""
from collections.abc import Mapping
from typing import Any, Iterable, List, Optional

from triage.core.constants import STR_SUGGESTING_TAGS, SourceKind, TagId
from triage.models.tag import Tag, create_tag
from triage.parser.evidence import EVIDENCE_CHECKERS

# (result field, tag id, evidence fallback) for every tag the AI may set
_AI_TAG_FIELDS: tuple[tuple[str, TagId, str], ...] = (
    ("ai_detected_str", TagId.AI_DETECTED_STR, "AI detected reproduction steps"),
    ("ai_detected_test_attached", TagId.AI_DETECTED_TEST_ATTACHED, "AI detected testcase reference"),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _id_value(tag_id: Any) -> Optional[str]:
    if isinstance(tag_id, TagId):
        return tag_id.value
    return tag_id if isinstance(tag_id, str) else None


def tag_id_of(tag: Any) -> Optional[str]:
    """Return the id of a Tag or tag mapping (legacy mappings use "tag")."""
    if isinstance(tag, Tag):
        return tag.id.value
    if isinstance(tag, Mapping):
        return _id_value(tag.get("id")) or _id_value(tag.get("tag"))
    return None


def _result_field(result: Any, name: str) -> Any:
    if isinstance(result, Mapping):
        return result.get(name)
    return getattr(result, name, None)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def compute_heuristic_tags(bug: Any) -> List[Tag]:
    """
    Run every evidence checker over one bug.

    Parameters
    ----------
    bug : Any
        Bug record (Bug model or either mapping alias shape).

    Returns
    -------
    list[Tag]
        Non-None checker results in checker order; empty for a None bug
        or a bug with no evidence anywhere.
    """
    if bug is None:
        return []

    tags: List[Tag] = []
    for checker in EVIDENCE_CHECKERS:
        tag = checker(bug)
        if tag is not None:
            tags.append(tag)
    return tags


def merge_ai_tags(existing_tags: Optional[Iterable[Any]], ai_result: Any) -> list:
    """
    Fold an AI classification into an existing tag set.

    Only the AI_ONLY_TAGS are read from the result. Any field that would
    map to a NON_AI tag (e.g. a ``test_attached`` key) is never consulted.
    Merging the same result twice adds nothing the second time.

    Parameters
    ----------
    existing_tags : iterable
        Current tags (Tag models or tag mappings); not mutated.
    ai_result : ClassificationResult, Mapping or None
        AI classification; ``ai_evidence`` is used as tag evidence when set.

    Returns
    -------
    list
        New list: the existing tags followed by any newly added AI tags.
    """
    merged = list(existing_tags or [])
    if ai_result is None:
        return merged

    present = {tag_id_of(tag) for tag in merged}
    evidence = _result_field(ai_result, "ai_evidence")

    for field, tag_id, fallback in _AI_TAG_FIELDS:
        if _result_field(ai_result, field) and tag_id.value not in present:
            merged.append(create_tag(tag_id, [SourceKind.AI], evidence or fallback))
            present.add(tag_id.value)

    return merged


def calculate_has_str_suggested(tags: Optional[Iterable[Any]]) -> bool:
    """Return True when STR-suggesting evidence exists but Has STR is unset."""
    tag_list = list(tags or [])
    if not tag_list:
        return False
    if has_tag(tag_list, TagId.HAS_STR):
        return False
    return any(has_tag(tag_list, tag_id) for tag_id in STR_SUGGESTING_TAGS)


def has_tag(tags: Optional[Iterable[Any]], tag_id: Any) -> bool:
    """Return True if any tag in ``tags`` carries ``tag_id``."""
    if not tags or isinstance(tags, (str, bytes, Mapping)):
        return False
    wanted = _id_value(tag_id)
    return any(tag_id_of(tag) == wanted for tag in tags)
