"""
Tag Model
=========
Pydantic model for one evidence-backed classification tag.

Fields:
    id        — closed TagId enumeration (at most one tag per id in a tag set)
    label     — display label from TAG_LABELS
    source    — descriptive list of SourceKind values (bug-field, attachment, heuristic, ai)
    evidence  — human-readable explanation of what fired
"""
from typing import Iterable, List

from pydantic import BaseModel, ConfigDict

from triage.core.constants import TAG_LABELS, SourceKind, TagId


class Tag(BaseModel):
    model_config = ConfigDict(frozen=True, use_enum_values=False)

    id: TagId
    label: str
    source: List[SourceKind]
    evidence: str = ""


def create_tag(tag_id: TagId, source: Iterable[SourceKind], evidence: str) -> Tag:
    """Build a Tag, filling the label from TAG_LABELS."""
    return Tag(
        id=tag_id,
        label=TAG_LABELS.get(tag_id, tag_id.value),
        source=list(source),
        evidence=evidence,
    )
