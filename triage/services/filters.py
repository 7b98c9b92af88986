"""
Bug Filters
===========
Tag-set membership predicates over a bug collection, plus named presets.

Predicates:
    has_all_tags      — AND      (vacuously True for an empty id list)
    has_any_tag       — OR       (vacuously False for an empty id list)
    has_none_of_tags  — NOT ANY  (vacuously True for an empty id list)

A bug may be a TaggedBug, any object with a ``tags`` attribute, or a
mapping; a missing ``tags`` field means the bug has no tags. Filters
always return a new list and never modify the input collection.
"""
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

from triage.core.constants import TagId
from triage.parser.tags import has_tag

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Presets
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Preset:
    """A named, fixed include/exclude tag filter."""
    label: str
    include: tuple[TagId, ...] = ()
    exclude: tuple[TagId, ...] = ()


PRESETS: Dict[str, Preset] = {
    "fuzzing-testcase": Preset(
        label="Fuzzing testcase",
        include=(TagId.FUZZY_TEST_ATTACHED,),
    ),
    "ai-str-no-has-str": Preset(
        label="AI-detected STR without Has STR",
        include=(TagId.AI_DETECTED_STR,),
        exclude=(TagId.HAS_STR,),
    ),
    "ai-str-test-no-formal": Preset(
        label="AI-detected STR and testcase, no formal tags",
        include=(TagId.AI_DETECTED_STR, TagId.AI_DETECTED_TEST_ATTACHED),
        exclude=(TagId.HAS_STR, TagId.TEST_ATTACHED),
    ),
}


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------
def _tags_of(bug: Any) -> list:
    if bug is None:
        return []
    if isinstance(bug, Mapping):
        tags = bug.get("tags")
    else:
        tags = getattr(bug, "tags", None)
    return list(tags) if tags else []


def has_all_tags(bug: Any, tag_ids: Optional[Sequence[Any]]) -> bool:
    tags = _tags_of(bug)
    return all(has_tag(tags, tag_id) for tag_id in (tag_ids or ()))


def has_any_tag(bug: Any, tag_ids: Optional[Sequence[Any]]) -> bool:
    tags = _tags_of(bug)
    return any(has_tag(tags, tag_id) for tag_id in (tag_ids or ()))


def has_none_of_tags(bug: Any, tag_ids: Optional[Sequence[Any]]) -> bool:
    return not has_any_tag(bug, tag_ids)


# ---------------------------------------------------------------------------
# Collection filters
# ---------------------------------------------------------------------------
def filter_by_tags(bugs: Optional[Iterable[Any]], include_tags: Optional[Sequence[Any]]) -> list:
    """Keep bugs carrying ALL of ``include_tags`` (empty list keeps everything)."""
    return [bug for bug in (bugs or []) if has_all_tags(bug, include_tags)]


def filter_by_tag_difference(
    bugs: Optional[Iterable[Any]],
    include_tags: Optional[Sequence[Any]],
    exclude_tags: Optional[Sequence[Any]],
) -> list:
    """
    Keep bugs that carry every include tag and none of the exclude tags.

    An empty include list means "no include constraint", not "must have
    zero tags"; so ``filter_by_tag_difference(bugs, [], [])`` is identity.
    """
    return [
        bug
        for bug in (bugs or [])
        if has_all_tags(bug, include_tags) and has_none_of_tags(bug, exclude_tags)
    ]


def apply_preset(bugs: Optional[Iterable[Any]], preset_id: str) -> list:
    """Filter ``bugs`` with a named preset; unknown ids return every bug."""
    preset = PRESETS.get(preset_id)
    if preset is None:
        logger.warning("Unknown filter preset: %s", preset_id)
        return list(bugs or [])
    return filter_by_tag_difference(bugs, preset.include, preset.exclude)


def get_preset_ids() -> List[str]:
    return list(PRESETS.keys())
