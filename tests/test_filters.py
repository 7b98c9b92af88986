"""
Unit Tests — Bug Filters
========================
Predicate vacuous-truth rules, include/exclude filtering and presets.
"""
import pytest

from triage.core.constants import SourceKind, TagId
from triage.models.bug import Bug, TaggedBug
from triage.models.tag import create_tag
from triage.services.filters import (
    PRESETS,
    apply_preset,
    filter_by_tag_difference,
    filter_by_tags,
    get_preset_ids,
    has_all_tags,
    has_any_tag,
    has_none_of_tags,
)


def _tagged(bug_id, *tag_ids):
    return TaggedBug(
        bug=Bug(id=bug_id),
        tags=[create_tag(TagId(t), [SourceKind.HEURISTIC], "") for t in tag_ids],
    )


BUGS = [
    _tagged(1, "fuzzy-test-attached", "crashstack"),
    _tagged(2, "ai-detected-str"),
    _tagged(3, "ai-detected-str", "has-str"),
    _tagged(4, "ai-detected-str", "ai-detected-test-attached"),
    _tagged(5, "ai-detected-str", "ai-detected-test-attached", "test-attached"),
    {"id": 6},
]


def _ids(bugs):
    return [b.id if isinstance(b, TaggedBug) else b["id"] for b in bugs]


# ===========================================================================
# 1. Predicates
# ===========================================================================
class TestPredicates:

    def test_vacuous_truth(self):
        bug = BUGS[0]
        assert has_all_tags(bug, []) is True
        assert has_any_tag(bug, []) is False
        assert has_none_of_tags(bug, []) is True

    def test_missing_tags_field(self):
        assert has_all_tags({"id": 1}, ["has-str"]) is False
        assert has_none_of_tags({"id": 1}, ["has-str"]) is True
        assert has_any_tag(None, ["has-str"]) is False

    def test_and_or(self):
        bug = BUGS[0]
        assert has_all_tags(bug, ["fuzzy-test-attached", "crashstack"])
        assert not has_all_tags(bug, ["fuzzy-test-attached", "has-str"])
        assert has_any_tag(bug, ["has-str", "crashstack"])

    def test_mapping_bug_with_tag_mappings(self):
        bug = {"id": 7, "tags": [{"id": "has-str"}]}
        assert has_all_tags(bug, [TagId.HAS_STR])


# ===========================================================================
# 2. Collection filters
# ===========================================================================
class TestFilterByTagDifference:

    def test_identity_for_empty_constraints(self):
        result = filter_by_tag_difference(BUGS, [], [])
        assert result == BUGS
        assert result is not BUGS

    @pytest.mark.parametrize("tag_id", [t.value for t in TagId])
    def test_contradictory_filter_is_empty(self, tag_id):
        assert filter_by_tag_difference(BUGS, [tag_id], [tag_id]) == []

    def test_include_and_exclude(self):
        result = filter_by_tag_difference(BUGS, ["ai-detected-str"], ["has-str"])
        assert _ids(result) == [2, 4, 5]

    def test_exclude_only(self):
        result = filter_by_tag_difference(BUGS, [], ["ai-detected-str"])
        assert _ids(result) == [1, 6]

    def test_input_not_mutated(self):
        bugs = list(BUGS)
        filter_by_tag_difference(bugs, ["crashstack"], [])
        assert bugs == BUGS

    def test_filter_by_tags_and_only(self):
        assert _ids(filter_by_tags(BUGS, ["ai-detected-str", "ai-detected-test-attached"])) == [4, 5]
        assert filter_by_tags(BUGS, []) == BUGS

    def test_none_collection(self):
        assert filter_by_tag_difference(None, [], []) == []


# ===========================================================================
# 3. Presets
# ===========================================================================
class TestPresets:

    def test_preset_ids(self):
        assert get_preset_ids() == list(PRESETS)
        assert "fuzzing-testcase" in get_preset_ids()

    def test_fuzzing_testcase(self):
        assert _ids(apply_preset(BUGS, "fuzzing-testcase")) == [1]

    def test_ai_str_no_has_str(self):
        assert _ids(apply_preset(BUGS, "ai-str-no-has-str")) == [2, 4, 5]

    def test_ai_str_test_no_formal(self):
        assert _ids(apply_preset(BUGS, "ai-str-test-no-formal")) == [4]

    def test_unknown_preset_returns_everything(self):
        result = apply_preset(BUGS, "does-not-exist")
        assert result == BUGS
