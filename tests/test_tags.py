"""
Unit Tests — Tag Engine
=======================
Aggregation, AI reconciliation under the trust partition, and the
Has STR suggestion.
"""
import itertools

import pytest

from triage.core.constants import AI_ONLY_TAGS, NON_AI_TAGS, SourceKind, TagId
from triage.models.ai_results import ClassificationResult
from triage.models.tag import create_tag
from triage.parser.tags import (
    calculate_has_str_suggested,
    compute_heuristic_tags,
    has_tag,
    merge_ai_tags,
    tag_id_of,
)


RICH_BUG = {
    "id": 1001,
    "cf_has_str": "yes",
    "keywords": ["testcase"],
    "description": "Found while fuzzing",
    "cf_crash_signature": "[@ mozilla::Foo]",
}

SAMPLE_BUGS = [
    None,
    {},
    RICH_BUG,
    {"id": 2, "attachments": [{"file_name": "repro.html"}]},
    {"id": 3, "comments": [{"text": "#1 0xdeadbeef in bar"}]},
]


def _ids(tags):
    return {tag_id_of(t) for t in tags}


# ===========================================================================
# 1. Aggregation
# ===========================================================================
class TestComputeHeuristicTags:

    def test_all_four_in_checker_order(self):
        tags = compute_heuristic_tags(RICH_BUG)
        assert [t.id for t in tags] == [
            TagId.HAS_STR,
            TagId.TEST_ATTACHED,
            TagId.FUZZY_TEST_ATTACHED,
            TagId.CRASHSTACK,
        ]

    def test_empty_for_none_and_bare_bug(self):
        assert compute_heuristic_tags(None) == []
        assert compute_heuristic_tags({"id": 5, "summary": "nothing here"}) == []

    @pytest.mark.parametrize("bug", SAMPLE_BUGS)
    def test_never_yields_ai_only_tags(self, bug):
        ids = {t.id for t in compute_heuristic_tags(bug)}
        assert not ids & AI_ONLY_TAGS

    def test_input_not_mutated(self):
        bug = {"id": 9, "keywords": ["testcase"]}
        snapshot = dict(bug)
        compute_heuristic_tags(bug)
        assert bug == snapshot


# ===========================================================================
# 2. AI reconciliation
# ===========================================================================
class TestMergeAiTags:

    def test_none_result_returns_equal_copy(self):
        existing = [create_tag(TagId.HAS_STR, [SourceKind.BUG_FIELD], "x")]
        merged = merge_ai_tags(existing, None)
        assert merged == existing
        assert merged is not existing

    def test_adds_ai_tags_with_evidence(self):
        result = ClassificationResult(
            ai_detected_str=True,
            ai_detected_test_attached=True,
            ai_evidence="Comment 0 lists steps",
        )
        merged = merge_ai_tags([], result)
        assert _ids(merged) == {"ai-detected-str", "ai-detected-test-attached"}
        assert all(t.source == [SourceKind.AI] for t in merged)
        assert all(t.evidence == "Comment 0 lists steps" for t in merged)

    def test_default_evidence(self):
        merged = merge_ai_tags([], {"ai_detected_str": True})
        assert merged[0].evidence == "AI detected reproduction steps"
        merged = merge_ai_tags([], {"ai_detected_test_attached": True})
        assert merged[0].evidence == "AI detected testcase reference"

    def test_false_flags_add_nothing(self):
        assert merge_ai_tags([], ClassificationResult()) == []

    def test_payload_test_attached_is_ignored(self):
        payload = {"test_attached": True, "ai_detected_str": False}
        merged = merge_ai_tags([], payload)
        assert not has_tag(merged, TagId.TEST_ATTACHED)

    def test_existing_test_attached_is_kept(self):
        existing = [create_tag(TagId.TEST_ATTACHED, [SourceKind.ATTACHMENT], "a")]
        merged = merge_ai_tags(existing, {"test_attached": True})
        assert [tag_id_of(t) for t in merged] == ["test-attached"]

    def test_idempotent(self):
        result = {"ai_detected_str": True, "ai_detected_test_attached": True}
        once = merge_ai_tags(compute_heuristic_tags(RICH_BUG), result)
        twice = merge_ai_tags(once, result)
        assert _ids(twice) == _ids(once)
        assert len(twice) == len(once)

    def test_existing_ai_tag_not_duplicated(self):
        existing = [{"id": "ai-detected-str", "label": "AI-detected STR", "source": ["ai"]}]
        merged = merge_ai_tags(existing, {"ai_detected_str": True})
        assert len(merged) == 1

    def test_input_list_not_mutated(self):
        existing = []
        merge_ai_tags(existing, {"ai_detected_str": True})
        assert existing == []

    def test_never_produces_non_ai_tags(self):
        payload = {name: True for name in (
            "test_attached", "has_str", "crashstack", "ai_detected_str",
            "ai_detected_test_attached", "crashstack_present", "fuzzing_testcase",
        )}
        merged = merge_ai_tags([], payload)
        assert not {t.id for t in merged} & NON_AI_TAGS
        assert {t.id for t in merged} <= AI_ONLY_TAGS


# ===========================================================================
# 3. Has STR suggestion
# ===========================================================================
class TestCalculateHasStrSuggested:

    @pytest.mark.parametrize("tag_id", [
        TagId.TEST_ATTACHED,
        TagId.FUZZY_TEST_ATTACHED,
        TagId.AI_DETECTED_STR,
        TagId.AI_DETECTED_TEST_ATTACHED,
    ])
    def test_each_suggesting_tag(self, tag_id):
        assert calculate_has_str_suggested([create_tag(tag_id, [SourceKind.AI], "")]) is True

    def test_crashstack_alone_does_not_suggest(self):
        tags = [create_tag(TagId.CRASHSTACK, [SourceKind.BUG_FIELD], "")]
        assert calculate_has_str_suggested(tags) is False

    def test_empty_and_none(self):
        assert calculate_has_str_suggested([]) is False
        assert calculate_has_str_suggested(None) is False

    def test_has_str_always_wins(self):
        others = [t for t in TagId if t != TagId.HAS_STR]
        for size in range(len(others) + 1):
            for combo in itertools.combinations(others, size):
                tags = [create_tag(TagId.HAS_STR, [SourceKind.BUG_FIELD], "")]
                tags += [create_tag(t, [SourceKind.HEURISTIC], "") for t in combo]
                assert calculate_has_str_suggested(tags) is False


# ===========================================================================
# 4. has_tag
# ===========================================================================
class TestHasTag:

    def test_models_and_mappings(self):
        tags = [create_tag(TagId.CRASHSTACK, [SourceKind.HEURISTIC], ""), {"id": "has-str"}]
        assert has_tag(tags, TagId.CRASHSTACK)
        assert has_tag(tags, "has-str")
        assert not has_tag(tags, "test-attached")

    def test_legacy_tag_key(self):
        assert has_tag([{"tag": "fuzzy-test-attached"}], "fuzzy-test-attached")

    def test_none_and_garbage(self):
        assert has_tag(None, "has-str") is False
        assert has_tag([None, 3, "has-str"], "has-str") is False
