"""
Unit Tests — Canned Responses
=============================
Markdown parsing rules and the in-memory library.
"""
from triage.models.ai_results import CannedResponse
from triage.services.canned_responses import (
    CannedResponseLibrary,
    parse_canned_responses_markdown,
    slugify,
)


MARKDOWN = """# Triage replies

Anything before the first response heading is ignored.

## Need STR
ID: need-str
Categories: needinfo, str
Description: Ask the reporter for steps

Thanks for filing! Could you list the exact steps to reproduce?

Cheers

## Duplicate bug
Owner: triage-team
This looks like a duplicate.

## Duplicate Bug!
Marking as duplicate again.
"""


# ===========================================================================
# 1. Parser
# ===========================================================================
class TestParseMarkdown:

    def test_metadata_and_body(self):
        first = parse_canned_responses_markdown(MARKDOWN)[0]
        assert first.id == "need-str"
        assert first.title == "Need STR"
        assert first.categories == ["needinfo", "str"]
        assert first.description == "Ask the reporter for steps"
        assert first.body_template == (
            "Thanks for filing! Could you list the exact steps to reproduce?\n\nCheers"
        )

    def test_unknown_metadata_is_consumed(self):
        second = parse_canned_responses_markdown(MARKDOWN)[1]
        assert second.body_template == "This looks like a duplicate."
        assert "Owner" not in second.body_template

    def test_slug_ids_are_unique(self):
        ids = [r.id for r in parse_canned_responses_markdown(MARKDOWN)]
        assert ids == ["need-str", "duplicate-bug", "duplicate-bug-2"]

    def test_empty_input(self):
        assert parse_canned_responses_markdown("") == []
        assert parse_canned_responses_markdown(None) == []
        assert parse_canned_responses_markdown("no headings at all") == []

    def test_slugify(self):
        assert slugify("  Need STR (please)! ") == "need-str-please"
        assert slugify(None) == ""


# ===========================================================================
# 2. Library
# ===========================================================================
class TestCannedResponseLibrary:

    def test_import_merges_by_id(self):
        library = CannedResponseLibrary([CannedResponse(id="need-str", title="Old")])
        library.import_markdown(MARKDOWN)
        assert len(library.get_all()) == 3
        assert library.get_by_id("need-str").title == "Need STR"

    def test_import_replace(self):
        library = CannedResponseLibrary([CannedResponse(id="legacy")])
        library.import_markdown("## Only one\nBody", replace=True)
        assert [r.id for r in library.get_all()] == ["only-one"]

    def test_get_by_category(self):
        library = CannedResponseLibrary()
        library.import_markdown(MARKDOWN)
        assert [r.id for r in library.get_by_category("needinfo")] == ["need-str"]
        assert library.get_by_category("missing") == []

    def test_save_updates_only_given_fields(self):
        library = CannedResponseLibrary()
        library.import_markdown(MARKDOWN)
        library.save(CannedResponse(id="need-str", title="Need steps"))
        updated = library.get_by_id("need-str")
        assert updated.title == "Need steps"
        assert updated.categories == ["needinfo", "str"]

    def test_save_appends_new(self):
        library = CannedResponseLibrary()
        library.save(CannedResponse(id="wontfix", body_template="Closing."))
        assert library.get_by_id("wontfix").body_template == "Closing."

    def test_delete(self):
        library = CannedResponseLibrary([CannedResponse(id="a"), CannedResponse(id="b")])
        assert library.delete("a") is True
        assert library.delete("a") is False
        assert [r.id for r in library.get_all()] == ["b"]

    def test_get_all_returns_a_copy(self):
        library = CannedResponseLibrary([CannedResponse(id="a")])
        library.get_all().clear()
        assert len(library.get_all()) == 1

    def test_load_file(self, tmp_path):
        path = tmp_path / "canned.md"
        path.write_text(MARKDOWN, encoding="utf-8")
        library = CannedResponseLibrary()
        assert len(library.load_file(str(path))) == 3
        assert len(library.load_file(str(tmp_path / "missing.md"))) == 3
