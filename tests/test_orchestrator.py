"""
Unit Tests — Triage Orchestrator
================================
Pipeline composition, the AI recovery policy and session state.
"""
import asyncio
from unittest.mock import AsyncMock, patch

import httpx

from triage.agents.orchestrator import FilterState, TriageOrchestrator, TriageSession
from triage.llm.errors import ProviderHTTPError, ResponseParseError
from triage.models.ai_results import ClassificationResult
from triage.parser.tags import tag_id_of

AI_CONFIG = {"provider": "gemini", "apiKey": "k"}

ATTACHMENT_BUG = {
    "id": 1,
    "summary": "Crash on load",
    "attachments": [{"file_name": "repro.html"}],
}
HAS_STR_BUG = {"id": 2, "cfHasStr": "yes", "keywords": "testcase"}
PLAIN_BUG = {"id": 3, "summary": "Typo in menu"}


def _run(coro):
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _ids(tagged):
    return [tag_id_of(t) for t in tagged.tags]


# ===========================================================================
# 1. Heuristic pipeline
# ===========================================================================
class TestProcessBug:

    def test_heuristics_only(self):
        orchestrator = TriageOrchestrator()
        tagged = _run(orchestrator.process_bug(ATTACHMENT_BUG))
        assert tagged.id == 1
        assert _ids(tagged) == ["test-attached"]
        assert tagged.has_str_suggested is True

    def test_has_str_suppresses_suggestion(self):
        tagged = _run(TriageOrchestrator().process_bug(HAS_STR_BUG))
        assert _ids(tagged) == ["has-str", "test-attached"]
        assert tagged.has_str_suggested is False

    def test_unusable_record_is_skipped(self):
        orchestrator = TriageOrchestrator()
        assert _run(orchestrator.process_bug("not a bug")) is None
        assert orchestrator.session.get_bugs() == []

    def test_ai_not_called_without_flag_or_config(self):
        with patch("triage.agents.orchestrator.classify_bug", new=AsyncMock()) as classify:
            orchestrator = TriageOrchestrator()
            _run(orchestrator.process_bug(PLAIN_BUG, AI_CONFIG, use_ai=False))
            _run(orchestrator.process_bug(PLAIN_BUG, None, use_ai=True))
        classify.assert_not_called()


# ===========================================================================
# 2. AI merge and recovery
# ===========================================================================
class TestAiStep:

    def test_ai_tags_and_summary_are_merged(self):
        result = ClassificationResult(ai_detected_str=True, summary="Has clear steps.")
        with patch("triage.agents.orchestrator.classify_bug", new=AsyncMock(return_value=result)):
            tagged = _run(TriageOrchestrator().process_bug(PLAIN_BUG, AI_CONFIG, use_ai=True))

        assert _ids(tagged) == ["ai-detected-str"]
        assert tagged.has_str_suggested is True
        assert tagged.ai_summary == "Has clear steps."

    def test_ai_failure_keeps_heuristics(self):
        for error in (
            ProviderHTTPError("Gemini API", 500, "boom"),
            ResponseParseError("bad"),
            httpx.ConnectError("refused"),
        ):
            with patch("triage.agents.orchestrator.classify_bug", new=AsyncMock(side_effect=error)):
                tagged = _run(TriageOrchestrator().process_bug(ATTACHMENT_BUG, AI_CONFIG, use_ai=True))

            assert _ids(tagged) == ["test-attached"]
            assert tagged.has_str_suggested is True
            assert tagged.ai_summary == ""

    def test_process_all_bugs_continues_after_failures(self):
        outcomes = [
            ProviderHTTPError("Gemini API", 503, ""),
            ClassificationResult(ai_detected_test_attached=True),
            ClassificationResult(),
        ]
        with patch("triage.agents.orchestrator.classify_bug", new=AsyncMock(side_effect=outcomes)):
            orchestrator = TriageOrchestrator()
            processed = _run(orchestrator.process_all_bugs(
                [ATTACHMENT_BUG, None, HAS_STR_BUG, PLAIN_BUG], AI_CONFIG, use_ai=True,
            ))

        assert [t.id for t in processed] == [1, 2, 3]
        assert _ids(processed[1]) == ["has-str", "test-attached", "ai-detected-test-attached"]
        assert [t.id for t in orchestrator.session.get_bugs()] == [1, 2, 3]


# ===========================================================================
# 3. Session state
# ===========================================================================
class TestTriageSession:

    def _session(self):
        orchestrator = TriageOrchestrator(session=TriageSession())
        _run(orchestrator.process_all_bugs([ATTACHMENT_BUG, HAS_STR_BUG, PLAIN_BUG]))
        return orchestrator.session

    def test_reprocessing_replaces_in_place(self):
        orchestrator = TriageOrchestrator()
        _run(orchestrator.process_all_bugs([ATTACHMENT_BUG, PLAIN_BUG]))
        _run(orchestrator.process_bug({**PLAIN_BUG, "cf_has_str": "yes"}))
        bugs = orchestrator.session.get_bugs()
        assert [t.id for t in bugs] == [1, 3]
        assert _ids(orchestrator.session.get_bug(3)) == ["has-str"]

    def test_bugs_without_ids_are_all_kept(self):
        orchestrator = TriageOrchestrator()
        processed = _run(orchestrator.process_all_bugs([
            {"summary": "a", "attachments": [{"file_name": "repro.html"}]},
            {"summary": "b"},
            PLAIN_BUG,
        ]))
        bugs = orchestrator.session.get_bugs()
        assert len(processed) == 3
        assert bugs == processed
        orchestrator.session.set_filter(include=["test-attached"])
        assert [t.bug.summary for t in orchestrator.session.visible_bugs()] == ["a"]

    def test_single_id_less_bug_is_appended(self):
        orchestrator = TriageOrchestrator()
        _run(orchestrator.process_bug({"summary": "a"}))
        _run(orchestrator.process_bug({"summary": "b"}))
        assert [t.bug.summary for t in orchestrator.session.get_bugs()] == ["a", "b"]

    def test_process_all_resets_collection(self):
        orchestrator = TriageOrchestrator()
        _run(orchestrator.process_all_bugs([ATTACHMENT_BUG]))
        _run(orchestrator.process_all_bugs([PLAIN_BUG]))
        assert [t.id for t in orchestrator.session.get_bugs()] == [3]

    def test_visible_bugs_with_include_exclude(self):
        session = self._session()
        session.set_filter(include=["test-attached"], exclude=["has-str"])
        assert [t.id for t in session.visible_bugs()] == [1]

    def test_preset_wins(self):
        session = self._session()
        session.set_filter(include=["has-str"], preset_id="ai-str-no-has-str")
        assert session.visible_bugs() == []
        assert session.get_filter().preset_id == "ai-str-no-has-str"

    def test_no_filter_shows_everything(self):
        session = self._session()
        assert [t.id for t in session.visible_bugs()] == [1, 2, 3]

    def test_get_bug_by_string_id_and_clear(self):
        session = self._session()
        assert session.get_bug("2").id == 2
        assert session.get_bug(99) is None
        session.clear()
        assert session.get_bugs() == []
        assert session.get_filter() == FilterState()
