"""
Triage Orchestrator
===================
Drives the Normalize → Heuristics → (AI) → Merge → Suggest pipeline for
one bug or a batch, and keeps the loaded collection in an explicit session.

Pipeline (per bug):
    1. normalize_bug            — boundary aliasing (snake/camel case)
    2. compute_heuristic_tags   — deterministic evidence
    3. classify_bug             — only when use_ai is set
    4. merge_ai_tags            — trust partition enforced here
    5. calculate_has_str_suggested

Recovery Policy:
    - An AI failure (AIError or any httpx transport error) is logged and the
      heuristic tags plus their Has STR suggestion are kept
    - An AI failure never discards heuristic results
    - Malformed records are skipped, never raised

Session State:
    The current bug collection and the current include/exclude filter live
    in a TriageSession passed to (or owned by) the orchestrator rather than
    in module-level variables.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Union

import httpx

from triage.llm.client import LLMClient
from triage.llm.errors import AIError
from triage.llm.tasks import classify_bug, is_provider_configured
from triage.models.ai_results import ClassificationResult
from triage.models.bug import TaggedBug, normalize_bug
from triage.parser.tags import calculate_has_str_suggested, compute_heuristic_tags, merge_ai_tags
from triage.services.filters import apply_preset, filter_by_tag_difference

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Session state
# ---------------------------------------------------------------------------
@dataclass
class FilterState:
    include: List[str] = field(default_factory=list)
    exclude: List[str] = field(default_factory=list)
    preset_id: Optional[str] = None


@dataclass
class TriageSession:
    """Currently loaded bugs and the active filter."""
    bugs: List[TaggedBug] = field(default_factory=list)
    filter: FilterState = field(default_factory=FilterState)

    def get_bugs(self) -> List[TaggedBug]:
        return list(self.bugs)

    def set_bugs(self, bugs: Iterable[TaggedBug]) -> None:
        self.bugs = list(bugs)

    def get_bug(self, bug_id: Union[int, str]) -> Optional[TaggedBug]:
        for tagged in self.bugs:
            if str(tagged.id) == str(bug_id):
                return tagged
        return None

    def replace_bug(self, tagged: TaggedBug) -> None:
        """Swap in a re-processed bug with the same id (append if new or id-less)."""
        if tagged.id is None:
            self.bugs.append(tagged)
            return
        for index, existing in enumerate(self.bugs):
            if existing.id is None:
                continue
            if str(existing.id) == str(tagged.id):
                self.bugs[index] = tagged
                return
        self.bugs.append(tagged)

    def get_filter(self) -> FilterState:
        return self.filter

    def set_filter(
        self,
        include: Optional[Iterable[str]] = None,
        exclude: Optional[Iterable[str]] = None,
        preset_id: Optional[str] = None,
    ) -> None:
        self.filter = FilterState(
            include=list(include or []),
            exclude=list(exclude or []),
            preset_id=preset_id,
        )

    def clear(self) -> None:
        self.bugs = []
        self.filter = FilterState()

    def visible_bugs(self) -> List[TaggedBug]:
        """Bugs passing the active filter (a preset wins over include/exclude)."""
        if self.filter.preset_id:
            return apply_preset(self.bugs, self.filter.preset_id)
        return filter_by_tag_difference(self.bugs, self.filter.include, self.filter.exclude)


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------
class TriageOrchestrator:
    """
    Tags bugs and records the results in a TriageSession.

    Usage:
        orchestrator = TriageOrchestrator()
        tagged = await orchestrator.process_all_bugs(raw_bugs, ai_config, use_ai=True)
        await orchestrator.close()
    """

    def __init__(
        self,
        client: Optional[LLMClient] = None,
        session: Optional[TriageSession] = None,
    ) -> None:
        self.client = client or LLMClient()
        self.session = session or TriageSession()

    async def close(self) -> None:
        await self.client.close()

    async def _classify(self, bug: Any, ai_config: Any) -> Optional[ClassificationResult]:
        try:
            return await classify_bug(bug, ai_config, client=self.client)
        except (AIError, httpx.HTTPError) as e:
            logger.warning(
                "AI classification failed for bug %s, keeping heuristic tags: %s",
                getattr(bug, "id", "?"), e,
            )
            return None

    async def process_bug(
        self,
        raw_bug: Any,
        ai_config: Any = None,
        use_ai: bool = False,
    ) -> Optional[TaggedBug]:
        """
        Run the full tagging pipeline for one bug.

        Parameters
        ----------
        raw_bug : Any
            Bug record in either alias shape.
        ai_config : AIProviderConfig or Mapping, optional
            Provider configuration for the AI step.
        use_ai : bool
            Whether to run AI classification after the heuristics.

        Returns
        -------
        TaggedBug or None
            None when the record cannot be normalized.
        """
        tagged = await self._tag_bug(raw_bug, ai_config, use_ai)
        if tagged is not None:
            self.session.replace_bug(tagged)
        return tagged

    async def _tag_bug(self, raw_bug: Any, ai_config: Any, use_ai: bool) -> Optional[TaggedBug]:
        bug = normalize_bug(raw_bug)
        if bug is None:
            logger.debug("Skipping unusable bug record: %r", raw_bug)
            return None

        tags = compute_heuristic_tags(bug)
        ai_summary = bug.ai_summary

        if use_ai and is_provider_configured(ai_config):
            result = await self._classify(bug, ai_config)
            if result is not None:
                tags = merge_ai_tags(tags, result)
                ai_summary = result.summary or ai_summary

        return TaggedBug(
            bug=bug,
            tags=tags,
            has_str_suggested=calculate_has_str_suggested(tags),
            ai_summary=ai_summary,
        )

    async def process_all_bugs(
        self,
        raw_bugs: Optional[Iterable[Any]],
        ai_config: Any = None,
        use_ai: bool = False,
    ) -> List[TaggedBug]:
        """Process bugs sequentially and make them the session's collection."""
        processed: List[TaggedBug] = []
        for raw_bug in raw_bugs or []:
            tagged = await self._tag_bug(raw_bug, ai_config, use_ai)
            if tagged is not None:
                processed.append(tagged)

        self.session.set_bugs(processed)
        logger.info(
            "Processed %d bugs (%d with Has STR suggested)",
            len(processed), sum(1 for t in processed if t.has_str_suggested),
        )
        return processed
