"""
Canned Responses
================
Markdown-backed library of reusable triage replies.

Markdown Format:
    ## Heading                 ← starts a response (heading becomes the title)
    ID: custom-id              ← optional metadata lines (Key: value)
    Categories: a, b
    Description: for triagers
                               ← blank lines between metadata are skipped
    Body text...               ← first other line starts the body

Rules:
    - Known metadata keys: id, title, categories, description (case-insensitive)
    - Unknown "Key: value" lines are consumed, not copied into the body
    - Missing id → slugify(heading); duplicate ids get -2, -3, ... suffixes
"""
import logging
import os
import re
from typing import Dict, List, Optional

from triage.models.ai_results import CannedResponse

logger = logging.getLogger(__name__)

_METADATA_KEYS = frozenset({"id", "title", "categories", "description"})
_HEADING_SPLIT = re.compile(r"^## ", re.MULTILINE)
_METADATA_LINE = re.compile(r"^([A-Za-z]+):\s*(.*)")


def slugify(text: Optional[str]) -> str:
    if not text:
        return ""
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower())
    return re.sub(r"-+", "-", slug).strip("-")


def _unique_id(candidate: str, used: set) -> str:
    if candidate not in used:
        return candidate
    counter = 2
    while f"{candidate}-{counter}" in used:
        counter += 1
    return f"{candidate}-{counter}"


def parse_canned_responses_markdown(markdown: Optional[str]) -> List[CannedResponse]:
    """
    Parse a canned-response Markdown document.

    Parameters
    ----------
    markdown : str or None
        Document text; text before the first "## " heading is ignored.

    Returns
    -------
    list[CannedResponse]
        Responses in document order with unique ids.
    """
    if not markdown:
        return []

    responses: List[CannedResponse] = []
    used_ids: set = set()

    for section in _HEADING_SPLIT.split(markdown)[1:]:
        lines = section.split("\n")
        heading = lines[0].strip()
        if not heading:
            continue

        metadata: Dict[str, str] = {}
        body_start = 1
        for index, line in enumerate(lines[1:], start=1):
            match = _METADATA_LINE.match(line)
            if match:
                key = match.group(1).lower()
                if key in _METADATA_KEYS:
                    metadata[key] = match.group(2).strip()
                body_start = index + 1
            elif not line.strip():
                body_start = index + 1
            else:
                break

        response_id = _unique_id(metadata.get("id") or slugify(heading), used_ids)
        used_ids.add(response_id)

        categories = [c.strip() for c in metadata.get("categories", "").split(",") if c.strip()]

        responses.append(CannedResponse(
            id=response_id,
            title=metadata.get("title") or heading,
            body_template="\n".join(lines[body_start:]).strip(),
            description=metadata.get("description") or None,
            categories=categories,
        ))

    return responses


class CannedResponseLibrary:
    """
    In-memory collection of canned responses keyed by id.

    Usage:
        library = CannedResponseLibrary()
        library.load_file("canned-responses.md")
        library.get_by_category("needinfo")
    """

    def __init__(self, responses: Optional[List[CannedResponse]] = None) -> None:
        self._responses: List[CannedResponse] = list(responses or [])

    def _index_of(self, response_id: str) -> int:
        for index, response in enumerate(self._responses):
            if response.id == response_id:
                return index
        return -1

    def import_markdown(self, markdown: str, replace: bool = False) -> List[CannedResponse]:
        """Merge parsed responses by id (or replace the whole library)."""
        parsed = parse_canned_responses_markdown(markdown)
        if replace:
            self._responses = parsed
        else:
            for response in parsed:
                index = self._index_of(response.id)
                if index >= 0:
                    self._responses[index] = response
                else:
                    self._responses.append(response)
        return self.get_all()

    def load_file(self, path: str, replace: bool = False) -> List[CannedResponse]:
        """Import a Markdown file; a missing file leaves the library unchanged."""
        if not os.path.isfile(path):
            logger.info("No canned responses file at %s", path)
            return self.get_all()
        with open(path, "r", encoding="utf-8") as f:
            markdown = f.read()
        responses = self.import_markdown(markdown, replace=replace)
        logger.info("Loaded canned responses from %s (%d total)", path, len(responses))
        return responses

    def get_all(self) -> List[CannedResponse]:
        return list(self._responses)

    def get_by_id(self, response_id: str) -> Optional[CannedResponse]:
        index = self._index_of(response_id)
        return self._responses[index] if index >= 0 else None

    def get_by_category(self, category: str) -> List[CannedResponse]:
        return [r for r in self._responses if category in r.categories]

    def save(self, response: CannedResponse) -> List[CannedResponse]:
        """Add a response, or update the existing one with the same id."""
        if response is None or not response.id:
            logger.warning("Cannot save canned response without an id")
            return self.get_all()

        index = self._index_of(response.id)
        if index >= 0:
            updates = response.model_dump(exclude_unset=True)
            self._responses[index] = self._responses[index].model_copy(update=updates)
        else:
            self._responses.append(response)
        return self.get_all()

    def delete(self, response_id: str) -> bool:
        index = self._index_of(response_id)
        if index < 0:
            return False
        del self._responses[index]
        return True
