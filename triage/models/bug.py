"""
Bug Model
=========
Pydantic models for issue-tracker records and the derived triage overlay.

Bug records come from the record-fetching collaborator in either
snake_case (Bugzilla REST) or camelCase (UI state) form. ``normalize_bug``
is the single place where those spellings are reconciled; every classifier
works on the canonical ``Bug`` it returns.

Fields:
    id                  — Bugzilla bug id
    summary/description — free text (description falls back to the comment
                          flagged ``is_description``)
    comments            — ordered list of Comment
    attachments         — list of Attachment (obsolete/patch/private flags)
    flags               — list of Flag (name + status such as "+", "?")
    keywords            — normalized keyword tokens
    cf_has_str          — tri-state reproduction-steps field ("yes"/"no"/"---")
    cf_crash_signature  — crash-signature string
    ai_summary          — summary attached by a prior AI classification
"""
import logging
from collections.abc import Mapping
from typing import Any, List, Optional, Union

from pydantic import BaseModel

from .tag import Tag

logger = logging.getLogger(__name__)


class Comment(BaseModel):
    text: str = ""
    is_description: bool = False


class Attachment(BaseModel):
    file_name: str = ""
    description: str = ""
    is_obsolete: bool = False
    is_patch: bool = False
    is_private: bool = False


class Flag(BaseModel):
    name: str = ""
    status: str = ""


class Bug(BaseModel):
    id: Optional[Union[int, str]] = None
    summary: str = ""
    description: str = ""
    status: str = ""
    resolution: str = ""
    product: str = ""
    component: str = ""
    severity: str = ""
    priority: str = ""
    comments: List[Comment] = []
    attachments: List[Attachment] = []
    flags: List[Flag] = []
    keywords: List[str] = []
    cf_has_str: Optional[str] = None
    cf_crash_signature: Optional[str] = None
    ai_summary: str = ""


class TaggedBug(BaseModel):
    """Derived overlay for one bug: the record itself is never modified."""
    bug: Bug
    tags: List[Tag] = []
    has_str_suggested: bool = False
    ai_summary: str = ""

    @property
    def id(self) -> Optional[Union[int, str]]:
        return self.bug.id


# ---------------------------------------------------------------------------
# Boundary normalization
# ---------------------------------------------------------------------------
def _pick(raw: Mapping, *keys: str) -> Any:
    """Return the first truthy value among alias keys (else the last seen)."""
    value = None
    for key in keys:
        if key in raw:
            value = raw[key]
            if value:
                return value
    return value


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return _text(value)


def _normalize_keywords(keywords: Any) -> List[str]:
    if not keywords:
        return []
    if isinstance(keywords, str):
        tokens = keywords.split(",")
    elif isinstance(keywords, (list, tuple, set, frozenset)):
        tokens = [_text(k) for k in keywords]
    else:
        tokens = _text(keywords).split(",")
    return [t.strip() for t in tokens if t and t.strip()]


def _normalize_comment(raw: Any) -> Optional[Comment]:
    if isinstance(raw, Comment):
        return raw
    if isinstance(raw, str):
        return Comment(text=raw)
    if not isinstance(raw, Mapping):
        return None
    return Comment(
        text=_text(_pick(raw, "text", "raw_text", "rawText")),
        is_description=bool(_pick(raw, "is_description", "isDescription")),
    )


def _normalize_attachment(raw: Any) -> Optional[Attachment]:
    if isinstance(raw, Attachment):
        return raw
    if not isinstance(raw, Mapping):
        return None
    return Attachment(
        file_name=_text(_pick(raw, "file_name", "fileName", "filename")),
        description=_text(raw.get("description")),
        is_obsolete=bool(_pick(raw, "is_obsolete", "isObsolete")),
        is_patch=bool(_pick(raw, "is_patch", "isPatch")),
        is_private=bool(_pick(raw, "is_private", "isPrivate")),
    )


def _normalize_flag(raw: Any) -> Optional[Flag]:
    if isinstance(raw, Flag):
        return raw
    if not isinstance(raw, Mapping):
        return None
    return Flag(name=_text(raw.get("name")), status=_text(raw.get("status")))


def _normalize_list(items: Any, normalizer) -> list:
    if not isinstance(items, (list, tuple)):
        return []
    normalized = (normalizer(item) for item in items)
    return [item for item in normalized if item is not None]


def normalize_bug(raw: Any) -> Optional[Bug]:
    """
    Map either input shape of a bug record onto the canonical ``Bug``.

    Accepts a ``Bug`` (returned as-is), a ``TaggedBug`` (its record), or a
    mapping using snake_case or camelCase field names. Malformed
    sub-records are dropped rather than raising.

    Parameters
    ----------
    raw : Any
        Bug record supplied by the record-fetching collaborator.

    Returns
    -------
    Bug or None
        Canonical record, or None when ``raw`` is None or not a mapping.
    """
    if raw is None:
        return None
    if isinstance(raw, Bug):
        return raw
    if isinstance(raw, TaggedBug):
        return raw.bug
    if not isinstance(raw, Mapping):
        logger.debug("Ignoring non-mapping bug record of type %s", type(raw).__name__)
        return None

    comments = _normalize_list(raw.get("comments"), _normalize_comment)

    description = _text(raw.get("description"))
    if not description:
        for comment in comments:
            if comment.is_description:
                description = comment.text
                break

    bug_id = raw.get("id")
    if bug_id is not None and not isinstance(bug_id, (int, str)):
        bug_id = _text(bug_id)

    return Bug(
        id=bug_id,
        summary=_text(raw.get("summary")),
        description=description,
        status=_text(raw.get("status")),
        resolution=_text(raw.get("resolution")),
        product=_text(raw.get("product")),
        component=_text(raw.get("component")),
        severity=_text(raw.get("severity")),
        priority=_text(raw.get("priority")),
        comments=comments,
        attachments=_normalize_list(raw.get("attachments"), _normalize_attachment),
        flags=_normalize_list(raw.get("flags"), _normalize_flag),
        keywords=_normalize_keywords(raw.get("keywords")),
        cf_has_str=_optional_text(_pick(raw, "cf_has_str", "cfHasStr")),
        cf_crash_signature=_optional_text(_pick(raw, "cf_crash_signature", "cfCrashSignature")),
        ai_summary=_text(_pick(raw, "ai_summary", "aiSummary")),
    )
