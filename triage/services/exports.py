"""
Exports
=======
Serializes tagged bugs to JSON, CSV and a Markdown report, and reads the
JSON export back.

Formats:
    JSON      — lossless; schemaVersion, generatedAt, bugzillaHost, input,
                ai {provider, model, transport}, bugs. NEVER an API key.
    CSV       — flat table, fixed column order (CSV_HEADERS)
    Markdown  — "# Bug Triage Report" table, optional AI summary column

Bugs may be TaggedBug overlays or plain mappings in either alias shape.
"""
import csv
import io
import json
import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from triage.core.config import BUGZILLA_HOST
from triage.models.ai_config import AIProviderConfig
from triage.models.bug import Bug, TaggedBug, normalize_bug
from triage.parser.tags import tag_id_of

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

CSV_HEADERS = (
    "bug_id",
    "bug_url",
    "summary",
    "status",
    "resolution",
    "product",
    "component",
    "severity",
    "priority",
    "cf_has_str",
    "has_str_suggested",
    "tags",
    "ai_summary",
)

_MD_SUMMARY_CHARS = 80
_MD_AI_SUMMARY_CHARS = 100


# ---------------------------------------------------------------------------
# Row extraction
# ---------------------------------------------------------------------------
def _overlay(item: Any) -> tuple[Bug, list, bool, str]:
    """Return (record, tags, has_str_suggested, ai_summary) for one bug."""
    if isinstance(item, TaggedBug):
        return item.bug, list(item.tags), item.has_str_suggested, item.ai_summary or item.bug.ai_summary

    record = normalize_bug(item) or Bug()
    if isinstance(item, Mapping):
        tags = list(item.get("tags") or [])
        suggested = bool(item.get("has_str_suggested") or item.get("hasStrSuggested"))
    else:
        tags, suggested = [], False
    return record, tags, suggested, record.ai_summary


def _tag_names(tags: list) -> List[str]:
    names = []
    for tag in tags:
        name = tag_id_of(tag)
        if name is None and isinstance(tag, Mapping):
            name = tag.get("label")
        if name:
            names.append(name)
    return names


def _bug_url(host: str, bug_id: Any) -> str:
    return f"{host.rstrip('/')}/show_bug.cgi?id={bug_id}"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------
def _serialize_bug(item: Any) -> Dict[str, Any]:
    record, tags, suggested, ai_summary = _overlay(item)
    data = record.model_dump(mode="json")
    data["tags"] = [
        tag.model_dump(mode="json") if hasattr(tag, "model_dump") else dict(tag)
        for tag in tags
    ]
    data["has_str_suggested"] = suggested
    data["ai_summary"] = ai_summary
    return data


def export_json(
    bugs: Optional[Iterable[Any]],
    bugzilla_host: str = "",
    input_params: Optional[Mapping] = None,
    ai_config: Any = None,
) -> str:
    """
    Build the lossless JSON export.

    Parameters
    ----------
    bugs : iterable
        TaggedBugs or bug mappings.
    bugzilla_host : str
        Host the bugs were loaded from.
    input_params : Mapping, optional
        The query or id list that produced the collection.
    ai_config : AIProviderConfig or Mapping, optional
        Only provider, model and transport are written.

    Returns
    -------
    str
        Pretty-printed JSON document.
    """
    config = AIProviderConfig.coerce(ai_config)
    bug_list = [_serialize_bug(bug) for bug in (bugs or [])]
    logger.info("Exporting %d bugs as JSON", len(bug_list))

    data = {
        "schemaVersion": SCHEMA_VERSION,
        "generatedAt": _now_iso(),
        "bugzillaHost": bugzilla_host or "",
        "input": dict(input_params or {}),
        "ai": {
            "provider": (config.provider if config else "") or "",
            "model": (config.effective_model if config else "") or "",
            "transport": (config.effective_transport if config else "") or "",
        },
        "bugs": bug_list,
    }
    return json.dumps(data, indent=2)


def import_json(json_string: str) -> Dict[str, Any]:
    """Parse a JSON export into {bugs, metadata, errors}; never raises."""
    try:
        data = json.loads(json_string)
    except (json.JSONDecodeError, TypeError, ValueError) as e:
        return {"bugs": [], "metadata": {}, "errors": [str(e)]}

    if not isinstance(data, Mapping):
        return {"bugs": [], "metadata": {}, "errors": ["Export must be a JSON object"]}

    if data.get("schemaVersion") != SCHEMA_VERSION:
        logger.warning("Schema version mismatch: %s", data.get("schemaVersion"))

    bugs = data.get("bugs")
    return {
        "bugs": list(bugs) if isinstance(bugs, list) else [],
        "metadata": {
            "bugzillaHost": data.get("bugzillaHost"),
            "input": data.get("input"),
            "ai": data.get("ai"),
        },
        "errors": [],
    }


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------
def export_csv(bugs: Optional[Iterable[Any]], bugzilla_host: str = BUGZILLA_HOST) -> str:
    bug_list = list(bugs or [])
    if not bug_list:
        return ""

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)

    for item in bug_list:
        record, tags, suggested, ai_summary = _overlay(item)
        writer.writerow([
            "" if record.id is None else record.id,
            _bug_url(bugzilla_host, record.id),
            record.summary,
            record.status,
            record.resolution,
            record.product,
            record.component,
            record.severity,
            record.priority,
            record.cf_has_str or "",
            "yes" if suggested else "no",
            "; ".join(_tag_names(tags)),
            ai_summary,
        ])

    return buffer.getvalue().rstrip("\n")


# ---------------------------------------------------------------------------
# Markdown
# ---------------------------------------------------------------------------
def _escape_md(value: Any) -> str:
    if value is None:
        return ""
    return str(value).replace("|", "\\|").replace("\n", " ").replace("\r", "")


def export_markdown(
    bugs: Optional[Iterable[Any]],
    bugzilla_host: str = BUGZILLA_HOST,
    include_ai_summary: bool = True,
    generated_at: Optional[str] = None,
) -> str:
    bug_list = list(bugs or [])
    if not bug_list:
        return "# Bug Triage Report\n\nNo bugs to export.\n"

    lines = [
        "# Bug Triage Report",
        "",
        f"Generated: {generated_at or _now_iso()}",
        f"Total bugs: {len(bug_list)}",
        "",
    ]

    headers = ["Bug ID", "Status", "Product/Component", "Summary", "Tags"]
    if include_ai_summary:
        headers.append("AI Summary")
    lines.append("| " + " | ".join(headers) + " |")
    lines.append("| " + " | ".join("---" for _ in headers) + " |")

    for item in bug_list:
        record, tags, _, ai_summary = _overlay(item)
        status = f"{record.status} ({record.resolution})" if record.resolution else record.status
        row = [
            f"[{record.id}]({_bug_url(bugzilla_host, record.id)})",
            status,
            f"{record.product}/{record.component}",
            _escape_md(record.summary)[:_MD_SUMMARY_CHARS],
            " ".join(f"`{name}`" for name in _tag_names(tags)),
        ]
        if include_ai_summary:
            row.append(_escape_md(ai_summary)[:_MD_AI_SUMMARY_CHARS] or "-")
        lines.append("| " + " | ".join(row) + " |")

    lines.extend(["", "---", "*Exported from Bugzilla Bug Triage Helper*"])
    return "\n".join(lines)


def generate_filename(prefix: str, extension: str) -> str:
    """``<prefix>-YYYY-MM-DDTHH-MM-SS.<extension>`` in UTC."""
    timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S")
    return f"{prefix}-{timestamp}.{extension}"
