"""
Evidence Classifiers
====================
Deterministic checks that scan one bug for one family of evidence and
return a Tag explaining what fired, or None.

Signal Families:
    1. FORMAL FIELD — cf_has_str == "yes"                     → has-str
    2. KEYWORD / ATTACHMENT / FLAG — in that priority order   → test-attached
    3. FREE TEXT — fuzzing tool and corpus mentions            → fuzzy-test-attached
    4. CRASH FIELD / COMMENT TEXT — signature, frames, sanitizers → crashstack

Rules:
    - Every checker is pure and total: None or malformed input yields None
    - Within a checker the first match wins; checkers never depend on each other
    - test-attached is produced here and ONLY here (never by the AI path)
"""
import re
from typing import Any, Optional

from triage.core.constants import CRASH_SIGNATURE_EVIDENCE_CHARS, SourceKind, TagId
from triage.models.bug import Bug, normalize_bug
from triage.models.tag import Tag, create_tag


# ---------------------------------------------------------------------------
# 1. Formal field
# ---------------------------------------------------------------------------
_HAS_STR_VALUE = "yes"


# ---------------------------------------------------------------------------
# 2. Test-attached tables
# ---------------------------------------------------------------------------
_TESTCASE_KEYWORD = "testcase"

# .xhtml and .mjs never count as testcases
_TESTCASE_EXTENSIONS: tuple[str, ...] = (".html", ".js", ".zip", ".txt")

# Matched against the lower-cased filename
_TESTCASE_FILENAME_PATTERNS: list[re.Pattern] = [
    re.compile(r"testcase"),
    re.compile(r"repro"),
    re.compile(r"poc"),
    re.compile(r"reduced"),
    re.compile(r"\bmin[_-]?"),
    re.compile(r"minimized"),
]

_TESTSUITE_FLAGS = frozenset({"in-testsuite", "in-qa-testsuite"})
_TESTSUITE_FLAG_STATUS = "+"


# ---------------------------------------------------------------------------
# 3. Fuzzing signals
# ---------------------------------------------------------------------------
_FUZZING_PATTERNS: list[re.Pattern] = [
    re.compile(r"found while fuzzing", re.I),
    re.compile(r"fuzzilli", re.I),
    re.compile(r"oss-fuzz", re.I),
    re.compile(r"fuzzfetch", re.I),
    re.compile(r"grizzly replay", re.I),
]


# ---------------------------------------------------------------------------
# 4. Crash stack patterns
# ---------------------------------------------------------------------------
_CRASHSTACK_PATTERNS: list[re.Pattern] = [
    re.compile(r"#[0-9]\s+0x[0-9a-fA-F]+"),  # stack frame: "#0 0x7f3a..."
    re.compile(r"AddressSanitizer", re.I),
    re.compile(r"\bASan\b"),
    re.compile(r"UndefinedBehaviorSanitizer", re.I),
    re.compile(r"\bUBSan\b"),
    re.compile(r"ThreadSanitizer", re.I),
    re.compile(r"\bTSan\b"),
    re.compile(r"MemorySanitizer", re.I),
    re.compile(r"\bMSan\b"),
]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def check_has_str(bug: Any) -> Optional[Tag]:
    """Tag ``has-str`` when the reproduction-steps field is exactly "yes"."""
    record = normalize_bug(bug)
    if record is None:
        return None

    if record.cf_has_str == _HAS_STR_VALUE:
        return create_tag(
            TagId.HAS_STR,
            [SourceKind.BUG_FIELD],
            f'cf_has_str = "{record.cf_has_str}"',
        )
    return None


def check_test_attached(bug: Any) -> Optional[Tag]:
    """
    Tag ``test-attached`` from deterministic metadata.

    Strategy (first matching branch wins):
        1. Keyword list contains the exact token "testcase"
        2. A live (non-obsolete, non-patch, non-private) attachment whose
           filename matches a testcase pattern, else ends with a whitelisted
           extension
        3. An in-testsuite / in-qa-testsuite flag granted with "+"

    Parameters
    ----------
    bug : Any
        Bug record in either alias shape.

    Returns
    -------
    Tag or None
        Tag whose evidence names the branch and pattern that fired.
    """
    record = normalize_bug(bug)
    if record is None:
        return None

    return (
        _check_testcase_keyword(record)
        or _check_testcase_attachments(record)
        or _check_testsuite_flags(record)
    )


def check_fuzzy_test_attached(bug: Any) -> Optional[Tag]:
    """Tag ``fuzzy-test-attached`` when description or comments mention fuzzing."""
    record = normalize_bug(bug)
    if record is None:
        return None

    texts = [record.description] if record.description else []
    texts.extend(comment.text for comment in record.comments if comment.text)
    combined = "\n".join(texts)

    for pattern in _FUZZING_PATTERNS:
        match = pattern.search(combined)
        if match:
            return create_tag(
                TagId.FUZZY_TEST_ATTACHED,
                [SourceKind.HEURISTIC],
                f'Text contains fuzzing signal: "{match.group(0)}"',
            )
    return None


def check_crashstack(bug: Any) -> Optional[Tag]:
    """
    Tag ``crashstack`` from the crash-signature field or comment text.

    The field check takes priority; comments are only scanned when the
    signature is absent or blank.
    """
    record = normalize_bug(bug)
    if record is None:
        return None

    signature = record.cf_crash_signature or ""
    if signature.strip():
        preview = signature[:CRASH_SIGNATURE_EVIDENCE_CHARS]
        if len(signature) > CRASH_SIGNATURE_EVIDENCE_CHARS:
            preview += "..."
        return create_tag(
            TagId.CRASHSTACK,
            [SourceKind.BUG_FIELD],
            f"Crash signature: {preview}",
        )

    for comment in record.comments:
        for pattern in _CRASHSTACK_PATTERNS:
            match = pattern.search(comment.text)
            if match:
                return create_tag(
                    TagId.CRASHSTACK,
                    [SourceKind.HEURISTIC],
                    f'Stack trace pattern found: "{match.group(0)}"',
                )
    return None


# Run order used by the aggregator
EVIDENCE_CHECKERS = (
    check_has_str,
    check_test_attached,
    check_fuzzy_test_attached,
    check_crashstack,
)


# ---------------------------------------------------------------------------
# test-attached branches
# ---------------------------------------------------------------------------
def _check_testcase_keyword(record: Bug) -> Optional[Tag]:
    # Exact token only: "testcases-wanted" must not match
    if _TESTCASE_KEYWORD in record.keywords:
        return create_tag(
            TagId.TEST_ATTACHED,
            [SourceKind.BUG_FIELD],
            f"Keyword: {_TESTCASE_KEYWORD}",
        )
    return None


def _check_testcase_attachments(record: Bug) -> Optional[Tag]:
    for attachment in record.attachments:
        if attachment.is_obsolete or attachment.is_patch or attachment.is_private:
            continue

        filename = attachment.file_name.lower()
        if not filename:
            continue

        for pattern in _TESTCASE_FILENAME_PATTERNS:
            if pattern.search(filename):
                return create_tag(
                    TagId.TEST_ATTACHED,
                    [SourceKind.ATTACHMENT],
                    f"Attachment: {attachment.file_name} (filename matches testcase pattern)",
                )

        for ext in _TESTCASE_EXTENSIONS:
            if filename.endswith(ext):
                return create_tag(
                    TagId.TEST_ATTACHED,
                    [SourceKind.ATTACHMENT],
                    f"Attachment: {attachment.file_name} ({ext} file)",
                )
    return None


def _check_testsuite_flags(record: Bug) -> Optional[Tag]:
    for flag in record.flags:
        if flag.name in _TESTSUITE_FLAGS and flag.status == _TESTSUITE_FLAG_STATUS:
            return create_tag(
                TagId.TEST_ATTACHED,
                [SourceKind.BUG_FIELD],
                f"Flag: {flag.name}{flag.status}",
            )
    return None
