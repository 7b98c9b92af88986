"""
Constants
=========
Centralised storage for tag identifiers, the AI trust partition,
provider/transport names and prompt truncation caps.
"""
from enum import Enum


# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------
class TagId(str, Enum):
    HAS_STR = "has-str"
    TEST_ATTACHED = "test-attached"
    FUZZY_TEST_ATTACHED = "fuzzy-test-attached"
    CRASHSTACK = "crashstack"
    AI_DETECTED_STR = "ai-detected-str"
    AI_DETECTED_TEST_ATTACHED = "ai-detected-test-attached"


class SourceKind(str, Enum):
    BUG_FIELD = "bug-field"
    ATTACHMENT = "attachment"
    HEURISTIC = "heuristic"
    AI = "ai"


TAG_LABELS: dict[TagId, str] = {
    TagId.HAS_STR: "Has STR",
    TagId.TEST_ATTACHED: "test-attached",
    TagId.FUZZY_TEST_ATTACHED: "fuzzy-test-attached",
    TagId.CRASHSTACK: "crashstack",
    TagId.AI_DETECTED_STR: "AI-detected STR",
    TagId.AI_DETECTED_TEST_ATTACHED: "AI-detected test-attached",
}

# Only the AI path may set these
AI_ONLY_TAGS = frozenset({TagId.AI_DETECTED_STR, TagId.AI_DETECTED_TEST_ATTACHED})

# The AI path may NEVER set these
NON_AI_TAGS = frozenset({TagId.TEST_ATTACHED})

# Tags whose presence suggests setting Has STR
STR_SUGGESTING_TAGS = (
    TagId.TEST_ATTACHED,
    TagId.FUZZY_TEST_ATTACHED,
    TagId.AI_DETECTED_STR,
    TagId.AI_DETECTED_TEST_ATTACHED,
)


# ---------------------------------------------------------------------------
# AI providers
# ---------------------------------------------------------------------------
class Provider(str, Enum):
    GEMINI = "gemini"
    CLAUDE = "claude"
    OPENAI = "openai"
    GROK = "grok"
    CUSTOM = "custom"
    NONE = "none"


class Transport(str, Enum):
    BROWSER = "browser"
    BACKEND = "backend"


DEFAULT_MODELS: dict[str, str] = {
    "gemini": "gemini-2.5-flash",
    "claude": "claude-sonnet-4-5-20250929",
    "openai": "gpt-4o",
    "grok": "grok-2",
}

AI_TASKS = ("classify", "customize", "suggest", "generate", "refine")


# ---------------------------------------------------------------------------
# Prompt truncation caps (characters)
# ---------------------------------------------------------------------------
CLASSIFY_DESCRIPTION_CHARS = 4000
CLASSIFY_COMMENT_CHARS = 2000
CUSTOMIZE_DESCRIPTION_CHARS = 1000
CUSTOMIZE_TEMPLATE_CHARS = 2000
SUGGEST_DESCRIPTION_CHARS = 1000
SUGGEST_TEMPLATE_CHARS = 200
GENERATE_DESCRIPTION_CHARS = 2000
GENERATE_COMMENT_CHARS = 1000
GENERATE_TEMPLATE_CHARS = 150
GENERATE_RECENT_COMMENTS = 5
REFINE_DESCRIPTION_CHARS = 500
REFINE_RESPONSE_CHARS = 4000
REFINE_TEMPLATE_CHARS = 1000
CRASH_SIGNATURE_EVIDENCE_CHARS = 50
