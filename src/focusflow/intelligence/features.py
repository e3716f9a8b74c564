"""Feature extraction: turns task text into normalized signals.

Everything downstream (classifier, complexity estimator, urgency) reads these
counts instead of re-scanning text. Pure functions, no failure mode: empty
text yields all-zero features.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, Field

from focusflow.models import TaskContext

# Keyword stems, matched at the start of a word so "secur" hits both
# "secure" and "security". A family's hit count is the number of distinct
# stems present, not the number of occurrences.
KEYWORD_FAMILIES: dict[str, tuple[str, ...]] = {
    "technical": (
        "algorithm", "api", "architecture", "database", "framework",
        "implement", "integrat", "optimiz", "performance", "scalab", "secur",
    ),
    "problem_solving": (
        "analy", "debug", "diagnos", "fix", "investigat", "research",
        "resolv", "solv", "troubleshoot",
    ),
    "creative": (
        "brainstorm", "concept", "creat", "design", "develop", "ideat",
        "innovat", "prototyp",
    ),
    "documentation": (
        "communicat", "document", "explain", "present", "report", "review",
        "teach", "writ",
    ),
    "process": (
        "configur", "deploy", "implement", "install", "migrat", "refactor",
        "setup", "upgrad",
    ),
    "urgent": (
        "asap", "blocking", "critical", "deadline", "due", "emergency",
        "immediately", "urgent",
    ),
}

_STOPWORDS = frozenset({
    "about", "after", "also", "been", "before", "from", "have", "into",
    "just", "more", "need", "needs", "only", "over", "should", "some",
    "than", "that", "them", "then", "there", "these", "they", "this",
    "what", "when", "will", "with", "your",
})

_PATTERNS = {
    family: [re.compile(rf"\b{re.escape(stem)}") for stem in stems]
    for family, stems in KEYWORD_FAMILIES.items()
}

_WORD_RE = re.compile(r"[a-z0-9][a-z0-9'\-]*")


class TaskFeatures(BaseModel):
    word_count: int = 0
    title_len: int = 0
    desc_len: int = 0
    keyword_hits: dict[str, int] = Field(
        default_factory=lambda: {family: 0 for family in KEYWORD_FAMILIES}
    )

    @property
    def has_text(self) -> bool:
        return self.word_count > 0

    def hits(self, family: str) -> int:
        return self.keyword_hits.get(family, 0)


def count_keyword_hits(text: str, family: str) -> int:
    """Count distinct stems of one keyword family present in lower-cased text."""
    return sum(1 for pattern in _PATTERNS[family] if pattern.search(text))


def extract_features(context: TaskContext) -> TaskFeatures:
    """Extract length and keyword signals from a task context."""
    text = f"{context.title} {context.description}".lower()
    return TaskFeatures(
        word_count=len(text.split()),
        title_len=len(context.title),
        desc_len=len(context.description),
        keyword_hits={family: count_keyword_hits(text, family) for family in KEYWORD_FAMILIES},
    )


def extract_keywords(text: str, limit: int = 5) -> list[str]:
    """First distinct content words (> 3 chars, not stopwords), in reading order."""
    seen: list[str] = []
    for word in _WORD_RE.findall(text.lower()):
        word = word.strip("'-")
        if len(word) <= 3 or word in _STOPWORDS or word in seen:
            continue
        seen.append(word)
        if len(seen) >= limit:
            break
    return seen
