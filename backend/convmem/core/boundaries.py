"""Topic boundary detection between consecutive exchanges.

Three boundary kinds are recognised, in priority order:

* ``hard`` - the user invoked a workflow command (``/tlc:build``)
* ``soft`` - the user opened with a transition phrase ("ok", "let's move on")
* ``semantic`` - keyword overlap between the two exchanges fell below a threshold

Patterns and thresholds are data, built from the ``boundaries`` config section.
"""

from __future__ import annotations

import dataclasses
import re
from typing import Dict, FrozenSet, List, Optional, Pattern

from ..config import DEFAULT_CONFIG
from .models import Exchange

HARD = "hard"
SOFT = "soft"
SEMANTIC = "semantic"


@dataclasses.dataclass(frozen=True)
class Rule:
    """A compiled pattern and the label it assigns when it matches."""

    pattern: Pattern[str]
    label: str

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


@dataclasses.dataclass(frozen=True)
class Boundary:
    is_boundary: bool
    type: Optional[str] = None


NO_BOUNDARY = Boundary(False, None)


def command_pattern(prefix: str) -> Pattern[str]:
    return re.compile(rf"^/?{re.escape(prefix)}:", re.IGNORECASE)


@dataclasses.dataclass(frozen=True)
class BoundaryRules:
    rules: List[Rule]
    semantic_threshold: float = 0.15
    min_keywords: int = 5
    min_keyword_length: int = 4
    command_prefix: str = "tlc"

    @classmethod
    def from_config(cls, cfg: Optional[Dict] = None) -> "BoundaryRules":
        section = dict(DEFAULT_CONFIG["boundaries"])
        section.update((cfg or {}).get("boundaries", {}))
        prefix = section["command_prefix"]
        rules = [Rule(command_pattern(prefix), HARD)]
        rules.extend(Rule(re.compile(p, re.IGNORECASE), SOFT) for p in section["soft_signals"])
        return cls(
            rules=rules,
            semantic_threshold=float(section["semantic_threshold"]),
            min_keywords=int(section["min_keywords"]),
            min_keyword_length=int(section["min_keyword_length"]),
            command_prefix=prefix,
        )

    def is_command(self, text: str) -> bool:
        return any(r.label == HARD and r.matches(text.strip()) for r in self.rules)


_NON_ALNUM = re.compile(r"[^a-z0-9\s]")


def extract_keywords(text: str, min_length: int = 4) -> FrozenSet[str]:
    """Significant words: lowercased, alphanumeric, at least ``min_length`` chars."""
    words = _NON_ALNUM.sub(" ", text.lower()).split()
    return frozenset(w for w in words if len(w) >= min_length)


def keyword_overlap(a: FrozenSet[str], b: FrozenSet[str]) -> float:
    if not a or not b:
        return 0.0
    return len(a & b) / min(len(a), len(b))


class BoundaryDetector:
    """Decides whether a topic boundary separates two exchanges."""

    def __init__(self, rules: Optional[BoundaryRules] = None):
        self.rules = rules or BoundaryRules.from_config()

    def detect(self, exchange: Exchange, previous: Optional[Exchange]) -> Boundary:
        if previous is None:
            return NO_BOUNDARY

        user_text = (exchange.user or "").strip()
        # hard rules precede soft rules in the table
        for rule in self.rules.rules:
            if rule.matches(user_text):
                return Boundary(True, rule.label)

        prev_kw = extract_keywords(previous.text, self.rules.min_keyword_length)
        curr_kw = extract_keywords(exchange.text, self.rules.min_keyword_length)
        # short Q&A turns make the ratio meaningless
        if len(prev_kw) < self.rules.min_keywords or len(curr_kw) < self.rules.min_keywords:
            return NO_BOUNDARY

        if keyword_overlap(prev_kw, curr_kw) < self.rules.semantic_threshold:
            return Boundary(True, SEMANTIC)
        return NO_BOUNDARY


_DEFAULT_DETECTOR: Optional[BoundaryDetector] = None


def detect_boundary(exchange: Exchange, previous: Optional[Exchange]) -> Boundary:
    """Detect a boundary with the default rule tables (Functional Wrapper)."""
    global _DEFAULT_DETECTOR
    if _DEFAULT_DETECTOR is None:
        _DEFAULT_DETECTOR = BoundaryDetector()
    return _DEFAULT_DETECTOR.detect(exchange, previous)
