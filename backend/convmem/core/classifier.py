"""Team/personal classification of memory items.

Rules form an ordered table; the first rule whose item types and pattern
both match decides the label.
"""

from __future__ import annotations

import dataclasses
import re
from typing import Dict, FrozenSet, List, Optional, Pattern, Sequence

from ..config import DEFAULT_CONFIG
from .models import MemoryItem

TEAM = "team"
PERSONAL = "personal"

RAW = "raw"
COMBINED = "combined"

WE_MARKER = re.compile(r"\b(?:we|we're|we've|we'll|we'd|our)\b", re.IGNORECASE)
I_MARKER = re.compile(r"\b(?:I|I'm|I've|I'll|I'd)\b|\b(?i:my)\b")


def keyword_pattern(keywords: Sequence[str]) -> Pattern[str]:
    alternatives = "|".join(re.escape(k) for k in sorted(keywords, key=len, reverse=True))
    return re.compile(rf"\b(?:{alternatives})\b", re.IGNORECASE)


@dataclasses.dataclass(frozen=True)
class ClassificationRule:
    label: str
    types: Optional[FrozenSet[str]] = None  # None applies to every type
    pattern: Optional[Pattern[str]] = None  # None always matches
    field: str = COMBINED

    def matches(self, item: MemoryItem) -> bool:
        if self.types is not None and item.type not in self.types:
            return False
        if self.pattern is None:
            return True
        text = item.raw if self.field == RAW else item.combined_text()
        return self.pattern.search(text or "") is not None


def build_rules(infra_keywords: Sequence[str], personal_keywords: Sequence[str]) -> List[ClassificationRule]:
    infra = keyword_pattern(infra_keywords)
    personal = keyword_pattern(personal_keywords)
    decision = frozenset({"decision"})
    preference = frozenset({"preference"})
    reasoning = frozenset({"reasoning"})
    return [
        ClassificationRule(TEAM, types=frozenset({"gotcha"})),
        ClassificationRule(TEAM, pattern=WE_MARKER, field=RAW),
        ClassificationRule(PERSONAL, pattern=I_MARKER, field=RAW),
        ClassificationRule(PERSONAL, types=decision, pattern=personal),
        ClassificationRule(TEAM, types=decision),
        ClassificationRule(TEAM, types=preference, pattern=infra),
        ClassificationRule(PERSONAL, types=preference),
        ClassificationRule(TEAM, types=reasoning, pattern=infra),
        ClassificationRule(PERSONAL, types=reasoning, pattern=personal),
        ClassificationRule(PERSONAL, types=reasoning, pattern=I_MARKER),
        ClassificationRule(TEAM, types=reasoning),
        ClassificationRule(TEAM, pattern=infra),
        ClassificationRule(PERSONAL),
    ]


class MemoryClassifier:
    def __init__(self, rules: Optional[List[ClassificationRule]] = None):
        if rules is None:
            section = DEFAULT_CONFIG["classifier"]
            rules = build_rules(section["infra_keywords"], section["personal_keywords"])
        self.rules = rules

    @classmethod
    def from_config(cls, cfg: Dict) -> "MemoryClassifier":
        section = dict(DEFAULT_CONFIG["classifier"])
        section.update(cfg.get("classifier", {}))
        return cls(build_rules(section["infra_keywords"], section["personal_keywords"]))

    def classify(self, item: Optional[MemoryItem]) -> str:
        if item is None:
            return PERSONAL
        for rule in self.rules:
            if rule.matches(item):
                return rule.label
        return PERSONAL


_DEFAULT_CLASSIFIER: Optional[MemoryClassifier] = None


def classify_memory(item: Optional[MemoryItem]) -> str:
    """Classify with the default keyword tables (Functional Wrapper)."""
    global _DEFAULT_CLASSIFIER
    if _DEFAULT_CLASSIFIER is None:
        _DEFAULT_CLASSIFIER = MemoryClassifier()
    return _DEFAULT_CLASSIFIER.classify(item)
