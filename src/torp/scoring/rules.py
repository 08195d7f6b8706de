"""Declarative rule primitives shared by the control-point evaluators.

Keyword sets and threshold tables replace inline conditionals so every
evaluator reads as data and can be unit-tested in isolation.

Matching runs against the lowercased string values of the quote. Terms of
three characters or fewer match as whole words (so "ce" does not hit
"surface"); longer terms match anywhere.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

_SHORT_TERM_LENGTH = 3


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves towards +infinity."""
    return math.floor(value + 0.5)


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def _term_pattern(term: str) -> str:
    escaped = re.escape(term.lower())
    if len(term) <= _SHORT_TERM_LENGTH:
        return rf"(?<!\w){escaped}(?!\w)"
    return escaped


@dataclass(frozen=True)
class KeywordSet:
    """Named group of terms; matches when any term occurs in the text."""

    label: str
    terms: tuple[str, ...]
    pattern: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.terms:
            raise ValueError(f"KeywordSet '{self.label}' must declare at least one term")
        compiled = re.compile("|".join(_term_pattern(t) for t in self.terms))
        object.__setattr__(self, "pattern", compiled)

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None

    def matches_any(self, texts: Iterable[str]) -> bool:
        return any(self.matches(t.lower()) for t in texts)


def keywords(label: str, *terms: str) -> KeywordSet:
    return KeywordSet(label=label, terms=tuple(terms))


@dataclass(frozen=True)
class Tier:
    """One step of a threshold table."""

    threshold: float
    points: float


def points_at_least(value: float, tiers: Sequence[Tier], default: float) -> float:
    """Points of the first tier whose threshold is <= value.

    Tiers are checked in declaration order, highest threshold first.
    """
    for tier in tiers:
        if value >= tier.threshold:
            return tier.points
    return default


def points_below(value: float, tiers: Sequence[Tier], default: float) -> float:
    """Points of the first tier whose threshold is > value.

    Tiers are checked in declaration order, lowest threshold first.
    """
    for tier in tiers:
        if value < tier.threshold:
            return tier.points
    return default


class Evidence:
    """Collects which signals were found and which were assumed absent.

    Rendered as the control-point justification.
    """

    def __init__(self) -> None:
        self._found: list[str] = []
        self._absent: list[str] = []
        self._notes: list[str] = []

    def check(self, present: bool, label: str) -> bool:
        """Record a signal and return whether it was present."""
        if present:
            self._found.append(label)
        else:
            self._absent.append(label)
        return present

    def keyword(self, keyword_set: KeywordSet, text: str) -> bool:
        return self.check(keyword_set.matches(text), keyword_set.label)

    def found(self, label: str) -> None:
        self._found.append(label)

    def absent(self, label: str) -> None:
        self._absent.append(label)

    def note(self, message: str) -> None:
        self._notes.append(message)

    def render(self) -> str:
        parts: list[str] = []
        if self._found:
            parts.append("found: " + ", ".join(self._found))
        if self._absent:
            parts.append("absent: " + ", ".join(self._absent))
        parts.extend(self._notes)
        if not parts:
            return "no signal evaluated"
        return "; ".join(parts)
