"""Fuzzy command suggestions from the snapshot's index file.

index.json lists every page as {"name", "platform", "language"}, with
multi-word commands hyphen-joined ("git-checkout"). Queries are matched as
case-insensitive subsequences of those names and ranked by score.

Scoring:
- +10 match on the first character
- +20 match right after a separator (/ - _ space . backslash)
- +20 match on a camelCase boundary
- +5 adjacent match, growing with each consecutive adjacent match
- -5 per unmatched leading character (capped at -15)
- -1 per unmatched character

Public API:
    FuzzyIndex: Load the index file and search it
    CmdsIndex, CmdInfo: Loaded index data (immutable)
    fuzzy_find: Rank strings against a pattern
    IndexLoadError: Raised when index.json cannot be read or decoded
"""

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from typing import Any

from tldrlite.page_store import PageStore

logger = logging.getLogger(__name__)

FIRST_CHAR_MATCH_BONUS = 10
MATCH_FOLLOWING_SEPARATOR_BONUS = 20
CAMEL_CASE_MATCH_BONUS = 20
ADJACENT_MATCH_BONUS = 5
UNMATCHED_LEADING_CHAR_PENALTY = -5
MAX_UNMATCHED_LEADING_CHAR_PENALTY = -15
SEPARATORS = "/-_ .\\"


class IndexLoadError(Exception):
    """Raised when the command index cannot be loaded."""

    pass


@dataclass(frozen=True)
class Match:
    """One fuzzy match result."""

    text: str
    index: int
    score: int
    matched_indexes: tuple[int, ...]


def _equal_fold(a: str, b: str) -> bool:
    return a.casefold() == b.casefold()


def _adjacent_bonus(last_index: int, last_match: int, current_bonus: int) -> int:
    if last_index == last_match:
        return current_bonus * 2 + ADJACENT_MATCH_BONUS
    return 0


def match_one(pattern: str, text: str, index: int = 0) -> Match | None:
    """Score one string against a pattern.

    Each pattern character is committed to its best-scoring occurrence before
    the next pattern character shows up in text (or before text ends), so
    "tk" against "The Black Knight" picks the "K" of "Knight".

    Returns:
        Match, or None when pattern is not a subsequence of text
    """
    if not pattern:
        return None

    matched: list[int] = []
    total = 0
    pattern_index = 0
    best_score = -1
    best_index = -1
    adjacent_bonus = 0
    last = ""
    last_index = 0

    for j, candidate in enumerate(text):
        if pattern_index >= len(pattern):
            break

        if _equal_fold(candidate, pattern[pattern_index]):
            score = 0
            if j == 0:
                score += FIRST_CHAR_MATCH_BONUS
            if last.islower() and candidate.isupper():
                score += CAMEL_CASE_MATCH_BONUS
            if j != 0 and last in SEPARATORS:
                score += MATCH_FOLLOWING_SEPARATOR_BONUS
            if matched:
                bonus = _adjacent_bonus(last_index, matched[-1], adjacent_bonus)
                score += bonus
                adjacent_bonus += bonus
            if score > best_score:
                best_score = score
                best_index = j

        next_pattern = pattern[pattern_index + 1] if pattern_index < len(pattern) - 1 else ""
        next_char = text[j + 1] if j + 1 < len(text) else ""

        if not next_char or (next_pattern and _equal_fold(next_pattern, next_char)):
            if best_index > -1:
                if not matched:
                    penalty = best_index * UNMATCHED_LEADING_CHAR_PENALTY
                    best_score += max(penalty, MAX_UNMATCHED_LEADING_CHAR_PENALTY)
                total += best_score
                matched.append(best_index)
                best_score = -1
                best_index = -1
                pattern_index += 1

        last_index = j
        last = candidate

    if len(matched) != len(pattern):
        return None

    total += len(matched) - len(text)
    return Match(text=text, index=index, score=total, matched_indexes=tuple(matched))


def fuzzy_find(pattern: str, texts: Sequence[str]) -> list[Match]:
    """Rank texts against pattern, best first; ties keep input order."""
    matches = [m for i, text in enumerate(texts) if (m := match_one(pattern, text, i)) is not None]
    return sorted(matches, key=lambda m: m.score, reverse=True)


@dataclass(frozen=True)
class CmdInfo:
    """One index entry."""

    name: str
    platform: tuple[str, ...] = field(default_factory=tuple)
    language: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CmdInfo":
        return cls(
            name=data["name"],
            platform=tuple(data.get("platform", ())),
            language=tuple(data.get("language", ())),
        )

    def display(self) -> "CmdInfo":
        """Copy with hyphens turned into spaces (git-checkout -> git checkout)."""
        return replace(self, name=self.name.replace("-", " "))


@dataclass(frozen=True)
class CmdsIndex:
    """Parsed index.json. Entries keep their on-disk hyphen-joined names."""

    commands: tuple[CmdInfo, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.commands)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CmdsIndex":
        return cls(commands=tuple(CmdInfo.from_dict(c) for c in data.get("commands", [])))

    def filter(self, query: str) -> list[CmdInfo]:
        """Fuzzy-match query against entry names.

        Returns:
            Display copies of the matching entries, best first
        """
        matches = fuzzy_find(query, [c.name for c in self.commands])
        return [self.commands[m.index].display() for m in matches]

    def search(self, tokens: Sequence[str]) -> list[CmdInfo]:
        """Fuzzy-search by command tokens.

        Tokens are hyphen-joined to follow the index naming
        (["git", "checkout"] -> "git-checkout").

        Example:
            >>> index.search(["git", "chec"])[0].name
            'git checkout'
        """
        return self.filter("-".join(tokens))


class FuzzyIndex:
    """Command index of one snapshot.

    Every search reloads index.json, so results never depend on an earlier
    search.

    Example:
        >>> index = FuzzyIndex(PageStore(Path("~/.tldr").expanduser()))
        >>> for cmd in index.search(["gti"]):
        ...     print(cmd.name, cmd.platform)
    """

    def __init__(self, store: PageStore):
        self.store = store

    def load_index_file(self) -> CmdsIndex:
        """Read and decode index.json.

        Raises:
            IndexLoadError: If the file is missing, unreadable or malformed
        """
        try:
            data = json.loads(self.store.read_index())
            index = CmdsIndex.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            raise IndexLoadError(f"Failed to load index {self.store.index_path}: {e}") from e

        logger.debug(f"Loaded {len(index)} commands from {self.store.index_path}")
        return index

    def search(self, tokens: Sequence[str]) -> list[CmdInfo]:
        """Load a fresh index and search it."""
        return self.load_index_file().search(tokens)
