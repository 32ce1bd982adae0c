"""Keyword completion for the trailing ``+`` token of the filter input."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from .filter_query import KEYWORD_PREFIX, MATCH_CASE_TOKEN, PATH_TOKEN
from .repository import RepoStatus

KEYWORDS: tuple[str, ...] = (
    PATH_TOKEN[len(KEYWORD_PREFIX):],
    MATCH_CASE_TOKEN[len(KEYWORD_PREFIX):],
    *(status.name for status in RepoStatus),
)


@dataclass(frozen=True)
class CompletionItem:
    text: str
    score: int
    insert_text: str


def score(query: str, candidate: str) -> int:
    """Score ``candidate`` as a case-insensitive subsequence match of ``query``.

    Returns ``0`` when some query character cannot be found in order. Each
    matched character earns ``(len - pos + 1) // len`` for its position plus
    2 when its case matches exactly, else 1. An empty query scores 1.
    """
    if not query:
        return 1
    length = len(candidate)
    if length == 0:
        return 0

    total = 0
    position = 0
    for needle in query:
        folded_needle = needle.casefold()
        while position < length and candidate[position].casefold() != folded_needle:
            position += 1
        if position >= length:
            return 0
        total += (length - position + 1) // length
        total += 2 if candidate[position] == needle else 1
        position += 1
    return total


def completion_query(raw_input: str) -> str | None:
    """Return the text typed after a trailing ``+``, or ``None`` if none is open."""
    token = raw_input.rsplit(" ", 1)[-1]
    if not token.startswith(KEYWORD_PREFIX):
        return None
    return token[len(KEYWORD_PREFIX):]


def rank(query: str, vocabulary: Sequence[str] = KEYWORDS) -> list[CompletionItem]:
    """Score every keyword and return matches best-first, ties in vocabulary order."""
    items: list[CompletionItem] = []
    for candidate in vocabulary:
        candidate_score = score(query, candidate)
        if candidate_score <= 0:
            continue
        insert_text = candidate[len(query):] if candidate.startswith(query) else candidate
        items.append(CompletionItem(text=candidate, score=candidate_score, insert_text=insert_text))
    items.sort(key=lambda item: -item.score)
    return items


def completions_for_input(raw_input: str, vocabulary: Sequence[str] = KEYWORDS) -> list[CompletionItem]:
    query = completion_query(raw_input)
    if query is None:
        return []
    return rank(query, vocabulary)


def accept_completion(raw_input: str, item: CompletionItem) -> str:
    """Replace the open ``+`` token with ``item`` and start a new token."""
    query = completion_query(raw_input)
    if query is None:
        return raw_input
    if item.text.startswith(query):
        return raw_input + item.insert_text + " "
    return raw_input[: len(raw_input) - len(query)] + item.text + " "


__all__ = [
    "CompletionItem",
    "KEYWORDS",
    "accept_completion",
    "completion_query",
    "completions_for_input",
    "rank",
    "score",
]
