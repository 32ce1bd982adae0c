"""Filter language for the repository list.

Tokens are separated by single spaces. ``+path`` searches full paths instead
of names, ``+match_case`` disables case folding, and ``+<Status>`` restricts
statuses. Everything else, including unknown ``+`` tokens, is a search term
that must appear in the chosen field.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from .repository import Repository, RepoStatus

PATH_TOKEN = "+path"
MATCH_CASE_TOKEN = "+match_case"
KEYWORD_PREFIX = "+"


@dataclass(frozen=True)
class FilterQuery:
    status_filters: frozenset[RepoStatus] = frozenset()
    use_path_search: bool = False
    use_match_case: bool = False
    residual_terms: tuple[str, ...] = ()
    match_all: bool = False

    def matches(self, repo: Repository) -> bool:
        if self.match_all:
            return True
        if self.status_filters and repo.status not in self.status_filters:
            return False

        field = str(repo.path) if self.use_path_search else repo.name
        terms = self.residual_terms
        if not self.use_match_case:
            field = field.casefold()
            terms = tuple(term.casefold() for term in terms)
        return all(term in field for term in terms)


MATCH_ALL = FilterQuery(match_all=True)


def parse(raw_input: str) -> FilterQuery:
    """Parse filter input into a ``FilterQuery``; empty input matches everything."""
    if not raw_input:
        return MATCH_ALL

    status_filters: set[RepoStatus] = set()
    use_path_search = False
    use_match_case = False
    residual_terms: list[str] = []
    for token in raw_input.split(" "):
        if not token:
            continue
        if token == PATH_TOKEN:
            use_path_search = True
            continue
        if token == MATCH_CASE_TOKEN:
            use_match_case = True
            continue
        if len(token) > 1 and token.startswith(KEYWORD_PREFIX):
            status = RepoStatus.from_name(token[1:])
            if status is not None:
                status_filters.add(status)
                continue
        residual_terms.append(token)

    return FilterQuery(
        status_filters=frozenset(status_filters),
        use_path_search=use_path_search,
        use_match_case=use_match_case,
        residual_terms=tuple(residual_terms),
    )


def filter_repositories(repositories: Iterable[Repository], raw_input: str) -> list[Repository]:
    """Return repositories accepted by ``raw_input``, preserving order."""
    query = parse(raw_input)
    return [repo for repo in repositories if query.matches(repo)]


__all__ = [
    "FilterQuery",
    "KEYWORD_PREFIX",
    "MATCH_ALL",
    "MATCH_CASE_TOKEN",
    "PATH_TOKEN",
    "filter_repositories",
    "parse",
]
