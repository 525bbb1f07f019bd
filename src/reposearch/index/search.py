"""Full-text search interface."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from reposearch.index.storage import SQLiteDocumentStore
from reposearch.utils.text import normalize_tokens, quote_token

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class SearchCondition:
    phrase: str
    attributes: Dict[str, str] = field(default_factory=dict)


def build_condition(
    tokens: Sequence[str] | None,
    repository: str | None = None,
    rev: str | None = None,
    content_type: str | None = None,
    all_words: bool = True,
) -> SearchCondition | None:
    """Translate tokens and optional filters into a store condition.

    Returns ``None`` when there is nothing to search for.
    """
    words = normalize_tokens(tokens)
    if not words:
        return None
    operator = " AND " if all_words else " OR "
    phrase = operator.join(quote_token(word) for word in words)
    LOGGER.info("Search phrase: %s", phrase)

    attributes: Dict[str, str] = {}
    if repository is not None:
        attributes["repository"] = repository
    if rev is not None:
        attributes["rev"] = rev
    if content_type is not None:
        attributes["content_type"] = content_type
    LOGGER.info("Search conditions: %s, %s, %s", repository, rev, content_type)
    return SearchCondition(phrase=phrase, attributes=attributes)


class Searcher:
    """High-level API to query the document store."""

    def __init__(self, store: SQLiteDocumentStore) -> None:
        self.store = store

    def search(
        self,
        tokens: Sequence[str] | None,
        repository: str | None = None,
        rev: str | None = None,
        content_type: str | None = None,
        *,
        all_words: bool = True,
    ) -> List[str]:
        condition = build_condition(tokens, repository, rev, content_type, all_words)
        if condition is None:
            return []
        return self.store.search(condition)
