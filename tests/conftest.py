from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable

import pytest

from researcher_linkage.config import RateLimitConfig, Settings
from researcher_linkage.models import Author, Publication


class FakeSearch:
    """In-memory PublicationSearch that records every query it receives.

    ``responder`` maps a query to the publications (or raw dicts) to return.
    """

    def __init__(self, responder: Callable[[str], list[Any]] | None = None):
        self.responder = responder or (lambda query: [])
        self.queries: list[tuple[str, int]] = []

    def search(self, query: str, max_results: int) -> list[Any]:
        self.queries.append((query, max_results))
        return list(self.responder(query))[:max_results]


def make_publication(
    pmid: str,
    authors: list[str] | list[Author],
    title: str = "A study",
    year: int | None = None,
    abstract: str | None = None,
    affiliation: str | None = None,
) -> Publication:
    author_models = [
        a if isinstance(a, Author) else Author(name=a, affiliation=affiliation)
        for a in authors
    ]
    return Publication(
        pmid=pmid,
        title=title,
        year=year if year is not None else current_year(),
        authors=author_models,
        abstract=abstract,
    )


def current_year() -> int:
    return datetime.now(timezone.utc).year


@pytest.fixture
def settings() -> Settings:
    """Settings with no request delay so tests never sleep."""
    return Settings(rate_limit=RateLimitConfig(delay_with_key=0.0, delay_without_key=0.0, search_timeout_seconds=5.0))


@pytest.fixture
def fake_search() -> FakeSearch:
    return FakeSearch()


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in ("NCBI_API_KEY", "LINKAGE_CONFIG", "LINKAGE_MIN_PUBLICATIONS", "LINKAGE_YEARS_LOOKBACK",
                "LINKAGE_LOG_LEVEL", "LOG_LEVEL", "LOG_FORMAT"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def search_factory() -> type[FakeSearch]:
    return FakeSearch


@pytest.fixture
def publication_factory() -> Callable[..., Publication]:
    return make_publication
