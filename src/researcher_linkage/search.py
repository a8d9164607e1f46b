"""The publication-search collaborator and the PubMed-style queries sent to it."""

from __future__ import annotations

import re
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import datetime, timezone
from typing import Any, Optional, Protocol, Sequence, runtime_checkable

from pydantic import ValidationError

from .logger import get_logger
from .models import Publication
from .names import to_first_last

log = get_logger(__name__)

_TITLE_PREFIX = re.compile(r"^(dr\.?|prof\.?|professor)\s+", re.IGNORECASE)
_PHRASE_SPLIT = re.compile(r"[\s,]+")


@runtime_checkable
class PublicationSearch(Protocol):
    """Free-text search against a bibliographic corpus.

    Implementations return ``[]`` for no results and should not raise on
    transport errors; ``GuardedSearch`` enforces that for ones that do.
    """

    def search(self, query: str, max_results: int) -> Sequence[Publication | dict[str, Any]]:
        ...


class GuardedSearch:
    """Wrap a ``PublicationSearch`` with a timeout and payload validation.

    Timeouts, exceptions and malformed records are logged and turned into
    empty (or shorter) result lists so callers only ever see ``Publication``s.
    """

    def __init__(self, inner: PublicationSearch, timeout: float = 30.0, max_workers: int = 4):
        self.inner = inner
        self.timeout = timeout
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="pubsearch")

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> "GuardedSearch":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def search(self, query: str, max_results: int) -> list[Publication]:
        future = self._executor.submit(self.inner.search, query, max_results)
        try:
            raw = future.result(timeout=self.timeout)
        except FutureTimeoutError:
            future.cancel()
            log.error("Search timed out after %.1fs: %s", self.timeout, query)
            return []
        except Exception as e:
            log.error("Search failed for %r: %s", query, e)
            return []

        return _coerce_publications(raw, query)


def _coerce_publications(raw: Any, query: str) -> list[Publication]:
    if not raw:
        return []
    if isinstance(raw, (str, bytes, dict)):
        log.error("Search returned a non-list payload for %r", query)
        return []

    publications: list[Publication] = []
    for item in raw:
        if isinstance(item, Publication):
            publications.append(item)
            continue
        try:
            publications.append(Publication.model_validate(item))
        except ValidationError as e:
            log.warning("Skipping malformed publication for %r: %s", query, e.errors()[:1])
    return publications


def clean_name(name: str | None) -> str:
    """Drop a leading ``Dr.``/``Prof.``/``Professor`` and surrounding whitespace."""
    if not name:
        return ""
    return _TITLE_PREFIX.sub("", name.strip()).strip()


def _date_filter(years_lookback: int, year: Optional[int]) -> str:
    current = year or datetime.now(timezone.utc).year
    return f"({current - years_lookback}:{current}[pdat])"


def build_author_query(name: str, years_lookback: int = 5, year: Optional[int] = None) -> str:
    return f"{clean_name(name)}[Author] AND {_date_filter(years_lookback, year)}"


def expertise_phrases(expertise: Sequence[str] | None, max_phrases: int = 2) -> list[str]:
    """First two words of each of the first ``max_phrases`` expertise areas."""
    phrases = []
    for area in list(expertise or [])[:max_phrases]:
        words = [w for w in _PHRASE_SPLIT.split(area or "") if w]
        phrase = " ".join(words[:2])
        if len(phrase) > 2:
            phrases.append(phrase)
    return phrases


def build_disambiguated_query(
    name: str,
    expertise: Sequence[str] | None,
    years_lookback: int = 5,
    max_phrases: int = 2,
    year: Optional[int] = None,
) -> str:
    """Author query narrowed by expertise phrases in title/abstract.

    Falls back to the plain author query when no usable phrase remains.
    """
    phrases = expertise_phrases(expertise, max_phrases)
    if not phrases:
        return build_author_query(name, years_lookback, year)

    topic = " OR ".join(f"({p}[Title/Abstract])" for p in phrases)
    return f"{clean_name(name)}[Author] AND ({topic}) AND {_date_filter(years_lookback, year)}"


def to_pubmed_author_format(name: str | None) -> str:
    """``Forest Rohwer`` -> ``Rohwer F``; single tokens pass through unchanged."""
    cleaned = clean_name(to_first_last(name))
    parts = cleaned.split()
    if len(parts) < 2:
        return cleaned
    return f"{parts[-1]} {parts[0][0].upper()}"


def build_joint_author_query(name1: str, name2: str) -> str:
    return f"{to_pubmed_author_format(name1)}[Author] AND {to_pubmed_author_format(name2)}[Author]"
