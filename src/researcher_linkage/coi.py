"""Coauthorship conflict-of-interest checks."""

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, Optional, Sequence

from .config import Settings
from .logger import get_logger, log_context, log_extra
from .models import COIResult, CoauthorPaper, Coauthorship
from .search import GuardedSearch, PublicationSearch, build_joint_author_query, clean_name

log = get_logger(__name__)

ProgressCallback = Callable[[dict[str, Any]], None]

_PLACEHOLDER_NAMES = frozenset({"not specified", "unknown", "n/a"})


def _usable_names(names: Sequence[str] | None) -> list[tuple[str, str]]:
    usable = []
    for raw in names or []:
        cleaned = clean_name(raw)
        if cleaned and cleaned.lower() not in _PLACEHOLDER_NAMES:
            usable.append((raw, cleaned))
    return usable


def check_coi(
    candidate_name: str,
    other_names: Sequence[str] | None,
    search: PublicationSearch | None,
    settings: Optional[Settings] = None,
) -> COIResult:
    """Search for joint publications between a candidate and each other name.

    Any hit is a conflict; the paper count and a few sample papers are kept.
    """
    if search is None:
        raise ValueError("check_coi() requires a PublicationSearch collaborator")
    settings = settings or Settings()
    names = _usable_names(other_names)
    if not names or not clean_name(candidate_name):
        return COIResult(candidate_name=candidate_name or "")

    with log_context(candidate=candidate_name, stage="coi_check"):
        return _check_names(candidate_name, names, search, settings)


def _check_names(
    candidate_name: str,
    names: list[tuple[str, str]],
    search: PublicationSearch,
    settings: Settings,
) -> COIResult:
    guarded = search if isinstance(search, GuardedSearch) else GuardedSearch(
        search, settings.rate_limit.search_timeout_seconds
    )
    details: list[Coauthorship] = []
    try:
        for i, (raw, cleaned) in enumerate(names):
            if i and settings.rate_limit.delay > 0:
                time.sleep(settings.rate_limit.delay)

            query = build_joint_author_query(candidate_name, cleaned)
            try:
                papers = guarded.search(query, settings.coi.max_results)
            except Exception as e:
                log.warning("Coauthorship check failed for %s & %s: %s", candidate_name, raw, e)
                continue
            if not papers:
                continue

            details.append(Coauthorship(
                other_name=raw,
                paper_count=len(papers),
                papers=[
                    CoauthorPaper(title=p.title, year=p.year, pmid=p.pmid, url=p.url)
                    for p in papers[: settings.coi.sample_papers]
                ],
            ))
    finally:
        if guarded is not search:
            guarded.close()

    if details:
        log.info(
            "%s: coauthored with %d of %d names",
            candidate_name, len(details), len(names),
            extra=log_extra(others=[d.other_name for d in details]),
        )
    return COIResult(candidate_name=candidate_name, has_coi=bool(details), details=details)


async def check_coauthorships_for_candidates(
    candidates: Sequence[Any],
    other_names: Sequence[str] | None,
    search: PublicationSearch | None,
    settings: Optional[Settings] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> list[COIResult]:
    """Run ``check_coi`` for many candidates in rate-limited concurrent batches.

    ``candidates`` may be plain names or objects with a ``name`` attribute.
    Results come back in input order.
    """
    if search is None:
        raise ValueError("check_coauthorships_for_candidates() requires a PublicationSearch collaborator")
    settings = settings or Settings()
    names = [c if isinstance(c, str) else getattr(c, "name", "") or "" for c in candidates]

    if not _usable_names(other_names):
        return [COIResult(candidate_name=n) for n in names]

    batch_size = max(1, settings.rate_limit.coi_batch_size)
    pause = settings.rate_limit.delay * 2
    results: list[COIResult] = []

    with GuardedSearch(search, settings.rate_limit.search_timeout_seconds, max_workers=batch_size) as guarded:
        for start in range(0, len(names), batch_size):
            batch = names[start:start + batch_size]
            end = start + len(batch)
            if on_progress:
                on_progress({
                    "stage": "coi_check",
                    "status": "checking",
                    "message": f"Checking COI for candidates {start + 1}-{end} of {len(names)}...",
                })

            results.extend(await asyncio.gather(*(
                asyncio.to_thread(check_coi, name, other_names, guarded, settings)
                for name in batch
            )))

            if end < len(names) and pause > 0:
                await asyncio.sleep(pause)

    flagged = sum(1 for r in results if r.has_coi)
    log.info("COI check complete: %d of %d candidates have coauthorships", flagged, len(results))
    return results
