"""Cluster candidate mentions into researchers and merge each cluster."""

from __future__ import annotations

import math
import re
from typing import Iterable, Optional, Sequence

from .config import Settings
from .logger import get_logger
from .matcher import calculate_name_match
from .models import Candidate, MergedResearcher
from .names import normalize_name, to_first_last
from .similarity import dice_similarity

log = get_logger(__name__)

_NON_LETTER = re.compile(r"[^a-z\s]")
_WHITESPACE = re.compile(r"\s+")

CLAUDE_SOURCE = "claude"


def _simple_normalize(name: str) -> str:
    text = _NON_LETTER.sub("", name.lower())
    return _WHITESPACE.sub(" ", text).strip()


def _first_and_last(name: str) -> Optional[tuple[str, str]]:
    tokens = to_first_last(name).split()
    if len(tokens) < 2:
        return None
    return tokens[0].lower(), tokens[-1].lower()


def is_initials_match(name1: str, name2: str) -> bool:
    """``J. Smith`` vs ``John Smith``: same surname, one first token is an initial."""
    a = _first_and_last(name1)
    b = _first_and_last(name2)
    if not a or not b or a[1] != b[1]:
        return False

    first1 = a[0].replace(".", "")
    first2 = b[0].replace(".", "")
    if len(first1) == 1 and first2.startswith(first1):
        return True
    return len(first2) == 1 and first1.startswith(first2)


def is_partial_match(name1: str, name2: str) -> bool:
    """Same surname and one first name contains the other (``Chris``/``Christopher``)."""
    a = _first_and_last(name1)
    b = _first_and_last(name2)
    if not a or not b or a[1] != b[1]:
        return False
    return a[0] in b[0] or b[0] in a[0]


def are_names_similar(name1: Optional[str], name2: Optional[str], threshold: float = 0.85) -> bool:
    if not name1 or not name2:
        return False

    if calculate_name_match(name1, name2).matches:
        return True

    normalized1 = _simple_normalize(name1)
    normalized2 = _simple_normalize(name2)
    if normalized1 == normalized2:
        return True
    if dice_similarity(normalized1, normalized2) > threshold:
        return True

    return is_initials_match(name1, name2) or is_partial_match(name1, name2)


def group_candidates(
    candidates: Sequence[Candidate],
    settings: Optional[Settings] = None,
) -> list[list[Candidate]]:
    """Greedy single-pass clustering in input order.

    Each unprocessed candidate seeds a group and absorbs every later
    unprocessed candidate whose name is similar to the seed's.
    """
    threshold = (settings or Settings()).matching.group_similarity_threshold
    groups: list[list[Candidate]] = []
    processed: set[int] = set()

    for i, seed in enumerate(candidates):
        if i in processed:
            continue
        processed.add(i)
        group = [seed]

        for j in range(i + 1, len(candidates)):
            if j in processed:
                continue
            if are_names_similar(seed.name, candidates[j].name, threshold):
                group.append(candidates[j])
                processed.add(j)

        groups.append(group)

    log.debug("Grouped %d candidates into %d clusters", len(candidates), len(groups))
    return groups


def select_best(values: Iterable[Optional[str]]) -> Optional[str]:
    """Longest non-blank value; the first one wins ties."""
    best: Optional[str] = None
    for value in values:
        if not value or not value.strip():
            continue
        if best is None or len(value) > len(best):
            best = value
    return best


def merge_group(group: Sequence[Candidate]) -> Optional[MergedResearcher]:
    if not group:
        return None

    name = select_best(c.name for c in group)
    if not name:
        return None

    keywords: list[str] = []
    for candidate in group:
        for keyword in candidate.keywords:
            if keyword not in keywords:
                keywords.append(keyword)

    return MergedResearcher(
        name=name,
        normalized_name=normalize_name(name),
        affiliation=select_best(c.affiliation for c in group),
        email=select_best(c.email for c in group),
        website=select_best(c.website for c in group),
        h_index=max(c.h_index or 0 for c in group),
        total_citations=max(c.citations or 0 for c in group),
        sources={c.source for c in group if c.source},
        # Not deduplicated here; consumers dedupe by PMID/DOI
        publications=[p for c in group for p in c.publications],
        claude_reason=select_best(c.claude_reason for c in group),
        claude_suggested=any(c.source == CLAUDE_SOURCE for c in group),
        keywords=keywords,
    )


def deduplicate(
    candidates: Sequence[Candidate],
    settings: Optional[Settings] = None,
) -> list[MergedResearcher]:
    """Group then merge; one record per inferred real person."""
    merged: list[MergedResearcher] = []
    for group in group_candidates(candidates, settings):
        researcher = merge_group(group)
        if researcher is not None:
            merged.append(researcher)
    log.info("Deduplicated %d candidates into %d researchers", len(candidates), len(merged))
    return merged


def _relevance_score(researcher: MergedResearcher, keywords: Sequence[str]) -> float:
    score = 0.0
    if researcher.claude_suggested:
        score += 25
    score += min(len(researcher.publications) * 5, 20)
    score += min(researcher.h_index, 20)
    if researcher.total_citations > 0:
        score += min(math.log10(researcher.total_citations) * 5, 15)
    if researcher.affiliation:
        score += 10
    score += min((len(researcher.sources) or 1) * 5, 10)

    if keywords and researcher.keywords:
        own = [k.lower() for k in researcher.keywords]
        hits = [kw for kw in keywords if any(kw.lower() in k or k in kw.lower() for k in own)]
        score += min(len(hits) * 3, 10)
    return score


def rank_by_relevance(
    researchers: Iterable[MergedResearcher],
    proposal_keywords: Sequence[str] = (),
) -> list[MergedResearcher]:
    """Score each researcher and return copies sorted best first."""
    scored = [
        r.model_copy(update={"relevance_score": _relevance_score(r, proposal_keywords)})
        for r in researchers
    ]
    return sorted(scored, key=lambda r: r.relevance_score or 0.0, reverse=True)


def filter_by_minimum_qualifications(
    researchers: Iterable[MergedResearcher],
    min_h_index: int = 5,
) -> list[MergedResearcher]:
    return [r for r in researchers if r.h_index >= min_h_index]
