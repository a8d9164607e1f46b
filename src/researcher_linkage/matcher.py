"""Tiered name-match confidence.

``MATCH_RULES`` is the tier table: rules are tried in order and the first
predicate that holds decides the confidence and label. Keep the table sorted by
specificity; exact token evidence must win over statistical similarity.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable

from .institutions import canonical_institution
from .logger import get_logger
from .models import AuthorMatch, ConfidenceLevel, MatchResult, MatchType, NameParts
from .name_variants import are_variants, variants_of
from .names import extract_name_parts
from .similarity import dice_similarity

log = get_logger(__name__)

SIMILARITY_THRESHOLD = 0.9
LAST_NAME_LENGTH_TOLERANCE = 3

INSTITUTION_EXACT_BONUS = 15
INSTITUTION_PARTIAL_BONUS = 10
INSTITUTION_STOP_WORDS = frozenset({
    "of", "the", "and", "at", "in", "for", "university", "college", "institute",
})


@dataclass(frozen=True)
class MatchRule:
    label: MatchType
    confidence: int
    predicate: Callable[[NameParts, NameParts], bool]


def _same_last(a: NameParts, b: NameParts) -> bool:
    return bool(a.last) and a.last == b.last


def _both_first(a: NameParts, b: NameParts) -> bool:
    return bool(a.first) and bool(b.first)


def _all_parts(a: NameParts, b: NameParts) -> bool:
    return bool(a.first and a.last and b.first and b.last)


def _similar(a: NameParts, b: NameParts) -> bool:
    return dice_similarity(a.full, b.full) > SIMILARITY_THRESHOLD


def _initial_match(a: NameParts, b: NameParts) -> bool:
    return (
        _same_last(a, b)
        and _both_first(a, b)
        and a.first[0] == b.first[0]
        and (len(a.first) == 1 or len(b.first) == 1)
    )


def _partial_first(a: NameParts, b: NameParts) -> bool:
    return (
        _same_last(a, b)
        and _both_first(a, b)
        and (a.first.startswith(b.first) or b.first.startswith(a.first))
    )


def _last_name_only(a: NameParts, b: NameParts) -> bool:
    if not _same_last(a, b):
        return False
    # Two first names with different initials are evidence of two people
    if _both_first(a, b) and a.first[0] != b.first[0]:
        return False
    return abs(len(a.full) - len(b.full)) <= LAST_NAME_LENGTH_TOLERANCE


MATCH_RULES: tuple[MatchRule, ...] = (
    MatchRule(MatchType.EXACT, 100, lambda a, b: a.full == b.full),
    MatchRule(MatchType.FIRST_LAST_EXACT, 95, lambda a, b: _same_last(a, b) and a.first == b.first),
    MatchRule(
        MatchType.NAME_VARIANT, 90,
        lambda a, b: _same_last(a, b) and _both_first(a, b) and are_variants(a.first, b.first),
    ),
    MatchRule(MatchType.LAST_FIRST_INITIAL, 85, _initial_match),
    MatchRule(
        MatchType.NAME_ORDER_SWAP, 85,
        lambda a, b: _all_parts(a, b) and a.first == b.last and a.last == b.first,
    ),
    MatchRule(MatchType.HIGH_SIMILARITY, 80, lambda a, b: _same_last(a, b) and _similar(a, b)),
    MatchRule(MatchType.FULL_SIMILARITY, 75, _similar),
    MatchRule(
        MatchType.NAME_ORDER_SWAP_VARIANT, 75,
        lambda a, b: _all_parts(a, b) and (
            (a.last == b.first and are_variants(a.first, b.last))
            or (b.last == a.first and are_variants(b.first, a.last))
        ),
    ),
    MatchRule(MatchType.PARTIAL_FIRST, 60, _partial_first),
    MatchRule(MatchType.LAST_NAME_ONLY, 50, _last_name_only),
)


def match_parts(a: NameParts, b: NameParts) -> MatchResult:
    if not a.full or not b.full:
        return MatchResult.no_match()
    for rule in MATCH_RULES:
        if rule.predicate(a, b):
            return MatchResult(matches=True, confidence=rule.confidence, match_type=rule.label)
    return MatchResult.no_match()


def calculate_name_match(search_name: str | None, candidate_name: str | None) -> MatchResult:
    """Score how likely two name mentions refer to the same person."""
    return match_parts(extract_name_parts(search_name), extract_name_parts(candidate_name))


def adjust_confidence_for_institution(
    base_confidence: int,
    search_institution: str | None,
    candidate_institution: str | None,
) -> int:
    """Raise a name-match confidence when the two affiliations agree."""
    search_norm = canonical_institution(search_institution)
    candidate_norm = canonical_institution(candidate_institution)
    if not search_norm or not candidate_norm:
        return base_confidence

    if search_norm == candidate_norm:
        return min(100, base_confidence + INSTITUTION_EXACT_BONUS)
    if search_norm in candidate_norm or candidate_norm in search_norm:
        return min(100, base_confidence + INSTITUTION_PARTIAL_BONUS)

    def significant(text: str) -> set[str]:
        return {w for w in text.split() if w not in INSTITUTION_STOP_WORDS and len(w) > 2}

    if len(significant(search_norm) & significant(candidate_norm)) >= 2:
        return min(100, base_confidence + INSTITUTION_PARTIAL_BONUS)
    return base_confidence


def find_matches_in_authors(
    search_name: str,
    search_institution: str | None,
    authors: Iterable[str],
    min_confidence: int = 50,
    author_institution: str | None = None,
) -> list[AuthorMatch]:
    """Scan a flat author list (e.g. a retraction record) for the searched person."""
    matches: list[AuthorMatch] = []
    search_parts = extract_name_parts(search_name)
    for author in authors:
        result = match_parts(search_parts, extract_name_parts(author))
        if not result.matches or result.confidence < min_confidence:
            continue
        confidence = adjust_confidence_for_institution(
            result.confidence, search_institution, author_institution
        )
        matches.append(AuthorMatch(matched_name=author, confidence=confidence, match_type=result.match_type))
    if matches:
        log.debug("%s matched %d author(s): %s", search_name, len(matches), [m.matched_name for m in matches])
    return matches


def build_database_search_terms(name: str | None) -> list[str]:
    """Normalized name forms to look up in an author index, most specific first."""
    parts = extract_name_parts(name)
    if not parts.full:
        return []

    terms = [parts.full, parts.last]
    if parts.first and parts.last:
        terms.append(f"{parts.first} {parts.last}")
        terms.append(f"{parts.first[0]} {parts.last}")
        terms.append(f"{parts.last} {parts.first}")
        for variant in sorted(variants_of(parts.first)):
            if variant == parts.first:
                continue
            terms.append(f"{variant} {parts.last}")
            terms.append(f"{parts.last} {variant}")
            terms.append(f"{variant[0]} {parts.last}")

    return list(dict.fromkeys(terms))


def build_text_search_patterns(name: str | None) -> list[str]:
    """SQL ``LIKE`` patterns that tolerate middle names and reversed order."""
    parts = extract_name_parts(name)
    if not parts.first or not parts.last:
        return [f"%{parts.last}%"] if parts.last else []

    patterns = [f"%{parts.first}%{parts.last}%", f"%{parts.last}%{parts.first}%"]
    for variant in sorted(variants_of(parts.first)):
        if variant != parts.first:
            patterns.append(f"%{variant}%{parts.last}%")
            patterns.append(f"%{parts.last}%{variant}%")
    return list(dict.fromkeys(patterns))


def get_confidence_level(confidence: int) -> ConfidenceLevel:
    if confidence >= 90:
        return ConfidenceLevel.HIGH
    if confidence >= 70:
        return ConfidenceLevel.MEDIUM
    if confidence >= 50:
        return ConfidenceLevel.LOW
    return ConfidenceLevel.INSUFFICIENT
