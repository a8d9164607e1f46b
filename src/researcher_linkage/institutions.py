"""Institution canonicalization and equivalence."""

from __future__ import annotations

import re
from typing import Iterable, Sequence, TypeVar

from .logger import get_logger
from .names import normalize_name
from .similarity import dice_similarity

log = get_logger(__name__)

# Applied in a single pass, longest key first, so expansions are never re-expanded.
INSTITUTION_ABBREVIATIONS: dict[str, str] = {
    "uc": "university of california",
    "ucla": "university of california los angeles",
    "ucsf": "university of california san francisco",
    "ucsd": "university of california san diego",
    "ucsb": "university of california santa barbara",
    "ucsc": "university of california santa cruz",
    "uci": "university of california irvine",
    "ucd": "university of california davis",
    "ucr": "university of california riverside",
    "uc berkeley": "university of california berkeley",
    "mit": "massachusetts institute of technology",
    "caltech": "california institute of technology",
    "cmu": "carnegie mellon university",
    "gatech": "georgia institute of technology",
    "georgia tech": "georgia institute of technology",
    "jhu": "johns hopkins university",
    "nyu": "new york university",
    "upenn": "university of pennsylvania",
    "penn state": "pennsylvania state university",
    "psu": "pennsylvania state university",
    "osu": "ohio state university",
    "msu": "michigan state university",
    "umich": "university of michigan",
    "uw-madison": "university of wisconsin madison",
    "uw madison": "university of wisconsin madison",
    "uw": "university of washington",
    "unc": "university of north carolina",
    "uchicago": "university of chicago",
    "ut austin": "university of texas at austin",
    "utsw": "university of texas southwestern medical center",
    "uva": "university of virginia",
    "usc": "university of southern california",
    "wustl": "washington university in st louis",
    "hhmi": "howard hughes medical institute",
    "nih": "national institutes of health",
    "nci": "national cancer institute",
    "cshl": "cold spring harbor laboratory",
    "mbl": "marine biological laboratory",
    "embl": "european molecular biology laboratory",
    "mskcc": "memorial sloan kettering cancer center",
    "mgh": "massachusetts general hospital",
    "epfl": "ecole polytechnique federale de lausanne",
    "ethz": "eth zurich",
    "ucl": "university college london",
    "kaist": "korea advanced institute of science and technology",
    "rpi": "rensselaer polytechnic institute",
    "univ": "university",
    "inst": "institute",
}

_ABBREVIATION_RE = re.compile(
    r"\b("
    + "|".join(re.escape(k) for k in sorted(INSTITUTION_ABBREVIATIONS, key=len, reverse=True))
    + r")\b"
)

# Strip "Department of X, " style prefixes. Without a comma the prefix is only
# removed when "University of" or "College of" follows, so a bare
# "Center for Cancer Research" is left alone. "Institute of" is never a stop:
# the proper name sits before it ("California Institute of Technology").
_DEPARTMENT_PREFIX = re.compile(
    r"^(?:department|dept|school|division|center|centre)\.?\s+(?:of|for)\s+"
    r".*?(?:,\s*|\s+(?=(?:the\s+)?(?:university|college)\s+of\b))"
)
_COUNTRY_SUFFIX = re.compile(
    r"(?:,\s*|\s+)(?:usa|united states(?: of america)?|u\.s\.(?:a\.?)?)\.?\s*$"
)
_NON_LETTER = re.compile(r"[^a-z\s]")
_WHITESPACE = re.compile(r"\s+")

MATCH_STOP_WORDS = frozenset({"of", "the", "and", "at", "in", "for"})
SIGNIFICANT_SHORT_WORDS = frozenset({"am"})
# Words that turn a generic name into a different institution
# ("University of Michigan" vs "Michigan State University").
CONFLICTING_WORDS = frozenset({"state", "tech", "polytechnic", "community", "medical", "health", "am"})


def normalize_institution(institution: str | None) -> str:
    if not institution:
        return ""

    normalized = institution.lower().strip()
    normalized = _DEPARTMENT_PREFIX.sub("", normalized, count=1)
    normalized = _COUNTRY_SUFFIX.sub("", normalized)
    normalized = _NON_LETTER.sub("", normalized)
    return _WHITESPACE.sub(" ", normalized).strip()


def expand_abbreviations(institution: str | None) -> str:
    """Expand well-known institution abbreviations (``MIT``, ``UCLA``, ``HHMI``...)."""
    if not institution:
        return ""
    return _ABBREVIATION_RE.sub(lambda m: INSTITUTION_ABBREVIATIONS[m.group(1)], institution.lower())


def canonical_institution(institution: str | None) -> str:
    return normalize_institution(expand_abbreviations(institution))


def significant_words(normalized: str) -> list[str]:
    return [
        w for w in normalized.split()
        if (len(w) > 2 or w in SIGNIFICANT_SHORT_WORDS) and w not in MATCH_STOP_WORDS
    ]


def _contains_words(haystack: str, needle: str) -> bool:
    return f" {needle} " in f" {haystack} "


def institutions_match(inst1: str | None, inst2: str | None) -> bool:
    """Decide whether two affiliation strings name the same institution.

    Checks run from cheapest to loosest and stop at the first positive:
    raw equality, equality after abbreviation expansion, whole-word
    containment, identical significant-word multisets, then a proper subset
    of at least two words that does not drop a conflicting word. A Dice
    similarity above 0.9 is the last resort.
    """
    if not inst1 or not inst2:
        return False
    if inst1 == inst2:
        return True

    norm1 = canonical_institution(inst1)
    norm2 = canonical_institution(inst2)
    if not norm1 or not norm2:
        return False
    if norm1 == norm2:
        return True
    if _contains_words(norm1, norm2) or _contains_words(norm2, norm1):
        return True

    words1 = significant_words(norm1)
    words2 = significant_words(norm2)
    if sorted(words1) == sorted(words2):
        return True

    shorter, longer = (words1, words2) if len(words1) <= len(words2) else (words2, words1)
    if any(w in CONFLICTING_WORDS and w not in shorter for w in longer):
        return False
    if len(shorter) >= 2 and all(w in longer for w in shorter):
        return True

    return dice_similarity(norm1, norm2) > 0.9


T = TypeVar("T")


def filter_conflicts(
    researchers: Sequence[T],
    author_institution: str | None,
    exclude_names: Iterable[str] = (),
) -> list[T]:
    """Drop researchers who share the proposal author's institution or are excluded by name.

    Works on anything with ``name`` and ``affiliation`` attributes.
    """
    if not author_institution:
        return list(researchers)

    excluded = {normalize_name(n) for n in exclude_names if n}
    kept: list[T] = []
    for researcher in researchers:
        affiliation = getattr(researcher, "affiliation", None)
        name = getattr(researcher, "name", None)
        if affiliation and institutions_match(author_institution, affiliation):
            log.debug("Excluding %s: same institution as author (%s)", name, affiliation)
            continue
        if normalize_name(name) in excluded:
            log.debug("Excluding %s: listed in exclusions", name)
            continue
        kept.append(researcher)
    return kept
