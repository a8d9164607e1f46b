"""Verify a claimed researcher against a publication corpus.

The verifier searches under several spellings of the name, keeps only papers
whose author list really contains the person, and then decides whether there
is enough recent work to call the identity verified. Verified results also
carry a representative affiliation, an expertise score and two mismatch flags
(institution, expertise) comparing what was claimed with what was found.
"""

from __future__ import annotations

import re
import time
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional, Sequence

from .config import Settings
from .logger import get_logger, log_context, log_extra
from .models import ExpertiseCheck, Publication, ReviewerSuggestion, VerificationResult
from .name_variants import formal_names_for
from .names import normalize_name, to_first_last
from .search import (
    GuardedSearch,
    PublicationSearch,
    build_author_query,
    build_disambiguated_query,
    clean_name,
)

log = get_logger(__name__)

ProgressCallback = Callable[[dict[str, Any]], None]

SCIENTIFIC_SYNONYMS: dict[str, tuple[str, ...]] = {
    "viral": ("virus", "virology", "viruses", "phage", "bacteriophage"),
    "virus": ("viral", "virology", "viruses", "phage"),
    "virology": ("viral", "virus", "viruses"),
    "ecology": ("ecological", "ecosystem"),
    "ecological": ("ecology", "ecosystem"),
    "marine": ("ocean", "oceanic", "aquatic", "sea"),
    "ocean": ("marine", "oceanic", "aquatic", "sea"),
    "microbial": ("microbe", "microbiome", "bacterial", "bacteria"),
    "microbe": ("microbial", "microbiome", "bacterial"),
    "bacteria": ("bacterial", "microbial", "microbe"),
    "bacterial": ("bacteria", "microbial", "microbe"),
    "evolution": ("evolutionary", "evolve", "evolved"),
    "evolutionary": ("evolution", "evolve"),
    "phage": ("bacteriophage", "viral", "virus"),
    "bacteriophage": ("phage", "viral", "virus"),
    "population": ("populations", "community", "communities"),
    "community": ("communities", "population", "populations"),
    "dynamics": ("dynamic", "interactions", "interaction"),
    "modeling": ("model", "models", "mathematical", "computational"),
    "model": ("modeling", "models", "mathematical"),
    "quantitative": ("mathematical", "computational", "modeling"),
}

# Each group lists spellings of one institution; any hit on both sides is agreement.
INSTITUTION_ALIASES: tuple[tuple[str, ...], ...] = (
    ("massachusetts institute of technology", "mit"),
    ("california institute of technology", "caltech"),
    ("university of california berkeley", "university of california, berkeley", "uc berkeley", "ucb", "berkeley"),
    ("university of california los angeles", "university of california, los angeles", "ucla"),
    ("university of california san francisco", "university of california, san francisco", "ucsf"),
    ("university of california san diego", "university of california, san diego", "ucsd"),
    ("university of california davis", "university of california, davis", "uc davis", "ucd"),
    ("university of california irvine", "university of california, irvine", "uc irvine", "uci"),
    ("university of california santa barbara", "university of california, santa barbara", "ucsb"),
    ("university of california santa cruz", "university of california, santa cruz", "ucsc"),
    ("stanford university", "stanford"),
    ("harvard university", "harvard medical school", "harvard"),
    ("yale university", "yale school of medicine", "yale"),
    ("princeton university", "princeton"),
    ("columbia university", "columbia"),
    ("cornell university", "weill cornell", "cornell"),
    ("university of pennsylvania", "upenn", "perelman school"),
    ("brandeis university", "brandeis"),
    ("rockefeller university", "rockefeller"),
    ("howard hughes medical institute", "hhmi", "janelia"),
    ("national institutes of health", "nih", "niehs", "nimh", "nci"),
    ("washington university in st. louis", "washington university in st louis", "wustl", "wash u"),
    ("university of michigan", "umich", "u-m"),
    ("university of washington", "uw", "u washington"),
    ("university of wisconsin", "uw-madison", "wisconsin"),
    ("johns hopkins", "jhu", "hopkins"),
    ("duke university", "duke"),
    ("university of north carolina", "unc", "unc-chapel hill"),
    ("emory university", "emory"),
    ("vanderbilt university", "vanderbilt"),
    ("northwestern university", "northwestern"),
    ("university of chicago", "uchicago", "u chicago"),
    ("new york university", "nyu"),
    ("boston university", "bu"),
    ("boston college", "bc"),
    ("university of pittsburgh", "pitt"),
    ("ohio state university", "osu", "ohio state"),
    ("pennsylvania state university", "penn state", "psu"),
    ("michigan state university", "msu", "michigan state"),
    ("university of virginia", "uva"),
    ("georgia institute of technology", "georgia tech", "gatech"),
    ("university of texas at austin", "ut austin"),
    ("scripps research", "scripps institute", "scripps"),
    ("salk institute", "salk"),
    ("broad institute", "broad institute of mit and harvard"),
    ("whitehead institute", "whitehead"),
    ("cold spring harbor", "cshl"),
    ("marine biological laboratory", "mbl", "woods hole"),
)

_ALIAS_PATTERNS: tuple[tuple[re.Pattern[str], ...], ...] = tuple(
    tuple(re.compile(rf"(?<![a-z]){re.escape(alias)}(?![a-z])") for alias in group)
    for group in INSTITUTION_ALIASES
)

_INSTITUTION_PATTERNS = tuple(
    re.compile(p)
    for p in (
        r"university of [\w\s]+",
        r"[\w\s]+ university",
        r"[\w\s]+ institute of technology",
        r"[\w\s]+ institute",
        r"[\w\s]+ college",
        r"[\w\s]+ school of medicine",
        r"[\w\s]+ medical school",
        r"[\w\s]+ medical center",
    )
)

_MISMATCH_STOP_WORDS = frozenset({
    "of", "the", "at", "in", "and", "for", "school", "department", "dept", "center", "centre",
    # Shared by unrelated institutions
    "university", "institute", "college", "medical", "medicine", "sciences", "research",
})

GENERIC_EXPERTISE_TERMS = frozenset({
    "biology", "research", "science", "study", "analysis", "methods",
    "molecular", "cellular", "genetic", "genomic", "protein", "proteins",
    "mechanism", "mechanisms", "function", "regulation", "development",
    "evolution", "evolutionary", "structure", "structural", "model", "models",
})

_KEYWORD_SPLIT = re.compile(r"[\s,]+")
_TERM_SPLIT = re.compile(r"[,;/]+")
_EMAIL = re.compile(r"\s*\.?\s*\S+@\S+")
_AFFILIATION_COUNTRY = re.compile(r",?\s*(usa|united states|uk|france|germany|canada)\.?$")
_AFFILIATION_CORE = re.compile(
    r"(university of [^,]+|[^,]+ university|[^,]+ institute of technology|[^,]+ institute)"
)

MIN_AFFILIATION_LENGTH = 10


def generate_name_variants(name: str | None) -> list[str]:
    """Spellings to search under: ``Will Harcombe`` -> William Harcombe, W Harcombe.

    A nickname first name adds its formal names; any first name longer than
    one letter adds the initial form.
    """
    cleaned = clean_name(to_first_last(name))
    parts = cleaned.split()
    if len(parts) < 2:
        return [cleaned] if cleaned else []

    first, rest = parts[0], " ".join(parts[1:])
    variants = [cleaned]
    for formal in formal_names_for(first):
        variants.append(f"{formal.capitalize()} {rest}")
    if len(first) > 1:
        variants.append(f"{first[0]} {rest}")
    return list(dict.fromkeys(variants))


def names_match(name1: str | None, name2: str | None) -> bool:
    """Relaxed author-list match.

    Last names must agree. First names then match if equal, if one is an
    initial (up to two letters) that prefixes the other, or if the initials
    agree and one side carries exactly one extra (middle) token. ``Will`` never
    matches ``Helen``.
    """
    tokens1 = normalize_name(name1).split()
    tokens2 = normalize_name(name2).split()
    if not tokens1 or not tokens2:
        return False
    if tokens1 == tokens2:
        return True
    if tokens1[-1] != tokens2[-1]:
        return False

    first1, first2 = tokens1[0], tokens2[0]
    if first1 == first2:
        return True
    if len(first1) <= 2 and first2.startswith(first1):
        return True
    if len(first2) <= 2 and first1.startswith(first2):
        return True
    return first1[0] == first2[0] and abs(len(tokens1) - len(tokens2)) == 1


def _author_matches(author_name: str, variants: Sequence[str]) -> bool:
    return any(names_match(variant, author_name) for variant in variants)


def filter_to_matching_author(
    publications: Iterable[Publication],
    variants: Sequence[str],
) -> list[Publication]:
    """Keep publications whose author list contains one of the name variants."""
    if not variants:
        return []
    return [
        pub for pub in publications
        if any(_author_matches(author.name, variants) for author in pub.authors)
    ]


def dedupe_by_identifier(publications: Iterable[Publication]) -> list[Publication]:
    seen: set[str] = set()
    unique = []
    for pub in publications:
        key = pub.identifier
        if key is None or key in seen:
            continue
        seen.add(key)
        unique.append(pub)
    return unique


def _expertise_keywords(expertise: Sequence[str] | None) -> list[str]:
    words = []
    for area in expertise or []:
        words.extend(w for w in _KEYWORD_SPLIT.split((area or "").lower()) if len(w) > 3)
    return list(dict.fromkeys(words))


def filter_by_expertise_relevance(
    publications: Sequence[Publication],
    expertise: Sequence[str] | None,
) -> list[Publication]:
    keywords = _expertise_keywords(expertise)
    if not keywords:
        return list(publications)
    return [pub for pub in publications if any(kw in pub.search_text for kw in keywords)]


def select_final_publications(
    simple: Sequence[Publication],
    disambiguated: Sequence[Publication],
    expertise: Sequence[str] | None,
    min_publications: int = 3,
) -> tuple[list[Publication], str]:
    """Pick the publication set to judge, returning it with the reason it was chosen.

    Preference: the disambiguated set, then the expertise-relevant part of the
    simple set, then the whole simple set, then whichever is larger.
    """
    if len(disambiguated) >= min_publications:
        return list(disambiguated), "disambiguated"
    if len(simple) >= min_publications:
        relevant = filter_by_expertise_relevance(simple, expertise)
        if len(relevant) >= min_publications:
            return relevant, "relevantSimple"
        return list(simple), "simple"
    if len(simple) > len(disambiguated):
        return list(simple), "fallback"
    return list(disambiguated), "fallback"


def normalize_affiliation_for_comparison(affiliation: str | None) -> str:
    """Reduce an affiliation line to its institution so repeats can be counted."""
    if not affiliation:
        return ""
    normalized = _EMAIL.sub("", affiliation.lower())
    normalized = _AFFILIATION_COUNTRY.sub("", normalized.strip())
    match = _AFFILIATION_CORE.search(normalized)
    if match:
        return match.group(1).strip()
    return normalized[:50].strip()


def _affiliation_text(author: Any) -> Optional[str]:
    if author.affiliation:
        return author.affiliation
    return author.all_affiliations[0] if author.all_affiliations else None


def extract_best_affiliation(
    publications: Iterable[Publication],
    variants: Sequence[str],
) -> Optional[str]:
    """Most frequent affiliation of the matched author, not the most recent.

    Each publication contributes at most one appearance. Ties go to the
    affiliation seen first; the full text of its first occurrence is returned.
    """
    counts: Counter[str] = Counter()
    full_text: dict[str, str] = {}

    for pub in publications:
        for author in pub.authors:
            if not _author_matches(author.name, variants):
                continue
            text = _affiliation_text(author)
            if text and len(text) > MIN_AFFILIATION_LENGTH:
                key = normalize_affiliation_for_comparison(text)
                counts[key] += 1
                full_text.setdefault(key, text)
            break

    best_key = None
    best_count = 0
    for key in full_text:
        if counts[key] > best_count:
            best_key, best_count = key, counts[key]
    return full_text[best_key] if best_key is not None else None


def calculate_expertise_match(
    publications: Sequence[Publication],
    expertise: Sequence[str] | None,
    neutral: float = 0.5,
) -> float:
    """Share of publications touching the claimed expertise, plus a small density bonus."""
    if not expertise:
        return neutral
    if not publications:
        return 0.0

    keywords: list[str] = []
    for word in _expertise_keywords(expertise):
        keywords.append(word)
        keywords.extend(SCIENTIFIC_SYNONYMS.get(word, ()))
    keywords = list(dict.fromkeys(keywords))

    matching = 0
    total_hits = 0
    for pub in publications:
        text = pub.search_text
        hits = sum(1 for kw in keywords if kw in text)
        if hits:
            matching += 1
            total_hits += hits

    base = matching / len(publications)
    bonus = min(0.2, (total_hits / len(publications)) * 0.05)
    return round(min(1.0, base + bonus), 2)


def _contains_phrase(text: str, phrase: str) -> bool:
    return re.search(rf"(?<![a-z]){re.escape(phrase)}(?![a-z])", text) is not None


def _extract_institution(text: str) -> str:
    for pattern in _INSTITUTION_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(0).strip()
    return text


def _mismatch_words(text: str) -> list[str]:
    words = [w for w in text.split() if len(w) > 2 and w not in _MISMATCH_STOP_WORDS]
    return [re.sub(r"[^a-z]", "", w) for w in words]


def check_institution_mismatch(affiliation: str | None, claimed_institution: str | None) -> bool:
    """True when the found affiliation and the claimed institution look like different places.

    Without both values there is nothing to compare and no mismatch is reported.
    """
    if not affiliation or not claimed_institution:
        return False

    found = affiliation.lower()
    claimed = claimed_institution.lower().strip()
    if _contains_phrase(found, claimed):
        return False

    for patterns in _ALIAS_PATTERNS:
        if any(p.search(found) for p in patterns) and any(p.search(claimed) for p in patterns):
            return False

    found_inst = _extract_institution(found)
    claimed_inst = _extract_institution(claimed)
    if _contains_phrase(claimed_inst, found_inst) or _contains_phrase(found_inst, claimed_inst):
        return False

    common = set(_mismatch_words(found_inst)) & set(_mismatch_words(claimed_inst))
    return not any(len(w) > 4 for w in common)


def _specific_terms(expertise: Sequence[str]) -> list[str]:
    terms: list[str] = []
    for area in expertise:
        for part in _TERM_SPLIT.split((area or "").lower()):
            words = [w for w in part.split() if len(w) > 3]
            terms.extend(words)
            if 2 <= len(words) <= 3:
                terms.append(" ".join(words))
    return list(dict.fromkeys(t for t in terms if len(t) > 4 and t not in GENERIC_EXPERTISE_TERMS))


def check_expertise_mismatch(
    publications: Sequence[Publication],
    expertise: Sequence[str] | None,
) -> ExpertiseCheck:
    """Flag claimed expertise whose specific terms appear in none of the publications."""
    if not expertise:
        return ExpertiseCheck(has_mismatch=False)
    if not publications:
        return ExpertiseCheck(has_mismatch=True, claimed_terms=list(expertise))

    claimed_terms = _specific_terms(expertise)
    if not claimed_terms:
        return ExpertiseCheck(has_mismatch=False)

    corpus = " ".join(pub.search_text for pub in publications)
    matched = [term for term in claimed_terms if term in corpus]
    return ExpertiseCheck(has_mismatch=not matched, claimed_terms=claimed_terms, matched_terms=matched)


def count_recent_publications(
    publications: Iterable[Publication],
    years_lookback: int = 5,
    year: Optional[int] = None,
) -> int:
    cutoff = (year or datetime.now(timezone.utc).year) - years_lookback
    return sum(1 for pub in publications if (pub.year or 0) >= cutoff)


class PublicationVerifier:
    """Drive the searches and decisions needed to verify one claimed researcher."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()

    def _pause(self) -> None:
        delay = self.settings.rate_limit.delay
        if delay > 0:
            time.sleep(delay)

    def _run_search(self, search: GuardedSearch, query: str, max_results: int, label: str) -> list[Publication]:
        try:
            results = search.search(query, max_results)
        except Exception as e:
            log.error("%s search failed for %r: %s", label, query, e)
            return []
        log.debug("%s search returned %d publications: %s", label, len(results), query)
        return results

    def verify(
        self,
        claimed_name: str,
        claimed_expertise: Sequence[str] | None,
        claimed_institution: str | None,
        search: PublicationSearch | None,
    ) -> VerificationResult:
        if search is None:
            raise ValueError("verify() requires a PublicationSearch collaborator")

        owned = not isinstance(search, GuardedSearch)
        guarded = GuardedSearch(search, self.settings.rate_limit.search_timeout_seconds) if owned else search
        try:
            with log_context(candidate=claimed_name, stage="verification"):
                return self._verify(claimed_name, list(claimed_expertise or []), claimed_institution, guarded)
        finally:
            if owned:
                guarded.close()

    def _verify(
        self,
        claimed_name: str,
        expertise: list[str],
        claimed_institution: str | None,
        search: GuardedSearch,
    ) -> VerificationResult:
        cfg = self.settings.verification
        variants = generate_name_variants(claimed_name)
        if not variants:
            log.warning("Cannot verify a candidate without a name")
            return VerificationResult(name=claimed_name or "", verified=False, reason="No name to verify")

        simple: list[Publication] = []
        disambiguated: list[Publication] = []
        first_request = True
        for variant in variants:
            queries = (
                (simple, build_author_query(variant, cfg.years_lookback), cfg.simple_max_results, "Simple"),
                (
                    disambiguated,
                    build_disambiguated_query(variant, expertise, cfg.years_lookback, cfg.max_expertise_phrases),
                    cfg.disambiguated_max_results,
                    "Disambiguated",
                ),
            )
            for pool, query, max_results, label in queries:
                if not first_request:
                    self._pause()
                first_request = False
                pool.extend(self._run_search(search, query, max_results, label))

        simple_matched = dedupe_by_identifier(filter_to_matching_author(simple, variants))
        disambiguated_matched = dedupe_by_identifier(filter_to_matching_author(disambiguated, variants))
        log.debug(
            "%s: simple %d -> %d, disambiguated %d -> %d after author filter and dedupe",
            claimed_name, len(simple), len(simple_matched), len(disambiguated), len(disambiguated_matched),
        )

        final, selection = select_final_publications(
            simple_matched, disambiguated_matched, expertise, cfg.min_publications
        )
        recent = count_recent_publications(final, cfg.years_lookback)

        if len(final) < cfg.min_publications:
            reason = (
                "No publications found matching expertise"
                if not final
                else f"Only {len(final)} relevant publications (minimum: {cfg.min_publications})"
            )
            log.info("%s: rejected, %s", claimed_name, reason, extra=log_extra(selection=selection))
            return VerificationResult(
                name=claimed_name,
                verified=False,
                reason=reason,
                selection=selection,
                publication_count_5yr=recent,
            )

        affiliation = extract_best_affiliation(final, variants)
        confidence = calculate_expertise_match(final, expertise, cfg.expertise_neutral_confidence)
        institution_mismatch = check_institution_mismatch(affiliation, claimed_institution)
        expertise_check = check_expertise_mismatch(final, expertise)

        log.info(
            "%s: verified with %d publications (confidence %d%%)",
            claimed_name, len(final), round(confidence * 100),
            extra=log_extra(selection=selection, affiliation=affiliation),
        )
        if institution_mismatch:
            log.warning(
                "%s: institution mismatch, claimed %r but publications show %r",
                claimed_name, claimed_institution, affiliation,
            )
        if expertise_check.has_mismatch:
            log.warning(
                "%s: expertise mismatch, none of %s appear in publications",
                claimed_name, expertise_check.claimed_terms,
            )

        return VerificationResult(
            name=claimed_name,
            verified=True,
            confidence=confidence,
            affiliation=affiliation,
            institution_mismatch=institution_mismatch,
            expertise_mismatch=expertise_check.has_mismatch,
            publication_count_5yr=recent,
            selection=selection,
            claimed_terms=expertise_check.claimed_terms,
            matched_terms=expertise_check.matched_terms,
            publications=final[: cfg.sample_publications],
        )

    def verify_suggestions(
        self,
        suggestions: Iterable[ReviewerSuggestion | dict[str, Any]],
        search: PublicationSearch | None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> tuple[list[VerificationResult], list[VerificationResult]]:
        """Verify a batch of suggested reviewers one after another.

        Returns ``(verified, unverified)``.
        """
        if search is None:
            raise ValueError("verify_suggestions() requires a PublicationSearch collaborator")

        items = [
            s if isinstance(s, ReviewerSuggestion) else ReviewerSuggestion.model_validate(s)
            for s in suggestions
        ]
        verified: list[VerificationResult] = []
        unverified: list[VerificationResult] = []
        log.info("Starting verification of %d candidates", len(items))

        owned = not isinstance(search, GuardedSearch)
        guarded = GuardedSearch(search, self.settings.rate_limit.search_timeout_seconds) if owned else search
        try:
            for i, suggestion in enumerate(items, start=1):
                if i > 1:
                    self._pause()
                if on_progress:
                    on_progress({
                        "stage": "verification",
                        "status": "verifying",
                        "message": f"Verifying {suggestion.name} ({i}/{len(items)})...",
                    })
                result = self.verify(
                    suggestion.name,
                    suggestion.expertise_areas,
                    suggestion.suggested_institution,
                    guarded,
                )
                (verified if result.verified else unverified).append(result)
        finally:
            if owned:
                guarded.close()

        log.info("Verification complete: %d verified, %d unverified", len(verified), len(unverified))
        return verified, unverified
