"""Tests for publication-based verification of claimed researchers."""

from datetime import datetime, timezone

import pytest

from researcher_linkage.models import Author, Publication, ReviewerSuggestion
from researcher_linkage.search import build_author_query
from researcher_linkage.verification import (
    PublicationVerifier,
    calculate_expertise_match,
    check_expertise_mismatch,
    check_institution_mismatch,
    count_recent_publications,
    dedupe_by_identifier,
    extract_best_affiliation,
    filter_by_expertise_relevance,
    filter_to_matching_author,
    generate_name_variants,
    names_match,
    normalize_affiliation_for_comparison,
    select_final_publications,
)

MINNESOTA = "Department of Plant and Microbial Biology, University of Minnesota, St Paul, MN"
SANTA_FE = "Visiting Scholar Program, Santa Fe Institute, Santa Fe, NM"

HARCOMBE_TITLES = [
    "Metabolic cross-feeding shapes microbial community assembly",
    "Phage predation alters community ecology in a synthetic consortium",
    "Microbial communities evolve cooperation under nutrient limitation",
]


@pytest.fixture
def harcombe_papers(publication_factory):
    return [
        publication_factory(str(100 + i), ["Jane Roe", "William Harcombe"], title=title, affiliation=MINNESOTA)
        for i, title in enumerate(HARCOMBE_TITLES)
    ]


@pytest.fixture
def helen_paper(publication_factory):
    return publication_factory("999", ["Helen Harcombe"], title="Cardiac surgery outcomes")


class TestNameVariants:
    """Test search spellings."""

    def test_nickname_expansion(self):
        assert generate_name_variants("Dr. Will Harcombe") == [
            "Will Harcombe", "William Harcombe", "W Harcombe",
        ]

    def test_formal_name_not_expanded(self):
        assert generate_name_variants("William Harcombe") == ["William Harcombe", "W Harcombe"]

    def test_last_first_input(self):
        variants = generate_name_variants("Harcombe, Will")
        assert variants == ["Will Harcombe", "William Harcombe", "W Harcombe"]
        assert not names_match(variants[-1], "Helen Will")

    def test_single_token(self):
        assert generate_name_variants("Harcombe") == ["Harcombe"]
        assert generate_name_variants("") == []


class TestAuthorFilter:
    """Test the relaxed author-list match used to drop same-surname hits."""

    @pytest.mark.parametrize("a, b", [
        ("W Harcombe", "William Harcombe"),
        ("William R Harcombe", "William Harcombe"),
        ("Wm R Harcombe", "William Harcombe"),
        ("Harcombe, William", "William Harcombe"),
    ])
    def test_matches(self, a, b):
        assert names_match(a, b)
        assert names_match(b, a)

    @pytest.mark.parametrize("a, b", [
        ("Will Harcombe", "Helen Harcombe"),
        ("John Smith", "Jane Smith"),
        ("William Harcombe", "William Hartley"),
        ("", "William Harcombe"),
    ])
    def test_rejects(self, a, b):
        assert not names_match(a, b)

    def test_filter_drops_other_people(self, harcombe_papers, helen_paper):
        variants = generate_name_variants("Will Harcombe")
        kept = filter_to_matching_author(harcombe_papers + [helen_paper], variants)
        assert [p.pmid for p in kept] == ["100", "101", "102"]

    def test_filter_without_variants(self, harcombe_papers):
        assert filter_to_matching_author(harcombe_papers, []) == []


class TestPublicationSets:
    """Test dedupe and final-set selection."""

    def test_dedupe_by_identifier(self):
        pubs = [
            Publication(title="A", pmid="1"),
            Publication(title="A again", pmid="1"),
            Publication(title="B", doi="10.1/XYZ"),
            Publication(title="B copy", doi="10.1/xyz"),
            Publication(title="C"),
            Publication(title=""),
        ]
        assert [p.title for p in dedupe_by_identifier(pubs)] == ["A", "B", "C"]

    def test_expertise_relevance(self):
        pubs = [Publication(title="Phage ecology", pmid="1"), Publication(title="Heart surgery", pmid="2")]
        assert [p.pmid for p in filter_by_expertise_relevance(pubs, ["phage biology"])] == ["1"]
        assert len(filter_by_expertise_relevance(pubs, [])) == 2

    def _pubs(self, n, title="Unrelated"):
        return [Publication(title=title, pmid=f"{title}-{i}") for i in range(n)]

    def test_prefers_disambiguated(self):
        final, reason = select_final_publications(self._pubs(5), self._pubs(3, "d"), ["phage"])
        assert reason == "disambiguated"
        assert len(final) == 3

    def test_relevant_simple(self):
        simple = self._pubs(3, "phage ecology") + self._pubs(2)
        final, reason = select_final_publications(simple, self._pubs(1, "d"), ["phage ecology"])
        assert reason == "relevantSimple"
        assert len(final) == 3

    def test_simple_when_relevant_too_small(self):
        simple = self._pubs(1, "phage ecology") + self._pubs(3)
        final, reason = select_final_publications(simple, [], ["phage ecology"])
        assert reason == "simple"
        assert len(final) == 4

    def test_fallback_to_larger(self):
        final, reason = select_final_publications(self._pubs(2), self._pubs(1, "d"), [])
        assert (reason, len(final)) == ("fallback", 2)
        final, _ = select_final_publications(self._pubs(1), self._pubs(1, "d"), [])
        assert final[0].title == "d"


class TestAffiliation:
    """Test representative affiliation extraction."""

    def test_normalize_for_comparison(self):
        assert normalize_affiliation_for_comparison(
            "Department of Biology, University of Minnesota, St Paul, MN 55108, USA. harcombe@umn.edu"
        ) == "university of minnesota"
        assert normalize_affiliation_for_comparison(None) == ""

    def test_most_frequent_not_most_recent(self, publication_factory):
        year = datetime.now(timezone.utc).year
        pubs = [
            publication_factory("1", ["William Harcombe"], year=year, affiliation=SANTA_FE),
            publication_factory("2", ["William Harcombe"], year=year - 1, affiliation=MINNESOTA),
            publication_factory("3", ["W Harcombe"], year=year - 2, affiliation=MINNESOTA),
        ]
        assert extract_best_affiliation(pubs, ["Will Harcombe", "William Harcombe"]) == MINNESOTA

    def test_tie_goes_to_first_seen(self, publication_factory):
        pubs = [
            publication_factory("1", ["William Harcombe"], affiliation=SANTA_FE),
            publication_factory("2", ["William Harcombe"], affiliation=MINNESOTA),
        ]
        assert extract_best_affiliation(pubs, ["William Harcombe"]) == SANTA_FE

    def test_ignores_other_authors_and_short_values(self):
        pubs = [Publication(pmid="1", authors=[
            Author(name="Jane Roe", affiliation=SANTA_FE),
            Author(name="William Harcombe", affiliation="UMN"),
        ])]
        assert extract_best_affiliation(pubs, ["William Harcombe"]) is None

    def test_uses_all_affiliations(self):
        pubs = [Publication(pmid="1", authors=[
            Author(name="William Harcombe", allAffiliations=[MINNESOTA, SANTA_FE]),
        ])]
        assert extract_best_affiliation(pubs, ["William Harcombe"]) == MINNESOTA


class TestExpertise:
    """Test expertise scoring and mismatch detection."""

    def test_neutral_without_claims(self):
        assert calculate_expertise_match([Publication(title="x", pmid="1")], []) == 0.5

    def test_zero_without_publications(self):
        assert calculate_expertise_match([], ["phage"]) == 0.0

    def test_partial_match_with_bonus(self):
        pubs = [Publication(title="Phage ecology", pmid="1"), Publication(title="Unrelated topic", pmid="2")]
        # 1 of 2 hit (0.5) plus 0.05 * (2 hits / 2 pubs)
        assert calculate_expertise_match(pubs, ["viral ecology"]) == pytest.approx(0.55)

    def test_capped_at_one(self):
        pubs = [Publication(title="Marine viral ecology of ocean phage", pmid="1")]
        assert calculate_expertise_match(pubs, ["marine viral ecology"]) == 1.0

    def test_expertise_mismatch(self):
        pubs = [Publication(title="Cardiac surgery outcomes", pmid="1")]
        check = check_expertise_mismatch(pubs, ["bacteriophage ecology"])
        assert check.has_mismatch
        assert "bacteriophage" in check.claimed_terms
        assert check.matched_terms == []

    def test_expertise_found(self):
        pubs = [Publication(title="Bacteriophage dynamics", pmid="1")]
        check = check_expertise_mismatch(pubs, ["bacteriophage ecology"])
        assert not check.has_mismatch
        assert check.matched_terms == ["bacteriophage"]

    def test_generic_terms_never_mismatch(self):
        pubs = [Publication(title="Cardiac surgery outcomes", pmid="1")]
        assert not check_expertise_mismatch(pubs, ["biology", "protein"]).has_mismatch

    def test_no_claims(self):
        assert not check_expertise_mismatch([], []).has_mismatch


class TestInstitutionMismatch:
    """Test claimed vs found institution comparison."""

    @pytest.mark.parametrize("found, claimed", [
        (MINNESOTA, "University of Minnesota"),
        ("Massachusetts Institute of Technology, Cambridge, MA", "MIT"),
        ("Janelia Research Campus, Ashburn, VA", "Howard Hughes Medical Institute"),
        ("Weill Cornell Medicine, New York, NY", "Cornell University"),
        ("Department of Biology, Stanford University", "Stanford"),
    ])
    def test_agreement(self, found, claimed):
        assert not check_institution_mismatch(found, claimed)

    @pytest.mark.parametrize("found, claimed", [
        (MINNESOTA, "Stanford University"),
        ("University at Buffalo, Buffalo, NY", "BU"),
        ("Department of Chemistry, Yale University", "Harvard University"),
    ])
    def test_mismatch(self, found, claimed):
        assert check_institution_mismatch(found, claimed)

    def test_missing_values(self):
        assert not check_institution_mismatch(None, "MIT")
        assert not check_institution_mismatch(MINNESOTA, None)


class TestRecentCount:
    def test_count_recent(self):
        pubs = [Publication(title="a", year=2020), Publication(title="b", year=2019), Publication(title="c")]
        assert count_recent_publications(pubs, 5, year=2025) == 1


class TestPublicationVerifier:
    """End-to-end verification against a fake search collaborator."""

    def test_verified_with_three_publications(self, settings, search_factory, harcombe_papers, helen_paper):
        search = search_factory(lambda q: harcombe_papers + [helen_paper])
        result = PublicationVerifier(settings).verify(
            "Will Harcombe",
            ["microbial community ecology"],
            "University of Minnesota",
            search,
        )
        assert result.verified
        assert result.selection == "disambiguated"
        assert result.affiliation == MINNESOTA
        assert not result.institution_mismatch
        assert not result.expertise_mismatch
        assert result.confidence == 1.0
        assert result.publication_count_5yr == 3
        assert [p.pmid for p in result.publications] == ["100", "101", "102"]

    def test_unverified_with_two_publications(self, settings, search_factory, harcombe_papers, helen_paper):
        search = search_factory(lambda q: harcombe_papers[:2] + [helen_paper])
        result = PublicationVerifier(settings).verify("Will Harcombe", ["microbial ecology"], None, search)
        assert not result.verified
        assert result.confidence == 0.0
        assert result.reason == "Only 2 relevant publications (minimum: 3)"

    def test_no_publications(self, settings, fake_search):
        result = PublicationVerifier(settings).verify("Will Harcombe", [], None, fake_search)
        assert not result.verified
        assert result.reason == "No publications found matching expertise"

    def test_other_person_never_verifies(self, settings, search_factory, publication_factory):
        papers = [publication_factory(str(i), ["Helen Harcombe"]) for i in range(5)]
        result = PublicationVerifier(settings).verify("Will Harcombe", [], None, search_factory(lambda q: papers))
        assert not result.verified

    def test_flags_mismatches(self, settings, search_factory, harcombe_papers):
        search = search_factory(lambda q: harcombe_papers)
        result = PublicationVerifier(settings).verify(
            "William Harcombe", ["quantum chromodynamics"], "Stanford University", search
        )
        assert result.verified
        assert result.institution_mismatch
        assert result.expertise_mismatch
        assert result.claimed_terms

    def test_issues_simple_and_disambiguated_queries_per_variant(self, settings, fake_search):
        PublicationVerifier(settings).verify("Will Harcombe", ["phage ecology"], None, fake_search)
        queries = [q for q, _ in fake_search.queries]
        assert len(queries) == 6
        assert queries[0] == build_author_query("Will Harcombe", 5)
        assert "(phage ecology[Title/Abstract])" in queries[1]
        assert any(q.startswith("William Harcombe[Author]") for q in queries)
        assert [n for _, n in fake_search.queries[:2]] == [30, 20]

    def test_respects_min_publications_setting(self, settings, search_factory, harcombe_papers):
        settings.verification.min_publications = 4
        result = PublicationVerifier(settings).verify(
            "Will Harcombe", [], None, search_factory(lambda q: harcombe_papers)
        )
        assert result.reason == "Only 3 relevant publications (minimum: 4)"

    def test_search_failure_degrades(self, settings):
        class Broken:
            def search(self, query, max_results):
                raise TimeoutError("upstream")

        result = PublicationVerifier(settings).verify("Will Harcombe", [], None, Broken())
        assert not result.verified

    def test_missing_collaborator_is_a_defect(self, settings):
        with pytest.raises(ValueError):
            PublicationVerifier(settings).verify("Will Harcombe", [], None, None)

    def test_verify_suggestions(self, settings, search_factory, harcombe_papers):
        search = search_factory(lambda q: harcombe_papers if "Harcombe" in q else [])
        progress = []
        verified, unverified = PublicationVerifier(settings).verify_suggestions(
            [
                ReviewerSuggestion(name="Will Harcombe", expertise_areas=["microbial ecology"]),
                {"name": "Mya Breitbart", "expertiseAreas": ["viral metagenomics"]},
            ],
            search,
            on_progress=progress.append,
        )
        assert [r.name for r in verified] == ["Will Harcombe"]
        assert [r.name for r in unverified] == ["Mya Breitbart"]
        assert [p["stage"] for p in progress] == ["verification", "verification"]
