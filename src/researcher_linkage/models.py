"""Value objects exchanged between the matching, merging and verification steps.

Everything here is produced fresh per comparison or per pipeline step and owned
by the caller. Upstream collaborators hand us camelCase JSON (``hIndex``,
``claudeReason``, ``allAffiliations``), so the models accept both spellings.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class MatchType(str, Enum):
    """Label of the tier that produced a name match."""

    EXACT = "exact"
    FIRST_LAST_EXACT = "first_last_exact"
    NAME_VARIANT = "name_variant"
    LAST_FIRST_INITIAL = "last_first_initial"
    NAME_ORDER_SWAP = "name_order_swap"
    HIGH_SIMILARITY = "high_similarity"
    FULL_SIMILARITY = "full_similarity"
    NAME_ORDER_SWAP_VARIANT = "name_order_swap_variant"
    PARTIAL_FIRST = "partial_first"
    LAST_NAME_ONLY = "last_name_only"
    NO_MATCH = "no_match"


class ConfidenceLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INSUFFICIENT = "insufficient"


class NameParts(BaseModel):
    model_config = ConfigDict(frozen=True)

    first: str = ""
    middle: str = ""
    last: str = ""
    full: str = ""


class MatchResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    matches: bool
    confidence: int = Field(ge=0, le=100)
    match_type: MatchType

    @classmethod
    def no_match(cls) -> "MatchResult":
        return cls(matches=False, confidence=0, match_type=MatchType.NO_MATCH)


class AuthorMatch(BaseModel):
    """A hit for a searched name inside a free-form author list."""

    matched_name: str
    confidence: int
    match_type: MatchType


class Author(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    affiliation: Optional[str] = None
    all_affiliations: list[str] = Field(default_factory=list, alias="allAffiliations")


class Publication(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    title: str = ""
    year: Optional[int] = None
    authors: list[Author] = Field(default_factory=list)
    journal: Optional[str] = None
    doi: Optional[str] = None
    pmid: Optional[str] = None
    abstract: Optional[str] = None

    @property
    def identifier(self) -> Optional[str]:
        """PMID when present, otherwise DOI, otherwise the lowercased title."""
        if self.pmid:
            return f"pmid:{self.pmid}"
        if self.doi:
            return f"doi:{self.doi.strip().lower()}"
        title = (self.title or "").strip().lower()
        return f"title:{title}" if title else None

    @property
    def url(self) -> Optional[str]:
        return f"https://pubmed.ncbi.nlm.nih.gov/{self.pmid}" if self.pmid else None

    @property
    def search_text(self) -> str:
        return f"{self.title or ''} {self.abstract or ''}".lower()


class Candidate(BaseModel):
    """One mention of a person from a single source hit."""

    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    affiliation: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    h_index: Optional[int] = Field(default=None, alias="hIndex")
    citations: Optional[int] = None
    publications: list[Publication] = Field(default_factory=list)
    source: Optional[str] = None
    claude_reason: Optional[str] = Field(default=None, alias="claudeReason")
    keywords: list[str] = Field(default_factory=list)


class MergedResearcher(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[int] = None
    name: str
    normalized_name: str = ""
    affiliation: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    h_index: int = 0
    total_citations: int = 0
    sources: set[str] = Field(default_factory=set)
    publications: list[Publication] = Field(default_factory=list)
    claude_reason: Optional[str] = None
    claude_suggested: bool = False
    keywords: list[str] = Field(default_factory=list)
    relevance_score: Optional[float] = None


class ReviewerSuggestion(BaseModel):
    """A person proposed as a reviewer, with the expertise and institution claimed for them."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    expertise_areas: list[str] = Field(default_factory=list, alias="expertiseAreas")
    suggested_institution: Optional[str] = Field(default=None, alias="suggestedInstitution")


class VerificationResult(BaseModel):
    name: str
    verified: bool
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    affiliation: Optional[str] = None
    institution_mismatch: bool = False
    expertise_mismatch: bool = False
    publication_count_5yr: int = 0
    reason: Optional[str] = None
    selection: Optional[str] = None
    claimed_terms: list[str] = Field(default_factory=list)
    matched_terms: list[str] = Field(default_factory=list)
    publications: list[Publication] = Field(default_factory=list)


class ExpertiseCheck(BaseModel):
    has_mismatch: bool
    claimed_terms: list[str] = Field(default_factory=list)
    matched_terms: list[str] = Field(default_factory=list)


class CoauthorPaper(BaseModel):
    title: str
    year: Optional[int] = None
    pmid: Optional[str] = None
    url: Optional[str] = None


class Coauthorship(BaseModel):
    other_name: str
    paper_count: int
    papers: list[CoauthorPaper] = Field(default_factory=list)


class COIResult(BaseModel):
    candidate_name: str
    has_coi: bool = False
    details: list[Coauthorship] = Field(default_factory=list)
