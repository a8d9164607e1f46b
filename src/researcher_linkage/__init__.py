"""Researcher identity resolution: name and institution matching, merging and verification."""

from .coi import check_coauthorships_for_candidates, check_coi
from .config import Settings, load_settings
from .grouping import deduplicate, group_candidates, merge_group, rank_by_relevance
from .institutions import institutions_match, normalize_institution
from .matcher import adjust_confidence_for_institution, calculate_name_match
from .models import (
    Author,
    Candidate,
    COIResult,
    MatchResult,
    MatchType,
    MergedResearcher,
    NameParts,
    Publication,
    ReviewerSuggestion,
    VerificationResult,
)
from .names import extract_name_parts, normalize_name
from .search import GuardedSearch, PublicationSearch
from .verification import PublicationVerifier

__version__ = "0.1.0"

__all__ = [
    "Author",
    "COIResult",
    "Candidate",
    "GuardedSearch",
    "MatchResult",
    "MatchType",
    "MergedResearcher",
    "NameParts",
    "Publication",
    "PublicationSearch",
    "PublicationVerifier",
    "ReviewerSuggestion",
    "Settings",
    "VerificationResult",
    "adjust_confidence_for_institution",
    "calculate_name_match",
    "check_coauthorships_for_candidates",
    "check_coi",
    "deduplicate",
    "extract_name_parts",
    "group_candidates",
    "institutions_match",
    "load_settings",
    "merge_group",
    "normalize_institution",
    "normalize_name",
    "rank_by_relevance",
]
