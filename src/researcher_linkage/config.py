from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from .logger import get_logger

log = get_logger(__name__)


class MatchingConfig(BaseModel):
    # Dice similarity above which two candidate names are grouped
    group_similarity_threshold: float = 0.85
    # Minimum tier confidence for an author-list hit
    min_author_confidence: int = 50


class VerificationConfig(BaseModel):
    min_publications: int = 3
    years_lookback: int = 5
    simple_max_results: int = 30
    disambiguated_max_results: int = 20
    max_expertise_phrases: int = 2
    # Confidence reported when no expertise is claimed at all
    expertise_neutral_confidence: float = 0.5
    sample_publications: int = 5


class COIConfig(BaseModel):
    max_results: int = 10
    sample_papers: int = 3


class RateLimitConfig(BaseModel):
    """Request pacing for the publication search collaborator.

    NCBI allows 10 req/sec with an API key and 3 req/sec without one.
    """

    has_api_key: bool = False
    delay_with_key: float = 0.10
    delay_without_key: float = 0.35
    coi_batch_with_key: int = 5
    coi_batch_without_key: int = 2
    search_timeout_seconds: float = 30.0

    @property
    def delay(self) -> float:
        return self.delay_with_key if self.has_api_key else self.delay_without_key

    @property
    def coi_batch_size(self) -> int:
        return self.coi_batch_with_key if self.has_api_key else self.coi_batch_without_key


class Settings(BaseModel):
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    verification: VerificationConfig = Field(default_factory=VerificationConfig)
    coi: COIConfig = Field(default_factory=COIConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)


def _find_settings_path(explicit: Optional[str]) -> Optional[Path]:
    candidates = []
    if explicit:
        candidates.append(Path(explicit))
    env = os.getenv("LINKAGE_CONFIG")
    if env:
        candidates.append(Path(env))
    candidates.extend([
        Path("settings.yaml"),
        Path("settings.yml"),
        Path("config/settings.yaml"),
    ])
    for p in candidates:
        if p and p.exists() and p.is_file():
            return p
    return None


def _apply_env_overrides(s: Settings) -> Settings:
    if os.getenv("NCBI_API_KEY"):
        s.rate_limit.has_api_key = True
    if min_pubs := os.getenv("LINKAGE_MIN_PUBLICATIONS"):
        try:
            s.verification.min_publications = int(min_pubs)
        except ValueError:
            log.warning("Ignoring non-integer LINKAGE_MIN_PUBLICATIONS=%r", min_pubs)
    if lookback := os.getenv("LINKAGE_YEARS_LOOKBACK"):
        try:
            s.verification.years_lookback = int(lookback)
        except ValueError:
            log.warning("Ignoring non-integer LINKAGE_YEARS_LOOKBACK=%r", lookback)
    return s


def load_settings(path: Optional[str] = None) -> Settings:
    p = _find_settings_path(path)
    if not p:
        log.warning("No settings file found; using defaults")
        return _apply_env_overrides(Settings())

    with open(p, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    try:
        s = Settings(**raw)
    except ValidationError as e:
        log.error("Settings validation failed: %s", e)
        raise
    return _apply_env_overrides(s)
