"""
CuraLink Matching Module
========================

Personalized matching and expert visibility tiering.
"""

from .engine import MatchingEngine, clean_tags
from .experts import (
    ExpertTiering,
    ExpertTier,
    ExpertSeed,
    TierDecision,
    DEFAULT_SEED_EXPERTS,
)

__all__ = [
    "MatchingEngine",
    "clean_tags",
    "ExpertTiering",
    "ExpertTier",
    "ExpertSeed",
    "TierDecision",
    "DEFAULT_SEED_EXPERTS",
]
