"""
CuraLink Conditions Module
==========================

Canonical condition vocabulary and the free-text normalizer built on it.
"""

from .vocabulary import (
    CanonicalCondition,
    StemRule,
    AbbreviationRule,
    ConditionVocabulary,
    DEFAULT_VOCABULARY,
    GENERIC_CANCER_TAG,
    normalize_text,
)
from .normalizer import (
    ConditionNormalizer,
    normalize,
    normalize_or_fallback,
    extract_conditions,
)

__all__ = [
    # Vocabulary
    "CanonicalCondition",
    "StemRule",
    "AbbreviationRule",
    "ConditionVocabulary",
    "DEFAULT_VOCABULARY",
    "GENERIC_CANCER_TAG",
    "normalize_text",
    # Normalizer
    "ConditionNormalizer",
    "normalize",
    "normalize_or_fallback",
    "extract_conditions",
]
