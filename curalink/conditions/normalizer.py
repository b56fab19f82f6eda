# CuraLink - Condition Normalizer
# ===============================
"""
Condition Normalizer
====================
Turns patient-authored free text into canonical condition tags.

Algorithm:
1. Normalize text (lowercase, punctuation to spaces, collapse whitespace)
2. Substring-match every vocabulary synonym
3. Apply stem rules for morphological variants (diabetic -> Diabetes Mellitus)
   and whole-word abbreviation rules (cad, mi, gad)
4. Cancer disambiguation: a generic cancer phrase plus an organ keyword
   adds the organ-specific tag, and any organ-specific tag removes the
   generic one

Example:
    Input:  "I was diagnosed with a brain tumor"
    Step 2: 'brain tumor' -> Brain Cancer, 'tumor' -> Cancer
    Step 4: Brain Cancer specializes Cancer -> drop Cancer
    Result: ['Brain Cancer']

Tags are recomputed on every request and never cached, since the
vocabulary may change between releases.
"""

import re
import logging
from typing import Dict, Iterable, List, Optional, Pattern, Set

from .vocabulary import (
    DEFAULT_VOCABULARY,
    ConditionVocabulary,
    normalize_text,
)

logger = logging.getLogger(__name__)


class ConditionNormalizer:
    """
    Dictionary-driven tagger over a ConditionVocabulary.

    Usage:
        normalizer = ConditionNormalizer()
        normalizer.normalize("diabetes and high blood pressure")
        # {'Diabetes Mellitus', 'Hypertension'}
    """

    def __init__(self, vocabulary: Optional[ConditionVocabulary] = None):
        self.vocabulary = vocabulary or DEFAULT_VOCABULARY
        self._organ_patterns: Dict[str, Pattern] = {}
        self._stem_patterns = [
            (re.compile(rule.pattern), rule.tag) for rule in self.vocabulary.stem_rules
        ]
        self._abbreviation_patterns = [
            (re.compile(rule.pattern), rule.tag) for rule in self.vocabulary.abbreviations
        ]

    # ==================== EXTRACTION ====================

    def extract_conditions(self, text: Optional[str]) -> List[str]:
        """
        Extract canonical tags from free text in first-discovered order.

        Args:
            text: Patient-authored text

        Returns:
            Ordered list of unique canonical tags, possibly empty
        """
        normalized = normalize_text(text)
        if not normalized:
            return []

        found: List[str] = []

        for tag, synonym in self.vocabulary.synonym_pairs():
            if tag not in found and synonym in normalized:
                found.append(tag)

        for pattern, tag in self._stem_patterns + self._abbreviation_patterns:
            if tag not in found and pattern.search(normalized):
                found.append(tag)

        found = self._disambiguate_cancer(normalized, found)

        logger.debug(f"Extracted {found} from '{normalized}'")
        return found

    def normalize(self, text: Optional[str]) -> Set[str]:
        """Canonical tags for text, as a set."""
        return set(self.extract_conditions(text))

    def normalize_single(self, text: Optional[str]) -> Optional[str]:
        """
        Resolve text to one canonical tag.

        An exact canonical name wins; otherwise the first discovered tag.
        """
        normalized = normalize_text(text)
        if not normalized:
            return None

        for tag in self.vocabulary.tags:
            if normalize_text(tag) == normalized:
                return tag

        extracted = self.extract_conditions(normalized)
        return extracted[0] if extracted else None

    def extract_or_fallback(self, text: Optional[str]) -> List[str]:
        """
        Canonical tags, or the trimmed original text when none are found.

        Empty or whitespace-only input yields an empty list.
        """
        extracted = self.extract_conditions(text)
        if extracted:
            return extracted
        trimmed = (text or "").strip()
        return [trimmed] if trimmed else []

    def normalize_or_fallback(self, text: Optional[str]) -> Set[str]:
        return set(self.extract_or_fallback(text))

    def normalize_condition_set(self, conditions: Iterable[str]) -> List[str]:
        """
        Derive matching tags for a patient's whole condition list.

        Each entry goes through extract_or_fallback; the union keeps
        first-discovered order.
        """
        tags: List[str] = []
        for entry in conditions:
            for tag in self.extract_or_fallback(entry):
                if tag not in tags:
                    tags.append(tag)
        return tags

    # ==================== MATCHING HELPERS ====================

    def _organ_pattern(self, keyword: str) -> Pattern:
        """Whole-word organ keyword, plural allowed (lung, lungs)."""
        if keyword not in self._organ_patterns:
            self._organ_patterns[keyword] = re.compile(rf"\b{re.escape(keyword)}s?\b")
        return self._organ_patterns[keyword]

    def _disambiguate_cancer(self, normalized: str, found: List[str]) -> List[str]:
        """Prefer organ-specific tags over their generic parent."""
        result = list(found)

        for generic_tag in self.vocabulary.generic_tags():
            generic_hit = any(
                synonym in normalized
                for synonym in self.vocabulary.generic_synonyms(generic_tag)
            )
            specializations = self.vocabulary.specializations(generic_tag)

            if generic_hit:
                for condition in specializations:
                    if condition.tag in result:
                        continue
                    keywords = self.vocabulary.organ_keywords(condition)
                    if any(self._organ_pattern(k).search(normalized) for k in keywords):
                        result.append(condition.tag)

            specific_tags = {c.tag for c in specializations}
            if generic_tag in result and specific_tags.intersection(result):
                result.remove(generic_tag)

        return result


# =============================================================================
# MODULE-LEVEL HELPERS
# =============================================================================

_default_normalizer = ConditionNormalizer()


def _normalizer_for(vocabulary: Optional[ConditionVocabulary]) -> ConditionNormalizer:
    if vocabulary is None:
        return _default_normalizer
    return ConditionNormalizer(vocabulary)


def normalize(text: Optional[str], vocabulary: Optional[ConditionVocabulary] = None) -> Set[str]:
    """Canonical tags for text using the given (or default) vocabulary."""
    return _normalizer_for(vocabulary).normalize(text)


def normalize_or_fallback(
    text: Optional[str],
    vocabulary: Optional[ConditionVocabulary] = None,
) -> Set[str]:
    """Canonical tags for text, or {trimmed text} when nothing matches."""
    return _normalizer_for(vocabulary).normalize_or_fallback(text)


def extract_conditions(
    text: Optional[str],
    vocabulary: Optional[ConditionVocabulary] = None,
) -> List[str]:
    return _normalizer_for(vocabulary).extract_conditions(text)
