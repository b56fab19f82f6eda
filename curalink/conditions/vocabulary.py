# CuraLink - Canonical Condition Vocabulary
# =========================================
"""
Canonical Condition Vocabulary
==============================
Controlled vocabulary of condition tags used to label patients and
catalog content:
1. Canonical tags with their free-text synonyms (sugar disease -> Diabetes Mellitus)
2. Organ-specific cancer tags linked to the generic Cancer tag
3. Stem rules for morphological variants (diabetic, diabetes -> Diabetes Mellitus)
4. Whole-word abbreviations (CAD, MI -> Coronary Artery Disease)

The vocabulary is immutable once built. Build a custom one with
ConditionVocabulary(...) and hand it to ConditionNormalizer in tests.

Used by: normalizer.py
"""

import re
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple


def normalize_text(text: Optional[str]) -> str:
    """
    Normalize free text for vocabulary lookups.

    Lowercases, replaces every non-alphanumeric character with a space,
    collapses whitespace and trims.
    """
    lowered = (text or "").lower()
    stripped = re.sub(r"[^a-z0-9\s]", " ", lowered)
    return re.sub(r"\s+", " ", stripped).strip()


@dataclass(frozen=True)
class CanonicalCondition:
    """A controlled-vocabulary condition tag and the phrases that imply it."""
    tag: str                                  # e.g. 'Brain Cancer'
    synonyms: Tuple[str, ...]                 # Free-text phrases, declaration order
    organ_specific_of: Optional[str] = None   # Generic tag this one specializes
    organ_keywords: Tuple[str, ...] = ()      # Location words used for disambiguation


@dataclass(frozen=True)
class StemRule:
    """Catches morphological variants a plain synonym would miss."""
    stem: str     # e.g. 'diabet'
    tag: str

    @property
    def pattern(self) -> str:
        return rf"\b{re.escape(self.stem)}\w*"


@dataclass(frozen=True)
class AbbreviationRule:
    """Short abbreviation that only counts as a whole word ('mi' is not in 'migraine')."""
    abbreviation: str     # e.g. 'cad'
    tag: str

    @property
    def pattern(self) -> str:
        return rf"\b{re.escape(self.abbreviation)}s?\b"


class ConditionVocabulary:
    """
    Immutable lookup structure over a list of CanonicalCondition entries.

    A synonym declared by more than one condition belongs to the first
    condition that declares it.
    """

    def __init__(
        self,
        conditions: Sequence[CanonicalCondition],
        stem_rules: Sequence[StemRule] = (),
        abbreviations: Sequence[AbbreviationRule] = (),
    ):
        self._conditions: Tuple[CanonicalCondition, ...] = tuple(conditions)
        self._stem_rules: Tuple[StemRule, ...] = tuple(stem_rules)
        self._abbreviations: Tuple[AbbreviationRule, ...] = tuple(abbreviations)
        self._by_tag: Dict[str, CanonicalCondition] = {}

        for condition in self._conditions:
            if condition.tag in self._by_tag:
                raise ValueError(f"Duplicate canonical tag '{condition.tag}'")
            self._by_tag[condition.tag] = condition

        for condition in self._conditions:
            parent = condition.organ_specific_of
            if parent is not None and parent not in self._by_tag:
                raise ValueError(
                    f"'{condition.tag}' specializes unknown tag '{parent}'"
                )
        for rule in self._stem_rules:
            if rule.tag not in self._by_tag:
                raise ValueError(f"Stem rule '{rule.stem}' targets unknown tag '{rule.tag}'")
        for abbreviation in self._abbreviations:
            if abbreviation.tag not in self._by_tag:
                raise ValueError(
                    f"Abbreviation '{abbreviation.abbreviation}' targets unknown tag '{abbreviation.tag}'"
                )

        # First declaration wins
        self._synonym_owner: Dict[str, str] = {}
        for condition in self._conditions:
            for phrase in (condition.tag,) + condition.synonyms:
                key = normalize_text(phrase)
                if key and key not in self._synonym_owner:
                    self._synonym_owner[key] = condition.tag

    @property
    def conditions(self) -> Tuple[CanonicalCondition, ...]:
        return self._conditions

    @property
    def stem_rules(self) -> Tuple[StemRule, ...]:
        return self._stem_rules

    @property
    def abbreviations(self) -> Tuple[AbbreviationRule, ...]:
        return self._abbreviations

    @property
    def tags(self) -> List[str]:
        return [c.tag for c in self._conditions]

    def get(self, tag: str) -> Optional[CanonicalCondition]:
        return self._by_tag.get(tag)

    def __contains__(self, tag: object) -> bool:
        return tag in self._by_tag

    def __len__(self) -> int:
        return len(self._conditions)

    def owner_of(self, synonym: str) -> Optional[str]:
        """Get the tag a synonym resolves to, or None."""
        return self._synonym_owner.get(normalize_text(synonym))

    def synonym_pairs(self) -> Iterator[Tuple[str, str]]:
        """Yield (tag, normalized synonym) pairs in declaration order."""
        for synonym, tag in self._synonym_owner.items():
            yield tag, synonym

    def generic_tags(self) -> List[str]:
        """Tags that at least one organ-specific tag specializes."""
        generic = []
        for condition in self._conditions:
            parent = condition.organ_specific_of
            if parent is not None and parent not in generic:
                generic.append(parent)
        return generic

    def specializations(self, generic_tag: str) -> List[CanonicalCondition]:
        return [c for c in self._conditions if c.organ_specific_of == generic_tag]

    def generic_synonyms(self, generic_tag: str) -> List[str]:
        """Normalized phrases owned by a generic tag."""
        return [s for tag, s in self.synonym_pairs() if tag == generic_tag]

    def organ_keywords(self, condition: CanonicalCondition) -> Tuple[str, ...]:
        """
        Location keywords for an organ-specific condition.

        Falls back to the tag name with the generic tag's words removed,
        so 'Brain Cancer' under 'Cancer' yields ('brain',).
        """
        if condition.organ_keywords:
            return tuple(normalize_text(k) for k in condition.organ_keywords)
        if condition.organ_specific_of is None:
            return ()
        generic_words = set(normalize_text(condition.organ_specific_of).split())
        remaining = [w for w in normalize_text(condition.tag).split() if w not in generic_words]
        return (" ".join(remaining),) if remaining else ()


# =============================================================================
# GENERAL CONDITIONS
# =============================================================================

GENERAL_CONDITIONS: List[CanonicalCondition] = [
    CanonicalCondition('Diabetes Mellitus', (
        'diabetes', 'diabetic', 'sugar disease', 'high blood sugar',
        'blood sugar is high', 'type 1 diabetes', 'type 2 diabetes',
    )),
    CanonicalCondition('Hypertension', (
        'high blood pressure', 'hypertension', 'bp high', 'elevated blood pressure',
    )),
    CanonicalCondition('Asthma', (
        'asthma', 'asthmatic', 'wheezing with shortness of breath', 'wheezing',
    )),
    CanonicalCondition('Coronary Artery Disease', (
        'coronary artery disease', 'angina', 'coronary',
        'ischemic heart disease', 'ischaemic heart disease', 'heart attack',
        'myocardial infarction',
    )),
    CanonicalCondition('Heart Failure', (
        'heart failure', 'congestive heart failure', 'chf',
    )),
    CanonicalCondition('Chronic Obstructive Pulmonary Disease', (
        'copd', 'chronic obstructive pulmonary disease', 'emphysema',
        'chronic bronchitis',
    )),
    CanonicalCondition('Migraine', (
        'migraine', 'migraine headaches',
    )),
    CanonicalCondition('Depression', (
        'depression', 'depressive', 'major depressive disorder', 'mdd',
    )),
    CanonicalCondition('Anxiety Disorder', (
        'anxiety', 'generalized anxiety', 'generalised anxiety',
    )),
    CanonicalCondition('Arthritis', (
        'arthritis', 'osteoarthritis', 'rheumatoid arthritis',
    )),
    CanonicalCondition('Stroke', (
        'stroke', 'cerebrovascular accident', 'brain attack',
    )),
    CanonicalCondition("Alzheimer's Disease", (
        'alzheimer', 'alzheimers', 'dementia', 'memory loss',
    )),
    CanonicalCondition("Parkinson's Disease", (
        'parkinson', 'parkinsons',
    )),
    CanonicalCondition('Epilepsy', (
        'epilepsy', 'epileptic', 'seizures', 'seizure disorder',
    )),
    CanonicalCondition('Chronic Kidney Disease', (
        'chronic kidney disease', 'ckd', 'kidney failure', 'renal failure',
    )),
    CanonicalCondition('Obesity', (
        'obesity', 'obese', 'morbidly overweight',
    )),
]


# =============================================================================
# CANCER AND ORGAN-SPECIFIC CANCERS
# =============================================================================
# Organ tags point at 'Cancer' through organ_specific_of. When text carries a
# generic cancer phrase plus an organ keyword, the organ tag replaces 'Cancer'.

GENERIC_CANCER_TAG = 'Cancer'

CANCER_CONDITIONS: List[CanonicalCondition] = [
    CanonicalCondition(GENERIC_CANCER_TAG, (
        'cancer', 'tumor', 'tumour', 'carcinoma', 'malignancy',
    )),
    CanonicalCondition('Brain Cancer', (
        'brain cancer', 'brain tumor', 'brain tumour', 'glioma', 'glioblastoma',
    ), GENERIC_CANCER_TAG, ('brain',)),
    CanonicalCondition('Lung Cancer', (
        'lung cancer', 'lung tumor', 'lung tumour', 'nsclc',
        'non small cell lung', 'small cell lung',
    ), GENERIC_CANCER_TAG, ('lung',)),
    CanonicalCondition('Breast Cancer', (
        'breast cancer', 'breast tumor', 'breast tumour', 'ductal carcinoma',
    ), GENERIC_CANCER_TAG, ('breast',)),
    CanonicalCondition('Prostate Cancer', (
        'prostate cancer', 'prostate tumor', 'prostate tumour',
    ), GENERIC_CANCER_TAG, ('prostate',)),
    CanonicalCondition('Colorectal Cancer', (
        'colorectal cancer', 'colon cancer', 'bowel cancer', 'rectal cancer',
    ), GENERIC_CANCER_TAG, ('colon', 'colorectal', 'rectum')),
    CanonicalCondition('Skin Cancer', (
        'skin cancer', 'melanoma', 'basal cell carcinoma',
    ), GENERIC_CANCER_TAG, ('skin',)),
    CanonicalCondition('Liver Cancer', (
        'liver cancer', 'liver tumor', 'liver tumour', 'hepatocellular carcinoma',
    ), GENERIC_CANCER_TAG, ('liver',)),
    CanonicalCondition('Pancreatic Cancer', (
        'pancreatic cancer', 'pancreas cancer',
    ), GENERIC_CANCER_TAG, ('pancreas', 'pancreatic')),
    CanonicalCondition('Stomach Cancer', (
        'stomach cancer', 'gastric cancer',
    ), GENERIC_CANCER_TAG, ('stomach',)),
    CanonicalCondition('Ovarian Cancer', (
        'ovarian cancer', 'ovary cancer',
    ), GENERIC_CANCER_TAG, ('ovary', 'ovaries')),
    CanonicalCondition('Cervical Cancer', (
        'cervical cancer', 'cervix cancer',
    ), GENERIC_CANCER_TAG, ('cervix',)),
    CanonicalCondition('Kidney Cancer', (
        'kidney cancer', 'renal cell carcinoma', 'kidney tumor', 'kidney tumour',
    ), GENERIC_CANCER_TAG, ('kidney',)),
    CanonicalCondition('Bladder Cancer', (
        'bladder cancer', 'bladder tumor', 'bladder tumour',
    ), GENERIC_CANCER_TAG, ('bladder',)),
    CanonicalCondition('Thyroid Cancer', (
        'thyroid cancer', 'thyroid tumor', 'thyroid tumour',
    ), GENERIC_CANCER_TAG, ('thyroid',)),
    CanonicalCondition('Head and Neck Cancer', (
        'head and neck cancer', 'throat cancer', 'oral cancer', 'mouth cancer',
    ), GENERIC_CANCER_TAG, ('head and neck',)),
]


# =============================================================================
# STEM RULES
# =============================================================================

STEM_RULES: List[StemRule] = [
    StemRule('diabet', 'Diabetes Mellitus'),
    StemRule('hypertens', 'Hypertension'),
    StemRule('asthm', 'Asthma'),
    StemRule('arthrit', 'Arthritis'),
    StemRule('migrain', 'Migraine'),
    StemRule('epilep', 'Epilepsy'),
]


# =============================================================================
# ABBREVIATIONS
# =============================================================================
# Too short for substring matching ('cad' in 'decade', 'ra' in 'brain').

ABBREVIATIONS: List[AbbreviationRule] = [
    AbbreviationRule('cad', 'Coronary Artery Disease'),
    AbbreviationRule('mi', 'Coronary Artery Disease'),
    AbbreviationRule('gad', 'Anxiety Disorder'),
    AbbreviationRule('ra', 'Arthritis'),
]


DEFAULT_VOCABULARY = ConditionVocabulary(
    GENERAL_CONDITIONS + CANCER_CONDITIONS,
    STEM_RULES,
    ABBREVIATIONS,
)
