# CuraLink - Expert Visibility Tiering
# ====================================
"""
Expert Visibility Tiering
=========================
Chooses which experts a patient may see before the personalized
predicate runs:

- JOINED: at least one platformMember/externalImport expert exists.
  Only those are candidates, platform members first, then newest.
- STAND_IN: nobody has joined yet. Publication authors already in the
  catalog are imported as placeholder experts; if that adds nothing, a
  fixed set of seed experts is inserted. Only seedPlaceholder experts are
  candidates, newest first.

Within the tier the usual tag predicate applies, and an empty match
falls back to the whole tier, so a non-empty tier is never hidden.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from ..catalog.database import CatalogDB, DuplicateContentError
from ..catalog.models import (
    AffiliationState,
    ContentKind,
    Expert,
    JOINED_STATES,
    Provenance,
)

logger = logging.getLogger(__name__)


class ExpertTier(str, Enum):
    """Which expert rows are visible."""
    JOINED = "joined"
    STAND_IN = "standIn"


@dataclass(frozen=True)
class ExpertSeed:
    """Placeholder expert inserted on a brand-new deployment."""
    name: str
    specialties: Tuple[str, ...] = ()
    research_interests: Tuple[str, ...] = ()
    location: str = "Global"


DEFAULT_SEED_EXPERTS: Tuple[ExpertSeed, ...] = (
    ExpertSeed("Dr. Jane Doe", ("Oncology",), ("Lung Cancer", "Immunotherapy")),
    ExpertSeed("Dr. John Smith", ("Cardiology",), ("Heart Failure", "Hypertension")),
    ExpertSeed("Dr. Alice Example", ("Neurology",), ("Brain Tumors", "Neuro-Oncology")),
)

STAND_IN_STATES = (AffiliationState.SEED_PLACEHOLDER,)


@dataclass
class TierDecision:
    """Tier chosen for one request, plus rows added while choosing it."""
    tier: ExpertTier
    imported_authors: int = 0
    seeded: int = 0

    @property
    def states(self) -> Tuple[AffiliationState, ...]:
        return JOINED_STATES if self.tier == ExpertTier.JOINED else STAND_IN_STATES


class ExpertTiering:
    """Expert visibility policy over the content store."""

    def __init__(self, db: CatalogDB, seed_experts: Optional[Sequence[ExpertSeed]] = None):
        self.db = db
        self.seed_experts = tuple(seed_experts) if seed_experts is not None else DEFAULT_SEED_EXPERTS

    def has_joined(self) -> bool:
        return self.db.count(ContentKind.EXPERTS, JOINED_STATES) > 0

    def select_tier(self) -> TierDecision:
        """Pick the tier, preparing stand-in experts when nobody has joined."""
        if self.has_joined():
            return TierDecision(ExpertTier.JOINED)

        decision = TierDecision(ExpertTier.STAND_IN)
        decision.imported_authors = self.import_publication_authors()
        if decision.imported_authors == 0:
            decision.seeded = self.seed_placeholders()

        logger.info(
            f"No joined experts; stand-in tier ({decision.imported_authors} authors imported, "
            f"{decision.seeded} seeds added)"
        )
        return decision

    def import_publication_authors(self) -> int:
        """Add a placeholder expert for each publication author not yet present."""
        existing = self.db.expert_names()
        added = 0

        for name, interests in self.db.publication_authors().items():
            if name in existing:
                continue
            self.db.add_item(Expert(
                title=name,
                affiliation_state=AffiliationState.SEED_PLACEHOLDER,
                research_interests=interests,
                provenance=Provenance.IMPORTED,
                source="publication",
            ))
            existing.add(name)
            added += 1

        if added:
            logger.info(f"Imported {added} experts from publication authors")
        return added

    def seed_placeholders(self) -> int:
        """Insert the fixed seed experts that are missing, by exact name."""
        existing = self.db.expert_names(STAND_IN_STATES)
        added = 0

        for seed in self.seed_experts:
            if seed.name in existing:
                continue
            try:
                self.db.add_item(Expert(
                    title=seed.name,
                    affiliation_state=AffiliationState.SEED_PLACEHOLDER,
                    specialties=list(seed.specialties),
                    research_interests=list(seed.research_interests),
                    location=seed.location,
                    provenance=Provenance.SEEDED,
                    source="seed",
                ))
            except DuplicateContentError:
                logger.debug(f"Seed expert '{seed.name}' inserted concurrently")
                continue
            added += 1
        return added

    def match(self, patient_tags: Sequence[str], limit: int = 20) -> List[Expert]:
        """
        Experts for a non-empty tag list under the current tier.

        Args:
            patient_tags: Canonical (or fallback) patient tags
            limit: Page size

        Returns:
            Tag matches within the tier, or the whole tier if none match
        """
        decision = self.select_tier()
        platform_first = decision.tier == ExpertTier.JOINED

        experts = self.db.query_items(
            ContentKind.EXPERTS,
            tags=patient_tags,
            affiliation_states=decision.states,
            platform_first=platform_first,
            limit=limit,
        )
        if experts:
            return experts

        logger.debug(f"No experts match {list(patient_tags)}, returning whole {decision.tier.value} tier")
        return self.db.query_items(
            ContentKind.EXPERTS,
            affiliation_states=decision.states,
            platform_first=platform_first,
            limit=limit,
        )
