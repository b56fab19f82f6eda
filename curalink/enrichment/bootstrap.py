"""
Catalog Bootstrap
=================

Cold-start seeding for a fresh deployment. Trials and publications
whose catalog is empty are imported for a handful of conditions; if
publications are still empty afterwards a small static set is inserted.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from ..catalog.database import CatalogDB, DuplicateContentError
from ..catalog.models import ContentKind, Provenance, Publication
from .pipeline import ImportPipeline

logger = logging.getLogger(__name__)


DEFAULT_SEED_CONDITIONS = ["cancer", "diabetes", "cardiovascular", "neurology"]


STATIC_PUBLICATION_SEEDS: List[Dict] = [
    {
        "title": "Recent Advances in Oncology: A Comprehensive Review",
        "authors": ["Dr. Jane Doe", "Dr. John Smith"],
        "journal": "International Journal of Oncology",
        "publication_date": "2022-01-01",
        "abstract": (
            "This review summarizes recent advances in oncology including "
            "immunotherapy and targeted treatments."
        ),
        "tags": ["Cancer"],
    },
    {
        "title": "Type 2 Diabetes Management: Emerging Therapies and Outcomes",
        "authors": ["Dr. Alice Walker"],
        "journal": "Diabetes Care Reports",
        "publication_date": "2021-06-15",
        "abstract": "An overview of emerging therapies for type 2 diabetes and their clinical outcomes.",
        "tags": ["Diabetes Mellitus"],
    },
    {
        "title": "Cardiovascular Risk Reduction: A Multimodal Approach",
        "authors": ["Dr. Robert Lee", "Dr. Maria Gomez"],
        "journal": "Journal of Cardiology",
        "publication_date": "2020-10-10",
        "abstract": "Discusses multimodal strategies to reduce cardiovascular risks in diverse populations.",
        "tags": ["Coronary Artery Disease", "Hypertension"],
    },
]


class CatalogBootstrapper:
    """Fills empty trial and publication catalogs. Never raises."""

    def __init__(
        self,
        db: CatalogDB,
        pipeline: ImportPipeline,
        seed_terms: int = 3,
        default_conditions: Optional[Sequence[str]] = None,
    ):
        self.db = db
        self.pipeline = pipeline
        self.seed_terms = seed_terms
        self.default_conditions = list(default_conditions or DEFAULT_SEED_CONDITIONS)

    def ensure_seeded(self, conditions: Optional[Sequence[str]] = None) -> Dict[ContentKind, int]:
        """
        Seed empty catalogs.

        Args:
            conditions: Conditions to import for (defaults when empty)

        Returns:
            Rows added per kind
        """
        terms = [c for c in (conditions or []) if (c or "").strip()] or self.default_conditions
        terms = terms[:self.seed_terms]
        added = {ContentKind.PUBLICATIONS: 0, ContentKind.TRIALS: 0}

        for kind in (ContentKind.PUBLICATIONS, ContentKind.TRIALS):
            try:
                if self.db.count(kind) > 0:
                    continue
                added[kind] = self.pipeline.run(terms, kind)
                if kind == ContentKind.PUBLICATIONS and self.db.count(kind) == 0:
                    added[kind] += self.insert_static_publications()
            except Exception as e:
                logger.warning(f"Seeding {kind.value} failed: {e}")

        logger.info(
            f"Bootstrap for {terms}: {added[ContentKind.PUBLICATIONS]} publications, "
            f"{added[ContentKind.TRIALS]} trials"
        )
        return added

    def insert_static_publications(self) -> int:
        """Insert the built-in publications whose titles are not yet present."""
        inserted = 0
        for seed in STATIC_PUBLICATION_SEEDS:
            if self.db.exists_by_title(ContentKind.PUBLICATIONS, seed["title"]):
                continue
            try:
                self.db.add_item(Publication(
                    title=seed["title"],
                    description=seed["abstract"],
                    authors=seed["authors"],
                    journal=seed["journal"],
                    publication_date=seed["publication_date"],
                    tags=seed["tags"],
                    provenance=Provenance.SEEDED,
                    source="seed",
                    created_at=datetime.now(timezone.utc),
                ))
            except DuplicateContentError:
                continue
            inserted += 1
        return inserted
