# CuraLink - Personalized Matching Engine
# =======================================
"""
Matching Engine
===============
Retrieves trials, publications and experts for a patient's canonical
condition tags.

Policy per kind, first applicable branch wins:
1. No tags -> []
2. Experts -> ExpertTiering (tier, then predicate, then whole tier)
3. Predicate: an item tag equals a patient tag (ignoring case), or a
   patient tag occurs in the title/description (ignoring case)
4. Newest first, one page
5. Publications only: empty result on an empty catalog runs the import
   pipeline for the first tags, then reads once more

Ranking is recency only.
"""

import logging
from typing import Iterable, List, Optional

from ..catalog.database import CatalogDB
from ..catalog.models import AnyContentItem, ContentKind
from ..enrichment.pipeline import ImportPipeline
from .experts import ExpertTiering

logger = logging.getLogger(__name__)


def clean_tags(patient_tags: Optional[Iterable[str]]) -> List[str]:
    """
    Strip tags and drop blanks and repeats, keeping order.

    Sets have no order of their own, so they are sorted first to keep
    bootstrap term selection deterministic.
    """
    if not patient_tags:
        return []
    if isinstance(patient_tags, (set, frozenset)):
        patient_tags = sorted(patient_tags)

    tags: List[str] = []
    for tag in patient_tags:
        cleaned = (tag or "").strip()
        if cleaned and cleaned not in tags:
            tags.append(cleaned)
    return tags


class MatchingEngine:
    """
    Personalized and unfiltered reads over the content store.

    Usage:
        engine = MatchingEngine(db, pipeline=pipeline)
        trials = engine.personalized_match({"Lung Cancer"}, ContentKind.TRIALS)
    """

    def __init__(
        self,
        db: CatalogDB,
        pipeline: Optional[ImportPipeline] = None,
        expert_tiering: Optional[ExpertTiering] = None,
        personalized_page_size: int = 20,
        browse_page_size: int = 50,
        bootstrap_terms: int = 2,
    ):
        self.db = db
        self.pipeline = pipeline
        self.expert_tiering = expert_tiering or ExpertTiering(db)
        self.personalized_page_size = personalized_page_size
        self.browse_page_size = browse_page_size
        self.bootstrap_terms = bootstrap_terms

    # ==================== PERSONALIZED ====================

    def personalized_match(
        self,
        patient_tags: Optional[Iterable[str]],
        kind: ContentKind,
    ) -> List[AnyContentItem]:
        """
        Content of one kind matching a patient's tags.

        Args:
            patient_tags: Canonical tags (or fallback text tags)
            kind: trials, publications or experts

        Returns:
            Up to personalized_page_size items, newest first

        Raises:
            CatalogError: If the content store cannot be read
        """
        kind = ContentKind(kind)
        tags = clean_tags(patient_tags)
        if not tags:
            return []

        if kind == ContentKind.EXPERTS:
            return self.expert_tiering.match(tags, limit=self.personalized_page_size)

        items = self._read(kind, tags)
        if items or kind != ContentKind.PUBLICATIONS:
            return items

        if self.db.count(kind) > 0:
            return items

        if self.bootstrap(tags, kind) > 0:
            items = self._read(kind, tags)
        return items

    def _read(self, kind: ContentKind, tags: List[str]) -> List[AnyContentItem]:
        return self.db.query_items(kind, tags=tags, limit=self.personalized_page_size)

    def bootstrap(self, tags: List[str], kind: ContentKind) -> int:
        """
        Best-effort import for an empty catalog.

        Returns:
            Rows persisted; 0 when no pipeline is configured or it failed
        """
        if self.pipeline is None:
            logger.debug(f"No import pipeline configured, skipping {kind.value} bootstrap")
            return 0

        terms = tags[:self.bootstrap_terms]
        logger.info(f"Empty {kind.value} catalog, bootstrapping from {terms}")
        try:
            return self.pipeline.run(terms, kind)
        except Exception as e:
            logger.warning(f"Lazy bootstrap for {kind.value} failed: {e}")
            return 0

    # ==================== BROWSE & SEARCH ====================

    def browse(self, kind: ContentKind, search: Optional[str] = None) -> List[AnyContentItem]:
        """
        Unfiltered page of one kind, optionally narrowed by a search string.

        Experts list platform members first.
        """
        kind = ContentKind(kind)
        return self.db.query_items(
            kind,
            text=search,
            platform_first=kind == ContentKind.EXPERTS,
            limit=self.browse_page_size,
        )

    def search_publications(self, text: str) -> List[AnyContentItem]:
        """
        Search publications, refreshing from the external sources first.

        The import is best-effort; the store is read again afterwards so
        newly imported matches are included.
        """
        text = (text or "").strip()
        if not text:
            return self.browse(ContentKind.PUBLICATIONS)

        if self.pipeline is not None:
            try:
                self.pipeline.run([text], ContentKind.PUBLICATIONS)
            except Exception as e:
                logger.warning(f"Publication refresh for '{text}' failed: {e}")

        return self.db.query_items(
            ContentKind.PUBLICATIONS,
            tags=[text],
            limit=self.browse_page_size,
        )
