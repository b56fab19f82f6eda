# CuraLink - Recommendation Service
# =================================
"""
Recommendation Service
======================
Single entry point for the surrounding application. Wires the content
store, connectors, summary generator, import pipeline, matching engine
and bootstrapper from a CuralinkConfig.

Usage:
    service = RecommendationService()
    service.normalize("I was diagnosed with a brain tumor")   # {'Brain Cancer'}
    service.recommend(["brain tumor", "diabetic"], ContentKind.TRIALS)
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Set

from .catalog.database import CatalogDB
from .catalog.models import AnyContentItem, ContentKind, Expert
from .conditions.normalizer import ConditionNormalizer
from .config import CuralinkConfig
from .connectors import (
    BaseConnector,
    ClinicalTrialsGovConnector,
    OrcidConnector,
    PubMedConnector,
)
from .enrichment.bootstrap import CatalogBootstrapper
from .enrichment.pipeline import ImportPipeline, ImportReport
from .enrichment.summarizer import BaseSummarizer, create_summarizer
from .matching.engine import MatchingEngine

logger = logging.getLogger(__name__)


def default_connectors(config: CuralinkConfig) -> List[BaseConnector]:
    """Publications: PubMed then ORCID. Trials: ClinicalTrials.gov."""
    return [
        PubMedConnector(api_key=config.pubmed_api_key, timeout=config.connector_timeout),
        OrcidConnector(timeout=config.connector_timeout),
        ClinicalTrialsGovConnector(timeout=config.connector_timeout),
    ]


class RecommendationService:
    """Facade over the matching core."""

    def __init__(
        self,
        config: Optional[CuralinkConfig] = None,
        db: Optional[CatalogDB] = None,
        connectors: Optional[Sequence[BaseConnector]] = None,
        summarizer: Optional[BaseSummarizer] = None,
        normalizer: Optional[ConditionNormalizer] = None,
    ):
        self.config = config or CuralinkConfig.from_env()
        self.db = db or CatalogDB(self.config.db_path)
        self.normalizer = normalizer or ConditionNormalizer()

        self.pipeline = ImportPipeline(
            self.db,
            connectors if connectors is not None else default_connectors(self.config),
            summarizer=summarizer or create_summarizer(self.config.summary),
            normalizer=self.normalizer,
            max_results=self.config.import_max_results,
            collect_timeout=self.config.collect_timeout,
        )
        self.engine = MatchingEngine(
            self.db,
            pipeline=self.pipeline,
            personalized_page_size=self.config.personalized_page_size,
            browse_page_size=self.config.browse_page_size,
            bootstrap_terms=self.config.bootstrap_terms,
        )
        self.bootstrapper = CatalogBootstrapper(
            self.db,
            self.pipeline,
            seed_terms=self.config.seed_terms,
        )

    # ==================== INBOUND INTERFACE ====================

    def normalize(self, text: Optional[str]) -> Set[str]:
        return self.normalizer.normalize(text)

    def personalized_match(
        self,
        patient_tags: Optional[Iterable[str]],
        kind: ContentKind,
    ) -> List[AnyContentItem]:
        return self.engine.personalized_match(patient_tags, kind)

    # ==================== CONVENIENCE ====================

    def patient_tags(self, conditions: Iterable[str]) -> List[str]:
        """Tags for a patient's condition list, recomputed on every call."""
        return self.normalizer.normalize_condition_set(conditions)

    def recommend(self, conditions: Iterable[str], kind: ContentKind) -> List[AnyContentItem]:
        """Normalize a patient's free-text conditions and match one kind."""
        tags = self.patient_tags(conditions)
        logger.info(f"Matching {ContentKind(kind).value} for tags {tags}")
        return self.engine.personalized_match(tags, kind)

    def browse(self, kind: ContentKind, search: Optional[str] = None) -> List[AnyContentItem]:
        return self.engine.browse(kind, search)

    def search_publications(self, text: str) -> List[AnyContentItem]:
        return self.engine.search_publications(text)

    def import_content(self, terms: Iterable[str], kind: ContentKind) -> ImportReport:
        return self.pipeline.import_terms(terms, ContentKind(kind))

    def ensure_seeded(self, conditions: Optional[Sequence[str]] = None) -> Dict[ContentKind, int]:
        return self.bootstrapper.ensure_seeded(conditions)

    def sync_platform_expert(
        self,
        account_ref: str,
        name: str,
        specialties: Optional[List[str]] = None,
        research_interests: Optional[List[str]] = None,
        email: Optional[str] = None,
        location: Optional[str] = None,
    ) -> Expert:
        """Create or refresh the expert row for a platform researcher account."""
        return self.db.upsert_platform_expert(
            account_ref,
            name,
            specialties=specialties,
            research_interests=research_interests,
            email=email,
            location=location,
        )
