"""
CuraLink Enrichment Module
==========================

Summary generation, the dedup & enrichment import pipeline and
cold-start catalog seeding.
"""

from .summarizer import (
    SummaryProvider,
    SummaryConfig,
    BaseSummarizer,
    ClaudeSummarizer,
    TruncatingSummarizer,
    enforce_full_sentence_prose,
    create_summarizer,
)
from .pipeline import ImportPipeline, ImportReport
from .bootstrap import (
    CatalogBootstrapper,
    STATIC_PUBLICATION_SEEDS,
    DEFAULT_SEED_CONDITIONS,
)

__all__ = [
    # Summaries
    "SummaryProvider",
    "SummaryConfig",
    "BaseSummarizer",
    "ClaudeSummarizer",
    "TruncatingSummarizer",
    "enforce_full_sentence_prose",
    "create_summarizer",
    # Import
    "ImportPipeline",
    "ImportReport",
    # Bootstrap
    "CatalogBootstrapper",
    "STATIC_PUBLICATION_SEEDS",
    "DEFAULT_SEED_CONDITIONS",
]
