"""
CuraLink Catalog Module
=======================

Content models and the SQLite content store.
"""

from .models import (
    ContentKind,
    Provenance,
    AffiliationState,
    JOINED_STATES,
    ContentItem,
    Trial,
    Publication,
    Expert,
    AnyContentItem,
    ImportCandidate,
)
from .database import CatalogDB, CatalogError, DuplicateContentError

__all__ = [
    # Models
    "ContentKind",
    "Provenance",
    "AffiliationState",
    "JOINED_STATES",
    "ContentItem",
    "Trial",
    "Publication",
    "Expert",
    "AnyContentItem",
    "ImportCandidate",
    # Storage
    "CatalogDB",
    "CatalogError",
    "DuplicateContentError",
]
