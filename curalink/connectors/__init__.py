"""
CuraLink Connectors Module
==========================

External sources that feed the import pipeline.
"""

from .base import BaseConnector, ConnectorResult
from .pubmed import PubMedConnector
from .orcid import OrcidConnector, ORCID_ID_PATTERN
from .clinical_trials import ClinicalTrialsGovConnector

__all__ = [
    "BaseConnector",
    "ConnectorResult",
    "PubMedConnector",
    "OrcidConnector",
    "ORCID_ID_PATTERN",
    "ClinicalTrialsGovConnector",
]
