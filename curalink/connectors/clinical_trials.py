"""
ClinicalTrials.gov Connector
============================

Trial registry search through the ClinicalTrials.gov API v2.
"""

import logging
from typing import Any, Dict, List

from ..catalog.models import ContentKind, ImportCandidate
from .base import BaseConnector

logger = logging.getLogger(__name__)


class ClinicalTrialsGovConnector(BaseConnector):
    """Search studies by condition."""

    BASE_URL = "https://clinicaltrials.gov/api/v2"
    STUDY_URL = "https://clinicaltrials.gov/study/{nct_id}"

    source_tag = "clinicaltrials.gov"
    kind = ContentKind.TRIALS

    def search(self, term: str, max_results: int) -> List[ImportCandidate]:
        params = {
            "query.cond": term,
            "pageSize": min(max_results, 1000),
            "format": "json",
        }
        data = self._get_json(f"{self.BASE_URL}/studies", params=params)

        candidates = []
        for study in data.get("studies") or []:
            candidate = self._to_candidate(study)
            if candidate is not None:
                candidates.append(candidate)
        return candidates

    def _to_candidate(self, study: Dict[str, Any]):
        protocol = study.get("protocolSection") or {}
        identification = protocol.get("identificationModule") or {}
        title = (identification.get("briefTitle") or "").strip()
        if not title:
            return None

        nct_id = identification.get("nctId")
        conditions = (protocol.get("conditionsModule") or {}).get("conditions") or []
        phases = (protocol.get("designModule") or {}).get("phases") or []
        locations = (protocol.get("contactsLocationsModule") or {}).get("locations") or []
        eligibility = (protocol.get("eligibilityModule") or {}).get("eligibilityCriteria")

        # Trials carry no external identifier; the NCT id rides along as an attribute
        return ImportCandidate(
            title=title,
            abstract_or_description=((protocol.get("descriptionModule") or {}).get("briefSummary") or "").strip(),
            external_identifier=None,
            source_tag=self.source_tag,
            raw_fields={
                "registry_id": nct_id,
                "conditions": [c for c in conditions if isinstance(c, str)],
                "status": (protocol.get("statusModule") or {}).get("overallStatus"),
                "phase": phases[0] if phases else None,
                "location": locations[0].get("city") if locations else None,
                "eligibility_criteria": eligibility,
                "url": self.STUDY_URL.format(nct_id=nct_id) if nct_id else None,
            },
        )
