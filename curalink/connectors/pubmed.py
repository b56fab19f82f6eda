"""
PubMed Connector
================

Literature search through the NCBI E-utilities (esearch + esummary).
"""

import logging
import re
from typing import Any, Dict, List, Optional

import requests

from ..catalog.models import ContentKind, ImportCandidate
from .base import BaseConnector

logger = logging.getLogger(__name__)


class PubMedConnector(BaseConnector):
    """Search PubMed and turn esummary documents into publication candidates."""

    ESEARCH_URL = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils/esearch.fcgi"
    ESUMMARY_URL = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils/esummary.fcgi"
    ARTICLE_URL = "https://pubmed.ncbi.nlm.nih.gov/{pmid}/"

    source_tag = "pubmed"
    kind = ContentKind.PUBLICATIONS

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        super().__init__(timeout=timeout, session=session)
        self.api_key = api_key

    def _params(self, **params) -> Dict[str, Any]:
        params["db"] = "pubmed"
        params["retmode"] = "json"
        if self.api_key:
            params["api_key"] = self.api_key
        return params

    def search(self, term: str, max_results: int) -> List[ImportCandidate]:
        data = self._get_json(self.ESEARCH_URL, params=self._params(term=term, retmax=max_results))
        ids = (data.get("esearchresult") or {}).get("idlist") or []
        if not ids:
            logger.debug(f"PubMed found nothing for '{term}'")
            return []

        details = self._get_json(self.ESUMMARY_URL, params=self._params(id=",".join(ids)))
        results = details.get("result") or {}

        candidates = []
        for pmid in ids:
            doc = results.get(pmid)
            if not doc or not (doc.get("title") or "").strip():
                continue
            candidates.append(self._to_candidate(pmid, doc))
        return candidates

    def _to_candidate(self, pmid: str, doc: Dict[str, Any]) -> ImportCandidate:
        authors = [a.get("name", "").strip() for a in doc.get("authors") or [] if a.get("name")]
        return ImportCandidate(
            title=doc["title"].strip(),
            abstract_or_description=(doc.get("abstract") or "").strip(),
            external_identifier=self._extract_doi(doc),
            source_tag=self.source_tag,
            raw_fields={
                "pmid": pmid,
                "authors": authors,
                "journal": doc.get("source") or None,
                "publication_date": doc.get("pubdate") or None,
                "url": self.ARTICLE_URL.format(pmid=pmid),
            },
        )

    @staticmethod
    def _extract_doi(doc: Dict[str, Any]) -> Optional[str]:
        """DOI from articleids, else from the 'doi: ...' elocationid."""
        for article_id in doc.get("articleids") or []:
            if article_id.get("idtype") == "doi" and article_id.get("value"):
                return article_id["value"].strip()

        match = re.search(r"doi:\s*(\S+)", doc.get("elocationid") or "", re.IGNORECASE)
        return match.group(1).rstrip(".") if match else None
