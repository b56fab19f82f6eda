# CuraLink - Import Pipeline
# ==========================
"""
Dedup & Enrichment Pipeline
===========================
Pulls candidates from the import connectors, drops the ones already in
the catalog, attaches a summary and persists the rest as imported
content.

Flow per run:
1. For each term, call every connector for the kind in parallel; a
   failing or slow connector contributes zero candidates
2. Flatten candidates in connector order
3. Dedup: external identifier (kind-scoped), else case-insensitive title
4. Summarize survivors; a summary failure stores no summary
5. Insert with provenance=imported; a uniqueness rejection from the
   store counts as a duplicate

Running the same terms twice against an unchanged catalog persists
nothing the second time.
"""

import time
import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from ..catalog.database import CatalogDB, DuplicateContentError
from ..catalog.models import (
    AnyContentItem,
    ContentKind,
    ImportCandidate,
    Provenance,
    Publication,
    Trial,
)
from ..conditions.normalizer import ConditionNormalizer
from ..connectors.base import BaseConnector, ConnectorResult
from .summarizer import BaseSummarizer, TruncatingSummarizer

logger = logging.getLogger(__name__)


@dataclass
class ImportReport:
    """What one pipeline run did."""
    kind: ContentKind
    terms: List[str] = field(default_factory=list)
    fetched: int = 0
    duplicates: int = 0
    failed_sources: List[str] = field(default_factory=list)
    items: List[AnyContentItem] = field(default_factory=list)
    elapsed_ms: float = 0.0

    @property
    def persisted(self) -> int:
        return len(self.items)


class ImportPipeline:
    """
    Dedup & enrichment over a fixed, ordered list of connectors.

    Usage:
        pipeline = ImportPipeline(db, [PubMedConnector(), OrcidConnector()])
        added = pipeline.run(["Lung Cancer"], ContentKind.PUBLICATIONS)
    """

    SUPPORTED_KINDS = (ContentKind.TRIALS, ContentKind.PUBLICATIONS)

    def __init__(
        self,
        db: CatalogDB,
        connectors: Sequence[BaseConnector],
        summarizer: Optional[BaseSummarizer] = None,
        normalizer: Optional[ConditionNormalizer] = None,
        max_results: int = 5,
        collect_timeout: float = 20.0,
    ):
        """
        Initialize pipeline.

        Args:
            db: Content store
            connectors: Connectors in the order their candidates are taken
            summarizer: Summary generator (truncation if not provided)
            normalizer: Tags imported content with canonical conditions
            max_results: Candidates requested per connector per term
            collect_timeout: Seconds to wait for all connectors of one term
        """
        self.db = db
        self.connectors = list(connectors)
        self.summarizer = summarizer or TruncatingSummarizer()
        self.normalizer = normalizer or ConditionNormalizer()
        self.max_results = max_results
        self.collect_timeout = collect_timeout

    def connectors_for(self, kind: ContentKind) -> List[BaseConnector]:
        return [c for c in self.connectors if c.kind == kind]

    def run(self, terms: Iterable[str], kind: ContentKind) -> int:
        """Import for terms and return the number of rows persisted."""
        return self.import_terms(terms, kind).persisted

    def import_terms(self, terms: Iterable[str], kind: ContentKind) -> ImportReport:
        """
        Import for every term and report the outcome.

        Raises:
            ValueError: If kind is not importable
            CatalogError: If the content store fails
        """
        if kind not in self.SUPPORTED_KINDS:
            raise ValueError(f"Cannot import content of kind '{kind.value}'")

        start_time = time.time()
        report = ImportReport(kind=kind)

        for term in terms:
            term = (term or "").strip()
            if not term:
                continue
            report.terms.append(term)

            candidates = self._collect(term, kind, report)
            report.fetched += len(candidates)

            for candidate in candidates:
                item = self._import_candidate(candidate, kind, term)
                if item is None:
                    report.duplicates += 1
                else:
                    report.items.append(item)

        report.elapsed_ms = (time.time() - start_time) * 1000
        logger.info(
            f"Imported {report.persisted} {kind.value} for {report.terms} "
            f"({report.fetched} fetched, {report.duplicates} duplicates, "
            f"{report.elapsed_ms:.0f}ms)"
        )
        return report

    # ==================== COLLECTION ====================

    def _collect(self, term: str, kind: ContentKind, report: ImportReport) -> List[ImportCandidate]:
        """Run the kind's connectors concurrently, keeping connector order."""
        connectors = self.connectors_for(kind)
        if not connectors:
            return []

        executor = ThreadPoolExecutor(max_workers=len(connectors))
        try:
            futures = [executor.submit(c.fetch, term, self.max_results) for c in connectors]
            deadline = time.time() + self.collect_timeout

            candidates: List[ImportCandidate] = []
            for connector, future in zip(connectors, futures):
                try:
                    result = future.result(timeout=max(0.0, deadline - time.time()))
                except FutureTimeoutError:
                    logger.warning(f"{connector.source_tag} did not finish within {self.collect_timeout}s")
                    result = ConnectorResult.failure(connector.source_tag, "timeout")

                if not result.ok:
                    report.failed_sources.append(connector.source_tag)
                candidates.extend(result.candidates)
            return candidates
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    # ==================== DEDUP & PERSIST ====================

    def is_duplicate(self, candidate: ImportCandidate, kind: ContentKind) -> bool:
        """Already in the catalog by identifier or, failing that, by title."""
        identifier = (candidate.external_identifier or "").strip()
        if identifier and self.db.exists_by_external_identifier(kind, identifier):
            return True
        return self.db.exists_by_title(kind, candidate.title)

    def _import_candidate(
        self,
        candidate: ImportCandidate,
        kind: ContentKind,
        term: str,
    ) -> Optional[AnyContentItem]:
        if not (candidate.title or "").strip():
            return None

        if self.is_duplicate(candidate, kind):
            logger.debug(f"Skipping duplicate {kind.value}: '{candidate.title}'")
            return None

        item = self._build_item(candidate, kind, term, self._summarize(candidate))
        try:
            return self.db.add_item(item)
        except DuplicateContentError as e:
            logger.debug(f"Store rejected duplicate {kind.value}: {e}")
            return None

    def _summarize(self, candidate: ImportCandidate) -> Optional[str]:
        try:
            return self.summarizer.summarize(candidate.summary_input) or None
        except Exception as e:
            logger.warning(f"Summarizer raised for '{candidate.title}': {e}")
            return None

    def _tags_for(self, candidate: ImportCandidate, term: str) -> List[str]:
        """Search term, source-provided conditions, then conditions found in the text."""
        tags = list(self.normalizer.extract_or_fallback(term))
        tags.extend(candidate.raw_fields.get("conditions") or [])
        tags.extend(self.normalizer.extract_conditions(
            f"{candidate.title}\n{candidate.abstract_or_description}"
        ))
        return tags

    def _build_item(
        self,
        candidate: ImportCandidate,
        kind: ContentKind,
        term: str,
        summary: Optional[str],
    ) -> AnyContentItem:
        raw = candidate.raw_fields
        common = dict(
            title=candidate.title.strip(),
            description=candidate.abstract_or_description or None,
            tags=self._tags_for(candidate, term),
            provenance=Provenance.IMPORTED,
            summary=summary,
            source=candidate.source_tag or None,
        )

        if kind == ContentKind.TRIALS:
            return Trial(
                **common,
                registry_id=raw.get("registry_id"),
                phase=raw.get("phase"),
                status=raw.get("status"),
                location=raw.get("location"),
                eligibility_criteria=raw.get("eligibility_criteria"),
                url=raw.get("url"),
            )

        return Publication(
            **common,
            external_identifier=candidate.external_identifier,
            authors=raw.get("authors") or [],
            journal=raw.get("journal"),
            publication_date=raw.get("publication_date"),
            url=raw.get("url"),
        )
