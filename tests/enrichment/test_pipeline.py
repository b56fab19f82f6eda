"""
Tests for the dedup & enrichment import pipeline.

These tests verify that:
1. Running twice with the same input persists nothing the second time
2. Duplicates are detected by identifier, then by title
3. A failing or slow connector never sinks the others
4. Summary failures persist the item without a summary
"""

import pytest
from unittest.mock import MagicMock, patch

from curalink.catalog import (
    ContentKind,
    DuplicateContentError,
    Provenance,
    Publication,
    Trial,
)
from curalink.enrichment import ImportPipeline


class TestIdempotence:

    def test_second_run_persists_nothing(self, catalog_db, stub_connector, candidate, summarizer):
        """Same terms against an unchanged store insert only once."""
        connector = stub_connector(ContentKind.PUBLICATIONS, [
            candidate("Metformin Review", "Metformin abstract.", doi="10.1/met"),
            candidate("Insulin Pumps", "Pump abstract."),
        ])
        pipeline = ImportPipeline(catalog_db, [connector], summarizer=summarizer)

        assert pipeline.run(["Diabetes Mellitus"], ContentKind.PUBLICATIONS) == 2
        assert pipeline.run(["Diabetes Mellitus"], ContentKind.PUBLICATIONS) == 0
        assert catalog_db.count(ContentKind.PUBLICATIONS) == 2

    def test_same_identifier_twice_in_one_run(self, catalog_db, stub_connector, candidate, summarizer):
        """Only the first of two candidates sharing a DOI is persisted."""
        connector = stub_connector(ContentKind.PUBLICATIONS, [
            candidate("Version One", doi="10.1/abc"),
            candidate("Version Two", doi="10.1/abc"),
        ])
        pipeline = ImportPipeline(catalog_db, [connector], summarizer=summarizer)

        report = pipeline.import_terms(["asthma"], ContentKind.PUBLICATIONS)

        assert report.persisted == 1
        assert report.duplicates == 1
        assert [item.title for item in report.items] == ["Version One"]

    def test_same_candidate_from_two_terms(self, catalog_db, stub_connector, candidate, summarizer):
        connector = stub_connector(ContentKind.PUBLICATIONS, [candidate("Shared Paper", doi="10.9/x")])
        pipeline = ImportPipeline(catalog_db, [connector], summarizer=summarizer)
        assert pipeline.run(["asthma", "copd"], ContentKind.PUBLICATIONS) == 1


class TestDedup:

    def test_title_match_ignores_case(self, catalog_db, stub_connector, candidate, summarizer):
        catalog_db.add_item(Publication(title="Insulin Therapy"))
        connector = stub_connector(ContentKind.PUBLICATIONS, [candidate("  insulin THERAPY ")])
        pipeline = ImportPipeline(catalog_db, [connector], summarizer=summarizer)
        assert pipeline.run(["diabetes"], ContentKind.PUBLICATIONS) == 0

    def test_unknown_identifier_falls_back_to_title(self, catalog_db, stub_connector, candidate, summarizer):
        catalog_db.add_item(Publication(title="Insulin Therapy"))
        connector = stub_connector(ContentKind.PUBLICATIONS, [candidate("Insulin Therapy", doi="10.5/new")])
        pipeline = ImportPipeline(catalog_db, [connector], summarizer=summarizer)
        assert pipeline.run(["diabetes"], ContentKind.PUBLICATIONS) == 0

    def test_identifier_match_with_new_title(self, catalog_db, stub_connector, candidate, summarizer):
        catalog_db.add_item(Publication(title="Old Title", external_identifier="10.1/abc"))
        connector = stub_connector(ContentKind.PUBLICATIONS, [candidate("New Title", doi="10.1/abc")])
        pipeline = ImportPipeline(catalog_db, [connector], summarizer=summarizer)
        assert pipeline.run(["diabetes"], ContentKind.PUBLICATIONS) == 0

    def test_dedup_is_kind_scoped(self, catalog_db, stub_connector, candidate, summarizer):
        catalog_db.add_item(Publication(title="Glioma Vaccine"))
        connector = stub_connector(ContentKind.TRIALS, [candidate("Glioma Vaccine")])
        pipeline = ImportPipeline(catalog_db, [connector], summarizer=summarizer)
        assert pipeline.run(["Brain Cancer"], ContentKind.TRIALS) == 1

    def test_storage_uniqueness_backstop(self, catalog_db, stub_connector, candidate, summarizer):
        """A uniqueness rejection from the store counts as a duplicate."""
        catalog_db.add_item(Publication(title="Existing", external_identifier="10.1/abc"))
        connector = stub_connector(ContentKind.PUBLICATIONS, [candidate("Racing Insert", doi="10.1/abc")])
        pipeline = ImportPipeline(catalog_db, [connector], summarizer=summarizer)

        with patch.object(pipeline, "is_duplicate", return_value=False):
            report = pipeline.import_terms(["asthma"], ContentKind.PUBLICATIONS)

        assert report.persisted == 0
        assert report.duplicates == 1

    def test_blank_title_skipped(self, catalog_db, stub_connector, candidate, summarizer):
        connector = stub_connector(ContentKind.PUBLICATIONS, [candidate("   ")])
        pipeline = ImportPipeline(catalog_db, [connector], summarizer=summarizer)
        assert pipeline.run(["asthma"], ContentKind.PUBLICATIONS) == 0


class TestConnectors:

    def test_connector_order(self, catalog_db, stub_connector, candidate, summarizer):
        first = stub_connector(ContentKind.PUBLICATIONS, [candidate("A1"), candidate("A2")], source_tag="first")
        second = stub_connector(ContentKind.PUBLICATIONS, [candidate("B1")], source_tag="second")
        pipeline = ImportPipeline(catalog_db, [first, second], summarizer=summarizer)

        report = pipeline.import_terms(["asthma"], ContentKind.PUBLICATIONS)

        assert [item.title for item in report.items] == ["A1", "A2", "B1"]

    def test_failing_connector_is_isolated(self, catalog_db, stub_connector, candidate, summarizer):
        broken = stub_connector(ContentKind.PUBLICATIONS, error=RuntimeError("503"), source_tag="broken")
        working = stub_connector(ContentKind.PUBLICATIONS, [candidate("Survivor")], source_tag="working")
        pipeline = ImportPipeline(catalog_db, [broken, working], summarizer=summarizer)

        report = pipeline.import_terms(["asthma"], ContentKind.PUBLICATIONS)

        assert report.persisted == 1
        assert report.failed_sources == ["broken"]

    def test_slow_connector_does_not_block(self, catalog_db, stub_connector, candidate, summarizer):
        slow = stub_connector(ContentKind.PUBLICATIONS, [candidate("Too Late")], source_tag="slow", delay=2.0)
        fast = stub_connector(ContentKind.PUBLICATIONS, [candidate("On Time")], source_tag="fast")
        pipeline = ImportPipeline(catalog_db, [slow, fast], summarizer=summarizer, collect_timeout=0.2)

        report = pipeline.import_terms(["asthma"], ContentKind.PUBLICATIONS)

        assert [item.title for item in report.items] == ["On Time"]
        assert "slow" in report.failed_sources

    def test_only_connectors_for_kind_run(self, catalog_db, stub_connector, candidate, summarizer):
        trials = stub_connector(ContentKind.TRIALS, [candidate("Trial")])
        publications = stub_connector(ContentKind.PUBLICATIONS, [candidate("Paper")])
        pipeline = ImportPipeline(catalog_db, [trials, publications], summarizer=summarizer)

        pipeline.run(["asthma"], ContentKind.PUBLICATIONS)

        assert trials.calls == []
        assert publications.calls == ["asthma"]

    def test_blank_terms_ignored(self, catalog_db, stub_connector, summarizer):
        connector = stub_connector(ContentKind.PUBLICATIONS, [])
        pipeline = ImportPipeline(catalog_db, [connector], summarizer=summarizer)
        report = pipeline.import_terms(["", "  "], ContentKind.PUBLICATIONS)
        assert report.terms == []
        assert connector.calls == []

    def test_experts_not_importable(self, catalog_db):
        with pytest.raises(ValueError):
            ImportPipeline(catalog_db, []).run(["x"], ContentKind.EXPERTS)


class TestEnrichment:

    def test_imported_publication_fields(self, catalog_db, stub_connector, candidate, summarizer):
        connector = stub_connector(ContentKind.PUBLICATIONS, [candidate(
            "Metformin Review", "Outcomes of metformin in diabetic adults.", doi="10.1/met",
            source="pubmed", authors=["Smith J"], journal="Diabetes Care", url="https://example.org/1",
        )])
        pipeline = ImportPipeline(catalog_db, [connector], summarizer=summarizer)

        item = pipeline.import_terms(["Diabetes Mellitus"], ContentKind.PUBLICATIONS).items[0]

        assert item.provenance == Provenance.IMPORTED
        assert item.source == "pubmed"
        assert item.doi == "10.1/met"
        assert item.authors == ["Smith J"]
        assert item.journal == "Diabetes Care"
        assert item.summary == "Outcomes of metformin in diabetic adults."
        assert item.tags == ["Diabetes Mellitus"]

    def test_imported_trial_fields(self, catalog_db, stub_connector, candidate, summarizer):
        connector = stub_connector(ContentKind.TRIALS, [candidate(
            "Glioma Vaccine", "A vaccine study.", registry_id="NCT00000001",
            phase="PHASE2", conditions=["Glioma"],
        )])
        pipeline = ImportPipeline(catalog_db, [connector], summarizer=summarizer)

        item = pipeline.import_terms(["Brain Cancer"], ContentKind.TRIALS).items[0]

        assert isinstance(item, Trial)
        assert item.registry_id == "NCT00000001"
        assert item.phase == "PHASE2"
        assert item.tags[:2] == ["Brain Cancer", "Glioma"]

    def test_fallback_term_becomes_tag(self, catalog_db, stub_connector, candidate, summarizer):
        connector = stub_connector(ContentKind.PUBLICATIONS, [candidate("Some Paper")])
        pipeline = ImportPipeline(catalog_db, [connector], summarizer=summarizer)
        item = pipeline.import_terms(["cardiovascular"], ContentKind.PUBLICATIONS).items[0]
        assert item.tags == ["cardiovascular"]

    def test_summarizer_failure_stores_no_summary(self, catalog_db, stub_connector, candidate):
        broken = MagicMock()
        broken.summarize.side_effect = RuntimeError("backend down")
        connector = stub_connector(ContentKind.PUBLICATIONS, [candidate("Paper", "Abstract.")])
        pipeline = ImportPipeline(catalog_db, [connector], summarizer=broken)

        report = pipeline.import_terms(["asthma"], ContentKind.PUBLICATIONS)

        assert report.persisted == 1
        assert report.items[0].summary is None

    def test_title_summarized_when_no_abstract(self, catalog_db, stub_connector, candidate):
        recorder = MagicMock()
        recorder.summarize.return_value = "Summary."
        connector = stub_connector(ContentKind.PUBLICATIONS, [candidate("Only A Title")])
        pipeline = ImportPipeline(catalog_db, [connector], summarizer=recorder)

        pipeline.run(["asthma"], ContentKind.PUBLICATIONS)

        recorder.summarize.assert_called_once_with("Only A Title")
