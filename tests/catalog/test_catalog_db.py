"""
Tests for CatalogDB - the SQLite content store.
"""

import pytest
from pydantic import ValidationError

from curalink.catalog import (
    AffiliationState,
    CatalogDB,
    CatalogError,
    ContentKind,
    DuplicateContentError,
    Expert,
    JOINED_STATES,
    Provenance,
    Publication,
    Trial,
)


def create_publication(title, tags=None, abstract=None, doi=None, created_at=None, authors=None):
    """Helper to create a Publication for testing."""
    return Publication(
        title=title,
        description=abstract,
        tags=tags or [],
        external_identifier=doi,
        authors=authors or [],
        created_at=created_at,
    )


class TestStorage:
    """Test inserts and reads."""

    def test_round_trip(self, catalog_db):
        """Stored publications come back with id, timestamp and attributes."""
        stored = catalog_db.add_item(create_publication(
            "Insulin Pumps in Practice",
            tags=["Diabetes Mellitus"],
            abstract="A review of insulin pump therapy.",
            doi="10.1/abc",
            authors=["Dr. A", "Dr. B"],
        ))
        assert stored.id is not None
        assert stored.created_at is not None

        fetched = catalog_db.get_item(stored.id)
        assert isinstance(fetched, Publication)
        assert fetched.title == "Insulin Pumps in Practice"
        assert fetched.doi == "10.1/abc"
        assert fetched.authors == ["Dr. A", "Dr. B"]
        assert fetched.tags == ["Diabetes Mellitus"]
        assert fetched.provenance == Provenance.PLATFORM

    def test_trial_attributes(self, catalog_db):
        stored = catalog_db.add_item(Trial(
            title="Glioma Vaccine Study",
            registry_id="NCT01234567",
            phase="PHASE2",
            status="RECRUITING",
            tags=["Brain Cancer"],
        ))
        fetched = catalog_db.get_item(stored.id)
        assert isinstance(fetched, Trial)
        assert fetched.registry_id == "NCT01234567"
        assert fetched.external_identifier is None

    def test_missing_item(self, catalog_db):
        assert catalog_db.get_item(999) is None

    def test_tags_deduplicated(self, catalog_db):
        stored = catalog_db.add_item(create_publication("T", tags=["Asthma", " asthma ", "", "Migraine"]))
        assert stored.tags == ["Asthma", "Migraine"]

    def test_count(self, catalog_db):
        assert catalog_db.count(ContentKind.PUBLICATIONS) == 0
        catalog_db.add_item(create_publication("One"))
        catalog_db.add_item(Trial(title="Two"))
        assert catalog_db.count(ContentKind.PUBLICATIONS) == 1
        assert catalog_db.count(ContentKind.TRIALS) == 1
        assert catalog_db.count(ContentKind.EXPERTS) == 0

    def test_unopenable_path_raises_catalog_error(self, tmp_path):
        """Storage failures surface as CatalogError."""
        with pytest.raises(CatalogError):
            CatalogDB(str(tmp_path))


class TestUniqueness:
    """Test the (kind, external_identifier) backstop."""

    def test_duplicate_identifier_rejected(self, catalog_db):
        catalog_db.add_item(create_publication("First", doi="10.1/abc"))
        with pytest.raises(DuplicateContentError):
            catalog_db.add_item(create_publication("Second", doi="10.1/abc"))
        assert catalog_db.count(ContentKind.PUBLICATIONS) == 1

    def test_identifier_scoped_by_kind(self, catalog_db):
        catalog_db.add_item(create_publication("Paper", doi="10.1/abc"))
        catalog_db.add_item(Trial(title="Trial", external_identifier="10.1/abc"))
        assert catalog_db.count(ContentKind.TRIALS) == 1

    def test_missing_identifiers_do_not_collide(self, catalog_db):
        catalog_db.add_item(create_publication("A"))
        catalog_db.add_item(create_publication("B", doi="   "))
        assert catalog_db.count(ContentKind.PUBLICATIONS) == 2

    def test_exists_checks(self, catalog_db):
        catalog_db.add_item(create_publication("Insulin Therapy", doi="10.1/abc"))
        assert catalog_db.exists_by_external_identifier(ContentKind.PUBLICATIONS, "10.1/abc")
        assert not catalog_db.exists_by_external_identifier(ContentKind.TRIALS, "10.1/abc")
        assert catalog_db.exists_by_title(ContentKind.PUBLICATIONS, "  INSULIN therapy ")
        assert not catalog_db.exists_by_title(ContentKind.PUBLICATIONS, "Insulin")


class TestQueryItems:
    """Test the tag / substring predicate and ordering."""

    def test_tag_match_ignores_case(self, catalog_db):
        catalog_db.add_item(create_publication("Paper", tags=["diabetes mellitus"]))
        results = catalog_db.query_items(ContentKind.PUBLICATIONS, tags=["Diabetes Mellitus"])
        assert [r.title for r in results] == ["Paper"]

    def test_substring_match_in_text(self, catalog_db):
        catalog_db.add_item(create_publication(
            "Blood Pressure Study", tags=["Hypertension"], abstract="Patients with DIABETES were excluded."
        ))
        results = catalog_db.query_items(ContentKind.PUBLICATIONS, tags=["diabetes"])
        assert len(results) == 1

    def test_tags_are_not_substring_matched(self, catalog_db):
        """Only title and description are scanned for substrings."""
        catalog_db.add_item(create_publication("Paper", tags=["Hypertension"]))
        assert catalog_db.query_items(ContentKind.PUBLICATIONS, tags=["Hyper"]) == []

    def test_wildcard_characters_are_literal(self, catalog_db):
        catalog_db.add_item(create_publication("Ordinary title"))
        assert catalog_db.query_items(ContentKind.PUBLICATIONS, tags=["%"]) == []
        assert catalog_db.query_items(ContentKind.PUBLICATIONS, tags=["_"]) == []

    def test_non_matching_excluded(self, catalog_db):
        catalog_db.add_item(create_publication("Asthma inhalers", tags=["Asthma"]))
        assert catalog_db.query_items(ContentKind.PUBLICATIONS, tags=["Migraine"]) == []

    def test_empty_tag_list_matches_nothing(self, catalog_db):
        catalog_db.add_item(create_publication("Paper", tags=["Asthma"]))
        assert catalog_db.query_items(ContentKind.PUBLICATIONS, tags=[]) == []
        assert catalog_db.query_items(ContentKind.PUBLICATIONS, tags=["  "]) == []

    def test_no_tag_filter_reads_everything(self, catalog_db):
        catalog_db.add_item(create_publication("A"))
        catalog_db.add_item(create_publication("B"))
        assert len(catalog_db.query_items(ContentKind.PUBLICATIONS)) == 2

    def test_newest_first_and_limit(self, catalog_db, timestamps):
        for i, created in enumerate(timestamps[:5]):
            catalog_db.add_item(create_publication(f"Paper {i}", tags=["Asthma"], created_at=created))
        results = catalog_db.query_items(ContentKind.PUBLICATIONS, tags=["Asthma"], limit=3)
        assert [r.title for r in results] == ["Paper 4", "Paper 3", "Paper 2"]

    def test_text_filter(self, catalog_db):
        catalog_db.add_item(create_publication("Inhaler adherence"))
        catalog_db.add_item(create_publication("Insulin dosing"))
        results = catalog_db.query_items(ContentKind.PUBLICATIONS, text="INHALER")
        assert [r.title for r in results] == ["Inhaler adherence"]

    def test_kind_scoped(self, catalog_db):
        catalog_db.add_item(Trial(title="Asthma trial", tags=["Asthma"]))
        assert catalog_db.query_items(ContentKind.PUBLICATIONS, tags=["Asthma"]) == []


class TestExperts:
    """Test expert rows and affiliation states."""

    def test_platform_member_requires_account(self):
        with pytest.raises(ValidationError):
            Expert(title="Dr. X", affiliation_state=AffiliationState.PLATFORM_MEMBER)

    def test_account_only_for_platform_members(self):
        with pytest.raises(ValidationError):
            Expert(title="Dr. X", affiliation_state=AffiliationState.EXTERNAL_IMPORT, account_ref="7")

    def test_tags_include_specialties_and_interests(self):
        expert = Expert(title="Dr. X", specialties=["Oncology"], research_interests=["Lung Cancer"])
        assert expert.tags == ["Oncology", "Lung Cancer"]
        assert expert.name == "Dr. X"

    def test_upsert_platform_expert_is_idempotent(self, catalog_db):
        first = catalog_db.upsert_platform_expert("acct-1", "Dr. Ada", specialties=["Oncology"])
        second = catalog_db.upsert_platform_expert(
            "acct-1", "Dr. Ada Lovelace", specialties=["Oncology"], research_interests=["Brain Cancer"]
        )
        assert first.id == second.id
        assert second.name == "Dr. Ada Lovelace"
        assert "Brain Cancer" in second.tags
        assert second.affiliation_state == AffiliationState.PLATFORM_MEMBER
        assert catalog_db.count(ContentKind.EXPERTS) == 1

    def test_one_platform_expert_per_account(self, catalog_db):
        catalog_db.upsert_platform_expert("acct-1", "Dr. Ada")
        with pytest.raises(DuplicateContentError):
            catalog_db.add_item(Expert(
                title="Dr. Impostor",
                affiliation_state=AffiliationState.PLATFORM_MEMBER,
                account_ref="acct-1",
            ))

    def test_one_seed_row_per_title(self, catalog_db):
        """Seeded rows are unique per kind and title; other sources are not."""
        seed = Expert(title="Dr. Seed", provenance=Provenance.SEEDED, source="seed")
        catalog_db.add_item(seed)
        with pytest.raises(DuplicateContentError):
            catalog_db.add_item(Expert(title="dr. seed", provenance=Provenance.SEEDED, source="seed"))

        catalog_db.add_item(Expert(title="Dr. Seed", provenance=Provenance.IMPORTED, source="publication"))
        catalog_db.add_item(Publication(title="Dr. Seed", provenance=Provenance.SEEDED, source="seed"))
        assert catalog_db.count(ContentKind.EXPERTS) == 2

    def test_add_external_expert_dedupes_by_name(self, catalog_db):
        added = catalog_db.add_external_expert("Dr. Remote", specialties=["Cardiology"])
        assert added.affiliation_state == AffiliationState.EXTERNAL_IMPORT
        assert added.provenance == Provenance.IMPORTED
        assert catalog_db.add_external_expert("Dr. Remote") is None
        assert catalog_db.count(ContentKind.EXPERTS, JOINED_STATES) == 1

    def test_count_by_state(self, catalog_db):
        catalog_db.add_item(Expert(title="Placeholder"))
        assert catalog_db.count(ContentKind.EXPERTS) == 1
        assert catalog_db.count(ContentKind.EXPERTS, JOINED_STATES) == 0
        assert catalog_db.count(ContentKind.EXPERTS, []) == 0

    def test_platform_first_ordering(self, catalog_db, timestamps):
        catalog_db.upsert_platform_expert("acct-1", "Dr. Member")
        catalog_db.add_item(Expert(
            title="Dr. Newer External",
            affiliation_state=AffiliationState.EXTERNAL_IMPORT,
            created_at=timestamps[9].replace(year=2099),
        ))
        results = catalog_db.query_items(
            ContentKind.EXPERTS, affiliation_states=JOINED_STATES, platform_first=True
        )
        assert [r.name for r in results] == ["Dr. Member", "Dr. Newer External"]

    def test_expert_names(self, catalog_db):
        catalog_db.add_item(Expert(title="Dr. Seed"))
        catalog_db.add_external_expert("Dr. Remote")
        assert catalog_db.expert_names() == {"Dr. Seed", "Dr. Remote"}
        assert catalog_db.expert_names([AffiliationState.SEED_PLACEHOLDER]) == {"Dr. Seed"}

    def test_publication_authors(self, catalog_db, timestamps):
        catalog_db.add_item(create_publication(
            "P1", tags=["Asthma"], authors=["Dr. A", " ", "Dr. B"], created_at=timestamps[0]
        ))
        catalog_db.add_item(create_publication(
            "P2", tags=["Migraine"], authors=["Dr. A"], created_at=timestamps[1]
        ))
        authors = catalog_db.publication_authors()
        assert list(authors) == ["Dr. A", "Dr. B"]
        assert authors["Dr. A"] == ["Asthma", "Migraine"]
