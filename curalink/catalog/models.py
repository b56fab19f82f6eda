"""
Catalog Models
==============

Pydantic models and dataclasses for the content catalog.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator


class ContentKind(str, Enum):
    """Content kinds held in the catalog."""
    TRIALS = "trials"
    PUBLICATIONS = "publications"
    EXPERTS = "experts"


class Provenance(str, Enum):
    """How a row entered the catalog."""
    PLATFORM = "platform"
    IMPORTED = "imported"
    SEEDED = "seeded"


class AffiliationState(str, Enum):
    """Whether an expert row is backed by a platform account."""
    PLATFORM_MEMBER = "platformMember"
    EXTERNAL_IMPORT = "externalImport"
    SEED_PLACEHOLDER = "seedPlaceholder"


# Expert states that count as "joined" for visibility tiering
JOINED_STATES = (AffiliationState.PLATFORM_MEMBER, AffiliationState.EXTERNAL_IMPORT)


def _unique_tags(values: List[str]) -> List[str]:
    """Strip, drop empties and de-duplicate case-insensitively, keeping order."""
    seen = set()
    result = []
    for value in values:
        cleaned = (value or "").strip()
        key = cleaned.casefold()
        if cleaned and key not in seen:
            seen.add(key)
            result.append(cleaned)
    return result


class ContentItem(BaseModel):
    """Fields shared by every catalog row."""
    id: Optional[int] = None
    kind: ContentKind
    title: str
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    external_identifier: Optional[str] = None
    provenance: Provenance = Provenance.PLATFORM
    summary: Optional[str] = None
    source: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @model_validator(mode="after")
    def _clean_common(self):
        self.tags = _unique_tags(self.tags)
        if self.external_identifier is not None:
            self.external_identifier = self.external_identifier.strip() or None
        return self

    def searchable_text(self) -> str:
        """Free text the substring half of the match predicate scans."""
        return "\n".join(part for part in (self.title, self.description) if part)

    def attributes(self) -> Dict[str, Any]:
        """Kind-specific fields, stored as JSON."""
        return {}


class Trial(ContentItem):
    """A clinical trial."""
    kind: Literal[ContentKind.TRIALS] = ContentKind.TRIALS
    registry_id: Optional[str] = None      # e.g. NCT01234567
    phase: Optional[str] = None
    status: Optional[str] = None
    location: Optional[str] = None
    eligibility_criteria: Optional[str] = None
    url: Optional[str] = None

    def attributes(self) -> Dict[str, Any]:
        return {
            "registry_id": self.registry_id,
            "phase": self.phase,
            "status": self.status,
            "location": self.location,
            "eligibility_criteria": self.eligibility_criteria,
            "url": self.url,
        }


class Publication(ContentItem):
    """A publication; external_identifier holds the DOI."""
    kind: Literal[ContentKind.PUBLICATIONS] = ContentKind.PUBLICATIONS
    authors: List[str] = Field(default_factory=list)
    journal: Optional[str] = None
    publication_date: Optional[str] = None
    url: Optional[str] = None

    @property
    def abstract(self) -> Optional[str]:
        return self.description

    @property
    def doi(self) -> Optional[str]:
        return self.external_identifier

    def attributes(self) -> Dict[str, Any]:
        return {
            "authors": self.authors,
            "journal": self.journal,
            "publication_date": self.publication_date,
            "url": self.url,
        }


class Expert(ContentItem):
    """
    A health expert.

    account_ref is set exactly when the expert is a platform member;
    the catalog allows one platform expert per account.
    """
    kind: Literal[ContentKind.EXPERTS] = ContentKind.EXPERTS
    affiliation_state: AffiliationState = AffiliationState.SEED_PLACEHOLDER
    account_ref: Optional[str] = None
    specialties: List[str] = Field(default_factory=list)
    research_interests: List[str] = Field(default_factory=list)
    location: Optional[str] = None
    email: Optional[str] = None

    @model_validator(mode="after")
    def _check_affiliation(self):
        is_member = self.affiliation_state == AffiliationState.PLATFORM_MEMBER
        if is_member and not self.account_ref:
            raise ValueError("Platform member experts require an account_ref")
        if not is_member and self.account_ref:
            raise ValueError(
                f"Only platform member experts carry an account_ref "
                f"(got {self.affiliation_state.value})"
            )
        self.tags = _unique_tags(self.tags + self.specialties + self.research_interests)
        return self

    @property
    def name(self) -> str:
        return self.title

    def attributes(self) -> Dict[str, Any]:
        return {
            "specialties": self.specialties,
            "research_interests": self.research_interests,
            "location": self.location,
            "email": self.email,
        }


AnyContentItem = Union[Trial, Publication, Expert]

MODEL_FOR_KIND = {
    ContentKind.TRIALS: Trial,
    ContentKind.PUBLICATIONS: Publication,
    ContentKind.EXPERTS: Expert,
}


@dataclass
class ImportCandidate:
    """A record fetched from an external source, not yet in the catalog."""
    title: str
    abstract_or_description: str = ""
    external_identifier: Optional[str] = None
    source_tag: str = ""                      # 'pubmed', 'orcid', 'clinicaltrials.gov'
    raw_fields: Dict[str, Any] = field(default_factory=dict)

    @property
    def summary_input(self) -> str:
        """Text handed to the summary generator."""
        return (self.abstract_or_description or "").strip() or (self.title or "").strip()
