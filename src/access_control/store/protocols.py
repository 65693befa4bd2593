"""Interface of the concept store (metadata-db) used by the services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol, runtime_checkable

ACCESS_GROUP = "access-group"
ACL = "acl"

CONCEPT_ID_PREFIXES = {
    ACCESS_GROUP: "AG",
    ACL: "ACL",
}


@dataclass
class Concept:
    """One revision of a stored concept. Tombstones have ``deleted`` set and no metadata."""

    concept_type: str
    concept_id: str
    revision_id: int
    provider_id: str
    native_id: str
    metadata: dict[str, Any] | None
    deleted: bool = False
    user_id: str | None = None
    revision_date: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@runtime_checkable
class MetadataDb(Protocol):
    async def get_providers(self) -> list[str]:
        """Return the ids of every registered provider."""
        ...

    async def provider_exists(self, provider_id: str) -> bool:
        ...

    async def find_collections(self, provider_id: str, entry_title: str) -> list[dict[str, Any]]:
        """Return the latest collections of a provider having the entry title."""
        ...

    async def collection_exists(self, provider_id: str, entry_title: str) -> bool:
        ...

    async def save_concept(
        self,
        concept_type: str,
        provider_id: str,
        native_id: str,
        metadata: dict[str, Any],
        user_id: str | None = None,
        concept_id: str | None = None,
    ) -> Concept:
        """Save a new revision, allocating a concept id when none is given."""
        ...

    async def get_latest_concept(self, concept_id: str) -> Concept | None:
        ...

    async def find_latest_concepts(self, concept_type: str) -> list[Concept]:
        """Return the latest revision of every non-deleted concept of a type."""
        ...

    async def delete_concept(self, concept_id: str, user_id: str | None = None) -> Concept:
        """Save a tombstone revision for the concept."""
        ...

    async def close(self) -> None:
        ...
