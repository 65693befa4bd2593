"""In-process concept store used when no remote metadata-db is configured."""

from __future__ import annotations

from typing import Any

import structlog

from access_control.errors import ConflictError, NotFoundError
from access_control.store.protocols import CONCEPT_ID_PREFIXES, Concept

logger = structlog.get_logger()

_FIRST_SEQUENCE = 1200000000


class MemoryMetadataDb:
    """Keeps every revision of every concept, plus providers and collections.

    Native ids are unique per (concept type, provider) among non-deleted
    concepts; saving a new concept whose native id belongs to a deleted one
    revives that concept with a new revision.
    """

    def __init__(self) -> None:
        self._providers: list[str] = []
        self._collections: list[dict[str, Any]] = []
        self._revisions: dict[str, list[Concept]] = {}
        self._native_ids: dict[tuple[str, str, str], str] = {}
        self._sequence = _FIRST_SEQUENCE

    def add_provider(self, provider_id: str) -> None:
        if provider_id not in self._providers:
            self._providers.append(provider_id)

    def add_collection(self, provider_id: str, entry_title: str, **fields: Any) -> None:
        self._collections.append({"provider_id": provider_id, "entry_title": entry_title, **fields})

    def reset(self) -> None:
        self._providers.clear()
        self._collections.clear()
        self._revisions.clear()
        self._native_ids.clear()
        self._sequence = _FIRST_SEQUENCE

    async def get_providers(self) -> list[str]:
        return list(self._providers)

    async def provider_exists(self, provider_id: str) -> bool:
        return provider_id in await self.get_providers()

    async def find_collections(self, provider_id: str, entry_title: str) -> list[dict[str, Any]]:
        return [
            c for c in self._collections
            if c["provider_id"] == provider_id and c["entry_title"] == entry_title
        ]

    async def collection_exists(self, provider_id: str, entry_title: str) -> bool:
        return bool(await self.find_collections(provider_id, entry_title))

    def _next_concept_id(self, concept_type: str, provider_id: str) -> str:
        self._sequence += 1
        return f"{CONCEPT_ID_PREFIXES[concept_type]}{self._sequence}-{provider_id}"

    def _latest(self, concept_id: str) -> Concept | None:
        revisions = self._revisions.get(concept_id)
        return revisions[-1] if revisions else None

    async def save_concept(
        self,
        concept_type: str,
        provider_id: str,
        native_id: str,
        metadata: dict[str, Any],
        user_id: str | None = None,
        concept_id: str | None = None,
    ) -> Concept:
        key = (concept_type, provider_id, native_id)
        existing_id = self._native_ids.get(key)

        if concept_id is None:
            if existing_id is not None:
                latest = self._latest(existing_id)
                if not latest.deleted:
                    raise ConflictError(
                        f"A {concept_type} with native id [{native_id}] already exists "
                        f"with concept id [{existing_id}] for provider [{provider_id}]."
                    )
                concept_id = existing_id
            else:
                concept_id = self._next_concept_id(concept_type, provider_id)
        elif concept_id not in self._revisions:
            raise NotFoundError(f"Concept with concept-id [{concept_id}] could not be found.")

        latest = self._latest(concept_id)
        concept = Concept(
            concept_type=concept_type,
            concept_id=concept_id,
            revision_id=latest.revision_id + 1 if latest else 1,
            provider_id=provider_id,
            native_id=native_id,
            metadata=metadata,
            user_id=user_id,
        )
        self._revisions.setdefault(concept_id, []).append(concept)
        self._native_ids[key] = concept_id
        logger.debug(
            "concept_saved",
            concept_id=concept_id,
            revision_id=concept.revision_id,
            concept_type=concept_type,
        )
        return concept

    async def get_latest_concept(self, concept_id: str) -> Concept | None:
        return self._latest(concept_id)

    async def find_latest_concepts(self, concept_type: str) -> list[Concept]:
        latest = (revisions[-1] for revisions in self._revisions.values())
        return [c for c in latest if c.concept_type == concept_type and not c.deleted]

    async def delete_concept(self, concept_id: str, user_id: str | None = None) -> Concept:
        latest = self._latest(concept_id)
        if latest is None or latest.deleted:
            raise NotFoundError(f"Concept with concept-id [{concept_id}] could not be found.")
        tombstone = Concept(
            concept_type=latest.concept_type,
            concept_id=concept_id,
            revision_id=latest.revision_id + 1,
            provider_id=latest.provider_id,
            native_id=latest.native_id,
            metadata=None,
            deleted=True,
            user_id=user_id,
        )
        self._revisions[concept_id].append(tombstone)
        logger.debug("concept_deleted", concept_id=concept_id, revision_id=tombstone.revision_id)
        return tombstone

    async def close(self) -> None:
        """No-op close method for compatibility with the MetadataDbClient interface."""
        pass
