"""ACL service: validated saves, retrieval, deletion and search of ACLs."""

from __future__ import annotations

import uuid
from typing import Any

import structlog

from access_control.acl.identity import acl_display_name, acl_provider_id
from access_control.acl.models import Acl, SaveKind
from access_control.acl.validation import validate_acl_save
from access_control.context import RequestContext, resolve_user
from access_control.errors import BadRequestError, NotFoundError
from access_control.index.documents import acl_document
from access_control.index.search_index import ACL_INDEX, SearchIndex, VersionType
from access_control.store.protocols import ACL, Concept, MetadataDb

logger = structlog.get_logger()

# Values of the identity_type search parameter and the label they match in the index.
_IDENTITY_TYPE_PARAMS = {
    "system": "System",
    "provider": "Provider",
    "single_instance": "Group",
    "catalog_item": "Catalog Item",
}


class AclService:
    """Saves ACLs only after they pass validation, and indexes every saved revision."""

    def __init__(
        self,
        metadata_db: MetadataDb,
        search_index: SearchIndex,
        public_root_url: str = "http://localhost:3011/",
        system_provider_id: str = "CMR",
    ):
        self._metadata_db = metadata_db
        self._search_index = search_index
        self._public_root_url = public_root_url.rstrip("/") + "/"
        self._system_provider_id = system_provider_id

    async def _fetch_acl_concept(self, concept_id: str) -> Concept:
        concept = await self._metadata_db.get_latest_concept(concept_id)
        if concept is None or concept.deleted or concept.concept_type != ACL:
            raise NotFoundError(f"ACL could not be found with concept id [{concept_id}]")
        return concept

    def _index(self, concept: Concept, version_type: VersionType = "external_gte") -> None:
        self._search_index.save_document(
            ACL_INDEX, concept.concept_id, acl_document(concept), concept.revision_id, version_type
        )

    async def _save(
        self,
        context: RequestContext,
        acl: Acl,
        native_id: str,
        concept_id: str | None = None,
    ) -> Concept:
        concept = await self._metadata_db.save_concept(
            ACL,
            acl_provider_id(acl) or self._system_provider_id,
            native_id=native_id,
            metadata=acl.model_dump(mode="json", exclude_none=True),
            user_id=await resolve_user(context),
            concept_id=concept_id,
        )
        self._index(concept)
        return concept

    async def create_acl(self, context: RequestContext, acl: Acl) -> dict[str, Any]:
        await validate_acl_save(context, acl, SaveKind.CREATE)
        concept = await self._save(context, acl, native_id=str(uuid.uuid4()))
        logger.info(
            "acl_created",
            concept_id=concept.concept_id,
            revision_id=concept.revision_id,
            provider_id=concept.provider_id,
        )
        return {"concept_id": concept.concept_id, "revision_id": concept.revision_id}

    async def update_acl(
        self, context: RequestContext, concept_id: str, acl: Acl
    ) -> dict[str, Any]:
        existing = await self._fetch_acl_concept(concept_id)
        await validate_acl_save(context, acl, SaveKind.UPDATE)
        concept = await self._save(context, acl, native_id=existing.native_id, concept_id=concept_id)
        logger.info("acl_updated", concept_id=concept_id, revision_id=concept.revision_id)
        return {"concept_id": concept.concept_id, "revision_id": concept.revision_id}

    async def get_acl(self, concept_id: str) -> Acl:
        concept = await self._fetch_acl_concept(concept_id)
        return Acl.model_validate(concept.metadata)

    async def delete_acl(self, context: RequestContext, concept_id: str) -> dict[str, Any]:
        await self._fetch_acl_concept(concept_id)
        tombstone = await self._metadata_db.delete_concept(
            concept_id, user_id=await resolve_user(context)
        )
        self._search_index.delete_document(ACL_INDEX, concept_id, tombstone.revision_id)
        logger.info("acl_deleted", concept_id=concept_id, revision_id=tombstone.revision_id)
        return {"concept_id": concept_id, "revision_id": tombstone.revision_id}

    async def search_for_acls(
        self,
        provider: str | None = None,
        permitted_group: str | None = None,
        identity_type: str | None = None,
    ) -> dict[str, Any]:
        """Case-insensitive ACL search returning references to matching ACLs."""
        terms = {}
        if provider is not None:
            terms["target_provider_id_lowercase"] = provider.lower()
        if permitted_group is not None:
            terms["permitted_group_lowercase"] = permitted_group.lower()
        if identity_type is not None:
            if identity_type.lower() not in _IDENTITY_TYPE_PARAMS:
                raise BadRequestError(
                    f"Parameter identity_type has invalid value [{identity_type}]. Only "
                    f"[{', '.join(_IDENTITY_TYPE_PARAMS)}] can be specified."
                )
            terms["identity_type"] = _IDENTITY_TYPE_PARAMS[identity_type.lower()]

        docs = self._search_index.search(ACL_INDEX, terms)
        items = [
            {
                "concept_id": doc["concept_id"],
                "revision_id": doc["revision_id"],
                "name": doc["display_name"],
                "identity_type": doc["identity_type"],
                "location": f"{self._public_root_url}acls/{doc['concept_id']}",
            }
            for doc in docs
        ]
        return {"hits": len(items), "items": items}

    async def find_provider_acls(self, provider_id: str) -> list[Acl]:
        """Return the current revision of every ACL scoped to a provider.

        Matching ids come from the index but each ACL is read from the concept
        store, so grants saved since indexing are observed.
        """
        return await self._current_acls(await self.search_for_acls(provider=provider_id))

    async def find_system_acls(self) -> list[Acl]:
        """Return the current revision of every system ACL."""
        return await self._current_acls(await self.search_for_acls(identity_type="system"))

    async def _current_acls(self, refs: dict[str, Any]) -> list[Acl]:
        acls = []
        for item in refs["items"]:
            concept = await self._metadata_db.get_latest_concept(item["concept_id"])
            if concept is not None and not concept.deleted:
                acls.append(Acl.model_validate(concept.metadata))
        return acls

    async def import_acl(self, context: RequestContext, acl: Acl) -> dict[str, Any]:
        """Save a trusted ACL, such as bootstrap seed data.

        Runs the update rules, which skip the create-permission check: there is
        no acting user to hold a grant before the first ACLs exist.
        """
        await validate_acl_save(context, acl, SaveKind.UPDATE)
        concept = await self._save(context, acl, native_id=str(uuid.uuid4()))
        logger.info("acl_imported", concept_id=concept.concept_id, display_name=acl_display_name(acl))
        return {"concept_id": concept.concept_id, "revision_id": concept.revision_id}

    async def index_all_acls(self) -> int:
        """Reindex the latest revision of every stored ACL, replacing what the index holds.

        Returns the number indexed.
        """
        concepts = await self._metadata_db.find_latest_concepts(ACL)
        for concept in concepts:
            self._index(concept, version_type="force")
        logger.info("acls_indexed", count=len(concepts))
        return len(concepts)
