"""Group management: CRUD, membership and search over the concept store and index."""

from __future__ import annotations

from typing import Any

import structlog

from access_control.acl.validation import provider_does_not_exist
from access_control.context import RequestContext, resolve_user
from access_control.errors import ConflictError, NotFoundError, ValidationError
from access_control.groups.models import Group
from access_control.index.documents import group_document
from access_control.index.search_index import GROUP_INDEX, SearchIndex, VersionType
from access_control.store.protocols import ACCESS_GROUP, Concept, MetadataDb

logger = structlog.get_logger()

# Fields that identify a group and may not change on update.
_IMMUTABLE_FIELDS = ("name", "provider_id", "legacy_guid")


class GroupService:
    """Stores groups as concepts and keeps the group index in step with them."""

    def __init__(
        self,
        metadata_db: MetadataDb,
        search_index: SearchIndex,
        system_provider_id: str = "CMR",
    ):
        self._metadata_db = metadata_db
        self._search_index = search_index
        self._system_provider_id = system_provider_id

    def _concept_provider_id(self, group: Group) -> str:
        return group.provider_id or self._system_provider_id

    async def _fetch_group_concept(self, concept_id: str) -> Concept:
        concept = await self._metadata_db.get_latest_concept(concept_id)
        if concept is None or concept.deleted or concept.concept_type != ACCESS_GROUP:
            raise NotFoundError(f"Group could not be found with concept id [{concept_id}]")
        return concept

    def _index(self, concept: Concept, version_type: VersionType = "external_gte") -> None:
        self._search_index.save_document(
            GROUP_INDEX, concept.concept_id, group_document(concept), concept.revision_id, version_type
        )

    async def _save(self, context: RequestContext, group: Group, concept_id: str | None = None) -> Concept:
        provider_id = self._concept_provider_id(group)
        try:
            concept = await self._metadata_db.save_concept(
                ACCESS_GROUP,
                provider_id,
                native_id=group.name.lower(),
                metadata=group.model_dump(mode="json"),
                user_id=await resolve_user(context),
                concept_id=concept_id,
            )
        except ConflictError:
            raise ConflictError(
                f"A group with name [{group.name}] already exists for provider [{provider_id}]."
            ) from None
        self._index(concept)
        return concept

    async def create_group(self, context: RequestContext, group: Group) -> dict[str, Any]:
        if group.provider_id and not await self._metadata_db.provider_exists(group.provider_id):
            raise ValidationError({("provider_id",): [provider_does_not_exist(group.provider_id)]})

        concept = await self._save(context, group)
        logger.info(
            "group_created",
            concept_id=concept.concept_id,
            revision_id=concept.revision_id,
            provider_id=concept.provider_id,
        )
        return {"concept_id": concept.concept_id, "revision_id": concept.revision_id}

    async def get_group(self, concept_id: str) -> dict[str, Any]:
        concept = await self._fetch_group_concept(concept_id)
        group = {k: v for k, v in concept.metadata.items() if k != "members" and v is not None}
        group["member_count"] = len(concept.metadata.get("members") or [])
        return group

    async def update_group(
        self, context: RequestContext, concept_id: str, group: Group
    ) -> dict[str, Any]:
        """Replace a group's fields. Members are kept; they change only through the member operations."""
        existing = Group.model_validate((await self._fetch_group_concept(concept_id)).metadata)

        errors = {}
        for field in _IMMUTABLE_FIELDS:
            old, new = getattr(existing, field), getattr(group, field)
            if old != new:
                errors[(field,)] = [f"Group {field} cannot be modified from [{old}] to [{new}]"]
        if errors:
            raise ValidationError(errors)

        updated = group.model_copy(update={"members": existing.members})
        concept = await self._save(context, updated, concept_id=concept_id)
        logger.info("group_updated", concept_id=concept_id, revision_id=concept.revision_id)
        return {"concept_id": concept.concept_id, "revision_id": concept.revision_id}

    async def delete_group(self, context: RequestContext, concept_id: str) -> dict[str, Any]:
        await self._fetch_group_concept(concept_id)
        tombstone = await self._metadata_db.delete_concept(
            concept_id, user_id=await resolve_user(context)
        )
        self._search_index.delete_document(GROUP_INDEX, concept_id, tombstone.revision_id)
        logger.info("group_deleted", concept_id=concept_id, revision_id=tombstone.revision_id)
        return {"concept_id": concept_id, "revision_id": tombstone.revision_id}

    async def get_members(self, concept_id: str) -> list[str]:
        concept = await self._fetch_group_concept(concept_id)
        return list(concept.metadata.get("members") or [])

    async def _change_members(
        self, context: RequestContext, concept_id: str, members: list[str], add: bool
    ) -> dict[str, Any]:
        existing = Group.model_validate((await self._fetch_group_concept(concept_id)).metadata)
        if add:
            new_members = list(existing.members)
            for member in members:
                if member not in new_members:
                    new_members.append(member)
        else:
            removed = set(members)
            new_members = [m for m in existing.members if m not in removed]

        concept = await self._save(
            context, existing.model_copy(update={"members": new_members}), concept_id=concept_id
        )
        logger.info(
            "group_members_changed",
            concept_id=concept_id,
            revision_id=concept.revision_id,
            action="add" if add else "remove",
            member_count=len(new_members),
        )
        return {"concept_id": concept_id, "revision_id": concept.revision_id}

    async def add_members(
        self, context: RequestContext, concept_id: str, members: list[str]
    ) -> dict[str, Any]:
        return await self._change_members(context, concept_id, members, add=True)

    async def remove_members(
        self, context: RequestContext, concept_id: str, members: list[str]
    ) -> dict[str, Any]:
        return await self._change_members(context, concept_id, members, add=False)

    async def search_for_groups(
        self,
        name: str | None = None,
        provider: str | None = None,
        member: str | None = None,
        legacy_guid: str | None = None,
    ) -> dict[str, Any]:
        """Case-insensitive search for groups. Every given parameter must match."""
        terms = {}
        if name is not None:
            terms["name_lowercase"] = name.lower()
        if provider is not None:
            terms["provider_id_lowercase"] = provider.lower()
        if member is not None:
            terms["members_lowercase"] = member.lower()
        if legacy_guid is not None:
            terms["legacy_guid_lowercase"] = legacy_guid.lower()

        docs = self._search_index.search(GROUP_INDEX, terms)
        items = [
            {
                "concept_id": doc["concept_id"],
                "revision_id": doc["revision_id"],
                "name": doc["name"],
                "description": doc["description"],
                "provider_id": doc["provider_id"],
                "legacy_guid": doc["legacy_guid"],
                "member_count": doc["member_count"],
                "members": doc["members"],
            }
            for doc in docs
        ]
        return {"hits": len(items), "items": items}

    async def group_exists(self, concept_id: str) -> bool:
        concept = await self._metadata_db.get_latest_concept(concept_id)
        return concept is not None and not concept.deleted and concept.concept_type == ACCESS_GROUP

    async def index_all_groups(self) -> int:
        """Reindex the latest revision of every stored group, replacing what the index holds.

        Returns the number indexed.
        """
        concepts = await self._metadata_db.find_latest_concepts(ACCESS_GROUP)
        for concept in concepts:
            self._index(concept, version_type="force")
        logger.info("groups_indexed", count=len(concepts))
        return len(concepts)
