"""Converts stored group and ACL concepts into search index documents."""

from typing import Any

from access_control.acl.identity import acl_display_name, acl_identity_label, acl_provider_id
from access_control.acl.models import Acl, GroupPermission
from access_control.store.protocols import Concept


def _lower(value: str | None) -> str | None:
    return value.lower() if value is not None else None


def group_document(concept: Concept) -> dict[str, Any]:
    group = concept.metadata
    members = list(group.get("members") or [])
    return {
        "concept_id": concept.concept_id,
        "revision_id": concept.revision_id,
        "name": group["name"],
        "name_lowercase": _lower(group["name"]),
        "provider_id": group.get("provider_id"),
        # System groups are stored under the system provider, so searching by it finds them.
        "provider_id_lowercase": concept.provider_id.lower(),
        "description": group["description"],
        "legacy_guid": group.get("legacy_guid"),
        "legacy_guid_lowercase": _lower(group.get("legacy_guid")),
        "members": members,
        "members_lowercase": [m.lower() for m in members],
        "member_count": len(members),
    }


def acl_permitted_groups(acl: Acl) -> list[str]:
    """Group ids and user types referenced by the ACL's group permissions."""
    return [gp.grantee for gp in acl.group_permissions]


def _group_permission_document(group_permission: GroupPermission) -> dict[str, Any]:
    return {
        "permitted_group": group_permission.grantee,
        "permitted_group_lowercase": group_permission.grantee.lower(),
        "permission": list(group_permission.permissions),
        "permission_lowercase": [p.lower() for p in group_permission.permissions],
    }


def acl_document(concept: Concept) -> dict[str, Any]:
    acl = Acl.model_validate(concept.metadata)
    permitted_groups = acl_permitted_groups(acl)
    provider_id = acl_provider_id(acl)
    doc: dict[str, Any] = {
        "concept_id": concept.concept_id,
        "revision_id": concept.revision_id,
        "display_name": acl_display_name(acl),
        "identity_type": acl_identity_label(acl),
        "permitted_group": permitted_groups,
        "permitted_group_lowercase": [g.lower() for g in permitted_groups],
        "group_permission": [_group_permission_document(gp) for gp in acl.group_permissions],
        "target_provider_id": provider_id,
        "target_provider_id_lowercase": _lower(provider_id),
        "legacy_guid": acl.legacy_guid,
        "legacy_guid_lowercase": _lower(acl.legacy_guid),
        "acl": concept.metadata,
    }

    cat_item = acl.catalog_item_identity
    if cat_item is not None:
        collection_identifier = cat_item.collection_identifier
        if collection_identifier is not None and collection_identifier.access_value is not None:
            access_value = collection_identifier.access_value
            doc.update(
                collection_identifier=True,
                collection_access_value_min=access_value.min_value,
                collection_access_value_max=access_value.max_value,
                collection_access_value_include_undefined_value=access_value.include_undefined_value,
            )
        elif collection_identifier is None and cat_item.granule_identifier is None:
            doc["collection_identifier"] = False
    return doc
