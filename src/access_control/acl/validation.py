"""Validation of ACLs before they are saved.

Rules are expressed as data (lists of rule functions and dicts of field
validators) and interpreted by ``access_control.acl.validations``. Every
top-level rule runs on each save and all failures are reported together.
"""

from __future__ import annotations

from itertools import chain

import structlog

from access_control.acl.identity import (
    IdentityType,
    acl_provider_id,
    get_identity_type,
    identity_target,
)
from access_control.acl.models import (
    AccessValueRange,
    Acl,
    CatalogItemIdentity,
    SaveKind,
    TemporalRange,
)
from access_control.acl.permissions import CREATE, UPDATE, grantable_permissions
from access_control.acl.validations import every, validate, when_present
from access_control.context import GUEST, REGISTERED, RequestContext, resolve_user
from access_control.errors import ErrorMap, KeyPath, PermissionDeniedError, ValidationError

logger = structlog.get_logger()

CATALOG_ITEM_ACL = "CATALOG_ITEM_ACL"
INGEST_MANAGEMENT_ACL = "INGEST_MANAGEMENT_ACL"


def catalog_item_identity_collection_applicable_validation(
    key_path: KeyPath, cat_item_id: CatalogItemIdentity
) -> ErrorMap | None:
    if cat_item_id.collection_identifier is not None and not cat_item_id.collection_applicable:
        return {key_path: ["collection_applicable must be true when collection_identifier is specified"]}
    return None


def catalog_item_identity_granule_applicable_validation(
    key_path: KeyPath, cat_item_id: CatalogItemIdentity
) -> ErrorMap | None:
    if cat_item_id.granule_identifier is not None and not cat_item_id.granule_applicable:
        return {key_path: ["granule_applicable must be true when granule_identifier is specified"]}
    return None


def catalog_item_identity_collection_or_granule_validation(
    key_path: KeyPath, cat_item_id: CatalogItemIdentity
) -> ErrorMap | None:
    if not (cat_item_id.collection_applicable or cat_item_id.granule_applicable):
        return {
            key_path: [
                "when catalog_item_identity is specified, one or both of "
                "collection_applicable or granule_applicable must be true"
            ]
        }
    return None


def access_value_validation(key_path: KeyPath, access_value: AccessValueRange) -> ErrorMap | None:
    has_range = access_value.min_value is not None or access_value.max_value is not None
    if access_value.include_undefined_value and has_range:
        return {key_path: ["min_value and/or max_value must not be specified if include_undefined_value is true"]}
    if not access_value.include_undefined_value and not has_range:
        return {key_path: ["min_value and/or max_value must be specified when include_undefined_value is false"]}
    return None


def temporal_identifier_validation(key_path: KeyPath, temporal: TemporalRange) -> ErrorMap | None:
    if (
        temporal.start_date is not None
        and temporal.stop_date is not None
        and temporal.start_date > temporal.stop_date
    ):
        return {key_path: ["start_date must be before stop_date"]}
    return None


def make_collection_entry_titles_validation(context: RequestContext, acl: Acl):
    """Each entry title must name an existing collection in the ACL's provider."""
    provider_id = getattr(acl.catalog_item_identity, "provider_id", None)
    metadata_db = context.system.metadata_db

    async def entry_title_validation(key_path: KeyPath, entry_title: str) -> ErrorMap | None:
        if not await metadata_db.collection_exists(provider_id, entry_title):
            return {
                key_path: [
                    f"collection with entry-title [{entry_title}] does not exist in provider [{provider_id}]"
                ]
            }
        return None

    return every(entry_title_validation)


def make_collection_identifier_validation(context: RequestContext, acl: Acl) -> dict:
    return {
        "entry_titles": when_present(make_collection_entry_titles_validation(context, acl)),
        "access_value": when_present(access_value_validation),
        "temporal": when_present(temporal_identifier_validation),
    }


GRANULE_IDENTIFIER_VALIDATION = {
    "access_value": when_present(access_value_validation),
    "temporal": when_present(temporal_identifier_validation),
}


def make_single_instance_identity_target_id_validation(context: RequestContext):
    """The group an ACL governs must exist."""

    async def target_id_validation(key_path: KeyPath, target_id: str) -> ErrorMap | None:
        if not await context.system.groups.group_exists(target_id):
            return {key_path: [f"Group with concept-id [{target_id}] does not exist"]}
        return None

    return target_id_validation


def make_single_instance_identity_validations(context: RequestContext) -> dict:
    return {"target_id": when_present(make_single_instance_identity_target_id_validation(context))}


def _permissions_granted(
    sids: list[str], acls: list[Acl], identity_type: IdentityType, target: str
) -> set[str]:
    sid_set = set(sids)
    granted: set[str] = set()
    for acl in acls:
        identity = getattr(acl, identity_type.value)
        if identity is None or identity.target != target:
            continue
        for group_permission in acl.group_permissions:
            if group_permission.user_type in sid_set or group_permission.group_id in sid_set:
                granted.update(group_permission.permissions)
    return granted


def permissions_granted_by_provider_to_user(
    sids: list[str], acls: list[Acl], target: str
) -> set[str]:
    """Return the permissions that provider ACLs for ``target`` grant to any of ``sids``."""
    return _permissions_granted(sids, acls, IdentityType.PROVIDER, target)


def permissions_granted_by_system_to_user(
    sids: list[str], acls: list[Acl], target: str
) -> set[str]:
    return _permissions_granted(sids, acls, IdentityType.SYSTEM, target)


async def get_sids(context: RequestContext, user: str) -> list[str]:
    """Return the security identifiers held by a user: user type plus group concept ids."""
    if user in (GUEST, REGISTERED):
        return [user]
    groups = await context.system.groups.search_for_groups(member=user)
    return [REGISTERED] + [item["concept_id"] for item in groups["items"]]


async def verify_ingest_management_permission(context: RequestContext, permission: str = UPDATE) -> None:
    """Raises PermissionDeniedError unless a system ingest management ACL grants the caller ``permission``."""
    user = await resolve_user(context)
    sids = await get_sids(context, user)
    system_acls = await context.system.acls.find_system_acls()
    granted = permissions_granted_by_system_to_user(sids, system_acls, INGEST_MANAGEMENT_ACL)
    if permission not in granted:
        logger.info("ingest_management_permission_denied", user=user, permission=permission)
        raise PermissionDeniedError("You do not have permission to perform that action.")


async def validate_target_provider_grants_create(
    context: RequestContext, key_path: KeyPath, cat_item_id: CatalogItemIdentity
) -> ErrorMap | None:
    """Checks that a provider ACL grants the caller create on catalog item ACLs for the provider."""
    user = await resolve_user(context)
    sids = await get_sids(context, user)
    provider_id = cat_item_id.provider_id
    provider_acls = await context.system.acls.find_provider_acls(provider_id)
    granted = permissions_granted_by_provider_to_user(sids, provider_acls, CATALOG_ITEM_ACL)
    logger.debug(
        "catalog_item_create_permission_checked",
        user=user,
        sids=sids,
        provider_id=provider_id,
        provider_acl_count=len(provider_acls),
        granted=sorted(granted),
    )
    if CREATE not in granted:
        return {
            key_path: [
                f"User [{user}] does not have permission to create catalog item "
                f"targeting provider-id [{provider_id}]"
            ]
        }
    return None


def make_catalog_item_identity_validations(
    context: RequestContext, acl: Acl, save_kind: SaveKind
) -> list:
    return [
        catalog_item_identity_collection_or_granule_validation,
        catalog_item_identity_collection_applicable_validation,
        catalog_item_identity_granule_applicable_validation,
        (
            lambda key_path, cat_item_id: validate_target_provider_grants_create(
                context, key_path, cat_item_id
            )
        )
        if save_kind is SaveKind.CREATE
        else None,
        {
            "collection_identifier": when_present(make_collection_identifier_validation(context, acl)),
            "granule_identifier": when_present(GRANULE_IDENTIFIER_VALIDATION),
        },
    ]


def provider_does_not_exist(provider_id: str) -> str:
    return f"Provider with provider-id [{provider_id}] does not exist."


async def validate_provider_exists(
    context: RequestContext, key_path: KeyPath, acl: Acl
) -> ErrorMap | None:
    provider_id = acl_provider_id(acl)
    if provider_id is not None and not await context.system.metadata_db.provider_exists(provider_id):
        return {key_path: [provider_does_not_exist(provider_id)]}
    return None


def validate_grantable_permissions(key_path: KeyPath, acl: Acl) -> ErrorMap | None:
    """Checks that the requested permissions are grantable for the ACL's target."""
    identity_type = get_identity_type(acl)
    target = identity_target(acl)
    requested = list(chain.from_iterable(gp.permissions for gp in acl.group_permissions))
    grantable = grantable_permissions(identity_type, target)
    ungrantable = [p for p in requested if p not in grantable]
    if ungrantable and grantable:
        return {
            key_path: [
                f"[{identity_type.value}] ACL cannot have [{', '.join(ungrantable)}] permission "
                f"for target [{target}], only [{', '.join(grantable)}] are grantable"
            ]
        }
    return None


def make_acl_validations(context: RequestContext, acl: Acl, save_kind: SaveKind) -> list:
    return [
        lambda key_path, value: validate_provider_exists(context, key_path, value),
        {
            IdentityType.CATALOG_ITEM.value: when_present(
                make_catalog_item_identity_validations(context, acl, save_kind)
            ),
            IdentityType.SINGLE_INSTANCE.value: when_present(
                make_single_instance_identity_validations(context)
            ),
        },
        validate_grantable_permissions,
    ]


async def validate_acl_save(context: RequestContext, acl: Acl, save_kind: SaveKind) -> None:
    """Raises ValidationError carrying every failed rule if the ACL may not be saved."""
    try:
        await validate(make_acl_validations(context, acl, save_kind), acl)
    except ValidationError as e:
        logger.info(
            "acl_validation_failed",
            save_kind=save_kind.value,
            error_count=len(e.messages),
            errors=e.messages,
        )
        raise
