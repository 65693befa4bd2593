"""Derives the identity variant of an ACL and values that depend on it."""

from enum import Enum

from access_control.acl.models import Acl


class IdentityType(str, Enum):
    SYSTEM = "system_identity"
    PROVIDER = "provider_identity"
    SINGLE_INSTANCE = "single_instance_identity"
    CATALOG_ITEM = "catalog_item_identity"


# Resolution order when checking which identity field is populated.
_RESOLUTION_ORDER = (
    IdentityType.SINGLE_INSTANCE,
    IdentityType.PROVIDER,
    IdentityType.SYSTEM,
    IdentityType.CATALOG_ITEM,
)

IDENTITY_LABELS: dict[IdentityType, str] = {
    IdentityType.SYSTEM: "System",
    IdentityType.SINGLE_INSTANCE: "Group",
    IdentityType.PROVIDER: "Provider",
    IdentityType.CATALOG_ITEM: "Catalog Item",
}


def get_identity_type(acl: Acl) -> IdentityType | None:
    """Return the identity type populated on the ACL, or None if no identity is set."""
    for identity_type in _RESOLUTION_ORDER:
        if getattr(acl, identity_type.value, None) is not None:
            return identity_type
    return None


def get_identity(acl: Acl):
    """Return the populated identity sub-document, or None."""
    identity_type = get_identity_type(acl)
    if identity_type is None:
        return None
    return getattr(acl, identity_type.value)


def identity_target(acl: Acl) -> str | None:
    """Return the target of the ACL's identity. Catalog item identities have none."""
    return getattr(get_identity(acl), "target", None)


def acl_provider_id(acl: Acl) -> str | None:
    """Return the provider an ACL is scoped to (provider or catalog item identities)."""
    identity_type = get_identity_type(acl)
    if identity_type in (IdentityType.PROVIDER, IdentityType.CATALOG_ITEM):
        return get_identity(acl).provider_id
    return None


def acl_display_name(acl: Acl) -> str:
    """Name shown for an ACL in search results.

    Single instance identities are displayed by group concept id rather than
    group name so that renaming a group never requires reindexing its ACLs.
    """
    identity_type = get_identity_type(acl)
    identity = get_identity(acl)
    if identity_type is IdentityType.SYSTEM:
        return f"System - {identity.target}"
    if identity_type is IdentityType.SINGLE_INSTANCE:
        return f"Group - {identity.target_id}"
    if identity_type is IdentityType.PROVIDER:
        return f"Provider - {identity.provider_id} - {identity.target}"
    if identity_type is IdentityType.CATALOG_ITEM:
        return identity.name
    raise ValueError(f"ACL was missing identity {acl!r}")


def acl_identity_label(acl: Acl) -> str:
    identity_type = get_identity_type(acl)
    if identity_type is None:
        raise ValueError(f"ACL was missing identity {acl!r}")
    return IDENTITY_LABELS[identity_type]
