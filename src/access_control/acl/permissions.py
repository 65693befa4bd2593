"""Table of permissions that may be granted per identity type and target."""

from access_control.acl.identity import IdentityType

CREATE = "create"
READ = "read"
UPDATE = "update"
DELETE = "delete"

# catalog_item_identity is intentionally absent: any permission may be granted there.
GRANTABLE_PERMISSIONS: dict[IdentityType, dict[str, tuple[str, ...]]] = {
    IdentityType.SINGLE_INSTANCE: {
        "GROUP_MANAGEMENT": (UPDATE, DELETE),
    },
    IdentityType.PROVIDER: {
        "AUDIT_REPORT": (READ,),
        "OPTION_ASSIGNMENT": (CREATE, READ, DELETE),
        "OPTION_DEFINITION": (CREATE, DELETE),
        "OPTION_DEFINITION_DEPRECATION": (CREATE,),
        "DATASET_INFORMATION": (READ,),
        "PROVIDER_HOLDINGS": (READ,),
        "EXTENDED_SERVICE": (CREATE, UPDATE, DELETE),
        "PROVIDER_ORDER": (READ,),
        "PROVIDER_ORDER_RESUBMISSION": (CREATE,),
        "PROVIDER_ORDER_ACCEPTANCE": (CREATE,),
        "PROVIDER_ORDER_REJECTION": (CREATE,),
        "PROVIDER_ORDER_CLOSURE": (CREATE,),
        "PROVIDER_ORDER_TRACKING_ID": (UPDATE,),
        "PROVIDER_INFORMATION": (UPDATE,),
        "PROVIDER_CONTEXT": (READ,),
        "AUTHENTICATOR_DEFINITION": (CREATE, DELETE),
        "PROVIDER_POLICIES": (READ, UPDATE, DELETE),
        "USER": (READ,),
        "GROUP": (CREATE, READ),
        "PROVIDER_OBJECT_ACL": (CREATE, READ, UPDATE, DELETE),
        "CATALOG_ITEM_ACL": (CREATE, READ, UPDATE, DELETE),
        "INGEST_MANAGEMENT_ACL": (READ, UPDATE),
        "DATA_QUALITY_SUMMARY_DEFINITION": (CREATE, UPDATE, DELETE),
        "DATA_QUALITY_SUMMARY_ASSIGNMENT": (CREATE, DELETE),
        "PROVIDER_CALENDAR_EVENT": (CREATE, UPDATE, DELETE),
    },
    IdentityType.SYSTEM: {
        "SYSTEM_AUDIT_REPORT": (READ,),
        "METRIC_DATA_POINT_SAMPLE": (READ,),
        "SYSTEM_INITIALIZER": (CREATE,),
        "ARCHIVE_RECORD": (DELETE,),
        "ERROR_MESSAGE": (UPDATE,),
        "TOKEN": (READ, DELETE),
        "TOKEN_REVOCATION": (CREATE,),
        "EXTENDED_SERVICE_ACTIVATION": (CREATE,),
        "ORDER_AND_ORDER_ITEMS": (READ, DELETE),
        "PROVIDER": (CREATE, DELETE),
        "TAG_GROUP": (CREATE, UPDATE, DELETE),
        "TAXONOMY": (CREATE,),
        "TAXONOMY_ENTRY": (CREATE,),
        "USER_CONTEXT": (READ,),
        "USER": (READ, UPDATE, DELETE),
        "GROUP": (CREATE, READ),
        "ANY_ACL": (CREATE, READ, UPDATE, DELETE),
        "EVENT_NOTIFICATION": (DELETE,),
        "EXTENDED_SERVICE": (DELETE,),
        "SYSTEM_OPTION_DEFINITION": (CREATE, DELETE),
        "SYSTEM_OPTION_DEFINITION_DEPRECATION": (CREATE,),
        "INGEST_MANAGEMENT_ACL": (READ, UPDATE),
        "SYSTEM_CALENDAR_EVENT": (CREATE, UPDATE, DELETE),
    },
}


def grantable_permissions(identity_type: IdentityType | None, target: str | None) -> tuple[str, ...]:
    """Return the permissions grantable for an identity type and target.

    An empty tuple means the pair is undeclared and callers must not restrict
    the requested permissions.
    """
    if identity_type is None or target is None:
        return ()
    return GRANTABLE_PERMISSIONS.get(identity_type, {}).get(target, ())


def grantable_permissions_table_markdown() -> str:
    """Render the grant table as Markdown, one table per identity type."""
    lines: list[str] = []
    for identity_type in sorted(GRANTABLE_PERMISSIONS, key=lambda t: t.value):
        lines.append(f"#### {identity_type.value}")
        lines.append("")
        lines.append("| Target | Allowed Permissions |")
        lines.append("| ------ | ------------------- |")
        for target, permissions in sorted(GRANTABLE_PERMISSIONS[identity_type].items()):
            lines.append(f"| {target} | {', '.join(permissions)} |")
        lines.append("")
    return "\n".join(lines)
