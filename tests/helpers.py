"""Request body builders shared by the tests."""


def provider_acl(provider_id="PROV1", target="CATALOG_ITEM_ACL", permissions=("create",), **grantee):
    """Body of a provider ACL granting ``permissions`` to ``grantee`` (registered users by default)."""
    grantee = grantee or {"user_type": "registered"}
    return {
        "provider_identity": {"provider_id": provider_id, "target": target},
        "group_permissions": [{**grantee, "permissions": list(permissions)}],
    }


def catalog_item_acl(provider_id="PROV1", name="All PROV1 collections", **fields):
    """Body of a catalog item ACL granting read to guests."""
    identity = {"name": name, "provider_id": provider_id, "collection_applicable": True}
    identity.update(fields)
    return {
        "catalog_item_identity": identity,
        "group_permissions": [{"user_type": "guest", "permissions": ["read"]}],
    }
