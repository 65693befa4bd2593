"""Bootstrap data loaded from a YAML seed file.

Example::

    providers: [PROV1, PROV2]
    collections:
      - provider_id: PROV1
        entry_title: Landsat 8 Level 1
    tokens:
      ABC-1: user1
    groups:
      - name: Administrators
        description: System administrators
        members: [user1]
    acls:
      - provider_identity: {provider_id: PROV1, target: CATALOG_ITEM_ACL}
        group_permissions:
          - {user_type: registered, permissions: [create]}
"""

from __future__ import annotations

import yaml
import structlog
from pydantic import BaseModel, Field

from access_control.acl.models import Acl
from access_control.auth.static_tokens import StaticTokenResolver
from access_control.context import RequestContext, System
from access_control.groups.models import Group
from access_control.store.memory import MemoryMetadataDb

logger = structlog.get_logger()


class SeedCollection(BaseModel):
    provider_id: str
    entry_title: str


class SeedData(BaseModel):
    """Root model for the seed YAML file."""

    providers: list[str] = Field(default_factory=list)
    collections: list[SeedCollection] = Field(default_factory=list)
    tokens: dict[str, str] = Field(default_factory=dict)
    groups: list[Group] = Field(default_factory=list)
    acls: list[Acl] = Field(default_factory=list)


def load_seed(path: str) -> SeedData:
    with open(path) as f:
        raw = yaml.safe_load(f)
    return SeedData(**(raw or {}))


async def apply_seed(system: System, seed: SeedData) -> None:
    """Load seed data into the running system.

    Providers and collections only go into the in-memory store, and tokens only
    into a static token resolver; with remote collaborators they are skipped.
    Groups and ACLs are saved through the services so they are indexed.
    ACLs are imported as trusted data and reference groups by concept id.
    """
    metadata_db = system.metadata_db
    if isinstance(metadata_db, MemoryMetadataDb):
        for provider_id in seed.providers:
            metadata_db.add_provider(provider_id)
        for collection in seed.collections:
            metadata_db.add_collection(collection.provider_id, collection.entry_title)
    elif seed.providers or seed.collections:
        logger.warning("seed_store_data_skipped", reason="remote metadata-db configured")

    if isinstance(system.tokens, StaticTokenResolver):
        for token, user_id in seed.tokens.items():
            system.tokens.add_token(token, user_id)
    elif seed.tokens:
        logger.warning("seed_tokens_skipped", reason="token service configured")

    context = RequestContext(system)
    for group in seed.groups:
        await system.groups.create_group(context, group)
    for acl in seed.acls:
        await system.acls.import_acl(context, acl)

    logger.info(
        "seed_applied",
        providers=len(seed.providers),
        collections=len(seed.collections),
        tokens=len(seed.tokens),
        groups=len(seed.groups),
        acls=len(seed.acls),
    )
