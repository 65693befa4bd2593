"""Builds the shared System from settings and manages its lifecycle."""

import structlog

from access_control.acl.service import AclService
from access_control.auth.static_tokens import StaticTokenResolver
from access_control.auth.token_client import TokenClient
from access_control.config import Settings
from access_control.context import System
from access_control.groups.service import GroupService
from access_control.index.search_index import SearchIndex
from access_control.store.memory import MemoryMetadataDb
from access_control.store.metadata_db import MetadataDbClient
from access_control.store.seed import apply_seed, load_seed

logger = structlog.get_logger()


def build_system(settings: Settings) -> System:
    """Create the collaborators selected by the settings and the services over them."""
    if settings.metadata_db_url:
        metadata_db = MetadataDbClient(settings.metadata_db_url, timeout=settings.metadata_db_timeout)
        logger.info("metadata_db_initialized", mode="remote", url=settings.metadata_db_url)
    else:
        metadata_db = MemoryMetadataDb()
        logger.info("metadata_db_initialized", mode="memory")

    if settings.token_service_url:
        tokens = TokenClient(
            settings.token_service_url,
            system_token=settings.token_service_system_token,
            cache_ttl=settings.token_cache_ttl,
            cache_maxsize=settings.token_cache_maxsize,
        )
        logger.info("token_resolver_initialized", mode="remote", url=settings.token_service_url)
    else:
        tokens = StaticTokenResolver()

    search_index = SearchIndex()
    return System(
        settings=settings,
        metadata_db=metadata_db,
        search_index=search_index,
        tokens=tokens,
        groups=GroupService(metadata_db, search_index, settings.system_provider_id),
        acls=AclService(
            metadata_db,
            search_index,
            public_root_url=settings.public_root_url,
            system_provider_id=settings.system_provider_id,
        ),
    )


async def initialize(system: System) -> None:
    """Index what the store already holds, then apply the seed file if one is configured."""
    await system.groups.index_all_groups()
    await system.acls.index_all_acls()
    if system.settings.seed_path:
        await apply_seed(system, load_seed(system.settings.seed_path))
        logger.info("seed_loaded", path=system.settings.seed_path)


async def reset(system: System) -> None:
    """Clear the index and any in-memory state, then initialize again."""
    system.search_index.reset()
    if isinstance(system.metadata_db, MemoryMetadataDb):
        system.metadata_db.reset()
    if isinstance(system.tokens, StaticTokenResolver):
        system.tokens.tokens.clear()
    await initialize(system)
    logger.info("system_reset")


async def close(system: System) -> None:
    await system.metadata_db.close()
    await system.tokens.close()
