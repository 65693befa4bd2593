"""Per-request context carrying the caller's token and the application's collaborators."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from access_control.acl.service import AclService
    from access_control.auth.protocols import TokenResolver
    from access_control.config import Settings
    from access_control.groups.service import GroupService
    from access_control.index.search_index import SearchIndex
    from access_control.store.protocols import MetadataDb


@dataclass
class System:
    """Long-lived components shared by every request."""

    settings: Settings
    metadata_db: MetadataDb
    search_index: SearchIndex
    tokens: TokenResolver
    groups: GroupService
    acls: AclService


@dataclass(frozen=True)
class RequestContext:
    system: System
    token: str | None = None

    def with_token(self, token: str | None) -> RequestContext:
        return replace(self, token=token)


GUEST = "guest"
REGISTERED = "registered"


async def resolve_user(context: RequestContext) -> str:
    """Return the user id for the request's token, or "guest" when there is no token."""
    if not context.token:
        return GUEST
    return await context.system.tokens.get_user_id(context.token)
