"""Interface for resolving request tokens to user ids."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class TokenResolver(Protocol):
    async def get_user_id(self, token: str) -> str:
        """Return the user id owning ``token``; raise TokenError if the token is unknown."""
        ...

    async def close(self) -> None:
        ...
