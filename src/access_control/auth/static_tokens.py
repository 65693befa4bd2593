"""Token resolver backed by a fixed token-to-user mapping."""

import structlog

from access_control.errors import TokenError

logger = structlog.get_logger()


class StaticTokenResolver:
    """Resolves tokens from a predefined mapping.

    Used when no token service URL is configured, so a local deployment can
    act as different users by passing the tokens listed in its seed file.
    """

    def __init__(self, tokens: dict[str, str] | None = None):
        """Initialize with a mapping of token to user id."""
        self.tokens = dict(tokens or {})
        logger.info("static_token_resolver_initialized", token_count=len(self.tokens))

    def add_token(self, token: str, user_id: str) -> None:
        self.tokens[token] = user_id

    async def get_user_id(self, token: str) -> str:
        try:
            return self.tokens[token]
        except KeyError:
            raise TokenError(f"Token {token} does not exist") from None

    async def close(self) -> None:
        """No-op close method for compatibility with the TokenClient interface."""
        pass
