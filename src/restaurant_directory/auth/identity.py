"""Acting identity resolution.

Credentials are checked upstream by the API gateway, which forwards the
authenticated user in X-User-Id / X-User-Role headers. Those headers are only
trusted when the request also carries one of the gateway's shared API keys.
"""

import logging

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class ActingIdentity(BaseModel):
    """The authenticated caller of an operation."""

    user_id: str = Field(..., min_length=1, description="Identity of the caller")
    role: str | None = Field(None, description="Role granted by the authentication layer")


class GatewayIdentityResolver:
    """Turns trusted gateway headers into an ActingIdentity."""

    def __init__(self, api_keys: list[str], owner_roles: list[str] | None = None) -> None:
        """Initialize resolver.

        Args:
            api_keys: Shared keys the gateway sends in X-API-Key
            owner_roles: Roles allowed to register restaurants (empty allows any role)

        Raises:
            ValueError: If api_keys is empty
        """
        if not api_keys:
            raise ValueError("At least one gateway API key must be provided")

        self.api_keys = set(api_keys)
        self.owner_roles = frozenset(owner_roles or [])

    def resolve(
        self,
        api_key: str | None,
        user_id: str | None,
        role: str | None = None,
    ) -> ActingIdentity | None:
        """Resolve the caller from request headers.

        Args:
            api_key: Value of X-API-Key
            user_id: Value of X-User-Id
            role: Value of X-User-Role

        Returns:
            ActingIdentity when the headers are trusted and present, None otherwise
        """
        if not user_id or not user_id.strip():
            return None

        if api_key not in self.api_keys:
            logger.warning("Ignoring identity headers from an untrusted caller")
            return None

        return ActingIdentity(user_id=user_id.strip(), role=role.strip() if role else None)

    def can_own_restaurants(self, identity: ActingIdentity) -> bool:
        """Check whether an identity may register restaurants."""
        if not self.owner_roles:
            return True
        return identity.role in self.owner_roles
