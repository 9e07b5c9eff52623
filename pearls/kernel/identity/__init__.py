"""
Identity Core - credential resolution and role mapping.
"""

from pearls.kernel.identity.identity import (
    ADMIN_ROLE,
    ANONYMOUS_ROLE,
    AUTHENTICATED_ROLE,
    Identity,
)
from pearls.kernel.identity.jwt import AccessTokenPayload, JWTManager, get_jwt_manager
from pearls.kernel.identity.roles import RoleResolver, get_role_resolver
from pearls.kernel.identity.api_keys import ApiKeyRepository, generate_api_key
from pearls.kernel.identity.resolver import IdentityResolver

__all__ = [
    "ADMIN_ROLE",
    "ANONYMOUS_ROLE",
    "AUTHENTICATED_ROLE",
    "Identity",
    "AccessTokenPayload",
    "JWTManager",
    "get_jwt_manager",
    "RoleResolver",
    "get_role_resolver",
    "ApiKeyRepository",
    "generate_api_key",
    "IdentityResolver",
]
