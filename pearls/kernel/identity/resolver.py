"""
Identity resolution: bearer credential -> Identity.
"""

from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pearls.kernel.identity.api_keys import ApiKeyRepository
from pearls.kernel.identity.identity import AUTHENTICATED_ROLE, Identity
from pearls.kernel.identity.jwt import JWTManager
from pearls.kernel.identity.roles import RoleResolver
from pearls.logging_config import get_logger

logger = get_logger(__name__)


class IdentityResolver:
    """
    Turns a raw credential into an Identity. Never raises.

    Order, first match wins:
    1. no credential -> anonymous
    2. service key prefix -> stored key record (anonymous if unknown/disabled)
    3. self-issued signed token -> user id, roles re-resolved
    4. third-party token -> unverified `sub`/`email` claims, roles resolved
    """

    def __init__(
        self,
        session: AsyncSession,
        role_resolver: RoleResolver,
        jwt_manager: JWTManager,
        api_key_prefix: str = "pearl_",
    ):
        self.session = session
        self.role_resolver = role_resolver
        self.jwt_manager = jwt_manager
        self.api_key_prefix = api_key_prefix

    async def resolve(self, credential: Optional[str]) -> Identity:
        if not credential:
            return Identity.anonymous()

        if credential.startswith(self.api_key_prefix):
            return await self._resolve_api_key(credential)

        payload = self.jwt_manager.verify_access_token(credential)
        if payload is not None:
            return Identity.of(
                user_id=payload.sub,
                email=payload.email,
                roles=self.role_resolver.roles_for(payload.sub),
            )

        return self._resolve_third_party(credential)

    async def _resolve_api_key(self, credential: str) -> Identity:
        repo = ApiKeyRepository(self.session)
        try:
            record = await repo.find_active(credential)
        except SQLAlchemyError:
            logger.exception("API key lookup failed")
            return Identity.anonymous()

        if record is None:
            return Identity.anonymous()

        identity = Identity.of(
            user_id=record.user_id,
            roles=record.roles or [AUTHENTICATED_ROLE],
        )

        # Best effort: a failed last-used update must not fail resolution
        try:
            await repo.touch(record.key_hash)
            await self.session.commit()
        except SQLAlchemyError:
            logger.warning(
                "Could not record API key use",
                extra={"key_prefix": record.key_prefix},
                exc_info=True,
            )
            await self.session.rollback()

        return identity

    def _resolve_third_party(self, credential: str) -> Identity:
        claims = self.jwt_manager.decode_unverified(credential)
        if not claims or not claims.get("sub"):
            return Identity.anonymous()

        user_id = str(claims["sub"])
        email = claims.get("email")
        return Identity.of(
            user_id=user_id,
            email=str(email) if email else None,
            roles=self.role_resolver.roles_for(user_id),
        )
