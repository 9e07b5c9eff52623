"""
FastAPI dependencies for database sessions, identity and admin checks.
"""

from typing import Annotated, AsyncGenerator, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from pearls.config import Settings, get_settings
from pearls.database import async_session_maker
from pearls.kernel.identity.identity import Identity
from pearls.kernel.identity.jwt import get_jwt_manager
from pearls.kernel.identity.resolver import IdentityResolver
from pearls.kernel.identity.roles import get_role_resolver
from pearls.logging_config import user_id_var


# Security scheme
security = HTTPBearer(auto_error=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that yields database sessions."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


DbSession = Annotated[AsyncSession, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings)]


async def get_identity(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    db: DbSession,
    settings: AppSettings,
) -> Identity:
    """
    Resolve the caller. Never fails: a missing or bad credential is anonymous.
    """
    resolver = IdentityResolver(
        db,
        role_resolver=get_role_resolver(),
        jwt_manager=get_jwt_manager(),
        api_key_prefix=settings.api_key_prefix,
    )
    identity = await resolver.resolve(credentials.credentials if credentials else None)

    request.state.identity = identity
    user_id_var.set(identity.user_id)
    return identity


CurrentIdentity = Annotated[Identity, Depends(get_identity)]


async def require_admin(identity: CurrentIdentity) -> Identity:
    """401 for anonymous callers, 403 for authenticated non-admins."""
    if identity.is_anonymous:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not identity.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return identity


AdminIdentity = Annotated[Identity, Depends(require_admin)]
