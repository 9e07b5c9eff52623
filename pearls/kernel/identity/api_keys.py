"""
Service API keys: generation and lookup.
"""

import secrets
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from pearls.kernel.identity.jwt import JWTManager
from pearls.kernel.models.base import utcnow
from pearls.kernel.models.credentials import ApiKey

# Leading characters kept in clear text so keys can be recognised in listings
DISPLAY_PREFIX_LENGTH = 12


@dataclass
class GeneratedKey:
    """A freshly minted key. `raw` is shown once and never stored."""
    raw: str
    key_hash: str
    key_prefix: str


def generate_api_key(prefix: str = "pearl_") -> GeneratedKey:
    raw = f"{prefix}{secrets.token_urlsafe(24)}"
    return GeneratedKey(
        raw=raw,
        key_hash=JWTManager.hash_token(raw),
        key_prefix=raw[:DISPLAY_PREFIX_LENGTH],
    )


class ApiKeyRepository:
    """Data access for `api_keys`."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        name: str,
        user_id: Optional[str],
        roles: List[str],
        prefix: str = "pearl_",
    ) -> tuple[ApiKey, str]:
        """Store a new key and return it with the raw secret."""
        generated = generate_api_key(prefix)
        record = ApiKey(
            name=name,
            key_hash=generated.key_hash,
            key_prefix=generated.key_prefix,
            user_id=user_id,
            roles=list(roles),
        )
        self.session.add(record)
        await self.session.flush()
        return record, generated.raw

    async def find_active(self, raw_key: str) -> Optional[ApiKey]:
        """Look up a non-disabled key by the hash of its raw value."""
        query = select(ApiKey).where(
            ApiKey.key_hash == JWTManager.hash_token(raw_key),
            ApiKey.disabled.is_(False),
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def touch(self, key_hash: str) -> None:
        await self.session.execute(
            update(ApiKey)
            .where(ApiKey.key_hash == key_hash)
            .values(last_used_at=utcnow())
        )
