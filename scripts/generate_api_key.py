"""Mint a service API key. Only its SHA-256 hash and display prefix are stored.

Usage:
    python scripts/generate_api_key.py "CLI laptop" [user_id] [role,role,...]
"""
import asyncio
import json
import sys

sys.path.insert(0, ".")

from pearls.config import get_settings  # noqa: E402
from pearls.database import async_session_maker, close_db, init_db  # noqa: E402
from pearls.kernel.identity.api_keys import ApiKeyRepository  # noqa: E402


async def main(name: str, user_id, roles) -> None:
    settings = get_settings()
    await init_db()
    async with async_session_maker() as session:
        record, raw = await ApiKeyRepository(session).create(
            name=name,
            user_id=user_id,
            roles=roles,
            prefix=settings.api_key_prefix,
        )
        await session.commit()
    await close_db()

    print("\nAPI key generated\n")
    print(f"Name:    {record.name}")
    print(f"User ID: {record.user_id or '(none)'}")
    print(f"Roles:   {', '.join(record.roles)}")
    print(f"Prefix:  {record.key_prefix}")
    print("\nKey (save it now, it is not shown again):\n")
    print(f"    {raw}\n")
    print("MCP client config:\n")
    print(json.dumps({
        "mcpServers": {
            "pearls": {
                "url": f"{settings.base_url.rstrip('/')}/mcp",
                "headers": {"Authorization": f"Bearer {raw}"},
            }
        }
    }, indent=2))


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)
    key_name = sys.argv[1]
    key_user = sys.argv[2] if len(sys.argv) > 2 and sys.argv[2] else None
    key_roles = sys.argv[3].split(",") if len(sys.argv) > 3 else ["authenticated"]
    asyncio.run(main(key_name, key_user, [r.strip() for r in key_roles if r.strip()]))
