"""Embed every pearl that has no embedding yet (requires OPENAI_API_KEY)."""
import asyncio
import sys

sys.path.insert(0, ".")

from pearls.ai.enrichment import get_enricher  # noqa: E402
from pearls.config import get_settings  # noqa: E402
from pearls.database import close_db, init_db  # noqa: E402
from pearls.logging_config import configure_logging  # noqa: E402


async def main() -> int:
    settings = get_settings()
    configure_logging(log_level=settings.log_level, environment=settings.environment)
    enricher = get_enricher()
    if not enricher.enabled:
        print("OPENAI_API_KEY not configured")
        return 1

    await init_db()
    try:
        stored = await enricher.backfill()
    finally:
        await close_db()
    print(f"Backfilled {stored} pearl(s)")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
