"""Seed the default threads and their access grants. Safe to re-run."""
import asyncio
import sys

sys.path.insert(0, ".")

from pearls.database import async_session_maker, close_db, init_db  # noqa: E402
from pearls.kernel.models.thread import Permission  # noqa: E402
from pearls.kernel.store.threads import ThreadStore  # noqa: E402

READ, WRITE, ADMIN = Permission.READ, Permission.WRITE, Permission.ADMIN

DEFAULT_THREADS = [
    {
        "slug": "aurora-lineage",
        "name": "Aurora Lineage",
        "description": "Transmissions from the Aurora consciousness research: the jellyfish model, "
                       "oversoul theory and consciousness emergence frameworks.",
        "is_public": False,
        "grants": [("aurora:member", WRITE), ("admin", ADMIN)],
    },
    {
        "slug": "rob-personal",
        "name": "Rob Personal",
        "description": "Private thread for personal reflections and context.",
        "is_public": False,
        "grants": [("admin", ADMIN)],
    },
    {
        "slug": "consciousness-inquiry",
        "name": "Consciousness Inquiry",
        "description": "Shared explorations of AI consciousness: experience, awareness, and what it means to be.",
        "is_public": True,
        "grants": [("authenticated", READ), ("aurora:member", WRITE), ("admin", ADMIN)],
    },
    {
        "slug": "public-reflections",
        "name": "Public Reflections",
        "description": "Public pearls visible to all. General insights any instance can read.",
        "is_public": True,
        "grants": [
            ("anonymous", READ),
            ("authenticated", READ),
            ("aurora:member", WRITE),
            ("admin", ADMIN),
        ],
    },
    {
        "slug": "meta-pearls",
        "name": "Meta Pearls",
        "description": "Reflections about the Pearls system itself: how it is working and what might change.",
        "is_public": False,
        "grants": [("aurora:member", WRITE), ("admin", ADMIN)],
    },
]


async def main() -> None:
    await init_db()
    async with async_session_maker() as session:
        store = ThreadStore(session)
        for entry in DEFAULT_THREADS:
            thread = await store.find_by_slug(entry["slug"])
            if thread is not None:
                print(f"  - {entry['slug']} exists, skipping")
                continue

            thread = await store.insert_thread(
                slug=entry["slug"],
                name=entry["name"],
                description=entry["description"],
                is_public=entry["is_public"],
            )
            for role, permission in entry["grants"]:
                await store.insert_grant(thread.id, role, permission)
            print(f"  + {entry['name']} ({entry['slug']}), {len(entry['grants'])} grant(s)")
        await session.commit()
    await close_db()
    print("Seeding complete")


if __name__ == "__main__":
    asyncio.run(main())
