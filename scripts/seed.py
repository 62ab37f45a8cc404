"""Follow Store seeder for local runs against the Users / Messages services."""
import argparse
import asyncio
import random
import time

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.database import Base, build_engine, build_session_factory
from app.models import Follow


async def seed_edges(session: AsyncSession, usernames: list[str], follows_per_user: int) -> int:
    """
    Add up to *follows_per_user* random edges per user and return how many
    were added.  Pairs already in the table are skipped, so re-running the
    seeder without ``--reset`` tops the table up instead of failing.
    """
    result = await session.execute(
        select(Follow.followee_username, Follow.follower_username)
    )
    existing = {tuple(row) for row in result.all()}

    created = 0
    for follower in usernames:
        candidates = [u for u in usernames if u != follower]
        for followee in random.sample(candidates, k=min(follows_per_user, len(candidates))):
            if (followee, follower) in existing:
                continue
            session.add(Follow(followee_username=followee, follower_username=follower))
            existing.add((followee, follower))
            created += 1
    await session.commit()
    return created


async def seed(usernames: list[str], follows_per_user: int, reset: bool = False):
    settings = Settings()
    engine = build_engine(settings)
    session_factory = build_session_factory(engine)

    print(f"Seeding follows for {len(usernames)} users (~{follows_per_user} each)")
    start = time.perf_counter()

    async with engine.begin() as conn:
        if reset:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with session_factory() as session:
        created = await seed_edges(session, usernames, follows_per_user)

    await engine.dispose()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Follow edges added: {created}")


def main():
    parser = argparse.ArgumentParser(description="Seed the relations database")
    parser.add_argument(
        "usernames", nargs="+",
        help="Usernames that already exist in the Users service",
    )
    parser.add_argument("--follows", type=int, default=3, help="Follow edges per user")
    parser.add_argument("--reset", action="store_true", help="Drop and recreate the follows table")
    args = parser.parse_args()
    asyncio.run(seed(args.usernames, args.follows, reset=args.reset))


if __name__ == "__main__":
    main()
