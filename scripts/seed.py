"""Database seeder: recreates the schema and fills it with demo users and articles."""
import asyncio
import argparse
import random
import time
from datetime import datetime, timezone, timedelta

from app.database import engine, async_session, Base
from app.models import User, Article
from app.security import hash_password

TOPICS = ["python", "fastapi", "postgresql", "redis", "docker", "testing",
          "performance", "security", "caching", "async", "sqlalchemy", "alembic"]

DEMO_PASSWORD = "password123"


async def seed(small: bool = False):
    num_users = 5 if small else 50
    num_articles = 50 if small else 5000

    print(f"Seeding: {num_users} users, {num_articles} articles")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        # All demo users share one password; hash it once.
        password_hash = hash_password(DEMO_PASSWORD)
        users = []
        for i in range(num_users):
            user = User(email=f"user_{i:04d}@example.com", password=password_hash)
            session.add(user)
            users.append(user)
        await session.flush()
        print(f"  Created {len(users)} users (password: {DEMO_PASSWORD})")

        batch_size = 500
        now = datetime.now(timezone.utc)
        for batch_start in range(0, num_articles, batch_size):
            batch_end = min(batch_start + batch_size, num_articles)
            for i in range(batch_start, batch_end):
                topic = random.choice(TOPICS)
                session.add(Article(
                    title=f"Article {i}: notes on {topic}",
                    description=f"A walkthrough of {topic} in production. " * 5,
                    published_at=now - timedelta(days=random.randint(0, 365), minutes=random.randint(0, 1440)),
                    author_id=random.choice(users).id,
                    version=1,
                ))
            await session.flush()
            print(f"  Batch {batch_start}-{batch_end}: articles created")

        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")


def main():
    parser = argparse.ArgumentParser(description="Seed the article database")
    parser.add_argument("--small", action="store_true", help="Use small dataset (50 articles)")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
