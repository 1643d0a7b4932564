import asyncio

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from idealab.database import Base, enable_sqlite_foreign_keys
from idealab.dependencies import build_store
from idealab.core.join import JoinCoordinator
from idealab.models import User, UsageScope
from idealab.services.events import EventPublisher
from idealab.services.pubsub import LocalTransport


async def async_main():
    engine = create_async_engine("sqlite+aiosqlite:///idealab.db")
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async_session = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    store = build_store(EventPublisher(LocalTransport()))
    coordinator = JoinCoordinator(store)

    async with async_session() as session:
        # Create users
        u1 = User(email="alice@example.com", name="Alice")
        u2 = User(email="bob@example.com", name="Bob")
        u3 = User(email="charlie@example.com", name="Charlie")
        session.add_all([u1, u2, u3])
        await session.commit()

        # Team brainwriting, started with all three
        team = await store.create_session(session, u1.id, UsageScope.TEAM, "Campus cafe", "New menu ideas")
        await coordinator.join(session, team.id, u2.id)
        await coordinator.join(session, team.id, u3.id)
        sheets = await store.start_session(session, team.id, u1.id)
        for col, idea in enumerate(["Matcha latte", "Vegan wraps", "Late-night hours"]):
            await store.upsert_input(session, team.id, sheets[0].id, u1.id, 0, col, idea)
        await store.complete_turn(session, sheets[0].id, u1.id)

        # Broadcast brainwriting, owner has the first row
        post = await store.create_session(session, u1.id, UsageScope.XPOST, "Weekend hack", "Side project themes")

        print(f"Seeded team brainwriting {team.id} ({len(sheets)} sheets)")
        print(f"Seeded broadcast brainwriting {post.id}, invite token {post.invite_token}")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(async_main())
