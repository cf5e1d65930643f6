from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase

from app.config import settings
from app.middleware import install_query_counter


def engine_options(url: str) -> dict:
    """Pool settings for server databases; SQLite gets a single-thread-safe connection."""
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_pre_ping": True,
    }


# Module-level engine; tests build their own and override get_db.
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    **engine_options(settings.DATABASE_URL),
)

install_query_counter(engine)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def get_db():
    """Yield a session per request; commit on success, roll back on error."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
