"""Async SQLAlchemy engine and session factory.

The engine is created once per process. Routes never touch it directly;
they receive a session through the ``get_db`` dependency, which tests
override with a session bound to a throwaway SQLite database:

    from app.database import get_db

    @router.get("/prompts")
    async def list_prompts(db: AsyncSession = Depends(get_db)):
        return await PromptStore(db).list_by_user(user.id)
"""
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from app.config import settings

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,
    pool_size=10,
    max_overflow=20,
    pool_pre_ping=True,
)

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db():
    """FastAPI dependency that yields an async DB session."""
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()
