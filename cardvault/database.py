"""
Database engine, session management, and base model class.

SQLAlchemy 2.0 with async support:

  - engine: The async database engine
  - AsyncSessionLocal: Factory for creating async database sessions
  - Base: Declarative base class that all ORM models inherit from
  - get_db(): FastAPI dependency that provides a session per request

Session lifecycle:
  Each request gets its own session. It commits on success and rolls back on
  unexpected exceptions. Domain errors (CardVaultError) still commit, so
  work done before the error is raised survives: the failed-verification
  audit row and the deactivation of a tampered card, for example.
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from cardvault.config import settings
from cardvault.exceptions import CardVaultError


# echo=True in debug mode logs SQL statements. Card columns only ever hold
# ciphertext, so no plaintext card data reaches the log this way.
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
)

# expire_on_commit=False: attributes stay loaded after commit, which avoids
# implicit (synchronous) refreshes in async code.
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


async def get_db():
    """
    FastAPI dependency that provides a database session.

    Usage in a route:
        @router.get("/items")
        async def list_items(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except CardVaultError:
            await session.commit()
            raise
        except Exception:
            await session.rollback()
            raise
