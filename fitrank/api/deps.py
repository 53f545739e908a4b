"""FastAPI dependencies."""

from sqlalchemy.ext.asyncio import AsyncSession

from fitrank.db.session import get_db
from fitrank.recommend.engine import RecommendationEngine, recommendation_engine


async def get_database() -> AsyncSession:
    """Dependency for database session."""
    async for session in get_db():
        yield session
        break  # Only yield once, as FastAPI handles the session lifecycle


def get_engine() -> RecommendationEngine:
    """Dependency for the recommendation engine (overridable in tests)."""
    return recommendation_engine
