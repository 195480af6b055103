from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from src.core.config import settings

engine = create_async_engine(
    settings.async_database_url,
    echo=settings.app_env == "development",
    pool_size=10,
    max_overflow=20,
    connect_args={"statement_cache_size": 0},
)

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

redis = Redis.from_url(settings.redis_url, decode_responses=True)
