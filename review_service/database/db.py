from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
import asyncio
import logging

from .. import config
from .. import models  # noqa: F401  registers the tables on SQLModel.metadata

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def _connect_args(url: str) -> dict:
    if url.startswith("postgresql+asyncpg"):
        return {"timeout": 10}
    return {}


engine = create_async_engine(
    config.DATABASE_URL,
    pool_pre_ping=True,
    connect_args=_connect_args(config.DATABASE_URL),
    echo=config.DATABASE_ECHO
)

session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_tables(target=None):
    async with (target or engine).begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def wait_for_db(max_retries: int = config.DB_CONNECT_RETRIES, retry_delay: float = config.DB_RETRY_DELAY):
    for attempt in range(1, max_retries + 1):
        try:
            logger.info(f"Attempt {attempt}/{max_retries}: Connecting to DB...")
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            logger.info(f"Connected to {engine.dialect.name}")
            await create_tables()
            logger.info("Database tables ready")
            return
        except Exception as e:
            logger.error(f"Connection failed: {type(e).__name__}: {str(e)}")
            if attempt == max_retries:
                raise RuntimeError(f"Failed to connect to DB after {max_retries} attempts") from e
            await asyncio.sleep(retry_delay)


async def get_session():
    async with session_factory() as session:
        yield session
