"""asyncpg pool lifecycle and schema migrations."""

from pathlib import Path
from typing import Optional, Sequence

import asyncpg
import structlog

from vidtube.config import get_settings

logger = structlog.get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).parent.parent / "migrations"

# Tables the account endpoints read and write
REQUIRED_TABLES = ("users", "videos", "subscriptions")

_pool: Optional[asyncpg.Pool] = None


async def get_pool() -> asyncpg.Pool:
    """Return the shared pool.

    Raises:
        RuntimeError: init_database() has not run
    """
    if _pool is None:
        raise RuntimeError("Database pool not initialized. Call init_database() first.")
    return _pool


async def init_database() -> asyncpg.Pool:
    """Create the shared pool from settings, once."""
    global _pool

    if _pool is not None:
        return _pool

    settings = get_settings()

    try:
        _pool = await asyncpg.create_pool(
            settings.postgres_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            command_timeout=settings.db_command_timeout_seconds,
        )
    except (OSError, asyncpg.PostgresError) as e:
        logger.error("database_pool_creation_failed", error=str(e))
        raise

    logger.info(
        "database_pool_created",
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
    )
    return _pool


async def close_database() -> None:
    global _pool

    if _pool is not None:
        await _pool.close()
        _pool = None
        logger.info("database_pool_closed")


async def run_migrations(migrations_dir: Path = MIGRATIONS_DIR) -> Sequence[str]:
    """Apply every ``*.sql`` file in name order.

    Each file uses ``IF NOT EXISTS`` so the whole set is re-run on every start.

    Returns:
        Names of the applied files
    """
    if not migrations_dir.exists():
        logger.warning("migrations_directory_not_found", path=str(migrations_dir))
        return []

    migration_files = sorted(migrations_dir.glob("*.sql"))
    if not migration_files:
        logger.info("no_migrations_found", path=str(migrations_dir))
        return []

    pool = await get_pool()
    applied = []

    async with pool.acquire() as conn:
        for migration_file in migration_files:
            try:
                async with conn.transaction():
                    await conn.execute(migration_file.read_text())
            except asyncpg.PostgresError as e:
                logger.error("migration_failed", file=migration_file.name, error=str(e))
                raise
            applied.append(migration_file.name)

    logger.info("migrations_applied", files=applied)
    return applied


async def health_check() -> bool:
    """True when the pool answers and every table in REQUIRED_TABLES exists."""
    try:
        pool = await get_pool()
        async with pool.acquire() as conn:
            present = await conn.fetch(
                """
                SELECT table_name FROM information_schema.tables
                WHERE table_schema = current_schema() AND table_name = ANY($1::text[])
                """,
                list(REQUIRED_TABLES),
            )
    except (RuntimeError, OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
        logger.error("database_health_check_failed", error=str(e))
        return False

    missing = set(REQUIRED_TABLES) - {row["table_name"] for row in present}
    if missing:
        logger.warning("database_tables_missing", tables=sorted(missing))
        return False
    return True
