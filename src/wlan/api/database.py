#!/usr/bin/env python3
"""Database Utilities for the deployment intent store.

This module provides asyncpg connection pool management:
    - Pool creation with typed errors
    - Graceful shutdown with a terminate fallback
    - Health check used by the /health endpoint

Example:
    pool = await create_pool(os.environ["DATABASE_URL"])
    try:
        store = PostgresAssignmentStore(pool)
        await store.ensure_schema()
    finally:
        await close_pool(pool)
"""
import asyncio
import logging
from typing import Any

import asyncpg

from .exceptions import ConnectionPoolError

logger = logging.getLogger(__name__)


# ============================================
# Connection Pool Helpers
# ============================================

async def create_pool(
    database_url: str,
    min_size: int = 2,
    max_size: int = 10,
    command_timeout: float = 60.0,
    **kwargs,
) -> asyncpg.Pool:
    """Create a database connection pool.

    Args:
        database_url: PostgreSQL connection string
        min_size: Minimum pool connections
        max_size: Maximum pool connections
        command_timeout: Default query timeout in seconds
        **kwargs: Additional asyncpg.create_pool arguments

    Returns:
        asyncpg.Pool instance

    Raises:
        ConnectionPoolError: If pool creation fails
    """
    try:
        pool = await asyncpg.create_pool(
            database_url,
            min_size=min_size,
            max_size=max_size,
            command_timeout=command_timeout,
            **kwargs,
        )
    except (OSError, asyncpg.PostgresError) as e:
        raise ConnectionPoolError(
            f"Failed to create database pool: {e}",
            cause=e,
        )

    logger.info(f"Database pool created (min={min_size}, max={max_size})")
    return pool


async def close_pool(pool, timeout: float = 10.0):
    """Close database pool gracefully, terminating it if close hangs."""
    if pool is None:
        return

    try:
        await asyncio.wait_for(pool.close(), timeout=timeout)
        logger.info("Database pool closed")
    except asyncio.TimeoutError:
        logger.warning(f"Pool close timed out after {timeout}s, terminating")
        pool.terminate()


# ============================================
# Health Check
# ============================================

async def check_database_health(pool) -> dict[str, Any]:
    """Check database connection health.

    Returns:
        Dict with a "healthy" flag and pool usage, or the error message
    """
    if pool is None:
        return {
            "healthy": False,
            "error": "Pool not initialized",
        }

    try:
        async with pool.acquire() as conn:
            result = await conn.fetchval("SELECT 1")
        pool_size = pool.get_size()
        pool_free = pool.get_idle_size()

        return {
            "healthy": result == 1,
            "pool_size": pool_size,
            "pool_free": pool_free,
            "pool_used": pool_size - pool_free,
        }

    except (OSError, asyncio.TimeoutError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
        return {
            "healthy": False,
            "error": str(e),
        }


__all__ = [
    "create_pool",
    "close_pool",
    "check_database_health",
]
