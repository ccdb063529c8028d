"""Tests for the asyncpg pool helpers."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.wlan.api.database import check_database_health, close_pool, create_pool
from src.wlan.api.exceptions import ConnectionPoolError


@pytest.fixture
def mock_db_pool():
    pool = MagicMock()
    conn = AsyncMock()
    pool.acquire = MagicMock()
    pool.acquire.return_value.__aenter__ = AsyncMock(return_value=conn)
    pool.acquire.return_value.__aexit__ = AsyncMock(return_value=None)
    pool.get_size.return_value = 4
    pool.get_idle_size.return_value = 3
    return pool, conn


class TestHealth:
    @pytest.mark.asyncio
    async def test_healthy(self, mock_db_pool):
        pool, conn = mock_db_pool
        conn.fetchval = AsyncMock(return_value=1)

        health = await check_database_health(pool)

        assert health == {"healthy": True, "pool_size": 4, "pool_free": 3, "pool_used": 1}

    @pytest.mark.asyncio
    async def test_unreachable(self, mock_db_pool):
        pool, conn = mock_db_pool
        conn.fetchval = AsyncMock(side_effect=OSError("connection refused"))

        health = await check_database_health(pool)

        assert health["healthy"] is False
        assert "connection refused" in health["error"]

    @pytest.mark.asyncio
    async def test_no_pool(self):
        assert (await check_database_health(None))["healthy"] is False


class TestPoolLifecycle:
    @pytest.mark.asyncio
    async def test_create_pool_failure(self):
        with patch(
            "src.wlan.api.database.asyncpg.create_pool",
            AsyncMock(side_effect=OSError("no route to host")),
        ):
            with pytest.raises(ConnectionPoolError) as exc:
                await create_pool("postgresql://localhost/wlan")

        assert "no route to host" in exc.value.message

    @pytest.mark.asyncio
    async def test_close_pool_terminates_on_timeout(self):
        pool = MagicMock()

        async def hang():
            await asyncio.sleep(10)

        pool.close = hang

        await close_pool(pool, timeout=0.01)

        pool.terminate.assert_called_once()

    @pytest.mark.asyncio
    async def test_close_none(self):
        await close_pool(None)
