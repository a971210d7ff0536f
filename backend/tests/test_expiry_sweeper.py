"""
Sunny Video Backend: Expiry Sweeper Tests
===========================================
"""

import asyncio
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, patch

import pytest

from sunnyvideo.services import expiry_sweeper


@pytest.mark.asyncio
async def test_sweep_once_purges_in_its_own_session(mock_db_session):
    @asynccontextmanager
    async def fake_scope():
        yield mock_db_session

    with patch.object(expiry_sweeper, "session_scope", fake_scope), \
         patch.object(expiry_sweeper.message_service, "purge_expired", AsyncMock(return_value=3)) as purge:
        assert await expiry_sweeper.sweep_once() == 3

    purge.assert_awaited_once_with(mock_db_session)


@pytest.mark.asyncio
async def test_failed_pass_does_not_stop_the_loop():
    sleep = AsyncMock(side_effect=[None, None, asyncio.CancelledError()])
    sweep = AsyncMock(side_effect=[RuntimeError("db down"), 2])

    with patch.object(expiry_sweeper.asyncio, "sleep", sleep), \
         patch.object(expiry_sweeper, "sweep_once", sweep):
        with pytest.raises(asyncio.CancelledError):
            await expiry_sweeper.run_expiry_sweeper(60)

    assert sweep.await_count == 2
    sleep.assert_awaited_with(60)
