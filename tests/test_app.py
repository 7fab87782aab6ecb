"""Tests for the FarmSync container."""

from unittest.mock import patch

from farm_sync import FarmSync
from farm_sync.config import FarmSyncConfig
from farm_sync.events import SessionEvent
from farm_sync.exceptions import ErrorInfo, RemoteError
from farm_sync.remote import InMemoryRemote

from conftest import EMAIL, PASSWORD, activity_row, crop_row, weather_row


async def _seed(remote: InMemoryRemote, user_id: str) -> None:
    await remote.insert("crops", crop_row(user_id))
    await remote.insert("farm_activities", activity_row(user_id))
    await remote.insert("weather_data", weather_row(user_id))


async def test_start_with_existing_session(
    remote: InMemoryRemote, user_id: str
) -> None:
    """Test starting with a stored session loads every collection."""
    await _seed(remote, user_id)

    async with FarmSync(remote) as farm:
        await farm.block_till_done()

        assert len(farm.records.crops) == 1
        assert len(farm.records.activities) == 1
        assert len(farm.records.weather_records) == 1
        assert farm.records.last_error is None


async def test_sign_in_refreshes_records(
    remote: InMemoryRemote, user_id: str
) -> None:
    """Test signing in schedules a refresh for the new identity."""
    await _seed(remote, user_id)
    await remote.sign_out()

    async with FarmSync(remote) as farm:
        await farm.block_till_done()
        assert farm.records.crops == []

        assert await farm.session.sign_in(EMAIL, PASSWORD) is None
        await farm.block_till_done()

        assert [crop.user_id for crop in farm.records.crops] == [user_id]


async def test_refresh_once_per_identity(
    remote: InMemoryRemote, user_id: str
) -> None:
    """Test token refreshes for the same identity do not trigger new fetches."""
    async with FarmSync(remote) as farm:
        await farm.block_till_done()

        with patch.object(
            remote, "select_where", wraps=remote.select_where
        ) as mock_select:
            await remote.refresh_session()
            await farm.block_till_done()
            mock_select.assert_not_called()

            await farm.session.sign_out()
            await farm.session.sign_in(EMAIL, PASSWORD)
            await farm.block_till_done()
            assert mock_select.await_count == 3


async def test_refresh_disabled(remote: InMemoryRemote, user_id: str) -> None:
    """Test no background refresh is scheduled when disabled."""
    await _seed(remote, user_id)

    async with FarmSync(remote, FarmSyncConfig(refresh_on_sign_in=False)) as farm:
        await farm.block_till_done()
        assert farm.records.crops == []

        assert await farm.refresh() is None
        assert len(farm.records.crops) == 1


async def test_refresh_requires_identity(remote: InMemoryRemote) -> None:
    """Test refreshing while signed out fails."""
    async with FarmSync(remote) as farm:
        assert await farm.refresh() == ErrorInfo(message="No user found")


async def test_refresh_returns_first_error(
    remote: InMemoryRemote, user_id: str
) -> None:
    """Test a failing fetch is reported by refresh."""
    async with FarmSync(remote, FarmSyncConfig(refresh_on_sign_in=False)) as farm:
        with patch.object(
            remote, "select_where", side_effect=RemoteError("timeout", 504)
        ):
            error = await farm.refresh()

        assert error == ErrorInfo(message="timeout", status=504)
        assert farm.records.last_error == error


async def test_close_removes_listeners(remote: InMemoryRemote, user_id: str) -> None:
    """Test closing stops following session changes."""
    farm = FarmSync(remote)
    await farm.start()
    await farm.block_till_done()
    await farm.close()

    assert farm.session._listeners.count(SessionEvent.SESSION_CHANGED) == 0
    await remote.sign_out()
    assert farm.session.identity is not None


async def test_instances_are_isolated(user_id: str, remote: InMemoryRemote) -> None:
    """Test two containers do not share state."""
    other_remote = InMemoryRemote()
    async with FarmSync(remote) as farm, FarmSync(other_remote) as other:
        await farm.block_till_done()
        assert farm.session.identity is not None
        assert other.session.identity is None
