"""
Sunny Video Backend: Profile Service Unit Tests
=================================================
"""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from conftest import db_result
from sunnyvideo.exceptions import ConflictError, ValidationError
from sunnyvideo.services.user_service import UserService


class TestUpdateUsername:

    def setup_method(self):
        self.service = UserService()

    @pytest.mark.parametrize("value", ["", "   ", None, "sunny", "  sunny  "])
    @pytest.mark.asyncio
    async def test_blank_or_unchanged_is_noop(self, mock_db_session, make_user, value):
        user = make_user("sunny")

        result = await self.service.update_username(mock_db_session, user, value)

        assert result.username == "sunny"
        mock_db_session.execute.assert_not_called()
        mock_db_session.flush.assert_not_called()

    @pytest.mark.parametrize("value", ["ab", "x" * 21])
    @pytest.mark.asyncio
    async def test_length_checked_after_trim(self, mock_db_session, make_user, value):
        with pytest.raises(ValidationError, match="between 3 and 20"):
            await self.service.update_username(mock_db_session, make_user("sunny"), value)

    @pytest.mark.asyncio
    async def test_taken_by_someone_else(self, mock_db_session, make_user):
        mock_db_session.execute.return_value = db_result(scalar=uuid4())

        with pytest.raises(ConflictError, match="already taken"):
            await self.service.update_username(mock_db_session, make_user("sunny"), "Moony")

    @pytest.mark.asyncio
    async def test_rename_updates_contact_rows(self, mock_db_session, make_user):
        user = make_user("sunny")
        mock_db_session.execute.side_effect = [db_result(scalar=None), db_result()]

        result = await self.service.update_username(mock_db_session, user, "  sunshine ")

        assert result.username == "sunshine"
        assert user.username == "sunshine"
        update_stmt = mock_db_session.execute.call_args_list[1][0][0]
        assert str(update_stmt).startswith("UPDATE contacts SET contact_username=")
        mock_db_session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_case_change_of_own_name_allowed(self, mock_db_session, make_user):
        user = make_user("sunny")
        mock_db_session.execute.side_effect = [db_result(scalar=None), db_result()]

        result = await self.service.update_username(mock_db_session, user, "Sunny")

        assert result.username == "Sunny"


class TestStatsAndDeletion:

    def setup_method(self):
        self.service = UserService()

    @pytest.mark.asyncio
    async def test_stats(self, mock_db_session, make_user):
        mock_db_session.execute.side_effect = [
            db_result(count=4),
            db_result(count=7),
            db_result(count=2),
        ]

        stats = await self.service.get_stats(mock_db_session, make_user())

        assert stats.videos_sent == 4
        assert stats.videos_received == 7
        assert stats.contacts_count == 2

    @pytest.mark.asyncio
    async def test_stats_for_new_account(self, mock_db_session, make_user):
        mock_db_session.execute.side_effect = [db_result(count=0)] * 3

        stats = await self.service.get_stats(mock_db_session, make_user())

        assert stats.model_dump() == {"videos_sent": 0, "videos_received": 0, "contacts_count": 0}

    @pytest.mark.asyncio
    async def test_delete_account_removes_blobs_after_rows(self, mock_db_session, make_user):
        user = make_user()
        paths = ["videos/a.webm", "videos/b.webm"]
        mock_db_session.execute.side_effect = [
            db_result(scalars=paths),
            db_result(),
            db_result(),
        ]

        with patch("sunnyvideo.services.user_service.storage_service") as storage:
            storage.delete_file = AsyncMock(return_value=True)
            await self.service.delete_account(mock_db_session, user)

        mock_db_session.delete.assert_awaited_once_with(user)
        mock_db_session.commit.assert_awaited_once()
        assert [c.args[0] for c in storage.delete_file.await_args_list] == paths
