"""
Sunny Video Backend: HTTP API Tests
=====================================

Exercises routing, auth, status codes, headers and the error body through
the ASGI app. Services are mocked; their rules are covered in the
service tests.
"""

import logging
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from conftest import FIXED_NOW, db_result
from sunnyvideo.config import settings
from sunnyvideo.exceptions import (
    ConflictError,
    MessageExpiredError,
    PermissionDeniedError,
)
from sunnyvideo.main import setup_logging
from sunnyvideo.schemas.message import MessageListResponse
from sunnyvideo.services.message_service import VideoDownload, build_message_response


def _engine_mock(fail: bool):
    engine = MagicMock()
    ctx = engine.connect.return_value
    if fail:
        ctx.__aenter__ = AsyncMock(side_effect=ConnectionRefusedError("no postgres"))
    else:
        conn = MagicMock()
        conn.execute = AsyncMock()
        ctx.__aenter__ = AsyncMock(return_value=conn)
    ctx.__aexit__ = AsyncMock(return_value=False)
    return engine


class TestPublicEndpoints:

    @pytest.mark.asyncio
    async def test_health_ok(self, test_client):
        with patch("sunnyvideo.routes.health.engine", _engine_mock(fail=False)):
            response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["storage"] == "writable"

    @pytest.mark.asyncio
    async def test_health_database_down(self, test_client):
        with patch("sunnyvideo.routes.health.engine", _engine_mock(fail=True)):
            response = await test_client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"

    @pytest.mark.asyncio
    async def test_effects_catalog(self, test_client):
        response = await test_client.get("/api/effects")

        assert response.status_code == 200
        body = response.json()
        assert len(body["filters"]) == 8
        assert len(body["emojis"]) == 12
        assert body["max_recording_seconds"] == 10
        assert body["message_ttl_hours"] == 24

    @pytest.mark.asyncio
    async def test_register_rejects_short_password(self, test_client):
        response = await test_client.post(
            "/api/auth/register",
            json={"username": "sunny", "email": "sunny@example.com", "password": "123"},
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_register_short_username_is_bad_request(self, authed_client):
        response = await authed_client.post(
            "/api/auth/register",
            json={"username": "ab", "email": "ab@example.com", "password": "sunshine"},
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["details"]["field"] == "username"
        assert body["request_id"]
        authed_client.db.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, test_client):
        response = await test_client.get("/api/effects", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"

    @pytest.mark.asyncio
    async def test_rate_limited_response_carries_request_id(self, test_client):
        with patch.object(settings, "rate_limit_requests", 0):
            response = await test_client.get("/api/effects", headers={"X-Request-ID": "slowdown"})

        assert response.status_code == 429
        assert response.headers["Retry-After"]
        assert response.headers["X-Request-ID"] == "slowdown"
        body = response.json()
        assert body["error"] == "rate_limit_exceeded"
        assert body["request_id"] == "slowdown"


def test_setup_logging_quiets_http_client_loggers():
    with patch("sunnyvideo.main.logging.basicConfig"):
        setup_logging()

    for name in ("httpx", "httpcore", "uvicorn.access", "sqlalchemy.engine"):
        assert logging.getLogger(name).level == logging.WARNING


class TestAuthentication:

    @pytest.mark.asyncio
    async def test_missing_token(self, test_client):
        response = await test_client.get("/api/me")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        body = response.json()
        assert body["error"] == "unauthorized"
        assert body["request_id"]

    @pytest.mark.asyncio
    async def test_garbage_token(self, test_client):
        response = await test_client.get(
            "/api/messages", headers={"Authorization": "Bearer not-a-token"}
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid authentication token"

    @pytest.mark.asyncio
    async def test_me(self, authed_client):
        response = await authed_client.get("/api/me")

        assert response.status_code == 200
        assert response.json()["username"] == "sunny"
        assert response.json()["email"] == "sunny@example.com"


class TestMessagesApi:

    @pytest.mark.asyncio
    async def test_send_video_multipart(self, authed_client, make_user, sample_webm_bytes):
        recipient = make_user("moony")
        user = authed_client.user

        with patch("sunnyvideo.routes.messages.message_service") as service:
            service.send_video = AsyncMock(side_effect=PermissionDeniedError(
                "You can only send videos to users in your contacts"
            ))
            response = await authed_client.post(
                "/api/messages",
                files={"video": ("recording.webm", sample_webm_bytes, "video/webm")},
                data={
                    "recipient_id": str(recipient.id),
                    "duration_seconds": "6.4",
                    "filter": "sepia",
                    "emoji": "🔥",
                },
            )

        assert response.status_code == 403
        assert response.json()["error"] == "permission_denied"
        kwargs = service.send_video.await_args.kwargs
        assert kwargs["sender"] is user
        assert kwargs["recipient_id"] == recipient.id
        assert kwargs["video_filter"] == "sepia"
        assert kwargs["emoji"] == "🔥"
        assert kwargs["duration_seconds"] == pytest.approx(6.4)
        assert kwargs["content"] == sample_webm_bytes

    @pytest.mark.asyncio
    async def test_send_video_requires_duration(self, authed_client, sample_webm_bytes):
        response = await authed_client.post(
            "/api/messages",
            files={"video": ("recording.webm", sample_webm_bytes, "video/webm")},
            data={"recipient_id": str(uuid4())},
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_inbox_total_count_header(self, authed_client, make_user, make_message):
        me = authed_client.user
        message = make_message(make_user("moony"), me)
        listing = MessageListResponse(
            messages=[build_message_response(message, FIXED_NOW, sender_username="moony")],
            total_count=1,
            unviewed_count=1,
        )

        with patch("sunnyvideo.routes.messages.message_service") as service:
            service.list_inbox = AsyncMock(return_value=listing)
            response = await authed_client.get("/api/messages")

        assert response.status_code == 200
        assert response.headers["X-Total-Count"] == "1"
        assert response.json()["messages"][0]["sender_username"] == "moony"

    @pytest.mark.asyncio
    async def test_open_expired_is_gone(self, authed_client):
        message_id = uuid4()
        with patch("sunnyvideo.routes.messages.message_service") as service:
            service.open_message = AsyncMock(side_effect=MessageExpiredError(str(message_id)))
            response = await authed_client.post(f"/api/messages/{message_id}/open")

        assert response.status_code == 410
        assert response.json()["error"] == "message_expired"
        assert response.json()["message"] == "This video message has expired"

    @pytest.mark.asyncio
    async def test_video_download(self, authed_client, tmp_path):
        message_id = uuid4()
        blob = tmp_path / "clip.webm"
        blob.write_bytes(b"\x1a\x45\xdf\xa3webm")

        with patch("sunnyvideo.routes.messages.message_service") as service:
            service.get_video = AsyncMock(return_value=VideoDownload(
                path=blob,
                content_type="video/webm",
                filename=f"sunny_video_{message_id}.webm",
            ))
            response = await authed_client.get(
                f"/api/messages/{message_id}/video", params={"download": "true"}
            )

        assert response.status_code == 200
        assert response.headers["content-type"] == "video/webm"
        assert f"sunny_video_{message_id}.webm" in response.headers["content-disposition"]
        assert response.content == b"\x1a\x45\xdf\xa3webm"

    @pytest.mark.asyncio
    async def test_delete_message(self, authed_client):
        with patch("sunnyvideo.routes.messages.message_service") as service:
            service.delete_message = AsyncMock(return_value=None)
            response = await authed_client.delete(f"/api/messages/{uuid4()}")

        assert response.status_code == 204


class TestContactsAndProfileApi:

    @pytest.mark.asyncio
    async def test_add_duplicate_contact_conflict(self, authed_client):
        with patch("sunnyvideo.routes.contacts.contact_service") as service:
            service.add_contact = AsyncMock(side_effect=ConflictError("moony is already in your contacts."))
            response = await authed_client.post(
                "/api/contacts", json={"contact_user_id": str(uuid4())}
            )

        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

    @pytest.mark.asyncio
    async def test_stats(self, authed_client):
        authed_client.db.execute.side_effect = [
            db_result(count=1),
            db_result(count=2),
            db_result(count=3),
        ]
        response = await authed_client.get("/api/me/stats")

        assert response.status_code == 200
        assert response.json() == {"videos_sent": 1, "videos_received": 2, "contacts_count": 3}

    @pytest.mark.asyncio
    async def test_blank_username_update_is_noop(self, authed_client):
        response = await authed_client.patch("/api/me", json={"username": "   "})

        assert response.status_code == 200
        assert response.json()["username"] == "sunny"
        authed_client.db.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_member_since_is_returned(self, authed_client):
        response = await authed_client.get("/api/me")
        created = response.json()["created_at"]
        assert created.startswith(str((FIXED_NOW - timedelta(days=30)).date()))
