"""
Sunny Video Backend: Video Storage Service Unit Tests
=======================================================

Upload validation is the boundary between browsers and the disk.

Test Strategy:
    ✅ Allowed / rejected extensions
    ✅ Size limits (empty, reported oversize, actual oversize)
    ✅ MIME detection via libmagic (patched for non-video content)
    ✅ Keys land under videos/YYYY/MM/DD/ and never collide
    ✅ Transient delete errors are retried without blocking the loop
    ✅ resolve() refuses keys that escape the bucket
    ✅ delete_file() is best-effort
"""

import asyncio
import re

import pytest
from unittest.mock import AsyncMock, patch

import magic

from sunnyvideo.config import settings
from sunnyvideo.exceptions import FileStorageError, NotFoundError, ValidationError
from sunnyvideo.services.storage_service import VideoStorageService


class TestUploadValidation:

    def setup_method(self):
        self.service = VideoStorageService()

    # ── Extension Validation ──────────────────────────────────────────────

    @pytest.mark.parametrize("filename", ["clip.webm", "clip.mp4", "CLIP.WEBM"])
    def test_validate_extension_allowed(self, filename):
        assert self.service.validate_extension(filename) in {".webm", ".mp4"}

    @pytest.mark.parametrize("filename", ["clip.gif", "clip.mov", "noextension", "run.exe"])
    def test_validate_extension_rejected(self, filename):
        with pytest.raises(ValidationError, match="not supported"):
            self.service.validate_extension(filename)

    # ── Size Validation ───────────────────────────────────────────────────

    def test_validate_size_within_limit(self):
        self.service.validate_size(None, 2_000_000)

    def test_validate_size_at_limit(self):
        self.service.validate_size(settings.max_video_size, settings.max_video_size)

    def test_validate_size_empty_recording(self):
        with pytest.raises(ValidationError, match="empty"):
            self.service.validate_size(0, 0)

    def test_validate_size_reported_oversize(self):
        with pytest.raises(ValidationError, match="exceeds maximum"):
            self.service.validate_size(settings.max_video_size + 1, 100)

    def test_validate_size_actual_oversize(self):
        with pytest.raises(ValidationError, match="exceeds maximum"):
            self.service.validate_size(None, settings.max_video_size + 1)

    # ── MIME Validation ───────────────────────────────────────────────────

    def test_validate_mime_type_webm(self, sample_webm_bytes):
        with patch("sunnyvideo.services.storage_service.magic.from_buffer", return_value="video/webm"):
            assert self.service.validate_mime_type(sample_webm_bytes) == "video/webm"

    def test_validate_mime_type_matroska_reported_as_webm(self, sample_webm_bytes):
        with patch(
            "sunnyvideo.services.storage_service.magic.from_buffer",
            return_value="video/x-matroska",
        ):
            assert self.service.validate_mime_type(sample_webm_bytes) == "video/webm"

    def test_validate_mime_type_renamed_text_file_rejected(self):
        with patch("sunnyvideo.services.storage_service.magic.from_buffer", return_value="text/plain"):
            with pytest.raises(ValidationError, match="WebM or MP4"):
                self.service.validate_mime_type(b"definitely not a video")

    def test_validate_mime_type_libmagic_failure(self):
        with patch(
            "sunnyvideo.services.storage_service.magic.from_buffer",
            side_effect=magic.MagicException("broken magic db"),
        ):
            with pytest.raises(FileStorageError):
                self.service.validate_mime_type(b"\x1a\x45\xdf\xa3")


class TestBlobLifecycle:

    @pytest.mark.asyncio
    async def test_validate_and_store_writes_dated_key(self, temp_storage, sample_webm_bytes):
        service = VideoStorageService(storage_root=temp_storage)

        with patch("sunnyvideo.services.storage_service.magic.from_buffer", return_value="video/webm"):
            stored = await service.validate_and_store(
                filename="recording.webm",
                content=sample_webm_bytes,
                owner_id="user-1",
            )

        parts = stored.relative_path.split("/")
        assert parts[0] == settings.video_bucket
        assert len(parts) == 5  # videos/YYYY/MM/DD/name
        assert re.fullmatch(r"video_\d+_user-1_[0-9a-f]{8}\.webm", parts[-1])
        assert stored.content_type == "video/webm"
        assert stored.size_bytes == len(sample_webm_bytes)
        assert service.resolve(stored.relative_path).read_bytes() == sample_webm_bytes

    @pytest.mark.asyncio
    async def test_validate_and_store_rejects_before_writing(self, temp_storage):
        service = VideoStorageService(storage_root=temp_storage)

        with pytest.raises(ValidationError):
            await service.validate_and_store(filename="x.webm", content=b"", owner_id="u")

        assert not any(service.bucket_root.rglob("*.webm"))

    @pytest.mark.asyncio
    async def test_store_file_wraps_os_error(self, temp_storage):
        service = VideoStorageService(storage_root=temp_storage)

        with patch.object(service, "_write", new=AsyncMock(side_effect=OSError("disk full"))):
            with pytest.raises(FileStorageError, match="Failed to save"):
                await service.store_file(b"data", ".webm", "u")

    @pytest.mark.asyncio
    async def test_delete_file_removes_blob(self, temp_storage):
        service = VideoStorageService(storage_root=temp_storage)
        _, key = await service.store_file(b"data", ".webm", "u")

        assert await service.delete_file(key) is True
        assert await service.delete_file(key) is False

    @pytest.mark.asyncio
    async def test_delete_file_never_raises(self, temp_storage):
        service = VideoStorageService(storage_root=temp_storage)

        with patch.object(service, "_remove", new=AsyncMock(side_effect=PermissionError("read-only"))):
            assert await service.delete_file("videos/x.webm") is False

    @pytest.mark.asyncio
    async def test_delete_file_retries_without_blocking_loop(self, temp_storage):
        service = VideoStorageService(storage_root=temp_storage)
        ticks = 0

        async def ticker():
            nonlocal ticks
            while True:
                ticks += 1
                await asyncio.sleep(0)

        remove = AsyncMock(side_effect=[PermissionError("busy"), None])
        ticker_task = asyncio.create_task(ticker())
        try:
            with patch("sunnyvideo.services.storage_service.aiofiles.os.remove", new=remove):
                assert await service.delete_file("videos/x.webm") is True
        finally:
            ticker_task.cancel()

        assert remove.await_count == 2
        assert ticks > 0

    @pytest.mark.asyncio
    async def test_same_millisecond_uploads_get_distinct_keys(self, temp_storage):
        service = VideoStorageService(storage_root=temp_storage)

        with patch("sunnyvideo.services.storage_service.time.time_ns", return_value=1_736_899_200_000_000_000):
            _, first = await service.store_file(b"first", ".webm", "u")
            _, second = await service.store_file(b"second", ".webm", "u")

        assert first != second
        assert service.resolve(first).read_bytes() == b"first"
        assert service.resolve(second).read_bytes() == b"second"

    def test_resolve_rejects_path_traversal(self, temp_storage):
        service = VideoStorageService(storage_root=temp_storage)
        with pytest.raises(ValidationError):
            service.resolve("../../etc/passwd")

    def test_resolve_missing_blob(self, temp_storage):
        service = VideoStorageService(storage_root=temp_storage)
        with pytest.raises(NotFoundError):
            service.resolve("videos/2025/01/01/gone.webm")

    def test_is_writable(self, temp_storage):
        assert VideoStorageService(storage_root=temp_storage).is_writable()
