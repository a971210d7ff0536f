"""
Sunny Video Backend: Video Storage Service
============================================

What:  Validates, stores, serves and deletes recorded video blobs.
How:   Validates extension, size and MIME type, writes into the video bucket
       under date-organized directories, and retries transient disk errors
       with tenacity.
Who:   Called by MessageService (send / delete / purge) and UserService
       (account deletion); the health check probes writability.

Upload Checks (cheapest first):
    1. Extension:  .webm or .mp4 (what MediaRecorder produces)
    2. Size:       non-empty and at most MAX_VIDEO_SIZE
    3. MIME type:  libmagic inspects the header bytes (EBML for WebM,
                   ftyp box for MP4); renamed files are rejected
    4. Key:        generated server-side; no user input reaches the path

Bucket Layout:
    storage/
    └── videos/
        └── 2025/
            └── 01/
                └── 15/
                    └── video_1736899200000_<sender-uuid>_<8-hex>.webm
"""

import logging
import os
import uuid
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import NamedTuple, Optional, Tuple

import aiofiles
import aiofiles.os
import magic
from tenacity import (
    retry,
    stop_after_attempt,
    wait_random_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from sunnyvideo.config import settings
from sunnyvideo.exceptions import FileStorageError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# ── Allowed File Types ────────────────────────────────────────────────────
# Detected MIME type → canonical content type stored with the message.
# Some libmagic builds report WebM as generic Matroska.
ALLOWED_MIME_TYPES = {
    "video/webm": "video/webm",
    "video/x-matroska": "video/webm",
    "video/mp4": "video/mp4",
}

ALLOWED_EXTENSIONS = {".webm", ".mp4"}

_blob_io_retry = retry(
    retry=retry_if_exception_type(OSError),
    stop=stop_after_attempt(settings.retry_max_attempts),
    wait=wait_random_exponential(
        multiplier=settings.retry_min_wait,
        max=settings.retry_max_wait,
    ),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)


class StoredVideo(NamedTuple):
    absolute_path: str
    relative_path: str
    content_type: str
    size_bytes: int


class VideoStorageService:
    """
    Manages the lifecycle of video blobs in the storage bucket.

    Lifecycle of a recording:
        1. Sender uploads → validate_and_store() → StoredVideo
        2. MessageService saves StoredVideo.relative_path on the row
        3. Sender/recipient plays it → resolve() → FileResponse
        4. Message deleted or expired → delete_file()
    """

    def __init__(self, storage_root: Optional[str] = None):
        """
        Args:
            storage_root: Override the default storage path (used in tests).
                          If None, uses settings.storage_root.
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.bucket_root = self.storage_root / settings.video_bucket
        self.bucket_root.mkdir(parents=True, exist_ok=True)
        logger.info("VideoStorageService initialized with bucket=%s", self.bucket_root)

    # ── Validation ────────────────────────────────────────────────────────

    def validate_extension(self, filename: str) -> str:
        """
        Returns: Normalized extension (lowercase with dot).
        Raises:  ValidationError if extension is not allowed.
        """
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="video",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Checks Content-Length first (client-reported), then the actual byte count.

        Raises:
            ValidationError for empty or oversized recordings
        """
        max_mb = settings.max_video_size / (1024 * 1024)

        if actual_size == 0:
            raise ValidationError(
                message="The recording is empty. Please record again.",
                field="video",
            )

        if content_length and content_length > settings.max_video_size:
            raise ValidationError(
                message=f"Video exceeds maximum of {max_mb:.0f}MB.",
                field="video",
                context={"max_size_mb": max_mb, "reported_size": content_length},
            )

        if actual_size > settings.max_video_size:
            raise ValidationError(
                message=f"Video ({actual_size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                field="video",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

    def validate_mime_type(self, file_content: bytes) -> str:
        """
        Determine the real container type from the file's magic bytes.

        Returns:
            Canonical content type ("video/webm" or "video/mp4")

        Raises:
            ValidationError if the bytes are not a supported video container
            FileStorageError if libmagic itself fails
        """
        try:
            detected = magic.from_buffer(file_content[:4096], mime=True)
        except magic.MagicException as e:
            logger.error("MIME type detection failed: %s", str(e))
            raise FileStorageError(
                message="Could not verify file type. Please try again.",
                context={"error": str(e)},
            )

        if detected not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=(
                    f"File content type '{detected}' is not supported. "
                    f"The upload must be a WebM or MP4 video."
                ),
                field="video",
                context={"detected_mime": detected, "allowed": sorted(ALLOWED_MIME_TYPES)},
            )

        return ALLOWED_MIME_TYPES[detected]

    # ── Paths ─────────────────────────────────────────────────────────────

    def _generate_storage_path(self, extension: str, owner_id: str) -> Tuple[Path, str]:
        """
        Creates videos/YYYY/MM/DD/video_<epoch-ms>_<owner-id>_<8-hex><ext>.

        The random suffix keeps two uploads by one owner in the same
        millisecond from sharing a key.

        Returns: Tuple of (absolute_path, relative_path_from_storage_root).
        """
        now = datetime.now(timezone.utc)
        date_dir = now.strftime("%Y/%m/%d")
        unique_name = (
            f"video_{time.time_ns() // 1_000_000}_{owner_id}_"
            f"{uuid.uuid4().hex[:8]}{extension}"
        )

        relative_path = f"{settings.video_bucket}/{date_dir}/{unique_name}"
        absolute_path = self.storage_root / relative_path

        return absolute_path, relative_path

    def resolve(self, relative_path: str) -> Path:
        """
        Map a stored key back to a file on disk.

        Raises:
            ValidationError if the key escapes the bucket
            NotFoundError if the blob is gone
        """
        full_path = (self.storage_root / relative_path).resolve()
        if not full_path.is_relative_to(self.bucket_root):
            raise ValidationError(message="Invalid video path")
        if not full_path.is_file():
            raise NotFoundError(resource="video", context={"key": relative_path})
        return full_path

    # ── I/O ───────────────────────────────────────────────────────────────

    @_blob_io_retry
    async def _write(self, absolute_path: Path, content: bytes) -> None:
        absolute_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(absolute_path, "wb") as f:
            await f.write(content)

    async def store_file(
        self, content: bytes, extension: str, owner_id: str
    ) -> Tuple[str, str]:
        """
        Write validated content to the bucket.

        Returns: Tuple of (absolute_path, relative_path).
        Raises:  FileStorageError once retries are exhausted.
        """
        absolute_path, relative_path = self._generate_storage_path(extension, owner_id)

        try:
            await self._write(absolute_path, content)
        except OSError as e:
            logger.error("Failed to store video at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save the video. Please try again.",
                context={"path": str(absolute_path), "os_error": str(e)},
            )

        logger.info("Video stored: %s (%d bytes)", relative_path, len(content))
        return str(absolute_path), relative_path

    @_blob_io_retry
    async def _remove(self, path: Path) -> bool:
        # Coroutine so tenacity backs off with asyncio.sleep
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            return False
        return True

    async def delete_file(self, relative_path: str) -> bool:
        """
        Remove a blob by key. Best-effort: never raises.

        Returns: True if a file was removed, False if it was already gone or
                 could not be removed (logged).
        """
        path = self.storage_root / relative_path
        try:
            removed = await self._remove(path)
        except OSError as e:
            logger.warning("Failed to delete video %s: %s", relative_path, str(e))
            return False

        if removed:
            logger.info("Deleted video: %s", relative_path)
        else:
            logger.debug("Delete: video already gone: %s", relative_path)
        return removed

    async def validate_and_store(
        self,
        filename: str,
        content: bytes,
        owner_id: str,
        content_length: Optional[int] = None,
    ) -> StoredVideo:
        """
        Complete upload pipeline: extension → size → MIME → write.

        Who:     Called by MessageService.send_video().
        Returns: StoredVideo describing the written blob.
        """
        ext = self.validate_extension(filename)
        self.validate_size(content_length, len(content))
        content_type = self.validate_mime_type(content)

        absolute_path, relative_path = await self.store_file(content, ext, owner_id)

        return StoredVideo(
            absolute_path=absolute_path,
            relative_path=relative_path,
            content_type=content_type,
            size_bytes=len(content),
        )

    def is_writable(self) -> bool:
        """Cheap probe for the health check."""
        return self.bucket_root.is_dir() and os.access(self.bucket_root, os.W_OK)


# ── Singleton Instance ────────────────────────────────────────────────────
storage_service = VideoStorageService()
