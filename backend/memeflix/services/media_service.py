"""
Memeflix Backend — Media Service
=================================

What:  Resolves a request filename to a file under settings.media_root and
       streams its bytes.
Why:   /media/{filename} takes a user-controlled string and turns it into a
       filesystem path, so this is the one place path traversal must be
       stopped.
How:   Two layers:
       1. Lexical check: reject names containing "..", "/" or "\\" before
          touching the disk (400).
       2. Containment check: the resolved path must still sit directly in
          the media root, which also catches symlinks pointing elsewhere.
       The file is then opened with aiofiles and streamed in chunks so a
       large video never sits in memory.

Failure mapping:
    unsafe name          → ValidationError  (400)
    missing file         → NotFoundError    (404)
    open/stat failure    → MediaFileError   (500, "Failed to send file.")
"""

import logging
import mimetypes
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, AsyncIterator, Optional

import aiofiles
import aiofiles.os
from aiofiles.ospath import wrap

from memeflix.config import settings
from memeflix.exceptions import MediaFileError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

FORBIDDEN_SEQUENCES = ("..", "/", "\\")
FALLBACK_MEDIA_TYPE = "application/octet-stream"

# Follows symlinks, so it runs in the executor like the other aiofiles calls
_realpath = wrap(os.path.realpath)


@dataclass
class MediaFile:
    """An opened media file ready to be streamed; the handle is closed by iter_chunks."""
    path: Path
    size: int
    media_type: str
    handle: Any


class MediaService:
    """
    Read-only access to the media directory.

    Unlike uploads there is nothing to write: memes arrive through the
    seed loader, which copies nothing and only records filenames.
    """

    def __init__(self, media_root: Optional[str] = None):
        """
        Args:
            media_root: Override the configured directory (used in tests).
        """
        self.media_root = Path(media_root or settings.media_root).resolve()

    def validate_filename(self, filename: str) -> str:
        """
        Raises:
            ValidationError: empty name or one containing a traversal sequence
        """
        if not filename or filename.strip() != filename:
            raise ValidationError(message="Invalid filename.", field="filename")
        if "\x00" in filename or any(seq in filename for seq in FORBIDDEN_SEQUENCES):
            logger.warning("Rejected unsafe media filename: %r", filename)
            raise ValidationError(message="Invalid filename.", field="filename")
        return filename

    async def resolve(self, filename: str) -> Path:
        """Validated, contained, existing path for `filename`."""
        self.validate_filename(filename)
        path = Path(await _realpath(self.media_root / filename))
        if path.parent != self.media_root:
            logger.warning("Media path escaped root: %r → %s", filename, path)
            raise ValidationError(message="Invalid filename.", field="filename")
        if not await aiofiles.os.path.isfile(path):
            raise NotFoundError(resource="file", context={"filename": filename})
        return path

    async def open_media(self, filename: str) -> MediaFile:
        path = await self.resolve(filename)
        try:
            stat = await aiofiles.os.stat(path)
            handle = await aiofiles.open(path, "rb")
        except FileNotFoundError:
            # Deleted between resolve() and open
            raise NotFoundError(resource="file", context={"filename": filename})
        except OSError as e:
            logger.error("Failed to open media file %s: %s", path, e)
            raise MediaFileError(context={"filename": filename, "os_error": str(e)})

        media_type, _ = mimetypes.guess_type(path.name)
        return MediaFile(
            path=path,
            size=stat.st_size,
            media_type=media_type or FALLBACK_MEDIA_TYPE,
            handle=handle,
        )

    async def iter_chunks(
        self, media: MediaFile, chunk_size: Optional[int] = None
    ) -> AsyncIterator[bytes]:
        """
        Yields the file in chunks and always closes the handle.

        Headers are already sent once streaming starts, so a read error here
        can only be logged; the client sees a truncated body.
        """
        size = chunk_size or settings.media_chunk_size
        try:
            while True:
                chunk = await media.handle.read(size)
                if not chunk:
                    break
                yield chunk
        except OSError as e:
            logger.error("Read failed while streaming %s: %s", media.path, e)
        finally:
            await media.handle.close()


media_service = MediaService()
