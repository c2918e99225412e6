"""
Memeflix Backend — Media Serving Tests
=======================================

What we test:
    ✅ Filename validation rejects traversal sequences and odd whitespace
    ✅ Symlinks pointing outside the media root are refused
    ✅ Existing files stream back byte-for-byte with a guessed content type
    ✅ Missing file → 404, unreadable file → 500 "Failed to send file."
"""

import os
from unittest.mock import AsyncMock, patch

import pytest

from memeflix.exceptions import MediaFileError, NotFoundError, ValidationError
from memeflix.services.media_service import MediaService


class TestMediaService:

    @pytest.fixture(autouse=True)
    def _root(self, tmp_path):
        self.root = tmp_path / "media"
        self.root.mkdir()
        (self.root / "cat.gif").write_bytes(b"GIF89a" + bytes(range(256)) * 4)
        self.service = MediaService(str(self.root))

    @pytest.mark.parametrize("filename", [
        "../secret.txt",
        "..",
        "nested/cat.gif",
        "nested\\cat.gif",
        "",
        " cat.gif",
        "cat.gif ",
        "cat\x00.gif",
    ])
    def test_unsafe_names_rejected(self, filename):
        with pytest.raises(ValidationError):
            self.service.validate_filename(filename)

    @pytest.mark.asyncio
    async def test_plain_name_accepted(self):
        assert self.service.validate_filename("cat.gif") == "cat.gif"
        assert await self.service.resolve("cat.gif") == (self.root / "cat.gif").resolve()

    @pytest.mark.asyncio
    async def test_missing_file(self):
        with pytest.raises(NotFoundError):
            await self.service.resolve("dog.gif")

    @pytest.mark.asyncio
    async def test_directory_is_not_a_file(self):
        (self.root / "folder").mkdir()
        with pytest.raises(NotFoundError):
            await self.service.resolve("folder")

    @pytest.mark.asyncio
    async def test_symlink_escaping_root_is_refused(self, tmp_path):
        outside = tmp_path / "outside.txt"
        outside.write_text("not a meme")
        os.symlink(outside, self.root / "sneaky.gif")

        with pytest.raises(ValidationError):
            await self.service.resolve("sneaky.gif")

    @pytest.mark.asyncio
    async def test_existence_check_goes_through_aiofiles(self):
        with patch(
            "memeflix.services.media_service.aiofiles.os.path.isfile",
            new=AsyncMock(return_value=False),
        ) as isfile:
            with pytest.raises(NotFoundError):
                await self.service.resolve("cat.gif")
        isfile.assert_awaited_once_with((self.root / "cat.gif").resolve())

    @pytest.mark.asyncio
    async def test_open_and_stream(self):
        media = await self.service.open_media("cat.gif")
        assert media.media_type == "image/gif"
        assert media.size == 6 + 1024

        chunks = [chunk async for chunk in self.service.iter_chunks(media, chunk_size=100)]
        assert len(chunks) == 11
        assert b"".join(chunks) == (self.root / "cat.gif").read_bytes()

    @pytest.mark.asyncio
    async def test_unknown_extension_falls_back_to_octet_stream(self):
        (self.root / "blob.memeraw").write_bytes(b"\x00\x01")
        media = await self.service.open_media("blob.memeraw")
        assert media.media_type == "application/octet-stream"
        await media.handle.close()

    @pytest.mark.asyncio
    async def test_unreadable_file(self):
        with patch(
            "memeflix.services.media_service.aiofiles.open",
            side_effect=PermissionError("permission denied"),
        ):
            with pytest.raises(MediaFileError) as exc_info:
                await self.service.open_media("cat.gif")
        assert exc_info.value.message == "Failed to send file."


class TestMediaEndpoint:

    @pytest.mark.asyncio
    async def test_serves_file_bytes(self, test_client, media_dir):
        response = await test_client.get(
            "/media/pikachu.png", headers={"Accept-Encoding": "identity"}
        )

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.content == (media_dir / "pikachu.png").read_bytes()
        assert response.headers["content-length"] == str(len(response.content))

    @pytest.mark.asyncio
    async def test_streams_large_video(self, test_client, media_dir):
        response = await test_client.get("/media/keyboard_cat.mp4")

        assert response.status_code == 200
        assert response.headers["content-type"] == "video/mp4"
        assert response.content == (media_dir / "keyboard_cat.mp4").read_bytes()

    @pytest.mark.asyncio
    async def test_traversal_is_400(self, test_client, media_dir):
        response = await test_client.get("/media/..%2F..%2Fetc%2Fpasswd")

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_missing_file_is_404(self, test_client, media_dir):
        response = await test_client.get("/media/not_here.png")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_unreadable_file_is_500(self, test_client, media_dir):
        with patch(
            "memeflix.services.media_service.aiofiles.open",
            side_effect=PermissionError("permission denied"),
        ):
            response = await test_client.get("/media/pikachu.png")

        assert response.status_code == 500
        assert response.json()["message"] == "Failed to send file."
