"""Unit tests for the Cloudinary asset store, driven by httpx.MockTransport."""

import asyncio
import hashlib
import io
from pathlib import Path

import httpx
import pytest

from vidtube.assets import (
    CloudinaryAssetStore,
    UploadedAsset,
    save_upload_to_temp,
    sign_params,
)
from vidtube.kernel.errors import UpstreamFailure


def _store(handler) -> CloudinaryAssetStore:
    return CloudinaryAssetStore(
        cloud_name="demo",
        api_key="key-123",
        api_secret="shh",
        base_url="https://cloudinary.test/v1_1",
        transport=httpx.MockTransport(handler),
    )


@pytest.fixture
def local_file(tmp_path: Path) -> Path:
    path = tmp_path / "avatar.png"
    path.write_bytes(b"\x89PNG fake image")
    return path


def test_sign_params_sorted_with_secret():
    expected = hashlib.sha1(b"public_id=abc&timestamp=1700000000shh").hexdigest()

    assert sign_params({"timestamp": 1700000000, "public_id": "abc"}, "shh") == expected


class TestUpload:

    @pytest.mark.asyncio
    async def test_upload_returns_secure_url_and_removes_file(self, local_file: Path):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "secure_url": "https://res.cloudinary.test/demo/avatar.png",
                    "url": "http://res.cloudinary.test/demo/avatar.png",
                    "public_id": "avatar",
                    "resource_type": "image",
                },
            )

        asset = await _store(handler).upload(local_file)

        assert asset == UploadedAsset(
            url="https://res.cloudinary.test/demo/avatar.png",
            public_id="avatar",
        )
        assert not local_file.exists()
        assert str(seen[0].url) == "https://cloudinary.test/v1_1/demo/auto/upload"
        assert b"signature" in seen[0].content
        assert b"key-123" in seen[0].content
        assert b"shh" not in seen[0].content

    @pytest.mark.asyncio
    async def test_upload_rejected_removes_file(self, local_file: Path):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"error": {"message": "Invalid image file"}})

        with pytest.raises(UpstreamFailure):
            await _store(handler).upload(local_file)

        assert not local_file.exists()

    @pytest.mark.asyncio
    async def test_upload_unreachable_removes_file(self, local_file: Path):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(UpstreamFailure):
            await _store(handler).upload(local_file)

        assert not local_file.exists()

    @pytest.mark.asyncio
    async def test_upload_without_url_in_response(self, local_file: Path):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"public_id": "avatar"})

        with pytest.raises(UpstreamFailure):
            await _store(handler).upload(local_file)

        assert not local_file.exists()

    @pytest.mark.asyncio
    async def test_unconfigured_store_removes_file(self, local_file: Path):
        store = CloudinaryAssetStore(cloud_name="", api_key="", api_secret="")

        with pytest.raises(UpstreamFailure):
            await store.upload(local_file)

        assert not store.configured
        assert not local_file.exists()

    @pytest.mark.asyncio
    async def test_missing_local_file(self, tmp_path: Path):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        with pytest.raises(UpstreamFailure):
            await _store(handler).upload(tmp_path / "gone.png")

    @pytest.mark.asyncio
    async def test_file_read_runs_in_worker_thread(self, local_file: Path, monkeypatch):
        offloaded = []
        real_to_thread = asyncio.to_thread

        async def recording_to_thread(func, *args, **kwargs):
            offloaded.append(func.__name__)
            return await real_to_thread(func, *args, **kwargs)

        monkeypatch.setattr(asyncio, "to_thread", recording_to_thread)

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"secure_url": "https://x/a.png", "public_id": "a"})

        await _store(handler).upload(local_file)

        assert offloaded == ["read_bytes"]


class TestDelete:

    @pytest.mark.asyncio
    async def test_delete_posts_to_destroy(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"result": "ok"})

        await _store(handler).delete(UploadedAsset(url="https://x", public_id="avatar"))

        assert str(seen[0].url) == "https://cloudinary.test/v1_1/demo/image/destroy"
        assert b"public_id=avatar" in seen[0].content

    @pytest.mark.asyncio
    async def test_delete_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500)

        with pytest.raises(UpstreamFailure):
            await _store(handler).delete(UploadedAsset(url="https://x", public_id="avatar"))


class TestSaveUploadToTemp:

    def test_spools_content_with_suffix(self, tmp_path: Path):
        target = tmp_path / "temp"

        path = save_upload_to_temp(io.BytesIO(b"image bytes"), "cover.jpg", target)

        assert path.parent == target
        assert path.suffix == ".jpg"
        assert path.read_bytes() == b"image bytes"

    def test_unique_names(self, tmp_path: Path):
        first = save_upload_to_temp(io.BytesIO(b"a"), "same.png", tmp_path)
        second = save_upload_to_temp(io.BytesIO(b"b"), "same.png", tmp_path)

        assert first != second

    def test_unwritable_directory(self, tmp_path: Path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        with pytest.raises(UpstreamFailure):
            save_upload_to_temp(io.BytesIO(b"a"), "x.png", blocker / "nested")
