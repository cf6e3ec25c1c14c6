"""Unit tests for asset handling in the register endpoint."""

import asyncio
import io
from pathlib import Path

import pytest
from fastapi import UploadFile

from vidtube.api.v1.auth import register
from vidtube.config import Settings


class FailingRegistration:
    """Stands in for the authentication service and fails every register call."""

    def __init__(self, exc: BaseException):
        self.exc = exc

    async def register(self, **fields):
        raise self.exc


def _upload(name: str) -> UploadFile:
    return UploadFile(file=io.BytesIO(b"image bytes"), filename=f"{name}.png")


async def _register(auth_service, asset_store, settings: Settings):
    return await register(
        auth_service=auth_service,
        asset_store=asset_store,
        settings=settings,
        username="ada",
        email="ada@x.io",
        password="secret1",
        full_name="Ada L.",
        avatar=_upload("avatar"),
        cover_image=_upload("cover"),
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("exc_type", [asyncio.CancelledError, RuntimeError])
async def test_uploads_discarded_when_registration_aborts(
    exc_type, asset_store, settings: Settings
):
    with pytest.raises(exc_type):
        await _register(FailingRegistration(exc_type()), asset_store, settings)

    assert len(asset_store.uploaded) == 2
    assert asset_store.deleted == asset_store.uploaded
    assert list(Path(settings.upload_temp_dir).iterdir()) == []


@pytest.mark.asyncio
async def test_uploads_spooled_in_worker_thread(asset_store, settings: Settings, monkeypatch):
    offloaded = []
    real_to_thread = asyncio.to_thread

    async def recording_to_thread(func, *args, **kwargs):
        offloaded.append(func.__name__)
        return await real_to_thread(func, *args, **kwargs)

    monkeypatch.setattr(asyncio, "to_thread", recording_to_thread)

    with pytest.raises(RuntimeError):
        await _register(FailingRegistration(RuntimeError()), asset_store, settings)

    assert offloaded == ["save_upload_to_temp", "save_upload_to_temp"]
