"""Unit tests for the media upload gateway."""

import hashlib
import io
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from pydantic import ValidationError as PydanticValidationError

from vidtube.services.media_service import (
    MediaStoreConfig,
    MediaUploadGateway,
    UploadResult,
    sign_params,
    stage_upload,
)


@pytest.fixture
def media_config():
    return MediaStoreConfig(
        cloud_name="demo-cloud",
        api_key="key-123",
        api_secret="shh",
        api_base_url="https://media.example.com/v1_1/",
    )


@pytest.fixture
def temp_file(tmp_path):
    path = tmp_path / "avatar.png"
    path.write_bytes(b"\x89PNG fake image bytes")
    return path


def _gateway(config, handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return MediaUploadGateway(config, client=client)


class TestMediaStoreConfig:
    def test_upload_url(self, media_config):
        assert media_config.upload_url == "https://media.example.com/v1_1/demo-cloud/auto/upload"

    def test_frozen(self, media_config):
        with pytest.raises(PydanticValidationError):
            media_config.cloud_name = "other"


class TestSignParams:
    def test_sorted_pairs_plus_secret(self):
        expected = hashlib.sha1(b"folder=avatars&timestamp=1700000000shh").hexdigest()
        assert sign_params({"timestamp": "1700000000", "folder": "avatars"}, "shh") == expected


class TestStageUpload:
    @pytest.mark.asyncio
    async def test_writes_stream_under_unique_name(self, tmp_path):
        target_dir = tmp_path / "temp"

        first = await stage_upload("me.jpg", io.BytesIO(b"abc"), target_dir)
        second = await stage_upload("me.jpg", io.BytesIO(b"def"), target_dir)

        assert first != second
        assert first.suffix == ".jpg"
        assert first.parent == target_dir
        assert first.read_bytes() == b"abc"

    @pytest.mark.asyncio
    async def test_missing_filename(self, tmp_path):
        path = await stage_upload(None, io.BytesIO(b"x"), tmp_path)
        assert path.suffix == ""
        assert path.exists()


class TestUpload:
    @pytest.mark.asyncio
    async def test_success_returns_secure_url_and_removes_file(self, media_config, temp_file):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = request.read()
            return httpx.Response(
                200,
                json={
                    "secure_url": "https://cdn.example.com/demo-cloud/avatar.png",
                    "url": "http://cdn.example.com/demo-cloud/avatar.png",
                    "public_id": "avatar",
                    "resource_type": "image",
                },
            )

        result = await _gateway(media_config, handler).upload(temp_file)

        assert isinstance(result, UploadResult)
        assert result.url == "https://cdn.example.com/demo-cloud/avatar.png"
        assert result.public_id == "avatar"
        assert seen["url"] == media_config.upload_url
        assert b"key-123" in seen["body"]
        assert b"signature" in seen["body"]
        assert not temp_file.exists()

    @pytest.mark.asyncio
    async def test_falls_back_to_plain_url(self, media_config, temp_file):
        def handler(request):
            return httpx.Response(200, json={"url": "http://cdn.example.com/a.png"})

        result = await _gateway(media_config, handler).upload(temp_file)
        assert result.url == "http://cdn.example.com/a.png"

    @pytest.mark.asyncio
    async def test_provider_error_returns_none_and_removes_file(self, media_config, temp_file):
        def handler(request):
            return httpx.Response(500, json={"error": {"message": "boom"}})

        assert await _gateway(media_config, handler).upload(temp_file) is None
        assert not temp_file.exists()

    @pytest.mark.asyncio
    async def test_transport_error_returns_none(self, media_config, temp_file):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        assert await _gateway(media_config, handler).upload(temp_file) is None
        assert not temp_file.exists()

    @pytest.mark.asyncio
    async def test_response_without_url_returns_none(self, media_config, temp_file):
        def handler(request):
            return httpx.Response(200, json={"public_id": "x"})

        assert await _gateway(media_config, handler).upload(temp_file) is None

    @pytest.mark.asyncio
    async def test_non_object_json_returns_none_and_removes_file(self, media_config, temp_file):
        def handler(request):
            return httpx.Response(200, json=["unexpected"])

        assert await _gateway(media_config, handler).upload(temp_file) is None
        assert not temp_file.exists()

    @pytest.mark.asyncio
    async def test_non_json_body_returns_none_and_removes_file(self, media_config, temp_file):
        def handler(request):
            return httpx.Response(200, text="<html>gateway error</html>")

        assert await _gateway(media_config, handler).upload(temp_file) is None
        assert not temp_file.exists()

    @pytest.mark.asyncio
    async def test_unexpected_error_returns_none_and_removes_file(self, media_config, temp_file):
        gateway = MediaUploadGateway(media_config)

        with patch.object(gateway, "_send", new_callable=AsyncMock, side_effect=RuntimeError("boom")):
            assert await gateway.upload(temp_file) is None

        assert not temp_file.exists()

    @pytest.mark.parametrize("local_path", [None, ""])
    @pytest.mark.asyncio
    async def test_no_path_returns_none(self, media_config, local_path):
        def handler(request):
            raise AssertionError("should not be called")

        assert await _gateway(media_config, handler).upload(local_path) is None

    @pytest.mark.asyncio
    async def test_nonexistent_path_returns_none(self, media_config, tmp_path):
        def handler(request):
            raise AssertionError("should not be called")

        missing = tmp_path / "gone.png"
        assert await _gateway(media_config, handler).upload(missing) is None

    @pytest.mark.asyncio
    async def test_unconfigured_store_returns_none_and_removes_file(self, temp_file):
        config = MediaStoreConfig(cloud_name="", api_key="", api_secret="")

        def handler(request):
            raise AssertionError("should not be called")

        assert await _gateway(config, handler).upload(str(temp_file)) is None
        assert not temp_file.exists()
