"""Tests for POST /upload, the receiving layer and the relay service."""
import logging
import re
from types import SimpleNamespace

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

import app.uploads.receiver as receiver
import app.uploads.service as service_module
from app.config import _ENV_OVERRIDES, reset_config
from app.main import app
from app.providers import ImageKitProvider, get_media_provider, set_media_provider
from app.uploads.errors import (
    GENERIC_UPLOAD_ERROR,
    FileTooLarge,
    MissingFile,
    UnsupportedType,
    UpstreamFailure,
)
from app.uploads.receiver import ReceivedFile, UploadSizeLimitMiddleware
from app.uploads.schemas import ALLOWED_MIME_TYPES, MAX_FILE_SIZE_BYTES
from app.uploads.service import UploadRelayService

from conftest import FakeMediaProvider


client = TestClient(app)

ISO_UTC = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


def _post_file(name="photo.png", content=b"0123456789", mime="image/png"):
    return client.post("/upload", files={"file": (name, content, mime)})


# =============================================================================
# Successful uploads
# =============================================================================


class TestUploadSuccess:
    def test_returns_upload_result(self, fake_provider):
        resp = _post_file()

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["fileUrl"] == "https://cdn.example.com/uploads/photo.png"
        assert body["thumbnailUrl"].startswith("https://cdn.example.com/")
        assert body["fileId"] == "file-1"
        assert body["fileType"] == "image/png"
        assert body["fileSize"] == 10
        assert body["fileName"] == "photo.png"
        assert ISO_UTC.match(body["uploadTime"])

    def test_filename_is_sanitized_before_provider_call(self, fake_provider):
        resp = _post_file(name="my file!.png")

        assert resp.status_code == 200
        assert resp.json()["fileName"] == "my_file_.png"
        content, file_name, folder = fake_provider.calls[0]
        assert content == b"0123456789"
        assert file_name == "my_file_.png"
        assert folder == "/uploads"

    @pytest.mark.parametrize("mime", sorted(ALLOWED_MIME_TYPES))
    def test_every_allowed_type_is_relayed(self, fake_provider, mime):
        resp = _post_file(name="sample.bin", mime=mime)

        assert resp.status_code == 200
        assert resp.json()["fileUrl"]
        assert resp.json()["fileType"] == mime

    def test_one_provider_call_per_request(self, fake_provider):
        _post_file()
        _post_file()
        assert len(fake_provider.calls) == 2


# =============================================================================
# Client-correctable failures (400)
# =============================================================================


class TestUploadRejections:
    def test_missing_file_part(self, fake_provider):
        resp = client.post("/upload", data={"note": "no file here"})

        assert resp.status_code == 400
        assert resp.json() == {"success": False, "error": MissingFile.message}
        assert fake_provider.calls == []

    def test_empty_request_body(self, fake_provider):
        resp = client.post("/upload")

        assert resp.status_code == 400
        assert resp.json()["error"] == MissingFile.message

    def test_part_with_empty_filename_counts_as_missing(self, fake_provider):
        boundary = "relayboundary"
        body = (
            f"--{boundary}\r\n"
            'Content-Disposition: form-data; name="file"; filename=""\r\n'
            "Content-Type: application/octet-stream\r\n"
            "\r\n"
            "\r\n"
            f"--{boundary}--\r\n"
        ).encode()

        resp = client.post(
            "/upload",
            content=body,
            headers={"Content-Type": f"multipart/form-data; boundary={boundary}"},
        )

        assert resp.status_code == 400
        assert resp.json() == {"success": False, "error": MissingFile.message}
        assert fake_provider.calls == []

    def test_unsupported_type_never_reaches_provider(self, fake_provider):
        resp = _post_file(name="notes.txt", content=b"hello", mime="text/plain")

        assert resp.status_code == 400
        assert resp.json() == {"success": False, "error": UnsupportedType.message}
        assert fake_provider.calls == []

    def test_rejection_is_logged_once(self, fake_provider, caplog):
        with caplog.at_level(logging.WARNING):
            _post_file(name="notes.txt", content=b"hello", mime="text/plain")

        warnings = [
            r for r in caplog.records
            if r.levelno == logging.WARNING and r.name.startswith(("app.uploads", "app.main"))
        ]
        assert len(warnings) == 1
        assert "unsupported type" in warnings[0].getMessage()

    def test_too_large_file_is_rejected_before_provider(self, fake_provider, monkeypatch):
        monkeypatch.setattr(receiver, "MAX_FILE_SIZE_BYTES", 1024)
        monkeypatch.setattr(service_module, "MAX_FILE_SIZE_BYTES", 1024)

        resp = _post_file(content=b"x" * 2048)

        assert resp.status_code == 400
        assert resp.json() == {"success": False, "error": FileTooLarge.message}
        assert fake_provider.calls == []

    def test_file_at_limit_is_accepted(self, fake_provider, monkeypatch):
        monkeypatch.setattr(receiver, "MAX_FILE_SIZE_BYTES", 1024)
        monkeypatch.setattr(service_module, "MAX_FILE_SIZE_BYTES", 1024)

        resp = _post_file(content=b"x" * 1024)

        assert resp.status_code == 200
        assert resp.json()["fileSize"] == 1024


# =============================================================================
# Unexpected failures (500)
# =============================================================================


class TestUploadFailures:
    def test_provider_exception_yields_generic_500(self):
        set_media_provider(FakeMediaProvider(error=RuntimeError("db password=hunter2")))

        resp = _post_file()

        assert resp.status_code == 500
        assert resp.json() == {"success": False, "error": GENERIC_UPLOAD_ERROR}
        assert "hunter2" not in resp.text

    def test_upstream_failure_detail_is_not_leaked(self):
        set_media_provider(FakeMediaProvider(error=UpstreamFailure("ImageKit returned 403: bad key")))

        resp = _post_file()

        assert resp.status_code == 500
        assert resp.json()["error"] == GENERIC_UPLOAD_ERROR
        assert "bad key" not in resp.text

    def test_no_provider_configured(self):
        set_media_provider(None)

        resp = _post_file()

        assert resp.status_code == 500
        assert resp.json() == {"success": False, "error": GENERIC_UPLOAD_ERROR}


# =============================================================================
# Size-limit middleware
# =============================================================================


def _limited_app(limit: int) -> FastAPI:
    mini = FastAPI()
    mini.add_middleware(UploadSizeLimitMiddleware, max_body_bytes=limit)

    @mini.post("/upload")
    async def _upload():
        return {"reached": True}

    @mini.post("/other")
    async def _other():
        return {"reached": True}

    return mini


class TestUploadSizeLimitMiddleware:
    def test_rejects_oversized_body(self):
        mini = TestClient(_limited_app(100))
        resp = mini.post("/upload", content=b"x" * 101)

        assert resp.status_code == 400
        assert resp.json() == {"success": False, "error": FileTooLarge.message}

    def test_passes_body_within_limit(self):
        mini = TestClient(_limited_app(100))
        resp = mini.post("/upload", content=b"x" * 100)

        assert resp.status_code == 200
        assert resp.json() == {"reached": True}

    def test_other_paths_are_not_limited(self):
        mini = TestClient(_limited_app(100))
        resp = mini.post("/other", content=b"x" * 500)

        assert resp.status_code == 200

    def test_default_limit_allows_multipart_overhead(self):
        middleware = UploadSizeLimitMiddleware(app=None)
        assert middleware.max_body_bytes > MAX_FILE_SIZE_BYTES


# =============================================================================
# UploadRelayService
# =============================================================================


class TestUploadRelayService:
    def test_validate_missing(self):
        svc = UploadRelayService(FakeMediaProvider())
        with pytest.raises(MissingFile):
            svc.validate(None)

    def test_validate_over_limit(self):
        svc = UploadRelayService(FakeMediaProvider())
        oversized = SimpleNamespace(size=MAX_FILE_SIZE_BYTES + 1, mime_type="image/png")
        with pytest.raises(FileTooLarge):
            svc.validate(oversized)

    def test_validate_unsupported(self):
        svc = UploadRelayService(FakeMediaProvider())
        with pytest.raises(UnsupportedType):
            svc.validate(ReceivedFile(content=b"x", filename="a.exe", mime_type="application/x-msdownload"))

    @pytest.mark.asyncio
    async def test_relay_uses_configured_folder(self):
        provider = FakeMediaProvider()
        svc = UploadRelayService(provider, folder="/rexz-official")

        result = await svc.relay(ReceivedFile(content=b"abc", filename="a b.pdf", mime_type="application/pdf"))

        assert provider.calls == [(b"abc", "a_b.pdf", "/rexz-official")]
        assert result.file_url == "https://cdn.example.com/rexz-official/a_b.pdf"
        assert result.file_size == 3

    @pytest.mark.asyncio
    async def test_relay_rejects_before_provider(self):
        provider = FakeMediaProvider()
        svc = UploadRelayService(provider)

        with pytest.raises(UnsupportedType):
            await svc.relay(ReceivedFile(content=b"x", filename="a.txt", mime_type="text/plain"))
        assert provider.calls == []


# =============================================================================
# Application lifespan
# =============================================================================


@pytest.fixture
def startup_env(tmp_path, monkeypatch):
    """Run the lifespan against env-only config, restoring logging afterwards."""
    for name in list(_ENV_OVERRIDES):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("RELAY_SETTINGS_PATH", str(tmp_path / "relay.settings.yaml"))
    monkeypatch.setenv("RELAY_SECRETS_PATH", str(tmp_path / "relay.secrets.yaml"))
    root = logging.getLogger()
    original_level = root.level
    reset_config()
    yield monkeypatch
    reset_config()
    root.setLevel(original_level)


class TestLifespan:
    def test_builds_imagekit_provider_from_env(self, startup_env):
        startup_env.setenv("IMAGEKIT_PRIVATE_KEY", "private_x")
        startup_env.setenv("IMAGEKIT_URL_ENDPOINT", "https://ik.imagekit.io/demo")
        set_media_provider(None)

        with TestClient(app):
            provider = get_media_provider()
            assert isinstance(provider, ImageKitProvider)
            assert provider.url_endpoint == "https://ik.imagekit.io/demo"

        assert get_media_provider() is None

    def test_keeps_provider_already_set(self, startup_env, fake_provider):
        startup_env.setenv("IMAGEKIT_PRIVATE_KEY", "private_x")

        with TestClient(app):
            assert get_media_provider() is fake_provider

        assert get_media_provider() is fake_provider

    def test_warns_without_private_key(self, startup_env, caplog):
        set_media_provider(None)

        with caplog.at_level(logging.INFO, logger="app.main"):
            with TestClient(app) as lifespan_client:
                assert get_media_provider() is None
                resp = lifespan_client.post("/upload", files={"file": ("a.png", b"x", "image/png")})

        assert "ImageKit private key not configured" in caplog.text
        assert resp.status_code == 500
        assert resp.json()["error"] == GENERIC_UPLOAD_ERROR

    def test_applies_configured_log_level(self, startup_env, fake_provider):
        startup_env.setenv("LOG_LEVEL", "debug")

        with TestClient(app):
            assert logging.getLogger().level == logging.DEBUG


# =============================================================================
# Landing page and health
# =============================================================================


class TestStaticAndHealth:
    def test_index_serves_landing_page(self):
        resp = client.get("/")

        assert resp.status_code == 200
        assert "text/html" in resp.headers["content-type"]
        assert 'action="/upload"' in resp.text

    def test_health(self):
        resp = client.get("/health")
        assert resp.json() == {"status": "ok"}
