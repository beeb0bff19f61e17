"""Unit tests for account_service.services.media_store and upload staging."""

import hashlib
import io
import tempfile
import unittest
from pathlib import Path

import httpx
from pydantic import SecretStr

from account_service.core.errors import ValidationError
from account_service.services.media_store import (
    CloudinaryMediaStore,
    MediaStoreError,
    sign_params,
)
from account_service.services.uploads import stage_upload
from tests.support import make_settings, stage_bytes


def _configured_settings(tmpdir: str):
    settings = make_settings(tmpdir)
    settings.CLOUDINARY_CLOUD_NAME = "demo"
    settings.CLOUDINARY_API_KEY = "key123"
    settings.CLOUDINARY_API_SECRET = SecretStr("shh")
    settings.CLOUDINARY_FOLDER = "avatars"
    return settings


class TestSignParams(unittest.TestCase):
    def test_sorted_and_secret_appended(self) -> None:
        expected = hashlib.sha1(b"folder=avatars&timestamp=1700000000shh").hexdigest()
        self.assertEqual(sign_params({"timestamp": 1700000000, "folder": "avatars"}, "shh"), expected)

    def test_empty_values_skipped(self) -> None:
        self.assertEqual(
            sign_params({"timestamp": 1, "folder": None}, "s"),
            sign_params({"timestamp": 1}, "s"),
        )


class TestCloudinaryMediaStore(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.mkdtemp(prefix="media-tests-")
        self.settings = _configured_settings(self.tmpdir)
        self.requests: list[httpx.Request] = []

    def _store(self, status_code: int, body: dict) -> CloudinaryMediaStore:
        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return httpx.Response(status_code, json=body)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        return CloudinaryMediaStore(self.settings, client=client)

    def test_upload_returns_secure_url_and_deletes_local_file(self) -> None:
        store = self._store(200, {"secure_url": "https://res.cloudinary.com/demo/a.png", "public_id": "a"})
        staged = stage_bytes(self.tmpdir)
        result = store.upload(staged)
        self.assertEqual(result.url, "https://res.cloudinary.com/demo/a.png")
        self.assertEqual(result.public_id, "a")
        self.assertFalse(staged.path.exists())
        self.assertEqual(len(self.requests), 1)
        request = self.requests[0]
        self.assertEqual(str(request.url), "https://api.cloudinary.com/v1_1/demo/auto/upload")
        body = request.read()
        self.assertIn(b'name="api_key"', body)
        self.assertIn(b'name="signature"', body)
        self.assertIn(b'filename="avatar.png"', body)

    def test_error_status_raises_and_deletes_local_file(self) -> None:
        store = self._store(400, {"error": {"message": "Invalid image file"}})
        staged = stage_bytes(self.tmpdir)
        with self.assertRaises(MediaStoreError) as ctx:
            store.upload(staged)
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertIn("Invalid image file", ctx.exception.message)
        self.assertFalse(staged.path.exists())

    def test_missing_url_raises(self) -> None:
        store = self._store(200, {"public_id": "a"})
        with self.assertRaises(MediaStoreError):
            store.upload(stage_bytes(self.tmpdir))

    def test_transport_error_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        store = CloudinaryMediaStore(
            self.settings, client=httpx.Client(transport=httpx.MockTransport(handler))
        )
        staged = stage_bytes(self.tmpdir)
        with self.assertRaises(MediaStoreError):
            store.upload(staged)
        self.assertFalse(staged.path.exists())

    def test_unconfigured_store_raises_without_request(self) -> None:
        settings = make_settings(self.tmpdir)
        store = CloudinaryMediaStore(settings, client=httpx.Client(transport=httpx.MockTransport(
            lambda request: httpx.Response(200, json={"url": "x"})
        )))
        staged = stage_bytes(self.tmpdir)
        self.assertFalse(store.is_configured())
        with self.assertRaises(MediaStoreError):
            store.upload(staged)
        self.assertFalse(staged.path.exists())


class TestStageUpload(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.mkdtemp(prefix="staging-tests-")
        self.settings = make_settings(self.tmpdir)

    def test_copies_into_upload_dir(self) -> None:
        staged = stage_upload(io.BytesIO(b"image-bytes"), "../../me.PNG", self.settings)
        self.assertEqual(staged.filename, "me.PNG")
        self.assertEqual(staged.path.parent, Path(self.tmpdir))
        self.assertEqual(staged.path.suffix, ".png")
        self.assertEqual(staged.path.read_bytes(), b"image-bytes")

    def test_rejects_unsupported_extension(self) -> None:
        with self.assertRaises(ValidationError):
            stage_upload(io.BytesIO(b"x"), "script.sh", self.settings)
        self.assertEqual(list(Path(self.tmpdir).iterdir()), [])

    def test_rejects_oversized_file(self) -> None:
        self.settings.MAX_UPLOAD_FILE_BYTES = 10
        with self.assertRaises(ValidationError):
            stage_upload(io.BytesIO(b"x" * 11), "big.png", self.settings)
        self.assertEqual(list(Path(self.tmpdir).iterdir()), [])

    def test_read_error_removes_partial_file(self) -> None:
        class FailingStream(io.BytesIO):
            def read(self, size: int = -1) -> bytes:
                if self.tell() > 0:
                    raise OSError("connection reset")
                return super().read(size)

        self.settings.MAX_UPLOAD_FILE_BYTES = 1024 * 1024
        with self.assertRaises(OSError):
            stage_upload(FailingStream(b"x" * 200_000), "big.png", self.settings)
        self.assertEqual(list(Path(self.tmpdir).iterdir()), [])

    def test_rejects_empty_file(self) -> None:
        with self.assertRaises(ValidationError):
            stage_upload(io.BytesIO(b""), "empty.png", self.settings)


if __name__ == "__main__":
    unittest.main()
