# =============================================================================
# tests/test_storage.py - Blob Store Tests
# =============================================================================
# Local filesystem store against tmp_path, R2 store against a mocked client.
# =============================================================================

import re
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from postapi.core.exceptions import BlobNotFound, StorageError
from postapi.core.storage import (
    LocalBlobStore,
    R2BlobStore,
    extension_for,
    generate_blob_name,
    get_blob_store,
)
from tests.images import jpeg_bytes


def _client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class TestBlobNames:
    """Tests for generated blob names."""

    @pytest.mark.parametrize("content_type, extension", [
        ("image/jpeg", "jpg"),
        ("image/png", "png"),
        ("image/gif", "gif"),
        ("image/svg+xml", "svg"),
        ("image/png; charset=binary", "png"),
        (None, "bin"),
        ("application/x-unknown-thing", "bin"),
    ])
    def test_extension_for(self, content_type, extension):
        assert extension_for(content_type) == extension

    def test_name_is_random_hex_with_extension(self):
        name = generate_blob_name("image/jpeg")
        assert re.fullmatch(r"[0-9a-f]{40}\.jpg", name)

    def test_names_do_not_repeat(self):
        assert generate_blob_name("image/png") != generate_blob_name("image/png")


class TestLocalBlobStore:
    """Tests for the filesystem-backed store."""

    @pytest.fixture
    def store(self, tmp_path):
        return LocalBlobStore(str(tmp_path), "http://testserver/")

    def test_store_and_read_round_trip(self, store, tmp_path):
        data = jpeg_bytes(4096)
        name = store.store(data, "image/jpeg")

        assert (tmp_path / "posts" / name).read_bytes() == data
        assert store.read(name) == data
        assert store.exists(name)

    def test_delete_removes_blob(self, store):
        name = store.store(b"abc", "image/png")
        store.delete(name)

        assert not store.exists(name)
        with pytest.raises(BlobNotFound):
            store.read(name)

    def test_delete_missing_blob_is_noop(self, store):
        store.delete("0" * 40 + ".jpg")

    @pytest.mark.parametrize("name", ["../secret.txt", "nested/file.jpg", ".hidden", ""])
    def test_rejects_unsafe_names(self, store, name):
        with pytest.raises(StorageError):
            store.read(name)

    def test_write_failure_raises_storage_error(self, tmp_path):
        blocker = tmp_path / "blocked"
        blocker.write_text("a file where a directory should be")
        store = LocalBlobStore(str(blocker))

        with pytest.raises(StorageError):
            store.store(b"abc", "image/png")

    def test_url(self, store):
        assert store.url("abc.jpg") == "http://testserver/storage/posts/abc.jpg"


class TestR2BlobStore:
    """Tests for the R2 store using a mocked S3 client."""

    @pytest.fixture
    def s3(self):
        return MagicMock()

    @pytest.fixture
    def store(self, s3):
        return R2BlobStore(s3, "bucket", public_url="https://cdn.example.com/")

    def test_store_puts_object_under_namespace(self, store, s3):
        name = store.store(b"data", "image/png")

        s3.put_object.assert_called_once_with(
            Bucket="bucket", Key=f"posts/{name}", Body=b"data", ContentType="image/png",
        )

    def test_store_failure_raises_storage_error(self, store, s3):
        s3.put_object.side_effect = EndpointConnectionError(endpoint_url="https://r2")

        with pytest.raises(StorageError):
            store.store(b"data", "image/png")

    def test_read_returns_body(self, store, s3):
        s3.get_object.return_value = {"Body": MagicMock(read=MagicMock(return_value=b"bytes"))}

        assert store.read("abc.png") == b"bytes"
        s3.get_object.assert_called_once_with(Bucket="bucket", Key="posts/abc.png")

    def test_read_missing_raises_blob_not_found(self, store, s3):
        s3.get_object.side_effect = _client_error("NoSuchKey", "GetObject")

        with pytest.raises(BlobNotFound):
            store.read("abc.png")

    def test_read_other_error_raises_storage_error(self, store, s3):
        s3.get_object.side_effect = _client_error("AccessDenied", "GetObject")

        with pytest.raises(StorageError) as exc_info:
            store.read("abc.png")
        assert not isinstance(exc_info.value, BlobNotFound)

    def test_exists(self, store, s3):
        assert store.exists("abc.png")
        s3.head_object.side_effect = _client_error("404", "HeadObject")
        assert not store.exists("abc.png")

    def test_delete(self, store, s3):
        store.delete("abc.png")
        s3.delete_object.assert_called_once_with(Bucket="bucket", Key="posts/abc.png")

    def test_delete_failure_raises_storage_error(self, store, s3):
        s3.delete_object.side_effect = _client_error("InternalError", "DeleteObject")

        with pytest.raises(StorageError):
            store.delete("abc.png")

    def test_url_prefers_public_url(self, store):
        assert store.url("abc.png") == "https://cdn.example.com/posts/abc.png"

    def test_url_falls_back_to_media_route(self, s3):
        store = R2BlobStore(s3, "bucket", base_url="http://api.example.com")
        assert store.url("abc.png") == "http://api.example.com/storage/posts/abc.png"


def test_get_blob_store_falls_back_to_local():
    get_blob_store.cache_clear()
    try:
        assert isinstance(get_blob_store(), LocalBlobStore)
    finally:
        get_blob_store.cache_clear()
