import logging
import mimetypes
import secrets
import traceback
from functools import lru_cache
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .config import settings
from .exceptions import BlobNotFound, StorageError

logger = logging.getLogger(__name__)

# Every post image lives under this namespace, locally and in the bucket
NAMESPACE = "posts"

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/svg+xml": "svg",
    "image/bmp": "bmp",
    "image/webp": "webp",
}


def extension_for(content_type: Optional[str]) -> str:
    """Pick a file extension for a content type, ``bin`` when unknown."""
    content_type = (content_type or "").split(";")[0].strip().lower()
    if content_type in _EXTENSIONS:
        return _EXTENSIONS[content_type]
    guessed = mimetypes.guess_extension(content_type) if content_type else None
    return guessed.lstrip(".") if guessed else "bin"


def generate_blob_name(content_type: Optional[str]) -> str:
    """40 random hex characters plus an extension, unrelated to the upload's filename."""
    return f"{secrets.token_hex(20)}.{extension_for(content_type)}"


def is_valid_name(name: str) -> bool:
    """A bare, non-hidden filename."""
    return bool(name) and "/" not in name and "\\" not in name and not name.startswith(".")


def _check_name(name: str) -> str:
    if not is_valid_name(name):
        raise StorageError(f"Invalid blob name: {name!r}")
    return name


@runtime_checkable
class BlobStore(Protocol):
    """Storage for post images addressed by generated name."""

    def store(self, data: bytes, content_type: Optional[str]) -> str:
        """Persist ``data`` and return its generated name. Raises StorageError."""
        ...

    def read(self, name: str) -> bytes:
        """Return the blob's bytes. Raises BlobNotFound when absent."""
        ...

    def exists(self, name: str) -> bool:
        ...

    def delete(self, name: str) -> None:
        """Remove the blob; a missing blob is not an error."""
        ...

    def url(self, name: str) -> str:
        ...


class LocalBlobStore:
    """Handles image storage on the local filesystem"""

    def __init__(self, directory: str, base_url: str = ""):
        self.root = Path(directory) / NAMESPACE
        self.base_url = base_url.rstrip("/")

    def _path(self, name: str) -> Path:
        return self.root / _check_name(name)

    def store(self, data: bytes, content_type: Optional[str]) -> str:
        name = generate_blob_name(content_type)
        path = self._path(name)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            logger.error(f"[UPLOAD] Failed to save file locally: {str(e)}")
            logger.error(traceback.format_exc())
            raise StorageError(f"Failed to save image: {str(e)}") from e
        logger.info(f"[UPLOAD] Saved {len(data)} bytes locally at {path}")
        return name

    def read(self, name: str) -> bytes:
        path = self._path(name)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise BlobNotFound(name)
        except OSError as e:
            logger.error(f"Failed to read {path}: {str(e)}")
            raise StorageError(f"Failed to read image: {str(e)}") from e

    def exists(self, name: str) -> bool:
        return self._path(name).is_file()

    def delete(self, name: str) -> None:
        path = self._path(name)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to delete {path}: {str(e)}")
            raise StorageError(f"Failed to delete image: {str(e)}") from e
        logger.info(f"Deleted local file {path}")

    def url(self, name: str) -> str:
        return f"{self.base_url}/storage/{NAMESPACE}/{name}"


class R2BlobStore:
    """Handles image storage using Cloudflare R2 (S3-compatible)"""

    def __init__(self, client, bucket: str, public_url: str = "", base_url: str = ""):
        self.client = client
        self.bucket = bucket
        self.public_url = public_url.rstrip("/")
        self.base_url = base_url.rstrip("/")

    @classmethod
    def from_settings(cls) -> "R2BlobStore":
        logger.info("Creating S3 client for R2 storage...")
        logger.info(f"  Bucket: {settings.R2_BUCKET_NAME}")
        logger.info(f"  Endpoint: {settings.R2_ENDPOINT}")
        client = boto3.client(
            "s3",
            endpoint_url=settings.R2_ENDPOINT,
            aws_access_key_id=settings.R2_ACCESS_KEY_ID,
            aws_secret_access_key=settings.R2_SECRET_ACCESS_KEY,
        )
        return cls(client, settings.R2_BUCKET_NAME, settings.R2_PUBLIC_URL, settings.BASE_URL)

    @staticmethod
    def _key(name: str) -> str:
        return f"{NAMESPACE}/{_check_name(name)}"

    def store(self, data: bytes, content_type: Optional[str]) -> str:
        name = generate_blob_name(content_type)
        key = self._key(name)
        logger.info(f"[UPLOAD] Uploading {len(data)} bytes to R2 bucket '{self.bucket}' with key '{key}'")
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type or "application/octet-stream",
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"[UPLOAD] Failed to upload to R2: {str(e)}")
            logger.error(traceback.format_exc())
            raise StorageError(f"Failed to upload image: {str(e)}") from e
        return name

    def read(self, name: str) -> bytes:
        key = self._key(name)
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
            return response["Body"].read()
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
                raise BlobNotFound(name)
            logger.error(f"Failed to retrieve {key} from R2: {str(e)}")
            raise StorageError(f"Failed to read image: {str(e)}") from e
        except BotoCoreError as e:
            logger.error(f"Failed to retrieve {key} from R2: {str(e)}")
            raise StorageError(f"Failed to read image: {str(e)}") from e

    def exists(self, name: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=self._key(name))
            return True
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("NoSuchKey", "404", "NotFound"):
                return False
            raise StorageError(f"Failed to inspect image: {str(e)}") from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to inspect image: {str(e)}") from e

    def delete(self, name: str) -> None:
        key = self._key(name)
        # S3 delete_object succeeds for keys that do not exist
        try:
            logger.info(f"Deleting file with key '{key}' from bucket '{self.bucket}'")
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to delete from R2: {str(e)}")
            logger.error(traceback.format_exc())
            raise StorageError(f"Failed to delete image: {str(e)}") from e

    def url(self, name: str) -> str:
        if self.public_url:
            return f"{self.public_url}/{self._key(name)}"
        return f"{self.base_url}/storage/{self._key(name)}"


@lru_cache
def get_blob_store() -> BlobStore:
    """Blob store dependency: R2 when fully configured, local directory otherwise."""
    if settings.r2_configured:
        return R2BlobStore.from_settings()
    missing = [
        key for key in ("R2_ENDPOINT", "R2_ACCESS_KEY_ID", "R2_SECRET_ACCESS_KEY")
        if not getattr(settings, key)
    ]
    logger.warning(f"R2 storage not configured (missing: {', '.join(missing)}), falling back to local storage.")
    return LocalBlobStore(settings.UPLOAD_DIRECTORY, settings.BASE_URL)
