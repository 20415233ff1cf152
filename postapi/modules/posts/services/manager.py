"""
Post resource manager.

Orchestrates validation, the record store and the blob store for each of the
five post operations and wraps every outcome in the response envelope.

Image replacement always runs store-new, update-record, delete-old, so a
failed record write never costs the post its current image.
"""

from typing import Any, Dict, Mapping, Optional
import logging
import math

from postapi.core.config import settings
from postapi.core.exceptions import StorageError
from postapi.core.responses import Envelope, envelope
from postapi.core.storage import BlobStore
from postapi.core.validation import FieldRule, ImageUpload, validate_or_raise
from postapi.modules.posts.models.post import Post
from postapi.modules.posts.schemas.post import Post as PostSchema, PostPage
from postapi.modules.posts.services.post import PER_PAGE, PostRepository

logger = logging.getLogger(__name__)

MSG_LIST = "List Data Posts"
MSG_CREATED = "Data Post Berhasil Ditambahkan!"
MSG_DETAIL = "Detail Data Post!"
MSG_UPDATED = "Data Post Berhasil Diubah!"
MSG_DELETED = "Data Post Berhasil Dihapus!"


def _image_rule(required: bool) -> FieldRule:
    return FieldRule(
        required=required,
        image=True,
        formats=settings.ALLOWED_IMAGE_FORMATS,
        max_kb=settings.MAX_IMAGE_SIZE_KB,
    )


def create_rules() -> Dict[str, FieldRule]:
    return {
        "image": _image_rule(required=True),
        "title": FieldRule(required=True, string=True),
        "content": FieldRule(required=True, string=True),
    }


def update_rules() -> Dict[str, FieldRule]:
    rules = {
        "title": FieldRule(required=True, string=True),
        "content": FieldRule(required=True, string=True),
    }
    if settings.VALIDATE_IMAGE_ON_UPDATE:
        rules["image"] = _image_rule(required=False)
    else:
        # Type is not checked on update, but an upload is never stored past the size cap
        rules["image"] = FieldRule(max_kb=settings.MAX_IMAGE_SIZE_KB)
    return rules


def _upload_from(fields: Mapping[str, Any]) -> Optional[ImageUpload]:
    image = fields.get("image")
    if isinstance(image, ImageUpload) and not image.is_empty:
        return image
    return None


class PostManager:
    def __init__(self, records: PostRepository, blobs: BlobStore):
        self.records = records
        self.blobs = blobs

    def _serialize(self, post: Post) -> PostSchema:
        schema = PostSchema.model_validate(post)
        return schema.model_copy(update={"image_url": self.blobs.url(post.image)})

    def _discard(self, name: str) -> None:
        """Best-effort removal of a blob orphaned by a failed record write."""
        try:
            self.blobs.delete(name)
        except StorageError as e:
            logger.warning(f"Could not remove orphaned image {name}: {e}")

    def list(self, page: int = 1, path: str = "") -> Envelope:
        page = max(page, 1)
        items, total = self.records.list(page, PER_PAGE)
        last_page = max(math.ceil(total / PER_PAGE), 1)
        first = (page - 1) * PER_PAGE + 1 if items else None
        result = PostPage(
            current_page=page,
            data=[self._serialize(post) for post in items],
            from_=first,
            last_page=last_page,
            per_page=PER_PAGE,
            to=first + len(items) - 1 if items else None,
            total=total,
            path=path,
            next_page_url=f"{path}?page={page + 1}" if page < last_page else None,
            prev_page_url=f"{path}?page={page - 1}" if page > 1 else None,
        )
        return envelope(True, MSG_LIST, result)

    def create(self, fields: Mapping[str, Any]) -> Envelope:
        validate_or_raise(fields, create_rules())

        image = _upload_from(fields)
        name = self.blobs.store(image.data, image.content_type)
        try:
            post = self.records.create({
                "image": name,
                "title": fields["title"],
                "content": fields["content"],
            })
        except Exception:
            self._discard(name)
            raise

        logger.info(f"Created post {post.id} with image {name}")
        return envelope(True, MSG_CREATED, self._serialize(post))

    def show(self, post_id: int) -> Envelope:
        post = self.records.find_by_id(post_id)
        return envelope(True, MSG_DETAIL, self._serialize(post))

    def update(self, post_id: int, fields: Mapping[str, Any]) -> Envelope:
        validate_or_raise(fields, update_rules())

        post = self.records.find_by_id(post_id)
        changes = {"title": fields["title"], "content": fields["content"]}

        image = _upload_from(fields)
        if image is None:
            post = self.records.update(post_id, changes)
            return envelope(True, MSG_UPDATED, self._serialize(post))

        old_name = post.image
        new_name = self.blobs.store(image.data, image.content_type)
        try:
            post = self.records.update(post_id, {**changes, "image": new_name})
        except Exception:
            self._discard(new_name)
            raise

        # Only drop the old image once the record points at the new one
        if old_name and old_name != new_name:
            self.blobs.delete(old_name)
        logger.info(f"Replaced image of post {post_id}: {old_name} -> {new_name}")
        return envelope(True, MSG_UPDATED, self._serialize(post))

    def destroy(self, post_id: int) -> Envelope:
        post = self.records.find_by_id(post_id)
        self.blobs.delete(post.image)
        self.records.delete(post_id)
        return envelope(True, MSG_DELETED, None)
