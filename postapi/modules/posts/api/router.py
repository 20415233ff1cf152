from typing import Any, Dict
import logging

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from postapi.core.config import settings
from postapi.core.responses import Envelope
from postapi.core.storage import BlobStore, get_blob_store
from postapi.core.validation import ImageUpload
from postapi.db.session import get_db
from postapi.modules.posts.schemas.post import Post as PostSchema, PostPage
from postapi.modules.posts.services.manager import PostManager
from postapi.modules.posts.services.post import PostRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="")


def get_post_manager(
    db: Session = Depends(get_db),
    blobs: BlobStore = Depends(get_blob_store),
) -> PostManager:
    return PostManager(PostRepository(db), blobs)


# Bytes kept from an upload already known to be over the size cap
OVERSIZED_HEAD_BYTES = 64 * 1024


async def read_upload(value: UploadFile) -> ImageUpload:
    """Read an uploaded file, keeping only the head of one over the size cap."""
    size = value.size
    if size is not None and size > settings.MAX_IMAGE_SIZE_KB * 1024:
        logger.warning(f"Upload {value.filename!r} is {size} bytes, over the size cap")
        head = await value.read(OVERSIZED_HEAD_BYTES)
        return ImageUpload(filename=value.filename, content_type=value.content_type, data=head, size=size)
    return ImageUpload(filename=value.filename, content_type=value.content_type, data=await value.read())


async def _read_fields(request: Request) -> Dict[str, Any]:
    """Collect title/content/image from a multipart, urlencoded or JSON body."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            logger.warning("Ignoring malformed JSON body")
            return {}
        return body if isinstance(body, dict) else {}

    fields: Dict[str, Any] = {}
    form = await request.form()
    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            fields[key] = await read_upload(value)
        else:
            fields[key] = value
    return fields


@router.get("", response_model=Envelope[PostPage])
def read_posts(
    request: Request,
    page: int = Query(1),
    manager: PostManager = Depends(get_post_manager),
) -> Any:
    """
    Retrieve posts, latest first, five per page.
    """
    path = str(request.url).split("?")[0]
    return manager.list(page=page, path=path)


@router.post("", response_model=Envelope[PostSchema])
async def create_new_post(
    request: Request,
    manager: PostManager = Depends(get_post_manager),
) -> Any:
    """
    Create a post from a multipart form with `title`, `content` and an `image` file.
    """
    fields = await _read_fields(request)
    return await run_in_threadpool(manager.create, fields)


@router.get("/{post_id}", response_model=Envelope[PostSchema])
def read_post_by_id(
    post_id: int,
    manager: PostManager = Depends(get_post_manager),
) -> Any:
    """
    Get post by ID.
    """
    return manager.show(post_id)


@router.put("/{post_id}", response_model=Envelope[PostSchema])
async def update_post_by_id(
    post_id: int,
    request: Request,
    manager: PostManager = Depends(get_post_manager),
) -> Any:
    """
    Update a post's title and content, replacing its image when a new file is sent.
    """
    fields = await _read_fields(request)
    return await run_in_threadpool(manager.update, post_id, fields)


@router.delete("/{post_id}", response_model=Envelope[None])
def delete_post_by_id(
    post_id: int,
    manager: PostManager = Depends(get_post_manager),
) -> Any:
    """
    Delete a post and its image.
    """
    return manager.destroy(post_id)
