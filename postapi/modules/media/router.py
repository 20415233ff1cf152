from fastapi import APIRouter, Depends
from fastapi.responses import Response
import logging
import mimetypes

from postapi.core.exceptions import BlobNotFound
from postapi.core.storage import NAMESPACE, BlobStore, get_blob_store, is_valid_name

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"/storage/{NAMESPACE}", tags=["media"])


@router.get("/{name}")
def serve_image(name: str, blobs: BlobStore = Depends(get_blob_store)):
    """Serve a stored post image by its generated name."""
    if not is_valid_name(name):
        raise BlobNotFound(name)
    content = blobs.read(name)
    content_type = mimetypes.guess_type(name)[0] or "application/octet-stream"
    logger.debug(f"Serving {name} ({len(content)} bytes) as {content_type}")
    return Response(
        content=content,
        media_type=content_type,
        headers={
            "Cache-Control": "public, max-age=86400",
            "Content-Disposition": f"inline; filename={name}",
        },
    )
