from contextlib import contextmanager
from typing import Any, Dict, List, Tuple
import logging

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from postapi.core.exceptions import PersistenceError, PostNotFound
from postapi.modules.posts.models.post import Post

logger = logging.getLogger(__name__)

# Listing is always paginated at this size
PER_PAGE = 5

_WRITABLE_FIELDS = ("title", "content", "image")

# Largest integer the database driver can bind
MAX_ID = 2**63 - 1


class PostRepository:
    """Record store for posts, backed by one SQLAlchemy session"""

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _guard(self, action: str):
        try:
            yield
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error while {action}: {e}")
            raise PersistenceError(f"Database error while {action}") from e

    def list(self, page: int = 1, per_page: int = PER_PAGE) -> Tuple[List[Post], int]:
        """Get one page of posts, latest first, with the total row count"""
        page = max(page, 1)
        offset = (page - 1) * per_page
        logger.info(f"Getting posts page={page}, per_page={per_page}")
        with self._guard("listing posts"):
            total = self.db.query(func.count(Post.id)).scalar() or 0
            if offset > MAX_ID:
                return [], total
            items = (
                self.db.query(Post)
                .order_by(Post.created_at.desc(), Post.id.desc())
                .offset(offset)
                .limit(per_page)
                .all()
            )
        return items, total

    def create(self, fields: Dict[str, Any]) -> Post:
        """Create new post"""
        logger.info(f"Creating post titled {fields.get('title')!r}")
        post = Post(**{key: fields[key] for key in _WRITABLE_FIELDS if key in fields})
        with self._guard("creating post"):
            self.db.add(post)
            self.db.commit()
            self.db.refresh(post)
        return post

    def find_by_id(self, post_id: int) -> Post:
        """Get post by ID, raising PostNotFound when there is none"""
        logger.info(f"Getting post with ID: {post_id}")
        if abs(post_id) > MAX_ID:
            raise PostNotFound(post_id)
        with self._guard("loading post"):
            post = self.db.query(Post).filter(Post.id == post_id).first()
        if post is None:
            raise PostNotFound(post_id)
        return post

    def update(self, post_id: int, fields: Dict[str, Any]) -> Post:
        """Update post"""
        logger.info(f"Updating post with ID: {post_id}")
        post = self.find_by_id(post_id)
        with self._guard("updating post"):
            for field in _WRITABLE_FIELDS:
                if field in fields:
                    setattr(post, field, fields[field])
            self.db.commit()
            self.db.refresh(post)
        return post

    def delete(self, post_id: int) -> None:
        logger.info(f"Deleting post with ID: {post_id}")
        post = self.find_by_id(post_id)
        with self._guard("deleting post"):
            self.db.delete(post)
            self.db.commit()
