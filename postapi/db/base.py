# Import all models here so Alembic and create_all can detect them
from postapi.db.session import Base

from postapi.modules.posts.models.post import Post
