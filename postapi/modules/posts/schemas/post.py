from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

class PostBase(BaseModel):
    title: str
    content: str

class Post(PostBase):
    """Post model returned to client"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    image: str
    image_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime

class PostPage(BaseModel):
    """One page of posts plus the metadata needed to walk the rest"""
    model_config = ConfigDict(populate_by_name=True)

    current_page: int
    data: List[Post]
    from_: Optional[int] = Field(default=None, alias="from")
    last_page: int
    per_page: int
    to: Optional[int] = None
    total: int
    path: str
    next_page_url: Optional[str] = None
    prev_page_url: Optional[str] = None
