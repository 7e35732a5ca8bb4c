"""
SoulSocial Backend: Post and Comment Schemas
==============================================

What:  API contracts for the feed, single posts, likes and comments.

Design Decision:
    Schemas are separate from SQLAlchemy models because the API exposes
    derived values the table does not store directly: `image` is a URL built
    from `image_path`, `liked_by` comes from the post_likes table and
    `comments` is attached by the service.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class PostUpdateRequest(BaseModel):
    """Partial edit: omitted fields keep their current value."""
    title: Optional[str] = None
    text: Optional[str] = None


class LikeRequest(BaseModel):
    # Optional so a missing username reaches the service and becomes a 401
    username: Optional[str] = None


class CommentCreateRequest(BaseModel):
    user: Optional[str] = None
    text: str = ""


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class CommentResponse(BaseModel):
    id: uuid.UUID
    post_id: uuid.UUID
    user: str
    text: str
    created_at: datetime

    model_config = {"from_attributes": True}


class PostResponse(BaseModel):
    """
    What:  Full representation of a post as shown in the feed.
    Who:   Items of GET /api/posts, body of GET /api/posts/{id}.
    """
    id: uuid.UUID
    user: str = Field(description="Author username")
    title: str
    text: str
    image: Optional[str] = Field(default=None, description="Image URL, null if none")
    created_at: datetime
    likes: int = Field(ge=0)
    liked_by: List[str] = Field(default_factory=list, description="Usernames that like this post")
    comments: List[CommentResponse] = Field(default_factory=list, description="Oldest first")


class PostCreatedResponse(BaseModel):
    message: str = "Post created"
    post: PostResponse


class LikeResponse(BaseModel):
    likes: int = Field(ge=0, description="Like count after the toggle")
    liked: bool = Field(description="Whether the acting user now likes the post")


class CommentCreatedResponse(BaseModel):
    message: str = "Comment added"
    comment: CommentResponse
