# Models package init
"""
Importing this package registers every table on Base.metadata
(used by init_models() and Alembic autogenerate).
"""

from app.models.comment import Comment
from app.models.post import Post, PostLike
from app.models.user import User

__all__ = ["Comment", "Post", "PostLike", "User"]
