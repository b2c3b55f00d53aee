"""Models package."""

from .user import User
from .feed import Feed
from .post import Post
