"""Database access for imported episode posts."""

from datetime import datetime
import logging

from sqlmodel import col, select

from .decorators import handle_db_errors
from .sqlalchemy_core import SqlalchemyCore
from .types import ImportedPost

logger = logging.getLogger(__name__)


class PostDatabase:
    """Record episodes imported as posts."""

    def __init__(self, db_core: SqlalchemyCore):
        self._db = db_core

    @handle_db_errors("find existing post")
    async def find_post_id(
        self, title: str, published: datetime, post_type: str
    ) -> int | None:
        """Return the id of a post with the same title, date and type, if any."""
        async with self._db.session() as session:
            stmt = (
                select(ImportedPost.id)
                .where(col(ImportedPost.title) == title)
                .where(col(ImportedPost.published) == published)
                .where(col(ImportedPost.post_type) == post_type)
                .limit(1)
            )
            return (await session.execute(stmt)).scalar_one_or_none()

    @handle_db_errors("insert post")
    async def insert_post(self, post: ImportedPost) -> int:
        """Insert a post and return its id."""
        async with self._db.session() as session:
            session.add(post)
            await session.commit()
            await session.refresh(post)
            assert post.id is not None
            return post.id

    @handle_db_errors("get posts for feed")
    async def get_posts(self, feed_key: str) -> list[ImportedPost]:
        """Return all posts imported from a feed, oldest first."""
        async with self._db.session() as session:
            stmt = (
                select(ImportedPost)
                .where(col(ImportedPost.feed_key) == feed_key)
                .order_by(col(ImportedPost.published))
            )
            return list((await session.execute(stmt)).scalars().all())
