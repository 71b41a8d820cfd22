from typing import Iterable, List, Optional

from dailyshot.config import settings
from dailyshot.crud.friends import FriendsCRUD
from dailyshot.crud.posts import load_posts
from dailyshot.crud.user import get_user
from dailyshot.database import Database
from dailyshot.models.post import Post, Visibility
from dailyshot.utils.logger import get_logger

logger = get_logger(__name__)


def is_visible_to(post: Post, viewer_id: str, friend_ids: Iterable[str]) -> bool:
    """
    Visibility rule for a single post.

    Authors always see their own posts; public posts are visible to everyone;
    private posts to nobody else, friends included; friends-only posts to the
    author's friends. ``friend_ids`` are the viewer's friends.
    """
    if post.user_id == viewer_id:
        return True
    if post.visibility == Visibility.PUBLIC:
        return True
    if post.visibility == Visibility.PRIVATE:
        return False
    if post.visibility == Visibility.FRIENDS:
        return post.user_id in friend_ids
    return False


def _newest_first(posts: List[Post]) -> List[Post]:
    return sorted(posts, key=lambda p: p.timestamp, reverse=True)


async def can_see_post(db: Database, post: Post, viewer_id: str) -> bool:
    """Whether ``viewer_id`` may see ``post``. Only friends-only posts need the friend graph."""
    try:
        if post.user_id == viewer_id or post.visibility != Visibility.FRIENDS:
            return is_visible_to(post, viewer_id, ())
        friends = {post.user_id} if await FriendsCRUD.are_friends(db, post.user_id, viewer_id) else set()
        return is_visible_to(post, viewer_id, friends)
    except Exception as e:
        logger.error(f"Error checking visibility of post {post.id}: {e}")
        return False


async def get_feed_posts(db: Database, viewer_id: str) -> List[Post]:
    """
    Everything the viewer may see: own posts, public posts, and friends-only
    posts of friends, newest first.
    """
    try:
        if not await get_user(db, viewer_id):
            return []
        friend_ids = await FriendsCRUD.load_friend_ids(db, viewer_id)
        posts = [p for p in await load_posts(db) if is_visible_to(p, viewer_id, friend_ids)]
        return _newest_first(posts)
    except Exception as e:
        logger.error(f"Error getting feed posts for {viewer_id}: {e}")
        return []


async def get_discovery_posts(db: Database, viewer_id: str, limit: Optional[int] = None) -> List[Post]:
    """
    Public posts from people the viewer is not connected to.

    Excludes the viewer, the viewer's friends and anyone in a block
    relationship with the viewer. Newest first, capped at ``limit``.
    """
    limit = settings.DISCOVERY_LIMIT if limit is None else limit
    try:
        if not await get_user(db, viewer_id):
            return []
        excluded = await FriendsCRUD.load_friend_ids(db, viewer_id)
        excluded |= await FriendsCRUD.load_blocked_ids(db, viewer_id)
        excluded.add(viewer_id)
        posts = [
            p for p in await load_posts(db)
            if p.visibility == Visibility.PUBLIC and p.user_id not in excluded
        ]
        return _newest_first(posts)[:limit]
    except Exception as e:
        logger.error(f"Error getting discovery posts for {viewer_id}: {e}")
        return []


async def get_visible_user_posts(db: Database, owner_id: str, viewer_id: str) -> List[Post]:
    """A profile's posts as ``viewer_id`` is allowed to see them, newest first."""
    try:
        friend_ids = await FriendsCRUD.load_friend_ids(db, viewer_id)
        posts = [
            p for p in await load_posts(db)
            if p.user_id == owner_id and is_visible_to(p, viewer_id, friend_ids)
        ]
        return _newest_first(posts)
    except Exception as e:
        logger.error(f"Error getting posts of {owner_id} for {viewer_id}: {e}")
        return []
