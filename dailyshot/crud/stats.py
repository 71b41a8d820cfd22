from __future__ import annotations
from datetime import datetime
from typing import List, Optional

from dailyshot.crud.user import IDENTITY_LOCK, get_user, load_users, save_user
from dailyshot.database import Database
from dailyshot.models.friend import Friendship, FriendshipStatus
from dailyshot.models.post import Post
from dailyshot.models.user import User
from dailyshot.schemas.user import UserStats
from dailyshot.utils.clock import ONE_DAY
from dailyshot.utils.logger import get_logger

logger = get_logger(__name__)


def compute_streak(posts: List[Post], now: datetime) -> int:
    """
    Count consecutive daily posts ending now.

    Posts are walked newest first; post ``i`` extends the streak only if it is
    exactly ``i`` whole days old. A user who has not posted within the last
    24 hours therefore has a streak of 0.

    Args:
        posts: The user's posts, any order
        now: Current time

    Returns:
        Streak length
    """
    streak = 0
    for index, post in enumerate(sorted(posts, key=lambda p: p.timestamp, reverse=True)):
        days_ago = (now - post.timestamp) // ONE_DAY
        if days_ago != index:
            break
        streak += 1
    return streak


async def _count_active_friends(db: Database, user_id: str) -> int:
    friendships = [Friendship.model_validate(f) for f in await db.read_records(db.friendships_key())]
    friend_ids = {
        f.other(user_id) for f in friendships
        if f.status == FriendshipStatus.ACTIVE and user_id in (f.user1_id, f.user2_id)
    }
    return len(friend_ids)


async def _load_indexed_posts(db: Database, user_id: str) -> List[Post]:
    return [Post.model_validate(p) for p in await db.read_records(db.user_posts_key(user_id))]


async def update_user_stats(db: Database, user_id: str) -> Optional[User]:
    """
    Recompute friends_count, posts_count and streak for a user and persist them.

    Called after post creation/deletion and friend graph changes. The user
    record is re-read under the identity lock so a concurrent profile edit is
    not overwritten. Steps before this one are not rolled back if it fails;
    the next recompute heals stale stats.
    """
    try:
        posts = await _load_indexed_posts(db, user_id)
        friends_count = await _count_active_friends(db, user_id)

        async with db.lock(IDENTITY_LOCK):
            user = next((u for u in await load_users(db) if u.id == user_id), None)
            if not user:
                return None
            user.friends_count = friends_count
            user.posts_count = len(posts)
            user.streak = compute_streak(posts, db.now())
            await save_user(db, user)
    except Exception as e:
        logger.error(f"Error updating stats for user {user_id}: {e}")
        raise
    return user


async def get_user_stats(db: Database, user_id: str) -> Optional[UserStats]:
    """Live stats for a profile, including engagement received."""
    try:
        user = await get_user(db, user_id)
        if not user:
            return None
        posts = await _load_indexed_posts(db, user_id)
        return UserStats(
            user_id=user_id,
            friends_count=await _count_active_friends(db, user_id),
            posts_count=len(posts),
            streak=compute_streak(posts, db.now()),
            likes_received=sum(len(p.likes) for p in posts),
            comments_received=sum(len(p.comments) for p in posts),
        )
    except Exception as e:
        logger.error(f"Error getting stats for user {user_id}: {e}")
        return None
