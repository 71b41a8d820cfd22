from typing import List, Optional

from dailyshot.config import settings
from dailyshot.crud.stats import update_user_stats
from dailyshot.crud.user import get_user
from dailyshot.database import Database
from dailyshot.models.post import Post, Visibility
from dailyshot.schemas.post import CreatePostData, CreatePostResult, PostError
from dailyshot.utils.logger import get_logger

logger = get_logger(__name__)


def post_lock(post_id: str) -> str:
    """Lock name held by whoever rewrites one post."""
    return f"post:{post_id}"


def _daily_gate_lock(user_id: str) -> str:
    return f"dailyPost:{user_id}"


async def load_posts(db: Database) -> List[Post]:
    """Read the global post collection in storage order. Raises StorageError."""
    return [Post.model_validate(p) for p in await db.read_records(db.posts_key())]


async def load_post(db: Database, post_id: str) -> Optional[Post]:
    return next((p for p in await load_posts(db) if p.id == post_id), None)


async def get_all_posts(db: Database) -> List[Post]:
    try:
        return await load_posts(db)
    except Exception as e:
        logger.error(f"Error getting all posts: {e}")
        return []


async def get_post_by_id(db: Database, post_id: str) -> Optional[Post]:
    try:
        return await load_post(db, post_id)
    except Exception as e:
        logger.error(f"Error getting post {post_id}: {e}")
        return None


async def get_user_posts(db: Database, user_id: str) -> List[Post]:
    """A user's posts, newest first."""
    try:
        posts = [p for p in await load_posts(db) if p.user_id == user_id]
        return sorted(posts, key=lambda p: p.timestamp, reverse=True)
    except Exception as e:
        logger.error(f"Error getting posts for user {user_id}: {e}")
        return []


async def save_post(db: Database, post: Post) -> None:
    """
    Insert or replace a post in the global collection and in its author's index.

    The whole record is written; there are no field-level updates.
    Storage failures propagate.
    """
    record = post.model_dump(mode="json")
    try:
        await db.upsert_record(db.posts_key(), record)
        await db.upsert_record(db.user_posts_key(post.user_id), record)
    except Exception as e:
        logger.error(f"Error saving post {post.id}: {e}")
        raise


async def get_daily_post_id(db: Database, user_id: str, day: Optional[str] = None) -> Optional[str]:
    """
    Ledger lookup: the post a user created on a local day.

    Args:
        db: Database handle
        user_id: The user ID
        day: Date in YYYY-MM-DD format (defaults to today)

    Returns:
        The post ID, or None if the user did not post that day
    """
    return await db.storage.get(db.daily_post_key(user_id, day or db.today_key()))


async def has_posted_today(db: Database, user_id: str) -> bool:
    try:
        return await get_daily_post_id(db, user_id) is not None
    except Exception as e:
        logger.error(f"Error checking daily post for {user_id}: {e}")
        return False


async def mark_daily_post(db: Database, user_id: str, post_id: str) -> None:
    await db.storage.set(db.daily_post_key(user_id, db.today_key()), post_id)


async def create_post(db: Database, user_id: str, post_data: CreatePostData) -> CreatePostResult:
    """
    Create today's post for a user.

    The daily gate check and the writes run under a per-user lock so two
    concurrent attempts cannot both pass the gate. A second post on the same
    local day is rejected with ``PostError.ALREADY_POSTED_TODAY``.

    The post, the ledger entry and the stats recompute are separate writes;
    a failure between them propagates and is not rolled back.
    """
    user = await get_user(db, user_id)
    if not user:
        return CreatePostResult(success=False, error=PostError.USER_NOT_FOUND)

    async with db.lock(_daily_gate_lock(user_id)):
        # Strict read: a ledger we cannot read must not be treated as empty
        if await get_daily_post_id(db, user_id) is not None:
            logger.info(f"User {user_id} has already posted today")
            return CreatePostResult(success=False, error=PostError.ALREADY_POSTED_TODAY)

        now = db.now()
        post = Post(
            user_id=user.id,
            username=user.username,
            display_name=user.display_name,
            user_avatar=user.avatar,
            front_image=post_data.front_image,
            back_image=post_data.back_image,
            timestamp=now,
            location=post_data.location,
            is_late=post_data.is_late,
            late_minutes=post_data.late_minutes,
            visibility=post_data.visibility or Visibility(settings.DEFAULT_POST_VISIBILITY),
            created_at=now,
        )
        await save_post(db, post)
        await mark_daily_post(db, user_id, post.id)

    await update_user_stats(db, user_id)
    logger.info(f"Post {post.id} created by {user_id}")
    return CreatePostResult(success=True, post=post)


async def delete_post(db: Database, post_id: str, user_id: str) -> bool:
    """
    Delete a post. Only its author may do so.

    Returns False when the post does not exist or belongs to someone else.
    The daily ledger entry is kept, so the author cannot post again that day.
    """
    async with db.lock(post_lock(post_id)):
        post = await load_post(db, post_id)
        if not post or post.user_id != user_id:
            return False

        await db.remove_records(db.posts_key(), lambda p: p.get("id") == post_id)
        await db.remove_records(db.user_posts_key(user_id), lambda p: p.get("id") == post_id)

    await update_user_stats(db, user_id)
    logger.info(f"Post {post_id} deleted by {user_id}")
    return True


async def update_post_visibility(
    db: Database, post_id: str, user_id: str, visibility: Visibility
) -> Optional[Post]:
    """Change who can see a post. Author only; returns None otherwise."""
    async with db.lock(post_lock(post_id)):
        post = await load_post(db, post_id)
        if not post or post.user_id != user_id:
            return None

        post.visibility = visibility
        post.updated_at = db.now()
        await save_post(db, post)
    return post


async def get_todays_posts(db: Database) -> List[Post]:
    """Posts whose timestamp falls in the current local day, recomputed on every call."""
    try:
        start, end = db.today_bounds()
        return [p for p in await load_posts(db) if start <= p.timestamp < end]
    except Exception as e:
        logger.error(f"Error getting today's posts: {e}")
        return []
