from dailyshot.crud.posts import load_post, post_lock, save_post
from dailyshot.crud.user import get_user
from dailyshot.database import Database
from dailyshot.models.post import Comment, Like
from dailyshot.utils.logger import get_logger

logger = get_logger(__name__)

# Each mutator reads the whole post, edits the embedded list and writes the
# whole post back while holding the post lock, so concurrent reactions to
# one post are applied one after another instead of overwriting each other.


async def like_post(db: Database, post_id: str, user_id: str) -> bool:
    """Add a like. Returns False if the post or user is missing or the user already liked it."""
    user = await get_user(db, user_id)
    if not user:
        return False

    async with db.lock(post_lock(post_id)):
        post = await load_post(db, post_id)
        if not post:
            return False
        if post.liked_by(user_id):
            return False

        post.likes.append(Like(user_id=user.id, username=user.username, timestamp=db.now()))
        await save_post(db, post)
    return True


async def unlike_post(db: Database, post_id: str, user_id: str) -> bool:
    """Remove the user's like. Succeeds even if there was none; False only if the post is missing."""
    async with db.lock(post_lock(post_id)):
        post = await load_post(db, post_id)
        if not post:
            return False

        remaining = [like for like in post.likes if like.user_id != user_id]
        if len(remaining) != len(post.likes):
            post.likes = remaining
            await save_post(db, post)
    return True


async def add_comment(db: Database, post_id: str, user_id: str, content: str) -> bool:
    """Append a comment with surrounding whitespace trimmed."""
    user = await get_user(db, user_id)
    if not user:
        return False

    async with db.lock(post_lock(post_id)):
        post = await load_post(db, post_id)
        if not post:
            return False

        post.comments.append(Comment(
            user_id=user.id,
            username=user.username,
            display_name=user.display_name,
            content=content.strip(),
            timestamp=db.now(),
            user_avatar=user.avatar,
        ))
        await save_post(db, post)
    return True


async def delete_comment(db: Database, post_id: str, comment_id: str, user_id: str) -> bool:
    """Delete a comment. Allowed for the comment's author and the post's author only."""
    async with db.lock(post_lock(post_id)):
        post = await load_post(db, post_id)
        if not post:
            return False

        comment = next((c for c in post.comments if c.id == comment_id), None)
        if not comment or (comment.user_id != user_id and post.user_id != user_id):
            logger.info(f"User {user_id} may not delete comment {comment_id} on post {post_id}")
            return False

        post.comments = [c for c in post.comments if c.id != comment_id]
        await save_post(db, post)
    return True
