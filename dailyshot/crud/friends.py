from typing import List, Optional, Set

from dailyshot.config import settings
from dailyshot.crud.stats import update_user_stats
from dailyshot.crud.user import get_all_users, load_users
from dailyshot.database import Database
from dailyshot.models.friend import (
    Block, FriendRequest, FriendRequestStatus, Friendship, FriendshipStatus
)
from dailyshot.models.user import User
from dailyshot.schemas.friends import FriendRequestWithUser, FriendshipStatusValue
from dailyshot.utils.logger import get_logger

logger = get_logger(__name__)


def _pair_lock(user_a: str, user_b: str) -> str:
    first, second = sorted([user_a, user_b])
    return f"friendPair:{first}:{second}"


class FriendsCRUD:
    """
    Friend graph: requests, friendships and blocks.

    Request lifecycle is ``pending -> accepted | declined`` (terminal), or
    ``pending -> removed`` when the requester cancels. Friendships are never
    deleted; ending one sets its status to ``removed`` or ``blocked``.
    """

    # Loaders. These raise StorageError.

    @staticmethod
    async def load_requests(db: Database) -> List[FriendRequest]:
        return [FriendRequest.model_validate(r) for r in await db.read_records(db.friend_requests_key())]

    @staticmethod
    async def load_friendships(db: Database) -> List[Friendship]:
        return [Friendship.model_validate(f) for f in await db.read_records(db.friendships_key())]

    @staticmethod
    async def load_blocks(db: Database) -> List[Block]:
        return [Block.model_validate(b) for b in await db.read_records(db.blocks_key())]

    @staticmethod
    async def load_friend_ids(db: Database, user_id: str) -> Set[str]:
        return {
            f.other(user_id) for f in await FriendsCRUD.load_friendships(db)
            if f.status == FriendshipStatus.ACTIVE and user_id in (f.user1_id, f.user2_id)
        }

    @staticmethod
    async def load_blocked_ids(db: Database, user_id: str) -> Set[str]:
        """Users in a block relationship with ``user_id``, in either direction."""
        ids = set()
        for block in await FriendsCRUD.load_blocks(db):
            if block.blocker_id == user_id:
                ids.add(block.blocked_id)
            elif block.blocked_id == user_id:
                ids.add(block.blocker_id)
        return ids

    @staticmethod
    async def _find_active_friendship(db: Database, user_a: str, user_b: str) -> Optional[Friendship]:
        return next(
            (f for f in await FriendsCRUD.load_friendships(db)
             if f.status == FriendshipStatus.ACTIVE and f.involves(user_a, user_b)),
            None,
        )

    @staticmethod
    async def _save_request(db: Database, request: FriendRequest) -> None:
        await db.upsert_record(db.friend_requests_key(), request.model_dump(mode="json"))

    @staticmethod
    async def _save_friendship(db: Database, friendship: Friendship) -> None:
        await db.upsert_record(db.friendships_key(), friendship.model_dump(mode="json"))

    # Queries

    @staticmethod
    async def get_friend_request(db: Database, request_id: str) -> Optional[FriendRequest]:
        try:
            return next((r for r in await FriendsCRUD.load_requests(db) if r.id == request_id), None)
        except Exception as e:
            logger.error(f"Error getting friend request {request_id}: {e}")
            return None

    @staticmethod
    async def are_friends(db: Database, user1_id: str, user2_id: str) -> bool:
        """Check if two users are friends. Symmetric in its arguments."""
        try:
            return await FriendsCRUD._find_active_friendship(db, user1_id, user2_id) is not None
        except Exception as e:
            logger.error(f"Error checking friendship: {e}")
            return False

    @staticmethod
    async def get_friend_ids(db: Database, user_id: str) -> Set[str]:
        try:
            return await FriendsCRUD.load_friend_ids(db, user_id)
        except Exception as e:
            logger.error(f"Error getting friend ids for {user_id}: {e}")
            return set()

    @staticmethod
    async def get_user_friends(db: Database, user_id: str) -> List[User]:
        try:
            friend_ids = await FriendsCRUD.load_friend_ids(db, user_id)
            return [u for u in await load_users(db) if u.id in friend_ids]
        except Exception as e:
            logger.error(f"Error getting friends of {user_id}: {e}")
            return []

    @staticmethod
    async def get_mutual_friends(db: Database, user_id: str, other_user_id: str) -> List[User]:
        try:
            mutual = (
                await FriendsCRUD.load_friend_ids(db, user_id)
                & await FriendsCRUD.load_friend_ids(db, other_user_id)
            )
            return [u for u in await load_users(db) if u.id in mutual]
        except Exception as e:
            logger.error(f"Error getting mutual friends: {e}")
            return []

    @staticmethod
    async def is_blocked(db: Database, user1_id: str, user2_id: str) -> bool:
        """True if either user has blocked the other."""
        try:
            return user2_id in await FriendsCRUD.load_blocked_ids(db, user1_id)
        except Exception as e:
            logger.error(f"Error checking block: {e}")
            return False

    @staticmethod
    async def get_friend_requests(db: Database, user_id: str) -> List[FriendRequestWithUser]:
        """Pending requests received by a user, newest first."""
        try:
            users = {u.id: u for u in await load_users(db)}
            requests = [
                r for r in await FriendsCRUD.load_requests(db)
                if r.to_user_id == user_id and r.status == FriendRequestStatus.PENDING
            ]
            requests.sort(key=lambda r: r.timestamp, reverse=True)
            return [
                FriendRequestWithUser(request=r, user=users[r.from_user_id])
                for r in requests if r.from_user_id in users
            ]
        except Exception as e:
            logger.error(f"Error getting friend requests: {e}")
            return []

    @staticmethod
    async def get_sent_friend_requests(db: Database, user_id: str) -> List[FriendRequestWithUser]:
        """Pending requests sent by a user, newest first."""
        try:
            users = {u.id: u for u in await load_users(db)}
            requests = [
                r for r in await FriendsCRUD.load_requests(db)
                if r.from_user_id == user_id and r.status == FriendRequestStatus.PENDING
            ]
            requests.sort(key=lambda r: r.timestamp, reverse=True)
            return [
                FriendRequestWithUser(request=r, user=users[r.to_user_id])
                for r in requests if r.to_user_id in users
            ]
        except Exception as e:
            logger.error(f"Error getting sent friend requests: {e}")
            return []

    @staticmethod
    async def get_friendship_status(db: Database, user_id: str, other_user_id: str) -> FriendshipStatusValue:
        """
        Relationship status as seen by ``user_id``.

        An active friendship wins over any stale pending request.
        """
        try:
            if await FriendsCRUD._find_active_friendship(db, user_id, other_user_id):
                return FriendshipStatusValue.FRIENDS

            pending = [r for r in await FriendsCRUD.load_requests(db) if r.status == FriendRequestStatus.PENDING]
            if any(r.from_user_id == user_id and r.to_user_id == other_user_id for r in pending):
                return FriendshipStatusValue.PENDING_SENT
            if any(r.from_user_id == other_user_id and r.to_user_id == user_id for r in pending):
                return FriendshipStatusValue.PENDING_RECEIVED
            return FriendshipStatusValue.NONE
        except Exception as e:
            logger.error(f"Error getting friendship status: {e}")
            return FriendshipStatusValue.NONE

    @staticmethod
    async def get_friend_suggestions(db: Database, user_id: str, limit: Optional[int] = None) -> List[User]:
        """
        Users who are not the caller, not friends, not private and not blocked,
        most recently active first.
        """
        limit = settings.FRIEND_SUGGESTION_LIMIT if limit is None else limit
        try:
            excluded = await FriendsCRUD.load_friend_ids(db, user_id)
            excluded |= await FriendsCRUD.load_blocked_ids(db, user_id)
            excluded.add(user_id)
            suggestions = [u for u in await get_all_users(db) if u.id not in excluded and not u.hides_profile]
            suggestions.sort(key=lambda u: u.last_active, reverse=True)
            return suggestions[:limit]
        except Exception as e:
            logger.error(f"Error getting friend suggestions: {e}")
            return []

    # Mutations. Storage failures propagate.

    @staticmethod
    async def send_friend_request(db: Database, from_user_id: str, to_user_id: str) -> Optional[FriendRequest]:
        """Send a friend request. Returns None when the request is not allowed."""
        if from_user_id == to_user_id:
            return None

        async with db.lock(_pair_lock(from_user_id, to_user_id)):
            users = {u.id: u for u in await load_users(db)}
            to_user = users.get(to_user_id)
            if from_user_id not in users or not to_user:
                logger.info(f"Friend request rejected: unknown user {from_user_id} or {to_user_id}")
                return None

            if await FriendsCRUD._find_active_friendship(db, from_user_id, to_user_id):
                logger.info(f"Friend request rejected: {from_user_id} and {to_user_id} are already friends")
                return None

            if not to_user.settings.allow_friend_requests:
                logger.info(f"Friend request rejected: {to_user_id} is not accepting requests")
                return None

            if to_user_id in await FriendsCRUD.load_blocked_ids(db, from_user_id):
                logger.info(f"Friend request rejected: block between {from_user_id} and {to_user_id}")
                return None

            existing_request = next(
                (r for r in await FriendsCRUD.load_requests(db)
                 if r.from_user_id == from_user_id and r.to_user_id == to_user_id
                 and r.status == FriendRequestStatus.PENDING),
                None,
            )
            if existing_request:
                logger.info(f"Friend request rejected: already pending ({existing_request.id})")
                return None

            friend_request = FriendRequest(
                from_user_id=from_user_id,
                to_user_id=to_user_id,
                timestamp=db.now(),
            )
            await FriendsCRUD._save_request(db, friend_request)

        logger.info(f"Friend request {friend_request.id} sent from {from_user_id} to {to_user_id}")
        return friend_request

    @staticmethod
    async def accept_friend_request(db: Database, request_id: str, user_id: str) -> Optional[Friendship]:
        """Accept a pending request addressed to ``user_id`` and create the friendship."""
        friend_request = next((r for r in await FriendsCRUD.load_requests(db) if r.id == request_id), None)
        if not friend_request:
            return None

        async with db.lock(_pair_lock(friend_request.from_user_id, friend_request.to_user_id)):
            # Re-read under the pair lock; a concurrent decline or cancel may have won
            friend_request = next((r for r in await FriendsCRUD.load_requests(db) if r.id == request_id), None)
            if not friend_request or friend_request.to_user_id != user_id:
                return None
            if friend_request.status != FriendRequestStatus.PENDING:
                return None

            friend_request.status = FriendRequestStatus.ACCEPTED
            await FriendsCRUD._save_request(db, friend_request)

            friendship = await FriendsCRUD._find_active_friendship(
                db, friend_request.from_user_id, friend_request.to_user_id
            )
            if not friendship:
                friendship = Friendship(
                    user1_id=friend_request.from_user_id,
                    user2_id=friend_request.to_user_id,
                    created_at=db.now(),
                )
                await FriendsCRUD._save_friendship(db, friendship)

        await update_user_stats(db, friend_request.from_user_id)
        await update_user_stats(db, friend_request.to_user_id)
        logger.info(f"Friend request {request_id} accepted; friendship {friendship.id}")
        return friendship

    @staticmethod
    async def decline_friend_request(db: Database, request_id: str, user_id: str) -> bool:
        """Decline a pending request addressed to ``user_id``."""
        friend_request = next((r for r in await FriendsCRUD.load_requests(db) if r.id == request_id), None)
        if not friend_request:
            return False

        async with db.lock(_pair_lock(friend_request.from_user_id, friend_request.to_user_id)):
            friend_request = next((r for r in await FriendsCRUD.load_requests(db) if r.id == request_id), None)
            if not friend_request or friend_request.to_user_id != user_id:
                return False
            if friend_request.status != FriendRequestStatus.PENDING:
                return False

            friend_request.status = FriendRequestStatus.DECLINED
            await FriendsCRUD._save_request(db, friend_request)
        return True

    @staticmethod
    async def cancel_friend_request(db: Database, request_id: str, user_id: str) -> bool:
        """Withdraw a pending request sent by ``user_id``."""
        friend_request = next((r for r in await FriendsCRUD.load_requests(db) if r.id == request_id), None)
        if not friend_request:
            return False

        async with db.lock(_pair_lock(friend_request.from_user_id, friend_request.to_user_id)):
            removed = await db.remove_records(
                db.friend_requests_key(),
                lambda r: (
                    r.get("id") == request_id
                    and r.get("from_user_id") == user_id
                    and r.get("status") == FriendRequestStatus.PENDING.value
                ),
            )
        return removed > 0

    @staticmethod
    async def remove_friend(
        db: Database,
        user_id: str,
        friend_id: str,
        status: FriendshipStatus = FriendshipStatus.REMOVED,
    ) -> bool:
        """End an active friendship, keeping the record with the given terminal status."""
        async with db.lock(_pair_lock(user_id, friend_id)):
            friendship = await FriendsCRUD._find_active_friendship(db, user_id, friend_id)
            if not friendship:
                return False

            friendship.status = status
            await FriendsCRUD._save_friendship(db, friendship)

        await update_user_stats(db, user_id)
        await update_user_stats(db, friend_id)
        return True

    @staticmethod
    async def block_user(db: Database, user_id: str, target_user_id: str) -> bool:
        """
        Block a user: end any friendship, settle pending requests between the
        two, and record the block so future requests are refused.
        """
        if user_id == target_user_id:
            return False

        user_ids = {u.id for u in await load_users(db)}
        if user_id not in user_ids or target_user_id not in user_ids:
            logger.info(f"Block rejected: unknown user {user_id} or {target_user_id}")
            return False

        await FriendsCRUD.remove_friend(db, user_id, target_user_id, status=FriendshipStatus.BLOCKED)

        for request in await FriendsCRUD.load_requests(db):
            if request.status != FriendRequestStatus.PENDING:
                continue
            if request.from_user_id == target_user_id and request.to_user_id == user_id:
                await FriendsCRUD.decline_friend_request(db, request.id, user_id)
            elif request.from_user_id == user_id and request.to_user_id == target_user_id:
                await FriendsCRUD.cancel_friend_request(db, request.id, user_id)

        async with db.lock(_pair_lock(user_id, target_user_id)):
            already = any(
                b.blocker_id == user_id and b.blocked_id == target_user_id
                for b in await FriendsCRUD.load_blocks(db)
            )
            if not already:
                block = Block(blocker_id=user_id, blocked_id=target_user_id, created_at=db.now())
                await db.upsert_record(db.blocks_key(), block.model_dump(mode="json"))

        logger.info(f"User {user_id} blocked {target_user_id}")
        return True

    @staticmethod
    async def unblock_user(db: Database, user_id: str, target_user_id: str) -> bool:
        """Lift a block placed by ``user_id``. The previous friendship is not restored."""
        removed = await db.remove_records(
            db.blocks_key(),
            lambda b: b.get("blocker_id") == user_id and b.get("blocked_id") == target_user_id,
        )
        return removed > 0
