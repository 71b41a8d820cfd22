import asyncio

from dailyshot.crud.friends import FriendsCRUD
from dailyshot.crud.user import get_user, update_user
from dailyshot.models.friend import FriendRequestStatus, FriendshipStatus
from dailyshot.models.user import ProfileVisibility, UserSettings
from dailyshot.schemas.friends import FriendshipStatusValue
from dailyshot.schemas.user import UserUpdate


async def befriend(db, user_a, user_b):
    request = await FriendsCRUD.send_friend_request(db, user_a.id, user_b.id)
    return await FriendsCRUD.accept_friend_request(db, request.id, user_b.id)


def test_accepting_a_request_creates_a_symmetric_friendship(db, register):
    async def scenario():
        alice = await register("alice")
        bob = await register("bob")

        request = await FriendsCRUD.send_friend_request(db, alice.id, bob.id)
        assert request.status == FriendRequestStatus.PENDING
        assert not await FriendsCRUD.are_friends(db, alice.id, bob.id)

        friendship = await FriendsCRUD.accept_friend_request(db, request.id, bob.id)
        assert friendship.status == FriendshipStatus.ACTIVE
        assert await FriendsCRUD.are_friends(db, alice.id, bob.id)
        assert await FriendsCRUD.are_friends(db, bob.id, alice.id)
        assert [u.id for u in await FriendsCRUD.get_user_friends(db, alice.id)] == [bob.id]
        assert [u.id for u in await FriendsCRUD.get_user_friends(db, bob.id)] == [alice.id]

        assert (await get_user(db, alice.id)).friends_count == 1
        assert (await get_user(db, bob.id)).friends_count == 1
        stored = await FriendsCRUD.get_friend_request(db, request.id)
        assert stored.status == FriendRequestStatus.ACCEPTED

    asyncio.run(scenario())


def test_send_friend_request_rejections(db, register):
    async def scenario():
        alice = await register("alice")
        bob = await register("bob")
        carol = await register("carol")

        assert await FriendsCRUD.send_friend_request(db, alice.id, alice.id) is None
        assert await FriendsCRUD.send_friend_request(db, alice.id, "ghost") is None
        assert await FriendsCRUD.send_friend_request(db, "ghost", alice.id) is None

        assert await FriendsCRUD.send_friend_request(db, alice.id, bob.id) is not None
        assert await FriendsCRUD.send_friend_request(db, alice.id, bob.id) is None

        closed = UserSettings(allow_friend_requests=False)
        assert (await update_user(db, carol.id, UserUpdate(settings=closed))).success
        assert await FriendsCRUD.send_friend_request(db, alice.id, carol.id) is None

        await befriend(db, bob, alice)
        assert await FriendsCRUD.send_friend_request(db, alice.id, bob.id) is None

    asyncio.run(scenario())


def test_only_recipient_can_accept_or_decline_and_states_are_terminal(db, register):
    async def scenario():
        alice = await register("alice")
        bob = await register("bob")
        carol = await register("carol")

        request = await FriendsCRUD.send_friend_request(db, alice.id, bob.id)
        assert await FriendsCRUD.accept_friend_request(db, request.id, alice.id) is None
        assert await FriendsCRUD.accept_friend_request(db, request.id, carol.id) is None
        assert not await FriendsCRUD.decline_friend_request(db, request.id, carol.id)
        assert await FriendsCRUD.accept_friend_request(db, "missing", bob.id) is None

        assert await FriendsCRUD.decline_friend_request(db, request.id, bob.id)
        assert (await FriendsCRUD.get_friend_request(db, request.id)).status == FriendRequestStatus.DECLINED
        assert await FriendsCRUD.accept_friend_request(db, request.id, bob.id) is None
        assert not await FriendsCRUD.decline_friend_request(db, request.id, bob.id)
        assert not await FriendsCRUD.are_friends(db, alice.id, bob.id)

        # A declined request does not block a fresh one
        again = await FriendsCRUD.send_friend_request(db, alice.id, bob.id)
        assert again is not None
        assert await FriendsCRUD.accept_friend_request(db, again.id, bob.id) is not None
        assert await FriendsCRUD.accept_friend_request(db, again.id, bob.id) is None

    asyncio.run(scenario())


def test_cancel_is_requester_only_and_returns_to_none(db, register):
    async def scenario():
        alice = await register("alice")
        bob = await register("bob")

        request = await FriendsCRUD.send_friend_request(db, alice.id, bob.id)
        assert not await FriendsCRUD.cancel_friend_request(db, request.id, bob.id)
        assert await FriendsCRUD.get_friendship_status(db, alice.id, bob.id) == FriendshipStatusValue.PENDING_SENT

        assert await FriendsCRUD.cancel_friend_request(db, request.id, alice.id)
        assert await FriendsCRUD.get_friend_request(db, request.id) is None
        assert await FriendsCRUD.get_friendship_status(db, alice.id, bob.id) == FriendshipStatusValue.NONE
        assert await FriendsCRUD.get_friend_requests(db, bob.id) == []
        assert not await FriendsCRUD.cancel_friend_request(db, request.id, alice.id)

    asyncio.run(scenario())


def test_cancel_after_accept_is_refused(db, register):
    async def scenario():
        alice = await register("alice")
        bob = await register("bob")
        request = await FriendsCRUD.send_friend_request(db, alice.id, bob.id)
        await FriendsCRUD.accept_friend_request(db, request.id, bob.id)
        assert not await FriendsCRUD.cancel_friend_request(db, request.id, alice.id)

    asyncio.run(scenario())


def test_friendship_status_views(db, register):
    async def scenario():
        alice = await register("alice")
        bob = await register("bob")

        assert await FriendsCRUD.get_friendship_status(db, alice.id, bob.id) == FriendshipStatusValue.NONE
        await FriendsCRUD.send_friend_request(db, alice.id, bob.id)
        assert await FriendsCRUD.get_friendship_status(db, alice.id, bob.id) == FriendshipStatusValue.PENDING_SENT
        assert await FriendsCRUD.get_friendship_status(db, bob.id, alice.id) == FriendshipStatusValue.PENDING_RECEIVED

    asyncio.run(scenario())


def test_friends_status_wins_over_stale_pending_request(db, register):
    async def scenario():
        alice = await register("alice")
        bob = await register("bob")

        await FriendsCRUD.send_friend_request(db, alice.id, bob.id)
        crossing = await FriendsCRUD.send_friend_request(db, bob.id, alice.id)
        await FriendsCRUD.accept_friend_request(db, crossing.id, alice.id)

        assert await FriendsCRUD.get_friendship_status(db, alice.id, bob.id) == FriendshipStatusValue.FRIENDS
        assert await FriendsCRUD.get_friendship_status(db, bob.id, alice.id) == FriendshipStatusValue.FRIENDS

    asyncio.run(scenario())


def test_accepting_both_crossing_requests_keeps_one_active_friendship(db, register):
    async def scenario():
        alice = await register("alice")
        bob = await register("bob")

        first = await FriendsCRUD.send_friend_request(db, alice.id, bob.id)
        second = await FriendsCRUD.send_friend_request(db, bob.id, alice.id)
        one = await FriendsCRUD.accept_friend_request(db, second.id, alice.id)
        two = await FriendsCRUD.accept_friend_request(db, first.id, bob.id)

        assert one.id == two.id
        active = [f for f in await FriendsCRUD.load_friendships(db) if f.status == FriendshipStatus.ACTIVE]
        assert len(active) == 1
        assert (await get_user(db, alice.id)).friends_count == 1

    asyncio.run(scenario())


def test_remove_friend_keeps_a_removed_record(db, register):
    async def scenario():
        alice = await register("alice")
        bob = await register("bob")
        friendship = await befriend(db, alice, bob)

        assert await FriendsCRUD.remove_friend(db, bob.id, alice.id)
        assert not await FriendsCRUD.are_friends(db, alice.id, bob.id)
        records = await FriendsCRUD.load_friendships(db)
        assert [(f.id, f.status) for f in records] == [(friendship.id, FriendshipStatus.REMOVED)]
        assert (await get_user(db, alice.id)).friends_count == 0
        assert (await get_user(db, bob.id)).friends_count == 0

        assert not await FriendsCRUD.remove_friend(db, alice.id, bob.id)
        # Unfriending does not prevent reconnecting
        assert await befriend(db, alice, bob) is not None

    asyncio.run(scenario())


def test_block_ends_friendship_and_refuses_new_requests(db, register):
    async def scenario():
        alice = await register("alice")
        bob = await register("bob")
        await befriend(db, alice, bob)

        assert await FriendsCRUD.block_user(db, alice.id, bob.id)
        assert not await FriendsCRUD.are_friends(db, alice.id, bob.id)
        assert [f.status for f in await FriendsCRUD.load_friendships(db)] == [FriendshipStatus.BLOCKED]
        assert await FriendsCRUD.is_blocked(db, alice.id, bob.id)
        assert await FriendsCRUD.is_blocked(db, bob.id, alice.id)

        assert await FriendsCRUD.send_friend_request(db, bob.id, alice.id) is None
        assert await FriendsCRUD.send_friend_request(db, alice.id, bob.id) is None

        # Blocking twice records one block
        assert await FriendsCRUD.block_user(db, alice.id, bob.id)
        assert len(await FriendsCRUD.load_blocks(db)) == 1

        assert not await FriendsCRUD.unblock_user(db, bob.id, alice.id)
        assert await FriendsCRUD.unblock_user(db, alice.id, bob.id)
        assert not await FriendsCRUD.is_blocked(db, alice.id, bob.id)
        assert await FriendsCRUD.send_friend_request(db, bob.id, alice.id) is not None

        assert not await FriendsCRUD.block_user(db, alice.id, alice.id)

    asyncio.run(scenario())


def test_block_settles_pending_requests_both_ways(db, register):
    async def scenario():
        alice = await register("alice")
        bob = await register("bob")

        inbound = await FriendsCRUD.send_friend_request(db, bob.id, alice.id)
        outbound = await FriendsCRUD.send_friend_request(db, alice.id, bob.id)

        assert await FriendsCRUD.block_user(db, alice.id, bob.id)
        assert (await FriendsCRUD.get_friend_request(db, inbound.id)).status == FriendRequestStatus.DECLINED
        assert await FriendsCRUD.get_friend_request(db, outbound.id) is None
        assert await FriendsCRUD.get_friendship_status(db, alice.id, bob.id) == FriendshipStatusValue.NONE

    asyncio.run(scenario())


def test_pending_and_sent_request_lists(db, register, clock):
    async def scenario():
        alice = await register("alice")
        bob = await register("bob")
        carol = await register("carol")

        await FriendsCRUD.send_friend_request(db, bob.id, alice.id)
        clock.advance(minutes=1)
        await FriendsCRUD.send_friend_request(db, carol.id, alice.id)
        await FriendsCRUD.send_friend_request(db, alice.id, carol.id)

        received = await FriendsCRUD.get_friend_requests(db, alice.id)
        assert [r.user.id for r in received] == [carol.id, bob.id]
        sent = await FriendsCRUD.get_sent_friend_requests(db, alice.id)
        assert [(r.request.to_user_id, r.user.username) for r in sent] == [(carol.id, "carol")]

    asyncio.run(scenario())


def test_friend_suggestions_rank_by_recent_activity(db, register, clock):
    async def scenario():
        alice = await register("alice")
        clock.advance(minutes=1)
        bob = await register("bob")
        clock.advance(minutes=1)
        carol = await register("carol")
        clock.advance(minutes=1)
        dave = await register("dave")
        clock.advance(minutes=1)
        erin = await register("erin")
        clock.advance(minutes=1)
        frank = await register("frank")

        await befriend(db, alice, bob)
        await update_user(db, carol.id, UserUpdate(is_private=True))
        await update_user(db, dave.id, UserUpdate(settings=UserSettings(profile_visibility=ProfileVisibility.PRIVATE)))
        await FriendsCRUD.block_user(db, frank.id, alice.id)

        suggestions = await FriendsCRUD.get_friend_suggestions(db, alice.id)
        assert [u.id for u in suggestions] == [erin.id]

        clock.advance(minutes=1)
        george = await register("george")
        assert [u.id for u in await FriendsCRUD.get_friend_suggestions(db, alice.id)] == [george.id, erin.id]
        assert [u.id for u in await FriendsCRUD.get_friend_suggestions(db, alice.id, limit=1)] == [george.id]

    asyncio.run(scenario())


def test_mutual_friends(db, register):
    async def scenario():
        alice = await register("alice")
        bob = await register("bob")
        carol = await register("carol")
        dave = await register("dave")

        await befriend(db, alice, carol)
        await befriend(db, bob, carol)
        await befriend(db, alice, dave)

        assert [u.id for u in await FriendsCRUD.get_mutual_friends(db, alice.id, bob.id)] == [carol.id]
        assert await FriendsCRUD.get_mutual_friends(db, bob.id, dave.id) == []

    asyncio.run(scenario())


def test_graph_reads_degrade_when_storage_fails(db, register, storage):
    async def scenario():
        alice = await register("alice")
        bob = await register("bob")
        await befriend(db, alice, bob)

        storage.fail_reads = True
        assert not await FriendsCRUD.are_friends(db, alice.id, bob.id)
        assert await FriendsCRUD.get_user_friends(db, alice.id) == []
        assert await FriendsCRUD.get_friendship_status(db, alice.id, bob.id) == FriendshipStatusValue.NONE
        assert await FriendsCRUD.get_friend_suggestions(db, alice.id) == []
        assert await FriendsCRUD.get_friend_ids(db, alice.id) == set()

    asyncio.run(scenario())


def test_block_requires_both_users_to_exist(db, register):
    async def scenario():
        alice = await register("alice")

        assert not await FriendsCRUD.block_user(db, alice.id, "ghost")
        assert not await FriendsCRUD.block_user(db, "ghost", alice.id)
        assert await FriendsCRUD.load_blocks(db) == []

    asyncio.run(scenario())
