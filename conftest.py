import asyncio
from datetime import datetime, timezone

import pytest

from dailyshot.crud.user import register_user
from dailyshot.database import Database
from dailyshot.models.post import Post, Visibility
from dailyshot.schemas.user import CreateUserData
from dailyshot.storage import MemoryStorage, StorageError
from dailyshot.utils.clock import FrozenClock


class FlakyStorage(MemoryStorage):
    """Memory storage that can be told to fail reads or writes, or to suspend on every call."""

    def __init__(self):
        super().__init__()
        self.fail_reads = False
        self.fail_writes = False
        self.fail_reads_matching = None
        self.yield_on_io = False

    async def get(self, key):
        if self.yield_on_io:
            await asyncio.sleep(0)
        if self.fail_reads or (self.fail_reads_matching and self.fail_reads_matching in key):
            raise StorageError(f"read failed for {key}")
        return await super().get(key)

    async def set(self, key, value):
        if self.yield_on_io:
            await asyncio.sleep(0)
        if self.fail_writes:
            raise StorageError(f"write failed for {key}")
        await super().set(key, value)


@pytest.fixture
def clock():
    return FrozenClock(datetime(2025, 3, 14, 10, 0, tzinfo=timezone.utc))


@pytest.fixture
def storage():
    return FlakyStorage()


@pytest.fixture
def db(storage, clock):
    return Database(storage, clock=clock, timezone="UTC", key_prefix="@Test")


@pytest.fixture
def register(db):
    """Register a user and return it."""
    async def _register(username, display_name=None):
        result = await register_user(db, CreateUserData(
            username=username,
            email=f"{username}@dailyshot.app",
            display_name=display_name or username.title(),
        ))
        assert result.success, result.error
        return result.user
    return _register


@pytest.fixture
def make_post():
    """Build a post without going through the daily gate."""
    counter = {"n": 0}

    def _make_post(user_id, timestamp, visibility=Visibility.FRIENDS, **overrides):
        counter["n"] += 1
        fields = dict(
            id=f"post-{counter['n']}",
            user_id=user_id,
            username=user_id,
            display_name=user_id.title(),
            front_image=f"front-{counter['n']}.jpg",
            back_image=f"back-{counter['n']}.jpg",
            timestamp=timestamp,
            visibility=visibility,
            created_at=timestamp,
        )
        fields.update(overrides)
        return Post(**fields)
    return _make_post
