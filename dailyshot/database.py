import json
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from dailyshot.config import settings
from dailyshot.storage import KeyValueStorage, StorageError, create_storage
from dailyshot.utils.clock import Clock, local_date, local_day_bounds, system_clock
from dailyshot.utils.logger import get_logger

logger = get_logger(__name__)


class Database:
    """
    Handle passed to every CRUD function.

    Bundles the key-value backend with the clock and timezone that define
    "today", and owns the key namespace:

        {prefix}:users
        {prefix}:friendRequests
        {prefix}:friendships
        {prefix}:blocks
        {prefix}:posts
        {prefix}:userPosts:{user_id}
        {prefix}:dailyPosts:{user_id}:{YYYY-MM-DD}
        {prefix}:lock:{name}
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        clock: Clock = system_clock,
        timezone: Optional[str] = None,
        key_prefix: Optional[str] = None,
    ):
        self.storage = storage
        self.clock = clock
        self.timezone = timezone or settings.TIMEZONE
        self.key_prefix = key_prefix or settings.STORAGE_KEY_PREFIX

    # Time

    def now(self) -> datetime:
        return self.clock()

    def today(self) -> date:
        return local_date(self.now(), self.timezone)

    def today_key(self) -> str:
        return self.today().isoformat()

    def today_bounds(self) -> Tuple[datetime, datetime]:
        return local_day_bounds(self.now(), self.timezone)

    # Keys

    def users_key(self) -> str:
        return f"{self.key_prefix}:users"

    def friend_requests_key(self) -> str:
        return f"{self.key_prefix}:friendRequests"

    def friendships_key(self) -> str:
        return f"{self.key_prefix}:friendships"

    def blocks_key(self) -> str:
        return f"{self.key_prefix}:blocks"

    def posts_key(self) -> str:
        return f"{self.key_prefix}:posts"

    def user_posts_key(self, user_id: str) -> str:
        return f"{self.key_prefix}:userPosts:{user_id}"

    def daily_post_key(self, user_id: str, day: str) -> str:
        """
        Ledger key marking that ``user_id`` posted on ``day``.

        Args:
            user_id: The user ID
            day: Local calendar date in YYYY-MM-DD format
        """
        return f"{self.key_prefix}:dailyPosts:{user_id}:{day}"

    def lock(self, name: str):
        return self.storage.lock(f"{self.key_prefix}:lock:{name}")

    # JSON access. These raise StorageError; read paths that must degrade catch it themselves.

    async def read_json(self, key: str, default: Any = None) -> Any:
        raw = await self.storage.get(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError as e:
            raise StorageError(f"Corrupt JSON under key {key}: {e}") from e

    async def write_json(self, key: str, value: Any) -> None:
        await self.storage.set(key, json.dumps(value))

    async def read_records(self, key: str) -> List[Dict[str, Any]]:
        records = await self.read_json(key, [])
        if not isinstance(records, list):
            raise StorageError(f"Expected a list under key {key}")
        return records

    async def upsert_record(self, key: str, record: Dict[str, Any]) -> None:
        """Replace the record with the same ``id`` in the collection, or append it."""
        async with self.lock(key):
            records = await self.read_records(key)
            for index, existing in enumerate(records):
                if existing.get("id") == record["id"]:
                    records[index] = record
                    break
            else:
                records.append(record)
            await self.write_json(key, records)

    async def remove_records(self, key: str, predicate: Callable[[Dict[str, Any]], bool]) -> int:
        """Drop every record matching ``predicate``. Returns how many were removed."""
        async with self.lock(key):
            records = await self.read_records(key)
            kept = [r for r in records if not predicate(r)]
            removed = len(records) - len(kept)
            if removed:
                await self.write_json(key, kept)
            return removed


# Global handle, created lazily
_database: Optional[Database] = None


def get_database() -> Database:
    """Get the process-wide database handle, building it from settings on first use."""
    global _database
    if _database is None:
        _database = Database(create_storage())
        logger.info(f"Database configured: prefix={_database.key_prefix}, timezone={_database.timezone}")
    return _database


async def reset_database() -> None:
    """Close and drop the process-wide handle."""
    global _database
    if _database is not None:
        try:
            await _database.storage.close()
        except Exception as e:
            logger.error(f"Error closing storage: {e}")
        _database = None
