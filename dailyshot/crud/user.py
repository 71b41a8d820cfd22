from typing import List, Optional

from dailyshot.database import Database
from dailyshot.models.user import User
from dailyshot.schemas.user import CreateUserData, UserResult, UserUpdate
from dailyshot.utils.logger import get_logger

logger = get_logger(__name__)

# Serializes uniqueness checks against the users collection
IDENTITY_LOCK = "users:identity"

# Profile fields an edit may reset to None; other fields ignore an explicit None
CLEARABLE_PROFILE_FIELDS = {"avatar"}


async def load_users(db: Database) -> List[User]:
    """Read every user. Raises StorageError."""
    return [User.model_validate(u) for u in await db.read_records(db.users_key())]


async def get_all_users(db: Database) -> List[User]:
    try:
        return await load_users(db)
    except Exception as e:
        logger.error(f"Error getting all users: {e}")
        return []


async def get_user(db: Database, user_id: str) -> Optional[User]:
    """Get a user by ID."""
    try:
        return next((u for u in await load_users(db) if u.id == user_id), None)
    except Exception as e:
        logger.error(f"Error getting user {user_id}: {e}")
        return None


async def get_user_by_username(db: Database, username: str) -> Optional[User]:
    """Get a user by username (case-insensitive)."""
    try:
        wanted = username.lower()
        return next((u for u in await load_users(db) if u.username.lower() == wanted), None)
    except Exception as e:
        logger.error(f"Error getting user by username {username}: {e}")
        return None


async def get_user_by_email(db: Database, email: str) -> Optional[User]:
    """Get a user by email (case-insensitive)."""
    try:
        wanted = email.lower()
        return next((u for u in await load_users(db) if u.email.lower() == wanted), None)
    except Exception as e:
        logger.error(f"Error getting user by email: {e}")
        return None


def _username_taken(users: List[User], username: str, exclude_user_id: Optional[str] = None) -> bool:
    wanted = username.lower()
    return any(u.username.lower() == wanted and u.id != exclude_user_id for u in users)


def _email_taken(users: List[User], email: str) -> bool:
    wanted = email.lower()
    return any(u.email.lower() == wanted for u in users)


async def is_username_available(db: Database, username: str, exclude_user_id: Optional[str] = None) -> bool:
    """
    Check if a username is available (unique, case-insensitive).

    Args:
        db: Database handle
        username: Username to check
        exclude_user_id: User ID to exclude from the check (for updates)

    Returns:
        True if username is available, False otherwise
    """
    return not _username_taken(await load_users(db), username, exclude_user_id)


async def save_user(db: Database, user: User) -> None:
    """Insert or replace a user record. Storage failures propagate."""
    try:
        await db.upsert_record(db.users_key(), user.model_dump(mode="json"))
    except Exception as e:
        logger.error(f"Error saving user {user.id}: {e}")
        raise


async def register_user(db: Database, data: CreateUserData) -> UserResult:
    """
    Create a new user with default settings.

    Email and username must be unique (case-insensitive). Rejections are
    returned in the result; storage failures propagate.
    """
    async with db.lock(IDENTITY_LOCK):
        users = await load_users(db)
        if _email_taken(users, data.email):
            return UserResult(success=False, error="Email already exists")
        if _username_taken(users, data.username):
            return UserResult(success=False, error="Username already taken")

        now = db.now()
        user = User(
            username=data.username,
            email=data.email,
            display_name=data.display_name,
            bio=data.bio or "",
            joined_at=now,
            last_active=now,
        )
        await save_user(db, user)

    logger.info(f"Registered user {user.id} ({user.username})")
    return UserResult(success=True, user=user)


async def update_user(db: Database, user_id: str, updates: UserUpdate) -> UserResult:
    """Apply a profile edit and touch last_active."""
    async with db.lock(IDENTITY_LOCK):
        users = await load_users(db)
        user = next((u for u in users if u.id == user_id), None)
        if not user:
            return UserResult(success=False, error="User not found")

        update_data = updates.model_dump(exclude_unset=True)
        username = update_data.get("username")
        if username is not None and _username_taken(users, username, exclude_user_id=user_id):
            return UserResult(success=False, error=f"Username '{username}' is already taken")

        if updates.settings is not None:
            update_data["settings"] = updates.settings
        update_data = {k: v for k, v in update_data.items() if v is not None or k in CLEARABLE_PROFILE_FIELDS}

        updated = user.model_copy(update={**update_data, "last_active": db.now()})
        await save_user(db, updated)

    return UserResult(success=True, user=updated)


async def touch_last_active(db: Database, user_id: str) -> Optional[User]:
    """Record activity for a user (called on sign-in)."""
    async with db.lock(IDENTITY_LOCK):
        user = next((u for u in await load_users(db) if u.id == user_id), None)
        if not user:
            return None
        user.last_active = db.now()
        await save_user(db, user)
    return user


async def delete_user(db: Database, user_id: str) -> bool:
    removed = await db.remove_records(db.users_key(), lambda u: u.get("id") == user_id)
    return removed > 0


async def search_users(db: Database, query: str, exclude_user_id: Optional[str] = None) -> List[User]:
    """Case-insensitive substring search over username, display name and email."""
    needle = query.lower()
    return [
        u for u in await get_all_users(db)
        if u.id != exclude_user_id and (
            needle in u.username.lower()
            or needle in u.display_name.lower()
            or needle in u.email.lower()
        )
    ]
