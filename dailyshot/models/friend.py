from pydantic import BaseModel, Field, validator
from datetime import datetime
from enum import Enum

from dailyshot.utils.clock import ensure_aware
from dailyshot.utils.ids import new_id


class FriendRequestStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class FriendshipStatus(str, Enum):
    ACTIVE = "active"
    REMOVED = "removed"  # unfriended
    BLOCKED = "blocked"  # ended by a block


class FriendRequest(BaseModel):
    """Directed request from one user to another. Accepted and declined are terminal."""
    id: str = Field(default_factory=lambda: new_id("friendRequest"))
    from_user_id: str
    to_user_id: str
    status: FriendRequestStatus = FriendRequestStatus.PENDING
    timestamp: datetime

    @validator('timestamp')
    def timestamp_is_aware(cls, v):
        return ensure_aware(v)

    def __repr__(self):
        return f"<FriendRequest id={self.id} from={self.from_user_id} to={self.to_user_id} status={self.status.value}>"


class Friendship(BaseModel):
    """Undirected friendship; user1/user2 order carries no meaning."""
    id: str = Field(default_factory=lambda: new_id("friendship"))
    user1_id: str
    user2_id: str
    created_at: datetime
    status: FriendshipStatus = FriendshipStatus.ACTIVE

    @validator('created_at')
    def created_at_is_aware(cls, v):
        return ensure_aware(v)

    def involves(self, user_a: str, user_b: str) -> bool:
        return {self.user1_id, self.user2_id} == {user_a, user_b}

    def other(self, user_id: str) -> str:
        return self.user2_id if self.user1_id == user_id else self.user1_id

    def __repr__(self):
        return f"<Friendship id={self.id} user1={self.user1_id} user2={self.user2_id} status={self.status.value}>"


class Block(BaseModel):
    """Durable record that ``blocker_id`` blocked ``blocked_id``."""
    id: str = Field(default_factory=lambda: new_id("block"))
    blocker_id: str
    blocked_id: str
    created_at: datetime

    @validator('created_at')
    def created_at_is_aware(cls, v):
        return ensure_aware(v)
