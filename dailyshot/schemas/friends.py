from pydantic import BaseModel
from enum import Enum

from dailyshot.models.friend import FriendRequest
from dailyshot.models.user import User


class FriendshipStatusValue(str, Enum):
    """Relationship between a viewer and another user, from the viewer's side."""
    NONE = "none"
    PENDING_SENT = "pending_sent"
    PENDING_RECEIVED = "pending_received"
    FRIENDS = "friends"


class FriendRequestWithUser(BaseModel):
    """A pending request together with the user on the other end."""
    request: FriendRequest
    user: User
