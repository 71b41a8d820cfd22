from pydantic import BaseModel, Field, validator
from typing import Optional
from datetime import datetime
from enum import Enum

from dailyshot.utils.clock import ensure_aware
from dailyshot.utils.ids import new_id


class ProfileVisibility(str, Enum):
    PUBLIC = "public"
    FRIENDS = "friends"
    PRIVATE = "private"


class UserSettings(BaseModel):
    """Privacy and notification preferences."""
    allow_friend_requests: bool = True
    show_active_status: bool = True
    notify_on_friend_request: bool = True
    notify_on_new_post: bool = True
    profile_visibility: ProfileVisibility = ProfileVisibility.PUBLIC


class User(BaseModel):
    """User record kept in the identity store."""
    id: str = Field(default_factory=lambda: new_id("user"))
    username: str
    email: str
    display_name: str
    bio: str = ""
    avatar: Optional[str] = None
    is_private: bool = False
    joined_at: datetime
    last_active: datetime

    # Social stats, recomputed by update_user_stats
    friends_count: int = 0
    posts_count: int = 0
    streak: int = 0

    settings: UserSettings = Field(default_factory=UserSettings)

    @validator('joined_at', 'last_active')
    def timestamps_are_aware(cls, v):
        return ensure_aware(v)

    @property
    def hides_profile(self) -> bool:
        return self.is_private or self.settings.profile_visibility == ProfileVisibility.PRIVATE

    def __repr__(self):
        return f"<User id={self.id} username={self.username} email={self.email}>"
