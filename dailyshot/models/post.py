from pydantic import BaseModel, Field, validator
from typing import List, Optional
from datetime import datetime
from enum import Enum

from dailyshot.utils.clock import ensure_aware
from dailyshot.utils.ids import new_id


class Visibility(str, Enum):
    PUBLIC = "public"
    FRIENDS = "friends"
    PRIVATE = "private"


class PostLocation(BaseModel):
    latitude: float
    longitude: float
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None


class Like(BaseModel):
    id: str = Field(default_factory=lambda: new_id("like"))
    user_id: str
    username: str
    timestamp: datetime

    @validator('timestamp')
    def timestamp_is_aware(cls, v):
        return ensure_aware(v)


class Comment(BaseModel):
    id: str = Field(default_factory=lambda: new_id("comment"))
    user_id: str
    username: str
    display_name: str
    content: str
    timestamp: datetime
    user_avatar: Optional[str] = None

    @validator('timestamp')
    def timestamp_is_aware(cls, v):
        return ensure_aware(v)


class Post(BaseModel):
    """
    A daily dual-camera post.

    Likes and comments are embedded; list order is display order, newest last.
    Image fields are opaque references produced by the media layer.
    """
    id: str = Field(default_factory=lambda: new_id("post"))
    user_id: str
    username: str
    display_name: str
    user_avatar: Optional[str] = None
    front_image: str
    back_image: str
    timestamp: datetime
    location: Optional[PostLocation] = None
    is_late: bool = False
    late_minutes: int = 0
    likes: List[Like] = Field(default_factory=list)
    comments: List[Comment] = Field(default_factory=list)
    visibility: Visibility = Visibility.FRIENDS
    created_at: datetime
    updated_at: Optional[datetime] = None

    @validator('timestamp', 'created_at', 'updated_at')
    def timestamps_are_aware(cls, v):
        # Naive values are read as UTC so feeds never compare naive with aware
        return ensure_aware(v)

    def liked_by(self, user_id: str) -> bool:
        return any(like.user_id == user_id for like in self.likes)

    def __repr__(self):
        return f"<Post id={self.id} user={self.user_id} visibility={self.visibility.value}>"
