from pydantic import BaseModel, EmailStr, validator
from typing import Optional
import re

from dailyshot.models.user import User, UserSettings

RESERVED_USERNAMES = ['admin', 'root', 'system', 'user', 'test', 'guest']


def validate_username_value(v: Optional[str]) -> Optional[str]:
    if v is not None:
        if len(v) < 3:
            raise ValueError('Username must be at least 3 characters long')
        if len(v) > 30:
            raise ValueError('Username must be at most 30 characters long')
        if not re.match(r'^[a-zA-Z0-9_]+$', v):
            raise ValueError('Username can only contain letters, numbers, and underscores')
        if v.lower() in RESERVED_USERNAMES:
            raise ValueError('Username is not allowed')
    return v


class CreateUserData(BaseModel):
    """Schema for registering a user"""
    username: str
    email: EmailStr
    display_name: str
    bio: Optional[str] = None

    @validator('username')
    def validate_username(cls, v):
        return validate_username_value(v)


class UserUpdate(BaseModel):
    """Schema for profile edits. Unset fields are left untouched."""
    username: Optional[str] = None
    display_name: Optional[str] = None
    bio: Optional[str] = None
    avatar: Optional[str] = None
    is_private: Optional[bool] = None
    settings: Optional[UserSettings] = None

    @validator('username')
    def validate_username(cls, v):
        return validate_username_value(v)


class UserResult(BaseModel):
    """Outcome of a registration or profile edit."""
    success: bool
    user: Optional[User] = None
    error: Optional[str] = None


class UserStats(BaseModel):
    user_id: str
    friends_count: int
    posts_count: int
    streak: int
    likes_received: int
    comments_received: int
