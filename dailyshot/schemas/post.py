from pydantic import BaseModel, Field
from typing import Optional

from dailyshot.models.post import Post, PostLocation, Visibility


class CreatePostData(BaseModel):
    """Schema for a new daily post. Images are opaque media references."""
    front_image: str = Field(..., min_length=1)
    back_image: str = Field(..., min_length=1)
    location: Optional[PostLocation] = None
    visibility: Optional[Visibility] = None
    is_late: bool = False
    late_minutes: int = Field(0, ge=0)


class PostError:
    USER_NOT_FOUND = "user_not_found"
    ALREADY_POSTED_TODAY = "already_posted_today"


class CreatePostResult(BaseModel):
    """Outcome of create_post. A gate rejection is a normal result, not an error."""
    success: bool
    post: Optional[Post] = None
    error: Optional[str] = None

    @property
    def already_posted_today(self) -> bool:
        return self.error == PostError.ALREADY_POSTED_TODAY
