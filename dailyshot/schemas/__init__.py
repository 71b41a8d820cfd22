from dailyshot.schemas.user import CreateUserData, UserUpdate, UserResult, UserStats
from dailyshot.schemas.friends import FriendshipStatusValue, FriendRequestWithUser
from dailyshot.schemas.post import CreatePostData, CreatePostResult, PostError

__all__ = [
    "CreateUserData", "UserUpdate", "UserResult", "UserStats",
    "FriendshipStatusValue", "FriendRequestWithUser",
    "CreatePostData", "CreatePostResult", "PostError",
]
