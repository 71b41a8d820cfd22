from dailyshot.models.user import User, UserSettings, ProfileVisibility
from dailyshot.models.friend import FriendRequest, FriendRequestStatus, Friendship, FriendshipStatus, Block
from dailyshot.models.post import Post, PostLocation, Like, Comment, Visibility

__all__ = [
    "User", "UserSettings", "ProfileVisibility",
    "FriendRequest", "FriendRequestStatus", "Friendship", "FriendshipStatus", "Block",
    "Post", "PostLocation", "Like", "Comment", "Visibility",
]
