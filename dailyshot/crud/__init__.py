from dailyshot.crud.user import (
    get_all_users,
    get_user,
    get_user_by_username,
    get_user_by_email,
    is_username_available,
    save_user,
    register_user,
    update_user,
    touch_last_active,
    delete_user,
    search_users,
)
from dailyshot.crud.stats import (
    compute_streak,
    update_user_stats,
    get_user_stats,
)
from dailyshot.crud.friends import FriendsCRUD
from dailyshot.crud.posts import (
    create_post,
    save_post,
    get_all_posts,
    get_post_by_id,
    get_user_posts,
    delete_post,
    update_post_visibility,
    has_posted_today,
    get_daily_post_id,
    get_todays_posts,
)
from dailyshot.crud.feed import (
    is_visible_to,
    can_see_post,
    get_feed_posts,
    get_discovery_posts,
    get_visible_user_posts,
)
from dailyshot.crud.engagement import (
    like_post,
    unlike_post,
    add_comment,
    delete_comment,
)

__all__ = [
    # User operations
    "get_all_users",
    "get_user",
    "get_user_by_username",
    "get_user_by_email",
    "is_username_available",
    "save_user",
    "register_user",
    "update_user",
    "touch_last_active",
    "delete_user",
    "search_users",

    # Stats
    "compute_streak",
    "update_user_stats",
    "get_user_stats",

    # Friends operations
    "FriendsCRUD",

    # Post operations
    "create_post",
    "save_post",
    "get_all_posts",
    "get_post_by_id",
    "get_user_posts",
    "delete_post",
    "update_post_visibility",
    "has_posted_today",
    "get_daily_post_id",
    "get_todays_posts",

    # Feed operations
    "is_visible_to",
    "can_see_post",
    "get_feed_posts",
    "get_discovery_posts",
    "get_visible_user_posts",

    # Engagement operations
    "like_post",
    "unlike_post",
    "add_comment",
    "delete_comment",
]
