"""
================================================================================
HEARTH - URL CONFIGURATION
================================================================================

@file        urls.py
@description URL routing for the JSON API (mounted under /api/)

URL STRUCTURE OVERVIEW
================================================================================
1. Accounts        : users/register, users/login, auth/verify, users/...
2. Friends         : users/list, users/requests/..., users/friend-request/...
3. Conversations   : conversations/, conversations/<id>/messages, ...
4. Messages        : conversations/message/<id>, conversations/message/<id>/read
5. Groups          : conversations/group/...
6. Posts & Feed    : posts/, posts/feed, posts/<id>, posts/<id>/like, ...

URL TESTING EXAMPLES
================================================================================
from django.urls import reverse

reverse('conversation_messages', kwargs={'conversation_id': 5})
    # '/api/conversations/5/messages'
reverse('toggle_like', kwargs={'post_id': 123})
    # '/api/posts/123/like'

================================================================================
"""

from django.urls import path

from . import views


# ============================================================================
# URL PATTERNS DEFINITION
# ============================================================================

urlpatterns = [

    # ========================================================================
    # SECTION 1: ACCOUNTS & AUTHENTICATION
    # ========================================================================

    path("users/register", views.register, name="register"),
    path("users/login", views.login_view, name="login"),
    path("auth/verify", views.verify_token, name="verify_token"),
    path("users/", views.list_users, name="list_users"),
    path("users/username/<str:username>", views.user_by_username, name="user_by_username"),
    path("users/profile/<str:username>", views.profile, name="profile"),
    path("users/update", views.update_account, name="update_account"),
    path("users/update-bio", views.update_bio, name="update_bio"),
    path("users/update-pfp", views.update_profile_picture, name="update_profile_picture"),
    path("users/<int:user_id>", views.delete_account, name="delete_account"),

    # ========================================================================
    # SECTION 2: FRIENDS
    # ========================================================================

    path("users/list", views.friend_list, name="friend_list"),
    path("users/requests/incoming", views.incoming_requests, name="incoming_requests"),
    path("users/requests/outgoing", views.outgoing_requests, name="outgoing_requests"),
    path("users/friend-request/<str:username>", views.send_friend_request, name="send_friend_request"),
    path("users/accept-friend/<str:username>", views.accept_friend_request, name="accept_friend_request"),
    path("users/decline-friend/<str:username>", views.decline_friend_request, name="decline_friend_request"),
    path("users/remove-friend/<str:username>", views.remove_friend, name="remove_friend"),

    # ========================================================================
    # SECTION 3: CONVERSATIONS
    # ========================================================================
    # Clients poll the list and <id>/messages?after=<id> for new messages

    path("conversations/", views.conversation_list, name="conversation_list"),
    path("conversations/start", views.start_conversation, name="start_conversation"),
    path("conversations/send", views.send_message, name="send_message"),
    path("conversations/send-image", views.send_image, name="send_image"),
    path("conversations/send-video", views.send_video, name="send_video"),
    path("conversations/search-for-friends", views.search_friends, name="search_friends"),
    path(
        "conversations/with/<str:username>/messages",
        views.messages_with_user,
        name="messages_with_user"
    ),
    path(
        "conversations/<int:conversation_id>/messages",
        views.conversation_messages,
        name="conversation_messages"
    ),  # GET page / POST send
    path(
        "conversations/<int:conversation_id>/read",
        views.mark_conversation_read,
        name="mark_conversation_read"
    ),
    path("conversations/<int:conversation_id>", views.delete_conversation, name="delete_conversation"),

    # ========================================================================
    # SECTION 4: MESSAGES
    # ========================================================================

    path("conversations/message/<int:message_id>/read", views.mark_message_read, name="mark_message_read"),
    path("conversations/message/<int:message_id>", views.message_detail, name="message_detail"),  # PUT edit / DELETE

    # ========================================================================
    # SECTION 5: GROUPS
    # ========================================================================

    path("conversations/group/create", views.create_group, name="create_group"),
    path(
        "conversations/group/<int:conversation_id>/participants",
        views.group_participants,
        name="group_participants"
    ),
    path(
        "conversations/group/<int:conversation_id>/add-participants",
        views.add_group_participants,
        name="add_group_participants"
    ),
    path(
        "conversations/group/<int:conversation_id>/remove/<str:username>",
        views.remove_group_participant,
        name="remove_group_participant"
    ),
    path("conversations/group/<int:conversation_id>/leave", views.leave_group, name="leave_group"),
    path("conversations/group/<int:conversation_id>/name", views.rename_group, name="rename_group"),

    # ========================================================================
    # SECTION 6: POSTS & FEED
    # ========================================================================

    path("posts/", views.create_post, name="create_post"),
    path("posts/feed", views.feed_view, name="feed"),
    path("posts/mine", views.my_posts, name="my_posts"),
    path("posts/<int:post_id>", views.post_detail, name="post_detail"),  # GET / PATCH / DELETE
    path("posts/<int:post_id>/visibility", views.post_visibility, name="post_visibility"),
    path("posts/<int:post_id>/comments", views.add_comment, name="add_comment"),
    path(
        "posts/<int:post_id>/comments/<int:comment_id>",
        views.delete_comment,
        name="delete_comment"
    ),
    path("posts/<int:post_id>/like", views.toggle_like, name="toggle_like"),
]
