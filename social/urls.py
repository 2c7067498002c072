"""
================================================================================
SOCIAL API - URL CONFIGURATION
================================================================================

@file        urls.py
@description REST routes of the social app, mounted under /api/

URL STRUCTURE OVERVIEW
================================================================================
1. Authentication (register, login, logout, refetch)
2. Users & Relations (profile, update, follow, block, search, delete)
3. Posts (create, read, update, delete, like)
4. Comments & Replies
5. Stories
6. Conversations & Messages

NAMING CONVENTIONS
================================================================================
URL names match the view function names. Literal segments (create, update,
delete, like, ...) are listed before the bare <int:...> detail routes.

URL PARAMETER TYPES
================================================================================
- <int:user_id>, <int:post_id>, <int:comment_id>, <int:reply_id>,
  <int:story_id>, <int:conversation_id>, <int:message_id>: primary keys
- <str:query>: free-text user search

SECURITY CONSIDERATIONS
================================================================================
- Every route except login, register, logout and single post requires a
  session (401 JSON otherwise)
- Ownership / participant checks happen in the service layer (403)
- HTTP methods are enforced per view (405)

================================================================================
"""

from django.urls import path

from . import views


# ============================================================================
# URL PATTERNS DEFINITION
# ============================================================================

urlpatterns = [

    # ========================================================================
    # SECTION 1: AUTHENTICATION
    # ========================================================================
    # Registration, session login/logout and current user

    path(
        "auth/register",
        views.register,
        name="register"
    ),  # New account

    path(
        "auth/login",
        views.login_view,
        name="login"
    ),  # Username or email + password, sets session cookie

    path(
        "auth/logout",
        views.logout_view,
        name="logout"
    ),  # Clears the session

    path(
        "auth/refetch",
        views.refetch,
        name="refetch"
    ),  # Current user's private profile


    # ========================================================================
    # SECTION 2: USERS & RELATIONS
    # ========================================================================
    # Profiles, follow/block toggles, search and account deletion

    path(
        "user/blocklist",
        views.block_list,
        name="block_list"
    ),  # Users I have blocked

    path(
        "user/search/<str:query>",
        views.search_users,
        name="search_users"
    ),  # Search by username or full name

    path(
        "user/update/<int:user_id>",
        views.update_user,
        name="update_user"
    ),  # PUT: profile fields + profile/cover image

    path(
        "user/follow/<int:user_id>",
        views.follow_user,
        name="follow_user"
    ),  # Follow

    path(
        "user/unfollow/<int:user_id>",
        views.unfollow_user,
        name="unfollow_user"
    ),  # Unfollow

    path(
        "user/block/<int:user_id>",
        views.block_user,
        name="block_user"
    ),  # Block (drops follow edges both ways)

    path(
        "user/unblock/<int:user_id>",
        views.unblock_user,
        name="unblock_user"
    ),  # Unblock

    path(
        "user/delete/<int:user_id>",
        views.delete_user,
        name="delete_user"
    ),  # DELETE: cascading account delete

    path(
        "user/<int:user_id>",
        views.get_user,
        name="get_user"
    ),  # Public profile


    # ========================================================================
    # SECTION 3: POSTS
    # ========================================================================
    # Post CRUD with images, likes

    path(
        "post/create",
        views.create_post,
        name="create_post"
    ),  # Multipart: caption + images[]

    path(
        "post/user/<int:user_id>",
        views.user_posts,
        name="user_posts"
    ),  # Posts of one user

    path(
        "post/update/<int:post_id>",
        views.update_post,
        name="update_post"
    ),  # PUT: caption, delete_images, images[]

    path(
        "post/delete/<int:post_id>",
        views.delete_post,
        name="delete_post"
    ),  # DELETE: post, its comments, its media

    path(
        "post/like/<int:post_id>",
        views.like_post,
        name="like_post"
    ),  # Like

    path(
        "post/dislike/<int:post_id>",
        views.dislike_post,
        name="dislike_post"
    ),  # Remove like

    path(
        "post/<int:post_id>",
        views.get_post,
        name="get_post"
    ),  # Single post (public)


    # ========================================================================
    # SECTION 4: COMMENTS & REPLIES
    # ========================================================================
    # Comments on posts and their embedded replies

    path(
        "comment/post/<int:post_id>",
        views.post_comments,
        name="post_comments"
    ),  # GET list / POST create

    path(
        "comment/reply/<int:comment_id>",
        views.create_reply,
        name="create_reply"
    ),  # Add reply

    path(
        "comment/reply/<int:comment_id>/<int:reply_id>",
        views.reply_detail,
        name="reply_detail"
    ),  # PUT edit / DELETE reply

    path(
        "comment/like/reply/<int:comment_id>/<int:reply_id>",
        views.like_reply,
        name="like_reply"
    ),  # Like reply

    path(
        "comment/dislike/reply/<int:comment_id>/<int:reply_id>",
        views.dislike_reply,
        name="dislike_reply"
    ),  # Remove reply like

    path(
        "comment/like/<int:comment_id>",
        views.like_comment,
        name="like_comment"
    ),  # Like comment

    path(
        "comment/dislike/<int:comment_id>",
        views.dislike_comment,
        name="dislike_comment"
    ),  # Remove comment like

    path(
        "comment/<int:comment_id>",
        views.comment_detail,
        name="comment_detail"
    ),  # PUT edit / DELETE comment


    # ========================================================================
    # SECTION 5: STORIES
    # ========================================================================
    # 24-hour stories

    path(
        "story/create/<int:user_id>",
        views.create_story,
        name="create_story"
    ),  # Multipart: text and/or images[]

    path(
        "story/user/<int:user_id>",
        views.user_stories,
        name="user_stories"
    ),  # Active stories of one user

    path(
        "story/update/<int:story_id>",
        views.update_story,
        name="update_story"
    ),  # PUT: text, delete_images, images[]

    path(
        "story/delete/<int:story_id>",
        views.delete_story,
        name="delete_story"
    ),  # DELETE: story and its media

    path(
        "story/like/<int:story_id>",
        views.like_story,
        name="like_story"
    ),  # Like

    path(
        "story/unlike/<int:story_id>",
        views.unlike_story,
        name="unlike_story"
    ),  # Remove like

    path(
        "story/<int:story_id>",
        views.get_story,
        name="get_story"
    ),  # Single active story


    # ========================================================================
    # SECTION 6: CONVERSATIONS & MESSAGES
    # ========================================================================
    # Direct messages between two users

    path(
        "conversation/",
        views.conversation_list,
        name="conversation_list"
    ),  # My conversations, most recent first

    path(
        "conversation/start",
        views.start_conversation,
        name="start_conversation"
    ),  # Start or reuse (participant_id)

    path(
        "conversation/message/<int:message_id>/read",
        views.mark_message_read,
        name="mark_message_read"
    ),  # Mark read

    path(
        "conversation/<int:conversation_id>/message",
        views.send_message,
        name="send_message"
    ),  # Send message

    path(
        "conversation/<int:conversation_id>",
        views.conversation_detail,
        name="conversation_detail"
    ),  # GET with messages / DELETE

]
