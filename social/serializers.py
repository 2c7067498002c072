"""
JSON shapes returned by the API.

Plain functions from model instances to dicts; media identifiers are
expanded into {"id", "url"} pairs so clients can send ids back in
``delete_images``.
"""

from .media import media_urls


def user_summary(user):
    return {
        "id": user.id,
        "username": user.username,
        "full_name": user.full_name,
        "profile_picture": user.profile_picture,
    }


def user_profile(user, private=False):
    data = {
        "id": user.id,
        "username": user.username,
        "full_name": user.full_name,
        "bio": user.bio,
        "profile_picture": user.profile_picture,
        "cover_picture": user.cover_picture,
        "followers": list(user.followers.values_list("id", flat=True)),
        "following": list(user.following.values_list("id", flat=True)),
        "posts": list(user.posts.values_list("id", flat=True)),
        "date_joined": user.date_joined.isoformat(),
    }
    if private:
        # Only the account owner sees these
        data["email"] = user.email
        data["block_list"] = list(user.block_list.values_list("id", flat=True))
        data["profile_picture_id"] = user.profile_picture_id
        data["cover_picture_id"] = user.cover_picture_id
    return data


def _liker_ids(obj):
    return list(obj.likes.values_list("id", flat=True))


def post(post):
    return {
        "id": post.id,
        "user": user_summary(post.user),
        "caption": post.caption,
        "images": media_urls(post.images),
        "likes": _liker_ids(post),
        "comments": list(post.comments.values_list("id", flat=True)),
        "created_at": post.created_at.isoformat(),
        "updated_at": post.updated_at.isoformat(),
    }


def reply(reply):
    return {
        "id": reply.id,
        "comment": reply.comment_id,
        "user": user_summary(reply.user),
        "text": reply.text,
        "likes": _liker_ids(reply),
        "created_at": reply.created_at.isoformat(),
        "updated_at": reply.updated_at.isoformat(),
    }


def comment(comment):
    return {
        "id": comment.id,
        "post": comment.post_id,
        "user": user_summary(comment.user),
        "text": comment.text,
        "likes": _liker_ids(comment),
        "replies": [reply(r) for r in comment.replies.all()],
        "created_at": comment.created_at.isoformat(),
        "updated_at": comment.updated_at.isoformat(),
    }


def story(story):
    return {
        "id": story.id,
        "user": user_summary(story.user),
        "text": story.text,
        "images": media_urls(story.images),
        "likes": _liker_ids(story),
        "created_at": story.created_at.isoformat(),
        "expires_at": story.expires_at.isoformat(),
    }


def message(message):
    return {
        "id": message.id,
        "conversation": message.conversation_id,
        "sender": message.sender_id,
        "text": message.content,
        "read_by": list(message.read_by.values_list("id", flat=True)),
        "created_at": message.created_at.isoformat(),
    }


def conversation(conversation, messages=None):
    data = {
        "id": conversation.id,
        "participants": [user_summary(u) for u in conversation.participants],
        "last_message": message(conversation.last_message) if conversation.last_message else None,
        "created_at": conversation.created_at.isoformat(),
        "updated_at": conversation.updated_at.isoformat(),
    }
    if messages is not None:
        data["messages"] = [message(m) for m in messages]
    return data
