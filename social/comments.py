"""
Comments on posts and the replies embedded in them.

Only the author edits or deletes a comment or reply. Deleting a comment
deletes its replies.
"""

import logging

from django.db import transaction

from .coordinator import clean_text, ensure_owner
from .errors import InvalidRequest
from .models import Comment, Reply

logger = logging.getLogger(__name__)


def _require_text(text, what="Comment"):
    text = clean_text(text, 'text')
    if not text:
        raise InvalidRequest(f"{what} text is required")
    return text


def post_comments(post):
    return (
        Comment.objects.filter(post=post)
        .select_related('user')
        .prefetch_related('replies__user')
    )


def create_comment(user, post, text):
    text = _require_text(text)
    with transaction.atomic():
        comment = Comment.objects.create(user=user, post=post, text=text)
    logger.info(f"Comment {comment.id} added to post {post.id} by {user.username}")
    return comment


def update_comment(actor, comment, text):
    text = _require_text(text)
    ensure_owner(comment, actor, "You can only edit your own comments")
    comment.text = text
    comment.save(update_fields=['text', 'updated_at'])
    return comment


def delete_comment(actor, comment):
    ensure_owner(comment, actor, "You can only delete your own comments")
    comment_id = comment.id
    with transaction.atomic():
        comment.delete()
    logger.info(f"Comment {comment_id} deleted by {actor.username}")


def create_reply(user, comment, text):
    text = _require_text(text, "Reply")
    with transaction.atomic():
        reply = Reply.objects.create(comment=comment, user=user, text=text)
    return reply


def update_reply(actor, reply, text):
    text = _require_text(text, "Reply")
    ensure_owner(reply, actor, "You can only edit your own replies")
    reply.text = text
    reply.save(update_fields=['text', 'updated_at'])
    return reply


def delete_reply(actor, reply):
    ensure_owner(reply, actor, "You can only delete your own replies")
    reply.delete()
