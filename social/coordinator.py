"""
================================================================================
SOCIAL API - CONSISTENCY COORDINATOR
================================================================================

@file        coordinator.py
@description Create/update/delete protocols for media-bearing records

MODULE PURPOSE
================================================================================
Posts, stories and profiles span two stores: rows in the database and image
assets in the media store. The database has transactions, the media store
does not. This module orders the steps so that a failure leaves neither
dangling rows nor (as far as possible) orphaned assets:

CREATE (post, story)
    validate fields -> validate files -> upload (batch) -> insert
    insert fails    -> every uploaded id gets a compensating delete

UPDATE (post, story, profile image)
    at least one change -> owner check -> delete list belongs to record
    -> kept + new within the ceiling -> delete old media (best-effort)
    -> upload new (batch, prepended) -> save
    save fails -> new uploads are discarded; old media stays deleted

DELETE (post, story, user)
    one transaction removes the record and everything that references it;
    media ids are purged from the store after commit
    (SOCIAL_PURGE_MEDIA_ON_DELETE)

LIKES
    like twice / unlike without a like -> Conflict, never a silent toggle

================================================================================
"""

import logging

from django.conf import settings
from django.contrib.auth.validators import UnicodeUsernameValidator
from django.core.exceptions import ValidationError
from django.core.validators import validate_email
from django.db import transaction
from django.db.models import Q

from .errors import Conflict, Forbidden, InvalidRequest
from .media import MediaBatch, discard_media, validate_image, validate_images
from .models import Comment, Conversation, Message, Post, Reply, Story, User

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ('username', 'full_name', 'bio', 'email')
IMAGE_TYPES = ('profile', 'cover')


# ============================================================================
# HELPERS
# ============================================================================

def ensure_owner(record, actor, message="You are not allowed to modify this"):
    if record.user_id != actor.pk:
        raise Forbidden(message)


def clean_text(value, field, strip=True):
    """Return a request value as a string; None becomes ''."""
    if value is None:
        return ''
    if not isinstance(value, str):
        raise InvalidRequest(f"{field} must be a string")
    return value.strip() if strip else value


def parse_delete_list(raw):
    """
    Accept "id1,id2" or ["id1", "id2"]; drop blanks and duplicates, keep order.
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        raw = raw.split(',')
    elif not isinstance(raw, (list, tuple)):
        raise InvalidRequest("delete_images must be a comma separated string or a list of ids")
    seen = []
    for item in raw:
        item = clean_text(item, "delete_images")
        if item and item not in seen:
            seen.append(item)
    return seen


def purge_media_after_commit(media_ids):
    media_ids = [media_id for media_id in media_ids if media_id]
    if not media_ids or not settings.SOCIAL_PURGE_MEDIA_ON_DELETE:
        return
    transaction.on_commit(lambda: discard_media(media_ids, parallel=True))


def _apply_media_delta(record, delete_ids, files, extra_check=None):
    """
    Validate a delete list and new files against ``record.images``.

    Returns the kept identifiers. Nothing external has happened yet when
    this raises.
    """
    unknown = [media_id for media_id in delete_ids if media_id not in record.images]
    if unknown:
        raise InvalidRequest(f"Images not attached to this {record._meta.verbose_name}: {', '.join(unknown)}")

    kept = [media_id for media_id in record.images if media_id not in delete_ids]
    if extra_check is not None:
        extra_check(kept)
    validate_images(files, kept=len(kept))
    return kept


def _save_with_media(record, kept, delete_ids, files, changes):
    discard_media(delete_ids, parallel=True)

    with MediaBatch() as batch:
        new_ids = batch.upload_all(files)
        record.images = new_ids + kept
        for field, value in changes.items():
            setattr(record, field, value)
        with transaction.atomic():
            record.save()
    return record


# ============================================================================
# POSTS
# ============================================================================

def create_post(user, caption, files=()):
    caption = clean_text(caption, 'caption')
    if not caption:
        raise InvalidRequest("Caption is required")
    files = list(files)
    validate_images(files)

    with MediaBatch() as batch:
        media_ids = batch.upload_all(files)
        with transaction.atomic():
            post = Post.objects.create(user=user, caption=caption, images=media_ids)

    logger.info(f"Post {post.id} created by {user.username} with {len(media_ids)} image(s)")
    return post


def update_post(actor, post, caption=None, delete_images=None, files=()):
    caption = clean_text(caption, 'caption')
    delete_ids = parse_delete_list(delete_images)
    files = list(files)
    if not caption and not delete_ids and not files:
        raise InvalidRequest("Nothing to update")
    ensure_owner(post, actor, "You can only update your own posts")

    kept = _apply_media_delta(post, delete_ids, files)
    changes = {'caption': caption} if caption else {}
    _save_with_media(post, kept, delete_ids, files, changes)

    logger.info(f"Post {post.id} updated: -{len(delete_ids)} +{len(files)} image(s)")
    return post


def remove_post(post):
    """Delete a post with its comments; its media is purged after commit."""
    media_ids = list(post.images)

    with transaction.atomic():
        Comment.objects.filter(post_id=post.id).delete()
        post.delete()
        purge_media_after_commit(media_ids)


def delete_post(actor, post):
    ensure_owner(post, actor, "You can only delete your own posts")
    post_id = post.id
    remove_post(post)
    logger.info(f"Post {post_id} deleted by {actor.username}")


# ============================================================================
# STORIES
# ============================================================================

def create_story(user, text=None, files=()):
    text = clean_text(text, 'text')
    files = list(files)
    if not text and not files:
        raise InvalidRequest("A story needs text or at least one image")
    validate_images(files)

    with MediaBatch() as batch:
        media_ids = batch.upload_all(files)
        with transaction.atomic():
            story = Story.objects.create(user=user, text=text, images=media_ids)

    logger.info(f"Story {story.id} created by {user.username}")
    return story


def update_story(actor, story, text=None, delete_images=None, files=()):
    text = clean_text(text, 'text')
    delete_ids = parse_delete_list(delete_images)
    files = list(files)
    if not text and not delete_ids and not files:
        raise InvalidRequest("Nothing to update")
    ensure_owner(story, actor, "You can only update your own stories")

    def _not_empty(kept):
        if not (text or story.text) and not kept and not files:
            raise InvalidRequest("A story needs text or at least one image")

    kept = _apply_media_delta(story, delete_ids, files, extra_check=_not_empty)
    changes = {'text': text} if text else {}
    _save_with_media(story, kept, delete_ids, files, changes)

    logger.info(f"Story {story.id} updated: -{len(delete_ids)} +{len(files)} image(s)")
    return story


def remove_story(story):
    media_ids = list(story.images)

    with transaction.atomic():
        story.delete()
        purge_media_after_commit(media_ids)


def delete_story(actor, story):
    ensure_owner(story, actor, "You can only delete your own stories")
    story_id = story.id
    remove_story(story)
    logger.info(f"Story {story_id} deleted by {actor.username}")


# ============================================================================
# PROFILE
# ============================================================================

def _clean_profile_fields(target, data):
    changes = {}
    for field in PROFILE_FIELDS:
        value = data.get(field)
        if value is None:
            continue
        value = clean_text(value, field)
        if field in ('username', 'email'):
            value = value.lower()
        if not value and field != 'bio':
            raise InvalidRequest(f"{field} cannot be blank")
        if value != getattr(target, field):
            changes[field] = value

    try:
        if 'username' in changes:
            UnicodeUsernameValidator()(changes['username'])
        if 'email' in changes:
            validate_email(changes['email'])
    except ValidationError as e:
        raise InvalidRequest(e.messages[0]) from e

    others = User.objects.exclude(pk=target.pk)
    if 'username' in changes and others.filter(username__iexact=changes['username']).exists():
        raise Conflict("Username is already taken")
    if 'email' in changes and others.filter(email__iexact=changes['email']).exists():
        raise Conflict("Email is already registered")
    return changes


def update_profile(actor, target, data, image=None, image_type=None):
    """
    Update profile fields and, optionally, replace the profile or cover image.

    The old image of the slot is deleted before the new one is uploaded; if
    saving fails afterwards only the new upload is compensated.
    """
    image_type = clean_text(image_type, 'image_type').lower() or 'profile'
    has_fields = any(data.get(field) is not None for field in PROFILE_FIELDS)
    if not has_fields and image is None:
        raise InvalidRequest("Nothing to update")
    if actor.pk != target.pk:
        raise Forbidden("You can only update your own account")
    if image_type not in IMAGE_TYPES:
        raise InvalidRequest("image_type must be 'profile' or 'cover'")

    changes = _clean_profile_fields(target, data)
    if image is not None:
        validate_image(image)

    url_field, id_field = target.image_slot(image_type)
    if image is not None:
        discard_media([getattr(target, id_field)])

    with MediaBatch() as batch:
        if image is not None:
            media = batch.upload(image)
            changes[url_field] = media.url
            changes[id_field] = media.media_id
        for field, value in changes.items():
            setattr(target, field, value)
        with transaction.atomic():
            target.save()

    logger.info(f"Profile of {target.username} updated: {', '.join(sorted(changes)) or 'no changes'}")
    return target


# ============================================================================
# CASCADING USER DELETE
# ============================================================================

def remove_user(target):
    """
    Delete a user and everything that points at them, in one transaction.

    Order:
        1. posts owned by the user
        2. comments by the user or on those posts (replies go with them),
           and the user's replies elsewhere
        3. the user's likes on comments and replies
        4. stories owned by the user
        5. follow and block edges in both directions
        6. the user's likes on posts and stories, message read receipts
        7. conversations the user takes part in, with their messages
        8. the user
    """
    username = target.username
    media_ids = list(target.media_ids)

    with transaction.atomic():
        posts = Post.objects.filter(user=target)
        post_ids = list(posts.values_list('id', flat=True))
        for images in posts.values_list('images', flat=True):
            media_ids.extend(images)
        posts.delete()

        Comment.objects.filter(Q(user=target) | Q(post_id__in=post_ids)).delete()
        Reply.objects.filter(user=target).delete()

        Comment.likes.through.objects.filter(user=target).delete()
        Reply.likes.through.objects.filter(user=target).delete()

        stories = Story.objects.filter(user=target)
        for images in stories.values_list('images', flat=True):
            media_ids.extend(images)
        stories.delete()

        User.following.through.objects.filter(Q(from_user=target) | Q(to_user=target)).delete()
        User.block_list.through.objects.filter(Q(from_user=target) | Q(to_user=target)).delete()

        Post.likes.through.objects.filter(user=target).delete()
        Story.likes.through.objects.filter(user=target).delete()
        Message.read_by.through.objects.filter(user=target).delete()

        conversation_ids = list(Conversation.objects.involving(target).values_list('id', flat=True))
        Message.objects.filter(conversation_id__in=conversation_ids).delete()
        Conversation.objects.filter(id__in=conversation_ids).delete()

        target.delete()
        purge_media_after_commit(media_ids)

    logger.info(
        f"User {username} deleted with {len(post_ids)} post(s) and "
        f"{len(conversation_ids)} conversation(s)"
    )


def delete_user(actor, target):
    if actor.pk != target.pk:
        raise Forbidden("You can only delete your own account")
    remove_user(target)


# ============================================================================
# LIKES
# ============================================================================

def like(record, user):
    """Add ``user`` to the record's likers; Post, Comment, Reply or Story."""
    label = record._meta.verbose_name
    with transaction.atomic():
        if record.likes.filter(pk=user.pk).exists():
            raise Conflict(f"You have already liked this {label}")
        record.likes.add(user)
    return record


def unlike(record, user):
    label = record._meta.verbose_name
    with transaction.atomic():
        if not record.likes.filter(pk=user.pk).exists():
            raise Conflict(f"You have not liked this {label}")
        record.likes.remove(user)
    return record
