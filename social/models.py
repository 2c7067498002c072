"""
================================================================================
SOCIAL API - DATABASE MODELS
================================================================================

@file        models.py
@description Django ORM models for users, posts, comments, stories and DMs

MODULE PURPOSE
================================================================================
This module defines the seven record types of the social API:
- User (extended from AbstractUser) with follow and block relations
- Post with an ordered list of media identifiers
- Comment and its embedded Reply rows
- Story (expires 24 hours after creation)
- Conversation (exactly two participants) and Message

REFERENCE POLICY
================================================================================
References between records are weak: foreign keys to users, posts,
comments and conversations use ``on_delete=DO_NOTHING`` without a database
constraint, the same way a document store keeps plain ids. Nothing cascades
on its own; ``social.coordinator`` removes dependent records explicitly.

The only owned relation is Reply -> Comment (replies live inside their
comment and disappear with it).

"Array of users" fields (likes, followers, following, block list, read by)
are ManyToMany relations, so both sides of a follow are one row:

User (N) <─────> (N) User      following / followers
User (N) <─────> (N) User      block_list / blocked_by
Post | Comment | Reply | Story (N) <──> (N) User   likes
Message (N) <──> (N) User      read_by

MEDIA
================================================================================
Posts and stories store Cloudinary public ids in a JSON list (newest
uploads first, at most SOCIAL_MAX_IMAGES). Users store one id per profile
image slot (profile, cover) next to its URL.

================================================================================
"""

from django.conf import settings
from django.contrib.auth.models import AbstractUser, UserManager
from django.db import models
from django.db.models import Q
from django.utils import timezone


def weak_reference(to, related_name, **kwargs):
    """Foreign key that behaves like a stored id: no constraint, no cascade."""
    return models.ForeignKey(
        to,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name=related_name,
        **kwargs,
    )


# ============================================================================
# SECTION 1: USERS
# ============================================================================

class SocialUserManager(UserManager):

    def search(self, query):
        return self.filter(
            Q(username__icontains=query) | Q(full_name__icontains=query)
        ).order_by('username')


class User(AbstractUser):
    """
    Account with profile fields and social relations.

    Attributes:
        email (EmailField): Unique, stored lower-cased
        full_name (CharField): Display name
        bio (TextField): Profile biography
        profile_picture / cover_picture (URLField): Public image URLs
        profile_picture_id / cover_picture_id (CharField): Media identifiers
        following (ManyToManyField): Users this user follows
        block_list (ManyToManyField): Users this user blocked

    Related Names:
        followers: Users following this user
        blocked_by: Users who blocked this user
        posts, stories, comments, replies: Owned content
    """

    email = models.EmailField(
        unique=True,
        help_text="Login e-mail, stored lower-cased"
    )
    full_name = models.CharField(
        max_length=150,
        help_text="Display name"
    )
    bio = models.TextField(
        max_length=500,
        blank=True,
        help_text="Profile biography"
    )

    # --- Profile images (URL + media identifier per slot) ---
    profile_picture = models.URLField(max_length=500, blank=True)
    profile_picture_id = models.CharField(max_length=255, blank=True)
    cover_picture = models.URLField(max_length=500, blank=True)
    cover_picture_id = models.CharField(max_length=255, blank=True)

    # --- Social relations ---
    following = models.ManyToManyField(
        'self',
        symmetrical=False,
        blank=True,
        related_name='followers',
        help_text="Users this user follows"
    )
    block_list = models.ManyToManyField(
        'self',
        symmetrical=False,
        blank=True,
        related_name='blocked_by',
        help_text="Users this user has blocked"
    )

    updated_at = models.DateTimeField(auto_now=True)

    REQUIRED_FIELDS = ['email', 'full_name']

    objects = SocialUserManager()

    def has_blocked(self, other):
        return self.block_list.filter(pk=other.pk).exists()

    def is_following(self, other):
        return self.following.filter(pk=other.pk).exists()

    def image_slot(self, image_type):
        """Return the (url field, id field) names for 'profile' or 'cover'."""
        if image_type == 'cover':
            return 'cover_picture', 'cover_picture_id'
        return 'profile_picture', 'profile_picture_id'

    @property
    def media_ids(self):
        return [mid for mid in (self.profile_picture_id, self.cover_picture_id) if mid]


# ============================================================================
# SECTION 2: POSTS
# ============================================================================

class Post(models.Model):
    """
    User post with a caption and up to SOCIAL_MAX_IMAGES images.

    Attributes:
        user (ForeignKey): Owner (weak reference)
        caption (TextField): Required caption
        images (JSONField): Ordered media identifiers, newest upload first
        likes (ManyToManyField): Users who liked the post

    Related Names:
        comments: Comments attached to this post
    """

    user = weak_reference(User, 'posts', help_text="Author of this post")
    caption = models.TextField(help_text="Post caption")
    images = models.JSONField(default=list, blank=True, help_text="Media identifiers")
    likes = models.ManyToManyField(User, related_name='liked_posts', blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.user_id} - {self.caption[:50]}"


# ============================================================================
# SECTION 3: COMMENTS & REPLIES
# ============================================================================

class Comment(models.Model):
    user = weak_reference(User, 'comments', help_text="Comment author")
    post = weak_reference(Post, 'comments', help_text="Post being commented on")
    text = models.TextField()
    likes = models.ManyToManyField(User, related_name='liked_comments', blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['created_at']


class Reply(models.Model):
    """Reply embedded in a comment; deleted together with it."""

    comment = models.ForeignKey(
        Comment,
        on_delete=models.CASCADE,
        related_name='replies',
        help_text="Comment this reply belongs to"
    )
    user = weak_reference(User, 'replies', help_text="Reply author")
    text = models.TextField()
    likes = models.ManyToManyField(User, related_name='liked_replies', blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['created_at']
        verbose_name_plural = 'replies'


# ============================================================================
# SECTION 4: STORIES
# ============================================================================

class StoryQuerySet(models.QuerySet):

    def cutoff(self):
        return timezone.now() - settings.SOCIAL_STORY_TTL

    def active(self):
        return self.filter(created_at__gt=self.cutoff())

    def expired(self):
        return self.filter(created_at__lte=self.cutoff())


class Story(models.Model):
    """
    Short-lived post: text and/or images, gone SOCIAL_STORY_TTL after creation.

    Reads go through ``Story.objects.active()``; the
    ``purge_expired_stories`` command removes expired rows and their media.
    """

    user = weak_reference(User, 'stories')
    text = models.TextField(blank=True)
    images = models.JSONField(default=list, blank=True)
    likes = models.ManyToManyField(User, related_name='liked_stories', blank=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    objects = StoryQuerySet.as_manager()

    class Meta:
        ordering = ['-created_at']
        verbose_name_plural = 'stories'

    @property
    def expires_at(self):
        return self.created_at + settings.SOCIAL_STORY_TTL


# ============================================================================
# SECTION 5: MESSAGING
# ============================================================================

class ConversationQuerySet(models.QuerySet):

    def involving(self, user):
        return self.filter(Q(user_a=user) | Q(user_b=user))

    def between(self, first, second):
        user_a, user_b = sorted((first, second), key=lambda u: u.pk)
        return self.filter(user_a=user_a, user_b=user_b)


class Conversation(models.Model):
    """
    Direct-message thread between exactly two users.

    The participant pair is stored normalised (user_a has the lower id) and
    is unique, so there is at most one conversation per pair.
    """

    user_a = weak_reference(User, '+')
    user_b = weak_reference(User, '+')
    last_message = models.ForeignKey(
        'Message',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ConversationQuerySet.as_manager()

    class Meta:
        ordering = ['-updated_at']
        constraints = [
            models.UniqueConstraint(fields=['user_a', 'user_b'], name='unique_participant_pair'),
        ]

    def __str__(self):
        return f"DM #{self.id}"

    @property
    def participants(self):
        return [self.user_a, self.user_b]

    @property
    def participant_ids(self):
        return [self.user_a_id, self.user_b_id]

    def has_participant(self, user):
        return user.pk in self.participant_ids

    def other_participant(self, user):
        return self.user_b if user.pk == self.user_a_id else self.user_a


class Message(models.Model):
    conversation = weak_reference(Conversation, 'messages')
    sender = weak_reference(User, 'sent_messages')
    content = models.TextField()
    read_by = models.ManyToManyField(User, related_name='read_messages', blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['created_at']

    def __str__(self):
        return f"[Room {self.conversation_id}] {self.sender_id}: {self.content[:30]}"
