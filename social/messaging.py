"""
Direct-message conversations between two users.

A pair of users has at most one conversation. Starting a conversation
that already exists returns the existing one; when two requests race to
create the same pair, the unique constraint picks the winner and the loser
re-reads it.
"""

import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from .coordinator import clean_text
from .errors import Conflict, Forbidden, InvalidRequest, NotFound
from .models import Conversation, Message, User
from .relations import ensure_not_blocked

logger = logging.getLogger(__name__)


def ensure_participant(conversation, user):
    if not conversation.has_participant(user):
        raise Forbidden("You are not a participant in this conversation")


def start_conversation(actor, participant_id):
    """Return ``(conversation, created)`` for the actor and the participant."""
    if participant_id in (None, ''):
        raise InvalidRequest("participant_id is required")
    try:
        participant_id = int(participant_id)
    except (TypeError, ValueError):
        raise InvalidRequest("participant_id must be a user id")
    if participant_id == actor.pk:
        raise InvalidRequest("You cannot start a conversation with yourself")

    participant = User.objects.filter(pk=participant_id).first()
    if participant is None:
        raise NotFound("User not found")
    ensure_not_blocked(actor, participant, "You cannot message this user")

    existing = Conversation.objects.between(actor, participant).first()
    if existing is not None:
        return existing, False

    user_a, user_b = sorted((actor, participant), key=lambda u: u.pk)
    try:
        with transaction.atomic():
            conversation = Conversation.objects.create(user_a=user_a, user_b=user_b)
    except IntegrityError:
        logger.info(f"Conversation {user_a.pk}/{user_b.pk} created concurrently, reusing it")
        return Conversation.objects.between(actor, participant).get(), False

    logger.info(f"Conversation {conversation.id} started by {actor.username}")
    return conversation, True


def conversations_for(user):
    return (
        Conversation.objects.involving(user)
        .select_related('user_a', 'user_b', 'last_message')
        .order_by('-updated_at')
    )


def conversation_messages(conversation):
    return conversation.messages.order_by('created_at')


def send_message(actor, conversation, content):
    content = clean_text(content, 'text')
    if not content:
        raise InvalidRequest("Message text is required")
    ensure_participant(conversation, actor)
    ensure_not_blocked(actor, conversation.other_participant(actor), "You cannot message this user")

    with transaction.atomic():
        message = Message.objects.create(conversation=conversation, sender=actor, content=content)
        message.read_by.add(actor)
        conversation.last_message = message
        conversation.updated_at = timezone.now()
        conversation.save(update_fields=['last_message', 'updated_at'])
    return message


def mark_read(actor, message):
    ensure_participant(message.conversation, actor)
    if message.sender_id == actor.pk:
        raise InvalidRequest("You cannot mark your own message as read")
    with transaction.atomic():
        if message.read_by.filter(pk=actor.pk).exists():
            raise Conflict("Message already marked as read")
        message.read_by.add(actor)
    return message


def remove_conversation(conversation):
    with transaction.atomic():
        conversation.messages.all().delete()
        Conversation.objects.filter(pk=conversation.pk).delete()


def delete_conversation(actor, conversation):
    ensure_participant(conversation, actor)
    conversation_id = conversation.id
    remove_conversation(conversation)
    logger.info(f"Conversation {conversation_id} deleted by {actor.username}")
