"""
Follow and block relations between users.

Every operation is a precise set-add or set-remove inside one transaction.
Repeating an operation is a Conflict rather than a toggle. Because
``following``/``followers`` and ``block_list``/``blocked_by`` are the two
sides of a single many-to-many table, one write updates both users.
"""

import logging

from django.db import transaction

from .errors import Conflict, Forbidden, InvalidRequest

logger = logging.getLogger(__name__)


def _reject_self(actor, target, action):
    if actor.pk == target.pk:
        raise InvalidRequest(f"You cannot {action} yourself")


def ensure_not_blocked(actor, target, message=None):
    """Raise Forbidden if either user has blocked the other."""
    if actor.pk == target.pk:
        return
    if actor.has_blocked(target):
        raise Forbidden(message or "You have blocked this user")
    if target.has_blocked(actor):
        raise Forbidden(message or "This user has blocked you")


def follow(actor, target):
    _reject_self(actor, target, "follow")
    with transaction.atomic():
        if actor.has_blocked(target):
            raise Forbidden("You have blocked this user. Unblock them first to follow.")
        if target.has_blocked(actor):
            raise Forbidden("This user has blocked you. You cannot follow them.")
        if actor.is_following(target):
            raise Conflict("You are already following this user")
        actor.following.add(target)
    logger.info(f"{actor.username} followed {target.username}")


def unfollow(actor, target):
    _reject_self(actor, target, "unfollow")
    with transaction.atomic():
        if not actor.is_following(target):
            raise Conflict("You are not following this user")
        actor.following.remove(target)
    logger.info(f"{actor.username} unfollowed {target.username}")


def block(actor, target):
    """Block ``target`` and drop follow edges in both directions."""
    _reject_self(actor, target, "block")
    with transaction.atomic():
        if actor.has_blocked(target):
            raise Conflict("You have already blocked this user")
        actor.block_list.add(target)
        actor.following.remove(target)
        actor.followers.remove(target)
    logger.info(f"{actor.username} blocked {target.username}")


def unblock(actor, target):
    _reject_self(actor, target, "unblock")
    with transaction.atomic():
        if not actor.has_blocked(target):
            raise Conflict("You have not blocked this user")
        actor.block_list.remove(target)
    logger.info(f"{actor.username} unblocked {target.username}")


def blocked_users(actor):
    return actor.block_list.order_by('username')
