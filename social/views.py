import json
import logging

from django.contrib.auth import authenticate, login, logout
from django.contrib.auth.password_validation import validate_password
from django.contrib.auth.validators import UnicodeUsernameValidator
from django.core.exceptions import ValidationError
from django.core.validators import validate_email
from django.db import transaction
from django.db.models import Q
from django.http import JsonResponse, QueryDict
from django.utils.datastructures import MultiValueDict
from django.views.decorators.csrf import csrf_exempt

from . import coordinator, comments, messaging, relations
from . import serializers
from .coordinator import clean_text
from .decorators import api_login_required, api_methods
from .errors import Conflict, Forbidden, InvalidRequest, NotAuthenticated, NotFound
from .middleware import error_response
from .models import Comment, Conversation, Message, Post, Reply, Story, User


# Logger
logger = logging.getLogger(__name__)


# ============================================================================
# REQUEST HELPERS
# ============================================================================

def _request_data(request):
    """
    Return ``(data, files)`` for JSON, urlencoded or multipart bodies.

    Django only parses form bodies for POST, so PUT multipart is parsed here.
    """
    content_type = request.content_type or ''

    if content_type.startswith('multipart/form-data'):
        if request.method == 'POST':
            return request.POST, request.FILES
        return request.parse_file_upload(request.META, request)

    if content_type == 'application/x-www-form-urlencoded':
        if request.method == 'POST':
            return request.POST, MultiValueDict()
        return QueryDict(request.body), MultiValueDict()

    if not request.body:
        return {}, MultiValueDict()
    try:
        data = json.loads(request.body)
    except ValueError:
        raise InvalidRequest("Invalid JSON body")
    if not isinstance(data, dict):
        raise InvalidRequest("Expected a JSON object")
    return data, MultiValueDict()


def _delete_list(data):
    if hasattr(data, 'getlist'):
        return ','.join(data.getlist('delete_images'))
    return data.get('delete_images')


def _get_or_404(queryset, message, **lookup):
    obj = queryset.filter(**lookup).first()
    if obj is None:
        raise NotFound(message)
    return obj


def _get_user(user_id):
    return _get_or_404(User.objects.all(), "User not found", pk=user_id)


def _get_post(post_id):
    return _get_or_404(Post.objects.select_related('user'), "Post not found", pk=post_id)


def _get_story(story_id):
    return _get_or_404(Story.objects.active().select_related('user'), "Story not found", pk=story_id)


def _get_comment(comment_id):
    return _get_or_404(Comment.objects.select_related('user'), "Comment not found", pk=comment_id)


def _get_reply(comment_id, reply_id):
    _get_comment(comment_id)
    return _get_or_404(Reply.objects.select_related('user'), "Reply not found", pk=reply_id, comment_id=comment_id)


def _get_conversation(conversation_id):
    return _get_or_404(
        Conversation.objects.select_related('user_a', 'user_b', 'last_message'),
        "Conversation not found",
        pk=conversation_id,
    )


# ============================================================================
# ERROR HANDLERS
# ============================================================================

def not_found(request, exception=None):
    return error_response("Not found", 404)


def server_error(request):
    return error_response("Something went wrong", 500)


# ============================================================================
# AUTH
# ============================================================================

@csrf_exempt
@api_methods(["POST"])
def register(request):
    data, _ = _request_data(request)
    username = clean_text(data.get('username'), 'username').lower()
    email = clean_text(data.get('email'), 'email').lower()
    password = clean_text(data.get('password'), 'password', strip=False)
    full_name = clean_text(data.get('full_name'), 'full_name')

    if not (username and email and password and full_name):
        raise InvalidRequest("username, email, password and full_name are required")

    try:
        UnicodeUsernameValidator()(username)
        validate_email(email)
        validate_password(password, user=User(username=username, email=email, full_name=full_name))
    except ValidationError as e:
        raise InvalidRequest(" ".join(e.messages)) from e

    if User.objects.filter(Q(username__iexact=username) | Q(email__iexact=email)).exists():
        raise Conflict("Username or email already exists")

    with transaction.atomic():
        user = User.objects.create_user(username, email, password, full_name=full_name)

    logger.info(f"New account registered: {username}")
    return JsonResponse(serializers.user_profile(user, private=True), status=201)


@csrf_exempt
@api_methods(["POST"])
def login_view(request):
    data, _ = _request_data(request)
    identifier = clean_text(data.get('username') or data.get('email'), 'username').lower()
    password = clean_text(data.get('password'), 'password', strip=False)
    if not identifier or not password:
        raise InvalidRequest("Username or email and password are required")

    user = User.objects.filter(Q(username__iexact=identifier) | Q(email__iexact=identifier)).first()
    if user is None:
        raise NotFound("User not found")

    user = authenticate(request, username=user.username, password=password)
    if user is None:
        logger.warning(f"Failed login attempt for {identifier}")
        raise NotAuthenticated("Wrong credentials")

    login(request, user)
    return JsonResponse(serializers.user_profile(user, private=True))


@csrf_exempt
@api_methods(["POST", "GET"])
def logout_view(request):
    logout(request)
    return JsonResponse({"message": "User logged out successfully"})


@api_login_required
@api_methods(["GET"])
def refetch(request):
    return JsonResponse(serializers.user_profile(request.user, private=True))


# ============================================================================
# USERS
# ============================================================================

@api_login_required
@api_methods(["GET"])
def get_user(request, user_id):
    user = _get_user(user_id)
    return JsonResponse(serializers.user_profile(user, private=user.pk == request.user.pk))


@csrf_exempt
@api_login_required
@api_methods(["PUT"])
def update_user(request, user_id):
    target = _get_user(user_id)
    data, files = _request_data(request)
    user = coordinator.update_profile(
        request.user,
        target,
        data,
        image=files.get('image'),
        image_type=data.get('image_type'),
    )
    return JsonResponse(serializers.user_profile(user, private=True))


@csrf_exempt
@api_login_required
@api_methods(["POST"])
def follow_user(request, user_id):
    target = _get_user(user_id)
    relations.follow(request.user, target)
    return JsonResponse({"message": "Successfully followed user"})


@csrf_exempt
@api_login_required
@api_methods(["POST"])
def unfollow_user(request, user_id):
    target = _get_user(user_id)
    relations.unfollow(request.user, target)
    return JsonResponse({"message": "Successfully unfollowed user"})


@csrf_exempt
@api_login_required
@api_methods(["POST"])
def block_user(request, user_id):
    target = _get_user(user_id)
    relations.block(request.user, target)
    return JsonResponse({"message": "Successfully blocked user"})


@csrf_exempt
@api_login_required
@api_methods(["POST"])
def unblock_user(request, user_id):
    target = _get_user(user_id)
    relations.unblock(request.user, target)
    return JsonResponse({"message": "Successfully unblocked user"})


@api_login_required
@api_methods(["GET"])
def block_list(request):
    users = relations.blocked_users(request.user)
    return JsonResponse({"blocked_users": [serializers.user_summary(u) for u in users]})


@csrf_exempt
@api_login_required
@api_methods(["DELETE"])
def delete_user(request, user_id):
    target = _get_user(user_id)
    coordinator.delete_user(request.user, target)
    logout(request)
    return JsonResponse({"message": "Everything associated with user is deleted successfully"})


@api_login_required
@api_methods(["GET"])
def search_users(request, query):
    query = query.strip()
    if not query:
        raise InvalidRequest("Search query is required")
    users = (
        User.objects.search(query)
        .exclude(pk__in=request.user.blocked_by.values('pk'))
        .exclude(pk__in=request.user.block_list.values('pk'))
    )
    return JsonResponse({"users": [serializers.user_summary(u) for u in users]})


# ============================================================================
# POSTS
# ============================================================================

@csrf_exempt
@api_login_required
@api_methods(["POST"])
def create_post(request):
    data, files = _request_data(request)
    post = coordinator.create_post(request.user, data.get('caption'), files.getlist('images'))
    return JsonResponse(serializers.post(post), status=201)


@api_login_required
@api_methods(["GET"])
def user_posts(request, user_id):
    target = _get_user(user_id)
    relations.ensure_not_blocked(request.user, target, "You cannot view this user's posts")
    posts = Post.objects.filter(user=target).select_related('user')
    return JsonResponse({"posts": [serializers.post(p) for p in posts]})


@api_methods(["GET"])
def get_post(request, post_id):
    return JsonResponse(serializers.post(_get_post(post_id)))


@csrf_exempt
@api_login_required
@api_methods(["PUT"])
def update_post(request, post_id):
    post = _get_post(post_id)
    data, files = _request_data(request)
    post = coordinator.update_post(
        request.user,
        post,
        caption=data.get('caption'),
        delete_images=_delete_list(data),
        files=files.getlist('images'),
    )
    return JsonResponse(serializers.post(post))


@csrf_exempt
@api_login_required
@api_methods(["DELETE"])
def delete_post(request, post_id):
    coordinator.delete_post(request.user, _get_post(post_id))
    return JsonResponse({"message": "Post has been deleted successfully"})


@csrf_exempt
@api_login_required
@api_methods(["POST"])
def like_post(request, post_id):
    post = coordinator.like(_get_post(post_id), request.user)
    return JsonResponse({"message": "Post liked successfully", "likes": post.likes.count()})


@csrf_exempt
@api_login_required
@api_methods(["POST"])
def dislike_post(request, post_id):
    post = coordinator.unlike(_get_post(post_id), request.user)
    return JsonResponse({"message": "Post disliked successfully", "likes": post.likes.count()})


# ============================================================================
# COMMENTS & REPLIES
# ============================================================================

@csrf_exempt
@api_login_required
@api_methods(["GET", "POST"])
def post_comments(request, post_id):
    post = _get_post(post_id)
    if request.method == "POST":
        data, _ = _request_data(request)
        comment = comments.create_comment(request.user, post, data.get('text'))
        return JsonResponse(serializers.comment(comment), status=201)

    return JsonResponse({"comments": [serializers.comment(c) for c in comments.post_comments(post)]})


@csrf_exempt
@api_login_required
@api_methods(["PUT", "DELETE"])
def comment_detail(request, comment_id):
    comment = _get_comment(comment_id)
    if request.method == "DELETE":
        comments.delete_comment(request.user, comment)
        return JsonResponse({"message": "Comment has been deleted"})

    data, _ = _request_data(request)
    comment = comments.update_comment(request.user, comment, data.get('text'))
    return JsonResponse(serializers.comment(comment))


@csrf_exempt
@api_login_required
@api_methods(["POST"])
def create_reply(request, comment_id):
    comment = _get_comment(comment_id)
    data, _ = _request_data(request)
    reply = comments.create_reply(request.user, comment, data.get('text'))
    return JsonResponse(serializers.reply(reply), status=201)


@csrf_exempt
@api_login_required
@api_methods(["PUT", "DELETE"])
def reply_detail(request, comment_id, reply_id):
    reply = _get_reply(comment_id, reply_id)
    if request.method == "DELETE":
        comments.delete_reply(request.user, reply)
        return JsonResponse({"message": "Reply deleted successfully"})

    data, _ = _request_data(request)
    reply = comments.update_reply(request.user, reply, data.get('text'))
    return JsonResponse(serializers.reply(reply))


@csrf_exempt
@api_login_required
@api_methods(["POST"])
def like_comment(request, comment_id):
    comment = coordinator.like(_get_comment(comment_id), request.user)
    return JsonResponse({"message": "Comment liked successfully", "likes": comment.likes.count()})


@csrf_exempt
@api_login_required
@api_methods(["POST"])
def dislike_comment(request, comment_id):
    comment = coordinator.unlike(_get_comment(comment_id), request.user)
    return JsonResponse({"message": "Comment disliked successfully", "likes": comment.likes.count()})


@csrf_exempt
@api_login_required
@api_methods(["POST"])
def like_reply(request, comment_id, reply_id):
    reply = coordinator.like(_get_reply(comment_id, reply_id), request.user)
    return JsonResponse({"message": "Reply liked successfully", "likes": reply.likes.count()})


@csrf_exempt
@api_login_required
@api_methods(["POST"])
def dislike_reply(request, comment_id, reply_id):
    reply = coordinator.unlike(_get_reply(comment_id, reply_id), request.user)
    return JsonResponse({"message": "Reply disliked successfully", "likes": reply.likes.count()})


# ============================================================================
# STORIES
# ============================================================================

@csrf_exempt
@api_login_required
@api_methods(["POST"])
def create_story(request, user_id):
    if user_id != request.user.pk:
        raise Forbidden("You can only post stories for yourself")
    data, files = _request_data(request)
    story = coordinator.create_story(request.user, data.get('text'), files.getlist('images'))
    return JsonResponse(serializers.story(story), status=201)


@api_login_required
@api_methods(["GET"])
def get_story(request, story_id):
    story = _get_story(story_id)
    relations.ensure_not_blocked(request.user, story.user, "You cannot view this story")
    return JsonResponse(serializers.story(story))


@api_login_required
@api_methods(["GET"])
def user_stories(request, user_id):
    target = _get_user(user_id)
    relations.ensure_not_blocked(request.user, target, "You cannot view this user's stories")
    stories = Story.objects.active().filter(user=target).select_related('user')
    return JsonResponse({"stories": [serializers.story(s) for s in stories]})


@csrf_exempt
@api_login_required
@api_methods(["PUT"])
def update_story(request, story_id):
    story = _get_story(story_id)
    data, files = _request_data(request)
    story = coordinator.update_story(
        request.user,
        story,
        text=data.get('text'),
        delete_images=_delete_list(data),
        files=files.getlist('images'),
    )
    return JsonResponse(serializers.story(story))


@csrf_exempt
@api_login_required
@api_methods(["DELETE"])
def delete_story(request, story_id):
    coordinator.delete_story(request.user, _get_story(story_id))
    return JsonResponse({"message": "Story has been deleted successfully"})


@csrf_exempt
@api_login_required
@api_methods(["POST"])
def like_story(request, story_id):
    story = coordinator.like(_get_story(story_id), request.user)
    return JsonResponse({"message": "Story liked successfully", "likes": story.likes.count()})


@csrf_exempt
@api_login_required
@api_methods(["POST"])
def unlike_story(request, story_id):
    story = coordinator.unlike(_get_story(story_id), request.user)
    return JsonResponse({"message": "Story unliked successfully", "likes": story.likes.count()})


# ============================================================================
# CONVERSATIONS & MESSAGES
# ============================================================================

@csrf_exempt
@api_login_required
@api_methods(["POST"])
def start_conversation(request):
    data, _ = _request_data(request)
    conversation, created = messaging.start_conversation(request.user, data.get('participant_id'))
    return JsonResponse(serializers.conversation(conversation), status=201 if created else 200)


@api_login_required
@api_methods(["GET"])
def conversation_list(request):
    conversations = messaging.conversations_for(request.user)
    return JsonResponse({"conversations": [serializers.conversation(c) for c in conversations]})


@csrf_exempt
@api_login_required
@api_methods(["GET", "DELETE"])
def conversation_detail(request, conversation_id):
    conversation = _get_conversation(conversation_id)
    if request.method == "DELETE":
        messaging.delete_conversation(request.user, conversation)
        return JsonResponse({"message": "Conversation deleted successfully"})

    messaging.ensure_participant(conversation, request.user)
    messages = messaging.conversation_messages(conversation)
    return JsonResponse(serializers.conversation(conversation, messages=messages))


@csrf_exempt
@api_login_required
@api_methods(["POST"])
def send_message(request, conversation_id):
    conversation = _get_conversation(conversation_id)
    data, _ = _request_data(request)
    content = data.get('text') or data.get('content')
    message = messaging.send_message(request.user, conversation, content)
    return JsonResponse(serializers.message(message), status=201)


@csrf_exempt
@api_login_required
@api_methods(["POST"])
def mark_message_read(request, message_id):
    message = _get_or_404(Message.objects.select_related('conversation'), "Message not found", pk=message_id)
    message = messaging.mark_read(request.user, message)
    return JsonResponse(serializers.message(message))
