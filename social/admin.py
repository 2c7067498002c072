from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.urls import reverse
from django.utils.html import format_html

from .coordinator import remove_post, remove_story, remove_user
from .messaging import remove_conversation
from .models import Comment, Conversation, Message, Post, Reply, Story, User


def _short(text, length=80):
    if text:
        return text[:length] + '...' if len(text) > length else text
    return "(no content)"


def _user_link(user):
    url = reverse("admin:social_user_change", args=[user.id])
    return format_html('<a href="{}">{}</a>', url, user.username)


class CascadeDeleteMixin:
    """Admin deletes run the same cascade as the API (references are weak)."""

    remove = None

    def delete_model(self, request, obj):
        self.remove(obj)

    def delete_queryset(self, request, queryset):
        for obj in queryset:
            self.remove(obj)


# ==================== ADMIN CLASSES ====================

@admin.register(User)
class UserAdmin(CascadeDeleteMixin, BaseUserAdmin):
    list_display = ('username', 'email', 'full_name', 'is_staff', 'date_joined')
    search_fields = ('username', 'email', 'full_name')
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Profile', {'fields': ('full_name', 'bio', 'profile_picture', 'cover_picture')}),
    )
    actions = ['activate_users', 'deactivate_users']
    remove = staticmethod(remove_user)

    def activate_users(self, request, queryset):
        queryset.update(is_active=True)
        self.message_user(request, f"{queryset.count()} users activated")
    activate_users.short_description = "Activate selected users"

    def deactivate_users(self, request, queryset):
        queryset.update(is_active=False)
        self.message_user(request, f"{queryset.count()} users deactivated")
    deactivate_users.short_description = "Deactivate selected users"


@admin.register(Post)
class PostAdmin(CascadeDeleteMixin, admin.ModelAdmin):
    list_display = ('id', 'user_link', 'created_at', 'caption_short', 'image_count')
    search_fields = ('caption', 'user__username')
    exclude = ('likes',)
    remove = staticmethod(remove_post)

    def user_link(self, obj):
        return _user_link(obj.user)
    user_link.short_description = 'User'
    user_link.admin_order_field = 'user__username'

    def caption_short(self, obj):
        return _short(obj.caption)
    caption_short.short_description = 'Caption'

    def image_count(self, obj):
        return len(obj.images)
    image_count.short_description = 'Images'


class ReplyInline(admin.TabularInline):
    model = Reply
    extra = 0
    fields = ('user', 'text', 'created_at')
    readonly_fields = ('created_at',)


@admin.register(Comment)
class CommentAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'post', 'created_at', 'text_short')
    search_fields = ('text', 'user__username')
    exclude = ('likes',)
    inlines = [ReplyInline]

    def text_short(self, obj):
        return _short(obj.text, 50)
    text_short.short_description = 'Text'


@admin.register(Story)
class StoryAdmin(CascadeDeleteMixin, admin.ModelAdmin):
    list_display = ('id', 'user', 'created_at', 'expires_at', 'is_active')
    list_filter = ('created_at',)
    exclude = ('likes',)
    remove = staticmethod(remove_story)

    def is_active(self, obj):
        return Story.objects.active().filter(pk=obj.pk).exists()
    is_active.boolean = True


@admin.register(Conversation)
class ConversationAdmin(CascadeDeleteMixin, admin.ModelAdmin):
    list_display = ('id', 'user_a', 'user_b', 'updated_at')
    search_fields = ('user_a__username', 'user_b__username')
    remove = staticmethod(remove_conversation)


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ('id', 'conversation', 'sender', 'created_at', 'content_short')
    search_fields = ('content', 'sender__username')
    exclude = ('read_by',)

    def content_short(self, obj):
        return _short(obj.content, 50)
    content_short.short_description = 'Content'
