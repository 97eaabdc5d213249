from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.urls import reverse
from django.utils.html import format_html

from .models import (
    User, FriendEdge, Conversation, ConversationParticipant, DirectMessage,
    Post, Attachment, Comment, PostLike
)


def short(text, length):
    if not text:
        return ""
    return text[:length] + '...' if len(text) > length else text


# ==================== ADMIN CLASSES ====================

@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ('username', 'email', 'is_staff', 'failed_attempts', 'lock_until', 'date_joined')
    search_fields = ('username', 'email')
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Profile', {'fields': ('profile_picture', 'bio', 'timezone')}),
        ('Login lockout', {'fields': ('failed_attempts', 'lock_until')}),
    )
    actions = ['unlock_users', 'deactivate_users']

    def unlock_users(self, request, queryset):
        count = queryset.update(failed_attempts=0, lock_until=None)
        self.message_user(request, f"{count} users unlocked")
    unlock_users.short_description = "Unlock selected users"

    def deactivate_users(self, request, queryset):
        count = queryset.update(is_active=False)
        self.message_user(request, f"{count} users deactivated")
    deactivate_users.short_description = "Deactivate selected users"


@admin.register(FriendEdge)
class FriendEdgeAdmin(admin.ModelAdmin):
    list_display = ('id', 'user_a', 'user_b', 'status', 'created_at')
    list_filter = ('status',)
    search_fields = ('user_a__username', 'user_b__username')


@admin.register(Post)
class PostAdmin(admin.ModelAdmin):
    list_display = ('id', 'user_link', 'visibility', 'like_count', 'created_at', 'text_short')
    list_filter = ('visibility', 'created_at')
    search_fields = ('text', 'user__username')

    def user_link(self, obj):
        url = reverse("admin:social_user_change", args=[obj.user.id])
        return format_html('<a href="{}">{}</a>', url, obj.user.username)
    user_link.short_description = 'User'
    user_link.admin_order_field = 'user__username'

    def text_short(self, obj):
        return short(obj.text, 80) or "(no text)"
    text_short.short_description = 'Text'


@admin.register(Attachment)
class AttachmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'post', 'owner', 'mime_type', 'size_bytes', 'uploaded_at')
    search_fields = ('owner__username', 'file')


@admin.register(Comment)
class CommentAdmin(admin.ModelAdmin):
    list_display = ('id', 'post', 'user', 'created_at', 'text_short')
    search_fields = ('text', 'user__username')

    def text_short(self, obj):
        return short(obj.text, 50)
    text_short.short_description = 'Text'


@admin.register(PostLike)
class PostLikeAdmin(admin.ModelAdmin):
    list_display = ('id', 'post', 'user', 'created_at')
    search_fields = ('user__username',)


@admin.register(Conversation)
class ConversationAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'is_group', 'created_by', 'created_at', 'member_count')
    list_filter = ('is_group', 'created_at')
    search_fields = ('name', 'created_by__username')

    def member_count(self, obj):
        return obj.participants.active().count()
    member_count.short_description = 'Members'


@admin.register(ConversationParticipant)
class ConversationParticipantAdmin(admin.ModelAdmin):
    list_display = ('id', 'conversation', 'user', 'joined_at', 'left_at', 'last_read_message_id')
    list_filter = ('joined_at',)
    search_fields = ('conversation__name', 'user__username')


@admin.register(DirectMessage)
class DirectMessageAdmin(admin.ModelAdmin):
    list_display = ('id', 'conversation', 'sender', 'message_type', 'created_at', 'read_at', 'content_short')
    list_filter = ('message_type', 'created_at')
    search_fields = ('content', 'sender__username')

    def content_short(self, obj):
        if obj.is_media:
            return f"({obj.message_type})"
        return short(obj.content, 50)
    content_short.short_description = 'Content'
