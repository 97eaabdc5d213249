"""
================================================================================
HEARTH - DATABASE MODELS
================================================================================

@file        models.py
@description Django ORM models for accounts, chat and the friend-gated feed

MODULE PURPOSE
================================================================================
This module defines the persistent schema of the Hearth backend:
- User model (extended from AbstractUser, with login lockout fields)
- Friendships (FriendEdge, pending or accepted)
- Chat (Conversation, ConversationParticipant, DirectMessage)
- Feed content (Post, Attachment, Comment, PostLike)

DATABASE STRUCTURE
================================================================================
1. Accounts & Friendships
   - User (AbstractUser extension)
   - FriendEdge (requester -> addressee, status)

2. Messaging
   - Conversation (1:1 pair or named group)
   - ConversationParticipant (membership + group read position)
   - DirectMessage (text, image or video)

3. Feed
   - Post (visibility: public / friends / private)
   - Attachment (stored image files)
   - Comment
   - PostLike (one row per user per post)

MODEL RELATIONSHIPS
================================================================================
User (1) ──────> (N) Post
User (1) ──────> (N) Comment
User (1) ──────> (N) DirectMessage (as sender)
User (N) <─────> (N) User (FriendEdge)
User (N) <─────> (N) Conversation (via ConversationParticipant)

Post (1) ──────> (N) Attachment
Post (1) ──────> (N) Comment
Post (1) ──────> (N) PostLike

Conversation (1) ──> (N) DirectMessage

ORDERING & CURSORS
================================================================================
DirectMessage rows are ordered by their auto-increment primary key. The same
id serves as the pagination cursor (`before` / `after`) and as the group read
position stored on ConversationParticipant.last_read_message_id.

A 1:1 conversation stores its pair normalized (user_a has the lower id).
The unique constraint on that pair guarantees one conversation per pair even
when two requests race to create it.

TIMEZONE HANDLING
================================================================================
All timestamp fields are timezone-aware (USE_TZ = True).
Users pick their preferred timezone from pytz.all_timezones; it is activated
per request by social.middleware.TimezoneMiddleware.

MEDIA HANDLING
================================================================================
Files are written through django.core.files.storage.default_storage:
- uploads/profiles/ : User avatars
- uploads/images/   : Post attachments and image messages
- uploads/videos/   : Video messages

================================================================================
"""

from datetime import timedelta

import pytz
from django.contrib.auth.models import AbstractUser
from django.db import models
from django.db.models import Q
from django.utils import timezone as dj_timezone


# ============================================================================
# CONSTANTS & CHOICES
# ============================================================================

"""
Timezone choices for user preference selection.
Uses all available timezones from pytz library.
"""
TIMEZONE_CHOICES = [(tz, tz) for tz in pytz.all_timezones]


# ============================================================================
# SECTION 1: ACCOUNTS & FRIENDSHIPS
# ============================================================================

class User(AbstractUser):
    """
    Extended User model for the chat and feed features.

    Attributes:
        email (EmailField): Unique contact address
        profile_picture (ImageField): User avatar image
        bio (CharField): Short profile biography (max 200 chars)
        timezone (CharField): User's preferred timezone
        failed_attempts (PositiveIntegerField): Consecutive failed logins
        lock_until (DateTimeField): Login is refused until this moment

    Properties:
        is_locked: True while lock_until lies in the future

    Related Names:
        posts: QuerySet of user's Post objects
        comments: QuerySet of user's Comment objects
        sent_messages: QuerySet of DirectMessage objects sent by the user
        sent_friend_edges: FriendEdge rows where the user is the requester
        received_friend_edges: FriendEdge rows addressed to the user
        conversation_memberships: ConversationParticipant rows
    """

    email = models.EmailField(
        unique=True,
        help_text="Unique email address"
    )

    # --- Profile Information ---
    profile_picture = models.ImageField(
        upload_to='uploads/profiles/',
        null=True,
        blank=True,
        max_length=255,
        help_text="User's profile avatar image"
    )
    bio = models.CharField(
        max_length=200,
        blank=True,
        help_text="Profile biography (max 200 chars)"
    )
    timezone = models.CharField(
        max_length=100,
        choices=TIMEZONE_CHOICES,
        default='UTC',
        help_text="User's preferred timezone for display"
    )

    # --- Login Lockout ---
    failed_attempts = models.PositiveIntegerField(
        default=0,
        help_text="Consecutive failed login attempts"
    )
    lock_until = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Login is refused until this timestamp"
    )

    @property
    def is_locked(self):
        return bool(self.lock_until and self.lock_until > dj_timezone.now())

    def register_failed_login(self, max_attempts, lockout_minutes):
        """
        Count a failed login and lock the account once the limit is reached.

        Returns:
            int: Attempts left before the account locks (0 when locked)
        """
        self.failed_attempts += 1
        if self.failed_attempts >= max_attempts:
            self.lock_until = dj_timezone.now() + timedelta(minutes=lockout_minutes)
        self.save(update_fields=['failed_attempts', 'lock_until'])
        return max(max_attempts - self.failed_attempts, 0)

    def clear_failed_logins(self):
        if self.failed_attempts or self.lock_until:
            self.failed_attempts = 0
            self.lock_until = None
            self.save(update_fields=['failed_attempts', 'lock_until'])


class FriendEdgeQuerySet(models.QuerySet):

    def between(self, first, second):
        """Edges joining two users, whichever of them sent the request."""
        return self.filter(
            Q(user_a=first, user_b=second) | Q(user_a=second, user_b=first)
        )

    def accepted(self):
        return self.filter(status=FriendEdge.ACCEPTED)

    def pending(self):
        return self.filter(status=FriendEdge.PENDING)

    def involving(self, user):
        return self.filter(Q(user_a=user) | Q(user_b=user))


class FriendEdge(models.Model):
    """
    Friendship between two users.

    The edge is directed only while pending: user_a sent the request and
    user_b may accept it. Once accepted, the edge counts in both directions.

    Attributes:
        user_a (ForeignKey): Requester
        user_b (ForeignKey): Addressee
        status (CharField): 'pending' or 'accepted'
        created_at (DateTimeField): Request timestamp
        updated_at (DateTimeField): Last status change

    Meta:
        unique_together: One edge per ordered pair

    Example:
        FriendEdge.objects.between(alice, bob).accepted().exists()
    """

    PENDING = 'pending'
    ACCEPTED = 'accepted'
    STATUS_CHOICES = [
        (PENDING, 'Pending'),
        (ACCEPTED, 'Accepted'),
    ]

    user_a = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='sent_friend_edges',
        help_text="User who sent the friend request"
    )
    user_b = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='received_friend_edges',
        help_text="User who received the friend request"
    )
    status = models.CharField(
        max_length=10,
        choices=STATUS_CHOICES,
        default=PENDING,
        help_text="Request state"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = FriendEdgeQuerySet.as_manager()

    class Meta:
        unique_together = ('user_a', 'user_b')

    def __str__(self):
        return f"{self.user_a} -> {self.user_b} ({self.status})"


# ============================================================================
# SECTION 2: MESSAGING SYSTEM MODELS
# ============================================================================

class Conversation(models.Model):
    """
    Chat conversation (1:1 or group).

    A 1:1 conversation keeps its two users in user_a / user_b with the lower
    id first. Group conversations leave the pair empty and carry a name.
    Every member, 1:1 or group, has a ConversationParticipant row.

    Attributes:
        name (CharField): Conversation name (groups only)
        is_group (BooleanField): True for group chats
        created_by (ForeignKey): User who created the conversation
        user_a (ForeignKey): Lower-id member of a 1:1 pair
        user_b (ForeignKey): Higher-id member of a 1:1 pair
        created_at (DateTimeField): Creation timestamp
        updated_at (DateTimeField): Bumped on every new message

    Related Names:
        participants: QuerySet of ConversationParticipant objects
        messages: QuerySet of DirectMessage objects
    """

    name = models.CharField(
        max_length=255,
        blank=True,
        help_text="Conversation name (required for groups)"
    )
    is_group = models.BooleanField(
        default=False,
        help_text="True for group chats, False for 1:1"
    )
    created_by = models.ForeignKey(
        User,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='created_conversations',
        help_text="User who created this conversation"
    )
    user_a = models.ForeignKey(
        User,
        null=True,
        blank=True,
        on_delete=models.CASCADE,
        related_name='direct_conversations_low',
        help_text="1:1 member with the lower id"
    )
    user_b = models.ForeignKey(
        User,
        null=True,
        blank=True,
        on_delete=models.CASCADE,
        related_name='direct_conversations_high',
        help_text="1:1 member with the higher id"
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        help_text="Creation timestamp"
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="Last activity timestamp"
    )

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['user_a', 'user_b'],
                name='unique_direct_conversation_pair',
            ),
        ]

    def __str__(self):
        if self.is_group:
            return self.name or f"Group #{self.id}"
        return f"DM #{self.id}"


class ParticipantQuerySet(models.QuerySet):

    def active(self):
        return self.filter(left_at__isnull=True)


class ConversationParticipant(models.Model):
    """
    Membership in a conversation.

    Attributes:
        conversation (ForeignKey): Conversation this membership belongs to
        user (ForeignKey): Member
        joined_at (DateTimeField): When the user (re)joined
        left_at (DateTimeField): Set when the user left; NULL while active
        last_read_message_id (BigIntegerField): Group read position

    Meta:
        unique_together: One membership per user per conversation
    """

    conversation = models.ForeignKey(
        Conversation,
        on_delete=models.CASCADE,
        related_name='participants',
        help_text="Conversation this membership belongs to"
    )
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='conversation_memberships',
        help_text="Member of the conversation"
    )
    joined_at = models.DateTimeField(
        default=dj_timezone.now,
        help_text="When the user joined"
    )
    left_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the user left (NULL while active)"
    )
    last_read_message_id = models.BigIntegerField(
        null=True,
        blank=True,
        help_text="Highest message id read in a group conversation"
    )

    objects = ParticipantQuerySet.as_manager()

    class Meta:
        unique_together = ('conversation', 'user')

    def __str__(self):
        return f"{self.user} in {self.conversation}"

    @property
    def is_active(self):
        return self.left_at is None


class DirectMessage(models.Model):
    """
    Chat message.

    For media messages `content` holds the storage path of the uploaded
    file; for text messages it holds the text itself.

    Attributes:
        conversation (ForeignKey): Conversation the message belongs to
        sender (ForeignKey): Author
        content (TextField): Text, or storage path for media
        message_type (CharField): 'text', 'image' or 'video'
        created_at (DateTimeField): Send timestamp
        read_at (DateTimeField): First read by the other party (1:1 only)
        edited_at (DateTimeField): Last edit timestamp

    Meta:
        ordering: Storage order (ascending id)
    """

    TEXT = 'text'
    IMAGE = 'image'
    VIDEO = 'video'
    TYPE_CHOICES = [
        (TEXT, 'Text'),
        (IMAGE, 'Image'),
        (VIDEO, 'Video'),
    ]
    MEDIA_TYPES = (IMAGE, VIDEO)

    conversation = models.ForeignKey(
        Conversation,
        on_delete=models.CASCADE,
        related_name='messages',
        help_text="Conversation the message belongs to"
    )
    sender = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='sent_messages',
        help_text="User who sent the message"
    )
    content = models.TextField(
        help_text="Message text, or storage path for media messages"
    )
    message_type = models.CharField(
        max_length=10,
        choices=TYPE_CHOICES,
        default=TEXT,
        help_text="Kind of message"
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        help_text="Send timestamp"
    )
    read_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the recipient first read the message"
    )
    edited_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Last edit timestamp"
    )

    class Meta:
        ordering = ['id']
        indexes = [
            models.Index(fields=['conversation', 'id'], name='message_conversation_id_idx'),
        ]

    def __str__(self):
        return f"Message #{self.id} from {self.sender} ({self.message_type})"

    @property
    def is_media(self):
        return self.message_type in self.MEDIA_TYPES


# ============================================================================
# SECTION 3: FEED MODELS (Posts, Attachments, Comments, Likes)
# ============================================================================

class Post(models.Model):
    """
    User post in the feed.

    Attributes:
        user (ForeignKey): Post author
        text (TextField): Post body
        visibility (CharField): 'public', 'friends' or 'private'
        like_count (PositiveIntegerField): Denormalized PostLike count
        created_at (DateTimeField): Creation timestamp
        updated_at (DateTimeField): Last edit timestamp

    Related Names:
        attachments: QuerySet of Attachment objects
        comments: QuerySet of Comment objects
        likes: QuerySet of PostLike objects

    Meta:
        ordering: Newest first
    """

    PUBLIC = 'public'
    FRIENDS = 'friends'
    PRIVATE = 'private'
    VISIBILITY_CHOICES = [
        (PUBLIC, 'Public'),
        (FRIENDS, 'Friends'),
        (PRIVATE, 'Private'),
    ]
    # Older clients send 'everyone' for public posts
    VISIBILITY_ALIASES = {'everyone': PUBLIC}

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='posts',
        help_text="Post author"
    )
    text = models.TextField(help_text="Post body")
    visibility = models.CharField(
        max_length=10,
        choices=VISIBILITY_CHOICES,
        default=PUBLIC,
        help_text="Who can see the post"
    )
    like_count = models.PositiveIntegerField(
        default=0,
        help_text="Number of likes (kept in step with PostLike rows)"
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"Post #{self.id} by {self.user}"

    @classmethod
    def normalize_visibility(cls, value):
        """
        Map a client-supplied visibility to a stored value.

        Returns:
            str or None: Stored value, or None when the input is unknown
        """
        if not isinstance(value, str):
            return None
        value = value.strip().lower()
        value = cls.VISIBILITY_ALIASES.get(value, value)
        if value in dict(cls.VISIBILITY_CHOICES):
            return value
        return None


class Attachment(models.Model):
    """
    Image stored for a post.

    Attributes:
        post (ForeignKey): Post the file belongs to
        owner (ForeignKey): Uploader
        file (FileField): Storage path
        mime_type (CharField): Content type reported at upload
        size_bytes (PositiveBigIntegerField): File size
        uploaded_at (DateTimeField): Upload timestamp
    """

    post = models.ForeignKey(
        Post,
        on_delete=models.CASCADE,
        related_name='attachments',
        help_text="Post the file belongs to"
    )
    owner = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='attachments',
        help_text="User who uploaded the file"
    )
    file = models.FileField(
        upload_to='uploads/images/',
        max_length=255,
        help_text="Stored file"
    )
    mime_type = models.CharField(max_length=100, blank=True)
    size_bytes = models.PositiveBigIntegerField(default=0)
    uploaded_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['uploaded_at', 'id']

    def __str__(self):
        return f"Attachment #{self.id} for post {self.post_id}"


class Comment(models.Model):
    """
    Comment on a post.

    Attributes:
        post (ForeignKey): Post being commented on
        user (ForeignKey): Comment author
        text (TextField): Comment body
        created_at (DateTimeField): Creation timestamp
        updated_at (DateTimeField): Last edit timestamp

    Meta:
        ordering: Oldest first (conversation order under a post)
    """

    post = models.ForeignKey(
        Post,
        on_delete=models.CASCADE,
        related_name='comments',
        help_text="Post being commented on"
    )
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='comments',
        help_text="Comment author"
    )
    text = models.TextField(help_text="Comment body")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['created_at', 'id']

    def __str__(self):
        return f"{self.user} on post {self.post_id}: {self.text[:30]}"


class PostLike(models.Model):
    """
    One user's like of one post.

    Meta:
        unique_together: A user likes a post at most once
    """

    post = models.ForeignKey(
        Post,
        on_delete=models.CASCADE,
        related_name='likes'
    )
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='post_likes'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ('post', 'user')

    def __str__(self):
        return f"{self.user} likes post {self.post_id}"
