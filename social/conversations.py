"""
================================================================================
HEARTH - CONVERSATIONS & MESSAGES
================================================================================

@file        conversations.py
@description Conversation resolver, message pipeline and read receipts

MODULE PURPOSE
================================================================================
1. Resolver
   - resolve_or_create_conversation(): one canonical 1:1 conversation per
     unordered pair of users
   - create_group() and group membership management

2. Message pipeline
   - send_message(): membership-checked text insert
   - send_media(): stores an upload, then inserts an image or video message
   - get_messages(): cursor pagination by message id
       before=<id> : older page (scroll back)
       after=<id>  : newer messages (polling)
   - edit_message() / delete_message(): sender only

3. Read receipts
   - 1:1 : DirectMessage.read_at, set once
   - group: ConversationParticipant.last_read_message_id, only moves forward
   - mark_conversation_read(): batch variant used when a chat is opened

MEMBERSHIP
================================================================================
"Participant" always means an active ConversationParticipant row
(left_at IS NULL). Every read and write path checks it.

================================================================================
"""

import logging

from django.conf import settings
from django.db import transaction
from django.db.models import Prefetch, Q
from django.utils import timezone

from .accounts import lookup_user
from .errors import BadRequest, Forbidden, NotFound
from .models import Conversation, ConversationParticipant, DirectMessage
from .uploads import (
    IMAGE_FOLDER, VIDEO_FOLDER, remove_file, store_upload,
    validate_image, validate_video,
)

logger = logging.getLogger(__name__)

NOT_PARTICIPANT = "Not a participant in this conversation"


# ============================================================================
# MEMBERSHIP HELPERS
# ============================================================================

def get_conversation(conversation_id):
    conversation = Conversation.objects.filter(pk=conversation_id).first()
    if conversation is None:
        raise NotFound("Conversation not found")
    return conversation


def get_membership(conversation, user):
    return ConversationParticipant.objects.active().filter(
        conversation=conversation, user=user
    ).first()


def require_participant(conversation, user, message=NOT_PARTICIPANT):
    membership = get_membership(conversation, user)
    if membership is None:
        raise Forbidden(message)
    return membership


def _get_group(conversation_id, user):
    conversation = get_conversation(conversation_id)
    membership = require_participant(conversation, user, "Not a member of this group")
    if not conversation.is_group:
        raise BadRequest("This is not a group conversation")
    return conversation, membership


# ============================================================================
# RESOLVER
# ============================================================================

def normalized_pair(first, second):
    return (first, second) if first.pk < second.pk else (second, first)


def find_direct_conversation(first, second):
    low, high = normalized_pair(first, second)
    return Conversation.objects.filter(is_group=False, user_a=low, user_b=high).first()


def resolve_or_create_conversation(first, second):
    """
    Return the 1:1 conversation between two users, creating it if needed.

    The pair is stored normalized (lower id first) under a unique
    constraint, so concurrent callers converge on one row: the loser of the
    insert race re-reads the winner's conversation.

    Returns:
        tuple: (conversation, created)
    """
    if first.pk == second.pk:
        raise BadRequest("Cannot message yourself")

    low, high = normalized_pair(first, second)
    now = timezone.now()

    with transaction.atomic():
        conversation, created = Conversation.objects.get_or_create(
            is_group=False, user_a=low, user_b=high,
            defaults={'created_by': first},
        )

        for user in (low, high):
            participant, joined = ConversationParticipant.objects.get_or_create(
                conversation=conversation, user=user,
                defaults={'joined_at': now},
            )
            if not joined and participant.left_at is not None:
                participant.left_at = None
                participant.joined_at = now
                participant.save(update_fields=['left_at', 'joined_at'])

    if created:
        logger.info(f"Created conversation {conversation.pk} for {low.username} and {high.username}")
    return conversation, created


# ============================================================================
# GROUPS
# ============================================================================

def _clean_usernames(usernames):
    if not isinstance(usernames, list):
        return None
    cleaned = []
    for username in usernames:
        if not isinstance(username, str) or not username.strip():
            raise BadRequest("Invalid username in participants")
        cleaned.append(username.strip())
    return cleaned


def create_group(creator, name, usernames):
    """
    Create a named group with the creator and at least two other members.

    Duplicate usernames and the creator's own name are collapsed before
    counting.
    """
    name = name.strip() if isinstance(name, str) else ''
    usernames = _clean_usernames(usernames)
    if not name or usernames is None:
        raise BadRequest("groupName and participantUsernames array are required")

    members = {}
    for username in usernames:
        user = lookup_user(username, f"User not found: {username}")
        if user.pk != creator.pk:
            members[user.pk] = user

    if len(members) < 2:
        raise BadRequest("Group must have at least 2 participants (excluding creator)")

    with transaction.atomic():
        conversation = Conversation.objects.create(is_group=True, name=name, created_by=creator)
        ConversationParticipant.objects.bulk_create([
            ConversationParticipant(conversation=conversation, user=user)
            for user in [creator, *members.values()]
        ])

    logger.info(f"{creator.username} created group {conversation.pk} with {len(members)} members")
    return conversation


def group_participants(conversation_id, user):
    conversation, _ = _get_group(conversation_id, user)
    participants = (
        conversation.participants.active()
        .select_related('user')
        .order_by('user__username')
    )
    return conversation, [p.user for p in participants]


def add_participants(conversation_id, user, usernames):
    """Add users to a group; former members are re-activated."""
    usernames = _clean_usernames(usernames)
    if not usernames:
        raise BadRequest("usernames array is required")

    conversation, _ = _get_group(conversation_id, user)
    new_members = [lookup_user(username, f"User not found: {username}") for username in usernames]

    added = []
    now = timezone.now()
    with transaction.atomic():
        for member in new_members:
            participant, created = ConversationParticipant.objects.get_or_create(
                conversation=conversation, user=member,
                defaults={'joined_at': now},
            )
            if created:
                added.append(member)
            elif participant.left_at is not None:
                participant.left_at = None
                participant.joined_at = now
                participant.save(update_fields=['left_at', 'joined_at'])
                added.append(member)

    logger.info(f"{user.username} added {len(added)} members to group {conversation.pk}")
    return added


def remove_participant(conversation_id, user, username):
    conversation, _ = _get_group(conversation_id, user)
    target = lookup_user(username)
    updated = conversation.participants.active().filter(user=target).update(left_at=timezone.now())
    if not updated:
        raise NotFound("User is not in this group")
    logger.info(f"{user.username} removed {target.username} from group {conversation.pk}")


def leave_group(conversation_id, user):
    conversation = get_conversation(conversation_id)
    if not conversation.is_group:
        raise BadRequest("This is not a group conversation")
    updated = conversation.participants.active().filter(user=user).update(left_at=timezone.now())
    if not updated:
        raise NotFound("You are not in this group")


def rename_group(conversation_id, user, name):
    name = name.strip() if isinstance(name, str) else ''
    if not name:
        raise BadRequest("groupName is required")
    conversation, _ = _get_group(conversation_id, user)
    conversation.name = name
    conversation.save(update_fields=['name', 'updated_at'])
    return conversation


# ============================================================================
# MESSAGE PIPELINE
# ============================================================================

def _clean_text(content, message_type):
    """Only text arrives as a client-supplied body; media goes through send_media."""
    if message_type in DirectMessage.MEDIA_TYPES:
        raise BadRequest("Media must be uploaded through send-image or send-video")
    if message_type != DirectMessage.TEXT:
        raise BadRequest("messageType must be one of text, image, video")

    content = content.strip() if isinstance(content, str) else ''
    if not content:
        raise BadRequest("Message content is required")
    return content


def _append_message(conversation, sender, content, message_type):
    require_participant(conversation, sender, "You are not a member of this conversation")

    with transaction.atomic():
        message = DirectMessage.objects.create(
            conversation=conversation,
            sender=sender,
            content=content,
            message_type=message_type,
        )
        Conversation.objects.filter(pk=conversation.pk).update(updated_at=message.created_at)

    return message


def send_message(conversation, sender, content, message_type=DirectMessage.TEXT):
    """
    Append a text message to a conversation.

    Raises:
        BadRequest: Media or unknown type, or blank text
        Forbidden: Sender is not an active participant
    """
    return _append_message(conversation, sender, _clean_text(content, message_type), DirectMessage.TEXT)


def send_to_username(sender, recipient_username, content, message_type=DirectMessage.TEXT):
    """Send text to a user by name, resolving (or creating) the 1:1 conversation."""
    if not isinstance(recipient_username, str) or not recipient_username.strip():
        raise BadRequest("recipientUsername and message are required")

    content = _clean_text(content, message_type)
    recipient = lookup_user(recipient_username, "Recipient not found")
    conversation, _ = resolve_or_create_conversation(sender, recipient)
    return _append_message(conversation, sender, content, DirectMessage.TEXT)


def send_media(sender, upload, message_type, recipient_username=None, conversation_id=None):
    """
    Validate, store and send one image or video.

    The target is either a user (1:1) or an existing conversation. Every
    check runs before the file is written; if the insert still fails, the
    stored file is removed again. The message content is always the path
    stored here, never one supplied by the client.
    """
    if message_type == DirectMessage.IMAGE:
        validate_image(upload)
        folder = IMAGE_FOLDER
    elif message_type == DirectMessage.VIDEO:
        validate_video(upload)
        folder = VIDEO_FOLDER
    else:
        raise BadRequest("messageType must be one of image, video")

    if conversation_id is not None:
        conversation = get_conversation(conversation_id)
    elif isinstance(recipient_username, str) and recipient_username.strip():
        recipient = lookup_user(recipient_username, "Recipient not found")
        conversation, _ = resolve_or_create_conversation(sender, recipient)
    else:
        raise BadRequest("recipientUsername or conversationId is required")

    require_participant(conversation, sender, "You are not a member of this conversation")

    path = store_upload(upload, folder)
    try:
        return _append_message(conversation, sender, path, message_type)
    except Exception:
        remove_file(path)
        raise


def clamp_limit(limit):
    if limit is None:
        return settings.MESSAGE_PAGE_SIZE
    return max(1, min(limit, settings.MESSAGE_PAGE_MAX))


def get_messages(conversation, requester, before=None, after=None, limit=None):
    """
    One page of a conversation, oldest first within the page.

    Args:
        before: Only messages with id < before (older page)
        after: Only messages with id > after (polling for new messages)
        limit: Page size, default MESSAGE_PAGE_SIZE, capped at MESSAGE_PAGE_MAX

    Returns:
        dict: messages (list), has_more (older messages exist), membership
    """
    if before is not None and after is not None:
        raise BadRequest("Use either before or after, not both")

    membership = require_participant(conversation, requester)
    limit = clamp_limit(limit)

    messages = conversation.messages.select_related('sender')
    if after is not None:
        rows = list(messages.filter(id__gt=after).order_by('id')[:limit])
    else:
        if before is not None:
            messages = messages.filter(id__lt=before)
        rows = list(messages.order_by('-id')[:limit])
        rows.reverse()

    has_more = bool(rows) and conversation.messages.filter(id__lt=rows[0].id).exists()
    return {'messages': rows, 'has_more': has_more, 'membership': membership}


def conversation_history(user, username):
    """
    Full history with another user, without creating a conversation.

    Returns:
        tuple: (conversation or None, messages, membership or None)
    """
    other = lookup_user(username)
    if other.pk == user.pk:
        raise BadRequest("Cannot message yourself")

    conversation = find_direct_conversation(user, other)
    if conversation is None:
        return None, [], None

    membership = require_participant(conversation, user)
    messages = list(conversation.messages.select_related('sender').order_by('id'))
    return conversation, messages, membership


def is_read_by(message, requester, conversation, membership):
    """Read state of a message as seen by the requester."""
    if message.sender_id == requester.pk:
        return True
    if conversation.is_group:
        return message.pk <= (membership.last_read_message_id or 0)
    return message.read_at is not None


def _get_message(message_id):
    message = DirectMessage.objects.select_related('conversation').filter(pk=message_id).first()
    if message is None:
        raise NotFound("Message not found")
    return message


def edit_message(message_id, editor, content):
    content = content.strip() if isinstance(content, str) else ''
    if not content:
        raise BadRequest("Message content is required")

    message = _get_message(message_id)
    if message.sender_id != editor.pk:
        raise Forbidden("You can only edit your own messages")
    if message.message_type != DirectMessage.TEXT:
        raise BadRequest("Only text messages can be edited")

    message.content = content
    message.edited_at = timezone.now()
    message.save(update_fields=['content', 'edited_at'])
    return message


def delete_message(message_id, user):
    """Delete one's own message; media files are removed best-effort."""
    message = _get_message(message_id)
    if message.sender_id != user.pk:
        raise Forbidden("You can only delete your own messages")

    path = message.content if message.is_media else None
    message.delete()
    if path:
        remove_file(path)
    return message_id


def delete_conversation(conversation_id, user):
    """
    Delete a conversation for everyone, with its messages and media.

    Returns:
        dict: Counts of removed image and video files
    """
    conversation = get_conversation(conversation_id)
    require_participant(conversation, user, "You are not allowed to delete this conversation")

    media = list(
        conversation.messages
        .filter(message_type__in=DirectMessage.MEDIA_TYPES)
        .values_list('content', 'message_type')
    )

    with transaction.atomic():
        conversation.delete()

    removed = {DirectMessage.IMAGE: 0, DirectMessage.VIDEO: 0}
    for path, message_type in media:
        if remove_file(path):
            removed[message_type] += 1

    logger.info(f"{user.username} deleted conversation {conversation_id} ({len(media)} media files)")
    return removed


# ============================================================================
# READ RECEIPTS
# ============================================================================

def _advance_read_position(membership, message_id):
    """Move a group read position forward only; returns True when it moved."""
    updated = ConversationParticipant.objects.filter(pk=membership.pk).filter(
        Q(last_read_message_id__isnull=True) | Q(last_read_message_id__lt=message_id)
    ).update(last_read_message_id=message_id)
    return bool(updated)


def mark_read(message_id, reader):
    """
    Mark one message as read by a participant.

    Repeated calls are no-ops, never errors.

    Returns:
        tuple: (message, changed)
    """
    message = _get_message(message_id)
    if message.sender_id == reader.pk:
        raise BadRequest("Cannot mark your own message as read")

    conversation = message.conversation
    membership = require_participant(conversation, reader)

    if conversation.is_group:
        changed = _advance_read_position(membership, message.pk)
    else:
        changed = bool(
            DirectMessage.objects.filter(pk=message.pk, read_at__isnull=True)
            .update(read_at=timezone.now())
        )
    return message, changed


def mark_conversation_read(conversation, reader):
    """
    Mark every message from other senders as read.

    Returns:
        int: Number of messages newly marked
    """
    membership = require_participant(conversation, reader)
    incoming = conversation.messages.exclude(sender=reader)

    if conversation.is_group:
        unread = incoming.filter(id__gt=membership.last_read_message_id or 0)
        latest_id = unread.order_by('-id').values_list('id', flat=True).first()
        if latest_id is None:
            return 0
        count = unread.filter(id__lte=latest_id).count()
        return count if _advance_read_position(membership, latest_id) else 0

    return incoming.filter(read_at__isnull=True).update(read_at=timezone.now())


def unread_count(conversation, membership, user):
    incoming = conversation.messages.exclude(sender=user)
    if conversation.is_group:
        return incoming.filter(id__gt=membership.last_read_message_id or 0).count()
    return incoming.filter(read_at__isnull=True).count()


# ============================================================================
# CONVERSATION LIST
# ============================================================================

def list_conversations(user):
    """
    The user's active conversations, most recent activity first.

    Returns:
        list of dict: conversation, membership, participants (active users),
        other_user (1:1 only), last_message, unread_count
    """
    memberships = (
        ConversationParticipant.objects.active()
        .filter(user=user)
        .select_related('conversation')
        .prefetch_related(Prefetch(
            'conversation__participants',
            queryset=ConversationParticipant.objects.active().select_related('user').order_by('user_id'),
            to_attr='active_participants',
        ))
    )

    summaries = []
    for membership in memberships:
        conversation = membership.conversation
        participants = [p.user for p in conversation.active_participants]
        other_user = None
        if not conversation.is_group:
            other_user = next((p for p in participants if p.pk != user.pk), None)

        last_message = conversation.messages.select_related('sender').order_by('-id').first()
        summaries.append({
            'conversation': conversation,
            'membership': membership,
            'participants': participants,
            'other_user': other_user,
            'last_message': last_message,
            'unread_count': unread_count(conversation, membership, user),
        })

    summaries.sort(
        key=lambda s: s['last_message'].created_at if s['last_message'] else s['conversation'].updated_at,
        reverse=True,
    )
    return summaries
