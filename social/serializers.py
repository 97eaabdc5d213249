"""
Plain-dict JSON payloads for API responses.

Timestamps are rendered in the timezone activated by TimezoneMiddleware.
"""

from django.utils import timezone

from .conversations import is_read_by
from .uploads import file_url


def iso(value):
    if value is None:
        return None
    return timezone.localtime(value).isoformat()


def user_brief(user):
    if user is None:
        return None
    return {
        'id': user.pk,
        'username': user.username,
        'profile_picture': file_url(user.profile_picture.name) if user.profile_picture else None,
    }


def user_detail(user):
    data = user_brief(user)
    data.update({
        'first_name': user.first_name,
        'last_name': user.last_name,
        'email': user.email,
        'bio': user.bio,
        'timezone': user.timezone,
        'date_joined': iso(user.date_joined),
    })
    return data


def user_public(user):
    data = user_brief(user)
    data.update({
        'first_name': user.first_name,
        'last_name': user.last_name,
        'bio': user.bio,
        'date_joined': iso(user.date_joined),
    })
    return data


# ==================== MESSAGES ====================

def message_payload(message, requester=None, conversation=None, membership=None):
    """
    Serialize a message. `is_read` is included when the requester and their
    membership are known.
    """
    data = {
        'id': message.pk,
        'conversation_id': message.conversation_id,
        'sender_id': message.sender_id,
        'sender_username': message.sender.username,
        'sender_profile_picture': user_brief(message.sender)['profile_picture'],
        'message_type': message.message_type,
        'content': message.content,
        'media_url': file_url(message.content) if message.is_media else None,
        'created_at': iso(message.created_at),
        'read_at': iso(message.read_at),
        'edited_at': iso(message.edited_at),
        'is_edited': message.edited_at is not None,
    }
    if requester is not None and membership is not None:
        data['is_read'] = is_read_by(message, requester, conversation or message.conversation, membership)
    return data


def conversation_payload(conversation):
    return {
        'id': conversation.pk,
        'is_group': conversation.is_group,
        'group_name': conversation.name or None,
        'created_by': conversation.created_by_id,
        'created_at': iso(conversation.created_at),
        'updated_at': iso(conversation.updated_at),
    }


def conversation_summary(summary):
    """Serialize an entry of conversations.list_conversations()."""
    conversation = summary['conversation']
    other_user = summary['other_user']
    last_message = summary['last_message']
    participants = summary['participants']

    if conversation.is_group:
        display_name = conversation.name or "Unnamed Group"
        picture = None
    else:
        display_name = other_user.username if other_user else "Unknown User"
        picture = user_brief(other_user)['profile_picture'] if other_user else None

    if last_message is None:
        preview = None
    elif last_message.is_media:
        preview = f"[{last_message.message_type}]"
    else:
        preview = last_message.content

    data = conversation_payload(conversation)
    data.update({
        'participant_ids': [user.pk for user in participants],
        'participant_usernames': [user.username for user in participants],
        'display_name': display_name,
        'other_user_username': other_user.username if other_user else None,
        'profile_picture': picture,
        'last_message': preview,
        'last_message_type': last_message.message_type if last_message else None,
        'last_message_time': iso(last_message.created_at) if last_message else None,
        'last_message_sender_id': last_message.sender_id if last_message else None,
        'unread_count': summary['unread_count'],
    })
    return data


# ==================== POSTS ====================

def attachment_payload(attachment):
    return {
        'id': attachment.pk,
        'url': file_url(attachment.file.name),
        'file_path': attachment.file.name,
        'mime_type': attachment.mime_type,
        'size_bytes': attachment.size_bytes,
        'uploaded_at': iso(attachment.uploaded_at),
    }


def comment_payload(comment):
    return {
        'id': comment.pk,
        'post_id': comment.post_id,
        'text': comment.text,
        'user': user_brief(comment.user),
        'created_at': iso(comment.created_at),
        'updated_at': iso(comment.updated_at),
    }


def post_payload(post, liked_ids=()):
    comments = list(post.comments.all())
    return {
        'id': post.pk,
        'user': user_brief(post.user),
        'text': post.text,
        'visibility': post.visibility,
        'likes': post.like_count,
        'user_liked': post.pk in liked_ids,
        'comment_count': len(comments),
        'comments': [comment_payload(comment) for comment in comments],
        'attachments': [attachment_payload(a) for a in post.attachments.all()],
        'created_at': iso(post.created_at),
        'updated_at': iso(post.updated_at),
    }
