"""
Account lifecycle: registration, login with lockout, profile updates and
account deletion.
"""

import logging

import pytz
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.core.validators import validate_email
from django.db import IntegrityError, transaction
from django.db.models import Q

from .errors import BadRequest, Conflict, Forbidden, NotFound, Unauthorized
from .models import Attachment, Conversation, DirectMessage
from .tokens import issue_token
from .uploads import PROFILE_FOLDER, remove_file, store_upload, validate_image

logger = logging.getLogger(__name__)

User = get_user_model()

REQUIRED_REGISTRATION_FIELDS = [
    ('first_name', "First name is required."),
    ('last_name', "Last name is required."),
    ('username', "Username is required."),
    ('email', "Email is required."),
    ('password', "Password is required."),
]


def lookup_user(username, message="User not found"):
    """Find an active user by case-insensitive username (404 otherwise)."""
    username = (username or '').strip()
    user = User.objects.filter(username__iexact=username, is_active=True).first() if username else None
    if user is None:
        raise NotFound(message)
    return user


# ============================================================================
# VALIDATION
# ============================================================================

def _clean(value):
    return value.strip() if isinstance(value, str) else ''


def username_errors(username):
    if len(username) < 3:
        return "Username must be at least 3 characters."
    if len(username) > 30:
        return "Username cannot exceed 30 characters."
    if not username.replace('_', '').isalnum():
        return "Username can only contain letters, numbers, and underscores."
    return None


def email_errors(email):
    try:
        validate_email(email)
    except ValidationError:
        return "Please enter a valid email address."
    return None


def password_errors(password):
    if len(password) < 8:
        return "Password must be at least 8 characters."
    return None


def _ensure_available(username=None, email=None, exclude=None):
    users = User.objects.all()
    if exclude is not None:
        users = users.exclude(pk=exclude.pk)
    if username and users.filter(username__iexact=username).exists():
        raise Conflict("Username already in use.")
    if email and users.filter(email__iexact=email).exists():
        raise Conflict("Email already in use.")


# ============================================================================
# REGISTRATION & LOGIN
# ============================================================================

def register_user(data):
    """
    Create an account from a registration payload.

    Raises:
        BadRequest: Missing or invalid field
        Conflict: Username or email already taken
    """
    fields = {name: _clean(data.get(name)) for name, _ in REQUIRED_REGISTRATION_FIELDS}
    fields['password'] = data.get('password') if isinstance(data.get('password'), str) else ''
    fields['email'] = fields['email'].lower()

    for name, message in REQUIRED_REGISTRATION_FIELDS:
        if not fields[name]:
            raise BadRequest(message)

    for error in (username_errors(fields['username']),
                  email_errors(fields['email']),
                  password_errors(fields['password'])):
        if error:
            raise BadRequest(error)

    if User.objects.filter(Q(username__iexact=fields['username']) | Q(email__iexact=fields['email'])).exists():
        raise Conflict("Email or username already in use.")

    try:
        user = User.objects.create_user(
            username=fields['username'],
            email=fields['email'],
            password=fields['password'],
            first_name=fields['first_name'],
            last_name=fields['last_name'],
        )
    except IntegrityError:
        raise Conflict("Email or username already in use.")

    logger.info(f"Registered user {user.username} (id={user.pk})")
    return user


def login_user(username, password):
    """
    Check credentials and issue a bearer token.

    Five consecutive failures lock the account for ten minutes (both
    configurable). A successful login resets the counter.

    Returns:
        tuple: (user, token)
    """
    username = _clean(username)
    if not username or not isinstance(password, str) or not password:
        raise BadRequest("Username and password are required.")

    user = User.objects.filter(username__iexact=username).first()
    if user is None:
        raise Unauthorized("Invalid username.")

    if user.is_locked:
        logger.info(f"Login refused for locked account {user.username}")
        raise Forbidden("Account is locked. Try again later.", unlockTime=user.lock_until.isoformat())

    if user.lock_until is not None:
        # The previous lock has expired; start counting afresh
        user.clear_failed_logins()

    if not user.check_password(password):
        attempts_left = user.register_failed_login(
            settings.LOGIN_MAX_FAILED_ATTEMPTS, settings.LOGIN_LOCKOUT_MINUTES
        )
        logger.info(f"Failed login for {user.username} ({user.failed_attempts} consecutive)")
        raise Unauthorized("Invalid password.", attemptsLeft=attempts_left, locked=user.is_locked)

    if not user.is_active:
        raise Forbidden("Account is inactive.")

    user.clear_failed_logins()
    return user, issue_token(user)


# ============================================================================
# PROFILE UPDATES
# ============================================================================

def update_account(user, data):
    """
    Apply a partial account update (names, username, email, password,
    timezone). Only keys present in `data` are touched.
    """
    update_fields = []

    for name in ('first_name', 'last_name'):
        if name in data:
            value = _clean(data.get(name))
            if not value:
                raise BadRequest(f"{name.replace('_', ' ').capitalize()} cannot be empty.")
            setattr(user, name, value)
            update_fields.append(name)

    if 'username' in data:
        username = _clean(data.get('username'))
        error = username_errors(username)
        if error:
            raise BadRequest(error)
        _ensure_available(username=username, exclude=user)
        user.username = username
        update_fields.append('username')

    if 'email' in data:
        email = _clean(data.get('email')).lower()
        error = email_errors(email)
        if error:
            raise BadRequest(error)
        _ensure_available(email=email, exclude=user)
        user.email = email
        update_fields.append('email')

    if 'timezone' in data:
        tz_name = _clean(data.get('timezone'))
        if tz_name not in pytz.all_timezones_set:
            raise BadRequest("Unknown timezone.")
        user.timezone = tz_name
        update_fields.append('timezone')

    if 'password' in data:
        password = data.get('password') if isinstance(data.get('password'), str) else ''
        error = password_errors(password)
        if error:
            raise BadRequest(error)
        user.set_password(password)
        update_fields.append('password')

    if not update_fields:
        raise BadRequest("No fields to update.")

    try:
        user.save(update_fields=update_fields)
    except IntegrityError:
        raise Conflict("Username or email already in use.")

    logger.info(f"Updated {', '.join(update_fields)} for user {user.pk}")
    return user


def update_bio(user, bio):
    bio = bio.strip() if isinstance(bio, str) else ''
    if not 1 <= len(bio) <= 200:
        raise BadRequest("Bio must be 1-200 characters long")
    user.bio = bio
    user.save(update_fields=['bio'])
    return user


def update_profile_picture(user, upload):
    """Store a new avatar, then remove the previous file best-effort."""
    validate_image(upload)
    previous = user.profile_picture.name if user.profile_picture else None

    path = store_upload(upload, PROFILE_FOLDER)
    user.profile_picture.name = path
    try:
        user.save(update_fields=['profile_picture'])
    except Exception:
        remove_file(path)
        raise

    if previous:
        remove_file(previous)
    return user


# ============================================================================
# ACCOUNT DELETION
# ============================================================================

def _owned_media_paths(user):
    """Storage paths of every file that goes away with the account."""
    paths = list(Attachment.objects.filter(owner=user).values_list('file', flat=True))

    media_messages = DirectMessage.objects.filter(message_type__in=DirectMessage.MEDIA_TYPES)
    direct_conversations = Conversation.objects.filter(Q(user_a=user) | Q(user_b=user))
    paths += media_messages.filter(
        Q(sender=user) | Q(conversation__in=direct_conversations)
    ).values_list('content', flat=True).distinct()

    if user.profile_picture:
        paths.append(user.profile_picture.name)
    return [path for path in paths if path]


def delete_account(user, target_id, password):
    """
    Delete the requester's own account after re-checking the password.

    Rows go first (in one transaction), stored files afterwards.

    Returns:
        int: Number of files removed from storage
    """
    if target_id != user.pk:
        raise Forbidden("You can only delete your own account.")
    if not isinstance(password, str) or not user.check_password(password):
        raise Unauthorized("Incorrect password.")

    paths = _owned_media_paths(user)
    username = user.username

    with transaction.atomic():
        user.delete()

    removed = sum(1 for path in paths if remove_file(path))
    logger.info(f"Deleted account {username}; removed {removed}/{len(paths)} files")
    return removed
