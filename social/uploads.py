"""
Upload validation and storage.

Images (jpeg, png, gif, webp; 5MB) are checked with Pillow before they are
stored. Videos (mp4, mov, avi, mkv, webm; 10MB) are checked by extension,
content type and size. Files are written through default_storage, which is
local MEDIA_ROOT in development and Cloudinary when configured.
"""

import logging
import os
import time

from PIL import Image, UnidentifiedImageError
from django.conf import settings
from django.core.files.storage import default_storage
from django.utils.crypto import get_random_string

from .errors import BadRequest

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.gif', '.webp'}
IMAGE_CONTENT_TYPES = {'image/jpeg', 'image/jpg', 'image/png', 'image/gif', 'image/webp'}
IMAGE_FORMATS = {'JPEG', 'PNG', 'GIF', 'WEBP'}

VIDEO_EXTENSIONS = {'.mp4', '.mov', '.avi', '.mkv', '.webm'}

IMAGE_FOLDER = 'images'
VIDEO_FOLDER = 'videos'
PROFILE_FOLDER = 'profiles'


def _extension(upload):
    return os.path.splitext(upload.name or '')[1].lower()


def validate_image(upload):
    """
    Reject anything that is not a readable image within the size limit.

    Raises:
        BadRequest: Wrong extension or type, too large, or not decodable
    """
    if upload is None:
        raise BadRequest("No image uploaded")

    if _extension(upload) not in IMAGE_EXTENSIONS or upload.content_type not in IMAGE_CONTENT_TYPES:
        raise BadRequest("Only image files are allowed!")

    if upload.size > settings.MAX_IMAGE_UPLOAD_SIZE:
        limit_mb = settings.MAX_IMAGE_UPLOAD_SIZE // (1024 * 1024)
        raise BadRequest(f"Image exceeds the {limit_mb}MB limit")

    try:
        with Image.open(upload) as image:
            image_format = image.format
            image.verify()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError):
        raise BadRequest("Uploaded file is not a valid image")
    finally:
        upload.seek(0)

    if image_format not in IMAGE_FORMATS:
        raise BadRequest("Only image files are allowed!")


def validate_video(upload):
    """
    Reject anything that is not a supported video within the size limit.

    Raises:
        BadRequest: Wrong extension or type, or too large
    """
    if upload is None:
        raise BadRequest("No video uploaded")

    content_type = upload.content_type or ''
    if _extension(upload) not in VIDEO_EXTENSIONS or not content_type.startswith('video/'):
        raise BadRequest("Only video files are allowed!")

    if upload.size > settings.MAX_VIDEO_UPLOAD_SIZE:
        limit_mb = settings.MAX_VIDEO_UPLOAD_SIZE // (1024 * 1024)
        raise BadRequest(f"Video exceeds the {limit_mb}MB limit")


def store_upload(upload, folder):
    """
    Write an already validated upload to storage.

    Returns:
        str: Storage path, e.g. "uploads/images/1760000000000-k3x9qa.png"
    """
    name = f"uploads/{folder}/{int(time.time() * 1000)}-{get_random_string(6).lower()}{_extension(upload)}"
    path = default_storage.save(name, upload)
    logger.info(f"Stored upload {path} ({upload.size} bytes)")
    return path


def remove_file(path):
    """
    Best-effort removal of a stored file.

    Failures are logged and swallowed; the caller's rows are already gone.

    Returns:
        bool: True when the storage backend accepted the delete
    """
    if not path:
        return False
    try:
        default_storage.delete(path)
    except Exception:
        logger.exception(f"Could not remove stored file {path}")
        return False
    return True


def file_url(path):
    """Public URL of a stored file, or None."""
    if not path:
        return None
    return default_storage.url(path)
