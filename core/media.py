"""
Uploaded media on disk.

Media URLs handed over by the HTTP collaborator (``/images/<file>``) are
paths relative to ``MEDIA_ROOT``.
"""

import logging

from django.conf import settings
from django.core.exceptions import SuspiciousFileOperation
from django.core.files.storage import FileSystemStorage

logger = logging.getLogger(__name__)


def media_storage() -> FileSystemStorage:
    return FileSystemStorage(location=settings.MEDIA_ROOT)


def remove_media_file(url: str) -> bool:
    """
    Delete the file behind ``url``. Failures are logged, never raised.

    Returns True if a file was removed.
    """
    if not url:
        return False
    name = url.lstrip("/")
    storage = media_storage()
    try:
        if not storage.exists(name):
            logger.warning("Media file %s does not exist", url)
            return False
        storage.delete(name)
    except (OSError, SuspiciousFileOperation) as exc:
        logger.warning("Could not delete media file %s: %s", url, exc)
        return False
    logger.info("Deleted media file %s", url)
    return True
