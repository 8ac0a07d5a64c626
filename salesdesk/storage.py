# salesdesk/storage.py
import logging
import os
import time
import uuid

from salesdesk import config
from salesdesk.errors import PersistenceError, ValidationError

logger = logging.getLogger(__name__)

# Local blob store for proof photos. Callers only see the returned URL.


def save_image(owner_id: str, content: bytes, content_type: str, folder: str = "proofs") -> str:
    extension = config.UPLOAD_CONTENT_TYPES.get((content_type or "").lower())
    if not extension:
        raise ValidationError("Only JPEG and PNG images are allowed")
    if not content:
        raise ValidationError("Field 'photo' is empty")
    if len(content) > config.UPLOAD_MAX_BYTES:
        raise ValidationError("File size must be under 5MB")

    filename = f"{owner_id}_{int(time.time())}_{uuid.uuid4().hex[:12]}.{extension}"
    directory = os.path.join(config.UPLOAD_DIR, folder)
    try:
        os.makedirs(directory, exist_ok=True)
        with open(os.path.join(directory, filename), "wb") as fh:
            fh.write(content)
    except OSError as e:
        logger.exception("Failed to store upload for %s", owner_id)
        raise PersistenceError("Failed to save uploaded file") from e

    return f"{config.UPLOAD_URL_PREFIX}/{folder}/{filename}"


def delete_image(url: str):
    """Removes a file previously returned by `save_image`. Missing files are ignored."""
    prefix = f"{config.UPLOAD_URL_PREFIX}/"
    if not url or not url.startswith(prefix):
        return
    path = os.path.join(config.UPLOAD_DIR, *url[len(prefix):].split("/"))
    try:
        os.remove(path)
    except FileNotFoundError:
        return
    except OSError:
        logger.exception("Failed to remove orphaned upload %s", path)
        return
    logger.info("Removed orphaned upload %s", path)
