import logging
import os
import uuid
from typing import Iterable

from django.conf import settings
from django.core.files.storage import default_storage
from django.utils.text import get_valid_filename

from workflow.exceptions import InvalidArgument, StorageFailure

logger = logging.getLogger(__name__)


def store(file, folder: str, allowed_extensions: Iterable[str]) -> dict:
    """Save an uploaded file and return its descriptor.

    The descriptor is ``{"url", "storageId", "originalFilename"}``; callers
    persist it verbatim and never look inside the storage backend.
    """
    if file is None:
        raise InvalidArgument('No file uploaded')
    original = os.path.basename(getattr(file, 'name', '') or '')
    ext = os.path.splitext(original)[1].lower()
    allowed = {e.lower() for e in allowed_extensions}
    if not ext or ext not in allowed:
        raise InvalidArgument(f'File type {ext or "(none)"} not allowed; expected one of {", ".join(sorted(allowed))}')
    size_mb = (getattr(file, 'size', 0) or 0) / (1024 * 1024)
    if size_mb > settings.UPLOAD_MAX_MB:
        raise InvalidArgument(f'File too large (max {settings.UPLOAD_MAX_MB} MB)')

    target = f"{folder}/{uuid.uuid4().hex}_{get_valid_filename(original)}"
    try:
        storage_id = default_storage.save(target, file)
        url = default_storage.url(storage_id)
    except (OSError, ValueError) as exc:
        logger.error('storage.save_failed', extra={'folder': folder, 'file': original, 'error': str(exc)})
        raise StorageFailure(f'Could not store {original}') from exc
    logger.info('storage.saved', extra={'storage_id': storage_id})
    return {'url': url, 'storageId': storage_id, 'originalFilename': original}


def remove(storage_id: str) -> None:
    if not storage_id:
        return
    try:
        default_storage.delete(storage_id)
    except OSError as exc:
        logger.warning('storage.delete_failed', extra={'storage_id': storage_id, 'error': str(exc)})
