from __future__ import annotations
import os
import time

from .config import MAX_ATTACHMENT_MB
from .errors import ValidationError
from .logger import get_logger
from .models import Attachment

log = get_logger("scootcare.uploads")

class AttachmentUploader:
    """Stores user files in the storage bucket before any message references them."""

    def __init__(self, backend, max_mb: int = MAX_ATTACHMENT_MB):
        self.backend = backend
        self.max_bytes = max_mb * 1024 * 1024

    def path_for(self, owner_id: str, filename: str) -> str:
        ext = os.path.splitext(filename)[1].lstrip(".").lower() or "bin"
        return f"{owner_id}/{int(time.time() * 1000)}.{ext}"

    def upload(self, owner_id: str, filename: str, data: bytes, mime: str = "application/octet-stream") -> Attachment:
        name = os.path.basename(filename or "").strip()
        if not name:
            raise ValidationError("file name is required")
        if not data:
            raise ValidationError("file is empty")
        if len(data) > self.max_bytes:
            raise ValidationError(f"file exceeds {self.max_bytes // (1024 * 1024)} MB")
        path = self.path_for(owner_id, name)
        url = self.backend.upload(path, data, mime)
        log.info("Uploaded %s (%s bytes) for owner=%s to %s", name, len(data), owner_id, path)
        return Attachment(url=url, name=name, mime=mime or "application/octet-stream", size=len(data))
