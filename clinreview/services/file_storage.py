"""
Attachment storage for review items.

Files are written below ``settings.storage.upload_dir`` and addressed by a
public URL built from ``settings.storage.public_base_url``. Size and MIME
type are checked before anything touches the disk.
"""
import logging
import os
import secrets
import time
from typing import List, Optional

from clinreview.core.config import settings
from clinreview.core.exceptions import NotFoundError, ValidationFailed

logger = logging.getLogger(__name__)


def validate_file(filename: str, content_type: Optional[str], size: int,
                  max_size: int = None, allowed_types: List[str] = None):
    max_size = max_size or settings.storage.max_file_size
    allowed_types = allowed_types or settings.storage.allowed_types
    if not filename:
        raise ValidationFailed("A file name is required", field="file")
    if size > max_size:
        raise ValidationFailed(
            f"File {filename} exceeds the {max_size / (1024 * 1024):.0f}MB limit", field="file"
        )
    if content_type not in allowed_types:
        raise ValidationFailed(
            f"File type {content_type} is not allowed. Allowed types: PDF, PNG, JPEG, DOC, DOCX, TXT",
            field="file",
        )


def destination_path(staff_id: int, kpi_id: int, filename: str) -> str:
    """<staff>/<kpi>/<millis>_<random>.<ext>"""
    extension = os.path.splitext(filename)[1].lower().lstrip(".") or "bin"
    stamp = int(time.time() * 1000)
    return f"{staff_id}/{kpi_id}/{stamp}_{secrets.token_hex(6)}.{extension}"


class FileStorage:
    def __init__(self, root: str = None, public_base_url: str = None):
        self.root = os.path.abspath(root or settings.storage.upload_dir)
        self.public_base_url = (public_base_url or settings.storage.public_base_url).rstrip("/")
        self.bucket = settings.storage.bucket_name

    def _url_for(self, path: str) -> str:
        return f"{self.public_base_url}/{self.bucket}/{path}"

    def _path_for(self, url: str) -> str:
        prefix = f"{self.public_base_url}/{self.bucket}/"
        if not url.startswith(prefix):
            raise ValidationFailed("File URL does not belong to this storage", field="url")
        relative = url[len(prefix):]
        full = os.path.abspath(os.path.join(self.root, self.bucket, relative))
        if not full.startswith(os.path.join(self.root, self.bucket) + os.sep):
            raise ValidationFailed("Invalid file URL", field="url")
        return full

    def upload(self, content: bytes, filename: str, content_type: Optional[str], path: str) -> str:
        """Store ``content`` at ``path`` and return its public URL."""
        validate_file(filename, content_type, len(content))
        full = os.path.join(self.root, self.bucket, path)
        os.makedirs(os.path.dirname(full), exist_ok=True)
        with open(full, "wb") as f:
            f.write(content)
        logger.info(f"Stored attachment {filename} ({len(content)} bytes) at {path}")
        return self._url_for(path)

    def delete(self, url: str):
        full = self._path_for(url)
        if not os.path.exists(full):
            raise NotFoundError("File not found")
        os.remove(full)
        logger.info(f"Deleted attachment {url}")

    def exists(self, url: str) -> bool:
        try:
            return os.path.exists(self._path_for(url))
        except ValidationFailed:
            return False
