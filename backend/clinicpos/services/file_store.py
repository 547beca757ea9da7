# Overview: Local disk storage for uploaded product, promotion and customer images.

"""
Image files are stored under UPLOAD_FOLDER/<folder>/ and referenced from the
database by their public path ("/uploads/<folder>/<name>").

Writes are not transactional with the record update that references them:
a crash between the two leaves an orphaned file on disk. Replaced files are
only deleted after the referencing record has committed, so a rolled back
update never points at a missing file. Deletions are best effort; failures
are logged and never surfaced to the caller.
"""

from __future__ import annotations

import os
import secrets
import time

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from ..errors import ValidationError
from ..validation import enforce_image_cap

PUBLIC_PREFIX = "/uploads/"
ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}


class FileStore:
    def __init__(self, root: str):
        self.root = root

    def _full_path(self, public_path: str) -> str | None:
        if not public_path or not public_path.startswith(PUBLIC_PREFIX):
            return None
        relative = public_path[len(PUBLIC_PREFIX):]
        full = os.path.abspath(os.path.join(self.root, relative))
        # Never resolve outside the upload root
        if not full.startswith(os.path.abspath(self.root) + os.sep):
            return None
        return full

    def save(self, upload: FileStorage, folder: str, prefix: str) -> str:
        """Write an uploaded file and return its public path."""
        original = secure_filename(upload.filename or "")
        ext = os.path.splitext(original)[1].lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                f"Unsupported image type: {ext or 'none'} (allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))})"
            )

        directory = os.path.join(self.root, folder)
        os.makedirs(directory, exist_ok=True)

        filename = f"{prefix}-{int(time.time() * 1000)}-{secrets.token_hex(4)}{ext}"
        upload.save(os.path.join(directory, filename))
        return f"{PUBLIC_PREFIX}{folder}/{filename}"

    def exists(self, public_path: str) -> bool:
        full = self._full_path(public_path)
        return bool(full) and os.path.isfile(full)

    def delete(self, public_path: str | None) -> bool:
        """Remove a stored file. Returns True if a file was removed."""
        full = self._full_path(public_path) if public_path else None
        if not full:
            return False
        try:
            if os.path.isfile(full):
                os.remove(full)
                return True
        except OSError:
            current_app.logger.warning("Failed to delete image %s", public_path, exc_info=True)
        return False

    def delete_many(self, public_paths) -> int:
        return sum(1 for path in public_paths if self.delete(path))


def get_file_store() -> FileStore:
    root = current_app.config["UPLOAD_FOLDER"]
    if not os.path.isabs(root):
        root = os.path.join(current_app.instance_path, root)
    return FileStore(root)


def uploaded_files(files, field: str) -> list[FileStorage]:
    """Non-empty uploads for a multipart field (request.files)."""
    if files is None:
        return []
    return [f for f in files.getlist(field) if f and f.filename]


def replace_images(
    current: list[str] | None,
    keep: list[str] | None,
    uploads: list[FileStorage],
    *,
    folder: str,
    prefix: str,
    limit: int,
) -> tuple[list[str], list[str]]:
    """
    Compute a record's new image list.

    keep: paths the client retains (None keeps every current image).
    New uploads are written immediately. Returns (images, removed); the
    caller deletes the removed files once its transaction has committed.
    """
    current = list(current or [])
    kept = current if keep is None else [p for p in keep if p in current]
    enforce_image_cap(len(kept) + len(uploads), limit)

    store = get_file_store()
    added = [store.save(upload, folder, prefix) for upload in uploads]
    removed = [p for p in current if p not in kept]
    return kept + added, removed
