"""
Media storage for product uploads.

Uploaded files are written to the upload directory under a generated name and
described by a ``MediaRef``. The catalog owns the refs and asks the manager to
discard them when a product is deleted or its media replaced.
"""
import logging
import os
import random
import time
from pathlib import Path
from typing import Iterable, List

from fastapi import UploadFile

from errors import PayloadTooLargeError, ValidationError
from schemas import MediaRef

logger = logging.getLogger("storefront.media")

ALLOWED_PREFIXES = ("image/", "video/")
CHUNK_SIZE = 64 * 1024


class MediaManager:
    def __init__(self, upload_dir, max_upload_bytes: int = 10 * 1024 * 1024, url_prefix: str = "/uploads"):
        self.upload_dir = Path(upload_dir)
        self.max_upload_bytes = max_upload_bytes
        self.url_prefix = url_prefix.rstrip("/")

    def bootstrap(self):
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def classify(content_type: str) -> str:
        return "image" if content_type.startswith("image/") else "video"

    @staticmethod
    def check_type(upload: UploadFile):
        content_type = upload.content_type or ""
        if not content_type.startswith(ALLOWED_PREFIXES):
            raise ValidationError("Only image and video files are allowed!")

    @staticmethod
    def storage_name(filename: str) -> str:
        ext = os.path.splitext(filename or "")[1]
        return f"{int(time.time() * 1000)}-{random.randint(0, 10 ** 9)}{ext}"

    def store(self, upload: UploadFile) -> MediaRef:
        self.check_type(upload)
        if upload.size is not None and upload.size > self.max_upload_bytes:
            raise PayloadTooLargeError(f"File {upload.filename} exceeds the {self.max_upload_bytes} byte limit")

        self.bootstrap()
        stored_name = self.storage_name(upload.filename)
        target = self.upload_dir / stored_name
        written = 0
        try:
            with target.open("wb") as out:
                while True:
                    chunk = upload.file.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > self.max_upload_bytes:
                        raise PayloadTooLargeError(
                            f"File {upload.filename} exceeds the {self.max_upload_bytes} byte limit"
                        )
                    out.write(chunk)
        except BaseException:
            target.unlink(missing_ok=True)
            raise

        logger.info("Stored %s as %s (%d bytes)", upload.filename, stored_name, written)
        return MediaRef(
            type=self.classify(upload.content_type),
            url=f"{self.url_prefix}/{stored_name}",
            stored_name=stored_name,
        )

    def store_all(self, uploads: Iterable[UploadFile]) -> List[MediaRef]:
        uploads = list(uploads)
        for upload in uploads:
            self.check_type(upload)

        stored: List[MediaRef] = []
        try:
            for upload in uploads:
                stored.append(self.store(upload))
        except BaseException:
            self.discard(stored)
            raise
        return stored

    def discard(self, media: Iterable[MediaRef]) -> int:
        removed = 0
        for ref in media:
            path = self.upload_dir / Path(ref.stored_name).name
            try:
                path.unlink()
                removed += 1
            except FileNotFoundError:
                logger.debug("Media file already gone: %s", path)
            except OSError:
                logger.warning("Could not delete media file %s", path, exc_info=True)
        return removed

    def purge(self) -> int:
        if not self.upload_dir.exists():
            return 0
        removed = 0
        for entry in self.upload_dir.iterdir():
            if entry.is_file():
                entry.unlink(missing_ok=True)
                removed += 1
        logger.info("Purged %d uploaded files", removed)
        return removed
