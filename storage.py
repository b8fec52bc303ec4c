"""Object storage access and the lifecycle of files attached to records.

Events carry up to three files (image, banner, PDF) and fests one image. The
files live in Supabase Storage buckets while the records live in Postgres, so
there is no transaction spanning both. ``FileLifecycleManager`` keeps the two
consistent by ordering: uploads happen before the database write and are
removed again if that write fails, and objects replaced or cleared by an
update are only removed after the write succeeded.
"""

import logging
import os
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Iterable, List, Optional, Tuple
from urllib.parse import urlparse

import httpx
from storage3.utils import StorageException
from supabase import Client, create_client

from database import settings
from errors import UpstreamStorageError, ValidationError

logger = logging.getLogger(__name__)

IMAGE_CONTENT_TYPES = ("image/jpeg", "image/png", "image/webp", "image/gif")
PDF_CONTENT_TYPES = ("application/pdf",)

EVENT_IMAGES_BUCKET = "event-images"
EVENT_BANNERS_BUCKET = "event-banners"
EVENT_PDFS_BUCKET = "event-pdfs"
FEST_IMAGES_BUCKET = "fest-images"


@dataclass(frozen=True)
class UploadedFile:
    """A file received in a multipart request, fully read into memory."""

    field_name: str
    filename: str
    content_type: str
    data: bytes


@dataclass(frozen=True)
class FileSlot:
    """One file attachment of a record: form field, column and bucket."""

    form_key: str
    column: str
    bucket: str
    content_types: Tuple[str, ...]
    label: str

    @property
    def remove_flag(self) -> str:
        return f"remove{self.form_key[0].upper()}{self.form_key[1:]}"

    @property
    def existing_url_field(self) -> str:
        return f"existing{self.form_key[0].upper()}{self.form_key[1:]}Url"


EVENT_FILE_SLOTS = (
    FileSlot("imageFile", "event_image_url", EVENT_IMAGES_BUCKET, IMAGE_CONTENT_TYPES, "image"),
    FileSlot("bannerFile", "banner_url", EVENT_BANNERS_BUCKET, IMAGE_CONTENT_TYPES, "banner"),
    FileSlot("pdfFile", "pdf_url", EVENT_PDFS_BUCKET, PDF_CONTENT_TYPES, "PDF"),
)


@dataclass(frozen=True)
class StoredObject:
    bucket: str
    path: str


class ObjectStorage(ABC):
    """Bucket-based blob store keyed by path."""

    @abstractmethod
    def upload(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        """Store ``data`` at ``bucket/path`` and return its public URL.

        Raises:
            UpstreamStorageError: If the store rejects the upload.
        """
        ...

    @abstractmethod
    def remove(self, bucket: str, paths: List[str]) -> None:
        """Remove objects from a bucket."""
        ...


class SupabaseStorage(ObjectStorage):
    """Supabase Storage implementation of ObjectStorage."""

    def __init__(self, client: Client) -> None:
        self._client = client

    def upload(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        bucket_api = self._client.storage.from_(bucket)
        try:
            bucket_api.upload(
                path=path,
                file=data,
                file_options={"content-type": content_type, "upsert": "false"},
            )
        except (StorageException, httpx.HTTPError) as e:
            logger.error(f"Storage upload error to bucket {bucket} for path {path}: {e}")
            raise UpstreamStorageError(f"Failed to upload file to {bucket}.")

        public_url = bucket_api.get_public_url(path)
        if not public_url:
            logger.error(f"Failed to get public URL for {path} in bucket {bucket} after upload")
            try:
                self.remove(bucket, [path])
            except Exception as e:
                logger.warning(f"Failed to remove {path} from {bucket} after missing public URL: {e}")
            raise UpstreamStorageError(f"Failed to get public URL for file in {bucket}.")
        return public_url

    def remove(self, bucket: str, paths: List[str]) -> None:
        self._client.storage.from_(bucket).remove(paths)


@lru_cache
def _supabase_client() -> Client:
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_KEY)


def get_storage() -> ObjectStorage:
    """FastAPI dependency providing the object storage."""
    return SupabaseStorage(_supabase_client())


def resolve_path_from_url(url: Optional[str], bucket_name: str) -> Optional[str]:
    """Return the object path inside ``bucket_name`` for a public storage URL.

    Returns None when the URL cannot be parsed, has no segment named after the
    bucket, or has nothing after that segment.
    """
    if not url or not bucket_name:
        return None
    try:
        parsed = urlparse(str(url))
    except ValueError:
        return None
    if not parsed.scheme or not parsed.netloc:
        return None

    segments = parsed.path.split("/")
    try:
        bucket_index = segments.index(bucket_name)
    except ValueError:
        return None
    if bucket_index + 1 >= len(segments):
        return None
    path = "/".join(segments[bucket_index + 1:])
    return path or None


def validate_upload(slot: FileSlot, upload: UploadedFile, max_bytes: int) -> None:
    if upload.content_type not in slot.content_types:
        allowed = ", ".join(t.split("/")[1].upper() for t in slot.content_types)
        raise ValidationError(f"Invalid file type for {slot.label}. Only {allowed} allowed.")
    if len(upload.data) > max_bytes:
        raise ValidationError(f"The {slot.label} file exceeds the {max_bytes // (1024 * 1024)} MB limit.")


def purge_files(storage: ObjectStorage, files: Iterable[Tuple[Optional[str], str]]) -> int:
    """Best-effort removal of stored objects given as ``(url, bucket)`` pairs.

    URLs that do not resolve to a path are skipped. Failures are logged and
    never raised. Returns the number of objects removal was attempted for.
    """
    by_bucket: Dict[str, List[str]] = {}
    for url, bucket in files:
        path = resolve_path_from_url(url, bucket)
        if path:
            by_bucket.setdefault(bucket, []).append(path)

    attempted = 0
    for bucket, paths in by_bucket.items():
        attempted += len(paths)
        try:
            storage.remove(bucket, paths)
        except Exception as e:
            logger.warning(f"Failed to delete {len(paths)} file(s) from {bucket}: {e}")
    return attempted


class FileLifecycleManager:
    """Tracks the storage side effects of one record mutation.

    Use as a context manager around the upload and database write::

        with FileLifecycleManager(storage, event_id) as files:
            url = files.upload(EVENT_IMAGES_BUCKET, image)
            db.commit()

    Leaving the block with an exception removes everything uploaded inside it.
    Leaving it normally executes the removals scheduled with ``discard``.
    """

    def __init__(self, storage: ObjectStorage, namespace: str) -> None:
        self._storage = storage
        self._namespace = namespace
        self._uploaded: List[StoredObject] = []
        self._discarded: List[Tuple[str, str]] = []

    def __enter__(self) -> "FileLifecycleManager":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            self.commit()
        else:
            self.rollback()
        return False

    @property
    def uploaded(self) -> List[StoredObject]:
        return list(self._uploaded)

    def upload(self, bucket: str, upload: UploadedFile) -> str:
        extension = os.path.splitext(upload.filename)[1]
        path = f"{self._namespace}/{uuid.uuid4().hex}{extension}"
        public_url = self._storage.upload(bucket, path, upload.data, upload.content_type)
        self._uploaded.append(StoredObject(bucket=bucket, path=path))
        return public_url

    def discard(self, url: Optional[str], bucket: str) -> None:
        """Schedule an existing object for removal after a successful write."""
        if url:
            self._discarded.append((url, bucket))

    def rollback(self) -> None:
        while self._uploaded:
            stored = self._uploaded.pop()
            try:
                self._storage.remove(stored.bucket, [stored.path])
            except Exception as e:
                logger.error(f"Rollback file deletion error for {stored.path} in {stored.bucket}: {e}")
        self._discarded.clear()

    def commit(self) -> None:
        self._uploaded.clear()
        discarded, self._discarded = self._discarded, []
        purge_files(self._storage, discarded)
