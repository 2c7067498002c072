"""
External media store: Cloudinary in production, in-memory for tests/dev.

Posts, stories and profile pictures keep only media identifiers (Cloudinary
public ids); URLs are built on the way out. The store in use is chosen by the
``SOCIAL_MEDIA_STORE`` setting.
"""

import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

import cloudinary
import cloudinary.uploader
import cloudinary.utils
from django.conf import settings
from django.dispatch import receiver
from django.test.signals import setting_changed
from django.utils.module_loading import import_string
from PIL import Image, UnidentifiedImageError

from .errors import InvalidRequest, MediaDeleteError, MediaUploadError

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = ('jpeg', 'jpg', 'png')


@dataclass(frozen=True)
class UploadedMedia:
    media_id: str
    url: str


class CloudinaryMediaStore:
    """Uploads to Cloudinary with the same limits the mobile clients expect."""

    transformation = [
        {
            "width": 500,
            "height": 500,
            "crop": "limit",
            "quality": "auto",
            "fetch_format": "auto",
        }
    ]

    def __init__(self, folder=None, config=None):
        self.folder = folder or settings.CLOUDINARY_FOLDER
        cloudinary.config(**(config or settings.CLOUDINARY))

    def upload(self, file):
        try:
            result = cloudinary.uploader.upload(
                file,
                resource_type="auto",
                folder=self.folder,
                transformation=self.transformation,
            )
        except Exception as e:
            logger.error(f"Error uploading to Cloudinary: {e}")
            raise MediaUploadError() from e

        public_id = result.get("public_id")
        if not public_id:
            raise MediaUploadError()
        logger.info(f"File uploaded to Cloudinary: {result.get('secure_url')}")
        return UploadedMedia(media_id=public_id, url=result.get("secure_url") or self.url(public_id))

    def delete(self, media_id):
        # "not found" is a success: deleting twice is fine
        try:
            result = cloudinary.uploader.destroy(media_id)
        except Exception as e:
            raise MediaDeleteError(f"Failed to delete image {media_id}") from e
        if result.get("result") not in ("ok", "not found"):
            raise MediaDeleteError(f"Failed to delete image {media_id}: {result.get('result')}")
        logger.info(f"File deleted from Cloudinary: {media_id}")

    def url(self, media_id):
        url, _ = cloudinary.utils.cloudinary_url(media_id, resource_type="image", secure=True)
        return url


@dataclass
class InMemoryMediaStore:
    """Test double for media interactions."""

    base_url: str = "https://media.example.test"
    stored: dict = field(default_factory=dict)
    uploaded: list = field(default_factory=list)
    deleted: list = field(default_factory=list)
    fail_uploads_after: int | None = None
    fail_deletes: bool = False

    def upload(self, file):
        if self.fail_uploads_after is not None and len(self.uploaded) >= self.fail_uploads_after:
            raise MediaUploadError()
        media_id = f"uploads/{uuid.uuid4().hex}"
        if hasattr(file, "seek"):
            file.seek(0)
        self.stored[media_id] = file.read() if hasattr(file, "read") else file
        self.uploaded.append(media_id)
        return UploadedMedia(media_id=media_id, url=self.url(media_id))

    def delete(self, media_id):
        self.deleted.append(media_id)
        if self.fail_deletes:
            raise MediaDeleteError(f"Failed to delete image {media_id}")
        self.stored.pop(media_id, None)

    def url(self, media_id):
        return f"{self.base_url}/{media_id}"

    def reset(self):
        """Clear all stored data (useful in tests)."""
        self.stored.clear()
        self.uploaded.clear()
        self.deleted.clear()
        self.fail_uploads_after = None
        self.fail_deletes = False


_media_store = None


def get_media_store():
    """Return the process-wide media store configured by SOCIAL_MEDIA_STORE."""
    global _media_store
    if _media_store is None:
        _media_store = import_string(settings.SOCIAL_MEDIA_STORE)()
    return _media_store


@receiver(setting_changed)
def _reset_media_store(*, setting, **kwargs):
    global _media_store
    if setting in ("SOCIAL_MEDIA_STORE", "CLOUDINARY", "CLOUDINARY_FOLDER"):
        _media_store = None


def media_urls(media_ids, store=None):
    store = store or get_media_store()
    return [{"id": media_id, "url": store.url(media_id)} for media_id in media_ids]


def validate_image(file):
    """Only JPEG/JPG/PNG images under the upload size limit are accepted."""
    name = (getattr(file, "name", "") or "").lower()
    extension = name.rsplit(".", 1)[-1] if "." in name else ""
    content_type = (getattr(file, "content_type", "") or "").lower()

    if extension not in IMAGE_EXTENSIONS or content_type not in settings.SOCIAL_ALLOWED_IMAGE_TYPES:
        raise InvalidRequest("Only JPEG/JPG/PNG images are allowed")
    if file.size > settings.SOCIAL_MAX_UPLOAD_SIZE:
        raise InvalidRequest(f"Image {file.name} exceeds the {settings.SOCIAL_MAX_UPLOAD_SIZE // (1024 * 1024)}MB limit")

    try:
        with Image.open(file) as image:
            image.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise InvalidRequest(f"File {file.name} is not a valid image") from e
    finally:
        file.seek(0)


def validate_images(files, kept=0):
    """Check the combined image ceiling, then every file, before any upload."""
    if kept + len(files) > settings.SOCIAL_MAX_IMAGES:
        raise InvalidRequest(f"Maximum {settings.SOCIAL_MAX_IMAGES} images allowed")
    for f in files:
        validate_image(f)


def discard_media(media_ids, store=None, parallel=False):
    """
    Compensating delete: remove media from the store, best-effort.

    Failures are logged and never raised; the caller is already reporting
    the error that matters (or has nothing left to undo).
    """
    store = store or get_media_store()
    media_ids = [media_id for media_id in media_ids if media_id]
    if not media_ids:
        return

    def _delete(media_id):
        try:
            store.delete(media_id)
        except MediaDeleteError as e:
            logger.warning(f"Cleanup failed for image {media_id}: {e}")

    if parallel and len(media_ids) > 1:
        with ThreadPoolExecutor(max_workers=min(len(media_ids), 4)) as pool:
            list(pool.map(_delete, media_ids))
    else:
        for media_id in media_ids:
            _delete(media_id)


class MediaBatch:
    """
    Uploads that belong to one logical operation.

    Used as a context manager: if the block raises, everything uploaded
    through the batch is discarded from the store before the exception
    propagates.

        with MediaBatch(store) as batch:
            ids = batch.upload_all(request.FILES.getlist("images"))
            Post.objects.create(..., images=ids)
    """

    def __init__(self, store=None):
        self.store = store or get_media_store()
        self.media_ids = []

    def upload(self, file):
        media = self.store.upload(file)
        self.media_ids.append(media.media_id)
        return media

    def upload_all(self, files):
        uploaded = [self.upload(f).media_id for f in files]
        return uploaded

    def rollback(self):
        discard_media(self.media_ids, self.store)
        self.media_ids = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is not None and self.media_ids:
            logger.warning(f"Rolling back {len(self.media_ids)} uploaded image(s) after {exc_type.__name__}")
            self.rollback()
        return False
