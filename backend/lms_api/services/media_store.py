"""
Media store client.

``MediaStore`` is the capability the rest of the application depends on;
``CloudinaryMediaStore`` implements it with the Cloudinary SDK.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Protocol

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError

from lms_api.models.media import MediaReference


logger = logging.getLogger(__name__)


class MediaStoreError(Exception):
    """Raised when the media store rejects or fails a request."""


@dataclass(frozen=True)
class UploadOptions:
    folder: str
    width: Optional[int] = None
    height: Optional[int] = None
    gravity: Optional[str] = None
    crop: Optional[str] = None
    resource_type: Optional[str] = None
    chunk_size: Optional[int] = None

    def as_kwargs(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


class MediaStore(Protocol):
    def upload(self, local_path: str, options: UploadOptions) -> MediaReference:
        ...

    def destroy(self, public_id: str, resource_type: Optional[str] = None) -> None:
        ...


def avatar_options(folder: str, size: int) -> UploadOptions:
    """Square crop centred on detected faces."""
    return UploadOptions(folder=folder, width=size, height=size, gravity="faces", crop="fill")


def thumbnail_options(folder: str) -> UploadOptions:
    return UploadOptions(folder=folder)


def lecture_options(folder: str, chunk_size: int) -> UploadOptions:
    return UploadOptions(folder=folder, resource_type="video", chunk_size=chunk_size)


class CloudinaryMediaStore:
    """
    MediaStore backed by Cloudinary.

    Large video uploads go through ``upload_large`` so they are sent in
    chunks of ``chunk_size`` bytes.
    """

    def __init__(self, cloud_name: str, api_key: str, api_secret: str):
        cloudinary.config(
            cloud_name=cloud_name,
            api_key=api_key,
            api_secret=api_secret,
            secure=True
        )

    def upload(self, local_path: str, options: UploadOptions) -> MediaReference:
        kwargs = options.as_kwargs()
        try:
            if options.chunk_size:
                result = cloudinary.uploader.upload_large(local_path, **kwargs)
            else:
                result = cloudinary.uploader.upload(local_path, **kwargs)
        except CloudinaryError as e:
            raise MediaStoreError(str(e)) from e

        if not result or "public_id" not in result:
            raise MediaStoreError("Media store returned no asset id")
        logger.info(f"Uploaded {result['public_id']} to folder {options.folder}")
        return MediaReference(result["public_id"], result.get("secure_url"))

    def destroy(self, public_id: str, resource_type: Optional[str] = None) -> None:
        kwargs = {"resource_type": resource_type} if resource_type else {}
        try:
            result = cloudinary.uploader.destroy(public_id, **kwargs)
        except CloudinaryError as e:
            raise MediaStoreError(str(e)) from e

        outcome = (result or {}).get("result")
        # An asset that is already gone needs no cleanup
        if outcome not in ("ok", "not found"):
            raise MediaStoreError(f"Destroy of {public_id} returned {outcome!r}")


class UnconfiguredMediaStore:
    """Used when no Cloudinary credentials are set; every call fails."""

    def upload(self, local_path: str, options: UploadOptions) -> MediaReference:
        raise MediaStoreError("Media store is not configured")

    def destroy(self, public_id: str, resource_type: Optional[str] = None) -> None:
        raise MediaStoreError("Media store is not configured")
