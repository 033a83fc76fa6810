"""
Media asset coordination.

Moves an uploaded file from a local staging directory to the media store
and records the resulting reference on its owner, keeping local disk and
remote assets consistent when a step fails:

* upload fails: the owner keeps its previous reference, the request's
  staging directory is purged and ``MediaUploadFailed`` is raised;
* upload succeeds: the reference is recorded and the staged file is
  deleted in the background;
* destroying an old or released asset fails: logged, never raised, so a
  flaky media store cannot block metadata edits.

Each request stages its files in its own directory under ``UPLOAD_DIR`` so
purging after a failure never touches another request's files.
"""

import logging
import shutil
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterator, Optional, Protocol

from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from lms_api.core.errors import MediaUploadFailed, ValidationFailed
from lms_api.models.media import MediaReference
from .media_store import MediaStore, UploadOptions


logger = logging.getLogger(__name__)


class MediaSlot(Protocol):
    """Something that holds one media reference."""

    def get(self) -> MediaReference:
        ...

    def set(self, ref: MediaReference) -> None:
        ...


class AttributeSlot:
    """Slot backed by a model attribute such as ``User.avatar``."""

    def __init__(self, owner: Any, attribute: str):
        self.owner = owner
        self.attribute = attribute

    def get(self) -> MediaReference:
        return getattr(self.owner, self.attribute)

    def set(self, ref: MediaReference) -> None:
        setattr(self.owner, self.attribute, ref)


class DetachedSlot:
    """Slot for a record that does not exist yet, e.g. a new lecture."""

    def __init__(self, ref: Optional[MediaReference] = None):
        self.ref = ref or MediaReference.empty()

    def get(self) -> MediaReference:
        return self.ref

    def set(self, ref: MediaReference) -> None:
        self.ref = ref


@dataclass(frozen=True)
class StagedFile:
    """An uploaded file sitting in its request's staging directory."""
    path: Path
    scope: Path
    filename: str

    def purge_scope(self) -> None:
        """Remove the whole staging directory of this request."""
        try:
            shutil.rmtree(self.scope)
        except FileNotFoundError:
            pass
        except OSError:
            logger.warning(f"Could not purge staging directory {self.scope}", exc_info=True)


def sanitize_filename(name: Optional[str]) -> str:
    return Path(name or "").name or "upload"


class UploadStaging:
    """
    Writes incoming uploads to ``<root>/<request scope>/<filename>``.
    """

    def __init__(self, root: Path, max_size: int, chunk_size: int = 1024 * 1024):
        self.root = Path(root)
        self.max_size = max_size
        self.chunk_size = chunk_size

    def new_scope(self) -> Path:
        scope = self.root / uuid.uuid4().hex
        scope.mkdir(parents=True, exist_ok=False)
        return scope

    async def save(self, upload: Optional[UploadFile]) -> Optional[StagedFile]:
        """
        Stage an upload, or return None when no file was sent.

        Raises:
            ValidationFailed: the file exceeds ``max_size``
        """
        if upload is None or not upload.filename:
            return None

        scope = self.new_scope()
        filename = sanitize_filename(upload.filename)
        dest = scope / filename

        def _copy() -> int:
            total = 0
            upload.file.seek(0)
            with dest.open("wb") as out:
                while True:
                    chunk = upload.file.read(self.chunk_size)
                    if not chunk:
                        break
                    total += len(chunk)
                    if total > self.max_size:
                        return -1
                    out.write(chunk)
            return total

        staged = StagedFile(path=dest, scope=scope, filename=filename)
        try:
            written = await run_in_threadpool(_copy)
        except OSError:
            staged.purge_scope()
            raise
        if written < 0:
            staged.purge_scope()
            raise ValidationFailed(f"File exceeds the {self.max_size} byte upload limit")
        return staged


class CleanupScheduler:
    """
    Runs best-effort cleanup off the request path.

    Submitted work is detached: nobody waits for it and its result is
    ignored. Failures are logged.
    """

    def __init__(self, max_workers: int = 2):
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="media-cleanup"
        )

    def submit(self, fn: Callable[..., Any], *args: Any) -> None:
        future = self._executor.submit(fn, *args)
        future.add_done_callback(_log_cleanup_failure)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)


def _log_cleanup_failure(future: Future) -> None:
    exc = future.exception()
    if exc is not None:
        logger.warning("Background cleanup failed", exc_info=exc)


def remove_staged_file(staged: StagedFile) -> None:
    """Delete a staged file and its scope directory once empty."""
    try:
        staged.path.unlink(missing_ok=True)
    except OSError:
        logger.warning(f"Could not delete staged file {staged.path}", exc_info=True)
        return
    try:
        staged.scope.rmdir()
    except FileNotFoundError:
        pass
    except OSError:
        # Scope still holds other files of the same request
        logger.debug(f"Staging directory {staged.scope} not removed")


class MediaAssetCoordinator:
    """
    Keeps one media slot in sync with the media store.

    Args:
        store: The media store capability
        cleanup: Scheduler for detached local file deletion
    """

    def __init__(self, store: MediaStore, cleanup: CleanupScheduler):
        self.store = store
        self.cleanup = cleanup

    def attach(
        self,
        slot: MediaSlot,
        staged: Optional[StagedFile],
        options: UploadOptions
    ) -> MediaReference:
        """
        Upload a staged file and point the slot at the new asset.

        Without a file this is a no-op returning the slot's current reference.

        Raises:
            MediaUploadFailed: the media store upload failed; the slot is
                left unchanged and the request's staging directory purged
        """
        if staged is None:
            return slot.get()

        try:
            ref = self.store.upload(str(staged.path), options)
        except Exception as e:
            logger.error(f"Upload of {staged.filename} to {options.folder} failed: {e}")
            staged.purge_scope()
            raise MediaUploadFailed() from e

        slot.set(ref)
        self.discard(staged)
        return ref

    def replace(
        self,
        slot: MediaSlot,
        staged: Optional[StagedFile],
        options: UploadOptions
    ) -> MediaReference:
        """
        Destroy the slot's current asset, then attach the new file.

        A failed destroy is logged and the upload goes ahead.
        """
        if staged is None:
            return slot.get()

        current = slot.get()
        if not current.is_empty:
            self._destroy_quietly(current, options.resource_type)
        return self.attach(slot, staged, options)

    def release(self, slot: MediaSlot, resource_type: Optional[str] = None) -> bool:
        """
        Destroy the slot's asset ahead of deleting its owner.

        Returns:
            bool: False if the media store refused; the caller proceeds anyway
        """
        current = slot.get()
        if current.is_empty:
            return True
        return self._destroy_quietly(current, resource_type)

    def discard(self, staged: Optional[StagedFile]) -> None:
        """Schedule detached deletion of a staged file."""
        if staged is not None:
            self.cleanup.submit(remove_staged_file, staged)

    @contextmanager
    def guard(self, staged: Optional[StagedFile]) -> Iterator[Optional[StagedFile]]:
        """Discard the staged file if the surrounding operation fails."""
        try:
            yield staged
        except Exception:
            self.discard(staged)
            raise

    def _destroy_quietly(self, ref: MediaReference, resource_type: Optional[str]) -> bool:
        try:
            self.store.destroy(ref.public_id, resource_type=resource_type)
        except Exception as e:
            logger.warning(f"Could not destroy media {ref.public_id}: {e}")
            return False
        return True
