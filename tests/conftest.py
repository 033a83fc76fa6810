from __future__ import annotations

import os
import tempfile

os.environ.setdefault("TESTING", "1")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("FRONTEND_URL", "https://learn.example.com")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("UPLOAD_DIR", os.path.join(tempfile.gettempdir(), "lms-api-test-uploads"))

import re
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, List, Optional

import pytest
from fastapi.testclient import TestClient

from lms_api.core.database import DatabaseManager, SessionLocal
from lms_api.core.security import TokenConfig, TokenIssuer
from lms_api.models.media import MediaReference
from lms_api.services.media import MediaAssetCoordinator, StagedFile, UploadStaging
from lms_api.services.media_store import MediaStoreError, UploadOptions


class FakeClock:
    def __init__(self) -> None:
        self.current = datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: Any) -> None:
        self.current = self.current + timedelta(**kwargs)


class FakeMediaStore:
    def __init__(self) -> None:
        self.uploads: List[tuple[str, UploadOptions]] = []
        self.destroyed: List[tuple[str, Optional[str]]] = []
        self.calls: List[str] = []
        self.fail_upload = False
        self.fail_destroy = False
        self.upload_delay = 0.0
        self._counter = 0

    def upload(self, local_path: str, options: UploadOptions) -> MediaReference:
        self.calls.append("upload")
        assert Path(local_path).exists(), "upload must read a staged file"
        if self.upload_delay:
            time.sleep(self.upload_delay)
        if self.fail_upload:
            raise MediaStoreError("upload rejected")
        self._counter += 1
        self.uploads.append((local_path, options))
        public_id = f"{options.folder}/asset-{self._counter}"
        return MediaReference(public_id, f"https://media.test/{public_id}")

    def destroy(self, public_id: str, resource_type: Optional[str] = None) -> None:
        self.calls.append("destroy")
        if self.fail_destroy:
            raise MediaStoreError("destroy rejected")
        self.destroyed.append((public_id, resource_type))


class FakeMailer:
    def __init__(self) -> None:
        self.sent: List[tuple[str, str, str]] = []
        self.fail = False

    def send(self, to_address: str, subject: str, body_html: str) -> None:
        if self.fail:
            raise ConnectionError("smtp down")
        self.sent.append((to_address, subject, body_html))

    def last_reset_token(self) -> str:
        _to, _subject, body = self.sent[-1]
        match = re.search(r"/reset-password/([0-9a-f]+)", body)
        assert match, body
        return match.group(1)


class InlineCleanup:
    """Runs cleanup immediately so tests can observe its effect."""

    def __init__(self) -> None:
        self.submitted: List[Callable[..., Any]] = []

    def submit(self, fn: Callable[..., Any], *args: Any) -> None:
        self.submitted.append(fn)
        fn(*args)

    def shutdown(self) -> None:
        pass


def stage_file(root: Path, name: str = "clip.mp4", data: bytes = b"payload") -> StagedFile:
    staging = UploadStaging(root, max_size=1024 * 1024)
    scope = staging.new_scope()
    path = scope / name
    path.write_bytes(data)
    return StagedFile(path=path, scope=scope, filename=name)


@pytest.fixture()
def db():
    DatabaseManager.create_all_tables()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        DatabaseManager.drop_all_tables()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def tokens(clock: FakeClock) -> TokenIssuer:
    return TokenIssuer(
        TokenConfig(
            secret_key="test-secret-key",
            recovery_window=timedelta(minutes=15),
            recovery_entropy_bytes=20,
        ),
        clock=clock,
    )


@pytest.fixture()
def media_store() -> FakeMediaStore:
    return FakeMediaStore()


@pytest.fixture()
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture()
def cleanup() -> InlineCleanup:
    return InlineCleanup()


@pytest.fixture()
def coordinator(media_store: FakeMediaStore, cleanup: InlineCleanup) -> MediaAssetCoordinator:
    return MediaAssetCoordinator(media_store, cleanup)


@pytest.fixture()
def upload_root(tmp_path: Path) -> Path:
    root = tmp_path / "uploads"
    root.mkdir()
    return root


@pytest.fixture()
def app(db, tokens, media_store, mailer, cleanup, upload_root):
    from lms_api import deps
    from lms_api.main import create_app

    app = create_app()
    app.dependency_overrides[deps.get_token_issuer] = lambda: tokens
    app.dependency_overrides[deps.get_media_store] = lambda: media_store
    app.dependency_overrides[deps.get_mailer] = lambda: mailer
    app.dependency_overrides[deps.get_cleanup_scheduler] = lambda: cleanup
    app.dependency_overrides[deps.get_staging] = lambda: UploadStaging(upload_root, max_size=1024 * 1024)
    return app


@pytest.fixture()
def client(app):
    # Session cookies are marked secure, so talk to the app over https
    with TestClient(app, base_url="https://testserver") as test_client:
        yield test_client


@pytest.fixture()
def stage(upload_root: Path) -> Callable[..., StagedFile]:
    def _stage(name: str = "clip.mp4", data: bytes = b"payload") -> StagedFile:
        return stage_file(upload_root, name, data)
    return _stage
