"""Shared test fixtures: in-memory database and fake media/mail collaborators."""

import tempfile
import uuid
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from account_service.core.config import Settings
from account_service.core.security import PasswordHasher, TokenIssuer
from account_service.models import Base
from account_service.services.auth import AuthService
from account_service.services.media_store import MediaStoreError, MediaUpload
from account_service.services.uploads import StagedFile
from account_service.services.user_store import UserStore

# Minimum bcrypt cost keeps the suite fast.
TEST_HASH_ROUNDS = 4

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def make_engine() -> Engine:
    """SQLite in-memory engine shared across threads, with the schema created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


def make_settings(upload_dir: str | None = None) -> Settings:
    return Settings(
        PASSWORD_RESET_URL="https://app.test/reset-password",
        PASSWORD_HASH_ROUNDS=TEST_HASH_ROUNDS,
        UPLOAD_TMP_DIR=upload_dir or tempfile.mkdtemp(prefix="account-service-"),
        COOKIE_SECURE=False,
    )


def stage_bytes(directory: str, filename: str = "avatar.png", data: bytes = PNG_BYTES) -> StagedFile:
    path = Path(directory) / f"{uuid.uuid4().hex}{Path(filename).suffix}"
    path.write_bytes(data)
    return StagedFile(path=path, filename=filename)


class FakeMediaStore:
    """Records uploads and deletes the staged file like the real store does."""

    def __init__(self, fail_on: set[str] | None = None) -> None:
        self.uploaded: list[str] = []
        self.fail_on = fail_on or set()

    def upload(self, staged: StagedFile) -> MediaUpload:
        try:
            if staged.filename in self.fail_on:
                raise MediaStoreError("upload rejected", 500)
            self.uploaded.append(staged.filename)
            return MediaUpload(url=f"https://media.test/{staged.filename}")
        finally:
            staged.discard()


class FakeMailer:
    def __init__(self, deliver: bool = True) -> None:
        self.deliver = deliver
        self.sent: list[dict[str, str]] = []

    def send(self, recipient: str, link: str, subject: str, message: str) -> str | None:
        if not self.deliver:
            return None
        self.sent.append(
            {"recipient": recipient, "link": link, "subject": subject, "message": message}
        )
        return f"<{uuid.uuid4().hex}@test>"


def make_auth_service(
    engine: Engine,
    settings: Settings,
    media: FakeMediaStore | None = None,
    mailer: FakeMailer | None = None,
) -> AuthService:
    session = sessionmaker(bind=engine, autoflush=False)()
    return AuthService(
        store=UserStore(session),
        hasher=PasswordHasher(rounds=TEST_HASH_ROUNDS),
        tokens=TokenIssuer(settings),
        media=media or FakeMediaStore(),
        mailer=mailer or FakeMailer(),
        settings=settings,
    )
