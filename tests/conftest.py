"""
Shared fixtures: a SQLite database per test and an in-memory asset store.
"""
import os

# Must be set before the app modules build their engine
os.environ.setdefault("DATABASE_URL", "sqlite://")

import itertools
from datetime import datetime, timedelta, timezone
from io import BytesIO
from urllib.parse import urlparse

import pytest
from PIL import Image
from sqlmodel import Session, create_engine

from app.models.submission import Submission
from app.services.businesses import create_business
from app.services.database import create_db_and_tables
from app.services.errors import AssetCleanupError, TransientError
from app.services.record_store import RecordStore

OWNER_ID = "owner-1"
MEMBER_ID = "member-1"
VOTER_ID = "voter-1"


class InMemoryAssetStore:
    """Stands in for S3: same interface, blobs kept in a dict."""

    def __init__(self, base_url: str = "https://assets.test"):
        self.base_url = base_url
        self.blobs: dict[str, bytes] = {}
        self.deleted: list[str] = []
        self.fail_uploads = False
        self.fail_deletes = False

    def public_url(self, key: str) -> str:
        return f"{self.base_url}/{key}"

    def key_from_url(self, url: str) -> str:
        return urlparse(url).path.lstrip("/")

    def upload(self, key: str, content: bytes, content_type: str = "image/jpeg") -> str:
        if self.fail_uploads:
            raise TransientError("Failed to upload image: storage unavailable")
        self.blobs[key] = content
        return self.public_url(key)

    def delete(self, key: str) -> None:
        if self.fail_deletes:
            raise AssetCleanupError(f"Failed to delete file {key}: storage unavailable")
        self.blobs.pop(key, None)
        self.deleted.append(key)

    def has_blob_for(self, url: str) -> bool:
        return self.key_from_url(url) in self.blobs


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'votely.db'}",
        connect_args={"check_same_thread": False}
    )
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def store(session):
    return RecordStore(session, cascade_votes=True)


@pytest.fixture
def strict_store(session):
    """A store whose schema does not cascade votes on submission delete."""
    return RecordStore(session, cascade_votes=False)


@pytest.fixture
def assets():
    return InMemoryAssetStore()


@pytest.fixture
def business(store):
    return create_business(store, OWNER_ID, "Acme Tools", "Tools people actually want")


@pytest.fixture
def make_submission(store, business):
    """Insert a submission directly. Each call is newer than the previous one."""
    minutes = itertools.count()
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def _make(title="Idea", submitted_by=MEMBER_ID, image_url=None, voters=()):
        created_at = base + timedelta(minutes=next(minutes))
        submission = store.insert_submission(Submission(
            business_id=business.business_id,
            title=title,
            image_url=image_url,
            submitted_by=submitted_by,
            created_at=created_at,
            updated_at=created_at
        ))
        for voter in voters:
            store.insert_vote(submission.submission_id, voter)
        return submission

    return _make


@pytest.fixture
def image_bytes():
    def _image(width=300, height=200, color="red", fmt="PNG"):
        output = BytesIO()
        Image.new("RGB", (width, height), color).save(output, format=fmt)
        return output.getvalue()

    return _image
