"""Idea create/edit/delete with their images.

Blob storage and the submission row are never allowed to disagree in the
corrupting direction: a row never points at a deleted blob. New blobs are
uploaded before the row references them, and old blobs are only deleted after
the row stopped referencing them. An interrupted operation can leave an
unreferenced blob behind, which is harmless.
"""
import logging
import os
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ..config import IDEA_IMAGES_FOLDER, PLACEHOLDER_IMAGE_URL, PLACEHOLDER_IMAGE_PATTERN
from ..models.submission import Submission, SubmissionPublic
from .errors import AssetCleanupError, EngineError, InvalidInputError, NotFoundError, require_viewer
from .record_store import RecordStore
from .s3 import process_image
from .submissions import get_processed_submission, process_submission

logger = logging.getLogger(__name__)


@dataclass
class ImageUpload:
    filename: str
    content: bytes
    content_type: Optional[str] = None


class ImageAction(str, Enum):
    KEEP = "keep"
    REPLACE = "replace"
    REMOVE = "remove"


@dataclass
class ImageChange:
    action: ImageAction = ImageAction.KEEP
    image: Optional[ImageUpload] = None

    @classmethod
    def keep(cls) -> "ImageChange":
        return cls()

    @classmethod
    def replace(cls, image: ImageUpload) -> "ImageChange":
        return cls(ImageAction.REPLACE, image)

    @classmethod
    def remove(cls) -> "ImageChange":
        return cls(ImageAction.REMOVE)


@dataclass
class IdeaFields:
    title: Optional[str] = None
    description: Optional[str] = None


@dataclass
class IdeaResult:
    # None when the idea is gone (deleted, or already deleted)
    submission: Optional[SubmissionPublic]
    warnings: List[str] = field(default_factory=list)


def is_placeholder(image_url: Optional[str]) -> bool:
    return bool(image_url) and PLACEHOLDER_IMAGE_PATTERN in image_url


def _clean_title(title: Optional[str]) -> str:
    title = (title or "").strip()
    if not title:
        raise InvalidInputError("Title is required")
    return title


def _image_key(business_id: int, user_id: str, image: ImageUpload) -> str:
    stem = os.path.splitext(os.path.basename(image.filename or ""))[0] or "idea"
    return f"{IDEA_IMAGES_FOLDER}/{business_id}/{user_id}-{stem[:40]}-{uuid.uuid4()}.jpg"


def _upload(assets, business_id: int, user_id: str, image: ImageUpload) -> str:
    if image.content_type and not image.content_type.startswith("image/"):
        raise InvalidInputError("File must be an image")
    content = process_image(image.content)
    return assets.upload(_image_key(business_id, user_id, image), content)


def _delete_blob(assets, image_url: Optional[str], warnings: List[str]) -> None:
    """Best-effort blob removal. Failures become warnings, never errors."""
    if not image_url or is_placeholder(image_url):
        return
    key = assets.key_from_url(image_url)
    try:
        assets.delete(key)
    except AssetCleanupError as e:
        logger.warning("Image cleanup failed (non-fatal): %s", e.detail)
        warnings.append(e.detail)
    else:
        logger.info("Deleted image %s", key)


def submit_idea(
    store: RecordStore,
    assets,
    business_id: int,
    fields: IdeaFields,
    viewer: Optional[str],
    image: Optional[ImageUpload] = None
) -> IdeaResult:
    user_id = require_viewer(viewer)
    title = _clean_title(fields.title)
    store.get_business(business_id)

    image_url = PLACEHOLDER_IMAGE_URL
    if image:
        image_url = _upload(assets, business_id, user_id, image)

    submission = Submission(
        business_id=business_id,
        title=title,
        description=fields.description,
        image_url=image_url,
        submitted_by=user_id
    )
    try:
        submission = store.insert_submission(submission)
    except EngineError:
        # The idea does not exist, so neither should its image
        if image:
            _delete_blob(assets, image_url, [])
        raise

    logger.info("Submission %s created for business %s", submission.submission_id, business_id)
    return IdeaResult(process_submission(submission, vote_count=0, has_voted=False))


def edit_idea(
    store: RecordStore,
    assets,
    submission_id: int,
    fields: IdeaFields,
    image_change: ImageChange,
    viewer: Optional[str]
) -> IdeaResult:
    user_id = require_viewer(viewer)
    submission = store.get_submission(submission_id)
    store.authorize_submission_change(submission, user_id)

    updates = {}
    if fields.title is not None:
        updates["title"] = _clean_title(fields.title)
    if fields.description is not None:
        updates["description"] = fields.description

    old_image_url = submission.image_url
    new_image_url = None
    if image_change.action == ImageAction.REPLACE:
        if not image_change.image:
            raise InvalidInputError("A replacement image is required")
        new_image_url = _upload(assets, submission.business_id, user_id, image_change.image)
        updates["image_url"] = new_image_url
    elif image_change.action == ImageAction.REMOVE:
        updates["image_url"] = None

    try:
        store.update_submission(submission, **updates)
    except EngineError:
        # The row still points at the old image; drop the unreferenced new one
        if new_image_url:
            _delete_blob(assets, new_image_url, [])
        raise

    warnings: List[str] = []
    if image_change.action != ImageAction.KEEP and old_image_url != submission.image_url:
        _delete_blob(assets, old_image_url, warnings)

    return IdeaResult(get_processed_submission(store, submission_id, user_id), warnings)


def delete_idea(
    store: RecordStore,
    assets,
    submission_id: int,
    viewer: Optional[str]
) -> IdeaResult:
    """Delete the row, then its image.

    The row goes first because the record store can roll it back: if dependent
    votes block the delete, both the row and its image are left untouched.
    """
    user_id = require_viewer(viewer)
    try:
        submission = store.get_submission(submission_id)
    except NotFoundError:
        logger.info("Submission %s already deleted", submission_id)
        return IdeaResult(None)
    store.authorize_submission_change(submission, user_id)

    image_url = submission.image_url
    store.delete_submission(submission)
    logger.info("Submission %s deleted", submission_id)

    warnings: List[str] = []
    _delete_blob(assets, image_url, warnings)
    return IdeaResult(None, warnings)
