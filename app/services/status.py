import logging

from ..models.submission import SubmissionPublic, SubmissionStatus
from .errors import InvalidInputError, require_viewer
from .record_store import RecordStore
from .submissions import get_processed_submission

logger = logging.getLogger(__name__)


def parse_status(value) -> SubmissionStatus:
    try:
        return SubmissionStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in SubmissionStatus)
        raise InvalidInputError(f"Unknown status '{value}', expected one of: {allowed}")


def set_status(store: RecordStore, submission_id: int, new_status, owner_id: str) -> SubmissionPublic:
    """Move a submission to any status. Only the owning business may do this.

    There are no guarded edges: every status can follow every other one, and
    selected or rejected ideas can go back to pending.
    """
    require_viewer(owner_id)
    status = parse_status(new_status)
    submission = store.get_submission(submission_id)
    store.authorize_owner(store.get_business(submission.business_id), owner_id)

    previous = submission.status
    store.update_submission(submission, status=status)
    logger.info("Submission %s status %s -> %s", submission_id, previous.value, status.value)
    return get_processed_submission(store, submission_id, owner_id)
