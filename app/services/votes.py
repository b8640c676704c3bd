import logging
from dataclasses import dataclass

from .errors import ConflictError, require_viewer
from .record_store import RecordStore

logger = logging.getLogger(__name__)


@dataclass
class VoteOutcome:
    voted: bool
    # Another writer got there first; the end state is still the requested one
    raced: bool = False


def cast_vote(store: RecordStore, submission_id: int, user_id: str) -> VoteOutcome:
    require_viewer(user_id)
    store.get_submission(submission_id)
    try:
        store.insert_vote(submission_id, user_id)
    except ConflictError:
        # The unique (submission_id, user_id) constraint is the source of truth
        if store.has_vote(submission_id, user_id):
            logger.info("Vote on submission %s by %s already existed", submission_id, user_id)
            return VoteOutcome(voted=True, raced=True)
        raise
    return VoteOutcome(voted=True)


def retract_vote(store: RecordStore, submission_id: int, user_id: str) -> VoteOutcome:
    require_viewer(user_id)
    removed = store.delete_vote(submission_id, user_id)
    if removed == 0:
        # Deleted concurrently, nothing left to do
        logger.info("Vote on submission %s by %s was already gone", submission_id, user_id)
        return VoteOutcome(voted=False, raced=True)
    return VoteOutcome(voted=False)


def set_vote(store: RecordStore, submission_id: int, user_id: str, voted: bool) -> VoteOutcome:
    if voted:
        return cast_vote(store, submission_id, user_id)
    return retract_vote(store, submission_id, user_id)


def toggle_vote(store: RecordStore, submission_id: int, user_id: str) -> VoteOutcome:
    """Add the user's vote if there is none, otherwise remove it."""
    require_viewer(user_id)
    return set_vote(store, submission_id, user_id, not store.has_vote(submission_id, user_id))
