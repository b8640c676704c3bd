from typing import Iterable, List, Optional

from ..models.submission import Submission, SubmissionPublic
from .ranking import rank
from .record_store import RecordStore


def process_submission(submission: Submission, vote_count: int, has_voted: bool) -> SubmissionPublic:
    return SubmissionPublic.model_validate(
        submission,
        update={"vote_count": vote_count, "has_voted": has_voted}
    )


def process_submissions(
    submissions: Iterable[Submission],
    vote_counts: dict[int, int],
    voted_ids: set[int]
) -> List[SubmissionPublic]:
    return [
        process_submission(
            submission,
            vote_counts.get(submission.submission_id, 0),
            submission.submission_id in voted_ids
        )
        for submission in submissions
    ]


def get_ranked_submissions(
    store: RecordStore,
    business_id: int,
    viewer: Optional[str] = None
) -> List[SubmissionPublic]:
    """Rebuild every submission of a business from the record store, ranked.

    Anonymous viewers see the counts with has_voted False everywhere.
    """
    store.get_business(business_id)
    submissions = store.query_submissions_by_business(business_id)
    vote_counts = store.query_vote_counts(business_id)
    voted_ids = store.query_votes_by_user(business_id, viewer) if viewer else set()
    return rank(process_submissions(submissions, vote_counts, voted_ids))


def get_processed_submission(
    store: RecordStore,
    submission_id: int,
    viewer: Optional[str] = None
) -> SubmissionPublic:
    submission = store.get_submission(submission_id)
    has_voted = store.has_vote(submission_id, viewer) if viewer else False
    return process_submission(submission, store.count_votes(submission_id), has_voted)
