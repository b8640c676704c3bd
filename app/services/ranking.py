from typing import List

from ..models.submission import SubmissionPublic


def rank(submissions: List[SubmissionPublic]) -> List[SubmissionPublic]:
    """Order submissions for display: most votes first.

    The sort is stable, so equal vote counts keep their input order. Inputs
    arrive newest first from the record store, which makes ties favour newer
    ideas. Call this after every fetch and every local change.
    """
    return sorted(submissions, key=lambda submission: -submission.vote_count)
