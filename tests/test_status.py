"""
Tests for the submission status state machine.
"""
import itertools

import pytest

from app.models.submission import SubmissionStatus
from app.services.errors import (
    InvalidInputError, NotFoundError, UnauthenticatedError, UnauthorizedError,
)
from app.services.status import set_status

OWNER_ID = "owner-1"
MEMBER_ID = "member-1"


class TestSetStatus:
    def test_new_submissions_are_pending(self, make_submission):
        assert make_submission().status == SubmissionStatus.PENDING

    @pytest.mark.parametrize(
        "source,target",
        list(itertools.permutations(list(SubmissionStatus), 2))
    )
    def test_any_status_can_follow_any_other(self, store, make_submission, source, target):
        submission = make_submission()
        set_status(store, submission.submission_id, source, OWNER_ID)

        updated = set_status(store, submission.submission_id, target, OWNER_ID)

        assert updated.status == target
        assert store.get_submission(submission.submission_id).status == target

    def test_selected_can_go_back_to_pending(self, store, make_submission):
        submission = make_submission()
        set_status(store, submission.submission_id, "selected", OWNER_ID)

        updated = set_status(store, submission.submission_id, "pending", OWNER_ID)

        assert updated.status == SubmissionStatus.PENDING

    def test_returns_fresh_vote_aggregate(self, store, make_submission):
        submission = make_submission(voters=["a", "b", OWNER_ID])

        updated = set_status(store, submission.submission_id, "trending", OWNER_ID)

        assert updated.vote_count == 3
        assert updated.has_voted is True
        assert updated.submission_id == submission.submission_id

    def test_submitter_is_not_the_owner(self, store, make_submission):
        submission = make_submission(submitted_by=MEMBER_ID)

        with pytest.raises(UnauthorizedError):
            set_status(store, submission.submission_id, "selected", MEMBER_ID)

        assert store.get_submission(submission.submission_id).status == SubmissionStatus.PENDING

    def test_unknown_submission(self, store, business):
        with pytest.raises(NotFoundError):
            set_status(store, 12345, "selected", OWNER_ID)

    def test_unknown_status(self, store, make_submission):
        submission = make_submission()
        with pytest.raises(InvalidInputError):
            set_status(store, submission.submission_id, "archived", OWNER_ID)

    def test_requires_a_viewer(self, store, make_submission):
        submission = make_submission()
        with pytest.raises(UnauthenticatedError):
            set_status(store, submission.submission_id, "selected", None)
