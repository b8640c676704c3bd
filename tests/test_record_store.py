"""
Tests for the record store: queries, access policy and error translation.
"""
import pytest
from sqlalchemy.exc import OperationalError

from app.models.submission import Submission
from app.services.errors import (
    NotFoundError, ReferentialIntegrityError, TransientError, UnauthorizedError,
)

OWNER_ID = "owner-1"
MEMBER_ID = "member-1"


class TestQueries:
    def test_submissions_come_newest_first(self, store, business, make_submission):
        oldest = make_submission("Oldest")
        middle = make_submission("Middle", voters=["a", "b"])
        newest = make_submission("Newest")

        rows = store.query_submissions_by_business(business.business_id)

        assert [s.submission_id for s in rows] == [
            newest.submission_id, middle.submission_id, oldest.submission_id
        ]

    def test_vote_counts_and_user_votes(self, store, business, make_submission):
        first = make_submission(voters=["a", "b", "c"])
        second = make_submission(voters=["a"])
        make_submission()

        assert store.query_vote_counts(business.business_id) == {
            first.submission_id: 3,
            second.submission_id: 1,
        }
        assert store.query_votes_by_user(business.business_id, "a") == {
            first.submission_id, second.submission_id
        }
        assert store.query_votes_by_user(business.business_id, "nobody") == set()

    def test_missing_rows(self, store):
        with pytest.raises(NotFoundError):
            store.get_submission(404)
        with pytest.raises(NotFoundError):
            store.get_business_by_slug("nope")
        assert store.get_business_by_owner("nobody") is None

    def test_update_refreshes_updated_at(self, store, make_submission):
        submission = make_submission()
        before = submission.updated_at

        store.update_submission(submission, title="Renamed")

        assert submission.title == "Renamed"
        assert submission.updated_at > before


class TestDeleteSubmission:
    def test_cascade_removes_votes(self, store, session, make_submission):
        submission = make_submission(voters=["a", "b"])
        submission_id = submission.submission_id

        store.delete_submission(submission)

        assert session.get(Submission, submission_id) is None
        assert store.count_votes(submission_id) == 0

    def test_without_cascade_votes_block_the_delete(self, strict_store, session, business):
        submission = strict_store.insert_submission(Submission(
            business_id=business.business_id, title="Voted", submitted_by=MEMBER_ID
        ))
        strict_store.insert_vote(submission.submission_id, "a")

        with pytest.raises(ReferentialIntegrityError):
            strict_store.delete_submission(submission)

        assert strict_store.get_submission(submission.submission_id).title == "Voted"
        assert strict_store.count_votes(submission.submission_id) == 1

    def test_without_cascade_unvoted_submission_deletes(self, strict_store, session, business):
        submission = strict_store.insert_submission(Submission(
            business_id=business.business_id, title="Quiet", submitted_by=MEMBER_ID
        ))
        submission_id = submission.submission_id

        strict_store.delete_submission(submission)

        assert session.get(Submission, submission_id) is None


class TestAccessPolicy:
    def test_submitter_and_owner_may_change(self, store, make_submission):
        submission = make_submission(submitted_by=MEMBER_ID)
        store.authorize_submission_change(submission, MEMBER_ID)
        store.authorize_submission_change(submission, OWNER_ID)

    def test_stranger_may_not(self, store, make_submission):
        submission = make_submission(submitted_by=MEMBER_ID)
        with pytest.raises(UnauthorizedError):
            store.authorize_submission_change(submission, "stranger")


class TestErrorTranslation:
    def test_database_outage_is_transient(self, store, business, monkeypatch):
        def unavailable(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(store.session, "exec", unavailable)

        with pytest.raises(TransientError):
            store.query_submissions_by_business(business.business_id)

    def test_write_outage_is_transient_and_rolled_back(self, store, session, make_submission, monkeypatch):
        submission = make_submission()

        def unavailable():
            raise OperationalError("COMMIT", {}, Exception("server has gone away"))

        monkeypatch.setattr(session, "commit", unavailable)

        with pytest.raises(TransientError):
            store.insert_vote(submission.submission_id, "a")

        monkeypatch.undo()
        assert store.count_votes(submission.submission_id) == 0
