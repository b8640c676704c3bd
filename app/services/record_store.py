import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import DBAPIError, IntegrityError
from fastapi import Depends
from sqlmodel import Session, select, delete, func

from ..config import CASCADE_VOTES_ON_DELETE
from ..models.business import Business
from ..models.submission import Submission
from ..models.vote import Vote
from .database import get_session
from .errors import (
    ConflictError, NotFoundError, ReferentialIntegrityError, TransientError,
    UnauthorizedError,
)

logger = logging.getLogger(__name__)


class RecordStore:
    """Business, submission and vote rows behind one SQLModel session.

    Writes commit immediately. Database failures come back as engine errors:
    integrity violations as conflicts (or referential integrity errors for
    deletes), connection and lock problems as transient errors.
    """

    def __init__(self, session: Session, cascade_votes: bool = CASCADE_VOTES_ON_DELETE):
        self.session = session
        self.cascade_votes = cascade_votes

    @contextmanager
    def _reading(self):
        try:
            yield
        except DBAPIError as e:
            self.session.rollback()
            raise TransientError(f"Record store unavailable: {e.orig}") from e

    @contextmanager
    def _writing(self, integrity_error=ConflictError, detail: Optional[str] = None):
        try:
            yield
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise integrity_error(detail or str(e.orig)) from e
        except DBAPIError as e:
            self.session.rollback()
            raise TransientError(f"Record store unavailable: {e.orig}") from e

    # Access policy

    def authorize_owner(self, business: Business, user_id: str) -> None:
        if business.user_id != user_id:
            raise UnauthorizedError("Only the business owner can do this")

    def authorize_submission_change(self, submission: Submission, user_id: str) -> None:
        if submission.submitted_by == user_id:
            return
        business = self.get_business(submission.business_id)
        if business.user_id != user_id:
            raise UnauthorizedError("Only the submitter or the business owner can change this idea")

    # Businesses

    def get_business(self, business_id: int) -> Business:
        with self._reading():
            business = self.session.get(Business, business_id)
        if not business:
            raise NotFoundError("Business not found")
        return business

    def get_business_by_slug(self, slug: str) -> Business:
        with self._reading():
            business = self.session.exec(
                select(Business).where(Business.slug == slug)
            ).first()
        if not business:
            raise NotFoundError("Business not found")
        return business

    def get_business_by_owner(self, user_id: str) -> Optional[Business]:
        with self._reading():
            return self.session.exec(
                select(Business)
                .where(Business.user_id == user_id)
                .order_by(Business.created_at, Business.business_id)
            ).first()

    def query_businesses(self) -> list[Business]:
        with self._reading():
            return list(self.session.exec(
                select(Business).order_by(Business.name, Business.business_id)
            ).all())

    def insert_business(self, business: Business) -> Business:
        with self._writing():
            self.session.add(business)
        self.session.refresh(business)
        return business

    def update_business(self, business: Business, **fields) -> Business:
        with self._writing():
            for name, value in fields.items():
                setattr(business, name, value)
            self.session.add(business)
        self.session.refresh(business)
        return business

    # Submissions

    def get_submission(self, submission_id: int) -> Submission:
        with self._reading():
            submission = self.session.get(Submission, submission_id)
        if not submission:
            raise NotFoundError("Submission not found")
        return submission

    def query_submissions_by_business(self, business_id: int) -> list[Submission]:
        # Newest first. Vote order is applied by the ranking engine, not here.
        with self._reading():
            return list(self.session.exec(
                select(Submission)
                .where(Submission.business_id == business_id)
                .order_by(Submission.created_at.desc(), Submission.submission_id.desc())
            ).all())

    def insert_submission(self, submission: Submission) -> Submission:
        with self._writing():
            self.session.add(submission)
        self.session.refresh(submission)
        return submission

    def update_submission(self, submission: Submission, **fields) -> Submission:
        with self._writing():
            for name, value in fields.items():
                setattr(submission, name, value)
            submission.updated_at = datetime.now(timezone.utc)
            self.session.add(submission)
        self.session.refresh(submission)
        return submission

    def delete_submission(self, submission: Submission) -> None:
        with self._writing(
            integrity_error=ReferentialIntegrityError,
            detail="Submission still has votes; configure vote cascade on delete or remove its votes first"
        ):
            if self.cascade_votes:
                self.session.execute(
                    delete(Vote).where(Vote.submission_id == submission.submission_id)
                )
            self.session.delete(submission)

    # Votes

    def has_vote(self, submission_id: int, user_id: str) -> bool:
        with self._reading():
            return self.session.exec(
                select(Vote.vote_id)
                .where((Vote.submission_id == submission_id) & (Vote.user_id == user_id))
                .limit(1)
            ).first() is not None

    def insert_vote(self, submission_id: int, user_id: str) -> Vote:
        vote = Vote(submission_id=submission_id, user_id=user_id)
        with self._writing():
            self.session.add(vote)
        self.session.refresh(vote)
        return vote

    def delete_vote(self, submission_id: int, user_id: str) -> int:
        """Delete the user's vote and return the number of rows removed."""
        with self._writing():
            result = self.session.execute(
                delete(Vote)
                .where((Vote.submission_id == submission_id) & (Vote.user_id == user_id))
            )
        return result.rowcount

    def query_votes_by_user(self, business_id: int, user_id: str) -> set[int]:
        with self._reading():
            rows = self.session.exec(
                select(Vote.submission_id)
                .join(Submission, Submission.submission_id == Vote.submission_id)
                .where((Submission.business_id == business_id) & (Vote.user_id == user_id))
            ).all()
        return set(rows)

    def query_vote_counts(self, business_id: int) -> dict[int, int]:
        with self._reading():
            rows = self.session.exec(
                select(Vote.submission_id, func.count(Vote.vote_id))
                .join(Submission, Submission.submission_id == Vote.submission_id)
                .where(Submission.business_id == business_id)
                .group_by(Vote.submission_id)
            ).all()
        return {submission_id: count for submission_id, count in rows}

    def count_votes(self, submission_id: int) -> int:
        with self._reading():
            return self.session.exec(
                select(func.count(Vote.vote_id)).where(Vote.submission_id == submission_id)
            ).one()


def get_record_store(session: Session = Depends(get_session)) -> RecordStore:
    return RecordStore(session)
