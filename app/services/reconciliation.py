"""Optimistic vote toggling with reconciliation against the record store.

A SubmissionBoard holds the ranked submissions one viewer is looking at. Vote
toggles are applied to the local list (and re-ranked) before the store is
called, so the change shows up at once. When the store call fails or loses a
race, the local list is thrown away and rebuilt from the store.

Every store call goes through IdeaGateway, which runs the engine operation in
a worker thread with its own session. Those calls, and waiting for the vote
lock of a submission, are the only points where a board method suspends.
"""
import asyncio
import contextlib
import itertools
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.engine import Engine
from sqlmodel import Session

from ..config import CASCADE_VOTES_ON_DELETE
from ..models.submission import SubmissionPublic
from .assets import IdeaFields, ImageChange, ImageUpload, IdeaResult
from .assets import submit_idea, edit_idea, delete_idea
from .errors import (
    ConflictError, EngineError, NotFoundError, RECOVERABLE_KINDS, UnauthenticatedError,
)
from .ranking import rank
from .record_store import RecordStore
from .status import set_status
from .submissions import get_ranked_submissions
from .votes import VoteOutcome, set_vote

logger = logging.getLogger(__name__)

RESYNC_NOTICE = "Votes changed elsewhere, the list has been resynced."
ERROR_NOTICE = "Your vote could not be saved ({detail}). The list has been refreshed."


class IdeaGateway:
    def __init__(self, engine: Engine, assets, cascade_votes: bool = CASCADE_VOTES_ON_DELETE):
        self.engine = engine
        self.assets = assets
        self.cascade_votes = cascade_votes

    def _call(self, operation, *args):
        with Session(self.engine) as session:
            return operation(RecordStore(session, self.cascade_votes), *args)

    async def _run(self, operation, *args):
        return await run_in_threadpool(self._call, operation, *args)

    async def fetch_ranked(self, business_id: int, viewer: Optional[str]) -> List[SubmissionPublic]:
        return await self._run(get_ranked_submissions, business_id, viewer)

    async def set_vote(self, submission_id: int, viewer: str, voted: bool) -> VoteOutcome:
        return await self._run(set_vote, submission_id, viewer, voted)

    async def submit_idea(self, business_id: int, fields: IdeaFields, viewer: Optional[str],
                          image: Optional[ImageUpload] = None) -> IdeaResult:
        return await self._run(submit_idea, self.assets, business_id, fields, viewer, image)

    async def edit_idea(self, submission_id: int, fields: IdeaFields, image_change: ImageChange,
                        viewer: Optional[str]) -> IdeaResult:
        return await self._run(edit_idea, self.assets, submission_id, fields, image_change, viewer)

    async def delete_idea(self, submission_id: int, viewer: Optional[str]) -> IdeaResult:
        return await self._run(delete_idea, self.assets, submission_id, viewer)

    async def set_status(self, submission_id: int, new_status, viewer: Optional[str]) -> SubmissionPublic:
        return await self._run(set_status, submission_id, new_status, viewer)


@dataclass
class BoardUpdate:
    submissions: List[SubmissionPublic]
    # True when the list was rebuilt from the store and should replace the old one wholesale
    reconciled: bool = False
    notice: Optional[str] = None
    warnings: List[str] = field(default_factory=list)


class SubmissionBoard:
    def __init__(self, gateway: IdeaGateway, business_id: int, viewer: Optional[str] = None,
                 submissions: Optional[List[SubmissionPublic]] = None):
        self.gateway = gateway
        self.business_id = business_id
        self.viewer = viewer
        self.submissions: List[SubmissionPublic] = []
        self._vote_locks: Dict[int, asyncio.Lock] = {}
        self._lock_users: Dict[int, int] = {}
        self._toggles = itertools.count(1)
        # submission_id -> (toggle number, has_voted) of the newest toggle still in flight
        self._pending: Dict[int, Tuple[int, bool]] = {}
        self._replace_all(submissions or [])

    def get(self, submission_id: int) -> SubmissionPublic:
        for submission in self.submissions:
            if submission.submission_id == submission_id:
                return submission
        raise NotFoundError("Submission not found")

    def _replace_all(self, submissions: List[SubmissionPublic]) -> None:
        # Newest first, then by votes; equal counts stay newest first
        newest_first = sorted(submissions, key=lambda s: (s.created_at, s.submission_id), reverse=True)
        self.submissions = rank(newest_first)

    def _put(self, submission: SubmissionPublic) -> None:
        others = [s for s in self.submissions if s.submission_id != submission.submission_id]
        self._replace_all(others + [submission])

    def _drop(self, submission_id: int) -> None:
        self._replace_all([s for s in self.submissions if s.submission_id != submission_id])

    def _snapshot(self, **kwargs) -> BoardUpdate:
        return BoardUpdate(list(self.submissions), **kwargs)

    @staticmethod
    def _flipped(submission: SubmissionPublic, voted: bool) -> SubmissionPublic:
        if submission.has_voted == voted:
            return submission
        vote_count = max(0, submission.vote_count + (1 if voted else -1))
        return submission.model_copy(update={"has_voted": voted, "vote_count": vote_count})

    def _with_pending_vote(self, submission: SubmissionPublic) -> SubmissionPublic:
        pending = self._pending.get(submission.submission_id)
        if pending is None:
            return submission
        return self._flipped(submission, pending[1])

    def _settle(self, submission_id: int, toggle: int) -> None:
        # Only the newest toggle clears the pending state; older ones are superseded
        if self._pending.get(submission_id, (None,))[0] == toggle:
            del self._pending[submission_id]

    @contextlib.asynccontextmanager
    async def _vote_lock(self, submission_id: int):
        lock = self._vote_locks.setdefault(submission_id, asyncio.Lock())
        self._lock_users[submission_id] = self._lock_users.get(submission_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[submission_id] -= 1
            if not self._lock_users[submission_id]:
                del self._lock_users[submission_id]
                del self._vote_locks[submission_id]

    async def refresh(self) -> BoardUpdate:
        """Full reconciliation: rebuild every submission and vote from the store.

        Toggles still in flight are laid over the fresh rows, so a rebuild that
        read the store before their write landed does not undo them.
        """
        submissions = await self.gateway.fetch_ranked(self.business_id, self.viewer)
        self._replace_all([self._with_pending_vote(s) for s in submissions])
        return self._snapshot(reconciled=True)

    async def toggle_vote(self, submission_id: int) -> BoardUpdate:
        if not self.viewer:
            raise UnauthenticatedError("Authentication required to vote")
        previous = self.get(submission_id)

        # Speculative flip, applied before the first await
        voted = not previous.has_voted
        self._put(self._flipped(previous, voted))
        toggle = next(self._toggles)
        self._pending[submission_id] = (toggle, voted)

        # Remote calls and the resyncs they trigger for one submission run in
        # the order the toggles were made
        async with self._vote_lock(submission_id):
            try:
                outcome = await self.gateway.set_vote(submission_id, self.viewer, voted)
            except ConflictError:
                return await self._reconcile_vote(previous, toggle, RESYNC_NOTICE)
            except EngineError as e:
                logger.warning("Vote on submission %s failed: %s", submission_id, e.detail)
                return await self._reconcile_vote(previous, toggle, ERROR_NOTICE.format(detail=e.detail))

            if outcome.raced and outcome.voted:
                return await self._reconcile_vote(previous, toggle, RESYNC_NOTICE)
            self._settle(submission_id, toggle)
        return self._snapshot()

    async def _reconcile_vote(self, previous: SubmissionPublic, toggle: int, notice: str) -> BoardUpdate:
        self._settle(previous.submission_id, toggle)
        try:
            update = await self.refresh()
        except EngineError:
            # Nothing authoritative to show; drop the unconfirmed flip unless a newer toggle owns it
            superseded = previous.submission_id in self._pending
            if not superseded and any(s.submission_id == previous.submission_id for s in self.submissions):
                self._put(previous)
            raise
        update.notice = notice
        return update

    async def _mutate(self, pending):
        try:
            return await pending
        except EngineError as e:
            if e.kind in RECOVERABLE_KINDS:
                try:
                    await self.refresh()
                except EngineError as refresh_error:
                    logger.warning("Resync after %s failed: %s", e.kind.value, refresh_error.detail)
            raise

    async def submit_idea(self, fields: IdeaFields, image: Optional[ImageUpload] = None) -> BoardUpdate:
        result = await self._mutate(
            self.gateway.submit_idea(self.business_id, fields, self.viewer, image)
        )
        self._put(result.submission)
        return self._snapshot(warnings=result.warnings)

    async def edit_idea(self, submission_id: int, fields: IdeaFields,
                        image_change: Optional[ImageChange] = None) -> BoardUpdate:
        # Only ideas on this business's board can be changed through it
        self.get(submission_id)
        result = await self._mutate(
            self.gateway.edit_idea(submission_id, fields, image_change or ImageChange.keep(), self.viewer)
        )
        self._put(self._with_pending_vote(result.submission))
        return self._snapshot(warnings=result.warnings)

    async def delete_idea(self, submission_id: int) -> BoardUpdate:
        self.get(submission_id)
        result = await self._mutate(self.gateway.delete_idea(submission_id, self.viewer))
        self._drop(submission_id)
        return self._snapshot(warnings=result.warnings)

    async def set_status(self, submission_id: int, new_status) -> BoardUpdate:
        self.get(submission_id)
        submission = await self._mutate(
            self.gateway.set_status(submission_id, new_status, self.viewer)
        )
        self._put(self._with_pending_vote(submission))
        return self._snapshot()
