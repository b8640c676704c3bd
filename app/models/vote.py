from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime, timezone

class Vote(SQLModel, table=True):
    # One vote per user per submission
    __table_args__ = (
        UniqueConstraint("submission_id", "user_id", name="uq_vote_submission_user"),
    )

    vote_id: Optional[int] = Field(default=None, primary_key=True)
    submission_id: int = Field(foreign_key="submission.submission_id", index=True)
    user_id: str = Field(index=True, max_length=64)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
