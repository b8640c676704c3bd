from sqlmodel import SQLModel, Field
from typing import List, Optional
from datetime import datetime, timezone
from enum import Enum

class SubmissionStatus(str, Enum):
    PENDING = "pending"
    TRENDING = "trending"
    UNDER_REVIEW = "under_review"
    SELECTED = "selected"
    REJECTED = "rejected"

class SubmissionBase(SQLModel):
    title: str = Field(max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    image_url: Optional[str] = Field(default=None, max_length=500)  # None means no image
    status: SubmissionStatus = Field(default=SubmissionStatus.PENDING)

class Submission(SubmissionBase, table=True):
    submission_id: Optional[int] = Field(default=None, primary_key=True)
    business_id: int = Field(foreign_key="business.business_id", index=True)
    submitted_by: str = Field(index=True, max_length=64)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

class SubmissionPublic(SubmissionBase):
    """A submission as one viewer sees it, with its vote aggregate."""
    submission_id: int
    business_id: int
    submitted_by: str
    created_at: datetime
    updated_at: datetime
    has_voted: bool = False
    vote_count: int = Field(default=0, ge=0)

class IdeaResponse(SQLModel):
    submission: Optional[SubmissionPublic]
    warnings: List[str] = []
