from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime, timezone

class BusinessBase(SQLModel):
    name: str = Field(max_length=100)
    tagline: Optional[str] = Field(default=None, max_length=300)
    logo_url: Optional[str] = Field(default=None, max_length=500)

class Business(BusinessBase, table=True):
    business_id: Optional[int] = Field(default=None, primary_key=True)
    slug: str = Field(index=True, unique=True, max_length=120)  # Immutable once created
    user_id: str = Field(index=True, max_length=64)  # Owner
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

class BusinessPublic(BusinessBase):
    business_id: int
    slug: str
    user_id: str
    created_at: datetime

class BusinessStats(SQLModel):
    total_submissions: int = 0
    total_votes: int = 0
    pending_review: int = 0
