import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from ..models.business import Business, BusinessStats
from ..models.submission import SubmissionPublic, SubmissionStatus
from .errors import ConflictError, InvalidInputError, NotFoundError, require_viewer
from .record_store import RecordStore
from .submissions import get_ranked_submissions

logger = logging.getLogger(__name__)

# Would clash with fixed routes under /businesses
RESERVED_SLUGS = {"me"}


def slugify(name: str) -> str:
    # "Acme Tools, Inc." -> "acme-tools-inc"
    slug = re.sub(r"[^\w\s]", "", name.lower())
    return re.sub(r"\s+", "-", slug.strip())


def create_business(store: RecordStore, viewer: Optional[str], name: str, tagline: Optional[str] = None) -> Business:
    user_id = require_viewer(viewer)
    name = (name or "").strip()
    if not name:
        raise InvalidInputError("Business name is required")
    slug = slugify(name)
    if not slug:
        raise InvalidInputError("Business name must contain letters or digits")
    if slug in RESERVED_SLUGS:
        raise InvalidInputError(f"'{name}' cannot be used as a business name")

    try:
        business = store.insert_business(
            Business(name=name, tagline=tagline, slug=slug, user_id=user_id)
        )
    except ConflictError:
        raise ConflictError(f"A business page for '{slug}' already exists")
    logger.info("Business %s created with slug %s", business.business_id, slug)
    return business


def get_owned_business(store: RecordStore, viewer: Optional[str]) -> Business:
    business = store.get_business_by_owner(require_viewer(viewer))
    if not business:
        raise NotFoundError("You have not created a business page yet")
    return business


def update_business(
    store: RecordStore,
    viewer: Optional[str],
    name: Optional[str] = None,
    tagline: Optional[str] = None
) -> Business:
    """Update the owner's business. The slug stays what it was at creation."""
    business = get_owned_business(store, viewer)
    updates = {}
    if name is not None:
        if not name.strip():
            raise InvalidInputError("Business name is required")
        updates["name"] = name.strip()
    if tagline is not None:
        updates["tagline"] = tagline
    if not updates:
        return business
    return store.update_business(business, **updates)


def get_business_by_slug(store: RecordStore, slug: str) -> Business:
    return store.get_business_by_slug(slug)


def list_businesses(store: RecordStore) -> List[Business]:
    """Every business page, by name, for people choosing where to vote."""
    return store.query_businesses()


@dataclass
class Dashboard:
    business: Business
    stats: BusinessStats
    submissions: List[SubmissionPublic]


def compute_stats(submissions: List[SubmissionPublic]) -> BusinessStats:
    return BusinessStats(
        total_submissions=len(submissions),
        total_votes=sum(s.vote_count for s in submissions),
        pending_review=sum(1 for s in submissions if s.status == SubmissionStatus.PENDING),
    )


def get_dashboard(store: RecordStore, viewer: Optional[str]) -> Dashboard:
    business = get_owned_business(store, viewer)
    submissions = get_ranked_submissions(store, business.business_id, viewer)
    return Dashboard(business, compute_stats(submissions), submissions)
