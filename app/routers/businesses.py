from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import BaseModel
from typing import List, Optional

from ..models.business import BusinessPublic, BusinessStats
from ..models.submission import IdeaResponse, SubmissionPublic
from ..services.assets import IdeaFields, ImageUpload, submit_idea
from ..services.auth import get_current_user_id, get_optional_user_id
from ..services.businesses import (
    create_business, get_business_by_slug, get_dashboard, list_businesses, update_business,
)
from ..services.record_store import RecordStore, get_record_store
from ..services.s3 import get_asset_store
from ..services.submissions import get_ranked_submissions

router = APIRouter(
    prefix="/businesses",
    tags=["Businesses"]
)


class BusinessCreate(BaseModel):
    name: str
    tagline: Optional[str] = None

class BusinessUpdate(BaseModel):
    name: Optional[str] = None
    tagline: Optional[str] = None

class DashboardResponse(BaseModel):
    business: BusinessPublic
    stats: BusinessStats
    submissions: List[SubmissionPublic]


@router.post("", response_model=BusinessPublic)
def create_business_page(
    business: BusinessCreate,
    store: RecordStore = Depends(get_record_store),
    current_user_id: str = Depends(get_current_user_id)
):
    return create_business(store, current_user_id, business.name, business.tagline)


@router.get("", response_model=List[BusinessPublic])
def read_businesses(store: RecordStore = Depends(get_record_store)):
    return list_businesses(store)


@router.get("/me", response_model=DashboardResponse)
def read_my_dashboard(
    store: RecordStore = Depends(get_record_store),
    current_user_id: str = Depends(get_current_user_id)
):
    dashboard = get_dashboard(store, current_user_id)
    return {
        "business": dashboard.business,
        "stats": dashboard.stats,
        "submissions": dashboard.submissions
    }


@router.put("/me", response_model=BusinessPublic)
def update_my_business(
    update: BusinessUpdate,
    store: RecordStore = Depends(get_record_store),
    current_user_id: str = Depends(get_current_user_id)
):
    """Update name or tagline. The slug never changes."""
    return update_business(store, current_user_id, update.name, update.tagline)


@router.get("/{slug}", response_model=BusinessPublic)
def read_business(slug: str, store: RecordStore = Depends(get_record_store)):
    return get_business_by_slug(store, slug)


@router.get("/{slug}/submissions", response_model=List[SubmissionPublic])
def read_ranked_submissions(
    slug: str,
    store: RecordStore = Depends(get_record_store),
    current_user_id: Optional[str] = Depends(get_optional_user_id)
):
    business = get_business_by_slug(store, slug)
    return get_ranked_submissions(store, business.business_id, current_user_id)


@router.post("/{slug}/submissions", response_model=IdeaResponse)
async def submit_business_idea(
    slug: str,
    title: str = Form(...),
    description: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    store: RecordStore = Depends(get_record_store),
    assets=Depends(get_asset_store),
    current_user_id: str = Depends(get_current_user_id)
):
    business = get_business_by_slug(store, slug)

    image = None
    if file is not None and file.filename:
        image = ImageUpload(
            filename=file.filename,
            content=await file.read(),
            content_type=file.content_type
        )

    result = submit_idea(
        store,
        assets,
        business.business_id,
        IdeaFields(title=title, description=description),
        current_user_id,
        image
    )
    return {"submission": result.submission, "warnings": result.warnings}
