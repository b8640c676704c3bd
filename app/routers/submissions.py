from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import BaseModel
from typing import Optional

from ..models.submission import IdeaResponse, SubmissionPublic
from ..services.assets import IdeaFields, ImageChange, ImageUpload, delete_idea, edit_idea
from ..services.auth import get_current_user_id, get_optional_user_id
from ..services.errors import InvalidInputError
from ..services.record_store import RecordStore, get_record_store
from ..services.s3 import get_asset_store
from ..services.status import set_status
from ..services.submissions import get_processed_submission
from ..services.votes import set_vote, toggle_vote

router = APIRouter(
    prefix="/submissions",
    tags=["Submissions"]
)


class StatusUpdate(BaseModel):
    status: str

class VoteRequest(BaseModel):
    # Desired end state. Leave out to toggle.
    voted: Optional[bool] = None

class VoteResponse(BaseModel):
    submission_id: int
    voted: bool
    vote_count: int
    raced: bool = False


@router.get("/{submission_id}", response_model=SubmissionPublic)
def read_submission(
    submission_id: int,
    store: RecordStore = Depends(get_record_store),
    current_user_id: Optional[str] = Depends(get_optional_user_id)
):
    return get_processed_submission(store, submission_id, current_user_id)


@router.put("/{submission_id}", response_model=IdeaResponse)
async def update_submission(
    submission_id: int,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    remove_image: bool = Form(False),
    file: Optional[UploadFile] = File(None),
    store: RecordStore = Depends(get_record_store),
    assets=Depends(get_asset_store),
    current_user_id: str = Depends(get_current_user_id)
):
    """Edit an idea. Send a file to replace its image, or remove_image to drop it."""
    has_file = file is not None and bool(file.filename)
    if has_file and remove_image:
        raise InvalidInputError("Send either a new image or remove_image, not both")

    if has_file:
        image_change = ImageChange.replace(ImageUpload(
            filename=file.filename,
            content=await file.read(),
            content_type=file.content_type
        ))
    elif remove_image:
        image_change = ImageChange.remove()
    else:
        image_change = ImageChange.keep()

    result = edit_idea(
        store,
        assets,
        submission_id,
        IdeaFields(title=title, description=description),
        image_change,
        current_user_id
    )
    return {"submission": result.submission, "warnings": result.warnings}


@router.delete("/{submission_id}", response_model=IdeaResponse)
def delete_submission(
    submission_id: int,
    store: RecordStore = Depends(get_record_store),
    assets=Depends(get_asset_store),
    current_user_id: str = Depends(get_current_user_id)
):
    result = delete_idea(store, assets, submission_id, current_user_id)
    return {"submission": None, "warnings": result.warnings}


@router.put("/{submission_id}/status", response_model=SubmissionPublic)
def update_submission_status(
    submission_id: int,
    update: StatusUpdate,
    store: RecordStore = Depends(get_record_store),
    current_user_id: str = Depends(get_current_user_id)
):
    """Moderate an idea. Only the owning business can change its status."""
    return set_status(store, submission_id, update.status, current_user_id)


@router.post("/{submission_id}/vote", response_model=VoteResponse)
def vote_on_submission(
    submission_id: int,
    request: Optional[VoteRequest] = None,
    store: RecordStore = Depends(get_record_store),
    current_user_id: str = Depends(get_current_user_id)
):
    if request is None or request.voted is None:
        outcome = toggle_vote(store, submission_id, current_user_id)
    else:
        outcome = set_vote(store, submission_id, current_user_id, request.voted)

    return VoteResponse(
        submission_id=submission_id,
        voted=outcome.voted,
        vote_count=store.count_votes(submission_id),
        raced=outcome.raced
    )
