"""Administrative membership endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..models import User
from ..schemas import CascadeResponse
from ..services.view_cache import ViewCacheInvalidator, get_view_cache_invalidator
from ..use_cases.membership_cascade import remove_user_from_all_access_use_case

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/users/{user_id}/remove-access", response_model=CascadeResponse)
def remove_user_access(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    invalidator: ViewCacheInvalidator = Depends(get_view_cache_invalidator),
):
    """Remove a user from every job and task. Cannot be undone."""
    result = remove_user_from_all_access_use_case(
        db=db,
        target_user_id=user_id,
        requested_by=current_user,
        invalidator=invalidator,
    )
    return CascadeResponse(
        user_id=result.target_user_id,
        affected_job_ids=result.affected_job_ids,
        removed_assignments=result.removed_assignments,
        removed_collaborations=result.removed_collaborations,
    )
