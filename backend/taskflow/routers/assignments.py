"""Task assignment, job collaborator and completion endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..models import User
from ..schemas import AssignmentResponse, AssignUserRequest
from ..services.email_dispatch import EmailDispatcher, get_email_dispatcher
from ..use_cases.assignments import (
    AssignmentResult,
    add_job_collaborator_use_case,
    assign_user_to_task_use_case,
    complete_task_use_case,
)

router = APIRouter(tags=["assignments"])


def _to_response(result: AssignmentResult) -> AssignmentResponse:
    return AssignmentResponse(
        changed=result.changed,
        notified_user_ids=result.notified_user_ids,
        emails_dispatched=result.emails_dispatched,
    )


@router.post("/tasks/{task_id}/assignees", response_model=AssignmentResponse)
def assign_user_to_task(
    task_id: UUID,
    data: AssignUserRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    dispatcher: EmailDispatcher = Depends(get_email_dispatcher),
):
    return _to_response(
        assign_user_to_task_use_case(
            db=db,
            task_id=task_id,
            user_id=data.user_id,
            actor=current_user,
            dispatcher=dispatcher,
        )
    )


@router.post("/jobs/{job_id}/collaborators", response_model=AssignmentResponse)
def add_job_collaborator(
    job_id: UUID,
    data: AssignUserRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    dispatcher: EmailDispatcher = Depends(get_email_dispatcher),
):
    return _to_response(
        add_job_collaborator_use_case(
            db=db,
            job_id=job_id,
            user_id=data.user_id,
            actor=current_user,
            dispatcher=dispatcher,
        )
    )


@router.post("/tasks/{task_id}/complete", response_model=AssignmentResponse)
def complete_task(
    task_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    dispatcher: EmailDispatcher = Depends(get_email_dispatcher),
):
    return _to_response(
        complete_task_use_case(db=db, task_id=task_id, actor=current_user, dispatcher=dispatcher)
    )
