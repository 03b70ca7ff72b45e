"""Invitation endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..models import User
from ..schemas import (
    InvitationAcceptRequest,
    InvitationAcceptResponse,
    InvitationCreate,
    InvitationResponse,
    UserBrief,
)
from ..services.email_dispatch import EmailDispatcher, get_email_dispatcher
from ..use_cases.invitations import (
    accept_invitation_use_case,
    cancel_invitation_use_case,
    create_invitation_use_case,
    resend_invitation_use_case,
)

router = APIRouter(prefix="/invitations", tags=["invitations"])


@router.post("", response_model=InvitationResponse, status_code=201)
def create_invitation(
    data: InvitationCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    dispatcher: EmailDispatcher = Depends(get_email_dispatcher),
):
    return create_invitation_use_case(
        db=db,
        inviter=current_user,
        email=data.email,
        role=data.role,
        dispatcher=dispatcher,
    )


@router.post("/{invitation_id}/cancel", response_model=InvitationResponse)
def cancel_invitation(
    invitation_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return cancel_invitation_use_case(db=db, invitation_id=invitation_id, requested_by=current_user)


@router.post("/{invitation_id}/resend", response_model=InvitationResponse)
def resend_invitation(
    invitation_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    dispatcher: EmailDispatcher = Depends(get_email_dispatcher),
):
    return resend_invitation_use_case(
        db=db,
        invitation_id=invitation_id,
        requested_by=current_user,
        dispatcher=dispatcher,
    )


@router.post("/accept", response_model=InvitationAcceptResponse, status_code=201)
def accept_invitation(data: InvitationAcceptRequest, db: Session = Depends(get_db)):
    """Public: the token itself is the credential."""
    user = accept_invitation_use_case(db=db, token=data.token, name=data.name, password=data.password)
    return InvitationAcceptResponse(user=UserBrief.model_validate(user))
