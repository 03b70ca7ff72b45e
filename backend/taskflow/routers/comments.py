"""Comment endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..models import User
from ..schemas import CommentCreate, CommentCreateResponse, CommentResponse, MentionFanoutResponse
from ..services.email_dispatch import EmailDispatcher, get_email_dispatcher
from ..use_cases.mention_fanout import create_comment_use_case

router = APIRouter(prefix="/comments", tags=["comments"])


@router.post("", response_model=CommentCreateResponse, status_code=201)
def create_comment(
    data: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    dispatcher: EmailDispatcher = Depends(get_email_dispatcher),
):
    """Create a comment; @mentions notify the mentioned users."""
    comment, result = create_comment_use_case(
        db=db,
        body=data.body,
        author=current_user,
        task_id=data.task_id,
        dispatcher=dispatcher,
    )
    return CommentCreateResponse(
        comment=CommentResponse.model_validate(comment),
        mentions=MentionFanoutResponse(
            tokens=result.tokens,
            notified_user_ids=result.notified_user_ids,
            emails_dispatched=result.emails_dispatched,
        ),
    )
