from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from neo.api.models import UsageResponse
from neo.auth import CurrentUser, require_user
from neo.db.engine import get_db_session
from neo.usage import get_usage_status, get_usage_tracker

router = APIRouter(prefix="/api/usage", tags=["usage"])


@router.get("")
def usage_status(
    user: CurrentUser = Depends(require_user),
    db_session: Session = Depends(get_db_session),
) -> UsageResponse:
    """Credits left in the user's current window (a full allowance if none is open)."""
    limit = get_usage_tracker(user, db_session).points
    status = get_usage_status(user, db_session)
    if status is None:
        return UsageResponse(
            points_limit=limit, consumed_points=0, remaining_points=limit, ms_before_next=0
        )
    return UsageResponse(points_limit=limit, **status.model_dump())
