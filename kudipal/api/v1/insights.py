"""
Insights API endpoints
"""
from typing import Callable, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from kudipal.api.deps import get_current_user_id, get_db_session_factory
from kudipal.application.insights import InsightService


router = APIRouter(prefix="/api/v1/insights", tags=["insights"])


@router.get("")
def list_insights(
    limit: Optional[int] = Query(None, ge=0, le=50),
    include_all: bool = False,
    user_id: int = Depends(get_current_user_id),
    session_factory: Callable[[], Session] = Depends(get_db_session_factory),
):
    """Ranked spending insights, most urgent first"""
    service = InsightService(session_factory)
    insights = service.generate_insights(user_id, limit=limit, include_all=include_all)
    return [i.to_dict() for i in insights]
