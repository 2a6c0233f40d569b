"""
Notifications API endpoints
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from kudipal.api.deps import get_db, get_current_user_id
from kudipal.application.notifications import NotificationService


router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


@router.get("")
def list_notifications(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return NotificationService(db).list_for_user(user_id, limit=limit, offset=offset)


@router.post("/read-all")
def mark_all_read(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    updated = NotificationService(db).mark_all_read(user_id)
    return {"updated": updated}
