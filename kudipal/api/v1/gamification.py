"""
Gamification API endpoints (streak, XP, badges)
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from kudipal.api.deps import get_db, get_current_user_id
from kudipal.application.gamification import GamificationService
from kudipal.application.xp import XpValidationError


router = APIRouter(prefix="/api/v1/gamification", tags=["gamification"])


# === Request/Response models ===

class AwardXpRequest(BaseModel):
    amount: int
    reason: str = Field(min_length=1, max_length=128)


class StreakResponse(BaseModel):
    current_streak: int
    longest_streak: int
    last_activity_date: Optional[date]


class XpAwardResponse(BaseModel):
    new_xp: int
    new_level: int
    leveled_up: bool
    xp_gained: int


class XpProfileResponse(BaseModel):
    total_xp: int
    level: int
    current_level_xp: int
    next_level_xp: int
    progress_percentage: float


# === Endpoints ===

@router.get("/streak", response_model=StreakResponse)
def get_streak(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return GamificationService(db).get_streak(user_id).to_dict()


@router.post("/activity", response_model=StreakResponse)
def record_activity(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Record today's logging event for the streak (streak-day XP and milestone badges included)"""
    state = GamificationService(db).record_activity(user_id)
    return state.to_dict()


@router.get("/xp", response_model=XpProfileResponse)
def get_xp(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return GamificationService(db).get_xp_profile(user_id)


@router.post("/xp", response_model=XpAwardResponse)
def award_xp(
    req: AwardXpRequest,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    try:
        award = GamificationService(db).award_xp(user_id, req.amount, req.reason)
    except XpValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return award.to_dict()


@router.get("/badges")
def list_badges(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return GamificationService(db).list_badges(user_id)
