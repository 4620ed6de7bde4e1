# fitgenix/routers/user.py
from datetime import datetime, timezone
from typing import Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from fitgenix.auth import get_current_user_id
from fitgenix.database.connection import get_db
from fitgenix.models.user import (
    UserDetailsIn, GoalsIn, ExerciseLogIn, BulkExerciseLogIn, FoodLogIn, ExerciseRefIn, WaterLogIn,
    DEFAULT_GOALS,
)
from fitgenix.services.daily_log_service import DailyLogService, public_log, _oid

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["User"])


def get_daily_log_service(db=Depends(get_db)) -> DailyLogService:
    return DailyLogService(db)


# ---------- Profile & goals ----------
@router.post("/user/details")
def update_details(
    payload: UserDetailsIn,
    user_id: str = Depends(get_current_user_id),
    service: DailyLogService = Depends(get_daily_log_service),
):
    service.get_user(user_id)
    try:
        service.users.update_one(
            {"_id": _oid(user_id)},
            {"$set": {"details": payload.model_dump(), "updated_at": datetime.now(timezone.utc)}},
        )
    except Exception as e:
        logger.error(f"Error updating profile: {e}")
        raise HTTPException(status_code=500, detail="Failed to update profile")
    return {"success": True, "message": "Profile updated"}


@router.post("/user/goals")
def update_goals(
    payload: GoalsIn,
    user_id: str = Depends(get_current_user_id),
    service: DailyLogService = Depends(get_daily_log_service),
):
    user = service.get_user(user_id)
    goals = {**DEFAULT_GOALS, **(user.get("goals") or {})}
    goals.update(payload.model_dump(exclude_none=True))
    try:
        service.users.update_one({"_id": user["_id"]}, {"$set": {"goals": goals}})
    except Exception as e:
        logger.error(f"Error updating goals: {e}")
        raise HTTPException(status_code=500, detail="Failed to update goals")
    return {"success": True, "goals": goals}


# ---------- Dashboard ----------
@router.get("/dashboard")
def get_dashboard(
    date: Optional[str] = Query(None, description="YYYY-MM-DD, defaults to today (UTC)"),
    user_id: str = Depends(get_current_user_id),
    service: DailyLogService = Depends(get_daily_log_service),
):
    return service.get_dashboard(user_id, date)


# ---------- Daily log writes ----------
@router.post("/user/log/exercise")
def log_exercise(
    payload: ExerciseLogIn,
    user_id: str = Depends(get_current_user_id),
    service: DailyLogService = Depends(get_daily_log_service),
):
    service.get_user(user_id)
    log = service.log_exercises(user_id, [payload.model_dump()])
    return {"success": True, "todayLog": public_log(log)}


@router.post("/user/log/exercises/bulk")
def log_exercises_bulk(
    payload: BulkExerciseLogIn,
    user_id: str = Depends(get_current_user_id),
    service: DailyLogService = Depends(get_daily_log_service),
):
    service.get_user(user_id)
    log = service.log_exercises(user_id, [ex.model_dump() for ex in payload.exercises])
    return {
        "success": True,
        "message": f"{len(payload.exercises)} exercises added",
        "todayLog": public_log(log),
    }


@router.post("/user/log/food")
def log_food(
    payload: FoodLogIn,
    user_id: str = Depends(get_current_user_id),
    service: DailyLogService = Depends(get_daily_log_service),
):
    service.get_user(user_id)
    log = service.log_food(user_id, payload.mealType, payload.foodItem.model_dump())
    return {"success": True, "todayLog": public_log(log)}


@router.post("/user/log/water")
def log_water(
    payload: WaterLogIn,
    user_id: str = Depends(get_current_user_id),
    service: DailyLogService = Depends(get_daily_log_service),
):
    service.get_user(user_id)
    log = service.log_water(user_id, payload.amount)
    return {"success": True, "water": log.get("water", 0)}


@router.post("/user/log/exercise/toggle")
def toggle_exercise(
    payload: ExerciseRefIn,
    user_id: str = Depends(get_current_user_id),
    service: DailyLogService = Depends(get_daily_log_service),
):
    completed = service.toggle_exercise(user_id, payload.date, payload.exerciseId)
    return {"success": True, "completed": completed}


@router.post("/user/log/exercise/delete")
def delete_exercise(
    payload: ExerciseRefIn,
    user_id: str = Depends(get_current_user_id),
    service: DailyLogService = Depends(get_daily_log_service),
):
    service.delete_exercise(user_id, payload.date, payload.exerciseId)
    return {"success": True}
