# fitgenix/services/meal_plan_service.py
import logging
from datetime import date
from typing import Any, Dict

from fitgenix.models.meal_plan import WEEKDAYS, normalize_meal_plan
from fitgenix.services.daily_log_service import DailyLogService, _oid, _now, today_str

logger = logging.getLogger(__name__)


def weekday_name(iso_date: str) -> str:
    return WEEKDAYS[date.fromisoformat(iso_date).weekday()]


class MealPlanService:
    """Stored weekly meal-plan template and its sync into today's log"""

    def __init__(self, db):
        self.db = db
        self.users = db.users
        self.daily_logs = DailyLogService(db)

    def get_meal_plan(self, user_id: str) -> Dict[str, Any]:
        user = self.daily_logs.get_user(user_id)
        return user.get("mealPlan") or {}

    def save_meal_plan(self, user_id: str, raw_plan: Any) -> Dict[str, Any]:
        """Replace the whole stored plan, then fold today's planned meals into today's log"""
        plan = normalize_meal_plan(raw_plan)
        self.daily_logs.get_user(user_id)
        self.users.update_one(
            {"_id": _oid(user_id)},
            {"$set": {"mealPlan": plan, "updated_at": _now()}},
        )

        today = today_str()
        day_plan = plan.get(weekday_name(today))
        if day_plan:
            added = self.daily_logs.append_missing_foods(user_id, today, day_plan)
            logger.info(f"Meal plan saved for user {user_id}; {added} planned item(s) added to {today}")
        return plan
