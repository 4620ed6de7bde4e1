# fitgenix/services/daily_log_service.py
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from fitgenix.errors import InvalidInput, NotFound
from fitgenix.models.meal_plan import MEAL_SLOTS, normalize_meal_slot

logger = logging.getLogger(__name__)

LOG_RETENTION_DAYS = 7

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


# ---------- helpers ----------
def _now():
    return datetime.now(timezone.utc)


def today_str() -> str:
    """Today's date as ISO format string (YYYY-MM-DD) in UTC"""
    return _now().date().isoformat()


def retention_cutoff_str() -> str:
    return (_now() - timedelta(days=LOG_RETENTION_DAYS)).date().isoformat()


def _oid(val: Any) -> ObjectId:
    if isinstance(val, ObjectId):
        return val
    try:
        return ObjectId(val)
    except Exception:
        raise InvalidInput(f"Invalid id format: {val}")


def serialize_doc(data):
    """Convert MongoDB ObjectIds and datetimes to JSON-friendly values"""
    if isinstance(data, dict):
        return {key: serialize_doc(value) for key, value in data.items()}
    if isinstance(data, list):
        return [serialize_doc(item) for item in data]
    if isinstance(data, ObjectId):
        return str(data)
    if isinstance(data, datetime):
        return data.isoformat()
    return data


def parse_leading_int(value: Any) -> int:
    """'12g' -> 12, '  7 grams' -> 7, 'n/a' -> 0"""
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    match = _LEADING_INT.match(str(value or ""))
    return int(match.group(1)) if match else 0


def summarize_log(log: Optional[dict]) -> Dict[str, int]:
    """Day totals; workout progress counts distinct exercise names, not entries"""
    calories = protein = carbs = 0
    names = set()
    completed = set()
    if log:
        nutrition = log.get("nutrition") or {}
        for slot in MEAL_SLOTS:
            for item in nutrition.get(slot) or []:
                calories += parse_leading_int(item.get("calories"))
                protein += parse_leading_int(item.get("protein"))
                carbs += parse_leading_int(item.get("carbs"))
        for ex in log.get("exercises") or []:
            key = (ex.get("name") or "").strip().lower()
            names.add(key)
            if ex.get("completed"):
                completed.add(key)
    return {
        "calories": calories,
        "protein": protein,
        "carbs": carbs,
        "workoutsDone": len(completed),
        "totalWorkouts": len(names),
    }


def empty_log_fields() -> dict:
    return {
        "exercises": [],
        "nutrition": {slot: [] for slot in MEAL_SLOTS},
        "water": 0,
        "created_at": _now(),
    }


def exercise_entry(name: str, sets: Optional[int] = None, reps: Optional[int] = None) -> dict:
    return {
        "_id": ObjectId(),
        "name": name,
        "sets": sets or 0,
        "reps": reps or 0,
        "completed": False,
    }


def public_user(user: dict, logs: List[dict]) -> dict:
    out = {k: v for k, v in user.items() if k != "password"}
    out["id"] = str(user["_id"])
    out["dailyLogs"] = [public_log(log) for log in logs]
    return serialize_doc(out)


def public_log(log: Optional[dict]) -> Optional[dict]:
    if log is None:
        return None
    return serialize_doc({k: v for k, v in log.items() if k not in ("user_id", "created_at")})


class DailyLogService:
    """Per-day exercise/nutrition logs, one document per (user, date)"""

    def __init__(self, db):
        self.db = db
        self.users = db.users
        self.logs = db.daily_logs

    # ---------- reads ----------
    def get_user(self, user_id: str) -> dict:
        user = self.users.find_one({"_id": _oid(user_id)})
        if user is None:
            raise NotFound("User not found")
        return user

    def list_logs(self, user_id: str) -> List[dict]:
        return list(self.logs.find({"user_id": _oid(user_id)}).sort("date", 1))

    def get_log(self, user_id: str, date: str) -> Optional[dict]:
        return self.logs.find_one({"user_id": _oid(user_id), "date": date})

    def prune_logs(self, user_id: str) -> int:
        # ISO dates are fixed width, so string comparison orders them correctly
        res = self.logs.delete_many({"user_id": _oid(user_id), "date": {"$lt": retention_cutoff_str()}})
        if res.deleted_count:
            logger.info(f"Pruned {res.deleted_count} stale log(s) for user {user_id}")
        return res.deleted_count

    def find_or_create_log(self, user_id: str, date: str) -> dict:
        """Atomic find-or-create backed by the unique (user_id, date) index"""
        query = {"user_id": _oid(user_id), "date": date}
        try:
            return self.logs.find_one_and_update(
                query,
                {"$setOnInsert": empty_log_fields()},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            # a concurrent request inserted the same day first
            return self.logs.find_one(query)

    def get_dashboard(self, user_id: str, date: Optional[str] = None) -> dict:
        user = self.get_user(user_id)
        today = today_str()
        target_date = date or today

        self.prune_logs(user_id)

        log = self.get_log(user_id, target_date)
        if log is None and target_date == today:
            log = self.find_or_create_log(user_id, today)

        return {
            "user": public_user(user, self.list_logs(user_id)),
            "todayLog": public_log(log),
            "summary": summarize_log(log),
        }

    # ---------- writes ----------
    def log_exercises(self, user_id: str, exercises: List[dict]) -> dict:
        log = self.find_or_create_log(user_id, today_str())
        entries = [exercise_entry(ex.get("name"), ex.get("sets"), ex.get("reps")) for ex in exercises]
        if not entries:
            return log
        return self.logs.find_one_and_update(
            {"_id": log["_id"]},
            {"$push": {"exercises": {"$each": entries}}},
            return_document=ReturnDocument.AFTER,
        )

    def log_food(self, user_id: str, meal_type: str, food_item: dict) -> dict:
        slot = normalize_meal_slot(meal_type)
        if slot is None:
            raise InvalidInput("Invalid meal type")
        log = self.find_or_create_log(user_id, today_str())
        return self.logs.find_one_and_update(
            {"_id": log["_id"]},
            {"$push": {f"nutrition.{slot}": food_item}},
            return_document=ReturnDocument.AFTER,
        )

    def log_water(self, user_id: str, amount: int) -> dict:
        log = self.find_or_create_log(user_id, today_str())
        return self.logs.find_one_and_update(
            {"_id": log["_id"]},
            {"$inc": {"water": amount}},
            return_document=ReturnDocument.AFTER,
        )

    def _find_exercise(self, user_id: str, date: str, exercise_id: str):
        log = self.get_log(user_id, date)
        if log is None:
            raise NotFound("Log not found")
        try:
            ex_oid = ObjectId(exercise_id)
        except Exception:
            raise NotFound("Exercise not found")
        for ex in log.get("exercises") or []:
            if ex.get("_id") == ex_oid:
                return log, ex
        raise NotFound("Exercise not found")

    def toggle_exercise(self, user_id: str, date: str, exercise_id: str) -> bool:
        log, ex = self._find_exercise(user_id, date, exercise_id)
        completed = not ex.get("completed", False)
        self.logs.update_one(
            {"_id": log["_id"], "exercises._id": ex["_id"]},
            {"$set": {"exercises.$.completed": completed}},
        )
        return completed

    def delete_exercise(self, user_id: str, date: str, exercise_id: str) -> None:
        log, ex = self._find_exercise(user_id, date, exercise_id)
        self.logs.update_one({"_id": log["_id"]}, {"$pull": {"exercises": {"_id": ex["_id"]}}})

    def append_missing_foods(self, user_id: str, date: str, day_plan: Dict[str, List[dict]]) -> int:
        """Add planned items whose name is not already logged in the same slot.

        Only names present in the log before this call are skipped, so a plan
        listing the same food twice in one slot logs it twice. Unnamed items
        are never logged.
        """
        log = self.find_or_create_log(user_id, date)
        nutrition = log.get("nutrition") or {}
        push: Dict[str, dict] = {}
        added = 0
        for slot in MEAL_SLOTS:
            logged = {item.get("name") for item in nutrition.get(slot) or []}
            missing = []
            for item in day_plan.get(slot) or []:
                if not item.get("name") or item.get("name") in logged:
                    continue
                missing.append({k: item.get(k) for k in ("name", "calories", "protein", "carbs", "fats")})
            if missing:
                push[f"nutrition.{slot}"] = {"$each": missing}
                added += len(missing)
        if push:
            self.logs.update_one({"_id": log["_id"]}, {"$push": push})
        return added
