from enum import Enum
from typing import Optional, Dict, Any, List

from pydantic import BaseModel, Field, ValidationError, field_validator

from fitgenix.errors import InvalidInput
from fitgenix.models.user import FoodItem


class Weekday(str, Enum):
    monday = "monday"
    tuesday = "tuesday"
    wednesday = "wednesday"
    thursday = "thursday"
    friday = "friday"
    saturday = "saturday"
    sunday = "sunday"


WEEKDAYS: List[str] = [d.value for d in Weekday]
MEAL_SLOTS = ("breakfast", "lunch", "dinner", "snacks")
MEAL_ALIASES = {"snack": "snacks"}


class PlannedFood(FoodItem):
    notes: str = ""

    @field_validator("notes", mode="before")
    @classmethod
    def _notes(cls, v):
        return "" if v is None else str(v)


class MealPlanSaveIn(BaseModel):
    mealPlan: Dict[str, Any] = Field(default_factory=dict)


class MealPlanGenerateIn(BaseModel):
    dietType: Optional[str] = "Balanced"
    dietPreference: Optional[str] = "non-veg"  # 'veg' | 'non-veg'
    preferences: Optional[str] = ""
    calorieGoal: Optional[int] = None
    allergies: Optional[str] = "none"
    days: Optional[int] = 7
    startDay: Optional[str] = "monday"


class SuggestAlternativeIn(BaseModel):
    foodItem: PlannedFood
    dietType: Optional[str] = "Balanced"
    allergies: Optional[str] = "none"


def normalize_weekday(raw: Any) -> str:
    day = str(raw or "").strip().lower()
    if day not in WEEKDAYS:
        raise InvalidInput(f"Unknown weekday: {raw}")
    return day


def normalize_meal_slot(raw: Any) -> Optional[str]:
    """Map a meal name such as 'Snack' or ' Lunch ' to its slot, or None if unknown"""
    slot = str(raw or "").strip().lower()
    slot = MEAL_ALIASES.get(slot, slot)
    return slot if slot in MEAL_SLOTS else None


def normalize_day_plan(raw_day: Any) -> Dict[str, List[dict]]:
    if raw_day is None:
        raw_day = {}
    if not isinstance(raw_day, dict):
        raise InvalidInput("Day plan must be an object of meal slots")

    day = {slot: [] for slot in MEAL_SLOTS}
    for raw_slot, items in raw_day.items():
        slot = normalize_meal_slot(raw_slot)
        if slot is None:
            raise InvalidInput(f"Unknown meal slot: {raw_slot}")
        if items is None:
            continue
        if not isinstance(items, list):
            raise InvalidInput(f"Meal slot '{slot}' must be a list")
        for i, item in enumerate(items):
            if not isinstance(item, dict):
                raise InvalidInput(f"{slot}[{i}]: food item must be an object")
            # unnamed rows are empty editor slots
            if not str(item.get("name") or "").strip():
                continue
            try:
                day[slot].append(PlannedFood(**item).model_dump())
            except ValidationError as e:
                first = e.errors()[0]
                field = ".".join(str(p) for p in first.get("loc", ()))
                raise InvalidInput(f"{slot}[{i}].{field}: {first.get('msg')}")
    return day


def normalize_meal_plan(raw_plan: Any) -> Dict[str, Dict[str, List[dict]]]:
    """Lower-case and validate weekday/slot keys; unknown keys are rejected"""
    if raw_plan is None:
        return {}
    if not isinstance(raw_plan, dict):
        raise InvalidInput("Meal plan must be an object keyed by weekday")

    plan: Dict[str, Dict[str, List[dict]]] = {}
    for raw_day, raw_meals in raw_plan.items():
        plan[normalize_weekday(raw_day)] = normalize_day_plan(raw_meals)
    # keep a stable monday..sunday order
    return {d: plan[d] for d in WEEKDAYS if d in plan}
