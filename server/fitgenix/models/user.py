import re
from typing import Optional, List, Any

from pydantic import BaseModel, EmailStr, Field, field_validator

DEFAULT_GOALS = {"workouts": 5, "calories": 2500, "protein": 150, "carbs": 250}
DEFAULT_DETAILS = {"age": 0, "height": 0, "weight": 0, "goalWeight": 0, "goal": "Health Maintenance"}

_LEADING_NUMBER = re.compile(r"^\s*~?\s*([+-]?\d[\d,]*(?:\.\d+)?)")


def _coerce_calories(value: Any) -> int:
    """Leading number of free text such as "~1,200 - 1,300 kcal"; ranges keep their lower bound"""
    if value is None or value == "":
        return 0
    if isinstance(value, (int, float)):
        return int(round(value))
    match = _LEADING_NUMBER.match(str(value))
    if not match:
        return 0
    return int(float(match.group(1).replace(",", "")))


def _coerce_macro(value: Any) -> str:
    # macros are kept as free text such as "10g"; bare numbers get the unit appended
    if value is None or value == "":
        return "0g"
    if isinstance(value, (int, float)):
        return f"{value:g}g"
    return str(value)


class UserRegistration(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserDetailsIn(BaseModel):
    age: float = 0
    height: float = 0
    weight: float = 0
    goalWeight: float = 0
    goal: str = "Health Maintenance"


class GoalsIn(BaseModel):
    """Partial goals update; omitted fields keep their stored value"""
    workouts: Optional[int] = None
    calories: Optional[int] = None
    protein: Optional[int] = None
    carbs: Optional[int] = None


class UserResponse(BaseModel):
    """User response model for auth endpoints"""
    id: str
    name: str
    email: str
    details: dict = Field(default_factory=lambda: dict(DEFAULT_DETAILS))
    isNewUser: bool = False


class TokenResponse(BaseModel):
    token: str
    user: UserResponse


# ---------- Daily log payloads ----------
class FoodItem(BaseModel):
    name: str = Field(..., min_length=1)
    calories: int = 0
    protein: str = "0g"
    carbs: str = "0g"
    fats: str = "0g"

    @field_validator("calories", mode="before")
    @classmethod
    def _calories(cls, v):
        return _coerce_calories(v)

    @field_validator("protein", "carbs", "fats", mode="before")
    @classmethod
    def _macros(cls, v):
        return _coerce_macro(v)


class ExerciseLogIn(BaseModel):
    name: str = Field(..., min_length=1)
    sets: Optional[int] = None
    reps: Optional[int] = None


class BulkExerciseLogIn(BaseModel):
    exercises: List[ExerciseLogIn] = Field(default_factory=list)


class FoodLogIn(BaseModel):
    mealType: str
    foodItem: FoodItem


class ExerciseRefIn(BaseModel):
    date: str
    exerciseId: str


class WaterLogIn(BaseModel):
    amount: int = 1

