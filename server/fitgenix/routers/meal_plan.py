# fitgenix/routers/meal_plan.py
import json
import logging

from fastapi import APIRouter, Depends, HTTPException

from fitgenix.auth import get_current_user_id
from fitgenix.database.connection import get_db
from fitgenix.errors import ServiceUnavailable
from fitgenix.models.meal_plan import MealPlanSaveIn, MealPlanGenerateIn, SuggestAlternativeIn, PlannedFood
from fitgenix.services.ai_proxy import GroqProxy, get_ai_proxy, extract_json, repair_json_object
from fitgenix.services.meal_plan_service import MealPlanService
from fitgenix.services.meal_plan_workflow import run_meal_plan_workflow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/meal-plan", tags=["Meal Plan"])

ALTERNATIVE_SYSTEM_PROMPT = (
    "You are a nutritionist. Suggest ONE replacement food item with similar calories and macros. "
    "Return ONLY valid JSON: {\"name\": \"Food\", \"calories\": 300, \"protein\": \"20g\", "
    "\"carbs\": \"30g\", \"fats\": \"10g\", \"notes\": \"Short prep note\"}."
)


def get_meal_plan_service(db=Depends(get_db)) -> MealPlanService:
    return MealPlanService(db)


@router.get("")
def read_meal_plan(
    user_id: str = Depends(get_current_user_id),
    service: MealPlanService = Depends(get_meal_plan_service),
):
    return {"success": True, "mealPlan": service.get_meal_plan(user_id)}


@router.post("/save")
def save_meal_plan(
    payload: MealPlanSaveIn,
    user_id: str = Depends(get_current_user_id),
    service: MealPlanService = Depends(get_meal_plan_service),
):
    try:
        service.save_meal_plan(user_id, payload.mealPlan)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error saving meal plan: {e}")
        raise HTTPException(status_code=500, detail="Failed to save meal plan")
    return {"success": True}


@router.post("/generate")
async def generate_meal_plan(
    payload: MealPlanGenerateIn,
    user_id: str = Depends(get_current_user_id),
    proxy: GroqProxy = Depends(get_ai_proxy),
):
    logger.info(f"Generating meal plan for user {user_id}")
    meal_plan = await run_meal_plan_workflow(proxy, payload)
    return {"success": True, "mealPlan": meal_plan}


@router.post("/suggest-alternative")
async def suggest_alternative(
    payload: SuggestAlternativeIn,
    user_id: str = Depends(get_current_user_id),
    proxy: GroqProxy = Depends(get_ai_proxy),
):
    prompt = (
        f"Current item: {json.dumps(payload.foodItem.model_dump())}\n"
        f"Diet type: {payload.dietType or 'Balanced'}\n"
        f"Allergies to avoid: {payload.allergies or 'none'}\n"
        "Suggest a different food that fits the same meal."
    )
    text = await proxy.ask(ALTERNATIVE_SYSTEM_PROMPT, prompt, temperature=0.7)
    parsed = extract_json(text, "object") or repair_json_object(text)
    if parsed is None:
        logger.error(f"Unparsable alternative for user {user_id}: {text[:200]}")
        raise ServiceUnavailable("Could not suggest an alternative")
    try:
        alternative = PlannedFood(**parsed)
    except Exception as e:
        logger.error(f"Invalid alternative for user {user_id}: {e}")
        raise ServiceUnavailable("Could not suggest an alternative")
    return {"success": True, "alternative": alternative.model_dump()}
