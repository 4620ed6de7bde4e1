# fitgenix/services/meal_plan_workflow.py
"""
Multi-day meal plan generation as a small LangGraph state machine:

    plan_batches -> generate_batch (repeats per 2-day batch) -> finalize

Each batch is one Groq call. A batch whose reply cannot be parsed, even
after one repair attempt, fails the whole request; nothing partial is
returned.
"""

import json
import logging
from typing import Any, Dict, List, Optional, TypedDict

from langgraph.graph import StateGraph, END

from fitgenix.errors import GenerationFailed, InvalidInput
from fitgenix.models.meal_plan import WEEKDAYS, MealPlanGenerateIn, normalize_day_plan, normalize_weekday
from fitgenix.services.ai_proxy import GroqProxy, extract_json, repair_json_object

logger = logging.getLogger(__name__)

BATCH_SIZE = 2
MAX_DAYS = len(WEEKDAYS)

MEAL_PLAN_SYSTEM_PROMPT = (
    "You are a certified nutritionist and meal planner. "
    "Create practical, home-cookable meals with realistic portions and macros. "
    "Return ONLY valid JSON with no markdown and no extra text."
)


class MealPlanState(TypedDict, total=False):
    request: Dict[str, Any]
    days: List[str]
    batches: List[List[str]]
    batch_index: int
    meal_plan: Dict[str, Dict[str, List[dict]]]


def clamp_days(days: Optional[int]) -> int:
    if days is None:
        return MAX_DAYS
    return max(1, min(MAX_DAYS, int(days)))


def plan_weekdays(days: Optional[int], start_day: Optional[str] = None) -> List[str]:
    """Consecutive weekday names from start_day, wrapping past sunday"""
    start = WEEKDAYS.index(normalize_weekday(start_day or "monday"))
    return [WEEKDAYS[(start + i) % MAX_DAYS] for i in range(clamp_days(days))]


def batch_weekdays(days: List[str], size: int = BATCH_SIZE) -> List[List[str]]:
    return [days[i:i + size] for i in range(0, len(days), size)]


def build_batch_prompt(batch: List[str], request: Dict[str, Any]) -> str:
    preference = (request.get("dietPreference") or "non-veg").lower()
    if preference in ("veg", "vegetarian"):
        preference_rule = "Strictly vegetarian: no meat, poultry, fish or seafood."
    else:
        preference_rule = "Non-vegetarian: include lean meat, poultry, fish or eggs where suitable."

    calorie_goal = request.get("calorieGoal")
    calorie_rule = (
        f"Each day should total roughly {calorie_goal} kcal."
        if calorie_goal else "Choose daily calories suitable for the stated goal."
    )
    example_day = {
        "breakfast": [{"name": "Food", "calories": 350, "protein": "20g", "carbs": "40g", "fats": "10g", "notes": "Short prep note"}],
        "lunch": [],
        "dinner": [],
        "snacks": [],
    }
    example = {day: example_day for day in batch[:1]}

    lines = [
        f"Create a meal plan for exactly these days: {', '.join(batch)}.",
        f"Diet type: {request.get('dietType') or 'Balanced'}.",
        preference_rule,
        calorie_rule,
        f"Allergies to exclude completely: {request.get('allergies') or 'none'}.",
        f"Goals and preferences: {request.get('preferences') or 'none'}.",
        "Every day must have breakfast, lunch, dinner and snacks, each a list of 1-3 food items.",
        "calories is an integer; protein, carbs and fats are strings with a unit such as \"12g\".",
        f"Return ONE JSON object whose keys are exactly: {', '.join(batch)} (lowercase).",
        f"Example shape: {json.dumps(example)}",
    ]
    return "\n".join(lines)


def parse_batch_reply(text: str, batch: List[str]) -> Optional[Dict[str, Dict[str, List[dict]]]]:
    """Strict parse, then one repair; returns the batch days normalized, or None"""
    parsed = extract_json(text, "object")
    if parsed is None:
        logger.warning(f"Batch {batch} returned malformed JSON, attempting repair")
        parsed = repair_json_object(text)
    if parsed is None:
        return None

    by_day = {str(k).strip().lower(): v for k, v in parsed.items()}
    result: Dict[str, Dict[str, List[dict]]] = {}
    for day in batch:
        if day not in by_day:
            logger.warning(f"Batch {batch} reply is missing {day}")
            return None
        try:
            result[day] = normalize_day_plan(by_day[day])
        except InvalidInput as e:
            logger.warning(f"Batch {batch} day {day} failed validation: {e.detail}")
            return None
    return result


def build_meal_plan_graph(proxy: GroqProxy) -> StateGraph:
    async def _node_plan_batches(state: MealPlanState) -> MealPlanState:
        request = state.get("request") or {}
        days = plan_weekdays(request.get("days"), request.get("startDay"))
        batches = batch_weekdays(days)
        logger.info(f"Meal plan requested for {days} in {len(batches)} batch(es)")
        return {
            "days": days,
            "batches": batches,
            "batch_index": 0,
            "meal_plan": {},
        }

    async def _node_generate_batch(state: MealPlanState) -> MealPlanState:
        index = state["batch_index"]
        batch = state["batches"][index]
        prompt = build_batch_prompt(batch, state.get("request") or {})

        text = await proxy.ask(MEAL_PLAN_SYSTEM_PROMPT, prompt, temperature=0.4, max_tokens=3000)
        days = parse_batch_reply(text, batch)
        if days is None:
            raise GenerationFailed(f"Failed to generate meal plan for {', '.join(batch)}. Please try again.")

        # weekday keys never overlap across batches
        meal_plan = dict(state.get("meal_plan") or {})
        meal_plan.update(days)
        return {"meal_plan": meal_plan, "batch_index": index + 1}

    async def _node_finalize(state: MealPlanState) -> MealPlanState:
        meal_plan = state.get("meal_plan") or {}
        ordered = {day: meal_plan[day] for day in state["days"] if day in meal_plan}
        logger.info(f"Meal plan generated for {list(ordered)} in {len(state['batches'])} batch(es)")
        return {"meal_plan": ordered}

    def _next_step(state: MealPlanState) -> str:
        return "generate_batch" if state["batch_index"] < len(state["batches"]) else "finalize"

    graph = StateGraph(MealPlanState)
    graph.add_node("plan_batches", _node_plan_batches)
    graph.add_node("generate_batch", _node_generate_batch)
    graph.add_node("finalize", _node_finalize)

    graph.set_entry_point("plan_batches")
    graph.add_edge("plan_batches", "generate_batch")
    graph.add_conditional_edges(
        "generate_batch", _next_step, {"generate_batch": "generate_batch", "finalize": "finalize"}
    )
    graph.add_edge("finalize", END)
    return graph


async def run_meal_plan_workflow(proxy: GroqProxy, request: MealPlanGenerateIn) -> Dict[str, Dict[str, List[dict]]]:
    """Generate and merge all batches; the result is not persisted"""
    app = build_meal_plan_graph(proxy).compile()
    initial_state: MealPlanState = {"request": request.model_dump()}
    result: MealPlanState = await app.ainvoke(initial_state)
    return result.get("meal_plan") or {}
