# fitgenix/routers/ai.py
import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from fitgenix.errors import ServiceUnavailable
from fitgenix.models.user import FoodItem
from fitgenix.services.ai_proxy import GroqProxy, get_ai_proxy, extract_json
from fitgenix.services.daily_log_service import parse_leading_int
from fitgenix.services.video_search import VideoSearch, get_video_search, PLACEHOLDER_VIDEO_ID

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["AI"])

CHATBOT_SYSTEM_PROMPT = """You are FitGenix AI, a friendly and practical fitness and nutrition assistant.

Tone: supportive and human. No textbook explanations, no long paragraphs.

Length:
1. Simple questions (a calorie count, a definition, yes/no): answer in 1-2 short lines only.
2. Moderate or long questions: 2-3 short lines, then at most 3 bullet points, then a 1-2 line summary.

Formatting: never long numbered lists, never more than 3 bullets, no repetition.
Only add a disclaimer when there is a real health risk.

Focus on actionable workout, nutrition and lifestyle advice."""

EXERCISE_SYSTEM_PROMPT = (
    "You are a world-class fitness coach. If the user searches for a body part or equipment, "
    "return exactly 6 matching exercises. Return ONLY valid JSON as an array of objects: "
    "[{\"name\": \"Exercise Name\", \"steps\": [\"Step 1\", \"Step 2\"]}]. Do NOT include video IDs."
)

DIET_SYSTEM_PROMPT = (
    "You are a nutritionist. Return ONLY valid JSON: "
    "{\"name\": \"Food\", \"calories\": 100, \"protein\": \"10g\", \"carbs\": \"20g\", \"fats\": \"5g\"}."
)

WORKOUT_PLAN_SYSTEM_PROMPT = (
    "You are a professional fitness personal trainer. Based on the user's request, generate a "
    "highly relevant workout plan. Return ONLY valid JSON as an array of objects: "
    "[{\"name\": \"Exercise Name\", \"sets\": 3, \"reps\": 12}]. Include exactly 5-8 exercises "
    "that fit the user's goal. No extra text, just the JSON array."
)

FALLBACK_STEPS = ["Step 1: Focus on form.", "Step 2: Control the weight.", "Step 3: Breathe properly."]

FALLBACK_WORKOUT_PLAN = [
    {"name": "Push Ups", "sets": 3, "reps": 15},
    {"name": "Bodyweight Squats", "sets": 3, "reps": 20},
    {"name": "Plank", "sets": 3, "reps": 60},
    {"name": "Lunges", "sets": 3, "reps": 12},
    {"name": "Mountain Climbers", "sets": 3, "reps": 30},
]


class ChatIn(BaseModel):
    message: str


class QueryIn(BaseModel):
    query: str


class DietQueryIn(BaseModel):
    query: str
    servingSize: Optional[str] = "1"


def fallback_exercises(query: str) -> List[dict]:
    return [
        {"name": f"{query} Exercise {i + 1}", "steps": list(FALLBACK_STEPS), "videoId": PLACEHOLDER_VIDEO_ID}
        for i in range(6)
    ]


def fallback_diet(query: str) -> dict:
    return {
        "name": query,
        "calories": 250,
        "protein": "15g",
        "carbs": "30g",
        "fats": "10g",
        "note": "Estimated values (AI Unavailable)",
    }


def fallback_workout_plan() -> List[dict]:
    return [dict(item) for item in FALLBACK_WORKOUT_PLAN]


@router.post("/chatbot")
async def chatbot(payload: ChatIn, proxy: GroqProxy = Depends(get_ai_proxy)):
    """Free-form assistant reply; any proxy failure is returned as an error"""
    try:
        reply = await proxy.ask(CHATBOT_SYSTEM_PROMPT, payload.message)
    except Exception as e:
        logger.error(f"Chatbot route error: {e}")
        raise ServiceUnavailable()
    return {"reply": reply or "No response generated."}


@router.post("/exercises")
async def search_exercises(
    payload: QueryIn,
    proxy: GroqProxy = Depends(get_ai_proxy),
    videos: VideoSearch = Depends(get_video_search),
):
    try:
        text = await proxy.ask(EXERCISE_SYSTEM_PROMPT, f"Provide 6 highly relevant exercises for: {payload.query}")
        parsed = extract_json(text, "array")
        if parsed is None:
            raise ValueError("Invalid AI JSON format")

        exercises = []
        for item in parsed:
            if not isinstance(item, dict) or not item.get("name"):
                raise ValueError(f"Unexpected exercise entry: {item!r}")
            steps = item.get("steps") or []
            exercises.append({
                "name": str(item["name"]),
                "steps": [str(s) for s in steps] if isinstance(steps, list) else [str(steps)],
            })
    except Exception as e:
        logger.error(f"Exercise AI error, serving fallback: {e}")
        return fallback_exercises(payload.query)

    # each lookup falls back to the placeholder on its own
    video_ids = await asyncio.gather(*(videos.find_video_id(ex["name"]) for ex in exercises))
    return [{**ex, "videoId": vid} for ex, vid in zip(exercises, video_ids)]


@router.post("/diet")
async def diet_lookup(payload: DietQueryIn, proxy: GroqProxy = Depends(get_ai_proxy)):
    try:
        text = await proxy.ask(DIET_SYSTEM_PROMPT, f"Nutritional info for {payload.query} serving {payload.servingSize}")
        parsed = extract_json(text, "object")
        if parsed is None:
            raise ValueError("Invalid AI JSON")
        item = FoodItem(**{**parsed, "name": parsed.get("name") or payload.query})
        return item.model_dump()
    except Exception as e:
        logger.error(f"Diet AI fallback: {e}")
        return fallback_diet(payload.query)


@router.post("/workout-plans")
async def workout_plans(payload: QueryIn, proxy: GroqProxy = Depends(get_ai_proxy)):
    try:
        text = await proxy.ask(WORKOUT_PLAN_SYSTEM_PROMPT, f"Create a workout plan for: {payload.query}")
        parsed = extract_json(text, "array")
        if not parsed:
            raise ValueError("Invalid AI JSON format")
        plan = []
        for item in parsed:
            if not isinstance(item, dict) or not item.get("name"):
                raise ValueError(f"Unexpected plan entry: {item!r}")
            plan.append({
                "name": str(item["name"]),
                "sets": parse_leading_int(item.get("sets")),
                "reps": parse_leading_int(item.get("reps")),
            })
        return plan
    except Exception as e:
        logger.error(f"Workout plan AI error, serving fallback: {e}")
        return fallback_workout_plan()
