from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fitgenix.routers import auth, user, ai, meal_plan
from fitgenix.database.connection import db, ensure_indexes
from fitgenix.services.ai_proxy import get_ai_proxy
import os
import logging
from dotenv import load_dotenv
from bson import ObjectId
import json
from datetime import datetime

load_dotenv()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# Custom JSON encoder for MongoDB ObjectId and datetime
class MongoJSONEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, ObjectId):
            return str(obj)
        if isinstance(obj, datetime):
            return obj.isoformat()
        return super().default(obj)


class MongoJSONResponse(JSONResponse):
    def render(self, content) -> bytes:
        return json.dumps(
            content,
            ensure_ascii=False,
            allow_nan=False,
            indent=None,
            separators=(",", ":"),
            cls=MongoJSONEncoder
        ).encode("utf-8")


app = FastAPI(title="FitGenix API", version="1.0.0", default_response_class=MongoJSONResponse)

app.add_middleware(GZipMiddleware, minimum_size=1000)

# CORS middleware to allow frontend communication
cors_origins = os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in cors_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Every error reaches the client as a flat {"error": "..."} body
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return MongoJSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg")
    else:
        message = "Invalid input"
    return MongoJSONResponse(status_code=400, content={"error": message})


app.include_router(auth.router)
app.include_router(user.router)
app.include_router(ai.router)
app.include_router(meal_plan.router)


@app.on_event("startup")
def _app_startup():
    # Ensure indexes exist (idempotent)
    if db is None:
        logger.warning("Skipping index creation: database not configured")
        return
    try:
        ensure_indexes(db)
    except Exception as e:
        logger.warning(f"Could not ensure indexes: {e}")


@app.get("/")
def home():
    return {"message": "FitGenix API is running"}


@app.get("/health")
def health_check():
    return {"status": "healthy", "ai_available": get_ai_proxy().available, "db_available": db is not None}
