from pymongo import MongoClient, ASCENDING
from dotenv import load_dotenv
import logging
import os

from fitgenix.errors import ServiceUnavailable

load_dotenv()

logger = logging.getLogger(__name__)

MONGO_URI = os.getenv("MONGODB_URI")
DB_NAME = os.getenv("DB_NAME", "fitgenix")

# Initialize database connection with error handling
try:
    if not MONGO_URI:
        raise ValueError("MONGODB_URI environment variable not set")

    client = MongoClient(MONGO_URI, serverSelectionTimeoutMS=5000)
    db = client[DB_NAME]
    logger.info(f"Database client configured: {DB_NAME}")
except Exception as e:
    logger.warning(f"Database connection failed: {e}")
    client = None
    db = None


def get_db():
    """FastAPI dependency returning the shared database handle"""
    if db is None:
        raise ServiceUnavailable("Database connection not available")
    return db


def ensure_indexes(database):
    # idempotent index creation
    database.users.create_index([("email", ASCENDING)], unique=True, name="ux_user_email")
    # one log per user per calendar day; makes find-or-create of today's log atomic
    database.daily_logs.create_index(
        [("user_id", ASCENDING), ("date", ASCENDING)], unique=True, name="ux_daily_log_user_date"
    )
