from fastapi import APIRouter, HTTPException, Depends
from pymongo.errors import DuplicateKeyError
from datetime import datetime, timezone
import logging

from ..auth.jwt_auth import get_current_user_id, create_access_token, hash_password, verify_password
from ..database.connection import get_db
from ..errors import InvalidInput
from ..models.user import (
    UserRegistration, UserLogin, UserResponse, TokenResponse, DEFAULT_DETAILS, DEFAULT_GOALS
)
from ..services.daily_log_service import DailyLogService, public_user

# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Auth"])


def _user_response(user: dict, is_new_user: bool) -> UserResponse:
    return UserResponse(
        id=str(user["_id"]),
        name=user["name"],
        email=user["email"],
        details=user.get("details") or dict(DEFAULT_DETAILS),
        isNewUser=is_new_user,
    )


# Form-based Authentication Endpoints
@router.post("/register", response_model=TokenResponse, status_code=201)
def register_user(user_data: UserRegistration, db=Depends(get_db)):
    """Register a new user and sign them in"""
    try:
        # Check if user already exists
        if db.users.find_one({"email": user_data.email}):
            raise InvalidInput("Email already exists")

        new_user = {
            "name": user_data.name,
            "email": user_data.email,
            "password": hash_password(user_data.password),
            "details": dict(DEFAULT_DETAILS),
            "goals": dict(DEFAULT_GOALS),
            "mealPlan": {},
            "created_at": datetime.now(timezone.utc),
        }
        try:
            result = db.users.insert_one(new_user)
        except DuplicateKeyError:
            # lost a race with a concurrent registration for the same email
            raise InvalidInput("Email already exists")
        new_user["_id"] = result.inserted_id
        logger.info(f"New user registered with ID: {result.inserted_id}")

        token = create_access_token(data={"sub": str(result.inserted_id)})
        return TokenResponse(token=token, user=_user_response(new_user, is_new_user=True))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Signup error: {e}")
        raise HTTPException(status_code=500, detail="Server Error during signup")


@router.post("/login", response_model=TokenResponse)
def login_user(user_credentials: UserLogin, db=Depends(get_db)):
    """Authenticate user with email and password"""
    try:
        user = db.users.find_one({"email": user_credentials.email})
        if not user:
            raise InvalidInput("User not found")

        if not verify_password(user_credentials.password, user["password"]):
            raise InvalidInput("Invalid credentials")

        token = create_access_token(data={"sub": str(user["_id"])})
        details = user.get("details") or {}
        logger.info(f"User logged in: {user['email']}")
        return TokenResponse(
            token=token,
            user=_user_response(user, is_new_user=not details.get("age")),
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Login error: {e}")
        raise HTTPException(status_code=500, detail=f"Server Error: {e}")


@router.get("/me")
def get_current_user_info(user_id: str = Depends(get_current_user_id), db=Depends(get_db)):
    """Get current user information"""
    service = DailyLogService(db)
    user = service.get_user(user_id)
    return public_user(user, service.list_logs(user_id))
