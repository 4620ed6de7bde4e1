"""
Auth package for JWT authentication
"""

from .jwt_auth import (
    get_current_user_id,
    create_access_token,
    verify_token,
    hash_password,
    verify_password
)

__all__ = [
    "get_current_user_id",
    "create_access_token",
    "verify_token",
    "hash_password",
    "verify_password"
]
