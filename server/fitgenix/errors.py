# fitgenix/errors.py
"""
Error taxonomy shared by routers and services.

Every error is an HTTPException so it can be raised from anywhere in a
request and still reach the client as a flat {"error": "..."} body.
"""

from fastapi import HTTPException, status


class Unauthenticated(HTTPException):
    def __init__(self, message: str = "Authentication required"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=message)


class Forbidden(HTTPException):
    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=message)


class NotFound(HTTPException):
    def __init__(self, message: str = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=message)


class InvalidInput(HTTPException):
    def __init__(self, message: str = "Invalid input"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


class ServiceUnavailable(HTTPException):
    """Raised when the AI proxy has exhausted every configured credential."""

    def __init__(self, message: str = "AI Service Unavailable. Please check API Key."):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=message)


class GenerationFailed(HTTPException):
    """Raised when a meal-plan batch cannot be parsed even after repair."""

    def __init__(self, message: str):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=message)
