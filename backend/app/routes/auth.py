"""
Auth API route - trainer sign-in.

Failures come back as AuthError and are rendered by the handler in
main.py with one of three fixed messages.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.dependencies import get_auth_service
from app.services.auth import AuthService

router = APIRouter()


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


@router.post("/api/auth/login")
def login(request: LoginRequest, auth: AuthService = Depends(get_auth_service)):
    """Sign in with email and password and receive a session token."""
    session = auth.sign_in(request.email, request.password)
    return session.model_dump(mode="json")
