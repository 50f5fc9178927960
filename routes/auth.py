# routes/auth.py
from fastapi import APIRouter, Body, Depends, Request
from sqlalchemy.orm import Session
from typing import Any, Dict

from database import get_db
from models import User
from services import auth_service
from utils.permissions import ROLE_DISPLAY_NAMES, ROLE_PERMISSIONS, get_current_user

router = APIRouter()


@router.post("/login")
def login(request: Request, payload: Dict[str, Any] = Body(...), db: Session = Depends(get_db)):
    """Login with email and password - returns a bearer JWT"""
    result = auth_service.login(db, payload, request.app.state.settings)
    return {"success": True, "data": result, "message": "Login successful"}


@router.get("/me")
def me(current_user: User = Depends(get_current_user)):
    return {
        "success": True,
        "data": {
            **current_user.to_dict(),
            "role_display": ROLE_DISPLAY_NAMES.get(current_user.role, current_user.role),
            "permissions": ROLE_PERMISSIONS.get(current_user.role, []),
        },
        "message": "Current user retrieved"
    }


@router.post("/forgot-password")
def forgot_password(request: Request, payload: Dict[str, Any] = Body(...), db: Session = Depends(get_db)):
    auth_service.forgot_password(db, payload, request.app.state.settings)
    # Same answer whether or not the account exists
    return {
        "success": True,
        "data": None,
        "message": "If an account exists for this email, a reset code has been sent"
    }


@router.post("/reset-password")
def reset_password(request: Request, payload: Dict[str, Any] = Body(...), db: Session = Depends(get_db)):
    auth_service.reset_password(db, payload, request.app.state.settings)
    return {"success": True, "data": None, "message": "Password has been reset"}
