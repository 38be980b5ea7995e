from fastapi import APIRouter, Depends
from sqlmodel import Session

from ..auth import authenticate_user, change_password, create_access_token, get_current_user
from ..db import get_session
from ..models import User
from ..schemas import ChangePasswordRequest, LoginRequest
from ..tenants import user_to_dict

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login")
def login(payload: LoginRequest, session: Session = Depends(get_session)):
    user = authenticate_user(session, payload.email, payload.password)
    token = create_access_token(data={"sub": str(user.id), "role": user.role})
    return {
        "success": True,
        "message": "Login successful",
        "token": token,
        "token_type": "bearer",
        "user": user_to_dict(user),
    }


@router.get("/me")
def read_me(current_user: User = Depends(get_current_user)):
    return {"success": True, "user": user_to_dict(current_user)}


@router.put("/change-password")
def api_change_password(
    payload: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    change_password(session, current_user, payload.current_password, payload.new_password)
    return {"success": True, "message": "Password changed successfully"}
