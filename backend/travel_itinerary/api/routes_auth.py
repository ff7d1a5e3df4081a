# backend/travel_itinerary/api/routes_auth.py

from fastapi import APIRouter, Depends

from travel_itinerary.api.deps import current_user, get_context
from travel_itinerary.core.context import AppContext
from travel_itinerary.models.user_models import LoginIn, RegisterIn, UserRecord

router = APIRouter(prefix="/api/auth", tags=["auth"])


# --------------------------
# REGISTER
# --------------------------
@router.post("/register", status_code=201)
def register(data: RegisterIn, ctx: AppContext = Depends(get_context)):
    result = ctx.auth.register(data.email, data.password, data.name)
    return {
        "message": "User registered successfully",
        "token": result.token,
        "user": result.user.to_public(),
    }


# --------------------------
# LOGIN
# --------------------------
@router.post("/login")
def login(data: LoginIn, ctx: AppContext = Depends(get_context)):
    result = ctx.auth.login(data.email, data.password)
    return {
        "message": "Login successful",
        "token": result.token,
        "user": result.user.to_public(),
    }


# --------------------------
# ME
# --------------------------
@router.get("/me")
def me(user: UserRecord = Depends(current_user)):
    return {"user": user.to_public()}
