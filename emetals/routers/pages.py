# emetals/routers/pages.py

from fastapi import APIRouter, Depends

from emetals.auth_schemas import UserProfile
from emetals.deps import get_current_user, require_role

# Page requests pass the route guard before they get here; the guard only
# sees the cookie, these handlers ask the auth service.
router = APIRouter(tags=["Pages"])


@router.get("/dashboard")
async def dashboard(user: UserProfile = Depends(get_current_user)):
    return {
        "message": f"Welcome back, {user.name}!" if user.name else "Welcome back!",
        "user": user.model_dump(),
    }


@router.get("/admin")
async def admin(user: UserProfile = Depends(require_role("admin"))):
    return {
        "message": "Admin area",
        "user": user.model_dump(),
    }
