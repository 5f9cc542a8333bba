"""
Admin authentication endpoints.

``/login`` is the only public admin route; the rest require a bearer
token issued by it.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from mixer_rental_api.app.core.responses import ok
from mixer_rental_api.app.core.security import get_current_user
from mixer_rental_api.app.schemas.user import ChangePasswordRequest, LoginRequest
from mixer_rental_api.app.services.audit_service import AuditService
from mixer_rental_api.app.services.user_service import UserService


router = APIRouter()


@router.post("/login")
async def login(credentials: LoginRequest) -> dict:
    """Аутентифицировать администратора и вернуть токен."""
    result = await UserService.login(credentials.username, credentials.password)
    if result is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    return ok(result, "Login successful")


@router.get("/profile")
async def profile(current_user: dict = Depends(get_current_user)) -> dict:
    try:
        user = await UserService.get_profile(current_user["user_id"])
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return ok(user)


@router.put("/change-password")
async def change_password(
    payload: ChangePasswordRequest,
    current_user: dict = Depends(get_current_user),
) -> dict:
    try:
        changed = await UserService.change_password(
            current_user["user_id"], payload.current_password, payload.new_password
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    if not changed:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")
    return ok(None, "Password changed successfully")


@router.post("/verify-token")
async def verify_token(current_user: dict = Depends(get_current_user)) -> dict:
    return ok(
        {"user": {"id": current_user["user_id"], "username": current_user["sub"], "email": current_user.get("email")}},
        "Token is valid",
    )


@router.post("/logout")
async def logout(current_user: dict = Depends(get_current_user)) -> dict:
    """Tokens are stateless; logout is recorded for the audit trail only."""
    await AuditService.record(current_user, "logout", "admin_user", current_user["user_id"])
    return ok(None, "Logged out successfully")
