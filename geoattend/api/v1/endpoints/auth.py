"""Authentication endpoints."""
from fastapi import APIRouter, HTTPException, Response

from geoattend.schemas import AdminLoginRequest, SuccessResponse
from geoattend.core.security import verify_admin_password, create_access_token
from geoattend.core import config
from geoattend.core.logging_config import get_logger

logger = get_logger(__name__)
router = APIRouter()


@router.post("/admin/login", response_model=SuccessResponse)
async def admin_login(request: AdminLoginRequest, response: Response) -> SuccessResponse:
    """
    Authenticate the training administrator and set a JWT in an httpOnly cookie.

    The cookie is sent automatically with later requests, including the
    EventSource connection of the QR display page.

    Raises:
        HTTPException: 401 Unauthorized if password is invalid

    Example:
        Request:
            POST /api/v1/auth/admin/login
            {"password": "your-secure-password"}

        Response (200):
            {"success": true, "message": "Logged in successfully"}
            Set-Cookie: admin_token=eyJhbGc...; HttpOnly; SameSite=Lax
    """
    if not verify_admin_password(request.password):
        logger.warning("admin_login_failed")
        raise HTTPException(status_code=401, detail="Invalid password")

    access_token = create_access_token(data={"is_admin": True})

    response.set_cookie(
        key="admin_token",
        value=access_token,
        httponly=True,
        secure=config.settings.ENVIRONMENT == "production",  # HTTPS only in production
        samesite="lax",
        max_age=config.settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )

    return SuccessResponse(success=True, message="Logged in successfully")


@router.post("/admin/logout", response_model=SuccessResponse)
async def admin_logout(response: Response) -> SuccessResponse:
    """Clear the admin cookie. Safe to call when not logged in."""
    response.delete_cookie(key="admin_token")
    return SuccessResponse(success=True, message="Logged out successfully")
