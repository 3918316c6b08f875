# emetals/routers/account.py

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from emetals.auth_schemas import PasswordStrengthRequest, PasswordStrengthResponse
from emetals.deps import get_auth_client
from emetals.logging_config import get_logger
from emetals.password_strength import analyze_password
from emetals.services.auth_client import AuthClient, AuthServiceError

# ⚠ main.py mounts this with prefix="/api/v1"
router = APIRouter(tags=["Account"])

logger = get_logger(__name__)


# -------------------------------------------
# Password strength meter
# -------------------------------------------
@router.post("/password-strength", response_model=PasswordStrengthResponse)
async def password_strength(request: PasswordStrengthRequest):
    return PasswordStrengthResponse(**analyze_password(request.password).to_dict())


# -------------------------------------------
# Sign out
# -------------------------------------------
@router.post("/session/sign-out")
async def sign_out(
    request: Request,
    response: Response,
    auth_client: AuthClient = Depends(get_auth_client),
):
    try:
        result = await auth_client.sign_out(request.cookies)
    except AuthServiceError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))

    for cookie in result.set_cookies:
        response.headers.append("set-cookie", cookie)

    if result.error:
        logger.warning("sign_out_rejected", status=result.error.status, code=result.error.code)
        raise HTTPException(
            status_code=result.error.status or status.HTTP_400_BAD_REQUEST,
            detail=result.error.message or "Sign out failed",
        )

    logger.info("signed_out")
    return {"success": True}
