from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from .schemas import Principal, WhoAmIOut, MessageOut
from .services import resend_verification_email
from .utils import get_current_principal, get_optional_principal

# Initialize routers
router = APIRouter(prefix="/auth", tags=["Auth"])
me_router = APIRouter(prefix="/api", tags=["Auth"])

### AUTHENTICATION ROUTES ###

@router.post("/resend-verification", response_model=MessageOut)
def resend_verification(principal: Optional[Principal] = Depends(get_optional_principal)):
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": "NOT_AUTHENTICATED",
                "message": "You must be logged in to resend verification email."
            }
        )

    resend_verification_email(principal)
    return {"success": True, "message": "Verification email sent."}


@me_router.get("/me", response_model=WhoAmIOut)
def who_am_i(principal: Principal = Depends(get_current_principal)):
    return {"authenticated": True, "user": principal.model_dump()}
