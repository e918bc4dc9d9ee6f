from fastapi import APIRouter, Depends

from api.v1.auth.schemas import Principal
from api.v1.auth.utils import require_onboarded

# Everything mounted here sits behind the onboarding gate.
router = APIRouter(prefix="/api/app", tags=["App"], dependencies=[Depends(require_onboarded)])


@router.get("/test")
def app_test(principal: Principal = Depends(require_onboarded)):
    return {
        "success": True,
        "message": "You are onboarded and authenticated!",
        "user": principal.model_dump()
    }
