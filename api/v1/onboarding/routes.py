from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.db.dependencies import get_db
from api.v1.auth.schemas import Principal
from api.v1.auth.utils import require_verified_email
from .schemas import (
    OnboardingSaveRequest,
    OnboardingSaveOut,
    OnboardingReadOut,
    UserOut,
    WorkspaceOut,
    CollaboratorOut,
    SubscriptionOut,
)
from .services import OnboardingResult, save_onboarding, get_onboarding

router = APIRouter(prefix="/api/onboarding", tags=["Onboarding"])


def _serialize(result: OnboardingResult) -> dict:
    # Built while the session is still open so server-set columns can load.
    return {
        "user": UserOut.model_validate(result.user),
        "workspace": WorkspaceOut.model_validate(result.workspace) if result.workspace else None,
        "collaborators": [CollaboratorOut.model_validate(c) for c in result.collaborators],
        "subscription": SubscriptionOut.model_validate(result.subscription) if result.subscription else None,
    }

### ONBOARDING ROUTES ###

@router.post("/save", response_model=OnboardingSaveOut)
def save_onboarding_route(
    data: OnboardingSaveRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_verified_email)
):
    result = save_onboarding(db, principal, data)
    return {"success": True, **_serialize(result)}


@router.get("/me", response_model=OnboardingReadOut)
def get_onboarding_route(
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_verified_email)
):
    result = get_onboarding(db, principal)
    return {
        "success": True,
        "onboardingCompleted": result.user.onboarding_completed,
        **_serialize(result)
    }
