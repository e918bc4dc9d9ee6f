from pydantic import BaseModel, Field, field_validator
from typing import Any, List, Optional
from datetime import datetime

from models.workspace import AccountType

# -----------------------------
#  Onboarding form
# -----------------------------

class OnboardingSaveRequest(BaseModel):
    account_type: Optional[AccountType] = Field(default=None, alias="accountType")
    name: Optional[str] = None
    company_name: Optional[str] = Field(default=None, alias="companyName")
    role: Optional[str] = None
    team_emails: Optional[List[Any]] = Field(default=None, alias="teamEmails")
    plan_id: Optional[str] = Field(default=None, alias="planId")
    billing_cycle: Optional[str] = Field(default=None, alias="billingCycle")

    class Config:
        populate_by_name = True

    @field_validator("team_emails", mode="before")
    @classmethod
    def team_emails_must_be_list(cls, value):
        # Anything that is not a list means "no collaborators".
        if not isinstance(value, list):
            return None
        return value

# -----------------------------
#  Persisted rows
# -----------------------------

class UserOut(BaseModel):
    id: int
    auth0_id: str
    email: Optional[str]
    name: Optional[str]
    onboarding_completed: bool
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True

class WorkspaceOut(BaseModel):
    id: int
    owner_user_id: int
    account_type: Optional[str]
    name: Optional[str]
    company_name: Optional[str]
    role: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True

class CollaboratorOut(BaseModel):
    id: int
    workspace_id: int
    email: str
    created_at: Optional[datetime]

    class Config:
        from_attributes = True

class SubscriptionOut(BaseModel):
    id: int
    user_id: int
    workspace_id: int
    plan_id: str
    billing_cycle: str
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True

# -----------------------------
#  Responses
# -----------------------------

class OnboardingSaveOut(BaseModel):
    success: bool = True
    user: UserOut
    workspace: WorkspaceOut
    collaborators: List[CollaboratorOut] = []
    subscription: Optional[SubscriptionOut] = None

class OnboardingReadOut(BaseModel):
    success: bool = True
    onboardingCompleted: bool
    user: UserOut
    workspace: Optional[WorkspaceOut] = None
    collaborators: List[CollaboratorOut] = []
    subscription: Optional[SubscriptionOut] = None
