import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.config import settings
from core.db.session import WRITE_TRANSACTION_OPTIONS
from core.exceptions import (
    AuthenticationMissing,
    ConcurrencyConflict,
    UnexpectedStoreFailure,
    is_concurrency_conflict,
)
from models.user import User
from models.workspace import Workspace
from models.collaborators import Collaborator
from models.subscription import Subscription
from api.v1.auth.schemas import Principal

from .schemas import OnboardingSaveRequest

logger = logging.getLogger(__name__)


@dataclass
class OnboardingResult:
    user: User
    workspace: Optional[Workspace] = None
    collaborators: List[Collaborator] = field(default_factory=list)
    subscription: Optional[Subscription] = None


### IDENTITY RESOLUTION ###

def find_user(db: Session, auth0_id: str) -> Optional[User]:
    return db.query(User).filter_by(auth0_id=auth0_id).first()


def resolve_user(db: Session, principal: Principal) -> User:
    """Find the local user for ``principal`` or create one.

    Existing rows are returned as-is; the display name is only synced
    when onboarding is saved. The insert runs in a savepoint so a
    concurrent first login for the same subject can be recovered by
    re-reading the winner's row. Nothing is committed here.
    """
    user = find_user(db, principal.sub)
    if user:
        return user

    user = User(
        auth0_id=principal.sub,
        email=principal.email,
        name=principal.display_name,
        onboarding_completed=False
    )
    try:
        with db.begin_nested():
            db.add(user)
    except IntegrityError:
        logger.warning(f"Concurrent user creation for {principal.sub}, re-reading")
        existing = find_user(db, principal.sub)
        if existing is None:
            raise
        return existing

    logger.info(f"Created user {user.id} for {principal.sub}")
    return user


def lock_user(db: Session, user: User) -> User:
    """Take a row lock on the user so saves for one owner run one at a time."""
    return db.query(User).filter_by(id=user.id).with_for_update().one()


### WORKSPACE ###

def find_workspace(db: Session, owner_id: int) -> Optional[Workspace]:
    return db.query(Workspace).filter_by(owner_user_id=owner_id).first()


def reconcile_workspace(db: Session, owner_id: int, fields: Dict[str, Any]) -> Workspace:
    """Create or update the single workspace owned by ``owner_id``."""
    workspace = find_workspace(db, owner_id)

    if workspace:
        workspace.account_type = fields.get("account_type")
        workspace.name = fields.get("name")
        workspace.company_name = fields.get("company_name")
        workspace.role = fields.get("role")
        workspace.updated_at = func.now()
    else:
        workspace = Workspace(
            owner_user_id=owner_id,
            account_type=fields.get("account_type"),
            name=fields.get("name"),
            company_name=fields.get("company_name"),
            role=fields.get("role")
        )
        db.add(workspace)

    db.flush()
    return workspace


### COLLABORATORS ###

def replace_collaborators(db: Session, workspace_id: int, emails: Any) -> List[Collaborator]:
    """Replace the whole collaborator list of a workspace.

    Blank entries are dropped; order is kept and duplicates are not removed.
    """
    db.query(Collaborator).filter_by(workspace_id=workspace_id).delete(synchronize_session="fetch")

    collaborators = []
    if isinstance(emails, list):
        for email in emails:
            if not isinstance(email, str):
                continue
            trimmed = email.strip()
            if not trimmed:
                continue
            collaborator = Collaborator(workspace_id=workspace_id, email=trimmed)
            db.add(collaborator)
            collaborators.append(collaborator)

    db.flush()
    return collaborators


def list_collaborators(db: Session, workspace_id: int) -> List[Collaborator]:
    return (
        db.query(Collaborator)
        .filter_by(workspace_id=workspace_id)
        .order_by(Collaborator.id)
        .all()
    )


### SUBSCRIPTION ###

def find_subscription(db: Session, user_id: int, workspace_id: int) -> Optional[Subscription]:
    return db.query(Subscription).filter_by(user_id=user_id, workspace_id=workspace_id).first()


def reconcile_subscription(
    db: Session,
    user_id: int,
    workspace_id: int,
    plan_id: Optional[str],
    billing_cycle: Optional[str]
) -> Optional[Subscription]:
    """Create or update the (user, workspace) subscription.

    Billing is left alone unless both plan and cycle are supplied.
    """
    if not plan_id or not billing_cycle:
        return None

    subscription = find_subscription(db, user_id, workspace_id)
    if subscription:
        subscription.plan_id = plan_id
        subscription.billing_cycle = billing_cycle
        subscription.updated_at = func.now()
    else:
        subscription = Subscription(
            user_id=user_id,
            workspace_id=workspace_id,
            plan_id=plan_id,
            billing_cycle=billing_cycle
        )
        db.add(subscription)

    db.flush()
    return subscription


### ONBOARDING ###

def _workspace_fields(data: OnboardingSaveRequest) -> Dict[str, Any]:
    return {
        "account_type": data.account_type.value if data.account_type else None,
        "name": data.name,
        "company_name": data.company_name,
        "role": data.role,
    }


def apply_onboarding(db: Session, principal: Principal, data: OnboardingSaveRequest) -> OnboardingResult:
    """Run every onboarding step against ``db`` without committing."""
    user = resolve_user(db, principal)
    user = lock_user(db, user)

    workspace = reconcile_workspace(db, user.id, _workspace_fields(data))
    collaborators = replace_collaborators(db, workspace.id, data.team_emails)
    subscription = reconcile_subscription(
        db, user.id, workspace.id, data.plan_id, data.billing_cycle
    )

    # The name typed into the form wins over the identity provider's.
    user.onboarding_completed = True
    user.name = data.name
    user.updated_at = func.now()
    db.flush()

    return OnboardingResult(
        user=user,
        workspace=workspace,
        collaborators=collaborators,
        subscription=subscription
    )


def save_onboarding(db: Session, principal: Optional[Principal], data: OnboardingSaveRequest) -> OnboardingResult:
    """Save the onboarding form as one transaction.

    On any failure the transaction is rolled back before the error
    propagates. Concurrency conflicts roll back and retry the whole unit.
    """
    if principal is None:
        raise AuthenticationMissing()

    max_attempts = max(1, settings.ONBOARDING_SAVE_MAX_ATTEMPTS)
    for attempt in range(1, max_attempts + 1):
        try:
            db.connection(execution_options=WRITE_TRANSACTION_OPTIONS)
            result = apply_onboarding(db, principal, data)
            db.commit()
        except Exception as e:
            db.rollback()
            if is_concurrency_conflict(e):
                if attempt < max_attempts:
                    logger.warning(
                        f"Onboarding save conflict for {principal.sub} "
                        f"(attempt {attempt}/{max_attempts}): {e}"
                    )
                    continue
                logger.error(f"Onboarding save for {principal.sub} gave up after {attempt} attempts: {e}")
                raise ConcurrencyConflict() from e
            logger.exception(f"Onboarding save error for {principal.sub}")
            raise UnexpectedStoreFailure() from e

        logger.info(f"Onboarding completed for user {result.user.id}")
        return result


def get_onboarding(db: Session, principal: Optional[Principal]) -> OnboardingResult:
    """Read the onboarding state; only the user row may be created."""
    if principal is None:
        raise AuthenticationMissing()

    try:
        user = resolve_user(db, principal)
        # Makes a user row created on first read durable on its own.
        db.commit()

        workspace = find_workspace(db, user.id)
        collaborators = []
        subscription = None
        if workspace:
            collaborators = list_collaborators(db, workspace.id)
            subscription = find_subscription(db, user.id, workspace.id)
    except Exception as e:
        db.rollback()
        logger.exception(f"Onboarding get error for {principal.sub}")
        raise UnexpectedStoreFailure() from e

    return OnboardingResult(
        user=user,
        workspace=workspace,
        collaborators=collaborators,
        subscription=subscription
    )
