import logging

import requests
from fastapi import HTTPException, status

from core.config import settings
from .schemas import Principal

logger = logging.getLogger(__name__)

MGMT_TIMEOUT_SECONDS = 10

### IDENTITY PROVIDER MANAGEMENT API ###

def get_management_token() -> str:
    """Fetch a Management API token with the client-credentials grant."""
    domain = settings.AUTH0_DOMAIN
    resp = requests.post(
        f"https://{domain}/oauth/token",
        json={
            "client_id": settings.AUTH0_MGMT_CLIENT_ID,
            "client_secret": settings.AUTH0_MGMT_CLIENT_SECRET,
            "audience": f"https://{domain}/api/v2/",
            "grant_type": "client_credentials"
        },
        timeout=MGMT_TIMEOUT_SECONDS
    )
    resp.raise_for_status()
    return resp.json()["access_token"]


def resend_verification_email(principal: Principal) -> None:
    if principal.email_verified:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already verified."
        )

    try:
        mgmt_token = get_management_token()
        resp = requests.post(
            f"https://{settings.AUTH0_DOMAIN}/api/v2/jobs/verification-email",
            json={"user_id": principal.sub},
            headers={"Authorization": f"Bearer {mgmt_token}"},
            timeout=MGMT_TIMEOUT_SECONDS
        )
        resp.raise_for_status()
    except (requests.RequestException, KeyError, ValueError) as e:
        logger.error(f"Resend verification failed for {principal.sub}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not resend verification email."
        )

    logger.info(f"Verification email queued for {principal.sub}")
