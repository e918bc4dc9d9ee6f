import time
import logging
from dataclasses import dataclass
from typing import Dict, Optional

import requests
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt, JWTError
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.config import settings
from core.db.dependencies import get_db
from core.exceptions import (
    AuthenticationMissing,
    EmailNotVerified,
    OnboardingIncomplete,
    UnexpectedStoreFailure,
)
from models.user import User
from .schemas import Principal

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False, description="OIDC ID token")


class OIDCError(Exception):
    pass


### JWKS ###

@dataclass
class JwksCache:
    jwks: Optional[Dict] = None
    fetched_at: float = 0.0


_JWKS_CACHE = JwksCache()


def _get_jwks_uri() -> str:
    if settings.OIDC_JWKS_URL:
        return settings.OIDC_JWKS_URL
    if not settings.OIDC_ISSUER_URL:
        raise OIDCError("OIDC_ISSUER_URL or OIDC_JWKS_URL is required")
    url = settings.OIDC_ISSUER_URL.rstrip("/") + "/.well-known/openid-configuration"
    resp = requests.get(url, timeout=10)
    if resp.status_code != 200:
        raise OIDCError(f"OIDC discovery failed ({resp.status_code})")
    jwks_uri = resp.json().get("jwks_uri")
    if not jwks_uri:
        raise OIDCError("OIDC discovery missing jwks_uri")
    return jwks_uri


def _get_jwks() -> Dict:
    now = time.time()
    if _JWKS_CACHE.jwks and (now - _JWKS_CACHE.fetched_at) < settings.OIDC_JWKS_CACHE_SECONDS:
        return _JWKS_CACHE.jwks

    resp = requests.get(_get_jwks_uri(), timeout=10)
    if resp.status_code != 200:
        raise OIDCError(f"JWKS fetch failed ({resp.status_code})")
    _JWKS_CACHE.jwks = resp.json()
    _JWKS_CACHE.fetched_at = now
    return _JWKS_CACHE.jwks


### TOKEN DECODING ###

def decode_id_token(token: str) -> Dict:
    """Verify an OIDC ID token and return its claims.

    Tokens signed with the client secret (HS256) are accepted when
    OIDC_CLIENT_SECRET is configured; otherwise the issuer's JWKS is used.
    """
    issuer = settings.OIDC_ISSUER_URL or None
    audience = settings.OIDC_AUDIENCE or None

    if settings.OIDC_CLIENT_SECRET:
        key = settings.OIDC_CLIENT_SECRET
        algorithms = ["HS256"]
    else:
        key = _get_jwks()
        algorithms = ["RS256", "RS384", "RS512"]

    try:
        return jwt.decode(
            token,
            key,
            algorithms=algorithms,
            issuer=issuer,
            audience=audience,
            options={
                "verify_aud": bool(audience),
                "verify_iss": bool(issuer),
                "verify_at_hash": False,
            },
        )
    except JWTError as e:
        raise OIDCError("OIDC token validation failed") from e


### DEPENDENCIES ###

def get_optional_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[Principal]:
    if not credentials or not credentials.credentials:
        return None
    try:
        claims = decode_id_token(credentials.credentials)
        if not claims.get("sub"):
            return None
        return Principal.from_claims(claims)
    except OIDCError as e:
        logger.warning(f"Rejected bearer token: {e}")
        return None
    except ValidationError as e:
        logger.warning(f"Bearer token claims rejected: {e.error_count()} invalid field(s)")
        return None


def get_current_principal(
    principal: Optional[Principal] = Depends(get_optional_principal),
) -> Principal:
    if principal is None:
        raise AuthenticationMissing()
    return principal


def require_verified_email(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.email_verified:
        raise EmailNotVerified()
    return principal


def require_onboarded(
    principal: Principal = Depends(require_verified_email),
    db: Session = Depends(get_db),
) -> Principal:
    """Access gate for protected routes: authenticated, verified, onboarded."""
    try:
        user = db.query(User).filter_by(auth0_id=principal.sub).first()
    except SQLAlchemyError as e:
        logger.error(f"Onboarding gate lookup failed for {principal.sub}: {e}")
        raise UnexpectedStoreFailure() from e

    if not user or not user.onboarding_completed:
        logger.info(f"Onboarding required for {principal.sub}")
        raise OnboardingIncomplete()
    return principal
