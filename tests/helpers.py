"""Token and principal factories shared by the tests."""

import time

from jose import jwt

from api.v1.auth.schemas import Principal

TEST_OIDC_SECRET = "test-oidc-client-secret"

ADA_FORM = {
    "accountType": "team",
    "name": "Ada",
    "companyName": "Acme",
    "role": "owner",
    "teamEmails": ["bob@acme.com", " "],
    "planId": "pro",
    "billingCycle": "monthly",
}


def make_token(sub="auth0|1", email="u@test.com", email_verified=True, secret=TEST_OIDC_SECRET, **claims):
    now = int(time.time())
    payload = {
        "sub": sub,
        "email": email,
        "email_verified": email_verified,
        "iat": now,
        "exp": now + 3600,
        **claims,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_headers(**kwargs):
    return {"Authorization": f"Bearer {make_token(**kwargs)}"}


def make_principal(sub="auth0|1", email="u@test.com", email_verified=True, **claims):
    return Principal(sub=sub, email=email, email_verified=email_verified, **claims)
