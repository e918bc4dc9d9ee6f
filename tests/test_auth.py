"""Principal extraction, who-am-i and the verification-email resend."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from api.v1.auth import utils
from api.v1.auth.utils import OIDCError, decode_id_token
from helpers import auth_headers, make_token


def _response(status_code=200, payload=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload or {}
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status_code} error")
    return resp

### TOKEN DECODING ###

def test_decode_returns_claims():
    claims = decode_id_token(make_token(sub="auth0|42", nickname="ada"))

    assert claims["sub"] == "auth0|42"
    assert claims["email_verified"] is True
    assert claims["nickname"] == "ada"


def test_decode_rejects_bad_signature():
    with pytest.raises(OIDCError):
        decode_id_token(make_token(secret="wrong-secret"))


def test_decode_rejects_expired_token():
    with pytest.raises(OIDCError):
        decode_id_token(make_token(exp=1))


def test_decode_checks_audience_when_configured(monkeypatch):
    monkeypatch.setattr(utils.settings, "OIDC_AUDIENCE", "my-client")

    assert decode_id_token(make_token(aud="my-client"))["aud"] == "my-client"
    with pytest.raises(OIDCError):
        decode_id_token(make_token(aud="other-client"))


def test_jwks_is_discovered_and_cached(monkeypatch):
    monkeypatch.setattr(utils.settings, "OIDC_ISSUER_URL", "https://issuer.example.com/")
    monkeypatch.setattr(utils.settings, "OIDC_JWKS_URL", "")
    monkeypatch.setattr(utils, "_JWKS_CACHE", utils.JwksCache())

    jwks = {"keys": [{"kid": "k1", "kty": "RSA"}]}
    responses = {
        "https://issuer.example.com/.well-known/openid-configuration":
            _response(payload={"jwks_uri": "https://issuer.example.com/jwks.json"}),
        "https://issuer.example.com/jwks.json": _response(payload=jwks),
    }
    with patch("api.v1.auth.utils.requests.get", side_effect=lambda url, timeout: responses[url]) as get:
        assert utils._get_jwks() == jwks
        assert utils._get_jwks() == jwks

    assert get.call_count == 2


def test_jwks_discovery_failure_raises(monkeypatch):
    monkeypatch.setattr(utils.settings, "OIDC_ISSUER_URL", "https://issuer.example.com")
    monkeypatch.setattr(utils.settings, "OIDC_JWKS_URL", "")
    monkeypatch.setattr(utils, "_JWKS_CACHE", utils.JwksCache())

    with patch("api.v1.auth.utils.requests.get", return_value=_response(status_code=503)):
        with pytest.raises(OIDCError):
            utils._get_jwks()

### ROUTES ###

def test_root_is_alive(client):
    resp = client.get("/")

    assert resp.status_code == 200
    assert resp.text == "Auth service running..."


def test_who_am_i(client):
    resp = client.get("/api/me", headers=auth_headers(name="Ada"))

    assert resp.status_code == 200
    body = resp.json()
    assert body["authenticated"] is True
    assert body["user"]["sub"] == "auth0|1"
    assert body["user"]["name"] == "Ada"


def test_who_am_i_requires_token(client):
    assert client.get("/api/me").status_code == 401


def test_resend_verification_requires_login(client):
    resp = client.post("/auth/resend-verification")

    assert resp.status_code == 401
    body = resp.json()
    assert body["success"] is False
    assert body["error"] == "NOT_AUTHENTICATED"


def test_resend_verification_when_already_verified(client):
    resp = client.post("/auth/resend-verification", headers=auth_headers(email_verified=True))

    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "Email already verified."}


def test_resend_verification_calls_management_api(client):
    token_resp = _response(payload={"access_token": "mgmt-token"})
    job_resp = _response(status_code=201, payload={"status": "pending"})

    with patch("api.v1.auth.services.requests.post", side_effect=[token_resp, job_resp]) as post:
        resp = client.post("/auth/resend-verification", headers=auth_headers(email_verified=False))

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "Verification email sent."}

    token_call, job_call = post.call_args_list
    assert token_call.args[0] == "https://tenant.example.auth0.com/oauth/token"
    assert token_call.kwargs["json"]["grant_type"] == "client_credentials"
    assert job_call.args[0] == "https://tenant.example.auth0.com/api/v2/jobs/verification-email"
    assert job_call.kwargs["json"] == {"user_id": "auth0|1"}
    assert job_call.kwargs["headers"] == {"Authorization": "Bearer mgmt-token"}


def test_resend_verification_upstream_failure(client):
    with patch("api.v1.auth.services.requests.post", return_value=_response(status_code=401)):
        resp = client.post("/auth/resend-verification", headers=auth_headers(email_verified=False))

    assert resp.status_code == 500
    assert resp.json() == {"success": False, "message": "Could not resend verification email."}


@pytest.mark.parametrize("path", ["/api/me", "/api/onboarding/me"])
def test_signed_token_with_malformed_claims_is_unauthenticated(client, path):
    resp = client.get(path, headers=auth_headers(email_verified=None))

    assert resp.status_code == 401
    assert resp.json() == {"success": False, "message": "Not authenticated"}
