import os
from dotenv import load_dotenv

load_dotenv()


def _build_db_url() -> str:
    url = os.getenv("DB_URL")
    if url:
        return url
    driver = os.getenv("DB_DRIVER", "postgresql+psycopg2")
    user = os.getenv("DB_USER", "postgres")
    password = os.getenv("DB_PASSWORD", "postgres")
    host = os.getenv("DB_HOST", "localhost")
    port = os.getenv("DB_PORT", "5432")
    name = os.getenv("DB_NAME", "onboarding")
    return f"{driver}://{user}:{password}@{host}:{port}/{name}"


class Settings:
    PROJECT_NAME = os.getenv("PROJECT_NAME", "Onboarding Service")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    DB_URL = _build_db_url()
    DB_ECHO = os.getenv("DB_ECHO", "false").lower() == "true"

    # Cloud Run injects PORT
    PORT = int(os.getenv("PORT", 4000))
    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

    # Identity provider (OIDC)
    OIDC_ISSUER_URL = os.getenv("OIDC_ISSUER_URL", "")
    OIDC_AUDIENCE = os.getenv("OIDC_AUDIENCE", "")
    OIDC_JWKS_URL = os.getenv("OIDC_JWKS_URL", "")
    OIDC_CLIENT_SECRET = os.getenv("OIDC_CLIENT_SECRET", "")
    OIDC_JWKS_CACHE_SECONDS = int(os.getenv("OIDC_JWKS_CACHE_SECONDS", 3600))

    # Auth0 management API, used to resend verification emails
    AUTH0_DOMAIN = os.getenv("AUTH0_DOMAIN", "")
    AUTH0_MGMT_CLIENT_ID = os.getenv("AUTH0_MGMT_CLIENT_ID", "")
    AUTH0_MGMT_CLIENT_SECRET = os.getenv("AUTH0_MGMT_CLIENT_SECRET", "")

    ONBOARDING_SAVE_MAX_ATTEMPTS = int(os.getenv("ONBOARDING_SAVE_MAX_ATTEMPTS", 3))

settings = Settings()
