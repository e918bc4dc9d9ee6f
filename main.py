import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from api.v1.auth.routes import router as auth_router, me_router
from api.v1.onboarding.routes import router as onboarding_router
from api.v1.app.routes import router as app_router
from core.config import settings
from core.db.base import Base
from core.db.session import engine
from core.exceptions import setup_exception_handlers
import models  # noqa: F401  registers tables on Base.metadata

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)

# ✅ Create tables
Base.metadata.create_all(bind=engine)

# ✅ FastAPI app
app = FastAPI(title=settings.PROJECT_NAME)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
setup_exception_handlers(app)

app.include_router(auth_router)
app.include_router(me_router)
app.include_router(onboarding_router)
app.include_router(app_router)

@app.get("/", response_class=PlainTextResponse)
def root():
    return "Auth service running..."


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=settings.PORT)
