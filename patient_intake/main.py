import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from patient_intake.api.v1.router import api_router
from patient_intake.api.web import router as web_router
from patient_intake.backends.provider import close_backend
from patient_intake.core.config import get_settings

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    close_backend()


app = FastAPI(
    title="Patient Intake Backend",
    lifespan=lifespan,
)


@app.get("/health", tags=["health"])
async def root_health() -> dict:
    """
    Global health check endpoint.
    """
    return {"status": "ok"}


# Mount versioned API router
app.include_router(api_router, prefix=settings.api_v1_prefix)

# Form routes (landing form, patient registration)
app.include_router(web_router, tags=["forms"])
