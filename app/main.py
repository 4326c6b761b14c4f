import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.logging import configure_logging
from app.models import (  # noqa: F401
    integration_webhook,
    proposal_approval,
    propgen_audit_log,
    propgen_workflow,
    webhook_log,
)
from app.routers.auth import router as auth_router
from app.routers.integration_webhooks import router as integration_webhooks_router
from app.routers.propgen import TRIGGER_PATH
from app.routers.propgen import router as propgen_router

logger = logging.getLogger(__name__)

CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type", "x-company-id"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    yield


app = FastAPI(
    title="PropGEN Workflow Service",
    lifespan=lifespan,
)


@app.middleware("http")
async def catch_unhandled_exceptions(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception:
        logger.exception("Unhandled exception", extra={"path": request.url.path})
        return JSONResponse(status_code=500, content={"error": "Internal Server Error"})


@app.exception_handler(RequestValidationError)
async def trigger_request_validation_error(request: Request, exc: RequestValidationError):
    if request.url.path != TRIGGER_PATH:
        return await request_validation_exception_handler(request, exc)

    problems = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}"
        for err in exc.errors()
    )
    return JSONResponse(status_code=400, content={"error": f"Invalid trigger request: {problems}"})


# Registered last so it wraps the error middleware and error responses keep CORS headers.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
    allow_headers=CORS_ALLOW_HEADERS,
)

app.include_router(auth_router)
app.include_router(propgen_router)
app.include_router(integration_webhooks_router)


@app.get("/")
def root():
    return {"status": "PropGEN workflow service running"}


@app.get("/health")
def health():
    return {
        "status": "ok",
        "version": "1.0.0",
    }
