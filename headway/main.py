import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from headway.core.config import settings
from headway.core.errors import AppError, RateLimitError
from headway.core.logging import configure_logging
from headway.api.v1.api import api_router

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    settings.check_webhook_security()
    if settings.REVOLUT_WEBHOOK_ALLOW_UNSIGNED and not settings.REVOLUT_WEBHOOK_SECRET:
        logger.warning("Accepting unsigned Revolut webhooks (REVOLUT_WEBHOOK_ALLOW_UNSIGNED=true)")
    yield


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# CORS: use CORS_ORIGINS from env in production; default to localhost for dev
_default_origins = ["http://127.0.0.1:3000", "http://localhost:3000"]
_origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()] if settings.CORS_ORIGINS else _default_origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    headers = {"Retry-After": str(exc.retry_after)} if isinstance(exc, RateLimitError) and exc.retry_after else None
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message}, headers=headers)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    fields = sorted({".".join(str(p) for p in err.get("loc", ())[1:]) for err in exc.errors()} - {""})
    message = "Missing or invalid fields: " + ", ".join(fields) if fields else "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


app.include_router(api_router)


@app.get("/health")
def health():
    return {"status": "ok"}
