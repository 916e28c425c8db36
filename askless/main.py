"""
FastAPI backend for askless.

A developer Q&A board where every question is answered by a panel of bot
personalities. This main file handles app initialization, error mapping
and router mounting. All endpoints are organized in the routers/ directory.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables
env_path = Path(__file__).parent.parent / '.env'
if env_path.exists():
    load_dotenv(env_path)

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException

from .config import settings
from .database import check_database_health, get_db_context, init_db
from .exceptions import (
    AllBotsFailedError,
    AsklessError,
    AuthenticationRequiredError,
    LLMAuthenticationError,
    LLMError,
    LLMModelNotFoundError,
    LLMRateLimitError,
    MissingAPIKeyError,
    NotFoundError,
    PermissionDeniedError,
    ProfileCreationError,
    VoteStoreUnavailableError,
)
from .profile_service import ProfileService
from .routers import answers, ask, bots, comments, config, questions, tags, users, votes

# =============================================================================
# Configuration
# =============================================================================

TESTING = settings.testing

# Logging setup (configurable via environment variable)
logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
logger = logging.getLogger(__name__)

# =============================================================================
# Lifespan Event Handler
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan event handler for FastAPI application.
    Creates tables and seeds the bot profiles on startup.
    """
    init_db()
    try:
        with get_db_context() as db:
            _, created = ProfileService(db).initialize_bots()
        logger.info(f"✅ Bot profiles ready ({created} created)")
    except ProfileCreationError as e:
        logger.error(f"Bot profile seeding failed: {e}")

    yield  # Application runs here

    logger.info("Application shutting down")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="askless",
    description="Developer Q&A where a panel of bots answers every question",
    version="1.0.0",
    lifespan=lifespan
)


# Custom rate limit handler with Retry-After header
async def custom_rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """
    Custom handler for rate limit exceeded errors.
    Includes Retry-After header for better client handling.
    """
    detail = str(exc.detail).lower()
    retry_after = 60
    if 'hour' in detail:
        retry_after = 3600
    elif 'second' in detail:
        retry_after = 1

    return JSONResponse(
        status_code=429,
        content={
            "error": f"Rate limit exceeded. Please wait {retry_after} seconds before retrying.",
            "details": str(exc.detail),
            "retryAfterSeconds": retry_after,
        },
        headers={"Retry-After": str(retry_after)}
    )


# Rate limiting (disabled in test mode)
if not TESTING:
    app.state.limiter = Limiter(key_func=get_remote_address)
    logger.info("🚦 Rate limiting enabled")
else:
    app.state.limiter = Limiter(key_func=lambda: "test-client", enabled=False)
    logger.info("🚦 Rate limiting disabled (test mode)")
app.add_exception_handler(RateLimitExceeded, custom_rate_limit_handler)

# CORS
origins = settings.origin_list

if origins == ['*']:
    logger.warning(
        "⚠️  SECURITY WARNING: CORS is set to allow ALL origins (*). "
        "Set ASKLESS_ALLOWED_ORIGINS to specific domains in production."
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=origins != ['*'],
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request ID middleware
@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """
    Add unique request ID to each request for tracing.
    """
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id

    return response


# =============================================================================
# Error Handling
# =============================================================================

# Most specific class first
ERROR_STATUS = [
    (NotFoundError, 404),
    (PermissionDeniedError, 403),
    (AuthenticationRequiredError, 401),
    (MissingAPIKeyError, 401),
    (LLMAuthenticationError, 401),
    (LLMRateLimitError, 429),
    (LLMModelNotFoundError, 400),
    (VoteStoreUnavailableError, 503),
    (AllBotsFailedError, 500),
    (ProfileCreationError, 500),
]


def status_for(exc: AsklessError) -> int:
    for cls, code in ERROR_STATUS:
        if isinstance(exc, cls):
            return code
    return 500


@app.exception_handler(AsklessError)
async def askless_error_handler(request: Request, exc: AsklessError):
    code = status_for(exc)
    content = {"error": str(exc)}

    if isinstance(exc, LLMError):
        content["errorType"] = exc.error_type
        if exc.suggestions:
            content["suggestions"] = list(exc.suggestions)
    if isinstance(exc, AllBotsFailedError):
        content["details"] = {key: str(err) for key, err in exc.failures.items()}
    if isinstance(exc, ProfileCreationError) and exc.reason:
        content["details"] = exc.reason

    headers = None
    if isinstance(exc, LLMRateLimitError) and exc.retry_after:
        headers = {"Retry-After": str(exc.retry_after)}

    log = logger.error if code >= 500 else logger.warning
    log(f"{request.method} {request.url.path} -> {code}: {exc}")
    return JSONResponse(status_code=code, content=content, headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Report the first invalid field as a 400 with a readable message."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    message = first.get("msg", "Invalid request")
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    elif first.get("type") == "missing" and first.get("loc"):
        field = str(first["loc"][-1])
        message = f"{field[:1].upper()}{field[1:]} is required"

    return JSONResponse(
        status_code=400,
        content={"error": message, "details": [str(e.get("loc")) for e in errors]},
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# =============================================================================
# Mount Routers
# =============================================================================

app.include_router(ask.router)
app.include_router(questions.router)
app.include_router(answers.router)
app.include_router(comments.router)
app.include_router(tags.router)
app.include_router(votes.router)
app.include_router(bots.router)
app.include_router(users.router)
app.include_router(config.router)

# =============================================================================
# Info / Health
# =============================================================================


@app.get("/", tags=["health"])
async def root():
    return {
        "name": "askless",
        "version": app.version,
        "docs": "/docs",
        "health": "/health",
    }


@app.get("/health", tags=["health"])
async def health_check():
    """Liveness plus database connectivity."""
    return {
        "status": "ok",
        "timestamp": datetime.utcnow().isoformat(),
        "environment": settings.environment,
        "llmProvider": settings.llm_provider,
        **check_database_health(),
    }
