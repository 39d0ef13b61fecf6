from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from datetime import datetime
import logging
import time

from .core.config import settings
from .core.exceptions import (
    ApiKeyNotConfiguredError,
    CredentialCryptoError,
    ExternalServiceError,
    InvalidFilenameError,
    MalformedResponseError,
    NotFoundError,
    RecallError,
)
from .db.database import init_db
from .routes import actions, meetings, settings as settings_routes

# Logging configuration
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler()
    ]
)
logger = logging.getLogger("recall-context")

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Recall Context API")
    init_db()
    yield
    logger.info("Stopping Recall Context API")

app = FastAPI(
    title=settings.APP_NAME,
    description="""
    Meeting transcript analysis API.

    - Upload meeting transcripts named `YYYY-MM-DD_HHmm_MeetingType_SeriesName.txt`
    - Automatic analysis with Claude: summary, key points, decisions, participants, action items
    - Follow-up of action items across meetings
    - Encrypted storage of the Anthropic API key
    """,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Request timing
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)

    # Slow requests (more than one second)
    if process_time > 1.0:
        logger.warning(f"Slow request ({process_time:.2f}s): {request.method} {request.url.path}")

    return response

# ---------------------------------------------------------------------------
# Error handling
# ---------------------------------------------------------------------------

GENERIC_ERROR_MESSAGE = "An unexpected error occurred"

def error_response(status_code: int, code: str, message: str, details=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "code": code,
            "message": message,
            "status": status_code,
            "timestamp": datetime.now().isoformat(),
            "details": details or {},
        },
    )

def external_service_status(exc: ExternalServiceError) -> int:
    if exc.kind == ExternalServiceError.UNAUTHORIZED:
        return status.HTTP_401_UNAUTHORIZED
    if exc.kind == ExternalServiceError.RATE_LIMITED:
        return status.HTTP_429_TOO_MANY_REQUESTS
    if exc.kind == ExternalServiceError.BAD_REQUEST:
        return status.HTTP_400_BAD_REQUEST
    return status.HTTP_502_BAD_GATEWAY

@app.exception_handler(RecallError)
async def recall_exception_handler(request: Request, exc: RecallError):
    if isinstance(exc, InvalidFilenameError):
        return error_response(400, "INVALID_FILENAME", exc.message, exc.details)
    if isinstance(exc, ApiKeyNotConfiguredError):
        return error_response(401, "API_KEY_NOT_CONFIGURED", exc.message, exc.details)
    if isinstance(exc, ExternalServiceError):
        return error_response(external_service_status(exc), "AI_SERVICE_ERROR", exc.message, exc.details)
    if isinstance(exc, MalformedResponseError):
        return error_response(500, "MALFORMED_AI_RESPONSE", exc.message, exc.details)
    if isinstance(exc, CredentialCryptoError):
        logger.error(f"Credential error on {request.url.path}: {exc.message}")
        return error_response(500, "CREDENTIAL_ERROR", "Stored API key could not be read. Please save it again.")
    if isinstance(exc, NotFoundError):
        return error_response(404, "NOT_FOUND", exc.message, exc.details)

    logger.error(f"Processing failed on {request.url.path}: {exc.message}")
    return error_response(500, "PROCESSING_FAILED", "Failed to process transcript", exc.details)

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    fields = {}
    for err in exc.errors():
        field = ".".join(str(p) for p in err["loc"] if p != "body")
        fields[field or "body"] = err["msg"]
    return error_response(400, "VALIDATION_ERROR", "Request validation failed", {"fields": fields})

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, "HTTP_ERROR", str(exc.detail))

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}")
    return error_response(500, "INTERNAL_ERROR", GENERIC_ERROR_MESSAGE)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/", tags=["Status"])
def read_root():
    """Basic information about the API."""
    return {
        "message": settings.APP_NAME,
        "status": "online",
        "version": "1.0.0",
        "documentation": "/docs",
        "api_base_url": settings.API_V1_STR
    }

@app.get("/health", tags=["Status"])
async def health_check():
    return {"status": "healthy", "timestamp": time.time()}

app.include_router(meetings.router, prefix=settings.API_V1_STR)
app.include_router(actions.router, prefix=settings.API_V1_STR)
app.include_router(settings_routes.router, prefix=settings.API_V1_STR)
