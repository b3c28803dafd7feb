import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from firebase_admin.exceptions import FirebaseError
from google.api_core.exceptions import GoogleAPICallError

from .config import CORS_ORIGINS
from .domain.bookings.router import router as bookings_router
from .domain.catalog.router import router as catalog_router
from .domain.notifications.router import router as notifications_router
from .domain.partners.router import router as partners_router
from .domain.reviews.router import router as reviews_router
from .domain.users.router import router as users_router
from .errors import KIND_STATUS_CODES, AppError, InvalidRequestError, log_error
from .routes.geocoding import router as geocoding_router
from .routes.upload import router as upload_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("botocore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        from .rate_limiter import get_redis_client

        if get_redis_client() is not None:
            logger.info("Redis connection established")
        else:
            logger.info("REDIS_URL not set - rate limits are per process")
    except Exception as e:
        logger.warning(f"Redis connection failed - rate limited routes will return 503: {e}")

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="Home Services API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Domain errors carry their own kind, code and user-facing message"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} - {exc.kind.value}/{exc.code}: {exc}")
    else:
        logger.warning(f"{request.method} {request.url.path} - {exc.kind.value}/{exc.code}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.user_message, "code": exc.code, "kind": exc.kind.value},
    )


@app.exception_handler(FirebaseError)
@app.exception_handler(GoogleAPICallError)
async def backend_error_handler(request: Request, exc: Exception):
    """Unhandled Firebase / Firestore failures, classified like domain errors"""
    classified = log_error(f"{request.method} {request.url.path}", exc)
    return JSONResponse(
        status_code=KIND_STATUS_CODES[classified.kind],
        content={
            "detail": classified.user_message,
            "code": classified.code,
            "kind": classified.kind.value,
        },
    )


@app.exception_handler(InvalidRequestError)
async def invalid_request_handler(request: Request, exc: InvalidRequestError):
    logger.warning(f"Invalid request for {request.url.path}: {exc}")
    content = {"detail": str(exc)}
    if exc.field:
        content["field"] = exc.field
    return JSONResponse(status_code=400, content=content)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Convert 422 validation errors from HTTPBearer to 401 authentication errors
    when the issue is with the Authorization header
    """
    for error in exc.errors():
        if error.get("loc") and "authorization" in str(error.get("loc")).lower():
            logger.warning(
                f"Authentication failed for {request.url.path}: Missing or invalid Authorization header"
            )
            return JSONResponse(
                status_code=401,
                content={
                    "detail": "Not authenticated. Please provide a valid Bearer token in the Authorization header."
                },
            )

    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=422, content={"detail": jsonable_errors(exc)})


def jsonable_errors(exc: RequestValidationError) -> list:
    # pydantic puts the raised exception object in ctx, which is not JSON serializable
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {k: str(v) for k, v in error["ctx"].items()}
        errors.append(error)
    return errors


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
        raise
    elapsed_ms = (time.time() - start) * 1000
    logger.info(f"{request.method} {request.url.path} - {response.status_code} ({elapsed_ms:.0f}ms)")
    return response


logger.info(f"CORS allowed origins: {CORS_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

app.include_router(catalog_router)
app.include_router(partners_router)
app.include_router(bookings_router)
app.include_router(reviews_router)
app.include_router(users_router)
app.include_router(notifications_router)
app.include_router(upload_router)
app.include_router(geocoding_router)

# Routes


@app.get("/")
def root():
    return {"message": "Home Services API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}
