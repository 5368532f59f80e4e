from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from realty_api.config import get_settings
from realty_api.errors import ApiError, validation_error_details
from realty_api.routers import dashboard
from realty_api.routers import listings
from realty_api.store import ListingStore
import logging
import sys

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

# Set logging levels for specific loggers
logging.getLogger("uvicorn").setLevel(logging.INFO)
logging.getLogger("fastapi").setLevel(logging.INFO)
logging.getLogger("httpx").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

# Define API tags metadata
tags_metadata = [
    {
        "name": "dashboard",
        "description": "Aggregate market analytics: prices, mortgages, trends and listing lifecycle.",
    },
    {
        "name": "listings",
        "description": "Create, read, update, delete and search listing records.",
    },
]

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting up %s (%s)", settings.PROJECT_NAME, settings.ENVIRONMENT)
    store = ListingStore(settings)
    await store.connect()
    app.state.store = store
    yield
    # Shutdown
    await store.close()
    logger.info("Shut down %s", settings.PROJECT_NAME)

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="""
    The Real Estate Listings Dashboard API serves market analytics computed from listing
    and assumable mortgage records, plus basic listing management.

    ## Key Features

    * **Dashboard**: Price distributions, mortgage statistics, creation trends and lifecycle metrics
    * **Listings**: Create, read, update, delete and search listings
    * **Recent Listings**: The newest listings with a compact field set
    """,
    openapi_tags=tags_metadata,
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"]
)

@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    if exc.status_code >= 500:
        logger.error(
            "Request failed",
            extra={"path": request.url.path, "method": request.method, "error": exc.error}
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    error_details = validation_error_details(exc)

    logger.warning(
        "Validation error",
        extra={
            "path": request.url.path,
            "method": request.method,
            "errors": error_details
        }
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "Validation error",
            "details": error_details
        }
    )

@app.get("/health", tags=["health"])
async def health():
    return {"status": "ok", "environment": settings.ENVIRONMENT}

# Include routers
app.include_router(dashboard.router, prefix=settings.API_PREFIX)
app.include_router(listings.router, prefix=settings.API_PREFIX)
