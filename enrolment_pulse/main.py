"""
FastAPI application entry point.

Enrolment Pulse - analytics over Aadhaar enrolment counts by date,
geography and age group.
"""
import logging

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from enrolment_pulse.config import settings
from enrolment_pulse.exceptions import EnrolmentPulseError
from enrolment_pulse.routers import analytics, chat, insights
from enrolment_pulse.schemas.common import HealthResponse, RefreshResponse
from enrolment_pulse.services.data_loader import EnrolmentDataStore, get_data_store

logger = logging.getLogger(__name__)

# Create FastAPI application
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="""
    **Enrolment Pulse API**

    Aggregates, trends, anomalies, forecasts and recommendations over
    Aadhaar enrolment records (date x state x district x pincode with
    counts for ages 0-5, 5-17 and 18+).

    ## Key Features

    * **Metrics**: Totals by age group and geography with date filters
    * **Trends**: Daily series, trend direction and weekly seasonality
    * **Anomaly Detection**: Z-score spikes and drops, coverage gaps
    * **Forecasting**: Exponential smoothing with confidence bands
    * **Insights**: Crisis zones, suggestions, alert rules, weekly report
    * **Chat**: Keyword query engine, optionally backed by Gemini
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    """Configure logging and optionally warm the dataset cache."""
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if settings.DATA_SOURCE == "database":
        from enrolment_pulse.database import init_db
        init_db()
        logger.info("Database initialized")

    if settings.PRELOAD_DATA:
        records = get_data_store().records()
        logger.info(f"Preloaded {len(records):,} enrolment records")


# Include routers with prefixes
app.include_router(
    analytics.router,
    prefix=f"{settings.API_V1_PREFIX}/analytics",
    tags=["Analytics"]
)
app.include_router(
    insights.router,
    prefix=f"{settings.API_V1_PREFIX}/insights",
    tags=["Insights"]
)
app.include_router(
    chat.router,
    prefix=f"{settings.API_V1_PREFIX}/chat",
    tags=["Chat"]
)


@app.get("/", tags=["Root"])
def root():
    """API root endpoint with basic information."""
    return {
        "message": "Enrolment Pulse API",
        "version": settings.VERSION,
        "docs": "/docs",
        "redoc": "/redoc",
        "data_source": settings.DATA_SOURCE,
        "endpoints": {
            "analytics": f"{settings.API_V1_PREFIX}/analytics",
            "insights": f"{settings.API_V1_PREFIX}/insights",
            "chat": f"{settings.API_V1_PREFIX}/chat",
            "health": f"{settings.API_V1_PREFIX}/health",
        }
    }


def database_status() -> str:
    from sqlalchemy import text
    from sqlalchemy.exc import SQLAlchemyError
    from enrolment_pulse.database import engine

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        return f"unhealthy: {e}"
    return "healthy"


@app.get(f"{settings.API_V1_PREFIX}/health", response_model=HealthResponse, tags=["Health"])
def health_check(store: EnrolmentDataStore = Depends(get_data_store)):
    """
    Health check endpoint.

    The database is only checked when it is the configured data source.
    """
    db_status = database_status() if settings.DATA_SOURCE == "database" else None
    dataset = store.status()

    healthy = db_status in (None, "healthy") and dataset["error_count"] == 0
    return {
        "status": "healthy" if healthy else "degraded",
        "version": settings.VERSION,
        "data_source": settings.DATA_SOURCE,
        "dataset": dataset,
        "database": db_status,
        "llm_enabled": settings.llm_enabled,
    }


@app.post(f"{settings.API_V1_PREFIX}/data/refresh", response_model=RefreshResponse, tags=["Metadata"])
def refresh_data(store: EnrolmentDataStore = Depends(get_data_store)):
    """Reload the dataset from its source and report row errors."""
    records = store.refresh()
    errors = store.load_errors
    return {
        "record_count": len(records),
        "error_count": len(errors),
        "errors": [e.to_dict() for e in errors[:20]],
        "dataset": store.status(),
    }


# Exception handlers
@app.exception_handler(EnrolmentPulseError)
async def domain_exception_handler(request, exc: EnrolmentPulseError):
    return JSONResponse(
        status_code=exc.status_code,
        content={**exc.to_dict(), "status_code": exc.status_code}
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc):
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.detail,
            "status_code": exc.status_code
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc):
    logger.exception(f"Unhandled error on {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc),
            "status_code": 500
        }
    )
