from fastapi import FastAPI, Depends, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text
from app.database import get_db
from app.core.config import settings
from app.core.errors import DeliveryServiceError, ErrorKind
from app.core.logging_config import logger
from app.schemas.common import Envelope, ErrorBody
from app.routers import delivery, optimization, dashboard

# Schema is managed with Alembic migrations (alembic upgrade head)

app = FastAPI(
    title="Delivery Route Optimization API",
    version="1.0.0",
    redirect_slashes=False  # Disable automatic redirects to prevent POST data loss
)

# Configure CORS for the mobile and web clients
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(status_code: int, kind: ErrorKind, message: str) -> JSONResponse:
    envelope = Envelope(success=False, error=ErrorBody(kind=kind, message=message))
    return JSONResponse(status_code=status_code, content=envelope.model_dump(mode="json"))


@app.exception_handler(DeliveryServiceError)
async def delivery_service_error_handler(request: Request, exc: DeliveryServiceError):
    """Map core errors to the response envelope with their machine-readable kind."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.kind.value}: {exc.message}")
    message = exc.message
    if not exc.public and not settings.expose_error_details:
        message = "Internal server error"
    return _error_response(exc.status_code, exc.kind, message)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report request body validation errors as invalid input."""
    errors = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", []) if part != "body")
        errors.append(f"{location}: {err.get('msg', 'Invalid value')}" if location else err.get("msg", "Invalid value"))
    return _error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        ErrorKind.INVALID_INPUT,
        " | ".join(errors) or "Invalid request"
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Answer unexpected failures with the error envelope instead of a plain-text 500."""
    logger.exception(f"{request.method} {request.url.path} failed unexpectedly: {exc}")
    message = str(exc) if settings.expose_error_details else "Internal server error"
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorKind.INTERNAL_ERROR, message)


# Include routers
app.include_router(optimization.router, prefix="/api/optimization", tags=["Optimization"])
app.include_router(delivery.router, prefix="/api/deliveries", tags=["Deliveries"])
app.include_router(dashboard.router, prefix="/api/dashboard", tags=["Dashboard"])


@app.get("/health")
async def health_check(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
        return {
            "status": "healthy",
            "database": "connected"
        }
    except Exception as e:
        logger.error(f"Health check failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service unhealthy"
        )
