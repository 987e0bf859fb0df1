"""
FastAPI application entry point for the UBL Converter API
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from ubl_converter.api.v1.api import api_router
from ubl_converter.core.config import settings
from ubl_converter.core.error_handler import error_handler
from ubl_converter.core.logging import audit_logger
from ubl_converter.middleware.logging import LoggingMiddleware
from ubl_converter.utils.error_responses import APIError

logger = logging.getLogger(__name__)

SERVICE_NAME = "ubl-converter-api"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    audit_logger.log_system_event(
        event_type="startup",
        description=f"{settings.PROJECT_NAME} {settings.VERSION} starting",
        additional_data={"xml_store_path": settings.XML_STORE_PATH, "port": settings.PORT}
    )
    yield
    audit_logger.log_system_event(event_type="shutdown", description="Server stopped")


def create_application() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="API for converting business documents into signed UBL 2.1 XML for SUNAT",
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    # Set up CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request logging with correlation IDs
    app.add_middleware(LoggingMiddleware)

    # Exception handlers
    app.add_exception_handler(APIError, error_handler.handle_api_error)
    app.add_exception_handler(RequestValidationError, error_handler.handle_request_validation_error)
    app.add_exception_handler(StarletteHTTPException, error_handler.handle_http_exception)
    app.add_exception_handler(Exception, error_handler.handle_exception)

    # Include API router
    app.include_router(api_router, prefix=settings.API_V1_STR)

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": settings.VERSION,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

    @app.get("/ping")
    async def ping():
        """Liveness check"""
        return {"message": "pong"}

    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("ubl_converter.main:app", host="0.0.0.0", port=settings.PORT)
