"""
Error handling for the UBL Converter API
Turns every exception into the standard response envelope
"""
import logging
import traceback
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ubl_converter.core.logging import audit_logger
from ubl_converter.schemas.enums import ResponseStatus
from ubl_converter.schemas.responses import APIResponse, ValidationErrorDetail
from ubl_converter.utils.error_responses import APIError, ValidationFailed

logger = logging.getLogger(__name__)


class ErrorHandler:
    """
    Builds error envelopes and logs the failure under the request's
    correlation id
    """

    def __init__(self):
        self.error_counts = {}

    def _correlation_id(self, request: Request) -> Optional[str]:
        return getattr(request.state, "correlation_id", None) or audit_logger.correlation_id

    def _create_error_response(
        self,
        request: Request,
        status_code: int,
        error_code: str,
        message: str,
        validation_errors: Optional[List[ValidationErrorDetail]] = None
    ) -> JSONResponse:
        """Create the error envelope"""
        self.error_counts[error_code] = self.error_counts.get(error_code, 0) + 1

        envelope = APIResponse(
            status=ResponseStatus.ERROR.value,
            correlation_id=self._correlation_id(request),
            processed_at=datetime.now(timezone.utc),
            error_code=error_code,
            error_message=message,
            validation_errors=validation_errors or None
        )
        return JSONResponse(status_code=status_code, content=envelope.to_json())

    async def handle_api_error(self, request: Request, exc: APIError) -> JSONResponse:
        """Handle errors raised by the conversion pipeline"""
        audit_logger.log_document_error(
            operation=f"{request.method} {request.url.path}",
            error_code=exc.error_code,
            message=exc.message,
            stage=exc.stage.value if exc.stage else None,
            severity=exc.severity.value,
            context=exc.context or None
        )

        validation_errors = exc.validation_errors if isinstance(exc, ValidationFailed) else None
        return self._create_error_response(
            request,
            status_code=exc.status_code,
            error_code=exc.error_code,
            message=exc.message,
            validation_errors=validation_errors
        )

    async def handle_request_validation_error(self, request: Request, exc: RequestValidationError) -> JSONResponse:
        """Handle malformed request bodies"""
        validation_errors = []
        for error in exc.errors():
            field_path = ".".join(str(loc) for loc in error["loc"] if loc != "body")
            validation_errors.append(ValidationErrorDetail(
                field=field_path or "body",
                expected=error["type"],
                received=str(error.get("input"))[:200],
                rule="request_validation",
                message=error["msg"]
            ))

        logger.warning(f"Request validation failed with {len(validation_errors)} errors")
        return self._create_error_response(
            request,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="ERR_INVALID_REQUEST",
            message="Invalid request",
            validation_errors=validation_errors
        )

    async def handle_http_exception(self, request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Handle routing and HTTP errors"""
        error_codes = {
            status.HTTP_404_NOT_FOUND: "ERR_NOT_FOUND",
            status.HTTP_405_METHOD_NOT_ALLOWED: "ERR_METHOD_NOT_ALLOWED",
        }
        return self._create_error_response(
            request,
            status_code=exc.status_code,
            error_code=error_codes.get(exc.status_code, f"ERR_HTTP_{exc.status_code}"),
            message=str(exc.detail)
        )

    async def handle_exception(self, request: Request, exc: Exception) -> JSONResponse:
        """Handle any unexpected exception"""
        logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}")
        audit_logger.log_system_event(
            event_type="unhandled_exception",
            description=str(exc),
            severity="error",
            additional_data={
                "exception_type": type(exc).__name__,
                "traceback": traceback.format_exc()
            }
        )
        return self._create_error_response(
            request,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="INTERNAL_SERVER_ERROR",
            message="Internal server error"
        )


error_handler = ErrorHandler()
