"""
Audit logging for the UBL Converter API
Provides structured logging with correlation IDs for every conversion
"""
import json
import logging
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from ubl_converter.core.config import settings

# Correlation id of the request being processed in the current context
_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


class LogLevel(str, Enum):
    """Log levels for structured logging"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogCategory(str, Enum):
    """Log categories for filtering and analysis"""
    API_REQUEST = "api_request"
    API_RESPONSE = "api_response"
    DOCUMENT_LIFECYCLE = "document_lifecycle"
    VALIDATION = "validation"
    SIGNATURE = "signature"
    STORAGE = "storage"
    PACKAGING = "packaging"
    SYSTEM = "system"


SENSITIVE_KEYS = {
    "password", "token", "secret", "certificate",
    "private_key", "privatekey", "signature_value", "credential"
}


class AuditLogger:
    """
    Structured logger with per-context correlation tracking
    """

    def __init__(self):
        self.logger = logging.getLogger("ubl_converter_api")
        self._setup_logger()

    def _setup_logger(self):
        """Setup structured logging configuration"""
        # Remove existing handlers
        for handler in self.logger.handlers[:]:
            self.logger.removeHandler(handler)

        console_handler = logging.StreamHandler()
        console_handler.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

        # Set formatter based on configuration
        if settings.LOG_FORMAT == "json":
            formatter = JsonFormatter()
        else:
            formatter = StructuredFormatter()

        console_handler.setFormatter(formatter)
        self.logger.addHandler(console_handler)
        self.logger.setLevel(logging.DEBUG)

    @property
    def correlation_id(self) -> Optional[str]:
        return _correlation_id.get()

    def set_correlation_id(self, correlation_id: Optional[str]) -> Token:
        """Set correlation ID for the current context"""
        return _correlation_id.set(correlation_id)

    def reset_correlation_id(self, token: Token):
        """Restore the correlation ID that was active before set_correlation_id"""
        _correlation_id.reset(token)

    def generate_correlation_id(self) -> str:
        """Generate new correlation ID and make it current"""
        correlation_id = str(uuid.uuid4())
        self.set_correlation_id(correlation_id)
        return correlation_id

    def log_structured(
        self,
        level: LogLevel,
        category: LogCategory,
        message: str,
        **kwargs
    ):
        """
        Log structured message with metadata

        Args:
            level: Log level
            category: Log category
            message: Log message
            **kwargs: Additional metadata
        """
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level.value,
            "category": category.value,
            "message": message,
            "correlation_id": self.correlation_id,
            **self._sanitize_sensitive_data(kwargs)
        }

        # Remove None values
        log_data = {k: v for k, v in log_data.items() if v is not None}

        log_level = getattr(logging, level.value)
        self.logger.log(log_level, json.dumps(log_data, default=str))

    def log_api_request(
        self,
        method: str,
        path: str,
        query_params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        body_size: Optional[int] = None,
        client_ip: Optional[str] = None,
        user_agent: Optional[str] = None
    ):
        """Log API request details"""
        self.log_structured(
            level=LogLevel.INFO,
            category=LogCategory.API_REQUEST,
            message=f"{method} {path}",
            method=method,
            path=path,
            query_params=query_params,
            headers=self._sanitize_headers(headers) if headers else None,
            body_size=body_size,
            client_ip=client_ip,
            user_agent=user_agent
        )

    def log_api_response(
        self,
        method: str,
        path: str,
        status_code: int,
        response_size: Optional[int] = None,
        duration_ms: Optional[float] = None,
        error_code: Optional[str] = None
    ):
        """Log API response details"""
        level = LogLevel.ERROR if status_code >= 500 else LogLevel.WARNING if status_code >= 400 else LogLevel.INFO

        self.log_structured(
            level=level,
            category=LogCategory.API_RESPONSE,
            message=f"{method} {path} -> {status_code}",
            method=method,
            path=path,
            status_code=status_code,
            response_size=response_size,
            duration_ms=duration_ms,
            error_code=error_code
        )

    def log_document_operation(
        self,
        operation: str,
        message: str,
        document_type: Optional[str] = None,
        document_id: Optional[str] = None,
        category: LogCategory = LogCategory.DOCUMENT_LIFECYCLE,
        level: LogLevel = LogLevel.INFO,
        **kwargs
    ):
        """Log a step of a document conversion"""
        self.log_structured(
            level=level,
            category=category,
            message=message,
            operation=operation,
            document_type=document_type,
            document_id=document_id,
            **kwargs
        )

    def log_document_error(
        self,
        operation: str,
        error_code: str,
        message: str,
        document_type: Optional[str] = None,
        document_id: Optional[str] = None,
        stage: Optional[str] = None,
        **kwargs
    ):
        """Log a failed conversion step with its error code"""
        self.log_structured(
            level=LogLevel.ERROR,
            category=LogCategory.DOCUMENT_LIFECYCLE,
            message=message,
            operation=operation,
            error_code=error_code,
            document_type=document_type,
            document_id=document_id,
            stage=stage,
            **kwargs
        )

    def log_system_event(
        self,
        event_type: str,
        description: str,
        severity: str = "info",
        additional_data: Optional[Dict[str, Any]] = None
    ):
        """Log system events"""
        level = LogLevel.CRITICAL if severity == "critical" else LogLevel.ERROR if severity == "error" else LogLevel.WARNING if severity == "warning" else LogLevel.INFO

        self.log_structured(
            level=level,
            category=LogCategory.SYSTEM,
            message=f"System event: {event_type}",
            event_type=event_type,
            description=description,
            severity=severity,
            additional_data=additional_data
        )

    def _sanitize_headers(self, headers: Dict[str, str]) -> Dict[str, str]:
        """Sanitize headers to remove sensitive information"""
        sensitive_headers = {"authorization", "x-api-key", "cookie", "x-auth-token"}
        return {
            key: "[REDACTED]" if key.lower() in sensitive_headers else value
            for key, value in headers.items()
        }

    def _sanitize_sensitive_data(self, data: Any) -> Any:
        """Redact key material and credentials from log metadata"""
        if not isinstance(data, dict):
            return data

        sanitized = {}
        for key, value in data.items():
            if any(sensitive_key in key.lower() for sensitive_key in SENSITIVE_KEYS):
                sanitized[key] = "[REDACTED]"
            elif isinstance(value, dict):
                sanitized[key] = self._sanitize_sensitive_data(value)
            else:
                sanitized[key] = value

        return sanitized


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record):
        message = record.getMessage()
        if message.startswith('{') and message.endswith('}'):
            # Already JSON formatted
            return message

        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": message,
            "correlation_id": _correlation_id.get(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps({k: v for k, v in log_data.items() if v is not None}, default=str)


class StructuredFormatter(logging.Formatter):
    """Structured text formatter for human-readable logs"""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )


@contextmanager
def log_operation_context(
    operation_name: str,
    category: LogCategory = LogCategory.SYSTEM,
    additional_data: Optional[Dict[str, Any]] = None
):
    """Context manager for logging operations with timing"""
    start_time = time.time()
    correlation_id = audit_logger.correlation_id or audit_logger.generate_correlation_id()

    audit_logger.log_structured(
        level=LogLevel.INFO,
        category=category,
        message=f"Starting operation: {operation_name}",
        operation=operation_name,
        additional_data=additional_data
    )

    try:
        yield correlation_id
        duration_ms = (time.time() - start_time) * 1000
        audit_logger.log_structured(
            level=LogLevel.INFO,
            category=category,
            message=f"Completed operation: {operation_name}",
            operation=operation_name,
            duration_ms=duration_ms,
            success=True
        )
    except Exception as e:
        duration_ms = (time.time() - start_time) * 1000
        audit_logger.log_structured(
            level=LogLevel.ERROR,
            category=category,
            message=f"Failed operation: {operation_name}",
            operation=operation_name,
            duration_ms=duration_ms,
            success=False,
            error_message=str(e)
        )
        raise


# Global audit logger instance
audit_logger = AuditLogger()
