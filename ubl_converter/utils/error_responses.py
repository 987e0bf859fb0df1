"""
Custom error classes for the UBL Converter API.
Every failure of a conversion maps to one of these, carrying the pipeline
stage and enough context to be actionable.
"""
from typing import Any, Dict, List, Optional
from enum import Enum


class ErrorSeverity(str, Enum):
    """Error severity levels for prioritization and alerting"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class PipelineStage(str, Enum):
    """Pipeline stage where an error was raised"""
    VALIDATION = "validation"
    BUILD = "build"
    SERIALIZE = "serialize"
    SIGN = "sign"
    EMBED = "embed"
    STORAGE = "storage"
    PACKAGING = "packaging"


class APIError(Exception):
    """
    Base API error class with structured error information
    """
    status_code: int = 500

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        suggestions: Optional[List[str]] = None,
        field_errors: Optional[Dict[str, str]] = None,
        is_retryable: bool = False,
        stage: Optional[PipelineStage] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.severity = severity
        self.suggestions = suggestions or []
        self.field_errors = field_errors or {}
        self.is_retryable = is_retryable
        self.stage = stage
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        """Structured representation used in logs."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "severity": self.severity.value,
            "stage": self.stage.value if self.stage else None,
            "field_errors": self.field_errors,
            "context": self.context,
        }


class ValidationFailed(APIError):
    """Raised when the business validator reports field-level errors"""
    status_code = 400

    def __init__(self, validation_errors: list, message: str = "Documento no válido", **kwargs):
        self.validation_errors = list(validation_errors)
        super().__init__(
            message=message,
            error_code="VALIDATION_FAILED",
            severity=ErrorSeverity.HIGH,
            field_errors={error.field: error.message for error in self.validation_errors},
            suggestions=[
                "Review the reported fields",
                "Check RUC, currency, dates and totals"
            ],
            stage=PipelineStage.VALIDATION,
            **kwargs
        )


class UnsupportedDocumentType(APIError):
    """Raised when the document type code has no UBL mapping"""
    status_code = 422

    def __init__(self, document_type: str, **kwargs):
        super().__init__(
            message=f"Unsupported document type: {document_type}",
            error_code="UNSUPPORTED_DOCUMENT_TYPE",
            severity=ErrorSeverity.HIGH,
            field_errors={"type": "Must be one of 01, 03, 07, 08"},
            stage=PipelineStage.BUILD,
            context={"document_type": document_type},
            **kwargs
        )


class MissingReference(APIError):
    """Raised when a credit or debit note has no referenced document"""
    status_code = 422

    def __init__(self, document_type: str, **kwargs):
        super().__init__(
            message=f"Document type {document_type} requires a reference document",
            error_code="MISSING_REFERENCE",
            severity=ErrorSeverity.HIGH,
            field_errors={"reference": "Required for credit and debit notes"},
            stage=PipelineStage.BUILD,
            context={"document_type": document_type},
            **kwargs
        )


class SerializationError(APIError):
    """Raised when a value cannot be represented in the XML output"""
    status_code = 422

    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", {})
        if path:
            context["path"] = path
        super().__init__(
            message=message,
            error_code="SERIALIZATION_FAILED",
            severity=ErrorSeverity.HIGH,
            stage=PipelineStage.SERIALIZE,
            context=context,
            **kwargs
        )


class UnsupportedKeyFormat(APIError):
    """Raised when the private key or certificate cannot be decoded"""
    status_code = 422

    def __init__(self, message: str, material: str = "private_key", **kwargs):
        super().__init__(
            message=message,
            error_code="UNSUPPORTED_KEY_FORMAT",
            severity=ErrorSeverity.HIGH,
            suggestions=[
                "Provide a PEM certificate",
                "Provide the private key as PKCS#1 (RSA PRIVATE KEY) or PKCS#8 (PRIVATE KEY) PEM"
            ],
            stage=PipelineStage.SIGN,
            context={"material": material},
            **kwargs
        )


class UnsupportedKeyAlgorithm(APIError):
    """Raised when the private key is not an RSA key"""
    status_code = 422

    def __init__(self, algorithm: str, **kwargs):
        super().__init__(
            message=f"Private key must be RSA, got {algorithm}",
            error_code="UNSUPPORTED_KEY_ALGORITHM",
            severity=ErrorSeverity.HIGH,
            stage=PipelineStage.SIGN,
            context={"algorithm": algorithm},
            **kwargs
        )


class SigningFailed(APIError):
    """Raised when the digest or signature cannot be produced"""
    status_code = 500

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message=message,
            error_code="SIGNATURE_FAILED",
            severity=ErrorSeverity.CRITICAL,
            stage=PipelineStage.SIGN,
            **kwargs
        )


class InjectionPointNotFound(APIError):
    """Raised when the signature container anchor cannot be located"""
    status_code = 500

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message=message,
            error_code="INJECTION_POINT_NOT_FOUND",
            severity=ErrorSeverity.CRITICAL,
            stage=PipelineStage.EMBED,
            **kwargs
        )


class StorageFailed(APIError):
    """Raised when the signed XML cannot be written"""
    status_code = 500

    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", {})
        if path:
            context["path"] = path
        super().__init__(
            message=message,
            error_code="SAVE_FAILED",
            severity=ErrorSeverity.HIGH,
            is_retryable=True,
            stage=PipelineStage.STORAGE,
            context=context,
            **kwargs
        )


class PackagingFailed(APIError):
    """Raised when the ZIP archive cannot be created"""
    status_code = 500

    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", {})
        if path:
            context["path"] = path
        super().__init__(
            message=message,
            error_code="ZIP_FAILED",
            severity=ErrorSeverity.HIGH,
            is_retryable=True,
            stage=PipelineStage.PACKAGING,
            context=context,
            **kwargs
        )


class InvalidRequest(APIError):
    """Raised when request data cannot be decoded before reaching the pipeline"""
    status_code = 400

    def __init__(self, message: str, error_code: str = "ERR_INVALID_REQUEST", field: Optional[str] = None, **kwargs):
        super().__init__(
            message=message,
            error_code=error_code,
            severity=ErrorSeverity.MEDIUM,
            field_errors={field: message} if field else None,
            **kwargs
        )


class XMLFileNotFound(APIError):
    """Raised when a stored XML file does not exist"""
    status_code = 404

    def __init__(self, filename: str, **kwargs):
        super().__init__(
            message=f"XML file not found: {filename}",
            error_code="ERR_FILE_NOT_FOUND",
            severity=ErrorSeverity.LOW,
            stage=PipelineStage.STORAGE,
            context={"filename": filename},
            **kwargs
        )
