"""
Request and response schemas for the conversion API.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from .documents import BusinessDocument, CamelModel


class ValidationErrorDetail(CamelModel):
    """Field-level validation error."""
    field: str
    expected: str
    received: str
    rule: str
    message: str


class ConvertRequest(CamelModel):
    """Conversion request: document plus base64-encoded PEM key material."""
    document: BusinessDocument
    certificate: str = Field(..., description="Base64 of the PEM certificate")
    private_key: str = Field(..., description="Base64 of the PEM private key (PKCS#1 or PKCS#8)")


class APIResponse(CamelModel):
    """Response envelope shared by every endpoint."""
    status: str
    correlation_id: Optional[str] = None
    document_id: Optional[str] = None
    xml_path: Optional[str] = None
    xml_hash: Optional[str] = None
    processed_at: datetime
    duration: Optional[int] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    validation_errors: Optional[List[ValidationErrorDetail]] = None
    data: Optional[Dict[str, Any]] = None
    message: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        """Serialize with camelCase keys, dropping empty fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
