"""
Document conversion endpoints
"""
import base64
import binascii
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request, Response

from ubl_converter.core.config import settings
from ubl_converter.core.logging import audit_logger
from ubl_converter.schemas.documents import BusinessDocument
from ubl_converter.schemas.enums import ResponseStatus
from ubl_converter.schemas.responses import APIResponse, ConvertRequest
from ubl_converter.services.conversion_service import ConversionService
from ubl_converter.utils.error_responses import InvalidRequest, ValidationFailed
from ubl_converter.utils.xml_generator import UBLTreeBuilder

router = APIRouter(tags=["Documents"])


def get_conversion_service() -> ConversionService:
    """Conversion service writing to the configured XML store"""
    return ConversionService(
        xml_store_path=settings.XML_STORE_PATH,
        builder=UBLTreeBuilder(issue_time=settings.ISSUE_TIME)
    )


def _decode_pem(value: str, error_code: str, field: str, label: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        raise InvalidRequest(f"Invalid {label} format", error_code=error_code, field=field)


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", None) or audit_logger.correlation_id


@router.post("/convert")
def convert_document(
    payload: ConvertRequest,
    request: Request,
    service: ConversionService = Depends(get_conversion_service)
):
    """
    Convert a business document to signed UBL 2.1 XML

    Certificate and private key are base64 encoded PEM. The signed XML is
    stored and packaged as a ZIP archive.
    """
    cert_pem = _decode_pem(payload.certificate, "ERR_INVALID_CERTIFICATE", "certificate", "certificate")
    key_pem = _decode_pem(payload.private_key, "ERR_INVALID_PRIVATE_KEY", "privateKey", "private key")

    result = service.process_document(payload.document, cert_pem, key_pem)

    return APIResponse(
        status=ResponseStatus.SUCCESS.value,
        correlation_id=_correlation_id(request) or result.correlation_id,
        document_id=result.document_id,
        xml_path=result.zip_path,
        xml_hash=result.xml_hash,
        processed_at=datetime.now(timezone.utc),
        duration=result.duration_ms,
        data={
            "fileName": result.file_name,
            "fileSize": result.file_size,
            "zipSize": result.zip_size
        },
        message="Document converted and signed successfully"
    ).to_json()


@router.post("/validate")
def validate_document(
    document: BusinessDocument,
    request: Request,
    service: ConversionService = Depends(get_conversion_service)
):
    """Validate a business document without converting it"""
    validation_errors = service.validate_document(document)
    if validation_errors:
        raise ValidationFailed(validation_errors, message="Document validation failed")

    return APIResponse(
        status=ResponseStatus.SUCCESS.value,
        correlation_id=_correlation_id(request),
        processed_at=datetime.now(timezone.utc),
        data={"message": "Document validation passed"}
    ).to_json()


@router.get("/status/{correlation_id}")
async def get_document_status(correlation_id: str):
    """Get the processing status of a conversion"""
    return APIResponse(
        status=ResponseStatus.SUCCESS.value,
        correlation_id=correlation_id,
        processed_at=datetime.now(timezone.utc),
        data={"message": "Document processing completed successfully"}
    ).to_json()


@router.get("/xml/{filename}")
def get_xml_content(
    filename: str,
    service: ConversionService = Depends(get_conversion_service)
):
    """Download a stored signed XML file"""
    content = service.read_xml(filename)
    return Response(
        content=content,
        media_type="application/xml",
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )
