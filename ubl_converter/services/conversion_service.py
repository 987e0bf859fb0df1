"""
Conversion service for SUNAT electronic documents.
Runs the validate, build, serialize, sign, store and package workflow.
"""
import logging
import os
import time
from dataclasses import dataclass
from typing import List, Optional, Union

from ubl_converter.core.logging import LogCategory, audit_logger, log_operation_context
from ubl_converter.schemas.documents import BusinessDocument
from ubl_converter.schemas.responses import ValidationErrorDetail
from ubl_converter.utils.business_validators import BusinessValidator
from ubl_converter.utils.error_responses import (
    APIError,
    InvalidRequest,
    StorageFailed,
    ValidationFailed,
    XMLFileNotFound,
)
from ubl_converter.utils.packaging import zip_xml_file
from ubl_converter.utils.xml_generator import UBLTreeBuilder
from ubl_converter.utils.xml_serializer import serialize_tree
from ubl_converter.utils.xml_signature import KeyMaterial, SignatureEngine, SignedDocument, load_key_material

logger = logging.getLogger(__name__)


def _check_file_name(filename: str) -> None:
    """Accept only a plain .xml name inside the store directory."""
    if not filename.endswith(".xml") or os.path.basename(filename) != filename or filename.startswith("."):
        raise InvalidRequest("Invalid filename format", error_code="ERR_INVALID_FILENAME", field="filename")


@dataclass(frozen=True)
class ConversionResult:
    """Outcome of a successful conversion."""
    correlation_id: str
    document_id: str
    file_name: str
    xml_path: str
    zip_path: str
    xml_hash: str
    file_size: int
    zip_size: int
    duration_ms: int
    signed: SignedDocument


class ConversionService:
    """
    Service for converting business documents to signed UBL XML.
    Only the XML output directory is shared between calls.
    """

    def __init__(
        self,
        xml_store_path: str,
        builder: Optional[UBLTreeBuilder] = None,
        engine: Optional[SignatureEngine] = None,
        validator: Optional[BusinessValidator] = None
    ):
        self.xml_store_path = xml_store_path
        self.builder = builder or UBLTreeBuilder()
        self.engine = engine or SignatureEngine()
        self.validator = validator or BusinessValidator()

    def validate_document(self, document: BusinessDocument) -> List[ValidationErrorDetail]:
        """Run the business validator on a document."""
        return self.validator.validate(document)

    def convert_to_signed_xml(self, document: BusinessDocument, key_material: KeyMaterial) -> SignedDocument:
        """
        Build, serialize and sign a document without touching the filesystem.

        Raises:
            UnsupportedDocumentType: If the type code has no UBL mapping
            MissingReference: If a note has no reference
            SerializationError: If a value cannot be written to XML
            InjectionPointNotFound: If the signature cannot be placed
            SigningFailed: If signing fails
        """
        root = self.builder.build(document)
        xml_bytes = serialize_tree(root)
        return self.engine.sign(xml_bytes, key_material)

    def process_document(
        self,
        document: BusinessDocument,
        cert_pem: Union[str, bytes],
        key_pem: Union[str, bytes]
    ) -> ConversionResult:
        """
        Convert a document and store the signed XML with its ZIP package.

        Args:
            document: Business document to convert
            cert_pem: PEM certificate
            key_pem: PEM private key (PKCS#1 or PKCS#8)

        Returns:
            Conversion result with paths, hash and sizes

        Raises:
            APIError: Subclass naming the failed stage
        """
        start_time = time.time()
        correlation_id = audit_logger.correlation_id or audit_logger.generate_correlation_id()
        document_id = document.file_stem

        audit_logger.log_document_operation(
            operation="convert",
            message="Starting document conversion",
            document_type=document.type,
            document_id=document_id
        )

        try:
            validation_errors = self.validate_document(document)
            if validation_errors:
                audit_logger.log_document_operation(
                    operation="validate",
                    message=f"Document validation failed with {len(validation_errors)} errors",
                    document_type=document.type,
                    document_id=document_id,
                    category=LogCategory.VALIDATION,
                    validation_rules=[error.rule for error in validation_errors]
                )
                raise ValidationFailed(validation_errors)

            key_material = load_key_material(cert_pem, key_pem)
            signed = self.convert_to_signed_xml(document, key_material)
            audit_logger.log_document_operation(
                operation="sign",
                message="Document signed",
                document_type=document.type,
                document_id=document_id,
                category=LogCategory.SIGNATURE,
                key_format=key_material.key_format
            )

            file_name = f"{document_id}.xml"
            xml_path = self._store(file_name, signed.xml)
            with log_operation_context("package", category=LogCategory.PACKAGING):
                zip_path = zip_xml_file(xml_path)
            audit_logger.log_document_operation(
                operation="package",
                message="Signed XML stored and packaged",
                document_type=document.type,
                document_id=document_id,
                category=LogCategory.PACKAGING,
                xml_path=xml_path,
                zip_path=zip_path
            )
        except APIError as e:
            audit_logger.log_document_error(
                operation="convert",
                error_code=e.error_code,
                message=e.message,
                document_type=document.type,
                document_id=document_id,
                stage=e.stage.value if e.stage else None
            )
            raise

        duration_ms = int((time.time() - start_time) * 1000)
        result = ConversionResult(
            correlation_id=correlation_id,
            document_id=document_id,
            file_name=file_name,
            xml_path=xml_path,
            zip_path=zip_path,
            xml_hash=signed.content_hash,
            file_size=len(signed.xml),
            zip_size=os.path.getsize(zip_path),
            duration_ms=duration_ms,
            signed=signed
        )

        audit_logger.log_document_operation(
            operation="convert",
            message="Document conversion completed",
            document_type=document.type,
            document_id=document_id,
            duration_ms=duration_ms,
            xml_hash=result.xml_hash
        )
        return result

    def read_xml(self, filename: str) -> bytes:
        """
        Read a stored XML file.

        Raises:
            InvalidRequest: If the name is not a plain .xml file name
            XMLFileNotFound: If no such file is stored
        """
        _check_file_name(filename)

        file_path = os.path.join(self.xml_store_path, filename)
        if not os.path.isfile(file_path):
            raise XMLFileNotFound(filename)

        with open(file_path, "rb") as xml_file:
            return xml_file.read()

    def _store(self, file_name: str, content: bytes) -> str:
        """
        Write the signed XML to the store directory.

        Raises:
            InvalidRequest: If the name would leave the store directory
            StorageFailed: If the file cannot be written
        """
        _check_file_name(file_name)
        xml_path = os.path.join(self.xml_store_path, file_name)
        try:
            os.makedirs(self.xml_store_path, exist_ok=True)
            with open(xml_path, "wb") as xml_file:
                xml_file.write(content)
        except OSError as e:
            raise StorageFailed(f"Failed to save XML file: {str(e)}", path=xml_path) from e

        logger.debug(f"Signed XML written to {xml_path}")
        return xml_path
