"""
Business validation rules for SUNAT electronic documents.
Field-level checks run before a document enters the conversion pipeline.
"""
import re
from decimal import Decimal, ROUND_HALF_UP
from typing import List

from ubl_converter.schemas.documents import BusinessDocument
from ubl_converter.schemas.enums import DocumentType, NOTE_DOCUMENT_TYPES, SUPPORTED_CURRENCIES
from ubl_converter.schemas.responses import ValidationErrorDetail

RUC_WEIGHTS = (5, 4, 3, 2, 7, 6, 5, 4, 3, 2)
_RUC_PATTERN = re.compile(r"^\d{11}$")
_SERIES_PATTERN = re.compile(r"^[A-Z0-9]{4}$")
_NUMBER_PATTERN = re.compile(r"^\d{1,8}$")
_CENT = Decimal("0.01")

VALID_DOCUMENT_TYPES = frozenset(document_type.value for document_type in DocumentType)


def is_valid_ruc(ruc: str) -> bool:
    """
    Check an 11-digit RUC against its modulo 11 check digit.

    The check digit is 11 - (weighted sum % 11), with 10 mapped to 1 and
    11 mapped to 0.
    """
    if not _RUC_PATTERN.match(ruc or ""):
        return False

    total = sum(int(digit) * weight for digit, weight in zip(ruc[:10], RUC_WEIGHTS))
    check_digit = 11 - total % 11
    if check_digit == 11:
        check_digit = 0
    elif check_digit == 10:
        check_digit = 1

    return check_digit == int(ruc[10])


def _money(value: Decimal) -> str:
    return f"{Decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP):f}"


class BusinessValidator:
    """Collects every rule violation of a document."""

    def validate(self, document: BusinessDocument) -> List[ValidationErrorDetail]:
        """
        Validate a business document.

        Args:
            document: Document to check

        Returns:
            List of violations, empty when the document is valid
        """
        errors: List[ValidationErrorDetail] = []

        # Issuer RUC
        if not is_valid_ruc(document.issuer.document_id):
            errors.append(ValidationErrorDetail(
                field="issuer.documentId",
                expected="Valid RUC format",
                received=document.issuer.document_id,
                rule="ruc_validation",
                message="RUC format is invalid"
            ))

        # Series and number end up in the stored file name
        if not _SERIES_PATTERN.fullmatch(document.series):
            errors.append(ValidationErrorDetail(
                field="series",
                expected="4 uppercase letters or digits, e.g. F001",
                received=document.series,
                rule="series_validation",
                message="Series format is invalid"
            ))

        if not _NUMBER_PATTERN.fullmatch(document.number):
            errors.append(ValidationErrorDetail(
                field="number",
                expected="1 to 8 digits",
                received=document.number,
                rule="number_validation",
                message="Document number format is invalid"
            ))

        # Document type
        if document.type not in VALID_DOCUMENT_TYPES:
            errors.append(ValidationErrorDetail(
                field="type",
                expected="Valid document type (01, 03, 07, 08)",
                received=document.type,
                rule="document_type_validation",
                message="Document type is not valid"
            ))

        # Currency
        if document.currency not in SUPPORTED_CURRENCIES:
            errors.append(ValidationErrorDetail(
                field="currency",
                expected="Valid currency code (PEN, USD, EUR)",
                received=document.currency,
                rule="currency_validation",
                message="Currency code is not valid"
            ))

        errors.extend(self._validate_totals(document))

        # Credit and debit notes must point at the modified document
        if document.type in NOTE_DOCUMENT_TYPES and document.reference is None:
            errors.append(ValidationErrorDetail(
                field="reference",
                expected="Reference document for credit and debit notes",
                received="null",
                rule="reference_validation",
                message="Credit and debit notes require a reference document"
            ))

        errors.extend(self._validate_items(document))
        return errors

    def _validate_totals(self, document: BusinessDocument) -> List[ValidationErrorDetail]:
        """Total amount must equal sub total plus document taxes, to the cent."""
        calculated = document.totals.sub_total + sum(
            (tax.tax_amount for tax in document.taxes), Decimal("0")
        )
        expected = _money(calculated)
        received = _money(document.totals.total_amount)
        if expected == received:
            return []

        return [ValidationErrorDetail(
            field="totals.totalAmount",
            expected=expected,
            received=received,
            rule="sum_validation",
            message="Total amount calculation mismatch"
        )]

    def _validate_items(self, document: BusinessDocument) -> List[ValidationErrorDetail]:
        errors = []
        for index, item in enumerate(document.items):
            if item.quantity <= 0:
                errors.append(ValidationErrorDetail(
                    field=f"items[{index}].quantity",
                    expected="Greater than 0",
                    received=_money(item.quantity),
                    rule="quantity_validation",
                    message="Quantity must be greater than 0"
                ))

            if item.unit_price <= 0:
                errors.append(ValidationErrorDetail(
                    field=f"items[{index}].unitPrice",
                    expected="Greater than 0",
                    received=_money(item.unit_price),
                    rule="price_validation",
                    message="Unit price must be greater than 0"
                ))
        return errors


def validate_business_document(document: BusinessDocument) -> List[ValidationErrorDetail]:
    """Convenience function running the default validator."""
    return BusinessValidator().validate(document)
