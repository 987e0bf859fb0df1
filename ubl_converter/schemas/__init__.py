"""
Pydantic schemas for the UBL Converter API
"""

from .enums import DocumentType, TaxType, ResponseStatus
from .documents import (
    Address,
    BusinessDocument,
    DocumentItem,
    DocumentReference,
    DocumentTotals,
    Party,
    Tax,
    TaxTotal,
)
from .responses import APIResponse, ConvertRequest, ValidationErrorDetail

__all__ = [
    "DocumentType",
    "TaxType",
    "ResponseStatus",
    "Address",
    "BusinessDocument",
    "DocumentItem",
    "DocumentReference",
    "DocumentTotals",
    "Party",
    "Tax",
    "TaxTotal",
    "APIResponse",
    "ConvertRequest",
    "ValidationErrorDetail",
]
