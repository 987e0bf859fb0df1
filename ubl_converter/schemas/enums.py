"""
Core enums for SUNAT electronic documents.
Codes follow the SUNAT catalogs used by UBL 2.1 documents.
"""
from enum import Enum


class DocumentType(str, Enum):
    """Document types according to SUNAT catalog 01."""
    INVOICE = "01"
    BOLETA = "03"
    CREDIT_NOTE = "07"
    DEBIT_NOTE = "08"


class TaxType(str, Enum):
    """Tax codes according to SUNAT catalog 05."""
    IGV = "1000"
    IVAP = "1016"
    ISC = "2000"
    ICBPER = "7152"
    EXPORTACION = "9995"
    GRATUITO = "9996"
    EXONERADO = "9997"
    INAFECTO = "9998"
    OTROS = "9999"


class ResponseStatus(str, Enum):
    """Status values of the API response envelope."""
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


# Document types that must reference a previously issued document
NOTE_DOCUMENT_TYPES = frozenset({DocumentType.CREDIT_NOTE.value, DocumentType.DEBIT_NOTE.value})

SUPPORTED_CURRENCIES = frozenset({"PEN", "USD", "EUR"})
