"""
Business document models for SUNAT electronic documents.
Canonical representation of an invoice, boleta, credit note or debit note
before it is mapped to UBL 2.1.
"""
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model accepting camelCase JSON and snake_case attribute names."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True
    )


class Address(CamelModel):
    """Postal address of a party."""
    street: str = Field(..., description="Street and number")
    city: str = Field(..., description="City name")
    district: str = Field(..., description="District name")
    province: str = Field(..., description="Province name")
    department: str = Field(..., description="Department name")
    country: str = Field(..., min_length=2, max_length=2, description="ISO 3166-1 alpha-2 country code")
    postal_code: Optional[str] = Field(None, description="Ubigeo / postal code")


class Party(CamelModel):
    """Issuer or customer of a document."""
    document_type: str = Field(..., description="Identity document type (SUNAT catalog 06)")
    document_id: str = Field(..., min_length=1, description="RUC, DNI or other identity number")
    name: str = Field(..., min_length=1, description="Registered name")
    trade_name: Optional[str] = Field(None, description="Commercial name")
    address: Address


class Tax(CamelModel):
    """Tax applied to a single line item."""
    tax_type: str = Field(..., description="Tax code (SUNAT catalog 05)")
    tax_amount: Decimal
    tax_rate: Decimal = Field(default=Decimal("0"), description="Rate in percent, e.g. 18")
    tax_base: Decimal = Field(default=Decimal("0"), description="Taxable amount")


class TaxTotal(Tax):
    """Tax aggregated across the items of a document."""


class DocumentItem(CamelModel):
    """Line item of a document."""
    id: str = Field(..., description="Seller's item code")
    description: str
    quantity: Decimal
    unit_code: str = Field(..., description="UN/ECE rec 20 unit code, e.g. NIU")
    unit_price: Decimal
    line_total: Decimal
    taxes: List[Tax] = Field(default_factory=list)


class DocumentTotals(CamelModel):
    """Monetary totals of a document."""
    sub_total: Decimal
    total_taxes: Decimal
    total_amount: Decimal
    payable_amount: Decimal


class DocumentReference(CamelModel):
    """Document modified by a credit or debit note."""
    document_type: str = Field(..., description="Referenced document type (SUNAT catalog 01)")
    document_id: str = Field(..., description="Referenced document key, SERIES-NUMBER")
    issue_date: date
    reason: str = Field(..., description="Reason for the note")


class BusinessDocument(CamelModel):
    """
    Business document to be converted to UBL.

    The type is kept as the raw catalog code so that unsupported codes reach
    the tree builder and fail there with a typed error.
    """
    id: Optional[str] = None
    type: str = Field(..., description="Document type code: 01, 03, 07 or 08")
    series: str = Field(..., min_length=1, description="Series prefix, e.g. F001")
    number: str = Field(..., min_length=1, description="Sequential number")
    issue_date: date
    due_date: Optional[date] = None
    currency: str = Field(..., min_length=3, max_length=3, description="ISO 4217 currency code")
    issuer: Party
    customer: Party
    items: List[DocumentItem] = Field(..., min_length=1)
    totals: DocumentTotals
    taxes: List[TaxTotal] = Field(default_factory=list)
    additional: Optional[Dict[str, Any]] = None
    reference: Optional[DocumentReference] = None

    @property
    def document_number(self) -> str:
        """Composite SERIES-NUMBER identifier."""
        return f"{self.series}-{self.number}"

    @property
    def file_stem(self) -> str:
        """File name stem: ISSUER_ID-TYPE-SERIES-NUMBER."""
        return f"{self.issuer.document_id}-{self.type}-{self.series}-{self.number}"
