"""
UBL 2.1 tree builder for SUNAT electronic documents.
Maps a business document to an in-memory XML tree for invoices, boletas,
credit notes and debit notes.
"""
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional
from xml.etree.ElementTree import Element, SubElement

from ubl_converter.schemas.enums import DocumentType
from ubl_converter.schemas.documents import (
    Address,
    BusinessDocument,
    DocumentItem,
    DocumentReference,
    Party,
    Tax,
)
from ubl_converter.utils.catalogs import (
    ADDRESS_TYPE_CODE,
    CUSTOMIZATION_ID,
    DISCREPANCY_RESPONSE_CODE,
    FREE_TRANSFER_LEGEND,
    FREE_TRANSFER_LEGEND_CODE,
    OPERATION_TYPE,
    PAYMENT_MEANS_ID,
    PAYMENT_TERMS_ID,
    PRICE_TYPE_CODE,
    SIGNATURE_REFERENCE_ID,
    UBL_VERSION,
    CatalogContext,
    get_catalog,
    get_tax_scheme,
    list_attributes,
    scheme_attributes,
    unit_code_attributes,
)
from ubl_converter.utils.decimal_format import DecimalFormatter, Numeric
from ubl_converter.utils.error_responses import MissingReference, UnsupportedDocumentType
from ubl_converter.utils.xml_serializer import serialize_tree


@dataclass(frozen=True)
class DocumentVariant:
    """Element names and rules that differ between UBL document kinds."""
    root_element: str
    namespace: str
    type_code_element: str
    line_element: str
    quantity_element: str
    monetary_total_element: str
    discrepancy_catalog: Optional[str] = None
    has_due_date: bool = False
    free_transfer_note: bool = False

    @property
    def is_note(self) -> bool:
        return self.discrepancy_catalog is not None


INVOICE_NAMESPACE = "urn:oasis:names:specification:ubl:schema:xsd:Invoice-2"
CREDIT_NOTE_NAMESPACE = "urn:oasis:names:specification:ubl:schema:xsd:CreditNote-2"
DEBIT_NOTE_NAMESPACE = "urn:oasis:names:specification:ubl:schema:xsd:DebitNote-2"


class UBLTreeBuilder:
    """
    Builds the UBL 2.1 element tree of a business document.

    The builder holds no per-document state; every call to build() creates a
    fresh tree. Element names carry their prefix and the namespace set is
    declared on the root, so the serializer never rewrites prefixes.
    """

    # Prefix declarations, in the order they appear on the root element
    NAMESPACES = OrderedDict([
        ("cac", "urn:oasis:names:specification:ubl:schema:xsd:CommonAggregateComponents-2"),
        ("cbc", "urn:oasis:names:specification:ubl:schema:xsd:CommonBasicComponents-2"),
        ("ds", "http://www.w3.org/2000/09/xmldsig#"),
        ("ext", "urn:oasis:names:specification:ubl:schema:xsd:CommonExtensionComponents-2"),
    ])

    VARIANTS: Dict[str, DocumentVariant] = {
        DocumentType.INVOICE.value: DocumentVariant(
            root_element="Invoice",
            namespace=INVOICE_NAMESPACE,
            type_code_element="cbc:InvoiceTypeCode",
            line_element="cac:InvoiceLine",
            quantity_element="cbc:InvoicedQuantity",
            monetary_total_element="cac:LegalMonetaryTotal",
            has_due_date=True
        ),
        DocumentType.BOLETA.value: DocumentVariant(
            root_element="Invoice",
            namespace=INVOICE_NAMESPACE,
            type_code_element="cbc:InvoiceTypeCode",
            line_element="cac:InvoiceLine",
            quantity_element="cbc:InvoicedQuantity",
            monetary_total_element="cac:LegalMonetaryTotal",
            has_due_date=True,
            free_transfer_note=True
        ),
        DocumentType.CREDIT_NOTE.value: DocumentVariant(
            root_element="CreditNote",
            namespace=CREDIT_NOTE_NAMESPACE,
            type_code_element="cbc:CreditNoteTypeCode",
            line_element="cac:CreditNoteLine",
            quantity_element="cbc:CreditedQuantity",
            monetary_total_element="cac:LegalMonetaryTotal",
            discrepancy_catalog="credit_note_type"
        ),
        DocumentType.DEBIT_NOTE.value: DocumentVariant(
            root_element="DebitNote",
            namespace=DEBIT_NOTE_NAMESPACE,
            type_code_element="cbc:DebitNoteTypeCode",
            line_element="cac:DebitNoteLine",
            quantity_element="cbc:DebitedQuantity",
            monetary_total_element="cac:RequestedMonetaryTotal",
            discrepancy_catalog="debit_note_type"
        ),
    }

    def __init__(self, formatter: Optional[DecimalFormatter] = None, issue_time: Optional[str] = None):
        """
        Initialize the tree builder.

        Args:
            formatter: Formatter for amounts, quantities and rates
            issue_time: Fixed HH:MM:SS issue time (defaults to current UTC time)
        """
        self.formatter = formatter or DecimalFormatter()
        self.issue_time = issue_time

    def variant_for(self, document_type: str) -> DocumentVariant:
        """
        Resolve the variant of a document type code.

        Raises:
            UnsupportedDocumentType: If the code has no UBL mapping
        """
        variant = self.VARIANTS.get(document_type)
        if variant is None:
            raise UnsupportedDocumentType(document_type)
        return variant

    def build(self, document: BusinessDocument) -> Element:
        """
        Build the UBL tree of a document.

        Args:
            document: Business document to map

        Returns:
            Root element of the UBL document

        Raises:
            UnsupportedDocumentType: If the type code is not 01, 03, 07 or 08
            MissingReference: If a credit or debit note has no reference
        """
        variant = self.variant_for(document.type)
        if variant.is_note and document.reference is None:
            raise MissingReference(document.type)

        root = Element(variant.root_element)
        root.set("xmlns", variant.namespace)
        for prefix, uri in self.NAMESPACES.items():
            root.set(f"xmlns:{prefix}", uri)

        # Signature anchor, always the first child
        self._add_extensions(root)

        self._add_header(root, document, variant)

        if variant.is_note:
            self._add_discrepancy(root, document.reference, variant)
            self._add_billing_reference(root, document.reference)

        self._add_signature(root, document)

        supplier = SubElement(root, "cac:AccountingSupplierParty")
        self._add_party(supplier, document.issuer)

        customer = SubElement(root, "cac:AccountingCustomerParty")
        self._add_party(customer, document.customer)

        self._add_payment_terms(root)
        self._add_document_taxes(root, document.taxes, document.currency)
        self._add_monetary_total(root, document, variant)

        for index, item in enumerate(document.items, start=1):
            self._add_line(root, index, item, document.currency, variant)

        return root

    def _add_extensions(self, root: Element) -> None:
        """Add the empty extension container that will hold the signature."""
        extensions = SubElement(root, "ext:UBLExtensions")
        extension = SubElement(extensions, "ext:UBLExtension")
        SubElement(extension, "ext:ExtensionContent")

    def _add_header(self, root: Element, document: BusinessDocument, variant: DocumentVariant) -> None:
        """Add version, identification, dates, type code, note and currency."""
        self._add_text(root, "cbc:UBLVersionID", UBL_VERSION)
        self._add_text(
            root, "cbc:CustomizationID", CUSTOMIZATION_ID,
            scheme_attributes(get_catalog("customization"))
        )
        self._add_text(
            root, "cbc:ProfileID", OPERATION_TYPE,
            scheme_attributes(get_catalog("operation_type"))
        )
        self._add_text(root, "cbc:ID", document.document_number)
        self._add_text(root, "cbc:IssueDate", document.issue_date.isoformat())
        self._add_text(root, "cbc:IssueTime", self._resolve_issue_time())

        if variant.has_due_date and document.due_date:
            self._add_text(root, "cbc:DueDate", document.due_date.isoformat())

        # Type code carries the operation type as listID
        self._add_code(
            root, variant.type_code_element, document.type,
            get_catalog("document_type").with_list_id(OPERATION_TYPE)
        )

        if variant.free_transfer_note:
            self._add_text(
                root, "cbc:Note", FREE_TRANSFER_LEGEND,
                {"languageLocaleID": FREE_TRANSFER_LEGEND_CODE}
            )

        self._add_code(root, "cbc:DocumentCurrencyCode", document.currency, get_catalog("currency"))
        self._add_text(root, "cbc:LineCountNumeric", str(len(document.items)))

    def _add_discrepancy(self, root: Element, reference: DocumentReference, variant: DocumentVariant) -> None:
        """Add the discrepancy response of a credit or debit note."""
        discrepancy = SubElement(root, "cac:DiscrepancyResponse")
        self._add_text(discrepancy, "cbc:ReferenceID", reference.document_id)
        self._add_code(
            discrepancy, "cbc:ResponseCode", DISCREPANCY_RESPONSE_CODE,
            get_catalog(variant.discrepancy_catalog)
        )
        self._add_text(discrepancy, "cbc:Description", reference.reason)

    def _add_billing_reference(self, root: Element, reference: DocumentReference) -> None:
        """Add the reference to the document modified by a note."""
        billing_reference = SubElement(root, "cac:BillingReference")
        document_reference = SubElement(billing_reference, "cac:InvoiceDocumentReference")
        self._add_text(document_reference, "cbc:ID", reference.document_id)
        self._add_text(document_reference, "cbc:IssueDate", reference.issue_date.isoformat())
        self._add_code(
            document_reference, "cbc:DocumentTypeCode", reference.document_type,
            get_catalog("document_type")
        )

    def _add_signature(self, root: Element, document: BusinessDocument) -> None:
        """Add the cac:Signature block pointing at the enveloped signature."""
        signature = SubElement(root, "cac:Signature")
        self._add_text(signature, "cbc:ID", document.document_number)

        signatory = SubElement(signature, "cac:SignatoryParty")
        identification = SubElement(signatory, "cac:PartyIdentification")
        self._add_text(identification, "cbc:ID", document.issuer.document_id)
        party_name = SubElement(signatory, "cac:PartyName")
        self._add_text(party_name, "cbc:Name", document.issuer.name)

        attachment = SubElement(signature, "cac:DigitalSignatureAttachment")
        external_reference = SubElement(attachment, "cac:ExternalReference")
        self._add_text(external_reference, "cbc:URI", f"#{SIGNATURE_REFERENCE_ID}")

    def _add_party(self, parent: Element, party: Party) -> None:
        """Add a cac:Party with identification, name and legal entity."""
        party_elem = SubElement(parent, "cac:Party")

        # schemeID distinguishes RUC, DNI and the other identity documents
        identification = SubElement(party_elem, "cac:PartyIdentification")
        self._add_identifier(
            identification, "cbc:ID", party.document_id,
            get_catalog("identity_document").with_list_id(party.document_type)
        )

        party_name = SubElement(party_elem, "cac:PartyName")
        self._add_text(party_name, "cbc:Name", party.trade_name or party.name)

        legal_entity = SubElement(party_elem, "cac:PartyLegalEntity")
        self._add_text(legal_entity, "cbc:RegistrationName", party.name)
        self._add_address(legal_entity, party.address)

    def _add_address(self, parent: Element, address: Address) -> None:
        """Add a cac:RegistrationAddress."""
        address_elem = SubElement(parent, "cac:RegistrationAddress")

        if address.postal_code:
            self._add_identifier(address_elem, "cbc:ID", address.postal_code, get_catalog("ubigeo"))

        self._add_code(address_elem, "cbc:AddressTypeCode", ADDRESS_TYPE_CODE, get_catalog("address_type"))
        self._add_text(address_elem, "cbc:CityName", address.city)
        self._add_text(address_elem, "cbc:CountrySubentity", address.province)
        self._add_text(address_elem, "cbc:District", address.district)

        address_line = SubElement(address_elem, "cac:AddressLine")
        line = " - ".join([address.street, address.district, address.province, address.department])
        self._add_text(address_line, "cbc:Line", line)

        country = SubElement(address_elem, "cac:Country")
        self._add_code(country, "cbc:IdentificationCode", address.country, get_catalog("country"))

    def _add_payment_terms(self, root: Element) -> None:
        """Add cash payment terms."""
        payment_terms = SubElement(root, "cac:PaymentTerms")
        self._add_text(payment_terms, "cbc:ID", PAYMENT_TERMS_ID)
        self._add_text(payment_terms, "cbc:PaymentMeansID", PAYMENT_MEANS_ID)

    def _add_document_taxes(self, root: Element, taxes: List[Tax], currency: str) -> None:
        """Add one cac:TaxTotal per tax type, in order of first appearance."""
        groups: Dict[str, List[Tax]] = OrderedDict()
        for tax in taxes:
            groups.setdefault(tax.tax_type, []).append(tax)

        for group in groups.values():
            tax_total = SubElement(root, "cac:TaxTotal")
            group_amount = sum((tax.tax_amount for tax in group), Decimal("0"))
            self._add_amount(tax_total, "cbc:TaxAmount", group_amount, currency)
            for tax in group:
                self._add_tax_subtotal(tax_total, tax, currency)

    def _add_tax_subtotal(self, parent: Element, tax: Tax, currency: str) -> None:
        """Add a cac:TaxSubtotal with its category and scheme."""
        scheme = get_tax_scheme(tax.tax_type)

        subtotal = SubElement(parent, "cac:TaxSubtotal")
        self._add_amount(subtotal, "cbc:TaxableAmount", tax.tax_base, currency)
        self._add_amount(subtotal, "cbc:TaxAmount", tax.tax_amount, currency)

        category = SubElement(subtotal, "cac:TaxCategory")
        self._add_identifier(category, "cbc:ID", scheme.category_id, get_catalog("tax_category"))
        self._add_text(category, "cbc:Percent", self.formatter(tax.tax_rate))

        if scheme.exemption_reason:
            self._add_code(
                category, "cbc:TaxExemptionReasonCode", scheme.exemption_reason,
                get_catalog("tax_exemption_reason")
            )

        tax_scheme = SubElement(category, "cac:TaxScheme")
        self._add_identifier(tax_scheme, "cbc:ID", tax.tax_type, get_catalog("tax_scheme"))
        self._add_text(tax_scheme, "cbc:Name", scheme.name)
        self._add_text(tax_scheme, "cbc:TaxTypeCode", scheme.type_code)

    def _add_monetary_total(self, root: Element, document: BusinessDocument, variant: DocumentVariant) -> None:
        """Add the legal or requested monetary total."""
        totals = document.totals
        monetary_total = SubElement(root, variant.monetary_total_element)
        self._add_amount(monetary_total, "cbc:LineExtensionAmount", totals.sub_total, document.currency)
        self._add_amount(monetary_total, "cbc:TaxInclusiveAmount", totals.total_amount, document.currency)
        self._add_amount(monetary_total, "cbc:PayableAmount", totals.payable_amount, document.currency)

    def _add_line(
        self,
        root: Element,
        index: int,
        item: DocumentItem,
        currency: str,
        variant: DocumentVariant
    ) -> None:
        """Add a document line."""
        line = SubElement(root, variant.line_element)
        self._add_text(line, "cbc:ID", str(index))

        quantity_attributes = {"unitCode": item.unit_code}
        quantity_attributes.update(unit_code_attributes(get_catalog("unit_of_measure")))
        self._add_text(line, variant.quantity_element, self.formatter(item.quantity), quantity_attributes)

        self._add_amount(line, "cbc:LineExtensionAmount", item.line_total, currency)

        # Reference price is the unit price including taxes
        pricing_reference = SubElement(line, "cac:PricingReference")
        condition_price = SubElement(pricing_reference, "cac:AlternativeConditionPrice")
        self._add_amount(condition_price, "cbc:PriceAmount", self._tax_inclusive_unit_price(item), currency)
        self._add_code(condition_price, "cbc:PriceTypeCode", PRICE_TYPE_CODE, get_catalog("price_type"))

        if item.taxes:
            tax_total = SubElement(line, "cac:TaxTotal")
            line_tax = sum((tax.tax_amount for tax in item.taxes), Decimal("0"))
            self._add_amount(tax_total, "cbc:TaxAmount", line_tax, currency)
            for tax in item.taxes:
                self._add_tax_subtotal(tax_total, tax, currency)

        item_elem = SubElement(line, "cac:Item")
        self._add_text(item_elem, "cbc:Description", item.description)
        sellers_identification = SubElement(item_elem, "cac:SellersItemIdentification")
        self._add_text(sellers_identification, "cbc:ID", item.id)

        price = SubElement(line, "cac:Price")
        self._add_amount(price, "cbc:PriceAmount", item.unit_price, currency)

    def _tax_inclusive_unit_price(self, item: DocumentItem) -> Decimal:
        if not item.quantity:
            return item.unit_price
        line_tax = sum((tax.tax_amount for tax in item.taxes), Decimal("0"))
        return (item.line_total + line_tax) / item.quantity

    def _resolve_issue_time(self) -> str:
        if self.issue_time:
            return self.issue_time
        return datetime.now(timezone.utc).strftime("%H:%M:%S")

    def _add_text(
        self,
        parent: Element,
        tag: str,
        text: str,
        attributes: Optional[Dict[str, str]] = None
    ) -> Element:
        element = SubElement(parent, tag)
        for name, value in (attributes or {}).items():
            element.set(name, value)
        element.text = text
        return element

    def _add_amount(self, parent: Element, tag: str, value: Numeric, currency: str) -> Element:
        return self._add_text(parent, tag, self.formatter(value), {"currencyID": currency})

    def _add_code(self, parent: Element, tag: str, value: str, context: CatalogContext) -> Element:
        return self._add_text(parent, tag, value, list_attributes(context))

    def _add_identifier(self, parent: Element, tag: str, value: str, context: CatalogContext) -> Element:
        return self._add_text(parent, tag, value, scheme_attributes(context))


def generate_document_xml(document: BusinessDocument, issue_time: Optional[str] = None) -> bytes:
    """
    Convenience function to build and serialize a document.

    Args:
        document: Business document to map
        issue_time: Fixed HH:MM:SS issue time

    Returns:
        Unsigned UBL XML bytes
    """
    builder = UBLTreeBuilder(issue_time=issue_time)
    return serialize_tree(builder.build(document))
