"""
Catalog table for SUNAT UBL 2.1 documents.

Every agency name, list identifier, list name and list URI written to the
XML lives here, keyed by the kind of code it qualifies. The builder only
looks entries up; it never spells a catalog literal itself.
"""
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from ubl_converter.schemas.enums import TaxType

UNECE_AGENCY = "United Nations Economic Commission for Europe"
SUNAT_AGENCY = "PE:SUNAT"
SUNAT_CATALOG_URI = "urn:pe:gob:sunat:cpe:see:gem:catalogos:{catalog}"


@dataclass(frozen=True)
class CatalogContext:
    """Metadata that qualifies a coded value."""
    agency_name: str
    list_id: Optional[str] = None
    list_name: Optional[str] = None
    list_uri: Optional[str] = None

    def with_list_id(self, list_id: str) -> "CatalogContext":
        """Copy of this context identifying a specific list/scheme."""
        return replace(self, list_id=list_id)


@dataclass(frozen=True)
class TaxSchemeEntry:
    """Catalog 05 tax code with its international classification."""
    name: str
    type_code: str
    category_id: str
    exemption_reason: Optional[str] = None


def _sunat(catalog: str, list_name: str, list_id: Optional[str] = None) -> CatalogContext:
    return CatalogContext(
        agency_name=SUNAT_AGENCY,
        list_id=list_id or catalog,
        list_name=list_name,
        list_uri=SUNAT_CATALOG_URI.format(catalog=catalog)
    )


# Fixed values required by SUNAT for every document
UBL_VERSION = "2.1"
CUSTOMIZATION_ID = "2.0"
OPERATION_TYPE = "0101"
ADDRESS_TYPE_CODE = "0000"
PRICE_TYPE_CODE = "01"
DISCREPANCY_RESPONSE_CODE = "01"
PAYMENT_TERMS_ID = "FormaPago"
PAYMENT_MEANS_ID = "Contado"
FREE_TRANSFER_LEGEND_CODE = "1002"
FREE_TRANSFER_LEGEND = "TRANSFERENCIA GRATUITA DE UN BIEN Y/O SERVICIO PRESTADO GRATUITAMENTE"
SIGNATURE_REFERENCE_ID = "SignatureSP"


CATALOGS: Mapping[str, CatalogContext] = MappingProxyType({
    "customization": CatalogContext(agency_name=SUNAT_AGENCY),
    "operation_type": _sunat("catalogo51", "Tipo de Operacion"),
    "document_type": _sunat("catalogo01", "Tipo de Documento"),
    "identity_document": _sunat("catalogo06", "Documento de Identidad"),
    "legend": _sunat("catalogo52", "Leyendas"),
    "credit_note_type": _sunat("catalogo09", "Tipo de nota de credito"),
    "debit_note_type": _sunat("catalogo10", "Tipo de nota de debito"),
    "tax_scheme": _sunat("catalogo05", "Codigo de tributos", list_id="UN/ECE 5153"),
    "tax_exemption_reason": _sunat("catalogo07", "Afectacion del IGV"),
    "price_type": _sunat("catalogo16", "Tipo de Precio"),
    "address_type": _sunat("catalogo_establecimientos", "Establecimientos anexos"),
    "ubigeo": CatalogContext(
        agency_name="PE:INEI",
        list_id="INEI",
        list_name="Ubigeos",
        list_uri="urn:pe:gob:inei:ubigeo"
    ),
    "currency": CatalogContext(
        agency_name=UNECE_AGENCY,
        list_id="ISO 4217 Alpha",
        list_name="Currency",
        list_uri="urn:un:unece:uncefact:codelist:specification:54217:2001"
    ),
    "country": CatalogContext(
        agency_name=UNECE_AGENCY,
        list_id="ISO 3166-1",
        list_name="Country",
        list_uri="urn:un:unece:uncefact:identifierlist:standard:5:ISO316612A:SecondEdition2006VI-4"
    ),
    "unit_of_measure": CatalogContext(
        agency_name=UNECE_AGENCY,
        list_id="UN/ECE rec 20",
        list_name="Unit of Measure",
        list_uri="urn:un:unece:uncefact:codelist:specification:66411:2001"
    ),
    "tax_category": CatalogContext(
        agency_name=UNECE_AGENCY,
        list_id="UN/ECE 5305",
        list_name="Tax Category Identifier",
        list_uri="urn:un:unece:uncefact:codelist:specification:5305:2001"
    ),
})


TAX_SCHEMES: Mapping[str, TaxSchemeEntry] = MappingProxyType({
    TaxType.IGV.value: TaxSchemeEntry("IGV", "VAT", "S", exemption_reason="10"),
    TaxType.IVAP.value: TaxSchemeEntry("IVAP", "VAT", "S", exemption_reason="17"),
    TaxType.ISC.value: TaxSchemeEntry("ISC", "EXC", "S"),
    TaxType.ICBPER.value: TaxSchemeEntry("ICBPER", "OTH", "S"),
    TaxType.EXPORTACION.value: TaxSchemeEntry("EXP", "FRE", "G", exemption_reason="40"),
    TaxType.GRATUITO.value: TaxSchemeEntry("GRA", "FRE", "Z", exemption_reason="21"),
    TaxType.EXONERADO.value: TaxSchemeEntry("EXO", "VAT", "E", exemption_reason="20"),
    TaxType.INAFECTO.value: TaxSchemeEntry("INA", "FRE", "O", exemption_reason="30"),
    TaxType.OTROS.value: TaxSchemeEntry("OTROS", "OTH", "S"),
})

UNKNOWN_TAX_SCHEME = TaxSchemeEntry("TAX", "OTH", "S")


def get_catalog(key: str) -> CatalogContext:
    """
    Look up a catalog context.

    Raises:
        KeyError: If no catalog is registered under the key
    """
    try:
        return CATALOGS[key]
    except KeyError:
        raise KeyError(f"Unknown catalog: {key}") from None


def get_tax_scheme(tax_type: str) -> TaxSchemeEntry:
    """Tax scheme entry for a catalog 05 code, with a generic fallback."""
    return TAX_SCHEMES.get(tax_type, UNKNOWN_TAX_SCHEME)


def _attributes(prefix: str, context: CatalogContext, include_name_uri: bool = True) -> Dict[str, str]:
    pairs = [
        (f"{prefix}AgencyName", context.agency_name),
        (f"{prefix}ID", context.list_id),
    ]
    if include_name_uri:
        pairs += [
            (f"{prefix}Name", context.list_name),
            (f"{prefix}URI", context.list_uri),
        ]
    return {name: value for name, value in pairs if value}


def list_attributes(context: CatalogContext) -> Dict[str, str]:
    """Attributes for UBL code types: listAgencyName, listID, listName, listURI."""
    return _attributes("list", context)


def scheme_attributes(context: CatalogContext) -> Dict[str, str]:
    """Attributes for UBL identifier types: schemeAgencyName, schemeID, schemeName, schemeURI."""
    return _attributes("scheme", context)


def unit_code_attributes(context: CatalogContext) -> Dict[str, str]:
    """Attributes for UBL quantity types: unitCodeListAgencyName, unitCodeListID."""
    return _attributes("unitCodeList", context, include_name_uri=False)
