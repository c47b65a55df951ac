"""
Template Catalog Service.

Lists IDTA submodel templates from the admin-shell-io/submodel-templates
repository and seeds new submodels. When GitHub cannot be reached the
catalog falls back to a small set of built-in submodel skeletons.
"""

import logging
from datetime import datetime, timedelta
from typing import Any

import httpx

from aas_editor.clients.github_client import GitHubClient
from aas_editor.schemas.elements import ELEMENT_ADAPTER
from aas_editor.schemas.environment import Submodel

logger = logging.getLogger(__name__)

ECLASS = "0173-1#02-"
CONTACT = "https://admin-shell.io/zvei/contact/1/0/Contact/"
TECHNICAL = "https://admin-shell.io/zvei/technicaldatacollection/1/0/TechnicalDataCollection/"
CARBON = "https://admin-shell.io/zvei/carbonfootprint/1/0/ProductCarbonFootprint/"
HANDOVER = "https://admin-shell.io/zvei/handover/1/0/HandoverDocumentation/"


def _prop(id_short, cardinality, description, semantic_id=None, value_type="xs:string"):
    return {
        "modelType": "Property",
        "idShort": id_short,
        "cardinality": cardinality,
        "description": description,
        "semanticId": semantic_id,
        "valueType": value_type,
    }


def _mlp(id_short, cardinality, description, semantic_id=None):
    return {
        "modelType": "MultiLanguageProperty",
        "idShort": id_short,
        "cardinality": cardinality,
        "description": description,
        "semanticId": semantic_id,
        "value": {"en": ""},
    }


def _file(id_short, cardinality, description, semantic_id=None):
    return {
        "modelType": "File",
        "idShort": id_short,
        "cardinality": cardinality,
        "description": description,
        "semanticId": semantic_id,
    }


def _collection(id_short, cardinality, description, children, semantic_id=None):
    return {
        "modelType": "SubmodelElementCollection",
        "idShort": id_short,
        "cardinality": cardinality,
        "description": description,
        "semanticId": semantic_id,
        "children": children,
    }


BUILTIN_TEMPLATES: dict[str, dict[str, Any]] = {
    "Nameplate": {
        "title": "Digital Nameplate",
        "semanticId": "https://admin-shell.io/zvei/nameplate/2/0/Nameplate",
        "elements": [
            _prop("URIOfTheProduct", "ZeroToOne", "Unique global identification of the product using a URI", f"{ECLASS}AAY811#001"),
            _mlp("ManufacturerName", "One", "Legally valid designation of the manufacturer", f"{ECLASS}AAO677#002"),
            _mlp("ManufacturerProductDesignation", "One", "Short description of the product", f"{ECLASS}AAW338#001"),
            _collection(
                "AddressInformation",
                "One",
                "Address of the manufacturer",
                [
                    _prop("Street", "One", "Street name and house number", f"{ECLASS}AAO128#002"),
                    _prop("Zipcode", "One", "ZIP code of address", f"{ECLASS}AAO129#002"),
                    _prop("CityTown", "One", "Town or city", f"{ECLASS}AAO132#002"),
                    _prop("Country", "One", "Country code", f"{ECLASS}AAO134#002"),
                ],
            ),
            _prop("ManufacturerProductType", "ZeroToOne", "Product type within a product family", f"{ECLASS}AAO057#002"),
            _prop("OrderCodeOfManufacturer", "ZeroToOne", "Order code issued by the manufacturer", f"{ECLASS}AAO227#002"),
            _prop("SerialNumber", "ZeroToOne", "Unique number identifying the manufactured device", f"{ECLASS}AAM556#002"),
            _prop("YearOfConstruction", "ZeroToOne", "Year as completion date of object", f"{ECLASS}AAP906#001", "xs:integer"),
            _prop("DateOfManufacture", "ZeroToOne", "Date the production process was completed", f"{ECLASS}AAR972#002", "xs:date"),
            _prop("HardwareVersion", "ZeroToOne", "Version of the hardware supplied with the device", f"{ECLASS}AAN270#002"),
            _prop("FirmwareVersion", "ZeroToOne", "Version of the firmware supplied with the device", f"{ECLASS}AAN269#002"),
            _prop("SoftwareVersion", "ZeroToOne", "Version of the software used by the device", f"{ECLASS}AAN271#002"),
            _prop("CountryOfOrigin", "ZeroToOne", "Country where the product was manufactured", f"{ECLASS}AAO259#004"),
            _file("CompanyLogo", "ZeroToOne", "Graphic mark representing the company", f"{ECLASS}AAQ163#002"),
            _collection(
                "Markings",
                "ZeroToOne",
                "Markings of the product",
                [
                    _prop("MarkingName", "One", "Common name of the marking", f"{ECLASS}AAU734#001"),
                    _file("MarkingFile", "ZeroToOne", "Picture or document of the marking", f"{ECLASS}AAU733#001"),
                ],
            ),
        ],
    },
    "ContactInformation": {
        "title": "Contact Information",
        "semanticId": "https://admin-shell.io/zvei/contact/1/0/Contact",
        "elements": [
            _prop("RoleOfContactPerson", "One", "Role of contact person", f"{CONTACT}RoleOfContactPerson"),
            _mlp("NameOfContact", "One", "Name of contact", f"{CONTACT}NameOfContact"),
            _prop("FirstName", "ZeroToOne", "First name", f"{CONTACT}FirstName"),
            _prop("Title", "ZeroToOne", "Academic title", f"{CONTACT}Title"),
            _prop("Email", "ZeroToOne", "Email address", f"{CONTACT}Email"),
            _prop("Phone", "ZeroToOne", "Phone number", f"{CONTACT}Phone"),
        ],
    },
    "TechnicalData": {
        "title": "Technical Data",
        "semanticId": "https://admin-shell.io/zvei/technicaldatacollection/1/0/TechnicalDataCollection",
        "elements": [
            _collection(
                "GeneralInformation",
                "One",
                "General technical information",
                [
                    _mlp("ManufacturerName", "One", "Manufacturer name", f"{TECHNICAL}ManufacturerName"),
                    _mlp("ManufacturerProductDesignation", "One", "Product designation", f"{TECHNICAL}ManufacturerProductDesignation"),
                    _prop("ManufacturerPartNumber", "ZeroToOne", "Part number", f"{TECHNICAL}ManufacturerPartNumber"),
                ],
            ),
            _collection(
                "TechnicalProperties",
                "ZeroToOne",
                "Technical properties",
                [
                    _prop("NominalVoltage", "ZeroToOne", "Nominal voltage", f"{TECHNICAL}NominalVoltage", "xs:float"),
                    _prop("NominalCurrent", "ZeroToOne", "Nominal current", f"{TECHNICAL}NominalCurrent", "xs:float"),
                ],
            ),
        ],
    },
    "CarbonFootprint": {
        "title": "Carbon Footprint",
        "semanticId": "https://admin-shell.io/zvei/carbonfootprint/1/0/ProductCarbonFootprint",
        "elements": [
            _collection(
                "PCF",
                "One",
                "Product Carbon Footprint",
                [
                    _prop("PCFCalculationMethod", "One", "Calculation method", f"{CARBON}PCFCalculationMethod"),
                    _prop("PCFCO2eq", "One", "CO2 equivalent in kg", f"{CARBON}PCFCO2eq", "xs:float"),
                    _prop("PCFReferenceValueForCalculation", "One", "Reference value", f"{CARBON}PCFReferenceValueForCalculation"),
                ],
            ),
        ],
    },
    "HandoverDocumentation": {
        "title": "Handover Documentation",
        "semanticId": "https://admin-shell.io/zvei/handover/1/0/HandoverDocumentation",
        "elements": [
            _collection(
                "Document",
                "One",
                "Handover documentation",
                [
                    _prop("DocumentClassification", "One", "Document classification", f"{HANDOVER}DocumentClassification"),
                    _prop("DocumentVersionId", "One", "Document version", f"{HANDOVER}DocumentVersionId"),
                    _file("DigitalFile", "ZeroToOne", "Document file", f"{HANDOVER}DigitalFile"),
                ],
            ),
        ],
    },
}

DEFAULT_ELEMENTS = [_prop("Property1", "ZeroToOne", "Custom property")]


class TemplateCatalogService:
    """
    Service for discovering templates and seeding submodels.

    Features:
    - Lists templates from admin-shell-io/submodel-templates
    - In-memory index cache with configurable TTL
    - Built-in skeletons when GitHub is unavailable
    """

    def __init__(
        self,
        client: GitHubClient,
        github_repo: str = "admin-shell-io/submodel-templates",
        cache_ttl_hours: int = 24,
    ):
        self.client = client
        self.github_repo = github_repo
        self.cache_ttl_hours = cache_ttl_hours
        self._index_cache: dict[str, tuple[Any, datetime]] = {}

    def _is_cache_valid(self, cache_time: datetime) -> bool:
        """Check if cached data is still within TTL."""
        return datetime.now() - cache_time < timedelta(hours=self.cache_ttl_hours)

    async def list_templates(self) -> list[dict]:
        """
        List available templates.

        Returns:
            Template metadata dictionaries; built-in skeletons carry
            ``"source": "builtin"``
        """
        cache_key = "template_index"
        if cache_key in self._index_cache:
            data, timestamp = self._index_cache[cache_key]
            if self._is_cache_valid(timestamp):
                logger.debug("Returning cached template index")
                return data

        logger.info("Fetching template index from GitHub")
        try:
            directories = await self.client.get_contents(self.github_repo, "published")
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Template catalog unavailable, using built-in skeletons: %s", e)
            return self.builtin_templates()

        templates = []
        for item in directories:
            if item.get("type") != "dir":
                continue
            name = item["name"]
            template_info = self._parse_template_name(name)
            templates.append(
                {
                    "name": name,
                    "path": item.get("path"),
                    "idta_number": template_info.get("idta_number"),
                    "title": template_info.get("title"),
                    "source": "github",
                }
            )

        templates.sort(
            key=lambda x: (
                x.get("idta_number") or "99999",
                x.get("title") or x.get("name", ""),
            )
        )
        self._index_cache[cache_key] = (templates, datetime.now())
        return templates

    def clear_cache(self) -> int:
        """Drop the cached index; returns the number of entries removed."""
        count = len(self._index_cache)
        self._index_cache.clear()
        return count

    @staticmethod
    def builtin_templates() -> list[dict]:
        return [
            {
                "name": name,
                "path": None,
                "idta_number": None,
                "title": template["title"],
                "source": "builtin",
            }
            for name, template in BUILTIN_TEMPLATES.items()
        ]

    def _parse_template_name(self, name: str) -> dict:
        """
        Parse template directory name to extract IDTA number and title.

        Examples:
            "IDTA 02006-2-0_Submodel_Digital Nameplate" ->
                {"idta_number": "02006", "title": "Digital Nameplate"}
        """
        parts = name.split("_", 2)
        result = {"idta_number": None, "title": name}

        if parts[0].startswith("IDTA"):
            result["idta_number"] = parts[0].replace("IDTA ", "").split("-")[0].strip()

        if len(parts) >= 3:
            result["title"] = parts[2].strip()
        elif len(parts) >= 2:
            result["title"] = parts[1].strip()

        return result

    def build_submodel(self, name: str, id_short: str | None = None) -> Submodel:
        """
        Create a fresh submodel from a built-in skeleton.

        Names are matched case-insensitively, also against titles, so
        "Digital Nameplate" resolves to the Nameplate skeleton. Unknown
        names produce a submodel with a single optional Property.
        """
        template = self._find_builtin(name)
        if template is None:
            logger.info("No skeleton for %s, using default structure", name)
            elements = DEFAULT_ELEMENTS
            semantic_id = None
        else:
            elements = template["elements"]
            semantic_id = template["semanticId"]

        return Submodel(
            idShort=id_short or "".join(part for part in name.split() if part.isalnum()) or "Submodel",
            semanticId=semantic_id,
            elements=[ELEMENT_ADAPTER.validate_python(element) for element in elements],
        )

    @staticmethod
    def _find_builtin(name: str) -> dict[str, Any] | None:
        lowered = name.strip().lower()
        for key, template in BUILTIN_TEMPLATES.items():
            if lowered in (key.lower(), template["title"].lower()):
                return template
        for key, template in BUILTIN_TEMPLATES.items():
            if key.lower() in lowered.replace(" ", ""):
                return template
        return None
