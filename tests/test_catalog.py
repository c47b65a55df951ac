"""
Tests for the template catalog service.
"""

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock

from aas_editor.clients.github_client import GitHubClient
from aas_editor.schemas.elements import Cardinality, SubmodelElementCollection
from aas_editor.services.catalog import BUILTIN_TEMPLATES, TemplateCatalogService

LISTING = [
    {"name": "IDTA 02006-2-0_Submodel_Digital Nameplate", "path": "published/nameplate", "type": "dir"},
    {"name": "IDTA 02002-1-0_Submodel_ContactInformation", "path": "published/contact", "type": "dir"},
    {"name": "README.md", "path": "published/README.md", "type": "file"},
    {"name": "Draft_Something", "path": "published/draft", "type": "dir"},
]


def _github(handler) -> GitHubClient:
    return GitHubClient(transport=httpx.MockTransport(handler))


class TestTemplateCatalogService:
    """Tests for TemplateCatalogService."""

    @pytest.mark.asyncio
    async def test_list_templates_from_github(self):
        """Test listing and sorting templates from the contents API."""
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request.url.path)
            return httpx.Response(200, json=LISTING)

        service = TemplateCatalogService(_github(handler))
        templates = await service.list_templates()

        assert requests == ["/repos/admin-shell-io/submodel-templates/contents/published"]
        assert [t["idta_number"] for t in templates] == ["02002", "02006", None]
        assert templates[1]["title"] == "Digital Nameplate"
        assert all(t["source"] == "github" for t in templates)

    @pytest.mark.asyncio
    async def test_index_cached(self):
        """Test that the index is fetched once within the TTL."""
        client = MagicMock()
        client.get_contents = AsyncMock(return_value=LISTING)
        service = TemplateCatalogService(client)

        await service.list_templates()
        await service.list_templates()
        assert client.get_contents.await_count == 1

        assert service.clear_cache() == 1
        await service.list_templates()
        assert client.get_contents.await_count == 2

    @pytest.mark.asyncio
    async def test_falls_back_to_builtin(self):
        """Test that GitHub failures yield the built-in skeletons."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403, json={"message": "rate limited"})

        service = TemplateCatalogService(_github(handler))
        templates = await service.list_templates()

        assert [t["name"] for t in templates] == list(BUILTIN_TEMPLATES)
        assert all(t["source"] == "builtin" for t in templates)
        assert service.clear_cache() == 0

    def test_parse_template_name(self):
        """Test parsing a template directory name."""
        service = TemplateCatalogService(MagicMock())
        result = service._parse_template_name("IDTA 02006-2-0_Submodel_Digital Nameplate")
        assert result == {"idta_number": "02006", "title": "Digital Nameplate"}

    def test_parse_template_name_without_number(self):
        """Test parsing a name without an IDTA prefix."""
        service = TemplateCatalogService(MagicMock())
        result = service._parse_template_name("Custom_Template")
        assert result["idta_number"] is None
        assert result["title"] == "Template"


class TestBuildSubmodel:
    """Tests for seeding submodels from skeletons."""

    def test_nameplate_by_title(self):
        """Test that titles resolve to the matching skeleton."""
        submodel = TemplateCatalogService(MagicMock()).build_submodel("Digital Nameplate")
        assert submodel.idShort == "DigitalNameplate"
        assert submodel.semanticId == BUILTIN_TEMPLATES["Nameplate"]["semanticId"]
        address = next(e for e in submodel.elements if e.idShort == "AddressInformation")
        assert isinstance(address, SubmodelElementCollection)
        assert address.cardinality is Cardinality.ONE
        assert [child.idShort for child in address.children] == [
            "Street",
            "Zipcode",
            "CityTown",
            "Country",
        ]

    def test_directory_name_and_explicit_id_short(self):
        """Test matching a catalog directory name and overriding the idShort."""
        submodel = TemplateCatalogService(MagicMock()).build_submodel(
            "IDTA 02006-2-0_Submodel_Digital Nameplate", id_short="Nameplate"
        )
        assert submodel.idShort == "Nameplate"
        assert submodel.elements[0].idShort == "URIOfTheProduct"

    def test_fresh_elements_per_call(self):
        """Test that seeded submodels do not share element objects."""
        service = TemplateCatalogService(MagicMock())
        first = service.build_submodel("Nameplate")
        second = service.build_submodel("Nameplate")
        first.elements[0].value = "changed"
        assert second.elements[0].value == ""

    def test_unknown_name_uses_default_structure(self):
        """Test the single optional Property fallback."""
        submodel = TemplateCatalogService(MagicMock()).build_submodel("My Custom Model")
        assert submodel.idShort == "MyCustomModel"
        assert submodel.semanticId is None
        assert [e.idShort for e in submodel.elements] == ["Property1"]
        assert submodel.elements[0].cardinality is Cardinality.ZERO_TO_ONE
