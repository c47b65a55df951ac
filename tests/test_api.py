"""
Tests for the HTTP API.
"""

import zipfile
from io import BytesIO
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import build_record

from aas_editor.dependencies import get_catalog, get_session_store, get_validation_service
from aas_editor.main import app
from aas_editor.schemas.validation import SchemaCheckResult, SchemaCheckStatus
from aas_editor.services.catalog import TemplateCatalogService
from aas_editor.services.json_encoder import RecordEncoder
from aas_editor.services.session import SessionStore
from aas_editor.services.validator import ValidationService
from aas_editor.services.xml_encoder import MarkupEncoder

SHELL = {
    "idShort": "Pump",
    "id": "https://example.com/aas/pump",
    "globalAssetId": "https://example.com/asset/pump",
}


@pytest.fixture
def schema_client() -> MagicMock:
    client = MagicMock()
    client.validate_json = AsyncMock(return_value=SchemaCheckResult(status=SchemaCheckStatus.VALID))
    client.validate_xml = AsyncMock(return_value=SchemaCheckResult(status=SchemaCheckStatus.VALID))
    return client


@pytest.fixture
def client(schema_client):
    store = SessionStore()
    github = MagicMock()
    github.get_contents = AsyncMock(side_effect=httpx.ConnectError("offline"))
    service = ValidationService(
        client=schema_client, markup_encoder=MarkupEncoder(), record_encoder=RecordEncoder()
    )
    app.dependency_overrides[get_session_store] = lambda: store
    app.dependency_overrides[get_validation_service] = lambda: service
    app.dependency_overrides[get_catalog] = lambda: TemplateCatalogService(github)
    yield TestClient(app)
    app.dependency_overrides.clear()


def _create(client: TestClient, templates: list[str]) -> dict:
    response = client.post("/api/sessions", json={**SHELL, "templates": templates})
    assert response.status_code == 201
    return response.json()


class TestHealth:
    """Tests for the health endpoints."""

    def test_health(self, client):
        """Test the basic health check and security headers."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.headers["X-Content-Type-Options"] == "nosniff"

    def test_readiness_counts_sessions(self, client):
        """Test that readiness reports the number of open sessions."""
        _create(client, [])
        assert client.get("/health/readiness").json()["sessions"] == 1


class TestSessions:
    """Tests for session lifecycle endpoints."""

    def test_create_from_templates(self, client):
        """Test that each template name seeds one submodel."""
        session = _create(client, ["Nameplate", "Nameplate", "Custom"])
        assert session["revision"] == 0
        assert session["validated"] is False
        assert [s["idShort"] for s in session["record"]["submodels"]] == ["Nameplate", "Custom"]

    def test_create_requires_identifiers(self, client):
        """Test that blank shell identifiers are rejected."""
        response = client.post("/api/sessions", json={**SHELL, "id": ""})
        assert response.status_code == 422

    def test_unknown_session(self, client):
        """Test that unknown session ids answer 404."""
        assert client.get("/api/sessions/missing").status_code == 404

    def test_delete(self, client):
        """Test discarding a session."""
        session = _create(client, [])
        assert client.delete(f"/api/sessions/{session['id']}").status_code == 204
        assert client.get(f"/api/sessions/{session['id']}").status_code == 404

    def test_upload_markup(self, client):
        """Test opening an uploaded AAS XML document."""
        markup = MarkupEncoder().encode(build_record())
        response = client.post(
            "/api/sessions/upload",
            files={"file": ("pump.xml", markup.encode("utf-8"), "application/xml")},
        )
        assert response.status_code == 201
        record = response.json()["record"]
        assert record["idShort"] == "Pump4711"
        assert record["submodels"][0]["idShort"] == "Nameplate"

    def test_upload_rejects_other_files(self, client):
        """Test that unsupported extensions are refused."""
        response = client.post(
            "/api/sessions/upload", files={"file": ("notes.txt", b"hello", "text/plain")}
        )
        assert response.status_code == 400

    def test_upload_invalid_archive(self, client):
        """Test that corrupt archives answer 400."""
        response = client.post(
            "/api/sessions/upload",
            files={"file": ("broken.aasx", b"not a zip", "application/octet-stream")},
        )
        assert response.status_code == 400

    def test_add_and_remove_submodel(self, client):
        """Test appending and removing a submodel."""
        session = _create(client, [])
        base = f"/api/sessions/{session['id']}/submodels"
        added = client.post(base, json={"template": "Contact Information", "idShort": "Contact"})
        assert added.status_code == 201
        assert added.json()["revision"] == 1
        removed = client.delete(f"{base}/Contact")
        assert removed.json()["record"]["submodels"] == []
        assert client.delete(f"{base}/Contact").status_code == 404


class TestEditor:
    """Tests for element tree endpoints."""

    def test_element_lifecycle(self, client):
        """Test create, read, update, reorder and delete of an element."""
        session = _create(client, ["Custom"])
        base = f"/api/sessions/{session['id']}/submodels/Custom/elements"

        created = client.post(
            base,
            json={
                "parentPath": [],
                "element": {"modelType": "Property", "idShort": "Voltage", "valueType": "xs:double"},
                "index": 0,
            },
        )
        assert created.status_code == 201
        roots = client.get(base).json()
        assert [e["idShort"] for e in roots] == ["Voltage", "Property1"]

        updated = client.patch(base, json={"path": ["Voltage"], "changes": {"value": "230"}})
        assert updated.status_code == 200
        assert client.get(base, params={"path": "Voltage"}).json()["value"] == "230"

        reordered = client.post(
            f"{base}/reorder", json={"sourcePath": ["Property1"], "targetPath": ["Voltage"]}
        )
        assert reordered.status_code == 200
        assert [e["idShort"] for e in client.get(base).json()] == ["Property1", "Voltage"]

        deletable = client.get(f"{base}/deletable", params={"path": "Voltage"}).json()
        assert deletable == {"path": ["Voltage"], "deletable": True}
        deleted = client.delete(base, params={"path": "Voltage"})
        assert deleted.json()["revision"] == 4

    def test_nested_path_and_errors(self, client):
        """Test slash-joined paths and the error mapping."""
        session = _create(client, ["Nameplate"])
        base = f"/api/sessions/{session['id']}/submodels/Nameplate/elements"

        street = client.get(base, params={"path": "AddressInformation/Street"})
        assert street.json()["cardinality"] == "One"
        assert client.get(base, params={"path": "AddressInformation/Nope"}).status_code == 404
        assert client.get(f"/api/sessions/{session['id']}/submodels/Nope/elements").status_code == 404
        assert client.delete(base, params={"path": "AddressInformation/Street"}).status_code == 400
        duplicate = client.post(
            base,
            json={"element": {"modelType": "Property", "idShort": "SerialNumber"}},
        )
        assert duplicate.status_code == 400


class TestValidationAndExport:
    """Tests for validation, repair and export endpoints."""

    def test_export_requires_validation(self, client):
        """Test that exports are refused until the current revision is valid."""
        session = _create(client, ["Custom"])
        response = client.get(f"/api/sessions/{session['id']}/export/xml")
        assert response.status_code == 409

    def test_validate_then_export(self, client, schema_client):
        """Test a valid run unlocks all export formats."""
        session = _create(client, ["Custom"])
        report = client.post(f"/api/sessions/{session['id']}/validate").json()
        assert report["valid"] is True
        assert report["revision"] == 0
        schema_client.validate_xml.assert_awaited_once()

        xml = client.get(f"/api/sessions/{session['id']}/export/xml")
        assert xml.status_code == 200
        assert xml.headers["content-disposition"] == 'attachment; filename="Pump.xml"'
        assert xml.text.startswith('<?xml version="1.0" encoding="UTF-8"?>')

        document = client.get(f"/api/sessions/{session['id']}/export/json").json()
        assert document["submodels"][0]["idShort"] == "Custom"

        package = client.get(f"/api/sessions/{session['id']}/export/aasx")
        assert package.headers["content-type"] == "application/asset-administration-shell-package+xml"
        with zipfile.ZipFile(BytesIO(package.content)) as archive:
            assert "aasx/Pump/Pump.aas.xml" in archive.namelist()

    def test_edit_invalidates_export(self, client):
        """Test that an edit after validation locks exports again."""
        session = _create(client, ["Custom"])
        client.post(f"/api/sessions/{session['id']}/validate")
        client.patch(
            f"/api/sessions/{session['id']}/submodels/Custom/elements",
            json={"path": ["Property1"], "changes": {"value": "x"}},
        )
        assert client.get(f"/api/sessions/{session['id']}/export/json").status_code == 409

    def test_invalid_report(self, client):
        """Test that local errors are reported and keep exports locked."""
        session = _create(client, ["Nameplate"])
        report = client.post(f"/api/sessions/{session['id']}/validate").json()
        assert report["valid"] is False
        assert report["counts"]["required"] > 0
        assert "Nameplate.AddressInformation.Street" in report["local"]["flaggedNodes"]
        assert "Nameplate.AddressInformation" in report["local"]["expandNodes"]
        assert client.get(f"/api/sessions/{session['id']}/export/xml").status_code == 409

    def test_unavailable_validator_does_not_block(self, client, schema_client):
        """Test that an unreachable validator yields warnings only."""
        unavailable = SchemaCheckResult(status=SchemaCheckStatus.UNAVAILABLE, detail="timeout")
        schema_client.validate_xml.return_value = unavailable
        schema_client.validate_json.return_value = unavailable
        session = _create(client, ["Custom"])
        report = client.post(f"/api/sessions/{session['id']}/validate").json()
        assert report["valid"] is True
        assert len(report["warnings"]) == 2

    def test_repair_then_validate(self, client, schema_client):
        """Test that the repair fills required values and validates once."""
        session = _create(client, ["Nameplate"])
        response = client.post(f"/api/sessions/{session['id']}/repair")
        assert response.status_code == 200
        body = response.json()
        assert body["repair"]["changed"] is True
        assert "fill_required_values" in body["repair"]["appliedPasses"]
        assert body["report"]["counts"]["required"] == 0
        assert body["report"]["valid"] is True
        assert schema_client.validate_xml.await_count == 1

        current = client.get(f"/api/sessions/{session['id']}").json()
        assert current["validated"] is True
        street = client.get(
            f"/api/sessions/{session['id']}/submodels/Nameplate/elements",
            params={"path": "AddressInformation/Street"},
        ).json()
        assert street["value"] == "n/a"


class TestTemplates:
    """Tests for template endpoints."""

    def test_list_falls_back_to_builtin(self, client):
        """Test listing while GitHub is unreachable."""
        body = client.get("/api/templates", params={"search": "name"}).json()
        assert body["total"] == 1
        assert body["templates"][0]["name"] == "Nameplate"
        assert body["templates"][0]["source"] == "builtin"

    def test_skeleton(self, client):
        """Test previewing a template skeleton."""
        body = client.get("/api/templates/TechnicalData").json()
        assert body["idShort"] == "TechnicalData"
        assert body["elements"][0]["idShort"] == "GeneralInformation"

    def test_refresh(self, client):
        """Test clearing the template cache."""
        assert client.post("/api/templates/refresh").json() == {"cleared": 0}
