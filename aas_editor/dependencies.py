"""
FastAPI dependency injection setup.

Provides factory functions for service instances used across routes.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, HTTPException

from aas_editor.clients.github_client import GitHubClient
from aas_editor.clients.schema_validator import SchemaValidatorClient
from aas_editor.config import get_settings
from aas_editor.schemas.environment import SpecificAssetId
from aas_editor.services.catalog import TemplateCatalogService
from aas_editor.services.decoder import AASXDecoder
from aas_editor.services.json_encoder import RecordEncoder
from aas_editor.services.packager import AASXPackager
from aas_editor.services.repair import RepairEngine
from aas_editor.services.session import EditorSession, SessionNotFoundError, SessionStore
from aas_editor.services.synchronizer import TreeSynchronizer
from aas_editor.services.tree import ElementTreeService
from aas_editor.services.validator import ValidationService
from aas_editor.services.xml_encoder import MarkupEncoder


def _default_specific_asset_id() -> SpecificAssetId | None:
    settings = get_settings()
    if settings.specific_asset_id_name and settings.specific_asset_id_value:
        return SpecificAssetId(
            name=settings.specific_asset_id_name,
            value=settings.specific_asset_id_value,
        )
    return None


@lru_cache
def get_markup_encoder() -> MarkupEncoder:
    """Get cached markup encoder instance."""
    return MarkupEncoder(
        namespace=get_settings().aas_namespace,
        default_specific_asset_id=_default_specific_asset_id(),
    )


@lru_cache
def get_record_encoder() -> RecordEncoder:
    """Get cached record encoder instance."""
    return RecordEncoder(default_specific_asset_id=_default_specific_asset_id())


@lru_cache
def get_decoder() -> AASXDecoder:
    return AASXDecoder()


@lru_cache
def get_tree_service() -> ElementTreeService:
    return ElementTreeService()


@lru_cache
def get_session_store() -> SessionStore:
    """Get the process-wide session store."""
    return SessionStore()


@lru_cache
def get_schema_validator() -> SchemaValidatorClient:
    """Get cached remote schema validator client."""
    settings = get_settings()
    return SchemaValidatorClient(
        xml_validator_url=settings.xml_validator_url,
        json_validator_url=settings.json_validator_url,
        xml_schema_url=settings.xml_schema_url,
        json_schema_url=settings.json_schema_url,
        timeout=settings.validation_timeout_seconds,
    )


@lru_cache
def get_validation_service() -> ValidationService:
    """Get cached validation service instance."""
    return ValidationService(
        client=get_schema_validator(),
        markup_encoder=get_markup_encoder(),
        record_encoder=get_record_encoder(),
    )


@lru_cache
def get_repair_engine() -> RepairEngine:
    """Get cached repair engine instance."""
    settings = get_settings()
    return RepairEngine(
        placeholder_uri=settings.placeholder_uri,
        placeholder_asset_type=settings.placeholder_asset_type,
    )


@lru_cache
def get_synchronizer() -> TreeSynchronizer:
    return TreeSynchronizer(get_decoder())


@lru_cache
def get_packager() -> AASXPackager:
    return AASXPackager()


@lru_cache
def get_github_client() -> GitHubClient:
    settings = get_settings()
    return GitHubClient(token=settings.github_token, api_version=settings.github_api_version)


@lru_cache
def get_catalog() -> TemplateCatalogService:
    """Get cached template catalog instance."""
    settings = get_settings()
    return TemplateCatalogService(
        client=get_github_client(),
        github_repo=settings.github_repo,
        cache_ttl_hours=settings.cache_ttl_hours,
    )


def get_editor_session(
    session_id: str,
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> EditorSession:
    """Resolve the session named in the path, 404 when unknown."""
    try:
        return store.get(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
