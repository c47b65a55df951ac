"""
Application configuration using Pydantic Settings.

Supports environment variables and .env files for configuration.
"""

from functools import lru_cache
import json
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings

AAS_SCHEMA_BASE = (
    "https://raw.githubusercontent.com/admin-shell-io/aas-specs-metamodel/"
    "refs/heads/master/schemas"
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    env: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 4

    # CORS
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # GitHub API (template catalog)
    github_token: str | None = None
    github_repo: str = "admin-shell-io/submodel-templates"
    github_api_version: str = "2022-11-28"
    cache_ttl_hours: int = 24

    # File upload limits
    max_upload_size_mb: int = 50

    # Markup form
    aas_namespace: str = "https://admin-shell.io/aas/3/0"

    # Remote schema validation
    xml_validator_url: str | None = "https://libs.iot-catalogue.com/xmllint-wasm/validateXML"
    json_validator_url: str | None = None
    xml_schema_url: str = f"{AAS_SCHEMA_BASE}/xml/AAS.xsd"
    json_schema_url: str = f"{AAS_SCHEMA_BASE}/json/aas.json"
    validation_timeout_seconds: float = 30.0

    # Shell defaults
    specific_asset_id_name: str | None = None
    specific_asset_id_value: str | None = None

    # Repair placeholders
    placeholder_uri: str = "urn:placeholder"
    placeholder_asset_type: str = "Unspecified"

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            value = v.strip()
            if value.startswith("["):
                try:
                    parsed = json.loads(value)
                    if isinstance(parsed, list):
                        return [str(origin).strip() for origin in parsed if str(origin).strip()]
                except json.JSONDecodeError:
                    pass
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("xml_validator_url", "json_validator_url", mode="before")
    @classmethod
    def blank_url_disables(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
