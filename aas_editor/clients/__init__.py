"""HTTP clients for external services."""

from aas_editor.clients.github_client import GitHubClient
from aas_editor.clients.schema_validator import SchemaValidatorClient

__all__ = ["GitHubClient", "SchemaValidatorClient"]
