"""
Remote schema validation client.

Submits documents together with their schema to an xmllint-style HTTP
validation service. The service is treated as unreliable: any network
failure, timeout, server error or malformed answer yields an "unavailable"
result instead of an exception.
"""

import asyncio
import logging
import re
from typing import Any

import httpx

from aas_editor.schemas.validation import SchemaCheckResult, SchemaCheckStatus, SchemaIssue

logger = logging.getLogger(__name__)

UNAVAILABLE_MARKERS = (
    "service unavailable",
    "load failed",
    "timeout",
    "timed out",
    "network",
    "cors",
)

LINE_PATTERN = re.compile(r"(?:\.xml:(\d+)\b|\bline[\s:]+(\d+))", re.IGNORECASE)


def _is_unavailable_message(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in UNAVAILABLE_MARKERS)


def _line_from_message(message: str) -> int | None:
    match = LINE_PATTERN.search(message)
    if not match:
        return None
    return int(match.group(1) or match.group(2))


def _issue_from_entry(entry: Any) -> SchemaIssue:
    if isinstance(entry, dict):
        message = str(entry.get("message") or entry.get("rawMessage") or entry)
        line = entry.get("line")
        location = entry.get("loc")
        if line is None and isinstance(location, dict):
            line = location.get("lineNumber")
        pointer = entry.get("instancePath") or entry.get("pointer") or entry.get("path")
        return SchemaIssue(
            message=message,
            line=int(line) if str(line).isdigit() else _line_from_message(message),
            pointer=str(pointer) if pointer is not None else None,
        )
    message = str(entry)
    return SchemaIssue(message=message, line=_line_from_message(message))


def _issues_from_output(output: str) -> list[SchemaIssue]:
    lines = [line.strip() for line in output.splitlines() if line.strip()]
    errors = [line for line in lines if "error" in line.lower()]
    return [SchemaIssue(message=line, line=_line_from_message(line)) for line in errors]


def interpret_response(body: Any) -> SchemaCheckResult:
    """
    Normalize a validation service response.

    Accepts the ``{valid, errors}`` shape as well as raw xmllint output
    (``stderr``, ``stdout``, ``returnCode``).
    """
    if not isinstance(body, dict):
        return SchemaCheckResult(
            status=SchemaCheckStatus.UNAVAILABLE, detail="Malformed validator response"
        )

    status = str(body.get("status", "")).lower()
    top_error = body.get("error")
    if status == "unavailable" or (
        isinstance(top_error, str) and _is_unavailable_message(top_error)
    ):
        return SchemaCheckResult(
            status=SchemaCheckStatus.UNAVAILABLE,
            detail=str(top_error or "Validation service unavailable"),
        )

    entries = body.get("errors") or []
    if isinstance(entries, (str, dict)):
        entries = [entries]
    issues = [_issue_from_entry(entry) for entry in entries]

    if issues and all(_is_unavailable_message(issue.message) for issue in issues):
        return SchemaCheckResult(
            status=SchemaCheckStatus.UNAVAILABLE, detail=issues[0].message
        )

    if not issues:
        for key in ("stderr", "stdout"):
            output = body.get(key)
            if isinstance(output, str) and "error" in output.lower():
                issues = _issues_from_output(output)
                break

    return_code = body.get("returnCode")
    if not issues and body.get("valid") is False:
        issues = [SchemaIssue(message="Document does not conform to the schema")]
    if not issues and return_code not in (None, 0):
        output = str(body.get("stderr") or body.get("stdout") or "").strip()
        issues = [SchemaIssue(message=output or f"Validator exited with code {return_code}")]

    if issues:
        return SchemaCheckResult(status=SchemaCheckStatus.INVALID, errors=issues)
    return SchemaCheckResult(status=SchemaCheckStatus.VALID)


class SchemaValidatorClient:
    """
    Async client for the remote schema validation service.

    Features:
    - Schema documents fetched once and cached in memory
    - Whole round-trip bounded by a fixed timeout
    - Unavailability reported as a result, never raised
    """

    def __init__(
        self,
        xml_validator_url: str | None,
        json_validator_url: str | None,
        xml_schema_url: str,
        json_schema_url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.xml_validator_url = xml_validator_url
        self.json_validator_url = json_validator_url
        self.xml_schema_url = xml_schema_url
        self.json_schema_url = json_schema_url
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._schema_cache: dict[str, str] = {}

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                headers={"User-Agent": "AAS-Editor/1.0"},
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def fetch_schema(self, url: str) -> str | None:
        """
        Download a schema document.

        Returns:
            Schema text, or None when it cannot be fetched
        """
        if url in self._schema_cache:
            logger.debug("Returning cached schema %s", url)
            return self._schema_cache[url]

        logger.info("Fetching schema from %s", url)
        client = await self._get_client()
        try:
            response = await asyncio.wait_for(
                client.get(url, follow_redirects=True), timeout=self.timeout
            )
            response.raise_for_status()
        except (httpx.HTTPError, asyncio.TimeoutError) as e:
            logger.warning("Could not fetch schema %s: %s", url, e)
            return None

        self._schema_cache[url] = response.text
        return response.text

    async def validate_xml(self, document: str) -> SchemaCheckResult:
        """Validate markup against the AAS XSD."""
        return await self._submit(
            self.xml_validator_url,
            field="xml",
            file_name="input.xml",
            document=document,
            schema_name="AAS.xsd",
            schema_url=self.xml_schema_url,
        )

    async def validate_json(self, document: str) -> SchemaCheckResult:
        """Validate the record form against the AAS JSON schema."""
        return await self._submit(
            self.json_validator_url,
            field="json",
            file_name="input.json",
            document=document,
            schema_name="aas.json",
            schema_url=self.json_schema_url,
        )

    async def _submit(
        self,
        url: str | None,
        field: str,
        file_name: str,
        document: str,
        schema_name: str,
        schema_url: str,
    ) -> SchemaCheckResult:
        if url is None:
            return SchemaCheckResult(
                status=SchemaCheckStatus.UNAVAILABLE,
                detail=f"No validator configured for {field}",
            )

        schema = await self.fetch_schema(schema_url)
        if schema is None:
            return SchemaCheckResult(
                status=SchemaCheckStatus.UNAVAILABLE,
                detail=f"Schema {schema_name} could not be loaded",
            )

        payload = {
            field: [{"fileName": file_name, "contents": document}],
            "schema": [{"fileName": schema_name, "contents": schema}],
        }

        logger.info("Submitting %s to schema validator %s", file_name, url)
        client = await self._get_client()
        try:
            response = await asyncio.wait_for(client.post(url, json=payload), timeout=self.timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.warning("Schema validation of %s timed out", file_name)
            return SchemaCheckResult(status=SchemaCheckStatus.UNAVAILABLE, detail="Validator timeout")
        except httpx.HTTPError as e:
            logger.warning("Schema validator unreachable: %s", e)
            return SchemaCheckResult(status=SchemaCheckStatus.UNAVAILABLE, detail=str(e))

        if response.status_code >= 400:
            logger.warning(
                "Schema validator answered HTTP %s for %s", response.status_code, file_name
            )
            return SchemaCheckResult(
                status=SchemaCheckStatus.UNAVAILABLE,
                detail=f"Validator returned HTTP {response.status_code}",
            )

        try:
            body = response.json()
        except ValueError:
            return SchemaCheckResult(
                status=SchemaCheckStatus.UNAVAILABLE, detail="Validator returned non-JSON body"
            )

        result = interpret_response(body)
        logger.info("Schema validation of %s: %s", file_name, result.status.value)
        return result
