"""
Validation Service.

Two phases:
- Local: required values, value types and lexical checks on the tree
- Remote: schema compliance of the record (JSON) and markup (XML) forms

A remote check that cannot be performed counts as "unavailable" and never
blocks acceptance on its own.
"""

import asyncio
import json
import logging
from typing import Any

from aas_editor.clients.schema_validator import SchemaValidatorClient
from aas_editor.schemas.elements import Property
from aas_editor.schemas.environment import AASRecord
from aas_editor.schemas.validation import (
    IssueCounts,
    LocalValidationResult,
    SchemaCheckResult,
    SchemaCheckStatus,
    ValidationError,
    ValidationReport,
)
from aas_editor.services.json_encoder import RecordEncoder
from aas_editor.services.session import EditorSession
from aas_editor.services.tree import iter_elements
from aas_editor.services.xml_encoder import MarkupEncoder
from aas_editor.utils.line_index import PATH_SEPARATOR, LineIndex
from aas_editor.utils.xsd_types import normalize_value_type, resolve_value_type, value_matches_type

logger = logging.getLogger(__name__)

# Message fragment -> hint, first match wins
SCHEMA_HINTS: list[tuple[str, str]] = [
    ("valuetype", "Declare a value type (e.g. xs:string) before the value."),
    ("idshort", "idShort must start with a letter and use only letters, digits, '_' or '-'."),
    ("langstring", "Add at least one language entry with non-empty text."),
    ("contenttype", "Provide a MIME type such as application/pdf."),
    ("keys", "References need at least one key."),
    ("specificassetid", "Provide at least one specific asset id."),
    ("minlength", "The value must not be empty."),
    ("pattern", "The value does not match the required format."),
    ("missing child element", "A required child element is missing; run the repair."),
    ("is not expected", "An element is misplaced or out of order; run the repair."),
    ("is not a valid value", "The value does not match its declared type."),
]


class ValidationInProgressError(RuntimeError):
    """Raised when a validation run is already in flight for the session."""


def hint_for_message(message: str) -> str | None:
    lowered = message.lower()
    for fragment, hint in SCHEMA_HINTS:
        if fragment in lowered:
            return hint
    return None


def resolve_pointer(document: dict[str, Any], pointer: str | None) -> str | None:
    """
    Translate a JSON pointer into an idShort path.

    Example:
        "/submodels/0/submodelElements/1/value" -> "Nameplate > Address"
    """
    if not pointer:
        return None

    current: Any = document
    chain: list[str] = []
    for token in pointer.strip("/").split("/"):
        token = token.replace("~1", "/").replace("~0", "~")
        if isinstance(current, list) and token.isdigit() and int(token) < len(current):
            current = current[int(token)]
        elif isinstance(current, dict) and token in current:
            current = current[token]
        else:
            break
        if isinstance(current, dict) and current.get("modelType") not in (
            None,
            "AssetAdministrationShell",
        ) and current.get("idShort"):
            chain.append(str(current["idShort"]))
    return PATH_SEPARATOR.join(chain) or None


class ValidationService:
    """Run local and remote validation for editor sessions."""

    def __init__(
        self,
        client: SchemaValidatorClient,
        markup_encoder: MarkupEncoder,
        record_encoder: RecordEncoder,
    ):
        self.client = client
        self.markup_encoder = markup_encoder
        self.record_encoder = record_encoder

    def validate_local(self, record: AASRecord) -> LocalValidationResult:
        """
        Check required values and value types on the tree.

        Returns:
            Errors with navigable paths, flagged node ids and the ancestor
            node ids that must be expanded to reveal them
        """
        result = LocalValidationResult()
        expand: set[str] = set()

        for submodel in record.submodels:
            for path, element in iter_elements(submodel.elements):
                issues = self._check_element(element)
                if not issues:
                    continue

                node_id = ".".join((submodel.idShort,) + path)
                display = PATH_SEPARATOR.join((submodel.idShort,) + path)
                for code, message in issues:
                    result.errors.append(
                        ValidationError(
                            field=display,
                            message=message,
                            code=code,
                            submodel=submodel.idShort,
                            path=list(path),
                            nodeId=node_id,
                        )
                    )
                if node_id not in result.flaggedNodes:
                    result.flaggedNodes.append(node_id)
                for depth in range(len(path)):
                    expand.add(".".join((submodel.idShort,) + path[:depth]))

        result.expandNodes = sorted(expand, key=lambda node: (node.count("."), node))
        return result

    def _check_element(self, element) -> list[tuple[str, str]]:
        issues = []
        if isinstance(element, Property):
            resolved = resolve_value_type(element.valueType, element.dataType)
            if resolved is None:
                if element.valueType and element.valueType.strip():
                    issues.append(("invalid_type", f"Unknown value type '{element.valueType}'"))
                else:
                    issues.append(("missing_type", "Value type is missing"))
            elif not value_matches_type(element.value, resolved):
                issues.append(
                    ("type_mismatch", f"Value '{element.value}' does not match type {resolved}")
                )
            elif element.valueType and normalize_value_type(element.valueType) is None:
                issues.append(("invalid_type", f"Unknown value type '{element.valueType}'"))

        if element.cardinality.required and element.is_empty():
            issues.append(("required", f"'{element.idShort}' is required and has no value"))
        return issues

    async def validate(self, session: EditorSession) -> ValidationReport:
        """
        Run both phases for a session.

        Raises:
            ValidationInProgressError: If another run is still in flight
        """
        if session.validating:
            logger.info("Dropping validation request for session %s: run in flight", session.id)
            raise ValidationInProgressError("Validation already in progress")

        session.validating = True
        try:
            revision = session.revision
            local = self.validate_local(session.record)
            markup = session.ensure_markup(self.markup_encoder)
            line_index = session.line_index
            record_document = self.record_encoder.encode(session.record)

            record_result, markup_result = await asyncio.gather(
                self.client.validate_json(json.dumps(record_document, ensure_ascii=False)),
                self.client.validate_xml(markup),
            )
            self._annotate_record_issues(record_result, record_document)
            self._annotate_markup_issues(markup_result, markup, line_index)

            warnings = []
            for label, check in (("Record", record_result), ("Markup", markup_result)):
                if check.status == SchemaCheckStatus.UNAVAILABLE:
                    warnings.append(
                        f"{label} schema validation skipped: {check.detail or 'service unavailable'}"
                    )

            report = ValidationReport(
                valid=local.valid and record_result.acceptable and markup_result.acceptable,
                revision=revision,
                local=local,
                record=record_result,
                markup=markup_result,
                counts=IssueCounts(
                    required=len(local.errors),
                    record_schema=len(record_result.errors),
                    markup_schema=len(markup_result.errors),
                ),
                warnings=warnings,
            )
            session.mark_validated(revision, report)
            logger.info(
                "Validated session %s revision %d: valid=%s", session.id, revision, report.valid
            )
            return report
        finally:
            session.validating = False

    def _annotate_record_issues(self, result: SchemaCheckResult, document: dict[str, Any]) -> None:
        for issue in result.errors:
            issue.path = resolve_pointer(document, issue.pointer)
            issue.hint = hint_for_message(issue.message)

    def _annotate_markup_issues(
        self, result: SchemaCheckResult, markup: str, line_index: LineIndex | None
    ) -> None:
        if line_index is None:
            line_index = LineIndex.build(markup)
        for issue in result.errors:
            issue.path = line_index.resolve(markup, issue.line)
            issue.hint = hint_for_message(issue.message)
