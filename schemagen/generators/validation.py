"""
Schema graph validation.

One per-type table of required/recommended fields, used both for
construction-time checks in the composer and for post-hoc validation of
any graph (including externally supplied JSON). Required issues block
persistence; recommended issues are warnings.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

from schemagen.models.schema import SchemaGraph, entity_tag


class Severity(str, Enum):
    REQUIRED = "required"
    RECOMMENDED = "recommended"


@dataclass
class ValidationIssue:
    """One problem found in a graph."""
    entity_type: str
    field: str
    message: str
    severity: Severity = Severity.REQUIRED

    def to_dict(self) -> Dict[str, str]:
        return {
            "entityType": self.entity_type,
            "field": self.field,
            "message": self.message,
            "severity": self.severity.value,
        }


@dataclass
class ValidationReport:
    valid: bool
    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)
    schema_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": [i.to_dict() for i in self.errors],
            "warnings": [i.to_dict() for i in self.warnings],
            "schemaCount": self.schema_count,
        }


@dataclass(frozen=True)
class FieldRules:
    required: tuple = ()
    recommended: tuple = ()


# Keyed by union tag (Article covers BlogPosting/NewsArticle, LocalBusiness every subtype)
FIELD_RULES: Dict[str, FieldRules] = {
    "Article": FieldRules(required=("headline",), recommended=("author", "datePublished", "publisher", "image")),
    "Service": FieldRules(required=("name", "provider"), recommended=("description", "areaServed")),
    "LocalBusiness": FieldRules(required=("name", "address"), recommended=("url", "telephone")),
    "FAQPage": FieldRules(required=("mainEntity",)),
    "BreadcrumbList": FieldRules(required=("itemListElement",)),
    "Place": FieldRules(required=("name",), recommended=("address",)),
    "WebPage": FieldRules(required=("url",), recommended=("name",)),
    "ImageObject": FieldRules(required=("url",)),
    "WebSite": FieldRules(required=("url",), recommended=("name",)),
}


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (str, list, dict)):
        return len(value) > 0
    return True


def _pins_place(address: Any) -> bool:
    return isinstance(address, dict) and bool(address.get("streetAddress") or address.get("addressLocality"))


def _iter_refs(node: Any):
    """Yield every pure {"@id": ...} object nested anywhere under node."""
    if isinstance(node, dict):
        if len(node) == 1 and isinstance(node.get("@id"), str):
            yield node["@id"]
            return
        for value in node.values():
            yield from _iter_refs(value)
    elif isinstance(node, list):
        for item in node:
            yield from _iter_refs(item)


class GraphValidator:
    """Validate a graph against FIELD_RULES plus cross-entity checks."""

    def validate(self, graph: Union[SchemaGraph, Dict[str, Any]]) -> ValidationReport:
        """
        Args:
            graph: SchemaGraph, a {"@context", "@graph"} dict or a single entity dict

        Returns:
            ValidationReport (valid when there are no required issues)
        """
        document = graph.to_jsonld() if isinstance(graph, SchemaGraph) else graph
        errors: List[ValidationIssue] = []
        warnings: List[ValidationIssue] = []

        def issue(entity_type: str, field_name: str, message: str, severity: Severity = Severity.REQUIRED):
            target = errors if severity == Severity.REQUIRED else warnings
            target.append(ValidationIssue(entity_type, field_name, message, severity))

        if not document.get("@context"):
            issue("graph", "@context", "Missing @context")

        entities = document["@graph"] if isinstance(document.get("@graph"), list) else [document]
        owners: Dict[str, Dict[str, Any]] = {}

        for entity in entities:
            if not isinstance(entity, dict):
                issue("graph", "@graph", "Graph entries must be objects")
                continue
            entity_id = entity.get("@id")
            if isinstance(entity_id, str):
                if entity_id in owners:
                    issue(str(entity.get("@type")), "@id", f"Duplicate @id {entity_id}")
                else:
                    owners[entity_id] = entity

        for entity in entities:
            if not isinstance(entity, dict):
                continue
            schema_type = entity.get("@type")
            if not schema_type:
                issue("unknown", "@type", "Missing @type in schema")
                continue

            for args in _entity_issues(entity, owners):
                issue(*args)

        for entity in entities:
            if not isinstance(entity, dict):
                continue
            for ref_id in _iter_refs(entity):
                if ref_id not in owners:
                    issue(str(entity.get("@type")), "@id", f"Reference {ref_id} has no entity in the graph", Severity.RECOMMENDED)

        return ValidationReport(
            valid=not errors,
            errors=errors,
            warnings=warnings,
            schema_count=len(entities),
        )

    def validate_entity(self, entity: Dict[str, Any]) -> ValidationReport:
        """
        Field checks for one entity stored on its own.

        Checks that need the rest of the graph (provider resolution,
        dangling references, duplicate ids) are skipped.
        """
        errors: List[ValidationIssue] = []
        warnings: List[ValidationIssue] = []
        if not entity.get("@type"):
            errors.append(ValidationIssue("unknown", "@type", "Missing @type in schema"))
        else:
            for args in _entity_issues(entity, owners=None):
                issue = ValidationIssue(*args)
                (errors if issue.severity == Severity.REQUIRED else warnings).append(issue)
        return ValidationReport(valid=not errors, errors=errors, warnings=warnings, schema_count=1)


def _entity_issues(entity: Dict[str, Any], owners: Optional[Dict[str, Dict[str, Any]]]) -> List[tuple]:
    """(type, field, message, severity) issues of one entity; owners=None skips graph-wide checks."""
    schema_type = entity["@type"]
    tag = entity_tag(entity)
    rules = FIELD_RULES.get(tag) if tag else None
    if rules is None:
        return [(str(schema_type), "@type", f"Unsupported schema type {schema_type}", Severity.RECOMMENDED)]

    found = []
    for name in rules.required:
        if not _present(entity.get(name)):
            found.append((schema_type, name, f"Missing {name}", Severity.REQUIRED))
    for name in rules.recommended:
        if not _present(entity.get(name)):
            found.append((schema_type, name, f"Missing {name} (recommended)", Severity.RECOMMENDED))

    if owners is None and tag in _GRAPH_CHECKS:
        return found
    extra_check = _TYPE_CHECKS.get(tag)
    if extra_check is not None:
        for field_name, message, severity in extra_check(entity, owners):
            found.append((schema_type, field_name, message, severity))
    return found


def _resolve(value: Any, owners: Dict[str, Dict[str, Any]]) -> Any:
    if isinstance(value, dict) and len(value) == 1 and "@id" in value:
        return owners.get(value["@id"])
    return value


def _check_service(entity: Dict[str, Any], owners) -> List[tuple]:
    provider = entity.get("provider")
    if not _present(provider):
        return []
    resolved = _resolve(provider, owners)
    if not isinstance(resolved, dict):
        return [("provider", "Provider reference does not resolve to an entity in the graph", Severity.REQUIRED)]
    if not _pins_place(resolved.get("address")):
        return [("provider.address", "Provider address must include streetAddress or addressLocality", Severity.REQUIRED)]
    return []


def _check_business(entity: Dict[str, Any], owners) -> List[tuple]:
    address = entity.get("address")
    if _present(address) and not _pins_place(address):
        return [("address", "Address must include streetAddress or addressLocality", Severity.REQUIRED)]
    return []


def _check_breadcrumb(entity: Dict[str, Any], owners) -> List[tuple]:
    items = entity.get("itemListElement") or []
    if 0 < len(items) < 2:
        return [("itemListElement", "Should have at least 2 items", Severity.RECOMMENDED)]
    return []


_TYPE_CHECKS: Dict[str, Callable[[Dict[str, Any], Dict[str, Dict[str, Any]]], List[tuple]]] = {
    "Service": _check_service,
    "LocalBusiness": _check_business,
    "BreadcrumbList": _check_breadcrumb,
}

# Checks that resolve references against the rest of the graph
_GRAPH_CHECKS = frozenset({"Service"})


def validate_graph(graph: Union[SchemaGraph, Dict[str, Any]]) -> ValidationReport:
    return GraphValidator().validate(graph)

