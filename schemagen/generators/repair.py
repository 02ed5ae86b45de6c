"""
Post-processing invariant repair for schema graphs.

Runs on plain JSON-LD dicts so it can be applied to builder output and
to untrusted generative-model output alike. Two guarantees:

1. Pure references. A reference field holding an object with an @id is
   reduced to {"@id": ...} when some top-level entity owns that id. A
   nested definition nobody owns is hoisted to a top-level entity first
   (when its type is one the graph supports) and then referenced.
2. Addresses. Every business-typed entity, top-level or nested as a
   Service provider, ends up with an address pinning a street or a
   locality. Missing sub-fields are filled; explicit ones are never
   overwritten.

The pass is idempotent: repairing a repaired graph changes nothing.
"""
import copy
from typing import Any, Dict, List, Optional, Sequence

from schemagen.models.page import BUSINESS_TYPES, PostalAddress
from schemagen.models.schema import entity_tag
from schemagen.generators.builders.common import derive_address
from schemagen.utils.logger import LayerLogger

REFERENCE_FIELDS = (
    "provider",
    "publisher",
    "author",
    "isPartOf",
    "about",
    "mainEntityOfPage",
    "primaryImageOfPage",
    "breadcrumb",
    "image",
)

logger = LayerLogger("schema_repair")


def _is_business(node: Any) -> bool:
    return isinstance(node, dict) and node.get("@type") in BUSINESS_TYPES


def _area_names(value: Any) -> List[str]:
    """Names out of an areaServed value (City dict, string, or a list of either)."""
    items = value if isinstance(value, list) else [value]
    names = []
    for item in items:
        if isinstance(item, str) and item.strip():
            names.append(item.strip())
        elif isinstance(item, dict) and isinstance(item.get("name"), str) and item["name"].strip():
            names.append(item["name"].strip())
    return names


def _has_place(address: Any) -> bool:
    return isinstance(address, dict) and bool(address.get("streetAddress") or address.get("addressLocality"))


def ensure_business_address(
    node: Dict[str, Any],
    areas: Sequence[str] = (),
    phone: Optional[str] = None,
    fallback_locality: Optional[str] = None,
) -> bool:
    """
    Fill a business node's address (and telephone) in place.

    Returns True when anything changed.
    """
    changed = False
    existing = node.get("address")
    if isinstance(existing, str):
        existing = {"@type": "PostalAddress", "streetAddress": existing} if existing.strip() else None

    own_areas = _area_names(node.get("areaServed")) or list(areas)

    explicit = None
    if isinstance(existing, dict):
        scalars = {k: str(v) for k, v in existing.items() if isinstance(v, (str, int, float)) and not isinstance(v, bool)}
        explicit = PostalAddress.model_validate(scalars)

    derived = derive_address(explicit, own_areas, fallback_locality or node.get("name"))

    # Keep the original key order; fill only keys that are missing or blank
    merged = dict(existing) if isinstance(existing, dict) else {}
    for key, value in derived.model_dump(by_alias=True, exclude_none=True).items():
        if not merged.get(key):
            merged[key] = value
    if node.get("address") != merged:
        node["address"] = merged
        changed = True

    if phone and not node.get("telephone"):
        node["telephone"] = phone
        changed = True
    return changed


def repair_graph(
    entities: List[Dict[str, Any]],
    areas: Sequence[str] = (),
    phone: Optional[str] = None,
    fallback_locality: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    Return a repaired copy of a list of JSON-LD entities.

    Args:
        entities: Top-level graph entities (never mutated)
        areas: Served areas used to synthesize missing addresses
        phone: Telephone to fill on business entities missing one
        fallback_locality: Locality used when no area is known (defaults to the entity name)
    """
    graph = [copy.deepcopy(e) for e in entities if isinstance(e, dict)]
    for entity in graph:
        entity.pop("@context", None)

    owners: Dict[str, Dict[str, Any]] = {}
    for entity in graph:
        entity_id = entity.get("@id")
        if isinstance(entity_id, str) and entity_id not in owners:
            owners[entity_id] = entity

    stripped = 0
    hoisted = 0

    def to_reference(value: Any) -> Any:
        nonlocal stripped, hoisted
        if not isinstance(value, dict) or not isinstance(value.get("@id"), str) or len(value) == 1:
            return value
        ref_id = value["@id"]
        owner = owners.get(ref_id)
        if owner is None:
            if entity_tag(value) is None:
                # Not a graph entity type; keep the nested definition
                return value
            owner = copy.deepcopy(value)
            graph.append(owner)
            owners[ref_id] = owner
            hoisted += 1
        else:
            # Fill-only merge so no information is lost when stripping
            for key, field_value in value.items():
                owner.setdefault(key, field_value)
            stripped += 1
        return {"@id": ref_id}

    # Hoisted entities are appended while iterating and get processed too
    index = 0
    while index < len(graph):
        entity = graph[index]
        for field in REFERENCE_FIELDS:
            if field not in entity:
                continue
            value = entity[field]
            if isinstance(value, list):
                entity[field] = [to_reference(v) for v in value]
            else:
                entity[field] = to_reference(value)
        index += 1

    filled = 0
    for entity in graph:
        if _is_business(entity):
            if ensure_business_address(entity, areas, phone, fallback_locality):
                filled += 1
        provider = entity.get("provider")
        if _is_business(provider):
            if ensure_business_address(provider, areas, phone, fallback_locality):
                filled += 1

    if stripped or hoisted or filled:
        logger.log_action(
            "graph_repair",
            "completed",
            references_stripped=stripped,
            entities_hoisted=hoisted,
            addresses_filled=filled,
        )

    return graph
