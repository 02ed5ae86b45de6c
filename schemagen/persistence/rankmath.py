"""
Rank Math storage convention.

Every schema lives in its own postmeta row keyed ``rank_math_schema_{Type}``.
The value is a PHP serialized array: a ``metadata`` block first, then the
entity's own fields (without ``@context``, Rank Math adds it on output).
"""
import secrets
from typing import Any, Dict, Optional

from schemagen.models.page import BUSINESS_TYPES
from schemagen.persistence.php_serialize import php_serialize, try_unserialize

SCHEMA_PREFIX = "rank_math_schema_"
RICH_SNIPPET_KEY = "rank_math_rich_snippet"
CUSTOM_TYPE = "Custom"

# Types Rank Math accepts as a page's primary schema
PRIMARY_CAPABLE = frozenset({
    "Service",
    "Organization",
    "Article",
    "NewsArticle",
    "BlogPosting",
    "HowTo",
    "Product",
    "Event",
    "Person",
    "Recipe",
    "VideoObject",
    "Course",
    "JobPosting",
    "SoftwareApplication",
    "Book",
    CUSTOM_TYPE,
}) | BUSINESS_TYPES

# Known non-primary types, used to prefer a specific entry in @type lists
SECONDARY_TYPES = frozenset({
    "FAQPage",
    "Offer",
    "Review",
    "AggregateRating",
    "Place",
    "BreadcrumbList",
    "WebPage",
    "WebSite",
    "ImageObject",
})

KNOWN_TYPES = PRIMARY_CAPABLE | SECONDARY_TYPES

# rank_math_rich_snippet values per primary schema type
RICH_SNIPPET_TYPES: Dict[str, str] = {
    "Article": "article",
    "BlogPosting": "article",
    "NewsArticle": "article",
    "Service": "service",
    "Product": "product",
    "FAQPage": "faq",
    "HowTo": "howto",
    "Recipe": "recipe",
    "Event": "event",
    "Course": "course",
    "VideoObject": "video",
    "JobPosting": "job_posting",
    **{t: "local_business" for t in BUSINESS_TYPES},
}


def rich_snippet_type(schema_type: str) -> Optional[str]:
    return RICH_SNIPPET_TYPES.get(schema_type)


def meta_key(schema_type: str) -> str:
    return f"{SCHEMA_PREFIX}{schema_type}"


def schema_type_of(entity: Optional[Dict[str, Any]]) -> str:
    """
    Storage type for an entity.

    Lists of types (["WebPage", "FAQPage"]) resolve to the first known
    entry, else the first entry. Missing types store as Custom.
    """
    if not entity:
        return CUSTOM_TYPE
    schema_type = entity.get("@type")
    if not schema_type:
        return CUSTOM_TYPE
    if isinstance(schema_type, list):
        for candidate in schema_type:
            if candidate in KNOWN_TYPES:
                return candidate
        return str(schema_type[0]) if schema_type else CUSTOM_TYPE
    return str(schema_type)


def can_be_primary(schema_type: str) -> bool:
    return schema_type in PRIMARY_CAPABLE


def new_shortcode() -> str:
    """Opaque row id in Rank Math's "s-" + 13 hex chars shape."""
    return "s-" + secrets.token_hex(7)[:13]


def to_rank_math(
    entity: Dict[str, Any],
    schema_type: Optional[str] = None,
    is_primary: bool = False,
    shortcode: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Wrap an entity in Rank Math's stored shape, metadata first.

    The primary flag only takes effect for types that can be primary.
    """
    schema_type = schema_type or schema_type_of(entity)
    metadata: Dict[str, Any] = {
        "title": schema_type,
        "type": "custom",
        "shortcode": shortcode or new_shortcode(),
    }
    if is_primary and can_be_primary(schema_type):
        metadata["isPrimary"] = "1"
        metadata["name"] = "%seo_title%"
        metadata["description"] = "%seo_description%"

    row: Dict[str, Any] = {"metadata": metadata}
    for key, value in entity.items():
        if key in ("@context", "metadata"):
            continue
        row[key] = value
    return row


def encode_row(
    entity: Dict[str, Any],
    schema_type: Optional[str] = None,
    is_primary: bool = False,
    shortcode: Optional[str] = None,
) -> str:
    return php_serialize(to_rank_math(entity, schema_type, is_primary, shortcode))


def decode_row(value: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Entity fields out of a stored row value (metadata removed).

    Returns None when the value is not a PHP serialized array.
    """
    ok, decoded = try_unserialize(value)
    if not ok or not isinstance(decoded, dict):
        return None
    return {k: v for k, v in decoded.items() if k != "metadata"}


def row_metadata(value: Optional[str]) -> Dict[str, Any]:
    ok, decoded = try_unserialize(value)
    if ok and isinstance(decoded, dict) and isinstance(decoded.get("metadata"), dict):
        return decoded["metadata"]
    return {}
