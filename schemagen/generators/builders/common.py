"""
Shared helpers for the per-type schema builders: stable @id derivation,
text truncation, date normalization and the always-present address rule.
"""
import re
from datetime import datetime, timezone
from typing import List, Optional, Union
from urllib.parse import urlparse

from schemagen.models.page import BusinessType, GenerationOptions, OrgInfo, PageData, PostalAddress
from schemagen.models.schema import NamedThing
from schemagen.utils.locale import extract_location_from_page, infer_country, infer_region


# =============================================================================
# Stable identifiers
# =============================================================================

def entity_id(base_url: str, fragment: str) -> str:
    """Stable URL-derived identity, e.g. https://site.com/page/#webpage."""
    return f"{base_url.rstrip('/')}/#{fragment}"


def business_id(org: OrgInfo) -> str:
    return entity_id(org.url, "localbusiness")


def website_id(org: OrgInfo) -> str:
    return entity_id(org.url, "website")


def webpage_id(page: PageData) -> str:
    return entity_id(page.url, "webpage")


def primary_image_id(page: PageData) -> str:
    return entity_id(page.url, "primaryimage")


# =============================================================================
# Text and dates
# =============================================================================

def truncate(text: Optional[str], max_length: int) -> str:
    """Truncate text to max length with ellipsis."""
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    return text[:max_length - 3] + "..."


def clean_text(text: Optional[str]) -> str:
    """Collapse runs of whitespace and trim."""
    return " ".join((text or "").split())


def page_name(page: PageData) -> str:
    """Page title, else the last URL path segment titleized ("ac-repair" -> "Ac Repair")."""
    title = clean_text(page.title)
    if title:
        return title
    segment = urlparse(page.url).path.rstrip("/").rsplit("/", 1)[-1]
    segment = re.sub(r"\.(html?|php)$", "", segment)
    return " ".join(word.capitalize() for word in re.split(r"[-_]+", segment) if word)


def normalize_date(date_str: Optional[str]) -> Optional[str]:
    """
    Normalize date to ISO-8601.

    Cases:
    - Full ISO with TZ: keep unchanged
    - ISO without TZ: append Z
    - Date only (YYYY-MM-DD): append T00:00:00Z
    - Unix timestamp (s or ms): convert to UTC
    - Invalid/None: None

    Never infers a timezone beyond Z for naive timestamps, never guesses a
    time and never uses the system clock.
    """
    if not date_str:
        return None

    date_str = str(date_str).strip()
    if not date_str:
        return None

    if date_str.isdigit():
        ts = int(date_str)
        if ts > 10000000000:
            ts = ts // 1000
        try:
            return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        except (OverflowError, OSError, ValueError):
            return None

    if "T" in date_str:
        if date_str.endswith("Z"):
            return date_str
        if re.search(r"T\d{2}:\d{2}:\d{2}(\.\d+)?[+-]\d{2}:?\d{2}$", date_str):
            return date_str
        if re.match(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}$", date_str):
            return date_str + "Z"
        # T00:00:00.000 -> strip fraction
        if re.match(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d+$", date_str):
            return re.sub(r"\.\d+$", "", date_str) + "Z"
        return date_str

    if re.match(r"^\d{4}-\d{2}-\d{2}$", date_str):
        return date_str + "T00:00:00Z"

    # "2024-01-15 10:30:00" style (WordPress post_date)
    try:
        dt = datetime.fromisoformat(date_str)
    except ValueError:
        dt = None
    if dt is not None:
        if dt.tzinfo is None:
            return dt.strftime("%Y-%m-%dT%H:%M:%SZ")
        return dt.isoformat()

    if re.match(r"^\d{4}-\d{2}-\d{2}", date_str):
        return date_str

    return None


# =============================================================================
# Field resolution (options > page > org)
# =============================================================================

def resolve_business_type(org: OrgInfo, options: GenerationOptions) -> str:
    return (options.business_type or org.business_type or BusinessType.LOCAL_BUSINESS).value


def resolve_phone(page: PageData, org: OrgInfo, options: GenerationOptions) -> Optional[str]:
    return options.phone or page.phone or org.phone or None


def resolve_address(org: OrgInfo, options: GenerationOptions) -> Optional[PostalAddress]:
    return options.address or org.address


def resolve_same_as(org: OrgInfo, options: GenerationOptions) -> Optional[List[str]]:
    same_as = options.same_as if options.same_as is not None else org.same_as
    return list(same_as) or None


def resolve_areas(page: PageData, options: GenerationOptions, scan_page: bool = True) -> List[str]:
    """
    Served area names, in order of precedence:
    explicit options.area_served, scraped service areas, a city named on the page.
    """
    areas = options.area_list()
    if areas:
        return areas
    areas = [a.strip() for a in page.service_areas if a and a.strip()]
    if areas:
        return areas
    if scan_page:
        detected = extract_location_from_page(page)
        if detected:
            return [detected]
    return []


def city(name: str, state: Optional[str] = None) -> NamedThing:
    contained = NamedThing(type="State", name=state) if state else None
    return NamedThing(type="City", name=name, contained_in_place=contained)


def area_served_value(areas: List[str]) -> Optional[Union[NamedThing, List[NamedThing]]]:
    """One area -> a City, several -> a City list in input order, none -> None."""
    if not areas:
        return None
    if len(areas) == 1:
        return city(areas[0])
    return [city(a) for a in areas]


def derive_address(
    explicit: Optional[PostalAddress],
    areas: List[str],
    fallback_locality: Optional[str],
) -> PostalAddress:
    """
    Build a postal address that always pins a place.

    Explicit sub-fields are never overwritten. A missing locality comes
    from the primary served area ("City, Region" or "City"), else from
    fallback_locality. Region and country are inferred when absent.
    """
    country = infer_country(explicit, areas)
    region = infer_region(explicit, areas, country)

    address = explicit.model_copy() if explicit is not None else PostalAddress()
    if not address.has_locality():
        if areas:
            parts = [p.strip() for p in areas[0].split(",")]
            address.address_locality = parts[0]
            if len(parts) > 1 and parts[1] and not address.address_region:
                address.address_region = parts[1]
        elif fallback_locality:
            address.address_locality = fallback_locality
    if not address.address_region and region:
        address.address_region = region
    if not address.address_country:
        address.address_country = country
    return address
