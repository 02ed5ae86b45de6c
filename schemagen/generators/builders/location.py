"""
Location page bundle: Service + business + Place for pages such as
"AC Repair in Houston" or "/locations/dallas/".
"""
import re
from typing import List

from schemagen.models.page import GenerationOptions, OrgInfo, PageData, PostalAddress
from schemagen.models.schema import ImageObjectEntity, NamedThing, Party, PlaceEntity, ServiceEntity
from schemagen.generators.builders.common import (
    business_id,
    city,
    entity_id,
    primary_image_id,
    resolve_address,
    resolve_business_type,
    truncate,
)
from schemagen.generators.builders.local_business import build_local_business, default_catalog
from schemagen.utils.locale import LocationInfo, extract_location, infer_country, infer_region

FALLBACK_LOCATION_NAME = "Service Area"

LOCATION_SERVICE_TYPES = [
    (re.compile(r"\bac\s*repair|air\s*condition(er|ing)\s*repair", re.IGNORECASE), "Air Conditioning Repair"),
    (re.compile(r"\bac\s*install|air\s*condition(er|ing)\s*install", re.IGNORECASE), "Air Conditioning Installation"),
    (re.compile(r"heating\s*repair", re.IGNORECASE), "Heating Repair"),
    (re.compile(r"furnace", re.IGNORECASE), "Furnace Service"),
    (re.compile(r"heat\s*pump", re.IGNORECASE), "Heat Pump Service"),
    (re.compile(r"plumb(ing|er)", re.IGNORECASE), "Plumbing Service"),
    (re.compile(r"electric(al|ian)", re.IGNORECASE), "Electrical Service"),
]
DEFAULT_LOCATION_SERVICE_TYPE = "HVAC Service"


def location_service_type(page: PageData) -> str:
    text = f"{page.title} {page.content}"
    for pattern, service_type in LOCATION_SERVICE_TYPES:
        if pattern.search(text):
            return service_type
    return DEFAULT_LOCATION_SERVICE_TYPE


def _location_name(info: LocationInfo, page: PageData, options: GenerationOptions) -> str:
    areas = options.area_list() or [a for a in page.service_areas if a]
    return info.city or (areas[0] if areas else FALLBACK_LOCATION_NAME)


def build_location_bundle(page: PageData, org: OrgInfo, options: GenerationOptions) -> List:
    """
    Build [Service, business, Place] for a location page.

    The city comes from the title/URL, falling back to the first served
    area. State and country come from the page text, falling back to
    table inference and the configured default country.
    """
    info = extract_location(page)
    name = _location_name(info, page, options)

    explicit = resolve_address(org, options)
    country = info.country or infer_country(explicit, [name])
    region = info.state or infer_region(explicit, [name], country) or None

    place_address = PostalAddress(address_locality=name, address_region=region, address_country=country)

    service = ServiceEntity(
        id=entity_id(page.url, "service"),
        name=page.title or f"{DEFAULT_LOCATION_SERVICE_TYPE}s in {name}",
        description=truncate(page.description, 200) or None,
        url=page.url,
        service_type=location_service_type(page),
        provider=Party(type=resolve_business_type(org, options), id=business_id(org)),
        area_served=city(name, region),
        image=ImageObjectEntity(id=primary_image_id(page), url=page.featured_image) if page.featured_image else None,
    )

    business = build_local_business(page, org, options, areas=[name], address=place_address)
    if not options.services:
        business.has_offer_catalog = default_catalog(business.type, area=name)

    place = PlaceEntity(
        id=entity_id(page.url, "place"),
        name=name,
        address=place_address,
        contained_in_place=NamedThing(type="State", name=region) if region else None,
    )

    return [service, business, place]

