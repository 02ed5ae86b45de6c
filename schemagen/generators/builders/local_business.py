"""
LocalBusiness schema builder (HVACBusiness and the other BusinessType
subtypes). The business entity always carries a postal address.
"""
from typing import Dict, List, Optional, Tuple

from schemagen.models.page import BusinessType, GenerationOptions, OrgInfo, PageData, PostalAddress
from schemagen.models.schema import (
    ImageObjectEntity,
    LocalBusinessEntity,
    NamedThing,
    Offer,
    OfferCatalog,
    OpeningHoursSpecification,
)
from schemagen.generators.builders.common import (
    area_served_value,
    business_id,
    city,
    derive_address,
    resolve_address,
    resolve_areas,
    resolve_business_type,
    resolve_phone,
    resolve_same_as,
)

ALL_WEEK = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

# Static offer catalogs per vertical: (catalog name, services)
VERTICAL_CATALOGS: Dict[str, Tuple[str, List[str]]] = {
    BusinessType.HVAC_BUSINESS.value: ("HVAC Services", [
        "Air Conditioning Repair", "AC Installation", "Heating Repair",
        "Furnace Installation", "HVAC Maintenance",
    ]),
    BusinessType.PLUMBER.value: ("Plumbing Services", [
        "Drain Cleaning", "Leak Repair", "Water Heater Installation",
        "Pipe Repair", "Emergency Plumbing",
    ]),
    BusinessType.ELECTRICIAN.value: ("Electrical Services", [
        "Electrical Repair", "Panel Upgrades", "Wiring Installation",
        "Lighting Installation", "EV Charger Installation",
    ]),
    BusinessType.ROOFING_CONTRACTOR.value: ("Roofing Services", [
        "Roof Repair", "Roof Replacement", "Roof Inspection", "Gutter Installation",
    ]),
}

# Wider list used on location pages
LOCATION_SERVICES: Dict[str, List[str]] = {
    BusinessType.HVAC_BUSINESS.value: [
        "Air Conditioning Repair", "AC Installation", "Heating Repair", "Furnace Installation",
        "Heat Pump Service", "HVAC Maintenance", "Emergency HVAC Service", "Duct Cleaning",
    ],
}


def offer_catalog(name: str, services: List[str], area: Optional[str] = None) -> OfferCatalog:
    """OfferCatalog of Service offers, each optionally scoped to one city."""
    return OfferCatalog(
        name=name,
        item_list_element=[
            Offer(item_offered=NamedThing(type="Service", name=s, area_served=city(area) if area else None))
            for s in services
        ],
    )


def default_catalog(business_type: str, area: Optional[str] = None) -> Optional[OfferCatalog]:
    """Static vertical catalog, or None for verticals without one."""
    entry = VERTICAL_CATALOGS.get(business_type)
    if entry is None:
        return None
    name, services = entry
    if area:
        services = LOCATION_SERVICES.get(business_type, services)
        name = f"{name} in {area}"
    return offer_catalog(name, services, area)


def build_local_business(
    page: PageData,
    org: OrgInfo,
    options: GenerationOptions,
    areas: Optional[List[str]] = None,
    address: Optional[PostalAddress] = None,
) -> LocalBusinessEntity:
    """
    Build the business entity.

    Args:
        page: Scraped page (phone and served areas)
        org: Organization info
        options: Overrides
        areas: Served areas override (location pages pass the page's city)
        address: Fallback address used when neither options nor org pin one

    Returns:
        LocalBusinessEntity with a non-empty address
    """
    business_type = resolve_business_type(org, options)
    if areas is None:
        areas = resolve_areas(page, options)

    explicit = resolve_address(org, options)
    if (explicit is None or not explicit.has_locality()) and address is not None:
        explicit = address
    postal = derive_address(explicit, areas, org.name)

    area_served = area_served_value(areas)
    if area_served is None and postal.address_locality:
        area_served = city(postal.address_locality)

    if options.opening_hours is not None:
        hours = OpeningHoursSpecification(
            day_of_week=options.opening_hours.day_of_week or list(ALL_WEEK),
            opens=options.opening_hours.opens,
            closes=options.opening_hours.closes,
        )
    elif business_type == BusinessType.HVAC_BUSINESS.value:
        # Round-the-clock emergency service is the HVAC norm
        hours = OpeningHoursSpecification(day_of_week=list(ALL_WEEK), opens="00:00", closes="23:59")
    else:
        hours = None

    if options.services:
        catalog = offer_catalog(f"{org.name} Services", options.services)
    else:
        catalog = default_catalog(business_type)

    logo = ImageObjectEntity(url=org.logo) if org.logo else None

    return LocalBusinessEntity(
        type=business_type,
        id=business_id(org),
        name=org.name,
        url=org.url,
        logo=logo,
        image=org.logo or None,
        telephone=resolve_phone(page, org, options),
        address=postal,
        area_served=area_served,
        opening_hours_specification=hours,
        price_range=options.price_range or None,
        same_as=resolve_same_as(org, options),
        has_offer_catalog=catalog,
    )
