"""
Service schema builder.

Service name/type/category come from an ordered pattern table: more
specific phrases ("furnace repair") precede generic ones (the HVAC
catch-all), and the first match wins.
"""
import re
from dataclasses import dataclass
from typing import List, Pattern

from schemagen.models.page import GenerationOptions, OrgInfo, PageData
from schemagen.models.schema import (
    EntryPoint,
    ImageObjectEntity,
    NamedThing,
    Offer,
    Party,
    ReserveAction,
    ServiceEntity,
)
from schemagen.generators.builders.common import (
    area_served_value,
    business_id,
    city,
    derive_address,
    entity_id,
    primary_image_id,
    page_name,
    resolve_address,
    resolve_areas,
    resolve_business_type,
    resolve_phone,
    truncate,
)


@dataclass(frozen=True)
class ServicePattern:
    pattern: Pattern
    service_type: str
    category: str
    name: str


@dataclass(frozen=True)
class ServiceInfo:
    name: str
    service_type: str
    category: str


def _rule(regex: str, service_type: str, name: str, category: str = "HVAC") -> ServicePattern:
    return ServicePattern(re.compile(regex, re.IGNORECASE), service_type, category, name)


# Most specific first; the generic HVAC rule must stay last
SERVICE_PATTERNS: List[ServicePattern] = [
    # AC
    _rule(r"\bac\s*repair|air\s*condition(er|ing)\s*repair", "Air Conditioning Repair", "Air Conditioning Repair Service"),
    _rule(r"\bac\s*install|air\s*condition(er|ing)\s*install", "Air Conditioning Installation", "AC Installation Service"),
    _rule(r"\bac\s*maintenance|air\s*condition(er|ing)\s*maintenance", "Air Conditioning Maintenance", "AC Maintenance Service"),
    _rule(r"\bac\s*tune[\s-]*up|air\s*condition(er|ing)\s*tune[\s-]*up", "Air Conditioning Tune-Up", "AC Tune-Up Service"),
    _rule(r"\bac\s*replacement|air\s*condition(er|ing)\s*replacement", "Air Conditioning Replacement", "AC Replacement Service"),
    _rule(r"central\s*air", "Central Air Conditioning Service", "Central Air Conditioning Service"),
    # Heating
    _rule(r"heat(er|ing)\s*repair", "Heating Repair", "Heating Repair Service"),
    _rule(r"heat(er|ing)\s*install", "Heating Installation", "Heating Installation Service"),
    _rule(r"heat(er|ing)\s*maintenance", "Heating Maintenance", "Heating Maintenance Service"),
    _rule(r"furnace\s*repair", "Furnace Repair", "Furnace Repair Service"),
    _rule(r"furnace\s*install", "Furnace Installation", "Furnace Installation Service"),
    _rule(r"furnace\s*maintenance|furnace\s*tune[\s-]*up", "Furnace Maintenance", "Furnace Maintenance Service"),
    _rule(r"furnace\s*replacement", "Furnace Replacement", "Furnace Replacement Service"),
    _rule(r"boiler\s*repair", "Boiler Repair", "Boiler Repair Service"),
    _rule(r"boiler\s*install", "Boiler Installation", "Boiler Installation Service"),
    # Heat pump
    _rule(r"heat\s*pump\s*repair", "Heat Pump Repair", "Heat Pump Repair Service"),
    _rule(r"heat\s*pump\s*install", "Heat Pump Installation", "Heat Pump Installation Service"),
    _rule(r"heat\s*pump\s*maintenance", "Heat Pump Maintenance", "Heat Pump Maintenance Service"),
    _rule(r"heat\s*pump", "Heat Pump Service", "Heat Pump Service"),
    # Ductwork
    _rule(r"duct\s*clean", "Duct Cleaning", "Air Duct Cleaning Service"),
    _rule(r"duct\s*repair", "Duct Repair", "Ductwork Repair Service"),
    _rule(r"duct\s*install|ductwork\s*install", "Duct Installation", "Ductwork Installation Service"),
    _rule(r"duct\s*seal", "Duct Sealing", "Duct Sealing Service"),
    # Indoor air quality
    _rule(r"indoor\s*air\s*quality|\biaq\b", "Indoor Air Quality", "Indoor Air Quality Service"),
    _rule(r"air\s*purif", "Air Purification", "Air Purification Service"),
    _rule(r"air\s*filter", "Air Filtration", "Air Filtration Service"),
    _rule(r"dehumidifier", "Dehumidifier Service", "Dehumidifier Installation & Service"),
    _rule(r"humidifier", "Humidifier Service", "Humidifier Installation & Service"),
    _rule(r"uv\s*light|uv\s*air", "UV Air Purification", "UV Air Purification Service"),
    # Thermostat
    _rule(r"thermostat\s*install", "Thermostat Installation", "Thermostat Installation Service"),
    _rule(r"smart\s*thermostat", "Smart Thermostat Installation", "Smart Thermostat Installation Service"),
    _rule(r"thermostat", "Thermostat Service", "Thermostat Service"),
    # Mini split
    _rule(r"mini[\s-]*split\s*install", "Mini Split Installation", "Ductless Mini Split Installation"),
    _rule(r"mini[\s-]*split\s*repair", "Mini Split Repair", "Ductless Mini Split Repair"),
    _rule(r"mini[\s-]*split|ductless", "Ductless HVAC Service", "Ductless Mini Split Service"),
    # Emergency and general HVAC
    _rule(r"emergency\s*(hvac|ac|heat|air)", "Emergency HVAC Service", "24/7 Emergency HVAC Service"),
    _rule(r"24[\s/]*7|after\s*hours", "Emergency HVAC Service", "24/7 Emergency HVAC Service"),
    _rule(r"hvac\s*repair", "HVAC Repair", "HVAC Repair Service"),
    _rule(r"hvac\s*install", "HVAC Installation", "HVAC Installation Service"),
    _rule(r"hvac\s*maintenance", "HVAC Maintenance", "HVAC Maintenance Service"),
    # Components
    _rule(r"refrigerant|freon", "Refrigerant Service", "Refrigerant Recharge Service"),
    _rule(r"compressor", "Compressor Service", "AC Compressor Service"),
    _rule(r"evaporator\s*coil", "Evaporator Coil Service", "Evaporator Coil Service"),
    _rule(r"condenser", "Condenser Service", "Condenser Service"),
    # Commercial (before the trade catch-alls that would shadow it)
    _rule(r"commercial\s*(hvac|ac|heat)", "Commercial HVAC Service", "Commercial HVAC Service", "Commercial HVAC"),
    # Other home services
    _rule(r"water\s*heater", "Water Heater Service", "Water Heater Service", "Home Services"),
    _rule(r"plumb(ing|er)", "Plumbing Service", "Plumbing Service", "Home Services"),
    _rule(r"electric(al|ian)", "Electrical Service", "Electrical Service", "Home Services"),
    _rule(r"\broof(ing|er)?\b", "Roofing Service", "Roofing Service", "Home Services"),
    _rule(r"insulation", "Insulation Service", "Insulation Service", "Home Services"),
    # Generic catch-all
    _rule(r"hvac|heating|cooling|air\s*condition", "HVAC Service", "HVAC Service"),
]

RESERVE_PLATFORMS = [
    "https://schema.org/DesktopWebPlatform",
    "https://schema.org/MobileWebPlatform",
]


def detect_service_type(page: PageData) -> ServiceInfo:
    """First matching rule over title + content + headings; default is the page name."""
    text = " ".join([page.title, page.content] + [h.text for h in page.headings])
    for rule in SERVICE_PATTERNS:
        if rule.pattern.search(text):
            return ServiceInfo(name=rule.name, service_type=rule.service_type, category=rule.category)
    name = page_name(page)
    return ServiceInfo(name=name, service_type=name, category="Service")


def build_service(page: PageData, org: OrgInfo, options: GenerationOptions) -> ServiceEntity:
    """
    Build the Service entity for a service page.

    The provider is the business entity (same @id as the LocalBusiness
    builder) and always carries a postal address.
    """
    info = detect_service_type(page)
    areas = resolve_areas(page, options)

    provider = Party(
        type=resolve_business_type(org, options),
        id=business_id(org),
        name=org.name,
        url=org.url,
        address=derive_address(resolve_address(org, options), areas, org.name),
        area_served=[city(a) for a in areas] or None,
        telephone=resolve_phone(page, org, options),
        logo=ImageObjectEntity(url=org.logo) if org.logo else None,
    )

    area_served = area_served_value(areas)

    return ServiceEntity(
        id=entity_id(page.url, "service"),
        name=info.name or org.name,
        description=truncate(page.description, 200) or None,
        url=page.url,
        service_type=info.service_type or None,
        provider=provider,
        image=ImageObjectEntity(id=primary_image_id(page), url=page.featured_image) if page.featured_image else None,
        area_served=area_served,
        brand=NamedThing(type="Brand", name=org.name),
        category=info.category,
        offers=Offer(availability="https://schema.org/InStock", area_served=area_served),
        potential_action=ReserveAction(
            target=EntryPoint(url_template=f"{org.root_url}/contact", action_platform=list(RESERVE_PLATFORMS)),
            result=NamedThing(type="Reservation", name="Service Appointment"),
        ),
    )
