"""
Locale inference for the Rank Math Schema Generator.

Maps free text (area names, titles, URLs, partial addresses) to a
country / region / city triple using ordered lookup tables.

Rules:
- Explicit address fields always win (addressCountry, addressRegion)
- Postal code format decides CA vs US deterministically
- City tables are scanned in table order, first match wins (no scoring)
- Nothing matched -> the configured default country

The same input always produces the same answer, so regenerating a page
yields the same inferred address every time.
"""
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from schemagen.config import config
from schemagen.models.page import PageData, PostalAddress


# =============================================================================
# Lookup tables (order matters: first match wins)
# =============================================================================

CANADIAN_PROVINCES = {
    "ON": "Ontario", "QC": "Quebec", "BC": "British Columbia", "AB": "Alberta",
    "MB": "Manitoba", "SK": "Saskatchewan", "NS": "Nova Scotia", "NB": "New Brunswick",
    "NL": "Newfoundland", "PE": "Prince Edward Island", "NT": "Northwest Territories",
    "YT": "Yukon", "NU": "Nunavut",
}

US_STATES = {
    "AL": "Alabama", "AK": "Alaska", "AZ": "Arizona", "AR": "Arkansas", "CA": "California",
    "CO": "Colorado", "CT": "Connecticut", "DE": "Delaware", "FL": "Florida", "GA": "Georgia",
    "HI": "Hawaii", "ID": "Idaho", "IL": "Illinois", "IN": "Indiana", "IA": "Iowa",
    "KS": "Kansas", "KY": "Kentucky", "LA": "Louisiana", "ME": "Maine", "MD": "Maryland",
    "MA": "Massachusetts", "MI": "Michigan", "MN": "Minnesota", "MS": "Mississippi",
    "MO": "Missouri", "MT": "Montana", "NE": "Nebraska", "NV": "Nevada", "NH": "New Hampshire",
    "NJ": "New Jersey", "NM": "New Mexico", "NY": "New York", "NC": "North Carolina",
    "ND": "North Dakota", "OH": "Ohio", "OK": "Oklahoma", "OR": "Oregon", "PA": "Pennsylvania",
    "RI": "Rhode Island", "SC": "South Carolina", "SD": "South Dakota", "TN": "Tennessee",
    "TX": "Texas", "UT": "Utah", "VT": "Vermont", "VA": "Virginia", "WA": "Washington",
    "WV": "West Virginia", "WI": "Wisconsin", "WY": "Wyoming", "DC": "District of Columbia",
}

CANADIAN_CITIES: List[Tuple[str, Tuple[str, ...]]] = [
    ("ON", ("Hamilton", "Toronto", "Ottawa", "Mississauga", "Brampton", "Burlington", "Oakville",
            "Stoney Creek", "Ancaster", "Dundas", "Waterdown", "Grimsby", "St. Catharines",
            "St Catharines", "Niagara Falls", "Niagara", "London", "Kitchener", "Waterloo",
            "Cambridge", "Guelph", "Binbrook", "Caledonia", "Brantford", "Milton", "Georgetown",
            "Markham", "Vaughan", "Richmond Hill")),
    ("BC", ("Vancouver", "Victoria", "Burnaby", "Surrey", "Richmond", "Kelowna", "Abbotsford")),
    ("AB", ("Calgary", "Edmonton", "Red Deer", "Lethbridge", "Medicine Hat")),
    ("QC", ("Montreal", "Quebec City", "Laval", "Gatineau", "Longueuil")),
]

US_CITIES: List[Tuple[str, Tuple[str, ...]]] = [
    ("TX", ("Houston", "Dallas", "Austin", "San Antonio", "Fort Worth", "El Paso", "Arlington",
            "Plano", "Frisco")),
    ("CA", ("Los Angeles", "San Diego", "San Jose", "San Francisco", "Fresno", "Sacramento",
            "Long Beach", "Oakland")),
    ("FL", ("Miami", "Tampa", "Orlando", "Jacksonville", "Fort Lauderdale", "St. Petersburg",
            "Hialeah")),
    ("NY", ("New York", "Brooklyn", "Buffalo", "Rochester", "Syracuse", "Albany", "Yonkers")),
    ("IL", ("Chicago", "Aurora", "Naperville", "Joliet", "Rockford", "Springfield")),
    ("PA", ("Philadelphia", "Pittsburgh", "Allentown", "Erie", "Reading")),
    ("AZ", ("Phoenix", "Tucson", "Mesa", "Chandler", "Scottsdale", "Gilbert", "Tempe")),
    ("GA", ("Atlanta", "Augusta", "Columbus", "Savannah", "Athens", "Macon")),
    ("NC", ("Charlotte", "Raleigh", "Greensboro", "Durham", "Winston-Salem", "Fayetteville")),
    ("OH", ("Columbus", "Cleveland", "Cincinnati", "Toledo", "Akron", "Dayton")),
    ("MI", ("Detroit", "Grand Rapids", "Warren", "Sterling Heights", "Ann Arbor", "Lansing")),
    ("TN", ("Nashville", "Memphis", "Knoxville", "Chattanooga", "Clarksville")),
    ("WA", ("Seattle", "Spokane", "Tacoma", "Vancouver", "Bellevue", "Kent")),
    ("CO", ("Denver", "Colorado Springs", "Aurora", "Fort Collins", "Lakewood", "Boulder")),
    ("MA", ("Boston", "Worcester", "Springfield", "Cambridge", "Lowell")),
    ("NV", ("Las Vegas", "Henderson", "Reno", "North Las Vegas", "Sparks")),
    ("IN", ("Indianapolis", "Fort Wayne", "Evansville", "South Bend", "Carmel")),
    ("MO", ("Kansas City", "St. Louis", "Springfield", "Columbia", "Independence")),
    ("MD", ("Baltimore", "Frederick", "Rockville", "Gaithersburg", "Bowie")),
    ("WI", ("Milwaukee", "Madison", "Green Bay", "Kenosha", "Racine")),
    ("MN", ("Minneapolis", "St. Paul", "Rochester", "Duluth", "Bloomington")),
    ("OK", ("Oklahoma City", "Tulsa", "Norman", "Broken Arrow", "Edmond")),
    ("OR", ("Portland", "Salem", "Eugene", "Gresham", "Hillsboro")),
    ("NJ", ("Newark", "Jersey City", "Paterson", "Elizabeth", "Edison")),
    ("VA", ("Virginia Beach", "Norfolk", "Chesapeake", "Richmond", "Newport News", "Alexandria")),
    ("LA", ("New Orleans", "Baton Rouge", "Shreveport", "Lafayette", "Lake Charles")),
    ("KY", ("Louisville", "Lexington", "Bowling Green", "Owensboro", "Covington")),
    ("SC", ("Charleston", "Columbia", "North Charleston", "Mount Pleasant", "Greenville")),
    ("AL", ("Birmingham", "Montgomery", "Huntsville", "Mobile", "Tuscaloosa")),
    ("UT", ("Salt Lake City", "West Valley City", "Provo", "West Jordan", "Orem")),
]

CA_POSTAL_RE = re.compile(r"^[A-Z]\d[A-Z]\s?\d[A-Z]\d$", re.IGNORECASE)
US_ZIP_RE = re.compile(r"^\d{5}(-\d{4})?$")
CA_POSTAL_IN_TEXT_RE = re.compile(r"\b[A-Z]\d[A-Z]\s*\d[A-Z]\d\b", re.IGNORECASE)


def _city_pattern(city: str) -> "re.Pattern":
    return re.compile(r"\b" + re.escape(city) + r"\b", re.IGNORECASE)


# Compiled once; "Vancouver" is a BC city before it is a WA one
_CA_CITY_PATTERNS = [(region, city, _city_pattern(city)) for region, cities in CANADIAN_CITIES for city in cities]
_US_CITY_PATTERNS = [(region, city, _city_pattern(city)) for region, cities in US_CITIES for city in cities]


def _scan(patterns, text: str) -> Optional[Tuple[str, str]]:
    """Return (region, city) of the first table entry found in text."""
    if not text:
        return None
    for region, city, pattern in patterns:
        if pattern.search(text):
            return region, city
    return None


def _area_text(area_names: Iterable[str]) -> str:
    return " ".join(a for a in area_names if a)


def _region_country(region: str) -> Optional[str]:
    upper = region.strip().upper()
    if upper in CANADIAN_PROVINCES or any(p.upper() == upper for p in CANADIAN_PROVINCES.values()):
        return "CA"
    if upper in US_STATES or any(s.upper() == upper for s in US_STATES.values()):
        return "US"
    return None


# =============================================================================
# Country / region / city inference
# =============================================================================

def infer_country(address: Optional[PostalAddress], area_names: Sequence[str]) -> str:
    """
    Infer the ISO country code for an address / list of served areas.

    Order: explicit addressCountry, postal code format, region code or
    name, Canadian city table, US city table, configured default.
    """
    if address is not None:
        if address.address_country:
            return address.address_country
        postal = (address.postal_code or "").strip()
        if postal and CA_POSTAL_RE.match(postal):
            return "CA"
        if postal and US_ZIP_RE.match(postal):
            return "US"
        if address.address_region:
            country = _region_country(address.address_region)
            if country:
                return country

    text = _area_text(area_names)
    if _scan(_CA_CITY_PATTERNS, text):
        return "CA"
    if _scan(_US_CITY_PATTERNS, text):
        return "US"

    return config.DEFAULT_COUNTRY


def infer_region(address: Optional[PostalAddress], area_names: Sequence[str], country: str) -> str:
    """Infer the region code; an explicit addressRegion always wins. Empty string if unknown."""
    if address is not None and address.address_region:
        return address.address_region

    text = _area_text(area_names)
    if country == "CA":
        found = _scan(_CA_CITY_PATTERNS, text)
    elif country == "US":
        found = _scan(_US_CITY_PATTERNS, text)
    else:
        found = None
    return found[0] if found else ""


def infer_city_from_text(text: str) -> Optional[str]:
    """Return the first known city (US table, then Canadian) mentioned in text."""
    found = _scan(_US_CITY_PATTERNS, text) or _scan(_CA_CITY_PATTERNS, text)
    return found[1] if found else None


def format_location_name(name: Optional[str]) -> Optional[str]:
    """Turn a URL slug or raw match into a title-cased place name."""
    if not name:
        return None
    words = name.replace("-", " ").split()
    return " ".join(w[:1].upper() + w[1:] for w in words) or None


# =============================================================================
# Page-level extraction
# =============================================================================

# "AC Repair in Houston", "Houston AC Repair", "/locations/houston/", "/ac-houston"
LOCATION_PATTERNS = [
    re.compile(r"\b(?:in|near|serving)\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+)?)", re.IGNORECASE),
    re.compile(r"([A-Z][a-z]+(?:\s+[A-Z][a-z]+)?)\s+(?:AC|HVAC|Heating|Cooling|Air|Plumbing|Electric)", re.IGNORECASE),
    re.compile(r"/locations?/([a-z-]+)", re.IGNORECASE),
    re.compile(r"/service-area/([a-z-]+)", re.IGNORECASE),
    re.compile(r"/([a-z-]+)-(?:ac|hvac|heating|cooling|plumbing)\b", re.IGNORECASE),
    re.compile(r"/(?:ac|hvac|heating|cooling|plumbing)-([a-z-]+)", re.IGNORECASE),
]

_STATE_NAMES = {name.lower(): code for code, name in {**US_STATES, **CANADIAN_PROVINCES}.items()}

# Abbreviations are matched case-sensitively: "on", "or" and "in" are ordinary words
STATE_PATTERNS = [
    re.compile(r",\s*(" + "|".join(list(CANADIAN_PROVINCES) + list(US_STATES)) + r")\b"),
    re.compile(r"\b(" + "|".join(re.escape(n) for n in CANADIAN_PROVINCES.values()) + r")\b", re.IGNORECASE),
    re.compile(r"\b(" + "|".join(CANADIAN_PROVINCES) + r")\b"),
    re.compile(r"\b(" + "|".join(re.escape(n) for n in US_STATES.values()) + r")\b", re.IGNORECASE),
    re.compile(r"\b(" + "|".join(US_STATES) + r")\b"),
]


@dataclass(frozen=True)
class LocationInfo:
    """City / state / country detected on a location page (any part may be None)."""
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None


def normalize_state(state: str) -> str:
    """Map a state or province name to its two-letter code."""
    return _STATE_NAMES.get(state.strip().lower(), state.strip().upper())


def _url_path_text(url: str) -> str:
    path = re.sub(r"^[a-z]+://[^/]+", "", url or "", flags=re.IGNORECASE)
    return path.replace("-", " ").replace("/", " ")


def extract_location_from_page(page: PageData) -> Optional[str]:
    """
    Best-effort served-area name for a page without explicit areas.

    Known city in title/content first, then location phrases in the
    title, then in the URL.
    """
    city = infer_city_from_text(f"{page.title} {page.content}")
    if city:
        return city

    for source in (page.title, page.url):
        for pattern in LOCATION_PATTERNS:
            match = pattern.search(source or "")
            if match:
                return format_location_name(match.group(1))
    return None


def extract_location(page: PageData) -> LocationInfo:
    """
    Detect the city, state and country a location page is about.

    City: phrase patterns on the title, then a known city in the URL
    path, then phrase patterns on the URL. State: ", TX" style suffix or
    a state/province name in title/content. Country follows the state;
    a Canadian postal code in the text also means CA.
    """
    city = None
    for pattern in LOCATION_PATTERNS:
        match = pattern.search(page.title or "")
        if match:
            city = format_location_name(match.group(1))
            break
    if not city:
        city = infer_city_from_text(_url_path_text(page.url))
    if not city:
        for pattern in LOCATION_PATTERNS:
            match = pattern.search(page.url or "")
            if match:
                city = format_location_name(match.group(1))
                break

    state = None
    country = None
    text = f"{page.title} {page.content}"
    for pattern in STATE_PATTERNS:
        match = pattern.search(text)
        if match:
            state = normalize_state(match.group(1))
            country = "CA" if state in CANADIAN_PROVINCES else "US"
            break

    if not country and CA_POSTAL_IN_TEXT_RE.search(text):
        country = "CA"

    return LocationInfo(city=city, state=state, country=country)
