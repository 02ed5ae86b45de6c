"""
Page and organization input models.

PageData is the contract between the external scraper and the
classifier/builders. Absent values are explicit empty values, never
missing keys, so builders never check for missing attributes.
"""
from typing import List, Optional
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class PageType(str, Enum):
    """Page type chosen by the classifier; selects which builders run."""
    ARTICLE = "article"
    SERVICE = "service"
    LOCATION = "location"


class PostType(str, Enum):
    """WordPress post type hint reported by the scraper."""
    POST = "post"
    PAGE = "page"
    UNKNOWN = "unknown"


class BusinessType(str, Enum):
    """Closed set of LocalBusiness subtypes a business entity may use."""
    LOCAL_BUSINESS = "LocalBusiness"
    HVAC_BUSINESS = "HVACBusiness"
    PLUMBER = "Plumber"
    ELECTRICIAN = "Electrician"
    ROOFING_CONTRACTOR = "RoofingContractor"
    HOME_AND_CONSTRUCTION = "HomeAndConstructionBusiness"
    GENERAL_CONTRACTOR = "GeneralContractor"
    HOUSE_PAINTER = "HousePainter"
    LOCKSMITH = "Locksmith"
    MOVING_COMPANY = "MovingCompany"
    PROFESSIONAL_SERVICE = "ProfessionalService"


BUSINESS_TYPES = frozenset(t.value for t in BusinessType)


class InputModel(BaseModel):
    """snake_case attributes, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HeadingData(InputModel):
    """Heading data with level and text."""
    level: int = Field(ge=1, le=6)
    text: str


class FAQItem(InputModel):
    """FAQ question and answer pair (either side may be blank as scraped)."""
    question: str = ""
    answer: str = ""


class BreadcrumbItem(InputModel):
    """Breadcrumb navigation item, in trail order."""
    name: str
    url: str = ""


class WordPressInfo(InputModel):
    post_type: PostType = PostType.UNKNOWN


class PostalAddress(InputModel):
    """
    Structured postal address.

    Used for OrgInfo/Options input and as the nested schema.org
    PostalAddress in generated entities (hence the @type field).
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    type: str = Field(default="PostalAddress", alias="@type")
    street_address: Optional[str] = None
    address_locality: Optional[str] = None
    address_region: Optional[str] = None
    postal_code: Optional[str] = None
    address_country: Optional[str] = None

    def has_locality(self) -> bool:
        """True when the address pins a place (street or city)."""
        return bool(self.street_address or self.address_locality)


class PageData(InputModel):
    """
    Scraped page record. Immutable once produced; one instance per URL
    per generation attempt.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    url: str
    title: str = ""
    description: str = ""
    content: str = ""
    headings: List[HeadingData] = Field(default_factory=list)
    author: str = ""
    publish_date: str = ""
    modified_date: str = ""
    featured_image: str = ""
    categories: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    faqs: List[FAQItem] = Field(default_factory=list)
    breadcrumbs: List[BreadcrumbItem] = Field(default_factory=list)
    phone: str = ""
    service_areas: List[str] = Field(default_factory=list)
    wordpress_info: WordPressInfo = Field(default_factory=WordPressInfo)


class OrgInfo(InputModel):
    """
    Organization information. Only name and url are guaranteed; every
    builder works with everything else absent.
    """
    name: str
    url: str
    logo: str = ""
    phone: str = ""
    address: Optional[PostalAddress] = None
    business_type: BusinessType = BusinessType.HVAC_BUSINESS
    same_as: List[str] = Field(default_factory=list)

    @property
    def root_url(self) -> str:
        return self.url.rstrip("/")


class OpeningHours(InputModel):
    """Explicit opening hours (one specification block)."""
    day_of_week: List[str] = Field(default_factory=list)
    opens: str = "00:00"
    closes: str = "23:59"


class GenerationOptions(InputModel):
    """
    Generation parameters. Pure configuration: overrides win over
    OrgInfo/PageData, and nothing is invented beyond documented fallbacks.
    """
    area_served: str = ""
    business_type: Optional[BusinessType] = None
    phone: str = ""
    address: Optional[PostalAddress] = None
    same_as: Optional[List[str]] = None
    services: List[str] = Field(default_factory=list)
    price_range: str = ""
    opening_hours: Optional[OpeningHours] = None

    def area_list(self) -> List[str]:
        """Comma-joined area_served as an ordered list of names."""
        return [a.strip() for a in self.area_served.split(",") if a.strip()]
