"""
Schema.org JSON-LD models for structured data generation.

The graph is a closed tagged union of entity models discriminated on
@type. Cross-entity links are IdRef objects, which carry only @id and
reject any other key, so a reference can never hold a stale copy of the
entity it points to.
"""
import json
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel

from schemagen.errors import UnsupportedEntityError
from schemagen.models.page import BUSINESS_TYPES, PostalAddress

SCHEMA_CONTEXT = "https://schema.org"


class JsonLdModel(BaseModel):
    """Base class for all schema.org objects (top-level and nested)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    def to_jsonld(self) -> Dict[str, Any]:
        """Convert to JSON-LD, excluding None values."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class IdRef(BaseModel):
    """Pure reference to an entity defined elsewhere in the same graph."""
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    id: str = Field(alias="@id")

    def to_jsonld(self) -> Dict[str, Any]:
        return {"@id": self.id}


# =============================================================================
# Nested value objects
# =============================================================================

class NamedThing(JsonLdModel):
    """Minimal typed name holder: City, State, Brand, Person, Reservation..."""
    type: str = Field(alias="@type")
    id: Optional[str] = Field(default=None, alias="@id")
    name: Optional[str] = None
    contained_in_place: Optional["NamedThing"] = None
    area_served: Optional[Union["NamedThing", List["NamedThing"], str]] = None


AreaServed = Union[NamedThing, List[NamedThing], str, List[str]]


class ImageObjectEntity(JsonLdModel):
    """ImageObject, both as a standalone graph entity and nested (logo)."""
    type: Literal["ImageObject"] = Field(default="ImageObject", alias="@type")
    id: Optional[str] = Field(default=None, alias="@id")
    url: str
    content_url: Optional[str] = None
    caption: Optional[str] = None
    in_language: Optional[str] = None


ImageValue = Union[IdRef, ImageObjectEntity, str, List[str]]


class Party(JsonLdModel):
    """Nested organization/person/business (provider, publisher, author)."""
    type: str = Field(alias="@type")
    id: Optional[str] = Field(default=None, alias="@id")
    name: Optional[str] = None
    url: Optional[str] = None
    logo: Optional[Union[IdRef, ImageObjectEntity]] = None
    telephone: Optional[str] = None
    address: Optional[PostalAddress] = None
    area_served: Optional[AreaServed] = None
    same_as: Optional[List[str]] = None


class Offer(JsonLdModel):
    type: str = Field(default="Offer", alias="@type")
    availability: Optional[str] = None
    area_served: Optional[AreaServed] = None
    item_offered: Optional[NamedThing] = None


class OfferCatalog(JsonLdModel):
    type: str = Field(default="OfferCatalog", alias="@type")
    name: Optional[str] = None
    item_list_element: List[Offer] = Field(default_factory=list)


class EntryPoint(JsonLdModel):
    type: str = Field(default="EntryPoint", alias="@type")
    url_template: str
    action_platform: List[str] = Field(default_factory=list)


class ReserveAction(JsonLdModel):
    type: str = Field(default="ReserveAction", alias="@type")
    target: EntryPoint
    result: Optional[NamedThing] = None


class OpeningHoursSpecification(JsonLdModel):
    type: str = Field(default="OpeningHoursSpecification", alias="@type")
    day_of_week: List[str] = Field(default_factory=list)
    opens: Optional[str] = None
    closes: Optional[str] = None


class Answer(JsonLdModel):
    type: str = Field(default="Answer", alias="@type")
    text: str


class Question(JsonLdModel):
    type: str = Field(default="Question", alias="@type")
    name: str
    accepted_answer: Answer


class ListItem(JsonLdModel):
    type: str = Field(default="ListItem", alias="@type")
    position: int
    name: str
    item: Optional[str] = None


# =============================================================================
# Graph entities (closed set)
# =============================================================================

class ServiceEntity(JsonLdModel):
    type: Literal["Service"] = Field(default="Service", alias="@type")
    id: Optional[str] = Field(default=None, alias="@id")
    name: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
    service_type: Optional[str] = None
    provider: Optional[Union[IdRef, Party]] = None
    image: Optional[ImageValue] = None
    area_served: Optional[AreaServed] = None
    brand: Optional[NamedThing] = None
    category: Optional[str] = None
    has_offer_catalog: Optional[OfferCatalog] = None
    offers: Optional[Offer] = None
    potential_action: Optional[ReserveAction] = None


class LocalBusinessEntity(JsonLdModel):
    """Any LocalBusiness subtype from the BusinessType enum."""
    type: str = Field(default="LocalBusiness", alias="@type")
    id: Optional[str] = Field(default=None, alias="@id")
    name: Optional[str] = None
    url: Optional[str] = None
    logo: Optional[Union[IdRef, ImageObjectEntity]] = None
    image: Optional[ImageValue] = None
    telephone: Optional[str] = None
    address: Optional[PostalAddress] = None
    area_served: Optional[AreaServed] = None
    opening_hours_specification: Optional[OpeningHoursSpecification] = None
    price_range: Optional[str] = None
    same_as: Optional[List[str]] = None
    has_offer_catalog: Optional[OfferCatalog] = None

    @field_validator("type")
    @classmethod
    def _business_type(cls, value: str) -> str:
        if value not in BUSINESS_TYPES:
            raise ValueError(f"{value!r} is not a supported LocalBusiness subtype")
        return value


class ArticleEntity(JsonLdModel):
    type: Literal["Article", "BlogPosting", "NewsArticle"] = Field(default="Article", alias="@type")
    id: Optional[str] = Field(default=None, alias="@id")
    headline: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
    main_entity_of_page: Optional[Union[IdRef, str]] = None
    image: Optional[ImageValue] = None
    author: Optional[Union[IdRef, Party]] = None
    publisher: Optional[Union[IdRef, Party]] = None
    date_published: Optional[str] = None
    date_modified: Optional[str] = None
    keywords: Optional[str] = None
    article_section: Optional[str] = None


class FAQPageEntity(JsonLdModel):
    type: Literal["FAQPage"] = Field(default="FAQPage", alias="@type")
    id: Optional[str] = Field(default=None, alias="@id")
    is_part_of: Optional[IdRef] = None
    main_entity: List[Question] = Field(default_factory=list)


class BreadcrumbListEntity(JsonLdModel):
    type: Literal["BreadcrumbList"] = Field(default="BreadcrumbList", alias="@type")
    id: Optional[str] = Field(default=None, alias="@id")
    item_list_element: List[ListItem] = Field(default_factory=list)


class PlaceEntity(JsonLdModel):
    type: Literal["Place"] = Field(default="Place", alias="@type")
    id: Optional[str] = Field(default=None, alias="@id")
    name: Optional[str] = None
    address: Optional[PostalAddress] = None
    contained_in_place: Optional[NamedThing] = None


class WebSiteEntity(JsonLdModel):
    type: Literal["WebSite"] = Field(default="WebSite", alias="@type")
    id: Optional[str] = Field(default=None, alias="@id")
    url: Optional[str] = None
    name: Optional[str] = None
    publisher: Optional[IdRef] = None
    same_as: Optional[List[str]] = None


class WebPageEntity(JsonLdModel):
    type: Literal["WebPage", "AboutPage", "ContactPage"] = Field(default="WebPage", alias="@type")
    id: Optional[str] = Field(default=None, alias="@id")
    url: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    is_part_of: Optional[IdRef] = None
    about: Optional[IdRef] = None
    primary_image_of_page: Optional[IdRef] = None
    breadcrumb: Optional[IdRef] = None
    in_language: Optional[str] = None


# Wire @type -> union tag
ENTITY_TAGS: Dict[str, str] = {
    "Service": "Service",
    "Article": "Article",
    "BlogPosting": "Article",
    "NewsArticle": "Article",
    "FAQPage": "FAQPage",
    "BreadcrumbList": "BreadcrumbList",
    "Place": "Place",
    "WebPage": "WebPage",
    "AboutPage": "WebPage",
    "ContactPage": "WebPage",
    "ImageObject": "ImageObject",
    "WebSite": "WebSite",
}


def entity_tag(value: Any) -> Optional[str]:
    """Map an entity (dict or model) to its union tag, or None if unsupported."""
    if isinstance(value, dict):
        schema_type = value.get("@type", value.get("type"))
    else:
        schema_type = getattr(value, "type", None)
    if not isinstance(schema_type, str):
        return None
    if schema_type in BUSINESS_TYPES:
        return "LocalBusiness"
    return ENTITY_TAGS.get(schema_type)


SchemaEntity = Annotated[
    Union[
        Annotated[ServiceEntity, Tag("Service")],
        Annotated[LocalBusinessEntity, Tag("LocalBusiness")],
        Annotated[ArticleEntity, Tag("Article")],
        Annotated[FAQPageEntity, Tag("FAQPage")],
        Annotated[BreadcrumbListEntity, Tag("BreadcrumbList")],
        Annotated[PlaceEntity, Tag("Place")],
        Annotated[WebPageEntity, Tag("WebPage")],
        Annotated[ImageObjectEntity, Tag("ImageObject")],
        Annotated[WebSiteEntity, Tag("WebSite")],
    ],
    Discriminator(entity_tag),
]

_entity_adapter: TypeAdapter = TypeAdapter(SchemaEntity)


def parse_entity(data: Dict[str, Any]) -> SchemaEntity:
    """
    Parse a JSON-LD dict into its typed entity model.

    Raises:
        UnsupportedEntityError: @type is outside the closed set
        pydantic.ValidationError: fields do not match the entity model
    """
    if entity_tag(data) is None:
        raise UnsupportedEntityError(data.get("@type") if isinstance(data, dict) else None)
    payload = {k: v for k, v in data.items() if k != "@context"}
    return _entity_adapter.validate_python(payload)


class SchemaGraph(BaseModel):
    """Ordered list of entities under one shared @context."""
    model_config = ConfigDict(populate_by_name=True)

    context: str = Field(default=SCHEMA_CONTEXT, alias="@context")
    entities: List[SchemaEntity] = Field(default_factory=list, alias="@graph")

    @classmethod
    def from_jsonld(cls, data: Union[Dict[str, Any], List[Dict[str, Any]]]) -> "SchemaGraph":
        """Build a graph from a @graph document, a single entity or a list of entities."""
        if isinstance(data, list):
            items = data
            context = SCHEMA_CONTEXT
        elif "@graph" in data:
            items = data["@graph"]
            context = data.get("@context", SCHEMA_CONTEXT)
        else:
            items = [data]
            context = data.get("@context", SCHEMA_CONTEXT)
        return cls(context=context, entities=[parse_entity(item) for item in items])

    def entity_dicts(self) -> List[Dict[str, Any]]:
        return [entity.to_jsonld() for entity in self.entities]

    def to_jsonld(self) -> Dict[str, Any]:
        return {"@context": self.context, "@graph": self.entity_dicts()}

    def schema_types(self) -> List[str]:
        return [entity.type for entity in self.entities]

    def to_script_tag(self) -> str:
        """Generate HTML script tag with JSON-LD."""
        return f'<script type="application/ld+json">\n{json.dumps(self.to_jsonld(), indent=2)}\n</script>'
