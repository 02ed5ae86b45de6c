"""
Schema Generator (graph composer) for the Rank Math Schema Generator.
Builds one cross-referenced @graph per page from the per-type builders.

Principles:
- Deterministic: same inputs, byte-identical graph
- Every entity gets a stable URL-derived @id
- Cross-entity links are pure {"@id"} references
- Output always passes through the invariant-repair pass
"""
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Union

from schemagen.models.page import GenerationOptions, OrgInfo, PageData, PageType
from schemagen.models.schema import (
    IdRef,
    ImageObjectEntity,
    LocalBusinessEntity,
    SchemaGraph,
    WebPageEntity,
    WebSiteEntity,
)
from schemagen.layers.page_classifier import ClassificationResult, PageClassifier
from schemagen.generators.builders import (
    build_article,
    build_breadcrumb,
    build_faq,
    build_local_business,
    build_location_bundle,
    build_service,
)
from schemagen.generators.builders.common import (
    business_id,
    primary_image_id,
    resolve_areas,
    resolve_phone,
    resolve_same_as,
    webpage_id,
    website_id,
)
from schemagen.generators.repair import repair_graph
from schemagen.generators.validation import GraphValidator, ValidationReport
from schemagen.utils.logger import LayerLogger

PAGE_LANGUAGE = "en-US"


@dataclass
class GenerationResult:
    """A composed graph with its validation report."""
    page_type: PageType
    graph: SchemaGraph
    report: ValidationReport
    classification: Optional[ClassificationResult] = None

    def to_dict(self) -> Dict:
        data = {
            "pageType": self.page_type.value,
            "schema": self.graph.to_jsonld(),
            "schemaTypes": self.graph.schema_types(),
            "validation": self.report.to_dict(),
        }
        if self.classification is not None:
            data["scores"] = self.classification.scores
        return data


def _primary_location(page, org, options) -> List:
    return build_location_bundle(page, org, options)


def _primary_service(page, org, options) -> List:
    return [build_service(page, org, options), build_local_business(page, org, options)]


def _primary_article(page, org, options) -> List:
    return [build_article(page, org, options)]


# Which builders produce the primary entities, per page type
PRIMARY_BUILDERS: Dict[PageType, Callable[[PageData, OrgInfo, GenerationOptions], List]] = {
    PageType.LOCATION: _primary_location,
    PageType.SERVICE: _primary_service,
    PageType.ARTICLE: _primary_article,
}


class SchemaGenerator:
    """
    Deterministic JSON-LD graph composer.

    Graph order: primary bundle, FAQPage, BreadcrumbList, ImageObject,
    WebSite, then the WebPage that ties them together.
    """

    def __init__(
        self,
        classifier: Optional[PageClassifier] = None,
        validator: Optional[GraphValidator] = None,
    ):
        self.classifier = classifier or PageClassifier()
        self.validator = validator or GraphValidator()
        self.logger = LayerLogger("schema_generator")

    def compose(
        self,
        page_type: PageType,
        page: PageData,
        org: OrgInfo,
        options: Optional[GenerationOptions] = None,
    ) -> SchemaGraph:
        """
        Compose the @graph for a page.

        Args:
            page_type: Classifier output (selects the primary builders)
            page: Scraped page data
            org: Organization info
            options: Generation overrides

        Returns:
            SchemaGraph after the invariant-repair pass
        """
        options = options or GenerationOptions()
        page_type = PageType(page_type)

        entities = list(PRIMARY_BUILDERS[page_type](page, org, options))

        faq = build_faq(page, org, options)
        if faq is not None:
            entities.append(faq)

        breadcrumb = build_breadcrumb(page, org, options)
        if breadcrumb is not None:
            entities.append(breadcrumb)

        if page.featured_image:
            entities.append(ImageObjectEntity(
                id=primary_image_id(page),
                url=page.featured_image,
                content_url=page.featured_image,
                in_language=PAGE_LANGUAGE,
            ))

        has_business = any(isinstance(e, LocalBusinessEntity) for e in entities)

        entities.append(WebSiteEntity(
            id=website_id(org),
            url=org.url,
            name=org.name,
            publisher=IdRef(id=business_id(org)) if has_business else None,
        ))

        entities.append(WebPageEntity(
            id=webpage_id(page),
            url=page.url,
            name=page.title or None,
            description=page.description or None,
            is_part_of=IdRef(id=website_id(org)),
            about=IdRef(id=business_id(org)) if has_business else None,
            primary_image_of_page=IdRef(id=primary_image_id(page)) if page.featured_image else None,
            breadcrumb=IdRef(id=breadcrumb.id) if breadcrumb is not None and breadcrumb.id else None,
            in_language=PAGE_LANGUAGE,
        ))

        repaired = repair_graph(
            [e.to_jsonld() for e in entities],
            areas=resolve_areas(page, options),
            phone=resolve_phone(page, org, options),
            fallback_locality=org.name,
        )
        return SchemaGraph.from_jsonld(repaired)

    def generate(
        self,
        page_type: Union[PageType, str],
        page: PageData,
        org: OrgInfo,
        options: Optional[GenerationOptions] = None,
    ) -> GenerationResult:
        """Compose and validate; validation problems are reported, not raised."""
        page_type = PageType(page_type)
        self.logger.log_action("schema_generation", "started", url=page.url, page_type=page_type.value)

        graph = self.compose(page_type, page, org, options)
        report = self.validate(graph)

        self.logger.log_action(
            "schema_generation",
            "completed",
            url=page.url,
            schemas_generated=len(graph.entities),
            schema_types=graph.schema_types(),
        )
        return GenerationResult(page_type=page_type, graph=graph, report=report)

    def generate_with_detection(
        self,
        url: str,
        page: PageData,
        org: OrgInfo,
        options: Optional[GenerationOptions] = None,
    ) -> GenerationResult:
        """Classify the page, then compose and validate."""
        classification = self.classifier.classify_with_details(url, page)
        result = self.generate(classification.page_type, page, org, options)
        result.classification = classification
        return result

    def validate(self, graph: Union[SchemaGraph, Dict]) -> ValidationReport:
        """Validate a composed or externally supplied graph."""
        report = self.validator.validate(graph)
        schema_types = graph.schema_types() if isinstance(graph, SchemaGraph) else []
        self.logger.log_validation(
            errors=len(report.errors),
            warnings=len(report.warnings),
            schema_types=schema_types,
        )
        return report
