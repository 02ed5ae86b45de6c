"""
AI Generation Layer for the Rank Math Schema Generator.
Optional model-driven alternative to the deterministic composer.

Flow:
    prompt -> model text (untrusted) -> JSON extraction -> shape normalization
    -> invariant-repair pass -> typed parsing -> validation

Principles:
- Model output is never trusted; it always goes through repair_graph
- Entities outside the supported closed set are dropped and reported
- Failures carry the page URL (GenerationError)
"""
import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from schemagen.adapters.claude_client import ClaudeClient, extract_balanced_json, strip_code_fences
from schemagen.errors import UnsupportedEntityError
from schemagen.generators.builders.breadcrumb import breadcrumbs_from_url
from schemagen.generators.builders.common import (
    resolve_address,
    resolve_areas,
    resolve_business_type,
    resolve_phone,
    resolve_same_as,
)
from schemagen.generators.repair import repair_graph
from schemagen.generators.validation import GraphValidator, ValidationReport
from schemagen.models.page import GenerationOptions, OrgInfo, PageData, PageType
from schemagen.models.schema import SchemaGraph, parse_entity
from schemagen.utils.logger import LayerLogger

CONTENT_MAX = 4000

SCHEMA_PROMPT = """Analyze this web page and create ALL appropriate JSON-LD schemas for Rank Math.

## Page Information
URL: {url}
Title: {title}
Description: {description}
WordPress Post Type: {post_type}
Detected Page Type: {page_type}

## Page Content
{content}

## Extracted FAQs from page
{faqs}

## Breadcrumbs from URL
{breadcrumbs}

## Organization Info
Name: {org_name}
URL: {org_url}
Phone: {phone}
Areas Served: {areas}
Business Type: {business_type}
Address: {address}
Logo: {logo}
Featured Image: {image}
Social Profiles (sameAs): {same_as}

## Page Type Rules
- WordPress "post": Article schema (headline, datePublished, author, publisher). No Service schema.
- WordPress "page": usually a Service page. About pages and the homepage get WebPage + {business_type} only.
- Unknown post type: decide from the content (article, service or location).

## @id Linking Rules
Define each entity ONCE with an @id and reference it elsewhere using ONLY {{"@id": "..."}}:
- {business_type} gets "@id": "#business" with name, url, telephone, address, areaServed, logo, sameAs
- Service.provider and Article.publisher are exactly {{"@id": "#business"}}
- WebSite gets "@id": "#website"; WebPage gets "@id": "#webpage" with isPartOf {{"@id": "#website"}} and about {{"@id": "#business"}}
- FAQPage includes isPartOf {{"@id": "#webpage"}}

## Schemas to Create
Service pages: {business_type}, Service, FAQPage (only with extracted FAQs), BreadcrumbList, WebSite, WebPage.
Article pages: {business_type}, Article, FAQPage (only with extracted FAQs), BreadcrumbList, WebSite, WebPage.
Location pages: Service scoped to the location, {business_type}, Place, BreadcrumbList, WebSite, WebPage.

## Output Format
Return ONLY valid JSON:
{{
  "pageType": "service|article|location",
  "schemas": [{{"type": "Service", "schema": {{"@context": "https://schema.org", "@type": "Service", ...}}}}],
  "summary": "What was created and why",
  "confidence": 0.9
}}

CRITICAL RULES:
- FAQs: use ONLY the extracted FAQs, never invent new ones; no FAQPage without them
- Copy the exact page title as WebPage.name
- addressCountry is "CA" for Canadian addresses
- Use "@type": "City" for municipalities in areaServed"""

_PLACEHOLDER = re.compile(r"\{(\w+)\}|\{\{|\}\}")

# Alternate top-level keys a model uses instead of "schemas"
_SCHEMA_LIST_KEYS = ("schemas", "schema", "results", "data", "@graph")


def render_prompt(template: str, values: Dict[str, str]) -> str:
    """
    Single-pass placeholder substitution.

    Substituted values are never rescanned, so page content containing
    "{title}" or braces cannot alter the prompt.
    """
    def replace(match):
        token = match.group(0)
        if token == "{{":
            return "{"
        if token == "}}":
            return "}"
        return values.get(match.group(1), token)

    return _PLACEHOLDER.sub(replace, template)


def truncate_content(content: str, max_length: int = CONTENT_MAX) -> str:
    if len(content) <= max_length:
        return content
    return content[:max_length] + "...[truncated]"


def build_prompt(
    page: PageData,
    org: OrgInfo,
    options: Optional[GenerationOptions] = None,
    page_type: Optional[PageType] = None,
) -> str:
    options = options or GenerationOptions()

    faqs = "\n".join(
        f"{i}. Q: {f.question}\n   A: {f.answer}" for i, f in enumerate(page.faqs, start=1)
    ) or "None found on page"
    crumbs = breadcrumbs_from_url(page.url)[1:]
    breadcrumbs = "\n".join(f"{i}. {c.name}" for i, c in enumerate(crumbs, start=1)) or "Home"
    address = resolve_address(org, options)
    same_as = resolve_same_as(org, options) or []

    return render_prompt(SCHEMA_PROMPT, {
        "url": page.url,
        "title": page.title,
        "description": page.description,
        "post_type": page.wordpress_info.post_type.value,
        "page_type": PageType(page_type).value if page_type else "auto-detect",
        "content": truncate_content(page.content),
        "faqs": faqs,
        "breadcrumbs": breadcrumbs,
        "org_name": org.name,
        "org_url": org.url,
        "phone": resolve_phone(page, org, options) or "",
        "areas": ", ".join(resolve_areas(page, options, scan_page=False)),
        "business_type": resolve_business_type(org, options),
        "address": json.dumps(address.model_dump(by_alias=True, exclude_none=True)) if address else "Not provided",
        "logo": org.logo,
        "image": page.featured_image,
        "same_as": "\n".join(same_as) if same_as else "None provided",
    })


@dataclass
class ParsedResponse:
    schemas: List[Dict[str, Any]] = field(default_factory=list)
    summary: str = ""
    confidence: float = 0.0
    page_type: Optional[str] = None


def _unwrap(item: Any) -> Optional[Dict[str, Any]]:
    """Entity dict out of one list item, whichever wrapper the model used."""
    if not isinstance(item, dict):
        return None
    if isinstance(item.get("schema"), dict) and "type" in item:
        return item["schema"]
    if "@type" in item:
        return item
    if isinstance(item.get("data"), dict) and "schemaType" in item:
        return item["data"]
    return item


def parse_ai_response(text: str) -> ParsedResponse:
    """
    Normalize the model's JSON into a flat list of entity dicts.

    Accepted shapes:
    - {"schemas": [{"type", "schema"}, ...]} (or schema/results/data/@graph keys)
    - a list of raw entities under one of those keys
    - a top-level {"@graph": [...]}
    - a single top-level entity
    Unparseable text yields an empty result.
    """
    candidate = extract_balanced_json(strip_code_fences(text or ""))
    try:
        parsed = json.loads((candidate or "").strip())
    except ValueError:
        return ParsedResponse(summary="Failed to parse response")
    if not isinstance(parsed, dict):
        return ParsedResponse(summary="Failed to parse response")

    summary = parsed.get("summary") if isinstance(parsed.get("summary"), str) else ""
    try:
        confidence = float(parsed.get("confidence", 0.8))
    except (TypeError, ValueError):
        confidence = 0.8
    page_type = parsed.get("pageType") if isinstance(parsed.get("pageType"), str) else None

    for key in _SCHEMA_LIST_KEYS:
        items = parsed.get(key)
        if isinstance(items, dict):
            items = [items]
        if isinstance(items, list) and items:
            schemas = [s for s in (_unwrap(i) for i in items) if s is not None]
            return ParsedResponse(schemas, summary or "Schemas generated", confidence, page_type)

    if "@type" in parsed:
        return ParsedResponse([parsed], "Single schema returned", 0.7, page_type)
    return ParsedResponse(summary=summary or "No schemas found", confidence=confidence, page_type=page_type)


@dataclass
class AIGenerationResult:
    """Typed graph produced from model output, plus what was dropped."""
    graph: SchemaGraph
    report: ValidationReport
    summary: str = ""
    confidence: float = 0.0
    dropped: List[Dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema": self.graph.to_jsonld(),
            "schemaTypes": self.graph.schema_types(),
            "validation": self.report.to_dict(),
            "summary": self.summary,
            "confidence": self.confidence,
            "dropped": self.dropped,
        }


class AIGenerationLayer:
    """
    Model-driven graph generation.

    All output is repaired and parsed into the closed entity set before
    anyone sees it; validation problems are reported, not raised.
    """

    def __init__(self, claude: Optional[ClaudeClient] = None, validator: Optional[GraphValidator] = None):
        self.logger = LayerLogger("ai_generation")
        self.claude = claude or ClaudeClient()
        self.validator = validator or GraphValidator()

    def is_available(self) -> bool:
        return self.claude.is_available()

    def to_graph(
        self,
        entities: List[Dict[str, Any]],
        page: PageData,
        org: OrgInfo,
        options: Optional[GenerationOptions] = None,
    ) -> tuple:
        """Repair raw entity dicts and parse them; returns (SchemaGraph, dropped)."""
        options = options or GenerationOptions()
        repaired = repair_graph(
            entities,
            areas=resolve_areas(page, options, scan_page=False),
            phone=resolve_phone(page, org, options),
            fallback_locality=org.name,
        )

        typed = []
        dropped: List[Dict[str, str]] = []
        for entity in repaired:
            try:
                typed.append(parse_entity(entity))
            except UnsupportedEntityError as e:
                dropped.append({"type": str(e.schema_type), "reason": "unsupported type"})
            except ValidationError as e:
                dropped.append({"type": str(entity.get("@type")), "reason": f"invalid fields: {e.error_count()} error(s)"})

        if dropped:
            self.logger.log_decision(
                decision="entities_dropped",
                reason="outside the supported entity set or failed to parse",
                url=page.url,
                dropped=dropped,
            )
        return SchemaGraph(entities=typed), dropped

    async def generate(
        self,
        page: PageData,
        org: OrgInfo,
        options: Optional[GenerationOptions] = None,
        page_type: Optional[PageType] = None,
    ) -> AIGenerationResult:
        """
        Raises:
            GenerationError: model not configured or the call failed
        """
        self.logger.log_action("ai_generation", "started", url=page.url, page_type=page_type)

        prompt = build_prompt(page, org, options, page_type)
        text = await self.claude.call(prompt, target=page.url)
        parsed = parse_ai_response(text)
        if not parsed.schemas:
            self.logger.log_fallback(
                from_source="model_response",
                to_source="empty_graph",
                reason=parsed.summary,
                url=page.url,
                response_preview=text[:300],
            )

        graph, dropped = self.to_graph(parsed.schemas, page, org, options)
        report = self.validator.validate(graph)
        self.logger.log_validation(
            errors=len(report.errors),
            warnings=len(report.warnings),
            schema_types=graph.schema_types(),
            url=page.url,
        )
        self.logger.log_action(
            "ai_generation",
            "completed",
            url=page.url,
            schemas_generated=len(graph.entities),
            dropped=len(dropped),
        )
        return AIGenerationResult(
            graph=graph,
            report=report,
            summary=parsed.summary,
            confidence=parsed.confidence,
            dropped=dropped,
        )
