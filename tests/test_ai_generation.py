"""Tests for the AI generation layer (the Claude client is faked)."""
import asyncio
import json

import pytest

from schemagen.errors import GenerationError
from schemagen.layers.ai_generation import (
    AIGenerationLayer,
    build_prompt,
    parse_ai_response,
    render_prompt,
    truncate_content,
)
from schemagen.models.page import GenerationOptions, PageType

HOUSTON = GenerationOptions(area_served="Houston")


class FakeClaude:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.prompts = []

    def is_available(self):
        return True

    async def call(self, prompt, target=None):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.response


def _model_output(*schemas, **extra):
    return json.dumps({
        "pageType": "service",
        "schemas": [{"type": s["@type"], "schema": s} for s in schemas],
        "summary": "Created service schemas",
        "confidence": 0.9,
        **extra,
    })


class TestPromptRendering:
    def test_single_pass_substitution(self):
        rendered = render_prompt("{title} {{x}} {missing}", {"title": "{url} {{"})
        assert rendered == "{url} {{ {x} {missing}"

    def test_page_content_cannot_inject_placeholders(self, service_page, org):
        page = service_page.model_copy(update={"content": "Call {org_name} at {phone}"})
        prompt = build_prompt(page, org, HOUSTON, PageType.SERVICE)
        assert "Call {org_name} at {phone}" in prompt
        assert "Name: Cool Air HVAC" in prompt
        assert "Areas Served: Houston" in prompt
        assert "Detected Page Type: service" in prompt

    def test_prompt_lists_only_real_faqs(self, service_page, org):
        prompt = build_prompt(service_page, org)
        assert "Q: How fast can you come?" in prompt
        assert "Detected Page Type: auto-detect" in prompt

    def test_truncate_content(self):
        assert truncate_content("abc", 10) == "abc"
        assert truncate_content("x" * 20, 10) == "x" * 10 + "...[truncated]"


class TestParseResponse:
    def test_wrapped_schemas(self):
        parsed = parse_ai_response(_model_output({"@type": "Service", "name": "AC"}))
        assert parsed.schemas == [{"@type": "Service", "name": "AC"}]
        assert parsed.confidence == 0.9
        assert parsed.page_type == "service"

    def test_fenced_graph(self):
        text = '```json\n{"@graph": [{"@type": "WebSite", "url": "https://x.com"}]}\n```'
        assert parse_ai_response(text).schemas == [{"@type": "WebSite", "url": "https://x.com"}]

    def test_single_entity(self):
        parsed = parse_ai_response('{"@type": "Service", "name": "AC"}')
        assert parsed.schemas == [{"@type": "Service", "name": "AC"}]
        assert parsed.confidence == 0.7

    def test_dict_under_schemas_key(self):
        assert parse_ai_response('{"schemas": {"@type": "FAQPage"}}').schemas == [{"@type": "FAQPage"}]

    def test_unparseable(self):
        parsed = parse_ai_response("Sorry, I can't do that.")
        assert parsed.schemas == []
        assert parsed.summary == "Failed to parse response"

    def test_no_schemas(self):
        parsed = parse_ai_response('{"summary": "Nothing to add"}')
        assert parsed.schemas == []
        assert parsed.summary == "Nothing to add"


class TestToGraph:
    def test_output_is_repaired_and_filtered(self, service_page, org):
        layer = AIGenerationLayer(claude=FakeClaude())
        entities = [
            {
                "@context": "https://schema.org",
                "@type": "Service",
                "@id": "#service",
                "name": "AC Repair",
                "provider": {"@type": "HVACBusiness", "@id": "#business", "name": "Cool Air HVAC"},
            },
            {"@type": "Recipe", "name": "Soup"},
        ]
        graph, dropped = layer.to_graph(entities, service_page, org, HOUSTON)
        assert graph.schema_types() == ["Service", "HVACBusiness"]
        assert dropped == [{"type": "Recipe", "reason": "unsupported type"}]

        service, business = graph.entity_dicts()
        assert service["provider"] == {"@id": "#business"}
        assert business["address"]["addressLocality"] == "Houston"
        assert business["telephone"] == org.phone

    def test_invalid_fields_dropped(self, service_page, org):
        layer = AIGenerationLayer(claude=FakeClaude())
        entities = [{"@type": "ListItem"}, {"@type": "BreadcrumbList", "itemListElement": "not a list"}]
        graph, dropped = layer.to_graph(entities, service_page, org)
        assert graph.entities == []
        assert len(dropped) == 2


class TestGenerate:
    def test_generate(self, service_page, org):
        output = _model_output(
            {"@type": "Service", "@id": "#service", "name": "AC Repair", "provider": {"@id": "#business"}},
            {"@type": "HVACBusiness", "@id": "#business", "name": "Cool Air HVAC"},
        )
        claude = FakeClaude(response=output)
        result = asyncio.run(AIGenerationLayer(claude=claude).generate(service_page, org, HOUSTON, PageType.SERVICE))

        assert result.report.valid, result.report.to_dict()
        assert result.confidence == 0.9
        assert result.summary == "Created service schemas"
        assert result.to_dict()["schemaTypes"] == ["Service", "HVACBusiness"]
        assert len(claude.prompts) == 1

    def test_empty_model_output(self, service_page, org):
        result = asyncio.run(AIGenerationLayer(claude=FakeClaude(response="nope")).generate(service_page, org))
        assert result.graph.entities == []

    def test_errors_propagate(self, service_page, org):
        claude = FakeClaude(error=GenerationError("Claude API error: overloaded", service_page.url))
        with pytest.raises(GenerationError) as exc_info:
            asyncio.run(AIGenerationLayer(claude=claude).generate(service_page, org))
        assert exc_info.value.target == service_page.url
