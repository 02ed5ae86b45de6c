"""Tests for the post-processing invariant-repair pass."""
import copy

from schemagen.generators.repair import repair_graph


def _make_graph():
    return [
        {
            "@context": "https://schema.org",
            "@type": "Service",
            "@id": "https://x.com/#service",
            "name": "AC Repair",
            "provider": {
                "@type": "HVACBusiness",
                "@id": "https://x.com/#localbusiness",
                "name": "Cool Air",
                "telephone": "555-0100",
            },
        },
        {
            "@type": "HVACBusiness",
            "@id": "https://x.com/#localbusiness",
            "name": "Cool Air",
            "address": {"@type": "PostalAddress", "addressLocality": "Houston"},
        },
    ]


def _by_type(graph, schema_type):
    return [e for e in graph if e.get("@type") == schema_type]


class TestPureReferences:
    def test_nested_copy_becomes_reference(self):
        repaired = repair_graph(_make_graph())
        service = _by_type(repaired, "Service")[0]
        assert service["provider"] == {"@id": "https://x.com/#localbusiness"}

    def test_stripped_fields_merge_into_owner(self):
        repaired = repair_graph(_make_graph())
        business = _by_type(repaired, "HVACBusiness")[0]
        assert business["telephone"] == "555-0100"
        assert business["address"]["addressLocality"] == "Houston"

    def test_unowned_definition_is_hoisted(self):
        graph = [{
            "@type": "Service",
            "@id": "#service",
            "name": "Plumbing",
            "provider": {"@type": "Plumber", "@id": "#biz", "name": "Pipes Inc"},
        }]
        repaired = repair_graph(graph, areas=["Dallas"])
        assert len(repaired) == 2
        assert repaired[0]["provider"] == {"@id": "#biz"}
        hoisted = repaired[1]
        assert hoisted["@type"] == "Plumber"
        assert hoisted["address"]["addressLocality"] == "Dallas"
        assert hoisted["address"]["addressRegion"] == "TX"
        assert hoisted["address"]["addressCountry"] == "US"

    def test_unsupported_nested_type_stays_nested(self):
        author = {"@type": "Person", "@id": "#jane", "name": "Jane"}
        graph = [{"@type": "Article", "@id": "#a", "headline": "Tips", "author": author}]
        repaired = repair_graph(graph)
        assert len(repaired) == 1
        assert repaired[0]["author"] == author

    def test_list_values_are_repaired(self):
        graph = [
            {"@type": "WebPage", "@id": "#page", "url": "https://x.com", "about": [{"@id": "#site", "@type": "WebSite", "url": "https://x.com"}]},
            {"@type": "WebSite", "@id": "#site", "url": "https://x.com"},
        ]
        repaired = repair_graph(graph)
        assert repaired[0]["about"] == [{"@id": "#site"}]


class TestAddresses:
    def test_missing_address_from_areas(self):
        repaired = repair_graph([{"@type": "HVACBusiness", "name": "Cool Air"}], areas=["Toronto"])
        address = repaired[0]["address"]
        assert address["addressLocality"] == "Toronto"
        assert address["addressRegion"] == "ON"
        assert address["addressCountry"] == "CA"

    def test_entity_area_served_beats_argument(self):
        graph = [{"@type": "Plumber", "name": "P", "areaServed": [{"@type": "City", "name": "Miami"}]}]
        repaired = repair_graph(graph, areas=["Toronto"])
        assert repaired[0]["address"]["addressLocality"] == "Miami"
        assert repaired[0]["address"]["addressRegion"] == "FL"

    def test_fallback_locality(self):
        repaired = repair_graph([{"@type": "Electrician", "name": "Sparks"}], fallback_locality="Sparkville")
        assert repaired[0]["address"]["addressLocality"] == "Sparkville"

    def test_entity_name_when_nothing_else(self):
        repaired = repair_graph([{"@type": "Electrician", "name": "Sparks"}])
        assert repaired[0]["address"]["addressLocality"] == "Sparks"

    def test_explicit_fields_never_overwritten(self):
        graph = [{
            "@type": "HVACBusiness",
            "name": "Cool Air",
            "address": {"@type": "PostalAddress", "streetAddress": "1 Main St", "addressCountry": "MX"},
        }]
        repaired = repair_graph(graph, areas=["Houston"])
        address = repaired[0]["address"]
        assert address["streetAddress"] == "1 Main St"
        assert address["addressCountry"] == "MX"

    def test_string_address_becomes_street(self):
        repaired = repair_graph([{"@type": "HVACBusiness", "name": "C", "address": "9 Elm St"}])
        assert repaired[0]["address"]["streetAddress"] == "9 Elm St"

    def test_nested_provider_without_id_gets_address(self):
        graph = [{"@type": "Service", "name": "S", "provider": {"@type": "Plumber", "name": "P"}}]
        repaired = repair_graph(graph, areas=["Dallas"], phone="555")
        provider = repaired[0]["provider"]
        assert provider["address"]["addressLocality"] == "Dallas"
        assert provider["telephone"] == "555"

    def test_phone_filled_only_when_missing(self):
        graph = [{"@type": "HVACBusiness", "name": "C", "telephone": "111"}]
        repaired = repair_graph(graph, phone="222")
        assert repaired[0]["telephone"] == "111"


class TestRepairProperties:
    def test_idempotent(self):
        once = repair_graph(_make_graph(), areas=["Houston"], phone="555")
        twice = repair_graph(once, areas=["Houston"], phone="555")
        assert twice == once

    def test_input_not_mutated(self):
        graph = _make_graph()
        original = copy.deepcopy(graph)
        repair_graph(graph)
        assert graph == original

    def test_context_removed_from_entities(self):
        repaired = repair_graph(_make_graph())
        assert all("@context" not in e for e in repaired)

    def test_non_dict_entries_dropped(self):
        assert repair_graph(["junk", None]) == []
