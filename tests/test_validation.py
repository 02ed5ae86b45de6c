"""Tests for the per-type graph validator."""
from schemagen.generators.validation import GraphValidator, Severity, validate_graph

CONTEXT = "https://schema.org"


def _make_document(*entities):
    return {"@context": CONTEXT, "@graph": list(entities)}


def _business(**fields):
    return {
        "@type": "HVACBusiness",
        "@id": "#biz",
        "name": "Cool Air",
        "url": "https://x.com",
        "telephone": "555",
        "address": {"@type": "PostalAddress", "addressLocality": "Houston"},
        **fields,
    }


def _fields(issues):
    return [(i.entity_type, i.field) for i in issues]


class TestRequiredFields:
    def test_valid_graph(self):
        document = _make_document(
            {"@type": "Service", "@id": "#svc", "name": "AC", "provider": {"@id": "#biz"},
             "description": "d", "areaServed": "Houston"},
            _business(),
        )
        report = validate_graph(document)
        assert report.valid
        assert report.errors == []
        assert report.schema_count == 2

    def test_missing_headline(self):
        report = validate_graph(_make_document({"@type": "BlogPosting", "author": {"@type": "Person", "name": "J"}}))
        assert not report.valid
        assert ("BlogPosting", "headline") in _fields(report.errors)

    def test_recommended_fields_are_warnings(self):
        report = validate_graph(_make_document({"@type": "Article", "headline": "Tips"}))
        assert report.valid
        assert ("Article", "author") in _fields(report.warnings)
        assert all(w.severity == Severity.RECOMMENDED for w in report.warnings)

    def test_missing_context(self):
        report = validate_graph({"@graph": [{"@type": "WebSite", "url": "https://x.com"}]})
        assert ("graph", "@context") in _fields(report.errors)

    def test_missing_type(self):
        report = validate_graph(_make_document({"name": "nameless"}))
        assert ("unknown", "@type") in _fields(report.errors)

    def test_single_entity_document(self):
        report = validate_graph({"@context": CONTEXT, "@type": "FAQPage", "mainEntity": []})
        assert ("FAQPage", "mainEntity") in _fields(report.errors)


class TestCrossEntityChecks:
    def test_unresolved_provider(self):
        document = _make_document({"@type": "Service", "name": "AC", "provider": {"@id": "#missing"}})
        report = validate_graph(document)
        assert ("Service", "provider") in _fields(report.errors)

    def test_provider_address_must_pin_place(self):
        document = _make_document(
            {"@type": "Service", "name": "AC", "provider": {"@id": "#biz"}},
            _business(address={"@type": "PostalAddress", "addressCountry": "US"}),
        )
        report = validate_graph(document)
        assert ("Service", "provider.address") in _fields(report.errors)
        assert ("HVACBusiness", "address") in _fields(report.errors)

    def test_inline_provider_checked(self):
        document = _make_document({"@type": "Service", "name": "AC", "provider": {"@type": "Plumber", "name": "P"}})
        report = validate_graph(document)
        assert ("Service", "provider.address") in _fields(report.errors)

    def test_duplicate_ids(self):
        report = validate_graph(_make_document(_business(), _business()))
        assert ("HVACBusiness", "@id") in _fields(report.errors)

    def test_dangling_reference_is_warning(self):
        document = _make_document({"@type": "WebPage", "url": "https://x.com", "name": "Home", "isPartOf": {"@id": "#nowhere"}})
        report = validate_graph(document)
        assert report.valid
        assert any("#nowhere" in w.message for w in report.warnings)

    def test_short_breadcrumb_is_warning(self):
        crumb = {"@type": "BreadcrumbList", "itemListElement": [{"@type": "ListItem", "position": 1, "name": "Home"}]}
        report = validate_graph(_make_document(crumb))
        assert report.valid
        assert ("BreadcrumbList", "itemListElement") in _fields(report.warnings)

    def test_unsupported_type_is_warning(self):
        report = GraphValidator().validate(_make_document({"@type": "Recipe", "name": "Soup"}))
        assert report.valid
        assert ("Recipe", "@type") in _fields(report.warnings)


class TestSingleEntity:
    def test_required_fields(self):
        report = GraphValidator().validate_entity({"@type": "Service"})
        assert not report.valid
        assert _fields(report.errors) == [("Service", "name"), ("Service", "provider")]

    def test_provider_reference_not_resolved(self):
        report = GraphValidator().validate_entity({"@type": "Service", "name": "AC", "provider": {"@id": "#elsewhere"}})
        assert report.valid

    def test_business_address_still_checked(self):
        report = GraphValidator().validate_entity(_business(address={"@type": "PostalAddress", "addressCountry": "US"}))
        assert ("HVACBusiness", "address") in _fields(report.errors)

    def test_missing_type(self):
        report = GraphValidator().validate_entity({"name": "nameless"})
        assert ("unknown", "@type") in _fields(report.errors)


class TestReportSerialization:
    def test_to_dict(self):
        report = validate_graph(_make_document({"@type": "Article"}))
        data = report.to_dict()
        assert data["valid"] is False
        assert data["schemaCount"] == 1
        assert data["errors"][0] == {
            "entityType": "Article",
            "field": "headline",
            "message": "Missing headline",
            "severity": "required",
        }
