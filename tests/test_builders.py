"""Tests for the per-type schema builders."""
from schemagen.generators.builders import (
    breadcrumb_from_items,
    breadcrumbs_from_url,
    build_article,
    build_breadcrumb,
    build_faq,
    build_local_business,
    build_location_bundle,
    build_service,
    detect_service_type,
    faq_from_pairs,
)
from schemagen.generators.builders.common import normalize_date, page_name, truncate
from schemagen.models.page import (
    BreadcrumbItem,
    BusinessType,
    FAQItem,
    GenerationOptions,
    OpeningHours,
    OrgInfo,
    PageData,
)
from schemagen.models.schema import IdRef


def _make_page(title: str = "Welcome", url: str = "https://coolair.example.com/", **fields) -> PageData:
    return PageData(url=url, title=title, **fields)


class TestFAQBuilder:
    def test_blank_pairs_dropped(self):
        faq = faq_from_pairs([FAQItem(question="", answer="x"), FAQItem(question="Q?", answer="A.")])
        assert faq is not None
        assert len(faq.main_entity) == 1
        assert faq.main_entity[0].name == "Q?"
        assert faq.main_entity[0].accepted_answer.text == "A."

    def test_empty_list_gives_none(self):
        assert faq_from_pairs([]) is None

    def test_whitespace_only_pairs_give_none(self):
        assert faq_from_pairs([FAQItem(question="   ", answer="\n")]) is None

    def test_capped_at_ten(self):
        pairs = [FAQItem(question=f"Q{i}?", answer=f"A{i}") for i in range(15)]
        assert len(faq_from_pairs(pairs).main_entity) == 10

    def test_build_faq_reads_page(self, service_page, org):
        faq = build_faq(service_page, org, GenerationOptions())
        assert [q.name for q in faq.main_entity] == ["How fast can you come?"]


class TestServiceBuilder:
    def test_areas_and_country_from_options(self, service_page, org):
        service = build_service(service_page, org, GenerationOptions(area_served="Houston, Dallas"))
        assert service.provider.address.address_country == "US"
        assert service.provider.address.address_locality == "Houston"
        assert isinstance(service.area_served, list)
        assert [c.name for c in service.area_served] == ["Houston", "Dallas"]
        assert all(c.type == "City" for c in service.area_served)

    def test_single_area_is_one_city(self, service_page, org):
        service = build_service(service_page, org, GenerationOptions(area_served="Hamilton"))
        assert service.area_served.name == "Hamilton"
        assert service.provider.address.address_country == "CA"

    def test_provider_shares_business_id(self, service_page, org):
        service = build_service(service_page, org, GenerationOptions())
        business = build_local_business(service_page, org, GenerationOptions())
        assert service.provider.id == business.id

    def test_detects_specific_service_first(self):
        info = detect_service_type(_make_page(title="Furnace Repair and HVAC Maintenance"))
        assert info.service_type == "Furnace Repair"

    def test_detects_ac_repair(self, service_page):
        assert detect_service_type(service_page).service_type == "Air Conditioning Repair"

    def test_unknown_service_uses_title(self):
        info = detect_service_type(_make_page(title="Window Washing"))
        assert info.name == "Window Washing"
        assert info.category == "Service"

    def test_untitled_service_named_from_url(self, org):
        page = _make_page(title="", url="https://coolair.example.com/window-washing/")
        assert build_service(page, org, GenerationOptions()).name == "Window Washing"

    def test_untitled_root_page_uses_org_name(self, org):
        assert build_service(_make_page(title=""), org, GenerationOptions()).name == org.name

    def test_reserve_action_targets_contact_page(self, service_page, org):
        service = build_service(service_page, org, GenerationOptions())
        assert service.potential_action.target.url_template == "https://coolair.example.com/contact"


class TestLocalBusinessBuilder:
    def test_address_always_present(self, org):
        business = build_local_business(_make_page(), org, GenerationOptions())
        assert business.address is not None
        assert business.address.address_locality == org.name
        assert business.address.address_country

    def test_explicit_address_not_overwritten(self, org_with_address):
        business = build_local_business(_make_page(), org_with_address, GenerationOptions())
        assert business.address.street_address == "12 King St"
        assert business.address.address_locality == "Hamilton"
        assert business.address.address_country == "CA"

    def test_hvac_gets_round_the_clock_hours(self, org):
        business = build_local_business(_make_page(), org, GenerationOptions())
        assert business.type == "HVACBusiness"
        assert business.opening_hours_specification.opens == "00:00"
        assert len(business.opening_hours_specification.day_of_week) == 7

    def test_other_verticals_get_no_default_hours(self, org):
        options = GenerationOptions(business_type=BusinessType.PLUMBER)
        business = build_local_business(_make_page(), org, options)
        assert business.type == "Plumber"
        assert business.opening_hours_specification is None
        assert business.has_offer_catalog.name == "Plumbing Services"

    def test_explicit_hours_and_services(self, org):
        options = GenerationOptions(
            opening_hours=OpeningHours(day_of_week=["Monday"], opens="08:00", closes="17:00"),
            services=["Duct Cleaning"],
            price_range="$$",
        )
        business = build_local_business(_make_page(), org, options)
        assert business.opening_hours_specification.day_of_week == ["Monday"]
        assert business.has_offer_catalog.item_list_element[0].item_offered.name == "Duct Cleaning"
        assert business.price_range == "$$"

    def test_options_phone_wins(self, org):
        business = build_local_business(_make_page(phone="111"), org, GenerationOptions(phone="222"))
        assert business.telephone == "222"


class TestArticleBuilder:
    def test_person_author_and_dates(self, article_page, org):
        article = build_article(article_page, org, GenerationOptions())
        assert article.author.type == "Person"
        assert article.author.name == "Jane Smith"
        assert article.date_published == "2024-05-01T00:00:00Z"
        assert article.date_modified == article.date_published
        assert article.main_entity_of_page == IdRef(id=f"{article_page.url.rstrip('/')}/#webpage")
        assert article.keywords == "ac, summer"
        assert article.article_section == "Tips"

    def test_org_author_when_none_scraped(self, org):
        article = build_article(_make_page(title="Untitled"), org, GenerationOptions())
        assert article.author.type == "Organization"
        assert article.author.name == org.name
        assert article.date_published is None

    def test_untitled_article_headline(self, org):
        page = _make_page(title="  ", url="https://coolair.example.com/blog/summer_ac-tips.html")
        assert build_article(page, org, GenerationOptions()).headline == "Summer Ac Tips"
        assert build_article(_make_page(title=""), org, GenerationOptions()).headline == org.name

    def test_headline_truncated(self, org):
        article = build_article(_make_page(title="x" * 200), org, GenerationOptions())
        assert len(article.headline) == 110
        assert article.headline.endswith("...")


class TestBreadcrumbBuilder:
    def test_trail_from_url(self, service_page, org):
        crumbs = build_breadcrumb(service_page, org, GenerationOptions())
        names = [item.name for item in crumbs.item_list_element]
        assert names == ["Cool Air HVAC", "Services", "Ac Repair"]
        assert [item.position for item in crumbs.item_list_element] == [1, 2, 3]

    def test_scraped_trail_wins(self, org):
        page = _make_page(
            url="https://coolair.example.com/a/b/",
            breadcrumbs=[BreadcrumbItem(name="Home", url="/"), BreadcrumbItem(name="Bee", url="/a/b/")],
        )
        crumbs = build_breadcrumb(page, org, GenerationOptions())
        assert [item.name for item in crumbs.item_list_element] == ["Home", "Bee"]

    def test_single_crumb_gives_none(self):
        assert breadcrumb_from_items([BreadcrumbItem(name="Home")]) is None

    def test_root_url_has_one_crumb(self):
        assert len(breadcrumbs_from_url("https://coolair.example.com/")) == 1
        assert breadcrumbs_from_url("not a url") == []


class TestLocationBundle:
    def test_bundle_shape(self, location_page, org):
        service, business, place = build_location_bundle(location_page, org, GenerationOptions())
        assert service.type == "Service"
        assert service.service_type == "Air Conditioning Repair"
        assert service.area_served.name == "Houston"
        assert service.area_served.contained_in_place.name == "TX"
        assert business.type == "HVACBusiness"
        assert business.address.address_locality == "Houston"
        assert business.address.address_country == "US"
        assert place.name == "Houston"
        assert place.contained_in_place.name == "TX"

    def test_falls_back_to_options_area(self, org):
        page = _make_page(title="Our Coverage", url="https://coolair.example.com/coverage/")
        _, _, place = build_location_bundle(page, org, GenerationOptions(area_served="Toronto"))
        assert place.name == "Toronto"
        assert place.address.address_country == "CA"
        assert place.address.address_region == "ON"


class TestCommonHelpers:
    def test_normalize_date(self):
        assert normalize_date("2024-05-01") == "2024-05-01T00:00:00Z"
        assert normalize_date("2024-05-01T10:00:00") == "2024-05-01T10:00:00Z"
        assert normalize_date("2024-05-01T10:00:00+02:00") == "2024-05-01T10:00:00+02:00"
        assert normalize_date("2024-01-15 10:30:00") == "2024-01-15T10:30:00Z"
        assert normalize_date("1700000000") == "2023-11-14T22:13:20Z"
        assert normalize_date("") is None
        assert normalize_date("not a date") is None

    def test_truncate(self):
        assert truncate("short", 10) == "short"
        assert truncate("abcdefghijkl", 10) == "abcdefg..."
        assert truncate(None, 10) == ""

    def test_page_name(self):
        assert page_name(_make_page(title=" AC  Repair ")) == "AC Repair"
        assert page_name(_make_page(title="", url="https://x.com/services/ac-repair/")) == "Ac Repair"
        assert page_name(_make_page(title="")) == ""

    def test_org_root_url(self):
        assert OrgInfo(name="X", url="https://x.com/").root_url == "https://x.com"
