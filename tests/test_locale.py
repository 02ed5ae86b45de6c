"""Tests for country / region / city inference and location extraction."""
from schemagen.config import config
from schemagen.models.page import PageData, PostalAddress
from schemagen.utils.locale import (
    extract_location,
    extract_location_from_page,
    format_location_name,
    infer_city_from_text,
    infer_country,
    infer_region,
    normalize_state,
)


def _make_page(title: str = "", url: str = "https://example.com/", content: str = "") -> PageData:
    return PageData(url=url, title=title, content=content)


class TestInferCountry:
    def test_us_cities(self):
        assert infer_country(None, ["Houston", "Dallas"]) == "US"

    def test_canadian_city(self):
        assert infer_country(None, ["Hamilton"]) == "CA"

    def test_explicit_country_wins(self):
        address = PostalAddress(address_country="MX")
        assert infer_country(address, ["Toronto"]) == "MX"

    def test_canadian_postal_code(self):
        assert infer_country(PostalAddress(postal_code="L8P 1A1"), ["Houston"]) == "CA"

    def test_canadian_postal_code_without_space(self):
        assert infer_country(PostalAddress(postal_code="l8p1a1"), []) == "CA"

    def test_us_zip_code(self):
        assert infer_country(PostalAddress(postal_code="77002-1234"), ["Toronto"]) == "US"

    def test_region_name(self):
        assert infer_country(PostalAddress(address_region="Ontario"), []) == "CA"

    def test_region_code(self):
        assert infer_country(PostalAddress(address_region="TX"), []) == "US"

    def test_canadian_table_scanned_first(self):
        # Vancouver exists in both tables
        assert infer_country(None, ["Vancouver"]) == "CA"

    def test_default_country(self):
        assert infer_country(None, ["Nowhereville"]) == config.DEFAULT_COUNTRY

    def test_city_match_respects_word_boundaries(self):
        assert infer_country(None, ["Londonderry"]) == config.DEFAULT_COUNTRY

    def test_deterministic(self):
        areas = ["Plano", "Toronto"]
        assert len({infer_country(None, areas) for _ in range(5)}) == 1


class TestInferRegion:
    def test_us_region_from_city(self):
        assert infer_region(None, ["Houston"], "US") == "TX"

    def test_canadian_region_from_city(self):
        assert infer_region(None, ["Burlington"], "CA") == "ON"

    def test_explicit_region_wins(self):
        assert infer_region(PostalAddress(address_region="QC"), ["Houston"], "US") == "QC"

    def test_unknown_region_is_empty(self):
        assert infer_region(None, ["Nowhereville"], "US") == ""

    def test_other_country_has_no_table(self):
        assert infer_region(None, ["Houston"], "MX") == ""


class TestCityHelpers:
    def test_city_from_text(self):
        assert infer_city_from_text("Best AC repair in Dallas today") == "Dallas"

    def test_no_city(self):
        assert infer_city_from_text("nothing to see here") is None

    def test_format_location_name(self):
        assert format_location_name("new-york") == "New York"
        assert format_location_name("") is None

    def test_normalize_state(self):
        assert normalize_state("Texas") == "TX"
        assert normalize_state("ontario") == "ON"
        assert normalize_state("tx") == "TX"


class TestExtractLocation:
    def test_city_and_state_from_title(self):
        info = extract_location(_make_page(title="AC Repair in Houston, TX"))
        assert info.city == "Houston"
        assert info.state == "TX"
        assert info.country == "US"

    def test_city_from_url(self):
        info = extract_location(_make_page(url="https://example.com/locations/dallas/"))
        assert info.city == "Dallas"

    def test_province_name_sets_canada(self):
        info = extract_location(_make_page(title="Furnace Repair", content="Proudly serving Ontario homeowners"))
        assert info.state == "ON"
        assert info.country == "CA"

    def test_lowercase_words_are_not_state_codes(self):
        info = extract_location(_make_page(title="Turn on or off", content="come in today"))
        assert info.state is None

    def test_canadian_postal_code_in_text(self):
        info = extract_location(_make_page(title="Heating Help", content="Visit us at L8P 1A1"))
        assert info.country == "CA"

    def test_page_fallback_prefers_known_city(self):
        page = _make_page(title="Emergency Service", content="We cover Plano and nearby towns.")
        assert extract_location_from_page(page) == "Plano"
