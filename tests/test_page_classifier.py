"""Tests for the weighted page-type classifier."""
from schemagen.layers.page_classifier import ClassifierWeights, PageClassifier, classify, classify_with_details
from schemagen.models.page import PageData, PageType


def _make_page(url: str, post_type: str = "unknown", **fields) -> PageData:
    return PageData.model_validate({"url": url, "wordpressInfo": {"postType": post_type}, **fields})


class TestClassify:
    def test_location_url_meets_floor(self):
        url = "https://example.com/ac-repair-houston"
        assert classify(url, _make_page(url)) == PageType.LOCATION

    def test_empty_input_is_article(self):
        assert classify("", _make_page("")) == PageType.ARTICLE

    def test_blog_post(self, article_page):
        assert classify(article_page.url, article_page) == PageType.ARTICLE

    def test_service_page(self, service_page):
        assert classify(service_page.url, service_page) == PageType.SERVICE

    def test_location_page(self, location_page):
        assert classify(location_page.url, location_page) == PageType.LOCATION

    def test_service_article_tie_resolves_to_article(self):
        page = _make_page(
            "https://example.com/p",
            publishDate="2024-01-01",
            content="See our pricing and get a free estimate",
        )
        result = classify_with_details(page.url, page)
        assert result.scores["service"] == result.scores["article"]
        assert result.page_type == PageType.ARTICLE

    def test_location_below_floor_falls_through(self):
        url = "https://example.com/ac-repair-houston"
        weights = ClassifierWeights(location_floor=100)
        assert classify(url, _make_page(url), weights) == PageType.SERVICE

    def test_undated_bonus_needs_other_evidence(self):
        result = classify_with_details("https://example.com/x", _make_page("https://example.com/x"))
        assert result.scores == {"article": 0, "service": 0, "location": 0}
        assert result.page_type == PageType.ARTICLE


class TestClassifyWithDetails:
    def test_reports_signals(self):
        url = "https://example.com/ac-repair-houston"
        result = classify_with_details(url, _make_page(url))
        assert result.scores["location"] >= result.scores["service"]
        assert any(s.startswith("location+4:url_location") for s in result.signals)
        assert any(s.startswith("service+3:url_service") for s in result.signals)

    def test_location_phrase_uses_original_case(self):
        capital = _make_page("https://example.com/x", title="Proudly serving Houston homes")
        lower = _make_page("https://example.com/x", title="proudly serving houston homes")
        capital_result = classify_with_details(capital.url, capital)
        lower_result = classify_with_details(lower.url, lower)
        assert capital_result.scores["location"] > lower_result.scores["location"]

    def test_url_argument_overrides_page_url(self):
        page = _make_page("https://example.com/")
        result = PageClassifier().classify_with_details("https://example.com/blog/post-title/", page)
        assert result.scores["article"] == 3

    def test_one_heading_can_hint_several_families(self):
        page = _make_page(
            "https://example.com/x",
            headings=[{"level": 2, "text": "Local repair service, posted by our author"}],
        )
        result = classify_with_details(page.url, page)
        signals = result.signals
        assert "service+2:heading_service" in signals
        assert "article+2:heading_article" in signals
        assert "location+2:heading_location" in signals
