"""
Page-Type Classifier for the Rank Math Schema Generator.

Scores a URL + scraped PageData against weighted signal families and
returns one of article / service / location. The rule tables below are
plain data; the scoring loop never special-cases an individual rule.

Decision rules:
- Location wins only if it is the maximum AND at or above the floor
- Otherwise service wins only if strictly above article
- No evidence at all -> article (the undated bonus only reinforces a
  family that already has evidence)
"""
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from schemagen.config import config
from schemagen.models.page import PageData, PageType, PostType
from schemagen.utils.logger import LayerLogger


# =============================================================================
# Rule tables
# =============================================================================

BLOG_URL_PATTERNS = [
    re.compile(r"/blog/", re.IGNORECASE),
    re.compile(r"/posts?/", re.IGNORECASE),
    re.compile(r"/news/", re.IGNORECASE),
    re.compile(r"/articles?/", re.IGNORECASE),
    re.compile(r"/\d{4}/\d{2}/"),  # /2024/01/
]

SERVICE_URL_PATTERNS = [
    re.compile(r"/services?/", re.IGNORECASE),
    re.compile(r"/our-services/", re.IGNORECASE),
    re.compile(r"/what-we-do/", re.IGNORECASE),
    re.compile(r"/solutions/", re.IGNORECASE),
    re.compile(r"/ac-", re.IGNORECASE),
    re.compile(r"/air-conditioning", re.IGNORECASE),
    re.compile(r"/heating", re.IGNORECASE),
    re.compile(r"/hvac", re.IGNORECASE),
    re.compile(r"/furnace", re.IGNORECASE),
    re.compile(r"/heat-pump", re.IGNORECASE),
    re.compile(r"/duct", re.IGNORECASE),
    re.compile(r"/thermostat", re.IGNORECASE),
    re.compile(r"/mini-split", re.IGNORECASE),
    re.compile(r"/repair/", re.IGNORECASE),
    re.compile(r"/installation/", re.IGNORECASE),
    re.compile(r"/maintenance/", re.IGNORECASE),
    re.compile(r"/tune-up", re.IGNORECASE),
    re.compile(r"/plumbing", re.IGNORECASE),
    re.compile(r"/electrical", re.IGNORECASE),
    re.compile(r"/roofing", re.IGNORECASE),
]

LOCATION_URL_PATTERNS = [
    re.compile(r"/locations?/", re.IGNORECASE),
    re.compile(r"/service-area", re.IGNORECASE),
    re.compile(r"/areas?-(?:we-)?served?", re.IGNORECASE),
    re.compile(r"/cities/", re.IGNORECASE),
    re.compile(r"/near-me", re.IGNORECASE),
    re.compile(r"/(?:ac|hvac|heating|cooling|air-conditioning)-[a-z]+-[a-z]+", re.IGNORECASE),  # /ac-repair-houston
    re.compile(r"/[a-z]+-(?:ac|hvac|heating|cooling)-", re.IGNORECASE),  # /houston-ac-repair
]

SERVICE_KEYWORDS = [
    "service", "our services", "what we offer", "how we help", "pricing", "get started",
    "contact us", "free consultation", "request a quote", "free estimate", "schedule service",
    "book appointment", "ac repair", "air conditioning", "heating repair", "hvac service",
    "furnace repair", "furnace installation", "heat pump", "duct cleaning", "emergency service",
    "24/7", "licensed", "certified technician", "same day service", "tune-up", "maintenance plan",
]

SERVICE_HEADING_HINTS = [
    "service", "solution", "what we offer", "repair", "installation", "maintenance", "hvac",
    "air conditioning", "heating", "why choose", "our process", "benefits",
]
ARTICLE_HEADING_HINTS = ["written by", "posted by", "author", "published", "read more"]
LOCATION_HEADING_HINTS = ["serving", "service area", "near you", "in your area", "local"]

# Applied to the original-case title and first 1000 chars of content
LOCATION_PHRASE_PATTERNS = [
    re.compile(r"\b(?:in|near|serving)\s+[A-Z][a-z]+"),  # "in Houston"
    re.compile(r"[A-Z][a-z]+(?:\s+[A-Z][a-z]+)?\s+(?:AC|HVAC|Heating|Cooling)\b"),  # "Houston AC Repair"
    re.compile(r"service\s+area", re.IGNORECASE),
    re.compile(r"areas?\s+we\s+serve", re.IGNORECASE),
    re.compile(r"locations?\s+served", re.IGNORECASE),
    re.compile(r"serving\s+the\s+[A-Z]", re.IGNORECASE),
]

CONTENT_WINDOW = 1000


class ClassifierWeights(BaseModel):
    """
    Score weights per signal family.

    Empirically tuned; only their relative ordering is meaningful.
    """
    blog_url: int = 3
    service_url: int = 3
    location_url: int = 4
    wordpress_post: int = 3
    wordpress_page: int = 1
    author: int = 2
    publish_date: int = 2
    categories: int = 2
    tags: int = 1
    service_keyword: int = 1
    service_heading: int = 2
    article_heading: int = 2
    location_heading: int = 2
    location_phrase: int = 2
    no_publish_date: int = 1
    location_floor: int = Field(default_factory=lambda: config.CLASSIFIER_LOCATION_FLOOR)


@dataclass
class ClassificationResult:
    """Chosen page type with the scores and signals behind it."""
    page_type: PageType
    scores: Dict[str, int]
    signals: List[str] = field(default_factory=list)


def _first_match(patterns, text: str) -> Optional[str]:
    for pattern in patterns:
        if pattern.search(text):
            return pattern.pattern
    return None


class PageClassifier:
    """
    Heuristic page-type classifier. Pure function of its inputs: no
    learning and no state beyond the weights.
    """

    def __init__(self, weights: Optional[ClassifierWeights] = None):
        self.weights = weights or ClassifierWeights()
        self.logger = LayerLogger("page_classifier")

    def classify(self, url: str, page: PageData) -> PageType:
        """Return the page type for url/page."""
        return self.classify_with_details(url, page).page_type

    def classify_with_details(self, url: str, page: PageData) -> ClassificationResult:
        """
        Score every signal family and pick the winner.

        Args:
            url: Page URL (may differ from page.url after redirects)
            page: Scraped page data

        Returns:
            ClassificationResult with page type, per-family scores and fired signals
        """
        w = self.weights
        url = url or ""
        scores = {PageType.ARTICLE.value: 0, PageType.SERVICE.value: 0, PageType.LOCATION.value: 0}
        signals: List[str] = []

        def add(family: PageType, points: int, signal: str):
            scores[family.value] += points
            signals.append(f"{family.value}+{points}:{signal}")

        # URL families: first match per family only
        if _first_match(BLOG_URL_PATTERNS, url):
            add(PageType.ARTICLE, w.blog_url, "url_blog")
        if _first_match(SERVICE_URL_PATTERNS, url):
            add(PageType.SERVICE, w.service_url, "url_service")
        if _first_match(LOCATION_URL_PATTERNS, url):
            add(PageType.LOCATION, w.location_url, "url_location")

        # WordPress post type hint
        post_type = page.wordpress_info.post_type
        if post_type == PostType.POST:
            add(PageType.ARTICLE, w.wordpress_post, "wordpress_post")
        elif post_type == PostType.PAGE:
            add(PageType.SERVICE, w.wordpress_page, "wordpress_page")

        # Blog metadata
        if page.author:
            add(PageType.ARTICLE, w.author, "author")
        if page.publish_date:
            add(PageType.ARTICLE, w.publish_date, "publish_date")
        if page.categories:
            add(PageType.ARTICLE, w.categories, "categories")
        if page.tags:
            add(PageType.ARTICLE, w.tags, "tags")

        # Service keywords in content + title
        combined = f"{page.content} {page.title}".lower()
        for keyword in SERVICE_KEYWORDS:
            if keyword in combined:
                add(PageType.SERVICE, w.service_keyword, f"keyword:{keyword}")

        # Heading hints; one heading can hint at several families
        for heading in page.headings:
            text = heading.text.lower()
            if any(h in text for h in SERVICE_HEADING_HINTS):
                add(PageType.SERVICE, w.service_heading, "heading_service")
            if any(h in text for h in ARTICLE_HEADING_HINTS):
                add(PageType.ARTICLE, w.article_heading, "heading_article")
            if any(h in text for h in LOCATION_HEADING_HINTS):
                add(PageType.LOCATION, w.location_heading, "heading_location")

        # Location phrases in title or the start of the content
        window = page.content[:CONTENT_WINDOW]
        for pattern in LOCATION_PHRASE_PATTERNS:
            if pattern.search(page.title) or pattern.search(window):
                add(PageType.LOCATION, w.location_phrase, f"phrase:{pattern.pattern}")

        # Undated pages lean service/location, but only where there is other evidence
        if not page.publish_date:
            for family in (PageType.SERVICE, PageType.LOCATION):
                if scores[family.value] > 0:
                    add(family, w.no_publish_date, "no_publish_date")

        page_type = self._decide(scores)

        self.logger.log_decision(
            decision=page_type.value,
            reason="highest_score",
            url=url,
            scores=scores,
            signal_count=len(signals),
        )

        return ClassificationResult(page_type=page_type, scores=scores, signals=signals)

    def _decide(self, scores: Dict[str, int]) -> PageType:
        location = scores[PageType.LOCATION.value]
        service = scores[PageType.SERVICE.value]
        article = scores[PageType.ARTICLE.value]

        if location >= max(article, service, location) and location >= self.weights.location_floor:
            return PageType.LOCATION
        return PageType.SERVICE if service > article else PageType.ARTICLE


def classify(url: str, page: PageData, weights: Optional[ClassifierWeights] = None) -> PageType:
    """Classify a page with the default (or given) weights."""
    return PageClassifier(weights).classify(url, page)


def classify_with_details(url: str, page: PageData, weights: Optional[ClassifierWeights] = None) -> ClassificationResult:
    return PageClassifier(weights).classify_with_details(url, page)
