"""Per-type schema builders. Each is a pure (PageData, OrgInfo, GenerationOptions) function."""
from schemagen.generators.builders.article import build_article
from schemagen.generators.builders.breadcrumb import build_breadcrumb, breadcrumb_from_items, breadcrumbs_from_url
from schemagen.generators.builders.faq import build_faq, faq_from_pairs
from schemagen.generators.builders.local_business import build_local_business
from schemagen.generators.builders.location import build_location_bundle
from schemagen.generators.builders.service import build_service, detect_service_type

__all__ = [
    "build_article",
    "build_breadcrumb",
    "breadcrumb_from_items",
    "breadcrumbs_from_url",
    "build_faq",
    "faq_from_pairs",
    "build_local_business",
    "build_location_bundle",
    "build_service",
    "detect_service_type",
]
