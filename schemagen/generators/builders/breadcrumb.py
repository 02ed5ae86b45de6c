"""BreadcrumbList schema builder, with a URL-path fallback trail."""
from typing import List, Optional, Sequence
from urllib.parse import urlparse

from schemagen.models.page import BreadcrumbItem, GenerationOptions, OrgInfo, PageData
from schemagen.models.schema import BreadcrumbListEntity, ListItem
from schemagen.generators.builders.common import entity_id
from schemagen.utils.locale import format_location_name

MIN_CRUMBS = 2


def breadcrumbs_from_url(url: str, site_name: str = "Home") -> List[BreadcrumbItem]:
    """Site root first, then one titleized crumb per path segment."""
    parsed = urlparse(url or "")
    if not parsed.scheme or not parsed.netloc:
        return []

    base_url = f"{parsed.scheme}://{parsed.netloc}"
    crumbs = [BreadcrumbItem(name=site_name, url=base_url)]

    current = base_url
    for part in (p for p in parsed.path.split("/") if p):
        current = f"{current}/{part}"
        crumbs.append(BreadcrumbItem(name=format_location_name(part) or part, url=current))
    return crumbs


def breadcrumb_from_items(items: Sequence[BreadcrumbItem], list_id: Optional[str] = None) -> Optional[BreadcrumbListEntity]:
    """BreadcrumbList with 1-based positions; None for fewer than two crumbs."""
    if len(items) < MIN_CRUMBS:
        return None
    return BreadcrumbListEntity(
        id=list_id,
        item_list_element=[
            ListItem(position=i, name=crumb.name, item=crumb.url or None)
            for i, crumb in enumerate(items, start=1)
        ],
    )


def build_breadcrumb(page: PageData, org: OrgInfo, options: GenerationOptions) -> Optional[BreadcrumbListEntity]:
    crumbs = list(page.breadcrumbs)
    if len(crumbs) < MIN_CRUMBS:
        crumbs = breadcrumbs_from_url(page.url, org.name)
    return breadcrumb_from_items(crumbs, entity_id(page.url, "breadcrumb"))
