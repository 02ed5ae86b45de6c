"""
Article schema builder.

Google Rich Results fields:
- headline (<=110 chars)
- mainEntityOfPage (reference to the page's WebPage entity)
- author (Person, or the organization when no author was scraped)
- publisher (Organization with logo when known)
- datePublished / dateModified (dateModified falls back to datePublished)
"""
from schemagen.models.page import GenerationOptions, OrgInfo, PageData
from schemagen.models.schema import ArticleEntity, IdRef, ImageObjectEntity, Party
from schemagen.generators.builders.common import (
    entity_id,
    normalize_date,
    page_name,
    primary_image_id,
    resolve_same_as,
    truncate,
    webpage_id,
)

HEADLINE_MAX = 110
DESCRIPTION_MAX = 200


def build_article(page: PageData, org: OrgInfo, options: GenerationOptions) -> ArticleEntity:
    if page.author:
        author = Party(type="Person", name=page.author)
    else:
        author = Party(type="Organization", name=org.name)

    publisher = Party(
        type="Organization",
        name=org.name,
        logo=ImageObjectEntity(url=org.logo) if org.logo else None,
        same_as=resolve_same_as(org, options),
    )

    date_published = normalize_date(page.publish_date)
    date_modified = normalize_date(page.modified_date) or date_published

    return ArticleEntity(
        id=entity_id(page.url, "article"),
        headline=truncate(page_name(page), HEADLINE_MAX) or org.name,
        description=truncate(page.description, DESCRIPTION_MAX) or None,
        url=page.url,
        main_entity_of_page=IdRef(id=webpage_id(page)),
        image=ImageObjectEntity(id=primary_image_id(page), url=page.featured_image) if page.featured_image else None,
        author=author,
        publisher=publisher,
        date_published=date_published,
        date_modified=date_modified,
        keywords=", ".join(page.tags) or None,
        article_section=page.categories[0] if page.categories else None,
    )
