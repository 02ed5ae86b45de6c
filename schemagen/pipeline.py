"""
Generation pipeline: classify -> compose (or AI) -> validate -> optional inject.

Single pages run through run(); run_batch() processes many URLs
concurrently with a per-item timeout. A failing item (fetch, model,
store, timeout) is reported on its own and never aborts the batch.
"""
import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from schemagen.adapters.wordpress import slug_from_url
from schemagen.config import config
from schemagen.errors import RecordNotFoundError, SchemaGenError
from schemagen.generators.schema_generator import SchemaGenerator
from schemagen.generators.validation import ValidationReport
from schemagen.layers.ai_generation import AIGenerationLayer
from schemagen.layers.page_classifier import ClassificationResult
from schemagen.models.page import GenerationOptions, OrgInfo, PageData, PageType
from schemagen.models.schema import SchemaGraph
from schemagen.persistence.mutation import ReplaceAllResult, SafeMutationStore
from schemagen.utils.logger import LayerLogger

DEFAULT_CONCURRENCY = 4


class PageSource(Protocol):
    """Scraper collaborator: produces PageData for a URL or raises PageFetchError."""

    async def fetch(self, url: str) -> PageData: ...


@dataclass
class PipelineResult:
    url: str
    page_type: PageType
    graph: SchemaGraph
    report: ValidationReport
    source: str = "rules"
    classification: Optional[ClassificationResult] = None
    dropped: List[Dict[str, str]] = field(default_factory=list)
    injection: Optional[ReplaceAllResult] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "url": self.url,
            "pageType": self.page_type.value,
            "source": self.source,
            "schema": self.graph.to_jsonld(),
            "schemaTypes": self.graph.schema_types(),
            "validation": self.report.to_dict(),
        }
        if self.classification is not None:
            data["scores"] = self.classification.scores
        if self.dropped:
            data["dropped"] = self.dropped
        if self.injection is not None:
            data["injection"] = self.injection.to_dict()
        return data


@dataclass
class BatchItem:
    url: str
    success: bool
    result: Optional[PipelineResult] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.success and self.result is not None:
            return {"url": self.url, "success": True, **self.result.to_dict()}
        return {"url": self.url, "success": False, "error": self.error}


class GenerationPipeline:
    """
    Args:
        generator: Deterministic composer
        ai_layer: Optional model-driven generator (used when use_ai=True)
        mutation_store: Optional store for inject()
    """

    def __init__(
        self,
        generator: Optional[SchemaGenerator] = None,
        ai_layer: Optional[AIGenerationLayer] = None,
        mutation_store: Optional[SafeMutationStore] = None,
    ):
        self.generator = generator or SchemaGenerator()
        self.ai_layer = ai_layer
        self.mutation_store = mutation_store
        self.logger = LayerLogger("pipeline")

    async def run(
        self,
        page: PageData,
        org: OrgInfo,
        options: Optional[GenerationOptions] = None,
        page_type: Optional[PageType] = None,
        use_ai: bool = False,
    ) -> PipelineResult:
        """
        Generate a validated graph for one page.

        The classifier runs unless page_type is given. With use_ai the AI
        layer produces the graph; without a configured model this falls
        back to the deterministic composer.
        """
        classification = None
        if page_type is None:
            classification = self.generator.classifier.classify_with_details(page.url, page)
            page_type = classification.page_type
        page_type = PageType(page_type)

        if use_ai and self.ai_layer is not None and self.ai_layer.is_available():
            ai_result = await self.ai_layer.generate(page, org, options, page_type)
            return PipelineResult(
                url=page.url,
                page_type=page_type,
                graph=ai_result.graph,
                report=ai_result.report,
                source="ai",
                classification=classification,
                dropped=ai_result.dropped,
            )
        if use_ai:
            self.logger.log_fallback(
                from_source="ai",
                to_source="rules",
                reason="AI generation not configured",
                url=page.url,
            )

        result = self.generator.generate(page_type, page, org, options)
        return PipelineResult(
            url=page.url,
            page_type=page_type,
            graph=result.graph,
            report=result.report,
            classification=classification,
        )

    def inject(self, result: PipelineResult, commit: bool = False, backup: bool = True) -> ReplaceAllResult:
        """
        Store a result's graph on the WordPress post matching the URL slug.

        Raises:
            RecordNotFoundError: no published post for the slug
            SchemaValidationError: the graph has required-field errors
        """
        if self.mutation_store is None:
            raise SchemaGenError("No mutation store configured")
        slug = slug_from_url(result.url)
        record = self.mutation_store.store.find_record_by_slug(slug) if slug else None
        if record is None:
            raise RecordNotFoundError(slug or result.url)
        result.injection = self.mutation_store.replace_all(record.record_id, result.graph, commit=commit, backup=backup)
        return result.injection

    async def run_batch(
        self,
        urls: Sequence[str],
        page_source: PageSource,
        org: OrgInfo,
        options: Optional[GenerationOptions] = None,
        use_ai: bool = False,
        inject: bool = False,
        commit: bool = False,
        concurrency: int = DEFAULT_CONCURRENCY,
        item_timeout: Optional[float] = None,
        on_item: Optional[Callable[[BatchItem], None]] = None,
    ) -> List[BatchItem]:
        """
        Fetch and generate many pages concurrently.

        Args:
            urls: Pages to process (result order matches)
            page_source: Scraper collaborator
            inject: Also replace_all each graph on its post (dry-run unless commit)
            concurrency: Max pages in flight
            item_timeout: Seconds per page (default REQUEST_TIMEOUT + AI_TIMEOUT)
            on_item: Called as each item finishes (job progress)
        """
        timeout = item_timeout if item_timeout is not None else float(config.REQUEST_TIMEOUT + config.AI_TIMEOUT)
        semaphore = asyncio.Semaphore(max(1, concurrency))
        self.logger.log_action("batch", "started", urls=len(urls), concurrency=concurrency, use_ai=use_ai)

        async def process(url: str) -> BatchItem:
            page = await page_source.fetch(url)
            result = await self.run(page, org, options, use_ai=use_ai)
            if inject:
                # Store calls are synchronous; keep them off the event loop
                await asyncio.to_thread(self.inject, result, commit)
            return BatchItem(url=url, success=True, result=result)

        async def guarded(url: str) -> BatchItem:
            async with semaphore:
                try:
                    item = await asyncio.wait_for(process(url), timeout=timeout)
                except asyncio.TimeoutError:
                    item = BatchItem(url=url, success=False, error=f"Timed out after {timeout:.0f}s")
                except SchemaGenError as e:
                    item = BatchItem(url=url, success=False, error=str(e))
                except Exception as e:
                    item = BatchItem(url=url, success=False, error=f"{type(e).__name__}: {e}")
            if not item.success:
                self.logger.log_error(item.error, error_type="batch_item_failed", url=url)
            if on_item is not None:
                on_item(item)
            return item

        items = await asyncio.gather(*(guarded(url) for url in urls))
        self.logger.log_action(
            "batch",
            "completed",
            urls=len(urls),
            succeeded=sum(1 for i in items if i.success),
            failed=sum(1 for i in items if not i.success),
        )
        return list(items)
