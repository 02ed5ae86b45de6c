"""
Rank Math Schema Generator - FastAPI Application
REST API for classification, generation, validation, batch jobs and
safe schema injection into WordPress postmeta.

All mutable state (jobs, org-info cache, store) is injected through
create_app(); nothing lives in module-level globals.
"""
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from fastapi import BackgroundTasks, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from schemagen import __version__
from schemagen.config import config
from schemagen.errors import (
    GenerationError,
    NotFoundError,
    SchemaGenError,
    SchemaValidationError,
    StoreError,
)
from schemagen.generators.schema_generator import SchemaGenerator
from schemagen.generators.validation import validate_graph
from schemagen.models.page import GenerationOptions, OrgInfo, PageData, PageType
from schemagen.persistence.mutation import SafeMutationStore
from schemagen.pipeline import GenerationPipeline, PageSource
from schemagen.utils.logger import get_logger, set_trace_id
from schemagen.utils.stores import JobStore, TTLCache

logger = get_logger("main")


# Request models
class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ClassifyRequest(ApiModel):
    url: str
    page: PageData


class GenerateRequest(ApiModel):
    """Request model for schema generation."""
    page: PageData
    org: Optional[OrgInfo] = None
    options: GenerationOptions = Field(default_factory=GenerationOptions)
    page_type: Optional[PageType] = None
    use_ai: bool = False


class ValidateRequest(ApiModel):
    schema_: Dict[str, Any] = Field(alias="schema")


class BatchRequest(ApiModel):
    urls: List[str] = Field(min_length=1)
    org: OrgInfo
    options: GenerationOptions = Field(default_factory=GenerationOptions)
    use_ai: bool = False
    inject: bool = False
    commit: bool = False


class OrgInfoRequest(ApiModel):
    org: OrgInfo


class RecordRequest(ApiModel):
    record_id: int


class ExecuteRequest(RecordRequest):
    entity: Dict[str, Any]
    schema_type: Optional[str] = None
    is_primary: bool = False
    commit: bool = False
    backup: bool = True


class ReplaceAllRequest(RecordRequest):
    graph: Dict[str, Any]
    primary_type: Optional[str] = None
    commit: bool = False
    backup: bool = True


class DeleteAllRequest(RecordRequest):
    commit: bool = False
    backup: bool = True


class RichSnippetRequest(RecordRequest):
    snippet_type: str
    commit: bool = False


def create_app(
    generator: Optional[SchemaGenerator] = None,
    pipeline: Optional[GenerationPipeline] = None,
    jobs: Optional[JobStore] = None,
    org_cache: Optional[TTLCache] = None,
    mutation_store: Optional[SafeMutationStore] = None,
    page_source: Optional[PageSource] = None,
) -> FastAPI:
    """
    Build the API with its collaborators.

    Args:
        generator: Graph composer
        pipeline: Generation pipeline (built around generator when omitted)
        jobs: Batch job registry
        org_cache: Org info per site URL
        mutation_store: Store for the /api/db routes (503 when absent)
        page_source: Scraper collaborator for batch jobs (503 when absent)
    """
    generator = generator or SchemaGenerator()
    pipeline = pipeline or GenerationPipeline(generator=generator, mutation_store=mutation_store)
    jobs = jobs or JobStore()
    org_cache = org_cache or TTLCache(ttl=config.ORG_CACHE_TTL)

    app = FastAPI(
        title="Rank Math Schema Generator",
        description="Generates JSON-LD @graph schemas and injects them into Rank Math postmeta",
        version=__version__,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.generator = generator
    app.state.pipeline = pipeline
    app.state.jobs = jobs
    app.state.org_cache = org_cache
    app.state.mutation_store = mutation_store

    @app.middleware("http")
    async def trace_requests(request: Request, call_next):
        trace_id = set_trace_id(request.headers.get("X-Trace-Id"))
        response = await call_next(request)
        response.headers["X-Trace-Id"] = trace_id
        return response

    # Error mapping
    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"success": False, "error": str(exc)})

    @app.exception_handler(SchemaValidationError)
    async def validation_handler(request: Request, exc: SchemaValidationError):
        return JSONResponse(
            status_code=422,
            content={"success": False, "error": str(exc), "validation": exc.report.to_dict()},
        )

    @app.exception_handler(StoreError)
    async def store_handler(request: Request, exc: StoreError):
        logger.error("store_error", error=str(exc), path=request.url.path)
        return JSONResponse(status_code=502, content={"success": False, "error": str(exc)})

    @app.exception_handler(GenerationError)
    async def generation_handler(request: Request, exc: GenerationError):
        logger.error("generation_error", error=str(exc), target=exc.target)
        return JSONResponse(status_code=502, content={"success": False, "error": str(exc), "target": exc.target})

    @app.exception_handler(SchemaGenError)
    async def schemagen_handler(request: Request, exc: SchemaGenError):
        return JSONResponse(status_code=400, content={"success": False, "error": str(exc)})

    def require_store() -> SafeMutationStore:
        if mutation_store is None:
            raise HTTPException(status_code=503, detail="Database not configured")
        return mutation_store

    def resolve_org(org: Optional[OrgInfo], page: PageData) -> OrgInfo:
        if org is not None:
            return org
        for key in _site_keys(page.url):
            cached = org_cache.get(key)
            if cached is not None:
                return cached
        raise HTTPException(status_code=400, detail="Organization info required (none cached for this site)")

    # API Routes
    @app.get("/api/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": __version__,
            "database": mutation_store is not None,
            "ai": pipeline.ai_layer is not None and pipeline.ai_layer.is_available(),
        }

    @app.post("/api/classify")
    async def classify_page(request: ClassifyRequest):
        result = generator.classifier.classify_with_details(request.url, request.page)
        return {
            "url": request.url,
            "pageType": result.page_type.value,
            "scores": result.scores,
            "signals": result.signals,
        }

    @app.post("/api/generate")
    async def generate_schema(request: GenerateRequest):
        """Classify (unless pageType is given), compose or AI-generate, validate."""
        org = resolve_org(request.org, request.page)
        logger.info(
            "schema_generation_request",
            url=request.page.url,
            page_type=request.page_type,
            use_ai=request.use_ai,
        )
        result = await pipeline.run(request.page, org, request.options, request.page_type, request.use_ai)
        return {
            "success": True,
            **result.to_dict(),
            "scriptTag": result.graph.to_script_tag(),
        }

    @app.post("/api/validate")
    async def validate_schema(request: ValidateRequest):
        """Validate any externally supplied graph or entity."""
        report = validate_graph(request.schema_)
        return {"success": True, **report.to_dict()}

    @app.post("/api/batch")
    async def start_batch(request: BatchRequest, background_tasks: BackgroundTasks):
        if page_source is None:
            raise HTTPException(status_code=503, detail="No page source configured")
        job = jobs.create(total=len(request.urls))

        def record(item):
            if item.success:
                jobs.record(job.job_id, result=item.to_dict())
            else:
                jobs.record(job.job_id, error={"url": item.url, "error": item.error})

        async def run_job():
            try:
                await pipeline.run_batch(
                    request.urls,
                    page_source,
                    request.org,
                    request.options,
                    use_ai=request.use_ai,
                    inject=request.inject,
                    commit=request.commit,
                    on_item=record,
                )
            except Exception as e:
                logger.error("batch_job_failed", job_id=job.job_id, error=str(e), error_type=type(e).__name__)
                jobs.finish(job.job_id, error=f"{type(e).__name__}: {e}")
                return
            jobs.finish(job.job_id)

        background_tasks.add_task(run_job)
        return {"success": True, "jobId": job.job_id, "total": job.total}

    @app.get("/api/jobs/{job_id}")
    async def get_job(job_id: str):
        job = jobs.get(job_id)
        if job is None:
            raise HTTPException(status_code=404, detail=f"Job {job_id} not found")
        return job.to_dict()

    @app.post("/api/org-info")
    async def cache_org_info(request: OrgInfoRequest):
        key = request.org.root_url
        org_cache.set(key, request.org)
        return {"success": True, "siteUrl": key, "ttl": org_cache.ttl}

    @app.get("/api/org-info")
    async def get_org_info(url: str = Query(..., description="Site or page URL")):
        for key in _site_keys(url):
            org = org_cache.get(key)
            if org is not None:
                return {"success": True, "org": org.model_dump(by_alias=True, exclude_none=True)}
        raise HTTPException(status_code=404, detail=f"No organization info cached for {url}")

    # Direct database routes (Rank Math postmeta). Plain def: the store is
    # synchronous, so FastAPI runs these in its threadpool.
    @app.get("/api/db/post")
    def get_post(slug: str = Query(...)):
        store = require_store()
        record = store.store.find_record_by_slug(slug)
        if record is None:
            raise HTTPException(status_code=404, detail=f"Post not found for slug: {slug}")
        return {
            "success": True,
            "recordId": record.record_id,
            "title": record.title,
            "postType": record.post_type,
            "status": record.status,
        }

    @app.post("/api/db/preview")
    def preview_insertion(request: ExecuteRequest):
        store = require_store()
        return store.preview(request.record_id, request.entity, request.schema_type, request.is_primary).to_dict()

    @app.post("/api/db/execute")
    def execute_insertion(request: ExecuteRequest):
        store = require_store()
        result = store.execute(
            request.record_id,
            request.entity,
            request.schema_type,
            commit=request.commit,
            backup=request.backup,
            is_primary=request.is_primary,
        )
        return result.to_dict()

    @app.post("/api/db/replace-all")
    def replace_all(request: ReplaceAllRequest):
        store = require_store()
        result = store.replace_all(
            request.record_id,
            request.graph,
            commit=request.commit,
            backup=request.backup,
            primary_type=request.primary_type,
        )
        return result.to_dict()

    @app.post("/api/db/rich-snippet")
    def set_rich_snippet(request: RichSnippetRequest):
        store = require_store()
        return store.set_rich_snippet_type(request.record_id, request.snippet_type, commit=request.commit).to_dict()

    @app.post("/api/db/delete-all")
    def delete_all(request: DeleteAllRequest):
        store = require_store()
        return store.delete_all(request.record_id, commit=request.commit, backup=request.backup).to_dict()

    @app.post("/api/db/rollback")
    def rollback(request: RecordRequest):
        store = require_store()
        return {"success": True, **store.rollback(request.record_id).to_dict()}

    @app.get("/api/db/backups")
    def list_backups():
        store = require_store()
        return {"success": True, "backups": store.list_backups()}

    return app


def _site_keys(url: str) -> List[str]:
    """Cache keys to try for a page URL: the URL itself, then its origin."""
    parsed = urlparse(url)
    keys = [url.rstrip("/")]
    if parsed.scheme and parsed.netloc:
        origin = f"{parsed.scheme}://{parsed.netloc}"
        if origin not in keys:
            keys.append(origin)
    return keys


def build_default_app() -> FastAPI:
    """App wired from environment configuration."""
    from schemagen.adapters.claude_client import ClaudeClient
    from schemagen.layers.ai_generation import AIGenerationLayer
    from schemagen.persistence.backups import BackupIndex
    from schemagen.persistence.meta_store import SQLMetaStore

    mutation_store = None
    if config.is_database_configured():
        mutation_store = SafeMutationStore(SQLMetaStore.from_config(), BackupIndex.from_config())

    generator = SchemaGenerator()
    ai_layer = AIGenerationLayer(ClaudeClient()) if config.is_ai_configured() else None
    pipeline = GenerationPipeline(generator=generator, ai_layer=ai_layer, mutation_store=mutation_store)
    return create_app(generator=generator, pipeline=pipeline, mutation_store=mutation_store)


def main():
    import uvicorn

    uvicorn.run(build_default_app(), host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    main()
