"""Tests for the FastAPI application (TestClient, injected collaborators)."""
import asyncio
import threading

import httpx
import pytest
from fastapi.testclient import TestClient

from schemagen.errors import PageFetchError
from schemagen.main import create_app
from schemagen.persistence.meta_store import InMemoryMetaStore
from schemagen.persistence.mutation import SafeMutationStore
from schemagen.utils.stores import JobStore, TTLCache

ORG = {
    "name": "Cool Air HVAC",
    "url": "https://coolair.example.com",
    "phone": "(713) 555-0100",
}
SERVICE_PAGE = {
    "url": "https://coolair.example.com/services/ac-repair/",
    "title": "AC Repair Services",
    "description": "Fast, licensed air conditioning repair.",
    "content": "Our licensed technicians offer same day service for AC repair.",
    "wordpressInfo": {"postType": "page"},
}
GRAPH = {
    "@context": "https://schema.org",
    "@graph": [
        {
            "@type": "Service",
            "@id": "https://coolair.example.com/#service",
            "name": "AC Repair",
            "provider": {"@id": "https://coolair.example.com/#localbusiness"},
        },
        {
            "@type": "HVACBusiness",
            "@id": "https://coolair.example.com/#localbusiness",
            "name": "Cool Air HVAC",
            "address": {"@type": "PostalAddress", "addressLocality": "Houston"},
        },
    ],
}


class StaticSource:
    def __init__(self, pages):
        self.pages = pages

    async def fetch(self, url):
        if url not in self.pages:
            raise PageFetchError("HTTP 404", url)
        return self.pages[url]


class BrokenSource:
    async def fetch(self, url):
        raise RuntimeError("connection reset by scraper")


class BlockingStore(InMemoryMetaStore):
    """find_record blocks its thread until the test releases it."""

    def __init__(self):
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()
        self.released = None

    def find_record(self, record_id):
        self.entered.set()
        self.released = self.release.wait(timeout=2)
        return super().find_record(record_id)


@pytest.fixture
def client(mutation_store, service_page):
    app = create_app(
        jobs=JobStore(),
        org_cache=TTLCache(ttl=60),
        mutation_store=mutation_store,
        page_source=StaticSource({service_page.url: service_page}),
    )
    return TestClient(app)


@pytest.fixture
def bare_client():
    return TestClient(create_app())


class TestGeneration:
    def test_health(self, client, bare_client):
        assert client.get("/api/health").json()["database"] is True
        data = bare_client.get("/api/health").json()
        assert data["status"] == "healthy"
        assert data["database"] is False
        assert data["ai"] is False

    def test_trace_id_echoed(self, client):
        response = client.get("/api/health", headers={"X-Trace-Id": "abc123"})
        assert response.headers["X-Trace-Id"] == "abc123"
        assert client.get("/api/health").headers["X-Trace-Id"]

    def test_classify(self, client):
        response = client.post("/api/classify", json={"url": SERVICE_PAGE["url"], "page": SERVICE_PAGE})
        data = response.json()
        assert data["pageType"] == "service"
        assert set(data["scores"]) == {"article", "service", "location"}

    def test_generate(self, client):
        response = client.post("/api/generate", json={
            "page": SERVICE_PAGE,
            "org": ORG,
            "options": {"areaServed": "Houston"},
        })
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["pageType"] == "service"
        assert data["schemaTypes"][0] == "Service"
        assert data["validation"]["valid"] is True
        assert data["scriptTag"].startswith("<script")

    def test_generate_uses_cached_org(self, client):
        client.post("/api/org-info", json={"org": ORG})
        response = client.post("/api/generate", json={"page": SERVICE_PAGE, "pageType": "article"})
        assert response.status_code == 200
        assert response.json()["schemaTypes"][0] == "Article"

    def test_generate_without_org(self, client):
        response = client.post("/api/generate", json={"page": SERVICE_PAGE})
        assert response.status_code == 400

    def test_validate(self, client):
        data = client.post("/api/validate", json={"schema": {"@context": "https://schema.org", "@type": "Article"}}).json()
        assert data["valid"] is False
        assert data["errors"][0]["field"] == "headline"


class TestOrgCache:
    def test_round_trip_by_page_url(self, client):
        stored = client.post("/api/org-info", json={"org": {**ORG, "url": "https://coolair.example.com/"}}).json()
        assert stored["siteUrl"] == "https://coolair.example.com"
        data = client.get("/api/org-info", params={"url": "https://coolair.example.com/services/ac-repair/"}).json()
        assert data["org"]["name"] == "Cool Air HVAC"

    def test_miss(self, client):
        assert client.get("/api/org-info", params={"url": "https://other.example.com"}).status_code == 404


class TestBatchJobs:
    def test_batch_job_progress(self, client, service_page):
        response = client.post("/api/batch", json={
            "urls": [service_page.url, "https://coolair.example.com/missing/"],
            "org": ORG,
        })
        job_id = response.json()["jobId"]
        job = client.get(f"/api/jobs/{job_id}").json()
        assert job["status"] == "completed"
        assert job["processed"] == 2
        assert len(job["results"]) == 1
        assert "HTTP 404" in job["errors"][0]["error"]

    def test_batch_requires_urls(self, client):
        assert client.post("/api/batch", json={"urls": [], "org": ORG}).status_code == 422

    def test_batch_without_source(self, bare_client):
        response = bare_client.post("/api/batch", json={"urls": ["https://x.com"], "org": ORG})
        assert response.status_code == 503

    def test_unknown_job(self, client):
        assert client.get("/api/jobs/nope").status_code == 404

    def test_unexpected_source_error_is_per_item(self):
        client = TestClient(create_app(page_source=BrokenSource()))
        job_id = client.post("/api/batch", json={"urls": ["https://x.com/a", "https://x.com/b"], "org": ORG}).json()["jobId"]
        job = client.get(f"/api/jobs/{job_id}").json()
        assert job["status"] == "completed"
        assert job["processed"] == 2
        assert job["errors"][0]["error"] == "RuntimeError: connection reset by scraper"


class TestStoreConcurrency:
    def test_blocked_store_call_does_not_stall_other_requests(self):
        store = BlockingStore()
        store.add_record(42, title="AC Repair Houston", slug="ac-repair-houston")
        app = create_app(mutation_store=SafeMutationStore(store))

        async def scenario():
            transport = httpx.ASGITransport(app=app)
            async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
                preview = asyncio.create_task(
                    http.post("/api/db/preview", json={"recordId": 42, "entity": GRAPH["@graph"][0]})
                )
                for _ in range(200):
                    if store.entered.is_set():
                        break
                    await asyncio.sleep(0.01)
                health = await http.get("/api/health")
                store.release.set()
                return health, await preview

        health, preview = asyncio.run(scenario())
        assert health.status_code == 200
        assert store.released is True
        assert preview.json()["action"] == "INSERT"


class TestDatabaseRoutes:
    def test_post_lookup(self, client):
        data = client.get("/api/db/post", params={"slug": "ac-repair-houston"}).json()
        assert data["recordId"] == 42
        assert client.get("/api/db/post", params={"slug": "missing"}).status_code == 404

    def test_preview_and_execute(self, client, memory_store):
        body = {"recordId": 42, "entity": GRAPH["@graph"][0]}
        assert client.post("/api/db/preview", json=body).json()["action"] == "INSERT"

        dry = client.post("/api/db/execute", json=body).json()
        assert dry["simulated"] is True
        assert memory_store.list_meta(42) == []

        done = client.post("/api/db/execute", json={**body, "commit": True}).json()
        assert done["success"] is True
        assert done["canRollback"] is True

    def test_replace_all_and_rollback(self, client, memory_store):
        result = client.post("/api/db/replace-all", json={"recordId": 42, "graph": GRAPH, "commit": True}).json()
        assert result["success"] is True
        assert result["primaryType"] == "Service"
        assert len(memory_store.list_meta(42, "rank_math_schema_")) == 2

        backups = client.get("/api/db/backups").json()["backups"]
        assert backups[0]["recordId"] == 42

        rollback = client.post("/api/db/rollback", json={"recordId": 42}).json()
        assert rollback["success"] is True
        assert memory_store.list_meta(42) == []

    def test_invalid_graph_is_422(self, client):
        bad = {"@context": "https://schema.org", "@graph": [{"@type": "Service", "name": "No provider"}]}
        response = client.post("/api/db/replace-all", json={"recordId": 42, "graph": bad, "commit": True})
        assert response.status_code == 422
        assert response.json()["validation"]["valid"] is False

    def test_unknown_record_is_404(self, client):
        response = client.post("/api/db/preview", json={"recordId": 999, "entity": {"@type": "Service"}})
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Post 999 not found"}

    def test_rollback_without_backup_is_404(self, client):
        assert client.post("/api/db/rollback", json={"recordId": 42}).status_code == 404

    def test_rich_snippet_and_delete_all(self, client, memory_store):
        client.post("/api/db/rich-snippet", json={"recordId": 42, "snippetType": "service", "commit": True})
        assert memory_store.get_meta(42, "rank_math_rich_snippet").value == "service"
        client.post("/api/db/replace-all", json={"recordId": 42, "graph": GRAPH, "commit": True})
        data = client.post("/api/db/delete-all", json={"recordId": 42, "commit": True}).json()
        assert data["deleted"] == 2

    def test_database_not_configured(self, bare_client):
        assert bare_client.get("/api/db/backups").status_code == 503
