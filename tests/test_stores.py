"""Tests for the injected job registry and TTL cache."""
from schemagen.utils.stores import JobStatus, JobStore, TTLCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestJobStore:
    def test_progress(self):
        jobs = JobStore()
        job = jobs.create(total=2)
        assert job.status == JobStatus.PENDING

        jobs.record(job.job_id, result={"url": "a"})
        jobs.record(job.job_id, error={"url": "b", "error": "boom"})
        assert jobs.get(job.job_id).status == JobStatus.RUNNING

        jobs.finish(job.job_id)
        data = jobs.get(job.job_id).to_dict()
        assert data["status"] == "completed"
        assert data["processed"] == 2
        assert data["results"] == [{"url": "a"}]
        assert data["errors"] == [{"url": "b", "error": "boom"}]

    def test_finish_with_error(self):
        jobs = JobStore()
        job = jobs.create(total=1)
        jobs.finish(job.job_id, error="crashed")
        assert jobs.get(job.job_id).status == JobStatus.ERROR
        assert jobs.get(job.job_id).error == "crashed"

    def test_unknown_job_ignored(self):
        jobs = JobStore()
        jobs.record("nope", result={})
        jobs.finish("nope")
        assert jobs.get("nope") is None

    def test_oldest_evicted(self):
        jobs = JobStore(max_jobs=2)
        first = jobs.create(1)
        first.created_at = 0
        second = jobs.create(1)
        third = jobs.create(1)
        assert jobs.get(first.job_id) is None
        assert jobs.get(second.job_id) is not None
        assert jobs.get(third.job_id) is not None


class TestTTLCache:
    def test_expiry(self):
        clock = FakeClock()
        cache = TTLCache(ttl=60, clock=clock)
        cache.set("https://x.com", {"name": "X"})
        assert cache.get("https://x.com") == {"name": "X"}
        assert len(cache) == 1

        clock.now += 60
        assert cache.get("https://x.com") is None
        assert len(cache) == 0

    def test_overwrite_resets_ttl(self):
        clock = FakeClock()
        cache = TTLCache(ttl=10, clock=clock)
        cache.set("k", 1)
        clock.now += 8
        cache.set("k", 2)
        clock.now += 8
        assert cache.get("k") == 2

    def test_delete_and_clear(self):
        cache = TTLCache(ttl=10, clock=FakeClock())
        cache.set("a", 1)
        cache.set("b", 2)
        cache.delete("a")
        assert cache.get("a") is None
        cache.clear()
        assert len(cache) == 0
