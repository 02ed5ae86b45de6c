"""
Shared fixtures for the schemagen test suite.

Provides:
- memory_store / sql_store: the two MetaStore backends (SQLite in memory)
- backups_file: path for a durable backup index inside tmp_path
- sample PageData / OrgInfo for service, article and location pages
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from schemagen.models.page import OrgInfo, PageData, PostalAddress
from schemagen.persistence.backups import BackupIndex
from schemagen.persistence.meta_store import InMemoryMetaStore, SQLMetaStore
from schemagen.persistence.mutation import SafeMutationStore

RECORD_ID = 42


@pytest.fixture
def memory_store():
    store = InMemoryMetaStore()
    store.add_record(RECORD_ID, title="AC Repair Houston", slug="ac-repair-houston")
    return store


@pytest.fixture
def sql_store():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    store = SQLMetaStore(engine, table_prefix="wp_")
    store.create_tables()
    store.add_record(RECORD_ID, title="AC Repair Houston", slug="ac-repair-houston")
    return store


@pytest.fixture
def backups_file(tmp_path):
    return str(tmp_path / "backups.json")


@pytest.fixture
def mutation_store(memory_store):
    return SafeMutationStore(memory_store, BackupIndex(storage_key="test:db"))


@pytest.fixture
def org():
    return OrgInfo(
        name="Cool Air HVAC",
        url="https://coolair.example.com",
        logo="https://coolair.example.com/logo.png",
        phone="(713) 555-0100",
        same_as=["https://facebook.com/coolair"],
    )


@pytest.fixture
def org_with_address():
    return OrgInfo(
        name="Cool Air HVAC",
        url="https://coolair.example.com",
        phone="(905) 555-0100",
        address=PostalAddress(
            street_address="12 King St",
            address_locality="Hamilton",
            postal_code="L8P 1A1",
        ),
    )


@pytest.fixture
def service_page():
    return PageData.model_validate({
        "url": "https://coolair.example.com/services/ac-repair/",
        "title": "AC Repair Services",
        "description": "Fast, licensed air conditioning repair.",
        "content": "Our licensed technicians offer same day service for AC repair. Request a quote today.",
        "headings": [{"level": 2, "text": "Why choose our AC repair service"}],
        "faqs": [
            {"question": "How fast can you come?", "answer": "Usually the same day."},
            {"question": "", "answer": "orphan answer"},
        ],
        "wordpressInfo": {"postType": "page"},
    })


@pytest.fixture
def article_page():
    return PageData.model_validate({
        "url": "https://coolair.example.com/blog/2024/05/summer-ac-tips/",
        "title": "Five Summer AC Tips",
        "description": "Keep cool for less.",
        "content": "Change your filter every month.",
        "author": "Jane Smith",
        "publishDate": "2024-05-01",
        "categories": ["Tips"],
        "tags": ["ac", "summer"],
        "wordpressInfo": {"postType": "post"},
    })


@pytest.fixture
def location_page():
    return PageData.model_validate({
        "url": "https://coolair.example.com/ac-repair-houston",
        "title": "AC Repair in Houston, TX",
        "description": "Local AC repair for Houston homes.",
        "content": "Serving the Houston area with fast AC repair.",
        "wordpressInfo": {"postType": "unknown"},
    })
