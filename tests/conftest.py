"""
Test configuration and fixtures.
Uses SQLite in-memory for fast tests. Settings are patched per test where needed.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import uuid

import pytest
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.dialects.postgresql import JSONB, UUID

from leadintel.database import Base
from leadintel.models.lead_source import LeadSource
import leadintel.models  # noqa: F401


# Register JSONB as JSON for SQLite compatibility in tests
@compiles(JSONB, "sqlite")
def _compile_jsonb_sqlite(type_, compiler, **kw):
    return "JSON"


# UUID columns hold 32 hex chars; the default NUMERIC affinity would coerce
# all-digit values to floats
@compiles(UUID, "sqlite")
def _compile_uuid_sqlite(type_, compiler, **kw):
    return "CHAR(32)"


WORKSPACE_ID = uuid.UUID("0a0a0a0a-1111-4111-8111-111111111111")
OTHER_WORKSPACE_ID = uuid.UUID("0b0b0b0b-2222-4222-8222-222222222222")
ACCOUNT_ID = "acct_opensend_123"


@pytest.fixture
async def db():
    """In-memory SQLite database for tests."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session
    await engine.dispose()


async def _add_source(db, **overrides) -> LeadSource:
    values = {
        "workspace_id": WORKSPACE_ID,
        "provider": "opensend",
        "provider_account_id": ACCOUNT_ID,
        "is_active": True,
        "contact_level_enabled": False,
        "webhook_health": {},
    }
    values.update(overrides)
    source = LeadSource(**values)
    db.add(source)
    await db.commit()
    return source


@pytest.fixture
async def lead_source(db):
    """Active opensend source with the contact-level policy disabled."""
    return await _add_source(db)


@pytest.fixture
async def contact_source(db):
    """Active opensend source with the contact-level policy enabled."""
    return await _add_source(db, contact_level_enabled=True, include_contact_in_ai=True)


@pytest.fixture
def add_source(db):
    """Factory for additional sources in the same database."""
    async def _factory(**overrides):
        return await _add_source(db, **overrides)
    return _factory


@pytest.fixture
def sample_payload():
    """A representative opensend delivery with contact data."""
    return {
        "event": "page_view",
        "occurred_at": "2026-03-01T12:00:00Z",
        "visitor_id": "v-1001",
        "page_url": "https://shop.example.com/pricing",
        "account_id": ACCOUNT_ID,
        "contact": {
            "email": "Jane.Doe@Example.com",
            "phone": "(512) 555-9876",
            "first_name": "Jane",
            "last_name": "Doe",
        },
    }
