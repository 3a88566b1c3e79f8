import os
import sys
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

sys.path.append(str(Path(__file__).resolve().parents[1]))
sys.path.append(str(Path(__file__).resolve().parent))

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "x" * 32)
os.environ.setdefault("CREATE_SCHEMA_ON_STARTUP", "false")

import api.app.db as app_db

app_db.SessionLocal, app_db.engine = app_db.create_test_session()

from _seed import PASSWORD, seed  # noqa: E402
from api.app.main import app  # noqa: E402
from api.app.models import Base  # noqa: E402
from api.app.repos_sqlalchemy.store_sql import SQLStore  # noqa: E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def db():
    """Create the schema, seed it, and drop everything afterwards."""

    await app_db.init_schema(app_db.engine)
    async with app_db.SessionLocal() as session:
        people = await seed(session)
    yield people
    async with app_db.engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def session(db):
    async with app_db.SessionLocal() as session:
        yield session


@pytest.fixture
def store(session):
    return SQLStore(session)


@pytest.fixture
async def client(db):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def password():
    return PASSWORD
