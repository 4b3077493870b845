# tests/conftest.py
import os

# Must be set before src.atlas builds its module-level engine
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.atlas.app import app
from src.atlas.crud.zone import create_zone
from src.atlas.models.user import User
from src.atlas.schemas.zone import ZoneCreate
from src.atlas.utils.database import build_engine, build_sessionmaker, get_db, init_models
from src.atlas.utils.security import create_access_token

# 1 x 1 degree square just north-east of (0, 0)
SQUARE = [[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]]


def square_at(lon: float, lat: float, size: float = 1.0) -> list[list[float]]:
    return [[lon, lat], [lon + size, lat], [lon + size, lat + size], [lon, lat + size]]


def auth(login_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token({'sub': login_id})}"}


@pytest_asyncio.fixture
async def engine(tmp_path):
    eng = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'atlas.db'}")
    await init_models(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return build_sessionmaker(engine)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def users(session_factory) -> dict[str, User]:
    rows = {
        "u1": User(login_id="u1", display_name="User One", roles=[], is_active=True),
        "u2": User(login_id="u2", display_name="User Two", roles=[], is_active=True),
        "u3": User(login_id="u3", display_name="User Three", roles=["editor"], is_active=True),
        "admin": User(login_id="admin", display_name="Admin", roles=["admin"], is_active=True),
        "gone": User(login_id="gone", display_name="Gone", roles=[], is_active=False),
    }
    async with session_factory() as s:
        s.add_all(rows.values())
        await s.commit()
    return rows


@pytest.fixture
def make_zone(db):
    async def _make(owner_id: str = "u1", name: str = "zone", boundary=None, **fields):
        data = ZoneCreate(name=name, boundary=boundary or SQUARE, **fields)
        return await create_zone(db, data, owner_id=owner_id)

    return _make


@pytest_asyncio.fixture
async def client(session_factory, users):
    async def _override_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
