import os

# main builds the app engine at import time; point it at sqlite before that happens
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_cider.db")

import uuid
from datetime import date

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

import db.models  # noqa: F401
from core.auth import current_active_user
from db.database import Base, get_async_session
from db.sales_channel import SalesChannel
from db.users import User
from db.vessel import Vessel
from main import app


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def session_maker(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
async def users(session_maker):
    out = {}
    async with session_maker() as session:
        for role in ("admin", "operator", "viewer"):
            u = User(
                id=uuid.uuid4(),
                email=f"{role}@example.com",
                hashed_password="not-a-real-hash",
                is_active=True,
                is_superuser=False,
                is_verified=True,
                name=role.title(),
                role=role,
            )
            session.add(u)
            out[role] = u
        await session.commit()
    return out


class ActingUser:
    """Mutable holder so a test can switch roles mid-flow."""

    def __init__(self, user: User):
        self.user = user

    def use(self, user: User) -> None:
        self.user = user


@pytest.fixture
async def acting(users):
    return ActingUser(users["admin"])


@pytest.fixture
async def client(session_maker, acting):
    async def _session_override():
        async with session_maker() as session:
            yield session

    async def _user_override():
        return acting.user

    app.dependency_overrides[get_async_session] = _session_override
    app.dependency_overrides[current_active_user] = _user_override
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def channels(session_maker):
    rows = {
        "tasting_room": SalesChannel(code="tasting_room", name="Tasting Room", uses_retail_price=True),
        "wholesale": SalesChannel(code="wholesale", name="Wholesale", uses_retail_price=False),
    }
    async with session_maker() as session:
        session.add_all(rows.values())
        await session.commit()
    return {code: ch.id for code, ch in rows.items()}


@pytest.fixture
async def vessel(session_maker):
    v = Vessel(name="FV-1", capacity_l=1000, material="stainless", status="available", max_pressure_psi=15)
    async with session_maker() as session:
        session.add(v)
        await session.commit()
    return v


@pytest.fixture
async def batch(client, vessel):
    """A 400 L fermenting batch sitting in FV-1, started at the beginning of the year."""
    resp = await client.post(
        "/batches/",
        json={
            "name": "Batch 24",
            "vessel_id": str(vessel.id),
            "initial_volume": 400,
            "volume_unit": "L",
            "original_gravity": 1.055,
            "start_date": date(date.today().year, 1, 1).isoformat(),
        },
    )
    assert resp.status_code == 201, resp.text
    return resp.json()
