"""
Seed reference data (package sizes, sales channels) plus a demo admin, vendors and vessels.

This script can be run from either:
- backend/: `python scripts/seed_demo_data.py`
- repo root: `python backend/scripts/seed_demo_data.py`

It uses the same DATABASE_URL env var as the backend (dotenv supported by core.config).
Re-running is safe: existing rows are matched by their natural key and left alone.
"""

from __future__ import annotations

import asyncio
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

# Allow running from repo root by ensuring `backend/` is on sys.path
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from fastapi_users.password import PasswordHelper
from sqlalchemy import func, select

from core.logging_config import get_logger, setup_logging
from db.database import async_session_maker, create_db_and_tables
from db.models import PackageSize, SalesChannel, User, Vendor, Vessel

log = get_logger(component="seed")
password_helper = PasswordHelper()


@dataclass(frozen=True)
class SeedPackageSize:
    size_ml: int
    display_name: str
    package_type: str
    size_oz: Optional[float] = None
    sort_order: int = 0


@dataclass(frozen=True)
class SeedChannel:
    code: str
    name: str
    uses_retail_price: bool


@dataclass(frozen=True)
class SeedVessel:
    name: str
    capacity_l: float
    material: str
    max_pressure_psi: Optional[float] = None


SEED_PACKAGE_SIZES: list[SeedPackageSize] = [
    SeedPackageSize(355, "12 oz can", "can", 12.0, 10),
    SeedPackageSize(473, "16 oz can", "can", 16.0, 20),
    SeedPackageSize(500, "500 ml bottle", "bottle", 16.9, 30),
    SeedPackageSize(750, "750 ml bottle", "bottle", 25.4, 40),
    SeedPackageSize(19550, "1/6 bbl keg", "keg", 661.0, 50),
    SeedPackageSize(58670, "1/2 bbl keg", "keg", 1984.0, 60),
]

SEED_CHANNELS: list[SeedChannel] = [
    SeedChannel("tasting_room", "Tasting Room", True),
    SeedChannel("wholesale", "Wholesale", False),
    SeedChannel("online_dtc", "Online / Direct to Consumer", True),
    SeedChannel("events", "Events & Festivals", True),
]

SEED_VENDORS: list[str] = ["Hillside Orchards", "Valley Fruit Co-op", "Cellar Supply House"]

SEED_VESSELS: list[SeedVessel] = [
    SeedVessel("FV-1", 1000, "stainless", 15),
    SeedVessel("FV-2", 1000, "stainless", 15),
    SeedVessel("BT-1", 500, "stainless", 30),
    SeedVessel("Oak-1", 225, "oak"),
]


async def get_or_create_admin(session, email: str, password: str) -> User:
    result = await session.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user:
        return user

    user = User(
        email=email,
        hashed_password=password_helper.hash(password),
        name="Admin",
        role="admin",
        is_active=True,
        is_superuser=True,
        is_verified=True,
    )
    session.add(user)
    await session.flush()
    return user


async def seed_package_sizes(session) -> int:
    created = 0
    for s in SEED_PACKAGE_SIZES:
        existing = await session.execute(
            select(PackageSize).where(PackageSize.size_ml == s.size_ml, PackageSize.package_type == s.package_type)
        )
        if existing.scalar_one_or_none():
            continue
        session.add(
            PackageSize(
                size_ml=s.size_ml,
                size_oz=s.size_oz,
                display_name=s.display_name,
                package_type=s.package_type,
                sort_order=s.sort_order,
                is_active=True,
            )
        )
        created += 1
    return created


async def seed_channels(session) -> int:
    created = 0
    for c in SEED_CHANNELS:
        existing = await session.execute(select(SalesChannel).where(SalesChannel.code == c.code))
        if existing.scalar_one_or_none():
            continue
        session.add(SalesChannel(code=c.code, name=c.name, uses_retail_price=c.uses_retail_price, is_active=True))
        created += 1
    return created


async def seed_vendors(session) -> int:
    created = 0
    for name in SEED_VENDORS:
        existing = await session.execute(select(Vendor).where(func.lower(Vendor.name) == name.lower()))
        if existing.scalar_one_or_none():
            continue
        session.add(Vendor(name=name, is_active=True))
        created += 1
    return created


async def seed_vessels(session) -> int:
    created = 0
    for v in SEED_VESSELS:
        existing = await session.execute(select(Vessel).where(Vessel.name == v.name))
        if existing.scalar_one_or_none():
            continue
        session.add(
            Vessel(
                name=v.name,
                capacity_l=v.capacity_l,
                material=v.material,
                max_pressure_psi=v.max_pressure_psi,
                status="available",
            )
        )
        created += 1
    return created


async def seed():
    setup_logging()
    await create_db_and_tables()

    async with async_session_maker() as session:
        async with session.begin():
            admin = await get_or_create_admin(
                session,
                os.getenv("SEED_ADMIN_EMAIL", "admin@example.com"),
                os.getenv("SEED_ADMIN_PASSWORD", "admin"),
            )
            sizes = await seed_package_sizes(session)
            channels = await seed_channels(session)
            vendors = await seed_vendors(session)
            vessels = await seed_vessels(session)

    log.info(
        "Seeded admin {} | package sizes +{} | channels +{} | vendors +{} | vessels +{}",
        admin.email,
        sizes,
        channels,
        vendors,
        vessels,
    )


if __name__ == "__main__":
    asyncio.run(seed())
