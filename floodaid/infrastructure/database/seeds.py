# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database seed data.

- Provinces and their main cities (with coordinates)
- The bootstrap super admin, taken from BOOTSTRAP_ADMIN_* settings

Seeding is idempotent: existing provinces and cities are matched by name,
and the bootstrap admin is only created when no admin exists yet.

Usage:
    python -m floodaid.infrastructure.database.seeds
"""

import asyncio
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from floodaid.core.config.settings import BootstrapAdminSettings
from floodaid.core.enums import UserRole
from floodaid.infrastructure.database.models import AdminUser, City, Province

logger = logging.getLogger(__name__)

# province -> [(city, latitude, longitude)]
PROVINCES: dict[str, list[tuple[str, float, float]]] = {
    "Punjab": [
        ("Lahore", 31.5204, 74.3587),
        ("Multan", 30.1575, 71.5249),
        ("Faisalabad", 31.4504, 73.1350),
        ("Dera Ghazi Khan", 30.0561, 70.6348),
    ],
    "Sindh": [
        ("Karachi", 24.8607, 67.0011),
        ("Hyderabad", 25.3960, 68.3578),
        ("Sukkur", 27.7052, 68.8574),
        ("Larkana", 27.5570, 68.2264),
        ("Dadu", 26.7319, 67.7750),
    ],
    "Khyber Pakhtunkhwa": [
        ("Peshawar", 34.0151, 71.5249),
        ("Swat", 35.2227, 72.4258),
        ("Nowshera", 34.0153, 71.9747),
    ],
    "Balochistan": [
        ("Quetta", 30.1798, 66.9750),
        ("Jaffarabad", 28.2833, 68.4333),
        ("Naseerabad", 28.5333, 68.2000),
    ],
    "Gilgit-Baltistan": [
        ("Gilgit", 35.9208, 74.3080),
        ("Skardu", 35.2971, 75.6333),
    ],
}


async def seed_reference_data(session: AsyncSession) -> tuple[int, int]:
    """Insert missing provinces and cities.

    Returns:
        Number of provinces and cities created.
    """
    existing = {p.name: p for p in (await session.execute(select(Province))).scalars().all()}
    provinces_created = cities_created = 0

    for province_name, cities in PROVINCES.items():
        province = existing.get(province_name)
        if province is None:
            province = Province(name=province_name)
            session.add(province)
            await session.flush()
            provinces_created += 1

        stmt = select(City.name).where(City.province_id == province.id)
        known_cities = set((await session.execute(stmt)).scalars().all())
        for city_name, latitude, longitude in cities:
            if city_name in known_cities:
                continue
            session.add(
                City(
                    name=city_name,
                    province_id=province.id,
                    latitude=latitude,
                    longitude=longitude,
                )
            )
            cities_created += 1

    await session.flush()
    logger.info("Seeded %d provinces and %d cities", provinces_created, cities_created)
    return provinces_created, cities_created


async def seed_bootstrap_admin(
    session: AsyncSession, settings: BootstrapAdminSettings
) -> AdminUser | None:
    """Create the first super admin when the admins table is empty.

    Returns:
        The created admin, or None if admins already exist.

    Raises:
        ValueError: If no admin exists and bootstrap settings are incomplete.
    """
    count = (await session.execute(select(func.count()).select_from(AdminUser))).scalar() or 0
    if count:
        return None

    if not settings.is_configured:
        raise ValueError(
            "No admin exists. Set BOOTSTRAP_ADMIN_EMAIL, BOOTSTRAP_ADMIN_USERNAME "
            "and BOOTSTRAP_ADMIN_PASSWORD_HASH to create the first super admin."
        )

    admin = AdminUser(
        name=settings.name,
        email=settings.email.strip().lower(),
        username=settings.username.strip(),
        password_hash=settings.password_hash.get_secret_value(),
        role=UserRole.SUPER_ADMIN,
        is_active=True,
    )
    session.add(admin)
    await session.flush()
    logger.info("Bootstrap super admin created: %s", admin.id)
    return admin


async def seed_database(session: AsyncSession, bootstrap: BootstrapAdminSettings) -> None:
    """Seed reference data and the bootstrap admin, then commit."""
    await seed_reference_data(session)
    await seed_bootstrap_admin(session, bootstrap)
    await session.commit()


if __name__ == "__main__":
    from floodaid.core.config import get_settings
    from floodaid.infrastructure.database.connection import (
        build_engine,
        build_sessionmaker,
        create_schema,
    )
    from floodaid.utils.logging import setup_logging

    async def main() -> None:
        settings = get_settings()
        setup_logging(settings)
        engine = build_engine(settings.database.url)
        await create_schema(engine)
        async with build_sessionmaker(engine)() as session:
            await seed_database(session, settings.bootstrap_admin)
        await engine.dispose()

    asyncio.run(main())
