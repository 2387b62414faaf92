# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Read access to provinces and cities."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from floodaid.infrastructure.database.models import City, Province


class ProvinceNotFoundError(Exception):
    """Raised when a province id is unknown."""

    code = "ProvinceNotFound"


class ReferenceDataService:
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def list_provinces(self) -> list[Province]:
        result = await self._db.execute(select(Province).order_by(Province.name.asc()))
        return list(result.scalars().all())

    async def list_cities(self, province_id: int) -> list[City]:
        """Cities of a province ordered by name.

        Raises:
            ProvinceNotFoundError: If the province does not exist.
        """
        if await self._db.get(Province, province_id) is None:
            raise ProvinceNotFoundError(f"Province {province_id} not found")
        stmt = select(City).where(City.province_id == province_id).order_by(City.name.asc())
        result = await self._db.execute(stmt)
        return list(result.scalars().all())
