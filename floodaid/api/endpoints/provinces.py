# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Province and city lookups used by invitation and registration forms."""

from fastapi import APIRouter, Depends

from floodaid.api.dependencies import get_reference_service
from floodaid.api.errors import http_error
from floodaid.api.schemas import CamelModel
from floodaid.domains.reference.service import ProvinceNotFoundError, ReferenceDataService

router = APIRouter()


class ProvinceResponse(CamelModel):
    id: int
    name: str


class CityResponse(CamelModel):
    id: int
    name: str
    province_id: int
    latitude: float | None = None
    longitude: float | None = None


@router.get("", response_model=list[ProvinceResponse], summary="List provinces")
async def list_provinces(
    service: ReferenceDataService = Depends(get_reference_service),
) -> list[ProvinceResponse]:
    return [ProvinceResponse.model_validate(p) for p in await service.list_provinces()]


@router.get("/{province_id}/cities", response_model=list[CityResponse], summary="List cities of a province")
async def list_cities(
    province_id: int,
    service: ReferenceDataService = Depends(get_reference_service),
) -> list[CityResponse]:
    try:
        cities = await service.list_cities(province_id)
    except ProvinceNotFoundError as e:
        raise http_error(e) from e
    return [CityResponse.model_validate(c) for c in cities]
