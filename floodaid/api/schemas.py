# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared request/response models.

JSON bodies use camelCase; Python code uses snake_case attribute names.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from floodaid.core.enums import UserRole


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class AdminResponse(CamelModel):
    """Admin identity as returned to clients."""

    id: int = Field(..., description="Admin ID")
    name: str = Field(..., description="Display name")
    email: str = Field(..., description="Email address")
    username: str = Field(..., description="Login username")
    role: UserRole = Field(..., description="Admin role")
    province_id: int | None = Field(None, description="Province scope for province admins")
    is_active: bool = Field(True, description="Account status")
    last_login_at: datetime | None = Field(None, description="Last login timestamp")


class MessageResponse(CamelModel):
    success: bool = True
    message: str


class PageMeta(CamelModel):
    total: int
    page: int
    page_size: int
