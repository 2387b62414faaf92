# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for admin identities and reference data (SQLite)."""

import pytest

from floodaid.core.enums import UserRole
from floodaid.domains.admins.service import (
    AdminNotFoundError,
    AdminService,
    AdminValidationError,
    LastSuperAdminError,
)
from floodaid.domains.reference.service import ProvinceNotFoundError, ReferenceDataService
from floodaid.infrastructure.database.models import AdminUser, City

pytestmark = pytest.mark.integration


@pytest.fixture
def admins(db_session, clock) -> AdminService:
    """Create an admin service on the test session."""
    return AdminService(db_session, clock)


class TestLookup:
    """Tests for admin lookups."""

    @pytest.mark.asyncio
    async def test_get_by_identifier(self, admins: AdminService, super_admin: AdminUser) -> None:
        """Test lookup by username and by email in any case."""
        assert (await admins.get_by_identifier("root")).id == super_admin.id
        assert (await admins.get_by_identifier(" ROOT@floodaid.org ")).id == super_admin.id
        assert await admins.get_by_identifier("nobody") is None
        assert await admins.get_by_identifier("   ") is None

    @pytest.mark.asyncio
    async def test_username_is_case_sensitive(self, admins: AdminService, super_admin: AdminUser) -> None:
        """Test that usernames match exactly."""
        assert await admins.get_by_identifier("ROOT") is None

    @pytest.mark.asyncio
    async def test_get_unknown(self, admins: AdminService) -> None:
        """Test that unknown ids raise AdminNotFound."""
        with pytest.raises(AdminNotFoundError) as exc_info:
            await admins.get(999)
        assert exc_info.value.code == "AdminNotFound"


class TestList:
    """Tests for AdminService.list."""

    @pytest.mark.asyncio
    async def test_filter_and_search(
        self, admins: AdminService, super_admin: AdminUser, province_admin: AdminUser
    ) -> None:
        """Test role filtering and substring search."""
        everyone = await admins.list()
        assert everyone.total == 2

        provincial = await admins.list(role=UserRole.PROVINCE_ADMIN)
        assert [a.id for a in provincial.items] == [province_admin.id]

        found = await admins.list(search="SINDH")
        assert [a.id for a in found.items] == [province_admin.id]

    @pytest.mark.asyncio
    async def test_paging(self, admins: AdminService, admin_factory) -> None:
        """Test that pages are ordered by name."""
        for name in ("Charlie", "Alice", "Bravo"):
            await admin_factory(f"{name.lower()}@floodaid.org", name=name)

        page = await admins.list(page=2, page_size=2)

        assert page.total == 3
        assert [a.name for a in page.items] == ["Charlie"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("page", "page_size"), [(0, 20), (1, 0), (1, 101)])
    async def test_invalid_paging(self, admins: AdminService, page: int, page_size: int) -> None:
        """Test that out-of-range paging is rejected."""
        with pytest.raises(AdminValidationError):
            await admins.list(page=page, page_size=page_size)


class TestActivation:
    """Tests for set_active and deactivate."""

    @pytest.mark.asyncio
    async def test_deactivate_and_reactivate(
        self, admins: AdminService, super_admin: AdminUser, province_admin: AdminUser
    ) -> None:
        """Test that admins are soft-deleted and can be restored."""
        assert (await admins.deactivate(province_admin.id)).is_active is False
        assert (await admins.set_active(province_admin.id, True)).is_active is True

    @pytest.mark.asyncio
    async def test_last_super_admin_is_protected(self, admins: AdminService, super_admin: AdminUser) -> None:
        """Test that the only active super admin cannot be deactivated."""
        with pytest.raises(LastSuperAdminError) as exc_info:
            await admins.deactivate(super_admin.id)
        assert exc_info.value.code == "LastSuperAdmin"
        assert super_admin.is_active is True

    @pytest.mark.asyncio
    async def test_super_admin_with_peer_can_be_deactivated(
        self, admins: AdminService, super_admin: AdminUser, admin_factory
    ) -> None:
        """Test that a super admin may be deactivated while another remains."""
        await admin_factory("second@floodaid.org")

        assert (await admins.deactivate(super_admin.id)).is_active is False

    @pytest.mark.asyncio
    async def test_record_login(self, admins: AdminService, super_admin: AdminUser, clock) -> None:
        """Test that the last login time is stamped from the clock."""
        await admins.record_login(super_admin)

        assert super_admin.last_login_at == clock()


class TestReferenceData:
    """Tests for ReferenceDataService."""

    @pytest.mark.asyncio
    async def test_provinces_and_cities_sorted(self, db_session, province, other_province, city) -> None:
        """Test that provinces and cities are listed by name."""
        db_session.add(City(name="Dadu", province_id=province.id))
        await db_session.commit()
        service = ReferenceDataService(db_session)

        assert [p.name for p in await service.list_provinces()] == ["Punjab", "Sindh"]
        assert [c.name for c in await service.list_cities(province.id)] == ["Dadu", "Sukkur"]
        assert await service.list_cities(other_province.id) == []

    @pytest.mark.asyncio
    async def test_unknown_province(self, db_session) -> None:
        """Test that cities of an unknown province raise ProvinceNotFound."""
        with pytest.raises(ProvinceNotFoundError):
            await ReferenceDataService(db_session).list_cities(404)
