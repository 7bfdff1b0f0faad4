"""
Tests for the DAOs behind the security store protocols.

WHY: The identity, firm settings and resource lookups decide who gets in
and which rows are visible, so their mapping and firm scoping is tested
against a real (SQLite) database.
"""

import pytest

from lexshield.core.exceptions import UserNotFoundError
from lexshield.dao.case import CaseDAO
from lexshield.dao.firm import FirmDAO
from lexshield.dao.resource import ResourceDAO
from lexshield.dao.user import UserDAO
from lexshield.models.case import Case


class TestUserDAO:
    @pytest.mark.asyncio
    async def test_find_user_maps_identity(self, db_session, lawyer_user, test_firm):
        record = await UserDAO(db_session).find_user(lawyer_user.id)

        assert record.id == lawyer_user.id
        assert record.role == "lawyer"
        assert record.firm_id == test_firm.id
        assert record.firm_role == "lawyer"
        assert record.is_email_verified is True
        assert record.is_active is True
        assert record.permissions == {}

    @pytest.mark.asyncio
    async def test_unknown_user(self, db_session):
        with pytest.raises(UserNotFoundError):
            await UserDAO(db_session).find_user(999)


class TestFirmDAO:
    @pytest.mark.asyncio
    async def test_ip_settings(self, db_session, test_firm):
        test_firm.ip_whitelist_enabled = True
        test_firm.ip_whitelist = ["10.0.0.0/8", "203.0.113.5"]
        await db_session.flush()

        settings = await FirmDAO(db_session).get_ip_settings(test_firm.id)

        assert settings.enabled is True
        assert settings.whitelist == ("10.0.0.0/8", "203.0.113.5")

    @pytest.mark.asyncio
    async def test_unknown_firm(self, db_session):
        assert await FirmDAO(db_session).get_ip_settings(999) is None


class TestResourceDAO:
    @pytest.mark.asyncio
    async def test_own_firm_resource(self, db_session, test_case, test_firm):
        resource = await ResourceDAO(db_session).get_for_firm("Case", str(test_case.id), test_firm.id)
        assert resource.id == test_case.id

    @pytest.mark.asyncio
    async def test_other_firm_sees_nothing(self, db_session, test_case, other_firm):
        assert await ResourceDAO(db_session).get_for_firm("Case", test_case.id, other_firm.id) is None

    @pytest.mark.asyncio
    async def test_unknown_model(self, db_session, test_case, test_firm):
        assert await ResourceDAO(db_session).get_for_firm("Invoice", test_case.id, test_firm.id) is None

    @pytest.mark.asyncio
    async def test_non_integer_id(self, db_session, test_firm):
        assert await ResourceDAO(db_session).get_for_firm("Case", "abc", test_firm.id) is None


class TestCaseDAO:
    @pytest.mark.asyncio
    async def test_list_for_firm_pages(self, db_session, test_firm, other_firm):
        dao = CaseDAO(db_session)
        for i in range(5):
            await dao.create(title=f"Case {i}", firm_id=test_firm.id)
        await dao.create(title="Elsewhere", firm_id=other_firm.id)

        cases, total = await dao.list_for_firm(test_firm.id, offset=2, limit=2)

        assert total == 5
        assert [c.title for c in cases] == ["Case 2", "Case 3"]

    @pytest.mark.asyncio
    async def test_delete(self, db_session, test_case):
        dao = CaseDAO(db_session)

        assert await dao.delete(test_case.id) is True
        assert await dao.delete(test_case.id) is False
        assert await dao.count(id=test_case.id) == 0

    @pytest.mark.asyncio
    async def test_get_by_id_and_firm_requires_firm_scoped_model(self, db_session):
        from lexshield.dao.base import BaseDAO
        from lexshield.models.firm import Firm

        with pytest.raises(AttributeError):
            await BaseDAO(Firm, db_session).get_by_id_and_firm(1, 1)

    def test_case_is_firm_scoped(self):
        assert hasattr(Case, "firm_id")
