"""Unit tests for pantry_service module."""

import pytest

from pantryhub.core import db_client
from pantryhub.core.errors import NotFoundError, StorageError, ValidationError
from pantryhub.domain.pantry import Address, OptStatus
from pantryhub.domain.pantry_access import AccessLevel
from pantryhub.services import pantry_access_service, pantry_service, user_service


async def _create(address, *, name="Eastside Pantry", opt_status="T2", is_self_managed=False):
    return await pantry_service.create_pantry(
        name=name,
        opt_status=opt_status,
        address=address,
        is_self_managed=is_self_managed,
        phone="555-0100",
        email="pantry@example.org",
    )


@pytest.mark.unit
class TestParseOptStatus:
    """Tests for parse_opt_status."""

    @pytest.mark.parametrize("code", ["T1", "T2", "T3"])
    def test_known_codes(self, code):
        assert pantry_service.parse_opt_status(code) == OptStatus(code)

    @pytest.mark.parametrize("code", ["T9", "t2", "", "T"])
    def test_unknown_code_rejected(self, code):
        with pytest.raises(ValidationError, match="Unrecognized opt status"):
            pantry_service.parse_opt_status(code)


@pytest.mark.unit
class TestCreatePantry:
    """Tests for create_pantry."""

    async def test_create_then_get(self, item_store, sample_address):
        pantry = await _create(sample_address)

        fetched = await pantry_service.get_pantry(pantry_id=pantry.id)

        assert fetched == pantry
        assert fetched.opt_status is OptStatus.T2
        assert fetched.address.unit == "Suite 4"
        assert fetched.created_at == fetched.updated_at

    async def test_accepts_address_model(self, item_store, sample_address):
        pantry = await _create(Address(**sample_address), opt_status=OptStatus.T3)

        assert pantry.opt_status is OptStatus.T3

    async def test_unit_is_optional(self, item_store, sample_address):
        del sample_address["unit"]

        pantry = await _create(sample_address)

        assert (await pantry_service.get_pantry(pantry_id=pantry.id)).address.unit is None

    async def test_unknown_opt_status_rejected(self, item_store, sample_address):
        with pytest.raises(ValidationError):
            await _create(sample_address, opt_status="T9")

        assert await pantry_service.list_pantries() == []

    async def test_incomplete_address_rejected(self, item_store, sample_address):
        del sample_address["city"]

        with pytest.raises(ValidationError, match="city"):
            await _create(sample_address)


@pytest.mark.unit
class TestLookups:
    """Tests for get_pantry and the list operations."""

    async def test_get_unknown_pantry(self, item_store):
        with pytest.raises(NotFoundError):
            await pantry_service.get_pantry(pantry_id="missing")

    async def test_unmappable_record_is_storage_error(self, item_store):
        await db_client.put_item(
            table="Pantries", item={"id": {"S": "p-bad"}, "name": {"S": "X"}, "opt_status": {"S": "T9"}}
        )

        with pytest.raises(StorageError):
            await pantry_service.get_pantry(pantry_id="p-bad")

    async def test_list_by_self_managed(self, item_store, sample_address):
        managed = await _create(sample_address, name="Managed", is_self_managed=True)
        hosted = await _create(sample_address, name="Hosted", is_self_managed=False)

        self_managed = await pantry_service.list_pantries_by_self_managed(is_self_managed=True)
        others = await pantry_service.list_pantries_by_self_managed(is_self_managed=False)

        assert [pantry.id for pantry in self_managed] == [managed.id]
        assert [pantry.id for pantry in others] == [hosted.id]
        assert len(await pantry_service.list_pantries()) == 2


@pytest.mark.unit
class TestDeletePantry:
    """Tests for delete_pantry."""

    async def test_delete_removes_pantry_and_grants(self, item_store, sample_address):
        pantry = await _create(sample_address)
        user = await user_service.create_user(
            email="a@b.com", password="correct-horse", first_name="Ada", last_name="Lovelace"
        )
        await pantry_access_service.grant_access(
            pantry_id=pantry.id, user_id=user.id, access_level=AccessLevel.ADMIN, is_contact_agent=True
        )

        await pantry_service.delete_pantry(pantry_id=pantry.id)

        with pytest.raises(NotFoundError):
            await pantry_service.get_pantry(pantry_id=pantry.id)
        assert await pantry_access_service.list_access_for_user(user_id=user.id) == []

    async def test_delete_unknown_pantry(self, item_store):
        with pytest.raises(NotFoundError):
            await pantry_service.delete_pantry(pantry_id="missing")
