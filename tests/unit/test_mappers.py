"""Unit tests for entity <-> attribute map conversion."""

import logging
from datetime import UTC, datetime, timedelta, timezone

import pytest

from pantryhub.domain import AccessLevel, Address, OptStatus, Pantry, PantryAccess, User, UserRole
from pantryhub.domain.mappers import (
    access_from_item,
    access_to_item,
    format_timestamp,
    get_enum,
    get_timestamp,
    pantry_from_item,
    pantry_to_item,
    user_from_item,
    user_to_item,
)


CREATED = datetime(2026, 1, 15, 9, 30, tzinfo=UTC)
UPDATED = datetime(2026, 2, 1, 17, 5, tzinfo=UTC)


@pytest.fixture
def user() -> User:
    return User(
        id="u-1",
        email="a@b.com",
        password_hash="$argon2id$v=19$m=65536,t=3,p=4$c2FsdA$ZGlnZXN0",
        first_name="Ada",
        last_name="Lovelace",
        created_at=CREATED,
        updated_at=UPDATED,
    )


@pytest.fixture
def pantry(sample_address) -> Pantry:
    return Pantry(
        id="p-1",
        name="Eastside Pantry",
        is_self_managed=True,
        opt_status=OptStatus.T2,
        address=Address(**sample_address),
        phone="555-0100",
        email="pantry@example.org",
        created_at=CREATED,
        updated_at=UPDATED,
    )


@pytest.mark.unit
class TestUserMapping:
    """Tests for user_to_item and user_from_item."""

    def test_round_trip(self, user):
        assert user_from_item(user_to_item(user)) == user

    def test_round_trip_with_pantry_and_role(self, user):
        assigned = user.model_copy(update={"pantry_id": "p-1", "role": UserRole.AGENT})

        item = user_to_item(assigned)

        assert item["pantry_id"] == {"S": "p-1"}
        assert item["role"] == {"S": "agent"}
        assert user_from_item(item) == assigned

    def test_absent_optionals_are_omitted(self, user):
        item = user_to_item(user)

        assert "pantry_id" not in item
        assert "role" not in item

    def test_timestamps_written_as_utc_strings(self, user):
        item = user_to_item(user)

        assert item["created_at"] == {"S": "2026-01-15T09:30:00Z"}

    def test_missing_email_maps_to_none(self, user):
        item = user_to_item(user)
        del item["email"]

        assert user_from_item(item) is None

    def test_wrong_attribute_type_maps_to_none(self, user):
        item = user_to_item(user)
        item["first_name"] = {"N": "42"}

        assert user_from_item(item) is None

    def test_naive_timestamps_round_trip(self, user):
        """Test an entity built from naive datetimes reads back equal."""
        naive = User(
            **{**user.model_dump(), "created_at": datetime(2026, 1, 1, 9, 0), "updated_at": datetime(2026, 1, 1, 9, 0)}
        )

        assert naive.created_at.tzinfo is not None
        assert user_from_item(user_to_item(naive)) == naive

    def test_offset_timestamps_normalized_to_utc(self, user):
        plus_two = timezone(timedelta(hours=2))
        shifted = User(**{**user.model_dump(), "created_at": datetime(2026, 1, 15, 11, 30, tzinfo=plus_two)})

        assert shifted.created_at == CREATED
        assert shifted.created_at.utcoffset() == timedelta(0)
        assert user_to_item(shifted)["created_at"] == {"S": "2026-01-15T09:30:00Z"}
        assert user_from_item(user_to_item(shifted)) == shifted

    def test_malformed_pantry_reference_maps_to_none(self, user):
        item = user_to_item(user)
        item["pantry_id"] = {"N": "7"}

        assert user_from_item(item) is None

    def test_email_is_lower_cased(self, user):
        assert User(**{**user.model_dump(), "email": " Ada@Example.COM "}).email == "ada@example.com"

    def test_unknown_role_maps_to_none(self, user):
        item = user_to_item(user)
        item["role"] = {"S": "superuser"}

        assert user_from_item(item) is None


@pytest.mark.unit
class TestPantryMapping:
    """Tests for pantry_to_item and pantry_from_item."""

    def test_round_trip(self, pantry):
        assert pantry_from_item(pantry_to_item(pantry)) == pantry

    def test_address_stored_as_nested_map(self, pantry):
        item = pantry_to_item(pantry)

        assert item["address"]["M"]["city"] == {"S": "Springfield"}
        assert item["is_self_managed"] == {"S": "true"}
        assert item["opt_status"] == {"S": "T2"}

    def test_missing_unit_omitted_and_read_back_as_none(self, pantry):
        no_unit = pantry.model_copy(update={"address": pantry.address.model_copy(update={"unit": None})})

        item = pantry_to_item(no_unit)

        assert "unit" not in item["address"]["M"]
        restored = pantry_from_item(item)
        assert restored is not None
        assert restored.address.unit is None

    def test_naive_timestamps_round_trip(self, pantry):
        naive = Pantry(
            **{**pantry.model_dump(), "created_at": datetime(2026, 3, 1), "updated_at": datetime(2026, 3, 2)}
        )

        assert pantry_from_item(pantry_to_item(naive)) == naive

    def test_malformed_unit_maps_to_none(self, pantry):
        item = pantry_to_item(pantry)
        item["address"]["M"]["unit"] = {"BOOL": True}

        assert pantry_from_item(item) is None

    def test_unknown_opt_status_maps_to_none(self, pantry):
        item = pantry_to_item(pantry)
        item["opt_status"] = {"S": "T9"}

        assert pantry_from_item(item) is None

    def test_missing_address_field_maps_to_none(self, pantry):
        item = pantry_to_item(pantry)
        del item["address"]["M"]["zipcode"]

        assert pantry_from_item(item) is None

    def test_malformed_flag_maps_to_none(self, pantry):
        item = pantry_to_item(pantry)
        item["is_self_managed"] = {"S": "yes"}

        assert pantry_from_item(item) is None


@pytest.mark.unit
class TestAccessMapping:
    """Tests for access_to_item and access_from_item."""

    def test_round_trip(self):
        grant = PantryAccess(
            pantry_id="p-1",
            user_id="u-1",
            access_level=AccessLevel.MANAGER,
            is_contact_agent=True,
            created_at=CREATED,
            updated_at=UPDATED,
        )

        item = access_to_item(grant)

        assert item["is_contact_agent"] == {"S": "true"}
        assert access_from_item(item) == grant

    def test_naive_timestamps_round_trip(self):
        grant = PantryAccess(
            pantry_id="p-1",
            user_id="u-1",
            access_level=AccessLevel.VIEWER,
            created_at=datetime(2026, 4, 1, 8, 0),
            updated_at=datetime(2026, 4, 1, 8, 0),
        )

        assert access_from_item(access_to_item(grant)) == grant

    def test_unknown_access_level_maps_to_none(self):
        item = {
            "pantry_id": {"S": "p-1"},
            "user_id": {"S": "u-1"},
            "access_level": {"S": "owner"},
            "is_contact_agent": {"S": "false"},
        }

        assert access_from_item(item) is None


@pytest.mark.unit
class TestAttributeHelpers:
    """Tests for the low-level attribute readers."""

    def test_get_enum_does_not_default(self):
        assert get_enum({"opt_status": {"S": "T4"}}, "opt_status", OptStatus) is None
        assert get_enum({}, "opt_status", OptStatus) is None
        assert get_enum({"opt_status": {"S": "T3"}}, "opt_status", OptStatus) is OptStatus.T3

    def test_format_timestamp_treats_naive_as_utc(self):
        assert format_timestamp(datetime(2026, 5, 1, 8, 0)) == "2026-05-01T08:00:00Z"

    def test_get_timestamp_parses_z_suffix(self):
        parsed = get_timestamp({"created_at": {"S": "2026-01-15T09:30:00Z"}}, "created_at")

        assert parsed == CREATED

    @pytest.mark.parametrize("item", [{}, {"created_at": {"S": "yesterday"}}])
    def test_bad_timestamp_falls_back_to_now_and_logs(self, item, caplog):
        """Test a missing or malformed timestamp reads as now with a warning."""
        before = datetime.now(UTC)

        with caplog.at_level(logging.WARNING, logger="pantryhub.domain.mappers"):
            parsed = get_timestamp(item, "created_at")

        assert before <= parsed <= datetime.now(UTC)
        assert any(record.getMessage() == "timestamp_fallback_used" for record in caplog.records)

    def test_damaged_timestamp_does_not_hide_record(self, user):
        item = user_to_item(user)
        item["updated_at"] = {"S": "not-a-date"}

        restored = user_from_item(item)

        assert restored is not None
        assert restored.created_at == CREATED
