# =============================================================================
# tests/test_livestock.py - Livestock Service Tests
# =============================================================================

from unittest.mock import patch
from uuid import UUID

import pytest

from core.models.tank import LivestockCreate, LivestockUpdate
from core.services.compatibility_service import CompatibilityService
from core.services.livestock_service import LivestockService
from core.services.species_service import SpeciesService
from core.services.tank_service import TankService
from tests.conftest import TANK_ID, USER_ID

LIVESTOCK_ID = UUID("88888888-8888-8888-8888-888888888888")


@pytest.fixture
def owned_tank(sample_tank):
    with patch.object(TankService, "get_owned_tank", return_value=sample_tank):
        yield sample_tank


class TestListLivestock:
    def test_total_count_sums_quantities(self, fake_db, owned_tank):
        query = fake_db.queue("livestock", data=[
            {"id": "a", "quantity": 6, "custom_name": "Neon"},
            {"id": "b", "quantity": 2, "custom_name": "Otto"},
        ])

        result = LivestockService.list_livestock(TANK_ID, USER_ID)

        assert result["total_count"] == 8
        assert len(result["livestock"]) == 2
        assert ("is_active", True) in query.called("eq")
        assert ("deleted_at", "null") in query.called("is_")


class TestAddLivestock:
    def test_custom_name_without_checks(self, fake_db, owned_tank):
        inserts = fake_db.queue("livestock", data=[{"id": "new"}])

        with patch.object(SpeciesService, "get_species") as get_species:
            result = LivestockService.add_livestock(
                TANK_ID, USER_ID, LivestockCreate(custom_name="Mystery Snail", quantity=3)
            )

        get_species.assert_not_called()
        assert result["warnings"] == []
        row = inserts.payload("insert")
        assert row["tank_id"] == str(TANK_ID)
        assert row["is_active"] is True
        assert "date_added" in row

    def test_incompatible_species_adds_with_warnings(self, fake_db, owned_tank, sample_species):
        fake_db.queue("livestock", data=[{"id": "new"}])
        clownfish = {**sample_species, "common_name": "Clownfish", "type": "saltwater"}

        with patch.object(SpeciesService, "get_species", return_value=clownfish), \
                patch.object(CompatibilityService, "get_active_livestock_with_species", return_value=[]):
            result = LivestockService.add_livestock(
                TANK_ID, USER_ID, LivestockCreate(species_id=sample_species["id"])
            )

        assert result["livestock"] == {"id": "new"}
        assert any("saltwater" in warning for warning in result["warnings"])


class TestUpdateAndDelete:
    def test_empty_update_returns_row(self, fake_db, owned_tank):
        query = fake_db.queue("livestock", data=[{"id": str(LIVESTOCK_ID), "quantity": 4}])

        result = LivestockService.update_livestock(TANK_ID, USER_ID, LivestockUpdate(livestock_id=LIVESTOCK_ID))

        assert result["quantity"] == 4
        assert query.called("update") == []

    def test_update_quantity(self, fake_db, owned_tank):
        query = fake_db.queue("livestock", data=[{"id": str(LIVESTOCK_ID), "quantity": 4}])

        LivestockService.update_livestock(TANK_ID, USER_ID, LivestockUpdate(livestock_id=LIVESTOCK_ID, quantity=5))

        assert query.payload("update") == {"quantity": 5}

    def test_soft_delete(self, fake_db, owned_tank):
        query = fake_db.queue("livestock", data=[{"id": str(LIVESTOCK_ID)}])

        result = LivestockService.delete_livestock(TANK_ID, USER_ID, LIVESTOCK_ID)

        update = query.payload("update")
        assert update["is_active"] is False
        assert update["deleted_at"]
        assert result == {"id": str(LIVESTOCK_ID), "deleted": True}
