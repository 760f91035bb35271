# =============================================================================
# tests/test_actions.py - AI Action Execution Tests
# =============================================================================

from datetime import date, timedelta
from unittest.mock import patch
from uuid import UUID

import pytest

from app.exceptions import ConflictError, InvalidInputError, RateLimitExceededError
from core.models.actions import ActionRequest
from core.services.action_service import ActionService, describe_logged_values, livestock_compatibility_warnings
from core.services.compatibility_service import CompatibilityService
from core.services.maintenance_service import MaintenanceService
from core.services.species_service import SpeciesService
from core.services.tank_service import TankService
from tests.conftest import TANK_ID, USER_ID

TASK_ID = "55555555-5555-5555-5555-555555555555"


@pytest.fixture
def owned_tank(sample_tank):
    with patch.object(TankService, "get_owned_tank", return_value=sample_tank):
        yield sample_tank


def action(action_type, payload):
    return ActionRequest(type=action_type, tank_id=TANK_ID, payload=payload)


class TestHelpers:
    def test_describe_logged_values(self):
        assert describe_logged_values({"ph": 7.2, "ammonia": 0.25, "temperature": 78}) == [
            "pH 7.2",
            "ammonia 0.25 ppm",
            "temperature 78°F",
        ]

    def test_aggressive_species_with_peaceful_resident(self, sample_tank):
        species = {"common_name": "Red Devil", "type": "freshwater", "temperament": "aggressive"}
        existing = [{"species": {"temperament": "peaceful"}}]

        warnings = livestock_compatibility_warnings(sample_tank, species, existing)

        assert len(warnings) == 1
        assert "aggressive" in warnings[0]


class TestLogParameters:
    def test_logs_values(self, fake_db, owned_tank):
        fake_db.queue("water_parameters", data=[], count=3)
        inserts = fake_db.queue("water_parameters", data=[{"id": "wp-1", "created_at": "2024-06-03T12:00:00+00:00"}])

        result = ActionService.execute(str(USER_ID), action("log_parameters", {"ph": 7.2, "ammonia": 0.25}))

        row = inserts.payload("insert")
        assert row["ph"] == 7.2
        assert row["ammonia_ppm"] == 0.25
        assert row["tank_id"] == str(TANK_ID)
        assert result["action_id"] == "wp-1"
        assert result["result"]["summary"] == "Logged pH 7.2, ammonia 0.25 ppm for Living Room Community"

    def test_daily_cap(self, fake_db, owned_tank):
        fake_db.queue("water_parameters", data=[], count=50)

        with pytest.raises(RateLimitExceededError):
            ActionService.execute(str(USER_ID), action("log_parameters", {"ph": 7.0}))

    def test_requires_a_value(self, fake_db, owned_tank):
        with pytest.raises(InvalidInputError):
            ActionService.execute(str(USER_ID), action("log_parameters", {"notes": "looked fine"}))


class TestAddLivestock:
    def test_water_type_conflict(self, fake_db, owned_tank, sample_species):
        clownfish = {**sample_species, "common_name": "Clownfish", "type": "saltwater"}

        with patch.object(SpeciesService, "get_species", return_value=clownfish), \
                patch.object(CompatibilityService, "get_active_livestock_with_species", return_value=[]):
            with pytest.raises(ConflictError):
                ActionService.execute(
                    str(USER_ID), action("add_livestock", {"species_id": sample_species["id"], "quantity": 2})
                )

    def test_unknown_name_stored_as_custom(self, fake_db, owned_tank):
        fake_db.queue("species", data=[])
        inserts = fake_db.queue("livestock", data=[{"id": "ls-1"}])

        result = ActionService.execute(
            str(USER_ID), action("add_livestock", {"species_name": "Mystery Snail", "quantity": 3})
        )

        row = inserts.payload("insert")
        assert row["species_id"] is None
        assert row["custom_name"] == "Mystery Snail"
        assert result["result"]["summary"] == "Added 3 Mystery Snail to Living Room Community"

    def test_catalogue_match_by_name(self, fake_db, owned_tank, sample_species):
        fake_db.queue("species", data=[sample_species])
        inserts = fake_db.queue("livestock", data=[{"id": "ls-2"}])

        result = ActionService.execute(str(USER_ID), action("add_livestock", {"species_name": "neon"}))

        assert inserts.payload("insert")["species_id"] == sample_species["id"]
        assert result["result"]["species_name"] == "Neon Tetra"


class TestScheduleMaintenance:
    def test_normalizes_natural_language(self, fake_db, owned_tank):
        inserts = fake_db.queue("maintenance_tasks", data=[{"id": "task-1"}])

        result = ActionService.execute(str(USER_ID), action("schedule_maintenance", {
            "task_type": "water change",
            "title": "Weekly water change",
            "frequency": "every week",
            "due_date": "in 3 days",
        }))

        row = inserts.payload("insert")
        assert row["type"] == "water_change"
        assert row["frequency"] == "weekly"
        assert date.fromisoformat(row["next_due_date"]) > date.today() - timedelta(days=1)
        assert result["result"]["task_id"] == "task-1"

    def test_recurring_task_in_the_past(self, fake_db, owned_tank):
        with pytest.raises(InvalidInputError):
            ActionService.execute(str(USER_ID), action("schedule_maintenance", {
                "task_type": "feeding",
                "title": "Feed",
                "frequency": "daily",
                "due_date": "2020-01-01",
            }))

    def test_unknown_task_type_rejected(self, fake_db, owned_tank):
        with pytest.raises(InvalidInputError):
            ActionService.execute(str(USER_ID), action("schedule_maintenance", {
                "task_type": "scrub rocks",
                "title": "Scrub",
                "due_date": "tomorrow",
            }))


class TestCompleteMaintenance:
    def test_completes_task(self, fake_db, owned_tank):
        task = {"id": TASK_ID, "tank_id": str(TANK_ID), "title": "Water change", "frequency": "weekly"}
        completed = {
            "log": {"id": "log-1", "completed_at": "2024-06-03T12:00:00+00:00"},
            "task": {**task, "next_due_date": "2024-06-10", "is_active": True},
        }

        with patch.object(MaintenanceService, "get_task_row", return_value=task) as get_task, \
                patch.object(MaintenanceService, "complete_task_row", return_value=completed):
            result = ActionService.execute(str(USER_ID), action("complete_maintenance", {"task_id": TASK_ID}))

        get_task.assert_called_once_with(str(TANK_ID), str(UUID(TASK_ID)))
        assert result["action_id"] == "log-1"
        assert result["result"]["next_due_date"] == "2024-06-10"
        assert result["result"]["summary"] == 'Completed "Water change" for Living Room Community'
