# =============================================================================
# tests/test_parameters.py - Water Parameter & Threshold Tests
# =============================================================================

from unittest.mock import patch

import pytest

from app.exceptions import InvalidInputError
from core.models.parameters import ThresholdType, ThresholdUpsert, WaterParameterCreate
from core.services.parameter_service import ParameterService, threshold_values
from core.services.tank_service import TankService
from tests.conftest import TANK_ID, USER_ID


@pytest.fixture
def owned_tank(sample_tank):
    with patch.object(TankService, "get_owned_tank", return_value=sample_tank):
        yield sample_tank


def test_threshold_values_parses_numeric_strings():
    values = threshold_values({"safe_min": "6.5", "safe_max": "7.5", "warning_min": "6", "warning_max": 8}, True)

    assert values == {"safe_min": 6.5, "safe_max": 7.5, "warning_min": 6.0, "warning_max": 8.0, "is_custom": True}


class TestReadings:
    def test_bad_date_filter(self, fake_db):
        with pytest.raises(InvalidInputError):
            ParameterService.list_parameters(TANK_ID, USER_ID, start_date="last tuesday")

    def test_date_filters_and_limit_cap(self, fake_db, owned_tank):
        query = fake_db.queue("water_parameters", data=[{"id": "r1"}])

        result = ParameterService.list_parameters(
            TANK_ID, USER_ID, start_date="2024-06-01T00:00:00Z", end_date="2024-06-30", limit=5000
        )

        assert result == {"parameters": [{"id": "r1"}], "count": 1}
        assert query.called("gte") == [("measured_at", "2024-06-01T00:00:00+00:00")]
        assert query.called("lte") == [("measured_at", "2024-06-30T00:00:00+00:00")]
        assert query.called("limit") == [(1000,)]

    def test_log_only_provided_values(self, fake_db, owned_tank):
        inserts = fake_db.queue("water_parameters", data=[{"id": "r2"}])

        ParameterService.log_parameters(TANK_ID, USER_ID, WaterParameterCreate(ph=7.2, ammonia_ppm=0))

        row = inserts.payload("insert")
        assert row["ph"] == 7.2
        assert row["ammonia_ppm"] == 0
        assert "nitrate_ppm" not in row
        assert row["measured_at"]


class TestThresholds:
    def test_custom_rows_override_defaults(self, fake_db, owned_tank):
        fake_db.queue("parameter_thresholds", data=[
            {"parameter_type": "ph", "safe_min": "6.8", "safe_max": "7.4", "warning_min": "6.5", "warning_max": "7.8"},
        ])
        fake_db.queue("rpc:get_parameter_thresholds", data=[
            {"safe_min": 0, "safe_max": 20, "warning_min": 0, "warning_max": 40},
        ])

        thresholds = ParameterService.get_thresholds(TANK_ID, USER_ID)["thresholds"]

        assert set(thresholds) == {t.value for t in ThresholdType}
        assert thresholds["ph"]["is_custom"] is True
        assert thresholds["ph"]["safe_min"] == 6.8
        assert thresholds["nitrate_ppm"]["is_custom"] is False
        assert thresholds["nitrate_ppm"]["safe_min"] == 0.0

    def test_missing_default_is_all_null(self, fake_db, owned_tank):
        fake_db.queue("rpc:get_parameter_thresholds", error=RuntimeError("function missing"))

        thresholds = ParameterService.get_thresholds(TANK_ID, USER_ID)["thresholds"]

        assert thresholds["calcium_ppm"] == {
            "safe_min": None, "safe_max": None, "warning_min": None, "warning_max": None, "is_custom": False,
        }

    def test_upsert(self, fake_db, owned_tank):
        query = fake_db.queue("parameter_thresholds", data=[])

        result = ParameterService.upsert_threshold(TANK_ID, USER_ID, ThresholdUpsert(
            parameter_type="nitrate_ppm", safe_min=0, safe_max=20, warning_min=0, warning_max=40,
        ))

        assert query.payload("upsert")["tank_id"] == str(TANK_ID)
        assert result["threshold"]["safe_max"] == 20.0
        assert result["threshold"]["is_custom"] is True

    def test_reset(self, fake_db, owned_tank):
        query = fake_db.queue("parameter_thresholds", data=[])

        result = ParameterService.reset_threshold(TANK_ID, USER_ID, ThresholdType.PH)

        assert query.called("delete") == [()]
        assert ("parameter_type", "ph") in query.called("eq")
        assert result["parameter_type"] == "ph"
