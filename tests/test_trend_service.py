# =============================================================================
# tests/test_trend_service.py - Trend Analysis Endpoint Tests
# =============================================================================
# Tests for TrendService.analyze():
# - per-tier daily cap and the trend_analysis usage row
# - threshold resolution (custom rows, reading column -> threshold type)
# - LLM summary for paid tiers, skipped for free, non-fatal on failure
# =============================================================================

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest

from app.exceptions import ErrorCode, RateLimitExceededError
from core.models.tier import Tier
from core.services.tier_service import TierService
from core.services.trend_service import TrendService
from lib.llm import LLMError
from tests.conftest import TANK_ID, USER_ID

START = datetime(2024, 6, 1, tzinfo=timezone.utc)


def rows(**series):
    """water_parameters rows, one per day, from column=[values] lists."""
    count = max(len(values) for values in series.values())
    return [
        {
            "measured_at": (START + timedelta(days=i)).isoformat(),
            **{column: values[i] for column, values in series.items() if i < len(values)},
        }
        for i in range(count)
    ]


def requested_threshold_types(fake_db) -> set[str]:
    return {
        args[1]["param_type"]
        for query in fake_db.queries.get("rpc:get_parameter_thresholds", [])
        for args in query.called("rpc")
    }


@pytest.fixture
def tier():
    with patch.object(TierService, "get_user_tier", return_value=Tier.FREE) as get_tier:
        yield get_tier


class TestAnalyze:
    """Tests for TrendService.analyze()."""

    def test_daily_cap(self, fake_db, sample_tank, tier):
        fake_db.queue("tanks", data=[sample_tank])
        fake_db.queue("ai_usage", data=[{"message_count": 5}])

        with pytest.raises(RateLimitExceededError) as exc:
            TrendService.analyze(TANK_ID, USER_ID, llm=MagicMock())

        assert exc.value.code == ErrorCode.RATE_LIMIT_EXCEEDED
        assert "5 trend analyses per day for free tier" in exc.value.message
        assert "water_parameters" not in fake_db.queries

    def test_free_tier_gets_stats_only(self, fake_db, sample_tank, tier):
        fake_db.queue("tanks", data=[sample_tank])
        usage = fake_db.queue("ai_usage", data=[{"message_count": 2}])
        fake_db.queue("water_parameters", data=rows(nitrate_ppm=[10, 12, 20, 24]))
        llm = MagicMock()

        result = TrendService.analyze(TANK_ID, USER_ID, days=14, llm=llm)

        llm.complete_json.assert_not_called()
        assert result["ai_summary"] is None
        assert result["period_days"] == 14
        assert result["reading_count"] == 4
        nitrate = result["parameters"]["nitrate_ppm"]
        assert nitrate["current"] == 24
        assert nitrate["trend"] == "rising"
        assert result["parameters"]["ph"]["readings"] == 0

        body = usage.payload("upsert")
        assert body["feature"] == "trend_analysis"
        assert body["message_count"] == 3

    def test_custom_thresholds_map_reading_columns(self, fake_db, sample_tank, tier):
        fake_db.queue("tanks", data=[sample_tank])
        fake_db.queue("parameter_thresholds", data=[
            {"parameter_type": "gh_ppm", "safe_min": "4", "safe_max": "8", "warning_min": "3", "warning_max": "12"},
            {"parameter_type": "salinity_ppt", "safe_min": 1.020, "safe_max": 1.026, "warning_min": 1.018, "warning_max": 1.028},
        ])
        fake_db.queue("water_parameters", data=rows(gh_dgh=[6, 10], salinity=[1.024, 1.025]))

        result = TrendService.analyze(TANK_ID, USER_ID, llm=MagicMock())

        assert result["parameters"]["gh_dgh"]["status"] == "warning"
        assert result["parameters"]["salinity"]["status"] == "safe"
        requested = requested_threshold_types(fake_db)
        assert "gh_ppm" not in requested
        assert "salinity_ppt" not in requested
        assert "kh_ppm" in requested
        assert "kh_dgh" not in requested

    def test_default_thresholds_from_rpc(self, fake_db, sample_tank, tier):
        fake_db.queue("tanks", data=[sample_tank])
        fake_db.queue("rpc:get_parameter_thresholds", data=[
            {"safe_min": 0, "safe_max": 0.25, "warning_min": 0, "warning_max": 0.5},
        ])
        fake_db.queue("water_parameters", data=rows(ammonia_ppm=[0, 1.0]))

        result = TrendService.analyze(TANK_ID, USER_ID, llm=MagicMock())

        assert result["parameters"]["ammonia_ppm"]["status"] == "danger"
        assert result["overall_health"] == "poor"

    def test_paid_tier_gets_insights(self, fake_db, sample_tank, tier):
        tier.return_value = Tier.STARTER
        fake_db.queue("tanks", data=[sample_tank])
        fake_db.queue("water_parameters", data=rows(nitrate_ppm=[10, 12, 20, 24]))
        llm = MagicMock()
        llm.complete_json.return_value = {
            "summary": "Nitrate is climbing.",
            "insights": {"nitrate_ppm": "Increase water changes.", "not_a_column": "ignored"},
        }

        result = TrendService.analyze(TANK_ID, USER_ID, llm=llm)

        assert result["ai_summary"] == "Nitrate is climbing."
        assert result["parameters"]["nitrate_ppm"]["ai_insight"] == "Increase water changes."
        assert "not_a_column" not in result["parameters"]
        assert "freshwater" in llm.complete_json.call_args.kwargs["prompt"]

    def test_insight_failure_is_not_fatal(self, fake_db, sample_tank, tier):
        tier.return_value = Tier.PRO
        fake_db.queue("tanks", data=[sample_tank])
        usage = fake_db.queue("ai_usage", data=[])
        fake_db.queue("water_parameters", data=rows(ph=[7.0, 7.2]))
        llm = MagicMock()
        llm.complete_json.side_effect = LLMError("AI service unavailable", code="LLM_UNAVAILABLE")

        result = TrendService.analyze(TANK_ID, USER_ID, llm=llm)

        assert result["ai_summary"] is None
        assert result["parameters"]["ph"]["current"] == 7.2
        assert usage.payload("upsert")["message_count"] == 1

    def test_no_readings_skips_llm(self, fake_db, sample_tank, tier):
        tier.return_value = Tier.PLUS
        fake_db.queue("tanks", data=[sample_tank])
        llm = MagicMock()

        result = TrendService.analyze(TANK_ID, USER_ID, llm=llm)

        llm.complete_json.assert_not_called()
        assert result["reading_count"] == 0

    def test_usage_lookup_failure_assumes_none(self, fake_db, sample_tank, tier):
        fake_db.queue("tanks", data=[sample_tank])
        fake_db.queue("ai_usage", error=RuntimeError("connection reset"))

        result = TrendService.analyze(TANK_ID, USER_ID, llm=MagicMock())

        assert result["tank_id"] == sample_tank["id"]
