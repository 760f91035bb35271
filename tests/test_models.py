# =============================================================================
# tests/test_models.py - Pydantic Model Tests
# =============================================================================
# Unit tests for the request/response models to ensure:
# - Valid data is accepted and parsed correctly
# - Invalid data raises ValidationError
# - Cross-field rules (either/or fields, ranges) are enforced
#
# Run with: poetry run pytest tests/test_models.py -v
# =============================================================================

from datetime import date, timedelta
from uuid import uuid4

import pytest
from pydantic import ValidationError

from core.models import (
    AICompatibilityAssessment,
    ActionRequest,
    ActionType,
    AddLivestockPayload,
    AlertUpdateRequest,
    ChatRequest,
    CheckoutRequest,
    BillingInterval,
    EquipmentCreate,
    GeneratedAlertBatch,
    LivestockCreate,
    LogParametersPayload,
    MaintenanceTaskCreate,
    ScheduleMaintenancePayload,
    TankCreate,
    TankType,
    ThresholdUpsert,
    Tier,
    WaterParameterCreate,
    threshold_type_for,
)


# =============================================================================
# Tier Tests
# =============================================================================

class TestTier:
    """Tests for tier ordering."""

    def test_tiers_are_ordered(self):
        """Each tier includes the ones below it."""
        assert Tier.PRO.at_least(Tier.PLUS)
        assert Tier.PLUS.at_least(Tier.STARTER)
        assert Tier.STARTER.at_least(Tier.FREE)
        assert Tier.FREE.at_least(Tier.FREE)

    def test_lower_tier_is_not_at_least_higher(self):
        assert not Tier.STARTER.at_least(Tier.PLUS)
        assert not Tier.FREE.at_least(Tier.STARTER)


# =============================================================================
# Tank & Livestock Tests
# =============================================================================

class TestTankCreate:
    """Tests for TankCreate model."""

    def test_valid_tank(self):
        tank = TankCreate(name="Reef", type="reef", volume_gallons=40)

        assert tank.type == TankType.REEF
        assert tank.type.is_marine
        assert tank.substrate is None

    def test_name_too_long(self):
        with pytest.raises(ValidationError):
            TankCreate(name="x" * 51, type="freshwater", volume_gallons=10)

    def test_volume_must_be_positive(self):
        with pytest.raises(ValidationError):
            TankCreate(name="Tank", type="freshwater", volume_gallons=0)

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            TankCreate(name="Tank", type="lake", volume_gallons=10)

    def test_freshwater_is_not_marine(self):
        assert not TankType.FRESHWATER.is_marine
        assert TankType.SALTWATER.is_marine


class TestLivestockCreate:
    """Tests for LivestockCreate model."""

    def test_species_id_only(self):
        item = LivestockCreate(species_id=uuid4())
        assert item.quantity == 1

    def test_custom_name_only(self):
        item = LivestockCreate(custom_name="Mystery snail", quantity=3)
        assert item.custom_name == "Mystery snail"

    def test_requires_species_or_name(self):
        with pytest.raises(ValidationError) as exc_info:
            LivestockCreate(quantity=2)

        assert "species_id or custom_name" in str(exc_info.value)

    def test_quantity_bounds(self):
        with pytest.raises(ValidationError):
            LivestockCreate(custom_name="Guppy", quantity=0)
        with pytest.raises(ValidationError):
            LivestockCreate(custom_name="Guppy", quantity=1001)


# =============================================================================
# Parameter Tests
# =============================================================================

class TestWaterParameterCreate:
    """Tests for WaterParameterCreate model."""

    def test_readings_only_include_provided_values(self):
        reading = WaterParameterCreate(ph=7.2, ammonia_ppm=0)

        assert reading.readings() == {"ph": 7.2, "ammonia_ppm": 0}

    def test_requires_one_reading(self):
        with pytest.raises(ValidationError):
            WaterParameterCreate(notes="forgot to test")

    def test_ph_range(self):
        with pytest.raises(ValidationError):
            WaterParameterCreate(ph=15)

    def test_temperature_range(self):
        with pytest.raises(ValidationError):
            WaterParameterCreate(temperature_f=130)


class TestThresholdUpsert:
    """Tests for ThresholdUpsert model."""

    def test_all_bounds(self):
        threshold = ThresholdUpsert(
            parameter_type="ph", safe_min=6.8, safe_max=7.6, warning_min=6.4, warning_max=8.0
        )
        assert threshold.safe_min == 6.8

    def test_no_bounds_allowed(self):
        threshold = ThresholdUpsert(parameter_type="nitrate_ppm")
        assert threshold.safe_max is None

    def test_partial_bounds_rejected(self):
        with pytest.raises(ValidationError):
            ThresholdUpsert(parameter_type="ph", safe_min=6.8, safe_max=7.6)

    def test_safe_must_be_within_warning(self):
        with pytest.raises(ValidationError) as exc_info:
            ThresholdUpsert(
                parameter_type="ph", safe_min=6.0, safe_max=7.6, warning_min=6.4, warning_max=8.0
            )
        assert "within the warning range" in str(exc_info.value)

    def test_zero_bounds_are_kept(self):
        threshold = ThresholdUpsert(
            parameter_type="ammonia_ppm", safe_min=0, safe_max=0, warning_min=0, warning_max=0.25
        )
        assert threshold.safe_min == 0
        assert threshold.warning_min == 0

    def test_threshold_type_for_column(self):
        assert threshold_type_for("gh_dgh") == "gh_ppm"
        assert threshold_type_for("salinity") == "salinity_ppt"
        assert threshold_type_for("ph") == "ph"


# =============================================================================
# Maintenance & Equipment Tests
# =============================================================================

class TestMaintenanceTaskCreate:
    """Tests for MaintenanceTaskCreate model."""

    def test_custom_frequency_needs_interval(self):
        with pytest.raises(ValidationError):
            MaintenanceTaskCreate(
                type="water_change", title="WC", frequency="custom", next_due_date="2024-06-01T09:00:00Z"
            )

    def test_once_needs_due_date(self):
        with pytest.raises(ValidationError):
            MaintenanceTaskCreate(type="dosing", title="Dose ferts", frequency="once")

    def test_weekly_task(self):
        task = MaintenanceTaskCreate(type="water_change", title="WC", frequency="weekly")
        assert task.reminder_before_hours == 24


class TestEquipmentCreate:
    """Tests for EquipmentCreate model."""

    def test_future_purchase_date_rejected(self):
        with pytest.raises(ValidationError):
            EquipmentCreate(type="heater", purchase_date=date.today() + timedelta(days=1))

    def test_other_requires_custom_type(self):
        with pytest.raises(ValidationError):
            EquipmentCreate(type="other", purchase_date=date(2023, 1, 1))

    def test_valid_equipment(self):
        item = EquipmentCreate(type="heater", brand="Eheim", purchase_date=date(2023, 1, 10))
        assert item.expected_lifespan_months is None


# =============================================================================
# Chat & Action Tests
# =============================================================================

class TestChatRequest:
    """Tests for ChatRequest model."""

    def test_message_bounds(self):
        with pytest.raises(ValidationError):
            ChatRequest(message="")
        with pytest.raises(ValidationError):
            ChatRequest(message="x" * 5001)

    def test_tank_is_optional(self):
        assert ChatRequest(message="hello").tank_id is None


class TestActionPayloads:
    """Tests for AI action payloads."""

    def test_action_request(self):
        request = ActionRequest(type="log_parameters", tank_id=uuid4(), payload={"ph": 7.0})
        assert request.type == ActionType.LOG_PARAMETERS

    def test_log_parameters_values(self):
        payload = LogParametersPayload(ph=7.0, nitrate=20)
        assert payload.values() == {"ph": 7.0, "nitrate": 20}

    def test_log_parameters_requires_a_value(self):
        with pytest.raises(ValidationError):
            LogParametersPayload(notes="nothing")

    def test_add_livestock_requires_species(self):
        with pytest.raises(ValidationError):
            AddLivestockPayload(quantity=2)

    def test_schedule_maintenance_custom_needs_interval(self):
        with pytest.raises(ValidationError):
            ScheduleMaintenancePayload(
                task_type="water_change", title="WC", due_date="2024-06-01T09:00:00Z", frequency="custom"
            )


# =============================================================================
# Alert, Compatibility & Billing Tests
# =============================================================================

class TestAlertModels:
    """Tests for alert models."""

    def test_update_request(self):
        request = AlertUpdateRequest(action="dismiss", alert_id=uuid4())
        assert request.resolved_by_action_id is None

    def test_unknown_action_rejected(self):
        with pytest.raises(ValidationError):
            AlertUpdateRequest(action="snooze", alert_id=uuid4())

    def test_generated_batch_accepts_numeric_rate(self):
        batch = GeneratedAlertBatch.model_validate({
            "alerts": [{
                "parameter": "ph",
                "severity": "warning",
                "trend_direction": "decreasing",
                "current_value": 6.7,
                "unit": "",
                "trend_rate": -0.03,
            }]
        })
        assert batch.alerts[0].trend_rate == -0.03


class TestCompatibilityAssessment:
    """Tests for AICompatibilityAssessment score clamping."""

    @pytest.mark.parametrize("raw, expected", [(0, 1), (7, 5), ("3", 3), (4.6, 5)])
    def test_score_is_clamped(self, raw, expected):
        assert AICompatibilityAssessment(score=raw).score == expected


class TestCheckoutRequest:
    """Tests for CheckoutRequest model."""

    def test_defaults_to_monthly(self):
        request = CheckoutRequest(tier="plus")
        assert request.interval == BillingInterval.MONTHLY

    def test_free_cannot_be_checked_out(self):
        with pytest.raises(ValidationError):
            CheckoutRequest(tier="free")
