# =============================================================================
# tests/test_compatibility.py - Species Compatibility Tests
# =============================================================================
# Tests for the rule-based check and the tiered AI assessment flow.
# Tank, species and livestock lookups are mocked; the LLM is a MagicMock.
# =============================================================================

from unittest.mock import MagicMock, patch

import pytest

from core.models.compatibility import CompatibilityLevel, ConcernSeverity
from core.models.tier import Tier
from core.services.compatibility_service import (
    CompatibilityService,
    basic_compatibility_check,
    level_from_score,
)
from core.services.species_service import SpeciesService
from core.services.tank_service import TankService
from core.services.tier_service import TierService
from core.services.usage_service import UsageService
from lib.llm import LLMError
from tests.conftest import TANK_ID, USER_ID


def resident(name, temperament="peaceful", temp_min=72, temp_max=80, species_id="sp-resident"):
    return {
        "id": f"ls-{name}",
        "quantity": 4,
        "species_id": species_id,
        "species": {
            "common_name": name,
            "temperament": temperament,
            "temp_min_f": temp_min,
            "temp_max_f": temp_max,
        },
    }


class TestBasicCheck:
    """Tests for basic_compatibility_check()."""

    def test_compatible(self, sample_tank, sample_species):
        result = basic_compatibility_check(sample_tank, sample_species, [resident("Guppy")])

        assert result.compatible == CompatibilityLevel.COMPATIBLE
        assert result.concerns == []
        assert result.ai_assessment is False

    def test_water_type_mismatch(self, sample_tank, sample_species):
        species = {**sample_species, "type": "saltwater"}
        result = basic_compatibility_check(sample_tank, species, [])

        assert result.compatible == CompatibilityLevel.INCOMPATIBLE
        assert result.concerns[0].severity == ConcernSeverity.DANGER

    def test_tank_too_small(self, sample_tank, sample_species):
        tank = {**sample_tank, "volume_gallons": 5}
        result = basic_compatibility_check(tank, sample_species, [])

        assert result.compatible == CompatibilityLevel.CAUTION
        assert "at least 10 gallons" in result.concerns[0].message

    def test_aggressive_with_peaceful_residents(self, sample_tank, sample_species):
        species = {**sample_species, "temperament": "aggressive"}
        result = basic_compatibility_check(sample_tank, species, [resident("Neon")])

        assert result.compatible == CompatibilityLevel.CAUTION

    def test_aggressive_alone_is_fine(self, sample_tank, sample_species):
        species = {**sample_species, "temperament": "aggressive"}
        result = basic_compatibility_check(sample_tank, species, [resident("Oscar", temperament="aggressive")])

        assert result.compatible == CompatibilityLevel.COMPATIBLE

    def test_temperature_ranges_that_never_overlap(self, sample_tank, sample_species):
        cold = resident("White Cloud", temp_min=60, temp_max=68)
        result = basic_compatibility_check(sample_tank, sample_species, [cold])

        assert result.compatible == CompatibilityLevel.CAUTION
        assert "White Cloud" in result.concerns[0].message

    def test_partially_overlapping_temperatures_are_fine(self, sample_tank, sample_species):
        warm = resident("Discus", temp_min=80, temp_max=86)
        result = basic_compatibility_check(sample_tank, sample_species, [warm])

        assert result.compatible == CompatibilityLevel.COMPATIBLE

    def test_mismatch_stays_incompatible(self, sample_tank, sample_species):
        species = {**sample_species, "type": "saltwater", "min_tank_size_gallons": 100}
        result = basic_compatibility_check(sample_tank, species, [])

        assert result.compatible == CompatibilityLevel.INCOMPATIBLE
        assert len(result.concerns) == 2


class TestLevelFromScore:
    @pytest.mark.parametrize("score, expected", [
        (1, CompatibilityLevel.INCOMPATIBLE),
        (2, CompatibilityLevel.INCOMPATIBLE),
        (3, CompatibilityLevel.CAUTION),
        (4, CompatibilityLevel.COMPATIBLE),
        (5, CompatibilityLevel.COMPATIBLE),
    ])
    def test_mapping(self, score, expected):
        assert level_from_score(score) == expected


@pytest.fixture
def lookups(sample_tank, sample_species):
    """Patch tank/species/livestock lookups used by CompatibilityService.check()."""
    with patch.object(TankService, "get_owned_tank", return_value=sample_tank), \
         patch.object(SpeciesService, "get_species", return_value=sample_species), \
         patch.object(CompatibilityService, "get_active_livestock_with_species", return_value=[resident("Guppy")]):
        yield


class TestCheck:
    """Tests for CompatibilityService.check()."""

    def test_free_tier_gets_basic(self, lookups):
        llm = MagicMock()
        with patch.object(TierService, "get_user_tier", return_value=Tier.FREE):
            result = CompatibilityService.check(USER_ID, TANK_ID, "sp-new", llm=llm)

        assert result.ai_assessment is False
        llm.complete_json.assert_not_called()

    def test_paid_tier_gets_ai_result(self, lookups, fake_db):
        llm = MagicMock()
        llm.model = "claude-haiku"
        llm.complete_json.return_value = {
            "score": 2,
            "summary": "Guppies will nip at its fins.",
            "concerns": ["Fin nipping"],
            "recommendations": [],
        }
        cache = fake_db.queue("compatibility_checks", [])

        with patch.object(TierService, "get_user_tier", return_value=Tier.STARTER), \
             patch.object(UsageService, "check_and_increment", return_value=True):
            result = CompatibilityService.check(USER_ID, TANK_ID, "sp-new", llm=llm)

        assert result.ai_assessment is True
        assert result.score == 2
        assert result.compatible == CompatibilityLevel.INCOMPATIBLE
        assert result.concerns[0].severity == ConcernSeverity.DANGER
        assert result.recommendations == ["Not recommended. Please reconsider adding this species."]

        rows = cache.payload("upsert")
        assert rows[0]["species_b_id"] == "sp-resident"
        assert rows[0]["ai_model"] == "claude-haiku"

    def test_cached_result(self, lookups, fake_db):
        fake_db.queue("compatibility_checks", [{
            "compatibility_score": 4,
            "notes": "Good match.",
            "warnings": [{"severity": "info", "message": "Keep in groups"}],
        }])
        llm = MagicMock()

        with patch.object(TierService, "get_user_tier", return_value=Tier.PRO):
            result = CompatibilityService.check(USER_ID, TANK_ID, "sp-new", llm=llm)

        assert result.cached is True
        assert result.compatible == CompatibilityLevel.COMPATIBLE
        assert result.concerns[0].message == "Keep in groups"
        llm.complete_json.assert_not_called()

    def test_daily_limit_falls_back_to_basic(self, lookups, fake_db):
        with patch.object(TierService, "get_user_tier", return_value=Tier.STARTER), \
             patch.object(UsageService, "check_and_increment", return_value=False):
            result = CompatibilityService.check(USER_ID, TANK_ID, "sp-new", llm=MagicMock())

        assert result.limit_reached is True
        assert result.ai_assessment is False

    def test_llm_failure_falls_back_with_score(self, lookups, fake_db):
        llm = MagicMock()
        llm.complete_json.side_effect = LLMError("overloaded")

        with patch.object(TierService, "get_user_tier", return_value=Tier.PLUS), \
             patch.object(UsageService, "check_and_increment", return_value=True):
            result = CompatibilityService.check(USER_ID, TANK_ID, "sp-new", llm=llm)

        assert result.ai_assessment is False
        assert result.score == 4
