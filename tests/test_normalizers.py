# =============================================================================
# tests/test_normalizers.py - Action Payload Normalization Tests
# =============================================================================

from datetime import date

import pytest

from lib.normalizers import (
    normalize_action_payload,
    normalize_due_date,
    normalize_frequency,
    normalize_task_type,
)

MONDAY = date(2024, 6, 3)


class TestTaskType:
    @pytest.mark.parametrize("raw, expected", [
        ("water change", "water_change"),
        ("Water Change", "water_change"),
        ("filter clean", "filter_cleaning"),
        ("test water", "water_testing"),
        ("gravel vac", "gravel_vac"),
        ("dosing", "dosing"),
    ])
    def test_aliases(self, raw, expected):
        assert normalize_task_type(raw) == expected


class TestFrequency:
    @pytest.mark.parametrize("raw, expected", [
        ("every week", "weekly"),
        ("Every Day", "daily"),
        ("bi-weekly", "biweekly"),
        ("one time", "once"),
        ("monthly", "monthly"),
    ])
    def test_aliases(self, raw, expected):
        assert normalize_frequency(raw) == expected


class TestDueDate:
    """Tests for normalize_due_date() against a fixed Monday."""

    def test_today(self):
        assert normalize_due_date("today", MONDAY) == "2024-06-03T00:00:00+00:00"

    def test_tomorrow(self):
        assert normalize_due_date("Tomorrow", MONDAY) == "2024-06-04T00:00:00+00:00"

    def test_in_days(self):
        assert normalize_due_date("in 3 days", MONDAY) == "2024-06-06T00:00:00+00:00"
        assert normalize_due_date("in 1 day", MONDAY) == "2024-06-04T00:00:00+00:00"

    def test_next_weekday(self):
        assert normalize_due_date("next saturday", MONDAY) == "2024-06-08T00:00:00+00:00"

    def test_next_same_weekday_is_a_week_out(self):
        assert normalize_due_date("next monday", MONDAY) == "2024-06-10T00:00:00+00:00"

    def test_bare_date(self):
        assert normalize_due_date("2024-07-01", MONDAY) == "2024-07-01T00:00:00+00:00"

    def test_unrecognized_passes_through(self):
        assert normalize_due_date("whenever", MONDAY) == "whenever"
        assert normalize_due_date("2024-13-40", MONDAY) == "2024-13-40"
        assert normalize_due_date(None, MONDAY) is None


class TestActionPayload:
    """Tests for normalize_action_payload()."""

    def test_schedule_maintenance(self):
        payload = {"task_type": "water change", "frequency": "every week", "due_date": "tomorrow", "title": "WC"}
        result = normalize_action_payload("schedule_maintenance", payload, today=MONDAY)

        assert result == {
            "task_type": "water_change",
            "frequency": "weekly",
            "due_date": "2024-06-04T00:00:00+00:00",
            "title": "WC",
        }
        assert payload["task_type"] == "water change"

    def test_task_type_only_for_schedule(self):
        result = normalize_action_payload("log_parameters", {"task_type": "water change"})
        assert result["task_type"] == "water change"

    def test_non_dict(self):
        assert normalize_action_payload("log_parameters", None) == {}
