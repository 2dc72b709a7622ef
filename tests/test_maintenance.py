# ============================================================================
# MAINTENANCE WINDOW TESTS
# ============================================================================
# STATUS: Tests - Maintenance window evaluation
# PURPOSE: Verify day selection, midnight crossing and policy matching
# CREATED: 13 OCT 2026
# ============================================================================
"""
Maintenance Window Tests

Reference date: Tuesday 2026-10-13.

Run with:
    pytest tests/test_maintenance.py -v
"""

from datetime import datetime, timedelta, timezone

import pytest

from core.models import MaintenancePolicy, MaintenancePolicyEntry, MaintenancePolicyRule, Runtime
from orchestrator.maintenance import (
    allowed_weekdays,
    apply_maintenance_window,
    first_available_day_diff,
    next_available_day_diff,
    resolve_maintenance_window,
    rule_matches,
)

UTC = timezone.utc
TUESDAY_10AM = datetime(2026, 10, 13, 10, 0, tzinfo=UTC)


def _runtime(**kwargs):
    return Runtime(instance_id=kwargs.pop("instance_id", "inst-1"), **kwargs)


def _policy(default=None, rules=None):
    return MaintenancePolicy.model_validate({"default": default, "rules": rules or []})


MON_WED = {"days": ["Mon", "Wed"], "timeBegin": "020000+0000", "timeEnd": "040000+0000"}


# ============================================================================
# DAY ARITHMETIC
# ============================================================================

class TestDayArithmetic:

    def test_allowed_weekdays_accepts_long_names(self):
        assert allowed_weekdays(["monday", "WED", "Sun"]) == {0, 2, 6}

    def test_allowed_weekdays_ignores_unknown(self):
        assert allowed_weekdays(["Funday"]) == set()

    def test_first_available_includes_today(self):
        assert first_available_day_diff(1, {1, 3}) == 0
        assert first_available_day_diff(1, {0}) == 6

    def test_next_available_excludes_today(self):
        assert next_available_day_diff(1, {1}) == 7
        assert next_available_day_diff(1, {2}) == 1
        assert next_available_day_diff(6, {0}) == 1


# ============================================================================
# RESOLUTION
# ============================================================================

class TestResolveMaintenanceWindow:

    def test_default_entry_next_allowed_day(self):
        begin, end, days = resolve_maintenance_window(_runtime(), _policy(MON_WED), now=TUESDAY_10AM)

        assert begin == datetime(2026, 10, 14, 2, 0, tzinfo=UTC)
        assert end == datetime(2026, 10, 14, 4, 0, tzinfo=UTC)
        assert days == ["Mon", "Wed"]

    def test_todays_window_still_ahead(self):
        now = datetime(2026, 10, 14, 1, 0, tzinfo=UTC)
        begin, end, _ = resolve_maintenance_window(_runtime(), _policy(MON_WED), now=now)

        assert begin == datetime(2026, 10, 14, 2, 0, tzinfo=UTC)
        assert end == datetime(2026, 10, 14, 4, 0, tzinfo=UTC)

    def test_window_over_moves_to_next_allowed_day(self):
        now = datetime(2026, 10, 14, 5, 0, tzinfo=UTC)
        begin, end, _ = resolve_maintenance_window(_runtime(), _policy(MON_WED), now=now)

        assert begin == datetime(2026, 10, 19, 2, 0, tzinfo=UTC)
        assert end == datetime(2026, 10, 19, 4, 0, tzinfo=UTC)

    def test_running_window_is_kept(self):
        now = datetime(2026, 10, 14, 3, 0, tzinfo=UTC)
        begin, end, _ = resolve_maintenance_window(_runtime(), _policy(MON_WED), now=now)

        assert begin == datetime(2026, 10, 14, 2, 0, tzinfo=UTC)
        assert end == datetime(2026, 10, 14, 4, 0, tzinfo=UTC)

    def test_window_crossing_midnight(self):
        entry = {"days": ["Sat"], "timeBegin": "230000+0000", "timeEnd": "010000+0000"}
        begin, end, _ = resolve_maintenance_window(_runtime(), _policy(entry), now=TUESDAY_10AM)

        assert begin == datetime(2026, 10, 17, 23, 0, tzinfo=UTC)
        assert end == datetime(2026, 10, 18, 1, 0, tzinfo=UTC)

    def test_after_later_than_now(self):
        after = datetime(2026, 10, 15, 12, 0, tzinfo=UTC)
        begin, _, _ = resolve_maintenance_window(
            _runtime(), _policy(MON_WED), after=after, now=TUESDAY_10AM
        )

        assert begin == datetime(2026, 10, 19, 2, 0, tzinfo=UTC)

    def test_after_in_the_past_is_ignored(self):
        after = TUESDAY_10AM - timedelta(days=30)
        begin, _, _ = resolve_maintenance_window(
            _runtime(), _policy(MON_WED), after=after, now=TUESDAY_10AM
        )

        assert begin == datetime(2026, 10, 14, 2, 0, tzinfo=UTC)

    def test_offset_times(self):
        entry = {"days": ["Wed"], "timeBegin": "020000+0200", "timeEnd": "040000+0200"}
        begin, end, _ = resolve_maintenance_window(_runtime(), _policy(entry), now=TUESDAY_10AM)

        assert begin == datetime(2026, 10, 14, 0, 0, tzinfo=UTC)
        assert end == datetime(2026, 10, 14, 2, 0, tzinfo=UTC)

    def test_no_allowed_days_means_no_constraint(self):
        assert resolve_maintenance_window(_runtime(), _policy(), now=TUESDAY_10AM) == (None, None, [])
        assert resolve_maintenance_window(_runtime(), None, now=TUESDAY_10AM) == (None, None, [])

    def test_runtime_window_used_without_policy(self):
        runtime = _runtime(
            maintenance_window_begin=datetime(2026, 1, 1, 3, 0, tzinfo=UTC),
            maintenance_window_end=datetime(2026, 1, 1, 5, 0, tzinfo=UTC),
            maintenance_days=["Fri"],
        )
        begin, end, days = resolve_maintenance_window(runtime, None, now=TUESDAY_10AM)

        assert begin == datetime(2026, 10, 16, 3, 0, tzinfo=UTC)
        assert end == datetime(2026, 10, 16, 5, 0, tzinfo=UTC)
        assert days == ["Fri"]

    def test_entry_overrides_only_set_fields(self):
        runtime = _runtime(
            maintenance_window_begin=datetime(2026, 1, 1, 3, 0, tzinfo=UTC),
            maintenance_window_end=datetime(2026, 1, 1, 5, 0, tzinfo=UTC),
            maintenance_days=["Fri"],
        )
        begin, end, days = resolve_maintenance_window(runtime, _policy({"days": ["Thu"]}), now=TUESDAY_10AM)

        assert begin == datetime(2026, 10, 15, 3, 0, tzinfo=UTC)
        assert end == datetime(2026, 10, 15, 5, 0, tzinfo=UTC)
        assert days == ["Thu"]

    def test_missing_times_default_to_midnight(self):
        begin, end, _ = resolve_maintenance_window(_runtime(), _policy({"days": ["Thu"]}), now=TUESDAY_10AM)

        assert begin == datetime(2026, 10, 15, 0, 0, tzinfo=UTC)
        assert end == datetime(2026, 10, 16, 0, 0, tzinfo=UTC)


# ============================================================================
# POLICY RULES
# ============================================================================

class TestPolicyRules:

    RULE = {
        "match": {"plan": "azure", "region": "europe"},
        "days": ["Sat"],
        "timeBegin": "010000+0000",
        "timeEnd": "050000+0000",
    }

    def test_matching_rule_wins(self):
        runtime = _runtime(plan="azure", region="westeurope")
        begin, end, days = resolve_maintenance_window(
            runtime, _policy(MON_WED, [self.RULE]), now=TUESDAY_10AM
        )

        assert days == ["Sat"]
        assert begin == datetime(2026, 10, 17, 1, 0, tzinfo=UTC)
        assert end == datetime(2026, 10, 17, 5, 0, tzinfo=UTC)

    def test_non_matching_rule_falls_back_to_default(self):
        runtime = _runtime(plan="aws", region="westeurope")
        _, _, days = resolve_maintenance_window(runtime, _policy(MON_WED, [self.RULE]), now=TUESDAY_10AM)

        assert days == ["Mon", "Wed"]

    def test_first_matching_rule_wins(self):
        second = dict(self.RULE, days=["Sun"])
        runtime = _runtime(plan="azure", region="westeurope")
        _, _, days = resolve_maintenance_window(runtime, _policy(None, [self.RULE, second]), now=TUESDAY_10AM)

        assert days == ["Sat"]

    def test_invalid_pattern_never_matches(self):
        rule = MaintenancePolicyRule.model_validate({"match": {"plan": "["}, "days": ["Sat"]})
        assert rule_matches(rule, _runtime(plan="[")) is False

    def test_global_account_alias(self):
        rule = MaintenancePolicyRule.model_validate({"match": {"globalAccountID": "^ga-1$"}})
        assert rule_matches(rule, _runtime(global_account_id="ga-1"))
        assert not rule_matches(rule, _runtime(global_account_id="ga-10"))

    def test_empty_match_matches_everything(self):
        assert rule_matches(MaintenancePolicyRule(), _runtime(plan="anything"))


class TestApplyMaintenanceWindow:

    def test_sets_runtime_fields(self):
        runtime = apply_maintenance_window(_runtime(), _policy(MON_WED), now=TUESDAY_10AM)

        assert runtime.has_window()
        assert runtime.maintenance_window_begin == datetime(2026, 10, 14, 2, 0, tzinfo=UTC)
        assert runtime.maintenance_days == ["Mon", "Wed"]

    def test_clears_window_without_days(self):
        runtime = _runtime(
            maintenance_window_begin=datetime(2026, 1, 1, 3, 0, tzinfo=UTC),
            maintenance_window_end=datetime(2026, 1, 1, 5, 0, tzinfo=UTC),
        )
        apply_maintenance_window(runtime, None, now=TUESDAY_10AM)

        assert not runtime.has_window()

    @pytest.mark.parametrize("entry", [
        MaintenancePolicyEntry(days=["Mon", "Wed"], time_begin="020000+0000", time_end="040000+0000"),
    ])
    def test_entry_by_field_name(self, entry):
        policy = MaintenancePolicy(default=entry)
        runtime = apply_maintenance_window(_runtime(), policy, now=TUESDAY_10AM)

        assert runtime.maintenance_window_end == datetime(2026, 10, 14, 4, 0, tzinfo=UTC)
