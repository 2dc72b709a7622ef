# ============================================================================
# MAINTENANCE WINDOW EVALUATOR
# ============================================================================
# STATUS: Orchestrator - Per-runtime maintenance window computation
# PURPOSE: Decide when a disruptive action may run on a runtime
# CREATED: 02 OCT 2026
# ============================================================================
"""
Maintenance Window Evaluator

Pure functions; nothing here touches the store.

resolve_maintenance_window(runtime, policy, after, now):
1. The first rule whose non-empty match patterns all match the runtime
   (plan, global account, region; regular expressions searched anywhere in
   the value) wins. Only the fields the rule sets override the runtime's
   current window. Without a matching rule the default entry is applied the
   same way. A pattern that does not compile never matches.
2. Daily begin/end are composed with the date of `now`, or of `after` when
   that is later, then moved to the first allowed weekday (today counts).
3. An end at or before the begin crosses midnight: end moves one day on.
4. A window already over relative to that reference time moves to the next
   allowed weekday after today.

An empty set of allowed days yields (None, None, []): no constraint.
"""

import logging
import re
from datetime import datetime, time, timedelta, timezone
from typing import List, Optional, Sequence, Tuple

from core.models import (
    MAINTENANCE_WINDOW_FORMAT,
    MaintenancePolicy,
    MaintenancePolicyEntry,
    MaintenancePolicyRule,
    Runtime,
)

logger = logging.getLogger(__name__)

WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

MaintenanceWindow = Tuple[Optional[datetime], Optional[datetime], List[str]]


# ============================================================================
# DAY ARITHMETIC
# ============================================================================

def allowed_weekdays(days: Sequence[str]) -> set:
    allowed = set()
    for day in days:
        key = day.strip()[:3].capitalize()
        if key in WEEKDAYS:
            allowed.add(WEEKDAYS.index(key))
        else:
            logger.warning(f"Ignoring unknown maintenance day {day!r}")
    return allowed


def first_available_day_diff(weekday: int, allowed: set) -> int:
    """Days from `weekday` (Mon=0) to the first allowed day, today included."""
    for diff in range(7):
        if (weekday + diff) % 7 in allowed:
            return diff
    return 0


def next_available_day_diff(weekday: int, allowed: set) -> int:
    """Days from `weekday` to the next allowed day, today excluded."""
    for diff in range(1, 8):
        if (weekday + diff) % 7 in allowed:
            return diff
    return 7


# ============================================================================
# POLICY MATCHING
# ============================================================================

def _pattern_matches(pattern: str, value: str) -> bool:
    if not pattern:
        return True
    try:
        return re.search(pattern, value or "") is not None
    except re.error as e:
        logger.warning(f"Invalid maintenance policy pattern {pattern!r}: {e}")
        return False


def rule_matches(rule: MaintenancePolicyRule, runtime: Runtime) -> bool:
    return (
        _pattern_matches(rule.match.plan, runtime.plan)
        and _pattern_matches(rule.match.global_account_id, runtime.global_account_id)
        and _pattern_matches(rule.match.region, runtime.region)
    )


def _parse_time(value: str) -> Optional[time]:
    try:
        return datetime.strptime(value, MAINTENANCE_WINDOW_FORMAT).timetz()
    except ValueError:
        logger.warning(f"Ignoring unparseable maintenance time {value!r}")
        return None


def _select_entry(runtime: Runtime, policy: MaintenancePolicy) -> Optional[MaintenancePolicyEntry]:
    for rule in policy.rules:
        if rule_matches(rule, runtime):
            return rule
    return policy.default


# ============================================================================
# EVALUATION
# ============================================================================

def resolve_maintenance_window(
    runtime: Runtime,
    policy: Optional[MaintenancePolicy],
    after: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> MaintenanceWindow:
    """
    Compute the next maintenance window for a runtime.

    Args:
        runtime: Runtime whose current window fields are the starting point
        policy: Rule set; None behaves like an empty policy
        after: Earliest allowed time (e.g. the orchestration schedule time)
        now: Reference "now", injectable for tests

    Returns:
        (begin, end, days); begin/end are None for "no constraint"
    """
    days = list(runtime.maintenance_days)
    begin_time = runtime.maintenance_window_begin.timetz() if runtime.maintenance_window_begin else None
    end_time = runtime.maintenance_window_end.timetz() if runtime.maintenance_window_end else None

    entry = _select_entry(runtime, policy) if policy is not None else None
    if entry is not None:
        if entry.days:
            days = list(entry.days)
        if entry.time_begin:
            begin_time = _parse_time(entry.time_begin) or begin_time
        if entry.time_end:
            end_time = _parse_time(entry.time_end) or end_time

    allowed = allowed_weekdays(days)
    if not allowed:
        return None, None, []

    utc_midnight = time(0, 0, tzinfo=timezone.utc)
    begin_time = begin_time or utc_midnight
    end_time = end_time or utc_midnight
    if begin_time.tzinfo is None:
        begin_time = begin_time.replace(tzinfo=timezone.utc)
    if end_time.tzinfo is None:
        end_time = end_time.replace(tzinfo=timezone.utc)

    reference = now or datetime.now(timezone.utc)
    if reference.tzinfo is None:
        reference = reference.replace(tzinfo=timezone.utc)
    if after is not None and after.tzinfo is None:
        after = after.replace(tzinfo=timezone.utc)
    if after is not None and after > reference:
        reference = after

    local_reference = reference.astimezone(begin_time.tzinfo)
    day = local_reference.date()
    start = datetime.combine(day, begin_time)
    end = datetime.combine(day, end_time)

    diff = first_available_day_diff(local_reference.weekday(), allowed)
    start += timedelta(days=diff)
    end += timedelta(days=diff)

    if end <= start:
        end += timedelta(days=1)

    if start < reference and end < reference:
        diff = next_available_day_diff(local_reference.weekday(), allowed)
        start += timedelta(days=diff)
        end += timedelta(days=diff)

    return start, end, days


def apply_maintenance_window(
    runtime: Runtime,
    policy: Optional[MaintenancePolicy],
    after: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> Runtime:
    """Resolve and store the window on the runtime. Returns the runtime."""
    begin, end, days = resolve_maintenance_window(runtime, policy, after, now)
    runtime.maintenance_window_begin = begin
    runtime.maintenance_window_end = end
    runtime.maintenance_days = days
    return runtime


__all__ = [
    "WEEKDAYS",
    "allowed_weekdays",
    "MaintenanceWindow",
    "first_available_day_diff",
    "next_available_day_diff",
    "rule_matches",
    "resolve_maintenance_window",
    "apply_maintenance_window",
]
