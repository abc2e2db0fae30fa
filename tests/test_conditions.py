"""
BLOCKING CONDITION TESTS

Schedule windows, usage limits, custom conditions and the OR across a schema.
2024-01-01 is a Monday.
"""
from datetime import datetime, time, timedelta

import pytest

from phonejail.conditions import (
    ConditionContext,
    condition_holds,
    is_condition_blocking,
    schedule_holds,
    usage_limit_holds,
)
from phonejail.models import EVERY_DAY, WEEKDAYS, BlockingCondition, Schema, Weekday, starter_schemas

MONDAY = datetime(2024, 1, 1)
FRIDAY = datetime(2024, 1, 5)
SATURDAY = datetime(2024, 1, 6)


def at(day: datetime, hour: int, minute: int = 0) -> datetime:
    return day.replace(hour=hour, minute=minute)


class TestScheduleWindow:
    """Daytime and overnight windows on selected weekdays."""

    work_hours = BlockingCondition.schedule(time(9, 0), time(17, 0), WEEKDAYS)

    @pytest.mark.parametrize("hour,minute,expected", [
        (8, 59, False),
        (9, 0, True),
        (12, 30, True),
        (16, 59, True),
        (17, 0, False),
    ])
    def test_window_is_half_open(self, hour, minute, expected):
        assert schedule_holds(self.work_hours, at(MONDAY, hour, minute)) is expected

    def test_inactive_day(self):
        assert schedule_holds(self.work_hours, at(SATURDAY, 10)) is False

    def test_overnight_window(self):
        night = BlockingCondition.schedule(time(22, 0), time(6, 0), {Weekday.FRIDAY})
        assert schedule_holds(night, at(FRIDAY, 23)) is True
        assert schedule_holds(night, at(SATURDAY, 5, 59)) is True
        assert schedule_holds(night, at(SATURDAY, 6)) is False
        assert schedule_holds(night, at(SATURDAY, 23)) is False
        assert schedule_holds(night, at(FRIDAY, 5)) is False

    def test_overnight_window_wraps_sunday_to_monday(self):
        night = BlockingCondition.schedule(time(21, 0), time(7, 0), {Weekday.SUNDAY})
        assert schedule_holds(night, at(MONDAY, 6)) is True

    def test_missing_times_never_hold(self):
        broken = BlockingCondition(type="schedule", active_days=EVERY_DAY)
        assert schedule_holds(broken, at(MONDAY, 12)) is False

    def test_non_repeating_schedule_is_evaluated_as_recurring(self):
        """repeats=False has no expiry yet; it behaves like a recurring schedule."""
        once = BlockingCondition.schedule(time(9, 0), time(17, 0), WEEKDAYS, repeats=False)
        assert schedule_holds(once, at(MONDAY, 10)) is True
        assert schedule_holds(once, at(FRIDAY, 10)) is True


class TestUsageLimit:

    limit = BlockingCondition.daily_usage_limit(3600)

    def test_below_limit(self):
        assert usage_limit_holds(self.limit, timedelta(minutes=59)) is False

    def test_at_limit(self):
        assert usage_limit_holds(self.limit, timedelta(hours=1)) is True

    def test_above_limit(self):
        assert usage_limit_holds(self.limit, timedelta(hours=2)) is True


class TestConditionDispatch:

    def test_custom_condition_always_holds(self):
        custom = BlockingCondition.custom("Shortcut", "Driven by an automation")
        assert condition_holds(custom, ConditionContext(now=at(SATURDAY, 3))) is True

    def test_schema_without_conditions_is_not_blocking(self):
        schema = Schema(name="Empty")
        assert is_condition_blocking(schema, ConditionContext(now=at(MONDAY, 10))) is False


class TestHighControlIsAnOr:
    """Schedule(09:00-17:00, Mon-Fri) OR DailyUsageLimit(3600)."""

    schema = Schema(
        name="High Control",
        blocking_conditions=[
            BlockingCondition.schedule(time(9, 0), time(17, 0), WEEKDAYS),
            BlockingCondition.daily_usage_limit(3600),
        ],
    )

    @pytest.mark.parametrize("now,usage,expected", [
        (at(MONDAY, 10), timedelta(0), True),
        (at(MONDAY, 20), timedelta(hours=1), True),
        (at(MONDAY, 10), timedelta(hours=2), True),
        (at(MONDAY, 20), timedelta(minutes=10), False),
        (at(SATURDAY, 10), timedelta(minutes=10), False),
        (at(SATURDAY, 10), timedelta(hours=1), True),
    ])
    def test_either_predicate_blocks(self, now, usage, expected):
        ctx = ConditionContext(now=now, usage_today=usage)
        assert is_condition_blocking(self.schema, ctx) is expected

    def test_starter_template_matches(self):
        template = next(s for s in starter_schemas() if s.name == "High Control")
        ctx = ConditionContext(now=at(SATURDAY, 10), usage_today=timedelta(hours=1))
        assert is_condition_blocking(template, ctx) is True
        assert template.has_time_conditions and template.has_usage_limits
