# phonejail/conditions.py
"""
Blocking-condition predicates.

A schema is condition-blocking when any one of its conditions holds. The
predicates are pure: the caller supplies the local time and the usage
observed today for the schema's content.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable

from phonejail.models import BlockingCondition, BlockingConditionType, Schema, Weekday


@dataclass(frozen=True)
class ConditionContext:
    now: datetime
    usage_today: timedelta = timedelta(0)


def schedule_holds(condition: BlockingCondition, now: datetime) -> bool:
    start, end = condition.schedule_start, condition.schedule_end
    if start is None or end is None or not condition.active_days:
        return False

    # TODO: repeats=False (one-shot schedule) has no defined expiry yet; every
    # schedule is evaluated as recurring until that behaviour is decided.
    today = Weekday.from_date(now)
    t = now.time()

    if start < end:
        return today in condition.active_days and start <= t < end

    # window wraps past midnight: [start, 24:00) on an active day,
    # [00:00, end) on the day after one
    if today in condition.active_days and t >= start:
        return True
    yesterday = next(d for d in Weekday if d.next_day() == today)
    return yesterday in condition.active_days and t < end


def usage_limit_holds(condition: BlockingCondition, usage_today: timedelta) -> bool:
    if condition.usage_limit is None or condition.usage_limit <= 0:
        return False
    return usage_today.total_seconds() >= condition.usage_limit


def condition_holds(condition: BlockingCondition, ctx: ConditionContext) -> bool:
    if condition.type == BlockingConditionType.SCHEDULE:
        return schedule_holds(condition, ctx.now)
    if condition.type == BlockingConditionType.DAILY_USAGE_LIMIT:
        return usage_limit_holds(condition, ctx.usage_today)
    # custom conditions carry no predicate of their own; they block for as
    # long as the schema is enforced
    return True


def any_condition_holds(conditions: Iterable[BlockingCondition], ctx: ConditionContext) -> bool:
    return any(condition_holds(c, ctx) for c in conditions)


def is_condition_blocking(schema: Schema, ctx: ConditionContext) -> bool:
    return any_condition_holds(schema.blocking_conditions, ctx)
