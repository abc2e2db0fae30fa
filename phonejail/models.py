# phonejail/models.py
from datetime import datetime, time, timezone
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from phonejail.results import ValidationError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


class SchemaType(str, Enum):
    QUICK_BLOCK = "Quick Block"
    HEALTHY_WORK_HABITS = "Healthy Work Habits"
    STRESS_FREE_WEEKENDS = "Stress-free Weekends"
    STRESS_FREE_MORNINGS = "Stress-free Mornings"
    STRESS_FREE_EVENINGS = "Stress-free Evenings"
    THIRTY_MINUTE_WATCHLIST = "30 Minute Watchlist"
    HIGH_CONTROL = "High Control"
    SIRI_POWERED = "Siri-Powered Schema"
    FOCUS_MODE = "Focus Mode"
    STUDY_MODE = "Study Mode"
    DIGITAL_DETOX = "Digital Detox"
    CUSTOM = "Custom"

    @property
    def description(self) -> str:
        return _SCHEMA_TYPE_DESCRIPTIONS[self]


_SCHEMA_TYPE_DESCRIPTIONS = {
    SchemaType.QUICK_BLOCK: "Blocks content indefinitely",
    SchemaType.HEALTHY_WORK_HABITS: "Blocks content outside working hours",
    SchemaType.STRESS_FREE_WEEKENDS: "Blocks content on weekends",
    SchemaType.STRESS_FREE_MORNINGS: "Blocks content every morning until 10am",
    SchemaType.STRESS_FREE_EVENINGS: "Blocks content every evening from 5pm",
    SchemaType.THIRTY_MINUTE_WATCHLIST: "Prevents content from being used for more than 30 minutes",
    SchemaType.HIGH_CONTROL: "Blocks content using both a schedule and a daily usage limit",
    SchemaType.SIRI_POWERED: "A schema with no native conditions that relies completely on its integration with the Shortcuts app",
    SchemaType.FOCUS_MODE: "Blocks distracting apps during focus periods",
    SchemaType.STUDY_MODE: "Optimized for study sessions with minimal distractions",
    SchemaType.DIGITAL_DETOX: "Complete digital cleanse for mental wellbeing",
    SchemaType.CUSTOM: "Create your own blocking rules",
}


class SchemaStatus(str, Enum):
    INACTIVE = "inactive"
    ACTIVE = "active"
    PAUSED = "paused"
    STRICT_MODE = "strictMode"
    SCHEDULED = "scheduled"

    @property
    def is_active(self) -> bool:
        return self in (SchemaStatus.ACTIVE, SchemaStatus.STRICT_MODE)


class BlockingConditionType(str, Enum):
    SCHEDULE = "schedule"
    DAILY_USAGE_LIMIT = "dailyUsageLimit"
    CUSTOM = "custom"


class Weekday(str, Enum):
    # declared in datetime.weekday() order
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def from_date(cls, value: datetime) -> "Weekday":
        return list(cls)[value.weekday()]

    def next_day(self) -> "Weekday":
        days = list(Weekday)
        return days[(days.index(self) + 1) % len(days)]

    @property
    def short_name(self) -> str:
        return self.value[:3].capitalize()


WEEKDAYS = frozenset({Weekday.MONDAY, Weekday.TUESDAY, Weekday.WEDNESDAY, Weekday.THURSDAY, Weekday.FRIDAY})
WEEKEND = frozenset({Weekday.SATURDAY, Weekday.SUNDAY})
EVERY_DAY = frozenset(Weekday)


class BlockingCondition(BaseModel):
    """
    One activation condition of a schema.

    Only the fields that belong to ``type`` carry meaning:
    - schedule: schedule_start, schedule_end, repeats, active_days
    - dailyUsageLimit: usage_limit (seconds)
    - custom: custom_title, custom_description
    """

    id: str = Field(default_factory=_new_id)
    type: BlockingConditionType

    schedule_start: Optional[time] = None
    schedule_end: Optional[time] = None
    repeats: bool = True
    active_days: frozenset[Weekday] = EVERY_DAY

    usage_limit: Optional[float] = None

    custom_title: Optional[str] = None
    custom_description: Optional[str] = None

    @classmethod
    def schedule(
        cls,
        start: time,
        end: time,
        active_days=EVERY_DAY,
        *,
        repeats: bool = True,
    ) -> "BlockingCondition":
        return cls(
            type=BlockingConditionType.SCHEDULE,
            schedule_start=start,
            schedule_end=end,
            active_days=frozenset(active_days),
            repeats=repeats,
        )

    @classmethod
    def daily_usage_limit(cls, seconds: float) -> "BlockingCondition":
        return cls(type=BlockingConditionType.DAILY_USAGE_LIMIT, usage_limit=seconds)

    @classmethod
    def custom(cls, title: str | None = None, description: str | None = None) -> "BlockingCondition":
        return cls(
            type=BlockingConditionType.CUSTOM,
            custom_title=title,
            custom_description=description,
        )

    def check_fields(self) -> None:
        """Raise ValidationError if the fields required by ``type`` are missing."""
        if self.type == BlockingConditionType.SCHEDULE:
            if self.schedule_start is None or self.schedule_end is None:
                raise ValidationError("A schedule condition needs a start and an end time")
            if not self.active_days:
                raise ValidationError("A schedule condition needs at least one active day")
        elif self.type == BlockingConditionType.DAILY_USAGE_LIMIT:
            if self.usage_limit is None or self.usage_limit <= 0:
                raise ValidationError("A daily usage limit must be greater than zero")


class ContentSelection(BaseModel):
    """Opaque content references: app tokens, web domains and category tokens."""

    apps: frozenset[str] = frozenset()
    websites: frozenset[str] = frozenset()
    categories: frozenset[str] = frozenset()

    @property
    def is_empty(self) -> bool:
        return not (self.apps or self.websites or self.categories)

    @property
    def total_apps_and_websites(self) -> int:
        return len(self.apps) + len(self.websites)


class Schema(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    type: SchemaType = SchemaType.CUSTOM
    status: SchemaStatus = SchemaStatus.INACTIVE

    selected_content: ContentSelection = Field(default_factory=ContentSelection)
    blocking_conditions: List[BlockingCondition] = Field(default_factory=list)

    created_at: datetime = Field(default_factory=_utcnow)
    last_modified: datetime = Field(default_factory=_utcnow)

    @property
    def is_active(self) -> bool:
        return self.status.is_active

    @property
    def is_custom(self) -> bool:
        return self.type == SchemaType.CUSTOM

    @property
    def description(self) -> str:
        return self.type.description

    @property
    def has_time_conditions(self) -> bool:
        return any(c.type == BlockingConditionType.SCHEDULE for c in self.blocking_conditions)

    @property
    def has_usage_limits(self) -> bool:
        return any(c.type == BlockingConditionType.DAILY_USAGE_LIMIT for c in self.blocking_conditions)

    def touched(self) -> "Schema":
        return self.model_copy(update={"last_modified": _utcnow()})

    def with_status(self, status: SchemaStatus) -> "Schema":
        return self.model_copy(update={"status": status, "last_modified": _utcnow()})


def starter_schemas() -> list[Schema]:
    """Built-in templates the user can copy into their own schemas."""
    return [
        Schema(
            name="Quick Block",
            type=SchemaType.QUICK_BLOCK,
            blocking_conditions=[BlockingCondition.custom()],
        ),
        Schema(
            name="Healthy Work Habits",
            type=SchemaType.HEALTHY_WORK_HABITS,
            blocking_conditions=[BlockingCondition.schedule(time(9, 0), time(17, 0), WEEKDAYS)],
        ),
        Schema(
            name="Stress-free Weekends",
            type=SchemaType.STRESS_FREE_WEEKENDS,
            blocking_conditions=[BlockingCondition.schedule(time(0, 0), time(23, 59), WEEKEND)],
        ),
        Schema(
            name="Stress-free Mornings",
            type=SchemaType.STRESS_FREE_MORNINGS,
            blocking_conditions=[BlockingCondition.schedule(time(6, 0), time(10, 0), EVERY_DAY)],
        ),
        Schema(
            name="Stress-free Evenings",
            type=SchemaType.STRESS_FREE_EVENINGS,
            blocking_conditions=[BlockingCondition.schedule(time(17, 0), time(23, 59), EVERY_DAY)],
        ),
        Schema(
            name="30 Minute Watchlist",
            type=SchemaType.THIRTY_MINUTE_WATCHLIST,
            blocking_conditions=[BlockingCondition.daily_usage_limit(30 * 60)],
        ),
        Schema(
            name="High Control",
            type=SchemaType.HIGH_CONTROL,
            blocking_conditions=[
                BlockingCondition.schedule(time(9, 0), time(17, 0), WEEKDAYS),
                BlockingCondition.daily_usage_limit(60 * 60),
            ],
        ),
        Schema(
            name="Siri-Powered Schema",
            type=SchemaType.SIRI_POWERED,
            blocking_conditions=[BlockingCondition.custom()],
        ),
    ]
