# phonejail/schema_draft.py
from typing import List

from phonejail.models import BlockingCondition, ContentSelection, Schema, SchemaType
from phonejail.results import ValidationError

NAME_STEP = 1
CONTENT_STEP = 2
CONDITIONS_STEP = 3
LAST_STEP = CONDITIONS_STEP


class SchemaDraft:
    """
    A custom schema being put together one step at a time:
    1 name, 2 content, 3 conditions.

    ``next_step`` refuses to leave a step whose input is incomplete;
    ``build`` re-checks every step before producing the schema.
    """

    def __init__(self, name: str = "", content: ContentSelection | None = None):
        self.step = NAME_STEP
        self.name = name
        self.content = content or ContentSelection()
        self.conditions: List[BlockingCondition] = []

    def set_content(self, apps=(), websites=(), categories=()) -> None:
        self.content = ContentSelection(
            apps=frozenset(apps),
            websites=frozenset(websites),
            categories=frozenset(categories),
        )

    def add_condition(self, condition: BlockingCondition) -> None:
        self.conditions.append(condition)

    def remove_condition(self, index: int) -> None:
        # out-of-range indexes are ignored
        if 0 <= index < len(self.conditions):
            del self.conditions[index]

    def validate_step(self, step: int) -> None:
        if step == NAME_STEP:
            if not self.name.strip():
                raise ValidationError("Please enter a schema name", step=step)
        elif step == CONTENT_STEP:
            if self.content.is_empty:
                raise ValidationError("Select at least one app, website or category to block", step=step)
        elif step == CONDITIONS_STEP:
            if not self.conditions:
                raise ValidationError("Add at least one blocking condition", step=step)
            for condition in self.conditions:
                try:
                    condition.check_fields()
                except ValidationError as e:
                    raise ValidationError(str(e), step=step) from e
        else:
            raise ValueError(f"Unknown creation step: {step}")

    def can_proceed(self) -> bool:
        try:
            self.validate_step(self.step)
        except ValidationError:
            return False
        return True

    def next_step(self) -> int:
        self.validate_step(self.step)
        if self.step < LAST_STEP:
            self.step += 1
        return self.step

    def previous_step(self) -> int:
        if self.step > NAME_STEP:
            self.step -= 1
        return self.step

    @property
    def is_last_step(self) -> bool:
        return self.step == LAST_STEP

    def build(self) -> Schema:
        for step in range(NAME_STEP, LAST_STEP + 1):
            self.validate_step(step)
        return Schema(
            name=self.name.strip(),
            type=SchemaType.CUSTOM,
            selected_content=self.content,
            blocking_conditions=list(self.conditions),
        )
