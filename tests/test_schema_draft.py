"""
SCHEMA CREATION FLOW TESTS
"""
from datetime import time

import pytest

from phonejail.models import BlockingCondition, BlockingConditionType, SchemaType
from phonejail.results import ValidationError
from phonejail.schema_draft import SchemaDraft


class TestSteps:

    def test_empty_name_blocks_step_one(self):
        draft = SchemaDraft(name="   ")
        assert draft.can_proceed() is False
        with pytest.raises(ValidationError) as exc:
            draft.next_step()
        assert exc.value.step == 1
        assert draft.step == 1

    def test_no_content_blocks_step_two(self):
        draft = SchemaDraft(name="Focus")
        assert draft.next_step() == 2
        with pytest.raises(ValidationError):
            draft.next_step()

    def test_no_conditions_blocks_step_three(self):
        draft = SchemaDraft(name="Focus")
        draft.set_content(apps=["a"])
        draft.next_step()
        draft.next_step()
        assert draft.is_last_step
        with pytest.raises(ValidationError):
            draft.next_step()

    def test_ill_formed_condition_rejected(self):
        draft = SchemaDraft(name="Focus")
        draft.set_content(websites=["w"])
        draft.next_step()
        draft.next_step()
        draft.add_condition(BlockingCondition(type=BlockingConditionType.DAILY_USAGE_LIMIT, usage_limit=0))
        with pytest.raises(ValidationError) as exc:
            draft.next_step()
        assert exc.value.step == 3

    def test_schedule_needs_active_days(self):
        condition = BlockingCondition.schedule(time(9), time(10), active_days=[])
        with pytest.raises(ValidationError):
            condition.check_fields()

    def test_previous_step_never_fails(self):
        draft = SchemaDraft()
        assert draft.previous_step() == 1
        draft.name = "Focus"
        draft.next_step()
        assert draft.previous_step() == 1

    def test_remove_condition_ignores_bad_index(self):
        draft = SchemaDraft(name="Focus")
        draft.add_condition(BlockingCondition.custom())
        draft.remove_condition(5)
        assert len(draft.conditions) == 1
        draft.remove_condition(0)
        assert draft.conditions == []


class TestBuild:

    def test_build_produces_custom_schema(self):
        draft = SchemaDraft(name="  Evenings ")
        draft.set_content(apps=["a"], categories=["games"])
        draft.add_condition(BlockingCondition.schedule(time(18), time(23)))

        schema = draft.build()
        assert schema.name == "Evenings"
        assert schema.type == SchemaType.CUSTOM
        assert schema.selected_content.categories == frozenset({"games"})
        assert len(schema.blocking_conditions) == 1

    def test_build_revalidates_all_steps(self):
        draft = SchemaDraft(name="Evenings")
        draft.add_condition(BlockingCondition.custom())
        with pytest.raises(ValidationError) as exc:
            draft.build()
        assert exc.value.step == 2
