import pytest

from app.core.exceptions import DataIntegrityError, ValidationFailed
from app.services.program_structure import ProgramStructure
from app.services.progression import (
    Position,
    advance_position,
    annotate_day,
    recommended_weight,
    validate_reset_target,
)
from tests.helpers import make_blocks


def test_advance_one_week_within_block():
    outcome = advance_position([2, 3], Position(0, 0))
    assert outcome.position == Position(0, 1)
    assert outcome.program_restarted is False


def test_advance_carries_into_next_block():
    outcome = advance_position([2, 3], Position(0, 1))
    assert outcome.position == Position(1, 0)
    assert outcome.program_restarted is False


def test_advance_several_weeks_uses_each_block_length():
    outcome = advance_position([2, 3, 4], Position(0, 1), week_increment=5)
    # 1 left in block 0, 3 in block 1, then one more lands on block 2 week 1
    assert outcome.position == Position(2, 1)


def test_last_week_of_program_is_not_a_restart():
    outcome = advance_position([2, 3], Position(1, 1))
    assert outcome.position == Position(1, 2)
    assert outcome.program_restarted is False


def test_running_off_the_end_restarts_program():
    outcome = advance_position([2, 3], Position(1, 2))
    assert outcome.position == Position(0, 0)
    assert outcome.program_restarted is True


def test_block_increment_keeps_week():
    outcome = advance_position([2, 3], Position(0, 1), block_increment=1, week_increment=0)
    assert outcome.position == Position(1, 1)


def test_block_increment_past_end_restarts():
    outcome = advance_position([2, 3], Position(1, 0), block_increment=1, week_increment=0)
    assert outcome.position == Position(0, 0)
    assert outcome.program_restarted is True


def test_zero_increment_is_a_no_op():
    outcome = advance_position([2, 3], Position(1, 2), block_increment=0, week_increment=0)
    assert outcome.position == Position(1, 2)
    assert outcome.program_restarted is False


@pytest.mark.parametrize("first,second", [(1, 2), (2, 1), (3, 0)])
def test_advancing_in_steps_matches_one_jump_inside_program(first, second):
    counts = [2, 3, 4]
    start = Position(0, 0)
    stepped = advance_position(counts, advance_position(counts, start, week_increment=first).position,
                               week_increment=second)
    jumped = advance_position(counts, start, week_increment=first + second)
    assert stepped.position == jumped.position


def test_block_without_weeks_is_integrity_error():
    with pytest.raises(DataIntegrityError) as exc:
        advance_position([2, 0, 3], Position(0, 1))
    assert "Block 1 has no weeks" in exc.value.message


def test_reset_target_within_bounds():
    assert validate_reset_target([2, 3], 1, 2) == Position(1, 2)


@pytest.mark.parametrize(
    "block,week,message",
    [
        (2, 0, "Invalid target block: 2. Program has 2 blocks."),
        (-1, 0, "Invalid target block: -1. Program has 2 blocks."),
        (0, 2, "Invalid target week: 2. Block 0 has 2 weeks."),
        (1, -1, "Invalid target week: -1. Block 1 has 3 weeks."),
    ],
)
def test_reset_target_out_of_bounds(block, week, message):
    with pytest.raises(ValidationFailed) as exc:
        validate_reset_target([2, 3], block, week)
    assert exc.value.message == message


def test_recommended_weight_treats_large_values_as_percent():
    assert recommended_weight(200, 80) == 160
    assert recommended_weight(200, 0.8) == 160
    assert recommended_weight(100, 1) == 100
    assert recommended_weight(150, 72.5) == 108.75


def test_recommended_weight_needs_both_inputs():
    assert recommended_weight(None, 80) is None
    assert recommended_weight(150, None) is None


def test_annotate_day_adds_weight_only_with_benchmark():
    structure = ProgramStructure.load(make_blocks([1], benchmark_template_id="tmpl-1"))
    day = structure.day_at(0, 0, 0)

    annotated = annotate_day(day, {"tmpl-1": 100.0})
    squat = next(a for a in annotated if a["id"] == "squat")
    row = next(a for a in annotated if a["id"] == "row")
    assert squat["recommended_weight"] == 80.0
    assert "recommended_weight" not in row

    bare = annotate_day(day, {})
    assert all("recommended_weight" not in a for a in bare)


def test_structure_bounds_are_checked():
    structure = ProgramStructure.load(make_blocks([2, 3]))
    assert structure.week_counts == [2, 3]
    with pytest.raises(DataIntegrityError):
        structure.block_at(2)
    with pytest.raises(DataIntegrityError):
        structure.week_at(0, 2)
    with pytest.raises(DataIntegrityError):
        structure.day_at(1, 2, 1)


def test_corrupt_stored_structure_is_integrity_error():
    with pytest.raises(DataIntegrityError):
        ProgramStructure.load([{"name": "Empty", "weeks": []}])
