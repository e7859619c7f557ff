import pytest

from flow_manager import ActionCode, FollowUpLimitReached, Position
from flow_manager import follow_up


def test_enter_records_paused_point_and_streak() -> None:
    paused = Position(topic_index=0, question_index=1)
    state = follow_up.enter(paused, 2, ActionCode.CLARIFY, streak=1, question_text="Any example?")
    assert state.paused_position == paused
    assert state.paused_attempts == 2
    assert state.resuming_action is ActionCode.CLARIFY
    assert state.streak_count == 2
    assert state.question_text == "Any example?"


def test_enter_refuses_at_the_streak_ceiling() -> None:
    paused = Position()
    assert follow_up.can_enter(2, 3)
    assert not follow_up.can_enter(3, 3)
    with pytest.raises(FollowUpLimitReached):
        follow_up.enter(paused, 0, ActionCode.NEXT_QUESTION, streak=3, ceiling=3)


def test_exit_resumes_with_forward_framing() -> None:
    paused = Position(topic_index=1, question_index=0)
    state = follow_up.enter(paused, 1, ActionCode.REPEAT)
    position, action = follow_up.exit(state)
    assert position == paused
    assert action is ActionCode.NEXT_QUESTION


def test_zero_ceiling_disables_follow_ups() -> None:
    assert not follow_up.can_enter(0, 0)
