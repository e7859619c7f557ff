from __future__ import annotations  # Plan-consistent navigation for requested actions

from typing import Optional

from .models import ActionCode, Plan, Position, Resolution


def resolve(plan: Optional[Plan], position: Position, requested: ActionCode) -> Resolution:  # Map a requested action to the effective move
    """Resolve ``requested`` at ``position`` against the plan shape.

    ``position`` is the planned question that was just answered. Rules are
    applied in priority order: ending, topic-skip downgrade, exhausted
    topic, then the requested action as given. Positions produced by the
    last rule are settled so a resolution never points past a topic.
    """

    requested = ActionCode(requested)
    if requested is ActionCode.END or plan is None:
        return _end(position)
    topic = plan.topic(position.topic_index)
    if topic is None:
        return _end(position)

    remaining = len(topic.questions)
    if requested is ActionCode.NEXT_TOPIC and position.question_index + 1 < remaining:
        requested = ActionCode.NEXT_QUESTION

    if position.question_index >= remaining:
        return _advance_topic(plan, position)

    if requested.is_retry:
        return Resolution(effective_action=requested, next_position=position)
    if requested is ActionCode.NEXT_QUESTION:
        target = Position(topic_index=position.topic_index, question_index=position.question_index + 1)
    else:
        target = Position(topic_index=position.topic_index + 1, question_index=0)
    resolution = settle(plan, target, requested)
    if resolution.is_terminal:
        return _end(position)  # End stays on the answered question
    return resolution


def settle(plan: Optional[Plan], position: Position, action: ActionCode) -> Resolution:  # Roll an exhausted target over to the next topic or the end
    if plan is None:
        return _end(position)
    topic = plan.topic(position.topic_index)
    if topic is None:
        return _end(position)
    if position.question_index >= len(topic.questions):
        return _advance_topic(plan, position)
    return Resolution(effective_action=ActionCode(action), next_position=position)


def _advance_topic(plan: Plan, position: Position) -> Resolution:
    following = position.topic_index + 1
    if plan.topic(following) is None:
        return _end(position)
    return Resolution(
        effective_action=ActionCode.NEXT_TOPIC,
        next_position=Position(topic_index=following, question_index=0),
    )


def _end(position: Position) -> Resolution:
    return Resolution(effective_action=ActionCode.END, next_position=position, is_terminal=True)


__all__ = ["resolve", "settle"]
