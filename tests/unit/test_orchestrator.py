import pytest

from config import FlowSettings
from flow_manager import (
    FALLBACK_CLOSING_NOTE,
    FOLLOW_UP_LIMIT_MESSAGE,
    ActionCode,
    Collaborators,
    InvalidTurnOutput,
    PhaseError,
    Position,
    ReportUnavailable,
    SessionBusy,
    StaleSession,
    TurnOrchestrator,
)

from conftest import ScriptedInterviewer, ScriptedMonitor, assessment


JOB = "Senior frontend engineer working with React and Node.js services."


def _pos(topic: int, question: int) -> Position:
    return Position(topic_index=topic, question_index=question)


def _kinds(orchestrator: TurnOrchestrator) -> list:
    return [event["type"] for event in orchestrator.state.events if "type" in event]


def _orchestrator(plan_payload, *, planner=None, interviewer=None, monitor=None, reporter=None) -> TurnOrchestrator:
    collaborators = Collaborators(
        planner=planner or (lambda _description: plan_payload),
        interviewer=interviewer or ScriptedInterviewer(),
        monitor=monitor or ScriptedMonitor([]),
        reporter=reporter,
    )
    return TurnOrchestrator(collaborators, flow=FlowSettings())


def test_start_delivers_first_planned_question(build_orchestrator) -> None:
    orchestrator, interviewer, _ = build_orchestrator([])
    result = orchestrator.start(JOB)
    assert result.phase == "in_progress"
    assert result.kind == "planned"
    assert result.position == _pos(0, 0)
    assert result.topic_name == "React"
    assert result.text == "How does the virtual DOM work?"
    assert interviewer.requests[0].action is ActionCode.NEXT_QUESTION
    assert interviewer.requests[0].previous_turn_text is None
    assert _kinds(orchestrator)[:3] == ["session.start", "plan.accepted", "turn.delivered"]
    delivered = orchestrator.state.events[2]
    assert delivered["turn_kind"] == "planned"
    assert delivered["action"] == ActionCode.NEXT_QUESTION.label
    assert delivered["position"] == str(_pos(0, 0))


def test_start_requires_job_description(build_orchestrator) -> None:
    orchestrator, _, _ = build_orchestrator([])
    with pytest.raises(ValueError):
        orchestrator.start("   ")
    assert orchestrator.phase == "setup"


def test_answers_rejected_outside_in_progress(build_orchestrator) -> None:
    orchestrator, _, _ = build_orchestrator([ActionCode.END])
    with pytest.raises(PhaseError):
        orchestrator.submit_answer("too early")
    orchestrator.start(JOB)
    with pytest.raises(ValueError):
        orchestrator.submit_answer("   ")
    assert orchestrator.submit_answer("I would like to stop").ended
    with pytest.raises(PhaseError):
        orchestrator.submit_answer("one more thing")


def test_retry_then_advance(build_orchestrator) -> None:
    orchestrator, interviewer, _ = build_orchestrator([ActionCode.CLARIFY, ActionCode.NEXT_QUESTION])
    orchestrator.start(JOB)
    clarify = orchestrator.submit_answer("It is a copy of the DOM.")
    assert clarify.action is ActionCode.CLARIFY
    assert clarify.position == _pos(0, 0)
    assert orchestrator.state.attempts.count_for(_pos(0, 0)) == 1

    advance = orchestrator.submit_answer("It diffs a virtual tree against the previous one.")
    assert advance.action is ActionCode.NEXT_QUESTION
    assert advance.position == _pos(0, 1)
    assert advance.text == "When would you reach for useMemo?"
    assert orchestrator.state.attempts.count_for(_pos(0, 1)) == 0
    assert interviewer.requests[1].previous_answer == "It is a copy of the DOM."


def test_third_retry_escalates_to_next_question(build_orchestrator) -> None:
    orchestrator, _, _ = build_orchestrator([ActionCode.REPEAT, ActionCode.REPEAT, ActionCode.REPEAT])
    orchestrator.start(JOB)
    assert orchestrator.submit_answer("no idea").action is ActionCode.REPEAT
    assert orchestrator.submit_answer("still no idea").action is ActionCode.REPEAT
    escalated = orchestrator.submit_answer("really no idea")
    assert escalated.action is ActionCode.NEXT_QUESTION
    assert escalated.position == _pos(0, 1)
    assert "attempts.escalated" in _kinds(orchestrator)
    assert [entry.action_code for entry in orchestrator.log] == [ActionCode.REPEAT] * 3


def test_escalation_on_last_question_moves_to_next_topic(build_orchestrator) -> None:
    actions = [ActionCode.NEXT_QUESTION, ActionCode.CLARIFY, ActionCode.REPEAT, ActionCode.CLARIFY]
    orchestrator, _, _ = build_orchestrator(actions)
    orchestrator.start(JOB)
    orchestrator.submit_answer("a1")
    orchestrator.submit_answer("a2")
    orchestrator.submit_answer("a3")
    result = orchestrator.submit_answer("a4")
    assert result.action is ActionCode.NEXT_TOPIC
    assert result.position == _pos(1, 0)
    assert result.topic_name == "Node.js"


def test_escalation_on_final_question_ends(build_orchestrator) -> None:
    plan = {"topics": [{"name": "SQL", "questions": ["What is an index?"]}]}
    orchestrator, _, _ = build_orchestrator([ActionCode.REPEAT] * 3, plan=plan)
    orchestrator.start(JOB)
    orchestrator.submit_answer("x")
    orchestrator.submit_answer("y")
    result = orchestrator.submit_answer("z")
    assert result.ended
    assert result.action is ActionCode.END
    assert len(orchestrator.log) == 3


def test_next_topic_is_downgraded_mid_topic(build_orchestrator) -> None:
    orchestrator, _, _ = build_orchestrator([ActionCode.NEXT_TOPIC])
    orchestrator.start(JOB)
    result = orchestrator.submit_answer("Reconciliation compares trees.")
    assert result.action is ActionCode.NEXT_QUESTION
    assert result.position == _pos(0, 1)
    assert "action.downgraded" in _kinds(orchestrator)


def test_follow_up_pauses_and_resumes_planned_question(build_orchestrator) -> None:
    actions = [ActionCode.CLARIFY, ActionCode.END, ActionCode.CLARIFY, ActionCode.REPEAT]
    orchestrator, interviewer, monitor = build_orchestrator(actions, kinds=["planned", "follow-up"])
    orchestrator.start(JOB)

    digression = orchestrator.submit_answer("It is faster.")
    assert digression.kind == "follow-up"
    assert digression.position == _pos(0, 0)
    assert orchestrator.state.follow_up.paused_position == _pos(0, 0)
    assert orchestrator.state.follow_up.paused_attempts == 1
    assert orchestrator.state.follow_up_streak == 1

    resumed = orchestrator.submit_answer("For example a long list re-render.")
    assert resumed.kind == "planned"
    assert resumed.action is ActionCode.NEXT_QUESTION
    assert resumed.position == _pos(0, 0)
    assert resumed.text == "How does the virtual DOM work?"
    assert not resumed.ended
    assert orchestrator.state.follow_up is None
    assert orchestrator.state.attempts.count_for(_pos(0, 0)) == 1

    follow_up_request = monitor.requests[1]
    assert follow_up_request.is_follow_up
    assert follow_up_request.position == _pos(0, 0)
    assert follow_up_request.question_text == digression.text
    assert orchestrator.log[1].turn_kind == "follow-up"
    assert orchestrator.log[1].position == _pos(0, 0)

    assert orchestrator.submit_answer("again").action is ActionCode.CLARIFY
    escalated = orchestrator.submit_answer("and again")
    assert escalated.action is ActionCode.NEXT_QUESTION
    assert escalated.position == _pos(0, 1)
    assert [kind for kind in _kinds(orchestrator) if kind.startswith("follow_up")] == [
        "follow_up.enter",
        "follow_up.exit",
    ]


def test_fourth_consecutive_follow_up_is_overridden(build_orchestrator) -> None:
    kinds = ["planned", "follow-up", "follow-up", "follow-up", "follow-up", "planned"]
    actions = [ActionCode.CLARIFY, ActionCode.NEXT_QUESTION, ActionCode.NEXT_QUESTION, ActionCode.NEXT_QUESTION]
    orchestrator, interviewer, _ = build_orchestrator(actions, kinds=kinds)
    orchestrator.start(JOB)

    streaks = []
    for answer in ("a1", "a2", "a3"):
        result = orchestrator.submit_answer(answer)
        assert result.kind == "follow-up"
        streaks.append(orchestrator.state.follow_up_streak)
    assert streaks == [1, 2, 3]

    result = orchestrator.submit_answer("a4")
    assert result.kind == "planned"
    assert result.position == _pos(0, 0)
    assert result.system_messages == [FOLLOW_UP_LIMIT_MESSAGE]
    assert orchestrator.state.follow_up_streak == 0
    assert orchestrator.state.follow_up is None
    assert interviewer.requests[4].allow_follow_up is False
    assert interviewer.requests[5].allow_follow_up is False
    assert interviewer.requests[5].question_text == "How does the virtual DOM work?"
    assert interviewer.requests[5].action is ActionCode.NEXT_QUESTION
    assert orchestrator.state.position == _pos(0, 0)
    assert "follow_up.override" in _kinds(orchestrator)
    assert [entry.turn_kind for entry in orchestrator.log] == ["planned", "follow-up", "follow-up", "follow-up"]
    system_lines = [turn.content for turn in orchestrator.state.transcript if turn.speaker == "system"]
    assert system_lines == [FOLLOW_UP_LIMIT_MESSAGE]


def test_override_coerces_repeated_follow_up_to_planned(build_orchestrator) -> None:
    flow = FlowSettings(max_follow_up_streak=1)
    kinds = ["planned", "follow-up", "follow-up", "follow-up"]
    orchestrator, interviewer, _ = build_orchestrator(
        [ActionCode.REPEAT, ActionCode.NEXT_QUESTION], kinds=kinds, flow=flow
    )
    orchestrator.start(JOB)
    assert orchestrator.submit_answer("a1").kind == "follow-up"
    result = orchestrator.submit_answer("a2")
    assert result.kind == "planned"
    assert result.system_messages == [FOLLOW_UP_LIMIT_MESSAGE]
    assert result.text.startswith("Can you give an example")
    assert orchestrator.state.follow_up is None
    assert len(interviewer.requests) == 4


def test_discussion_hint_reaches_next_turn_only(build_orchestrator) -> None:
    orchestrator, interviewer, monitor = build_orchestrator([ActionCode.NEXT_QUESTION, ActionCode.NEXT_QUESTION])
    monitor.discussion_points = ["key stability in lists"]
    orchestrator.start(JOB)
    orchestrator.submit_answer("answer one")
    orchestrator.submit_answer("answer two")
    assert interviewer.requests[1].discussion_hint == "key stability in lists"
    assert interviewer.requests[1].previous_turn_text == "How does the virtual DOM work?"
    assert interviewer.requests[2].discussion_hint is None
    assert orchestrator.log[0].discussion_point == "key stability in lists"


def test_history_covers_attempts_on_the_current_question(build_orchestrator) -> None:
    actions = [ActionCode.REPEAT, ActionCode.NEXT_QUESTION, ActionCode.NEXT_QUESTION]
    orchestrator, _, monitor = build_orchestrator(actions)
    orchestrator.start(JOB)
    for answer in ("first", "second", "third"):
        orchestrator.submit_answer(answer)
    assert [len(request.history) for request in monitor.requests] == [1, 2, 1]
    assert monitor.requests[1].history[0].answer_text == "first"
    assert monitor.requests[2].position == _pos(0, 1)


def test_code_snippet_is_merged_into_answer(build_orchestrator) -> None:
    orchestrator, _, monitor = build_orchestrator([ActionCode.NEXT_QUESTION])
    orchestrator.start(JOB)
    orchestrator.submit_answer("Here is how", code="const memo = useMemo(fn, [a]);")
    answer = monitor.requests[0].answer_text
    assert answer.startswith("Here is how")
    assert "**Code Snippet Provided:**" in answer
    assert orchestrator.state.transcript[-2].speaker == "candidate"


def test_invalid_assessment_discards_session(plan_payload) -> None:
    interviewer = ScriptedInterviewer()
    orchestrator = _orchestrator(
        plan_payload,
        interviewer=interviewer,
        monitor=lambda request: assessment(9),
    )
    orchestrator.start(JOB)
    result = orchestrator.submit_answer("anything")
    assert result.ended
    assert result.error
    assert result.text == orchestrator.flow.closing_statement
    assert result.system_messages[0].startswith("Error:")
    assert len(orchestrator.log) == 0
    assert len(interviewer.requests) == 1
    assert "session.discarded" in _kinds(orchestrator)


def test_out_of_range_metrics_discard_session(plan_payload) -> None:
    orchestrator = _orchestrator(plan_payload, monitor=lambda request: assessment(3, score=1.5))
    orchestrator.start(JOB)
    assert orchestrator.submit_answer("anything").ended


def test_monitor_failure_ends_session(plan_payload) -> None:
    def monitor(request):
        raise TimeoutError("timed out")

    orchestrator = _orchestrator(plan_payload, monitor=monitor)
    orchestrator.start(JOB)
    result = orchestrator.submit_answer("anything")
    assert result.ended
    assert result.error == "monitor: timed out"
    assert orchestrator.state.error == "monitor: timed out"


def test_planner_failure_ends_session(plan_payload) -> None:
    def planner(description):
        raise ConnectionError("connection refused")

    orchestrator = _orchestrator(plan_payload, planner=planner)
    result = orchestrator.start(JOB)
    assert result.ended
    assert result.text == ""
    assert result.position is None
    assert result.error == "planner: connection refused"


def test_rejected_plan_returns_to_setup(plan_payload) -> None:
    plans = [{"topics": []}, plan_payload]
    interviewer = ScriptedInterviewer()
    orchestrator = _orchestrator(plan_payload, planner=lambda description: plans.pop(0), interviewer=interviewer)
    rejected = orchestrator.start(JOB)
    assert rejected.phase == "setup"
    assert rejected.error
    assert orchestrator.state.plan is None
    assert interviewer.requests == []

    accepted = orchestrator.start(JOB)
    assert accepted.phase == "in_progress"
    assert accepted.position == _pos(0, 0)


def test_malformed_turn_output_is_recovered(plan_payload) -> None:
    replies = [{"type": "aside", "text": "Welcome! Tell me about the virtual DOM."}]
    orchestrator = _orchestrator(plan_payload, interviewer=lambda request: replies.pop(0))
    result = orchestrator.start(JOB)
    assert result.kind == "planned"
    assert result.text == "Welcome! Tell me about the virtual DOM."
    assert result.phase == "in_progress"


def test_unparseable_turn_output_yields_empty_planned_turn(plan_payload) -> None:
    def interviewer(request):
        raise InvalidTurnOutput("reply failed validation")

    orchestrator = _orchestrator(plan_payload, interviewer=interviewer)
    result = orchestrator.start(JOB)
    assert result.phase == "in_progress"
    assert result.kind == "planned"
    assert result.text == ""
    assert orchestrator.state.last_turn_text is None


def test_interviewer_failure_ends_session(plan_payload) -> None:
    def interviewer(request):
        raise RuntimeError("HTTP 503")

    orchestrator = _orchestrator(plan_payload, interviewer=interviewer)
    result = orchestrator.start(JOB)
    assert result.ended
    assert result.error == "interviewer: HTTP 503"


def test_empty_closing_gets_fallback(build_orchestrator) -> None:
    orchestrator, _, _ = build_orchestrator([ActionCode.END], closing="")
    orchestrator.start(JOB)
    result = orchestrator.submit_answer("please stop")
    assert result.ended
    assert result.text == orchestrator.flow.closing_statement
    assert result.system_messages == [FALLBACK_CLOSING_NOTE]
    assert orchestrator.state.transcript[-1].content == orchestrator.flow.closing_statement


def test_concurrent_answer_is_rejected(plan_payload) -> None:
    holder = {}
    seen = []

    def monitor(request):
        try:
            holder["orchestrator"].submit_answer("second answer")
        except SessionBusy as exc:
            seen.append(exc)
        return assessment(ActionCode.NEXT_QUESTION)

    orchestrator = _orchestrator(plan_payload, monitor=monitor)
    holder["orchestrator"] = orchestrator
    orchestrator.start(JOB)
    result = orchestrator.submit_answer("first answer")
    assert len(seen) == 1
    assert result.position == _pos(0, 1)
    assert len(orchestrator.log) == 1
    assert orchestrator.state.busy is False


def test_result_after_teardown_is_discarded(plan_payload) -> None:
    holder = {}

    def monitor(request):
        holder["orchestrator"].teardown()
        return assessment(ActionCode.NEXT_QUESTION)

    orchestrator = _orchestrator(plan_payload, monitor=monitor)
    holder["orchestrator"] = orchestrator
    orchestrator.start(JOB)
    session_id = orchestrator.session_id
    with pytest.raises(StaleSession):
        orchestrator.submit_answer("late answer")
    assert orchestrator.session_id == session_id
    assert orchestrator.phase == "setup"
    assert len(orchestrator.log) == 0


def test_teardown_resets_a_live_session(build_orchestrator) -> None:
    orchestrator, _, _ = build_orchestrator([ActionCode.NEXT_QUESTION])
    orchestrator.start(JOB)
    orchestrator.submit_answer("It diffs a virtual tree.")
    previous = orchestrator.state
    session_id = orchestrator.session_id

    orchestrator.teardown()

    assert orchestrator.session_id == session_id
    assert orchestrator.phase == "setup"
    assert len(orchestrator.log) == 0
    assert orchestrator.state.generation > previous.generation
    closing = previous.events[-1]
    assert closing["type"] == "session.teardown"
    assert closing["entries"] == 1
    with pytest.raises(PhaseError):
        orchestrator.submit_answer("after teardown")


def test_teardown_before_start(build_orchestrator) -> None:
    orchestrator, _, _ = build_orchestrator([])
    orchestrator.teardown()
    assert orchestrator.phase == "setup"
    assert orchestrator.start(JOB).position == _pos(0, 0)


def test_restart_supersedes_inflight_step(plan_payload) -> None:
    holder = {}
    calls = []

    def monitor(request):
        calls.append(request)
        if len(calls) == 1:
            holder["orchestrator"].start("Backend engineer")
        return assessment(ActionCode.NEXT_QUESTION)

    orchestrator = _orchestrator(plan_payload, monitor=monitor)
    holder["orchestrator"] = orchestrator
    orchestrator.start(JOB)
    with pytest.raises(StaleSession):
        orchestrator.submit_answer("answer for the old session")
    assert orchestrator.phase == "in_progress"
    assert orchestrator.state.job_description == "Backend engineer"
    assert orchestrator.state.position == _pos(0, 0)
    assert len(orchestrator.log) == 0


def test_report_uses_session_log(plan_payload) -> None:
    received = []

    def reporter(request):
        received.append(request)
        return " Strong fundamentals. "

    orchestrator = _orchestrator(
        plan_payload,
        monitor=ScriptedMonitor([ActionCode.NEXT_QUESTION]),
        reporter=reporter,
    )
    with pytest.raises(ReportUnavailable):
        orchestrator.report()
    orchestrator.start(JOB)
    orchestrator.submit_answer("answer")
    assert orchestrator.report() == "Strong fundamentals."
    assert orchestrator.state.narrative == "Strong fundamentals."
    assert len(received[0].entries) == 1
    assert received[0].plan.topics[0].name == "React"


def test_report_requires_writer(build_orchestrator) -> None:
    orchestrator, _, _ = build_orchestrator([ActionCode.NEXT_QUESTION])
    orchestrator.start(JOB)
    orchestrator.submit_answer("answer")
    with pytest.raises(ReportUnavailable):
        orchestrator.report()
