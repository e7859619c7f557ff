from __future__ import annotations  # Turn orchestrator driving one interview session

import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator, List, Optional, Tuple

from config import FlowSettings
from observability import log_event, span

from . import attempts as governor
from . import follow_up as digressions
from .contracts import (
    AssessmentRequest,
    HistoryItem,
    ReportRequest,
    TurnOutput,
    TurnRequest,
    coerce_turn,
    parse_assessment,
)
from .errors import (
    CollaboratorUnavailable,
    FlowError,
    InvalidAssessment,
    InvalidPlan,
    InvalidTurnOutput,
    PhaseError,
    ReportUnavailable,
    SessionBusy,
    StaleSession,
)
from .models import ActionCode, AssessmentRecord, AttemptState, FollowUpState, Position, TurnResult
from .phases import accepts_answers, next_phase
from .plan import accept_plan
from .resolver import resolve, settle
from .state import Collaborators, SessionState


logger = logging.getLogger(__name__)

FOLLOW_UP_LIMIT_MESSAGE = "(Max follow-up limit reached. Returning to planned question.)"  # Shown on forced override
FALLBACK_CLOSING_NOTE = "(System: Added fallback closing)"  # Shown when the closing turn came back empty
CLOSING_TOPIC = "Interview Conclusion"
CLOSING_PROMPT = "Provide closing statement."


def compose_answer(answer: Optional[str], code: Optional[str] = None) -> str:  # Merge spoken answer and code snippet
    text = (answer or "").strip()
    snippet = (code or "").strip()
    if snippet:
        text = f"{text}\n\n**Code Snippet Provided:**\n```\n{snippet}\n```".strip()
    return text


class TurnOrchestrator:  # Owns SessionState and applies resolver, governor and follow-up stack
    def __init__(
        self,
        collaborators: Collaborators,
        *,
        flow: Optional[FlowSettings] = None,
        session_id: Optional[str] = None,
    ) -> None:
        self._deps = collaborators
        self._flow = flow or FlowSettings.from_settings()
        self._guard = threading.Lock()
        self._generation = 0
        self._state = SessionState() if session_id is None else SessionState(session_id=session_id)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session_id(self) -> str:
        return self._state.session_id

    @property
    def phase(self) -> str:
        return self._state.phase

    @property
    def log(self) -> Tuple[AssessmentRecord, ...]:
        return self._state.log.entries

    @property
    def flow(self) -> FlowSettings:
        return self._flow

    def start(self, job_description: str) -> TurnResult:  # Plan the interview and deliver the first question
        description = (job_description or "").strip()
        if not description:
            raise ValueError("Job description is missing")
        with self._guard:
            self._generation += 1
            previous = self._state
            state = SessionState(
                session_id=previous.session_id,
                generation=self._generation,
                job_description=description,
            )
            self._state = state
        with self._claim(state):
            state.phase = next_phase(state.phase, "start")
            self._event(state, "session.start", superseded=previous.generation if previous.phase != "setup" else None)
            try:
                with span(state, "planner"):
                    raw_plan = self._call(state, "planner", self._deps.planner, description)
                plan = accept_plan(raw_plan)
            except InvalidPlan as exc:
                state.phase = next_phase(state.phase, "plan_rejected")
                state.error = str(exc)
                state.say("system", f"Error: {exc}")
                self._event(state, "plan.rejected", reason=str(exc))
                return self._result(state, error=str(exc))
            except CollaboratorUnavailable as exc:
                return self._discard(state, exc)
            state.plan = plan
            state.phase = next_phase(state.phase, "plan_accepted")
            self._event(
                state,
                "plan.accepted",
                topics=[topic.name for topic in plan.topics],
                questions=sum(len(topic.questions) for topic in plan.topics),
            )
            state.phase = next_phase(state.phase, "begin")
            first = Position()
            state.position = first
            state.attempts = AttemptState(position=first)
            return self._deliver(state, first, ActionCode.NEXT_QUESTION)

    def submit_answer(self, answer: Optional[str], code: Optional[str] = None) -> TurnResult:  # Assess an answer and deliver the next turn
        combined = compose_answer(answer, code)
        if not combined:
            raise ValueError("Answer is empty")
        state = self._state
        with self._claim(state):
            if not accepts_answers(state.phase):
                raise PhaseError(state.phase, "answer")
            state.say("candidate", combined)
            state.last_answer = combined
            digression = state.follow_up
            request = self._assessment_request(state, digression, combined)
            turn_kind = "follow-up" if digression is not None else "planned"
            try:
                with span(state, "monitor"):
                    raw = self._call(state, "monitor", self._deps.monitor, request)
                record = parse_assessment(raw, position=request.position, turn_kind=turn_kind)
            except (InvalidAssessment, CollaboratorUnavailable) as exc:
                return self._discard(state, exc)
            state.log.append(record)
            state.discussion_hint = record.discussion_point
            self._event(
                state,
                "assessment.logged",
                position=str(record.position),
                turn_kind=record.turn_kind,
                requested=record.action_code.label,
                entries=len(state.log),
            )
            if digression is not None:
                return self._resume(state, digression)
            return self._advance(state, record.action_code)

    def report(self) -> str:  # Hand the session log to the report collaborator
        state = self._state
        if not state.log:
            raise ReportUnavailable("No interview log available")
        if self._deps.reporter is None:
            raise ReportUnavailable("No report writer configured")
        with self._claim(state):
            request = ReportRequest(plan=state.plan, entries=state.log.entries)
            with span(state, "reporter"):
                narrative = self._call(state, "reporter", self._deps.reporter, request)
            state.narrative = str(narrative or "").strip()
            self._event(state, "report.generated", entries=len(request.entries))
            return state.narrative

    def teardown(self) -> None:  # Supersede the active session; late results are discarded
        with self._guard:
            self._generation += 1
            previous = self._state
            self._state = SessionState(session_id=previous.session_id, generation=self._generation)
        self._event(previous, "session.teardown", entries=len(previous.log))

    @contextmanager
    def _claim(self, state: SessionState) -> Iterator[SessionState]:
        with self._guard:
            if state.busy:
                raise SessionBusy(f"session {state.session_id} is processing another step")
            state.busy = True
        try:
            yield state
        finally:
            with self._guard:
                state.busy = False

    def _ensure_active(self, state: SessionState) -> None:
        if state.generation != self._generation:
            logger.info(
                "Discarding result for superseded generation %s (active %s)",
                state.generation,
                self._generation,
            )
            raise StaleSession(f"session generation {state.generation} was superseded")

    def _call(self, state: SessionState, name: str, fn: Callable[[Any], Any], payload: Any) -> Any:
        try:
            result = fn(payload)
        except FlowError:
            self._ensure_active(state)
            raise
        except Exception as exc:  # noqa: BLE001
            self._ensure_active(state)
            raise CollaboratorUnavailable(name, str(exc) or type(exc).__name__) from exc
        self._ensure_active(state)
        return result

    def _assessment_request(
        self, state: SessionState, digression: Optional[FollowUpState], answer: str
    ) -> AssessmentRequest:
        if digression is not None:
            position = digression.paused_position
            question = digression.question_text
            state.follow_up_history.append(HistoryItem(question_text=question, answer_text=answer))
            history = list(state.follow_up_history)
        else:
            position = state.position
            question = state.current_question() or ""
            state.question_history.append(HistoryItem(question_text=question, answer_text=answer))
            history = list(state.question_history)
        return AssessmentRequest(
            position=position,
            question_text=question,
            answer_text=answer,
            history=history,
            is_follow_up=digression is not None,
        )

    def _advance(self, state: SessionState, requested: ActionCode) -> TurnResult:
        current = state.position
        attempts, action = governor.record(state.attempts, current, requested, ceiling=self._flow.max_attempts)
        if action is not requested:
            self._event(state, "attempts.escalated", position=str(current), requested=requested.label, action=action.label)
        resolution = resolve(state.plan, current, action)
        if resolution.effective_action is not action and not resolution.is_terminal:
            self._event(
                state,
                "action.downgraded",
                position=str(current),
                requested=action.label,
                action=resolution.effective_action.label,
            )
        if resolution.next_position != current:
            attempts = AttemptState(position=resolution.next_position)
        state.attempts = attempts
        if resolution.is_terminal:
            return self._close(state)
        return self._deliver(state, resolution.next_position, resolution.effective_action)

    def _resume(self, state: SessionState, digression: FollowUpState) -> TurnResult:
        resume_at, action = digressions.exit(digression)
        state.follow_up = None
        state.follow_up_history = []
        state.attempts = governor.restore(resume_at, digression.paused_attempts)
        self._event(state, "follow_up.exit", position=str(resume_at), attempts=digression.paused_attempts)
        resolution = settle(state.plan, resume_at, action)
        if resolution.is_terminal:
            return self._close(state)
        return self._deliver(state, resolution.next_position, resolution.effective_action)

    def _deliver(
        self,
        state: SessionState,
        target: Position,
        action: ActionCode,
        *,
        allow_follow_up: bool = True,
        notes: Optional[List[str]] = None,
    ) -> TurnResult:
        notes = list(notes or [])
        topic = state.plan.topic(target.topic_index) if state.plan else None
        question = state.plan.question(target) if state.plan else None
        if action is ActionCode.END or topic is None or question is None:
            return self._close(state, notes)
        request = TurnRequest(
            topic_name=topic.name,
            question_text=question,
            action=action,
            previous_turn_text=state.last_turn_text,
            previous_answer=state.last_answer,
            discussion_hint=state.discussion_hint,
            allow_follow_up=allow_follow_up
            and digressions.can_enter(state.follow_up_streak, self._flow.max_follow_up_streak),
        )
        try:
            output = self._request_turn(state, request)
        except CollaboratorUnavailable as exc:
            return self._discard(state, exc, notes)
        state.last_answer = None
        state.discussion_hint = None

        if output.kind == "follow-up":
            if request.allow_follow_up:
                return self._enter_follow_up(state, target, action, output, notes)
            if allow_follow_up:
                notes.append(FOLLOW_UP_LIMIT_MESSAGE)
                state.say("system", FOLLOW_UP_LIMIT_MESSAGE)
                state.follow_up_streak = 0
                # Same planned target is re-asked; the plan position does not advance
                forced = ActionCode.NEXT_QUESTION if action.is_retry else action
                self._event(state, "follow_up.override", position=str(target), action=forced.label)
                return self._deliver(state, target, forced, allow_follow_up=False, notes=notes)
            output = TurnOutput(kind="planned", text=output.text)

        state.follow_up = None
        state.follow_up_streak = 0
        self._move_to(state, target)
        self._show(state, output)
        self._event(state, "turn.delivered", position=str(target), action=action.label, turn_kind="planned")
        return self._result(state, kind="planned", text=output.text, action=action, notes=notes)

    def _enter_follow_up(
        self,
        state: SessionState,
        target: Position,
        action: ActionCode,
        output: TurnOutput,
        notes: List[str],
    ) -> TurnResult:
        digression = digressions.enter(
            target,
            state.attempts.count_for(target),
            action,
            streak=state.follow_up_streak,
            question_text=output.text,
            ceiling=self._flow.max_follow_up_streak,
        )
        self._move_to(state, target)
        state.follow_up = digression
        state.follow_up_streak = digression.streak_count
        state.follow_up_history = []
        self._show(state, output)
        self._event(
            state,
            "follow_up.enter",
            position=str(target),
            action=action.label,
            streak=digression.streak_count,
        )
        return self._result(state, kind="follow-up", text=output.text, action=action, notes=notes)

    def _close(self, state: SessionState, notes: Optional[List[str]] = None) -> TurnResult:
        notes = list(notes or [])
        request = TurnRequest(
            topic_name=CLOSING_TOPIC,
            question_text=CLOSING_PROMPT,
            action=ActionCode.END,
            previous_turn_text=state.last_turn_text,
            previous_answer=state.last_answer,
            allow_follow_up=False,
        )
        try:
            output = self._request_turn(state, request)
        except CollaboratorUnavailable as exc:
            return self._discard(state, exc, notes)
        text = output.text
        if not text:
            text = self._flow.closing_statement
            notes.append(FALLBACK_CLOSING_NOTE)
            state.say("system", FALLBACK_CLOSING_NOTE)
        state.follow_up = None
        state.follow_up_streak = 0
        state.last_answer = None
        state.discussion_hint = None
        self._show(state, TurnOutput(kind="planned", text=text))
        state.phase = next_phase(state.phase, "terminal")
        self._event(state, "session.ended", entries=len(state.log), action=ActionCode.END.label)
        return self._result(state, kind="planned", text=text, action=ActionCode.END, notes=notes)

    def _discard(self, state: SessionState, exc: FlowError, notes: Optional[List[str]] = None) -> TurnResult:
        notes = list(notes or [])
        message = f"Error: {exc}"
        notes.append(message)
        state.say("system", message)
        state.error = str(exc)
        state.follow_up = None
        state.phase = next_phase(state.phase, "failure")
        closing = ""
        if state.plan is not None:
            closing = self._flow.closing_statement
            self._show(state, TurnOutput(kind="planned", text=closing))
        self._event(state, "session.discarded", error=type(exc).__name__, reason=str(exc))
        return self._result(
            state,
            kind="planned",
            text=closing,
            action=ActionCode.END,
            notes=notes,
            error=str(exc),
        )

    def _request_turn(self, state: SessionState, request: TurnRequest) -> TurnOutput:
        try:
            with span(state, "interviewer"):
                raw = self._call(state, "interviewer", self._deps.interviewer, request)
            return coerce_turn(raw, request.action)
        except InvalidTurnOutput as exc:
            logger.warning("Turn output unusable, continuing with an empty planned turn: %s", exc)
            return TurnOutput()

    def _move_to(self, state: SessionState, target: Position) -> None:
        if target != state.position:
            state.question_history = []
        state.position = target

    def _show(self, state: SessionState, output: TurnOutput) -> None:
        if output.text:
            state.say("interviewer", output.text, kind=output.kind)
            state.last_turn_text = output.text
        else:
            state.last_turn_text = None

    def _event(self, state: SessionState, kind: str, **fields: Any) -> None:
        details = {key: value for key, value in fields.items() if value is not None}
        log_event(kind, state.session_id, generation=state.generation, phase=state.phase, **details)
        state.events.append({"type": kind, **details})

    def _result(
        self,
        state: SessionState,
        *,
        kind: str = "planned",
        text: str = "",
        action: Optional[ActionCode] = None,
        notes: Optional[List[str]] = None,
        error: Optional[str] = None,
    ) -> TurnResult:
        return TurnResult(
            session_id=state.session_id,
            phase=state.phase,
            kind=kind,
            text=text,
            action=action,
            position=state.position if state.plan is not None else None,
            topic_name=state.current_topic_name(),
            system_messages=list(notes or []),
            error=error,
        )


__all__ = ["FALLBACK_CLOSING_NOTE", "FOLLOW_UP_LIMIT_MESSAGE", "TurnOrchestrator", "compose_answer"]
