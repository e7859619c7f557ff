"""FastAPI routes for interview session control."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Response

from api.schemas import (
    AnswerReq,
    FinishReq,
    FinishResp,
    FollowUpPayload,
    LogResp,
    PositionPayload,
    ReportResp,
    SessionResp,
    StartReq,
    TurnResp,
)
from flow_manager import (
    CollaboratorUnavailable,
    PhaseError,
    Position,
    ReportUnavailable,
    SessionBusy,
    StaleSession,
    TurnOrchestrator,
    TurnResult,
)
from services.sessions import finish_session, load_session, new_session
from session_reports import SessionReport, generate_session_report_pdf


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/interview-sessions")


def _position(position: Optional[Position]) -> Optional[PositionPayload]:
    if position is None:
        return None
    return PositionPayload(topic_index=position.topic_index, question_index=position.question_index)


def _turn_resp(result: TurnResult) -> TurnResp:
    return TurnResp(
        session_id=result.session_id,
        phase=result.phase,
        kind=result.kind,
        text=result.text,
        action=int(result.action) if result.action is not None else None,
        action_name=result.action.label if result.action is not None else None,
        position=_position(result.position),
        topic_name=result.topic_name,
        system_messages=result.system_messages,
        error=result.error,
    )


def _require(session_id: str) -> TurnOrchestrator:
    orchestrator = load_session(session_id)
    if orchestrator is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return orchestrator


@router.post("/start", response_model=TurnResp)
def start(req: StartReq) -> TurnResp:
    if not req.job_description.strip():
        raise HTTPException(status_code=400, detail="Job description is missing")
    try:
        orchestrator = new_session(req.session_id)
    except KeyError as exc:
        logger.error("Collaborators not configured: %s", exc)
        raise HTTPException(status_code=503, detail="Interview collaborators are not configured") from exc
    try:
        result = orchestrator.start(req.job_description)
    except (SessionBusy, StaleSession) as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _turn_resp(result)


@router.post("/answer", response_model=TurnResp)
def answer(req: AnswerReq) -> TurnResp:
    orchestrator = _require(req.session_id)
    if not req.answer.strip() and not (req.code or "").strip():
        raise HTTPException(status_code=400, detail="Candidate answer is required.")
    try:
        result = orchestrator.submit_answer(req.answer, req.code)
    except (SessionBusy, StaleSession, PhaseError) as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _turn_resp(result)


@router.get("/{session_id}", response_model=SessionResp)
def session_snapshot(session_id: str) -> SessionResp:
    state = _require(session_id).state
    follow_up = None
    if state.follow_up is not None:
        follow_up = FollowUpPayload(
            paused_position=_position(state.follow_up.paused_position),
            paused_attempts=state.follow_up.paused_attempts,
            streak_count=state.follow_up.streak_count,
            question_text=state.follow_up.question_text,
        )
    return SessionResp(
        session_id=state.session_id,
        phase=state.phase,
        position=_position(state.position) if state.plan is not None else None,
        attempts=state.attempts.count_for(state.position),
        follow_up=follow_up,
        follow_up_streak=state.follow_up_streak,
        plan=state.plan.model_dump() if state.plan is not None else None,
        transcript=list(state.transcript),
        error=state.error,
    )


@router.get("/{session_id}/log", response_model=LogResp)
def session_log(session_id: str) -> LogResp:
    orchestrator = _require(session_id)
    return LogResp(session_id=session_id, entries=list(orchestrator.log))


@router.post("/{session_id}/report", response_model=ReportResp)
def session_report(session_id: str) -> ReportResp:
    orchestrator = _require(session_id)
    try:
        narrative = orchestrator.report()
    except ReportUnavailable as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except (SessionBusy, StaleSession) as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except CollaboratorUnavailable as exc:
        logger.exception("Report writer failed")
        raise HTTPException(status_code=502, detail=f"LLM request failed: {exc}") from exc
    return ReportResp(session_id=session_id, narrative=narrative, entries=len(orchestrator.log))


@router.get("/{session_id}/report.pdf")
def session_report_pdf(session_id: str) -> Response:
    state = _require(session_id).state
    report = SessionReport(
        session_id=state.session_id,
        plan=state.plan,
        entries=list(state.log.entries),
        narrative=state.narrative or "",
        job_description=state.job_description,
    )
    payload = generate_session_report_pdf(report)
    headers = {"Content-Disposition": f'attachment; filename="interview-{session_id}.pdf"'}
    return Response(content=payload, media_type="application/pdf", headers=headers)


@router.post("/{session_id}/finish", response_model=FinishResp)
def finish(session_id: str) -> FinishResp:
    if not finish_session(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return FinishResp(session_id=session_id)


@router.post("/finish", response_model=FinishResp)
def finish_by_body(req: FinishReq) -> FinishResp:
    return finish(req.session_id)
