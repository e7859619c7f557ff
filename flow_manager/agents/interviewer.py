from __future__ import annotations  # Interviewer agent phrasing planned turns and follow-ups

from textwrap import dedent
from typing import Any, Dict, Type

from langchain_core.prompts import ChatPromptTemplate
from pydantic import BaseModel

from config import LlmRoute
from llm_gateway import runnable as llm_runnable

from ..contracts import TurnRequest
from ..errors import InvalidTurnOutput
from ..models import ActionCode
from .toolkit import clamp_text, gateway_errors, quoted


INTERVIEWER_AGENT_KEY = "flow_manager.interviewer_agent"  # Registry key for interviewer route

INTERVIEWER_GUIDANCE = dedent(  # Persona and output guardrails
    """
    You are an AI interviewer running a live technical interview.
    Your persona is professional, engaging, and conversational; stay on the current topic.
    Briefly acknowledge the candidate's previous answer when it helps, unless you are ending or repeating.
    Each reply is a single natural sentence or question, or the closing statement when ending.
    Reply with JSON containing "type" ("planned" or "follow-up") and "text".
    """
).strip()


class TurnDraft(BaseModel):  # LLM-enforced interviewer payload
    type: str = "planned"
    text: Any = ""

    @classmethod
    def from_raw_content(cls, content: str) -> "TurnDraft":  # Adopt plain-text replies as planned turns
        text = content.strip()
        if not text or text.startswith("{"):
            raise ValueError("interviewer reply was neither JSON nor plain text")
        return cls(type="planned", text=text)


class InterviewerAgent:  # Agent producing the next interviewer utterance
    def __init__(self, route: LlmRoute, schema: Type[TurnDraft] = TurnDraft) -> None:
        self._route = route
        self._schema = schema
        self._prompt = ChatPromptTemplate.from_messages(
            [
                ("system", "{instructions}"),
                (
                    "human",
                    (
                        "Current topic: {topic}\n"
                        "Action code: {action_code} ({action_name})\n"
                        "You previously said: {previous_turn}\n"
                        "Candidate responded: {previous_answer}\n"
                        "Monitor suggested focusing on: {hint}\n\n"
                        "Core instruction: {core_instruction}\n\n"
                        "{follow_up_policy}\n\n"
                        "Return JSON with type and text respecting the schema."
                    ),
                ),
            ]
        )
        self._chain = self._prompt | llm_runnable(self._route, self._schema)

    def __call__(self, request: TurnRequest) -> Dict[str, Any]:  # Generate turn text for the orchestrator
        with gateway_errors("interviewer", InvalidTurnOutput):
            draft = self._chain.invoke(
                {
                    "instructions": INTERVIEWER_GUIDANCE,
                    "topic": request.topic_name,
                    "action_code": int(request.action),
                    "action_name": request.action.label,
                    "previous_turn": quoted(request.previous_turn_text),
                    "previous_answer": quoted(request.previous_answer, limit=1200),
                    "hint": quoted(request.discussion_hint),
                    "core_instruction": core_instruction(request),
                    "follow_up_policy": _follow_up_policy(request),
                }
            )
        return {"type": draft.type, "text": draft.text}


def core_instruction(request: TurnRequest) -> str:  # Action-specific phrasing directive
    question = clamp_text(request.question_text)
    action = request.action
    if action is ActionCode.REPEAT:
        return f'The previous answer missed the point. Rephrase this question naturally and ask it again: "{question}"'
    if action is ActionCode.CLARIFY:
        return f'The previous answer was partly relevant but thin. Ask for clarification or elaboration on: "{question}"'
    if action is ActionCode.NEXT_TOPIC:
        return f'Transition smoothly to the topic "{request.topic_name}" and ask its first question: "{question}"'
    if action is ActionCode.END:
        return (
            "Conclude the interview now with a polite closing statement only. "
            "Do not ask further questions and do not add other text."
        )
    if not request.previous_turn_text:
        return f'Open the interview by introducing the topic "{request.topic_name}" and asking: "{question}"'
    return f'Ask the next planned question naturally and conversationally: "{question}"'


def _follow_up_policy(request: TurnRequest) -> str:
    if request.action is ActionCode.END:
        return 'Set "type" to "planned" and put only the closing statement in "text".'
    if not request.allow_follow_up:
        return 'Do not ask a follow-up. Apply the core instruction and set "type" to "planned".'
    return (
        "You may ask AT MOST ONE brief, relevant follow-up question instead of the core instruction "
        'when the answer invites it; then set "type" to "follow-up". '
        'Otherwise apply the core instruction and set "type" to "planned".'
    )


__all__ = ["INTERVIEWER_AGENT_KEY", "INTERVIEWER_GUIDANCE", "InterviewerAgent", "TurnDraft", "core_instruction"]
