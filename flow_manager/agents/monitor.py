from __future__ import annotations  # Monitor agent assessing candidate answers

from textwrap import dedent
from typing import Type

from langchain_core.prompts import ChatPromptTemplate

from config import LlmRoute
from llm_gateway import runnable as llm_runnable

from ..contracts import AssessmentPayload, AssessmentRequest
from ..errors import InvalidAssessment
from .toolkit import clamp_text, gateway_errors, history_block


MONITOR_AGENT_KEY = "flow_manager.monitor_agent"  # Registry key for monitor route

MONITOR_GUIDANCE = dedent(  # Scoring rubric and action-code policy
    """
    You are an AI interview monitor giving feedback on a candidate's answer.
    Evaluate only the information provided.
    Score four metrics from 0.0 to 1.0:
    - accuracy: correctness of factual information.
    - relevance: how well the answer addresses the question asked.
    - clarity: how clear and understandable the answer is.
    - completeness: how thoroughly all parts of the question are covered.
    Choose one action code:
    1 REPEAT_QUESTION: irrelevant, nonsensical or missing answer; ask the same question again.
    2 CLARIFY_QUESTION: partly correct but needs detail or examples; ask for elaboration.
    3 NEXT_QUESTION: satisfactory; move to the next question in the topic.
    4 NEXT_TOPIC: satisfactory and the topic is covered, or mastery is clear; move on.
    5 END_INTERVIEW: use extremely sparingly, only for a candidate who is unresponsive across attempts
      or explicitly asks to stop. Never for a single weak answer.
    Give a reason of one or two sentences, and optionally a discussion_point of at most ten words
    the interviewer could focus on (null when none).
    """
).strip()


class MonitorAgent:  # Agent scoring answers and proposing the next action
    def __init__(self, route: LlmRoute, schema: Type[AssessmentPayload] = AssessmentPayload) -> None:
        self._route = route
        self._schema = schema
        self._prompt = ChatPromptTemplate.from_messages(
            [
                ("system", "{instructions}"),
                (
                    "human",
                    (
                        "{turn_context}\n"
                        "Current topic index: {topic_index}\n"
                        "Current question index: {question_index}\n"
                        "Question asked: {question}\n"
                        "Candidate answer: {answer}\n\n"
                        "History for this question:\n{history}\n\n"
                        "Return JSON with topicIndex, questionIndex, metrics, actionCode, reason, "
                        "and discussion_point respecting the schema."
                    ),
                ),
            ]
        )
        self._chain = self._prompt | llm_runnable(self._route, self._schema)

    def __call__(self, request: AssessmentRequest) -> AssessmentPayload:  # Assess one answer
        with gateway_errors("monitor", InvalidAssessment):
            return self._chain.invoke(
                {
                    "instructions": MONITOR_GUIDANCE,
                    "turn_context": _turn_context(request),
                    "topic_index": request.position.topic_index,
                    "question_index": request.position.question_index,
                    "question": clamp_text(request.question_text),
                    "answer": clamp_text(request.answer_text, limit=2400),
                    "history": history_block(request.history[:-1]),
                }
            )


def _turn_context(request: AssessmentRequest) -> str:
    if request.is_follow_up:
        return "This was an answer to a spontaneous follow-up question."
    return "This was an answer to a planned question."


__all__ = ["MONITOR_AGENT_KEY", "MONITOR_GUIDANCE", "MonitorAgent"]
