"""Pydantic models for session outputs exposed to consumers."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from assessment_runner.models.assessment import Identifier, Question


class VisibilityDelta(BaseModel):
    now_visible: List[str] = Field(default_factory=list)
    now_hidden: List[str] = Field(default_factory=list)


class BlockingItem(BaseModel):
    question_id: str
    reason: str = "missing_required_answer"


class GatingVerdict(BaseModel):
    ok: bool
    blocking_items: List[BlockingItem] = Field(default_factory=list)


class AnswerChange(BaseModel):
    """Result of a single answer mutation.

    `violations` lists the ids of visible required questions still unanswered
    after the change; `suppressed_answers` lists newly hidden questions that
    still hold a stored answer.
    """

    question_id: str
    value: Any = None
    state: str
    visibility_delta: VisibilityDelta
    suppressed_answers: List[str] = Field(default_factory=list)
    violations: List[str] = Field(default_factory=list)
    can_submit: bool


class ReviewItem(BaseModel):
    label: str
    question_id: str
    type: str
    prompt: str
    description: Optional[str] = None
    answer_text: str


class SessionView(BaseModel):
    session_id: Optional[str] = None
    state: str
    assessment_id: Optional[Identifier] = None
    job_id: Optional[Identifier] = None
    title: Optional[str] = None
    description: Optional[str] = None
    visible_questions: List[Question] = Field(default_factory=list)
    violations: List[str] = Field(default_factory=list)
    can_submit: bool = False
    answers: Dict[str, Any] = Field(default_factory=dict)
    resumed: bool = False
    load_error: Optional[str] = None


__all__ = [
    "VisibilityDelta",
    "BlockingItem",
    "GatingVerdict",
    "AnswerChange",
    "ReviewItem",
    "SessionView",
]
