"""Pydantic models for assessments, response records and submissions.

Assessments arrive from an external data layer in the shape the job board
stores them: numeric ids, a `question` key holding the prompt text and
`questionId` on conditions. Models accept that shape and normalise question
ids to strings, since answer maps are keyed by string ids once they have been
through JSON.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import AliasChoices, BaseModel, Field, ValidationInfo, field_validator


Identifier = Union[int, str]


def _coerce_id(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return str(int(value)) if float(value).is_integer() else str(value)
    return value


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (date-only and trailing 'Z' allowed).

    Naive values are taken as UTC so records from mixed sources compare.
    Raises ValueError on unparseable text.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z") or text.endswith("z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    else:
        raise ValueError(f"unsupported timestamp value: {value!r}")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


class Condition(BaseModel):
    question_id: str = Field(validation_alias=AliasChoices("questionId", "question_id"))
    operator: str
    value: Any = None

    @field_validator("question_id", mode="before")
    @classmethod
    def _question_id_str(cls, v: Any) -> Any:
        return _coerce_id(v)


class Question(BaseModel):
    id: str
    type: str
    prompt: str = Field(default="", validation_alias=AliasChoices("prompt", "question"))
    description: Optional[str] = None
    required: bool = False
    conditions: List[Condition] = Field(default_factory=list)
    data: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("id", mode="before")
    @classmethod
    def _id_str(cls, v: Any) -> Any:
        return _coerce_id(v)

    @field_validator("conditions", "data", mode="before")
    @classmethod
    def _none_is_empty(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None:
            return [] if info.field_name == "conditions" else {}
        return v

    @property
    def options(self) -> list:
        opts = self.data.get("options")
        return list(opts) if isinstance(opts, (list, tuple)) else []


class Assessment(BaseModel):
    id: Identifier
    title: str = "Assessment"
    description: Optional[str] = None
    job_id: Optional[Identifier] = None
    questions: List[Question] = Field(default_factory=list)

    @field_validator("title", mode="before")
    @classmethod
    def _default_title(cls, v: Any) -> Any:
        return v or "Assessment"

    def question_ids(self) -> set[str]:
        return {q.id for q in self.questions}

    def get_question(self, question_id: Any) -> Optional[Question]:
        key = _coerce_id(question_id)
        for q in self.questions:
            if q.id == key:
                return q
        return None


class ResponseRecord(BaseModel):
    id: Optional[Identifier] = None
    assessment_id: Identifier
    job_id: Optional[Identifier] = None
    candidate_id: Identifier = 0
    responses: Dict[str, Any] = Field(default_factory=dict)
    submitted_at: Optional[datetime] = None
    score: Optional[float] = None
    status: str = "submitted"

    @field_validator("submitted_at", mode="before")
    @classmethod
    def _parse_submitted_at(cls, v: Any) -> Optional[datetime]:
        return parse_timestamp(v)

    @field_validator("responses", mode="before")
    @classmethod
    def _string_keys(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {str(_coerce_id(k)): val for k, val in v.items()}
        return v or {}


class SubmissionPayload(BaseModel):
    assessment_id: Identifier
    job_id: Optional[Identifier] = None
    candidate_id: Identifier = 0
    responses: Dict[str, Any] = Field(default_factory=dict)


__all__ = [
    "Identifier",
    "Condition",
    "Question",
    "Assessment",
    "ResponseRecord",
    "SubmissionPayload",
    "parse_timestamp",
]
