"""Pydantic models for session request payloads.

Kept apart from the route module so the payload shapes can be imported
without pulling in the router.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, model_validator

from assessment_runner.models.assessment import Identifier


class CreateSessionRequest(BaseModel):
    job_id: Optional[Identifier] = None
    assessment_id: Optional[Identifier] = None
    candidate_id: Identifier = 0

    @model_validator(mode="after")
    def job_or_assessment(self) -> "CreateSessionRequest":
        if self.job_id is None and self.assessment_id is None:
            raise ValueError("job_id or assessment_id is required")
        return self


class AnswerUpsertModel(BaseModel):
    """Either a canonical `value` or a raw `input` event to encode.

    An explicit `"value": null` clears the answer, so presence is checked on
    the fields actually sent rather than on None.
    """

    value: Any = None
    input: Any = None

    @model_validator(mode="after")
    def exactly_one_of_value_or_input(self) -> "AnswerUpsertModel":
        sent = self.model_fields_set & {"value", "input"}
        if len(sent) != 1:
            raise ValueError("provide exactly one of 'value' or 'input'")
        return self

    @property
    def is_raw_input(self) -> bool:
        return "input" in self.model_fields_set


__all__ = ["CreateSessionRequest", "AnswerUpsertModel"]
