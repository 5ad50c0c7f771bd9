"""Data layer contract consumed by assessment sessions, plus an in-memory implementation.

Sessions never talk to storage or the network directly: they depend on an
object satisfying `AssessmentDataLayer`. `InMemoryDataLayer` is the dict-backed
holder used for tests and local development; it can be seeded from a JSON file
shaped `{"assessments": [...], "responses": [...]}`.
"""

from __future__ import annotations

import itertools
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol

from assessment_runner.logic.errors import AssessmentNotFound
from assessment_runner.models.assessment import (
    Assessment,
    Identifier,
    ResponseRecord,
    SubmissionPayload,
)

logger = logging.getLogger(__name__)


class AssessmentDataLayer(Protocol):
    async def fetch_assessment_by_job(self, job_id: Identifier) -> Assessment:
        """Return the assessment attached to a job; raise AssessmentNotFound."""

    async def fetch_assessment_by_id(self, assessment_id: Identifier) -> Assessment:
        """Return an assessment by id; raise AssessmentNotFound."""

    async def fetch_responses(
        self, assessment_id: Identifier, job_id: Optional[Identifier] = None
    ) -> List[ResponseRecord]:
        """Return prior response records for the pair, in no particular order."""

    async def submit_response(self, payload: SubmissionPayload) -> ResponseRecord:
        """Persist a submission and return the stored record."""


def _same_id(left: Any, right: Any) -> bool:
    return left is not None and right is not None and str(left) == str(right)


class InMemoryDataLayer:
    """Dict-backed data layer. Submissions are appended, never updated."""

    def __init__(
        self,
        assessments: Iterable[Assessment | Dict[str, Any]] | None = None,
        responses: Iterable[ResponseRecord | Dict[str, Any]] | None = None,
    ) -> None:
        self._assessments: Dict[str, Assessment] = {}
        self._responses: List[ResponseRecord] = []
        self._ids = itertools.count(1)
        self.submit_calls: List[SubmissionPayload] = []
        for item in assessments or []:
            self.add_assessment(item)
        for item in responses or []:
            self.add_response(item)

    @classmethod
    def from_seed_file(cls, path: str | Path) -> "InMemoryDataLayer":
        """Build a data layer from a JSON seed file."""
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        layer = cls(raw.get("assessments") or [], raw.get("responses") or [])
        logger.info(
            "inmemory_seed_loaded path=%s assessments=%d responses=%d",
            path,
            len(layer._assessments),
            len(layer._responses),
        )
        return layer

    def add_assessment(self, assessment: Assessment | Dict[str, Any]) -> Assessment:
        model = assessment if isinstance(assessment, Assessment) else Assessment.model_validate(assessment)
        self._assessments[str(model.id)] = model
        return model

    def add_response(self, record: ResponseRecord | Dict[str, Any]) -> ResponseRecord:
        model = record if isinstance(record, ResponseRecord) else ResponseRecord.model_validate(record)
        if model.id is None:
            model = model.model_copy(update={"id": self._next_id()})
        self._responses.append(model)
        return model

    def _next_id(self) -> int:
        used = {str(r.id) for r in self._responses}
        while True:
            candidate = next(self._ids)
            if str(candidate) not in used:
                return candidate

    async def fetch_assessment_by_job(self, job_id: Identifier) -> Assessment:
        for assessment in self._assessments.values():
            if _same_id(assessment.job_id, job_id):
                return assessment
        raise AssessmentNotFound(f"no assessment for job {job_id}")

    async def fetch_assessment_by_id(self, assessment_id: Identifier) -> Assessment:
        try:
            return self._assessments[str(assessment_id)]
        except KeyError:
            raise AssessmentNotFound(f"assessment {assessment_id} not found") from None

    async def fetch_responses(
        self, assessment_id: Identifier, job_id: Optional[Identifier] = None
    ) -> List[ResponseRecord]:
        return [
            r for r in self._responses
            if _same_id(r.assessment_id, assessment_id)
            and (job_id is None or r.job_id is None or _same_id(r.job_id, job_id))
        ]

    async def submit_response(self, payload: SubmissionPayload) -> ResponseRecord:
        self.submit_calls.append(payload)
        record = ResponseRecord(
            id=self._next_id(),
            assessment_id=payload.assessment_id,
            job_id=payload.job_id,
            candidate_id=payload.candidate_id,
            responses=dict(payload.responses),
            submitted_at=datetime.now(timezone.utc),
        )
        self._responses.append(record)
        logger.info(
            "response_stored id=%s assessment_id=%s job_id=%s",
            record.id,
            record.assessment_id,
            record.job_id,
        )
        return record


__all__ = ["AssessmentDataLayer", "InMemoryDataLayer"]
