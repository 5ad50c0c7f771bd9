"""Required-answer gating.

Computes the blocking set for submission: visible questions marked
`required` whose answer is still missing. Hidden required questions never
block. The verdict shape `{ ok: bool, blocking_items: [] }` is what the HTTP
layer reports back when a submit is refused.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping
import logging

from assessment_runner.logic.visibility_rules import resolve_visible
from assessment_runner.models.assessment import Question
from assessment_runner.models.response_types import BlockingItem, GatingVerdict

logger = logging.getLogger(__name__)

MISSING_REQUIRED_ANSWER = "missing_required_answer"


def is_answer_missing(value: Any) -> bool:
    """True when an answer does not satisfy a required question.

    Unlike the `is_empty` condition operator, an empty selection list counts
    as missing here.
    """
    if value is None:
        return True
    if isinstance(value, str) and value == "":
        return True
    if isinstance(value, (list, tuple)) and len(value) == 0:
        return True
    return False


def find_violations(
    visible_questions: Iterable[Question],
    answers: Mapping[str, Any] | None,
) -> List[Question]:
    """Return visible required questions that are still unanswered, in order."""
    answers = answers or {}
    return [
        q for q in visible_questions
        if q.required and is_answer_missing(answers.get(q.id))
    ]


def evaluate_gating(questions: Iterable[Question], answers: Mapping[str, Any] | None) -> GatingVerdict:
    """Compute the submit verdict for a full question list."""
    violations = find_violations(resolve_visible(questions, answers), answers)
    items = [BlockingItem(question_id=q.id, reason=MISSING_REQUIRED_ANSWER) for q in violations]
    ok = len(items) == 0
    logger.info("gating_verdict ok=%s missing=%s", ok, [i.question_id for i in items])
    return GatingVerdict(ok=ok, blocking_items=items)


__all__ = ["MISSING_REQUIRED_ANSWER", "is_answer_missing", "find_violations", "evaluate_gating"]
