"""Which questions a candidate sees for a given answer map.

Visibility is recomputed from scratch on every call; there is no cached
dependency graph between questions, so cycles and forward references are
harmless.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping
import logging

from assessment_runner.logic.conditions import evaluate_condition
from assessment_runner.models.assessment import Question

logger = logging.getLogger(__name__)


def is_question_visible(question: Question, answers: Mapping[str, Any] | None) -> bool:
    """Return True if a question should be shown for the given answers.

    Visibility is conjunctive: a question with no conditions is always
    visible, otherwise every condition must hold. Conditions that reference
    unknown or later questions simply see an absent answer.
    """
    if not question.conditions:
        return True
    return all(evaluate_condition(cond, answers) for cond in question.conditions)


def resolve_visible(
    questions: Iterable[Question],
    answers: Mapping[str, Any] | None,
) -> List[Question]:
    """Return the currently visible questions, preserving display order."""
    visible = [q for q in questions if is_question_visible(q, answers)]
    logger.debug("visibility_resolved visible=%s", [q.id for q in visible])
    return visible


def compute_visible_set(
    questions: Iterable[Question],
    answers: Mapping[str, Any] | None,
) -> set[str]:
    """Compute the set of visible question ids."""
    return {q.id for q in resolve_visible(questions, answers)}


__all__ = ["is_question_visible", "resolve_visible", "compute_visible_set"]
