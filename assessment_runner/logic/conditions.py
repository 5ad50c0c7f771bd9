"""Condition evaluation for conditional question visibility.

A condition compares the stored answer of one question against a configured
value. Evaluation is total: any input, including conditions that point at
questions which do not exist, yields a boolean and never raises. Operands are
coerced the way the browser form that authored these rules coerced them, so
stored assessments keep behaving identically.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Callable, Dict, Mapping, Optional

from assessment_runner.models.assessment import Condition
from assessment_runner.models.question_kind import ConditionOperator

logger = logging.getLogger(__name__)

_NAN = float("nan")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_falsy(value: Any) -> bool:
    """Script-style falsiness: None, False, 0, NaN and '' (lists are truthy)."""
    if value is None or value is False:
        return True
    if _is_number(value):
        return value == 0 or math.isnan(value)
    if isinstance(value, str):
        return value == ""
    return False


def to_text(value: Any) -> str:
    """Coerce a value to the string form used by text comparisons."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, (list, tuple)):
        return ",".join(to_text(item) for item in value)
    if isinstance(value, Mapping):
        return "[object Object]"
    try:
        return str(value)
    except Exception:
        logger.debug("to_text_failed value_type=%s", type(value).__name__, exc_info=True)
        return ""


def to_number(value: Any) -> float:
    """Coerce a value to a float; anything non-numeric becomes NaN.

    Absent answers are NaN. Blank text is 0, booleans are 1/0, and a
    single-item list takes its item's numeric value.
    """
    if value is None:
        return _NAN
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if _is_number(value):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if text == "":
            return 0.0
        if text in {"Infinity", "+Infinity"}:
            return math.inf
        if text == "-Infinity":
            return -math.inf
        lowered = text.lower()
        if lowered.startswith(("0x", "0o", "0b")):
            try:
                return float(int(lowered, 0))
            except ValueError:
                return _NAN
        # float() accepts spellings that are not numbers in stored rules
        if "inf" in lowered or "nan" in lowered or "_" in lowered:
            return _NAN
        try:
            return float(text)
        except ValueError:
            return _NAN
    if isinstance(value, (list, tuple)):
        if len(value) == 0:
            return 0.0
        if len(value) == 1:
            return to_number(to_text(value[0]))
        return _NAN
    return _NAN


def strict_equals(left: Any, right: Any) -> bool:
    """Equality without cross-type coercion (True never equals 1, '1' never equals 1)."""
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left is right
    if _is_number(left) and _is_number(right):
        return left == right
    if type(left) is not type(right) and not (
        isinstance(left, (list, tuple)) and isinstance(right, (list, tuple))
    ):
        return False
    try:
        return bool(left == right)
    except Exception:
        logger.debug("strict_equals_failed", exc_info=True)
        return False


def is_empty_answer(value: Any) -> bool:
    """True for absent, None or the empty string. Empty lists are not empty here."""
    return value is None or (isinstance(value, str) and value == "")


def _op_equals(answer: Any, expected: Any) -> bool:
    return strict_equals(answer, expected)


def _op_not_equals(answer: Any, expected: Any) -> bool:
    return not strict_equals(answer, expected)


def _op_contains(answer: Any, expected: Any) -> bool:
    haystack = "" if _is_falsy(answer) else to_text(answer)
    needle = "" if _is_falsy(expected) else to_text(expected)
    return needle.lower() in haystack.lower()


def _op_greater_than(answer: Any, expected: Any) -> bool:
    # NaN on either side compares False
    return to_number(answer) > to_number(expected)


def _op_less_than(answer: Any, expected: Any) -> bool:
    return to_number(answer) < to_number(expected)


def _op_is_empty(answer: Any, expected: Any) -> bool:
    return is_empty_answer(answer)


def _op_is_not_empty(answer: Any, expected: Any) -> bool:
    return not is_empty_answer(answer)


_OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    ConditionOperator.EQUALS: _op_equals,
    ConditionOperator.NOT_EQUALS: _op_not_equals,
    ConditionOperator.CONTAINS: _op_contains,
    ConditionOperator.GREATER_THAN: _op_greater_than,
    ConditionOperator.LESS_THAN: _op_less_than,
    ConditionOperator.IS_EMPTY: _op_is_empty,
    ConditionOperator.IS_NOT_EMPTY: _op_is_not_empty,
}


def _unpack(condition: Condition | Mapping[str, Any]) -> tuple[Optional[str], Any, Any]:
    if isinstance(condition, Condition):
        return condition.question_id, condition.operator, condition.value
    if isinstance(condition, Mapping):
        qid = condition.get("questionId", condition.get("question_id"))
        return (None if qid is None else str(qid)), condition.get("operator"), condition.get("value")
    return None, None, None


def evaluate_condition(
    condition: Condition | Mapping[str, Any],
    answers: Mapping[str, Any] | None,
) -> bool:
    """Return True if `condition` holds for the current answer map.

    Unknown operators evaluate to True (fail open) so that a rule written by a
    newer authoring tool does not hide questions from candidates.
    """
    question_id, operator, expected = _unpack(condition)
    answer = None
    if question_id is not None and answers:
        try:
            answer = answers.get(question_id)
        except Exception:
            logger.debug("condition_answer_lookup_failed question_id=%s", question_id, exc_info=True)
            answer = None
    handler = _OPERATORS.get(operator) if isinstance(operator, str) else None
    if handler is None:
        logger.debug("condition_unknown_operator operator=%r question_id=%s", operator, question_id)
        return True
    try:
        return bool(handler(answer, expected))
    except Exception:
        logger.debug(
            "condition_evaluation_failed operator=%s question_id=%s", operator, question_id, exc_info=True
        )
        return False


__all__ = [
    "evaluate_condition",
    "is_empty_answer",
    "strict_equals",
    "to_number",
    "to_text",
]
