"""Per-type answer encoding and review rendering.

Converts raw input events into the canonical stored answer for each question
type, and renders stored answers back into review text:

- multiple_choice -> "<index>"            -> option text
- multiple_select -> [index, ...]         -> "opt a, opt b"
- true_false      -> "true" / "false"     -> "True" / "False"
- short_answer    -> text (clamped)       -> text
- essay           -> text                 -> text
- rating_scale    -> number               -> "4"

likert_scale, file_upload and coding answers can be reviewed but have no
input encoding; encoding them raises UnsupportedInputError.
"""

from __future__ import annotations

import math
import re
from typing import Any, Callable, Dict, List, Optional

from assessment_runner.config import CodecConfig
from assessment_runner.logic.conditions import is_empty_answer, to_number, to_text
from assessment_runner.logic.errors import AnswerEncodingError, UnsupportedInputError
from assessment_runner.models.assessment import Question
from assessment_runner.models.question_kind import QuestionType

NO_ANSWER = "No answer"
NO_FILE = "No file uploaded"

# Upper bound on generated rating buttons for misconfigured scales
_MAX_RATING_VALUES = 1000

_DEFAULT_CODEC = CodecConfig()

# ASCII digits only (str.isdigit also accepts superscripts)
_INDEX_TEXT = re.compile(r"-?[0-9]+")


def _settings(settings: Optional[CodecConfig]) -> CodecConfig:
    return settings or _DEFAULT_CODEC


def _canonical_number(value: float) -> int | float:
    """Return an int for integral values, else the float."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _as_index(question: Question, raw: Any) -> int:
    if isinstance(raw, bool):
        raise AnswerEncodingError(question.id, "option index must be an integer")
    if isinstance(raw, int):
        index = raw
    elif isinstance(raw, float) and raw.is_integer():
        index = int(raw)
    elif isinstance(raw, str) and _INDEX_TEXT.fullmatch(raw.strip()):
        index = int(raw.strip())
    else:
        raise AnswerEncodingError(question.id, "option index must be an integer")
    options = question.options
    if not 0 <= index < len(options):
        raise AnswerEncodingError(question.id, f"option index {index} out of range")
    return index


def short_answer_limit(question: Question, settings: Optional[CodecConfig] = None) -> int:
    """Maximum stored length for a short answer (question data wins when set)."""
    raw = question.data.get("max_length")
    if isinstance(raw, (int, float)) and not isinstance(raw, bool) and raw > 0:
        return int(raw)
    return _settings(settings).short_answer_max_length


def rating_values(question: Question, settings: Optional[CodecConfig] = None) -> List[int | float]:
    """Enumerate the selectable values of a rating scale.

    Runs from `min_value` to `max_value` inclusive by `step`, falling back to
    the configured defaults for missing bounds and for a zero or missing step.
    """
    cfg = _settings(settings)
    data = question.data

    def _num(key: str, default: float) -> float:
        val = data.get(key)
        if val is None or isinstance(val, bool):
            return float(default)
        num = to_number(val)
        return float(default) if math.isnan(num) else num

    low = _num("min_value", cfg.rating_min)
    high = _num("max_value", cfg.rating_max)
    step = _num("step", cfg.rating_step)
    if step <= 0:
        step = float(cfg.rating_step)

    values: List[int | float] = []
    i = 0
    while len(values) < _MAX_RATING_VALUES:
        current = round(low + i * step, 10)
        if current > high + 1e-9:
            break
        values.append(_canonical_number(float(current)))
        i += 1
    return values


def _selection_member(item: Any) -> Any:
    """Index members as ints, so "0", 0 and 0.0 are the same option."""
    if isinstance(item, bool):
        return item
    if isinstance(item, int):
        return item
    if isinstance(item, float) and item.is_integer():
        return int(item)
    if isinstance(item, str) and _INDEX_TEXT.fullmatch(item.strip()):
        return int(item.strip())
    return item


def toggle_selection(current: Any, index: int) -> List[Any]:
    """Toggle `index` in a selection list.

    Membership decides state, not position: a present index is removed, an
    absent one appended. Toggling the same index twice restores the set.
    Stored members are normalised to ints and de-duplicated first.
    """
    selected: List[Any] = []
    for item in current if isinstance(current, (list, tuple)) else []:
        member = _selection_member(item)
        if member not in selected:
            selected.append(member)
    if index in selected:
        return [i for i in selected if i != index]
    return selected + [index]


def _encode_multiple_choice(question: Question, raw: Any, current: Any, cfg: CodecConfig) -> Any:
    return str(_as_index(question, raw))


def _encode_multiple_select(question: Question, raw: Any, current: Any, cfg: CodecConfig) -> Any:
    return toggle_selection(current, _as_index(question, raw))


def _encode_true_false(question: Question, raw: Any, current: Any, cfg: CodecConfig) -> Any:
    if isinstance(raw, bool):
        return "true" if raw else "false"
    if isinstance(raw, str) and raw.strip().lower() in {"true", "false"}:
        return raw.strip().lower()
    raise AnswerEncodingError(question.id, "expected a boolean choice")


def _encode_short_answer(question: Question, raw: Any, current: Any, cfg: CodecConfig) -> Any:
    if raw is None:
        return ""
    if not isinstance(raw, str):
        raise AnswerEncodingError(question.id, "expected text")
    return raw[: short_answer_limit(question, cfg)]


def _encode_essay(question: Question, raw: Any, current: Any, cfg: CodecConfig) -> Any:
    if raw is None:
        return ""
    if not isinstance(raw, str):
        raise AnswerEncodingError(question.id, "expected text")
    return raw


def _encode_rating_scale(question: Question, raw: Any, current: Any, cfg: CodecConfig) -> Any:
    if isinstance(raw, bool) or not isinstance(raw, (int, float, str)):
        raise AnswerEncodingError(question.id, "expected a rating value")
    num = to_number(raw)
    if math.isnan(num) or (isinstance(raw, str) and raw.strip() == ""):
        raise AnswerEncodingError(question.id, "expected a rating value")
    for allowed in rating_values(question, cfg):
        if math.isclose(float(allowed), num, abs_tol=1e-9):
            return allowed
    raise AnswerEncodingError(question.id, f"rating {to_text(raw)} is not on the scale")


_ENCODERS: Dict[str, Callable[[Question, Any, Any, CodecConfig], Any]] = {
    QuestionType.MULTIPLE_CHOICE: _encode_multiple_choice,
    QuestionType.MULTIPLE_SELECT: _encode_multiple_select,
    QuestionType.TRUE_FALSE: _encode_true_false,
    QuestionType.SHORT_ANSWER: _encode_short_answer,
    QuestionType.ESSAY: _encode_essay,
    QuestionType.RATING_SCALE: _encode_rating_scale,
}


def encode_answer(
    question: Question,
    raw: Any,
    current: Any = None,
    settings: Optional[CodecConfig] = None,
) -> Any:
    """Convert a raw input event into the canonical stored answer.

    `current` is the stored answer before the event; multiple_select toggles
    against it. Raises AnswerEncodingError for input that does not fit the
    question and UnsupportedInputError for review-only or unknown types.
    """
    encoder = _ENCODERS.get(question.type)
    if encoder is None:
        if question.type in QuestionType.REVIEW_ONLY:
            raise UnsupportedInputError(question.id, f"{question.type} questions have no input")
        raise UnsupportedInputError(question.id, f"unsupported question type {question.type!r}")
    return encoder(question, raw, current, _settings(settings))


def default_value(question: Question) -> Any:
    """Value an input widget shows before the question has been answered."""
    if question.type == QuestionType.MULTIPLE_SELECT:
        return []
    if question.type in {QuestionType.SHORT_ANSWER, QuestionType.ESSAY, QuestionType.CODING}:
        return ""
    return None


def _option_text(question: Question, value: Any) -> Optional[str]:
    if is_empty_answer(value):
        return None
    num = to_number(value)
    if math.isnan(num) or not float(num).is_integer():
        return None
    options = question.options
    idx = int(num)
    if not 0 <= idx < len(options):
        return None
    return to_text(options[idx])


def _decode_choice(question: Question, value: Any) -> str:
    return _option_text(question, value) or NO_ANSWER


def _decode_multiple_select(question: Question, value: Any) -> str:
    selected = value if isinstance(value, (list, tuple)) else []
    texts = [t for t in (_option_text(question, i) for i in selected) if t is not None]
    return ", ".join(texts) if texts else NO_ANSWER


def _decode_true_false(question: Question, value: Any) -> str:
    if value == "true":
        return "True"
    if value == "false":
        return "False"
    return NO_ANSWER


def _decode_text(question: Question, value: Any) -> str:
    if is_empty_answer(value):
        return NO_ANSWER
    # Whitespace preserved for essays
    return value if isinstance(value, str) else to_text(value)


def _decode_rating_scale(question: Question, value: Any) -> str:
    if value is None:
        return NO_ANSWER
    return to_text(value)


def _decode_file_upload(question: Question, value: Any) -> str:
    if not isinstance(value, dict) or not value.get("name"):
        return NO_FILE
    size = to_number(value.get("size") or 0)
    kb = 0 if math.isnan(size) else math.floor(size / 1024 + 0.5)
    return f"{value['name']} ({kb} KB)"


def _decode_coding(question: Question, value: Any) -> str:
    if not is_empty_answer(value):
        return value if isinstance(value, str) else to_text(value)
    starter = question.data.get("starter_code")
    return starter if isinstance(starter, str) and starter else NO_ANSWER


_DECODERS: Dict[str, Callable[[Question, Any], str]] = {
    QuestionType.MULTIPLE_CHOICE: _decode_choice,
    QuestionType.MULTIPLE_SELECT: _decode_multiple_select,
    QuestionType.TRUE_FALSE: _decode_true_false,
    QuestionType.SHORT_ANSWER: _decode_text,
    QuestionType.ESSAY: _decode_text,
    QuestionType.RATING_SCALE: _decode_rating_scale,
    QuestionType.LIKERT_SCALE: _decode_choice,
    QuestionType.FILE_UPLOAD: _decode_file_upload,
    QuestionType.CODING: _decode_coding,
}


def decode_for_review(question: Question, value: Any) -> str:
    """Render a stored answer as review text."""
    decoder = _DECODERS.get(question.type)
    if decoder is None:
        return NO_ANSWER
    return decoder(question, value)


__all__ = [
    "NO_ANSWER",
    "NO_FILE",
    "encode_answer",
    "decode_for_review",
    "default_value",
    "rating_values",
    "short_answer_limit",
    "toggle_selection",
]
