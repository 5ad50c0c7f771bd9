"""Before/after comparison of the visible question list.

Used after each answer change to tell the caller which questions appeared,
which disappeared, and which of the disappeared ones still hold a stored
answer (those answers are kept, just no longer shown or required).
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, List

from assessment_runner.models.response_types import VisibilityDelta


def _question_id(item: Any) -> str | None:
    """Accept a Question or a bare id; blank ids are dropped."""
    raw = getattr(item, "id", item)
    if raw is None:
        return None
    text = str(raw).strip()
    return text or None


def _ordered_ids(items: Iterable[Any]) -> List[str]:
    return [qid for qid in map(_question_id, items) if qid]


def compute_visibility_delta(
    pre_visible: Iterable[Any],
    post_visible: Iterable[Any],
    has_answer: Callable[[str], bool],
) -> tuple[VisibilityDelta, List[str]]:
    """Diff two visible lists.

    Returns the delta (ids only in `post_visible`, ids only in
    `pre_visible`) and the newly hidden ids for which `has_answer` is true.
    All lists keep display order.
    """
    before = _ordered_ids(pre_visible)
    after = _ordered_ids(post_visible)
    seen_before, seen_after = set(before), set(after)
    appeared = [qid for qid in after if qid not in seen_before]
    gone = [qid for qid in before if qid not in seen_after]
    suppressed = [qid for qid in gone if has_answer(qid)]
    return VisibilityDelta(now_visible=appeared, now_hidden=gone), suppressed


__all__ = ["compute_visibility_delta"]
