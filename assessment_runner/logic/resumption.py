"""Selection of the authoritative prior response record.

Response records for an (assessment, job) pair form an append-only log of
submissions. The latest by `submitted_at` wins; ties go to the highest
record id so the choice is deterministic whatever order the data layer
returned them in.
"""

from __future__ import annotations

from datetime import datetime, timezone
import math
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple
import logging

from assessment_runner.models.assessment import ResponseRecord

logger = logging.getLogger(__name__)

# Records without a timestamp sort as if submitted at the epoch
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _id_key(record_id: Any) -> Tuple[int, float, str]:
    """Numeric ids order numerically, other ids after them as text."""
    if record_id is None:
        return (0, 0.0, "")
    text = str(record_id)
    numeric = isinstance(record_id, (int, float)) and not isinstance(record_id, bool)
    try:
        number = float(record_id if numeric else text)
    except (ValueError, OverflowError):
        return (2, 0.0, text)
    # NaN never orders, so "nan" and "inf" ids sort as text
    if not math.isfinite(number):
        return (2, 0.0, text)
    return (1, number, "")


def _sort_key(record: ResponseRecord) -> Tuple[datetime, Tuple[int, float, str]]:
    return (record.submitted_at or _EPOCH, _id_key(record.id))


def select_latest_response(records: Iterable[ResponseRecord]) -> Optional[ResponseRecord]:
    """Return the record with the latest `submitted_at`, or None when empty."""
    items = list(records or [])
    if not items:
        return None
    latest = max(items, key=_sort_key)
    logger.debug(
        "resumption_selected record_id=%s submitted_at=%s candidates=%d",
        latest.id,
        latest.submitted_at,
        len(items),
    )
    return latest


def resume_answers(
    records: Iterable[ResponseRecord],
    answers: Mapping[str, Any] | None,
) -> Optional[Dict[str, Any]]:
    """Return the answers to resume from, or None when nothing should change.

    Resumption only applies while the in-session answer map is still empty;
    the returned map replaces it in full.
    """
    if answers:
        return None
    latest = select_latest_response(records)
    if latest is None:
        return None
    return dict(latest.responses)


__all__ = ["select_latest_response", "resume_answers"]
