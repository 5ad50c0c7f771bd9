"""Functional test bootstrap for the assessment runner.

Provides assessment and response-record builders shared across modules, and
clears the in-process event buffer around every test so event assertions
only see what the test itself produced.
"""

from __future__ import annotations

import os
from typing import Any, Dict, List

import pytest

# Keep developer overrides out of functional runs
for _key in ("SHORT_ANSWER_MAX_LENGTH", "RATING_MIN", "RATING_MAX", "RATING_STEP", "ASSESSMENT_SEED_PATH", "CORS_ORIGINS"):
    os.environ.pop(_key, None)

from assessment_runner.logic.events import get_buffered_events  # noqa: E402


@pytest.fixture(autouse=True)
def clean_event_buffer():
    get_buffered_events(clear=True)
    yield
    get_buffered_events(clear=True)


@pytest.fixture
def gated_assessment() -> Dict[str, Any]:
    """Required short answer followed by a choice shown once it is answered."""
    return {
        "id": 7,
        "job_id": 3,
        "title": "Screening",
        "questions": [
            {"id": 1, "type": "short_answer", "question": "Your name", "required": True},
            {
                "id": 2,
                "type": "multiple_choice",
                "question": "Preferred team",
                "required": False,
                "conditions": [{"questionId": 1, "operator": "is_not_empty"}],
                "data": {"options": ["Platform", "Product"]},
            },
        ],
    }


@pytest.fixture
def mixed_assessment() -> Dict[str, Any]:
    """One question of every type, with a conditional required follow-up."""
    return {
        "id": 11,
        "job_id": 5,
        "title": "Frontend engineer",
        "description": "Take-home screening",
        "questions": [
            {"id": 1, "type": "multiple_choice", "question": "Seniority", "required": True,
             "data": {"options": ["Junior", "Mid", "Senior"]}},
            {"id": 2, "type": "multiple_select", "question": "Frameworks", "required": True,
             "data": {"options": ["React", "Vue", "Svelte"]}},
            {"id": 3, "type": "true_false", "question": "Remote OK?", "required": True},
            {"id": 4, "type": "short_answer", "question": "City", "data": {"max_length": 10}},
            {"id": 5, "type": "essay", "question": "Tell us about a project"},
            {"id": 6, "type": "rating_scale", "question": "TypeScript comfort",
             "data": {"min_value": 0, "max_value": 10, "step": 2}},
            {"id": 7, "type": "essay", "question": "Why senior?", "required": True,
             "conditions": [{"questionId": 1, "operator": "equals", "value": "2"}]},
            {"id": 8, "type": "likert_scale", "question": "Enjoy pairing",
             "data": {"options": ["Disagree", "Neutral", "Agree"]}},
            {"id": 9, "type": "file_upload", "question": "CV"},
            {"id": 10, "type": "coding", "question": "FizzBuzz", "data": {"starter_code": "def fizz():\n    pass"}},
        ],
    }


@pytest.fixture
def make_records():
    """Build response records for one assessment/job pair, ids 1..n in input order."""

    def _build(assessment_id: Any, job_id: Any, stamps: List[Any]) -> List[Dict[str, Any]]:
        return [
            {
                "id": idx,
                "assessment_id": assessment_id,
                "job_id": job_id,
                "candidate_id": 0,
                "responses": {"1": f"answer from {stamp}"},
                "submitted_at": stamp,
            }
            for idx, stamp in enumerate(stamps, start=1)
        ]

    return _build
