"""Assessment runner: conditional visibility, required-answer gating, answer
encoding and resumption for candidate assessment sessions.

Business logic lives in `assessment_runner/logic/`, payload and output models
in `assessment_runner/models/`, and the HTTP surface in
`assessment_runner/routes/`. `create_app` builds the FastAPI application.
"""

from __future__ import annotations

from assessment_runner.main import create_app

__all__ = ["create_app"]
