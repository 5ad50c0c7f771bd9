"""In-process registry of live assessment sessions.

Sessions are discarded with the process; nothing is persisted across restarts.
One registry lives on the FastAPI app state so tests can build isolated apps.
"""

from __future__ import annotations

from typing import Dict, Optional
import logging

from assessment_runner.logic.session import AssessmentSession

logger = logging.getLogger(__name__)


class SessionRegistry:
    def __init__(self) -> None:
        self._sessions: Dict[str, AssessmentSession] = {}

    def register(self, session: AssessmentSession) -> AssessmentSession:
        self._sessions[session.session_id] = session
        logger.info("session_registered session_id=%s state=%s", session.session_id, session.state)
        return session

    def get(self, session_id: str) -> Optional[AssessmentSession]:
        return self._sessions.get(str(session_id))

    def discard(self, session_id: str) -> None:
        self._sessions.pop(str(session_id), None)

    def __len__(self) -> int:
        return len(self._sessions)


__all__ = ["SessionRegistry"]
