"""Per-conversation state: current diagram, its lineage, and the message log."""
from __future__ import annotations

import asyncio
import logging
import threading
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Literal, Optional

from modelmind.models.decision import AnalysisType, DiagramIntent, DiagramType
from modelmind.utils.config import settings

logger = logging.getLogger(__name__)

Role = Literal["user", "assistant"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ConversationMessage:
    role: Role
    content: str
    timestamp: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {"role": self.role, "content": self.content, "timestamp": self.timestamp.isoformat()}


@dataclass
class DiagramMetadata:
    version: int
    created_at: datetime
    last_modified: datetime
    history: Deque[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "createdAt": self.created_at.isoformat(),
            "lastModified": self.last_modified.isoformat(),
            "history": list(self.history),
        }


class SessionContext:
    """Mutable state owned by a single conversation.

    Callers serialise turns per session (see ``SessionStore.lock_for``); the
    object itself takes no locks.
    """

    def __init__(self, session_id: Optional[str] = None, history_limit: Optional[int] = None) -> None:
        self.session_id = session_id or str(uuid.uuid4())
        self.history_limit = history_limit or settings.diagram_history_limit
        now = _utcnow()
        self.current_diagram = ""
        self.diagram_metadata = DiagramMetadata(
            version=1,
            created_at=now,
            last_modified=now,
            history=deque(maxlen=self.history_limit),
        )
        self.messages: List[ConversationMessage] = []
        self.last_intent: Optional[DiagramIntent] = None
        self.last_diagram_type: Optional[DiagramType] = None
        self.last_analysis_type: Optional[AnalysisType] = None

    def update_diagram(self, text: str, intent: Optional[DiagramIntent | str] = None) -> bool:
        """Store ``text`` as the current diagram. Returns False when unchanged."""
        if text == self.current_diagram:
            return False
        now = _utcnow()
        meta = self.diagram_metadata
        if intent == DiagramIntent.GENERATE:
            meta.version = 1
            meta.created_at = now
        else:
            meta.version += 1
        meta.history.append(text)
        meta.last_modified = now
        self.current_diagram = text
        logger.debug("Diagram updated", extra={"session_id": self.session_id, "version": meta.version})
        return True

    def add_message(self, role: Role, content: str) -> ConversationMessage:
        if role not in ("user", "assistant"):
            raise ValueError(f"Unsupported message role: {role}")
        message = ConversationMessage(role=role, content=content)
        self.messages.append(message)
        return message

    def get_conversation_history(self, limit: Optional[int] = None) -> List[ConversationMessage]:
        if limit is None:
            return list(self.messages)
        if limit <= 0:
            return []
        return self.messages[-limit:]

    def get_formatted_history(self, limit: Optional[int] = None) -> str:
        return "\n".join(f"{m.role}: {m.content}" for m in self.get_conversation_history(limit))

    def get_current_diagram(self) -> str:
        return self.current_diagram

    def get_diagram_metadata(self) -> DiagramMetadata:
        return self.diagram_metadata

    def set_last_intent(self, intent: Optional[DiagramIntent]) -> None:
        self.last_intent = intent

    def set_last_diagram_type(self, diagram_type: Optional[DiagramType]) -> None:
        self.last_diagram_type = diagram_type

    def set_last_analysis_type(self, analysis_type: Optional[AnalysisType]) -> None:
        self.last_analysis_type = analysis_type

    def reset_diagram(self) -> None:
        now = _utcnow()
        self.current_diagram = ""
        self.diagram_metadata = DiagramMetadata(
            version=0,
            created_at=now,
            last_modified=now,
            history=deque(maxlen=self.history_limit),
        )
        logger.debug("Diagram reset", extra={"session_id": self.session_id})

    def clear_conversation(self) -> None:
        self.messages.clear()
        logger.debug("Conversation cleared", extra={"session_id": self.session_id})

    def get_complete_context(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "currentDiagram": self.current_diagram,
            "diagramMetadata": self.diagram_metadata.to_dict(),
            "messages": [m.to_dict() for m in self.messages],
            "lastIntent": self.last_intent.value if self.last_intent else None,
            "lastDiagramType": self.last_diagram_type.value if self.last_diagram_type else None,
            "lastAnalysisType": self.last_analysis_type.value if self.last_analysis_type else None,
        }

    # Narrow views handed to each handler.

    def get_generator_context(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "conversationHistory": [m.to_dict() for m in self.get_conversation_history(5)],
            "lastIntent": self.last_intent.value if self.last_intent else None,
        }

    def get_modifier_context(self) -> Dict[str, Any]:
        return {
            "currentDiagram": self.current_diagram,
            "diagramVersion": self.diagram_metadata.version,
            "lastModified": self.diagram_metadata.last_modified.isoformat(),
            "conversationHistory": [m.to_dict() for m in self.get_conversation_history(3)],
        }

    def get_analyzer_context(self) -> Dict[str, Any]:
        return {
            "currentDiagram": self.current_diagram,
            "diagramVersion": self.diagram_metadata.version,
            "diagramType": self.last_diagram_type.value if self.last_diagram_type else None,
            "lastIntent": self.last_intent.value if self.last_intent else None,
        }


class SessionStore:
    """In-memory sessions keyed by id, with one asyncio lock per session."""

    def __init__(self, history_limit: Optional[int] = None) -> None:
        self._history_limit = history_limit
        self._sessions: Dict[str, SessionContext] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._guard = threading.Lock()

    def create(self, session_id: Optional[str] = None) -> SessionContext:
        session = SessionContext(session_id=session_id, history_limit=self._history_limit)
        with self._guard:
            if session.session_id in self._sessions:
                raise ValueError(f"Session already exists: {session.session_id}")
            self._sessions[session.session_id] = session
        logger.info("Session created", extra={"session_id": session.session_id})
        return session

    def get(self, session_id: str) -> Optional[SessionContext]:
        with self._guard:
            return self._sessions.get(session_id)

    def get_or_create(self, session_id: Optional[str] = None) -> SessionContext:
        with self._guard:
            if session_id and session_id in self._sessions:
                return self._sessions[session_id]
            session = SessionContext(session_id=session_id, history_limit=self._history_limit)
            self._sessions[session.session_id] = session
        logger.info("Session created", extra={"session_id": session.session_id})
        return session

    def delete(self, session_id: str) -> bool:
        with self._guard:
            self._locks.pop(session_id, None)
            return self._sessions.pop(session_id, None) is not None

    def lock_for(self, session_id: str) -> asyncio.Lock:
        with self._guard:
            lock = self._locks.get(session_id)
            if lock is None:
                lock = asyncio.Lock()
                self._locks[session_id] = lock
            return lock

    def __len__(self) -> int:
        with self._guard:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._guard:
            return session_id in self._sessions
