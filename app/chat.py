"""
In-memory chat session store for MedScope.ai follow-up questions.
Each session keeps the analysis it was opened for plus the recent messages.
Not persistent; suitable for local/demo use.
"""
import threading
from collections import OrderedDict
from typing import Dict, List, Optional
from uuid import uuid4


class SessionManager:
    def __init__(self, max_history: int = 10, max_sessions: int = 500):
        self._sessions: "OrderedDict[str, Dict]" = OrderedDict()
        self._max_history = max_history
        self._max_sessions = max_sessions
        self._lock = threading.Lock()

    def create_session(self, context: Optional[str] = None) -> str:
        sid = uuid4().hex
        with self._lock:
            self._sessions[sid] = {"context": context, "history": []}
            self._evict()
        return sid

    def exists(self, session_id: Optional[str]) -> bool:
        if not session_id:
            return False
        with self._lock:
            return session_id in self._sessions

    def get_context(self, session_id: str) -> Optional[str]:
        with self._lock:
            session = self._sessions.get(session_id)
            return session["context"] if session else None

    def set_context(self, session_id: str, context: str):
        with self._lock:
            self._ensure(session_id)["context"] = context

    def add_user_message(self, session_id: str, text: str):
        self._add(session_id, "user", text)

    def add_bot_message(self, session_id: str, text: str):
        self._add(session_id, "bot", text)

    def get_history(self, session_id: str) -> List[Dict[str, str]]:
        with self._lock:
            session = self._sessions.get(session_id)
            return list(session["history"]) if session else []

    def _add(self, session_id: str, role: str, text: str):
        with self._lock:
            history = self._ensure(session_id)["history"]
            history.append({"role": role, "text": text})
            if len(history) > self._max_history:
                del history[:-self._max_history]

    def _ensure(self, session_id: str) -> Dict:
        if session_id not in self._sessions:
            self._sessions[session_id] = {"context": None, "history": []}
            self._evict()
        self._sessions.move_to_end(session_id)
        return self._sessions[session_id]

    def _evict(self):
        # Oldest sessions go first
        while len(self._sessions) > self._max_sessions:
            self._sessions.popitem(last=False)


def _build_manager() -> SessionManager:
    from config.settings import CHAT_MAX_HISTORY, CHAT_MAX_SESSIONS
    return SessionManager(max_history=CHAT_MAX_HISTORY, max_sessions=CHAT_MAX_SESSIONS)


# Single shared manager
session_manager = _build_manager()
