"""
Tests for the in-memory chat session store.
"""
import threading

from app.chat import SessionManager


class TestSessionManager:
    """Test suite for the SessionManager class."""

    def setup_method(self):
        self.manager = SessionManager(max_history=4, max_sessions=3)

    def test_create_session_with_context(self):
        sid = self.manager.create_session("Chest X-ray report")
        assert self.manager.exists(sid)
        assert self.manager.get_context(sid) == "Chest X-ray report"
        assert self.manager.get_history(sid) == []

    def test_unknown_session(self):
        assert not self.manager.exists("missing")
        assert not self.manager.exists(None)
        assert self.manager.get_context("missing") is None
        assert self.manager.get_history("missing") == []

    def test_messages_in_order(self):
        sid = self.manager.create_session()
        self.manager.add_user_message(sid, "What is this?")
        self.manager.add_bot_message(sid, "A knee MRI.")
        assert self.manager.get_history(sid) == [
            {"role": "user", "text": "What is this?"},
            {"role": "bot", "text": "A knee MRI."},
        ]

    def test_history_is_trimmed(self):
        sid = self.manager.create_session()
        for i in range(6):
            self.manager.add_user_message(sid, f"q{i}")
        history = self.manager.get_history(sid)
        assert [m["text"] for m in history] == ["q2", "q3", "q4", "q5"]

    def test_history_is_a_copy(self):
        sid = self.manager.create_session()
        self.manager.get_history(sid).append({"role": "user", "text": "x"})
        assert self.manager.get_history(sid) == []

    def test_set_context_replaces(self):
        sid = self.manager.create_session("old")
        self.manager.set_context(sid, "new")
        assert self.manager.get_context(sid) == "new"

    def test_oldest_session_evicted(self):
        first = self.manager.create_session()
        second = self.manager.create_session()
        self.manager.create_session()
        # Touching the first session makes the second the oldest
        self.manager.add_user_message(first, "still here")
        self.manager.create_session()
        assert self.manager.exists(first)
        assert not self.manager.exists(second)

    def test_readers_wait_for_writers(self):
        """Reads block while another thread holds the store lock."""
        sid = self.manager.create_session("context")
        readers = [
            lambda: self.manager.exists(sid),
            lambda: self.manager.get_context(sid),
            lambda: self.manager.get_history(sid),
        ]
        for read in readers:
            results = []
            worker = threading.Thread(target=lambda: results.append(read()))
            with self.manager._lock:
                worker.start()
                worker.join(timeout=0.2)
                assert worker.is_alive()
            worker.join(timeout=2)
            assert not worker.is_alive()
            assert len(results) == 1

    def test_concurrent_use_keeps_bounds(self):
        errors = []

        def churn():
            try:
                for i in range(200):
                    sid = self.manager.create_session(f"ctx{i}")
                    self.manager.add_user_message(sid, "q")
                    self.manager.get_history(sid)
                    self.manager.exists(sid)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=churn) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert errors == []
        assert len(self.manager._sessions) <= 3
