"""
Tests for the generative model client.
"""
import base64
from types import SimpleNamespace

import pytest

from core.errors import LLMError
from core.llm_client import DEMO_NOTE, DEMO_REPORT, GenerativeClient, get_llm_client


class FakeCompletions:
    def __init__(self, content=None, chunks=None, error=None):
        self.content = content
        self.chunks = chunks or []
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        if kwargs.get("stream"):
            return iter(
                SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=c))])
                for c in self.chunks
            )
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))])


def live_client(**kwargs):
    client = GenerativeClient()
    completions = FakeCompletions(**kwargs)
    client.client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return client, completions


class TestDemoMode:
    """Without a key every operation returns canned text."""

    def setup_method(self):
        self.client = GenerativeClient()

    def test_is_demo(self):
        assert self.client.is_demo

    def test_report(self):
        assert self.client.generate_report(b"png") == DEMO_REPORT
        assert self.client.generate_document_report("text") == DEMO_REPORT

    def test_answer_mentions_question(self):
        answer = self.client.answer("Is the heart enlarged?", "report")
        assert "Is the heart enlarged?" in answer
        assert DEMO_NOTE in answer

    def test_answer_stream_reassembles(self):
        chunks = list(self.client.answer_stream("Why?", "report"))
        assert len(chunks) > 1
        assert "".join(chunks).strip() == self.client._demo_answer("Why?").strip()

    def test_triage(self):
        assert "headache" in self.client.triage("headache")


class TestKeyRouting:

    def test_google_key_routes_to_gemini(self):
        from config.settings import GEMINI_MODEL_NAME

        client = GenerativeClient(api_key="AIzaTestKey")
        assert not client.is_demo
        assert client.model_name == GEMINI_MODEL_NAME
        assert "generativelanguage.googleapis.com" in str(client.client.base_url)

    def test_openai_key_ignores_gemini_server_config(self, monkeypatch):
        import config.settings as settings

        monkeypatch.delenv("OPENAI_BASE_URL", raising=False)
        monkeypatch.setattr(settings, "LLM_API_KEY", "AIzaServerKey")
        monkeypatch.setattr(settings, "LLM_BASE_URL", settings.GEMINI_BASE_URL)
        monkeypatch.setattr(settings, "LLM_MODEL_NAME", settings.GEMINI_MODEL_NAME)

        client = GenerativeClient(api_key="sk-user-openai-key")
        assert client.model_name == settings.OPENAI_MODEL_NAME
        assert "api.openai.com" in str(client.client.base_url)

    def test_server_config_used_without_caller_key(self, monkeypatch):
        import config.settings as settings

        monkeypatch.setattr(settings, "LLM_API_KEY", "AIzaServerKey")
        monkeypatch.setattr(settings, "LLM_BASE_URL", settings.GEMINI_BASE_URL)
        monkeypatch.setattr(settings, "LLM_MODEL_NAME", settings.GEMINI_MODEL_NAME)

        client = GenerativeClient()
        assert client.model_name == settings.GEMINI_MODEL_NAME
        assert "generativelanguage.googleapis.com" in str(client.client.base_url)

    def test_shared_client_without_key(self):
        assert get_llm_client() is get_llm_client()

    def test_user_key_gets_own_client(self):
        assert get_llm_client("sk-user") is not get_llm_client()


class TestMessageBuilders:

    def setup_method(self):
        self.client = GenerativeClient()

    def test_report_messages_embed_image(self):
        messages = self.client.build_report_messages(b"\x89PNG", "image/png")
        assert messages[0]["role"] == "system"
        parts = messages[1]["content"]
        assert parts[0]["type"] == "text"
        url = parts[1]["image_url"]["url"]
        assert url == "data:image/png;base64," + base64.b64encode(b"\x89PNG").decode()

    def test_document_messages_include_text(self):
        messages = self.client.build_document_messages("WBC 7.1")
        assert "WBC 7.1" in messages[-1]["content"]

    def test_chat_messages_replay_history(self):
        history = [
            {"role": "user", "text": "What is this?"},
            {"role": "bot", "text": "A chest X-ray."},
        ]
        messages = self.client.build_chat_messages("Anything abnormal?", "Normal chest.", history)
        assert [m["role"] for m in messages] == ["system", "user", "assistant", "user"]
        assert messages[2]["content"] == "A chest X-ray."
        assert "Normal chest." in messages[-1]["content"]
        assert "Anything abnormal?" in messages[-1]["content"]

    def test_symptom_messages(self):
        messages = self.client.build_symptom_messages("fever and cough")
        assert "fever and cough" in messages[-1]["content"]


class TestTransport:

    def test_complete_returns_stripped_content(self):
        client, completions = live_client(content="  Findings: normal.  ")
        assert client.answer("q", "analysis") == "Findings: normal."
        assert completions.calls[0]["model"] == client.model_name

    def test_empty_response_raises(self):
        client, _ = live_client(content="")
        with pytest.raises(LLMError):
            client.generate_document_report("text")

    def test_provider_error_raises(self):
        client, _ = live_client(error=RuntimeError("quota exceeded"))
        with pytest.raises(LLMError, match="quota exceeded") as exc_info:
            client.triage("rash")
        assert exc_info.value.status_code == 502

    def test_stream_yields_content_chunks(self):
        client, _ = live_client(chunks=["The ", None, "lungs ", "are clear."])
        assert list(client.answer_stream("q", "a")) == ["The ", "lungs ", "are clear."]
