"""
MedScope.ai - Generative Model Client
Narrative reports, follow-up chat and symptom triage via OpenAI-compatible APIs (Gemini, OpenAI).
"""
import base64
import logging
import time
from typing import Dict, Iterator, List, Optional

from core.errors import LLMError

logger = logging.getLogger(__name__)

GOOGLE_KEY_PREFIX = "AIza"

DEMO_NOTE = (
    "*(Note: This is a simulated response because no API key was found. "
    "To enable real AI reasoning, please configure `GEMINI_API_KEY` or `OPENAI_API_KEY`.)*"
)

DEMO_REPORT = (
    "**1. Image Type & Region (Demo Mode)**\n"
    "Frontal chest radiograph.\n\n"
    "**2. Key Findings**\n"
    "- Lungs: clear lung fields without consolidation, pneumothorax, or masses.\n"
    "- Heart: cardiac silhouette within normal limits.\n"
    "- Bones: no acute osseous abnormality.\n\n"
    "**3. Diagnostic Assessment**\n"
    "No acute cardiopulmonary abnormality.\n\n"
    "**4. Patient-Friendly Explanation**\n"
    "The picture of your chest looks normal. Please review it with your doctor.\n\n"
    + DEMO_NOTE
)


class GenerativeClient:
    """
    Chat-completions client for any OpenAI-compatible endpoint.
    Runs in demo mode, returning canned text, when no API key is configured.
    """

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None,
                 model_name: Optional[str] = None):
        from config.settings import (
            GEMINI_BASE_URL, GEMINI_MODEL_NAME, LLM_API_KEY, LLM_BASE_URL,
            LLM_MAX_NEW_TOKENS, LLM_MODEL_NAME, LLM_TEMPERATURE, LLM_TIMEOUT,
            MEDICAL_SYSTEM_PROMPT, OPENAI_MODEL_NAME,
        )
        import openai

        if api_key:
            # A caller-supplied key picks its own provider; server routing does not apply
            if api_key.startswith(GOOGLE_KEY_PREFIX):
                base_url = base_url or GEMINI_BASE_URL
                model_name = model_name or GEMINI_MODEL_NAME
            else:
                model_name = model_name or OPENAI_MODEL_NAME
        else:
            api_key = LLM_API_KEY
            base_url = base_url or LLM_BASE_URL
            model_name = model_name or LLM_MODEL_NAME

        if not api_key:
            logger.warning("No API key found for the generative model. Running in demo mode.")
            self.client = None
        else:
            # base_url None means the OpenAI default endpoint
            self.client = openai.OpenAI(
                api_key=api_key,
                base_url=base_url,
                timeout=LLM_TIMEOUT,
            )

        self.model_name = model_name
        self.max_tokens = LLM_MAX_NEW_TOKENS
        self.temperature = LLM_TEMPERATURE
        self.system_prompt = MEDICAL_SYSTEM_PROMPT

    @property
    def is_demo(self) -> bool:
        return self.client is None

    # ── Message builders ────────────────────────────────────────────────────

    def build_report_messages(self, image_bytes: bytes, mime_type: str) -> List[Dict]:
        from config.settings import REPORT_PROMPT

        data_url = f"data:{mime_type};base64,{base64.b64encode(image_bytes).decode('ascii')}"
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": [
                {"type": "text", "text": REPORT_PROMPT},
                {"type": "image_url", "image_url": {"url": data_url}},
            ]},
        ]

    def build_document_messages(self, text: str) -> List[Dict]:
        from config.settings import DOCUMENT_REPORT_PROMPT

        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": DOCUMENT_REPORT_PROMPT.format(text=text)},
        ]

    def build_chat_messages(self, question: str, analysis: str,
                            history: Optional[List[Dict[str, str]]] = None) -> List[Dict]:
        """System prompt, prior turns, then the question framed by the analysis."""
        from config.settings import CHAT_PROMPT

        messages = [{"role": "system", "content": self.system_prompt}]
        for msg in history or []:
            role = "user" if msg.get("role") == "user" else "assistant"
            messages.append({"role": role, "content": msg.get("text", "")})
        messages.append({
            "role": "user",
            "content": CHAT_PROMPT.format(analysis=analysis or "No analysis available.", question=question),
        })
        return messages

    def build_symptom_messages(self, symptoms: str) -> List[Dict]:
        from config.settings import SYMPTOM_PROMPT

        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": SYMPTOM_PROMPT.format(symptoms=symptoms)},
        ]

    # ── High-level operations ───────────────────────────────────────────────

    def generate_report(self, image_bytes: bytes, mime_type: str = "image/png") -> str:
        if self.is_demo:
            return DEMO_REPORT
        return self.complete(self.build_report_messages(image_bytes, mime_type))

    def generate_document_report(self, text: str) -> str:
        if self.is_demo:
            return DEMO_REPORT
        return self.complete(self.build_document_messages(text))

    def answer(self, question: str, analysis: str,
               history: Optional[List[Dict[str, str]]] = None) -> str:
        if self.is_demo:
            return self._demo_answer(question)
        return self.complete(self.build_chat_messages(question, analysis, history))

    def answer_stream(self, question: str, analysis: str,
                      history: Optional[List[Dict[str, str]]] = None) -> Iterator[str]:
        if self.is_demo:
            # Simulate token streaming
            for word in self._demo_answer(question).split(" "):
                yield word + " "
                time.sleep(0.02)
            return
        yield from self.complete_stream(self.build_chat_messages(question, analysis, history))

    def triage(self, symptoms: str) -> str:
        if self.is_demo:
            return (
                "**Symptom Triage (Demo Mode):**\n\n"
                f"- Reported symptoms: {symptoms}\n"
                "- Possible conditions cannot be assessed without a configured model.\n"
                "- If symptoms are severe or worsening, consult a doctor promptly.\n\n"
                + DEMO_NOTE
            )
        return self.complete(self.build_symptom_messages(symptoms))

    # ── Transport ───────────────────────────────────────────────────────────

    def complete(self, messages: List[Dict]) -> str:
        try:
            response = self.client.chat.completions.create(
                model=self.model_name,
                messages=messages,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except Exception as e:
            logger.error(f"API Generation Error: {e}")
            raise LLMError(f"Error communicating with AI provider: {e}") from e

        if not response.choices or not response.choices[0].message.content:
            raise LLMError("AI provider returned an empty response")
        return response.choices[0].message.content.strip()

    def complete_stream(self, messages: List[Dict]) -> Iterator[str]:
        try:
            stream = self.client.chat.completions.create(
                model=self.model_name,
                messages=messages,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                stream=True,
            )
            for chunk in stream:
                if chunk.choices and chunk.choices[0].delta.content:
                    yield chunk.choices[0].delta.content
        except Exception as e:
            logger.error(f"API Stream Error: {e}")
            raise LLMError(f"Error communicating with AI provider: {e}") from e

    @staticmethod
    def _demo_answer(question: str) -> str:
        return (
            "**Follow-up (Demo Mode):**\n\n"
            f"Regarding \"{question}\": in a deployment with an API key, this answer would be "
            "grounded in the report above. For specific medical advice, please consult a professional.\n\n"
            + DEMO_NOTE
        )


_default_client: Optional[GenerativeClient] = None


def get_llm_client(api_key: Optional[str] = None) -> GenerativeClient:
    """
    Shared client for server-configured keys; a fresh one for a caller-supplied key.
    """
    global _default_client
    if api_key:
        return GenerativeClient(api_key=api_key)
    if _default_client is None:
        _default_client = GenerativeClient()
    return _default_client


def reset_llm_client():
    global _default_client
    _default_client = None
