import json
import logging

import requests

from errors import CollaboratorFailure, CollaboratorQuotaExceeded

logger = logging.getLogger(__name__)

OLLAMA_URL = "http://localhost:11434/api/generate"

QUOTA_STATUS_CODES = {402, 429}
QUOTA_HINTS = ("quota", "rate limit", "billing", "insufficient")


def build_prompt(instruction: str, context) -> str:
    return (
        f"{instruction}\n\n"
        "Contexto (JSON):\n"
        f"{json.dumps(context, ensure_ascii=False, indent=2)}"
    )


class OllamaClient:
    """
    Natural-language renderer: phrases numbers it is given, never computes them.
    """

    def __init__(
        self,
        url: str = OLLAMA_URL,
        model: str = "mistral:7b-instruct",
        timeout: float = 30.0,
        temperature: float = 0.2,
        session=None,
    ):
        self.url = url
        self.model = model
        self.timeout = timeout
        self.temperature = temperature
        self.session = session or requests.Session()

    def call_llm(self, prompt: str, temperature: float | None = None) -> str:
        payload = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": self.temperature if temperature is None else temperature
            }
        }

        try:
            response = self.session.post(self.url, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            raise CollaboratorFailure(f"LLM request failed: {exc}") from exc

        if response.status_code in QUOTA_STATUS_CODES:
            raise CollaboratorQuotaExceeded(f"LLM quota exhausted ({response.status_code})")

        if response.status_code >= 400:
            body = response.text[:200]
            if any(hint in body.lower() for hint in QUOTA_HINTS):
                raise CollaboratorQuotaExceeded(f"LLM quota exhausted: {body}")
            raise CollaboratorFailure(f"LLM returned {response.status_code}: {body}")

        try:
            text = response.json()["response"]
        except (ValueError, KeyError, TypeError) as exc:
            raise CollaboratorFailure("LLM response is not in the expected format") from exc

        if not text or not text.strip():
            raise CollaboratorFailure("LLM returned an empty response")

        return text.strip()

    def render(self, instruction: str, context) -> str:
        logger.debug("Rendering with %s", self.model)
        return self.call_llm(build_prompt(instruction, context))
