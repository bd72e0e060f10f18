"""
Liftlog Analytics — LLM Client

Thin wrapper over the Gemini generateContent REST endpoint used by the AI
coach chat.
"""
import logging
import time

import requests

from liftlog.coach import build_full_prompt
from liftlog.config import GEMINI_API_KEY, GEMINI_MODEL

logger = logging.getLogger(__name__)

BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"

MAX_RETRIES = 3
RETRY_BACKOFF = 2    # exponential backoff multiplier
MAX_BACKOFF = 10     # seconds
REQUEST_TIMEOUT = 30


class LLMError(Exception):
    """Generation failed."""


class LLMNotConfigured(LLMError):
    """No API key set."""


class LLMAuthError(LLMError):
    """API key rejected (401/403)."""


class LLMRateLimited(LLMError):
    """Still rate-limited (429) after every retry."""


def _backoff(attempt: int) -> float:
    return min(RETRY_BACKOFF ** attempt, MAX_BACKOFF)


def _extract_text(payload: dict) -> str:
    candidates = payload.get("candidates") or []
    if not candidates:
        raise LLMError("Gemini returned no candidates")
    parts = (candidates[0].get("content") or {}).get("parts") or []
    text = "".join(p.get("text", "") for p in parts)
    if not text:
        raise LLMError("Gemini returned an empty response")
    return text


class GeminiClient:
    def __init__(self, api_key: str | None = None, model: str | None = None):
        self.api_key = GEMINI_API_KEY if api_key is None else api_key
        self.model = model or GEMINI_MODEL

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _post(self, prompt: str) -> dict:
        """POST to generateContent with retry on 429, timeouts and 5xx."""
        url = f"{BASE_URL}/{self.model}:generateContent"
        body = {"contents": [{"parts": [{"text": prompt}]}]}
        for attempt in range(1, MAX_RETRIES + 1):
            try:
                r = requests.post(
                    url, params={"key": self.api_key}, json=body, timeout=REQUEST_TIMEOUT,
                )
                if r.status_code == 429:
                    if attempt == MAX_RETRIES:
                        raise LLMRateLimited(
                            f"Gemini rate limit persisted after {MAX_RETRIES} attempts"
                        )
                    wait = _backoff(attempt)
                    logger.warning("Gemini rate limit, retrying in %ss (attempt %d/%d)",
                                   wait, attempt, MAX_RETRIES)
                    time.sleep(wait)
                    continue
                if r.status_code in (401, 403):
                    raise LLMAuthError(f"Gemini rejected the API key ({r.status_code})")
                r.raise_for_status()
                return r.json()
            except requests.exceptions.Timeout as exc:
                if attempt < MAX_RETRIES:
                    logger.warning("Gemini timeout, retrying (attempt %d/%d)", attempt, MAX_RETRIES)
                    time.sleep(_backoff(attempt))
                else:
                    raise LLMError("Gemini request timed out") from exc
            except requests.exceptions.HTTPError as exc:
                if attempt < MAX_RETRIES and r.status_code >= 500:
                    logger.warning("Gemini %s, retrying (attempt %d/%d)",
                                   r.status_code, attempt, MAX_RETRIES)
                    time.sleep(_backoff(attempt))
                else:
                    raise LLMError(f"Gemini request failed: {exc}") from exc
            except requests.exceptions.RequestException as exc:
                raise LLMError(f"Gemini request failed: {exc}") from exc
        raise LLMError(f"Gemini failed after {MAX_RETRIES} attempts")

    def generate(self, system_prompt: str | None, user_message: str) -> str:
        if not self.configured:
            raise LLMNotConfigured("GEMINI_API_KEY is not set")
        payload = self._post(build_full_prompt(system_prompt, user_message))
        return _extract_text(payload)


def generate(system_prompt: str | None, user_message: str) -> str:
    """One-shot generation with the environment's key and model."""
    return GeminiClient().generate(system_prompt, user_message)
