import requests
import logging
from typing import Any, Dict, Optional
from ..errors import ProviderError
from ..config import get_gemini_key, get_gemini_model

logger = logging.getLogger(__name__)

BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiClient:
    """Single-shot text generation against the Gemini REST API."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, timeout: float = 30):
        self.api_key = api_key or get_gemini_key()
        self.model = model or get_gemini_model()
        self.timeout = timeout

    def generate(self, prompt: str, response_schema: Optional[Dict[str, Any]] = None) -> str:
        """
        Send prompt and return the reply text.
        With response_schema set, asks for JSON output matching it.
        """
        if not self.api_key:
            raise ProviderError(
                "GEMINI_API_KEY is missing or invalid. "
                "Please add it to your .env file.",
                {"retryable": False},
            )

        body: Dict[str, Any] = {"contents": [{"parts": [{"text": prompt}]}]}
        if response_schema is not None:
            body["generationConfig"] = {
                "responseMimeType": "application/json",
                "responseSchema": response_schema,
            }

        url = f"{BASE_URL}/models/{self.model}:generateContent"
        logger.info(f"Sending request to Gemini ({self.model})")
        try:
            resp = requests.post(url, params={"key": self.api_key}, json=body, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as e:
            logger.error(f"Gemini request failed: {e}")
            raise ProviderError(f"Failed to analyze text: {e}")
        except ValueError as e:
            raise ProviderError(f"Gemini returned non-JSON body: {e}")

        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            logger.error(f"Unexpected Gemini reply shape: {str(data)[:200]}")
            raise ProviderError("Gemini reply contained no text")

        logger.debug(f"Raw Gemini reply: {text}")
        return text
