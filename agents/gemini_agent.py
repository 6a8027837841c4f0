# agents/gemini_agent.py
import logging
from typing import Any, Dict, Optional

import httpx

from errors import AiServiceError
from settings import GEMINI_API_KEY, GEMINI_API_URL, GEMINI_MODEL, GEMINI_TIMEOUT_SECONDS

logger = logging.getLogger("agents.gemini")

# The fallback values named here are the defaults ParserAgent applies for missing keys.
EXTRACTION_PROMPT = """Analysiere diese Rechnung und extrahiere die folgenden Informationen.
Antworte NUR mit einem gültigen JSON-Objekt in diesem exakten Format (ohne zusätzlichen Text oder Markdown):
{
  "invoiceNumber": "die Rechnungsnummer",
  "vendor": "Name der Firma oder des Anbieters",
  "amount": "Gesamtbetrag als Zahl (nur Ziffern und Punkt, z.B. 150.50)",
  "date": "Rechnungsdatum im Format YYYY-MM-DD",
  "description": "kurze Beschreibung der Leistungen oder Produkte"
}

Wenn eine Information nicht gefunden wird, nutze diese Werte:
- invoiceNumber: "Unbekannt"
- vendor: "Unbekannt"
- amount: "0"
- date: aktuelles Datum
- description: "Keine Beschreibung"
"""


class GeminiAgent:
    """
    GeminiAgent
    - Sends a base64 encoded invoice image plus the extraction prompt to the Gemini
      generateContent endpoint
    - Returns the first candidate's first text part, untouched
    - Every failure surfaces as AiServiceError
    """

    def __init__(
        self,
        api_key: str = GEMINI_API_KEY,
        api_url: str = GEMINI_API_URL,
        model: str = GEMINI_MODEL,
        timeout: float = GEMINI_TIMEOUT_SECONDS,
    ):
        self.id = "gemini-agent"
        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self.model = model
        self.timeout = timeout

    @property
    def endpoint(self) -> str:
        return f"{self.api_url}/{self.model}:generateContent"

    def build_request(self, base64_image: str, mime_type: str) -> Dict[str, Any]:
        return {
            "contents": [
                {
                    "parts": [
                        {"text": EXTRACTION_PROMPT},
                        {"inline_data": {"mime_type": mime_type, "data": base64_image}},
                    ]
                }
            ]
        }

    @staticmethod
    def first_candidate_text(result: Any) -> Optional[str]:
        try:
            text = result["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            return None
        return text if isinstance(text, str) else None

    def extract_invoice_data(self, base64_image: str, mime_type: str = "image/jpeg") -> str:
        if not base64_image:
            raise AiServiceError("Base64 image data is empty")

        headers = {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}
        try:
            with httpx.Client(timeout=self.timeout) as client:
                r = client.post(self.endpoint, json=self.build_request(base64_image, mime_type), headers=headers)
        except httpx.HTTPError as e:
            logger.warning("Gemini request failed: %s", e)
            raise AiServiceError(f"Gemini API request failed: {e}") from e

        if r.status_code == 429:
            raise AiServiceError("Gemini API rate limit exceeded. Please try again later")
        if r.status_code in (401, 403):
            raise AiServiceError("Invalid Gemini API key or unauthorized access")
        if r.is_error:
            raise AiServiceError(f"Gemini API error: {r.text}")

        try:
            result = r.json()
        except ValueError as e:
            raise AiServiceError(f"Gemini API returned a non-JSON body: {e}") from e

        text = self.first_candidate_text(result)
        if text is None:
            raise AiServiceError("No valid response received from Gemini AI")
        return text
