import base64
import json
import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from config.settings import settings
from schemas.marksheets import AnalysisResult
from services.exceptions import ExtractionFailure
from services.llm.base import ImagePayload, MarksheetExtractor

logger = logging.getLogger(__name__)


EXTRACTION_PROMPT = (
    "Analyze this marksheet image. Extract the student name, subject scores, and calculate totals.\n"
    "Also provide a brief summary and constructive feedback.\n"
    "If the image is not a marksheet, return null values or empty arrays but try to handle it gracefully."
)

# Gemini responseSchema (OpenAPI subset) describing AnalysisResult
RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "studentName": {"type": "STRING", "description": "Name of the student extracted from the document."},
        "subjects": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "subject": {"type": "STRING"},
                    "score": {"type": "NUMBER", "description": "Marks obtained"},
                    "fullMarks": {
                        "type": "NUMBER",
                        "description": "Total possible marks for this subject (default to 100 if unknown)",
                    },
                },
            },
        },
        "totalObtained": {"type": "NUMBER"},
        "totalPossible": {"type": "NUMBER"},
        "percentage": {"type": "NUMBER"},
        "grade": {"type": "STRING", "description": "Overall grade (A, B, C, etc.)"},
        "summary": {"type": "STRING", "description": "A brief 2-sentence summary of performance."},
        "feedback": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "List of 3 constructive feedback points.",
        },
    },
}


# ==========================================================
# [Response parsing]
# ==========================================================
def _candidate_text(data) -> str:
    """Concatenate the text parts of the first candidate ("" for anything unexpected)"""
    if not isinstance(data, dict):
        return ""
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
        return ""
    content = candidates[0].get("content")
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        return ""
    return "".join(
        p["text"] for p in parts
        if isinstance(p, dict) and isinstance(p.get("text"), str)
    )


def _strip_code_fence(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


def parse_analysis(text: str) -> AnalysisResult:
    """JSON text from the model -> AnalysisResult (raises ExtractionFailure)"""
    if not text or not text.strip():
        raise ExtractionFailure("No response from AI")
    try:
        payload = json.loads(_strip_code_fence(text))
    except json.JSONDecodeError as e:
        raise ExtractionFailure(e)
    if not isinstance(payload, dict):
        raise ExtractionFailure(f"Expected a JSON object, got {type(payload).__name__}")
    try:
        return AnalysisResult.model_validate(payload)
    except ValidationError as e:
        raise ExtractionFailure(e)


# ==========================================================
# [Gemini client]
# ==========================================================
class GeminiMarksheetExtractor(MarksheetExtractor):
    """Calls the Gemini generateContent REST endpoint once per image (no retries)"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = settings.GEMINI_API_KEY if api_key is None else api_key
        self.model = model or settings.GEMINI_MODEL
        self.base_url = (base_url or settings.GEMINI_API_BASE_URL).rstrip("/")
        self.timeout = settings.LLM_TIMEOUT if timeout is None else timeout
        self._client = client

    @property
    def url(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def build_body(self, image: ImagePayload) -> dict:
        return {
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {
                            "inlineData": {
                                "mimeType": image.mime_type,
                                "data": base64.b64encode(image.data).decode("ascii"),
                            }
                        },
                        {"text": EXTRACTION_PROMPT},
                    ],
                }
            ],
            "generationConfig": {
                "temperature": settings.LLM_TEMPERATURE,
                "maxOutputTokens": settings.LLM_MAX_TOKENS,
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            },
        }

    async def _post(self, body: dict) -> dict:
        params = {"key": self.api_key}
        if self._client is not None:
            r = await self._client.post(self.url, params=params, json=body)
        else:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout, connect=10.0)) as client:
                r = await client.post(self.url, params=params, json=body)
        r.raise_for_status()
        return r.json()

    async def extract(self, image: ImagePayload) -> AnalysisResult:
        if not self.api_key:
            raise ExtractionFailure("GEMINI_API_KEY is not configured", filename=image.filename)

        try:
            data = await self._post(self.build_body(image))
        except httpx.TimeoutException as e:
            logger.error(f"Gemini request timed out: file={image.filename}")
            raise ExtractionFailure(e, filename=image.filename)
        except httpx.HTTPStatusError as e:
            logger.error(f"Gemini request failed (HTTP {e.response.status_code}): file={image.filename}")
            raise ExtractionFailure(e, filename=image.filename)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Gemini request failed: file={image.filename} error={e}")
            raise ExtractionFailure(e, filename=image.filename)

        text = _candidate_text(data)
        logger.debug(f"Gemini response received: file={image.filename} chars={len(text)}")

        try:
            return parse_analysis(text)
        except ExtractionFailure as e:
            e.filename = image.filename
            raise
