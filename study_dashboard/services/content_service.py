"""Client for the external content-generation service (Gemini REST API).

Two calls are offered: an exam of multiple-choice general-knowledge
questions, and a free-text study summary for a module title. Every failure
is raised as ``ContentServiceError`` carrying a message that can be shown
to the user as-is.
"""

import json
import time
from typing import List, Optional

import httpx
from pydantic import ValidationError

from study_dashboard.config import Settings, settings
from study_dashboard.logging_config import get_logger, log_with_context
from study_dashboard.models import ExamQuestion

logger = get_logger("content")

EXAM_PROMPT = """Create a general-knowledge practice exam with {count} multiple-choice questions.
Cover a mix of history, science, geography, literature and art.
Each question has exactly 4 options and exactly one correct option.
Answer with a JSON array only. Every element must have the fields
"question" (string), "options" (array of 4 strings) and
"correct_answer" (string, identical to one of the options)."""

MODULE_PROMPT = """Write a concise study summary for the module "{title}".
Use plain text only, no markdown.
Start each section with a short heading line that ends with a colon.
Write key points as lines that start with the bullet character "•".
Write explanations as full sentences ending with a period."""


class ContentServiceError(Exception):
    """Raised when the content service cannot produce a usable result."""


class ContentService:
    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        base_url: str,
        timeout: float = 60.0,
        question_count: int = 10,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.question_count = question_count
        self._client = client

    @classmethod
    def from_settings(cls, config: Settings = settings, client: Optional[httpx.AsyncClient] = None) -> "ContentService":
        return cls(
            api_key=config.GEMINI_API_KEY,
            model=config.GEMINI_MODEL,
            base_url=config.GEMINI_BASE_URL,
            timeout=config.CONTENT_SERVICE_TIMEOUT,
            question_count=config.EXAM_QUESTION_COUNT,
            client=client,
        )

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def generate_exam(self) -> List[ExamQuestion]:
        raw = await self._generate(EXAM_PROMPT.format(count=self.question_count), json_response=True)
        questions = parse_exam_questions(raw)
        log_with_context(logger, "INFO", f"Exam generated with {len(questions)} questions",
                         extra_data={"questions": len(questions)})
        return questions

    async def generate_module_content(self, title: str) -> str:
        text = await self._generate(MODULE_PROMPT.format(title=title))
        log_with_context(logger, "INFO", "Module content generated",
                         context={"module_title": title}, extra_data={"length": len(text)})
        return text

    async def _post(self, payload: dict) -> httpx.Response:
        headers = {"x-goog-api-key": self.api_key or ""}
        if self._client is not None:
            return await self._client.post(self.endpoint, json=payload, headers=headers, timeout=self.timeout)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(self.endpoint, json=payload, headers=headers)

    async def _generate(self, prompt: str, json_response: bool = False) -> str:
        if not self.api_key:
            raise ContentServiceError("The content service is not configured: GEMINI_API_KEY is missing.")

        payload = {"contents": [{"parts": [{"text": prompt}]}]}
        if json_response:
            payload["generationConfig"] = {"responseMimeType": "application/json"}

        start_time = time.time()
        try:
            response = await self._post(payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            log_with_context(logger, "WARNING", "Content service returned an error status",
                             extra_data={"status_code": exc.response.status_code})
            raise ContentServiceError(
                f"The content service returned HTTP {exc.response.status_code}. Please try again."
            ) from exc
        except httpx.HTTPError as exc:
            log_with_context(logger, "WARNING", f"Content service unreachable: {exc!r}")
            raise ContentServiceError("Could not reach the content service. Please try again.") from exc

        duration_ms = (time.time() - start_time) * 1000
        log_with_context(logger, "DEBUG", "Content service call completed",
                         extra_data={"duration_ms": round(duration_ms, 2), "model": self.model})

        text = extract_text(response)
        if not text.strip():
            raise ContentServiceError("The content service returned an empty response.")
        return text


def extract_text(response: httpx.Response) -> str:
    """Join the text parts of the first candidate of a generateContent reply."""
    try:
        data = response.json()
        parts = data["candidates"][0]["content"]["parts"]
        return "".join(part.get("text", "") for part in parts)
    except (ValueError, KeyError, IndexError, TypeError) as exc:
        raise ContentServiceError("The content service returned an unexpected response.") from exc


def _strip_code_fence(raw: str) -> str:
    text = raw.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


def parse_exam_questions(raw: str) -> List[ExamQuestion]:
    """Parse the exam JSON; questions whose answer is not one of their
    options are dropped."""
    try:
        data = json.loads(_strip_code_fence(raw))
    except ValueError as exc:
        raise ContentServiceError("The generated exam could not be read.") from exc

    if isinstance(data, dict):
        data = data.get("questions", [])
    if not isinstance(data, list):
        raise ContentServiceError("The generated exam could not be read.")

    questions = []
    for item in data:
        try:
            question = ExamQuestion.model_validate(item)
        except ValidationError:
            continue
        if question.correct_answer not in question.options:
            continue
        questions.append(question)

    if len(questions) < len(data):
        log_with_context(logger, "WARNING", "Dropped malformed exam questions",
                         extra_data={"received": len(data), "kept": len(questions)})
    if not questions:
        raise ContentServiceError("The generated exam contained no usable questions.")
    return questions
