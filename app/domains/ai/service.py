"""AI task extraction with Google Gemini integration."""

import asyncio
import json
import logging
import re
from typing import Any

import google.generativeai as genai
from pydantic import ValidationError as SchemaValidationError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from app.core.config import Settings, settings
from app.exceptions.ai import (
    AIContentFilterError,
    AIParsingError,
    AIRateLimitError,
    AIServiceError,
    AIServiceUnavailableError,
    AITimeoutError,
    map_ai_error,
)
from app.schemas.project import ExtractedTasks
from app.schemas.task import TaskDraft, TaskStatus

logger = logging.getLogger(__name__)

EXTRACT_TASKS_PROMPT = """Analyze the following business plan and:

1. Summarize the core goal of the project in one sentence.
2. Extract the immediately actionable items as a JSON task list.

Each task must contain:
- content: a short, action-oriented title starting with a verb
- desc: a detailed description of what has to be done
- status: "TODO" for every new task
- is_ai_generated: true
- order: a sequence number starting at 0

Answer with exactly this JSON shape and nothing else:
{
  "summary": "One sentence project summary",
  "tasks": [
    {
      "content": "Set up development environment",
      "desc": "Install tooling, configure the IDE, clone the repository",
      "status": "TODO",
      "is_ai_generated": true,
      "order": 0
    }
  ]
}

Document:
"""

# (keywords, content, description) used when no API key is configured
KEYWORD_TASKS: list[tuple[tuple[str, ...], str, str]] = [
    (("design",), "Build design system", "Define the UI component library and design guidelines"),
    (
        ("develop", "code"),
        "Set up development environment",
        "Initial project setup, dependency installation and repository layout",
    ),
    (("test",), "Write test plan", "Plan unit, integration and user testing"),
    (("deploy",), "Build deployment pipeline", "Configure CI/CD and the deployment environments"),
]

DEFAULT_TASKS: list[tuple[str, str]] = [
    ("Define project requirements", "Document core features, user stories and technical specs"),
    ("Implement MVP features", "Build the core features of the minimum viable product"),
    ("Collect user feedback", "Run a beta test and analyze user feedback"),
]

_CODE_FENCE = re.compile(r"```(?:json)?\s*")
MAX_CONTENT_LENGTH = 500


def _draft_from_item(raw: Any, index: int) -> TaskDraft | None:
    """Build a draft from one extracted item, or None when it is unusable."""
    if not isinstance(raw, dict):
        return None
    content = raw.get("content")
    if content is None:
        content = "New Task"
    if not isinstance(content, str):
        return None
    content = content.strip()[:MAX_CONTENT_LENGTH].strip() or "New Task"
    description = raw.get("desc") or raw.get("description") or ""
    if not isinstance(description, str):
        description = ""
    order = raw.get("order")
    try:
        return TaskDraft(
            content=content,
            description=description,
            status=TaskStatus.TODO,
            is_ai_generated=True,
            order=order if isinstance(order, int) and not isinstance(order, bool) and order >= 0 else index,
        )
    except SchemaValidationError:
        return None


class TaskExtractionService:
    """Turns a project document into a summary and a list of task drafts."""

    def __init__(self, config: Settings | None = None):
        self.config = config or settings
        self.model = None
        if self.config.has_ai_enabled:
            self._initialize_client()

    def _initialize_client(self) -> None:
        """Initialize Google Gemini client."""
        genai.configure(api_key=self.config.gemini_api_key)
        self.model = genai.GenerativeModel(
            model_name=self.config.gemini_model,
            generation_config=genai.types.GenerationConfig(
                candidate_count=1,
                max_output_tokens=self.config.gemini_max_tokens,
                temperature=0.4,
            ),
        )
        logger.info("Gemini client initialized with model %s", self.config.gemini_model)

    async def extract_tasks(self, document_text: str) -> ExtractedTasks:
        """Extract a summary and task drafts from ``document_text``.

        Without an API key a deterministic keyword-based extraction is used.
        """
        if self.model is None:
            logger.warning("Gemini API key not configured, using keyword extraction")
            return self.keyword_extraction(document_text)

        try:
            response = await asyncio.wait_for(
                self._generate_content_with_retry(EXTRACT_TASKS_PROMPT + document_text),
                timeout=self.config.ai_request_timeout,
            )
        except TimeoutError:
            raise AITimeoutError("AI request timed out") from None

        result = self.parse_response(response)
        logger.info("Extracted %d tasks from document", len(result.tasks))
        return result

    async def _generate_content_with_retry(self, prompt: str) -> str:
        """Generate content with exponential backoff on rate limits and outages."""
        retrying = AsyncRetrying(
            retry=retry_if_exception_type((AIRateLimitError, AIServiceUnavailableError)),
            stop=stop_after_attempt(self.config.ai_max_retry_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._generate_content_async(prompt)
        raise AIServiceError("AI generation was not attempted")

    async def _generate_content_async(self, prompt: str) -> str:
        """Generate content using Gemini API asynchronously."""
        try:
            # The SDK call is blocking, run it in the default executor
            loop = asyncio.get_running_loop()
            response = await loop.run_in_executor(None, lambda: self.model.generate_content(prompt))
        except Exception as e:
            logger.error("Gemini API call failed: %s", str(e))
            raise map_ai_error(e) from e

        if not response or not getattr(response, "candidates", None):
            raise AIContentFilterError()

        try:
            # The SDK raises ValueError when every candidate was blocked
            text = response.text
        except ValueError as e:
            raise AIContentFilterError(f"AI response has no text: {e}") from e
        if not text or not text.strip():
            raise AIServiceError("AI returned empty text response")
        return text

    @staticmethod
    def parse_response(response: str) -> ExtractedTasks:
        """Parse the model's JSON answer into task drafts."""
        cleaned = _CODE_FENCE.sub("", response).strip()
        try:
            data = json.loads(cleaned)
        except json.JSONDecodeError as e:
            logger.error("Failed to parse extraction JSON: %s", str(e))
            raise AIParsingError(f"Invalid JSON response: {str(e)}") from e

        if not isinstance(data, dict) or not data.get("summary") or not isinstance(data.get("tasks"), list):
            raise AIParsingError("Invalid AI response structure")

        tasks = []
        for index, raw in enumerate(data["tasks"]):
            draft = _draft_from_item(raw, index)
            if draft is None:
                logger.warning("Skipping malformed extracted task at position %d", index)
                continue
            tasks.append(draft)
        if data["tasks"] and not tasks:
            raise AIParsingError("No usable tasks in AI response")
        return ExtractedTasks(summary=str(data["summary"])[:500], tasks=tasks)

    @staticmethod
    def keyword_extraction(document_text: str) -> ExtractedTasks:
        """Deterministic extraction based on a few keywords."""
        text = document_text.lower()
        found: list[dict[str, Any]] = [
            {"content": content, "description": description}
            for keywords, content, description in KEYWORD_TASKS
            if any(keyword in text for keyword in keywords)
        ]
        if not found:
            found = [{"content": c, "description": d} for c, d in DEFAULT_TASKS]

        tasks = [
            TaskDraft(status=TaskStatus.TODO, is_ai_generated=True, order=index, **fields)
            for index, fields in enumerate(found)
        ]
        summary = (
            "Business project plan (AI analysis complete)"
            if len(document_text) > 100
            else "New project initialized"
        )
        return ExtractedTasks(summary=summary, tasks=tasks)
