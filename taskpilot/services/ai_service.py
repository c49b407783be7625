import asyncio
from datetime import date, datetime, timedelta
from typing import Optional

from google import genai

from taskpilot.models import SuggestionRequest

import logging

logger = logging.getLogger(__name__)

PROMPT_REQUIREMENTS = """
Requirements:
- Keep it under 100 characters
- Be specific and actionable
- Include helpful tips or reminders if relevant
- Use emojis sparingly (1-2 max)
- Don't repeat the task name
- Focus on HOW or WHEN to do it

Examples:
Task: "Buy milk" → "Pick up 2% from Safeway on the way home"
Task: "Doctor appointment" → "Bring insurance card, arrive 10 min early"
Task: "Pick up kids" → "School dismissal at 3:15 PM, remember jackets"

Your description:"""


def describe_due_date(due_date: datetime | date, today: Optional[date] = None) -> str:
    """``Today``, ``Tomorrow`` or a short month/day like ``Oct 19``."""
    today = today or date.today()
    due = due_date.date() if isinstance(due_date, datetime) else due_date

    if due == today:
        return "Today"
    if due == today + timedelta(days=1):
        return "Tomorrow"
    return f"{due:%b} {due.day}"


def build_prompt(
    task_name: str,
    assigned_to_name: Optional[str] = None,
    due_date: Optional[datetime] = None,
    tags: Optional[list[str]] = None,
    family_context: Optional[str] = None,
    today: Optional[date] = None,
) -> str:
    prompt = (
        "You are a helpful family task assistant. "
        "Generate a concise, actionable description for this task.\n\n"
        f'Task: "{task_name}"'
    )

    if assigned_to_name:
        prompt += f"\nAssigned to: {assigned_to_name}"
    if due_date:
        prompt += f"\nDue: {describe_due_date(due_date, today)}"
    if tags:
        prompt += f"\nTags: {', '.join(tags)}"
    if family_context:
        prompt += f"\n\nFamily context:\n{family_context}"

    return prompt + "\n" + PROMPT_REQUIREMENTS


class SuggestionService:
    """
    Gemini-backed task description generator.

    Never raises: a missing key, an API error or a timeout all return None so
    the calling request carries on without a suggestion.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gemini-2.0-flash",
        timeout_seconds: float = 10.0,
        client: Optional[genai.Client] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.timeout_seconds = timeout_seconds
        self._client = client

    @property
    def enabled(self) -> bool:
        return self._client is not None or bool(self.api_key)

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def generate_task_description(
        self,
        task_name: str,
        assigned_to_name: Optional[str] = None,
        due_date: Optional[datetime] = None,
        tags: Optional[list[str]] = None,
        family_context: Optional[str] = None,
    ) -> Optional[str]:
        if not self.enabled:
            logger.warning("GEMINI_API_KEY not configured, skipping AI generation")
            return None

        prompt = build_prompt(task_name, assigned_to_name, due_date, tags, family_context)
        logger.info(f"Requesting AI description for task: {task_name}")

        try:
            response = await asyncio.wait_for(
                self.client.aio.models.generate_content(model=self.model, contents=prompt),
                timeout=self.timeout_seconds,
            )
            description = (response.text or "").strip()
        except asyncio.TimeoutError:
            logger.warning(f"AI description timed out after {self.timeout_seconds}s")
            return None
        except Exception as e:
            logger.error(f"Error generating AI description: {e}")
            return None

        if not description:
            return None

        logger.debug(f"AI description generated: {description[:50]}")
        return description

    async def generate_batch_descriptions(
        self, requests: list[SuggestionRequest], family_context: Optional[str] = None
    ) -> list[Optional[str]]:
        return await asyncio.gather(
            *(
                self.generate_task_description(
                    req.task_name,
                    assigned_to_name=req.assigned_to_name,
                    due_date=req.due_date,
                    tags=req.tags,
                    family_context=family_context,
                )
                for req in requests
            )
        )
