"""
The classifier is a remote LLM that suggests an intent for a message.

Its answer is advisory only. Any failure (no API key, network error, timeout,
non-JSON reply) yields None and the resolver falls back to its own patterns.
"""

import asyncio
import json
from typing import Optional

import httpx
from pydantic import BaseModel, Field, ValidationError

from planner import config
from planner.errors import ExternalServiceError
from planner.utils.logging import logger


class ClassifierHint(BaseModel):
    """Parsed classifier answer."""

    action: str = "none"
    data: dict = Field(default_factory=dict)
    reply: Optional[str] = None


class IntentClassifier:
    """
    Asks an OpenRouter-compatible chat completion endpoint to classify a
    message into {action, data, reply}.
    """

    SYSTEM_PROMPT = """You are an AI project management assistant.

Your task:
- Understand the user's intent
- Extract required fields from natural language

REQUIRED FIELDS:
- create_board -> data.title
- add_bucket -> data.title (optional data.board)
- add_task -> data.title (optional data.bucket, data.board)
- add_member -> data.name
- delete -> data.name (optional data.type: board | bucket | task | member)

RULES:
- Respond ONLY in valid JSON
- Never include markdown or explanations
- If the message is none of the above, set action="none" and put a short answer in reply

JSON FORMAT:
{
  "action": "create_board | add_bucket | add_task | add_member | delete | undo | none",
  "data": {},
  "reply": "User-facing response"
}

EXAMPLE:
User: add task login bug to backend
Response:
{"action": "add_task", "data": {"title": "login bug", "bucket": "backend"}, "reply": "Task added."}"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = config.OPENROUTER_API_KEY if api_key is None else api_key
        self.url = url or config.CLASSIFIER_URL
        self.model = model or config.CLASSIFIER_MODEL
        self.timeout = config.CLASSIFIER_TIMEOUT if timeout is None else timeout
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def classify(self, message: str) -> Optional[ClassifierHint]:
        """
        Classify a message.

        Returns:
            ClassifierHint, or None when disabled or on any failure
        """
        if not self.enabled:
            return None

        try:
            content = await asyncio.wait_for(self._complete(message), timeout=self.timeout)
            hint = self._parse(content)
        except asyncio.TimeoutError:
            logger.warning(f"Classifier timed out after {self.timeout}s")
            return None
        except ExternalServiceError as e:
            logger.warning(f"Classifier unavailable: {e}")
            return None

        logger.info(f"Classifier hint: {hint.action} {hint.data}")
        return hint

    async def _complete(self, message: str) -> str:
        """POST the chat completion and return the raw message content."""
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": self.SYSTEM_PROMPT},
                {"role": "user", "content": message},
            ],
            "temperature": 0.1,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "X-Title": "Planner AI",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.url, json=payload, headers=headers)
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"{type(e).__name__}: {e}") from e
        except ValueError as e:
            raise ExternalServiceError(f"Response is not JSON: {e}") from e

        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ExternalServiceError(f"Unexpected response shape: {e}") from e

        if content is None:
            return ""
        if not isinstance(content, str):
            raise ExternalServiceError(
                f"Message content is {type(content).__name__}, expected a string"
            )
        return content

    def _parse(self, content: str) -> ClassifierHint:
        """Parse the model's JSON answer."""
        # Clean response (remove markdown if present)
        content = content.strip()
        if content.startswith("```"):
            content = content.split("```")[1]
            if content.startswith("json"):
                content = content[4:]
        content = content.strip()

        try:
            data = json.loads(content)
            if not isinstance(data, dict):
                raise ValueError("top-level value is not an object")
            return ClassifierHint.model_validate(data)
        except (ValueError, ValidationError) as e:
            raise ExternalServiceError(f"Unparseable classifier content: {e}") from e
