"""
Gemini-backed connection note generator.

Given the operator's prompt and a profile URL, asks Gemini for a short note
plus a summary of the person's interests. Any failure raises GenerationError;
the workflow engine owns the fallback.
"""
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

import google.generativeai as genai

from autoconnect.config import settings
from autoconnect.services.message_service import clean_message
from autoconnect.workflow.errors import GenerationError
from autoconnect.workflow.state import Profile

logger = logging.getLogger("autoconnect")


@dataclass
class GeneratedMessage:
    message: str
    interests: Optional[Any] = None


class GeminiMessageGenerator:
    """Writes LinkedIn connection notes with gemini-2.5-flash-lite by default."""

    PROMPT_TEMPLATE = """You write LinkedIn connection request notes.

INSTRUCTIONS FROM THE SENDER:
{prompt}

RECIPIENT:
Profile URL: {canonical_url}
Name: {name}
Headline: {title}
Company: {company}
Location: {location}

RULES:
- At most {max_chars} characters.
- Plain text, no hashtags, no placeholders like [Name].
- Address the recipient by first name.

RESPOND WITH JSON ONLY, in exactly this shape:
{{"message": "<the note>", "interests": "<one line on what this person cares about>"}}"""

    def __init__(
        self,
        api_key: str = settings.gemini_api_key,
        model_name: str = settings.gemini_model,
        timeout: float = settings.generation_timeout,
    ):
        self.api_key = api_key
        self.timeout = timeout
        self.model = None
        if api_key:
            genai.configure(api_key=api_key)
            self.model = genai.GenerativeModel(model_name)

    def generate(
        self, prompt: str, canonical_url: str, profile: Optional[Profile] = None
    ) -> GeneratedMessage:
        if self.model is None:
            raise GenerationError("GEMINI_API_KEY is not configured")

        request = self.PROMPT_TEMPLATE.format(
            prompt=prompt,
            canonical_url=canonical_url or "(unknown)",
            name=profile.name if profile else "(unknown)",
            title=(profile.title if profile else "") or "(not available)",
            company=(profile.company if profile else "") or "(not available)",
            location=(profile.location if profile else "") or "(not available)",
            max_chars=settings.connection_note_max_chars,
        )

        try:
            logger.debug(f"Requesting connection note from Gemini for {canonical_url}")
            response = self.model.generate_content(
                request, request_options={"timeout": self.timeout}
            )
            text = response.text
        except Exception as e:
            raise GenerationError(f"Gemini request failed: {e}") from e

        return parse_generation(text)


def parse_generation(text: str) -> GeneratedMessage:
    """Parse the model's JSON reply; anything unusable raises GenerationError."""
    body = (text or "").strip()
    fenced = re.match(r"^```(?:json)?\s*(.*?)\s*```$", body, re.S)
    if fenced:
        body = fenced.group(1)

    try:
        data = json.loads(body)
    except json.JSONDecodeError as e:
        raise GenerationError(f"Malformed generation response: {e}") from e

    if not isinstance(data, dict):
        raise GenerationError("Generation response is not an object")
    message = data.get("message")
    if not isinstance(message, str) or not message.strip():
        raise GenerationError("Generation response has no message")

    return GeneratedMessage(message=clean_message(message), interests=data.get("interests"))
