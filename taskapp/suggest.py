"""
AI task suggestions.

The model is asked for a JSON object with description, priority, subtasks and
tags. Its answer is either a ParsedSuggestion (the object, returned as is) or
a RawFallback built around the raw text; both are normal results.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Union

import httpx
from openai import OpenAI

from .models import TaskPriority

logger = logging.getLogger(__name__)


class TextGenerator(Protocol):
    def generate(self, prompt: str) -> str: ...


class OpenAITextGenerator:
    """Chat-completions client for OpenAI-compatible APIs."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o",
        base_url: Optional[str] = None,
        timeout_seconds: float = 30.0,
    ):
        self.model = model
        self.client = OpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=httpx.Timeout(timeout_seconds, connect=5.0),
            max_retries=0,
        )

    def generate(self, prompt: str) -> str:
        resp = self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
        )
        content = resp.choices[0].message.content
        return content or ""


def build_prompt(title: str, description: Optional[str] = None) -> str:
    return (
        "Based on the following task, suggest:\n"
        "1. A detailed description (if not provided or needs enhancement)\n"
        "2. Recommended priority (LOW, MEDIUM, or HIGH)\n"
        "3. Suggested subtasks or action items\n"
        "4. Relevant tags\n"
        "\n"
        f"Task Title: {title}\n"
        f"Task Description: {description or 'Not provided'}\n"
        "\n"
        "Provide the response in JSON format with keys: "
        "description, priority, subtasks (array), tags (array)."
    )


@dataclass(frozen=True)
class ParsedSuggestion:
    data: Dict[str, Any]

    def to_payload(self) -> Dict[str, Any]:
        return self.data


@dataclass(frozen=True)
class RawFallback:
    text: str
    priority: str = TaskPriority.MEDIUM.value
    subtasks: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "description": self.text,
            "priority": self.priority,
            "subtasks": list(self.subtasks),
            "tags": list(self.tags),
        }


SuggestionResult = Union[ParsedSuggestion, RawFallback]


def parse_suggestion(text: str) -> SuggestionResult:
    """Only a JSON object counts as parsed; anything else falls back."""
    try:
        data = json.loads(text)
    except ValueError:
        return RawFallback(text=text)
    if not isinstance(data, dict):
        return RawFallback(text=text)
    return ParsedSuggestion(data=data)


def suggest(generator: TextGenerator, title: str, description: Optional[str] = None) -> SuggestionResult:
    text = generator.generate(build_prompt(title, description))
    result = parse_suggestion(text)
    if isinstance(result, RawFallback):
        logger.info("AI suggestion was not JSON, returning raw text (%d chars)", len(text))
    return result
