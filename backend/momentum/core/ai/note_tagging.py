"""
Momentum - Note Tagging
=======================

Suggests auto-tag categories for notes with the chat model.
"""

import json
import re
from typing import Any

import structlog

from momentum.core.ai.openai_client import OpenAIClient, OpenAIError
from momentum.core.models import AutoTagCategory
from momentum.core.schemas import NoteTags

logger = structlog.get_logger()


TAGGING_SYSTEM_PROMPT = "You are an AI assistant that analyzes notes and assigns relevant tags."
RELEVANCE_SYSTEM_PROMPT = "You are an AI assistant that analyzes note content and tag relevance."

AUTO_TAG_CATEGORIES = [category.value for category in AutoTagCategory]
MAX_TAGS = 3

_LEADING_NUMBER_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+))")


def _clamp(value: float) -> float:
    return min(1.0, max(0.0, value))


def build_tagging_prompt(content: str) -> str:
    return f"""
Analyze this note and suggest appropriate tags from the following categories:
{', '.join(AUTO_TAG_CATEGORIES)}

Note content:
{content}

Return a JSON object with:
1. tags: array of most relevant tags (max {MAX_TAGS})
2. confidence: number between 0 and 1 indicating confidence in the tags

Example: {{"tags": ["to-do", "priority-context"], "confidence": 0.85}}
"""


def build_relevance_prompt(content: str, tag: str) -> str:
    return f"""
Analyze this note and determine how relevant the tag "{tag}" is on a scale of 0 to 1.

Note content:
{content}

Return a single number between 0 and 1 representing the relevance.
"""


def parse_tags(reply: str) -> NoteTags:
    """Keep known categories only (first three, no repeats) and clamp confidence."""
    result: Any = json.loads(reply)
    if not isinstance(result, dict) or not isinstance(result.get("tags"), list):
        raise ValueError("Tag response has no tags list")

    tags: list[str] = []
    for tag in result["tags"]:
        if tag in AUTO_TAG_CATEGORIES and tag not in tags:
            tags.append(tag)

    try:
        confidence = _clamp(float(result.get("confidence", 0)))
    except (TypeError, ValueError):
        confidence = 0.0

    return NoteTags(tags=tags[:MAX_TAGS], confidence=confidence)


def parse_relevance(reply: str) -> float:
    match = _LEADING_NUMBER_RE.match(reply)
    if not match:
        raise ValueError(f"Not a number: {reply[:50]!r}")
    return _clamp(float(match.group(1)))


async def generate_tags(client: OpenAIClient, content: str) -> NoteTags:
    """Suggested tags for a note; empty with zero confidence on any failure."""
    try:
        reply = await client.chat_completion(
            [
                {"role": "system", "content": TAGGING_SYSTEM_PROMPT},
                {"role": "user", "content": build_tagging_prompt(content)},
            ],
            temperature=0.7,
            max_tokens=2000,
        )
        tags = parse_tags(reply)
    except (OpenAIError, ValueError) as e:
        logger.warning("note_tagging_failed", error=str(e))
        return NoteTags(tags=[], confidence=0)

    logger.debug("note_tags_generated", tags=list(tags.tags), confidence=tags.confidence)
    return tags


async def analyze_tag_relevance(client: OpenAIClient, content: str, tag: str) -> float:
    """How well `tag` fits the note, 0..1; 0 on any failure."""
    try:
        reply = await client.chat_completion(
            [
                {"role": "system", "content": RELEVANCE_SYSTEM_PROMPT},
                {"role": "user", "content": build_relevance_prompt(content, tag)},
            ],
            temperature=0.7,
            max_tokens=2000,
        )
        return parse_relevance(reply)
    except (OpenAIError, ValueError) as e:
        logger.warning("tag_relevance_failed", tag=tag, error=str(e))
        return 0.0
