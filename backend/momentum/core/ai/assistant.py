"""
Momentum - Assistant Chat
=========================

Conversational assistant. `@Name` mentions pull matching projects and
notes into the system prompt.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

import structlog

from momentum.core.ai.openai_client import OpenAIClient, OpenAIError, OpenAINotConfiguredError
from momentum.core.config import settings
from momentum.core.models import Note, Project

logger = structlog.get_logger()


BASE_CONTEXT = "You are an AI assistant helping with project management."
FAILURE_REPLY = "I'm sorry, I encountered an error while processing your request. Please try again."

MENTION_RE = re.compile(r"@([a-zA-Z0-9_\s]+)")


@dataclass
class Mentions:
    projects: list[Project] = field(default_factory=list)
    notes: list[Note] = field(default_factory=list)


@dataclass
class ChatResult:
    reply: str
    mentions: Mentions
    failed: bool = False


def _resolve(captured: str, candidates: dict[str, Any]) -> Optional[Any]:
    """
    Match a captured mention against known names.

    The capture runs on through following words ("@Site Redesign please"),
    so the longest name that the capture starts with wins.
    """
    text = captured.strip().lower()
    if text in candidates:
        return candidates[text]

    best = None
    for name in sorted(candidates, key=len, reverse=True):
        if name and text.startswith(name) and (len(text) == len(name) or text[len(name)].isspace()):
            best = candidates[name]
            break
    return best


def extract_mentions(text: str, projects: Sequence[Project], notes: Sequence[Note]) -> Mentions:
    """Projects by name and notes by title, case-insensitively, in mention order."""
    project_names = {}
    for project in projects:
        project_names.setdefault(project.name.strip().lower(), project)
    note_titles = {}
    for note in notes:
        if note.title:
            note_titles.setdefault(note.title.strip().lower(), note)

    mentions = Mentions()
    for match in MENTION_RE.finditer(text):
        project = _resolve(match.group(1), project_names)
        if project is not None and project not in mentions.projects:
            mentions.projects.append(project)
        note = _resolve(match.group(1), note_titles)
        if note is not None and note not in mentions.notes:
            mentions.notes.append(note)
    return mentions


def _number(value: float) -> str:
    return f"{value:g}"


def build_system_context(mentions: Mentions) -> str:
    context = BASE_CONTEXT

    if mentions.projects:
        context += "\n\nProject context:"
        for project in mentions.projects:
            context += f'\n- Project "{project.name}": {project.description or "No description"}'
            if project.start_date and project.end_date:
                context += f", Timeline: {project.start_date} to {project.end_date}"
            if project.priority_score:
                context += f", Priority: {_number(project.priority_score)}/10"

    if mentions.notes:
        context += "\n\nNotes context:"
        for note in mentions.notes:
            snippet = note.content[:200] + ("..." if len(note.content) > 200 else "")
            context += f'\n- Note "{note.title or "Untitled"}": {snippet}'

    return context


async def chat(
    client: OpenAIClient,
    message: str,
    history: Sequence[dict[str, str]],
    projects: Sequence[Project],
    notes: Sequence[Note],
) -> ChatResult:
    """
    Answer one message.

    Raises OpenAINotConfiguredError without an API key. Any other
    failure becomes the standard apology with `failed` set.
    """
    if not client.enabled:
        raise OpenAINotConfiguredError()

    mentions = extract_mentions(message, projects, notes)
    messages = [
        {"role": "system", "content": build_system_context(mentions)},
        *({"role": turn["role"], "content": turn["content"]} for turn in history),
        {"role": "user", "content": message},
    ]

    try:
        reply = await client.chat_completion(
            messages,
            model=settings.OPENAI_CHAT_MODEL,
            temperature=0.7,
            max_tokens=2000,
        )
    except OpenAIError as e:
        logger.error("assistant_chat_failed", error=str(e))
        return ChatResult(reply=FAILURE_REPLY, mentions=mentions, failed=True)

    return ChatResult(reply=reply, mentions=mentions)
