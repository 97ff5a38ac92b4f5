"""
Momentum - Note Embeddings
==========================

Embedding storage and semantic search over a user's notes.

Vectors are kept as JSON float arrays (one row per note) and compared
in Python; a user's note collection is small enough to scan.
"""

import re
from typing import Optional
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from momentum.core.ai.openai_client import OpenAIClient, OpenAIError
from momentum.core.models import Note, NoteEmbedding

logger = structlog.get_logger()

MAX_EMBEDDING_CHARS = 8000
MATCH_THRESHOLD = 0.5

_WHITESPACE_RE = re.compile(r"\s+")


def prepare_text(text: str) -> str:
    """Trim, collapse whitespace runs and cap length for the embedding model."""
    return _WHITESPACE_RE.sub(" ", text.strip())[:MAX_EMBEDDING_CHARS]


def cosine_similarity(vec1: list[float], vec2: list[float]) -> float:
    """
    Cosine similarity in [-1, 1].

    Zero vectors compare as 0.
    """
    if len(vec1) != len(vec2):
        raise ValueError(f"Vector dimensions must match: {len(vec1)} != {len(vec2)}")

    dot_product = sum(a * b for a, b in zip(vec1, vec2))
    norm1 = sum(a * a for a in vec1) ** 0.5
    norm2 = sum(b * b for b in vec2) ** 0.5
    if norm1 == 0 or norm2 == 0:
        return 0.0
    return max(-1.0, min(1.0, dot_product / (norm1 * norm2)))


async def generate_embedding(client: OpenAIClient, text: str) -> list[float]:
    return await client.create_embedding(prepare_text(text))


async def store_note_embedding(db: AsyncSession, client: OpenAIClient, note: Note) -> bool:
    """
    Create or replace the embedding of a note and commit it.

    Best effort: skipped without an API key, failures are logged and
    rolled back. Returns whether an embedding was stored.
    """
    if not client.enabled:
        logger.debug("note_embedding_skipped", note_id=str(note.id), reason="not_configured")
        return False

    note_id = note.id
    try:
        vector = await generate_embedding(client, note.content)

        result = await db.execute(
            select(NoteEmbedding).where(NoteEmbedding.note_id == note_id)
        )
        row = result.scalar_one_or_none()
        if row is None:
            db.add(NoteEmbedding(note_id=note_id, embedding=vector))
        else:
            row.embedding = vector
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.error("note_embedding_failed", note_id=str(note_id), error=str(e))
        return False

    logger.info("note_embedding_stored", note_id=str(note_id), dimensions=len(vector))
    return True


async def search_similar_notes(
    db: AsyncSession,
    client: OpenAIClient,
    user_id: UUID,
    query: str,
    limit: int = 5,
    threshold: float = MATCH_THRESHOLD,
    project_id: Optional[UUID] = None,
) -> list[UUID]:
    """
    Ids of the user's notes closest to `query`, best first.

    Never raises: a missing key, no stored embeddings, a database error
    or an upstream failure yields an empty list.
    """
    if not client.enabled or not query.strip():
        return []

    stmt = (
        select(NoteEmbedding.note_id, NoteEmbedding.embedding)
        .join(Note, Note.id == NoteEmbedding.note_id)
        .where(Note.user_id == user_id)
    )
    if project_id is not None:
        stmt = stmt.where(Note.project_id == project_id)
    try:
        rows = (await db.execute(stmt)).all()
    except SQLAlchemyError as e:
        logger.warning("note_search_query_failed", error=str(e))
        return []
    if not rows:
        return []

    try:
        query_vector = await generate_embedding(client, query)
    except OpenAIError as e:
        logger.warning("note_search_embedding_failed", error=str(e))
        return []

    scored = []
    for note_id, vector in rows:
        try:
            similarity = cosine_similarity(query_vector, vector)
        except ValueError:
            logger.warning("note_embedding_dimension_mismatch", note_id=str(note_id))
            continue
        if similarity >= threshold:
            scored.append((similarity, note_id))

    scored.sort(key=lambda item: item[0], reverse=True)
    return [note_id for _, note_id in scored[:limit]]
