"""
Momentum - Notes API
====================

Note CRUD, combined text/semantic search and AI tag suggestions.
Embeddings are refreshed after every content write.
"""

from typing import Optional
from uuid import UUID

import structlog
from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from momentum.api.deps import CurrentUser, DbSession, OpenAI
from momentum.api.projects import get_project_or_404
from momentum.core.ai.embeddings import search_similar_notes, store_note_embedding
from momentum.core.ai.note_tagging import analyze_tag_relevance, generate_tags
from momentum.core.models import AutoTagCategory, Note, NoteEmbedding
from momentum.core.schemas import (
    MessageResponse,
    NoteCreate,
    NoteResponse,
    NoteTags,
    NoteUpdate,
    TagRelevance,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/notes", tags=["Notes"])


# ==========================================================================
# Helper Functions
# ==========================================================================

async def get_note_or_404(
    note_id: UUID,
    current_user_id: UUID,
    db: AsyncSession,
) -> Note:
    """Get note by ID or raise 404."""
    result = await db.execute(
        select(Note).where(
            Note.id == note_id,
            Note.user_id == current_user_id,
        )
    )
    note = result.scalar_one_or_none()

    if not note:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Note not found",
        )

    return note


# ==========================================================================
# Search
# ==========================================================================

@router.get(
    "/search",
    response_model=list[NoteResponse],
    summary="Search notes",
    responses={
        200: {"description": "Text matches first, then semantic matches"},
        401: {"description": "Not authenticated"},
    },
)
async def search_notes(
    current_user: CurrentUser,
    db: DbSession,
    client: OpenAI,
    q: str = Query(..., min_length=1, description="Search text"),
    project_id: Optional[UUID] = Query(None, description="Restrict to a project"),
    limit: int = Query(5, ge=1, le=50, description="Maximum semantic matches"),
) -> list[NoteResponse]:
    """
    Case-insensitive substring search on content, followed by notes
    whose embeddings are close to the query.
    """
    query = select(Note).where(
        Note.user_id == current_user.id,
        Note.content.ilike(f"%{q}%"),
    )
    if project_id:
        query = query.where(Note.project_id == project_id)
    query = query.order_by(Note.created_at.desc())

    notes = list((await db.execute(query)).scalars().all())
    seen = {note.id for note in notes}

    similar_ids = await search_similar_notes(
        db, client, current_user.id, q, limit=limit, project_id=project_id
    )
    extra_ids = [note_id for note_id in similar_ids if note_id not in seen]
    if extra_ids:
        result = await db.execute(
            select(Note).where(Note.id.in_(extra_ids), Note.user_id == current_user.id)
        )
        by_id = {note.id: note for note in result.scalars().all()}
        notes.extend(by_id[note_id] for note_id in extra_ids if note_id in by_id)

    logger.debug("notes_searched", text_matches=len(seen), semantic_matches=len(extra_ids))
    return [NoteResponse.model_validate(n) for n in notes]


# ==========================================================================
# Note CRUD
# ==========================================================================

@router.get(
    "",
    response_model=list[NoteResponse],
    summary="List notes",
    responses={
        200: {"description": "Notes, newest first"},
        401: {"description": "Not authenticated"},
    },
)
async def list_notes(
    current_user: CurrentUser,
    db: DbSession,
    project_id: Optional[UUID] = Query(None, description="Filter by project"),
) -> list[NoteResponse]:
    query = select(Note).where(Note.user_id == current_user.id)
    if project_id:
        query = query.where(Note.project_id == project_id)
    query = query.order_by(Note.created_at.desc())

    result = await db.execute(query)
    return [NoteResponse.model_validate(n) for n in result.scalars().all()]


@router.get(
    "/{note_id}",
    response_model=NoteResponse,
    summary="Get note",
    responses={
        200: {"description": "Note details"},
        401: {"description": "Not authenticated"},
        404: {"description": "Note not found"},
    },
)
async def get_note(
    note_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> NoteResponse:
    note = await get_note_or_404(note_id, current_user.id, db)
    return NoteResponse.model_validate(note)


@router.post(
    "",
    response_model=NoteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create note",
    responses={
        201: {"description": "Note created"},
        401: {"description": "Not authenticated"},
        404: {"description": "Project not found"},
    },
)
async def create_note(
    data: NoteCreate,
    current_user: CurrentUser,
    db: DbSession,
    client: OpenAI,
) -> NoteResponse:
    if data.project_id is not None:
        await get_project_or_404(data.project_id, current_user.id, db)

    note = Note(
        user_id=current_user.id,
        project_id=data.project_id,
        title=data.title,
        content=data.content,
        tags=[tag.value for tag in data.tags],
    )
    db.add(note)
    await db.commit()

    await store_note_embedding(db, client, note)
    await db.refresh(note)

    logger.info("note_created", note_id=str(note.id))
    return NoteResponse.model_validate(note)


@router.patch(
    "/{note_id}",
    response_model=NoteResponse,
    summary="Update note",
    responses={
        200: {"description": "Note updated"},
        401: {"description": "Not authenticated"},
        404: {"description": "Note or project not found"},
    },
)
async def update_note(
    note_id: UUID,
    data: NoteUpdate,
    current_user: CurrentUser,
    db: DbSession,
    client: OpenAI,
) -> NoteResponse:
    note = await get_note_or_404(note_id, current_user.id, db)

    update_data = data.model_dump(exclude_unset=True)
    if update_data.get("project_id") is not None:
        await get_project_or_404(update_data["project_id"], current_user.id, db)
    if "tags" in update_data:
        update_data["tags"] = [tag.value for tag in data.tags or []]

    for field, value in update_data.items():
        setattr(note, field, value)

    await db.commit()

    if "content" in update_data:
        await store_note_embedding(db, client, note)
    await db.refresh(note)

    return NoteResponse.model_validate(note)


@router.delete(
    "/{note_id}",
    response_model=MessageResponse,
    summary="Delete note",
    responses={
        200: {"description": "Note deleted"},
        401: {"description": "Not authenticated"},
        404: {"description": "Note not found"},
    },
)
async def delete_note(
    note_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> MessageResponse:
    note = await get_note_or_404(note_id, current_user.id, db)

    await db.execute(delete(NoteEmbedding).where(NoteEmbedding.note_id == note.id))
    await db.delete(note)
    await db.commit()

    return MessageResponse(message="Note deleted successfully", success=True)


# ==========================================================================
# Tagging
# ==========================================================================

@router.post(
    "/{note_id}/tags",
    response_model=NoteTags,
    summary="Suggest tags",
    responses={
        200: {"description": "Suggested tags; empty when the model is unavailable"},
        401: {"description": "Not authenticated"},
        404: {"description": "Note not found"},
    },
)
async def suggest_tags(
    note_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
    client: OpenAI,
    save: bool = Query(False, description="Replace the note's tags with the suggestion"),
) -> NoteTags:
    note = await get_note_or_404(note_id, current_user.id, db)

    suggestion = await generate_tags(client, note.content)

    if save and suggestion.tags:
        note.tags = [tag.value for tag in suggestion.tags]
        await db.commit()
        logger.info("note_tags_saved", note_id=str(note_id), tags=note.tags)

    return suggestion


@router.get(
    "/{note_id}/tags/{tag}/relevance",
    response_model=TagRelevance,
    summary="Score a tag",
    responses={
        200: {"description": "Relevance between 0 and 1"},
        401: {"description": "Not authenticated"},
        404: {"description": "Note not found"},
    },
)
async def tag_relevance(
    note_id: UUID,
    tag: AutoTagCategory,
    current_user: CurrentUser,
    db: DbSession,
    client: OpenAI,
) -> TagRelevance:
    note = await get_note_or_404(note_id, current_user.id, db)

    relevance = await analyze_tag_relevance(client, note.content, tag.value)
    return TagRelevance(tag=tag, relevance=relevance)
