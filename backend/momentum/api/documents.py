"""
Momentum - Project Documents API
================================

PDF uploads attached to a project. File metadata lives in the
project's `documents` list; the bytes live in DocumentStorage.
"""

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID, uuid4

import structlog
from fastapi import APIRouter, File, Form, HTTPException, UploadFile, status
from fastapi.responses import FileResponse

from momentum.api.deps import CurrentUser, DbSession, Storage
from momentum.api.projects import get_project_or_404
from momentum.core.config import settings
from momentum.core.models import DocumentCategory, Project
from momentum.core.schemas import (
    DocumentAnalysis,
    DocumentInsights,
    DocumentUpdate,
    MessageResponse,
    ProjectDocument,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/projects/{project_id}/documents", tags=["Documents"])


# ==========================================================================
# Helper Functions
# ==========================================================================

def find_document(project: Project, document_id: str) -> dict[str, Any]:
    """Stored metadata of one document or 404."""
    for doc in project.documents or []:
        if doc.get("id") == document_id:
            return doc
    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Document not found",
    )


def related_documents(documents: list[dict[str, Any]], document_id: str) -> list[dict[str, Any]]:
    """Other documents sharing a tag or the category with `document_id`."""
    target = next((doc for doc in documents if doc.get("id") == document_id), None)
    if target is None:
        return []

    target_tags = set(target.get("tags") or [])
    return [
        doc
        for doc in documents
        if doc.get("id") != document_id
        and (target_tags & set(doc.get("tags") or []) or doc.get("category") == target.get("category"))
    ]


def parse_tags(raw: Optional[str]) -> list[str]:
    """Comma separated form field to a tag list."""
    if not raw:
        return []
    return [tag.strip() for tag in raw.split(",") if tag.strip()]


def require_custom_category(category: DocumentCategory, custom_category: Optional[str]) -> None:
    if category == DocumentCategory.CUSTOM and not (custom_category or "").strip():
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Custom category name is required",
        )


# ==========================================================================
# Documents
# ==========================================================================

@router.post(
    "",
    response_model=ProjectDocument,
    status_code=status.HTTP_201_CREATED,
    summary="Upload document",
    responses={
        201: {"description": "Document stored and attached to the project"},
        401: {"description": "Not authenticated"},
        404: {"description": "Project not found"},
        413: {"description": "File too large"},
        415: {"description": "Unsupported file type"},
        422: {"description": "Validation error"},
    },
)
async def upload_document(
    project_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
    storage: Storage,
    file: UploadFile = File(...),
    title: str = Form(..., min_length=1, max_length=255),
    description: Optional[str] = Form(None),
    category: DocumentCategory = Form(DocumentCategory.SUPPORTING_MATERIALS),
    custom_category: Optional[str] = Form(None, max_length=255),
    tags: Optional[str] = Form(None, description="Comma separated tags"),
) -> ProjectDocument:
    """
    Upload a PDF (max 10 MB by default) and attach it to a project.

    The stored file gets a fresh name; the original name is kept in the
    metadata.
    """
    project = await get_project_or_404(project_id, current_user.id, db)

    if file.content_type not in settings.DOCUMENT_ALLOWED_TYPES:
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail="Only PDF files are allowed",
        )

    content = await file.read()
    if len(content) > settings.DOCUMENT_MAX_SIZE_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File size exceeds {settings.DOCUMENT_MAX_SIZE_BYTES // (1024 * 1024)}MB limit",
        )

    if not title.strip():
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Please provide a title for the document",
        )
    require_custom_category(category, custom_category)

    file_name = file.filename or "document.pdf"
    _, file_url = storage.save(project.id, file_name, content)

    document = ProjectDocument(
        id=str(uuid4()),
        title=title.strip(),
        description=description,
        file_name=file_name,
        file_url=file_url,
        file_type=file.content_type,
        file_size=len(content),
        category=category,
        custom_category=custom_category if category == DocumentCategory.CUSTOM else None,
        uploaded_at=datetime.now(timezone.utc),
        version=1,
        tags=parse_tags(tags),
    )

    # JSON columns only see reassignment
    project.documents = [*(project.documents or []), document.model_dump(mode="json")]
    await db.commit()

    logger.info("document_uploaded", project_id=str(project.id), document_id=document.id, size=len(content))
    return document


@router.get(
    "",
    response_model=list[ProjectDocument],
    summary="List documents",
    responses={
        200: {"description": "Documents in upload order"},
        401: {"description": "Not authenticated"},
        404: {"description": "Project not found"},
    },
)
async def list_documents(
    project_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> list[ProjectDocument]:
    project = await get_project_or_404(project_id, current_user.id, db)
    return [ProjectDocument.model_validate(doc) for doc in project.documents or []]


@router.patch(
    "/{document_id}",
    response_model=ProjectDocument,
    summary="Update document metadata",
    responses={
        200: {"description": "Document updated"},
        401: {"description": "Not authenticated"},
        404: {"description": "Project or document not found"},
        422: {"description": "Validation error"},
    },
)
async def update_document(
    project_id: UUID,
    document_id: str,
    data: DocumentUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> ProjectDocument:
    project = await get_project_or_404(project_id, current_user.id, db)
    current = find_document(project, document_id)

    merged = ProjectDocument.model_validate(
        {**current, **data.model_dump(mode="json", exclude_unset=True)}
    )
    require_custom_category(merged.category, merged.custom_category)
    stored = merged.model_dump(mode="json")

    project.documents = [
        stored if doc.get("id") == document_id else doc
        for doc in project.documents or []
    ]
    await db.commit()

    return merged


@router.delete(
    "/{document_id}",
    response_model=MessageResponse,
    summary="Remove document",
    responses={
        200: {"description": "Document removed"},
        401: {"description": "Not authenticated"},
        404: {"description": "Project or document not found"},
    },
)
async def delete_document(
    project_id: UUID,
    document_id: str,
    current_user: CurrentUser,
    db: DbSession,
    storage: Storage,
) -> MessageResponse:
    """Detach the document; the stored file is removed best effort."""
    project = await get_project_or_404(project_id, current_user.id, db)
    document = find_document(project, document_id)

    project.documents = [
        doc for doc in project.documents or [] if doc.get("id") != document_id
    ]
    await db.commit()

    key = storage.key_from_url(project.id, document.get("file_url") or "")
    if key:
        storage.delete(key)

    logger.info("document_removed", project_id=str(project.id), document_id=document_id)
    return MessageResponse(message="Document removed successfully", success=True)


@router.get(
    "/{document_id}/download",
    summary="Download document",
    response_class=FileResponse,
    responses={
        200: {"description": "File contents"},
        401: {"description": "Not authenticated"},
        404: {"description": "Project, document or file not found"},
    },
)
async def download_document(
    project_id: UUID,
    document_id: str,
    current_user: CurrentUser,
    db: DbSession,
    storage: Storage,
) -> FileResponse:
    project = await get_project_or_404(project_id, current_user.id, db)
    document = find_document(project, document_id)

    key = storage.key_from_url(project.id, document.get("file_url") or "")
    path = storage.path_for(key) if key else None
    if path is None or not path.is_file():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Document file not found",
        )

    return FileResponse(
        path,
        media_type=document.get("file_type") or "application/octet-stream",
        filename=document.get("file_name"),
    )


@router.get(
    "/{document_id}/related",
    response_model=list[ProjectDocument],
    summary="Related documents",
    responses={
        200: {"description": "Documents sharing a tag or the category"},
        401: {"description": "Not authenticated"},
        404: {"description": "Project not found"},
    },
)
async def get_related_documents(
    project_id: UUID,
    document_id: str,
    current_user: CurrentUser,
    db: DbSession,
) -> list[ProjectDocument]:
    project = await get_project_or_404(project_id, current_user.id, db)
    return [
        ProjectDocument.model_validate(doc)
        for doc in related_documents(project.documents or [], document_id)
    ]


@router.post(
    "/{document_id}/analyze",
    response_model=DocumentAnalysis,
    summary="Analyze document",
    responses={
        200: {"description": "Document metadata and insights"},
        401: {"description": "Not authenticated"},
        404: {"description": "Project or document not found"},
    },
)
async def analyze_document(
    project_id: UUID,
    document_id: str,
    current_user: CurrentUser,
    db: DbSession,
) -> DocumentAnalysis:
    """Metadata shell with related documents; content is not read."""
    project = await get_project_or_404(project_id, current_user.id, db)
    document = ProjectDocument.model_validate(find_document(project, document_id))

    return DocumentAnalysis(
        document_id=document.id,
        title=document.title,
        category=document.category,
        insights=DocumentInsights(
            related_documents=[
                ProjectDocument.model_validate(doc)
                for doc in related_documents(project.documents or [], document_id)
            ],
        ),
    )
