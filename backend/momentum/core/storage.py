"""
Momentum - Document Storage
===========================

Uploaded project files on the local filesystem.

Files live under `<root>/documents/<project_id>/<uuid>.<ext>` and are
published at `<public_base_url>/documents/<project_id>/<uuid>.<ext>`.
"""

from pathlib import Path, PurePosixPath
from typing import Optional
from uuid import UUID, uuid4

import structlog

from momentum.core.config import settings

logger = structlog.get_logger()


class DocumentStorage:
    """Stores, locates and deletes project document files."""

    def __init__(
        self,
        root: Optional[str | Path] = None,
        public_base_url: Optional[str] = None,
    ):
        self.root = Path(root or settings.DOCUMENT_STORAGE_DIR)
        self.public_base_url = (public_base_url or settings.DOCUMENT_PUBLIC_BASE_URL).rstrip("/")

    @staticmethod
    def object_key(project_id: UUID, file_name: str) -> str:
        """Fresh storage key that keeps the original extension."""
        ext = PurePosixPath(file_name).suffix.lower() or ".bin"
        return f"documents/{project_id}/{uuid4()}{ext}"

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}/{key}"

    def key_from_url(self, project_id: UUID, file_url: str) -> Optional[str]:
        name = file_url.rstrip("/").split("/")[-1]
        if not name:
            return None
        return f"documents/{project_id}/{name}"

    def path_for(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if not path.is_relative_to(self.root.resolve()):
            raise ValueError(f"Invalid storage key: {key}")
        return path

    def save(self, project_id: UUID, file_name: str, content: bytes) -> tuple[str, str]:
        """Write a file. Returns (key, public url)."""
        key = self.object_key(project_id, file_name)
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)

        logger.info("document_stored", key=key, size=len(content))
        return key, self.public_url(key)

    def delete(self, key: str) -> bool:
        """Remove a file. Missing files are not an error."""
        try:
            self.path_for(key).unlink()
        except FileNotFoundError:
            logger.warning("document_file_missing", key=key)
            return False
        except (OSError, ValueError) as e:
            logger.error("document_delete_failed", key=key, error=str(e))
            return False

        logger.info("document_deleted", key=key)
        return True
