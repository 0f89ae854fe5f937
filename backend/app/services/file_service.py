"""File hierarchy service: folders, two-phase uploads, deletion and URL resolution."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import File
from app.exceptions import AccessDenied, InvalidOperation, NotFound
from app.services.s3 import s3_service

logger = logging.getLogger(__name__)

FOLDER_TYPE = "folder"


class FileService:
    """Owner-scoped operations on File records."""

    async def list_files(self, db: AsyncSession, user_id: UUID, parent_folder_id: UUID | None = None) -> list[File]:
        """Caller's files directly under parent_folder_id (root when None)."""
        stmt = select(File).where(File.user_id == user_id)
        if parent_folder_id is None:
            stmt = stmt.where(File.parent_folder_id.is_(None))
        else:
            stmt = stmt.where(File.parent_folder_id == parent_folder_id)
        result = await db.execute(stmt.order_by(File.is_folder.desc(), File.name))
        return list(result.scalars())

    async def get(self, db: AsyncSession, user_id: UUID, file_id: UUID) -> File | None:
        """The file if it exists and is owned by user_id, else None."""
        file = await db.get(File, file_id)
        if file is None or file.user_id != user_id:
            return None
        return file

    async def _resolve_parent(
        self, db: AsyncSession, user_id: UUID, parent_folder_id: UUID | None
    ) -> File | None:
        if parent_folder_id is None:
            return None
        parent = await self.get(db, user_id, parent_folder_id)
        if parent is None:
            raise NotFound("Parent folder not found", {"parent_folder_id": str(parent_folder_id)})
        if not parent.is_folder:
            raise InvalidOperation("Parent is not a folder", {"parent_folder_id": str(parent_folder_id)})
        return parent

    @staticmethod
    def _child_path(parent: File | None, name: str) -> str:
        return name if parent is None else f"{parent.path}/{name}"

    async def create_folder(
        self,
        db: AsyncSession,
        user_id: UUID,
        name: str,
        parent_folder_id: UUID | None = None,
        color: str | None = None,
    ) -> File:
        """Insert a folder. Sibling names are not required to be unique."""
        parent = await self._resolve_parent(db, user_id, parent_folder_id)
        folder = File(
            user_id=user_id,
            name=name,
            path=self._child_path(parent, name),
            type=FOLDER_TYPE,
            parent_folder_id=parent_folder_id,
            is_folder=True,
            color=color,
        )
        db.add(folder)
        await db.commit()
        await db.refresh(folder)
        return folder

    async def generate_upload_url(self, user_id: UUID, filename: str, content_type: str) -> dict:
        """
        Step 1 of an upload.

        Returns the presigned POST target (url, fields) and the storage_id the
        client must pass to save_file once the bytes are written.
        """
        storage_id = s3_service.build_file_key(user_id, filename)
        presigned = await s3_service.generate_presigned_upload_url(
            file_key=storage_id,
            content_type=content_type,
        )
        return {
            "upload_url": presigned["url"],
            "fields": presigned["fields"],
            "storage_id": storage_id,
        }

    async def save_file(
        self,
        db: AsyncSession,
        user_id: UUID,
        storage_id: str,
        name: str,
        type: str,
        parent_folder_id: UUID | None = None,
    ) -> File:
        """Step 3 of an upload: register metadata for a blob the caller wrote."""
        # Storage ids are minted under the owner's prefix; anything else is someone else's blob
        if not storage_id.startswith(s3_service.user_prefix(user_id)):
            raise AccessDenied("Storage id does not belong to caller")

        parent = await self._resolve_parent(db, user_id, parent_folder_id)
        file = File(
            user_id=user_id,
            name=name,
            path=self._child_path(parent, name),
            type=type,
            parent_folder_id=parent_folder_id,
            is_folder=False,
            storage_id=storage_id,
        )
        db.add(file)
        await db.commit()
        await db.refresh(file)
        logger.info("Registered file %s (%s) for user %s", file.id, type, user_id)
        return file

    async def delete(self, db: AsyncSession, user_id: UUID, file_id: UUID) -> None:
        """
        Delete exactly one record.

        Children of a deleted folder are left in place and stay reachable by id.
        The blob, if any, is removed before the row.
        """
        file = await self.get(db, user_id, file_id)
        if file is None:
            raise AccessDenied("File not found or access denied", {"file_id": str(file_id)})

        if file.storage_id:
            await s3_service.delete_object(file.storage_id)

        await db.delete(file)
        await db.commit()

    async def resolve_url(self, db: AsyncSession, user_id: UUID, file_id: UUID) -> str | None:
        """Presigned GET URL for an owned, non-folder file with a blob; otherwise None."""
        file = await self.get(db, user_id, file_id)
        if file is None or file.is_folder or not file.storage_id:
            return None
        return await s3_service.generate_presigned_download_url(file.storage_id)


# Singleton instance
file_service = FileService()
