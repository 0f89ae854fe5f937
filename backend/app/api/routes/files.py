"""
File hierarchy routes.

Upload flow:
1. POST /files/upload-url -> presigned S3 POST target + storage_id
2. Client uploads the bytes directly to S3
3. POST /files registers the file metadata with that storage_id
"""

from uuid import UUID

from fastapi import APIRouter, status

from app.api.deps import CurrentUser, DbSession, OptionalUser
from app.schemas.files import (
    FileRead,
    FileRegister,
    FileURLResponse,
    FolderCreate,
    UploadURLRequest,
    UploadURLResponse,
)
from app.services import file_service

router = APIRouter(prefix="/files", tags=["files"])


@router.get("/", response_model=list[FileRead] | None)
async def list_files(
    user: OptionalUser,
    db: DbSession,
    parent_folder_id: UUID | None = None,
) -> list[FileRead] | None:
    """Files directly under a folder (root when parent_folder_id is omitted). null when signed out."""
    if user is None:
        return None
    files = await file_service.list_files(db, user.id, parent_folder_id)
    return [FileRead.model_validate(f) for f in files]


@router.post("/folders", response_model=FileRead, status_code=status.HTTP_201_CREATED)
async def create_folder(
    data: FolderCreate,
    user: CurrentUser,
    db: DbSession,
) -> FileRead:
    folder = await file_service.create_folder(
        db, user.id, data.name, parent_folder_id=data.parent_folder_id, color=data.color
    )
    return FileRead.model_validate(folder)


@router.post("/upload-url", response_model=UploadURLResponse)
async def get_upload_url(
    request: UploadURLRequest,
    user: CurrentUser,
) -> UploadURLResponse:
    """Mint a presigned upload target under the caller's storage prefix."""
    target = await file_service.generate_upload_url(user.id, request.filename, request.content_type)
    return UploadURLResponse(**target)


@router.post("/", response_model=FileRead, status_code=status.HTTP_201_CREATED)
async def save_file(
    data: FileRegister,
    user: CurrentUser,
    db: DbSession,
) -> FileRead:
    """Register an uploaded blob as a file."""
    file = await file_service.save_file(
        db,
        user.id,
        storage_id=data.storage_id,
        name=data.name,
        type=data.type,
        parent_folder_id=data.parent_folder_id,
    )
    return FileRead.model_validate(file)


@router.get("/{file_id}", response_model=FileRead | None)
async def get_file(
    file_id: UUID,
    user: OptionalUser,
    db: DbSession,
) -> FileRead | None:
    if user is None:
        return None
    file = await file_service.get(db, user.id, file_id)
    return FileRead.model_validate(file) if file else None


@router.get("/{file_id}/url", response_model=FileURLResponse)
async def get_file_url(
    file_id: UUID,
    user: OptionalUser,
    db: DbSession,
) -> FileURLResponse:
    """Presigned download URL; url is null for folders, blobless files and files you don't own."""
    if user is None:
        return FileURLResponse(url=None)
    return FileURLResponse(url=await file_service.resolve_url(db, user.id, file_id))


@router.delete("/{file_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_file(
    file_id: UUID,
    user: CurrentUser,
    db: DbSession,
) -> None:
    """Delete one file or folder. A folder's children are not deleted."""
    await file_service.delete(db, user.id, file_id)
