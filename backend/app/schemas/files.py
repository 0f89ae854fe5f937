"""File and folder schemas."""

from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.base import BaseSchema, OwnedRecordMixin


# Request schemas
class FolderCreate(BaseSchema):
    """Create a folder, at the root when parent_folder_id is omitted."""

    name: str = Field(..., min_length=1, max_length=255)
    parent_folder_id: UUID | None = None
    color: str | None = Field(None, max_length=32)


class UploadURLRequest(BaseSchema):
    """Step 1 of an upload: ask for a write destination."""

    filename: str = Field(..., min_length=1, max_length=255)
    content_type: str = Field("application/octet-stream", min_length=1, max_length=255)


class FileRegister(BaseSchema):
    """Step 3 of an upload: register the blob the client wrote."""

    storage_id: str = Field(..., min_length=1, max_length=1024)
    name: str = Field(..., min_length=1, max_length=255)
    type: str = Field(..., min_length=1, max_length=255)
    parent_folder_id: UUID | None = None


# Response schemas
class UploadURLResponse(BaseModel):
    """Presigned POST target plus the opaque storage id to register afterwards."""

    upload_url: str
    fields: dict
    storage_id: str


class FileRead(BaseSchema, OwnedRecordMixin):
    """File or folder record."""

    name: str
    path: str
    type: str
    parent_folder_id: UUID | None = None
    is_folder: bool
    color: str | None = None
    storage_id: str | None = None


class FileURLResponse(BaseModel):
    url: str | None
