"""Tests for the file hierarchy: folders, uploads, deletion and URL resolution."""

import io
from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest
from botocore.exceptions import ClientError

from app.exceptions import AccessDenied, InvalidOperation, NotFound
from app.services.file_service import file_service
from app.services.s3 import StorageError, s3_service
from conftest import auth_headers


async def _upload(db, user, name="notes.pdf", parent_folder_id=None):
    storage_id = s3_service.build_file_key(user.id, name)
    return await file_service.save_file(
        db, user.id, storage_id=storage_id, name=name, type="application/pdf", parent_folder_id=parent_folder_id
    )


class TestFolders:

    async def test_create_folder_at_root(self, db, user):
        folder = await file_service.create_folder(db, user.id, "Biology", color="#00ff00")
        assert folder.is_folder
        assert folder.type == "folder"
        assert folder.storage_id is None
        assert folder.path == "Biology"
        assert folder.parent_folder_id is None

    async def test_nested_path(self, db, user):
        parent = await file_service.create_folder(db, user.id, "Biology")
        child = await file_service.create_folder(db, user.id, "Cells", parent_folder_id=parent.id)
        assert child.path == "Biology/Cells"

    async def test_duplicate_names_allowed(self, db, user):
        await file_service.create_folder(db, user.id, "Same")
        await file_service.create_folder(db, user.id, "Same")
        names = [f.name for f in await file_service.list_files(db, user.id)]
        assert names == ["Same", "Same"]

    async def test_parent_owned_by_someone_else_rejected(self, db, user, other_user):
        theirs = await file_service.create_folder(db, other_user.id, "Private")
        with pytest.raises(NotFound):
            await file_service.create_folder(db, user.id, "Sneaky", parent_folder_id=theirs.id)

    async def test_parent_must_be_folder(self, db, user, mock_s3):
        file = await _upload(db, user)
        with pytest.raises(InvalidOperation):
            await file_service.create_folder(db, user.id, "Inside a file", parent_folder_id=file.id)


class TestListing:

    async def test_list_by_parent(self, db, user, mock_s3):
        folder = await file_service.create_folder(db, user.id, "Math")
        await _upload(db, user, "root.pdf")
        await _upload(db, user, "inner.pdf", parent_folder_id=folder.id)

        root_names = {f.name for f in await file_service.list_files(db, user.id)}
        inner_names = {f.name for f in await file_service.list_files(db, user.id, folder.id)}
        assert root_names == {"Math", "root.pdf"}
        assert inner_names == {"inner.pdf"}

    async def test_list_scoped_to_owner(self, db, user, other_user):
        await file_service.create_folder(db, other_user.id, "Theirs")
        assert await file_service.list_files(db, user.id) == []


class TestUpload:

    async def test_generate_upload_url_uses_caller_prefix(self, user, mock_s3):
        target = await file_service.generate_upload_url(user.id, "lecture 1.pdf", "application/pdf")
        assert target["upload_url"] == "https://s3.test/upload"
        assert target["storage_id"].startswith(f"users/{user.id}/files/")
        assert " " not in target["storage_id"]

    async def test_save_file_rejects_foreign_storage_id(self, db, user, other_user):
        foreign = s3_service.build_file_key(other_user.id, "stolen.pdf")
        with pytest.raises(AccessDenied):
            await file_service.save_file(db, user.id, storage_id=foreign, name="stolen.pdf", type="application/pdf")


class TestDelete:

    async def test_delete_removes_exactly_one_record(self, db, user, mock_s3):
        folder = await file_service.create_folder(db, user.id, "Folder")
        keep = await _upload(db, user, "keep.pdf", parent_folder_id=folder.id)
        gone = await _upload(db, user, "gone.pdf", parent_folder_id=folder.id)

        await file_service.delete(db, user.id, gone.id)

        remaining = await file_service.list_files(db, user.id, folder.id)
        assert [f.id for f in remaining] == [keep.id]
        mock_s3["delete_object"].assert_awaited_once_with(gone.storage_id)

    async def test_deleting_folder_keeps_children(self, db, user, mock_s3):
        folder = await file_service.create_folder(db, user.id, "Folder")
        child = await _upload(db, user, "child.pdf", parent_folder_id=folder.id)

        await file_service.delete(db, user.id, folder.id)

        assert await file_service.get(db, user.id, folder.id) is None
        orphan = await file_service.get(db, user.id, child.id)
        assert orphan is not None
        assert orphan.parent_folder_id == folder.id
        mock_s3["delete_object"].assert_not_awaited()

    async def test_delete_not_owned(self, db, user, other_user):
        theirs = await file_service.create_folder(db, other_user.id, "Theirs")
        with pytest.raises(AccessDenied):
            await file_service.delete(db, user.id, theirs.id)

    async def test_delete_missing(self, db, user):
        with pytest.raises(AccessDenied):
            await file_service.delete(db, user.id, uuid4())


class TestResolveUrl:

    async def test_owned_file(self, db, user, mock_s3):
        file = await _upload(db, user)
        assert await file_service.resolve_url(db, user.id, file.id) == "https://s3.test/download"

    async def test_folder_is_none(self, db, user, mock_s3):
        folder = await file_service.create_folder(db, user.id, "Folder")
        assert await file_service.resolve_url(db, user.id, folder.id) is None

    async def test_not_owned_is_none(self, db, user, other_user, mock_s3):
        theirs = await _upload(db, other_user)
        assert await file_service.resolve_url(db, user.id, theirs.id) is None
        mock_s3["generate_presigned_download_url"].assert_not_awaited()


class TestBlobStorage:

    async def test_download_reads_body(self):
        client = MagicMock()
        client.get_object.return_value = {"Body": io.BytesIO(b"lecture notes")}
        with patch.object(s3_service, "s3_client", client):
            assert await s3_service.download_object("users/u/files/k") == b"lecture notes"
        client.get_object.assert_called_once_with(Bucket=s3_service.bucket, Key="users/u/files/k")

    async def test_delete_failure_is_storage_error(self):
        client = MagicMock()
        client.delete_object.side_effect = ClientError({"Error": {"Code": "500", "Message": "down"}}, "DeleteObject")
        with patch.object(s3_service, "s3_client", client):
            with pytest.raises(StorageError):
                await s3_service.delete_object("users/u/files/k")


class TestFilesAPI:

    async def test_upload_flow(self, client, user, mock_s3):
        headers = auth_headers(user.id)
        resp = await client.post(
            "/files/upload-url",
            json={"filename": "syllabus.pdf", "content_type": "application/pdf"},
            headers=headers,
        )
        assert resp.status_code == 200
        storage_id = resp.json()["storage_id"]

        resp = await client.post(
            "/files/",
            json={"storage_id": storage_id, "name": "syllabus.pdf", "type": "application/pdf"},
            headers=headers,
        )
        assert resp.status_code == 201
        file_id = resp.json()["id"]

        resp = await client.get(f"/files/{file_id}/url", headers=headers)
        assert resp.json() == {"url": "https://s3.test/download"}

    async def test_list_signed_out_is_null(self, client):
        resp = await client.get("/files/")
        assert resp.status_code == 200
        assert resp.json() is None

    async def test_create_folder_signed_out_is_401(self, client):
        resp = await client.post("/files/folders", json={"name": "Nope"})
        assert resp.status_code == 401
        assert resp.json()["error"] == "UNAUTHENTICATED"

    async def test_delete_other_users_file_is_403(self, client, db, user, other_user):
        theirs = await file_service.create_folder(db, other_user.id, "Theirs")
        resp = await client.delete(f"/files/{theirs.id}", headers=auth_headers(user.id))
        assert resp.status_code == 403
        assert resp.json()["error"] == "ACCESS_DENIED"
