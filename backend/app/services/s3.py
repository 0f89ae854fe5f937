"""S3 service for file blob storage and retrieval."""

import asyncio
import re
from uuid import UUID, uuid4

import boto3
from botocore.exceptions import ClientError

from app.config import get_settings

settings = get_settings()

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class StorageError(Exception):
    """Blob storage operation failed."""


class S3Service:
    """Service for interacting with AWS S3 for uploaded file bytes."""

    def __init__(self):
        """Initialize S3 client with credentials from settings."""
        client_kwargs = {
            "aws_access_key_id": settings.aws_access_key_id,
            "aws_secret_access_key": settings.aws_secret_access_key,
            "region_name": settings.aws_s3_region,
        }
        # Support MinIO / LocalStack by pointing to a custom endpoint
        if settings.aws_s3_endpoint_url:
            client_kwargs["endpoint_url"] = settings.aws_s3_endpoint_url

        self.s3_client = boto3.client("s3", **client_kwargs)
        self.bucket = settings.aws_s3_bucket

    @staticmethod
    def user_prefix(user_id: UUID) -> str:
        """Key prefix every blob owned by user_id lives under."""
        return f"users/{user_id}/files/"

    def build_file_key(self, user_id: UUID, filename: str) -> str:
        """Mint a fresh, unguessable object key for a user's upload."""
        safe_name = _UNSAFE_KEY_CHARS.sub("_", filename).strip("_") or "file"
        return f"{self.user_prefix(user_id)}{uuid4()}_{safe_name}"

    async def generate_presigned_upload_url(
        self,
        file_key: str,
        content_type: str,
        expiration: int | None = None,
    ) -> dict:
        """
        Generate presigned POST data for direct upload from the client.

        Args:
            file_key: S3 object key for the file
            content_type: MIME type the client will upload
            expiration: URL lifetime in seconds (default from settings)

        Returns:
            Dictionary with presigned POST `url` and form `fields`

        Raises:
            StorageError: If S3 operation fails
        """
        try:
            return self.s3_client.generate_presigned_post(
                self.bucket,
                file_key,
                Fields={"Content-Type": content_type},
                Conditions=[
                    {"Content-Type": content_type},
                    ["content-length-range", 1, settings.max_upload_size_bytes],
                ],
                ExpiresIn=expiration or settings.presigned_url_expiration_seconds,
            )
        except ClientError as e:
            raise StorageError(f"Failed to generate presigned upload URL: {e}") from e

    async def generate_presigned_download_url(self, file_key: str) -> str:
        """Mint a time-limited GET URL for a stored object."""
        try:
            return self.s3_client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": file_key},
                ExpiresIn=settings.download_url_expiration_seconds,
            )
        except ClientError as e:
            raise StorageError(f"Failed to generate presigned download URL: {e}") from e

    def _read_object(self, file_key: str) -> bytes:
        response = self.s3_client.get_object(Bucket=self.bucket, Key=file_key)
        return response["Body"].read()

    async def download_object(self, file_key: str) -> bytes:
        """
        Download object bytes from S3.

        Raises:
            StorageError: If S3 operation fails
        """
        try:
            return await asyncio.to_thread(self._read_object, file_key)
        except ClientError as e:
            raise StorageError(f"Failed to download object from S3: {e}") from e

    async def delete_object(self, file_key: str) -> None:
        """
        Delete object from S3.

        Raises:
            StorageError: If S3 operation fails
        """
        try:
            await asyncio.to_thread(self.s3_client.delete_object, Bucket=self.bucket, Key=file_key)
        except ClientError as e:
            raise StorageError(f"Failed to delete object from S3: {e}") from e


# Singleton instance
s3_service = S3Service()
