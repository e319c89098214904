"""AWS S3: demo class attachments."""
import asyncio
import logging
import uuid

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from app.config import settings
from app.errors import DependencyError
from app.services.collaborators import StoredFile, Upload

logger = logging.getLogger(__name__)

_s3 = None


def get_s3():
    global _s3
    if _s3 is None:
        _s3 = boto3.client(
            "s3",
            region_name=settings.aws_region,
            aws_access_key_id=settings.aws_access_key_id or None,
            aws_secret_access_key=settings.aws_secret_access_key or None,
        )
    return _s3


def public_url(bucket: str, key: str) -> str:
    return f"https://{bucket}.s3.{settings.aws_region}.amazonaws.com/{key}"


def _filename_from_key(key: str) -> str:
    # keys look like documents/<hex>/<original filename>
    return key.rsplit("/", 1)[-1]


class S3DocumentStore:
    """DocumentStore over one bucket; the S3 key doubles as the file id."""

    def __init__(self, bucket: str | None = None, prefix: str = "documents"):
        self.bucket = bucket or settings.s3_bucket_documents
        self.prefix = prefix.strip("/")

    def _upload_sync(self, key: str, upload: Upload) -> None:
        get_s3().put_object(
            Bucket=self.bucket,
            Key=key,
            Body=upload.content,
            ContentType=upload.content_type or "application/octet-stream",
        )

    async def upload(self, upload: Upload) -> StoredFile:
        filename = (upload.filename or "document").replace("/", "_")
        key = f"{self.prefix}/{uuid.uuid4().hex}/{filename}"
        try:
            await asyncio.to_thread(self._upload_sync, key, upload)
        except (BotoCoreError, ClientError) as e:
            logger.error("Error uploading file %s: %s", upload.filename, e)
            raise DependencyError("document_store", f"Failed to upload file {upload.filename}") from e
        return StoredFile(file_id=key, url=public_url(self.bucket, key), name=upload.filename)

    async def list_files(self, prefix: str = "") -> list[StoredFile]:
        full_prefix = f"{self.prefix}/{prefix.lstrip('/')}" if prefix else f"{self.prefix}/"
        try:
            response = await asyncio.to_thread(get_s3().list_objects_v2, Bucket=self.bucket, Prefix=full_prefix)
        except (BotoCoreError, ClientError) as e:
            raise DependencyError("document_store", "Failed to list documents") from e
        return [
            StoredFile(file_id=obj["Key"], url=public_url(self.bucket, obj["Key"]), name=_filename_from_key(obj["Key"]))
            for obj in response.get("Contents", [])
        ]

    async def copy_file(self, file_id: str) -> StoredFile:
        name = _filename_from_key(file_id)
        key = f"{self.prefix}/{uuid.uuid4().hex}/{name}"
        try:
            await asyncio.to_thread(
                get_s3().copy_object,
                Bucket=self.bucket,
                Key=key,
                CopySource={"Bucket": self.bucket, "Key": file_id},
            )
        except (BotoCoreError, ClientError) as e:
            raise DependencyError("document_store", f"Failed to copy document {file_id}") from e
        return StoredFile(file_id=key, url=public_url(self.bucket, key), name=name)
