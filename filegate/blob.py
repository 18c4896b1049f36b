"""S3-compatible object storage (Cloudflare R2 in production)."""

import logging
from dataclasses import dataclass
from typing import Any, BinaryIO, Iterator

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from filegate.core.config import Settings

logger = logging.getLogger(__name__)

DOWNLOAD_CHUNK_SIZE = 64 * 1024


class BlobStoreError(Exception):
    pass


@dataclass
class BlobObject:
    body: Any  # botocore StreamingBody
    content_type: str
    content_length: int | None = None

    def iter_chunks(self, chunk_size: int = DOWNLOAD_CHUNK_SIZE) -> Iterator[bytes]:
        return self.body.iter_chunks(chunk_size)

    def close(self) -> None:
        self.body.close()


class BlobStore:
    def __init__(self, client: Any, bucket: str) -> None:
        self._s3 = client
        self.bucket = bucket

    @classmethod
    def from_settings(cls, settings: Settings) -> "BlobStore":
        client = boto3.client(
            "s3",
            aws_access_key_id=settings.aws_access_key_id or None,
            aws_secret_access_key=settings.aws_secret_access_key or None,
            region_name=settings.aws_region,
            endpoint_url=settings.s3_endpoint_url,
        )
        return cls(client, settings.aws_s3_bucket_name)

    def put(self, key: str, stream: BinaryIO) -> None:
        try:
            self._s3.put_object(Bucket=self.bucket, Key=key, Body=stream)
        except (BotoCoreError, ClientError) as exc:
            raise BlobStoreError(f"upload object (stream): {exc}") from exc

    def put_multipart(self, key: str, stream: BinaryIO, part_size: int) -> int:
        """Upload *stream* in parts of *part_size* bytes, one after another.

        Returns the number of parts sent. If anything fails the multipart
        upload is aborted on the backend before the error is raised.
        """
        try:
            created = self._s3.create_multipart_upload(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise BlobStoreError(f"create multipart upload: {exc}") from exc

        upload_id = created["UploadId"]
        parts: list[dict] = []
        part_number = 1
        try:
            while True:
                chunk = stream.read(part_size)
                if not chunk and parts:
                    break
                response = self._s3.upload_part(
                    Bucket=self.bucket,
                    Key=key,
                    UploadId=upload_id,
                    PartNumber=part_number,
                    Body=chunk,
                )
                parts.append({"ETag": response["ETag"], "PartNumber": part_number})
                logger.debug("part_uploaded key=%s part=%d bytes=%d", key, part_number, len(chunk))
                part_number += 1
                if not chunk:
                    break

            self._s3.complete_multipart_upload(
                Bucket=self.bucket,
                Key=key,
                UploadId=upload_id,
                MultipartUpload={"Parts": parts},
            )
        except (BotoCoreError, ClientError, OSError) as exc:
            self._abort(key, upload_id)
            raise BlobStoreError(f"multipart upload part {part_number}: {exc}") from exc

        return len(parts)

    def _abort(self, key: str, upload_id: str) -> None:
        try:
            self._s3.abort_multipart_upload(Bucket=self.bucket, Key=key, UploadId=upload_id)
        except (BotoCoreError, ClientError):
            logger.warning("multipart_abort_failed key=%s upload_id=%s", key, upload_id)

    def get(self, key: str) -> BlobObject:
        try:
            obj = self._s3.get_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise BlobStoreError(f"download object: {exc}") from exc
        return BlobObject(
            body=obj["Body"],
            content_type=obj.get("ContentType") or "application/octet-stream",
            content_length=obj.get("ContentLength"),
        )
