"""Upload and download pipeline over the metadata store and the bucket.

Objects are addressed three ways by clients:

* ``<uid>``
* ``<username>/<uid>`` or ``<username>/<path>`` (one slash, tried in that order)
* ``<username>/<dir>/.../<name>`` (two or more slashes, path only)

Inside the bucket every object lives at ``<username>/<uid>/<path>``.
"""

import logging
import secrets
import string
from dataclasses import dataclass
from typing import BinaryIO

from filegate.blob import BlobObject, BlobStore, BlobStoreError
from filegate.core.errors import (
    InternalError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from filegate.models.file import StoredObject
from filegate.stores.objects import ObjectStore

logger = logging.getLogger(__name__)

ID_ALPHABET = string.ascii_lowercase + string.ascii_uppercase + string.digits

MULTIPART_THRESHOLD = 100 << 20  # 100 MiB
MULTIPART_PART_SIZE = 8 << 20  # 8 MiB


def generate_id(n: int = 10) -> str:
    return "".join(secrets.choice(ID_ALPHABET) for _ in range(n))


def backend_key(username: str, uid: str, path: str) -> str:
    """Path of an object inside the bucket, e.g. ``u/1234/dir/file.zip``."""
    return f"{username}/{uid}/{path.strip('/')}"


def split_key(key: str) -> tuple[str, str, str]:
    """Split an addressing string into ``(uid, username, path)``.

    Empty members are not applicable for that form; the one-slash form
    fills both uid and path with the trailing segment.
    """
    if "/" not in key:
        return key, "", ""
    username, rest = key.split("/", 1)
    if "/" in rest:
        return "", username, rest
    return rest, username, rest


def attachment_name(path: str) -> str:
    """Last segment of a bucket path, safe to put in a header."""
    name = path.rsplit("/", 1)[-1]
    return name or "file"


@dataclass
class Download:
    obj: StoredObject
    blob: BlobObject

    @property
    def filename(self) -> str:
        return attachment_name(self.obj.path)


class StorageService:
    def __init__(
        self,
        objects: ObjectStore,
        blob: BlobStore,
        multipart_threshold: int = MULTIPART_THRESHOLD,
        multipart_part_size: int = MULTIPART_PART_SIZE,
        id_length: int = 10,
    ) -> None:
        self.objects = objects
        self.blob = blob
        self.multipart_threshold = multipart_threshold
        self.multipart_part_size = multipart_part_size
        self.id_length = id_length

    def upload(
        self,
        username: str,
        stream: BinaryIO,
        size: int,
        key: str = "",
        path: str = "",
        password: str = "",
        filename: str = "",
    ) -> str:
        """Store *stream* for *username* and return the object's uid.

        The metadata row is written before any byte reaches the bucket. If
        the transfer then fails the row stays behind without content.
        """
        if "/" in key:
            raise ValidationError("key must not contain '/'")
        uid = key or generate_id(self.id_length)

        # "/a.txt", "a.txt/" and "a.txt" name the same logical path
        logical = (path or filename).strip("/")
        if not logical:
            raise ValidationError("missing file name")

        object_path = backend_key(username, uid, logical)
        self.objects.insert(uid, username, logical, password, object_path)

        if size < self.multipart_threshold:
            strategy = "single"
        else:
            strategy = "multipart"
        logger.info(
            "upload_started user=%s uid=%s filename=%s size=%d strategy=%s",
            username,
            uid,
            logical,
            size,
            strategy,
        )

        try:
            if strategy == "single":
                self.blob.put(object_path, stream)
            else:
                self.blob.put_multipart(object_path, stream, self.multipart_part_size)
        except BlobStoreError as exc:
            logger.error(
                "upload_failed user=%s uid=%s path=%s orphaned_row=true error=%s",
                username,
                uid,
                object_path,
                exc,
            )
            raise InternalError("upload failed") from exc

        logger.info("upload_finished user=%s uid=%s", username, uid)
        return uid

    def resolve(self, key: str) -> StoredObject:
        uid, username, path = split_key(key)

        obj = self.objects.get(uid) if uid else None
        if obj is not None:
            logger.debug("object_resolved key=%s by=uid", key)
            return obj

        if username:
            obj = self.objects.get_by_username_path(username, path)
            if obj is not None:
                logger.debug("object_resolved key=%s by=path", key)
                return obj

        raise NotFoundError("object not found")

    def download(self, key: str, password: str = "") -> Download:
        obj = self.resolve(key)

        if obj.password and password != obj.password:
            logger.info("download_denied uid=%s reason=invalid_password", obj.id)
            raise UnauthorizedError("invalid password")

        try:
            blob = self.blob.get(obj.path)
        except BlobStoreError as exc:
            logger.error("download_failed uid=%s path=%s error=%s", obj.id, obj.path, exc)
            raise InternalError("download failed") from exc

        logger.info("download_started uid=%s user=%s", obj.id, obj.username)
        return Download(obj=obj, blob=blob)

    def list_for(self, username: str) -> list[StoredObject]:
        return self.objects.list_for(username)

    def list_all(self) -> list[StoredObject]:
        return self.objects.all()
