"""Metadata rows for uploaded objects."""

import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from filegate.core.errors import ConflictError, InternalError
from filegate.models.file import StoredObject

logger = logging.getLogger(__name__)


class ObjectStore:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def insert(
        self, uid: str, username: str, filename: str, password: str, path: str
    ) -> StoredObject:
        """Insert one row, or raise ConflictError.

        The (username, filename) pair, the id and the bucket path are all
        unique; whichever constraint fires, the caller gets the same error.
        """
        obj = StoredObject(
            id=uid,
            username=username,
            filename=filename,
            password=password,
            path=path,
            created_at=datetime.utcnow(),
        )
        with self._session_factory() as db:
            try:
                db.add(obj)
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                logger.warning(
                    "object_conflict uid=%s user=%s filename=%s", uid, username, filename
                )
                raise ConflictError("object already exists") from exc
            except SQLAlchemyError as exc:
                db.rollback()
                logger.exception("object_insert_failed uid=%s", uid)
                raise InternalError() from exc
        return obj

    def get(self, uid: str) -> StoredObject | None:
        try:
            with self._session_factory() as db:
                return db.get(StoredObject, uid)
        except SQLAlchemyError as exc:
            logger.exception("object_lookup_failed uid=%s", uid)
            raise InternalError() from exc

    def get_by_username_path(self, username: str, filename: str) -> StoredObject | None:
        try:
            with self._session_factory() as db:
                return (
                    db.query(StoredObject)
                    .filter(
                        StoredObject.username == username,
                        StoredObject.filename == filename,
                    )
                    .first()
                )
        except SQLAlchemyError as exc:
            logger.exception(
                "object_lookup_failed user=%s filename=%s", username, filename
            )
            raise InternalError() from exc

    def list_for(self, username: str) -> list[StoredObject]:
        try:
            with self._session_factory() as db:
                return (
                    db.query(StoredObject)
                    .filter(StoredObject.username == username)
                    .order_by(StoredObject.created_at.desc())
                    .all()
                )
        except SQLAlchemyError as exc:
            logger.exception("object_list_failed user=%s", username)
            raise InternalError() from exc

    def all(self) -> list[StoredObject]:
        try:
            with self._session_factory() as db:
                return db.query(StoredObject).order_by(StoredObject.created_at.desc()).all()
        except SQLAlchemyError as exc:
            logger.exception("object_list_failed")
            raise InternalError() from exc
