# filegate/models/file.py
from datetime import datetime

from sqlalchemy import Column, DateTime, String, UniqueConstraint

from filegate.models.database import Base


class StoredObject(Base):
    __tablename__ = "objects"
    __table_args__ = (UniqueConstraint("username", "filename"),)

    id = Column(String(255), primary_key=True)       # External id (uid)
    username = Column(String(255), nullable=False, index=True)
    filename = Column(String(1024), nullable=False)  # Logical path, "/" separated
    password = Column(String(255), nullable=False, default="")  # Empty = public
    path = Column(String(2048), unique=True, nullable=False)    # Key in the bucket
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "filename": self.filename,
            "password": self.password,
            "path": self.path,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
