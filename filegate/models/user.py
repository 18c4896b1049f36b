from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from filegate.models.database import Base


class User(Base):
    __tablename__ = "users"

    email = Column(String(255), primary_key=True)
    password = Column(String(255), nullable=False)  # werkzeug hash
    username = Column(String(255), unique=True, index=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # One user → many sessions
    sessions = relationship(
        "Session", back_populates="user", cascade="all, delete-orphan"
    )


class Session(Base):
    __tablename__ = "sessions"

    id = Column(String(255), primary_key=True)
    email = Column(
        String(255),
        ForeignKey("users.email", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    location = Column(String(255), nullable=False, default="unknown")
    agent = Column(String(255), nullable=False, default="")
    last_seen = Column(DateTime, default=datetime.utcnow, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="sessions")
