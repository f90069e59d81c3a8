from sqlalchemy import BigInteger, Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from .base import Base
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FileModel(Base):
    """A file or folder node. Folders carry no content and zero size."""
    __tablename__ = "files"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    path = Column(String, nullable=False, default="")
    size = Column(BigInteger, nullable=False, default=0)
    mime_type = Column(String, nullable=False)
    content = Column(Text, nullable=False, default="")  # base64
    parent_id = Column(Integer, ForeignKey("files.id"), nullable=True, index=True)
    is_folder = Column(Boolean, nullable=False, default=False)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    owner = relationship("User", back_populates="files")
