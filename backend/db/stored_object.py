import uuid

from sqlalchemy import Column, DateTime, LargeBinary, String, Uuid

from .database import Base, utcnow


class StoredObject(Base):
    """Uploaded file binary, addressed by '<bucket>/<file name>'."""
    __tablename__ = "stored_objects"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    path = Column(String(512), nullable=False, unique=True, index=True)
    data = Column(LargeBinary, nullable=False)
    content_type = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
