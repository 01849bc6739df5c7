# patient_intake/models/stored_file.py
from datetime import datetime

from sqlalchemy import DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from patient_intake.models.base import Base


class StoredFile(Base):
    __tablename__ = "files"

    # Primary Key
    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    bucket_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    # File Information
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    mime_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    storage_path: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        doc="Path relative to the file storage root",
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
