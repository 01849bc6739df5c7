# patient_intake/models/document.py
from datetime import datetime

from sqlalchemy import JSON, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from patient_intake.models.base import Base


class Document(Base):
    """
    Schemaless document in a collection of the local document store.

    Fields live in `data`; equality filters are evaluated on its JSON keys.
    """

    __tablename__ = "documents"

    # Primary Key
    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    collection_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    data: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
