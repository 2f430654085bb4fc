from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from edugrid.db.base_class import Base


class ClassroomRecord(Base):
    """One classroom aggregate: students, tasks and submissions live in `document`."""

    __tablename__ = "classrooms"

    id: Mapped[str] = mapped_column(String(24), primary_key=True)
    document: Mapped[dict] = mapped_column(JSON, nullable=False)
    # bumped on every write; a write only lands if nobody else wrote since the read
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True
    )
