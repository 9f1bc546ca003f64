"""Column mixins: cuid2 primary key and database-maintained timestamps."""

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from veer.shared.utils.generators import generate_cuid


class CuidMixin:
    """String primary key filled with a cuid2 on insert (ORM inserts only; upserts pass id)."""

    id: Mapped[str] = mapped_column(String, primary_key=True, default=generate_cuid)


class TimestampMixin:
    """created_at/updated_at set by Postgres. updated_at orders concurrent activations."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
