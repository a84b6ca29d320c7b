"""Persisted contact group, as appended by auto-generation."""

from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from contact_groups.models.base import Base


class ContactGroupRecord(Base):
    """A stored group of contacts.

    The typed payload of the generated group (company, location, event or
    temporal data) is kept as JSON in ``payload``; ``contact_ids`` is a
    JSON list to stay portable between PostgreSQL and SQLite.
    """

    __tablename__ = "contact_groups"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(sa.String, index=True)

    name: Mapped[str] = mapped_column(sa.String)
    group_type: Mapped[str] = mapped_column(sa.String(20))
    contact_ids: Mapped[list] = mapped_column(sa.JSON, default=list)
    confidence: Mapped[str] = mapped_column(sa.String(10))
    reason: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    discovery_method: Mapped[str | None] = mapped_column(sa.String(30), nullable=True)
    payload: Mapped[dict | None] = mapped_column(sa.JSON, nullable=True)
    auto_generated: Mapped[bool] = mapped_column(sa.Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime, server_default=sa.text("CURRENT_TIMESTAMP")
    )
