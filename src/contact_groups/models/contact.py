"""Stored contact owned by a user."""

from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from contact_groups.models.base import Base


class ContactRecord(Base):
    __tablename__ = "contacts"

    id: Mapped[str] = mapped_column(sa.String, primary_key=True)
    user_id: Mapped[str] = mapped_column(sa.String, index=True)

    name: Mapped[str] = mapped_column(sa.String, default="")
    company: Mapped[str | None] = mapped_column(sa.String, nullable=True)

    # Location
    latitude: Mapped[float | None] = mapped_column(sa.Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(sa.Float, nullable=True)
    city: Mapped[str | None] = mapped_column(sa.String, nullable=True)

    event_name: Mapped[str | None] = mapped_column(sa.String, nullable=True)
    submitted_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True))
