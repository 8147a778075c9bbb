from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship
import uuid
from datetime import datetime

from app.db.base_class import Base


class Person(Base):
    __tablename__ = "people"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(as_uuid=True), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    place_id: Mapped[uuid.UUID | None] = mapped_column(sa.Uuid(as_uuid=True), sa.ForeignKey("places.id", ondelete="SET NULL"), nullable=True)

    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    home_country: Mapped[str] = mapped_column(sa.String(120), nullable=False, server_default="")
    home_latitude: Mapped[float | None] = mapped_column(sa.Float, nullable=True)
    home_longitude: Mapped[float | None] = mapped_column(sa.Float, nullable=True)
    description: Mapped[str] = mapped_column(sa.Text, nullable=False, server_default="")
    instagram_handle: Mapped[str | None] = mapped_column(sa.String(60), nullable=True)
    photo_url: Mapped[str | None] = mapped_column(sa.String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)

    place = relationship("Place", foreign_keys=[place_id], lazy="joined")
