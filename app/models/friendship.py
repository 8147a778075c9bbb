from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column
import uuid
from datetime import datetime

from app.db.base_class import Base


class Friendship(Base):
    __tablename__ = "friendships"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # (accepting user, requesting user); lookups always check both orders.
    user_id_1: Mapped[uuid.UUID] = mapped_column(sa.Uuid(as_uuid=True), sa.ForeignKey("profiles.id"), nullable=False, index=True)
    user_id_2: Mapped[uuid.UUID] = mapped_column(sa.Uuid(as_uuid=True), sa.ForeignKey("profiles.id"), nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)

    __table_args__ = (
        sa.UniqueConstraint("user_id_1", "user_id_2", name="uq_friendships_pair"),
        sa.CheckConstraint("user_id_1 <> user_id_2", name="ck_friendships_not_self"),
    )
