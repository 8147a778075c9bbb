from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column
import uuid
from datetime import datetime

from app.db.base_class import Base


FRIEND_REQUEST_PENDING = "pending"


class FriendRequest(Base):
    __tablename__ = "friend_requests"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    from_user_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(as_uuid=True), sa.ForeignKey("profiles.id"), nullable=False, index=True)
    to_user_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(as_uuid=True), sa.ForeignKey("profiles.id"), nullable=False, index=True)

    # Accepted/declined requests are deleted, so only "pending" rows exist.
    status: Mapped[str] = mapped_column(sa.String(16), nullable=False, default=FRIEND_REQUEST_PENDING)

    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)

    __table_args__ = (
        sa.UniqueConstraint("from_user_id", "to_user_id", name="uq_friend_requests_direction"),
        sa.CheckConstraint("from_user_id <> to_user_id", name="ck_friend_requests_not_self"),
    )
