"""create profiles, friend requests, friendships, places and people

Revision ID: 4b7e2a91c0d3
Revises:
Create Date: 2026-10-19 09:12:40.318274

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4b7e2a91c0d3'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade():
    op.create_table(
        "profiles",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("username", sa.String(50), nullable=False),
        sa.Column("display_name", sa.String(120), nullable=False),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("is_public", sa.Boolean(), server_default=sa.true(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_profiles_username", "profiles", ["username"], unique=True)

    op.create_table(
        "friend_requests",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("from_user_id", sa.Uuid(as_uuid=True), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("to_user_id", sa.Uuid(as_uuid=True), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("from_user_id", "to_user_id", name="uq_friend_requests_direction"),
        sa.CheckConstraint("from_user_id <> to_user_id", name="ck_friend_requests_not_self"),
    )
    op.create_index("ix_friend_requests_from_user_id", "friend_requests", ["from_user_id"])
    op.create_index("ix_friend_requests_to_user_id", "friend_requests", ["to_user_id"])

    op.create_table(
        "friendships",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("user_id_1", sa.Uuid(as_uuid=True), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("user_id_2", sa.Uuid(as_uuid=True), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("user_id_1", "user_id_2", name="uq_friendships_pair"),
        sa.CheckConstraint("user_id_1 <> user_id_2", name="ck_friendships_not_self"),
    )
    op.create_index("ix_friendships_user_id_1", "friendships", ["user_id_1"])
    op.create_index("ix_friendships_user_id_2", "friendships", ["user_id_2"])

    op.create_table(
        "places",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("country", sa.String(120), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("description", sa.Text(), server_default="", nullable=False),
        sa.Column("photo_url", sa.String(500), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_places_user_id", "places", ["user_id"])

    op.create_table(
        "people",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "place_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("places.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("home_country", sa.String(120), server_default="", nullable=False),
        sa.Column("home_latitude", sa.Float(), nullable=True),
        sa.Column("home_longitude", sa.Float(), nullable=True),
        sa.Column("description", sa.Text(), server_default="", nullable=False),
        sa.Column("instagram_handle", sa.String(60), nullable=True),
        sa.Column("photo_url", sa.String(500), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_people_user_id", "people", ["user_id"])


def downgrade():
    op.drop_index("ix_people_user_id", table_name="people")
    op.drop_table("people")
    op.drop_index("ix_places_user_id", table_name="places")
    op.drop_table("places")
    op.drop_index("ix_friendships_user_id_2", table_name="friendships")
    op.drop_index("ix_friendships_user_id_1", table_name="friendships")
    op.drop_table("friendships")
    op.drop_index("ix_friend_requests_to_user_id", table_name="friend_requests")
    op.drop_index("ix_friend_requests_from_user_id", table_name="friend_requests")
    op.drop_table("friend_requests")
    op.drop_index("ix_profiles_username", table_name="profiles")
    op.drop_table("profiles")
