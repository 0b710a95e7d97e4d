"""initial stats tables: users, groups, user_group_stats, banned

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 12:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _counter(name: str) -> sa.Column:
    return sa.Column(name, sa.Integer(), nullable=False, server_default="0")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("user_id", sa.BigInteger(), primary_key=True, autoincrement=False),
        sa.Column("username", sa.String(length=255), nullable=True),
        sa.Column("first_name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(length=255), nullable=True),
        sa.Column("is_banned", sa.Boolean(), nullable=False, server_default=sa.false()),
        _counter("message"),
        _counter("edited_message"),
        _counter("words"),
        _counter("sticker"),
        _counter("media"),
        _counter("deleted"),
        sa.Column("last_activity", sa.String(length=32), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_users_updated_at", "users", ["updated_at"])

    op.create_table(
        "groups",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=False),
        sa.Column("type", sa.String(length=50), nullable=False, server_default="group"),
        sa.Column("title", sa.String(length=255), nullable=True),
        sa.Column("username", sa.String(length=255), nullable=True),
        _counter("users"),
        _counter("user_active"),
        _counter("message"),
        _counter("edited_message"),
        _counter("words"),
        _counter("sticker"),
        _counter("media"),
        _counter("deleted"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )

    op.create_table(
        "user_group_stats",
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("group_id", sa.BigInteger(), nullable=False),
        sa.Column("username", sa.String(length=255), nullable=True),
        sa.Column("first_name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(length=255), nullable=True),
        sa.Column("group_title", sa.String(length=255), nullable=True),
        sa.Column("group_username", sa.String(length=255), nullable=True),
        _counter("message_count"),
        _counter("word_count"),
        _counter("sticker_count"),
        _counter("media_count"),
        _counter("edited_message_count"),
        _counter("deleted_count"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.PrimaryKeyConstraint("user_id", "group_id", name="pk_user_group_stats"),
    )
    op.create_index("ix_user_group_stats_group_id", "user_group_stats", ["group_id"])
    op.create_index("ix_user_group_stats_user", "user_group_stats", ["user_id"])

    op.create_table(
        "banned",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=False),
        sa.Column("type", sa.String(length=50), nullable=False),
        sa.Column("spammer", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("message", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )


def downgrade() -> None:
    op.drop_table("banned")
    op.drop_index("ix_user_group_stats_user", table_name="user_group_stats")
    op.drop_index("ix_user_group_stats_group_id", table_name="user_group_stats")
    op.drop_table("user_group_stats")
    op.drop_table("groups")
    op.drop_index("ix_users_updated_at", table_name="users")
    op.drop_table("users")
