"""Create users and spots tables

Revision ID: 001
Revises: None
Create Date: 2024-06-01 00:00:00.000000+00:00

What:  Creates the identity store (`users`) and the spot collection
       (`spots`). Nested parts of a spot document are JSON columns; the
       columns the app filters or orders on are scalar and indexed.

Rollback: downgrade() drops both tables (all spots and accounts are lost).
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), nullable=False, comment="Account id (UUID4 string)"),
        sa.Column("email", sa.String(255), nullable=False, comment="Lower-cased login email"),
        sa.Column("display_name", sa.String(100), nullable=True),
        sa.Column(
            "password_hash",
            sa.String(255),
            nullable=False,
            comment="pbkdf2_sha256$<iterations>$<salt>$<digest>",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "spots",
        sa.Column("id", sa.String(36), nullable=False, comment="Opaque unique spot identifier"),
        sa.Column("user_id", sa.String(128), nullable=False, comment="Creator id, or 'anonymous'"),
        sa.Column("user_name", sa.String(255), nullable=False),
        sa.Column("location", sa.JSON(), nullable=False, comment="{lat, lng}"),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("media", sa.JSON(), nullable=False, comment="Inline encoded photos, 0..4"),
        sa.Column(
            "category",
            sa.String(32),
            nullable=False,
            server_default=sa.text("'general'"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("visitors", sa.JSON(), nullable=False, comment="Visitor ids, set semantics"),
        sa.Column("comments", sa.JSON(), nullable=False, comment="Embedded comments, append-only"),
        sa.PrimaryKeyConstraint("id", name="pk_spots"),
    )
    op.create_index("idx_spots_category", "spots", ["category"])
    op.create_index("idx_spots_created_at_id", "spots", ["created_at", "id"])


def downgrade() -> None:
    op.drop_index("idx_spots_created_at_id", table_name="spots")
    op.drop_index("idx_spots_category", table_name="spots")
    op.drop_table("spots")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
