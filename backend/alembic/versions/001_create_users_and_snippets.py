"""Create users and snippets tables

Revision ID: 001
Revises: None
Create Date: 2024-06-01 00:00:00.000000+00:00

What:  Creates the credential store (`users`) and the snippet store
       (`snippets`). Same schema as Database.create_schema().

Rollback: downgrade() drops both tables (all accounts and snippets are lost).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            "username",
            sa.String(255),
            nullable=False,
            comment="Login name, unique and case-sensitive",
        ),
        sa.Column(
            "password_hash",
            sa.String(255),
            nullable=False,
            comment="bcrypt hash (algorithm, cost and salt embedded)",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    # Unique index doubles as the lookup index for login.
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "snippets",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            "user_id",
            sa.Integer(),
            nullable=True,
            comment="Owner; NULL for anonymous snippets or removed owners",
        ),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("code", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "language",
            sa.String(50),
            nullable=False,
            comment="Free-form language label",
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_snippets_user_id", "snippets", ["user_id"])
    op.create_index(
        "idx_snippets_created_at",
        "snippets",
        [sa.text("created_at DESC")],
    )


def downgrade() -> None:
    op.drop_index("idx_snippets_created_at", table_name="snippets")
    op.drop_index("ix_snippets_user_id", table_name="snippets")
    op.drop_table("snippets")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
