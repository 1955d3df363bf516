"""
Add users and bookmarks tables with row-level security.

Revision ID: 5c1e9a7b3d20
Revises:
Create Date: 2026-10-18 09:12:41.118203
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5c1e9a7b3d20"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

# (policy name, command, USING clause, WITH CHECK clause)
OWNER_CLAUSE = "user_id = current_setting('app.current_user_id', true)::uuid"
BOOKMARK_POLICIES = [
    ("bookmarks_select_own", "SELECT", OWNER_CLAUSE, None),
    ("bookmarks_insert_own", "INSERT", None, OWNER_CLAUSE),
    ("bookmarks_update_own", "UPDATE", OWNER_CLAUSE, OWNER_CLAUSE),
    ("bookmarks_delete_own", "DELETE", OWNER_CLAUSE, None),
]


def row_level_security_statements() -> list[str]:
    """
    SQL enabling the bookmark policies.

    FORCE makes the policies apply to the table owner too, which is normally
    the role the app connects as.
    """
    statements = [
        "ALTER TABLE bookmarks ENABLE ROW LEVEL SECURITY",
        "ALTER TABLE bookmarks FORCE ROW LEVEL SECURITY",
    ]
    for name, command, using, check in BOOKMARK_POLICIES:
        clauses = ""
        if using:
            clauses += f" USING ({using})"
        if check:
            clauses += f" WITH CHECK ({check})"
        statements.append(f"CREATE POLICY {name} ON bookmarks FOR {command}{clauses}")
    return statements


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "auth0_id",
            sa.String(length=255),
            nullable=False,
            comment="Auth0 'sub' claim - unique identifier from Auth0",
        ),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("clock_timestamp()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_auth0_id"), "users", ["auth0_id"], unique=True)

    op.create_table(
        "bookmarks",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("clock_timestamp()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_bookmarks_user_id"), "bookmarks", ["user_id"], unique=False)
    op.create_index(
        "ix_bookmarks_user_id_created_at",
        "bookmarks",
        ["user_id", sa.text("created_at DESC")],
        unique=False,
    )

    for statement in row_level_security_statements():
        op.execute(statement)


def downgrade() -> None:
    """Downgrade schema."""
    for name, _command, _using, _check in BOOKMARK_POLICIES:
        op.execute(f"DROP POLICY IF EXISTS {name} ON bookmarks")
    op.execute("ALTER TABLE bookmarks NO FORCE ROW LEVEL SECURITY")
    op.execute("ALTER TABLE bookmarks DISABLE ROW LEVEL SECURITY")

    op.drop_index("ix_bookmarks_user_id_created_at", table_name="bookmarks")
    op.drop_index(op.f("ix_bookmarks_user_id"), table_name="bookmarks")
    op.drop_table("bookmarks")
    op.drop_index(op.f("ix_users_auth0_id"), table_name="users")
    op.drop_table("users")
