"""create user, project, submission and token bookkeeping tables

Revision ID: 3f1c2a9d7b41
Revises:
Create Date: 2026-10-19 09:12:03.418226

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3f1c2a9d7b41"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "user",
        sa.Column("email", sa.String(length=255), primary_key=True, nullable=False),
        sa.Column("hashed_password", sa.String(), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False, server_default="INIT"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
    )

    op.create_table(
        "project",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
    )
    op.create_index("ix_project_id", "project", ["id"], unique=False)

    op.create_table(
        "submission",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("user_email", sa.String(length=255), nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="INIT"),
        sa.Column("expiration_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("turn_in_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["user_email"], ["user.email"]),
        sa.ForeignKeyConstraint(["project_id"], ["project.id"]),
    )
    op.create_index("ix_submission_user_email", "submission", ["user_email"], unique=False)
    op.create_index("ix_submission_project_id", "submission", ["project_id"], unique=False)
    op.create_index("ix_submission_status", "submission", ["status"], unique=False)

    op.create_table(
        "invite_token_expiration",
        sa.Column("email", sa.String(length=255), primary_key=True, nullable=False),
        sa.Column("expiration_millis", sa.BigInteger(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
    )

    op.create_table(
        "reset_password_token_usage",
        sa.Column("token_hash", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade():
    op.drop_table("reset_password_token_usage")
    op.drop_table("invite_token_expiration")

    op.drop_index("ix_submission_status", table_name="submission")
    op.drop_index("ix_submission_project_id", table_name="submission")
    op.drop_index("ix_submission_user_email", table_name="submission")
    op.drop_table("submission")

    op.drop_index("ix_project_id", table_name="project")
    op.drop_table("project")

    op.drop_table("user")
