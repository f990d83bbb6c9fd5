# mypy: ignore-errors
"""
Migration Alembic initiale: instances, comptes, applications et versions DSL.
"""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "dify_instances",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("base_url", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_enabled", sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "dify_accounts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "instance_id",
            sa.Integer(),
            sa.ForeignKey("dify_instances.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password", sa.String(length=255), nullable=False),
        sa.Column("nickname", sa.String(length=100), nullable=True),
        sa.Column("access_token", sa.Text(), nullable=True),
        sa.Column("token_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_enabled", sa.Boolean(), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("instance_id", "email", name="uq_account_instance_email"),
    )
    op.create_index("ix_dify_accounts_instance_id", "dify_accounts", ["instance_id"])
    op.create_table(
        "dify_apps",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "instance_id",
            sa.Integer(),
            sa.ForeignKey("dify_instances.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "account_id",
            sa.Integer(),
            sa.ForeignKey("dify_accounts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("dify_app_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("icon", sa.String(length=255), nullable=True),
        sa.Column("is_public", sa.Boolean(), nullable=False),
        sa.Column("created_by_dify_user", sa.String(length=255), nullable=True),
        sa.Column("dify_created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("dify_updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_sync_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("kind", sa.String(length=32), nullable=False),
        sa.Column("mode", sa.String(length=32), nullable=False),
        sa.Column("kind_config", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("instance_id", "dify_app_id", name="uq_app_instance_dify_app"),
    )
    op.create_index("ix_dify_apps_instance_id", "dify_apps", ["instance_id"])
    op.create_index("ix_dify_apps_account_id", "dify_apps", ["account_id"])
    op.create_table(
        "app_dsl_versions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "app_id",
            sa.Integer(),
            sa.ForeignKey("dify_apps.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("dsl_content", sa.JSON(), nullable=False),
        sa.Column("dsl_raw_content", sa.Text(), nullable=True),
        sa.Column("dsl_hash", sa.String(length=64), nullable=False),
        sa.Column("sync_time", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("app_id", "version", name="uq_app_dsl_version"),
    )
    op.create_index("ix_app_dsl_versions_app_hash", "app_dsl_versions", ["app_id", "dsl_hash"])
    op.create_index("ix_app_dsl_versions_sync_time", "app_dsl_versions", ["sync_time"])


def downgrade() -> None:
    op.drop_index("ix_app_dsl_versions_sync_time", table_name="app_dsl_versions")
    op.drop_index("ix_app_dsl_versions_app_hash", table_name="app_dsl_versions")
    op.drop_table("app_dsl_versions")
    op.drop_index("ix_dify_apps_account_id", table_name="dify_apps")
    op.drop_index("ix_dify_apps_instance_id", table_name="dify_apps")
    op.drop_table("dify_apps")
    op.drop_index("ix_dify_accounts_instance_id", table_name="dify_accounts")
    op.drop_table("dify_accounts")
    op.drop_table("dify_instances")
