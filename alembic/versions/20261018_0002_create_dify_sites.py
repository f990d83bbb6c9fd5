# mypy: ignore-errors
"""
Ajout de la table des sites publics d'application.
"""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "20261018_0002"
down_revision = "20261018_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "dify_sites",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "app_id",
            sa.Integer(),
            sa.ForeignKey("dify_apps.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("site_code", sa.String(length=100), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("site_url", sa.String(length=500), nullable=True),
        sa.Column("is_enabled", sa.Boolean(), nullable=False),
        sa.Column("default_language", sa.String(length=50), nullable=True),
        sa.Column("theme", sa.String(length=100), nullable=True),
        sa.Column("copyright", sa.String(length=200), nullable=True),
        sa.Column("privacy_policy", sa.Text(), nullable=True),
        sa.Column("disclaimer", sa.Text(), nullable=True),
        sa.Column("custom_domain", sa.JSON(), nullable=True),
        sa.Column("custom_config", sa.JSON(), nullable=True),
        sa.Column("publish_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_sync_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_dify_sites_site_code", "dify_sites", ["site_code"])


def downgrade() -> None:
    op.drop_index("ix_dify_sites_site_code", table_name="dify_sites")
    op.drop_table("dify_sites")
