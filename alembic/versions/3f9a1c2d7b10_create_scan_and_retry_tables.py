"""create_scan_and_retry_tables

Revision ID: 3f9a1c2d7b10
Revises:
Create Date: 2025-12-31 13:16:49.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f9a1c2d7b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

scan_status = sa.Enum("RUNNING", "COMPLETED", "COMPLETED_WITH_ERRORS", name="scanstatus")
processed_image_status = sa.Enum("SUCCESS", "FAILED", "SKIPPED", name="processedimagestatus")
failed_job_status = sa.Enum("PENDING", "RETRYING", "FAILED_PERMANENT", name="failedjobstatus")
alt_text_style = sa.Enum("PROFESSIONAL", "CASUAL", "TECHNICAL", "CREATIVE", name="alttextstyle")
alt_text_length = sa.Enum("SHORT", "MEDIUM", "LONG", name="alttextlength")


def upgrade() -> None:
    """Create scans, processed_images, shop_settings and failed_jobs."""
    op.create_table(
        "scans",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("shop", sa.String(length=255), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_products", sa.Integer(), nullable=False),
        sa.Column("total_images", sa.Integer(), nullable=False),
        sa.Column("images_processed", sa.Integer(), nullable=False),
        sa.Column("images_skipped", sa.Integer(), nullable=False),
        sa.Column("images_failed", sa.Integer(), nullable=False),
        sa.Column("status", scan_status, nullable=False),
        sa.Column("force_all", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_scans_shop", "scans", ["shop"])
    op.create_index("ix_scans_started_at", "scans", ["started_at"])
    op.create_index("ix_scans_status", "scans", ["status"])

    op.create_table(
        "processed_images",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("scan_id", sa.Uuid(), nullable=False),
        sa.Column("product_id", sa.String(length=255), nullable=False),
        sa.Column("product_title", sa.String(), nullable=False),
        sa.Column("image_id", sa.String(length=255), nullable=False),
        sa.Column("image_url", sa.String(), nullable=False),
        sa.Column("old_alt_text", sa.String(), nullable=True),
        sa.Column("new_alt_text", sa.String(), nullable=False),
        sa.Column("status", processed_image_status, nullable=False),
        sa.Column("error_message", sa.String(length=1000), nullable=True),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["scan_id"], ["scans.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_processed_images_scan_id", "processed_images", ["scan_id"])
    op.create_index("ix_processed_images_product_id", "processed_images", ["product_id"])

    op.create_table(
        "shop_settings",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("shop", sa.String(length=255), nullable=False),
        sa.Column("alt_text_style", alt_text_style, nullable=False),
        sa.Column("alt_text_length", alt_text_length, nullable=False),
        sa.Column("custom_prompt", sa.String(), nullable=True),
        sa.Column("batch_size", sa.Integer(), nullable=False),
        sa.Column("auto_retry", sa.Boolean(), nullable=False),
        sa.Column("max_retries", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_shop_settings_shop", "shop_settings", ["shop"], unique=True)

    op.create_table(
        "failed_jobs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("shop", sa.String(length=255), nullable=False),
        sa.Column("product_id", sa.String(length=255), nullable=False),
        sa.Column("product_title", sa.String(), nullable=False),
        sa.Column("image_id", sa.String(length=255), nullable=False),
        sa.Column("image_url", sa.String(), nullable=False),
        sa.Column("error_message", sa.String(length=1000), nullable=False),
        sa.Column("retry_count", sa.Integer(), nullable=False),
        sa.Column("max_retries", sa.Integer(), nullable=False),
        sa.Column("next_retry_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_attempt_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", failed_job_status, nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_failed_jobs_shop", "failed_jobs", ["shop"])
    op.create_index("ix_failed_jobs_next_retry_at", "failed_jobs", ["next_retry_at"])
    op.create_index("ix_failed_jobs_status", "failed_jobs", ["status"])


def downgrade() -> None:
    """Drop all tables and their enum types."""
    op.drop_table("failed_jobs")
    op.drop_table("shop_settings")
    op.drop_table("processed_images")
    op.drop_table("scans")

    bind = op.get_bind()
    for enum in (
        failed_job_status,
        alt_text_length,
        alt_text_style,
        processed_image_status,
        scan_status,
    ):
        enum.drop(bind, checkfirst=True)
