"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Enum columns store member names, matching SQLAlchemy's Enum(PythonEnum) default
user_role = sa.Enum("ADMIN", "MANAGER", "STAFF", "USER", name="userrole")
asset_status = sa.Enum(
    "IN_USE", "IDLE", "REPAIR", "PENDING_SCRAP", "SCRAPPED", "LOST", name="assetstatus"
)
scope_type = sa.Enum("ALL", "DEPARTMENT", "LOCATION", "CATEGORY", name="scopetype")
plan_status = sa.Enum("DRAFT", "IN_PROGRESS", "COMPLETED", "CLOSED", name="planstatus")
match_status = sa.Enum("MATCHED", "DISCREPANCY", "UNMATCHED", name="matchstatus")
scan_source = sa.Enum("MANUAL", "OCR", name="scansource")


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # Organization
    op.create_table(
        "departments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("code", sa.String(50), nullable=True, unique=True),
        sa.Column("parent_id", sa.Integer(), sa.ForeignKey("departments.id", ondelete="SET NULL"), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "locations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("code", sa.String(50), nullable=True, unique=True),
        sa.Column("building", sa.String(100), nullable=True),
        sa.Column("floor", sa.String(20), nullable=True),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("parent_id", sa.Integer(), sa.ForeignKey("locations.id", ondelete="SET NULL"), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("code", sa.String(50), nullable=True, unique=True),
        sa.Column("parent_id", sa.Integer(), sa.ForeignKey("categories.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
    )

    # Users table
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False, index=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", user_role, nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("department_id", sa.Integer(), sa.ForeignKey("departments.id", ondelete="SET NULL"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    # Asset register
    op.create_table(
        "assets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("asset_no", sa.String(50), nullable=False, unique=True, index=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False, index=True),
        sa.Column("department_id", sa.Integer(), sa.ForeignKey("departments.id", ondelete="RESTRICT"), nullable=False, index=True),
        sa.Column("location_id", sa.Integer(), sa.ForeignKey("locations.id", ondelete="SET NULL"), nullable=True, index=True),
        sa.Column("custodian_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("status", asset_status, nullable=False, index=True),
        sa.Column("acquire_date", sa.Date(), nullable=True),
        sa.Column("brand", sa.String(100), nullable=True),
        sa.Column("model", sa.String(100), nullable=True),
        sa.Column("serial_no", sa.String(100), nullable=True),
        sa.Column("notes", sa.String(1000), nullable=True),
        *_timestamps(),
    )

    # Inventory plans
    op.create_table(
        "inventory_plans",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("scope_type", scope_type, nullable=False),
        sa.Column("scope_ids", sa.JSON(), nullable=False),
        sa.Column("status", plan_status, nullable=False, index=True),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
    )

    # Scan records: one per (plan, scanned tag)
    op.create_table(
        "inventory_scan_records",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("plan_id", sa.Integer(), sa.ForeignKey("inventory_plans.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("asset_no", sa.String(64), nullable=False),
        sa.Column("asset_id", sa.Integer(), sa.ForeignKey("assets.id", ondelete="SET NULL"), nullable=True, index=True),
        sa.Column("match_status", match_status, nullable=False, index=True),
        sa.Column("discrepancy_note", sa.Text(), nullable=True),
        sa.Column("source", scan_source, nullable=False),
        sa.Column("ocr_raw_text", sa.Text(), nullable=True),
        sa.Column("ocr_category", sa.String(200), nullable=True),
        sa.Column("ocr_name", sa.String(200), nullable=True),
        sa.Column("ocr_acquire_date", sa.String(20), nullable=True),
        sa.Column("image_path", sa.String(500), nullable=True),
        sa.Column("gps_latitude", sa.Float(), nullable=True),
        sa.Column("gps_longitude", sa.Float(), nullable=True),
        sa.Column("scanned_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("scanned_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("plan_id", "asset_no", name="uq_scan_record_plan_asset_no"),
    )


def downgrade() -> None:
    op.drop_table("inventory_scan_records")
    op.drop_table("inventory_plans")
    op.drop_table("assets")
    op.drop_table("users")
    op.drop_table("categories")
    op.drop_table("locations")
    op.drop_table("departments")
    for enum in (scan_source, match_status, plan_status, scope_type, asset_status, user_role):
        enum.drop(op.get_bind(), checkfirst=True)
