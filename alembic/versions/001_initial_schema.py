"""Initial schema: flight_snapshots, schedule_phases, subscriptions.

Revision ID: 001
Revises: None
Create Date: 2026-10-16
"""
from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "flight_snapshots",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("flight_id", sa.String(64), nullable=False, index=True),
        sa.Column("flight_number", sa.String(16), nullable=False),
        sa.Column("date", sa.String(10), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(64), nullable=True),
        sa.Column("snapshot_json", sa.Text, nullable=False),
        sa.Column("milestones_json", sa.Text, nullable=False, server_default="[]"),
        sa.Column("inbound_json", sa.Text, nullable=False, server_default="{}"),
    )

    op.create_table(
        "schedule_phases",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("flight_id", sa.String(64), nullable=False, index=True),
        sa.Column("name", sa.String(64), nullable=False, unique=True),
        sa.Column("start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end", sa.DateTime(timezone=True), nullable=False),
        sa.Column("interval", sa.String(8), nullable=False),
        sa.Column("window", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "subscriptions",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("phone", sa.String(32), nullable=False, index=True),
        sa.Column("flight_id", sa.String(64), nullable=False, index=True),
        sa.Column("flight_number", sa.String(16), nullable=False),
        sa.Column("date", sa.String(10), nullable=False),
        sa.Column("fa_flight_id", sa.String(128), nullable=True),
        sa.Column("departure_airport", sa.String(8), nullable=True),
        sa.Column("arrival_airport", sa.String(8), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending", index=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("phone", "flight_id", name="uq_subscription_phone_flight"),
    )


def downgrade() -> None:
    op.drop_table("subscriptions")
    op.drop_table("schedule_phases")
    op.drop_table("flight_snapshots")
