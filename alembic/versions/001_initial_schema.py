"""Initial schema — hosts, addresses, tags, metadata, network links

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── hosts ────────────────────────────────
    op.create_table(
        "hosts",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("hostname", sa.String(253), nullable=False),
        sa.Column("owner", sa.String(128), nullable=True, index=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("uq_hosts_hostname_lower", "hosts", [sa.text("lower(hostname)")], unique=True)

    # ── host_addresses ───────────────────────
    op.create_table(
        "host_addresses",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("host_id", sa.Integer, sa.ForeignKey("hosts.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("position", sa.Integer, nullable=False, server_default="0"),
        sa.Column("address", sa.String(45), nullable=False, index=True),
        sa.Column("network", sa.String(64), nullable=True, index=True),
        sa.Column("ssh_port", sa.Integer, nullable=True),
    )

    # ── host_tags ────────────────────────────
    op.create_table(
        "host_tags",
        sa.Column("host_id", sa.Integer, sa.ForeignKey("hosts.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("name", sa.String(64), primary_key=True, index=True),
    )

    # ── host_metadata ────────────────────────
    op.create_table(
        "host_metadata",
        sa.Column("host_id", sa.Integer, sa.ForeignKey("hosts.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("key", sa.String(128), primary_key=True),
        sa.Column("value", sa.Text, nullable=False, server_default=""),
    )

    # ── network_links ────────────────────────
    op.create_table(
        "network_links",
        sa.Column("network", sa.String(64), primary_key=True),
        sa.Column("other_network", sa.String(64), primary_key=True),
        sa.Column("priority", sa.Integer, nullable=False, server_default="0"),
    )


def downgrade() -> None:
    op.drop_table("network_links")
    op.drop_table("host_metadata")
    op.drop_table("host_tags")
    op.drop_table("host_addresses")
    op.drop_index("uq_hosts_hostname_lower", table_name="hosts")
    op.drop_table("hosts")
