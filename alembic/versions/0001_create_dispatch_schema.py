from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


revision = "0001_create_dispatch_schema"
down_revision = None
branch_labels = None
depends_on = None


def _has_index(inspector, table_name: str, index_name: str) -> bool:
    return any(idx["name"] == index_name for idx in inspector.get_indexes(table_name))


def upgrade() -> None:
    bind = op.get_bind()
    inspector = inspect(bind)

    if "dispatch_mappings" not in inspector.get_table_names():
        op.create_table(
            "dispatch_mappings",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("event_key", sa.String(length=191), nullable=False),
            sa.Column("template_name", sa.String(length=191), nullable=False),
            sa.Column("language", sa.String(length=20), nullable=False, server_default="en_US"),
            sa.Column("variables_json", sa.Text(), nullable=False),
            sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        )
        op.create_index("ix_dispatch_mappings_event_key", "dispatch_mappings", ["event_key"], unique=False)
        op.create_index("ix_dispatch_mappings_enabled", "dispatch_mappings", ["enabled"], unique=False)

    inspector = inspect(bind)
    if "dispatch_logs" not in inspector.get_table_names():
        op.create_table(
            "dispatch_logs",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("order_id", sa.Integer(), nullable=True),
            sa.Column("event_key", sa.String(length=191), nullable=True),
            sa.Column("attempt", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("phone_e164", sa.String(length=32), nullable=False),
            sa.Column("template_name", sa.String(length=191), nullable=False),
            sa.Column("payload_json", sa.Text(), nullable=False),
            sa.Column("response_json", sa.Text(), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False),
            sa.Column("provider_message_id", sa.String(length=191), nullable=True, unique=True),
            sa.Column("error_code", sa.String(length=191), nullable=True),
            sa.Column("error_message", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        )
        op.create_index("ix_dispatch_logs_order_id", "dispatch_logs", ["order_id"], unique=False)
        op.create_index("ix_dispatch_logs_status", "dispatch_logs", ["status"], unique=False)
        op.create_index("ix_dispatch_logs_created_at", "dispatch_logs", ["created_at"], unique=False)

    inspector = inspect(bind)
    if "consent_records" not in inspector.get_table_names():
        op.create_table(
            "consent_records",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("phone_e164", sa.String(length=32), nullable=False),
            sa.Column("consent", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("source", sa.String(length=20), nullable=False, server_default="checkout"),
            sa.Column("user_id", sa.Integer(), nullable=True),
            sa.Column("order_id", sa.Integer(), nullable=True),
            sa.Column("consent_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        )
        op.create_index("ix_consent_records_phone_e164", "consent_records", ["phone_e164"], unique=False)


def downgrade() -> None:
    bind = op.get_bind()

    tables = {
        "consent_records": ["ix_consent_records_phone_e164"],
        "dispatch_logs": ["ix_dispatch_logs_created_at", "ix_dispatch_logs_status", "ix_dispatch_logs_order_id"],
        "dispatch_mappings": ["ix_dispatch_mappings_enabled", "ix_dispatch_mappings_event_key"],
    }
    for table_name, index_names in tables.items():
        inspector = inspect(bind)
        if table_name not in inspector.get_table_names():
            continue
        for index_name in index_names:
            if _has_index(inspector, table_name, index_name):
                op.drop_index(index_name, table_name=table_name)
        op.drop_table(table_name)
