"""Initial schema — users, catalogues, deals, sessions, availability, orders.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("first_name", sa.String(120), nullable=True),
        sa.Column("last_name", sa.String(120), nullable=True),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("role", sa.String(32), nullable=False),
        sa.Column("active", sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "auth_sessions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("token_hash", sa.String(64), nullable=False, unique=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "trainers",
        sa.Column("trainer_id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("apellido", sa.String(255), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(64), nullable=True),
        sa.Column("dni", sa.String(32), nullable=True),
        sa.Column("direccion", sa.Text, nullable=True),
        sa.Column("especialidad", sa.String(255), nullable=True),
        sa.Column("titulacion", sa.String(255), nullable=True),
        sa.Column("activo", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, unique=True),
        *_timestamps(),
    )

    op.create_table(
        "rooms",
        sa.Column("sala_id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("sede", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "mobile_units",
        sa.Column("unidad_id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("matricula", sa.String(32), nullable=False, unique=True),
        sa.Column("tipo", sa.JSON, nullable=False),
        sa.Column("sede", sa.JSON, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "deals",
        sa.Column("deal_id", sa.String(64), primary_key=True),
        sa.Column("title", sa.String(255), nullable=True),
        sa.Column("organization_name", sa.String(255), nullable=True),
        sa.Column("pipeline_label", sa.String(120), nullable=True),
        sa.Column("sede_label", sa.String(255), nullable=True),
        sa.Column("training_address", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "deal_products",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("deal_id", sa.String(64), sa.ForeignKey("deals.deal_id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("code", sa.String(120), nullable=True),
        sa.Column("quantity", sa.Float, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "products",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("code", sa.String(120), nullable=True),
        sa.Column("hora_inicio", sa.String(8), nullable=True),
        sa.Column("hora_fin", sa.String(8), nullable=True),
    )

    op.create_table(
        "variants",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("product_id", sa.String(64), sa.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("trainer_id", sa.String(64), sa.ForeignKey("trainers.trainer_id", ondelete="SET NULL"), nullable=True, index=True),
        sa.Column("sala_id", sa.String(64), sa.ForeignKey("rooms.sala_id", ondelete="SET NULL"), nullable=True),
        sa.Column("unidad_movil_id", sa.String(64), sa.ForeignKey("mobile_units.unidad_id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "variant_trainer_links",
        sa.Column("variant_id", sa.String(64), sa.ForeignKey("variants.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("trainer_id", sa.String(64), sa.ForeignKey("trainers.trainer_id", ondelete="CASCADE"), primary_key=True),
    )

    op.create_table(
        "training_sessions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("deal_id", sa.String(64), sa.ForeignKey("deals.deal_id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("deal_product_id", sa.String(64), sa.ForeignKey("deal_products.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("nombre_cache", sa.String(255), nullable=False, server_default="Sesión"),
        sa.Column("fecha_inicio_utc", sa.DateTime(timezone=True), nullable=True, index=True),
        sa.Column("fecha_fin_utc", sa.DateTime(timezone=True), nullable=True, index=True),
        sa.Column("tiempo_parada", sa.Float, nullable=True),
        sa.Column("sala_id", sa.String(64), sa.ForeignKey("rooms.sala_id", ondelete="SET NULL"), nullable=True, index=True),
        sa.Column("direccion", sa.Text, nullable=False, server_default=""),
        sa.Column("estado", sa.String(20), nullable=False, server_default="BORRADOR"),
        *_timestamps(),
    )

    op.create_table(
        "session_trainers",
        sa.Column("session_id", UUID(as_uuid=True), sa.ForeignKey("training_sessions.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("trainer_id", sa.String(64), sa.ForeignKey("trainers.trainer_id", ondelete="CASCADE"), primary_key=True, index=True),
    )

    op.create_table(
        "session_mobile_units",
        sa.Column("session_id", UUID(as_uuid=True), sa.ForeignKey("training_sessions.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("unidad_id", sa.String(64), sa.ForeignKey("mobile_units.unidad_id", ondelete="CASCADE"), primary_key=True, index=True),
    )

    op.create_table(
        "trainer_availability",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("trainer_id", sa.String(64), sa.ForeignKey("trainers.trainer_id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("available", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("trainer_id", "date", name="uq_trainer_availability_day"),
    )

    op.create_table(
        "material_orders",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("order_number", sa.Integer, nullable=False, unique=True),
        sa.Column("supplier_name", sa.String(255), nullable=True),
        sa.Column("supplier_email", sa.String(255), nullable=False),
        sa.Column("recipient_email", sa.String(255), nullable=False),
        sa.Column("cc_emails", sa.JSON, nullable=False),
        sa.Column("products", sa.JSON, nullable=False),
        sa.Column("source_budget_ids", sa.JSON, nullable=False),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("sent_from", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", UUID(as_uuid=True), nullable=True),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("entity_type", sa.String(64), nullable=False),
        sa.Column("entity_id", sa.String(64), nullable=False, index=True),
        sa.Column("before", sa.JSON, nullable=True),
        sa.Column("after", sa.JSON, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("material_orders")
    op.drop_table("trainer_availability")
    op.drop_table("session_mobile_units")
    op.drop_table("session_trainers")
    op.drop_table("training_sessions")
    op.drop_table("variant_trainer_links")
    op.drop_table("variants")
    op.drop_table("products")
    op.drop_table("deal_products")
    op.drop_table("deals")
    op.drop_table("mobile_units")
    op.drop_table("rooms")
    op.drop_table("trainers")
    op.drop_table("auth_sessions")
    op.drop_table("users")
